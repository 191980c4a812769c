# __init__.py
"""Operator abstractions for differential equation solvers.

Operators represent (possibly time- and state-dependent) linear and affine
maps :math:`\\L(\\u, \\p, t)` behind one calling convention, one
coefficient-update protocol, and one set of capability queries, so that
solvers do not need to know how an operator is stored.
"""

__version__ = "0.1.0"

from . import (
    errors,
    operators,
    utils,
)

from .operators import *
