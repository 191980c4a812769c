# operators/__init__.py
"""Operator classes for the terms of a differential equation."""

from ._base import *
from ._scaled import *
from ._scalar import *
from ._array import *
from ._factorized import *
from ._function import *
from ._forcing import *
from ._affine import *
