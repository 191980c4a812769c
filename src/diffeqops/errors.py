# errors.py
"""Custom exception classes."""

import numpy as np


class ConstructionError(ValueError):  # pragma: no cover
    """Operator could not be assembled from the given components."""

    pass


class UnsupportedOperationError(NotImplementedError):  # pragma: no cover
    """Operation requested of an operator that does not provide it."""

    pass


class DimensionalityError(ValueError):  # pragma: no cover
    """Dimension of data not aligned with the operator."""

    pass


class InversionError(np.linalg.LinAlgError):  # pragma: no cover
    """Operator could not be factorized for solves (singular matrix)."""

    pass


class LoadfileFormatError(Exception):  # pragma: no cover
    """File format inconsistent with a loading routine."""

    pass


class VerificationError(RuntimeError):  # pragma: no cover
    """Implementation of a template fails to meet requirements."""

    pass


class DiffEqOpsWarning(UserWarning):  # pragma: no cover
    """Generic warning for package usage."""

    pass
