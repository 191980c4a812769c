# operators/_forcing.py
"""Forcing terms for affine operators: constants and functions of time."""

__all__ = [
    "ForcingTerm",
    "ConstantForcing",
    "TimeForcing",
    "as_forcing_term",
]

import abc
import numbers
import numpy as np
import scipy.sparse as sparse

from .. import errors


class ForcingTerm(abc.ABC):
    r"""Template for a forcing term :math:`\b(t)` of an affine operator.

    A forcing term is either a constant value (:class:`ConstantForcing`) or
    a function of time (:class:`TimeForcing`).

    Calling conventions:

    * ``B(t)`` returns :meth:`evaluate()`, and
    * ``B(out, t)`` calls :meth:`evaluate_inplace()`.
    """

    def is_constant(self) -> bool:
        """``True`` if the term does not depend on time."""
        return False

    def supports_evaluate_inplace(self) -> bool:
        """``True`` if :meth:`evaluate_inplace()` is available."""
        return False

    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Refresh internal coefficients in place (default: do nothing)."""
        return None

    @abc.abstractmethod
    def evaluate(self, t):  # pragma: no cover
        """Value of the forcing term at time ``t``."""
        raise NotImplementedError

    def evaluate_inplace(self, out, t) -> None:
        """Write the value of the forcing term at time ``t`` into ``out``."""
        raise errors.UnsupportedOperationError(
            f"{self.__class__.__name__} does not support in-place evaluation"
        )

    def __call__(self, *args):
        if len(args) == 1:
            return self.evaluate(*args)
        if len(args) == 2:
            return self.evaluate_inplace(*args)
        raise TypeError(
            f"{self.__class__.__name__} expects (t) or (out, t), "
            f"got {len(args)} positional argument(s)"
        )


class ConstantForcing(ForcingTerm):
    r"""Constant forcing term :math:`\b(t) = \b`.

    Parameters
    ----------
    value : float, complex, ndarray, or scipy.sparse array
        Constant value added to the operator output. Scalars are broadcast.
        Sparse arrays, e.g., of shape (n, 1) or (1, n), are flattened.
    """

    def __init__(self, value):
        if sparse.issparse(value):
            # Sparse arrays are always 2D; a forcing vector is 1D.
            value = value.toarray().ravel()
        if not isinstance(value, (numbers.Number, np.ndarray)):
            raise TypeError("constant forcing must be a scalar or an array")
        self.__value = value

    @property
    def value(self):
        """Constant value of the forcing term."""
        return self.__value

    def __str__(self):
        return f"ConstantForcing(shape={np.shape(self.value)})"

    def is_constant(self) -> bool:
        return True

    def supports_evaluate_inplace(self) -> bool:
        return True

    def evaluate(self, t=None):
        """Return the constant value (``t`` is ignored)."""
        return self.value

    def evaluate_inplace(self, out, t=None) -> None:
        out[...] = self.value


class TimeForcing(ForcingTerm):
    r"""Time-dependent forcing term :math:`\b(t)`.

    Parameters
    ----------
    func : callable
        Function ``func(t)`` returning the value of the forcing term.
    func_inplace : callable or None
        Function ``func_inplace(out, t)`` writing the value of the forcing
        term into ``out``. If ``None`` (default), in-place evaluation is not
        supported and raises an
        :class:`diffeqops.errors.UnsupportedOperationError`.

    Examples
    --------
    >>> B = diffeqops.operators.TimeForcing(
    ...     lambda t: np.array([np.sin(t), 0.0]),
    ...     lambda out, t: out.__setitem__(slice(None), [np.sin(t), 0.0]),
    ... )
    >>> B.supports_evaluate_inplace()
    True
    """

    def __init__(self, func, func_inplace=None):
        if not callable(func):
            raise TypeError("argument 'func' must be callable")
        if func_inplace is not None and not callable(func_inplace):
            raise TypeError("argument 'func_inplace' must be callable")
        self.__func = func
        self.__func_inplace = func_inplace

    @property
    def func(self):
        return self.__func

    @property
    def func_inplace(self):
        return self.__func_inplace

    def __str__(self):
        name = getattr(self.func, "__name__", repr(self.func))
        return f"TimeForcing({name})"

    def supports_evaluate_inplace(self) -> bool:
        return self.func_inplace is not None

    def evaluate(self, t):
        return self.func(t)

    def evaluate_inplace(self, out, t) -> None:
        if self.func_inplace is None:
            raise errors.UnsupportedOperationError(
                "TimeForcing does not support in-place evaluation "
                "without 'func_inplace'"
            )
        self.func_inplace(out, t)


def as_forcing_term(obj) -> ForcingTerm:
    """Interpret ``obj`` as a forcing term.

    Parameters
    ----------
    obj : ForcingTerm, scalar, ndarray, scipy.sparse array, or callable
        * :class:`ForcingTerm`: returned as is.
        * scalar or array: wrapped in a :class:`ConstantForcing`.
        * callable: wrapped in a :class:`TimeForcing` (without in-place
          support).

    Returns
    -------
    term : ForcingTerm
    """
    if isinstance(obj, ForcingTerm):
        return obj
    if (
        isinstance(obj, (numbers.Number, np.ndarray))
        or sparse.issparse(obj)
    ):
        return ConstantForcing(obj)
    if callable(obj):
        return TimeForcing(obj)
    raise TypeError(
        f"cannot interpret object of type '{type(obj).__name__}' "
        "as a forcing term"
    )
