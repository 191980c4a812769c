# operators/_function.py
"""Matrix-free operators defined by a function."""

__all__ = [
    "FunctionOperator",
]

import numbers
import numpy as np

from .. import errors, utils
from ._base import DiffEqOperator


class FunctionOperator(DiffEqOperator):
    r"""Matrix-free operator :math:`\L(\u, \p, t) = f(\u, \p, t)`.

    The function is evaluated directly by the calling conventions.
    :meth:`update_coefficients_inplace()` records the parameters and time so
    that :meth:`multiply()` can apply :math:`f` at the most recent
    coefficients, i.e., ``L @ u`` is ``f(u, p, t)`` for the last ``(p, t)``
    given.

    Parameters
    ----------
    func : callable
        Function ``func(u, p, t)`` returning the action of the operator.
    shape : (int, int)
        Dimensions ``(rows, columns)`` of the operator.
    dtype : type
        Element type of the operator (default ``float``).
    func_inplace : callable or None
        Function ``func_inplace(out, u, p, t)`` writing the action of the
        operator into ``out``. If ``None`` (default), in-place evaluation is
        not supported.
    linear : bool
        Whether ``func`` is linear in ``u``. Default ``False``.
    constant : bool
        Whether ``func`` is independent of ``p`` and ``t``. Default ``False``.

    Examples
    --------
    >>> def laplacian(u, p, t):
    ...     out = -2 * u
    ...     out[1:] += u[:-1]
    ...     out[:-1] += u[1:]
    ...     return p * out
    >>> L = diffeqops.operators.FunctionOperator(
    ...     laplacian, (5, 5), linear=True
    ... )
    >>> L(np.ones(5), 1.0, 0.0)
    array([-1.,  0.,  0.,  0., -1.])
    """

    def __init__(
        self,
        func,
        shape,
        dtype=float,
        func_inplace=None,
        linear: bool = False,
        constant: bool = False,
    ):
        if not callable(func):
            raise TypeError("argument 'func' must be callable")
        if func_inplace is not None and not callable(func_inplace):
            raise TypeError("argument 'func_inplace' must be callable")
        shape = tuple(shape)
        if len(shape) != 2 or not all(
            isinstance(d, numbers.Integral) and d > 0 for d in shape
        ):
            raise ValueError("shape must be two positive integers")
        self.__func = func
        self.__func_inplace = func_inplace
        self.__shape = (int(shape[0]), int(shape[1]))
        self.__dtype = np.dtype(dtype)
        self.__linear = bool(linear)
        self.__constant = bool(constant)
        self._coefficients = None

    # Properties --------------------------------------------------------------
    @property
    def dtype(self):
        return self.__dtype

    @property
    def shape(self) -> tuple:
        return self.__shape

    @property
    def func(self):
        """Function ``func(u, p, t)`` defining the operator."""
        return self.__func

    @property
    def func_inplace(self):
        """Function ``func_inplace(out, u, p, t)``, or ``None``."""
        return self.__func_inplace

    def is_constant(self) -> bool:
        return self.__constant

    def is_linear(self) -> bool:
        return self.__linear

    def supports_multiply_inplace(self) -> bool:
        return self.func_inplace is not None

    # Coefficient updates -----------------------------------------------------
    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Record ``(parameters, t)`` for later calls to :meth:`multiply()`.
        """
        self._coefficients = (parameters, t)

    def update_coefficients(self, state, parameters, t):
        """Return a copy of the operator that records ``(parameters, t)``."""
        op = self.__class__(
            self.func,
            self.shape,
            self.dtype,
            self.func_inplace,
            self.__linear,
            self.__constant,
        )
        op.update_coefficients_inplace(state, parameters, t)
        return op

    # Evaluation --------------------------------------------------------------
    def evaluate(self, state, parameters, t):
        """Return ``func(u, p, t)``."""
        return self.func(state, parameters, t)

    def evaluate_inplace(self, out, state, parameters, t) -> None:
        """Compute ``func_inplace(out, u, p, t)``."""
        if self.func_inplace is None:
            raise errors.UnsupportedOperationError(
                "FunctionOperator does not support in-place evaluation "
                "without 'func_inplace'"
            )
        self.update_coefficients_inplace(state, parameters, t)
        self.func_inplace(out, state, parameters, t)

    @utils.requires(
        "_coefficients",
        "coefficients not set, call update_coefficients_inplace() first",
    )
    def multiply(self, state):
        """Return ``func(u, p, t)`` at the recorded ``(p, t)``."""
        parameters, t = self._coefficients
        return self.func(state, parameters, t)

    @utils.requires(
        "_coefficients",
        "coefficients not set, call update_coefficients_inplace() first",
    )
    def multiply_inplace(self, out, state) -> None:
        """Compute ``func_inplace(out, u, p, t)`` at the recorded ``(p, t)``.
        """
        if self.func_inplace is None:
            raise errors.UnsupportedOperationError(
                "FunctionOperator does not support in-place multiplication "
                "without 'func_inplace'"
            )
        parameters, t = self._coefficients
        self.func_inplace(out, state, parameters, t)
