# operators/_scalar.py
"""Multiples of the identity."""

__all__ = [
    "ScalarOperator",
    "IdentityOperator",
]

import numbers
import numpy as np
import scipy.sparse as sparse

from .. import errors
from ._base import LinearDiffEqOperator


class ScalarOperator(LinearDiffEqOperator):
    r"""Linear operator :math:`\L(t)\u = \alpha(t)\u`, a (possibly
    time-dependent) multiple of the :math:`n \times n` identity.

    Parameters
    ----------
    value : float or complex
        Current value of the coefficient :math:`\alpha`.
    n : int
        Dimension of the state the operator acts on.
    update_func : callable or None
        Function ``update_func(alpha, u, p, t)`` returning the coefficient
        for state ``u``, parameters ``p``, and time ``t``.
        If ``None`` (default), the operator is constant.

    Examples
    --------
    >>> decay = diffeqops.operators.ScalarOperator(
    ...     -1.0, 3, update_func=lambda a, u, p, t: -p * t
    ... )
    >>> decay(np.ones(3), 2.0, 0.5)
    array([-1., -1., -1.])
    """

    def __init__(self, value, n: int, update_func=None):
        if not isinstance(value, numbers.Number):
            raise TypeError("ScalarOperator value must be a scalar")
        if not isinstance(n, numbers.Integral) or n <= 0:
            raise ValueError("dimension 'n' must be a positive integer")
        if update_func is not None and not callable(update_func):
            raise TypeError("argument 'update_func' must be callable")
        self.value = value
        self.__n = int(n)
        self.__update_func = update_func

    # Properties --------------------------------------------------------------
    @property
    def update_func(self):
        """Coefficient update function, or ``None`` if constant."""
        return self.__update_func

    @property
    def dtype(self):
        return np.result_type(self.value)

    @property
    def shape(self) -> tuple:
        return (self.__n, self.__n)

    def __str__(self) -> str:
        lines = LinearDiffEqOperator.__str__(self).split("\n")
        lines.insert(1, f"  value: {self.value}")
        return "\n".join(lines)

    # Capability queries ------------------------------------------------------
    def is_constant(self) -> bool:
        return self.update_func is None

    def supports_expmv(self) -> bool:
        return True

    def supports_expmv_inplace(self) -> bool:
        return True

    def supports_multiply_inplace(self) -> bool:
        return True

    def supports_solve(self) -> bool:
        return self.value != 0

    def supports_solve_inplace(self) -> bool:
        return self.value != 0

    # Coefficient updates -----------------------------------------------------
    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Set ``value`` to ``update_func(value, u, p, t)``."""
        if self.update_func is not None:
            self.value = self.update_func(self.value, state, parameters, t)

    def update_coefficients(self, state, parameters, t):
        if self.update_func is None:
            return self
        return self.__class__(
            self.update_func(self.value, state, parameters, t),
            self.__n,
            self.update_func,
        )

    # Evaluation --------------------------------------------------------------
    def multiply(self, state):
        return self.value * state

    def multiply_inplace(self, out, state) -> None:
        np.multiply(self.value, state, out=out)

    def solve(self, rhs):
        if self.value == 0:
            raise errors.UnsupportedOperationError(
                "cannot solve with a zero ScalarOperator"
            )
        return rhs / self.value

    def solve_inplace(self, out, rhs) -> None:
        if self.value == 0:
            raise errors.UnsupportedOperationError(
                "cannot solve with a zero ScalarOperator"
            )
        np.divide(rhs, self.value, out=out)

    def scale(self, alpha):
        if self.update_func is not None:
            return LinearDiffEqOperator.scale(self, alpha)
        return self.__class__(alpha * self.value, self.__n)

    # Exponentials ------------------------------------------------------------
    def exp(self, t=1.0):
        r""":math:`e^{\alpha t}\I` as a sparse diagonal array."""
        return np.exp(self.value * t) * sparse.identity(
            self.__n, dtype=self.dtype, format="csr"
        )

    def expmv(self, state, parameters, t):
        return np.exp(self.value * t) * state

    def expmv_inplace(self, out, state, parameters, t) -> None:
        np.multiply(np.exp(self.value * t), state, out=out)


class IdentityOperator(ScalarOperator):
    r"""Identity operator :math:`\I\u = \u` on :math:`n`-dimensional states.

    Parameters
    ----------
    n : int
        Dimension of the state the operator acts on.
    dtype : type
        Element type of the operator (default ``float``).
    """

    def __init__(self, n: int, dtype=float):
        ScalarOperator.__init__(self, np.array(1, dtype=dtype)[()], n)

    def multiply(self, state):
        return np.array(state, copy=True)

    def multiply_inplace(self, out, state) -> None:
        out[...] = state

    def solve(self, rhs):
        return np.array(rhs, copy=True)

    def solve_inplace(self, out, rhs) -> None:
        out[...] = rhs

    def scale(self, alpha):
        return ScalarOperator(alpha * self.value, self.shape[0])
