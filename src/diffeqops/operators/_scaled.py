# operators/_scaled.py
"""Scalar multiples of linear operators."""

__all__ = [
    "ScaledOperator",
]

import numbers
import numpy as np

from ._base import LinearDiffEqOperator


class ScaledOperator(LinearDiffEqOperator):
    r"""Linear operator :math:`\alpha\L` for a scalar :math:`\alpha` and a
    linear operator :math:`\L`.

    This is what :meth:`LinearDiffEqOperator.scale()` returns by default.
    Coefficient updates, capability queries, and the exponential are
    delegated to :math:`\L`; nested scalings collapse into one coefficient.

    Parameters
    ----------
    alpha : float or complex
        Scalar coefficient :math:`\alpha`.
    operator : LinearDiffEqOperator
        Linear operator :math:`\L` to scale.
    """

    def __init__(self, alpha, operator):
        if not isinstance(alpha, numbers.Number):
            raise TypeError("scaling coefficient must be a scalar")
        if not isinstance(operator, LinearDiffEqOperator):
            raise TypeError("only linear operators can absorb a scalar")
        if isinstance(operator, ScaledOperator):
            alpha = alpha * operator.alpha
            operator = operator.operator
        self.__alpha = alpha
        self.__operator = operator

    @property
    def alpha(self):
        r"""Scalar coefficient :math:`\alpha`."""
        return self.__alpha

    @property
    def operator(self):
        r"""Linear operator :math:`\L` being scaled."""
        return self.__operator

    @property
    def dtype(self):
        return np.result_type(self.operator.dtype, self.alpha)

    @property
    def shape(self) -> tuple:
        return self.operator.shape

    # Capability queries ------------------------------------------------------
    def is_constant(self) -> bool:
        return self.operator.is_constant()

    def supports_exp(self) -> bool:
        return self.operator.supports_exp()

    def supports_expmv(self) -> bool:
        return self.operator.supports_expmv()

    def supports_expmv_inplace(self) -> bool:
        return self.operator.supports_expmv_inplace()

    def supports_multiply(self) -> bool:
        return self.operator.supports_multiply()

    def supports_multiply_inplace(self) -> bool:
        return self.operator.supports_multiply_inplace()

    def supports_solve(self) -> bool:
        return self.operator.supports_solve() and self.alpha != 0

    def supports_solve_inplace(self) -> bool:
        return self.operator.supports_solve_inplace() and self.alpha != 0

    # Coefficient updates -----------------------------------------------------
    def update_coefficients(self, state, parameters, t):
        op = self.operator.update_coefficients(state, parameters, t)
        if op is self.operator:
            return self
        return self.__class__(self.alpha, op)

    def update_coefficients_inplace(self, state, parameters, t) -> None:
        self.operator.update_coefficients_inplace(state, parameters, t)

    # Evaluation --------------------------------------------------------------
    def multiply(self, state):
        return self.alpha * self.operator.multiply(state)

    def multiply_inplace(self, out, state) -> None:
        self.operator.multiply_inplace(out, state)
        out *= self.alpha

    def solve(self, rhs):
        return self.operator.solve(rhs) / self.alpha

    def solve_inplace(self, out, rhs) -> None:
        self.operator.solve_inplace(out, rhs)
        out /= self.alpha

    def scale(self, alpha):
        return self.__class__(alpha, self)

    # Exponentials ------------------------------------------------------------
    def exp(self, t=1.0):
        r""":math:`e^{t\alpha\L}`, i.e., the exponential of :math:`\L` at
        :math:`\alpha t`.
        """
        return self.operator.exp(self.alpha * t)

    def expmv(self, state, parameters, t):
        return self.operator.expmv(state, parameters, self.alpha * t)

    def expmv_inplace(self, out, state, parameters, t) -> None:
        self.operator.expmv_inplace(out, state, parameters, self.alpha * t)
