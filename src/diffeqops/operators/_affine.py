# operators/_affine.py
"""Affine operators: sums of linear operators plus forcing terms."""

__all__ = [
    "AffineOperator",
    "is_affine",
]

import logging
import numpy as np
import scipy.sparse as sparse

from .. import errors
from ._base import DiffEqOperator
from ._array import ArrayOperator
from ._forcing import ConstantForcing, as_forcing_term


def _as_operator(obj) -> DiffEqOperator:
    """Interpret ``obj`` as an operator, wrapping raw arrays."""
    if isinstance(obj, DiffEqOperator):
        return obj
    if isinstance(obj, np.ndarray) or sparse.issparse(obj):
        return ArrayOperator(obj)
    raise TypeError(
        f"cannot interpret object of type '{type(obj).__name__}' "
        "as a linear term"
    )


def _broadcasts_to(shape: tuple, n: int) -> bool:
    """Whether an array of the given shape broadcasts to shape (n,)."""
    try:
        return np.broadcast_shapes(shape, (n,)) == (n,)
    except ValueError:
        return False


class AffineOperator(DiffEqOperator):
    r"""Affine operator

    .. math::
       \L(\u, \p, t)
       = \left(\sum_{i=1}^{n}\A_i(t)\right)\u + \sum_{j=1}^{m}\b_j(t),

    the sum of linear terms :math:`\A_i(t)` applied to the state and of
    forcing terms :math:`\b_j(t)`.

    Updating the coefficients of an affine operator updates the coefficients
    of each of its terms. The calling conventions ``L(u, p, t)`` and
    ``L(du, u, p, t)`` evaluate the full right-hand side, so the operator can
    be handed to a nonlinear ODE solver unchanged, while solvers that know
    about affine structure can inspect :attr:`linear_terms` and
    :attr:`forcing_terms` directly, e.g.,
    ``L.linear_terms[0].is_constant()``.

    Parameters
    ----------
    linear_terms : sequence of DiffEqOperator, ndarray, or scipy.sparse array
        Linear terms :math:`\A_1,\ldots,\A_n` (at least one), all with the
        same shape. Arrays are wrapped in
        :class:`diffeqops.operators.ArrayOperator`.
    forcing_terms : sequence
        Forcing terms :math:`\b_1,\ldots,\b_m`. Scalars and arrays are
        constants; callables ``b(t)`` are functions of time. See
        :func:`diffeqops.operators.as_forcing_term()`.
    cache : ndarray or None
        Scratch buffer with the shape of the output, required for in-place
        evaluation ``L(du, u, p, t)``. If ``None`` (default), in-place
        evaluation raises an
        :class:`diffeqops.errors.UnsupportedOperationError`.

    Notes
    -----
    The scratch buffer is shared by every in-place evaluation of an instance,
    so an instance must not be evaluated in place from several threads at
    once. Use one instance per thread (see :meth:`update_coefficients()`,
    which allocates a new buffer) or synchronize externally.

    The two calling conventions refresh the coefficients differently.
    ``L(u, p, t)`` refreshes each linear term out of place as it is summed
    and does not touch forcing terms, while ``L(du, u, p, t)`` first calls
    :meth:`update_coefficients_inplace()` on every term.

    Examples
    --------
    >>> A1 = np.array([[1.0, 2.0], [3.0, 4.0]])
    >>> A2 = np.eye(2)
    >>> b = np.array([1.0, -1.0])
    >>> L = diffeqops.operators.AffineOperator([A1, A2], [b], np.empty(2))
    >>> u = np.array([1.0, 1.0])
    >>> L(u, None, 0.0)
    array([5., 7.])
    >>> du = np.empty(2)
    >>> L(du, u, None, 0.0)
    >>> du
    array([5., 7.])
    """

    def __init__(self, linear_terms, forcing_terms=(), cache=None):
        """Validate and store the terms and the scratch buffer."""
        linear_terms = tuple(_as_operator(A) for A in linear_terms)
        if len(linear_terms) == 0:
            raise errors.ConstructionError(
                "at least one linear term is required"
            )
        shape = linear_terms[0].shape
        if any(A.shape != shape for A in linear_terms):
            raise errors.ConstructionError("operator sizes do not agree")
        forcing_terms = tuple(as_forcing_term(B) for B in forcing_terms)
        for B in forcing_terms:
            if isinstance(B, ConstantForcing) and not _broadcasts_to(
                np.shape(B.value), shape[0]
            ):
                raise errors.DimensionalityError(
                    f"constant forcing of shape {np.shape(B.value)} "
                    f"does not match operator with {shape[0]} rows"
                )

        if cache is not None:
            if not isinstance(cache, np.ndarray):
                raise TypeError("cache must be a NumPy array")
            if cache.ndim == 0 or cache.shape[0] != shape[0]:
                raise errors.DimensionalityError(
                    f"cache must have {shape[0]} rows, got shape {cache.shape}"
                )

        self.__linear_terms = linear_terms
        self.__forcing_terms = forcing_terms
        self.__cache = cache
        logging.debug(
            f"AffineOperator of shape {shape}: {len(linear_terms)} linear "
            f"term(s), {len(forcing_terms)} forcing term(s)"
        )

    # Properties --------------------------------------------------------------
    @property
    def linear_terms(self) -> tuple:
        r"""Linear terms :math:`\A_1,\ldots,\A_n`."""
        return self.__linear_terms

    @property
    def forcing_terms(self) -> tuple:
        r"""Forcing terms :math:`\b_1,\ldots,\b_m`."""
        return self.__forcing_terms

    @property
    def cache(self):
        """Scratch buffer for in-place evaluation, or ``None``."""
        return self.__cache

    @property
    def dtype(self):
        """Result type of the linear terms and the constant forcing terms."""
        return np.result_type(
            *[A.dtype for A in self.linear_terms],
            *[
                np.result_type(B.value)
                for B in self.forcing_terms
                if isinstance(B, ConstantForcing)
            ],
        )

    @property
    def shape(self) -> tuple:
        """Shape of the linear terms."""
        return self.linear_terms[0].shape

    def __str__(self) -> str:
        lines = DiffEqOperator.__str__(self).split("\n")
        lines.append(f"  linear terms: {len(self.linear_terms)}")
        for A in self.linear_terms:
            lines.append(f"    {A.__class__.__name__}{A.shape}")
        lines.append(f"  forcing terms: {len(self.forcing_terms)}")
        for B in self.forcing_terms:
            lines.append(f"    {B}")
        lines.append(f"  cache: {'no' if self.cache is None else 'yes'}")
        return "\n".join(lines)

    # Capability queries ------------------------------------------------------
    def is_constant(self) -> bool:
        """``True`` if every linear and forcing term is constant."""
        return all(A.is_constant() for A in self.linear_terms) and all(
            B.is_constant() for B in self.forcing_terms
        )

    def is_linear(self) -> bool:
        """``True`` if there are no forcing terms and every linear term is
        linear.
        """
        return len(self.forcing_terms) == 0 and all(
            A.is_linear() for A in self.linear_terms
        )

    def supports_multiply(self) -> bool:
        """An affine operator is evaluated at a time, not multiplied."""
        return False

    def supports_multiply_inplace(self) -> bool:
        """``False``: in-place evaluation is ``L(du, u, p, t)``."""
        return False

    def supports_evaluate_inplace(self) -> bool:
        """``True`` if a scratch buffer is available and every linear term
        supports in-place multiplication.
        """
        return self.cache is not None and all(
            A.supports_multiply_inplace() for A in self.linear_terms
        )

    # Coefficient updates -----------------------------------------------------
    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Update the coefficients of every linear term, then of every
        forcing term, in place.
        """
        for A in self.linear_terms:
            A.update_coefficients_inplace(state, parameters, t)
        for B in self.forcing_terms:
            B.update_coefficients_inplace(state, parameters, t)

    def update_coefficients(self, state, parameters, t):
        """Return a new affine operator whose linear terms have been updated
        out of place. The forcing terms are shared; the scratch buffer is not.
        """
        return self.__class__(
            [A.update_coefficients(state, parameters, t)
             for A in self.linear_terms],
            self.forcing_terms,
            None if self.cache is None else np.empty_like(self.cache),
        )

    # Evaluation --------------------------------------------------------------
    def multiply(self, state):
        raise errors.UnsupportedOperationError(
            "AffineOperator must be evaluated as L(u, p, t), not multiplied"
        )

    def evaluate(self, state, parameters, t):
        r"""Out-of-place evaluation
        :math:`\sum_i\A_i(t)\u + \sum_j\b_j(t)`.

        Each linear term is updated out of place right before it is applied.

        Parameters
        ----------
        state : (n,) ndarray
            State vector.
        parameters : any
            Parameters of the differential equation.
        t : float
            Time.

        Returns
        -------
        out : (n,) ndarray
        """
        linear = sum(
            A.update_coefficients(state, parameters, t).multiply(state)
            for A in self.linear_terms
        )
        forcing = sum(B.evaluate(t) for B in self.forcing_terms)
        return linear + forcing

    def evaluate_inplace(self, out, state, parameters, t) -> None:
        r"""In-place evaluation
        :math:`\sum_i\A_i(t)\u + \sum_j\b_j(t)`, written into ``out``.

        Every term is first updated in place. Each linear term must support
        in-place multiplication, and each non-constant forcing term must
        support in-place evaluation; otherwise an
        :class:`diffeqops.errors.UnsupportedOperationError` is raised when
        that term is reached.

        Parameters
        ----------
        out : (n,) ndarray
            Array to write the result to.
        state : (n,) ndarray
            State vector.
        parameters : any
            Parameters of the differential equation.
        t : float
            Time.
        """
        if self.cache is None:
            raise errors.UnsupportedOperationError(
                "in-place evaluation of AffineOperator requires a cache"
            )
        self.update_coefficients_inplace(state, parameters, t)
        cache = self.cache
        out.fill(0)
        for A in self.linear_terms:
            A.multiply_inplace(cache, state)
            out += cache
        for B in self.forcing_terms:
            if isinstance(B, ConstantForcing):
                out += B.value
            else:
                B.evaluate_inplace(cache, t)
                out += cache


def is_affine(obj) -> bool:
    """Return ``True`` if ``obj`` is an affine operator."""
    return isinstance(obj, AffineOperator)
