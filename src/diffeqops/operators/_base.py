# operators/_base.py
"""Abstract base classes for operators."""

__all__ = [
    "DiffEqOperator",
    "is_operator",
    "LinearDiffEqOperator",
    "is_linear_operator",
]

import abc
import copy
import numbers
import warnings
import numpy as np
import scipy.sparse as sparse
import matplotlib.pyplot as plt

from .. import errors


def _unsupported(obj, action: str):
    """Error for an operation that ``obj`` does not provide."""
    return errors.UnsupportedOperationError(
        f"{obj.__class__.__name__} does not support {action}"
    )


def _multiply_into(out: np.ndarray, A, u: np.ndarray) -> None:
    """Write ``A @ u`` into ``out`` without allocating when ``A`` is dense."""
    if sparse.issparse(A):
        out[...] = A @ u
    else:
        np.matmul(A, u, out=out)


# General operators ===========================================================
class DiffEqOperator(abc.ABC):
    r"""Template for operators :math:`\L(\u, \p, t)` acting on the state of a
    differential equation.

    An operator maps a state vector :math:`\u` to a vector of the same
    (row) dimension, possibly depending on parameters :math:`\p` and on time
    :math:`t` through a set of internal coefficients.
    Solvers use operators through two calling conventions:

    * ``out = L(u, p, t)`` (out-of-place), equivalent to
      ``L.update_coefficients(u, p, t) @ u``, and
    * ``L(out, u, p, t)`` (in-place), which refreshes the coefficients with
      :meth:`update_coefficients_inplace()` and then writes the product into
      ``out``.

    What an operator can do is described by independent capability queries
    (:meth:`is_constant()`, :meth:`is_linear()`,
    :meth:`supports_multiply()`, :meth:`supports_solve()`, etc.),
    so that solvers can branch on capabilities instead of on types.
    The defaults below are inherited by every backend unless overridden.

    Notes
    -----
    Updating and evaluating are an ordered pair: operators carry no
    transactional isolation, so an in-place update followed by an
    evaluation of the same instance must not be interleaved with other
    updates.
    """

    # Properties --------------------------------------------------------------
    @property
    @abc.abstractmethod
    def dtype(self):  # pragma: no cover
        """NumPy dtype of the entries the operator acts with."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def shape(self) -> tuple:  # pragma: no cover
        """Dimensions ``(rows, columns)`` of the operator."""
        raise NotImplementedError

    def element_type(self) -> np.dtype:
        """Numeric element type of the operator."""
        return np.dtype(self.dtype)

    def size(self, dim: int = None):
        """Shape of the operator, or its size along dimension ``dim``."""
        if dim is None:
            return self.shape
        return self.shape[dim]

    def __str__(self) -> str:
        """String representation: class name, dimensions, and capabilities."""
        out = [self.__class__.__name__]
        out.append(f"shape: {self.shape}")
        out.append(f"dtype: {self.element_type()}")
        traits = [
            name
            for name in (
                "constant",
                "linear",
            )
            if getattr(self, f"is_{name}")()
        ]
        out.append(f"traits: {', '.join(traits) if traits else 'none'}")
        supported = [
            name
            for name in (
                "multiply",
                "multiply_inplace",
                "solve",
                "solve_inplace",
                "exp",
                "expmv",
                "expmv_inplace",
            )
            if getattr(self, f"supports_{name}")()
        ]
        out.append(f"supports: {', '.join(supported) if supported else '-'}")
        return "\n  ".join(out)

    def __repr__(self) -> str:
        """Unique ID + string representation."""
        uniqueID = f"<{self.__class__.__name__} object at {hex(id(self))}>"
        return f"{uniqueID}\n{str(self)}"

    # Coefficient updates -----------------------------------------------------
    def update_coefficients(self, state, parameters, t):
        """Return an operator whose coefficients correspond to the given
        state, parameters, and time.

        The default returns ``self``, which is correct for operators whose
        action does not depend on ``(state, parameters, t)``.

        Parameters
        ----------
        state : (n,) ndarray
            Current state.
        parameters : any
            Parameters of the differential equation.
        t : float
            Current time.

        Returns
        -------
        op : DiffEqOperator
            Operator with refreshed coefficients.
        """
        return self

    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Refresh the internal coefficients of the operator in place.

        The default does nothing.

        Parameters
        ----------
        state : (n,) ndarray
            Current state.
        parameters : any
            Parameters of the differential equation.
        t : float
            Current time.
        """
        return None

    # Capability queries ------------------------------------------------------
    def is_constant(self) -> bool:
        """``True`` if the operator does not change with ``(u, p, t)``."""
        return False

    def isconstant(self) -> bool:
        """Deprecated alias for :meth:`is_constant()`."""
        warnings.warn(
            "isconstant() has been renamed "
            "and will be removed in an upcoming release, use is_constant()",
            DeprecationWarning,
        )
        return self.is_constant()

    def is_linear(self) -> bool:
        """``True`` if the operator is linear in the state."""
        return False

    def supports_expmv_inplace(self) -> bool:
        """``True`` if :meth:`expmv_inplace()` is available."""
        return False

    def supports_expmv(self) -> bool:
        """``True`` if :meth:`expmv()` is available."""
        return False

    def supports_exp(self) -> bool:
        """``True`` if :meth:`exp()` is available."""
        return False

    def supports_multiply(self) -> bool:
        """``True`` if :meth:`multiply()` is available."""
        return True

    def supports_multiply_inplace(self) -> bool:
        """``True`` if :meth:`multiply_inplace()` is available."""
        return False

    def supports_solve(self) -> bool:
        """``True`` if :meth:`solve()` is available."""
        return False

    def supports_solve_inplace(self) -> bool:
        """``True`` if :meth:`solve_inplace()` is available."""
        return False

    # Evaluation --------------------------------------------------------------
    @abc.abstractmethod
    def multiply(self, state: np.ndarray) -> np.ndarray:  # pragma: no cover
        """Apply the operator with its current coefficients to ``state``.

        Parameters
        ----------
        state : (n,) or (n, k) ndarray
            State vector or matrix of state vectors.

        Returns
        -------
        out : (n,) or (n, k) ndarray
            Product of the operator and ``state``.
        """
        raise NotImplementedError

    def __matmul__(self, state):
        """``L @ u`` is ``L.multiply(u)``."""
        return self.multiply(state)

    def multiply_inplace(self, out: np.ndarray, state: np.ndarray) -> None:
        """Write the product of the operator and ``state`` into ``out``."""
        raise _unsupported(self, "in-place multiplication")

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        """Solve ``L x = rhs`` for ``x``.

        There is no generic way to invert an operator, so this raises an
        :class:`diffeqops.errors.UnsupportedOperationError` unless a backend
        provides a factorization.
        """
        raise _unsupported(self, "solve()")

    def solve_inplace(self, out: np.ndarray, rhs: np.ndarray) -> None:
        """Solve ``L x = rhs`` and write ``x`` into ``out``."""
        raise _unsupported(self, "solve_inplace()")

    def exp(self, t=1.0):
        """Matrix exponential ``exp(t L)``."""
        raise _unsupported(self, "exp()")

    def expmv(self, state, parameters, t):
        """Action ``exp(t L) @ state`` of the operator exponential."""
        raise _unsupported(self, "expmv()")

    def expmv_inplace(self, out, state, parameters, t) -> None:
        """Write ``exp(t L) @ state`` into ``out``."""
        raise _unsupported(self, "expmv_inplace()")

    def evaluate(self, state, parameters, t) -> np.ndarray:
        """Out-of-place evaluation ``L(u, p, t)``: update the coefficients,
        then multiply.
        """
        return self.update_coefficients(state, parameters, t).multiply(state)

    def evaluate_inplace(self, out, state, parameters, t) -> None:
        """In-place evaluation ``L(du, u, p, t)``: update the coefficients
        in place, then multiply into ``out``.
        """
        self.update_coefficients_inplace(state, parameters, t)
        self.multiply_inplace(out, state)

    def __call__(self, *args):
        """Evaluate the operator.

        * ``L(u, p, t)`` returns :meth:`evaluate()`.
        * ``L(du, u, p, t)`` calls :meth:`evaluate_inplace()` and returns
          ``None``.
        """
        if len(args) == 3:
            return self.evaluate(*args)
        if len(args) == 4:
            return self.evaluate_inplace(*args)
        raise TypeError(
            f"{self.__class__.__name__} expects (u, p, t) or (du, u, p, t), "
            f"got {len(args)} positional argument(s)"
        )

    # Model persistence -------------------------------------------------------
    def copy(self):
        """Return a copy of the operator using :func:`copy.deepcopy()`."""
        return copy.deepcopy(self)

    def save(self, savefile: str, overwrite: bool = False) -> None:
        """Save the operator to an HDF5 file.

        Parameters
        ----------
        savefile : str
            Path of the file to save the operator in.
        overwrite : bool
            If ``True``, overwrite the file if it already exists. If ``False``
            (default), raise a ``FileExistsError`` if the file already exists.
        """
        raise NotImplementedError

    @classmethod
    def load(cls, loadfile: str):  # pragma: no cover
        """Load an operator from an HDF5 file.

        Parameters
        ----------
        loadfile : str
            Path to the file where the operator was stored via :meth:`save()`.
        """
        raise NotImplementedError

    # Verification ------------------------------------------------------------
    def verify(self, plot: bool = False, *, ntests: int = 4) -> None:
        """Verify consistency between the capability queries and the methods
        that implement them.

        This method checks :attr:`shape` and :attr:`dtype`, and, depending on
        which capabilities are advertised, :meth:`multiply()`,
        :meth:`multiply_inplace()`, :meth:`solve()`, :meth:`solve_inplace()`,
        :meth:`exp()`, :meth:`expmv()`, and :meth:`expmv_inplace()`.
        Coefficients are used as they currently are; nothing is updated.

        Parameters
        ----------
        plot : bool
            If ``True`` and :meth:`exp()` is supported, plot the relative
            discrepancy between :meth:`expmv()` and ``exp(t) @ u`` as a
            function of ``t``.
            If ``False`` (default), print a report of the discrepancies.
        ntests : int
            Number of random vectors to test each method with.

        Notes
        -----
        This method does **not** verify the correctness of :meth:`multiply()`,
        only that the other methods are consistent with it.
        """
        # Verify dimensions - - - - - - - - - - - - - - - - - - - - - - - - - -
        shape = self.shape
        if (
            not isinstance(shape, tuple)
            or len(shape) != 2
            or not all(
                isinstance(d, numbers.Integral) and d > 0 for d in shape
            )
        ):
            raise errors.VerificationError(
                "shape must be a tuple of two positive integers "
                f"(current value: {repr(shape)})"
            )
        try:
            dtype = self.element_type()
        except TypeError as ex:
            raise errors.VerificationError(
                f"dtype must be a valid NumPy dtype ({ex})"
            ) from ex
        print(f"shape {shape} and dtype '{dtype}' are valid")
        n, m = shape

        def _random(size):
            return np.random.standard_normal(size).astype(dtype, copy=False)

        # Verify multiply() - - - - - - - - - - - - - - - - - - - - - - - - - -
        if not self.supports_multiply():
            return print("multiply() not supported, nothing else to verify")
        for _ in range(ntests):
            u = _random(m)
            out = self.multiply(u)
            if np.shape(out) != (n,):
                raise errors.VerificationError(
                    "multiply(u) must return array of shape (shape[0],) "
                    "when u.shape = (shape[1],)"
                )
        print("multiply() is consistent with shape")

        # Verify multiply_inplace() - - - - - - - - - - - - - - - - - - - - - -
        if self.supports_multiply_inplace():
            for _ in range(ntests):
                u = _random(m)
                out = np.zeros(n, dtype=dtype)
                self.multiply_inplace(out, u)
                if not np.allclose(out, self.multiply(u)):
                    raise errors.VerificationError(
                        "multiply_inplace(out, u) not consistent with "
                        "multiply(u)"
                    )
            print("multiply_inplace() is consistent with multiply()")

        if n != m:
            return print("cannot verify solves or exponentials for n != m")

        # Verify solve() and solve_inplace()  - - - - - - - - - - - - - - - - -
        if self.supports_solve():
            for _ in range(ntests):
                b = _random(n)
                if not np.allclose(self.multiply(self.solve(b)), b):
                    raise errors.VerificationError(
                        "multiply(solve(b)) != b"
                    )
            print("solve() is consistent with multiply()")
        if self.supports_solve_inplace():
            for _ in range(ntests):
                b = _random(n)
                x = np.zeros(n, dtype=dtype)
                self.solve_inplace(x, b)
                if not np.allclose(self.multiply(x), b):
                    raise errors.VerificationError(
                        "multiply(x) != b after solve_inplace(x, b)"
                    )
            print("solve_inplace() is consistent with multiply()")

        # Verify exp(), expmv(), and expmv_inplace()  - - - - - - - - - - - - -
        if not self.supports_exp():
            return
        try:
            E0 = self.exp(0)
        except errors.UnsupportedOperationError as ex:
            raise errors.VerificationError(
                "supports_exp() is True but exp() is not implemented"
            ) from ex
        if sparse.issparse(E0):
            E0 = E0.toarray()
        if not np.allclose(E0, np.eye(n)):
            raise errors.VerificationError("exp(0) != I")
        print("exp(0) is the identity")

        ts = np.logspace(-4, 0, 9)
        diffs = np.empty((ts.size, ntests))
        for i, t in enumerate(ts):
            Et = self.exp(t)
            for j in range(ntests):
                u = _random(n)
                full = Et @ u
                diffs[i, j] = np.linalg.norm(
                    self.expmv(u, None, t) - full
                ) / max(np.linalg.norm(full), np.finfo(float).tiny)
                if self.supports_expmv_inplace():
                    out = np.zeros(n, dtype=np.result_type(dtype, Et.dtype))
                    self.expmv_inplace(out, u, None, t)
                    if not np.allclose(out, full):
                        raise errors.VerificationError(
                            "expmv_inplace(out, u, p, t) != exp(t) @ u"
                        )
        if plot:
            plt.loglog(ts, diffs.max(axis=1), ".-", markersize=5, linewidth=1)
            plt.xlabel("t")
            plt.ylabel("relative error")
            plt.title("expmv(u, p, t) vs. exp(t) @ u")
        else:
            print(
                "expmv() relative discrepancy from exp(t) @ u",
                "  -------------------------------------------",
                sep="\n",
            )
            for t, err in zip(ts, diffs.max(axis=1)):
                print(f"  t = {t:.2e}\terror = {err:.4e}")
        if not np.allclose(diffs, 0, atol=1e-6):
            raise errors.VerificationError("expmv(u, p, t) != exp(t) @ u")
        print("expmv() is consistent with exp()")


def is_operator(obj) -> bool:
    """Return ``True`` if ``obj`` is an operator object."""
    return isinstance(obj, DiffEqOperator)


# Linear operators ============================================================
class LinearDiffEqOperator(DiffEqOperator):
    r"""Template for linear operators :math:`\L(t)\u`.

    A linear operator can absorb a scalar multiplier: ``c * L`` is itself a
    linear operator (see :meth:`scale()`), since time-stepping schemes form
    expressions such as ``dt * L`` all the time.

    Compared to :class:`DiffEqOperator`, the defaults change as follows.

    * Linear operators are assumed constant (:meth:`is_constant()` is
      ``True``) unless a backend overrides it.
    * :meth:`is_linear()` is derived from :meth:`is_constant()`: a linear
      operator whose coefficients vary with ``(u, p, t)`` is linear in form
      only, so it is not reported as linear.
    * :meth:`supports_exp()` is ``True``, and :meth:`expmv()` and
      :meth:`expmv_inplace()` fall back to multiplying by :meth:`exp()`.
      Backends with a cheaper exponential action (e.g., Krylov methods)
      should override those two methods; backends that cannot exponentiate
      must override :meth:`supports_exp()` to return ``False``.
    * Solves still have no fallback.
    """

    # Capability queries ------------------------------------------------------
    def is_constant(self) -> bool:
        """``True`` unless the backend declares time / state dependence."""
        return True

    def is_linear(self) -> bool:
        """Linear operators are reported linear exactly when constant."""
        return self.is_constant()

    def supports_exp(self) -> bool:
        """``True`` unless the backend cannot compute :meth:`exp()`."""
        return True

    # Scalar absorption -------------------------------------------------------
    def scale(self, alpha):
        """Return the linear operator ``alpha * L``.

        Backends can override this to fold the scalar into their entries.

        Parameters
        ----------
        alpha : float or complex
            Scalar multiplier.

        Returns
        -------
        op : LinearDiffEqOperator
        """
        from ._scaled import ScaledOperator

        return ScaledOperator(alpha, self)

    def __mul__(self, alpha):
        """``L * alpha`` is ``L.scale(alpha)``."""
        if not isinstance(alpha, numbers.Number):
            return NotImplemented
        return self.scale(alpha)

    def __rmul__(self, alpha):
        """``alpha * L`` is ``L.scale(alpha)``."""
        return self.__mul__(alpha)

    def __neg__(self):
        """``-L`` is ``L.scale(-1)``."""
        return self.scale(-1)

    # Exponentials ------------------------------------------------------------
    def exp(self, t=1.0):
        """Matrix exponential ``exp(t L)``, the primitive the exponential
        action falls back on.

        Parameters
        ----------
        t : float
            Scaling of the operator in the exponent.

        Returns
        -------
        E : (n, n) ndarray or scipy.sparse array
            Matrix representation of ``exp(t L)``.
        """
        raise _unsupported(self, "exp()")

    def expmv(self, state, parameters, t):
        """Compute ``exp(t L) @ state`` by forming :meth:`exp()`.

        Parameters
        ----------
        state : (n,) ndarray
            Vector to apply the operator exponential to.
        parameters : any
            Parameters of the differential equation (unused by the fallback).
        t : float
            Scaling of the operator in the exponent.

        Returns
        -------
        out : (n,) ndarray
        """
        if not self.supports_exp():
            raise _unsupported(self, "expmv()")
        return self.exp(t) @ state

    def expmv_inplace(self, out, state, parameters, t) -> None:
        """Write ``exp(t L) @ state`` into ``out`` by forming :meth:`exp()`."""
        if not self.supports_exp():
            raise _unsupported(self, "expmv_inplace()")
        _multiply_into(out, self.exp(t), state)


def is_linear_operator(obj) -> bool:
    """Return ``True`` if ``obj`` is a linear operator object."""
    return isinstance(obj, LinearDiffEqOperator)
