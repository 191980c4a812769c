# operators/test_base.py
"""Tests for operators._base."""

import abc
import pytest
import numpy as np
import scipy.linalg as la

import diffeqops


_module = diffeqops.operators._base


class _Rotation(_module.DiffEqOperator):
    """General operator that only implements the required methods."""

    @property
    def dtype(self):
        return np.float64

    @property
    def shape(self):
        return (2, 2)

    def multiply(self, state):
        return np.array([-state[1], state[0]])


class _ExpOnly(_module.LinearDiffEqOperator):
    """Linear operator exposing only the matrix exponential."""

    def __init__(self, A):
        self.A = A

    @property
    def dtype(self):
        return self.A.dtype

    @property
    def shape(self):
        return self.A.shape

    def multiply(self, state):
        return self.A @ state

    def exp(self, t=1.0):
        return la.expm(t * self.A)


class _NoExp(_ExpOnly):
    """Linear operator that opts out of exponentials."""

    def supports_exp(self):
        return False


class _TimeVarying(_ExpOnly):
    """Linear operator that is linear in form only."""

    def is_constant(self):
        return False


# Tests for families of operators =============================================
class _TestDiffEqOperator(abc.ABC):
    """Tests for classes that inherit from operators._base.DiffEqOperator."""

    # Setup -------------------------------------------------------------------
    Operator = NotImplemented

    @abc.abstractmethod
    def get_operator(self, n: int):
        """Return a valid operator to test.

        Parameters
        ----------
        n : int > 0
            State dimension.

        Returns
        -------
        op : Operator
            Instantiated operator of shape (n, n).
        """
        raise NotImplementedError

    # Properties --------------------------------------------------------------
    def test_dimensions(self, n=7):
        """Test shape, size(), and element_type()."""
        op = self.get_operator(n)
        assert isinstance(op, self.Operator)
        assert op.shape == (n, n)
        assert op.size() == (n, n)
        assert op.size(0) == n
        assert op.size(1) == n
        assert isinstance(op.element_type(), np.dtype)

    def test_str(self, n=5):
        """Lightly test __str__() and __repr__()."""
        op = self.get_operator(n)
        assert str(op).startswith(self.Operator.__name__)
        assert repr(op).startswith(f"<{self.Operator.__name__} object at ")

    def test_call(self, n=6):
        """Test the calling conventions against multiply()."""
        op = self.get_operator(n)
        u = np.random.random(n)
        out = op(u, None, 0.0)
        assert out.shape == (n,)
        if op.supports_multiply_inplace():
            du = np.empty(n)
            assert op(du, u, None, 0.0) is None
            assert np.allclose(du, out)

        with pytest.raises(TypeError) as ex:
            op(u, None)
        assert ex.value.args[0].endswith("got 2 positional argument(s)")

    def test_copy(self, n=6):
        """Test copy()."""
        op = self.get_operator(n)
        op2 = op.copy()
        assert op2 is not op
        assert op2.__class__ is op.__class__
        assert op2.shape == op.shape

    def test_verify(self, n=6):
        """Use verify() to check the advertised capabilities."""
        self.get_operator(n).verify(plot=False)


# Tests for the general template ==============================================
class TestDiffEqOperator:
    """Test operators._base.DiffEqOperator defaults."""

    def test_abstract(self):
        """Test that the template cannot be instantiated."""
        with pytest.raises(TypeError):
            _module.DiffEqOperator()

    def test_defaults(self):
        """Test the default capability queries."""
        op = _Rotation()
        assert not op.is_constant()
        assert not op.is_linear()
        assert op.supports_multiply()
        for name in (
            "expmv_inplace",
            "expmv",
            "exp",
            "multiply_inplace",
            "solve",
            "solve_inplace",
        ):
            assert not getattr(op, f"supports_{name}")(), name
        assert op.element_type() == np.dtype(np.float64)
        assert _module.is_operator(op)
        assert not _module.is_linear_operator(op)
        assert not _module.is_operator(np.eye(2))

    def test_update_coefficients(self):
        """Test the default coefficient updates."""
        op = _Rotation()
        u = np.array([1.0, 2.0])
        assert op.update_coefficients(u, None, 1.0) is op
        assert op.update_coefficients_inplace(u, None, 1.0) is None

    def test_unsupported(self):
        """Test that undeclared capabilities raise."""
        op = _Rotation()
        u = np.array([1.0, 2.0])
        out = np.empty(2)
        Unsupported = diffeqops.errors.UnsupportedOperationError

        with pytest.raises(Unsupported) as ex:
            op.multiply_inplace(out, u)
        assert ex.value.args[0] == (
            "_Rotation does not support in-place multiplication"
        )

        with pytest.raises(Unsupported) as ex:
            op(out, u, None, 0.0)
        assert ex.value.args[0] == (
            "_Rotation does not support in-place multiplication"
        )

        with pytest.raises(Unsupported) as ex:
            op.solve(u)
        assert ex.value.args[0] == "_Rotation does not support solve()"

        with pytest.raises(Unsupported):
            op.solve_inplace(out, u)
        with pytest.raises(Unsupported):
            op.exp(1.0)
        with pytest.raises(Unsupported):
            op.expmv(u, None, 1.0)
        with pytest.raises(Unsupported):
            op.expmv_inplace(out, u, None, 1.0)

        # Unsupported operations are also NotImplementedErrors.
        with pytest.raises(NotImplementedError):
            op.solve(u)

    def test_evaluate(self):
        """Test evaluate() and __matmul__()."""
        op = _Rotation()
        u = np.array([1.0, 2.0])
        assert np.all(op(u, None, 0.0) == [-2.0, 1.0])
        assert np.all(op @ u == [-2.0, 1.0])

    def test_isconstant_deprecated(self):
        """Test the deprecated isconstant() alias."""
        op = _Rotation()
        with pytest.warns(DeprecationWarning) as wn:
            assert op.isconstant() is False
        assert len(wn) == 1
        assert wn[0].message.args[0].startswith(
            "isconstant() has been renamed"
        )

    def test_save_load(self):
        """Test that persistence is not available by default."""
        with pytest.raises(NotImplementedError):
            _Rotation().save("_notsaved.h5")

    def test_verify(self):
        """Test verify() for operators that do not support exponentials."""
        _Rotation().verify()

        class _BadShape(_Rotation):
            @property
            def shape(self):
                return (2, 0)

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            _BadShape().verify()
        assert ex.value.args[0].startswith(
            "shape must be a tuple of two positive integers"
        )

        class _BadMultiply(_Rotation):
            def multiply(self, state):
                return state[:1]

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            _BadMultiply().verify()
        assert ex.value.args[0].startswith(
            "multiply(u) must return array of shape (shape[0],)"
        )

        class _BadInplace(_Rotation):
            def supports_multiply_inplace(self):
                return True

            def multiply_inplace(self, out, state):
                out[:] = 0

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            _BadInplace().verify()
        assert ex.value.args[0] == (
            "multiply_inplace(out, u) not consistent with multiply(u)"
        )


# Tests for the linear template ===============================================
class TestLinearDiffEqOperator:
    """Test operators._base.LinearDiffEqOperator defaults."""

    def test_defaults(self, n=4):
        """Test the default capability queries."""
        A = np.random.standard_normal((n, n))
        op = _ExpOnly(A)
        assert op.is_constant()
        assert op.is_linear()
        assert op.supports_exp()
        assert op.supports_multiply()
        assert not op.supports_expmv()
        assert not op.supports_expmv_inplace()
        assert not op.supports_multiply_inplace()
        assert not op.supports_solve()
        assert not op.supports_solve_inplace()
        assert _module.is_linear_operator(op)

    def test_linearity_derivation(self, n=3):
        """is_linear() == is_constant() unless is_linear() is overridden."""
        A = np.random.standard_normal((n, n))
        for op in (_ExpOnly(A), _NoExp(A), _TimeVarying(A)):
            assert op.is_linear() == op.is_constant()
        assert not _TimeVarying(A).is_linear()

    @pytest.mark.parametrize("t", [0.0, 0.5, -1.25, 3.0])
    def test_expmv_fallback(self, t, n=5):
        """Test the generic exponential action in terms of exp()."""
        A = np.random.standard_normal((n, n))
        op = _ExpOnly(A)
        u = np.random.random(n)

        expected = la.expm(t * A) @ u
        assert np.allclose(op.expmv(u, None, t), expected)

        out = np.empty(n)
        assert op.expmv_inplace(out, u, None, t) is None
        assert np.allclose(out, expected)

        if t == 0:
            assert np.allclose(op.expmv(u, None, t), u)

    def test_expmv_fallback_sparse(self, n=5):
        """Test the in-place fallback when exp() is a sparse array."""

        class _SparseExp(_ExpOnly):
            def exp(self, t=1.0):
                import scipy.sparse as sparse

                return sparse.csr_array(la.expm(t * self.A))

        A = np.random.standard_normal((n, n))
        u = np.random.random(n)
        out = np.empty(n)
        _SparseExp(A).expmv_inplace(out, u, None, 0.3)
        assert np.allclose(out, la.expm(0.3 * A) @ u)

    def test_opt_out(self, n=3):
        """Test that the fallbacks raise when exponentials are opted out."""
        op = _NoExp(np.eye(n))
        u = np.ones(n)
        Unsupported = diffeqops.errors.UnsupportedOperationError
        with pytest.raises(Unsupported) as ex:
            op.expmv(u, None, 1.0)
        assert ex.value.args[0] == "_NoExp does not support expmv()"
        with pytest.raises(Unsupported) as ex:
            op.expmv_inplace(np.empty(n), u, None, 1.0)
        assert ex.value.args[0] == "_NoExp does not support expmv_inplace()"

    def test_exp_required(self, n=3):
        """Test that exp() has no generic implementation."""

        class _NoExpImplemented(_module.LinearDiffEqOperator):
            dtype = np.float64
            shape = (n, n)

            def multiply(self, state):
                return state

        op = _NoExpImplemented()
        with pytest.raises(diffeqops.errors.UnsupportedOperationError):
            op.expmv(np.ones(n), None, 1.0)

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            op.verify()
        assert ex.value.args[0] == (
            "supports_exp() is True but exp() is not implemented"
        )

    def test_unsupported_solve(self, n=4):
        """Test that linear operators have no solve fallback."""
        op = _ExpOnly(np.eye(n))
        with pytest.raises(diffeqops.errors.UnsupportedOperationError):
            op.solve(np.ones(n))
        with pytest.raises(diffeqops.errors.UnsupportedOperationError):
            op.solve_inplace(np.empty(n), np.ones(n))

    def test_scale(self, n=4):
        """Test scalar absorption through scale() and the operators."""
        A = np.random.standard_normal((n, n))
        op = _ExpOnly(A)
        u = np.random.random(n)
        for scaled in (op.scale(2.5), 2.5 * op, op * 2.5):
            assert isinstance(scaled, diffeqops.operators.ScaledOperator)
            assert isinstance(scaled, _module.LinearDiffEqOperator)
            assert np.allclose(scaled @ u, 2.5 * (A @ u))
        assert np.allclose((-op) @ u, -(A @ u))

        with pytest.raises(TypeError):
            op * "2"

    def test_verify(self, n=5):
        """Test verify() with the exponential fallback."""
        A = np.random.standard_normal((n, n))
        _ExpOnly(A).verify(plot=False)
        _NoExp(A).verify(plot=False)

        class _BadExp(_ExpOnly):
            def expmv(self, state, parameters, t):
                return state

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            _BadExp(A + np.eye(n)).verify()
        assert ex.value.args[0] == "expmv(u, p, t) != exp(t) @ u"

        class _BadExp0(_ExpOnly):
            def exp(self, t=1.0):
                return 2 * la.expm(t * self.A)

        with pytest.raises(diffeqops.errors.VerificationError) as ex:
            _BadExp0(A).verify()
        assert ex.value.args[0] == "exp(0) != I"

    def test_verify_plot(self, n=4):
        """Test verify(plot=True)."""
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        plt.close("all")
        _ExpOnly(np.random.standard_normal((n, n))).verify(plot=True)
        assert len(plt.gca().lines) == 1
        plt.close("all")
