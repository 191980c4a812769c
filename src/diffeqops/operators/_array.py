# operators/_array.py
"""Linear operators represented by a dense or sparse matrix."""

__all__ = [
    "ArrayOperator",
]

import numpy as np
import scipy.linalg as la
import scipy.sparse as sparse
import scipy.sparse.linalg as spla

from .. import errors, utils
from ._base import LinearDiffEqOperator
from ._factorized import FactorizedOperator


class ArrayOperator(LinearDiffEqOperator):
    r"""Linear operator :math:`\L(t)\u = \A(t)\u` given by a NumPy array or
    a :mod:`scipy.sparse` array :math:`\A`.

    Parameters
    ----------
    entries : (n, m) ndarray or scipy.sparse array
        Matrix representation :math:`\A` of the operator.
    update_func : callable or None
        Function ``update_func(A, u, p, t)`` that overwrites the entries of
        ``A`` in place with the coefficients for state ``u``, parameters
        ``p``, and time ``t``. It must set every coefficient that changes
        rather than increment them. If ``None`` (default), the operator is
        constant.

    Examples
    --------
    >>> import numpy as np
    >>> A = np.array([[0.0, 1.0], [-1.0, 0.0]])
    >>> L = diffeqops.operators.ArrayOperator(A)
    >>> u = np.array([1.0, 2.0])
    >>> np.allclose(L(u, None, 0.0), A @ u)
    True

    Time-dependent coefficients, :math:`\A(t) = t\A_0`.

    >>> def update(A, u, p, t):
    ...     A[:] = t * p
    >>> L = diffeqops.operators.ArrayOperator(np.zeros((2, 2)), update)
    >>> L.is_constant(), L.is_linear()
    (False, False)
    >>> du = np.empty(2)
    >>> L(du, u, A, 3.0)
    >>> np.allclose(du, 3 * A @ u)
    True
    """

    def __init__(self, entries, update_func=None):
        """Set the entries and the coefficient update function."""
        self._validate_entries(entries)
        if update_func is not None and not callable(update_func):
            raise TypeError("argument 'update_func' must be callable")
        self.__entries = entries
        self.__update_func = update_func

    @staticmethod
    def _validate_entries(entries):
        """Ensure argument is a two-dimensional NumPy or scipy.sparse array
        and screen for NaN, Inf entries.
        """
        if not (isinstance(entries, np.ndarray) or sparse.issparse(entries)):
            raise TypeError(
                "operator entries must be NumPy or scipy.sparse array"
            )
        if entries.ndim != 2:
            raise ValueError("operator entries must be two-dimensional")
        data = entries.data if sparse.issparse(entries) else entries
        if np.any(np.isnan(data)):
            raise ValueError("operator entries must not be NaN")
        elif np.any(np.isinf(data)):
            raise ValueError("operator entries must not be Inf")

    # Properties --------------------------------------------------------------
    @property
    def entries(self):
        r"""Matrix representation :math:`\A` of the operator."""
        return self.__entries

    @property
    def update_func(self):
        """Coefficient update function, or ``None`` if constant."""
        return self.__update_func

    @property
    def dtype(self):
        """NumPy dtype of the operator entries."""
        return self.entries.dtype

    @property
    def shape(self) -> tuple:
        """Shape of the operator entries array."""
        return tuple(self.entries.shape)

    def is_constant(self) -> bool:
        """``True`` if there is no coefficient update function."""
        return self.update_func is None

    def supports_multiply_inplace(self) -> bool:
        return True

    def supports_expmv(self) -> bool:
        return True

    def supports_expmv_inplace(self) -> bool:
        return True

    def __eq__(self, other):
        """Two array operators are equal if they have the same entries and
        the same update function.
        """
        if not isinstance(other, self.__class__):
            return False
        if self.shape != other.shape:
            return False
        if self.update_func is not other.update_func:
            return False
        diff = self.entries - other.entries
        if sparse.issparse(diff):
            return diff.count_nonzero() == 0
        return bool(np.all(diff == 0))

    # Coefficient updates -----------------------------------------------------
    def update_coefficients_inplace(self, state, parameters, t) -> None:
        """Overwrite the entries via ``update_func(A, u, p, t)``."""
        if self.update_func is not None:
            self.update_func(self.entries, state, parameters, t)

    def update_coefficients(self, state, parameters, t):
        """Return a copy of the operator with updated entries; this operator
        is left unchanged.
        """
        if self.update_func is None:
            return self
        op = self.__class__(self.entries.copy(), self.update_func)
        op.update_coefficients_inplace(state, parameters, t)
        return op

    # Evaluation --------------------------------------------------------------
    def multiply(self, state):
        r"""Compute :math:`\A\u` with the current entries."""
        return self.entries @ state

    def multiply_inplace(self, out, state) -> None:
        r"""Write :math:`\A\u` into ``out``."""
        if sparse.issparse(self.entries):
            out[...] = self.entries @ state
        else:
            np.matmul(self.entries, state, out=out)

    # Scalar absorption -------------------------------------------------------
    def scale(self, alpha):
        """Return ``alpha * L``.

        Constant operators fold ``alpha`` into a new entries array; operators
        with an update function are wrapped in a
        :class:`diffeqops.operators.ScaledOperator` so updates still apply.
        """
        if self.update_func is not None:
            return LinearDiffEqOperator.scale(self, alpha)
        return self.__class__(alpha * self.entries)

    # Exponentials ------------------------------------------------------------
    def _check_square(self):
        """Exponentials are only defined for square operators."""
        n, m = self.shape
        if n != m:
            raise errors.DimensionalityError(
                f"operator exponential requires a square operator, "
                f"got shape {self.shape}"
            )

    def exp(self, t=1.0):
        r"""Compute :math:`e^{t\A}` with :func:`scipy.linalg.expm()`
        (or :func:`scipy.sparse.linalg.expm()` for sparse entries).
        """
        self._check_square()
        if sparse.issparse(self.entries):
            return spla.expm(sparse.csc_array(t * self.entries))
        return la.expm(t * self.entries)

    def expmv(self, state, parameters, t):
        r"""Compute :math:`e^{t\A}\u` with
        :func:`scipy.sparse.linalg.expm_multiply()` without forming
        :math:`e^{t\A}`.
        """
        self._check_square()
        return spla.expm_multiply(t * self.entries, state)

    def expmv_inplace(self, out, state, parameters, t) -> None:
        r"""Write :math:`e^{t\A}\u` into ``out``."""
        out[...] = self.expmv(state, parameters, t)

    # Solves ------------------------------------------------------------------
    def factorize(self):
        """LU-factorize the current entries.

        Returns
        -------
        op : :class:`diffeqops.operators.FactorizedOperator`
            Constant operator supporting :meth:`solve()`.
        """
        return FactorizedOperator(self.entries.copy())

    # Model persistence -------------------------------------------------------
    def save(self, savefile: str, overwrite: bool = False) -> None:
        """Save the operator entries to an HDF5 file.

        The update function is not saved; operators loaded with :meth:`load()`
        are constant.

        Parameters
        ----------
        savefile : str
            Path of the file to save the operator in.
        overwrite : bool
            If ``True``, overwrite the file if it already exists. If ``False``
            (default), raise a ``FileExistsError`` if the file already exists.
        """
        with utils.hdf5_savehandle(savefile, overwrite) as hf:
            meta = hf.create_dataset("meta", shape=(0,))
            meta.attrs["class"] = self.__class__.__name__
            utils.save_array(hf, "entries", self.entries)

    @classmethod
    def load(cls, loadfile: str, update_func=None):
        """Load an operator from an HDF5 file.

        Parameters
        ----------
        loadfile : str
            Path to the file where the operator was stored via :meth:`save()`.
        update_func : callable or None
            Coefficient update function to attach to the loaded operator.
        """
        with utils.hdf5_loadhandle(loadfile) as hf:
            if (ClassName := hf["meta"].attrs["class"]) != cls.__name__:
                raise TypeError(
                    f"file '{loadfile}' contains '{ClassName}' "
                    f"object, use '{ClassName}.load()"
                )
            entries = utils.load_array(hf, "entries")
        return cls(entries, update_func)
