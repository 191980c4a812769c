# operators/_factorized.py
"""Linear operators that carry an LU factorization for solves."""

__all__ = [
    "FactorizedOperator",
]

import logging
import warnings
import numpy as np
import scipy.linalg as la
import scipy.sparse as sparse
import scipy.sparse.linalg as spla

from .. import errors, utils
from ._base import LinearDiffEqOperator


class FactorizedOperator(LinearDiffEqOperator):
    r"""Constant linear operator :math:`\L\u = \A\u` whose LU factorization
    is computed once so that :math:`\A^{-1}\b` can be applied repeatedly,
    e.g., in implicit or Crank-Nicolson steps.

    Dense arrays are factorized with :func:`scipy.linalg.lu_factor()`,
    sparse arrays with :func:`scipy.sparse.linalg.splu()`.
    This operator does not support exponentials.

    Parameters
    ----------
    entries : (n, n) ndarray or scipy.sparse array
        Square, nonsingular matrix :math:`\A`.
    check_cond : bool
        If ``True`` (default) and the entries are dense, estimate the
        reciprocal condition number of :math:`\A` and log a warning if the
        matrix is ill conditioned.

    Examples
    --------
    >>> A = np.array([[4.0, 1.0], [1.0, 3.0]])
    >>> L = diffeqops.operators.FactorizedOperator(A)
    >>> b = np.array([1.0, 2.0])
    >>> np.allclose(A @ L.solve(b), b)
    True
    >>> L.supports_exp()
    False
    """

    def __init__(self, entries, check_cond: bool = True):
        """Factorize the entries."""
        if not (isinstance(entries, np.ndarray) or sparse.issparse(entries)):
            raise TypeError(
                "operator entries must be NumPy or scipy.sparse array"
            )
        if entries.ndim != 2 or entries.shape[0] != entries.shape[1]:
            raise errors.DimensionalityError(
                "factorization requires a square two-dimensional array"
            )
        self.__entries = entries
        self.__factorization = self._factorize(entries, check_cond)

    @staticmethod
    def _factorize(entries, check_cond):
        """Compute the LU factorization of ``entries``.

        Raises
        ------
        diffeqops.errors.InversionError
            If the matrix is exactly singular.
        """
        logging.info(f"LU factorization of {entries.shape} operator")
        if sparse.issparse(entries):
            try:
                return spla.splu(sparse.csc_array(entries))
            except RuntimeError as ex:
                raise errors.InversionError(
                    f"cannot factorize singular matrix ({ex})"
                ) from ex

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", la.LinAlgWarning)
            factorization = la.lu_factor(entries)
        if np.any(np.diag(factorization[0]) == 0):
            raise errors.InversionError(
                "cannot factorize singular matrix (zero pivot in LU factor)"
            )
        if check_cond:
            gecon = la.get_lapack_funcs("gecon", (factorization[0],))
            rcond, _ = gecon(
                factorization[0],
                np.linalg.norm(entries, ord=1),
                norm="1",
            )
            if rcond < np.finfo(np.float64).eps:
                logging.warning(
                    f"ill-conditioned matrix (rcond={rcond:.6g}), "
                    "solves may not be accurate"
                )
        return factorization

    # Properties --------------------------------------------------------------
    @property
    def entries(self):
        r"""Matrix representation :math:`\A` of the operator."""
        return self.__entries

    @property
    def dtype(self):
        return self.entries.dtype

    @property
    def shape(self) -> tuple:
        return tuple(self.entries.shape)

    def supports_exp(self) -> bool:
        return False

    def supports_multiply_inplace(self) -> bool:
        return True

    def supports_solve(self) -> bool:
        return True

    def supports_solve_inplace(self) -> bool:
        return True

    # Evaluation --------------------------------------------------------------
    def multiply(self, state):
        return self.entries @ state

    def multiply_inplace(self, out, state) -> None:
        if sparse.issparse(self.entries):
            out[...] = self.entries @ state
        else:
            np.matmul(self.entries, state, out=out)

    def solve(self, rhs):
        r"""Compute :math:`\A^{-1}\b` with the stored factorization."""
        if sparse.issparse(self.entries):
            return self.__factorization.solve(np.asarray(rhs))
        return la.lu_solve(self.__factorization, rhs)

    def solve_inplace(self, out, rhs) -> None:
        r"""Write :math:`\A^{-1}\b` into ``out``."""
        out[...] = self.solve(rhs)

    def scale(self, alpha):
        """Return ``alpha * L`` with a fresh factorization."""
        return self.__class__(alpha * self.entries)

    # Model persistence -------------------------------------------------------
    def save(self, savefile: str, overwrite: bool = False) -> None:
        """Save the operator entries to an HDF5 file.

        The factorization is recomputed by :meth:`load()`.

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
    def load(cls, loadfile: str):
        """Load an operator from an HDF5 file and refactorize it.

        Parameters
        ----------
        loadfile : str
            Path to the file where the operator was stored via :meth:`save()`.
        """
        with utils.hdf5_loadhandle(loadfile) as hf:
            if (ClassName := hf["meta"].attrs["class"]) != cls.__name__:
                raise TypeError(
                    f"file '{loadfile}' contains '{ClassName}' "
                    f"object, use '{ClassName}.load()"
                )
            entries = utils.load_array(hf, "entries")
        return cls(entries)
