# utils/_hdf5.py
"""Utilities for saving operators to and loading operators from HDF5 files."""

__all__ = [
    "hdf5_savehandle",
    "hdf5_loadhandle",
    "save_array",
    "load_array",
]

import os
import h5py
import warnings
import numpy as np
import scipy.sparse as sparse

from .. import errors


# File handle classes =========================================================
class _hdf5_filehandle:
    """Get a handle to an open HDF5 file to read or write to.

    Parameters
    ----------
    filename : str or h5py File/Group handle
        * str : Name of the file to interact with.
        * h5py File/Group handle : handle to part of an already open HDF5 file.
    mode : str
        * "save" : Open the file for writing only.
        * "load" : Open the file for reading only.
    overwrite : bool
        If ``True``, overwrite the file if it already exists. If ``False``,
        raise a ``FileExistsError`` if the file already exists.
        Only applies when ``mode = "save"``.
    """

    def __init__(self, filename, mode, overwrite=False):
        """Open the file handle."""
        if isinstance(filename, h5py.HLObject):
            # Already an open HDF5 file or group; leave it open afterwards.
            self.file_handle = filename
            self.close_when_done = False

        elif mode == "save":
            if not filename.endswith(".h5"):
                warnings.warn(
                    "expected file with extension '.h5'",
                    errors.DiffEqOpsWarning,
                )
            if os.path.isfile(filename) and not overwrite:
                raise FileExistsError(f"{filename} (overwrite=True to ignore)")
            self.file_handle = h5py.File(filename, "w")
            self.close_when_done = True

        elif mode == "load":
            if not os.path.isfile(filename):
                raise FileNotFoundError(filename)
            self.file_handle = h5py.File(filename, "r")
            self.close_when_done = True

        else:
            raise ValueError(f"invalid mode '{mode}'")

    def __enter__(self):
        """Return the handle to the open HDF5 file."""
        return self.file_handle

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Close the file if needed."""
        if self.close_when_done:
            self.file_handle.close()
        if exc_type:
            raise


class hdf5_savehandle(_hdf5_filehandle):
    """Get a handle to an open HDF5 file to write an operator to.

    Parameters
    ----------
    savefile : str or h5py File/Group handle
        Name of the file to save to, or a handle to part of an already open
        HDF5 file.
    overwrite : bool
        If ``True``, overwrite the file if it already exists.
        If ``False``, raise a ``FileExistsError`` if the file already exists.

    Examples
    --------
    >>> with hdf5_savehandle("operator.h5", overwrite=True) as hf:
    ...     save_array(hf, "entries", A)
    """

    def __init__(self, savefile, overwrite):
        return _hdf5_filehandle.__init__(self, savefile, "save", overwrite)


class hdf5_loadhandle(_hdf5_filehandle):
    """Get a handle to an open HDF5 file to read an operator from.

    Any error raised while reading is reported as a
    :class:`diffeqops.errors.LoadfileFormatError`.

    Parameters
    ----------
    loadfile : str or h5py File/Group handle
        Name of the file to read from, or a handle to part of an already open
        HDF5 file.

    Examples
    --------
    >>> with hdf5_loadhandle("operator.h5") as hf:
    ...    A = load_array(hf, "entries")
    """

    def __init__(self, loadfile):
        return _hdf5_filehandle.__init__(self, loadfile, "load")

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Close the file if needed. Raise a LoadfileFormatError if needed."""
        try:
            _hdf5_filehandle.__exit__(self, exc_type, exc_value, exc_traceback)
        except errors.LoadfileFormatError:
            raise
        except Exception as ex:
            raise errors.LoadfileFormatError(ex.args[0]) from ex


# Array storage ===============================================================
def save_array(group: h5py.Group, name: str, arr) -> None:
    """Save a dense NumPy array or a :mod:`scipy.sparse` array to an HDF5
    group.

    Dense arrays are stored as the dataset ``group[name]``. Sparse arrays are
    stored in COO format in the subgroup ``group[name]`` (datasets ``data``,
    ``row``, and ``col``, attributes ``shape`` and ``arrtype``), which mimics
    :func:`scipy.sparse.save_npz()` for an open HDF5 file.

    Parameters
    ----------
    group : h5py.Group
        HDF5 group (or open file) to save the array in.
    name : str
        Label for the array within ``group``.
    arr : ndarray or scipy.sparse array
        Array to save.
    """
    if not sparse.issparse(arr):
        group.create_dataset(name, data=np.asarray(arr))
        return

    A = arr.tocoo()
    subgroup = group.create_group(name)
    subgroup.create_dataset("data", data=A.data)
    subgroup.create_dataset("row", data=A.row)
    subgroup.create_dataset("col", data=A.col)
    subgroup.attrs["shape"] = A.shape
    subgroup.attrs["arrtype"] = type(arr).__name__[:3]


def load_array(group: h5py.Group, name: str):
    """Load an array saved with :func:`save_array()`.

    Parameters
    ----------
    group : h5py.Group
        HDF5 group (or open file) containing the array.
    name : str
        Label for the array within ``group``.

    Returns
    -------
    arr : ndarray or scipy.sparse array
        The stored array, in the sparse format it was in before saving if it
        was sparse.
    """
    if name not in group:
        raise errors.LoadfileFormatError(f"dataset '{name}' not found")
    item = group[name]
    if isinstance(item, h5py.Dataset):
        return item[...]

    A = sparse.coo_array(
        (item["data"][:], (item["row"][:], item["col"][:])),
        shape=tuple(item.attrs["shape"]),
    )
    arrtype = str(item.attrs["arrtype"])
    return getattr(A, f"to{arrtype}")()
