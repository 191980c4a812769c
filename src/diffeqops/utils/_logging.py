# utils/_logging.py
"""Logging configuration for operator diagnostics."""

__all__ = [
    "formatter",
    "add_logfile",
]

import os
import logging


formatter = logging.Formatter(
    fmt="%(asctime)s  %(levelname)s:\t%(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def add_logfile(logfile: str = "log.log", verbose: bool = True) -> None:
    """Log messages from :mod:`diffeqops` (and anything else logged through
    the root logger) to the ``logfile``.

    Operators log when expensive setup work is done, for example when
    :class:`diffeqops.operators.FactorizedOperator` computes a factorization
    or when an :class:`diffeqops.operators.AffineOperator` is assembled.

    Parameters
    ----------
    logfile : str
        File to log to.
    verbose : bool
        If ``True`` (default), print where messages are being logged to.

    Examples
    --------
    >>> diffeqops.utils.add_logfile("ops.log")
    Logging to '/path/to/current/folder/ops.log'
    >>> L = diffeqops.operators.FactorizedOperator(np.eye(4))
    >>> with open("ops.log", "r") as infile:
    ...     print(infile.read().strip())
    2024-01-01 12:00:00  INFO:  LU factorization of (4, 4) operator
    """
    logger = logging.getLogger()
    logpath = os.path.abspath(logfile)

    # Check that we aren't already logging to this file.
    for handler in logger.handlers:
        if (
            isinstance(handler, logging.FileHandler)
            and os.path.abspath(handler.baseFilename) == logpath
        ):
            if verbose:
                print(f"Already logging to {logpath}")
            return

    newhandler = logging.FileHandler(logpath, "a")
    newhandler.setFormatter(formatter)
    newhandler.setLevel(logging.INFO)
    logger.setLevel(logging.INFO)
    logger.addHandler(newhandler)
    if verbose:
        print(f"Logging to '{logpath}'")
