# utils/test_logging.py
"""Tests for utils._logging."""

import os
import logging
import numpy as np

import diffeqops


def _remove_handlers(logpath):
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if (
            isinstance(handler, logging.FileHandler)
            and handler.baseFilename == logpath
        ):
            logger.removeHandler(handler)
            handler.close()


def test_add_logfile(capsys, target="_addlogfiletest.log"):
    """Test utils._logging.add_logfile()."""
    logpath = os.path.abspath(target)
    if os.path.isfile(target):  # pragma: no cover
        os.remove(target)

    try:
        diffeqops.utils.add_logfile(target)
        assert capsys.readouterr().out.strip() == f"Logging to '{logpath}'"

        diffeqops.utils.add_logfile(target)
        assert capsys.readouterr().out.strip() == (
            f"Already logging to {logpath}"
        )
        diffeqops.utils.add_logfile(target, verbose=False)
        assert capsys.readouterr().out == ""

        handlers = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.FileHandler)
            and h.baseFilename == logpath
        ]
        assert len(handlers) == 1
        assert handlers[0].formatter is diffeqops.utils.formatter

        diffeqops.operators.FactorizedOperator(np.eye(3))
        handlers[0].flush()
        with open(target, "r") as infile:
            text = infile.read()
        assert "INFO:\tLU factorization of (3, 3) operator" in text
    finally:
        _remove_handlers(logpath)
        os.remove(target)
