# test_version.py
"""Ensure __version__ in setup.py matches the package version."""

import os
import re

import diffeqops


SETUP = "setup.py"
INIT = os.path.join("src", "diffeqops", "__init__.py")

# Locate files if tests are being run from the tests/ directory.
if not os.path.isfile(SETUP) and os.path.basename(os.getcwd()) == "tests":
    SETUP = os.path.abspath(os.path.join("..", SETUP))
    INIT = os.path.abspath(os.path.join("..", INIT))

VERSION = re.compile(r'_{0,2}version_{0,2}\s*=\s*"([\d\.]+)"', re.MULTILINE)


def test_version_numbers():
    """Check that setup.py, __init__.py, and the package agree."""
    versions = []
    for filename in (SETUP, INIT):
        with open(filename, "r") as infile:
            versions.append(VERSION.findall(infile.read())[0])
    assert versions[0] == versions[1], (
        f"version numbers in {SETUP} and {INIT} do not match"
    )
    assert diffeqops.__version__ == versions[1]
