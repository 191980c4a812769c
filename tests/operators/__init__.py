# operators/__init__.py
"""Helper routines for setting up operators tests."""

import numpy as np


def _get_matrices(n=6):
    """Construct a well-conditioned matrix, a skew-symmetric matrix, and a
    vector for testing operators.
    """
    A = np.random.random((n, n)) + n * np.eye(n)
    S = np.random.standard_normal((n, n))
    S = S - S.T
    b = np.random.random(n)
    return A, S, b


def _time_dependent_update(A0):
    """Get a coefficient update function setting A(t) = cos(t) * A0 + p * I.
    """

    def update(A, u, p, t):
        A[:] = np.cos(t) * A0
        A[np.diag_indices_from(A)] += p

    return update
