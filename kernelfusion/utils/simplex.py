"""Probability simplex helpers."""

import numpy as np
from numpy.typing import NDArray


def project_to_simplex(v: NDArray) -> NDArray:
    """Euclidean projection of a vector onto the probability simplex.

    Finds the shift θ such that max(v - θ, 0) sums to one (sort-based
    algorithm of Duchi et al., 2008). Entries below the shift become exact
    zeros.

    Parameters
    ----------
    v : ndarray
        Vector of shape (M,)

    Returns
    -------
    w : ndarray
        Non-negative vector of shape (M,) summing to 1
    """
    v = np.asarray(v, dtype=float).ravel()
    u = np.sort(v)[::-1]
    cssv = np.cumsum(u) - 1.0
    ind = np.arange(1, v.size + 1)
    rho = np.nonzero(u - cssv / ind > 0)[0][-1]
    theta = cssv[rho] / (rho + 1.0)
    w = np.maximum(v - theta, 0.0)
    return w / w.sum()


def on_simplex(w: NDArray, atol: float = 1e-8) -> bool:
    """Check that w is elementwise non-negative and sums to one."""
    w = np.asarray(w, dtype=float)
    return bool(np.all(w >= 0) and abs(w.sum() - 1.0) <= atol)
