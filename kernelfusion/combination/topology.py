"""Neighbourhood topology of kernels, used by the UMKL combinations.

Each kernel induces a distance between samples,
d²(i, j) = K_ii + K_jj - 2 K_ij. The k-nearest-neighbour graphs of the
individual kernels are merged into a consensus graph; the UMKL weights are
chosen so that the composite kernel reproduces that consensus.
"""

import logging
from typing import Sequence

import numpy as np
from numpy.typing import NDArray
from sklearn.neighbors import kneighbors_graph

from ..exceptions import DegenerateInputError
from ..kernels.base import center_kernel

logger = logging.getLogger(__name__)


def kernel_distances(K: NDArray) -> NDArray:
    """Feature-space distances between samples implied by a kernel."""
    diag = np.diag(K)
    dists_sq = diag[:, None] + diag[None, :] - 2.0 * K
    np.maximum(dists_sq, 0.0, out=dists_sq)
    np.fill_diagonal(dists_sq, 0.0)
    return np.sqrt((dists_sq + dists_sq.T) / 2)


def knn_adjacency(K: NDArray, k: int) -> NDArray:
    """Symmetric binary k-NN adjacency of the samples under kernel K.

    Parameters
    ----------
    K : ndarray
        Kernel matrix of shape (n, n)
    k : int
        Number of neighbours (clipped to n - 1)

    Returns
    -------
    A : ndarray
        Dense 0/1 matrix of shape (n, n) with zero diagonal
    """
    n = K.shape[0]
    k = min(k, n - 1)
    D = kernel_distances(K)

    W = kneighbors_graph(D, n_neighbors=k, mode='connectivity',
                         metric='precomputed', include_self=False)

    # Symmetrize, then threshold to binary
    W = W + W.T
    A = (W.toarray() > 0).astype(float)
    np.fill_diagonal(A, 0.0)
    return A


def consensus_topology(kernels: Sequence[NDArray], k: int = 5) -> NDArray:
    """Centered, unit-norm consensus neighbourhood graph of several kernels.

    An edge is kept when it appears in the k-NN graphs of more than half of
    the kernels. If no edge reaches a majority the union of all graphs is
    used instead.

    Parameters
    ----------
    kernels : sequence of ndarray
        Kernel matrices of shape (n, n)
    k : int
        Neighbours per sample

    Returns
    -------
    T : ndarray
        Centered consensus adjacency of shape (n, n), Frobenius norm 1

    Raises
    ------
    DegenerateInputError
        With fewer than 2 samples, or when the consensus graph is empty
    """
    n = kernels[0].shape[0]
    if n < 2:
        raise DegenerateInputError("At least 2 samples are needed to build a topology")

    support = np.zeros((n, n))
    for K in kernels:
        support += knn_adjacency(K, k)

    M = len(kernels)
    W = (support > M / 2).astype(float)
    if not W.any():
        logger.debug("No majority k-NN edges; using the union of %d graphs", M)
        W = (support > 0).astype(float)

    T = center_kernel(W)
    norm = np.linalg.norm(T, 'fro')
    if norm == 0:
        raise DegenerateInputError("Consensus neighbourhood graph is degenerate")
    return T / norm
