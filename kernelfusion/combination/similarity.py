"""Similarity between kernel matrices (kernel RV coefficient)."""

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..exceptions import DegenerateInputError
from ..utils.backend import gpu_trace_product


def frobenius_norms(kernels: Sequence[NDArray]) -> NDArray:
    """Frobenius norm of every kernel."""
    return np.array([np.linalg.norm(K, 'fro') for K in kernels])


def kernel_similarity(kernels: Sequence[NDArray], use_gpu: bool = False) -> NDArray:
    """Pairwise RV coefficients between centered kernels.

    C[l, s] = tr(K_l K_s) / (‖K_l‖_F ‖K_s‖_F)

    For centered PSD kernels the entries lie in [0, 1] and the diagonal is 1.

    Parameters
    ----------
    kernels : sequence of ndarray
        Centered kernel matrices, all of shape (n, n)
    use_gpu : bool
        Compute the trace products on the GPU

    Returns
    -------
    C : ndarray
        Symmetric matrix of shape (M, M)

    Raises
    ------
    DegenerateInputError
        If a kernel has zero Frobenius norm
    """
    norms = frobenius_norms(kernels)
    if np.any(norms == 0) or not np.all(np.isfinite(norms)):
        bad = [i for i, v in enumerate(norms) if v == 0 or not np.isfinite(v)]
        raise DegenerateInputError(
            f"Kernel(s) {bad} have zero or non-finite Frobenius norm"
        )

    M = len(kernels)
    C = np.eye(M)
    for l in range(M):
        for s in range(l + 1, M):
            # tr(K_l K_s) = sum(K_l * K_s) for symmetric matrices
            value = gpu_trace_product(kernels[l], kernels[s], use_gpu=use_gpu)
            C[l, s] = C[s, l] = value / (norms[l] * norms[s])
    return C
