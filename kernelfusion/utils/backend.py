"""Backend abstraction for NumPy/CuPy GPU acceleration.

The dense kernel operations (Gram products, centering, symmetric
eigendecomposition) can run on the GPU through CuPy. CuPy is optional;
every function falls back to NumPy when it is not installed, and results
are always returned as NumPy arrays.

Usage:
    from kernelfusion.utils.backend import get_backend, to_numpy

    xp = get_backend(use_gpu=True)  # cupy if available, else numpy
    arr = xp.asarray(K)
    result = to_numpy(arr)
"""

from typing import Any, Tuple

import numpy as np
from numpy.typing import NDArray

# Try to import CuPy
try:
    import cupy as cp
    CUPY_AVAILABLE = True
except ImportError:
    cp = None
    CUPY_AVAILABLE = False

# Type alias for array module
ArrayModule = Any  # numpy or cupy module


def is_gpu_available() -> bool:
    """Check if GPU acceleration is available via CuPy."""
    return CUPY_AVAILABLE


def get_backend(use_gpu: bool = False) -> ArrayModule:
    """Get the appropriate array backend.

    Parameters
    ----------
    use_gpu : bool
        If True, return CuPy if available, else NumPy.

    Returns
    -------
    xp : module
        Either numpy or cupy module
    """
    if use_gpu and CUPY_AVAILABLE:
        return cp
    return np


def to_numpy(arr: Any) -> NDArray:
    """Convert a NumPy or CuPy array to a NumPy (CPU) array."""
    if CUPY_AVAILABLE and isinstance(arr, cp.ndarray):
        return cp.asnumpy(arr)
    return np.asarray(arr)


def gpu_linear_kernel(X: Any, use_gpu: bool = False) -> NDArray:
    """Compute the Gram matrix X @ X.T with optional GPU.

    Parameters
    ----------
    X : array-like
        Data matrix of shape (n, p)
    use_gpu : bool
        Whether to use GPU

    Returns
    -------
    K : ndarray
        Kernel matrix of shape (n, n)
    """
    if use_gpu and CUPY_AVAILABLE:
        X_gpu = cp.asarray(X)
        return cp.asnumpy(X_gpu @ X_gpu.T)
    X = np.asarray(X, dtype=float)
    return X @ X.T


def gpu_center_kernel(K: Any, use_gpu: bool = False) -> NDArray:
    """Double-center a kernel matrix with optional GPU.

    K' = K - row_means - col_means + grand_mean, in O(n²).
    """
    xp = get_backend(use_gpu)
    K_b = xp.asarray(K, dtype=float)
    row_means = K_b.mean(axis=1, keepdims=True)
    col_means = K_b.mean(axis=0, keepdims=True)
    grand_mean = K_b.mean()
    return to_numpy(K_b - row_means - col_means + grand_mean)


def gpu_eigh(K: Any, use_gpu: bool = False) -> Tuple[NDArray, NDArray]:
    """Eigendecomposition of a symmetric matrix with optional GPU.

    Returns
    -------
    eigenvalues : ndarray
        Eigenvalues in ascending order (numpy array)
    eigenvectors : ndarray
        Orthonormal eigenvectors as columns (numpy array)
    """
    if use_gpu and CUPY_AVAILABLE:
        K_gpu = cp.asarray(K)
        eigenvalues, eigenvectors = cp.linalg.eigh(K_gpu)
        return cp.asnumpy(eigenvalues), cp.asnumpy(eigenvectors)
    return np.linalg.eigh(np.asarray(K, dtype=float))


def gpu_trace_product(A: Any, B: Any, use_gpu: bool = False) -> float:
    """Compute tr(A @ B) for symmetric matrices as sum(A * B)."""
    if use_gpu and CUPY_AVAILABLE:
        result = cp.sum(cp.asarray(A) * cp.asarray(B))
        return float(cp.asnumpy(result))
    return float(np.sum(np.asarray(A) * np.asarray(B)))
