"""Abstract base class for kernel implementations and kernel centering."""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from sklearn.preprocessing import StandardScaler

from ..exceptions import DimensionMismatchError, InvalidParameterError
from ..utils.backend import gpu_center_kernel, gpu_linear_kernel


def check_data_matrix(X: NDArray) -> NDArray:
    """Validate a data matrix and return it as a float array.

    Raises
    ------
    InvalidParameterError
        If X is not 2-D, has zero rows or columns, or is not finite
    """
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise InvalidParameterError(f"Expected a 2-D data matrix, got shape {X.shape}")
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise InvalidParameterError(
            f"Data matrix has zero rows or columns (shape {X.shape})"
        )
    if not np.all(np.isfinite(X)):
        raise InvalidParameterError("Data matrix contains NaN or inf")
    return X


def check_kernel_matrix(K: NDArray) -> NDArray:
    """Validate that K is a square matrix and return it as a float array."""
    K = np.asarray(K, dtype=float)
    if K.ndim != 2 or K.shape[0] != K.shape[1]:
        raise DimensionMismatchError(f"Kernel matrix must be square, got shape {K.shape}")
    return K


def center_kernel(K: NDArray, use_gpu: bool = False) -> NDArray:
    """Center a kernel matrix in feature space: HKH.

    Uses K'[i, j] = K[i, j] - rowmean[i] - colmean[j] + grandmean, which
    equals (I - 11ᵀ/n) K (I - 11ᵀ/n) without forming the n x n centering
    matrix. Centering an already centered kernel leaves it unchanged.

    Parameters
    ----------
    K : ndarray
        Kernel matrix of shape (n, n)
    use_gpu : bool
        If True, use GPU acceleration via CuPy

    Returns
    -------
    K_centered : ndarray
        Centered kernel matrix
    """
    K = check_kernel_matrix(K)
    return gpu_center_kernel(K, use_gpu=use_gpu)


def is_centered(K: NDArray, atol: float = 1e-8) -> bool:
    """Check whether all row and column means of K are ~0.

    The tolerance is relative to the largest absolute entry of K.
    """
    K = check_kernel_matrix(K)
    scale = max(1.0, float(np.abs(K).max(initial=0.0)))
    return bool(
        np.all(np.abs(K.mean(axis=0)) <= atol * scale)
        and np.all(np.abs(K.mean(axis=1)) <= atol * scale)
    )


class Kernel(ABC):
    """Abstract base class for data kernels.

    All kernels should implement:
    - compute(): Build the kernel matrix from a data matrix

    Parameters
    ----------
    scale : bool
        If True, standardize every column (zero mean, unit variance)
        before computing the kernel.
    use_gpu : bool
        Whether dense products may run on the GPU.
    """

    def __init__(self, scale: bool = False, use_gpu: bool = False):
        self.scale = scale
        self.use_gpu = use_gpu
        self._kernel_matrix: Optional[NDArray] = None

    def prepare(self, X: NDArray) -> NDArray:
        """Validate X and optionally standardize its columns."""
        X = check_data_matrix(X)
        if self.scale:
            # Constant columns keep a unit scale and become all zeros
            X = StandardScaler().fit_transform(X)
        return X

    @abstractmethod
    def compute(self, X: NDArray) -> NDArray:
        """Compute the kernel matrix from input data.

        Parameters
        ----------
        X : ndarray
            Data matrix of shape (n_samples, n_features)

        Returns
        -------
        K : ndarray
            Kernel matrix of shape (n_samples, n_samples)
        """
        pass

    @property
    def matrix(self) -> Optional[NDArray]:
        """Return the last computed kernel matrix."""
        return self._kernel_matrix

    def center(self, K: Optional[NDArray] = None) -> NDArray:
        """Apply centering HKH to K, or to the last computed matrix."""
        if K is None:
            K = self._kernel_matrix
        if K is None:
            raise ValueError("No kernel matrix available. Call compute() first.")
        return center_kernel(K, use_gpu=self.use_gpu)

    def get_params(self) -> dict:
        """Kernel parameters, used to rebuild an identical kernel."""
        return {}


class LinearKernel(Kernel):
    """Linear kernel: K(X, Y) = X @ Y^T."""

    def compute(self, X: NDArray) -> NDArray:
        """Compute linear kernel.

        Parameters
        ----------
        X : ndarray
            Data matrix of shape (n_samples, n_features)

        Returns
        -------
        K : ndarray
            Kernel matrix of shape (n_samples, n_samples)
        """
        X = self.prepare(X)
        K = gpu_linear_kernel(X, use_gpu=self.use_gpu)
        # Exact symmetry despite floating point summation order
        K = (K + K.T) / 2
        self._kernel_matrix = K
        return K
