"""Gaussian (RBF) kernel implementation."""

import numpy as np
from numpy.typing import NDArray

from .base import Kernel
from ..exceptions import InvalidParameterError


def squared_distances(X: NDArray) -> NDArray:
    """Pairwise squared Euclidean distances between the rows of X.

    Uses ‖a - b‖² = ‖a‖² + ‖b‖² - 2a·b. Small negative values from
    cancellation are clamped to 0 and the diagonal is exactly 0.
    """
    sq_norms = np.einsum('ij,ij->i', X, X)
    dists_sq = sq_norms[:, None] + sq_norms[None, :] - 2.0 * (X @ X.T)
    np.maximum(dists_sq, 0.0, out=dists_sq)
    dists_sq = (dists_sq + dists_sq.T) / 2
    np.fill_diagonal(dists_sq, 0.0)
    return dists_sq


class GaussianKernel(Kernel):
    """Gaussian (Radial Basis Function) kernel.

    K(x, y) = exp(-||x - y||² / (2σ²))

    Parameters
    ----------
    sigma : float
        Bandwidth parameter, must be positive.
    scale : bool
        Standardize columns before computing distances.
    """

    def __init__(self, sigma: float, scale: bool = False, use_gpu: bool = False):
        super().__init__(scale=scale, use_gpu=use_gpu)
        if sigma is None:
            raise InvalidParameterError("RBF kernel requires a bandwidth sigma")
        try:
            sigma = float(sigma)
        except (TypeError, ValueError):
            raise InvalidParameterError(f"sigma must be a number, got {sigma!r}") from None
        if not np.isfinite(sigma) or sigma <= 0:
            raise InvalidParameterError(f"sigma must be positive, got {sigma}")
        self.sigma = sigma

    def compute(self, X: NDArray) -> NDArray:
        """Compute Gaussian kernel matrix.

        Parameters
        ----------
        X : ndarray
            Data matrix of shape (n_samples, n_features)

        Returns
        -------
        K : ndarray
            Kernel matrix of shape (n_samples, n_samples), unit diagonal
        """
        X = self.prepare(X)
        dists_sq = squared_distances(X)

        K = np.exp(-dists_sq / (2 * self.sigma ** 2))

        self._kernel_matrix = K
        return K

    @property
    def bandwidth(self) -> float:
        """Return the bandwidth."""
        return self.sigma

    def get_params(self) -> dict:
        return {'sigma': self.sigma}
