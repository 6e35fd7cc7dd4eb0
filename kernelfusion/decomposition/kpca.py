"""Kernel principal component analysis."""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ..exceptions import InsufficientRankError
from ..kernels.base import center_kernel
from ..utils.backend import gpu_eigh

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KernelPCAResult:
    """Eigendecomposition of a centered kernel and the retained scores.

    Attributes
    ----------
    eigenvalues : ndarray
        All eigenvalues, sorted in descending order
    eigenvectors : ndarray
        Orthonormal eigenvectors as columns, same order as eigenvalues
    n_components : int
        Number of retained components k
    rotation : ndarray
        Scaled eigenvectors v_k / sqrt(λ_k), shape (n, k)
    scores : ndarray
        Principal coordinates K' @ rotation = v_k * sqrt(λ_k), shape (n, k);
        the scaled eigenvectors v_k / sqrt(λ_k) are kept in rotation
    n_positive : int
        Number of eigenvalues above the zero threshold
    """
    eigenvalues: NDArray
    eigenvectors: NDArray
    n_components: int
    rotation: NDArray
    scores: NDArray
    n_positive: int

    @property
    def components(self) -> NDArray:
        """Retained unit eigenvectors, shape (n, k)."""
        return self.eigenvectors[:, :self.n_components]

    @property
    def explained_variance_ratio(self) -> NDArray:
        """Share of the positive spectrum carried by each retained component."""
        positive = self.eigenvalues[:self.n_positive]
        return self.eigenvalues[:self.n_components] / positive.sum()

    def scores_frame(self, sample_names=None) -> pd.DataFrame:
        """Scores as a DataFrame with columns PC1..PCk."""
        columns = [f"PC{i + 1}" for i in range(self.n_components)]
        return pd.DataFrame(np.array(self.scores), index=sample_names, columns=columns)


def _fix_signs(eigenvectors: NDArray) -> NDArray:
    """Flip every eigenvector so its largest-magnitude entry is positive."""
    idx = np.argmax(np.abs(eigenvectors), axis=0)
    signs = np.sign(eigenvectors[idx, np.arange(eigenvectors.shape[1])])
    signs[signs == 0] = 1.0
    return eigenvectors * signs


def sorted_eigh(K: NDArray, use_gpu: bool = False):
    """Symmetric eigendecomposition with eigenpairs in descending order.

    Ties keep the solver's order, so the output is deterministic for a
    given input.
    """
    K = (K + K.T) / 2
    eigenvalues, eigenvectors = gpu_eigh(K, use_gpu=use_gpu)
    order = np.argsort(-eigenvalues, kind='stable')
    return eigenvalues[order], _fix_signs(eigenvectors[:, order])


def kernel_pca(
    K: NDArray,
    n_components: int = 2,
    tol: float = 1e-10,
    use_gpu: bool = False
) -> KernelPCAResult:
    """Kernel PCA of a (composite) kernel.

    The kernel is always centered first; centering is idempotent, so an
    already centered kernel is unaffected.

    Parameters
    ----------
    K : ndarray
        Kernel matrix of shape (n, n)
    n_components : int
        Number of components k to retain
    tol : float
        Eigenvalues <= tol * max(1, λ_max) are treated as zero
    use_gpu : bool
        Run the eigendecomposition on the GPU

    Returns
    -------
    result : KernelPCAResult

    Raises
    ------
    InsufficientRankError
        If k < 1 or k exceeds the number of positive eigenvalues
    """
    K_centered = center_kernel(K, use_gpu=use_gpu)
    eigenvalues, eigenvectors = sorted_eigh(K_centered, use_gpu=use_gpu)

    threshold = tol * max(1.0, float(eigenvalues[0]))
    n_positive = int(np.sum(eigenvalues > threshold))
    if n_components < 1 or n_components > n_positive:
        raise InsufficientRankError(
            f"Requested {n_components} components but the kernel has only "
            f"{n_positive} positive eigenvalues"
        )

    rotation = eigenvectors[:, :n_components] / np.sqrt(eigenvalues[:n_components])
    scores = K_centered @ rotation

    for arr in (eigenvalues, eigenvectors, rotation, scores):
        arr.setflags(write=False)

    logger.debug("Kernel PCA: %d components of %d positive eigenvalues",
                 n_components, n_positive)

    return KernelPCAResult(
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        n_components=n_components,
        rotation=rotation,
        scores=scores,
        n_positive=n_positive,
    )


class KernelPCA:
    """Estimator-style wrapper around kernel_pca().

    Parameters
    ----------
    n_components : int
        Number of components to retain
    tol : float
        Relative zero threshold for eigenvalues
    use_gpu : bool
        Use CuPy for the eigendecomposition
    """

    def __init__(self, n_components: int = 2, tol: float = 1e-10, use_gpu: bool = False):
        self.n_components = n_components
        self.tol = tol
        self.use_gpu = use_gpu
        self.result_: Optional[KernelPCAResult] = None

    def fit(self, K: NDArray) -> "KernelPCA":
        self.result_ = kernel_pca(K, self.n_components, tol=self.tol, use_gpu=self.use_gpu)
        return self

    def fit_transform(self, K: NDArray) -> NDArray:
        return self.fit(K).result_.scores

    @property
    def eigenvalues_(self) -> NDArray:
        if self.result_ is None:
            raise ValueError("Call fit() first")
        return self.result_.eigenvalues[:self.n_components]
