"""Spectral decomposition of kernels."""

from .kpca import KernelPCA, KernelPCAResult, kernel_pca, sorted_eigh

__all__ = [
    "KernelPCA",
    "KernelPCAResult",
    "kernel_pca",
    "sorted_eigh",
]
