"""Kernel construction and centering."""

from .base import (
    Kernel,
    LinearKernel,
    center_kernel,
    is_centered,
    check_data_matrix,
    check_kernel_matrix,
)
from .gaussian import GaussianKernel, squared_distances
from .registry import (
    register_kernel,
    available_kernels,
    get_kernel,
    compute_kernel,
)

__all__ = [
    "Kernel",
    "LinearKernel",
    "GaussianKernel",
    "center_kernel",
    "is_centered",
    "check_data_matrix",
    "check_kernel_matrix",
    "squared_distances",
    "register_kernel",
    "available_kernels",
    "get_kernel",
    "compute_kernel",
]
