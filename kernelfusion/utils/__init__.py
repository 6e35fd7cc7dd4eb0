"""Utility functions for kernelfusion."""

from .backend import (
    is_gpu_available,
    get_backend,
    to_numpy,
    gpu_linear_kernel,
    gpu_center_kernel,
    gpu_eigh,
    gpu_trace_product,
    CUPY_AVAILABLE,
)
from .simplex import project_to_simplex, on_simplex

__all__ = [
    # GPU backend
    "is_gpu_available",
    "get_backend",
    "to_numpy",
    "gpu_linear_kernel",
    "gpu_center_kernel",
    "gpu_eigh",
    "gpu_trace_product",
    "CUPY_AVAILABLE",
    # Simplex
    "project_to_simplex",
    "on_simplex",
]
