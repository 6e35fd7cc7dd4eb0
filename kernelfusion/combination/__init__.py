"""Multiple kernel combination (unsupervised MKL)."""

from .similarity import kernel_similarity, frobenius_norms
from .topology import kernel_distances, knn_adjacency, consensus_topology
from .strategies import (
    CombinationResult,
    SolverOptions,
    WeightSolution,
    STRATEGIES,
    combine_kernels,
    composite_kernel,
    resolve_method,
    equal_weights,
    statis_weights,
    full_umkl_weights,
    sparse_umkl_weights,
)

__all__ = [
    # Similarity
    "kernel_similarity",
    "frobenius_norms",
    # Topology
    "kernel_distances",
    "knn_adjacency",
    "consensus_topology",
    # Strategies
    "CombinationResult",
    "SolverOptions",
    "WeightSolution",
    "STRATEGIES",
    "combine_kernels",
    "composite_kernel",
    "resolve_method",
    "equal_weights",
    "statis_weights",
    "full_umkl_weights",
    "sparse_umkl_weights",
]
