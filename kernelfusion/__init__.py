"""kernelfusion: unsupervised multiple kernel learning for multi-omics data.

Integrates several omics data blocks measured on the same samples through
kernels, and explores the integrated data with kernel PCA.

Main components:
- kernels: Linear and Gaussian (RBF) kernels, kernel centering
- combination: equal, STATIS-UMKL, full-UMKL and sparse-UMKL weighting
- decomposition: Kernel PCA of the composite kernel
- importance: Permutation feature importance (Crone-Crosby distance)
- api: High-level MultiKernelIntegration pipeline
"""

__version__ = "0.1.0"

# High-level API (recommended entry point)
from .api import MultiKernelIntegration, IntegrationResult

# Data and configuration
from .blocks import DataBlock, validate_blocks
from .config import IntegrationConfig, KernelSpec

# Kernels
from .kernels import (
    Kernel,
    LinearKernel,
    GaussianKernel,
    center_kernel,
    compute_kernel,
    register_kernel,
)

# Combination
from .combination import (
    CombinationResult,
    combine_kernels,
    kernel_similarity,
)

# Decomposition
from .decomposition import KernelPCA, KernelPCAResult, kernel_pca

# Feature importance
from .importance import (
    ImportanceRecord,
    ImportanceResult,
    crone_crosby_distance,
    permutation_importance,
)

# Errors
from .exceptions import (
    KernelFusionError,
    InvalidParameterError,
    DimensionMismatchError,
    DegenerateInputError,
    ConvergenceError,
    InsufficientRankError,
    UnknownFeatureError,
)

__all__ = [
    # Version
    "__version__",
    # High-level API
    "MultiKernelIntegration",
    "IntegrationResult",
    # Data and configuration
    "DataBlock",
    "validate_blocks",
    "IntegrationConfig",
    "KernelSpec",
    # Kernels
    "Kernel",
    "LinearKernel",
    "GaussianKernel",
    "center_kernel",
    "compute_kernel",
    "register_kernel",
    # Combination
    "CombinationResult",
    "combine_kernels",
    "kernel_similarity",
    # Decomposition
    "KernelPCA",
    "KernelPCAResult",
    "kernel_pca",
    # Feature importance
    "ImportanceRecord",
    "ImportanceResult",
    "crone_crosby_distance",
    "permutation_importance",
    # Errors
    "KernelFusionError",
    "InvalidParameterError",
    "DimensionMismatchError",
    "DegenerateInputError",
    "ConvergenceError",
    "InsufficientRankError",
    "UnknownFeatureError",
]
