"""Feature importance for kernel PCA."""

from .permutation import (
    ImportanceRecord,
    ImportanceResult,
    crone_crosby_distance,
    permutation_importance,
)

__all__ = [
    "ImportanceRecord",
    "ImportanceResult",
    "crone_crosby_distance",
    "permutation_importance",
]
