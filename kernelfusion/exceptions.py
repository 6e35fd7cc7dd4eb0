"""Exception hierarchy for kernel fusion.

Every failure is raised at the point where it is detected; nothing is
downgraded to a warning or retried internally.
"""


class KernelFusionError(Exception):
    """Base class for all kernelfusion errors."""


class InvalidParameterError(KernelFusionError, ValueError):
    """Malformed kernel or solver parameter (e.g. sigma <= 0)."""


class DimensionMismatchError(KernelFusionError, ValueError):
    """Blocks or kernels with inconsistent sample counts or orderings."""


class DegenerateInputError(KernelFusionError):
    """Combination problem is mathematically ill-posed (e.g. zero kernels)."""


class ConvergenceError(KernelFusionError, RuntimeError):
    """Iterative solver exceeded its iteration budget."""


class InsufficientRankError(KernelFusionError):
    """More components requested than the kernel has positive eigenvalues."""


class UnknownFeatureError(KernelFusionError, KeyError):
    """Permutation target is not a column of its block."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""
