"""Configuration objects for multi-kernel integration."""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict

from .exceptions import InvalidParameterError


@dataclass(frozen=True)
class KernelSpec:
    """How to turn one data block into a kernel.

    Attributes
    ----------
    kind : str
        Registered kernel name ('linear', 'rbf', ...)
    params : dict
        Kernel parameters (e.g. {'sigma': 1.0} for 'rbf')
    scale : bool
        Standardize columns before computing the kernel
    """
    kind: str = 'linear'
    params: Dict[str, Any] = field(default_factory=dict)
    scale: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KernelSpec":
        unknown = set(data) - {'kind', 'params', 'scale'}
        if unknown:
            raise InvalidParameterError(f"Unknown kernel spec keys: {sorted(unknown)}")
        return cls(
            kind=data.get('kind', 'linear'),
            params=dict(data.get('params', {})),
            scale=bool(data.get('scale', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'params': dict(self.params), 'scale': self.scale}


@dataclass
class IntegrationConfig:
    """Configuration for a multi-kernel integration run.

    Attributes
    ----------
    method : str
        Combination method: 'equal', 'STATIS-UMKL', 'full-UMKL' or 'sparse-UMKL'
    n_components : int
        Number of kernel principal components to retain
    knn : int
        Neighbours per sample in the UMKL topology graphs
    sparsity : float
        sparse-UMKL penalty as a fraction of the largest useful penalty, in [0, 1)
    barrier : float
        full-UMKL log-barrier strength (relative)
    max_iter : int
        Iteration budget of the UMKL solvers
    tol : float
        full-UMKL convergence tolerance on half the Newton decrement;
        sparse-UMKL is bounded by max_iter only
    eigen_tol : float
        Relative threshold below which eigenvalues count as zero
    seed : int
        Seed for permutation importance
    n_workers : int
        Worker processes for permutation importance (0 = serial)
    use_gpu : bool
        Enable CuPy acceleration
    show_progress : bool
        Show tqdm progress bars
    default_kernel : KernelSpec
        Kernel used for blocks without an explicit spec
    """
    method: str = 'STATIS-UMKL'
    n_components: int = 2
    knn: int = 5
    sparsity: float = 0.3
    barrier: float = 1e-3
    max_iter: int = 1000
    tol: float = 1e-10
    eigen_tol: float = 1e-10
    seed: int = 0
    n_workers: int = 0
    use_gpu: bool = False
    show_progress: bool = False
    default_kernel: KernelSpec = field(default_factory=KernelSpec)

    def validate(self) -> "IntegrationConfig":
        """Check value ranges.

        Raises
        ------
        InvalidParameterError
            On any out-of-range setting
        """
        from .combination.strategies import resolve_method

        resolve_method(self.method)
        if self.n_components < 1:
            raise InvalidParameterError(f"n_components must be >= 1, got {self.n_components}")
        if self.knn < 1:
            raise InvalidParameterError(f"knn must be >= 1, got {self.knn}")
        if not 0 <= self.sparsity < 1:
            raise InvalidParameterError(f"sparsity must be in [0, 1), got {self.sparsity}")
        if self.barrier <= 0:
            raise InvalidParameterError(f"barrier must be positive, got {self.barrier}")
        if self.max_iter < 1:
            raise InvalidParameterError(f"max_iter must be >= 1, got {self.max_iter}")
        if self.tol <= 0 or self.eigen_tol <= 0:
            raise InvalidParameterError("tol and eigen_tol must be positive")
        if self.n_workers < 0:
            raise InvalidParameterError(f"n_workers must be >= 0, got {self.n_workers}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntegrationConfig":
        """Build a config from a JSON-compatible dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidParameterError(f"Unknown config keys: {sorted(unknown)}")
        data = dict(data)
        if isinstance(data.get('default_kernel'), dict):
            data['default_kernel'] = KernelSpec.from_dict(data['default_kernel'])
        return cls(**data).validate()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['default_kernel'] = self.default_kernel.to_dict()
        return data

    def solver_options(self) -> Dict[str, Any]:
        """Keyword options for combine_kernels()."""
        return {
            'knn': self.knn,
            'sparsity': self.sparsity,
            'barrier': self.barrier,
            'max_iter': self.max_iter,
            'tol': self.tol,
        }
