"""Weighting strategies that merge centered kernels into a composite kernel.

Four strategies share one contract: given M centered kernels of identical
size, return simplex weights β (β >= 0, Σβ = 1) and the composite kernel
Σ β_m K_m.

- equal: β_m = 1/M
- STATIS-UMKL: leading eigenvector of the kernel RV-coefficient matrix;
  favours kernels that agree with the group consensus
- full-UMKL: topology-preserving weights, every β_m > 0
- sparse-UMKL: topology-preserving weights with an L1 penalty, so blocks
  that do not fit the consensus topology can receive β_m = 0

Both UMKL variants fit the composite of the unit-norm kernels to the
consensus k-NN neighbourhood graph T (see topology.py):

    f(β) = ½ ‖Σ β_m K̂_m - T‖²_F = ½ βᵀGβ - aᵀβ + ½

full-UMKL minimises f(β) - τ Σ log β_m (log-barrier, damped Newton);
sparse-UMKL minimises f(β) + λ Σ β_m over β >= 0 (non-negative least
squares). The solution is rescaled onto the simplex.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import linalg
from scipy.optimize import nnls

from .similarity import frobenius_norms, kernel_similarity
from .topology import consensus_topology
from ..exceptions import (
    ConvergenceError,
    DegenerateInputError,
    DimensionMismatchError,
    InvalidParameterError,
)
from ..kernels.base import check_kernel_matrix
from ..utils.simplex import project_to_simplex

logger = logging.getLogger(__name__)

KernelInput = Union[Sequence[NDArray], Mapping[str, NDArray]]


@dataclass(frozen=True)
class SolverOptions:
    """Options of the iterative combination strategies.

    Attributes
    ----------
    knn : int
        Neighbours per sample in the topology graphs
    sparsity : float
        sparse-UMKL penalty as a fraction of max alignment, in [0, 1)
    barrier : float
        full-UMKL log-barrier strength relative to max alignment
    max_iter : int
        Iteration budget; exceeding it raises ConvergenceError
    tol : float
        full-UMKL tolerance on half the Newton decrement (sparse-UMKL
        stops when its active set is optimal)
    use_gpu : bool
        Compute kernel inner products on the GPU
    """
    knn: int = 5
    sparsity: float = 0.3
    barrier: float = 1e-3
    max_iter: int = 1000
    tol: float = 1e-10
    use_gpu: bool = False


@dataclass(frozen=True)
class WeightSolution:
    """Raw output of a weighting strategy."""
    weights: NDArray
    objective: Optional[float] = None
    n_iter: int = 0


@dataclass(frozen=True)
class CombinationResult:
    """Weights and composite kernel of one combination run.

    Attributes
    ----------
    method : str
        Canonical method name
    weights : ndarray
        Simplex weights β, one per kernel (read-only)
    kernel : ndarray
        Composite kernel Σ β_m K_m (read-only)
    block_names : tuple of str
        Name of the kernel behind each weight
    objective : float or None
        Final topology-fit objective (UMKL methods only)
    n_iter : int
        Solver iterations (0 for closed-form methods)
    """
    method: str
    weights: NDArray
    kernel: NDArray
    block_names: Tuple[str, ...]
    objective: Optional[float] = None
    n_iter: int = 0

    def to_series(self) -> pd.Series:
        """Weights as a pandas Series indexed by block name."""
        return pd.Series(np.array(self.weights), index=list(self.block_names), name='weight')

    @property
    def selected_blocks(self) -> Tuple[str, ...]:
        """Blocks with a non-zero weight."""
        return tuple(n for n, w in zip(self.block_names, self.weights) if w > 0)


def _unit_norm_problem(kernels: List[NDArray], options: SolverOptions) -> Tuple[NDArray, NDArray]:
    """Gram matrix G of unit-norm kernels and their alignment a with T."""
    norms = frobenius_norms(kernels)
    if np.any(norms == 0):
        raise DegenerateInputError("UMKL cannot weight a kernel that is identically zero")

    G = kernel_similarity(kernels, use_gpu=options.use_gpu)
    T = consensus_topology(kernels, k=options.knn)
    a = np.array([np.sum(K * T) / norm for K, norm in zip(kernels, norms)])
    return G, a


def _topology_objective(G: NDArray, a: NDArray, beta: NDArray) -> float:
    return float(0.5 * beta @ G @ beta - a @ beta + 0.5)


def equal_weights(kernels: List[NDArray], options: SolverOptions) -> WeightSolution:
    """β_m = 1/M for every kernel."""
    M = len(kernels)
    return WeightSolution(np.full(M, 1.0 / M))


def statis_weights(kernels: List[NDArray], options: SolverOptions) -> WeightSolution:
    """STATIS-UMKL: leading eigenvector of the RV-coefficient matrix.

    Raises
    ------
    DegenerateInputError
        If the RV matrix has no well-defined leading eigenvector
    """
    C = kernel_similarity(kernels, use_gpu=options.use_gpu)
    if not np.all(np.isfinite(C)):
        raise DegenerateInputError("Kernel RV matrix is not finite")

    eigenvalues, eigenvectors = linalg.eigh(C)
    leading = eigenvalues[-1]
    if leading <= 0:
        raise DegenerateInputError("Kernel RV matrix has no positive eigenvalue")
    if len(eigenvalues) > 1 and leading - eigenvalues[-2] <= 1e-12 * leading:
        raise DegenerateInputError(
            "Leading eigenvalue of the kernel RV matrix is not simple"
        )

    v = eigenvectors[:, -1]
    if v.sum() < 0:
        v = -v
    if np.all(v >= 0):
        weights = v / v.sum()
    else:
        weights = project_to_simplex(v)

    logger.debug("STATIS-UMKL: leading RV eigenvalue %.4g", leading)
    return WeightSolution(weights)


def full_umkl_weights(kernels: List[NDArray], options: SolverOptions) -> WeightSolution:
    """full-UMKL: log-barrier topology fit, all weights strictly positive.

    Raises
    ------
    ConvergenceError
        If damped Newton does not converge within options.max_iter steps
    """
    G, a = _unit_norm_problem(kernels, options)
    M = len(kernels)
    tau = options.barrier * max(float(np.abs(a).max()), np.finfo(float).eps)

    def objective(b):
        return 0.5 * b @ G @ b - a @ b - tau * np.sum(np.log(b))

    beta = np.full(M, 1.0 / M)
    for it in range(1, options.max_iter + 1):
        grad = G @ beta - a - tau / beta
        hess = G + np.diag(tau / beta ** 2)
        step = -linalg.solve(hess, grad, assume_a='pos')

        decrement = -grad @ step
        if decrement / 2 <= options.tol:
            weights = beta / beta.sum()
            logger.debug("full-UMKL converged after %d Newton steps", it)
            return WeightSolution(weights, _topology_objective(G, a, weights), it)

        # Stay strictly inside the positive orthant
        t = 1.0
        while np.any(beta + t * step <= 0):
            t *= 0.5

        # Armijo backtracking
        f0 = objective(beta)
        while objective(beta + t * step) > f0 - 1e-4 * t * decrement and t > 1e-16:
            t *= 0.5
        beta = beta + t * step

    raise ConvergenceError(
        f"full-UMKL did not converge within {options.max_iter} iterations"
    )


def sparse_umkl_weights(kernels: List[NDArray], options: SolverOptions) -> WeightSolution:
    """sparse-UMKL: L1-penalised non-negative topology fit.

    The quadratic ½βᵀGβ + (λ - a)ᵀβ is rewritten as a non-negative least
    squares problem through the Cholesky factor of G (plus a tiny ridge)
    and solved with the Lawson-Hanson active set method, which yields
    exact zeros.

    Raises
    ------
    InvalidParameterError
        If sparsity is outside [0, 1)
    DegenerateInputError
        If no kernel aligns with the consensus topology, or every weight
        is driven to zero
    ConvergenceError
        If the active set method exceeds options.max_iter iterations
    """
    if not 0 <= options.sparsity < 1:
        raise InvalidParameterError(f"sparsity must be in [0, 1), got {options.sparsity}")

    G, a = _unit_norm_problem(kernels, options)
    M = len(kernels)
    if a.max() <= 0:
        raise DegenerateInputError("No kernel aligns with the consensus topology")

    lam = options.sparsity * a.max()
    ridge = 1e-8 * max(1.0, np.trace(G) / M)
    L = linalg.cholesky(G + ridge * np.eye(M), lower=True)
    # ½‖Lᵀβ - c‖² with L c = a - λ
    c = linalg.solve_triangular(L, a - lam, lower=True)

    try:
        beta, _ = nnls(L.T, c, maxiter=options.max_iter)
    except RuntimeError as e:
        raise ConvergenceError(
            f"sparse-UMKL did not converge within {options.max_iter} iterations"
        ) from e

    if not np.any(beta > 0):
        raise DegenerateInputError("sparse-UMKL removed every kernel; lower the sparsity")

    weights = beta / beta.sum()
    logger.debug("sparse-UMKL kept %d of %d kernels", int(np.sum(weights > 0)), M)
    return WeightSolution(weights, _topology_objective(G, a, weights), 0)


STRATEGIES: Dict[str, Callable[[List[NDArray], SolverOptions], WeightSolution]] = {
    'equal': equal_weights,
    'STATIS-UMKL': statis_weights,
    'full-UMKL': full_umkl_weights,
    'sparse-UMKL': sparse_umkl_weights,
}

_ALIASES = {name.lower().replace('_', '-'): name for name in STRATEGIES}


def resolve_method(method: str) -> str:
    """Canonical name of a combination method (case-insensitive).

    Raises
    ------
    InvalidParameterError
        For an unknown method
    """
    key = str(method).lower().replace('_', '-')
    if key not in _ALIASES:
        raise InvalidParameterError(
            f"Unknown combination method: {method}. Use one of {list(STRATEGIES)}"
        )
    return _ALIASES[key]


def _as_kernel_list(kernels: KernelInput) -> Tuple[List[NDArray], Tuple[str, ...]]:
    if isinstance(kernels, Mapping):
        names = tuple(str(k) for k in kernels)
        mats = list(kernels.values())
    else:
        mats = list(kernels)
        names = tuple(f"kernel_{i}" for i in range(len(mats)))

    if len(mats) == 0:
        raise DimensionMismatchError("At least one kernel is required")

    mats = [check_kernel_matrix(K) for K in mats]
    m = mats[0].shape[0]
    for name, K in zip(names, mats):
        if K.shape != (m, m):
            raise DimensionMismatchError(
                f"Kernel '{name}' has shape {K.shape}, expected {(m, m)}"
            )
    return mats, names


def composite_kernel(kernels: Sequence[NDArray], weights: NDArray) -> NDArray:
    """Weighted sum Σ β_m K_m of aligned kernels."""
    K_star = np.zeros_like(np.asarray(kernels[0], dtype=float))
    for w, K in zip(weights, kernels):
        if w != 0:
            K_star += w * K
    return K_star


def combine_kernels(
    kernels: KernelInput,
    method: str = 'STATIS-UMKL',
    knn: int = 5,
    sparsity: float = 0.3,
    barrier: float = 1e-3,
    max_iter: int = 1000,
    tol: float = 1e-10,
    use_gpu: bool = False
) -> CombinationResult:
    """Combine centered kernels into one composite kernel.

    Parameters
    ----------
    kernels : sequence or mapping of ndarray
        Centered kernels of identical shape (m, m); a mapping supplies
        block names
    method : str
        'equal', 'STATIS-UMKL', 'full-UMKL' or 'sparse-UMKL'
    knn : int
        Neighbours per sample for the UMKL topology
    sparsity : float
        sparse-UMKL penalty level in [0, 1)
    barrier : float
        full-UMKL barrier strength
    max_iter : int
        Iteration budget of the UMKL solvers
    tol : float
        Convergence tolerance of full-UMKL
    use_gpu : bool
        Compute kernel inner products on the GPU

    Returns
    -------
    result : CombinationResult
        Weights on the simplex and the composite kernel

    Raises
    ------
    DimensionMismatchError
        If kernels differ in shape or none are given
    """
    canonical = resolve_method(method)
    mats, names = _as_kernel_list(kernels)
    options = SolverOptions(knn=knn, sparsity=sparsity, barrier=barrier,
                            max_iter=max_iter, tol=tol, use_gpu=use_gpu)

    if len(mats) == 1:
        solution = WeightSolution(np.ones(1))
    else:
        solution = STRATEGIES[canonical](mats, options)

    weights = np.asarray(solution.weights, dtype=float)
    weights.setflags(write=False)
    K_star = composite_kernel(mats, weights)
    K_star.setflags(write=False)

    logger.debug("%s weights: %s", canonical,
                 ", ".join(f"{n}={w:.4f}" for n, w in zip(names, weights)))

    return CombinationResult(
        method=canonical,
        weights=weights,
        kernel=K_star,
        block_names=names,
        objective=solution.objective,
        n_iter=solution.n_iter,
    )
