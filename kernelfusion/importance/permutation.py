"""Permutation-based feature importance for kernel PCA.

For every feature of every block the feature's values are shuffled across
samples, the block kernel is recomputed and recentered, the composite kernel
is rebuilt with the original weights, and the perturbed eigenvectors are
compared with the original ones through the Crone-Crosby distance

    D_cc = ‖α_k - α̃_k‖ / √2

(the sign of α̃_k is chosen to minimise the distance). Large distances mark
features that shape component k.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from tqdm import tqdm

from ..blocks import DataBlock, validate_blocks
from ..config import KernelSpec
from ..decomposition.kpca import KernelPCAResult, sorted_eigh
from ..exceptions import DimensionMismatchError, InsufficientRankError, InvalidParameterError
from ..kernels.base import center_kernel, check_kernel_matrix
from ..kernels.registry import compute_kernel

logger = logging.getLogger(__name__)

SQRT2 = np.sqrt(2.0)


@dataclass(frozen=True)
class ImportanceRecord:
    """Influence of one feature on one kernel principal component.

    Attributes
    ----------
    block : str
        Block identifier
    feature : str
        Feature name within the block
    component : int
        Component index, starting at 1
    distance : float
        Crone-Crosby distance between original and perturbed eigenvector
    """
    block: str
    feature: str
    component: int
    distance: float


@dataclass(frozen=True)
class ImportanceResult:
    """Ordered importance records (block, feature, component order)."""
    records: Tuple[ImportanceRecord, ...]
    seed: int

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert records to a DataFrame."""
        return pd.DataFrame(
            [
                {
                    'block': r.block,
                    'feature': r.feature,
                    'component': r.component,
                    'distance': r.distance,
                }
                for r in self.records
            ],
            columns=['block', 'feature', 'component', 'distance'],
        )

    def top_features(self, block: str, component: int = 1, n: int = 10) -> pd.DataFrame:
        """Features of one block with the largest distances on one component."""
        df = self.to_dataframe()
        df = df[(df['block'] == block) & (df['component'] == component)]
        return df.sort_values('distance', ascending=False, kind='mergesort').head(n).reset_index(drop=True)


def crone_crosby_distance(alpha: NDArray, alpha_perturbed: NDArray) -> NDArray:
    """Sign-invariant Crone-Crosby distance per eigenvector column.

    Parameters
    ----------
    alpha : ndarray
        Original unit eigenvectors, shape (n, k)
    alpha_perturbed : ndarray
        Perturbed unit eigenvectors, shape (n, k)

    Returns
    -------
    distances : ndarray
        Shape (k,), values in [0, 1]
    """
    d_same = np.linalg.norm(alpha - alpha_perturbed, axis=0)
    d_flip = np.linalg.norm(alpha + alpha_perturbed, axis=0)
    return np.minimum(d_same, d_flip) / SQRT2


def _permuted_distances(
    values: NDArray,
    column: int,
    spec: KernelSpec,
    rest: NDArray,
    weight: float,
    alpha: NDArray,
    tol: float,
    seed_seq: np.random.SeedSequence
) -> NDArray:
    """Worker: distances for one permuted feature (all components)."""
    n_components = alpha.shape[1]
    if weight == 0:
        # The block does not enter the composite kernel
        return np.zeros(n_components)

    rng = np.random.default_rng(seed_seq)
    X = np.array(values, dtype=float, copy=True)
    X[:, column] = X[rng.permutation(X.shape[0]), column]

    K_perm = center_kernel(compute_kernel(X, spec))
    K_star = rest + weight * K_perm

    eigenvalues, eigenvectors = sorted_eigh(K_star)
    threshold = tol * max(1.0, float(eigenvalues[0]))
    if np.sum(eigenvalues > threshold) < n_components:
        raise InsufficientRankError(
            f"Perturbed composite kernel has fewer than {n_components} positive eigenvalues"
        )
    return crone_crosby_distance(alpha, eigenvectors[:, :n_components])


def _star_permuted_distances(args):
    return _permuted_distances(*args)


def _aligned(items, blocks: Sequence[DataBlock], what: str) -> list:
    """Order a mapping or sequence of per-block items like the blocks."""
    if isinstance(items, Mapping):
        missing = [b.name for b in blocks if b.name not in items]
        if missing:
            raise DimensionMismatchError(f"No {what} for block(s) {missing}")
        return [items[b.name] for b in blocks]
    items = list(items)
    if len(items) != len(blocks):
        raise DimensionMismatchError(
            f"Got {len(items)} {what} for {len(blocks)} blocks"
        )
    return items


def permutation_importance(
    blocks: Sequence[DataBlock],
    kernel_specs: Union[KernelSpec, Sequence[KernelSpec], Mapping[str, KernelSpec]],
    weights: Union[NDArray, Sequence[float], pd.Series],
    centered_kernels: Union[Sequence[NDArray], Mapping[str, NDArray]],
    pca_result: KernelPCAResult,
    n_components: Optional[int] = None,
    seed: int = 0,
    features: Optional[Mapping[str, Sequence[str]]] = None,
    n_workers: int = 0,
    show_progress: bool = False,
    tol: float = 1e-10
) -> ImportanceResult:
    """Permutation importance of every feature on the kernel PCA components.

    Parameters
    ----------
    blocks : sequence of DataBlock
        The original data blocks
    kernel_specs : KernelSpec, sequence or mapping
        Kernel of each block (one spec is applied to all blocks)
    weights : array-like or Series
        Original combination weights β, aligned with blocks (a Series is
        aligned by block name)
    centered_kernels : sequence or mapping of ndarray
        Original centered kernels, aligned with blocks
    pca_result : KernelPCAResult
        Kernel PCA of the unperturbed composite kernel
    n_components : int, optional
        Components to score (default: those retained in pca_result)
    seed : int
        Seed for the permutations; each (block, feature) task draws from its
        own child of SeedSequence(seed), so results do not depend on
        n_workers
    features : mapping, optional
        Block name -> feature names to score (default: all features)
    n_workers : int
        Worker processes (0 = serial)
    show_progress : bool
        Show a progress bar
    tol : float
        Relative zero threshold for perturbed eigenvalues

    Returns
    -------
    result : ImportanceResult
        One record per (block, feature, component)

    Raises
    ------
    UnknownFeatureError
        If a requested feature is absent from its block
    DimensionMismatchError
        If blocks, kernels and weights are inconsistent
    InsufficientRankError
        If more components are requested than available
    """
    blocks = validate_blocks(blocks)
    n = blocks[0].n_samples

    if isinstance(kernel_specs, KernelSpec):
        specs = [kernel_specs] * len(blocks)
    else:
        specs = _aligned(kernel_specs, blocks, "kernel specs")

    if isinstance(weights, pd.Series):
        weights = _aligned(weights.to_dict(), blocks, "weights")
    beta = np.asarray(weights, dtype=float).ravel()
    if beta.shape[0] != len(blocks):
        raise DimensionMismatchError(f"Got {beta.shape[0]} weights for {len(blocks)} blocks")

    kernels = [check_kernel_matrix(K) for K in _aligned(centered_kernels, blocks, "kernels")]
    for block, K in zip(blocks, kernels):
        if K.shape != (n, n):
            raise DimensionMismatchError(
                f"Kernel of block '{block.name}' has shape {K.shape}, expected {(n, n)}"
            )

    if n_components is None:
        n_components = pca_result.n_components
    if n_components < 1 or n_components > pca_result.n_positive:
        raise InsufficientRankError(
            f"Requested {n_components} components but the composite kernel has "
            f"only {pca_result.n_positive} positive eigenvalues"
        )
    if pca_result.eigenvectors.shape[0] != n:
        raise DimensionMismatchError("PCA result does not match the number of samples")
    alpha = np.array(pca_result.eigenvectors[:, :n_components])

    # Resolve requested features up front so unknown names fail early
    if features is None:
        columns = [list(range(b.n_features)) for b in blocks]
    else:
        names = {b.name for b in blocks}
        unknown_blocks = [name for name in features if name not in names]
        if unknown_blocks:
            raise InvalidParameterError(f"Unknown block(s) in features: {unknown_blocks}")
        columns = [
            [b.feature_index(f) for f in features.get(b.name, [])]
            for b in blocks
        ]

    tasks = [(m, j) for m, cols in enumerate(columns) for j in cols]
    seeds = np.random.SeedSequence(seed).spawn(len(tasks))

    rests = []
    for m in range(len(blocks)):
        rest = np.zeros((n, n))
        for l, K in enumerate(kernels):
            if l != m and beta[l] != 0:
                rest += beta[l] * K
        rests.append(rest)

    payloads = [
        (blocks[m].values, j, specs[m], rests[m], float(beta[m]), alpha, tol, seed_seq)
        for (m, j), seed_seq in zip(tasks, seeds)
    ]
    logger.debug("Permutation importance: %d features x %d components",
                 len(tasks), n_components)

    if n_workers and n_workers > 0:
        from multiprocessing import Pool

        with Pool(n_workers) as pool:
            results_iter = pool.imap(_star_permuted_distances, payloads)
            if show_progress:
                results_iter = tqdm(results_iter, total=len(payloads),
                                    desc=f"Permuting features ({n_workers} workers)")
            distances = list(results_iter)
    else:
        payload_iter = tqdm(payloads, desc="Permuting features") if show_progress else payloads
        distances = [_star_permuted_distances(p) for p in payload_iter]

    records: List[ImportanceRecord] = []
    for (m, j), dist in zip(tasks, distances):
        block = blocks[m]
        for k in range(n_components):
            records.append(ImportanceRecord(
                block=block.name,
                feature=block.feature_names[j],
                component=k + 1,
                distance=float(dist[k]),
            ))

    return ImportanceResult(records=tuple(records), seed=seed)
