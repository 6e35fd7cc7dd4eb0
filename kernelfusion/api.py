"""High-level API for multi-omics kernel integration.

MultiKernelIntegration chains the steps of an unsupervised multiple kernel
analysis: per-block kernels, centering, combination, kernel PCA and
permutation feature importance. Every intermediate artifact is cached, so a
failure in a later step leaves the earlier results usable.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .blocks import BlockInput, DataBlock, as_blocks, validate_blocks
from .combination.strategies import CombinationResult, combine_kernels, resolve_method
from .config import IntegrationConfig, KernelSpec
from .decomposition.kpca import KernelPCAResult, kernel_pca
from .exceptions import InvalidParameterError
from .importance.permutation import ImportanceResult, permutation_importance
from .kernels.base import center_kernel
from .kernels.registry import compute_kernel
from .utils.backend import is_gpu_available

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrationResult:
    """Outputs of a full integration run.

    Attributes
    ----------
    weights : Series
        Combination weight of every block
    scores : DataFrame
        Kernel PCA scores, one row per sample, columns PC1..PCk
    combination : CombinationResult
        Weights and composite kernel
    pca : KernelPCAResult
        Eigendecomposition of the composite kernel
    importance : ImportanceResult or None
        Permutation importance, if requested
    """
    weights: pd.Series
    scores: pd.DataFrame
    combination: CombinationResult
    pca: KernelPCAResult
    importance: Optional[ImportanceResult] = None


class MultiKernelIntegration:
    """Unsupervised multiple kernel integration of several data blocks.

    Parameters
    ----------
    blocks : sequence of DataBlock or mapping
        Data blocks sharing the same samples in the same order. A mapping
        of name -> DataFrame (index = samples) or array is also accepted.
    kernel_specs : mapping, optional
        Block name -> KernelSpec (or dict). Blocks without a spec use
        config.default_kernel.
    config : IntegrationConfig, optional
        Run configuration

    Examples
    --------
    >>> from kernelfusion import MultiKernelIntegration, KernelSpec
    >>>
    >>> model = MultiKernelIntegration(
    ...     {'mRNA': mrna_df, 'miRNA': mirna_df},
    ...     kernel_specs={'miRNA': KernelSpec('rbf', {'sigma': 2.0})},
    ... )
    >>> result = model.run(method='full-UMKL', n_components=2)
    >>> result.weights
    """

    def __init__(
        self,
        blocks: Union[Sequence[DataBlock], Mapping[str, BlockInput]],
        kernel_specs: Optional[Mapping[str, Union[KernelSpec, dict]]] = None,
        config: Optional[IntegrationConfig] = None
    ):
        self.config = (config or IntegrationConfig()).validate()
        self.blocks = validate_blocks(as_blocks(blocks))
        self.kernel_specs = self._resolve_specs(kernel_specs or {})

        self.use_gpu = self.config.use_gpu
        if self.use_gpu and not is_gpu_available():
            warnings.warn(
                "GPU requested but CuPy not available. Falling back to CPU.",
                RuntimeWarning
            )
            self.use_gpu = False

        # Cached artifacts
        self._kernels: Optional[Dict[str, NDArray]] = None
        self._centered: Optional[Dict[str, NDArray]] = None
        self._combination: Optional[CombinationResult] = None
        self._pca: Optional[KernelPCAResult] = None

    def _resolve_specs(self, kernel_specs) -> Dict[str, KernelSpec]:
        names = {b.name for b in self.blocks}
        unknown = [name for name in kernel_specs if name not in names]
        if unknown:
            raise InvalidParameterError(f"Kernel specs given for unknown block(s) {unknown}")

        specs = {}
        for block in self.blocks:
            spec = kernel_specs.get(block.name, self.config.default_kernel)
            if isinstance(spec, dict):
                spec = KernelSpec.from_dict(spec)
            specs[block.name] = spec
        return specs

    @property
    def n_samples(self) -> int:
        """Number of samples shared by all blocks."""
        return self.blocks[0].n_samples

    @property
    def block_names(self) -> List[str]:
        return [b.name for b in self.blocks]

    @property
    def sample_names(self) -> List[str]:
        return list(self.blocks[0].sample_names)

    @property
    def combination(self) -> Optional[CombinationResult]:
        """Last combination result, if any."""
        return self._combination

    @property
    def pca(self) -> Optional[KernelPCAResult]:
        """Last kernel PCA result, if any."""
        return self._pca

    def compute_kernels(self) -> Dict[str, NDArray]:
        """Compute and center the kernel of every block (cached).

        Returns
        -------
        centered : dict
            Block name -> centered kernel
        """
        if self._centered is None:
            kernels = {}
            centered = {}
            for block in self.blocks:
                K = compute_kernel(block, self.kernel_specs[block.name], use_gpu=self.use_gpu)
                K_centered = center_kernel(K, use_gpu=self.use_gpu)
                # Cached kernels are shared with every later step
                K.setflags(write=False)
                K_centered.setflags(write=False)
                kernels[block.name] = K
                centered[block.name] = K_centered
            self._kernels = kernels
            self._centered = centered
        return dict(self._centered)

    @property
    def raw_kernels(self) -> Dict[str, NDArray]:
        """Uncentered block kernels."""
        self.compute_kernels()
        return dict(self._kernels)

    def kernel_similarity(self) -> pd.DataFrame:
        """RV coefficients between the centered block kernels."""
        from .combination.similarity import kernel_similarity

        centered = self.compute_kernels()
        C = kernel_similarity(list(centered.values()), use_gpu=self.use_gpu)
        return pd.DataFrame(C, index=self.block_names, columns=self.block_names)

    def combine(self, method: Optional[str] = None) -> CombinationResult:
        """Combine the centered block kernels.

        Parameters
        ----------
        method : str, optional
            Combination method (default: config.method)

        Returns
        -------
        result : CombinationResult
        """
        method = resolve_method(method or self.config.method)
        centered = self.compute_kernels()
        result = combine_kernels(
            centered,
            method=method,
            use_gpu=self.use_gpu,
            **self.config.solver_options()
        )
        self._combination = result
        # A new composite invalidates the previous decomposition
        self._pca = None
        logger.info("Combined %d kernels with %s", len(centered), result.method)
        return result

    def decompose(self, n_components: Optional[int] = None) -> KernelPCAResult:
        """Kernel PCA of the composite kernel (combines first if needed)."""
        if self._combination is None:
            self.combine()
        k = self.config.n_components if n_components is None else n_components
        self._pca = kernel_pca(
            self._combination.kernel,
            n_components=k,
            tol=self.config.eigen_tol,
            use_gpu=self.use_gpu
        )
        return self._pca

    def scores(self) -> pd.DataFrame:
        """Kernel PCA scores indexed by sample name."""
        if self._pca is None:
            self.decompose()
        return self._pca.scores_frame(self.sample_names)

    def feature_importance(
        self,
        features: Optional[Mapping[str, Sequence[str]]] = None,
        n_components: Optional[int] = None,
        seed: Optional[int] = None
    ) -> ImportanceResult:
        """Permutation importance of block features on the kernel PCA.

        Parameters
        ----------
        features : mapping, optional
            Block name -> feature names (default: every feature)
        n_components : int, optional
            Components to score (default: those of the decomposition)
        seed : int, optional
            Permutation seed (default: config.seed)
        """
        if self._pca is None:
            self.decompose()
        return permutation_importance(
            self.blocks,
            self.kernel_specs,
            self._combination.weights,
            self.compute_kernels(),
            self._pca,
            n_components=n_components,
            seed=self.config.seed if seed is None else seed,
            features=features,
            n_workers=self.config.n_workers,
            show_progress=self.config.show_progress,
            tol=self.config.eigen_tol,
        )

    def run(
        self,
        method: Optional[str] = None,
        n_components: Optional[int] = None,
        importance: bool = False,
        features: Optional[Mapping[str, Sequence[str]]] = None
    ) -> IntegrationResult:
        """Run kernels, combination, kernel PCA and optionally importance.

        Returns
        -------
        result : IntegrationResult
        """
        combination = self.combine(method)
        pca = self.decompose(n_components)
        imp = self.feature_importance(features=features) if importance else None

        return IntegrationResult(
            weights=combination.to_series(),
            scores=pca.scores_frame(self.sample_names),
            combination=combination,
            pca=pca,
            importance=imp,
        )

    def summary(self) -> Dict[str, object]:
        """Short description of the current state."""
        info = {
            'n_samples': self.n_samples,
            'blocks': {b.name: b.n_features for b in self.blocks},
            'kernels': {name: spec.kind for name, spec in self.kernel_specs.items()},
        }
        if self._combination is not None:
            info['method'] = self._combination.method
            info['weights'] = dict(zip(self._combination.block_names,
                                       np.round(self._combination.weights, 6).tolist()))
        if self._pca is not None:
            info['explained_variance_ratio'] = self._pca.explained_variance_ratio.tolist()
        return info
