"""Kernel kind registry and the compute_kernel() entry point."""

import logging
from typing import Any, Dict, Optional, Type, Union

from numpy.typing import NDArray

from .base import Kernel, LinearKernel
from .gaussian import GaussianKernel
from ..blocks import DataBlock
from ..config import KernelSpec
from ..exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

_KERNELS: Dict[str, Type[Kernel]] = {}


def register_kernel(name: str, kernel_cls: Type[Kernel]) -> None:
    """Register a Kernel subclass under a (case-insensitive) name."""
    if not (isinstance(kernel_cls, type) and issubclass(kernel_cls, Kernel)):
        raise InvalidParameterError(f"{kernel_cls!r} is not a Kernel subclass")
    _KERNELS[name.lower()] = kernel_cls


def available_kernels() -> list:
    """Names of all registered kernel kinds."""
    return sorted(_KERNELS)


def get_kernel(
    kind: str,
    params: Optional[Dict[str, Any]] = None,
    scale: bool = False,
    use_gpu: bool = False
) -> Kernel:
    """Instantiate a registered kernel.

    Raises
    ------
    InvalidParameterError
        For an unknown kernel kind or parameters it does not accept
    """
    try:
        kernel_cls = _KERNELS[str(kind).lower()]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown kernel kind: {kind}. Use one of {available_kernels()}"
        ) from None
    try:
        return kernel_cls(scale=scale, use_gpu=use_gpu, **(params or {}))
    except TypeError as e:
        raise InvalidParameterError(f"Invalid parameters for '{kind}' kernel: {e}") from None


def compute_kernel(
    block: Union[DataBlock, NDArray],
    kind: Union[str, KernelSpec] = 'linear',
    params: Optional[Dict[str, Any]] = None,
    scale: bool = False,
    use_gpu: bool = False
) -> NDArray:
    """Compute the (uncentered) kernel matrix of one data block.

    Parameters
    ----------
    block : DataBlock or ndarray
        Data of shape (n_samples, n_features)
    kind : str or KernelSpec
        Kernel name, or a full spec (then params/scale are ignored)
    params : dict, optional
        Kernel parameters, e.g. {'sigma': 2.0} for 'rbf'
    scale : bool
        Standardize columns first
    use_gpu : bool
        Use CuPy for dense products when available

    Returns
    -------
    K : ndarray
        Symmetric kernel matrix of shape (n_samples, n_samples)
    """
    if isinstance(kind, KernelSpec):
        params, scale, kind = kind.params, kind.scale, kind.kind

    X = block.values if isinstance(block, DataBlock) else block
    kernel = get_kernel(kind, params, scale=scale, use_gpu=use_gpu)
    K = kernel.compute(X)

    if isinstance(block, DataBlock):
        logger.debug("Computed %s kernel for block '%s' (%d samples)",
                     kind, block.name, K.shape[0])
    return K


register_kernel('linear', LinearKernel)
register_kernel('rbf', GaussianKernel)
register_kernel('gaussian', GaussianKernel)
register_kernel('gaussian.radial.basis', GaussianKernel)
