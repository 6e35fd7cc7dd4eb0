"""Data blocks: one numeric matrix per omics modality.

A DataBlock holds an (n_samples, n_features) matrix together with its
feature names and the sample index it shares with the other blocks of an
integration.
"""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .exceptions import DimensionMismatchError, InvalidParameterError, UnknownFeatureError


def _readonly(arr: NDArray) -> NDArray:
    arr = np.array(arr, dtype=float, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class DataBlock:
    """One modality of a multi-omics data set.

    Attributes
    ----------
    name : str
        Block identifier (e.g. 'mRNA', 'miRNA')
    values : ndarray
        Read-only float matrix of shape (n_samples, n_features)
    feature_names : tuple of str
        Column names, length n_features
    sample_names : tuple of str
        Row names, length n_samples; shared by all blocks of an integration
    """
    name: str
    values: NDArray
    feature_names: Tuple[str, ...]
    sample_names: Tuple[str, ...]

    def __post_init__(self):
        values = np.asarray(self.values)
        if values.ndim != 2:
            raise InvalidParameterError(
                f"Block '{self.name}': expected a 2-D matrix, got shape {values.shape}"
            )
        n, p = values.shape
        if n == 0 or p == 0:
            raise InvalidParameterError(
                f"Block '{self.name}': data matrix has zero rows or columns ({n}x{p})"
            )
        if not np.issubdtype(values.dtype, np.number):
            raise InvalidParameterError(f"Block '{self.name}': values must be numeric")
        if not np.all(np.isfinite(values)):
            raise InvalidParameterError(f"Block '{self.name}': values contain NaN or inf")

        feature_names = tuple(str(f) for f in self.feature_names)
        sample_names = tuple(str(s) for s in self.sample_names)
        if len(feature_names) != p:
            raise DimensionMismatchError(
                f"Block '{self.name}': {len(feature_names)} feature names for {p} columns"
            )
        if len(sample_names) != n:
            raise DimensionMismatchError(
                f"Block '{self.name}': {len(sample_names)} sample names for {n} rows"
            )
        if len(set(feature_names)) != p:
            raise InvalidParameterError(f"Block '{self.name}': duplicate feature names")

        object.__setattr__(self, "values", _readonly(values))
        object.__setattr__(self, "feature_names", feature_names)
        object.__setattr__(self, "sample_names", sample_names)

    @classmethod
    def from_array(
        cls,
        name: str,
        values: NDArray,
        feature_names: Optional[Sequence[str]] = None,
        sample_names: Optional[Sequence[str]] = None
    ) -> "DataBlock":
        """Build a block from a bare array, generating names when omitted."""
        values = np.asarray(values)
        if values.ndim != 2:
            raise InvalidParameterError(
                f"Block '{name}': expected a 2-D matrix, got shape {values.shape}"
            )
        n, p = values.shape
        if feature_names is None:
            feature_names = [f"{name}_{j}" for j in range(p)]
        if sample_names is None:
            sample_names = [f"sample_{i}" for i in range(n)]
        return cls(name, values, tuple(feature_names), tuple(sample_names))

    @classmethod
    def from_dataframe(cls, name: str, df: pd.DataFrame) -> "DataBlock":
        """Build a block from a DataFrame (index = samples, columns = features)."""
        try:
            values = df.to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidParameterError(f"Block '{name}': values must be numeric ({e})") from e
        return cls(name, values, tuple(df.columns), tuple(df.index))

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @property
    def n_features(self) -> int:
        return self.values.shape[1]

    def feature_index(self, feature: str) -> int:
        """Column position of a feature.

        Raises
        ------
        UnknownFeatureError
            If the feature is not a column of this block
        """
        try:
            return self.feature_names.index(feature)
        except ValueError:
            raise UnknownFeatureError(
                f"Feature '{feature}' not found in block '{self.name}'"
            ) from None

    def with_values(self, values: NDArray) -> "DataBlock":
        """Return a new block with the same names and different values."""
        return DataBlock(self.name, values, self.feature_names, self.sample_names)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the block to a pandas DataFrame."""
        return pd.DataFrame(
            np.array(self.values),
            index=list(self.sample_names),
            columns=list(self.feature_names),
        )


BlockInput = Union[DataBlock, pd.DataFrame, NDArray]


def as_blocks(
    blocks: Union[Sequence[DataBlock], Mapping[str, BlockInput]]
) -> Tuple[DataBlock, ...]:
    """Coerce a sequence of blocks or a name -> data mapping to DataBlocks."""
    if isinstance(blocks, Mapping):
        result = []
        for name, data in blocks.items():
            if isinstance(data, DataBlock):
                result.append(data if data.name == name else
                              DataBlock(name, data.values, data.feature_names, data.sample_names))
            elif isinstance(data, pd.DataFrame):
                result.append(DataBlock.from_dataframe(name, data))
            else:
                result.append(DataBlock.from_array(name, data))
        return tuple(result)

    result = tuple(blocks)
    for block in result:
        if not isinstance(block, DataBlock):
            raise InvalidParameterError(
                f"Expected DataBlock instances, got {type(block).__name__}"
            )
    return result


def validate_blocks(blocks: Sequence[DataBlock]) -> Tuple[DataBlock, ...]:
    """Check that blocks can be integrated together.

    All blocks must have the same number of samples in the same order, and
    distinct names.

    Raises
    ------
    DimensionMismatchError
        On inconsistent sample counts or orderings, duplicate names, or an
        empty block list
    """
    blocks = tuple(blocks)
    if len(blocks) == 0:
        raise DimensionMismatchError("At least one data block is required")

    names = [b.name for b in blocks]
    if len(set(names)) != len(names):
        raise DimensionMismatchError(f"Block names must be unique, got {names}")

    reference = blocks[0]
    for block in blocks[1:]:
        if block.n_samples != reference.n_samples:
            raise DimensionMismatchError(
                f"Block '{block.name}' has {block.n_samples} samples, "
                f"block '{reference.name}' has {reference.n_samples}"
            )
        if block.sample_names != reference.sample_names:
            raise DimensionMismatchError(
                f"Block '{block.name}' sample ordering differs from block '{reference.name}'"
            )
    return blocks

