"""Tests for data blocks and configuration objects."""

import numpy as np
import pandas as pd
import pytest

from kernelfusion import DataBlock, IntegrationConfig, KernelSpec, validate_blocks
from kernelfusion.blocks import as_blocks
from kernelfusion.exceptions import (
    DimensionMismatchError,
    InvalidParameterError,
    UnknownFeatureError,
)


class TestDataBlock:
    def test_from_dataframe(self):
        df = pd.DataFrame(
            np.arange(12, dtype=float).reshape(4, 3),
            index=['s1', 's2', 's3', 's4'],
            columns=['g1', 'g2', 'g3'],
        )
        block = DataBlock.from_dataframe('rna', df)

        assert block.n_samples == 4
        assert block.n_features == 3
        assert block.feature_names == ('g1', 'g2', 'g3')
        assert block.sample_names == ('s1', 's2', 's3', 's4')
        pd.testing.assert_frame_equal(block.to_dataframe(), df)

    def test_from_array_generates_names(self):
        block = DataBlock.from_array('prot', np.ones((3, 2)))

        assert block.feature_names == ('prot_0', 'prot_1')
        assert block.sample_names == ('sample_0', 'sample_1', 'sample_2')

    def test_values_are_read_only_copy(self):
        X = np.random.randn(5, 2)
        block = DataBlock.from_array('a', X)
        X[0, 0] = 100.0

        assert block.values[0, 0] != 100.0
        with pytest.raises(ValueError):
            block.values[0, 0] = 1.0

    def test_feature_index(self):
        block = DataBlock.from_array('a', np.ones((3, 2)), feature_names=['x', 'y'])

        assert block.feature_index('y') == 1
        with pytest.raises(UnknownFeatureError):
            block.feature_index('z')

    def test_with_values(self):
        block = DataBlock.from_array('a', np.ones((3, 2)))
        other = block.with_values(np.zeros((3, 2)))

        assert other.name == block.name
        assert other.feature_names == block.feature_names
        assert np.all(other.values == 0)

    @pytest.mark.parametrize("values", [np.ones(3), np.ones((0, 2)), np.ones((2, 0))])
    def test_invalid_shapes(self, values):
        with pytest.raises(InvalidParameterError):
            DataBlock('a', values, (), ())

    def test_non_finite(self):
        with pytest.raises(InvalidParameterError):
            DataBlock.from_array('a', np.array([[1.0, np.inf]]))

    def test_name_length_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            DataBlock('a', np.ones((2, 2)), ('x',), ('s1', 's2'))
        with pytest.raises(DimensionMismatchError):
            DataBlock('a', np.ones((2, 2)), ('x', 'y'), ('s1',))

    def test_duplicate_features(self):
        with pytest.raises(InvalidParameterError):
            DataBlock('a', np.ones((2, 2)), ('x', 'x'), ('s1', 's2'))

    def test_from_dataframe_non_numeric(self):
        df = pd.DataFrame({'g1': [1.0, 2.0], 'g2': ['low', 'high']})

        with pytest.raises(InvalidParameterError):
            DataBlock.from_dataframe('rna', df)


class TestValidateBlocks:
    def test_consistent_blocks(self):
        a = DataBlock.from_array('a', np.ones((4, 2)))
        b = DataBlock.from_array('b', np.ones((4, 5)))

        assert validate_blocks([a, b]) == (a, b)

    def test_sample_count_mismatch(self):
        a = DataBlock.from_array('a', np.ones((4, 2)))
        b = DataBlock.from_array('b', np.ones((5, 2)))

        with pytest.raises(DimensionMismatchError):
            validate_blocks([a, b])

    def test_sample_order_mismatch(self):
        a = DataBlock.from_array('a', np.ones((2, 2)), sample_names=['s1', 's2'])
        b = DataBlock.from_array('b', np.ones((2, 2)), sample_names=['s2', 's1'])

        with pytest.raises(DimensionMismatchError):
            validate_blocks([a, b])

    def test_duplicate_names(self):
        a = DataBlock.from_array('a', np.ones((2, 2)))

        with pytest.raises(DimensionMismatchError):
            validate_blocks([a, a])

    def test_empty(self):
        with pytest.raises(DimensionMismatchError):
            validate_blocks([])

    def test_as_blocks_from_mapping(self):
        df = pd.DataFrame(np.ones((3, 2)), index=['a', 'b', 'c'], columns=['u', 'v'])
        blocks = as_blocks({'rna': df, 'prot': np.zeros((3, 4))})

        assert [b.name for b in blocks] == ['rna', 'prot']
        assert blocks[0].feature_names == ('u', 'v')
        assert blocks[1].n_features == 4


class TestIntegrationConfig:
    def test_defaults_are_valid(self):
        config = IntegrationConfig().validate()

        assert config.method == 'STATIS-UMKL'
        assert config.default_kernel == KernelSpec('linear')

    def test_round_trip(self):
        config = IntegrationConfig(
            method='sparse-UMKL',
            n_components=3,
            sparsity=0.5,
            default_kernel=KernelSpec('rbf', {'sigma': 2.0}, scale=True),
        )
        restored = IntegrationConfig.from_dict(config.to_dict())

        assert restored == config

    def test_unknown_key(self):
        with pytest.raises(InvalidParameterError):
            IntegrationConfig.from_dict({'nope': 1})

    @pytest.mark.parametrize("overrides", [
        {'method': 'average'},
        {'n_components': 0},
        {'sparsity': 1.0},
        {'knn': 0},
        {'max_iter': 0},
        {'barrier': 0.0},
        {'n_workers': -1},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(InvalidParameterError):
            IntegrationConfig(**overrides).validate()

    def test_kernel_spec_from_dict(self):
        spec = KernelSpec.from_dict({'kind': 'rbf', 'params': {'sigma': 1.5}})

        assert spec.kind == 'rbf'
        assert spec.params == {'sigma': 1.5}
        assert spec.scale is False
        with pytest.raises(InvalidParameterError):
            KernelSpec.from_dict({'kind': 'rbf', 'bandwidth': 1.0})
