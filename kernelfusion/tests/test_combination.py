"""Tests for kernel combination strategies."""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from kernelfusion.combination import strategies
from kernelfusion.combination import (
    combine_kernels,
    consensus_topology,
    kernel_distances,
    kernel_similarity,
    knn_adjacency,
    resolve_method,
)
from kernelfusion.exceptions import (
    ConvergenceError,
    DegenerateInputError,
    DimensionMismatchError,
    InvalidParameterError,
)
from kernelfusion.kernels import center_kernel
from kernelfusion.utils import on_simplex, project_to_simplex

METHODS = ['equal', 'STATIS-UMKL', 'full-UMKL', 'sparse-UMKL']


def linear_centered(X):
    return center_kernel(X @ X.T)


@pytest.fixture
def random_kernels():
    rng = np.random.default_rng(7)
    return [linear_centered(rng.normal(size=(20, 5))) for _ in range(3)]


@pytest.fixture
def signal_and_noise():
    """Two noisy views of the same two-group structure plus a pure noise block."""
    rng = np.random.default_rng(42)
    n = 40
    groups = np.where(np.arange(n) < n // 2, 3.0, -3.0)[:, None]

    view_a = rng.normal(size=(n, 10)) + groups
    view_b = rng.normal(size=(n, 8)) + groups
    noise = rng.normal(size=(n, 10))

    return [linear_centered(view_a), linear_centered(view_b), linear_centered(noise)]


class TestSimplexInvariant:
    @pytest.mark.parametrize("method", METHODS)
    def test_weights_on_simplex(self, random_kernels, method):
        result = combine_kernels(random_kernels, method=method)

        assert np.all(result.weights >= 0)
        assert abs(result.weights.sum() - 1.0) <= 1e-8

    @pytest.mark.parametrize("method", METHODS)
    def test_composite_is_weighted_sum(self, random_kernels, method):
        result = combine_kernels(random_kernels, method=method)

        expected = sum(w * K for w, K in zip(result.weights, random_kernels))
        assert_allclose(result.kernel, expected, atol=1e-12)
        assert_allclose(result.kernel, result.kernel.T, atol=1e-12)

    @pytest.mark.parametrize("method", METHODS)
    def test_single_kernel(self, random_kernels, method):
        result = combine_kernels(random_kernels[:1], method=method)

        assert_array_equal(result.weights, [1.0])

    def test_results_are_read_only(self, random_kernels):
        result = combine_kernels(random_kernels, method='equal')

        with pytest.raises(ValueError):
            result.weights[0] = 0.5
        with pytest.raises(ValueError):
            result.kernel[0, 0] = 0.0


class TestEqual:
    def test_exact_weights(self, random_kernels):
        result = combine_kernels(random_kernels, method='equal')

        assert_array_equal(result.weights, np.full(3, 1.0 / 3))
        assert result.method == 'equal'
        assert result.n_iter == 0

    def test_names_from_mapping(self, random_kernels):
        named = dict(zip(['mrna', 'mirna', 'prot'], random_kernels))
        result = combine_kernels(named, method='equal')

        assert result.block_names == ('mrna', 'mirna', 'prot')
        assert list(result.to_series().index) == ['mrna', 'mirna', 'prot']


class TestStatisUMKL:
    def test_identical_blocks_upweighted(self):
        rng = np.random.default_rng(3)
        shared = linear_centered(rng.normal(size=(20, 5)))
        other = linear_centered(rng.normal(size=(20, 5)))

        result = combine_kernels([shared, shared.copy(), other], method='STATIS-UMKL')
        w = result.weights

        assert_allclose(w[0], w[1], atol=1e-10)
        assert w[0] > w[2]
        assert w[0] + w[1] > 2.0 / 3

    def test_weights_follow_leading_eigenvector(self, random_kernels):
        result = combine_kernels(random_kernels, method='STATIS-UMKL')

        C = kernel_similarity(random_kernels)
        eigenvalues, eigenvectors = np.linalg.eigh(C)
        v = np.abs(eigenvectors[:, -1])
        assert_allclose(result.weights, v / v.sum(), atol=1e-10)

    def test_zero_kernels_degenerate(self):
        zeros = [np.zeros((5, 5)), np.zeros((5, 5))]

        with pytest.raises(DegenerateInputError):
            combine_kernels(zeros, method='STATIS-UMKL')

    def test_orthogonal_kernels_degenerate(self):
        # tr(K1 K2) = 0, so the RV matrix is the identity
        u = np.array([1.0, -1.0, 0.0, 0.0])
        v = np.array([0.0, 0.0, 1.0, -1.0])
        kernels = [np.outer(u, u), np.outer(v, v)]

        assert_allclose(kernel_similarity(kernels), np.eye(2))
        with pytest.raises(DegenerateInputError):
            combine_kernels(kernels, method='STATIS-UMKL')


class TestUMKL:
    def test_sparse_drops_noise_block(self, signal_and_noise):
        result = combine_kernels(signal_and_noise, method='sparse-UMKL', sparsity=0.5)

        assert result.weights[2] == 0.0
        assert result.weights[:2].sum() == pytest.approx(1.0)
        assert 'kernel_2' not in result.selected_blocks

    def test_full_keeps_every_block(self, signal_and_noise):
        result = combine_kernels(signal_and_noise, method='full-UMKL')

        assert np.all(result.weights > 0)
        assert abs(result.weights.sum() - 1.0) <= 1e-8
        assert result.weights[2] < result.weights[:2].max()

    def test_objective_reported(self, signal_and_noise):
        full = combine_kernels(signal_and_noise, method='full-UMKL')
        sparse = combine_kernels(signal_and_noise, method='sparse-UMKL')

        assert full.objective is not None and full.objective >= -1e-12
        assert sparse.objective is not None and sparse.objective >= -1e-12
        assert full.n_iter > 0

    def test_full_iteration_budget(self, signal_and_noise):
        with pytest.raises(ConvergenceError):
            combine_kernels(signal_and_noise, method='full-UMKL', max_iter=1)

    def test_sparse_iteration_budget(self, signal_and_noise, monkeypatch):
        def exhausted(A, b, maxiter=None):
            raise RuntimeError("Maximum number of iterations reached.")

        monkeypatch.setattr(strategies, 'nnls', exhausted)
        with pytest.raises(ConvergenceError):
            combine_kernels(signal_and_noise, method='sparse-UMKL', max_iter=1)

    def test_sparse_invalid_sparsity(self, random_kernels):
        with pytest.raises(InvalidParameterError):
            combine_kernels(random_kernels, method='sparse-UMKL', sparsity=1.5)

    @pytest.mark.parametrize("method", ['full-UMKL', 'sparse-UMKL'])
    def test_zero_kernel_degenerate(self, random_kernels, method):
        kernels = [random_kernels[0], np.zeros((20, 20))]

        with pytest.raises(DegenerateInputError):
            combine_kernels(kernels, method=method)


class TestValidation:
    def test_dimension_mismatch(self, random_kernels):
        with pytest.raises(DimensionMismatchError):
            combine_kernels([random_kernels[0], np.eye(10)], method='equal')

    def test_non_square(self):
        with pytest.raises(DimensionMismatchError):
            combine_kernels([np.ones((3, 4))], method='equal')

    def test_empty(self):
        with pytest.raises(DimensionMismatchError):
            combine_kernels([], method='equal')

    def test_unknown_method(self, random_kernels):
        with pytest.raises(InvalidParameterError):
            combine_kernels(random_kernels, method='mean')

    @pytest.mark.parametrize("name, canonical", [
        ('statis-umkl', 'STATIS-UMKL'),
        ('FULL_UMKL', 'full-UMKL'),
        ('Sparse-UMKL', 'sparse-UMKL'),
        ('EQUAL', 'equal'),
    ])
    def test_method_names_case_insensitive(self, name, canonical):
        assert resolve_method(name) == canonical


class TestKernelSimilarity:
    def test_symmetric_unit_diagonal(self, random_kernels):
        C = kernel_similarity(random_kernels)

        assert_allclose(C, C.T)
        assert_allclose(np.diag(C), 1.0)
        assert np.all(C >= -1e-12)
        assert np.all(C <= 1 + 1e-12)

    def test_scale_invariant(self, random_kernels):
        scaled = [random_kernels[0] * 10.0, random_kernels[1], random_kernels[2] * 0.01]

        assert_allclose(kernel_similarity(scaled), kernel_similarity(random_kernels))


class TestTopology:
    def test_kernel_distances_match_euclidean(self):
        X = np.random.randn(10, 3)
        D = kernel_distances(X @ X.T)

        expected = np.linalg.norm(X[:, None, :] - X[None, :, :], axis=-1)
        assert_allclose(D, expected, atol=1e-6)

    def test_knn_adjacency(self):
        X = np.random.randn(15, 2)
        A = knn_adjacency(X @ X.T, k=3)

        assert_array_equal(A, A.T)
        assert np.all(np.diag(A) == 0)
        assert np.all(A.sum(axis=1) >= 3)

    def test_consensus_is_centered_unit_norm(self, signal_and_noise):
        T = consensus_topology(signal_and_noise, k=5)

        assert np.linalg.norm(T) == pytest.approx(1.0)
        assert_allclose(T.sum(axis=0), 0, atol=1e-10)


class TestSimplexProjection:
    def test_projection_on_simplex(self):
        v = np.array([0.9, -0.4, 0.7, 2.0])
        w = project_to_simplex(v)

        assert on_simplex(w)
        assert w[1] == 0.0

    def test_identity_for_simplex_points(self):
        w = np.array([0.2, 0.3, 0.5])

        assert_allclose(project_to_simplex(w), w)
