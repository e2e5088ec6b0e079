"""
Tests for bundle construction, conversions, canonicalization, splitting,
intersection and template decomposition.
"""

import numpy as np
import pytest

from BundleReach import (Bundle, BundleConstructionError, EmptySetError, Polytope,
                         UnboundedError)
from BundleReach.decompose import template_score
from BundleReach.utils import is_basis, offset_distances


class TestConstruction:

    def test_empty_directions(self):
        with pytest.raises(BundleConstructionError):
            Bundle(np.zeros((0, 2)), [], [], [[0, 1]])

    def test_offset_lengths(self):
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1, 1], [1, 1], [[0, 1]])
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1], [1], [[0, 1]])

    def test_template(self):
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1], [1, 1], np.zeros((0, 2)))
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1], [1, 1], [[0, 1, 1]])
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1], [1, 1], [[0, 2]])

    def test_ragged_template(self, caplog):
        with pytest.raises(BundleConstructionError):
            Bundle([[1, 0], [0, 1], [1, 1]], [1, 1, 1], [1, 1, 1], [[0, 1], [2]])
        assert any(record.levelname == 'ERROR' for record in caplog.records)

    def test_construction_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            Bundle(np.eye(2), [1, 1], [1], [[0, 1]])

    def test_null_direction(self):
        with pytest.raises(BundleConstructionError):
            Bundle([[1, 0], [0, 0]], [1, 1], [1, 1], [[0, 1]])

    def test_construction_errors_are_logged(self, caplog):
        with pytest.raises(BundleConstructionError):
            Bundle(np.eye(2), [1, 1], [1], [[0, 1]])
        assert any(record.levelname == 'ERROR' for record in caplog.records)

    def test_accessors(self, diamond_bundle):
        assert diamond_bundle.dim == 2
        assert diamond_bundle.size == 4
        assert diamond_bundle.num_of_templates == 2
        assert diamond_bundle.proximity.shape == (4, 4)
        assert diamond_bundle.proximity[0, 2] == pytest.approx(np.pi / 4)

    def test_bundles_are_immutable(self, square):
        with pytest.raises(ValueError):
            square.offset_plus[0] = 5
        with pytest.raises(ValueError):
            square.template[0, 0] = 1

    def test_inputs_are_copied(self):
        offsets = np.array([1.0, 1.0])
        bundle = Bundle(np.eye(2), offsets, offsets, [[0, 1]])
        offsets[0] = 7
        assert bundle.offset_plus[0] == 1
        assert offsets.flags.writeable

    def test_from_box(self):
        box = Bundle.from_box([0, 2], [1, 3])
        assert np.allclose(box.offset_plus, [1, 3])
        assert np.allclose(box.offset_minus, [0, -2])
        assert box.template.tolist() == [[0, 1]]


class TestConversions:

    def test_polytope(self, square):
        polytope = square.polytope()
        assert np.allclose(polytope.A, [[1, 0], [0, 1], [-1, 0], [0, -1]])
        assert np.allclose(polytope.b, [1, 1, 1, 1])

    def test_get_parallelotope(self, square):
        parallelotope = square.get_parallelotope(0)
        assert np.allclose(parallelotope.base_vertex, [-1, -1])
        assert np.allclose(parallelotope.lengths, [2, 2])

    def test_get_parallelotope_out_of_range(self, square):
        with pytest.raises(IndexError):
            square.get_parallelotope(1)
        with pytest.raises(IndexError):
            square.get_parallelotope(-1)

    def test_bundle_is_contained_in_its_parallelotopes(self, diamond_bundle):
        polytope = diamond_bundle.polytope()
        for i in range(diamond_bundle.num_of_templates):
            assert polytope.is_subset_of(diamond_bundle.get_parallelotope(i).polytope())

    def test_single_parallelotope_bundle(self, square):
        parallelotope = square.get_parallelotope(0).polytope()
        assert parallelotope.is_subset_of(square.polytope())
        assert square.polytope().is_subset_of(parallelotope)

    def test_magnitudes(self):
        bundle = Bundle([[2, 0], [0, 1]], [2, 3], [0, -1], [[0, 1]])
        assert np.allclose(bundle.magnitudes(), [1, 2])


class TestCanonical:

    def test_tightens_offsets(self):
        bundle = Bundle([[1, 0], [0, 1], [1, 1]], [1, 1, 5], [0, 0, 5], [[0, 1]])
        canonical = bundle.get_canonical()

        assert np.allclose(canonical.offset_plus, [1, 1, 2])
        assert np.allclose(canonical.offset_minus, [0, 0, 0])
        assert np.array_equal(canonical.template, bundle.template)

    def test_idempotent(self, diamond_bundle):
        canonical = diamond_bundle.get_canonical()
        twice = canonical.get_canonical()

        assert np.allclose(twice.offset_plus, canonical.offset_plus)
        assert np.allclose(twice.offset_minus, canonical.offset_minus)

    def test_same_set(self, diamond_bundle):
        canonical = diamond_bundle.get_canonical().polytope()
        original = diamond_bundle.polytope()
        assert canonical.is_subset_of(original) and original.is_subset_of(canonical)

    def test_empty_bundle(self):
        # x <= 1 and x >= 2
        empty = Bundle(np.eye(2), [1, 1], [-2, 0], [[0, 1]])
        assert empty.is_empty()
        with pytest.raises(EmptySetError):
            empty.get_canonical()

    def test_unbounded_direction(self):
        bundle = Bundle([[1, 0], [0, 1], [1, 1]], [1, np.inf, np.inf], [0, 0, 0], [[0, 1]])
        with pytest.raises(UnboundedError):
            bundle.get_canonical()


class TestSplit:

    def test_split_bounds_magnitudes(self):
        box = Bundle.from_box([0, 0], [4, 1])
        pieces = box.split(2.0)

        assert len(pieces) == 4
        for piece in pieces:
            assert np.all(piece.magnitudes() <= 0.75 * 2.0 + 1e-12)
            assert np.array_equal(piece.template, box.template)

        intervals = sorted((-piece.offset_minus[0], piece.offset_plus[0]) for piece in pieces)
        assert np.allclose(intervals, [[0, 1], [1, 2], [2, 3], [3, 4]])

    def test_split_covers_the_bundle(self, diamond_bundle, sampler):
        pieces = diamond_bundle.split(0.5)
        for piece in pieces:
            assert np.all(piece.magnitudes() <= 0.375 + 1e-12)
            assert piece.polytope().is_subset_of(diamond_bundle.polytope())

        polytopes = [piece.polytope() for piece in pieces]
        for point in sampler(diamond_bundle):
            assert any(p.contains_point(point, tol=1e-9) for p in polytopes)

    def test_split_ratio(self):
        box = Bundle.from_box([0], [4])
        assert len(box.split(4.0, ratio=1.0)) == 1
        assert len(box.split(2.0, ratio=1.0)) == 2

    def test_no_split_needed(self, square):
        assert square.split(10.0) == [square]
        assert square.split(np.inf) == [square]

    def test_invalid_arguments(self, square):
        with pytest.raises(ValueError):
            square.split(0.0)
        with pytest.raises(ValueError):
            square.split(1.0, ratio=-1)

    def test_infinite_offsets(self):
        bundle = Bundle(np.eye(2), [np.inf, 1], [0, 0], [[0, 1]])
        with pytest.raises(ValueError):
            bundle.split(1.0)


class TestIntersect:

    def test_parallel_constraints_tighten_offsets(self):
        box = Bundle.from_box([0, 0], [2, 2])
        # 2x <= 2 and -x <= -0.5
        result = box.intersect_with(Polytope([[2, 0], [-1, 0]], [2, -0.5]))

        assert np.allclose(result.offset_plus, [1, 2])
        assert np.allclose(result.offset_minus, [-0.5, 0])
        assert result.constraint_directions.shape == (0, 2)

    def test_other_constraints_become_assumptions(self):
        box = Bundle.from_box([0, 0], [2, 2])
        result = box.intersect_with(Polytope([[1, 1]], [1]))

        assert result.size == box.size
        assert result.constraint_directions.shape == (1, 2)
        assert result.polytope().maximize([1, 1]).optimum == pytest.approx(1.0)

        canonical = result.get_canonical()
        assert np.allclose(canonical.offset_plus, [1, 1])
        assert canonical.constraint_directions.shape == (1, 2)

    def test_dimension_mismatch(self, square):
        with pytest.raises(ValueError):
            square.intersect_with(Polytope.from_box([0], [1]))


class TestDecompose:

    @pytest.fixture
    def skewed(self):
        directions = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, -1.0]])
        return Bundle(directions, [1, 1, 2, 1], [0, 0, 0, 1], [[0, 2], [1, 3]])

    def _score(self, bundle, weight):
        distances = offset_distances(bundle.directions, bundle.offset_plus, bundle.offset_minus)
        return template_score(bundle.template, distances, bundle.proximity, weight)

    @pytest.mark.parametrize("weight", [0.0, 0.5, 1.0])
    def test_score_does_not_increase(self, skewed, weight):
        decomposed = skewed.decompose(weight, 50, seed=1)
        assert self._score(decomposed, weight) <= self._score(skewed, weight)

    def test_rows_stay_admissible(self, skewed):
        decomposed = skewed.decompose(0.0, 100, seed=3)
        for row in decomposed.template:
            assert is_basis(decomposed.directions[row])

    def test_orthogonality_is_reached(self, skewed):
        decomposed = skewed.decompose(0.0, 500, seed=0)
        assert self._score(decomposed, 0.0) == pytest.approx(0.0)

    def test_directions_and_offsets_are_unchanged(self, skewed):
        decomposed = skewed.decompose(0.5, 20, seed=2)
        assert np.array_equal(decomposed.directions, skewed.directions)
        assert np.array_equal(decomposed.offset_plus, skewed.offset_plus)
        assert np.array_equal(decomposed.offset_minus, skewed.offset_minus)

    def test_seed_reproducibility(self, skewed):
        first = skewed.decompose(0.3, 30, seed=5)
        second = skewed.decompose(0.3, 30, seed=5)
        assert np.array_equal(first.template, second.template)

    def test_invalid_weight(self, skewed):
        with pytest.raises(ValueError):
            skewed.decompose(1.5, 10)

    def test_shared_generator(self, skewed):
        rng = np.random.default_rng(5)
        first = skewed.decompose(0.3, 30, seed=rng)
        assert np.array_equal(first.template, skewed.decompose(0.3, 30, seed=5).template)

        # a shared generator keeps drawing new mutations
        state = rng.bit_generator.state
        skewed.decompose(0.3, 30, seed=rng)
        assert rng.bit_generator.state != state
