"""
Tests for parallelotopes and their generator functions.
"""

import numpy as np
import pytest
import sympy as sp

from BundleReach import EmptySetError, Parallelotope, SingularBasisError
from BundleReach.bernstein import symbol_vector


class TestParallelotope:

    def test_singular_basis(self):
        with pytest.raises(SingularBasisError):
            Parallelotope([[1, 0], [2, 0]], [0, 0], [1, 1])

    def test_singular_basis_is_a_linalg_error(self):
        with pytest.raises(np.linalg.LinAlgError):
            Parallelotope([[1, 1], [1, 1]], [0, 0], [1, 1])

    def test_box(self):
        # x in [0, 1], y in [2, 3]
        box = Parallelotope(np.eye(2), [0, -2], [1, 3])

        assert np.allclose(box.base_vertex, [0, 2])
        assert np.allclose(box.lengths, [1, 1])
        assert np.allclose(box.generator_matrix(), np.eye(2))

    def test_vertices(self):
        box = Parallelotope(np.eye(2), [0, -2], [1, 3])
        vertices = {tuple(v) for v in np.round(box.vertices(), 9) + 0.0}
        assert vertices == {(0.0, 2.0), (1.0, 2.0), (0.0, 3.0), (1.0, 3.0)}

    def test_rotated(self):
        # 0 <= x + y <= 2, -1 <= x - y <= 1
        rotated = Parallelotope([[1, 1], [1, -1]], [0, 1], [2, 1])

        assert np.allclose(rotated.base_vertex, [-0.5, 0.5])
        assert np.allclose(rotated.lengths, [np.sqrt(2), np.sqrt(2)])
        for vertex in rotated.vertices():
            assert rotated.polytope().contains_point(vertex, tol=1e-9)

    def test_flat_parallelotope(self):
        # x + y in [0, 2], x - y = 0
        flat = Parallelotope([[1, 1], [1, -1]], [0, 0], [2, 0])
        assert flat.lengths[1] == 0

        alpha = symbol_vector("a", 2)
        generator = flat.generator_function(alpha)
        assert alpha[1] not in set().union(*(g.free_symbols for g in generator))

    def test_empty_interval(self):
        # x in [2, 1]
        with pytest.raises(EmptySetError):
            Parallelotope(np.eye(2), [-2, 0], [1, 1])

    def test_round_off_width_is_flat(self):
        box = Parallelotope(np.eye(2), [0, -1], [1, 1 - 1e-12])
        assert box.lengths[1] == 0
        assert np.allclose(box.versors, np.eye(2))

    def test_generator_function_maps_unit_box_onto_parallelotope(self):
        rotated = Parallelotope([[1, 1], [1, -1]], [0, 1], [2, 1])
        alpha = symbol_vector("a", 2)
        generator = rotated.generator_function(alpha)

        for values in [(0, 0), (1, 0), (0, 1), (1, 1), (0.3, 0.8)]:
            point = np.array([float(g.subs(dict(zip(alpha, values)))) for g in generator])
            assert rotated.polytope().contains_point(point, tol=1e-9)

        top = np.array([float(g.subs({alpha[0]: 1, alpha[1]: 0})) for g in generator])
        assert top.sum() == pytest.approx(2.0)

    def test_generator_function_arity(self):
        box = Parallelotope(np.eye(2), [0, 0], [1, 1])
        with pytest.raises(ValueError):
            box.generator_function(sp.symbols('a b c'))

    def test_polytope(self):
        box = Parallelotope(np.eye(2), [0, -2], [1, 3])
        polytope = box.polytope()
        assert polytope.size == 4
        assert np.allclose(polytope.b, [1, 3, 0, -2])
