"""
Tests for the reachability driver and flowpipes.
"""

import numpy as np
import pytest
import sympy as sp

from BundleReach import (Bundle, Flowpipe, Model, Polytope, PolynomialDynamics,
                         TransformationMode)
from BundleReach.systems import parametric_sir_model, sir_model, van_der_pol_model


@pytest.fixture
def x():
    return sp.Symbol('x')


class TestFlowpipe:

    def test_bounding_box(self):
        flowpipe = Flowpipe([[Polytope.from_box([0, 0], [1, 1]),
                              Polytope.from_box([2, -1], [3, 0.5])]])
        assert np.allclose(flowpipe.bounding_box(0), [[0, -1], [3, 1]])
        assert flowpipe.dim == 2

    def test_empty_step(self):
        flowpipe = Flowpipe([[]])
        assert flowpipe.dim is None
        with pytest.raises(ValueError):
            flowpipe.bounding_box(0)


class TestModel:

    def test_identity(self, x):
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [1]))
        flowpipe = model.reach(3)

        assert len(flowpipe) == 4
        for step in flowpipe:
            assert len(step) == 1
            assert np.allclose(step[0].bounding_box(), [[0], [1]])

    def test_contraction(self, x):
        model = Model(PolynomialDynamics([x], [x / 2]), Bundle.from_box([-1], [1]))
        flowpipe = model.reach(4)

        for k, step in enumerate(flowpipe):
            assert np.allclose(step[0].bounding_box(), [[-0.5**k], [0.5**k]])

    def test_splitting(self, x):
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [4]),
                      max_magnitude=2.0)
        flowpipe = model.reach(2)

        # the initial set is split with ratio 1, the reached sets with ratio 0.75
        assert [len(step) for step in flowpipe] == [1, 2, 4]
        assert np.allclose(flowpipe.bounding_box(2), [[0], [4]])

    def test_empty_reached_set_stops_the_computation(self, x):
        model = Model(PolynomialDynamics([x], [x + 10]), Bundle.from_box([0], [1]),
                      assumptions=Polytope([[1]], [5]))
        flowpipe = model.reach(5)

        assert len(flowpipe) == 2
        assert flowpipe[1] == []

    def test_empty_initial_set(self, x):
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [1]),
                      assumptions=Polytope([[-1]], [-2]), mode=TransformationMode.AFO)
        flowpipe = model.reach(3)

        assert len(flowpipe) == 1
        assert flowpipe[0] == []

    def test_empty_bundle_has_no_image(self, x):
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [1]),
                      mode=TransformationMode.AFO)
        assert model.compute_next(Bundle([[1]], [1], [-2], [[0]])) == (None, [])

    def test_template_searches_share_a_generator(self):
        model = van_der_pol_model(decomposition_iterations=3, seed=0)
        state = model.rng.bit_generator.state
        model.compute_next(model.initial_set)
        assert model.rng.bit_generator.state != state

    def test_assumptions_constrain_the_initial_set(self, x):
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [4]),
                      assumptions=Polytope([[1]], [1]))
        flowpipe = model.reach(1)
        assert np.allclose(flowpipe.bounding_box(0), [[0], [1]])
        assert np.allclose(flowpipe.bounding_box(1), [[0], [1]])

    def test_progress_callback(self, x):
        calls = []
        model = Model(PolynomialDynamics([x], [x]), Bundle.from_box([0], [1]))
        model.reach(3, progress_callback=lambda step, steps: calls.append((step, steps)))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_invalid_arguments(self, x):
        dynamics = PolynomialDynamics([x], [x])
        with pytest.raises(ValueError):
            Model(dynamics, Bundle.from_box([0, 0], [1, 1]))
        with pytest.raises(ValueError):
            Model(dynamics, Bundle.from_box([0], [1]), assumptions=Polytope.from_box([0, 0], [1, 1]))
        with pytest.raises(ValueError):
            Model(dynamics, Bundle.from_box([0], [1]), max_magnitude=0)
        with pytest.raises(ValueError):
            Model(dynamics, Bundle.from_box([0], [1]), decomposition_weight=2)
        with pytest.raises(ValueError):
            Model(dynamics, Bundle.from_box([0], [1])).reach(-1)


class TestBenchmarks:

    @pytest.mark.parametrize("mode", [TransformationMode.AFO, TransformationMode.OFO])
    def test_sir_soundness(self, mode):
        model = sir_model(mode=mode)
        flowpipe = model.reach(5)
        assert len(flowpipe) == 6

        beta, gamma, dt = 0.34, 0.05, 0.1
        for s0 in (0.79, 0.8):
            for i0 in (0.19, 0.2):
                s, i, r = s0, i0, 0.0
                for k in range(1, 6):
                    s, i, r = (s - beta * s * i * dt,
                               i + (beta * s * i - gamma * i) * dt,
                               r + gamma * i * dt)
                    assert any(p.contains_point([s, i, r], tol=1e-9) for p in flowpipe[k])

    def test_parametric_sir(self):
        flowpipe = parametric_sir_model().reach(3)
        assert len(flowpipe) == 4
        assert all(len(step) == 1 for step in flowpipe)

    def test_decomposition(self):
        model = van_der_pol_model(decomposition_iterations=5, seed=0)
        flowpipe = model.reach(3)
        assert len(flowpipe) == 4
        assert all(len(step) == 1 for step in flowpipe)

        # every reach call restarts the template search from the seed
        assert np.allclose(model.reach(3).bounding_box(3), flowpipe.bounding_box(3))

    def test_parallel_bundles(self):
        model = van_der_pol_model(max_magnitude=0.2)
        sequential = model.reach(2, n_jobs=1)
        parallel = model.reach(2, n_jobs=2)

        assert [len(step) for step in sequential] == [len(step) for step in parallel]
        assert np.allclose(sequential.bounding_box(2), parallel.bounding_box(2))
