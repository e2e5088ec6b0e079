import numpy as np
import pytest
import sympy as sp

from BundleReach import Bundle


@pytest.fixture
def xy():
    return sp.symbols('x y')


@pytest.fixture
def square():
    """The box [-1, 1]^2 as a single-template bundle."""
    return Bundle([[1, 0], [0, 1]], [1, 1], [1, 1], [[0, 1]])


@pytest.fixture
def diamond_bundle():
    """
    The intersection of the box [1, 2] x [0, 1] and of the rotated box
    0.5 <= x + y <= 2.5, 0.5 <= x - y <= 1.8.
    """
    directions = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, -1.0]])
    offset_plus = np.array([2.0, 1.0, 2.5, 1.8])
    offset_minus = np.array([-1.0, 0.0, -0.5, -0.5])
    return Bundle(directions, offset_plus, offset_minus, [[0, 1], [2, 3]])


def sample_points(bundle, n=200, seed=0):
    """Random points of a bounded bundle, drawn by rejection from its bounding box."""
    polytope = bundle.polytope()
    box = polytope.bounding_box()
    rng = np.random.default_rng(seed)
    candidates = rng.uniform(box[0], box[1], size=(20 * n, bundle.dim))
    points = [p for p in candidates if polytope.contains_point(p)]
    return np.array(points[:n])


@pytest.fixture
def sampler():
    return sample_points
