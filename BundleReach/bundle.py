"""
Bundles of parallelotopes.

A bundle is a set of directions with upper and lower offsets together with a
template matrix. Each template row selects d linearly independent directions
that, with their offsets, define a parallelotope; the bundle denotes the
intersection of all of them, i.e., the polytope

    {x : -offset_minus[i] <= directions[i] . x <= offset_plus[i] for all i}

possibly restricted further by assumption constraints.
"""

import logging
from typing import List, Sequence, Union

import numpy as np
import sympy as sp

from .coefficients import MaxCoeffFinder, ParamMaxCoeffFinder
from .decompose import optimize_template
from .exceptions import BundleConstructionError, EmptySetError, UnboundedError
from .parallelotope import Parallelotope
from .polytope import OptimizationStatus, Polytope
from .transform import TransformationMode, transform_offsets
from .utils import are_parallel, offset_distances, proximity_matrix

logger = logging.getLogger(__name__)

# default ratio of the maximal magnitude used by bundle splits
SPLIT_MAGNITUDE_RATIO = 0.75


def _construction_error(message: str) -> BundleConstructionError:
    logger.error(message)
    return BundleConstructionError(message)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Bundle:
    """
    A bundle of parallelotopes. Bundles are immutable: all the operations
    return new bundles.
    """

    def __init__(self, directions: np.ndarray, offset_plus: np.ndarray,
                 offset_minus: np.ndarray, template: np.ndarray,
                 constraint_directions: np.ndarray = None,
                 constraint_offsets: np.ndarray = None):
        """
        :param directions: A numpy array of shape (m, d) of directions.
        :param offset_plus: A numpy array of shape (m,) of upper offsets.
        :param offset_minus: A numpy array of shape (m,) of lower offsets, i.e.,
                             offset_minus[i] bounds -directions[i] . x.
        :param template: An integer array of shape (t, d); each row lists the
                         indices of the directions of one parallelotope.
        :param constraint_directions: Optional array of shape (k, d) of assumption normals.
        :param constraint_offsets: Optional array of shape (k,) of assumption offsets.
        """
        directions = np.array(directions, dtype=float)
        if directions.size == 0:
            raise _construction_error("Bundle: directions must be non empty")
        directions = np.atleast_2d(directions)
        if np.any(np.linalg.norm(directions, axis=1) == 0):
            raise _construction_error("Bundle: directions must be non-null vectors")

        m, d = directions.shape

        offset_plus = np.array(offset_plus, dtype=float).reshape(-1)
        offset_minus = np.array(offset_minus, dtype=float).reshape(-1)
        if offset_plus.shape[0] != m:
            raise _construction_error("Bundle: directions and offset_plus must have the same size")
        if offset_minus.shape[0] != m:
            raise _construction_error("Bundle: directions and offset_minus must have the same size")

        if any(np.ndim(row) != 1 or len(row) != d for row in template):
            raise _construction_error(f"Bundle: template must have {d} columns")
        template = np.array(template, dtype=int)
        if template.size == 0:
            raise _construction_error("Bundle: template must be non empty")
        if template.ndim != 2 or template.shape[1] != d:
            raise _construction_error(f"Bundle: template must have {d} columns")
        if np.any(template < 0) or np.any(template >= m):
            raise _construction_error(f"Bundle: template indices must be in [0, {m})")

        if constraint_directions is None:
            constraint_directions = np.zeros((0, d))
            constraint_offsets = np.zeros(0)
        constraint_directions = np.array(constraint_directions, dtype=float).reshape(-1, d)
        constraint_offsets = np.array(constraint_offsets, dtype=float).reshape(-1)
        if constraint_directions.shape[0] != constraint_offsets.shape[0]:
            raise _construction_error("Bundle: constraint directions and offsets must have the same size")

        self._directions = _readonly(directions)
        self._offset_plus = _readonly(offset_plus)
        self._offset_minus = _readonly(offset_minus)
        self._template = _readonly(template)
        self._constraint_directions = _readonly(constraint_directions)
        self._constraint_offsets = _readonly(constraint_offsets)

        self._proximity = _readonly(proximity_matrix(directions))

    @classmethod
    def from_box(cls, lower: Sequence[float], upper: Sequence[float]) -> 'Bundle':
        """
        The box {x : lower <= x <= upper} as a bundle of axis directions
        with a single template row.
        """
        lower = np.asarray(lower, dtype=float)
        upper = np.asarray(upper, dtype=float)
        if lower.shape != upper.shape or lower.ndim != 1:
            raise ValueError("lower and upper must be vectors of the same length")

        d = len(lower)
        return cls(np.eye(d), upper, -lower, [list(range(d))])

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def dim(self) -> int:
        return self._directions.shape[1]

    @property
    def size(self) -> int:
        """Number of directions."""
        return self._directions.shape[0]

    @property
    def num_of_templates(self) -> int:
        return self._template.shape[0]

    @property
    def directions(self) -> np.ndarray:
        return self._directions

    @property
    def offset_plus(self) -> np.ndarray:
        return self._offset_plus

    @property
    def offset_minus(self) -> np.ndarray:
        return self._offset_minus

    @property
    def template(self) -> np.ndarray:
        return self._template

    @property
    def proximity(self) -> np.ndarray:
        return self._proximity

    @property
    def constraint_directions(self) -> np.ndarray:
        return self._constraint_directions

    @property
    def constraint_offsets(self) -> np.ndarray:
        return self._constraint_offsets

    def _with(self, offset_plus=None, offset_minus=None, template=None) -> 'Bundle':
        return Bundle(self._directions,
                      self._offset_plus if offset_plus is None else offset_plus,
                      self._offset_minus if offset_minus is None else offset_minus,
                      self._template if template is None else template,
                      self._constraint_directions, self._constraint_offsets)

    def __reduce__(self):
        # rebuild through the constructor so that arrays are read-only again
        return (Bundle, (self._directions, self._offset_plus, self._offset_minus,
                         self._template, self._constraint_directions,
                         self._constraint_offsets))

    def __repr__(self):
        return (f"Bundle(dim={self.dim}, directions={self.size}, "
                f"templates={self.num_of_templates})")

    # =========================================================================
    # Conversions
    # =========================================================================

    def polytope(self) -> Polytope:
        """
        The polytope represented by the bundle.

        :return: The half-space system [D; -D; C] x <= [offset_plus; offset_minus; c]
        """
        A = np.vstack([self._directions, -self._directions, self._constraint_directions])
        b = np.concatenate([self._offset_plus, self._offset_minus, self._constraint_offsets])
        return Polytope(A, b)

    def get_parallelotope(self, i: int) -> Parallelotope:
        """
        Get the parallelotope of the i-th template row.

        :raises IndexError: if i is not a template row index
        :raises SingularBasisError: if the row directions are not a basis
        :raises EmptySetError: if the row offsets bound an empty interval
        """
        if not 0 <= i < self.num_of_templates:
            raise IndexError(f"Bundle.get_parallelotope: i must be between 0 and "
                             f"{self.num_of_templates - 1}")

        row = self._template[i]
        return Parallelotope(self._directions[row], self._offset_minus[row],
                             self._offset_plus[row])

    def is_empty(self) -> bool:
        return self.polytope().is_empty()

    def magnitudes(self) -> np.ndarray:
        """
        Width of the strip between the two offsets of each direction,
        normalized by the direction norm.
        """
        norms = np.linalg.norm(self._directions, axis=1)
        return (self._offset_plus + self._offset_minus) / norms

    # =========================================================================
    # Operations
    # =========================================================================

    def get_canonical(self) -> 'Bundle':
        """
        Push every offset against the polytope represented by the bundle.

        :raises EmptySetError: if the bundle is empty
        :raises UnboundedError: if some direction is unbounded
        """
        polytope = self.polytope()

        offset_plus = np.empty(self.size)
        offset_minus = np.empty(self.size)
        for i, direction in enumerate(self._directions):
            for offsets, objective in ((offset_plus, direction), (offset_minus, -direction)):
                result = polytope.maximize(objective)
                if result.status == OptimizationStatus.INFEASIBLE:
                    raise EmptySetError("Cannot canonize an empty bundle", status=result.status)
                if result.status == OptimizationStatus.UNBOUNDED:
                    raise UnboundedError(f"Direction {objective.tolist()} is unbounded",
                                         status=result.status)
                offsets[i] = result.optimum

        return self._with(offset_plus, offset_minus)

    def intersect_with(self, polytope: Polytope) -> 'Bundle':
        """
        Intersect the bundle with a polytope.

        Constraints parallel to a bundle direction tighten the corresponding
        offset; the remaining ones become assumption constraints.
        """
        if polytope.dim != self.dim:
            raise ValueError("Bundle and polytope live in spaces of different dimension")

        offset_plus = self._offset_plus.copy()
        offset_minus = self._offset_minus.copy()
        extra_directions = []
        extra_offsets = []

        for a, b in zip(polytope.A, polytope.b):
            for i, direction in enumerate(self._directions):
                orientation = are_parallel(a, direction)
                if orientation == 0:
                    continue

                scaled = b * np.linalg.norm(direction) / np.linalg.norm(a)
                if orientation > 0:
                    offset_plus[i] = min(offset_plus[i], scaled)
                else:
                    offset_minus[i] = min(offset_minus[i], scaled)
                break
            else:
                extra_directions.append(a)
                extra_offsets.append(b)

        constraint_directions = self._constraint_directions
        constraint_offsets = self._constraint_offsets
        if extra_directions:
            constraint_directions = np.vstack([constraint_directions, extra_directions])
            constraint_offsets = np.concatenate([constraint_offsets, extra_offsets])

        return Bundle(self._directions, offset_plus, offset_minus, self._template,
                      constraint_directions, constraint_offsets)

    def split(self, max_magnitude: float,
              ratio: float = SPLIT_MAGNITUDE_RATIO) -> List['Bundle']:
        """
        Split the bundle in a list of smaller bundles.

        Direction intervals wider than ratio * max_magnitude are recursively
        bisected.

        :param max_magnitude: The maximal magnitude of the resulting bundles
        :param ratio: The fraction of max_magnitude actually used as bound
        :return: Bundles whose union is the current bundle and whose
                 magnitudes are at most ratio * max_magnitude
        """
        if max_magnitude <= 0 or ratio <= 0:
            raise ValueError("max_magnitude and ratio must be positive")

        bound = ratio * max_magnitude
        magnitudes = self.magnitudes()
        if np.all(magnitudes <= bound):
            return [self]
        if not np.all(np.isfinite(magnitudes)):
            raise ValueError("Cannot split a bundle with infinite offsets")

        norms = np.linalg.norm(self._directions, axis=1)
        pieces = []
        _bisect(self._offset_plus.copy(), self._offset_minus.copy(), norms, bound, pieces)

        logger.debug("Bundle split in %d pieces", len(pieces))

        return [self._with(offset_plus, offset_minus) for offset_plus, offset_minus in pieces]

    def decompose(self, weight: float, max_iterations: int,
                  seed: Union[int, np.random.Generator] = None) -> 'Bundle':
        """
        Look for a better template by randomized local search.

        :param weight: Weight in [0, 1] of the offset distance in the
                       template score (1 - weight goes to orthogonality)
        :param max_iterations: Number of randomly generated templates
        :param seed: Seed of the random generator, or a generator to draw from
        :return: A bundle with the same directions and offsets and the best
                 template found
        """
        rng = np.random.default_rng(seed)
        distances = offset_distances(self._directions, self._offset_plus, self._offset_minus)

        best = optimize_template(self._template, self._directions, distances,
                                 self._proximity, weight, max_iterations, rng)

        return self._with(template=best)

    def transform(self, variables: Sequence[sp.Symbol], dynamics: Sequence[sp.Expr],
                  max_finder: MaxCoeffFinder = None,
                  mode: TransformationMode = TransformationMode.OFO,
                  n_jobs: int = 1) -> 'Bundle':
        """
        Over-approximate the image of the bundle under a polynomial map.

        :param variables: The variables appearing in the dynamics
        :param dynamics: The update expression of each variable
        :param max_finder: The Bernstein coefficient finder; a plain
                           MaxCoeffFinder if None
        :param mode: OFO or AFO
        :param n_jobs: Number of template rows processed in parallel
        :return: A bundle with the same directions and template bounding the image
        """
        if max_finder is None:
            max_finder = MaxCoeffFinder()
        mode = TransformationMode(mode)

        offset_plus, offset_minus = transform_offsets(self, variables, dynamics,
                                                      max_finder, mode, n_jobs)

        result = Bundle(self._directions, offset_plus, offset_minus, self._template)
        if mode == TransformationMode.OFO:
            return result.get_canonical()

        return result

    def parametric_transform(self, variables: Sequence[sp.Symbol],
                             parameters: Sequence[sp.Symbol],
                             dynamics: Sequence[sp.Expr], parameter_set: Polytope,
                             mode: TransformationMode = TransformationMode.OFO,
                             n_jobs: int = 1) -> 'Bundle':
        """
        Over-approximate the image of the bundle under a parametric
        polynomial map for all the parameter values in parameter_set.
        """
        max_finder = ParamMaxCoeffFinder(parameters, parameter_set)
        return self.transform(variables, dynamics, max_finder, mode, n_jobs)


def _bisect(offset_plus: np.ndarray, offset_minus: np.ndarray, norms: np.ndarray,
            bound: float, pieces: list):
    magnitudes = (offset_plus + offset_minus) / norms
    exceeding = np.flatnonzero(magnitudes > bound)
    if len(exceeding) == 0:
        pieces.append((offset_plus, offset_minus))
        return

    i = exceeding[0]

    # midpoint of [-offset_minus[i], offset_plus[i]]
    middle = (offset_plus[i] - offset_minus[i]) / 2

    lower_half = offset_plus.copy()
    lower_half[i] = middle
    _bisect(lower_half, offset_minus, norms, bound, pieces)

    upper_half = offset_minus.copy()
    upper_half[i] = -middle
    _bisect(offset_plus, upper_half, norms, bound, pieces)
