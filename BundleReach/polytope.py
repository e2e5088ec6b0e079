"""
Polytopes as systems of linear inequalities.

A Polytope represents the set {x : A x <= b}. All the optimization problems
on polytopes are solved with the HiGHS solvers shipped with scipy.
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

import numpy as np
import sympy as sp
from scipy.optimize import linprog
from scipy.spatial import ConvexHull, QhullError

from .exceptions import OptimizationError

logger = logging.getLogger(__name__)


class OptimizationStatus(Enum):
    OPTIMUM_AVAILABLE = 'optimum_available'
    UNBOUNDED = 'unbounded'
    INFEASIBLE = 'infeasible'


@dataclass(frozen=True)
class OptimizationResult:
    """
    Outcome of a linear program.

    :param status: The optimization status
    :param optimum: The optimal objective value. It is +/-inf for unbounded
                    problems and -inf (maximization) or +inf (minimization)
                    for infeasible ones.
    :param optimizer: A point realizing the optimum, or None
    """
    status: OptimizationStatus
    optimum: float
    optimizer: np.ndarray = None

    @property
    def is_optimal(self) -> bool:
        return self.status == OptimizationStatus.OPTIMUM_AVAILABLE


# linprog status codes
_LP_OPTIMAL = 0
_LP_INFEASIBLE = 2
_LP_UNBOUNDED = 3


class Polytope:
    """
    A (possibly unbounded or empty) polyhedron {x : A x <= b}.
    """

    def __init__(self, A: np.ndarray, b: np.ndarray):
        """
        :param A: A numpy array of shape (k, d) whose rows are the constraint normals.
        :param b: A numpy array of shape (k,) with the constraint offsets.
        """
        A = np.atleast_2d(np.array(A, dtype=float))
        b = np.array(b, dtype=float).reshape(-1)

        if A.shape[0] != b.shape[0]:
            raise ValueError(f"A has {A.shape[0]} rows but b has {b.shape[0]} entries")

        # constraints with +inf offsets are vacuous
        finite = b < np.inf
        A = A[finite]
        b = b[finite]

        self.A = A
        self.b = b
        self.A.setflags(write=False)
        self.b.setflags(write=False)

    @classmethod
    def from_box(cls, lower: Sequence[float], upper: Sequence[float]) -> 'Polytope':
        """
        The box {x : lower <= x <= upper}.
        """
        lower = np.asarray(lower, dtype=float)
        upper = np.asarray(upper, dtype=float)
        if lower.shape != upper.shape or lower.ndim != 1:
            raise ValueError("lower and upper must be vectors of the same length")

        eye = np.eye(len(lower))
        return cls(np.vstack([eye, -eye]), np.concatenate([upper, -lower]))

    @property
    def dim(self) -> int:
        return self.A.shape[1]

    @property
    def size(self) -> int:
        """Number of constraints."""
        return self.A.shape[0]

    def __len__(self):
        return self.size

    def __eq__(self, other):
        if not isinstance(other, Polytope):
            return NotImplemented
        return (self.A.shape == other.A.shape and np.array_equal(self.A, other.A)
                and np.array_equal(self.b, other.b))

    def __repr__(self):
        return f"Polytope(dim={self.dim}, constraints={self.size})"

    # =========================================================================
    # Linear Programming
    # =========================================================================

    def _solve(self, c: np.ndarray):
        if self.size == 0:
            return linprog(c, bounds=[(None, None)] * self.dim, method='highs')
        return linprog(c, A_ub=self.A, b_ub=self.b,
                       bounds=[(None, None)] * self.dim, method='highs')

    def optimize(self, direction: np.ndarray, maximize: bool = True) -> OptimizationResult:
        """
        Optimize a linear functional over the polytope.

        :param direction: The objective vector of length dim
        :param maximize: If True maximize direction . x, otherwise minimize it
        :return: The optimization result
        """
        direction = np.asarray(direction, dtype=float).reshape(-1)
        if direction.shape[0] != self.dim:
            raise ValueError(f"Objective has length {direction.shape[0]}, expected {self.dim}")

        c = -direction if maximize else direction
        res = self._solve(c)

        if res.status not in (_LP_OPTIMAL, _LP_INFEASIBLE, _LP_UNBOUNDED) \
                and 'unbounded' in str(res.message).lower():
            # HiGHS presolve may report "unbounded or infeasible"
            if self.is_empty():
                return OptimizationResult(OptimizationStatus.INFEASIBLE,
                                          -np.inf if maximize else np.inf)
            return OptimizationResult(OptimizationStatus.UNBOUNDED,
                                      np.inf if maximize else -np.inf)

        if res.status == _LP_OPTIMAL:
            # adding 0.0 turns -0.0 into 0.0
            optimum = (-res.fun if maximize else res.fun) + 0.0
            return OptimizationResult(OptimizationStatus.OPTIMUM_AVAILABLE,
                                      float(optimum), np.asarray(res.x))
        if res.status == _LP_UNBOUNDED:
            return OptimizationResult(OptimizationStatus.UNBOUNDED,
                                      np.inf if maximize else -np.inf)
        if res.status == _LP_INFEASIBLE:
            return OptimizationResult(OptimizationStatus.INFEASIBLE,
                                      -np.inf if maximize else np.inf)

        logger.warning("LP solver failed: %s", res.message)
        raise OptimizationError(f"LP solver failed: {res.message}", status=res.status)

    def maximize(self, direction: np.ndarray) -> OptimizationResult:
        return self.optimize(direction, maximize=True)

    def minimize(self, direction: np.ndarray) -> OptimizationResult:
        return self.optimize(direction, maximize=False)

    def maximize_expression(self, symbols: Sequence[sp.Symbol],
                            expression: sp.Expr) -> OptimizationResult:
        """
        Maximize a symbolic expression that is linear in symbols.

        The i-th symbol is interpreted as the i-th coordinate of the polytope.

        :param symbols: The symbols spanning the polytope space
        :param expression: A sympy expression linear in symbols
        :return: The optimization result
        """
        symbols = list(symbols)
        if len(symbols) != self.dim:
            raise ValueError(f"Got {len(symbols)} symbols for a {self.dim}-dimensional polytope")

        expression = sp.expand(sp.sympify(expression))
        try:
            poly = sp.Poly(expression, *symbols)
        except sp.PolynomialError as e:
            raise ValueError(f"Expression {expression} is not polynomial in {symbols}") from e
        if poly.total_degree() > 1:
            raise ValueError(f"Expression {expression} is not linear in {symbols}")

        try:
            c = np.array([float(poly.coeff_monomial(s)) for s in symbols])
            constant = float(poly.coeff_monomial(1))
        except TypeError as e:
            raise ValueError(f"Expression {expression} has free symbols other than {symbols}") from e

        result = self.maximize(c)
        return OptimizationResult(result.status, result.optimum + constant, result.optimizer)

    # =========================================================================
    # Set Operations
    # =========================================================================

    def is_empty(self) -> bool:
        """Check whether the polytope has no points."""
        res = self._solve(np.zeros(self.dim))
        if res.status == _LP_OPTIMAL:
            return False
        if res.status == _LP_INFEASIBLE:
            return True
        # a null objective cannot be unbounded
        if 'infeasible' in str(res.message).lower():
            return True

        raise OptimizationError(f"LP solver failed: {res.message}", status=res.status)

    def contains_point(self, point: np.ndarray, tol: float = 1e-9) -> bool:
        point = np.asarray(point, dtype=float)
        return bool(np.all(self.A @ point <= self.b + tol))

    def is_subset_of(self, other: 'Polytope', tol: float = 1e-7) -> bool:
        """
        Check whether this polytope is contained in other.

        The check maximizes every constraint normal of other over this polytope.
        """
        if self.dim != other.dim:
            raise ValueError("Polytopes live in spaces of different dimension")

        for a, b in zip(other.A, other.b):
            result = self.maximize(a)
            if result.status == OptimizationStatus.INFEASIBLE:
                return True
            if result.status == OptimizationStatus.UNBOUNDED or result.optimum > b + tol:
                return False
        return True

    def intersect(self, other: 'Polytope') -> 'Polytope':
        if self.dim != other.dim:
            raise ValueError("Polytopes live in spaces of different dimension")
        return Polytope(np.vstack([self.A, other.A]), np.concatenate([self.b, other.b]))

    def get_simplified(self, tol: float = 1e-9) -> 'Polytope':
        """
        Remove redundant constraints.

        A constraint is redundant if the remaining ones already bound its
        normal by its offset.
        """
        keep = list(range(self.size))
        for i in range(self.size):
            others = [j for j in keep if j != i]
            if not others:
                continue
            reduced = Polytope(self.A[others], self.b[others])
            result = reduced.maximize(self.A[i])
            if result.is_optimal and result.optimum <= self.b[i] + tol:
                keep = others
            elif result.status == OptimizationStatus.INFEASIBLE:
                # the empty set is described by the other constraints
                keep = others

        return Polytope(self.A[keep], self.b[keep])

    def bounding_box(self) -> np.ndarray:
        """
        Axis-aligned bounding box of the polytope.

        :return: A numpy array of shape (2, D) with the lower and upper bounds
        """
        eye = np.eye(self.dim)
        lower = [self.minimize(e).optimum for e in eye]
        upper = [self.maximize(e).optimum for e in eye]
        return np.array([lower, upper])

    def projection_vertices(self, dims: Tuple[int, int] = (0, 1),
                            n_directions: int = 64) -> np.ndarray:
        """
        Vertices of the projection of the polytope onto two coordinates.

        The projection is the convex hull of the support points of
        n_directions directions in the selected plane; it is exact at the
        vertices touched by those directions, so it works for flat polytopes.

        :param dims: The two coordinates to project onto
        :param n_directions: Number of support directions
        :return: Array of shape (N, 2) of vertices in counter-clockwise order
        """
        points = []
        for theta in np.linspace(0, 2 * np.pi, n_directions, endpoint=False):
            direction = np.zeros(self.dim)
            direction[dims[0]] = np.cos(theta)
            direction[dims[1]] = np.sin(theta)
            result = self.maximize(direction)
            if result.status == OptimizationStatus.INFEASIBLE:
                return np.empty((0, 2))
            if result.status == OptimizationStatus.UNBOUNDED:
                raise OptimizationError("Cannot project an unbounded polytope",
                                        status=result.status)
            points.append(result.optimizer[list(dims)])

        points = np.unique(np.round(np.array(points), 12), axis=0)
        if len(points) < 3:
            return points

        try:
            hull = ConvexHull(points)
        except QhullError:
            # degenerate (segment-like) projection
            warnings.warn("Degenerate polytope projection; returning support points")
            return points
        return points[hull.vertices]
