import numpy as np
import sympy as sp
from typing import List, Sequence

from .exceptions import EmptySetError, SingularBasisError
from .polytope import Polytope
from .utils import is_basis

# widths above -WIDTH_TOLERANCE are LP round-off on flat parallelotopes
WIDTH_TOLERANCE = 1e-9


class Parallelotope:
    """
    A parallelotope {x : -lower_bound <= L x <= upper_bound} where the rows
    of L form a basis.

    Parallelotopes are derived from a bundle and a template row; they are
    computed on demand and never modified.
    """

    def __init__(self, directions: np.ndarray, lower_bound: np.ndarray,
                 upper_bound: np.ndarray):
        """
        :param directions: A numpy array of shape (d, d) whose rows are the basis directions.
        :param lower_bound: A numpy array of shape (d,); lower_bound[i] bounds -directions[i] . x.
        :param upper_bound: A numpy array of shape (d,); upper_bound[i] bounds directions[i] . x.
        """
        directions = np.array(directions, dtype=float)
        lower_bound = np.array(lower_bound, dtype=float)
        upper_bound = np.array(upper_bound, dtype=float)

        if not is_basis(directions):
            raise SingularBasisError(f"Directions {directions.tolist()} do not form a basis")

        self.dim = directions.shape[0]
        self.directions = directions
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound

        # the base vertex lies on all the lower facets; the i-th generator
        # moves it onto the i-th upper facet
        inverse = np.linalg.inv(directions)
        self.base_vertex = inverse @ (-lower_bound)

        widths = upper_bound + lower_bound
        if np.any(widths < -WIDTH_TOLERANCE):
            raise EmptySetError(f"Parallelotope with negative widths {widths.tolist()} is empty")
        widths = np.maximum(widths, 0.0)

        self.lengths = np.zeros(self.dim)
        self.versors = np.zeros((self.dim, self.dim))
        for i in range(self.dim):
            column = inverse[:, i]
            column_norm = np.linalg.norm(column)
            self.lengths[i] = widths[i] * column_norm
            self.versors[i] = column / column_norm

    def generator_matrix(self) -> np.ndarray:
        """Rows are the generators lengths[i] * versors[i]."""
        return self.lengths[:, np.newaxis] * self.versors

    def generator_function(self, alpha: Sequence[sp.Symbol]) -> List[sp.Expr]:
        """
        Symbolic map from the unit hypercube onto the parallelotope.

        Returns the vector q + sum_i alpha_i * lengths_i * versors_i where q is
        the base vertex. Generators of null length are skipped.

        :param alpha: d symbols ranging over [0, 1]
        :return: A list of d sympy expressions in alpha
        """
        if len(alpha) != self.dim:
            raise ValueError(f"Expected {self.dim} free variables, got {len(alpha)}")

        generator = [sp.Float(q) for q in self.base_vertex]
        for i in range(self.dim):
            if self.lengths[i] == 0:
                continue
            vector = self.lengths[i] * self.versors[i]
            for j in range(self.dim):
                if vector[j] != 0:
                    generator[j] += alpha[i] * sp.Float(vector[j])

        return generator

    def polytope(self) -> Polytope:
        """The half-space representation of the parallelotope."""
        return Polytope(np.vstack([self.directions, -self.directions]),
                        np.concatenate([self.upper_bound, self.lower_bound]))

    def vertices(self) -> np.ndarray:
        """
        All the 2^d vertices of the parallelotope.

        :return: A numpy array of shape (2^d, d)
        """
        indices = np.arange(2**self.dim)[:, np.newaxis]
        bit_positions = np.arange(self.dim)[np.newaxis, :]
        selected = (indices >> bit_positions) & 1
        return self.base_vertex + selected @ self.generator_matrix()

    def __repr__(self):
        return (f"Parallelotope(base_vertex={self.base_vertex.tolist()}, "
                f"lengths={self.lengths.tolist()})")
