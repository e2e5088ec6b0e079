"""
Image computation of bundles under polynomial and rational maps.

Every template row of a bundle defines a parallelotope. Its generator
function is composed with the dynamics and, for each direction to be bounded,
the composition is projected on the direction and converted into the
Bernstein basis. The maxima of the Bernstein coefficients bound the image of
the parallelotope along the direction, and the minimum over all the
parallelotopes bounds the image of the bundle.

Rows are processed independently and in parallel; they only share the
per-direction running minima.
"""

import logging
import threading
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np
import sympy as sp
from joblib import Parallel, delayed

from .bernstein import bernstein_coefficients, substitute, symbol_vector
from .coefficients import MaxCoeffFinder
from .exceptions import UnboundedError

logger = logging.getLogger(__name__)


class TransformationMode(Enum):
    """
    AFO: the image of every parallelotope is bounded along all the bundle directions.
    OFO: the image of every parallelotope is bounded along its own directions only.
    """
    AFO = 'AFO'
    OFO = 'OFO'


class MinCell:
    """
    A running minimum that can be updated concurrently.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value = np.inf

    def update(self, value: float):
        with self._lock:
            if value < self._value:
                self._value = value

    def read(self) -> float:
        with self._lock:
            return self._value

    def __float__(self):
        return self.read()


def compute_bernstein_coefficients(alpha: Sequence[sp.Symbol], composed: Sequence[sp.Expr],
                                   direction: np.ndarray) -> List[sp.Expr]:
    """
    Bernstein coefficients of the projection of a vector function on a direction.

    :param alpha: The free variables ranging over [0, 1]
    :param composed: The dynamics composed with a generator function
    :param direction: The projection direction
    :return: The Bernstein coefficients of sum_k direction_k * composed_k
    """
    projection = sp.Add(*(sp.Float(float(c)) * f for c, f in zip(direction, composed) if c != 0))
    return bernstein_coefficients(alpha, projection)


def _minimize_coefficients(bundle, row: int, variables: Sequence[sp.Symbol],
                           dynamics: Sequence[sp.Expr], alpha: Sequence[sp.Symbol],
                           max_finder: MaxCoeffFinder, mode: TransformationMode,
                           upper: List[MinCell], lower: List[MinCell]):
    parallelotope = bundle.get_parallelotope(row)
    generator = parallelotope.generator_function(alpha)
    composed = substitute(dynamics, variables, generator)

    if mode == TransformationMode.OFO:
        to_bound = bundle.template[row]
    else:
        to_bound = range(bundle.size)

    for dir_idx in to_bound:
        coefficients = compute_bernstein_coefficients(alpha, composed, bundle.directions[dir_idx])
        max_coeffs = max_finder.find_max_coeffs(coefficients)

        upper[dir_idx].update(max_coeffs.p)
        lower[dir_idx].update(max_coeffs.m)

    logger.debug("Template row %d: bounded %d directions", row, len(to_bound))


def transform_offsets(bundle, variables: Sequence[sp.Symbol], dynamics: Sequence[sp.Expr],
                      max_finder: MaxCoeffFinder, mode: TransformationMode,
                      n_jobs: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the offsets bounding the image of a bundle.

    :param bundle: The bundle to be transformed
    :param variables: The variables appearing in the dynamics
    :param dynamics: One expression per variable
    :param max_finder: The Bernstein coefficient finder
    :param mode: The transformation mode
    :param n_jobs: The number of template rows processed in parallel. -1 means
                   using all available CPUs.
    :return: The new upper and lower offsets. Directions bounded by no
             parallelotope get infinite offsets.
    :raises UnboundedError: if a direction of a template row has an infinite offset
    """
    if len(variables) != bundle.dim or len(dynamics) != bundle.dim:
        raise ValueError(f"Expected {bundle.dim} variables and dynamics, got "
                         f"{len(variables)} and {len(dynamics)}")

    row_directions = np.unique(bundle.template)
    unbounded = [int(i) for i in row_directions
                 if not (np.isfinite(bundle.offset_plus[i]) and np.isfinite(bundle.offset_minus[i]))]
    if unbounded:
        raise UnboundedError(f"Directions {unbounded} of the template rows have infinite offsets")

    mode = TransformationMode(mode)
    alpha = symbol_vector("_alpha", bundle.dim)
    dynamics = [sp.sympify(f) for f in dynamics]

    upper = [MinCell() for _ in range(bundle.size)]
    lower = [MinCell() for _ in range(bundle.size)]

    # threads share the min cells
    Parallel(n_jobs=n_jobs, require='sharedmem')(
        delayed(_minimize_coefficients)(bundle, row, variables, dynamics, alpha,
                                        max_finder, mode, upper, lower)
        for row in range(bundle.num_of_templates)
    )

    return (np.array([cell.read() for cell in upper]),
            np.array([cell.read() for cell in lower]))
