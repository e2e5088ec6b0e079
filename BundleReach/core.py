import logging
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from .bundle import Bundle
from .dynamics import Dynamics
from .exceptions import EmptySetError
from .polytope import Polytope
from .transform import TransformationMode

logger = logging.getLogger(__name__)


class Flowpipe:
    """
    The sequence of the reached sets. Every step is a union of polytopes.
    """

    def __init__(self, steps: List[List[Polytope]] = None):
        self.steps = [list(step) for step in steps] if steps is not None else []

    def append(self, step: List[Polytope]):
        self.steps.append(list(step))

    def __len__(self):
        return len(self.steps)

    def __getitem__(self, i: int) -> List[Polytope]:
        return self.steps[i]

    def __iter__(self) -> Iterator[List[Polytope]]:
        return iter(self.steps)

    @property
    def dim(self) -> Optional[int]:
        for step in self.steps:
            for polytope in step:
                return polytope.dim
        return None

    def bounding_box(self, i: int) -> np.ndarray:
        """
        Bounding box of the i-th step.

        :return: A numpy array of shape (2, D) with the lower and upper bounds
        """
        boxes = [polytope.bounding_box() for polytope in self.steps[i]]
        if not boxes:
            raise ValueError(f"Step {i} of the flowpipe is empty")
        boxes = np.array(boxes)
        return np.array([boxes[:, 0].min(axis=0), boxes[:, 1].max(axis=0)])

    def __repr__(self):
        return f"Flowpipe(steps={len(self)}, sets={[len(step) for step in self.steps]})"


class Model:
    """
    The reachability driver that connects dynamics and bundles.
    """

    def __init__(self, dynamics: Dynamics, initial_set: Bundle,
                 assumptions: Polytope = None,
                 mode: TransformationMode = TransformationMode.AFO,
                 max_magnitude: float = np.inf,
                 decomposition_iterations: int = 0,
                 decomposition_weight: float = 0.5,
                 seed: int = None):
        """
        :param dynamics: The dynamical system.
        :param initial_set: The bundle of the initial states.
        :param assumptions: A polytope of invariant constraints intersected
                            with every reached set (optional).
        :param mode: The transformation mode.
        :param max_magnitude: Reached bundles with larger magnitudes are split.
        :param decomposition_iterations: Number of template search iterations
                                         per step. 0 disables decomposition.
        :param decomposition_weight: Weight of the offset distance in the
                                     template score.
        :param seed: Seed of the template search. Every reach call restarts
                     the search from it.
        """
        if initial_set.dim != dynamics.dim:
            raise ValueError(f"The initial set has dimension {initial_set.dim}, "
                             f"the dynamics {dynamics.dim}")
        if assumptions is not None and assumptions.dim != dynamics.dim:
            raise ValueError(f"The assumptions have dimension {assumptions.dim}, "
                             f"the dynamics {dynamics.dim}")
        if max_magnitude <= 0:
            raise ValueError("max_magnitude must be positive")
        if decomposition_iterations < 0:
            raise ValueError("decomposition_iterations must be non negative")
        if not 0 <= decomposition_weight <= 1:
            raise ValueError("decomposition_weight must be in [0, 1]")

        self.F = dynamics
        self.initial_set = initial_set
        self.assumptions = assumptions
        self.mode = TransformationMode(mode)
        self.max_magnitude = max_magnitude
        self.decomposition_iterations = decomposition_iterations
        self.decomposition_weight = decomposition_weight
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def _constrain(self, bundle: Bundle) -> Bundle:
        if self.assumptions is None:
            return bundle
        return bundle.intersect_with(self.assumptions)

    def compute_next(self, bundle: Bundle,
                     n_jobs: int = 1) -> Tuple[Optional[Polytope], List[Bundle]]:
        """
        Compute the image of a bundle.

        :param bundle: The current bundle.
        :param n_jobs: The number of template rows processed in parallel.
        :return: The polytope of the reached set and the bundles to be
                 propagated at the next step. The polytope is None when the
                 reached set is empty.
        """
        try:
            next_bundle = self.F(bundle, self.mode, n_jobs)
        except EmptySetError as e:
            logger.info("Empty image: %s", e)
            return None, []

        next_bundle = self._constrain(next_bundle)

        if self.decomposition_iterations > 0:
            next_bundle = next_bundle.decompose(self.decomposition_weight,
                                                self.decomposition_iterations,
                                                seed=self.rng)

        if next_bundle.is_empty():
            logger.info("Reached bundle is empty")
            return None, []

        return next_bundle.polytope(), next_bundle.split(self.max_magnitude)

    def reach(self, steps: int, n_jobs: int = 1,
              progress_callback: Callable[[int, int], None] = None) -> Flowpipe:
        """
        Compute the flowpipe of the model.

        :param steps: The number of steps.
        :param n_jobs: The number of jobs to run in parallel. -1 means using
                       all available CPUs.
        :param progress_callback: Called with (performed steps, steps) after
                                  every step (optional).
        :return: The flowpipe; its first element is the initial set.
        """
        if steps < 0:
            raise ValueError("steps must be non negative")

        self.rng = np.random.default_rng(self.seed)

        initial_set = self._constrain(self.initial_set)
        if initial_set.is_empty():
            logger.info("The initial set is empty")
            return Flowpipe([[]])

        current = initial_set.split(self.max_magnitude, 1.0)

        flowpipe = Flowpipe([[initial_set.polytope()]])

        for step in range(1, steps + 1):
            # a single bundle gets all the jobs for its template rows
            inner_jobs = n_jobs if len(current) == 1 else 1

            results = Parallel(n_jobs=n_jobs, require='sharedmem')(
                delayed(self.compute_next)(bundle, inner_jobs) for bundle in current
            )

            reached = [polytope for polytope, _ in results if polytope is not None]
            current = [bundle for _, bundles in results for bundle in bundles]

            flowpipe.append(reached)
            logger.info("Step %d/%d: %d reached sets, %d bundles", step, steps,
                        len(reached), len(current))

            if progress_callback is not None:
                progress_callback(step, steps)

            if not reached:
                logger.info("The reached set is empty: stopping at step %d", step)
                break

        return flowpipe
