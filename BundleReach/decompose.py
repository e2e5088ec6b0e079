"""
Randomized local search over bundle templates.

A candidate template is obtained by replacing one entry of one row with a
random direction index. Candidates whose mutated row duplicates another row
or selects linearly dependent directions are rejected; the others are scored
and the best template ever seen is kept.

The score of a template T is

    weight * max_offset_distance(T) + (1 - weight) * max_orthogonal_proximity(T)

and lower is better. The search is a heuristic: it never returns a template
scoring worse than the initial one, but it gives no optimality guarantee.
"""

import logging
import numpy as np

from .utils import is_basis, is_permutation_of_other_rows

logger = logging.getLogger(__name__)


def max_offset_distance(template: np.ndarray, distances: np.ndarray) -> float:
    """
    Maximum over the rows of the product of the offset distances of the row directions.
    """
    return max(float(np.prod(distances[row])) for row in template)


def max_orthogonal_proximity(template: np.ndarray, proximity: np.ndarray) -> float:
    """
    Maximum orthogonal proximity between two directions of the same row.
    """
    max_prox = 0.0
    for row in template:
        for i in range(len(row)):
            for j in range(i + 1, len(row)):
                max_prox = max(max_prox, proximity[row[i], row[j]])
    return max_prox


def template_score(template: np.ndarray, distances: np.ndarray,
                   proximity: np.ndarray, weight: float) -> float:
    return (weight * max_offset_distance(template, distances)
            + (1 - weight) * max_orthogonal_proximity(template, proximity))


def mutate_template(template: np.ndarray, num_of_directions: int,
                    rng: np.random.Generator):
    """
    Replace a random entry of a random row with a random direction index.

    :return: The mutated copy of template and the index of the mutated row
    """
    candidate = template.copy()
    row = int(rng.integers(candidate.shape[0]))
    col = int(rng.integers(candidate.shape[1]))
    candidate[row, col] = int(rng.integers(num_of_directions))

    return candidate, row


def is_admissible_row(template: np.ndarray, row: int, directions: np.ndarray) -> bool:
    """
    Check that a template row is not a permutation of another row and that
    its directions form a basis.
    """
    if is_permutation_of_other_rows(template, row):
        return False
    return is_basis(directions[template[row]])


def optimize_template(template: np.ndarray, directions: np.ndarray, distances: np.ndarray,
                      proximity: np.ndarray, weight: float, max_iterations: int,
                      rng: np.random.Generator) -> np.ndarray:
    """
    Search for a template with a lower score.

    Mutations are applied cumulatively: every admissible candidate becomes the
    current template, while the best scoring one is remembered.

    :param template: The initial template
    :param directions: The bundle directions
    :param distances: The offset distances of the directions
    :param proximity: The orthogonal proximity matrix of the directions
    :param weight: Weight in [0, 1] of the offset distance in the score
    :param max_iterations: Number of random candidates to generate
    :param rng: The random generator
    :return: The best template found
    """
    if not 0 <= weight <= 1:
        raise ValueError(f"weight must be in [0, 1], got {weight}")

    current = np.array(template)
    best = current
    best_score = template_score(best, distances, proximity, weight)
    rejected = 0

    for _ in range(max_iterations):
        candidate, row = mutate_template(current, len(directions), rng)

        if not is_admissible_row(candidate, row, directions):
            rejected += 1
            continue

        score = template_score(candidate, distances, proximity, weight)
        if score < best_score:
            best = candidate
            best_score = score
        current = candidate

    logger.debug("Template search: %d candidates rejected, best score %g", rejected, best_score)

    return best
