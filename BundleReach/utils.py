"""
Geometry primitives used by bundles and template selection.

This module provides helper functions for comparing directions, checking
template rows, and testing whether a set of directions forms a basis.
"""

import numpy as np
from typing import Sequence


# =============================================================================
# Direction Geometry
# =============================================================================

def angle(v1: np.ndarray, v2: np.ndarray) -> float:
    """
    Angle between two vectors.

    :param v1: A vector
    :param v2: A vector of the same length as v1
    :return: The angle in [0, pi] between v1 and v2
    """
    v1 = np.asarray(v1, dtype=float)
    v2 = np.asarray(v2, dtype=float)
    cosine = np.dot(v1, v2) / (np.linalg.norm(v1) * np.linalg.norm(v2))

    # rounding may push the cosine slightly outside [-1, 1]
    return float(np.arccos(np.clip(cosine, -1.0, 1.0)))


def orthogonal_proximity(v1: np.ndarray, v2: np.ndarray) -> float:
    """
    How close the angle between v1 and v2 is to pi/2.

    The proximity is 0 for orthogonal vectors and pi/2 for parallel or
    anti-parallel ones.
    """
    return abs(angle(v1, v2) - np.pi / 2)


def proximity_matrix(directions: np.ndarray) -> np.ndarray:
    """
    Pairwise orthogonal proximity of a set of directions.

    :param directions: Array of shape (m, d)
    :return: Symmetric array of shape (m, m) with zero diagonal
    """
    m = len(directions)
    proximity = np.zeros((m, m))
    for i in range(m):
        for j in range(i + 1, m):
            prox = orthogonal_proximity(directions[i], directions[j])
            proximity[i, j] = prox
            proximity[j, i] = prox

    return proximity


def are_parallel(v1: np.ndarray, v2: np.ndarray, tol: float = 1e-9) -> int:
    """
    Check whether two vectors are parallel.

    :return: 1 if v1 and v2 have the same orientation, -1 if they have
             opposite orientations, and 0 if they are not parallel
    """
    v1 = np.asarray(v1, dtype=float)
    v2 = np.asarray(v2, dtype=float)
    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 == 0 or n2 == 0:
        return 0

    cosine = np.dot(v1, v2) / (n1 * n2)
    if cosine >= 1 - tol:
        return 1
    if cosine <= -1 + tol:
        return -1
    return 0


def offset_distances(directions: np.ndarray, offset_plus: np.ndarray,
                     offset_minus: np.ndarray) -> np.ndarray:
    """
    Distances between the upper and lower offsets of each direction,
    normalized by the direction norm.

    This is the quantity used by the template decomposition score.
    """
    norms = np.linalg.norm(directions, axis=1)
    return np.abs(np.asarray(offset_plus) - np.asarray(offset_minus)) / norms


def is_basis(directions: np.ndarray) -> bool:
    """
    Check whether a square set of directions is linearly independent.

    :param directions: Array of shape (d, d)
    """
    directions = np.asarray(directions, dtype=float)
    if directions.ndim != 2 or directions.shape[0] != directions.shape[1]:
        return False
    return np.linalg.matrix_rank(directions) == directions.shape[0]


# =============================================================================
# Index Rows
# =============================================================================

def is_permutation(v1: Sequence[int], v2: Sequence[int]) -> bool:
    """
    Check whether v1 is a permutation of v2.
    """
    if len(v1) != len(v2):
        return False
    return sorted(v1) == sorted(v2)


def is_permutation_of_other_rows(rows: np.ndarray, i: int) -> bool:
    """
    Check whether the i-th row of a matrix is a permutation of any other row.
    """
    row = sorted(rows[i])
    for j, other in enumerate(rows):
        if j != i and len(other) == len(row) and sorted(other) == row:
            return True
    return False


def is_in(row: Sequence[int], rows: Sequence[Sequence[int]]) -> bool:
    """
    Check whether some permutation of row belongs to rows.
    """
    return any(is_permutation(row, other) for other in rows)
