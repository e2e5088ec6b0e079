"""
Exceptions raised by BundleReach.
"""

import numpy as np


class BundleReachError(Exception):
    """Base class of all the BundleReach errors."""


class BundleConstructionError(BundleReachError, ValueError):
    """Raised when a bundle is built from malformed directions, offsets or templates."""


class SingularBasisError(BundleReachError, np.linalg.LinAlgError):
    """Raised when the directions selected by a template row do not form a basis."""


class OptimizationError(BundleReachError):
    """
    Raised when a linear program does not produce an optimum.

    :param status: The status reported by the LP solver.
    """

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class EmptySetError(OptimizationError):
    """The half-space system is infeasible, i.e., it denotes the empty set."""


class UnboundedError(OptimizationError):
    """The optimized direction is unbounded over the half-space system."""
