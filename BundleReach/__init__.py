"""
BundleReach: Reachability analysis of polynomial dynamical systems.

This library over-approximates the reachable sets of discrete-time
(possibly parametric) polynomial dynamical systems by propagating bundles of
parallelotopes through the dynamics with Bernstein coefficients.
"""

__version__ = "0.1.0"

# Core components
from .polytope import Polytope, OptimizationResult, OptimizationStatus
from .parallelotope import Parallelotope
from .bundle import Bundle
from .transform import TransformationMode
from .coefficients import MaxCoeffFinder, ParamMaxCoeffFinder
from .dynamics import (
    Dynamics,
    PolynomialDynamics,
    ParametricDynamics,
    euler_discretization,
    from_equations
)
from .core import Model, Flowpipe
from .exceptions import (
    BundleReachError,
    BundleConstructionError,
    SingularBasisError,
    OptimizationError,
    EmptySetError,
    UnboundedError
)
from .config import ReachConfig, load_reach_config, configure_logging
from .cache import save_flowpipe, load_flowpipe, save_bundles, load_bundles
from .plot import plot_polytope, plot_flowpipe

# Utility modules
from . import systems
from . import utils

__all__ = [
    # Core
    'Polytope',
    'OptimizationResult',
    'OptimizationStatus',
    'Parallelotope',
    'Bundle',
    'TransformationMode',
    'MaxCoeffFinder',
    'ParamMaxCoeffFinder',
    'Dynamics',
    'PolynomialDynamics',
    'ParametricDynamics',
    'euler_discretization',
    'from_equations',
    'Model',
    'Flowpipe',
    # Errors
    'BundleReachError',
    'BundleConstructionError',
    'SingularBasisError',
    'OptimizationError',
    'EmptySetError',
    'UnboundedError',
    # Configuration
    'ReachConfig',
    'load_reach_config',
    'configure_logging',
    # Persistence
    'save_flowpipe',
    'load_flowpipe',
    'save_bundles',
    'load_bundles',
    # Plotting
    'plot_polytope',
    'plot_flowpipe',
    # Modules
    'systems',
    'utils',
]
