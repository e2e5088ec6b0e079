"""
Standard dynamical systems for testing and examples.

This module provides reachability models of well-known benchmarks and builds
models from JSON-like configuration dictionaries.

A model configuration has the keys:

    variables       list of variable names
    dynamics        list of update equations, one per variable
    directions      list of bundle directions
    offset_plus     upper offsets of the directions
    offset_minus    lower offsets of the directions (bounds of -direction . x)
    template        list of template rows

and, optionally:

    parameters           list of parameter names
    parameter_set        {"A": ..., "b": ...} or {"lower": ..., "upper": ...}
    constants            {name: value} substituted in the equations
    assumptions          {"A": ..., "b": ...} invariant constraints
    discretization_step  if given, dynamics are time derivatives discretized
                         with the explicit Euler method
"""

from typing import Any, Dict

import numpy as np
import sympy as sp

from .bundle import Bundle
from .config import ReachConfig
from .core import Model
from .dynamics import ParametricDynamics, PolynomialDynamics, euler_discretization, from_equations
from .polytope import Polytope


def _polytope_from_config(raw: Dict[str, Any], name: str) -> Polytope:
    if 'A' in raw and 'b' in raw:
        return Polytope(np.array(raw['A']), np.array(raw['b']))
    if 'lower' in raw and 'upper' in raw:
        return Polytope.from_box(raw['lower'], raw['upper'])
    raise ValueError(f"'{name}' must provide either 'A' and 'b' or 'lower' and 'upper'")


def create_model_from_config(model_config: Dict[str, Any],
                             reach_config: ReachConfig = None) -> Model:
    """
    Create a reachability model from a configuration dictionary.

    :param model_config: The model description (see the module docstring)
    :param reach_config: The transformation mode, split and decomposition
                         settings; defaults are used if None
    :return: The model
    """
    missing = [key for key in ('variables', 'dynamics', 'directions', 'offset_plus',
                               'offset_minus', 'template') if key not in model_config]
    if missing:
        raise ValueError(f"Missing model configuration keys: {missing}")

    if reach_config is None:
        reach_config = ReachConfig()

    parameter_set = None
    if model_config.get('parameters'):
        if 'parameter_set' not in model_config:
            raise ValueError("Parametric models must specify 'parameter_set'")
        parameter_set = _polytope_from_config(model_config['parameter_set'], 'parameter_set')

    dynamics = from_equations(model_config['variables'], model_config['dynamics'],
                              parameters=model_config.get('parameters'),
                              parameter_set=parameter_set,
                              constants=model_config.get('constants'))

    if 'discretization_step' in model_config:
        discrete = euler_discretization(dynamics.variables, dynamics.dynamics,
                                        model_config['discretization_step'])
        if isinstance(dynamics, ParametricDynamics):
            dynamics = ParametricDynamics(dynamics.variables, dynamics.parameters,
                                          discrete, dynamics.parameter_set)
        else:
            dynamics = PolynomialDynamics(dynamics.variables, discrete)

    initial_set = Bundle(model_config['directions'], model_config['offset_plus'],
                         model_config['offset_minus'], model_config['template'])

    assumptions = None
    if 'assumptions' in model_config:
        assumptions = _polytope_from_config(model_config['assumptions'], 'assumptions')

    return Model(dynamics, initial_set, assumptions=assumptions,
                 mode=reach_config.mode,
                 max_magnitude=reach_config.max_magnitude,
                 decomposition_iterations=reach_config.decomposition_iterations,
                 decomposition_weight=reach_config.decomposition_weight,
                 seed=reach_config.seed)


# =============================================================================
# Benchmarks
# =============================================================================

def sir_model(beta: float = 0.34, gamma: float = 0.05, dt: float = 0.1,
              **model_kwargs) -> Model:
    """
    Discrete SIR epidemic model.

        s' = s - beta * s * i * dt
        i' = i + (beta * s * i - gamma * i) * dt
        r' = r + gamma * i * dt

    The initial set is the box s in [0.79, 0.8], i in [0.19, 0.2], r = 0.
    """
    s, i, r = sp.symbols('s i r')
    dynamics = PolynomialDynamics(
        [s, i, r],
        [s - beta * s * i * dt,
         i + (beta * s * i - gamma * i) * dt,
         r + gamma * i * dt])

    initial_set = Bundle.from_box([0.79, 0.19, 0.0], [0.8, 0.2, 0.0])

    return Model(dynamics, initial_set, **model_kwargs)


def parametric_sir_model(beta_range=(0.18, 0.2), gamma_range=(0.05, 0.06),
                         dt: float = 0.1, **model_kwargs) -> Model:
    """
    SIR model whose infection and recovery rates range over intervals.
    """
    s, i, r = sp.symbols('s i r')
    beta, gamma = sp.symbols('beta gamma')
    parameter_set = Polytope.from_box([beta_range[0], gamma_range[0]],
                                      [beta_range[1], gamma_range[1]])

    dynamics = ParametricDynamics(
        [s, i, r], [beta, gamma],
        [s - beta * s * i * dt,
         i + (beta * s * i - gamma * i) * dt,
         r + gamma * i * dt],
        parameter_set)

    initial_set = Bundle.from_box([0.79, 0.19, 0.0], [0.8, 0.2, 0.0])

    return Model(dynamics, initial_set, **model_kwargs)


def van_der_pol_model(mu: float = 1.0, dt: float = 0.02, **model_kwargs) -> Model:
    """
    Euler discretization of the Van der Pol oscillator

        x_dot = y
        y_dot = mu * (1 - x^2) * y - x

    with a bundle of the axis directions and the two diagonals.
    """
    x, y = sp.symbols('x y')
    vector_field = [y, mu * (1 - x**2) * y - x]
    dynamics = PolynomialDynamics([x, y], euler_discretization([x, y], vector_field, dt))

    directions = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, -1.0]])
    lower = np.array([1.25, 2.28])
    upper = np.array([1.55, 2.32])
    offset_plus = np.array([upper[0], upper[1], upper[0] + upper[1], upper[0] - lower[1]])
    offset_minus = np.array([-lower[0], -lower[1], -(lower[0] + lower[1]),
                             -(lower[0] - upper[1])])

    initial_set = Bundle(directions, offset_plus, offset_minus, [[0, 1], [2, 3]])

    return Model(dynamics, initial_set, **model_kwargs)
