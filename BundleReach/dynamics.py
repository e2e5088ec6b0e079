from abc import ABC, abstractmethod
import logging
from typing import Dict, List, Sequence, Union

import sympy as sp

from .polytope import Polytope
from .transform import TransformationMode

logger = logging.getLogger(__name__)


class Dynamics(ABC):
    """
    Abstract base class for a discrete-time dynamical system.
    """
    def __init__(self, variables: Sequence[sp.Symbol], dynamics: Sequence[sp.Expr]):
        """
        :param variables: The state variables.
        :param dynamics: The update expression of each state variable.
        """
        variables = list(variables)
        dynamics = [sp.sympify(f) for f in dynamics]

        if len(variables) == 0:
            raise ValueError("At least one variable is required")
        if len(variables) != len(dynamics):
            raise ValueError(f"Got {len(dynamics)} update functions for "
                             f"{len(variables)} variables")
        if len(set(variables)) != len(variables):
            raise ValueError("Variables must be pairwise distinct")

        self.variables = variables
        self.dynamics = dynamics

    @property
    def dim(self) -> int:
        return len(self.variables)

    @abstractmethod
    def __call__(self, bundle, mode: TransformationMode = TransformationMode.OFO,
                 n_jobs: int = 1):
        """
        Apply the dynamics to a bundle.

        :param bundle: The bundle to be transformed.
        :param mode: The transformation mode.
        :param n_jobs: The number of template rows processed in parallel.
        :return: A bundle over-approximating the image of the input bundle.
        """
        pass


class PolynomialDynamics(Dynamics):
    """
    A dynamical system whose update function is polynomial (or rational) in
    the state variables.
    """
    def __call__(self, bundle, mode: TransformationMode = TransformationMode.OFO,
                 n_jobs: int = 1):
        return bundle.transform(self.variables, self.dynamics, mode=mode, n_jobs=n_jobs)

    def __repr__(self):
        return f"PolynomialDynamics({dict(zip(self.variables, self.dynamics))})"


class ParametricDynamics(Dynamics):
    """
    A dynamical system whose update function also depends on parameters
    ranging over a polytope. The image is over-approximated for all the
    admissible parameter values at once.
    """
    def __init__(self, variables: Sequence[sp.Symbol], parameters: Sequence[sp.Symbol],
                 dynamics: Sequence[sp.Expr], parameter_set: Polytope):
        """
        :param variables: The state variables.
        :param parameters: The parameters.
        :param dynamics: The update expression of each state variable.
        :param parameter_set: The polytope of admissible parameter values.
        """
        super().__init__(variables, dynamics)

        parameters = list(parameters)
        if len(parameters) != parameter_set.dim:
            raise ValueError(f"Got {len(parameters)} parameters for a "
                             f"{parameter_set.dim}-dimensional parameter set")
        if set(parameters) & set(self.variables):
            raise ValueError("Parameters and variables must be distinct")

        self.parameters = parameters
        self.parameter_set = parameter_set

    def __call__(self, bundle, mode: TransformationMode = TransformationMode.OFO,
                 n_jobs: int = 1):
        return bundle.parametric_transform(self.variables, self.parameters, self.dynamics,
                                           self.parameter_set, mode=mode, n_jobs=n_jobs)

    def __repr__(self):
        return (f"ParametricDynamics({dict(zip(self.variables, self.dynamics))}, "
                f"parameters={self.parameters})")


def euler_discretization(variables: Sequence[sp.Symbol], vector_field: Sequence[sp.Expr],
                         step: float) -> List[sp.Expr]:
    """
    Discretize a continuous vector field with the explicit Euler method.

    :param variables: The state variables.
    :param vector_field: The time derivative of each state variable.
    :param step: The discretization step.
    :return: The update expressions x + step * f(x).
    """
    if len(variables) != len(vector_field):
        raise ValueError(f"Got {len(vector_field)} derivatives for {len(variables)} variables")

    step = sp.nsimplify(step) if isinstance(step, (int, float)) else step
    return [x + step * sp.sympify(f) for x, f in zip(variables, vector_field)]


def from_equations(variables: Sequence[str], equations: Sequence[str],
                   parameters: Sequence[str] = None, parameter_set: Polytope = None,
                   constants: Dict[str, float] = None) -> Union[PolynomialDynamics,
                                                                   ParametricDynamics]:
    """
    Build a dynamical system from textual update equations.

    Names are always parsed as plain symbols, so that, e.g., "gamma" or "S"
    do not clash with sympy functions and singletons.

    :param variables: The names of the state variables.
    :param equations: The update equation of each variable, e.g. "x + 0.1*y".
    :param parameters: The names of the parameters, if any.
    :param parameter_set: The admissible parameter values; required with parameters.
    :param constants: Numeric values substituted for the corresponding names.
    :return: A PolynomialDynamics, or a ParametricDynamics when parameters are given.
    """
    parameters = list(parameters or [])
    constants = dict(constants or {})

    namespace = {name: sp.Symbol(name) for name in list(variables) + parameters}
    for name, value in constants.items():
        namespace[name] = sp.nsimplify(value) if isinstance(value, float) else sp.sympify(value)

    try:
        dynamics = [sp.sympify(eq, locals=namespace) for eq in equations]
    except (sp.SympifyError, SyntaxError, TypeError) as e:
        raise ValueError(f"Cannot parse the equations {list(equations)}: {e}") from e

    symbols = [namespace[name] for name in variables]
    unknown = set().union(*(f.free_symbols for f in dynamics)) - set(symbols) \
        - {namespace[name] for name in parameters}
    if unknown:
        raise ValueError(f"Unknown symbols {sorted(map(str, unknown))} in the equations")

    logger.debug("Parsed dynamics %s", dynamics)

    if parameters:
        if parameter_set is None:
            raise ValueError("A parameter set is required for parametric dynamics")
        return ParametricDynamics(symbols, [namespace[name] for name in parameters],
                                  dynamics, parameter_set)

    return PolynomialDynamics(symbols, dynamics)
