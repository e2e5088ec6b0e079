"""
Finders for the bounds of Bernstein coefficients.

A finder turns the symbolic Bernstein coefficients of the composed dynamics
projected on one direction into two numbers: the maximum of the coefficients
(the new upper offset) and the maximum of their negations (the new lower
offset). The plain finder evaluates the coefficients, the parametric one
maximizes them over a set of admissible parameter values.
"""

from typing import NamedTuple, Sequence

import sympy as sp

from .exceptions import EmptySetError, OptimizationError, UnboundedError
from .polytope import OptimizationResult, OptimizationStatus, Polytope


class MaxCoeffs(NamedTuple):
    p: float  # the Bernstein coefficient upper-bound
    m: float  # the Bernstein coefficient lower-bound complementary


class MaxCoeffFinder:
    """
    A finder for Bernstein coefficient upper and lower-bounds of
    non-parametric coefficients.
    """

    def coeff_eval_p(self, coefficient: sp.Expr) -> float:
        """
        Evaluate the upper-bound of a Bernstein coefficient.

        :param coefficient: A Bernstein coefficient without free symbols
        """
        try:
            return float(coefficient)
        except TypeError as e:
            raise ValueError(f"Coefficient {coefficient} has free symbols "
                             f"{sp.sympify(coefficient).free_symbols}") from e

    def coeff_eval_m(self, coefficient: sp.Expr) -> float:
        """
        Evaluate the lower-bound complementary of a Bernstein coefficient,
        i.e., the value of -coefficient.
        """
        value = self.coeff_eval_p(coefficient)

        # avoid -0.0
        return 0.0 if value == 0 else -value

    def find_max_coeffs(self, coefficients: Sequence[sp.Expr]) -> MaxCoeffs:
        """
        Find the maximum of the upper-bounds and of the lower-bound
        complementaries of a list of Bernstein coefficients.

        :param coefficients: A non-empty list of Bernstein coefficients
        :return: The pair (p, m) of the two maxima
        """
        if len(coefficients) == 0:
            raise ValueError("The list of Bernstein coefficients is empty")

        max_p = max(self.coeff_eval_p(c) for c in coefficients)
        max_m = max(self.coeff_eval_m(c) for c in coefficients)

        return MaxCoeffs(max_p, max_m)


class ParamMaxCoeffFinder(MaxCoeffFinder):
    """
    A finder for parametric Bernstein coefficient upper and lower-bounds.

    The coefficients must be linear in the parameters; their bounds are the
    maxima over the set of admissible parameter values.
    """

    def __init__(self, params: Sequence[sp.Symbol], parameter_set: Polytope):
        """
        :param params: The parameter symbols, one per parameter_set coordinate
        :param parameter_set: The polytope of admissible parameter values
        """
        if len(params) != parameter_set.dim:
            raise ValueError(f"Got {len(params)} parameters for a "
                             f"{parameter_set.dim}-dimensional parameter set")
        self.params = list(params)
        self.parameter_set = parameter_set

    def _maximize(self, expression: sp.Expr) -> float:
        result: OptimizationResult = self.parameter_set.maximize_expression(self.params, expression)
        if result.status == OptimizationStatus.INFEASIBLE:
            raise EmptySetError("The parameter set is empty", status=result.status)
        if result.status == OptimizationStatus.UNBOUNDED:
            raise UnboundedError(f"{expression} is unbounded over the parameter set",
                                 status=result.status)
        if not result.is_optimal:
            raise OptimizationError(f"Cannot maximize {expression}", status=result.status)
        return result.optimum

    def coeff_eval_p(self, coefficient: sp.Expr) -> float:
        return self._maximize(coefficient)

    def coeff_eval_m(self, coefficient: sp.Expr) -> float:
        value = self._maximize(-coefficient)
        return 0.0 if value == 0 else value
