"""
Bernstein coefficients of polynomial and rational functions over the unit box.

For a polynomial p of degree n = (n_1, ..., n_d) over [0, 1]^d with monomial
coefficients a_J, the Bernstein coefficients are

    b_I = sum_{J <= I} prod_k C(i_k, j_k) / C(n_k, j_k) * a_J

and min_I b_I <= p(x) <= max_I b_I for every x in [0, 1]^d.

For a rational function p/q whose denominator Bernstein coefficients (at a
common degree) all have the same strict sign, the ratios b_I(p) / b_I(q)
bound p/q over the box in the same way.
"""

import itertools
from math import comb
from typing import Dict, List, Sequence

import sympy as sp


def symbol_vector(prefix: str, n: int) -> List[sp.Symbol]:
    """
    Create the symbols prefix0, ..., prefix{n-1}.
    """
    return [sp.Symbol(f"{prefix}{i}") for i in range(n)]


def substitute(expressions: Sequence[sp.Expr], variables: Sequence[sp.Symbol],
               replacements: Sequence[sp.Expr]) -> List[sp.Expr]:
    """
    Simultaneously replace variables by the corresponding replacements.

    :param expressions: The expressions to be transformed
    :param variables: The variables to be replaced
    :param replacements: One expression per variable
    :return: The list of transformed expressions
    """
    if len(variables) != len(replacements):
        raise ValueError(f"Got {len(replacements)} replacements for {len(variables)} variables")

    mapping = dict(zip(variables, replacements))
    return [sp.sympify(ex).xreplace(mapping) for ex in expressions]


def _degree(poly: sp.Poly, gen: sp.Symbol) -> int:
    degree = poly.degree(gen)
    return 0 if degree < 0 else int(degree)


def _coefficients_of_poly(poly: sp.Poly, degrees: Sequence[int]) -> List[sp.Expr]:
    terms: Dict[tuple, sp.Expr] = poly.as_dict()

    coefficients = []
    for index in itertools.product(*(range(n + 1) for n in degrees)):
        summands = []
        for monomial, a in terms.items():
            if all(j <= i for j, i in zip(monomial, index)):
                factor = sp.Integer(1)
                for i, j, n in zip(index, monomial, degrees):
                    factor *= sp.Rational(comb(i, j), comb(n, j))
                summands.append(factor * a)
        coefficients.append(sp.Add(*summands))

    return coefficients


def polynomial_bernstein_coefficients(alpha: Sequence[sp.Symbol], polynomial: sp.Expr,
                                      degrees: Sequence[int] = None) -> List[sp.Expr]:
    """
    Bernstein coefficients of a polynomial in alpha over [0, 1]^d.

    Symbols not in alpha (e.g., parameters) are kept in the coefficients.

    :param alpha: The box variables
    :param polynomial: A polynomial in alpha
    :param degrees: The per-variable degrees of the Bernstein basis. They
                    default to the polynomial degrees and must not be lower.
    :return: The coefficients in lexicographic order of their multi-indices
    """
    poly = sp.Poly(polynomial, *alpha)
    actual = [_degree(poly, a) for a in alpha]

    if degrees is None:
        degrees = actual
    elif any(n < a for n, a in zip(degrees, actual)) or len(degrees) != len(alpha):
        raise ValueError(f"Bernstein degrees {list(degrees)} lower than polynomial degrees {actual}")

    return _coefficients_of_poly(poly, degrees)


def bernstein_coefficients(alpha: Sequence[sp.Symbol], expression: sp.Expr,
                           degrees: Sequence[int] = None) -> List[sp.Expr]:
    """
    Bernstein coefficients of a polynomial or rational function in alpha.

    :param alpha: The box variables
    :param expression: A polynomial or a rational function in alpha
    :param degrees: The per-variable degrees of the Bernstein basis (optional)
    :return: A list of expressions whose minimum and maximum bound the
             expression over [0, 1]^d
    """
    expression = sp.sympify(expression)
    alpha = list(alpha)
    try:
        return polynomial_bernstein_coefficients(alpha, expression, degrees)
    except sp.PolynomialError:
        pass

    numerator, denominator = sp.fraction(sp.together(expression))
    try:
        num_poly = sp.Poly(numerator, *alpha)
        den_poly = sp.Poly(denominator, *alpha)
    except sp.PolynomialError as e:
        raise ValueError(f"{expression} is neither polynomial nor rational in {alpha}") from e

    common = [max(_degree(num_poly, a), _degree(den_poly, a)) for a in alpha]
    if degrees is None:
        degrees = common
    elif len(degrees) != len(alpha) or any(n < c for n, c in zip(degrees, common)):
        raise ValueError(f"Bernstein degrees {list(degrees)} lower than rational degrees {common}")
    num_coeffs = _coefficients_of_poly(num_poly, degrees)
    den_coeffs = _coefficients_of_poly(den_poly, degrees)

    if not (all(c.is_positive for c in den_coeffs) or all(c.is_negative for c in den_coeffs)):
        raise ValueError(f"The denominator of {expression} may vanish over the unit box")

    return [n / d for n, d in zip(num_coeffs, den_coeffs)]
