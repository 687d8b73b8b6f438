# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Quadrature Catalog

Nodes and weights for the built-in quadrature families on the reference
interval [-1, 1], plus validation of caller-supplied rules.

Families
--------
- NewtonCotes: equally spaced nodes with both ends, interpolatory weights
- Romberg: 1 + 2^m equally spaced nodes, Richardson-extrapolated weights
- Chebyshev: equal-weight Chebyshev quadrature (multiplier 2/n)
- GaussLegendre: roots of P_n
- GaussLobatto: ±1 and roots of P'_{n-1}
- Fejer1: Chebyshev points of the first kind
- Fejer2: interior Chebyshev points of the second kind
- Fejer3 / Fejer4: zeros of Chebyshev polynomials of the third / fourth kind
- ClenshawCurtis: Chebyshev extreme points (ends included)
- TakahasiMori: tanh-sinh (double exponential) nodes (multiplier = step)

Exact algebraic values (rationals, radicals) stay exact; values involving
transcendental functions or implicit polynomial roots are evaluated to
``precision`` significant digits.

Examples
--------
>>> rule = get_quadrature_rule('GaussLegendre', 2)
>>> rule.nodes
(-sqrt(3)/3, sqrt(3)/3)
>>> rule.weights
(1, 1)
>>>
>>> trapezoid = user_quadrature_rule((0, 1), [0, 1], [sp.Rational(1, 2), sp.Rational(1, 2)])
"""

import warnings
from typing import Callable, Dict, List, Sequence, Tuple

import sympy as sp

from vidsym.exceptions import ConfigurationError
from vidsym.quadrature.family_registry import USER_DEFINED, require_valid_quadrature
from vidsym.quadrature.sorting import sort_nodes_weights
from vidsym.types.quadrature import QuadratureRule

_x = sp.Symbol("x", real=True)

NodesWeights = Tuple[List[sp.Expr], List[sp.Expr], sp.Expr]


# ============================================================================
# Helpers
# ============================================================================


def _finalize(value, precision: int) -> sp.Expr:
    """Keep algebraic numbers exact, evaluate everything else numerically"""
    value = sp.sympify(value)
    if value.has(sp.CRootOf) or value.has(sp.pi) or value.atoms(sp.Function):
        return value.evalf(precision)
    return sp.simplify(value)


def _real_roots(expr: sp.Expr, precision: int) -> List[sp.Expr]:
    poly = sp.Poly(expr, _x)
    if poly.degree() < 1:
        return []
    return [_finalize(root, precision) for root in poly.real_roots()]


def _interpolatory_weights(nodes: Sequence[sp.Expr], bounds=(-1, 1)) -> List[sp.Expr]:
    """Weights integrating every polynomial of degree < n exactly (moment solve)"""
    a, b = (sp.sympify(v) for v in bounds)
    n = len(nodes)
    vandermonde = sp.Matrix(n, n, lambda j, k: nodes[k] ** j)
    moments = sp.Matrix(n, 1, lambda j, _: (b ** (j + 1) - a ** (j + 1)) / (j + 1))
    return list(vandermonde.LUsolve(moments))


def _equally_spaced(n: int) -> List[sp.Expr]:
    return [sp.Rational(2 * k, n - 1) - 1 for k in range(n)]


def romberg_estimate(values: Sequence, width) -> sp.Expr:
    """
    Romberg estimate of an integral from 1 + 2^m equally spaced samples.

    Builds trapezoid estimates R[0, i] on 1 + 2^i samples (i = 0..m), then
    applies Richardson extrapolation

        R[j, i] = (4^j R[j-1, i] - R[j-1, i-1]) / (4^j - 1)

    for j = 1..m, i = j..m and returns R[m, m].

    Parameters
    ----------
    values : Sequence
        Integrand samples (numbers or expressions), ends included
    width : number or expression
        Length of the integration interval

    Returns
    -------
    sp.Expr
        Expanded R[m, m], linear in ``values``

    Raises
    ------
    ConfigurationError
        If len(values) - 1 is not a power of two

    Examples
    --------
    >>> f0, f1, f2 = sp.symbols('f0 f1 f2')
    >>> romberg_estimate([f0, f1, f2], 1)  # Simpson's rule
    f0/6 + 2*f1/3 + f2/6
    """
    values = list(values)
    n = len(values)
    levels = (n - 1).bit_length() - 1
    if n < 2 or 2**levels != n - 1:
        raise ConfigurationError(
            f"Romberg requires 1 + 2^m samples, got {n}", family="Romberg", n=n
        )

    width = sp.sympify(width)
    table: Dict[Tuple[int, int], sp.Expr] = {}

    for i in range(levels + 1):
        points = values[:: 2 ** (levels - i)]
        spacing = width / 2**i
        table[0, i] = spacing * (points[0] / 2 + sp.Add(*points[1:-1]) + points[-1] / 2)

    for j in range(1, levels + 1):
        factor = 4**j
        for i in range(j, levels + 1):
            table[j, i] = (factor * table[j - 1, i] - table[j - 1, i - 1]) / (factor - 1)

    return sp.expand(table[levels, levels])


# ============================================================================
# Family Builders (reference interval [-1, 1])
# ============================================================================


def _newton_cotes(n: int, precision: int) -> NodesWeights:
    nodes = _equally_spaced(n)
    return nodes, _interpolatory_weights(nodes), sp.S.One


def _romberg(n: int, precision: int) -> NodesWeights:
    nodes = _equally_spaced(n)
    weights = []
    for k in range(n):
        unit = [sp.S.One if j == k else sp.S.Zero for j in range(n)]
        weights.append(romberg_estimate(unit, 2))
    return nodes, weights, sp.S.One


def _chebyshev(n: int, precision: int) -> NodesWeights:
    # Nodes: polynomial part of x^n exp(-n Σ_k x^{-2k} / (2k(2k+1)))
    y = sp.Symbol("y")
    exponent = -n * sp.Add(*[y ** (2 * k) / (2 * k * (2 * k + 1)) for k in range(1, n // 2 + 2)])
    expansion = sp.series(sp.exp(exponent), y, 0, n + 1).removeO()
    polynomial = sp.expand(expansion.subs(y, 1 / _x) * _x**n)

    nodes = _real_roots(polynomial, precision)
    if len(nodes) != n:
        raise ConfigurationError(
            f"Chebyshev quadrature has only {len(nodes)} real nodes for n={n}",
            family="Chebyshev",
            n=n,
        )
    return nodes, [sp.S.One] * n, sp.Rational(2, n)


def _gauss_legendre(n: int, precision: int) -> NodesWeights:
    p_n = sp.legendre(n, _x)
    dp_n = sp.diff(p_n, _x)
    nodes = _real_roots(p_n, precision)
    weights = [
        _finalize(2 / ((1 - xk**2) * dp_n.subs(_x, xk) ** 2), precision) for xk in nodes
    ]
    return nodes, weights, sp.S.One


def _gauss_lobatto(n: int, precision: int) -> NodesWeights:
    p_prev = sp.legendre(n - 1, _x)
    nodes = [sp.S.NegativeOne] + _real_roots(sp.diff(p_prev, _x), precision) + [sp.S.One]
    weights = [
        _finalize(sp.Rational(2, n * (n - 1)) / p_prev.subs(_x, xk) ** 2, precision)
        for xk in nodes
    ]
    return nodes, weights, sp.S.One


def _fejer1(n: int, precision: int) -> NodesWeights:
    nodes, weights = [], []
    for k in range(1, n + 1):
        theta = sp.pi * (2 * k - 1) / (2 * n)
        series = sp.Add(*[sp.cos(2 * j * theta) / (4 * j**2 - 1) for j in range(1, n // 2 + 1)])
        nodes.append(_finalize(sp.cos(theta), precision))
        weights.append(_finalize(sp.Rational(2, n) * (1 - 2 * series), precision))
    return nodes, weights, sp.S.One


def _fejer2(n: int, precision: int) -> NodesWeights:
    nodes, weights = [], []
    for k in range(1, n + 1):
        theta = sp.pi * k / (n + 1)
        series = sp.Add(
            *[sp.sin((2 * j - 1) * theta) / (2 * j - 1) for j in range(1, (n + 1) // 2 + 1)]
        )
        nodes.append(_finalize(sp.cos(theta), precision))
        weights.append(_finalize(4 * sp.sin(theta) / (n + 1) * series, precision))
    return nodes, weights, sp.S.One


def _fejer3(n: int, precision: int) -> NodesWeights:
    # Zeros of V_n(cos θ) = cos((n + 1/2)θ) / cos(θ/2)
    nodes = [sp.cos(sp.pi * (2 * k - 1) / (2 * n + 1)).evalf(precision) for k in range(1, n + 1)]
    return nodes, _interpolatory_weights(nodes), sp.S.One


def _fejer4(n: int, precision: int) -> NodesWeights:
    # Zeros of W_n(cos θ) = sin((n + 1/2)θ) / sin(θ/2)
    nodes = [sp.cos(sp.pi * 2 * k / (2 * n + 1)).evalf(precision) for k in range(1, n + 1)]
    return nodes, _interpolatory_weights(nodes), sp.S.One


def _clenshaw_curtis(n: int, precision: int) -> NodesWeights:
    order = n - 1
    nodes, weights = [], []
    for k in range(n):
        theta = sp.pi * k / order
        end_factor = 1 if k in (0, order) else 2
        series = sp.Add(
            *[
                (1 if 2 * j == order else 2) * sp.cos(2 * j * theta) / (4 * j**2 - 1)
                for j in range(1, order // 2 + 1)
            ]
        )
        nodes.append(_finalize(sp.cos(theta), precision))
        weights.append(_finalize(sp.Rational(end_factor, order) * (1 - series), precision))
    return nodes, weights, sp.S.One


def _takahasi_mori(n: int, precision: int) -> NodesWeights:
    half = (n - 1) // 2
    # Outermost abscissa argument capped near 3 where the weights are negligible
    step = sp.Min(sp.S.One, sp.Rational(3, half))
    nodes, weights = [], []
    for k in range(-half, half + 1):
        t = k * step
        inner = sp.pi / 2 * sp.sinh(t)
        nodes.append(sp.tanh(inner).evalf(precision))
        weights.append((sp.pi / 2 * sp.cosh(t) / sp.cosh(inner) ** 2).evalf(precision))
    # Truncation drops the tails, so the step is rescaled to keep multiplier * Σw = 2
    return nodes, weights, (2 / sp.Add(*weights)).evalf(precision)


_FAMILY_BUILDERS: Dict[str, Callable[[int, int], NodesWeights]] = {
    "NewtonCotes": _newton_cotes,
    "Romberg": _romberg,
    "Chebyshev": _chebyshev,
    "GaussLegendre": _gauss_legendre,
    "GaussLobatto": _gauss_lobatto,
    "Fejer1": _fejer1,
    "Fejer2": _fejer2,
    "Fejer3": _fejer3,
    "Fejer4": _fejer4,
    "ClenshawCurtis": _clenshaw_curtis,
    "TakahasiMori": _takahasi_mori,
}


# ============================================================================
# Public API
# ============================================================================


def get_quadrature_rule(family: str, n: int, precision: int = 30) -> QuadratureRule:
    """
    Build a built-in quadrature rule on [-1, 1].

    Parameters
    ----------
    family : str
        Family tag or alias (see family_registry)
    n : int
        Number of nodes
    precision : int
        Significant digits for values that cannot be kept exact

    Returns
    -------
    QuadratureRule
        Rule with nodes sorted ascending

    Raises
    ------
    ConfigurationError
        Unknown family or node count violating the family constraint
        (raised before any symbolic work)

    Examples
    --------
    >>> rule = get_quadrature_rule('GaussLobatto', 3)
    >>> rule.nodes, rule.weights
    ((-1, 0, 1), (1/3, 4/3, 1/3))
    """
    canonical = require_valid_quadrature(family, n)

    nodes, weights, multiplier = _FAMILY_BUILDERS[canonical](n, precision)
    nodes, weights = sort_nodes_weights(nodes, weights)
    rule = QuadratureRule(canonical, n, nodes, weights, multiplier)

    total = rule.total_weight()
    if abs(total - 2.0) > 1e-3:
        warnings.warn(
            f"{canonical} rule with n={n} integrates 1 over [-1, 1] to {total:.6f} "
            f"(expected 2); expect reduced accuracy",
        )

    return rule


def user_quadrature_rule(
    bounds: Tuple, nodes: Sequence, weights: Sequence
) -> QuadratureRule:
    """
    Validate and sort a caller-supplied quadrature rule.

    Parameters
    ----------
    bounds : Tuple
        Integration interval (a, b) with a < b
    nodes : Sequence
        Abscissas inside [a, b]
    weights : Sequence
        Weights, same length as ``nodes``

    Returns
    -------
    QuadratureRule
        Rule tagged 'UserDefined', nodes sorted ascending

    Raises
    ------
    ConfigurationError
        Mismatched lengths, fewer than 2 nodes, empty interval or nodes
        outside the bounds
    """
    if len(nodes) != len(weights):
        raise ConfigurationError(
            f"Got {len(nodes)} nodes but {len(weights)} weights",
            family=USER_DEFINED,
            n=len(nodes),
        )

    n = len(nodes)
    if n < 2:
        raise ConfigurationError(
            f"User quadrature requires at least 2 nodes, got n={n}", family=USER_DEFINED, n=n
        )

    a, b = (sp.sympify(v) for v in bounds)
    if not float(a) < float(b):
        raise ConfigurationError(
            f"Invalid integration bounds ({a}, {b}): require a < b", family=USER_DEFINED, n=n
        )

    nodes = [sp.sympify(x) for x in nodes]
    weights = [sp.sympify(w) for w in weights]
    numeric = [float(sp.N(x)) for x in nodes]
    if min(numeric) < float(a) or max(numeric) > float(b):
        raise ConfigurationError(
            f"User nodes must lie within [{a}, {b}], got range "
            f"[{min(numeric)}, {max(numeric)}]",
            family=USER_DEFINED,
            n=n,
        )

    nodes, weights = sort_nodes_weights(nodes, weights)
    return QuadratureRule(USER_DEFINED, n, nodes, weights, sp.S.One, (a, b))
