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
Discrete Action Assembly

Approximates the action of one step, ∫_0^h L(q(t), q'(t)) dt, and the
virtual work of the forcing, from a quadrature rule and the reconstructed
path of the step.

Assembly Strategies
-------------------
Weighted quadrature (every family except NewtonCotes and Romberg):

    dS   = Σ_k c_k L(x_k, v_k),           c_k = h/(b-a) * multiplier * w_k
    dF_l = Σ_k c_k F(x_k, v_k) ∂x_k/∂q_l

Newton-Cotes: the interpolating polynomial of placeholder Lagrangian values
at the equally spaced sample times is integrated exactly over [0, h]; the
weight of each sample is read off the single term carrying its placeholder.

Romberg: the Richardson-extrapolated estimate R[m, m] of placeholder
values is expanded and its terms grouped per sample.

For the last two strategies every sample sits on the path's own knots, so
dF_l = w_l F(x_l, v_l).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import sympy as sp

from vidsym.exceptions import ExtractionAmbiguityError
from vidsym.quadrature.catalog import romberg_estimate
from vidsym.quadrature.family_registry import (
    POLYNOMIAL_INTEGRATION_FAMILIES,
    RICHARDSON_FAMILIES,
)
from vidsym.types.quadrature import QuadratureRule
from vidsym.types.symbolic import ForcingFunction, InterpolationFunction, LagrangianFunction
from vidsym.variational.path_reconstruction import compute_pq
from vidsym.variational.symbols import sample_symbols


@dataclass(frozen=True)
class DiscreteAction:
    """
    Discrete action of one step.

    Attributes
    ----------
    action : sp.Expr
        dS as a function of q_0..q_{n-1} and h
    forcing : List[sp.Expr]
        dF_0..dF_{n-1}, the forcing term paired with each q_l
    weights : List[sp.Expr]
        Effective per-sample weights over [0, h]
    rule : QuadratureRule
        Rule the action was assembled from
    """

    action: sp.Expr
    forcing: List[sp.Expr]
    weights: List[sp.Expr]
    rule: QuadratureRule


def sample_times(rule: QuadratureRule, h: sp.Symbol) -> List[sp.Expr]:
    """Map the rule's nodes from [a, b] onto [0, h]"""
    a, b = rule.bounds
    return [h * (x - a) / (b - a) for x in rule.nodes]


# ============================================================================
# Weight Extraction
# ============================================================================


def _match_weights(integral: sp.Expr, placeholders: Sequence[sp.Symbol]) -> List[sp.Expr]:
    """Exactly one term of ``integral`` per placeholder, nothing left over"""
    terms = sp.Add.make_args(sp.expand(integral))
    weights = []
    for k, value in enumerate(placeholders):
        matching = [term for term in terms if term.has(value)]
        if len(matching) != 1:
            raise ExtractionAmbiguityError(
                f"Expected exactly one term carrying sample {k}, found {len(matching)}",
                index=k,
            )
        weight = sp.simplify(matching[0] / value)
        if weight.has(*placeholders):
            raise ExtractionAmbiguityError(
                f"Weight of sample {k} is not linear in the sample value: {matching[0]}",
                index=k,
            )
        weights.append(weight)

    leftover = [term for term in terms if not term.has(*placeholders)]
    if leftover:
        raise ExtractionAmbiguityError(
            f"Integral contains terms independent of every sample: {leftover}"
        )
    return weights


def _group_weights(estimate: sp.Expr, placeholders: Sequence[sp.Symbol]) -> List[sp.Expr]:
    """Sum the coefficients of all terms sharing a placeholder"""
    grouped: Dict[sp.Symbol, List[sp.Expr]] = {value: [] for value in placeholders}
    for term in sp.Add.make_args(sp.expand(estimate)):
        present = [value for value in placeholders if term.has(value)]
        if len(present) != 1:
            raise ExtractionAmbiguityError(
                f"Term {term} references {len(present)} samples, expected exactly one",
                index=placeholders.index(present[0]) if present else None,
            )
        grouped[present[0]].append(term / present[0])

    weights = []
    for k, value in enumerate(placeholders):
        weight = sp.simplify(sp.Add(*grouped[value]))
        if weight.has(*placeholders):
            raise ExtractionAmbiguityError(
                f"Weight of sample {k} is not linear in the sample value", index=k
            )
        weights.append(weight)
    return weights


# ============================================================================
# Assembly Strategies
# ============================================================================


def _knot_forcing(
    weights: Sequence[sp.Expr],
    forcing: Optional[ForcingFunction],
    positions: Sequence[sp.Expr],
    velocities: Sequence[sp.Expr],
) -> List[sp.Expr]:
    if forcing is None:
        return [sp.S.Zero] * len(weights)
    return [w * forcing(x, v) for w, x, v in zip(weights, positions, velocities)]


def _weighted(rule, lagrangian, forcing, q, h, interpolation) -> Tuple[sp.Expr, List, List]:
    positions, velocities = compute_pq(sample_times(rule, h), q, h, interpolation)

    scale = h / rule.width * rule.multiplier
    coefficients = [scale * w for w in rule.weights]
    action = sp.Add(
        *[c * lagrangian(x, v) for c, x, v in zip(coefficients, positions, velocities)]
    )

    if forcing is None:
        return action, [sp.S.Zero] * rule.n, coefficients

    forces = [c * forcing(x, v) for c, x, v in zip(coefficients, positions, velocities)]
    terms = [
        sp.Add(*[f * sp.diff(x, unknown) for f, x in zip(forces, positions)])
        for unknown in sample_symbols(q, rule.n)
    ]
    return action, terms, coefficients


def _newton_cotes(rule, lagrangian, forcing, q, h, interpolation) -> Tuple[sp.Expr, List, List]:
    times = sample_times(rule, h)
    positions, velocities = compute_pq(times, q, h, interpolation)

    interpolate = interpolation if interpolation is not None else sp.interpolate
    t = sp.Dummy("t")
    placeholders = [sp.Dummy(f"L_{k}") for k in range(rule.n)]
    interpolant = interpolate(list(zip(times, placeholders)), t)
    weights = _match_weights(sp.integrate(interpolant, (t, 0, h)), placeholders)

    action = sp.Add(*[w * lagrangian(x, v) for w, x, v in zip(weights, positions, velocities)])
    return action, _knot_forcing(weights, forcing, positions, velocities), weights


def _romberg(rule, lagrangian, forcing, q, h, interpolation) -> Tuple[sp.Expr, List, List]:
    positions, velocities = compute_pq(sample_times(rule, h), q, h, interpolation)

    placeholders = [sp.Dummy(f"L_{k}") for k in range(rule.n)]
    weights = _group_weights(romberg_estimate(placeholders, h), placeholders)

    action = sp.Add(*[w * lagrangian(x, v) for w, x, v in zip(weights, positions, velocities)])
    return action, _knot_forcing(weights, forcing, positions, velocities), weights


def assemble_discrete_action(
    rule: QuadratureRule,
    lagrangian: LagrangianFunction,
    forcing: Optional[ForcingFunction],
    q: sp.Symbol,
    h: sp.Symbol,
    interpolation: Optional[InterpolationFunction] = None,
) -> DiscreteAction:
    """
    Assemble the discrete action and forcing terms of one step.

    Parameters
    ----------
    rule : QuadratureRule
        Built-in or user quadrature rule
    lagrangian : LagrangianFunction
        L(position, velocity)
    forcing : ForcingFunction or None
        F(position, velocity); None means no forcing
    q : sp.Symbol
        Position base symbol
    h : sp.Symbol
        Step size symbol
    interpolation : InterpolationFunction, optional
        Path interpolation operator (default ``sympy.interpolate``)

    Returns
    -------
    DiscreteAction

    Raises
    ------
    ExtractionAmbiguityError
        Newton-Cotes or Romberg weight recovery does not find exactly one
        sample per term
    ReconstructionError
        Degenerate sample times

    Examples
    --------
    >>> rule = get_quadrature_rule('NewtonCotes', 2)
    >>> discrete = assemble_discrete_action(rule, lambda x, v: v**2 / 2, None, q, h)
    >>> discrete.weights
    [h/2, h/2]
    """
    if rule.family in POLYNOMIAL_INTEGRATION_FAMILIES:
        strategy = _newton_cotes
    elif rule.family in RICHARDSON_FAMILIES:
        strategy = _romberg
    else:
        strategy = _weighted

    action, forcing_terms, weights = strategy(rule, lagrangian, forcing, q, h, interpolation)
    return DiscreteAction(action, list(forcing_terms), list(weights), rule)
