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
Explicit Map Extraction

Eliminates the interior samples of a DEL system so that one step becomes
an explicit map (p_0, q_0) -> (p_{n-1}, q_{n-1}).

Algorithm
---------
With R_k the right-hand side of DEL equation k (1-based):

1. Outgoing momentum: p_{n-1} = p_0 + Σ_{k=2}^{n} R_k - R_1.
2. q_{n-1} is isolated from equation n-1.
3. For i = n-2 .. 1, the partial sum of equations 1..i is taken, every
   already-solved q_{n-1} .. q_{i+1} is substituted (rightmost first),
   and q_i is isolated.
4. Forward pass: for i = 2..n, q_1 .. q_{i-1} are substituted into entry i
   (rightmost first), leaving every entry a function of p_0, q_0 and h.

Isolation requires the target to appear linearly. A target inside a
potential derivative V'(q_i), a power or a forcing argument makes the
elimination ambiguous and raises ExtractionAmbiguityError.

After every substitution and isolation the coefficients of each monomial in
the state symbols are cancelled to a single fraction, so entries stay
rational functions of the step size instead of nested quotients.

Examples
--------
>>> V = sp.Function('V')
>>> system = build_del_system(2, lambda x, v: v**2/2 - V(x), None, 'GaussLobatto', p, q, h)
>>> explicit = extract_explicit_map(system, p, q, potential=V)
>>> explicit[0]  # Störmer-Verlet drift: q_1 = q_0 + h p_0 - h**2 V'(q_0) / 2
"""

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

import sympy as sp
from sympy.core.function import AppliedUndef

from vidsym.exceptions import ConfigurationError, ExtractionAmbiguityError
from vidsym.types.symbolic import DELSystem, ExplicitMap
from vidsym.variational.symbols import sample_symbol, sample_symbols

# ============================================================================
# Building Blocks
# ============================================================================


def _split_term(term: sp.Expr, variables: FrozenSet[sp.Symbol]) -> Tuple[sp.Expr, sp.Expr]:
    """Separate a product into its parameter coefficient and its variable part"""
    coefficient, part = sp.S.One, sp.S.One
    for factor in sp.Mul.make_args(term):
        base = factor.as_base_exp()[0]
        if base.free_symbols & variables or isinstance(base, (AppliedUndef, sp.Subs, sp.Derivative)):
            part *= factor
        else:
            coefficient *= factor
    return coefficient, part


def _cancel(coefficient: sp.Expr) -> sp.Expr:
    # Rationalize so radicals from the quadrature nodes cancel too
    return sp.cancel(sp.radsimp(sp.cancel(coefficient)))


def reduce_coefficients(expr: sp.Expr, variables: Sequence[sp.Symbol] = ()) -> sp.Expr:
    """
    Expand ``expr`` and cancel the coefficient of each monomial in the variables.

    Coefficients are everything free of ``variables`` (the step size and any
    physical parameters) and are brought to a single reduced fraction.
    Function applications (potential derivatives, forcing) always count as
    part of the monomial, so they stay separate additive terms. Without
    variables the expression is only expanded.

    Examples
    --------
    >>> reduce_coefficients(q_0/(h + 1) + h*q_0/(h + 1) + p_0, [q_0, p_0])
    p_0 + q_0
    """
    expr = sp.expand(expr)
    if not variables or expr == 0:
        return expr

    variables = frozenset(variables)
    groups: Dict[sp.Expr, List[sp.Expr]] = {}
    for term in sp.Add.make_args(expr):
        coefficient, part = _split_term(term, variables)
        groups.setdefault(part, []).append(coefficient)

    return sp.Add(*[_cancel(sp.Add(*coefficients)) * part for part, coefficients in groups.items()])


def substitute_chain(
    expr: sp.Expr, solved: Sequence[sp.Eq], variables: Sequence[sp.Symbol] = ()
) -> sp.Expr:
    """
    Substitute solved equations into ``expr``, rightmost first.

    Entry j of ``solved`` may reference the unknowns of entries before it,
    so walking the list backwards eliminates every left-hand side. The
    result goes through ``reduce_coefficients`` over ``variables``.

    Examples
    --------
    >>> substitute_chain(q_2, [Eq(q_1, 2*q_0), Eq(q_2, q_1 + 1)])
    2*q_0 + 1
    """
    for equation in reversed(solved):
        expr = expr.subs(equation.lhs, equation.rhs)
    return reduce_coefficients(expr, variables)


def isolate_variable(
    residual: sp.Expr,
    target: sp.Symbol,
    next_unknown: Optional[sp.Symbol] = None,
    forcing=None,
    index: Optional[int] = None,
    variables: Sequence[sp.Symbol] = (),
) -> sp.Expr:
    """
    Solve ``residual = 0`` for a target appearing linearly.

    The residual is split as ``coefficient * target + rest``; ``rest`` is
    further split into the part carrying ``next_unknown``, the part carrying
    the forcing function and the remainder, each divided by the coefficient.

    Parameters
    ----------
    residual : sp.Expr
        Expression equal to zero
    target : sp.Symbol
        Unknown to isolate
    next_unknown : sp.Symbol, optional
        Unknown eliminated after the target
    forcing : sp.Function class, optional
        Forcing function head
    index : int, optional
        Equation index reported on failure
    variables : Sequence[sp.Symbol], optional
        State symbols; coefficients of their monomials are cancelled in
        each part

    Returns
    -------
    sp.Expr
        Expression for the target

    Raises
    ------
    ExtractionAmbiguityError
        If the target appears non-linearly or not at all
    """
    coefficient_terms, rest_terms = [], []
    for term in sp.Add.make_args(sp.expand(residual)):
        independent, dependent = term.as_independent(target, as_Add=False)
        if dependent == target:
            coefficient_terms.append(independent)
        elif dependent.has(target):
            raise ExtractionAmbiguityError(
                f"{target} appears non-linearly in equation {index} (term {term}); "
                f"the system is not separable on this rule",
                index=index,
            )
        else:
            rest_terms.append(term)

    coefficient = _cancel(sp.Add(*coefficient_terms))
    if coefficient == 0:
        raise ExtractionAmbiguityError(
            f"{target} does not appear linearly in equation {index}", index=index
        )

    next_part, forcing_part, remainder = [], [], []
    for term in rest_terms:
        if next_unknown is not None and term.has(next_unknown):
            next_part.append(term)
        elif forcing is not None and term.has(forcing):
            forcing_part.append(term)
        else:
            remainder.append(term)

    return sp.Add(
        *[
            reduce_coefficients(-sp.Add(*part) / coefficient, variables)
            for part in (next_part, forcing_part, remainder)
        ]
    )


# ============================================================================
# Validation
# ============================================================================


def _validate_structure(system: DELSystem, p: sp.Symbol, n: int):
    if n < 2:
        raise ConfigurationError(f"A DEL system has at least 2 equations, got {n}", n=n)

    if system[0].lhs != sample_symbol(p, 0) or system[-1].lhs != sample_symbol(p, n - 1):
        raise ConfigurationError(
            f"DEL system must bind {sample_symbol(p, 0)} first and "
            f"{sample_symbol(p, n - 1)} last",
            n=n,
        )

    for k, equation in enumerate(system[1:-1], start=2):
        if equation.lhs != 0:
            raise ConfigurationError(f"Interior DEL equation {k} must read 0 = ...", n=n)


def _check_potential_arguments(system: DELSystem, potential):
    """Every application of the potential must sit at a single sample"""
    for index, equation in enumerate(system, start=1):
        expr = equation.rhs
        for application in expr.atoms(AppliedUndef):
            if application.func == potential and not all(
                isinstance(arg, sp.Symbol) for arg in application.args
            ):
                raise ExtractionAmbiguityError(
                    f"{potential} is evaluated off the samples in equation {index}: "
                    f"{application}; the Lagrangian is not separable on this rule",
                    index=index,
                )
        for substitution in expr.atoms(sp.Subs):
            if substitution.expr.has(potential) and not all(
                isinstance(point, sp.Symbol) for point in substitution.point
            ):
                raise ExtractionAmbiguityError(
                    f"Derivative of {potential} is evaluated off the samples in equation "
                    f"{index}; the Lagrangian is not separable on this rule",
                    index=index,
                )


# ============================================================================
# Extraction
# ============================================================================


def extract_explicit_map(
    system: DELSystem,
    p: sp.Symbol,
    q: sp.Symbol,
    potential=None,
    forcing=None,
) -> ExplicitMap:
    """
    Turn a DEL system into an explicit one-step map.

    Parameters
    ----------
    system : DELSystem
        n equations from ``discrete_euler_lagrange``
    p, q : sp.Symbol
        Momentum and position base symbols
    potential : sp.Function class, optional
        Potential V of a separable Lagrangian ``T(v) - V(x)``; enables the
        check that V is only evaluated at samples
    forcing : sp.Function class, optional
        Forcing function head, kept as its own additive part

    Returns
    -------
    ExplicitMap
        ``[Eq(q_1, ...), ..., Eq(q_{n-1}, ...), Eq(p_{n-1}, ...)]``, every
        right-hand side a function of p_0, q_0 and h

    Raises
    ------
    ConfigurationError
        Malformed DEL system
    ExtractionAmbiguityError
        Non-separable system (a target appears non-linearly)
    """
    n = len(system)
    _validate_structure(system, p, n)
    if potential is not None:
        _check_potential_arguments(system, potential)

    unknowns = sample_symbols(q, n)
    variables = list(unknowns) + [sample_symbol(p, 0), sample_symbol(p, n - 1)]
    residuals = [reduce_coefficients(equation.lhs - equation.rhs, variables) for equation in system]
    rhs = [equation.rhs for equation in system]

    # 1-based, index-aligned with the DEL equations
    extracted: List[Optional[sp.Eq]] = [None] * (n + 1)

    extracted[n] = sp.Eq(
        sample_symbol(p, n - 1),
        reduce_coefficients(sample_symbol(p, 0) + sp.Add(*rhs[1:]) - rhs[0], variables),
        evaluate=False,
    )
    extracted[n - 1] = sp.Eq(
        unknowns[n - 1],
        isolate_variable(
            residuals[n - 2], unknowns[n - 1], unknowns[n - 2], forcing, n - 1, variables
        ),
        evaluate=False,
    )

    for i in range(n - 2, 0, -1):
        partial = substitute_chain(sp.Add(*residuals[:i]), extracted[i + 1 : n], variables)
        extracted[i] = sp.Eq(
            unknowns[i],
            isolate_variable(partial, unknowns[i], unknowns[i - 1], forcing, i, variables),
            evaluate=False,
        )

    for i in range(2, n + 1):
        extracted[i] = sp.Eq(
            extracted[i].lhs,
            substitute_chain(extracted[i].rhs, extracted[1:i], variables),
            evaluate=False,
        )

    pending = set(unknowns[1:]) | {sample_symbol(p, n - 1)}
    for i in range(1, n + 1):
        leftover = extracted[i].rhs.free_symbols & pending
        if leftover:
            raise ExtractionAmbiguityError(
                f"Entry {i} still depends on unknowns {sorted(map(str, leftover))}",
                index=i,
            )

    return extracted[1:]
