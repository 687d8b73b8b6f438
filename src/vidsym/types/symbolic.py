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
Symbolic Types

Defines types for the symbolic side of variational integrators:
- Symbolic expressions and equations
- Lagrangian and forcing callables
- Interpolation operators
- Discrete Euler-Lagrange systems and explicit one-step maps

Mathematical Context
-------------------
A continuous Lagrangian L(q, Dq) and a generalized force F(q, Dq) are given
as callables that return SymPy expressions. The discrete action over one
step of size h is a weighted sum of L at reconstructed path samples:

    dS = Σ_k c_k L(x_k, v_k)

Differentiating dS with respect to each sample q_k yields the discrete
Euler-Lagrange (DEL) equations, stored as an ordered list of SymPy
equations:

    p_0     = -∂dS/∂q_0     - dF_1
    0       =  ∂dS/∂q_{k-1} + dF_k      (k = 2..n-1)
    p_{n-1} =  ∂dS/∂q_{n-1} + dF_n

Usage
-----
>>> import sympy as sp
>>> from vidsym.types.symbolic import LagrangianFunction
>>>
>>> lagrangian: LagrangianFunction = lambda x, v: v**2 / 2 - x**2 / 2

These are TYPE DEFINITIONS only - no implementation logic.
"""

from typing import Callable, List, Sequence, Tuple

import sympy as sp

# ============================================================================
# Basic Symbolic Types
# ============================================================================

SymbolicExpression = sp.Expr
"""
Single symbolic expression (positions, velocities, actions, residuals).
"""

SymbolicEquation = sp.Eq
"""
Single symbolic equation lhs = rhs.

Always constructed with ``evaluate=False`` so that equations whose sides
happen to coincide are not collapsed to ``True``.
"""

# ============================================================================
# Mechanical Callables
# ============================================================================

LagrangianFunction = Callable[[sp.Expr, sp.Expr], sp.Expr]
"""
Continuous Lagrangian L(position, velocity) -> expression.

Examples
--------
>>> free_particle: LagrangianFunction = lambda x, v: v**2 / 2
>>> V = sp.Function("V")
>>> separable: LagrangianFunction = lambda x, v: v**2 / 2 - V(x)
"""

ForcingFunction = Callable[[sp.Expr, sp.Expr], sp.Expr]
"""
Generalized (weak) forcing F(position, velocity) -> expression.

Examples
--------
>>> damping: ForcingFunction = lambda x, v: -sp.Rational(1, 10) * v
"""

InterpolationPoints = Sequence[Tuple[sp.Expr, sp.Expr]]
"""
Labeled points (t_k, value_k) handed to an interpolation operator.
"""

InterpolationFunction = Callable[[InterpolationPoints, sp.Symbol], sp.Expr]
"""
Interpolation operator (points, t) -> expression in t.

The default is ``sympy.interpolate``; any operator returning an expression
that passes through every labeled point may be plugged in.
"""

# ============================================================================
# Equation Systems
# ============================================================================

DELSystem = List[sp.Eq]
"""
Ordered discrete Euler-Lagrange equations, exactly n for an n-node rule.

Equation 1 binds p_0, equation n binds p_{n-1}, equations 2..n-1 are the
interior stationarity conditions.
"""

ExplicitMap = List[sp.Eq]
"""
Ordered explicit one-step map, index-aligned with the DEL equations.

Entries 1..n-1 are ``q_k = f_k(p_0, q_0)``, entry n is
``p_{n-1} = g(p_0, q_0)``. Safe to evaluate in ascending order.
"""
