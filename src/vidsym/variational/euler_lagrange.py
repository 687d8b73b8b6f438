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
Discrete Euler-Lagrange equations.

Stationarity of the discrete action with respect to every sample of the
step, with the boundary equations defining the incoming and outgoing
momenta:

    p_0     = -∂dS/∂q_0     - dF_0
    0       =  ∂dS/∂q_k     + dF_k      (k = 1..n-2)
    p_{n-1} =  ∂dS/∂q_{n-1} + dF_{n-1}
"""

from typing import Sequence

import sympy as sp

from vidsym.exceptions import ConfigurationError
from vidsym.types.symbolic import DELSystem
from vidsym.variational.symbols import sample_symbol, sample_symbols


def _tidy(expr: sp.Expr) -> sp.Expr:
    return sp.expand(sp.simplify(expr))


def discrete_euler_lagrange(
    n: int,
    action: sp.Expr,
    forcing: Sequence[sp.Expr],
    p: sp.Symbol,
    q: sp.Symbol,
) -> DELSystem:
    """
    Differentiate a discrete action into the n DEL equations.

    Parameters
    ----------
    n : int
        Number of samples
    action : sp.Expr
        Discrete action dS(q_0..q_{n-1})
    forcing : Sequence[sp.Expr]
        Forcing terms dF_0..dF_{n-1}
    p, q : sp.Symbol
        Momentum and position base symbols

    Returns
    -------
    DELSystem
        n unevaluated equations; the first binds p_0, the last p_{n-1}

    Raises
    ------
    ConfigurationError
        If ``forcing`` does not hold exactly n terms

    Examples
    --------
    >>> dS = (q_1 - q_0)**2 / (2*h)
    >>> discrete_euler_lagrange(2, dS, [0, 0], p, q)
    [Eq(p_0, -q_0/h + q_1/h), Eq(p_1, -q_0/h + q_1/h)]
    """
    if len(forcing) != n:
        raise ConfigurationError(f"Expected {n} forcing terms, got {len(forcing)}", n=n)

    unknowns = sample_symbols(q, n)
    forcing = [sp.sympify(term) for term in forcing]

    system = [
        sp.Eq(sample_symbol(p, 0), _tidy(-sp.diff(action, unknowns[0]) - forcing[0]), evaluate=False)
    ]
    for k in range(1, n - 1):
        system.append(
            sp.Eq(sp.S.Zero, _tidy(sp.diff(action, unknowns[k]) + forcing[k]), evaluate=False)
        )
    system.append(
        sp.Eq(
            sample_symbol(p, n - 1),
            _tidy(sp.diff(action, unknowns[-1]) + forcing[-1]),
            evaluate=False,
        )
    )
    return system
