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
Quadrature Types

Defines the quadrature rule container shared by the catalog, the
node/weight sorter and the discrete action assembler.

A rule approximates ∫_a^b f(x) dx ≈ multiplier * Σ_k w_k f(x_k).
Built-in families live on the reference interval [-1, 1]; user rules
declare their own bounds.
"""

from dataclasses import dataclass
from typing import Tuple

import sympy as sp
from typing_extensions import Literal

QuadratureFamily = Literal[
    "NewtonCotes",
    "Romberg",
    "Chebyshev",
    "GaussLegendre",
    "GaussLobatto",
    "Fejer1",
    "Fejer2",
    "Fejer3",
    "Fejer4",
    "ClenshawCurtis",
    "TakahasiMori",
    "UserDefined",
]
"""
Quadrature family tag. ``UserDefined`` marks rules built from
caller-supplied nodes and weights.
"""


@dataclass(frozen=True)
class QuadratureRule:
    """
    Quadrature rule on an interval.

    Attributes
    ----------
    family : str
        Canonical family tag (see QuadratureFamily)
    n : int
        Number of nodes
    nodes : Tuple[sp.Expr, ...]
        Abscissas, sorted ascending
    weights : Tuple[sp.Expr, ...]
        Weights paired with ``nodes``
    multiplier : sp.Expr
        Scalar applied to every weight
    bounds : Tuple[sp.Expr, sp.Expr]
        Integration interval (a, b)
    """

    family: str
    n: int
    nodes: Tuple[sp.Expr, ...]
    weights: Tuple[sp.Expr, ...]
    multiplier: sp.Expr = sp.S.One
    bounds: Tuple[sp.Expr, sp.Expr] = (sp.S.NegativeOne, sp.S.One)

    def __post_init__(self):
        if not (len(self.nodes) == len(self.weights) == self.n):
            raise ValueError(
                f"QuadratureRule requires len(nodes) == len(weights) == n, got "
                f"{len(self.nodes)}, {len(self.weights)}, {self.n}"
            )

    @property
    def width(self) -> sp.Expr:
        """Length of the integration interval"""
        return self.bounds[1] - self.bounds[0]

    def total_weight(self) -> float:
        """Numeric value of multiplier * Σ w_k (equals the width for exact rules)"""
        return float(sp.N(self.multiplier * sp.Add(*self.weights)))

    def __repr__(self) -> str:
        return f"QuadratureRule({self.family}, n={self.n})"
