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
Node/weight sorting for quadrature rules.
"""

from typing import Sequence, Tuple

import sympy as sp


def _numeric_key(node) -> float:
    # Symbolic nodes are only evaluated for comparison, never rewritten
    return float(sp.N(node))


def sort_nodes_weights(
    nodes: Sequence, weights: Sequence
) -> Tuple[Tuple, Tuple]:
    """
    Reorder nodes ascending, keeping each weight paired with its node.

    The sort is stable, so tied nodes keep their input order in both
    outputs. Node and weight values are returned untouched.

    Parameters
    ----------
    nodes : Sequence
        Abscissas (numbers or SymPy expressions)
    weights : Sequence
        Weights, same length as ``nodes``

    Returns
    -------
    Tuple[Tuple, Tuple]
        (sorted_nodes, paired_weights)

    Examples
    --------
    >>> sort_nodes_weights([1, 0, sp.sqrt(2) / 2], [0.25, 0.75, 1.0])
    ((0, sqrt(2)/2, 1), (0.75, 1.0, 0.25))
    """
    order = sorted(range(len(nodes)), key=lambda k: _numeric_key(nodes[k]))
    return tuple(nodes[k] for k in order), tuple(weights[k] for k in order)
