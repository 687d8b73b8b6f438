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
Indexed sample symbols.

``sample_symbols(q, 3)`` gives ``[q_0, q_1, q_2]``: the positions at the
reconstructed path samples of one step, with ``q_0`` and ``q_{n-1}`` the
step's boundary values. Each symbol inherits the assumptions of its base.
"""

from typing import List

import sympy as sp


def sample_symbol(base: sp.Symbol, k: int) -> sp.Symbol:
    """Indexed symbol ``{base}_{k}`` with the assumptions of ``base``"""
    return sp.Symbol(f"{base.name}_{k}", **base.assumptions0)


def sample_symbols(base: sp.Symbol, n: int) -> List[sp.Symbol]:
    """
    Indexed symbols ``{base}_0 .. {base}_{n-1}``.

    Examples
    --------
    >>> q = sp.Symbol('q', real=True)
    >>> sample_symbols(q, 3)
    [q_0, q_1, q_2]
    """
    return [sample_symbol(base, k) for k in range(n)]
