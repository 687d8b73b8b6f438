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
Variational discretization: path reconstruction, discrete action, discrete
Euler-Lagrange equations and explicit map extraction.

The construction entry points live in ``vidsym.variational.builders``,
which also depends on ``vidsym.integration``.
"""

from .discrete_action import DiscreteAction, assemble_discrete_action, sample_times
from .euler_lagrange import discrete_euler_lagrange
from .explicit_map import (
    extract_explicit_map,
    isolate_variable,
    reduce_coefficients,
    substitute_chain,
)
from .path_reconstruction import compute_pq
from .symbols import sample_symbol, sample_symbols

__all__ = [
    "DiscreteAction",
    "assemble_discrete_action",
    "sample_times",
    "discrete_euler_lagrange",
    "extract_explicit_map",
    "isolate_variable",
    "reduce_coefficients",
    "substitute_chain",
    "compute_pq",
    "sample_symbol",
    "sample_symbols",
]
