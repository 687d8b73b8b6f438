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
Quadrature rules for discrete actions.
"""

from .catalog import get_quadrature_rule, romberg_estimate, user_quadrature_rule
from .family_registry import (
    BUILTIN_FAMILIES,
    POLYNOMIAL_INTEGRATION_FAMILIES,
    RICHARDSON_FAMILIES,
    USER_DEFINED,
    get_available_families,
    is_builtin_family,
    normalize_family_name,
    require_valid_quadrature,
    validate_quadrature,
)
from .sorting import sort_nodes_weights

__all__ = [
    # Catalog
    "get_quadrature_rule",
    "user_quadrature_rule",
    "romberg_estimate",
    # Registry
    "BUILTIN_FAMILIES",
    "POLYNOMIAL_INTEGRATION_FAMILIES",
    "RICHARDSON_FAMILIES",
    "USER_DEFINED",
    "get_available_families",
    "is_builtin_family",
    "normalize_family_name",
    "require_valid_quadrature",
    "validate_quadrature",
    # Sorting
    "sort_nodes_weights",
]
