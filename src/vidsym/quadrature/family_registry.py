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
Quadrature Family Registry and Normalization
============================================

Single source of truth for the built-in quadrature families:
- Canonical tag normalization (e.g., 'gauss_legendre' → 'GaussLegendre')
- Node-count constraints per family
- Family classification (assembly strategy)

Canonical Tags
--------------
NewtonCotes, Romberg, Chebyshev, GaussLegendre, GaussLobatto, Fejer1,
Fejer2, Fejer3, Fejer4, ClenshawCurtis, TakahasiMori

Node-Count Rules
----------------
- All families: n >= 2
- Romberg: n - 1 must be a power of two (n = 2, 3, 5, 9, ...)
- TakahasiMori: n odd and n >= 3
- Chebyshev (equal weights): n in {2, ..., 7, 9}; other orders have
  complex nodes

Usage Examples
--------------
>>> normalize_family_name('gauss_legendre')
'GaussLegendre'
>>> normalize_family_name('tanh-sinh')
'TakahasiMori'
>>>
>>> validate_quadrature('Romberg', 4)
(False, "Romberg requires n - 1 to be a power of two (n = 2, 3, 5, 9, ...), got n=4")
>>>
>>> require_valid_quadrature('TakahasiMori', 4)
Traceback (most recent call last):
...
ConfigurationError: TakahasiMori requires an odd node count n >= 3, got n=4

Notes
-----
- Normalization is idempotent: normalize(normalize(x)) = normalize(x)
- Unknown names pass through normalization unchanged and are rejected
  by validation
"""

from typing import Dict, FrozenSet, List, Optional, Tuple

from vidsym.exceptions import ConfigurationError

# ============================================================================
# Canonical Families
# ============================================================================

BUILTIN_FAMILIES: Tuple[str, ...] = (
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
)

USER_DEFINED = "UserDefined"

# Families whose assembly does not go through weighted quadrature
POLYNOMIAL_INTEGRATION_FAMILIES: FrozenSet[str] = frozenset(["NewtonCotes"])
RICHARDSON_FAMILIES: FrozenSet[str] = frozenset(["Romberg"])

CHEBYSHEV_ORDERS: FrozenSet[int] = frozenset([2, 3, 4, 5, 6, 7, 9])

# ============================================================================
# Alias Map
# ============================================================================

ALIAS_MAP: Dict[str, str] = {
    "newton_cotes": "NewtonCotes",
    "newtoncotes": "NewtonCotes",
    "romberg": "Romberg",
    "chebyshev": "Chebyshev",
    "gauss": "GaussLegendre",
    "gauss_legendre": "GaussLegendre",
    "gausslegendre": "GaussLegendre",
    "legendre": "GaussLegendre",
    "lobatto": "GaussLobatto",
    "gauss_lobatto": "GaussLobatto",
    "gausslobatto": "GaussLobatto",
    "fejer1": "Fejer1",
    "fejer_1": "Fejer1",
    "fejer2": "Fejer2",
    "fejer_2": "Fejer2",
    "fejer3": "Fejer3",
    "fejer_3": "Fejer3",
    "fejer4": "Fejer4",
    "fejer_4": "Fejer4",
    "clenshaw_curtis": "ClenshawCurtis",
    "clenshawcurtis": "ClenshawCurtis",
    "takahasi_mori": "TakahasiMori",
    "takahasimori": "TakahasiMori",
    "tanh_sinh": "TakahasiMori",
    "double_exponential": "TakahasiMori",
}


def _alias_key(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def normalize_family_name(family: str) -> str:
    """
    Normalize a quadrature family name to its canonical tag.

    Parameters
    ----------
    family : str
        User-provided family name (canonical tag or alias, any case,
        '-', '_' or ' ' as separators)

    Returns
    -------
    str
        Canonical tag, or the input unchanged if it is not recognized

    Examples
    --------
    >>> normalize_family_name('GaussLegendre')
    'GaussLegendre'
    >>> normalize_family_name('Clenshaw-Curtis')
    'ClenshawCurtis'
    >>> normalize_family_name('no_such_rule')
    'no_such_rule'
    """
    if family in BUILTIN_FAMILIES or family == USER_DEFINED:
        return family
    return ALIAS_MAP.get(_alias_key(family), family)


def is_builtin_family(family: str) -> bool:
    """Check whether a (possibly aliased) name refers to a built-in family"""
    return normalize_family_name(family) in BUILTIN_FAMILIES


def get_available_families() -> Dict[str, List[str]]:
    """
    List built-in families and the aliases accepted for each.

    Returns
    -------
    Dict[str, List[str]]
        Canonical tag → sorted aliases

    Examples
    --------
    >>> get_available_families()['TakahasiMori']
    ['double_exponential', 'takahasi_mori', 'takahasimori', 'tanh_sinh']
    """
    families: Dict[str, List[str]] = {name: [] for name in BUILTIN_FAMILIES}
    for alias, canonical in ALIAS_MAP.items():
        families[canonical].append(alias)
    return {name: sorted(aliases) for name, aliases in families.items()}


# ============================================================================
# Validation
# ============================================================================


def _is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def validate_quadrature(family: str, n: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a family tag and node count.

    Parameters
    ----------
    family : str
        Family name (canonical or alias)
    n : int
        Requested number of nodes

    Returns
    -------
    is_valid : bool
        True if the combination is supported
    error_message : str or None
        Description of the problem if invalid, None if valid

    Examples
    --------
    >>> validate_quadrature('GaussLegendre', 3)
    (True, None)
    >>> validate_quadrature('Simpson', 3)[0]
    False
    """
    canonical = normalize_family_name(family)

    if canonical not in BUILTIN_FAMILIES:
        return False, (
            f"Unknown quadrature family '{family}'. "
            f"Available families: {list(BUILTIN_FAMILIES)}"
        )

    if isinstance(n, bool) or not isinstance(n, int):
        return False, f"Node count must be an integer, got {n!r}"

    if n < 2:
        return False, f"{canonical} requires at least 2 nodes, got n={n}"

    if canonical == "Romberg" and not _is_power_of_two(n - 1):
        return False, (
            f"Romberg requires n - 1 to be a power of two (n = 2, 3, 5, 9, ...), got n={n}"
        )

    if canonical == "TakahasiMori" and (n % 2 == 0 or n < 3):
        return False, f"TakahasiMori requires an odd node count n >= 3, got n={n}"

    if canonical == "Chebyshev" and n not in CHEBYSHEV_ORDERS:
        return False, (
            f"Chebyshev equal-weight quadrature has real nodes only for "
            f"n in {sorted(CHEBYSHEV_ORDERS)}, got n={n}"
        )

    return True, None


def require_valid_quadrature(family: str, n: int) -> str:
    """
    Validate a family tag and node count, raising on failure.

    Returns
    -------
    str
        Canonical family tag

    Raises
    ------
    ConfigurationError
        If the family is unknown or n violates the family's constraint
    """
    is_valid, error = validate_quadrature(family, n)
    if not is_valid:
        raise ConfigurationError(error, family=family, n=n)
    return normalize_family_name(family)
