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
vidsym: symbolic variational integrators.

Builds discrete Euler-Lagrange equations of a Lagrangian system from a
quadrature rule, extracts explicit one-step maps for separable
Lagrangians and integrates either form numerically.

Pipeline
--------
quadrature rule -> reconstructed path -> discrete action -> DEL system
-> (explicit map) -> trajectory

Examples
--------
>>> import sympy as sp
>>> import vidsym
>>> p, q, h = sp.symbols('p q h', real=True)
>>> system = vidsym.build_del_system(
...     2, lambda x, v: v**2/2 - x**2/2, None, 'GaussLobatto', p, q, h
... )
>>> explicit = vidsym.extract_explicit_map(system, p, q)
>>> result = vidsym.integrate_system(
...     explicit, (p, q, h), (0.0, 1.0), (0.0, 10.0), 0.1,
...     lambda p, q: p**2/2 + q**2/2,
... )
"""

__version__ = "0.1.0"

# Import order matters: builders depends on both variational and integration
from .exceptions import (
    ConfigurationError,
    ConvergenceError,
    ExtractionAmbiguityError,
    ReconstructionError,
    VariationalIntegratorError,
)
from .types import QuadratureRule, VariationalTrajectory
from .quadrature import (
    get_available_families,
    get_quadrature_rule,
    romberg_estimate,
    sort_nodes_weights,
    user_quadrature_rule,
)
from .variational import (
    DiscreteAction,
    assemble_discrete_action,
    compute_pq,
    discrete_euler_lagrange,
    extract_explicit_map,
)
from .integration import ConditionalSolver, VariationalIntegrationDriver, integrate_system
from .variational.builders import (
    VariationalIntegrator,
    build_del_system,
    build_user_del_system,
)

__all__ = [
    # Errors
    "VariationalIntegratorError",
    "ConfigurationError",
    "ConvergenceError",
    "ExtractionAmbiguityError",
    "ReconstructionError",
    # Types
    "QuadratureRule",
    "VariationalTrajectory",
    # Quadrature
    "get_available_families",
    "get_quadrature_rule",
    "romberg_estimate",
    "sort_nodes_weights",
    "user_quadrature_rule",
    # Variational
    "DiscreteAction",
    "assemble_discrete_action",
    "compute_pq",
    "discrete_euler_lagrange",
    "extract_explicit_map",
    # Integration
    "ConditionalSolver",
    "VariationalIntegrationDriver",
    "integrate_system",
    # Entry points
    "VariationalIntegrator",
    "build_del_system",
    "build_user_del_system",
]
