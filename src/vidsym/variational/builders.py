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
Construction Entry Points

Builds DEL systems from a Lagrangian, an optional forcing and a quadrature
rule, and wraps the whole pipeline (rule -> discrete action -> DEL system ->
explicit map -> driver) in VariationalIntegrator.

Usage
-----
>>> p, q, h = sp.symbols('p q h', real=True)
>>> system = build_del_system(2, lambda x, v: v**2 / 2, None, 'GaussLegendre', p, q, h)
>>> system
[Eq(p_0, -q_0/h + q_1/h), Eq(p_1, -q_0/h + q_1/h)]
>>>
>>> integrator = VariationalIntegrator.from_family('lobatto', 2, lagrangian, p, q, h)
>>> result = integrator.integrate((0.0, 1.0), (0.0, 10.0), 0.1, energy, explicit=True)
"""

from typing import Dict, Optional, Sequence, Tuple

import sympy as sp

from vidsym.integration.variational_driver import VariationalIntegrationDriver
from vidsym.quadrature.catalog import get_quadrature_rule, user_quadrature_rule
from vidsym.types.quadrature import QuadratureRule
from vidsym.types.symbolic import (
    DELSystem,
    ExplicitMap,
    ForcingFunction,
    InterpolationFunction,
    LagrangianFunction,
)
from vidsym.types.trajectories import PhasePoint, TimeSpan, VariationalTrajectory
from vidsym.variational.discrete_action import DiscreteAction, assemble_discrete_action
from vidsym.variational.euler_lagrange import discrete_euler_lagrange
from vidsym.variational.explicit_map import extract_explicit_map


def _del_from_rule(rule, lagrangian, forcing, p, q, h, interpolation) -> DELSystem:
    discrete = assemble_discrete_action(rule, lagrangian, forcing, q, h, interpolation)
    return discrete_euler_lagrange(rule.n, discrete.action, discrete.forcing, p, q)


def build_del_system(
    n: int,
    lagrangian: LagrangianFunction,
    forcing: Optional[ForcingFunction],
    family: str,
    p: sp.Symbol,
    q: sp.Symbol,
    h: sp.Symbol,
    precision: int = 30,
    interpolation: Optional[InterpolationFunction] = None,
) -> DELSystem:
    """
    Build the DEL system of a built-in quadrature family.

    Parameters
    ----------
    n : int
        Number of quadrature nodes
    lagrangian : LagrangianFunction
        L(position, velocity)
    forcing : ForcingFunction or None
        F(position, velocity)
    family : str
        Family tag or alias
    p, q, h : sp.Symbol
        Momentum, position and step size symbols
    precision : int
        Digits for numerically evaluated nodes and weights
    interpolation : InterpolationFunction, optional
        Path interpolation operator

    Returns
    -------
    DELSystem

    Raises
    ------
    ConfigurationError
        Unknown family or invalid n, before any symbolic work
    """
    rule = get_quadrature_rule(family, n, precision)
    return _del_from_rule(rule, lagrangian, forcing, p, q, h, interpolation)


def build_user_del_system(
    bounds: Tuple,
    nodes: Sequence,
    weights: Sequence,
    lagrangian: LagrangianFunction,
    forcing: Optional[ForcingFunction],
    p: sp.Symbol,
    q: sp.Symbol,
    h: sp.Symbol,
    interpolation: Optional[InterpolationFunction] = None,
) -> DELSystem:
    """
    Build the DEL system of a caller-supplied rule on ``bounds``.

    The nodes are rescaled onto [0, h] and weighted by h/(b - a).

    Raises
    ------
    ConfigurationError
        Invalid bounds, mismatched lengths or nodes outside the bounds
    """
    rule = user_quadrature_rule(bounds, nodes, weights)
    return _del_from_rule(rule, lagrangian, forcing, p, q, h, interpolation)


class VariationalIntegrator:
    """
    Variational integrator built from a Lagrangian and a quadrature rule.

    Attributes
    ----------
    rule : QuadratureRule
    action : DiscreteAction
        Discrete action and forcing terms of one step
    equations : DELSystem
        Discrete Euler-Lagrange equations

    Examples
    --------
    >>> V = sp.Function('V')
    >>> integrator = VariationalIntegrator.from_family(
    ...     'GaussLobatto', 2, lambda x, v: v**2/2 - V(x), p, q, h
    ... )
    >>> integrator.explicit_map(potential=V)
    >>> result = integrator.integrate(
    ...     (0.0, 1.0), (0.0, 10.0), 0.1, energy,
    ...     parameters={V: sp.Lambda(x, x**2/2)}, explicit=True, potential=V,
    ... )
    """

    def __init__(
        self,
        rule: QuadratureRule,
        lagrangian: LagrangianFunction,
        p: sp.Symbol,
        q: sp.Symbol,
        h: sp.Symbol,
        forcing: Optional[ForcingFunction] = None,
        interpolation: Optional[InterpolationFunction] = None,
    ):
        self.rule = rule
        self.lagrangian = lagrangian
        self.forcing = forcing
        self.p, self.q, self.h = p, q, h

        self.action: DiscreteAction = assemble_discrete_action(
            rule, lagrangian, forcing, q, h, interpolation
        )
        self.equations: DELSystem = discrete_euler_lagrange(
            rule.n, self.action.action, self.action.forcing, p, q
        )
        self._explicit: Dict[Tuple, ExplicitMap] = {}

    @classmethod
    def from_family(
        cls,
        family: str,
        n: int,
        lagrangian: LagrangianFunction,
        p: sp.Symbol,
        q: sp.Symbol,
        h: sp.Symbol,
        forcing: Optional[ForcingFunction] = None,
        precision: int = 30,
        interpolation: Optional[InterpolationFunction] = None,
    ) -> "VariationalIntegrator":
        """Build from a built-in quadrature family"""
        rule = get_quadrature_rule(family, n, precision)
        return cls(rule, lagrangian, p, q, h, forcing, interpolation)

    @classmethod
    def from_rule(
        cls,
        bounds: Tuple,
        nodes: Sequence,
        weights: Sequence,
        lagrangian: LagrangianFunction,
        p: sp.Symbol,
        q: sp.Symbol,
        h: sp.Symbol,
        forcing: Optional[ForcingFunction] = None,
        interpolation: Optional[InterpolationFunction] = None,
    ) -> "VariationalIntegrator":
        """Build from caller-supplied nodes and weights"""
        rule = user_quadrature_rule(bounds, nodes, weights)
        return cls(rule, lagrangian, p, q, h, forcing, interpolation)

    def explicit_map(self, potential=None, forcing=None) -> ExplicitMap:
        """
        Explicit one-step map (cached per potential/forcing head).

        Raises
        ------
        ExtractionAmbiguityError
            The Lagrangian is not separable on this rule
        """
        key = (potential, forcing)
        if key not in self._explicit:
            self._explicit[key] = extract_explicit_map(
                self.equations, self.p, self.q, potential, forcing
            )
        return self._explicit[key]

    def driver(
        self,
        parameters: Optional[Dict] = None,
        explicit: bool = False,
        potential=None,
        **options,
    ) -> VariationalIntegrationDriver:
        """Driver over the explicit map (``explicit=True``) or the DEL system"""
        system = self.explicit_map(potential) if explicit else self.equations
        return VariationalIntegrationDriver(system, self.p, self.q, self.h, parameters, **options)

    def integrate(
        self,
        initial: PhasePoint,
        t_span: TimeSpan,
        dt: float,
        observable,
        parameters: Optional[Dict] = None,
        explicit: bool = False,
        potential=None,
        **options,
    ) -> VariationalTrajectory:
        """Integrate from ``initial``; see VariationalIntegrationDriver.integrate"""
        driver = self.driver(parameters, explicit, potential, **options)
        return driver.integrate(initial, t_span, dt, observable)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.rule.family}, n={self.rule.n})"
