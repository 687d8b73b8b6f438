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
Unit tests for explicit map extraction.

Tests cover:
1. Substitution and isolation building blocks
2. Störmer-Verlet from the two-point Lobatto rule
3. Linear systems against a direct solve, up to five points
4. Forcing split
5. Non-separable systems
"""

import pytest
import sympy as sp

from vidsym.exceptions import ConfigurationError, ExtractionAmbiguityError
from vidsym.variational.builders import build_del_system
from vidsym.variational.explicit_map import (
    extract_explicit_map,
    isolate_variable,
    reduce_coefficients,
    substitute_chain,
)
from vidsym.variational.symbols import sample_symbol, sample_symbols


@pytest.fixture
def symbols():
    p, q, h = sp.symbols("p q h", real=True)
    samples = sp.symbols("q_0 q_1 q_2", real=True)
    momenta = sp.symbols("p_0 p_1 p_2", real=True)
    return p, q, h, samples, momenta


def free_particle(x, v):
    return v**2 / 2


def harmonic(x, v):
    return v**2 / 2 - x**2 / 2


# ============================================================================
# Test Class 1: Building Blocks
# ============================================================================


class TestBuildingBlocks:
    """substitute_chain and isolate_variable"""

    def test_substitute_chain_rightmost_first(self, symbols):
        _, _, _, (q0, q1, q2), _ = symbols
        solved = [sp.Eq(q1, 2 * q0), sp.Eq(q2, q1 + 1)]
        assert substitute_chain(q2, solved) == 2 * q0 + 1

    def test_isolate_linear(self, symbols):
        _, _, _, (q0, q1, _), _ = symbols
        result = isolate_variable(2 * q1 - q0 - 3, q1, q0)
        assert sp.expand(result - (q0 / 2 + sp.Rational(3, 2))) == 0

    def test_isolate_keeps_forcing_part(self, symbols):
        _, _, h, (q0, q1, _), _ = symbols
        F = sp.Function("F")
        result = isolate_variable(q1 - q0 - h * F(q0), q1, q0, F)
        assert sp.expand(result - (q0 + h * F(q0))) == 0

    def test_reduce_cancels_parameter_coefficients(self, symbols):
        _, _, h, (q0, _, _), (p0, _, _) = symbols
        expr = q0 / (h + 1) + h * q0 / (h + 1) + p0 * (h**2 - 1) / (h - 1)
        assert reduce_coefficients(expr, [q0, p0]) == q0 + (h + 1) * p0

    def test_reduce_keeps_function_terms_apart(self, symbols):
        _, _, h, (q0, _, _), _ = symbols
        F = sp.Function("F")
        reduced = reduce_coefficients((h**2 + h) * F(q0) / (h + 1) + q0, [q0])
        assert set(sp.Add.make_args(reduced)) == {h * F(q0), q0}

    def test_isolate_nonlinear_target(self, symbols):
        _, _, _, (q0, q1, _), _ = symbols
        with pytest.raises(ExtractionAmbiguityError) as excinfo:
            isolate_variable(q1**2 - q0, q1, q0, index=2)
        assert excinfo.value.index == 2

    def test_isolate_absent_target(self, symbols):
        _, _, _, (q0, q1, _), _ = symbols
        with pytest.raises(ExtractionAmbiguityError):
            isolate_variable(q0 - 1, q1, q0)


# ============================================================================
# Test Class 2: Störmer-Verlet
# ============================================================================


class TestStormerVerlet:
    """Two-point Lobatto with an abstract potential"""

    def test_drift_and_kick(self, symbols):
        p, q, h, (q0, q1, _), (p0, p1, _) = symbols
        V = sp.Function("V")
        x = sp.Symbol("x")
        system = build_del_system(2, lambda x, v: v**2 / 2 - V(x), None, "GaussLobatto", p, q, h)

        explicit = extract_explicit_map(system, p, q, potential=V)

        assert [eq.lhs for eq in explicit] == [q1, p1]
        expected_q1 = q0 + h * p0 - h**2 * sp.Derivative(V(q0), q0) / 2
        assert sp.simplify(explicit[0].rhs - expected_q1) == 0

        # Compare the momentum update with a concrete potential bound in
        quartic = sp.Lambda(x, x**4 / 4 + x**2)
        force = sp.diff(quartic(x), x)
        q1_value = q0 + h * p0 - h**2 * force.subs(x, q0) / 2
        expected_p1 = p0 - h / 2 * (force.subs(x, q0) + force.subs(x, q1_value))
        actual_p1 = explicit[1].rhs.subs(V, quartic).doit()
        assert sp.expand(actual_p1 - expected_p1) == 0

    def test_entries_depend_only_on_incoming_state(self, symbols):
        p, q, h, (q0, q1, _), (p0, p1, _) = symbols
        V = sp.Function("V")
        system = build_del_system(2, lambda x, v: v**2 / 2 - V(x), None, "lobatto", p, q, h)

        explicit = extract_explicit_map(system, p, q, potential=V)

        for equation in explicit:
            assert equation.rhs.free_symbols <= {p0, q0, h}


# ============================================================================
# Test Class 3: Linear Systems
# ============================================================================


class TestLinearSystems:
    """Linear DEL systems are always separable"""

    def test_free_particle_gauss_legendre(self, symbols):
        p, q, h, (q0, q1, _), (p0, p1, _) = symbols
        system = build_del_system(2, free_particle, None, "GaussLegendre", p, q, h)

        explicit = extract_explicit_map(system, p, q)

        assert sp.simplify(explicit[0].rhs - (q0 + h * p0)) == 0
        assert sp.simplify(explicit[1].rhs - p0) == 0

    @pytest.mark.parametrize("family", ["GaussLobatto", "NewtonCotes", "Romberg"])
    def test_three_points_match_direct_solve(self, symbols, family):
        """Eliminating interior samples agrees with solving the DEL system outright"""
        p, q, h, (q0, q1, q2), (p0, p1, p2) = symbols
        system = build_del_system(3, harmonic, None, family, p, q, h)

        explicit = extract_explicit_map(system, p, q)
        direct = sp.solve(system, [q1, q2, p2], dict=True)

        assert len(direct) == 1
        assert [eq.lhs for eq in explicit] == [q1, q2, p2]
        for equation in explicit:
            assert sp.simplify(equation.rhs - direct[0][equation.lhs]) == 0

    @pytest.mark.parametrize(
        "family,n",
        [
            ("GaussLobatto", 4),
            ("NewtonCotes", 4),
            ("GaussLobatto", 5),
            ("NewtonCotes", 5),
            ("Romberg", 5),
        ],
    )
    def test_partial_sum_elimination(self, symbols, family, n):
        """Four and five points go through the partial-sum recursion"""
        p, q, h, _, _ = symbols
        system = build_del_system(n, harmonic, None, family, p, q, h)

        explicit = extract_explicit_map(system, p, q)

        unknowns = sample_symbols(q, n)[1:] + [sample_symbol(p, n - 1)]
        assert [eq.lhs for eq in explicit] == unknowns

        p0, q0 = sample_symbol(p, 0), sample_symbol(q, 0)
        point = {p0: sp.Rational(3, 10), q0: sp.Rational(4, 5), h: sp.Rational(1, 10)}
        direct = sp.solve([eq.subs(point) for eq in system], unknowns, dict=True)
        assert len(direct) == 1
        for equation in explicit:
            assert equation.rhs.free_symbols <= {p0, q0, h}
            assert abs(float(equation.rhs.subs(point) - direct[0][equation.lhs])) < 1e-12

    @pytest.mark.parametrize("family", ["NewtonCotes", "Romberg"])
    def test_entries_stay_compact(self, symbols, family):
        """Coefficients are cancelled between elimination steps"""
        p, q, h, _, _ = symbols
        system = build_del_system(5, harmonic, None, family, p, q, h)

        explicit = extract_explicit_map(system, p, q)

        for equation in explicit:
            assert sp.count_ops(equation.rhs) < 1500


# ============================================================================
# Test Class 4: Forcing
# ============================================================================


class TestForcing:
    """Position-dependent forcing"""

    def test_position_forcing_split(self, symbols):
        p, q, h, (q0, q1, _), (p0, p1, _) = symbols
        F = sp.Function("F")
        system = build_del_system(2, free_particle, lambda x, v: F(x), "GaussLobatto", p, q, h)

        explicit = extract_explicit_map(system, p, q, forcing=F)

        q1_value = q0 + h * p0 + h**2 * F(q0) / 2
        assert sp.simplify(explicit[0].rhs - q1_value) == 0
        expected_p1 = p0 + h / 2 * (F(q0) + F(q1_value))
        assert sp.simplify(explicit[1].rhs - expected_p1) == 0


# ============================================================================
# Test Class 5: Non-Separable Systems
# ============================================================================


class TestNonSeparable:
    """Systems the extractor must refuse"""

    def test_potential_between_samples(self, symbols):
        """Gauss-Legendre evaluates V between the samples"""
        p, q, h, _, _ = symbols
        V = sp.Function("V")
        system = build_del_system(2, lambda x, v: v**2 / 2 - V(x), None, "GaussLegendre", p, q, h)

        with pytest.raises(ExtractionAmbiguityError, match="not separable"):
            extract_explicit_map(system, p, q, potential=V)

    def test_implicit_interior_potential(self, symbols):
        """Three-point Lobatto couples V'(q_1) into its own equation"""
        p, q, h, _, _ = symbols
        V = sp.Function("V")
        system = build_del_system(3, lambda x, v: v**2 / 2 - V(x), None, "GaussLobatto", p, q, h)

        with pytest.raises(ExtractionAmbiguityError) as excinfo:
            extract_explicit_map(system, p, q, potential=V)
        assert excinfo.value.index is not None

    def test_nonlinear_velocity_forcing(self, symbols):
        p, q, h, _, _ = symbols
        system = build_del_system(2, free_particle, lambda x, v: -(v**3), "GaussLobatto", p, q, h)

        with pytest.raises(ExtractionAmbiguityError):
            extract_explicit_map(system, p, q)

    def test_malformed_system(self, symbols):
        p, q, h, _, _ = symbols
        system = build_del_system(2, free_particle, None, "GaussLobatto", p, q, h)

        with pytest.raises(ConfigurationError):
            extract_explicit_map(list(reversed(system)), p, q)
