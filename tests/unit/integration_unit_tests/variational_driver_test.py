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
Unit tests for VariationalIntegrationDriver and integrate_system.

Tests cover:
1. Mode detection
2. Time grid and trajectory layout
3. Explicit/implicit single-step agreement
4. Energy behavior of symplectic schemes
5. Parameter binding
6. Failure handling (partial trajectories)
7. Statistics
"""

import warnings

import numpy as np
import pytest
import sympy as sp
from numpy.testing import assert_allclose

from vidsym.exceptions import ConfigurationError, ConvergenceError
from vidsym.integration.variational_driver import (
    VariationalIntegrationDriver,
    integrate_system,
)
from vidsym.variational.builders import build_del_system
from vidsym.variational.explicit_map import extract_explicit_map


def free_particle(x, v):
    return v**2 / 2


def harmonic(x, v):
    return v**2 / 2 - x**2 / 2


def energy(p, q):
    return p**2 / 2 + q**2 / 2


@pytest.fixture
def symbols():
    return sp.symbols("p q h", real=True)


@pytest.fixture
def verlet(symbols):
    """Explicit Störmer-Verlet map for the harmonic oscillator"""
    p, q, h = symbols
    system = build_del_system(2, harmonic, None, "GaussLobatto", p, q, h)
    return system, extract_explicit_map(system, p, q)


# ============================================================================
# Test Class 1: Mode Detection
# ============================================================================


class TestModeDetection:
    """Explicit maps vs DEL systems"""

    def test_explicit_map(self, symbols, verlet):
        p, q, h = symbols
        _, explicit = verlet
        driver = VariationalIntegrationDriver(explicit, p, q, h)
        assert driver.mode == "explicit"
        assert "explicit" in driver.name

    def test_del_system(self, symbols, verlet):
        p, q, h = symbols
        system, _ = verlet
        driver = VariationalIntegrationDriver(system, p, q, h)
        assert driver.mode == "implicit"

    def test_repr(self, symbols, verlet):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(verlet[1], p, q, h, dt=0.1)
        assert repr(driver) == "VariationalIntegrationDriver(n=2, mode=explicit, dt=0.1)"


# ============================================================================
# Test Class 2: Grid and Layout
# ============================================================================


class TestTrajectoryLayout:
    """Time grid, array lengths and result fields"""

    def test_free_particle_moves_uniformly(self, symbols):
        p, q, h = symbols
        system = build_del_system(2, free_particle, None, "GaussLegendre", p, q, h)
        explicit = extract_explicit_map(system, p, q)

        result = integrate_system(explicit, (p, q, h), (1.0, 0.0), (0.0, 1.0), 0.1, energy)

        assert result["success"]
        assert result["nsteps"] == 10
        assert_allclose(result["t"], np.linspace(0.0, 1.0, 11))
        assert_allclose(result["q"], result["t"], atol=1e-12)
        assert_allclose(result["p"], np.ones(11))

    def test_step_count_rounds_up(self, symbols, verlet):
        p, q, h = symbols
        result = integrate_system(verlet[1], (p, q, h), (0.0, 1.0), (0.0, 1.05), 0.1, energy)

        assert result["nsteps"] == 11
        assert len(result["t"]) == len(result["p"]) == len(result["q"]) == 12
        assert_allclose(result["t"][-1], 1.1)

    def test_observable_at_every_step(self, symbols, verlet):
        p, q, h = symbols
        result = integrate_system(verlet[1], (p, q, h), (0.0, 1.0), (0.0, 1.0), 0.1, energy)

        assert result["observable"][0] == energy(0.0, 1.0)
        assert_allclose(result["observable"], energy(result["p"], result["q"]))

    def test_result_fields(self, symbols, verlet):
        p, q, h = symbols
        result = integrate_system(verlet[1], (p, q, h), (0.0, 1.0), (0.0, 0.5), 0.1, energy)

        for key in ("t", "p", "q", "observable", "success", "message", "nsteps",
                    "nfev", "integration_time", "solver", "mode"):
            assert key in result
        assert result["mode"] == "explicit"
        assert result["nfev"] == 0

    def test_default_dt_option(self, symbols, verlet):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(verlet[1], p, q, h, dt=0.25)
        result = driver.integrate((0.0, 1.0), (0.0, 1.0), None, energy)
        assert result["nsteps"] == 4

    def test_invalid_step_size(self, symbols, verlet):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(verlet[1], p, q, h)
        with pytest.raises(ConfigurationError):
            driver.integrate((0.0, 1.0), (0.0, 1.0), None, energy)
        with pytest.raises(ConfigurationError):
            driver.step(0.0, 1.0, -0.1)

    def test_invalid_time_span(self, symbols, verlet):
        p, q, h = symbols
        with pytest.raises(ConfigurationError):
            integrate_system(verlet[1], (p, q, h), (0.0, 1.0), (1.0, 0.0), 0.1, energy)


# ============================================================================
# Test Class 3: Explicit / Implicit Agreement
# ============================================================================


class TestStepAgreement:
    """The explicit map reproduces the DEL solve"""

    @pytest.mark.parametrize("family", ["GaussLobatto", "GaussLegendre"])
    def test_single_step(self, symbols, family):
        p, q, h = symbols
        system = build_del_system(2, harmonic, None, family, p, q, h)
        explicit = extract_explicit_map(system, p, q)

        implicit_driver = VariationalIntegrationDriver(system, p, q, h)
        explicit_driver = VariationalIntegrationDriver(explicit, p, q, h)

        assert_allclose(
            implicit_driver.step(0.3, 0.8, 0.1),
            explicit_driver.step(0.3, 0.8, 0.1),
            rtol=1e-10,
        )

    def test_numeric_matches_exact(self, symbols):
        p, q, h = symbols
        system = build_del_system(2, harmonic, None, "GaussLegendre", p, q, h)

        exact = VariationalIntegrationDriver(system, p, q, h)
        numeric = VariationalIntegrationDriver(system, p, q, h, exact_size_limit=0)

        exact_result = exact.integrate((0.0, 1.0), (0.0, 2.0), 0.1, energy)
        numeric_result = numeric.integrate((0.0, 1.0), (0.0, 2.0), 0.1, energy)

        assert_allclose(numeric_result["q"], exact_result["q"], rtol=1e-9, atol=1e-11)
        assert_allclose(numeric_result["p"], exact_result["p"], rtol=1e-9, atol=1e-11)
        assert numeric_result["nfev"] > 0

    def test_three_point_rule(self, symbols):
        p, q, h = symbols
        system = build_del_system(3, harmonic, None, "GaussLobatto", p, q, h)
        explicit = extract_explicit_map(system, p, q)

        implicit = VariationalIntegrationDriver(system, p, q, h).step(0.0, 1.0, 0.2)
        direct = VariationalIntegrationDriver(explicit, p, q, h).step(0.0, 1.0, 0.2)
        assert_allclose(implicit, direct, rtol=1e-10)

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
    def test_higher_order_rules(self, symbols, family, n):
        """Maps eliminated through partial sums compile and agree with the implicit step"""
        p, q, h = symbols
        system = build_del_system(n, harmonic, None, family, p, q, h)
        explicit = extract_explicit_map(system, p, q)

        implicit = VariationalIntegrationDriver(system, p, q, h).step(0.3, 0.8, 0.1)
        direct = VariationalIntegrationDriver(explicit, p, q, h).step(0.3, 0.8, 0.1)
        assert_allclose(implicit, direct, rtol=1e-9)


# ============================================================================
# Test Class 4: Energy Behavior
# ============================================================================


class TestEnergyBehavior:
    """Symplectic schemes keep the energy bounded"""

    def test_verlet_energy_bounded(self, symbols, verlet):
        p, q, h = symbols
        result = integrate_system(verlet[1], (p, q, h), (0.0, 1.0), (0.0, 100.0), 0.1, energy)

        drift = np.max(np.abs(result["observable"] - result["observable"][0]))
        assert drift < 1e-2

    def test_gauss_legendre_energy_bounded(self, symbols):
        """Two-point Gauss-Legendre keeps the energy of a linear system bounded"""
        p, q, h = symbols
        system = build_del_system(2, harmonic, None, "GaussLegendre", p, q, h)
        result = integrate_system(system, (p, q, h), (0.0, 1.0), (0.0, 20.0), 0.1, energy)

        drift = np.max(np.abs(result["observable"] - result["observable"][0]))
        assert drift < 1e-2


# ============================================================================
# Test Class 5: Parameter Binding
# ============================================================================


class TestParameterBinding:
    """Substitutions applied before compilation"""

    def test_symbol_parameter(self, symbols):
        p, q, h = symbols
        k = sp.Symbol("k", positive=True)
        system = build_del_system(2, lambda x, v: v**2 / 2 - k * x**2 / 2, None, "lobatto", p, q, h)
        explicit = extract_explicit_map(system, p, q)

        bound = integrate_system(
            explicit, (p, q, h), (0.0, 1.0), (0.0, 1.0), 0.1, energy, parameters={k: 1}
        )
        reference = integrate_system(
            extract_explicit_map(build_del_system(2, harmonic, None, "lobatto", p, q, h), p, q),
            (p, q, h), (0.0, 1.0), (0.0, 1.0), 0.1, energy,
        )
        assert_allclose(bound["q"], reference["q"], rtol=1e-12, atol=1e-14)

    def test_function_parameter(self, symbols):
        p, q, h = symbols
        V = sp.Function("V")
        x = sp.Symbol("x")
        system = build_del_system(2, lambda x, v: v**2 / 2 - V(x), None, "lobatto", p, q, h)
        explicit = extract_explicit_map(system, p, q, potential=V)

        driver = VariationalIntegrationDriver(
            explicit, p, q, h, parameters={V: sp.Lambda(x, x**2 / 2)}
        )
        p_next, q_next = driver.step(0.0, 1.0, 0.1)

        assert_allclose(q_next, 1.0 - 0.1**2 / 2)
        assert_allclose(p_next, -0.1 / 2 * (1.0 + q_next))

    def test_unbound_function(self, symbols):
        p, q, h = symbols
        V = sp.Function("V")
        system = build_del_system(2, lambda x, v: v**2 / 2 - V(x), None, "lobatto", p, q, h)
        with pytest.raises(ConfigurationError, match="undefined functions"):
            VariationalIntegrationDriver(system, p, q, h)

    def test_unbound_symbol(self, symbols):
        p, q, h = symbols
        k = sp.Symbol("k")
        system = build_del_system(2, lambda x, v: v**2 / 2 - k * x, None, "lobatto", p, q, h)
        with pytest.raises(ConfigurationError, match="unbound symbols"):
            VariationalIntegrationDriver(system, p, q, h)


# ============================================================================
# Test Class 6: Failure Handling
# ============================================================================


class TestFailureHandling:
    """A failed step aborts the run with the trajectory so far"""

    @pytest.fixture
    def draining_system(self, symbols):
        """q_1 = ±sqrt(p_0 - 1) loses its real solutions once p drops below 1"""
        p, q, h = symbols
        p0, p1 = sp.Symbol("p_0", real=True), sp.Symbol("p_1", real=True)
        q1 = sp.Symbol("q_1", real=True)
        return [
            sp.Eq(p0, q1**2 + 1, evaluate=False),
            sp.Eq(p1, p0 - 1, evaluate=False),
        ]

    @pytest.mark.parametrize("exact_size_limit", [400, 0])
    def test_partial_trajectory(self, symbols, draining_system, exact_size_limit):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(
            draining_system, p, q, h, exact_size_limit=exact_size_limit
        )

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with pytest.raises(ConvergenceError) as excinfo:
                driver.integrate((3.5, 1.0), (0.0, 10.0), 1.0, energy)

        error = excinfo.value
        assert error.step == 3
        partial = error.partial_result
        assert partial["success"] is False
        assert partial["nsteps"] == 3
        assert_allclose(partial["p"], [3.5, 2.5, 1.5, 0.5])
        assert_allclose(partial["t"], [0.0, 1.0, 2.0, 3.0])
        assert len(partial["observable"]) == 4

    def test_failed_run_records_time(self, symbols, draining_system):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(draining_system, p, q, h)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with pytest.raises(ConvergenceError) as excinfo:
                driver.integrate((3.5, 1.0), (0.0, 10.0), 1.0, energy)

        partial = excinfo.value.partial_result
        assert driver.get_stats()["total_time"] == partial["integration_time"]
        assert partial["integration_time"] >= 0.0


# ============================================================================
# Test Class 7: Statistics
# ============================================================================


class TestStatistics:
    """get_stats / reset_stats"""

    def test_counts_steps(self, symbols, verlet):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(verlet[1], p, q, h)
        driver.integrate((0.0, 1.0), (0.0, 1.0), 0.1, energy)

        stats = driver.get_stats()
        assert stats["total_steps"] == 10
        assert stats["total_fev"] == 0
        assert stats["total_time"] >= 0.0
        assert "avg_fev_per_step" in stats

    def test_reset(self, symbols, verlet):
        p, q, h = symbols
        driver = VariationalIntegrationDriver(verlet[0], p, q, h, exact_size_limit=0)
        driver.integrate((0.0, 1.0), (0.0, 0.5), 0.1, energy)
        assert driver.get_stats()["total_fev"] > 0

        driver.reset_stats()
        stats = driver.get_stats()
        assert stats["total_steps"] == 0
        assert stats["total_fev"] == 0
        assert stats["total_time"] == 0.0
