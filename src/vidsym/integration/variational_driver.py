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
Variational Integration Driver

Steps a one-step map, explicit or implicit, over a uniform time grid.

Modes
-----
- explicit: the system is an explicit map (left sides q_1..q_{n-1},
  p_{n-1}, right sides free of them); each step is a direct evaluation of
  the compiled right-hand sides.
- implicit: the system is a DEL system; each step solves for q_1..q_{n-1}
  and p_{n-1} with a ConditionalSolver (closed form when small enough,
  fsolve otherwise). The guess is q_k for every position and p_k for the
  momentum.

Grid
----
N = ceil((t_end - t_start) / dt), t_k = t_start + k*dt for k = 0..N. The
last step may overshoot t_end when dt does not divide the span.

Examples
--------
>>> driver = VariationalIntegrationDriver(explicit, p, q, h)
>>> result = driver.integrate((0.0, 1.0), (0.0, 10.0), 0.1, lambda p, q: p**2/2 + q**2/2)
>>> result['mode']
'explicit'
"""

import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import sympy as sp
from sympy.core.function import AppliedUndef

from vidsym.exceptions import ConfigurationError, ConvergenceError
from vidsym.integration.conditional_solver import ConditionalSolver
from vidsym.types.symbolic import DELSystem
from vidsym.types.trajectories import PhasePoint, TimeSpan, VariationalTrajectory
from vidsym.variational.symbols import sample_symbol, sample_symbols

Observable = Callable[[float, float], float]


class VariationalIntegrationDriver:
    """
    Fixed-step driver for DEL systems and explicit maps.

    Parameters
    ----------
    system : DELSystem or ExplicitMap
        n equations over the samples of one step
    p, q : sp.Symbol
        Momentum and position base symbols
    h : sp.Symbol
        Step size symbol
    parameters : dict, optional
        Substitutions applied before compilation, e.g. ``{k: 2.0}`` or
        ``{V: sp.Lambda(x, x**2/2)}`` for an abstract potential
    **options
        dt : float
            Default step size
        exact_size_limit : int
            Closed-form solve threshold for implicit systems (default 400)
        tolerance : float
            Root-finding tolerance (default 1e-12)
        max_evaluations : int
            Root-finding evaluation cap per step (default 0, SciPy default)

    Raises
    ------
    ConfigurationError
        Undefined functions or unbound symbols remain after substitution
    """

    def __init__(
        self,
        system: DELSystem,
        p: sp.Symbol,
        q: sp.Symbol,
        h: sp.Symbol,
        parameters: Optional[Dict] = None,
        **options,
    ):
        self.n = len(system)
        if self.n < 2:
            raise ConfigurationError(f"Need at least 2 equations, got {self.n}", n=self.n)

        self.p, self.q, self.h = p, q, h
        self.dt = options.get("dt")
        self.exact_size_limit = options.get("exact_size_limit", 400)
        self.tolerance = options.get("tolerance", 1e-12)
        self.max_evaluations = options.get("max_evaluations", 0)
        self.options = options

        self._incoming = [sample_symbol(p, 0), sample_symbol(q, 0)]
        self._unknowns = sample_symbols(q, self.n)[1:] + [sample_symbol(p, self.n - 1)]
        self.system = self._bind_parameters(system, parameters or {})
        self.mode = "explicit" if self._is_explicit() else "implicit"

        if self.mode == "explicit":
            self._explicit_fn = sp.lambdify(
                [*self._incoming, h], [eq.rhs for eq in self.system], modules="numpy"
            )
        else:
            self._residuals = [sp.expand(eq.lhs - eq.rhs) for eq in self.system]
            self._solvers: Dict[float, ConditionalSolver] = {}

        self._stats = {
            "total_steps": 0,
            "total_fev": 0,
            "total_time": 0.0,
        }

    # ========================================================================
    # Setup
    # ========================================================================

    def _bind_parameters(self, system: DELSystem, parameters: Dict) -> List[sp.Eq]:
        bound = []
        allowed = set(self._incoming) | set(self._unknowns) | {self.h}
        for index, equation in enumerate(system, start=1):
            rhs = sp.sympify(equation.rhs)
            if parameters:
                rhs = rhs.subs(parameters).doit()

            undefined = rhs.atoms(AppliedUndef)
            if undefined:
                raise ConfigurationError(
                    f"Equation {index} still contains undefined functions "
                    f"{sorted(map(str, undefined))}; bind them through 'parameters'",
                    n=self.n,
                )

            unbound = rhs.free_symbols - allowed
            if unbound:
                raise ConfigurationError(
                    f"Equation {index} contains unbound symbols "
                    f"{sorted(map(str, unbound))}; bind them through 'parameters'",
                    n=self.n,
                )

            bound.append(sp.Eq(equation.lhs, rhs, evaluate=False))
        return bound

    def _is_explicit(self) -> bool:
        if [eq.lhs for eq in self.system] != self._unknowns:
            return False
        unknowns = set(self._unknowns)
        return not any(eq.rhs.free_symbols & unknowns for eq in self.system)

    def _resolve_dt(self, dt: Optional[float]) -> float:
        dt = self.dt if dt is None else dt
        if dt is None or not dt > 0:
            raise ConfigurationError(f"Step size must be positive, got {dt!r}")
        return float(dt)

    def _solver_for(self, dt: float) -> ConditionalSolver:
        if dt not in self._solvers:
            self._solvers[dt] = ConditionalSolver(
                [r.subs(self.h, dt) for r in self._residuals],
                self._unknowns,
                self._incoming,
                exact_size_limit=self.exact_size_limit,
                tolerance=self.tolerance,
                max_evaluations=self.max_evaluations,
            )
        return self._solvers[dt]

    # ========================================================================
    # Stepping
    # ========================================================================

    def step(self, p_k: float, q_k: float, dt: Optional[float] = None) -> PhasePoint:
        """
        Advance one step.

        Parameters
        ----------
        p_k, q_k : float
            Incoming momentum and position
        dt : float, optional
            Step size (defaults to the ``dt`` option)

        Returns
        -------
        PhasePoint
            (p_{k+1}, q_{k+1})

        Raises
        ------
        ConvergenceError
            Per-step solve failed or produced non-finite values
        """
        dt = self._resolve_dt(dt)

        if self.mode == "explicit":
            values = np.asarray(self._explicit_fn(p_k, q_k, dt), dtype=float)
        else:
            solver = self._solver_for(dt)
            nfev_before = solver.nfev
            guess = [q_k] * (self.n - 1) + [p_k]
            try:
                values = solver.solve(guess, [p_k, q_k])
            finally:
                self._stats["total_fev"] += solver.nfev - nfev_before

        q_next, p_next = float(values[-2]), float(values[-1])
        if not (np.isfinite(p_next) and np.isfinite(q_next)):
            raise ConvergenceError(f"Step produced non-finite state ({p_next}, {q_next})")

        self._stats["total_steps"] += 1
        return p_next, q_next

    def integrate(
        self,
        initial: PhasePoint,
        t_span: TimeSpan,
        dt: Optional[float],
        observable: Observable,
    ) -> VariationalTrajectory:
        """
        Integrate from ``initial`` over ``t_span``.

        Parameters
        ----------
        initial : PhasePoint
            (p_0, q_0) at t_start
        t_span : TimeSpan
            (t_start, t_end)
        dt : float or None
            Step size (None uses the ``dt`` option)
        observable : Callable[[float, float], float]
            Evaluated as observable(p_k, q_k) at every step including step 0

        Returns
        -------
        VariationalTrajectory

        Raises
        ------
        ConvergenceError
            A step failed; ``step`` holds its index k and ``partial_result``
            the trajectory up to t_k

        Examples
        --------
        >>> result = driver.integrate((0.0, 1.0), (0.0, 10.0), 0.1, energy)
        >>> drift = np.max(np.abs(result['observable'] - result['observable'][0]))
        """
        start_time = time.time()
        dt = self._resolve_dt(dt)

        t0, tf = t_span
        if not tf > t0:
            raise ConfigurationError(f"Invalid time span {t_span}: require t_end > t_start")

        # Tolerance keeps spans that are exact multiples of dt from gaining a step
        num_steps = int(np.ceil((tf - t0) / dt - 1e-9))
        times = t0 + dt * np.arange(num_steps + 1)

        momenta = np.empty(num_steps + 1)
        positions = np.empty(num_steps + 1)
        values = np.empty(num_steps + 1)

        p_k, q_k = float(initial[0]), float(initial[1])
        momenta[0], positions[0], values[0] = p_k, q_k, observable(p_k, q_k)
        fev_start = self._stats["total_fev"]

        for k in range(num_steps):
            try:
                p_k, q_k = self.step(p_k, q_k, dt)
            except ConvergenceError as error:
                elapsed = time.time() - start_time
                self._stats["total_time"] += elapsed
                partial = self._package(
                    times[: k + 1],
                    momenta[: k + 1],
                    positions[: k + 1],
                    values[: k + 1],
                    success=False,
                    message=f"Step {k} -> {k + 1} failed: {error}",
                    nfev=self._stats["total_fev"] - fev_start,
                    elapsed=elapsed,
                )
                raise ConvergenceError(
                    f"Step {k} -> {k + 1} at t={times[k]:.6g} failed: {error}",
                    step=k,
                    partial_result=partial,
                ) from error

            momenta[k + 1], positions[k + 1] = p_k, q_k
            values[k + 1] = observable(p_k, q_k)

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed

        return self._package(
            times,
            momenta,
            positions,
            values,
            success=True,
            message=f"Variational integration completed ({self.mode})",
            nfev=self._stats["total_fev"] - fev_start,
            elapsed=elapsed,
        )

    def _package(
        self, times, momenta, positions, values, success, message, nfev, elapsed
    ) -> VariationalTrajectory:
        result: VariationalTrajectory = {
            "t": times.copy(),
            "p": momenta.copy(),
            "q": positions.copy(),
            "observable": values.copy(),
            "success": success,
            "message": message,
            "nsteps": len(times) - 1,
            "nfev": nfev,
            "integration_time": elapsed,
            "solver": self.name,
            "mode": self.mode,
        }
        return result

    # ========================================================================
    # Statistics
    # ========================================================================

    @property
    def name(self) -> str:
        return f"Variational({self.mode}, n={self.n})"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get integration statistics.

        Returns
        -------
        dict
            'total_steps', 'total_fev', 'total_time' and 'avg_fev_per_step'
        """
        avg_fev = self._stats["total_fev"] / max(1, self._stats["total_steps"])
        return {
            **self._stats,
            "avg_fev_per_step": avg_fev,
        }

    def reset_stats(self):
        """Reset integration statistics to zero"""
        self._stats["total_steps"] = 0
        self._stats["total_fev"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={self.n}, mode={self.mode}, dt={self.dt})"


def integrate_system(
    system: DELSystem,
    symbols: Tuple[sp.Symbol, sp.Symbol, sp.Symbol],
    initial: PhasePoint,
    t_span: TimeSpan,
    dt: float,
    observable: Observable,
    parameters: Optional[Dict] = None,
    **options,
) -> VariationalTrajectory:
    """
    Integrate a DEL system or explicit map in one call.

    Parameters
    ----------
    system : DELSystem or ExplicitMap
        Equations of one step
    symbols : Tuple[sp.Symbol, sp.Symbol, sp.Symbol]
        (p, q, h) base symbols the system was built with
    initial : PhasePoint
        (p_0, q_0)
    t_span : TimeSpan
        (t_start, t_end)
    dt : float
        Step size
    observable : Callable[[float, float], float]
        Energy-like function of (p, q)
    parameters : dict, optional
        Substitutions applied before compilation
    **options
        Forwarded to VariationalIntegrationDriver

    Returns
    -------
    VariationalTrajectory

    Examples
    --------
    >>> system = build_del_system(2, lambda x, v: v**2/2 - x**2/2, None, 'GaussLobatto', p, q, h)
    >>> result = integrate_system(system, (p, q, h), (0.0, 1.0), (0.0, 10.0), 0.1,
    ...                           lambda p, q: p**2/2 + q**2/2)
    """
    p, q, h = symbols
    driver = VariationalIntegrationDriver(system, p, q, h, parameters, **options)
    return driver.integrate(initial, t_span, dt, observable)
