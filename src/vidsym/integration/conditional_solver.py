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
Conditional Solver

Exact-or-numeric solution of a square system of residuals, selected by a
size policy:

- Small systems (total ``count_ops`` at most ``exact_size_limit``) are
  solved once in closed form with SymPy; every solution branch is compiled
  with ``lambdify`` and each call picks the real branch nearest the guess.
- Larger systems, or systems SymPy cannot solve completely, run
  ``scipy.optimize.fsolve`` at every call with a compiled analytic Jacobian.

Examples
--------
>>> x, a = sp.symbols('x a')
>>> solver = ConditionalSolver([x**2 - a], [x], [a])
>>> solver.mode
'exact'
>>> solver.solve([1.0], [4.0])
array([2.])
"""

import warnings
from typing import Callable, List, Optional, Sequence

import numpy as np
import sympy as sp
from scipy.optimize import fsolve

from vidsym.exceptions import ConvergenceError


class ConditionalSolver:
    """
    Solve residuals(unknowns; parameters) = 0 repeatedly for new parameters.

    Parameters
    ----------
    residuals : Sequence[sp.Expr]
        Expressions equal to zero at the solution
    unknowns : Sequence[sp.Symbol]
        Unknowns, same count as ``residuals``
    parameters : Sequence[sp.Symbol]
        Symbols bound to numbers at every call
    exact_size_limit : int
        Largest total operation count solved in closed form (0 forces
        numeric root finding)
    tolerance : float
        ``xtol`` handed to fsolve
    max_evaluations : int
        ``maxfev`` handed to fsolve (0 selects SciPy's default)
    """

    def __init__(
        self,
        residuals: Sequence[sp.Expr],
        unknowns: Sequence[sp.Symbol],
        parameters: Sequence[sp.Symbol],
        exact_size_limit: int = 400,
        tolerance: float = 1e-12,
        max_evaluations: int = 0,
    ):
        self.residuals = [sp.sympify(r) for r in residuals]
        self.unknowns = list(unknowns)
        self.parameters = list(parameters)
        self.exact_size_limit = exact_size_limit
        self.tolerance = tolerance
        self.max_evaluations = max_evaluations

        if len(self.residuals) != len(self.unknowns):
            raise ValueError(
                f"Need as many residuals as unknowns, got {len(self.residuals)} "
                f"residuals for {len(self.unknowns)} unknowns"
            )

        self.size = sum(sp.count_ops(r) for r in self.residuals)
        self.nfev = 0
        self._warned_branches = False

        self._branches: Optional[List[Callable]] = None
        if self.size <= exact_size_limit:
            self._branches = self._compile_exact()
        if self._branches is None:
            self._compile_numeric()

    @property
    def mode(self) -> str:
        """'exact' if closed-form branches are in use, else 'numeric'"""
        return "exact" if self._branches is not None else "numeric"

    # ========================================================================
    # Compilation
    # ========================================================================

    def _compile_exact(self) -> Optional[List[Callable]]:
        try:
            solutions = sp.solve(self.residuals, self.unknowns, dict=True)
        except NotImplementedError as error:
            warnings.warn(
                f"Closed-form solve not available ({error}); using numeric root finding"
            )
            return None

        complete = [s for s in solutions if all(u in s for u in self.unknowns)]
        if not complete:
            warnings.warn(
                f"Closed-form solve returned no complete solution for {self.unknowns}; "
                f"using numeric root finding"
            )
            return None

        return [
            sp.lambdify([self.parameters], [s[u] for u in self.unknowns], modules="numpy")
            for s in complete
        ]

    def _compile_numeric(self):
        jacobian = sp.Matrix(self.residuals).jacobian(self.unknowns)
        self._residual_fn = sp.lambdify(
            [self.unknowns, self.parameters], self.residuals, modules="numpy"
        )
        self._jacobian_fn = sp.lambdify(
            [self.unknowns, self.parameters], jacobian, modules="numpy"
        )

    # ========================================================================
    # Solving
    # ========================================================================

    def solve(self, guess: Sequence[float], values: Sequence[float]) -> np.ndarray:
        """
        Solve for the unknowns at the given parameter values.

        Parameters
        ----------
        guess : Sequence[float]
            Initial guess (numeric mode) or branch selector (exact mode)
        values : Sequence[float]
            Parameter values, ordered as ``parameters``

        Returns
        -------
        np.ndarray
            Unknown values, ordered as ``unknowns``

        Raises
        ------
        ConvergenceError
            No real branch (exact mode) or fsolve failure (numeric mode)
        """
        guess = np.asarray(guess, dtype=float)
        if self._branches is not None:
            return self._select_branch(guess, values)
        return self._root_find(guess, values)

    def _select_branch(self, guess: np.ndarray, values: Sequence[float]) -> np.ndarray:
        arguments = np.asarray(values, dtype=complex)
        candidates = []
        with np.errstate(all="ignore"):
            for branch in self._branches:
                result = np.asarray(branch(arguments), dtype=complex).ravel()
                if not np.all(np.isfinite(result)):
                    continue
                if np.max(np.abs(result.imag)) > 1e-9 * max(1.0, np.max(np.abs(result.real))):
                    continue
                candidates.append(result.real)

        if not candidates:
            raise ConvergenceError(
                f"No real finite solution branch at parameters {list(values)}"
            )

        if len(candidates) > 1 and not self._warned_branches:
            warnings.warn(
                f"{len(candidates)} real solution branches; choosing the one nearest "
                f"the initial guess"
            )
            self._warned_branches = True

        distances = [np.linalg.norm(candidate - guess) for candidate in candidates]
        return candidates[int(np.argmin(distances))]

    def _root_find(self, guess: np.ndarray, values: Sequence[float]) -> np.ndarray:
        arguments = np.asarray(values, dtype=float)

        def residual(u, params):
            return np.asarray(self._residual_fn(u, params), dtype=float).ravel()

        def jacobian(u, params):
            return np.asarray(self._jacobian_fn(u, params), dtype=float)

        solution, info, ier, message = fsolve(
            residual,
            guess,
            args=(arguments,),
            fprime=jacobian,
            full_output=True,
            xtol=self.tolerance,
            maxfev=self.max_evaluations,
        )
        self.nfev += int(info["nfev"])

        if ier != 1:
            raise ConvergenceError(f"Root finding failed: {message}")

        if np.max(np.abs(info["fvec"])) > np.sqrt(self.tolerance):
            raise ConvergenceError(
                f"Root finding stalled with residual {np.max(np.abs(info['fvec'])):.3e}"
            )

        return solution

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(unknowns={len(self.unknowns)}, "
            f"mode={self.mode}, size={self.size})"
        )
