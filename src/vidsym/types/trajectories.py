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
Trajectory Types

Defines the time-series containers produced by the variational
integration driver.

Shape Conventions:
- One entry per step index k = 0..N, with N = ceil((t_end - t_start)/dt)
- t, p, q and observable are parallel 1D arrays of length N + 1

Usage
-----
>>> result: VariationalTrajectory = driver.integrate((0.0, 1.0), (0.0, 10.0), 0.1, energy)
>>> for t, p, q in zip(result["t"], result["p"], result["q"]):
...     print(f"t={t:.2f}, p={p:.4f}, q={q:.4f}")
"""

from typing import Tuple

import numpy as np
from typing_extensions import TypedDict

TimeSpan = Tuple[float, float]
"""
Integration interval (t_start, t_end).
"""

PhasePoint = Tuple[float, float]
"""
Momentum/position pair (p, q) at a step boundary.
"""


class VariationalTrajectory(TypedDict, total=False):
    """
    Result of a variational integration run.

    Built once per integration call and not mutated afterwards.

    Attributes
    ----------
    t : np.ndarray
        Times t_k = t_start + k*dt, shape (N+1,)
    p : np.ndarray
        Momenta p_k, shape (N+1,)
    q : np.ndarray
        Positions q_k, shape (N+1,)
    observable : np.ndarray
        Observable (e.g. energy) evaluated at every (p_k, q_k), shape (N+1,)
    success : bool
        True if every step was solved
    message : str
        Status message
    nsteps : int
        Number of completed steps
    nfev : int
        Residual evaluations spent by numeric root finding
    integration_time : float
        Wall-clock time (seconds)
    solver : str
        Driver name
    mode : str
        'explicit' or 'implicit'

    Examples
    --------
    >>> result = integrate_system(equations, (p, q, h), (0.0, 1.0), (0.0, 10.0), 0.1, energy)
    >>> drift = np.max(np.abs(result["observable"] - result["observable"][0]))
    """

    t: np.ndarray
    p: np.ndarray
    q: np.ndarray
    observable: np.ndarray
    success: bool
    message: str
    nsteps: int
    nfev: int
    integration_time: float
    solver: str
    mode: str
