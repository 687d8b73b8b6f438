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
Path Reconstruction

Builds the interpolated path of one step from its sample times.

Given n sample times t_0 < ... < t_{n-1} inside [0, h], the path
iQ(t) interpolates n sample values. The two boundary-adjacent samples are
then eliminated by requiring the path to pass through the step's declared
boundary positions,

    q_0     = iQ(0)
    q_{n-1} = iQ(h)

and the interior samples are renamed q_1..q_{n-2}. Position and velocity
at every sample time are then functions of q_0..q_{n-1} and h only.

Examples
--------
>>> q, h = sp.symbols('q h', real=True)
>>> positions, velocities = compute_pq([0, h], q, h)
>>> positions
[q_0, q_1]
>>> velocities
[(-q_0 + q_1)/h, (-q_0 + q_1)/h]
"""

from typing import List, Optional, Sequence, Tuple

import sympy as sp

from vidsym.exceptions import ConfigurationError, ReconstructionError
from vidsym.types.symbolic import InterpolationFunction
from vidsym.variational.symbols import sample_symbol


def compute_pq(
    times: Sequence,
    q: sp.Symbol,
    h: sp.Symbol,
    interpolation: Optional[InterpolationFunction] = None,
) -> Tuple[List[sp.Expr], List[sp.Expr]]:
    """
    Reconstruct positions and velocities at the sample times of one step.

    Parameters
    ----------
    times : Sequence
        Sample times in [0, h] (expressions in ``h``), ascending
    q : sp.Symbol
        Position base symbol; samples are named q_0..q_{n-1}
    h : sp.Symbol
        Step size symbol
    interpolation : InterpolationFunction, optional
        Operator ``(points, t) -> expr`` through the labeled points.
        Defaults to ``sympy.interpolate``.

    Returns
    -------
    positions : List[sp.Expr]
        Path position at each sample time
    velocities : List[sp.Expr]
        Path velocity (d/dt of the path) at each sample time

    Raises
    ------
    ConfigurationError
        Fewer than 2 sample times
    ReconstructionError
        Degenerate interpolant (e.g. repeated sample times) or boundary
        conditions without a unique solution
    """
    times = [sp.sympify(tk) for tk in times]
    n = len(times)
    if n < 2:
        raise ConfigurationError(f"Path reconstruction requires at least 2 samples, got {n}", n=n)

    if interpolation is None:
        interpolation = sp.interpolate

    t = sp.Dummy("t")
    raw = [sp.Dummy(f"s_{k}") for k in range(n)]

    try:
        interpolant = sp.sympify(interpolation(list(zip(times, raw)), t))
    except (ValueError, ZeroDivisionError) as error:
        raise ReconstructionError(
            f"Interpolation through sample times {times} failed: {error}"
        ) from error

    if interpolant.has(sp.zoo, sp.nan, sp.oo, -sp.oo):
        raise ReconstructionError(
            f"Interpolant through sample times {times} is degenerate (repeated times?)"
        )

    first, last = sample_symbol(q, 0), sample_symbol(q, n - 1)
    boundary = [
        sp.Eq(first, interpolant.subs(t, 0)),
        sp.Eq(last, interpolant.subs(t, h)),
    ]
    solutions = sp.solve(boundary, [raw[0], raw[-1]], dict=True)
    if len(solutions) != 1 or set(solutions[0]) != {raw[0], raw[-1]}:
        raise ReconstructionError(
            f"Boundary conditions q_0 = iQ(0), q_{n - 1} = iQ(h) have no unique "
            f"solution for sample times {times} ({len(solutions)} solution(s) found)"
        )

    renaming = {raw[k]: sample_symbol(q, k) for k in range(1, n - 1)}
    path = interpolant.subs(solutions[0]).subs(renaming)
    velocity = sp.diff(path, t)

    positions = [sp.simplify(path.subs(t, tk)) for tk in times]
    velocities = [sp.simplify(velocity.subs(t, tk)) for tk in times]
    return positions, velocities
