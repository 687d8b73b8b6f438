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
Exceptions for variational integrator construction and evaluation.

Hierarchy
---------
VariationalIntegratorError
├── ConfigurationError        (also a ValueError)
├── ExtractionAmbiguityError
├── ReconstructionError
└── ConvergenceError          (also a RuntimeError)

Every error carries the context needed to reproduce the failure
(quadrature family, node count, equation index or step index).
"""

from typing import Any, Optional


class VariationalIntegratorError(Exception):
    """Base class for all vidsym errors"""

    pass


class ConfigurationError(VariationalIntegratorError, ValueError):
    """
    Raised before any symbolic work when the requested construction is invalid.

    Examples: unknown quadrature family, node count violating a family
    constraint, user nodes outside the declared bounds, mismatched
    node/weight list lengths.

    Attributes
    ----------
    family : Optional[str]
        Offending quadrature family (if any)
    n : Optional[int]
        Offending node count (if any)
    """

    def __init__(self, message: str, family: Optional[str] = None, n: Optional[int] = None):
        super().__init__(message)
        self.family = family
        self.n = n


class ExtractionAmbiguityError(VariationalIntegratorError):
    """
    Raised when a coefficient or variable extraction does not match exactly.

    Covers Newton-Cotes weight recovery, Romberg equal-time-portion grouping
    and variable isolation in the explicit map extractor. It signals that the
    quadrature/Lagrangian pairing is not separable in the assumed sense.

    Attributes
    ----------
    index : Optional[int]
        Sample or equation index (1-based) at which extraction failed
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class ReconstructionError(VariationalIntegratorError):
    """Raised when the path boundary conditions cannot be solved uniquely"""

    pass


class ConvergenceError(VariationalIntegratorError, RuntimeError):
    """
    Raised when a per-step solve fails during integration.

    Attributes
    ----------
    step : Optional[int]
        Index k of the step (k -> k+1) that failed
    partial_result : Optional[dict]
        Trajectory accumulated up to and including step k
    """

    def __init__(
        self,
        message: str,
        step: Optional[int] = None,
        partial_result: Optional[Any] = None,
    ):
        super().__init__(message)
        self.step = step
        self.partial_result = partial_result
