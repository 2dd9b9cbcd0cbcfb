"""
soa_tables/projector.py - Rate Vector Projection

Turns (issue age, length) into the rate vector a calculation needs, and
for select-and-ultimate tables supports reentry: re-selection of rates
at a later policy duration.

Reentry methods:
- REENTER_AT_INFORCE_DURATION: rates as for a life newly selected at
  issue_age + inforce_duration, preceded by inforce_duration zeros.
- REENTER_UPON_RATE_RESET: rates as for a life selected at
  issue_age + reset_duration, where reset_duration may be negative but is
  never allowed to push the effective age below min_age. A positive shift
  is padded with leading zeros; a negative one drops leading rates.
- REENTER_NEVER: plain lookup; not meaningful for an elaborated query.

Author: Actuarial Pipeline Project
License: MIT
"""

import numpy as np
from enum import Enum
import logging

from .exceptions import CorruptFormatError, UnsupportedModeError
from .geometry import TableGeometry

logger = logging.getLogger(__name__)


class ReentryMethod(Enum):
    """How select rates are re-selected after issue."""
    REENTER_NEVER = "never"
    REENTER_AT_INFORCE_DURATION = "at_inforce_duration"
    REENTER_UPON_RATE_RESET = "upon_rate_reset"


class RateProjector:
    """
    Query surface over one table's stored values.

    Attributes:
        geometry: Bounds and index arithmetic for the table
        raw_values: Stored values in file order (read-only)
    """

    def __init__(self, geometry: TableGeometry, raw_values: np.ndarray):
        self.geometry = geometry
        self.raw_values = raw_values

    def _lookup(self, issue_age: int, length: int) -> np.ndarray:
        self.geometry.check_lookup(issue_age, length)
        positions = self.geometry.indices(issue_age, length)
        if length and not (0 <= positions.min() and positions.max() < len(self.raw_values)):
            raise CorruptFormatError(
                f"issue age {issue_age}, length {length} addresses positions "
                f"{positions.min()}-{positions.max()} of {len(self.raw_values)} stored values",
                table_number=self.geometry.metadata.table_number, field="values"
            )
        return self.raw_values[positions]

    def values(self, issue_age: int, length: int) -> np.ndarray:
        """
        Rates for durations 0..length-1 of a life issued at issue_age.

        Raises:
            PreconditionError: issue_age outside [min_age, max_age] or
                length outside [0, 1 + max_age - issue_age]
        """
        return self._lookup(issue_age, length)

    def values_elaborated(self, issue_age: int, length: int,
                          method: ReentryMethod,
                          inforce_duration: int,
                          reset_duration: int) -> np.ndarray:
        """
        Rates with select reentry applied.

        Tables that are not select and ultimate have nothing to reenter,
        so any method yields values(issue_age, length).

        Raises:
            PreconditionError: invalid ages, length or durations
            UnsupportedModeError: REENTER_NEVER on a select table
        """
        self.geometry.check_reentry(issue_age, length, inforce_duration, reset_duration)

        if not self.geometry.metadata.is_select:
            return self._lookup(issue_age, length)

        if method is ReentryMethod.REENTER_AT_INFORCE_DURATION:
            delta = inforce_duration
        elif method is ReentryMethod.REENTER_UPON_RATE_RESET:
            age_setback_limit = issue_age - self.geometry.metadata.min_age
            delta = max(reset_duration, -age_setback_limit)
        else:
            raise UnsupportedModeError(
                f"reentry method {method} is not valid for an elaborated lookup",
                table_number=self.geometry.metadata.table_number, field="method"
            )

        logger.debug(
            f"Table {self.geometry.metadata.table_number}: {method.name} "
            f"issue age {issue_age} shifted by {delta}"
        )
        shifted = self._lookup(issue_age + delta, length - delta)
        if delta < 0:
            return shifted[-delta:].copy()
        return np.concatenate([np.zeros(delta), shifted])
