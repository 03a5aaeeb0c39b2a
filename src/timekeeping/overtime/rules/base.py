from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...policy.model import Policy
from ..model import MinuteBuckets


class OvertimeRule(ABC):
    """Strategy Pattern: one jurisdiction's way of classifying a work week."""

    @abstractmethod
    def classify_week(self, minutes: Sequence[int], policy: Policy) -> list[MinuteBuckets]:
        """Per-entry buckets for one employee's week, in the order given.

        Each entry's buckets add up to its minutes.
        """

        raise NotImplementedError
