from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import OvertimeJurisdiction
from ..policy.model import Policy
from .rules.base import OvertimeRule
from .rules.california import CaliforniaOvertimeRule
from .rules.federal import FederalOvertimeRule


@dataclass
class OvertimeRuleFactory:
    """Factory Pattern: choose the overtime rule for a policy's jurisdiction."""

    def for_jurisdiction(self, jurisdiction: OvertimeJurisdiction) -> OvertimeRule:
        if jurisdiction == OvertimeJurisdiction.CALIFORNIA:
            return CaliforniaOvertimeRule()
        return FederalOvertimeRule()

    def for_policy(self, policy: Policy) -> OvertimeRule:
        return self.for_jurisdiction(policy.jurisdiction)
