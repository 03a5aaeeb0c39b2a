from __future__ import annotations

from typing import Protocol

from .model import Policy


class PolicyRepository(Protocol):
    def get_for_company(self, company_id: int) -> Policy:
        """Resolved policy; companies without stored settings get the defaults."""

        raise NotImplementedError
