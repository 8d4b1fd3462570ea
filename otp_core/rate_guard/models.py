"""
Rate Guard Models
=================
Data models for rate guard decisions.
"""

from typing import Optional
from dataclasses import dataclass
from enum import Enum


class RateDecision(str, Enum):
    """Rate guard decision result."""
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass
class RateGuardResult:
    """Rate guard check result with counter information."""
    decision: RateDecision
    key: str
    count: int
    limit: int
    retry_after: Optional[int] = None  # Seconds until the window resets

    @property
    def allowed(self) -> bool:
        return self.decision == RateDecision.ALLOWED

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)
