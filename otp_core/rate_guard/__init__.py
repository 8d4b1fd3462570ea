"""
Rate Guard Module
=================
Throttles code issuance per identity and per source address.
"""

from .models import RateDecision, RateGuardResult
from .guard import RateGuard

__all__ = [
    "RateDecision",
    "RateGuardResult",
    "RateGuard",
]
