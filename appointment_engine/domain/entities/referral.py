from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReferralStatus(str, Enum):
    pending = "pending"
    completed = "completed"


@dataclass(frozen=True)
class Referral:
    id: str
    referred_email: str
    owner_id: str
    status: ReferralStatus = ReferralStatus.pending
    referred_client_id: str | None = None
