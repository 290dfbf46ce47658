from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class WaitlistEntry:
    id: str
    owner_id: str
    professional_id: str
    date: date
    client_user_id: str
    notified_at: datetime | None = None
    professional_name: str | None = None


@dataclass(frozen=True)
class Contact:
    email: str | None = None
    phone: str | None = None
