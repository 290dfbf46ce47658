from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class LedgerEntryType(str, Enum):
    inflow = "inflow"
    outflow = "outflow"


@dataclass(frozen=True)
class LedgerEntry:
    owner_id: str
    type: LedgerEntryType
    amount: Decimal
    description: str
    appointment_id: str | None = None
    location_id: str | None = None
    id: str | None = None  # assigned by the datastore on insert
    created_at: datetime | None = None
