from abc import ABC, abstractmethod

from appointment_engine.domain.entities.ledger import LedgerEntry


class LedgerPort(ABC):
    @abstractmethod
    async def insert(self, entry: LedgerEntry) -> LedgerEntry:
        """Persist a ledger entry. Returns the stored entry with its id."""
        raise NotImplementedError
