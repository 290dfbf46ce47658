from abc import ABC, abstractmethod

from appointment_engine.domain.entities.loyalty import LoyaltyCounter


class LoyaltyPort(ABC):
    @abstractmethod
    async def increment(self, owner_id: str, client_id: str) -> LoyaltyCounter:
        """Atomically add one completed visit to the (owner, client) counter."""
        raise NotImplementedError
