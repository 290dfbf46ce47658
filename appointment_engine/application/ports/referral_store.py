from abc import ABC, abstractmethod

from appointment_engine.domain.entities.referral import Referral


class ReferralStorePort(ABC):
    @abstractmethod
    async def find_pending(self, owner_id: str, referred_email: str) -> Referral | None:
        raise NotImplementedError

    @abstractmethod
    async def complete(self, referral_id: str, client_id: str) -> bool:
        """Mark a pending referral completed. Returns False if it was no longer pending."""
        raise NotImplementedError
