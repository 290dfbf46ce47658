from abc import ABC, abstractmethod

from appointment_engine.domain.entities.waitlist import Contact


class AccountDirectoryPort(ABC):
    @abstractmethod
    async def lookup(self, user_ids: list[str]) -> dict[str, Contact]:
        """
        Resolve account identities to their contact details.
        Identities that cannot be resolved are left out of the mapping.
        """
        raise NotImplementedError
