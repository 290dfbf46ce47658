from abc import ABC, abstractmethod

from appointment_engine.domain.entities.message import SendResult


class MessagingPort(ABC):
    @abstractmethod
    async def send(self, to: str, message: str) -> SendResult:
        raise NotImplementedError
