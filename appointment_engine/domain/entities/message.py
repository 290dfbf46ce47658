from dataclasses import dataclass


@dataclass(frozen=True)
class SendResult:
    success: bool
    error: str | None = None
