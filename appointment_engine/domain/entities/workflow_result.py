from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StepOutcome:
    name: str
    status: str  # "ok", "failed", "skipped"
    reason: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @staticmethod
    def succeeded(name: str, **detail: Any) -> "StepOutcome":
        return StepOutcome(name=name, status="ok", detail=detail)

    @staticmethod
    def failed(name: str, reason: str) -> "StepOutcome":
        return StepOutcome(name=name, status="failed", reason=reason)

    @staticmethod
    def skipped(name: str, reason: str) -> "StepOutcome":
        return StepOutcome(name=name, status="skipped", reason=reason)


@dataclass(frozen=True)
class WorkflowResult:
    message: str
    steps: tuple[StepOutcome, ...] = ()
    notified_count: int = 0
    already_applied: bool = False

    def step(self, name: str) -> StepOutcome | None:
        for outcome in self.steps:
            if outcome.name == name:
                return outcome
        return None
