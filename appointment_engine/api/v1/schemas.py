from datetime import date
from typing import Any

from pydantic import BaseModel, Field


class StepOutcomeSchema(BaseModel):
    name: str
    status: str
    reason: str | None = None
    detail: dict[str, Any] = Field(default_factory=dict)


class WorkflowResponseSchema(BaseModel):
    message: str
    steps: list[StepOutcomeSchema] = Field(default_factory=list)
    notified_count: int = 0
    already_applied: bool = False


class ErrorResponseSchema(BaseModel):
    error: str


class SlotsResponseSchema(BaseModel):
    professional_id: str
    date: date
    duration_minutes: int | None = None
    step_minutes: int
    slots: list[str]


class JoinWaitlistRequestSchema(BaseModel):
    owner_id: str = Field(min_length=1)
    professional_id: str = Field(min_length=1)
    date: date
    client_user_id: str = Field(min_length=1)


class WaitlistEntrySchema(BaseModel):
    id: str
    professional_id: str
    date: date
    client_user_id: str
    notified: bool
