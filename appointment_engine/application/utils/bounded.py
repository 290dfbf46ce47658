from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from appointment_engine.application.exceptions import EngineError, PersistenceError
from appointment_engine.domain.entities.workflow_result import StepOutcome

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def call_primary(awaitable: Awaitable[T], timeout: float | None, what: str) -> T:
    """Await a collaborator call on the critical path; timeouts and transport errors become PersistenceError."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise PersistenceError(f"Timed out while trying to {what}.") from e
    except EngineError:
        raise
    except Exception as e:
        raise PersistenceError(f"Failed to {what}: {e}") from e


async def attempt(awaitable: Awaitable[T], timeout: float | None) -> tuple[T | None, str | None]:
    """Await a best-effort call. Returns (value, None) or (None, failure reason)."""
    try:
        return await asyncio.wait_for(awaitable, timeout), None
    except asyncio.TimeoutError:
        return None, "timeout"
    except Exception as e:
        return None, str(e) or e.__class__.__name__


async def run_step(
    name: str,
    awaitable: Awaitable[StepOutcome],
    timeout: float | None,
    appointment_id: str | None = None,
) -> StepOutcome:
    """Await a best-effort step. Any failure is logged and reported as a failed outcome."""
    outcome, reason = await attempt(awaitable, timeout)
    if outcome is not None:
        return outcome
    logger.warning(
        "Side effect failed",
        extra={"appointment_id": appointment_id, "step": name, "reason": reason},
    )
    return StepOutcome.failed(name, reason or "unknown error")
