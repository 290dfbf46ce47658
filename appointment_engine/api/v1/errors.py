import logging

from fastapi.responses import JSONResponse

from appointment_engine.application.exceptions import (
    EngineError,
    IntegrityError,
    InvalidTransition,
    NotFound,
    PersistenceError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NotFound, 400),
    (InvalidTransition, 400),
    (IntegrityError, 400),
    (ValueError, 400),
    (PersistenceError, 500),
    (EngineError, 500),
)


def error_response(error: Exception, appointment_id: str | None = None) -> JSONResponse:
    status_code = next((code for kind, code in STATUS_BY_ERROR if isinstance(error, kind)), 500)
    if status_code >= 500:
        logger.error("Workflow failed", extra={"appointment_id": appointment_id, "reason": str(error)})
    else:
        logger.info("Workflow rejected", extra={"appointment_id": appointment_id, "reason": str(error)})
    return JSONResponse(status_code=status_code, content={"error": str(error)})
