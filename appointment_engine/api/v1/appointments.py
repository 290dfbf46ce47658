from fastapi import APIRouter, Depends

from appointment_engine.api.v1.errors import error_response
from appointment_engine.api.v1.schemas import ErrorResponseSchema, StepOutcomeSchema, WorkflowResponseSchema
from appointment_engine.application.exceptions import EngineError
from appointment_engine.application.use_cases.cancel_appointment import CancelAppointmentUseCase
from appointment_engine.application.use_cases.complete_appointment import CompleteAppointmentUseCase
from appointment_engine.application.use_cases.confirm_appointment import ConfirmAppointmentUseCase
from appointment_engine.domain.entities.workflow_result import WorkflowResult
from appointment_engine.wiring.dependencies import (
    get_cancel_use_case,
    get_complete_use_case,
    get_confirm_use_case,
)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponseSchema},
    500: {"model": ErrorResponseSchema},
}


def to_response(result: WorkflowResult) -> WorkflowResponseSchema:
    return WorkflowResponseSchema(
        message=result.message,
        steps=[
            StepOutcomeSchema(name=s.name, status=s.status, reason=s.reason, detail=s.detail)
            for s in result.steps
        ],
        notified_count=result.notified_count,
        already_applied=result.already_applied,
    )


@router.post("/{appointment_id}/confirm", response_model=WorkflowResponseSchema, responses=ERROR_RESPONSES)
async def confirm(
    appointment_id: str,
    uc: ConfirmAppointmentUseCase = Depends(get_confirm_use_case),
):
    try:
        result = await uc.execute(appointment_id)
    except EngineError as e:
        return error_response(e, appointment_id)
    return to_response(result)


@router.post("/{appointment_id}/complete", response_model=WorkflowResponseSchema, responses=ERROR_RESPONSES)
async def complete(
    appointment_id: str,
    uc: CompleteAppointmentUseCase = Depends(get_complete_use_case),
):
    try:
        result = await uc.execute(appointment_id)
    except EngineError as e:
        return error_response(e, appointment_id)
    return to_response(result)


@router.post("/{appointment_id}/cancel", response_model=WorkflowResponseSchema, responses=ERROR_RESPONSES)
async def cancel(
    appointment_id: str,
    uc: CancelAppointmentUseCase = Depends(get_cancel_use_case),
):
    try:
        result = await uc.execute(appointment_id)
    except EngineError as e:
        return error_response(e, appointment_id)
    return to_response(result)
