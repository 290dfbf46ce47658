from fastapi import APIRouter, Depends

from appointment_engine.api.v1.appointments import ERROR_RESPONSES, to_response
from appointment_engine.api.v1.errors import error_response
from appointment_engine.api.v1.schemas import (
    JoinWaitlistRequestSchema,
    WaitlistEntrySchema,
    WorkflowResponseSchema,
)
from appointment_engine.application.exceptions import EngineError
from appointment_engine.application.use_cases.join_waitlist import JoinWaitlistUseCase
from appointment_engine.application.use_cases.send_reminders import SendRemindersUseCase
from appointment_engine.wiring.dependencies import get_join_waitlist_use_case, get_send_reminders_use_case

router = APIRouter()


@router.post("/jobs/reminders", response_model=WorkflowResponseSchema, responses=ERROR_RESPONSES)
async def send_reminders(uc: SendRemindersUseCase = Depends(get_send_reminders_use_case)):
    try:
        result = await uc.execute()
    except EngineError as e:
        return error_response(e)
    return to_response(result)


@router.post("/waitlist", response_model=WaitlistEntrySchema, responses=ERROR_RESPONSES)
async def join_waitlist(
    req: JoinWaitlistRequestSchema,
    uc: JoinWaitlistUseCase = Depends(get_join_waitlist_use_case),
):
    try:
        entry = await uc.execute(
            owner_id=req.owner_id,
            professional_id=req.professional_id,
            day=req.date,
            client_user_id=req.client_user_id,
        )
    except (EngineError, ValueError) as e:
        return error_response(e)
    return WaitlistEntrySchema(
        id=entry.id,
        professional_id=entry.professional_id,
        date=entry.date,
        client_user_id=entry.client_user_id,
        notified=entry.notified_at is not None,
    )
