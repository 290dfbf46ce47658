from datetime import date

from fastapi import APIRouter, Depends, Query

from appointment_engine.api.v1.errors import error_response
from appointment_engine.api.v1.schemas import ErrorResponseSchema, SlotsResponseSchema
from appointment_engine.application.exceptions import EngineError
from appointment_engine.application.use_cases.available_slots import AvailableSlotsUseCase
from appointment_engine.wiring.dependencies import get_available_slots_use_case

router = APIRouter()


@router.get(
    "/{professional_id}/slots",
    response_model=SlotsResponseSchema,
    responses={400: {"model": ErrorResponseSchema}, 500: {"model": ErrorResponseSchema}},
)
async def available_slots(
    professional_id: str,
    day: date = Query(..., alias="date"),
    service_id: list[str] = Query(default=[]),
    duration: int | None = Query(None, gt=0),
    step: int | None = Query(None, gt=0),
    uc: AvailableSlotsUseCase = Depends(get_available_slots_use_case),
):
    try:
        result = await uc.execute(
            professional_id=professional_id,
            day=day,
            service_ids=service_id,
            duration_minutes=duration,
            step_minutes=step,
        )
    except (EngineError, ValueError) as e:
        return error_response(e)
    return SlotsResponseSchema(
        professional_id=result.professional_id,
        date=result.day,
        duration_minutes=result.duration_minutes,
        step_minutes=result.step_minutes,
        slots=result.slots,
    )
