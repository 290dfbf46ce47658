import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from appointment_engine.api.v1.appointments import router as appointments_router
from appointment_engine.api.v1.availability import router as availability_router
from appointment_engine.api.v1.jobs import router as jobs_router
from appointment_engine.core.config import settings
from appointment_engine.wiring.dependencies import close_clients

CONTEXT_KEYS = (
    "appointment_id",
    "professional_id",
    "day",
    "step",
    "reason",
    "count",
    "amount",
    "referral_id",
    "entry_id",
    "path",
    "status",
    "error",
)


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_clients()


app = FastAPI(title="Barbershop Appointment Engine", version="1.0.0", lifespan=lifespan)

app.include_router(availability_router, prefix="/professionals", tags=["availability"])
app.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
app.include_router(jobs_router, tags=["jobs"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.ENV}
