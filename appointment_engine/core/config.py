from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "America/Sao_Paulo"

    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    ZAPI_INSTANCE: str | None = None
    ZAPI_TOKEN: str | None = None
    ZAPI_BASE_URL: str = "https://api.z-api.io"

    # Sweep granularity for single-service and multi-service (combo) bookings.
    SLOT_STEP_MINUTES_SINGLE: int = Field(default=5, gt=0)
    SLOT_STEP_MINUTES_COMBO: int = Field(default=30, gt=0)

    COLLABORATOR_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    REMINDER_LEAD_HOURS: int = 24
    REMINDER_WINDOW_HOURS: int = 1

    LOYALTY_TIERS: dict[str, int] = {"Bronze": 0, "Prata": 5, "Ouro": 15}
    LOYALTY_REWARD_TARGET: int = 10


settings = Settings()
