from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from appointment_engine.core.config import settings
from appointment_engine.application.ports.account_directory import AccountDirectoryPort
from appointment_engine.application.ports.messaging import MessagingPort
from appointment_engine.application.use_cases.available_slots import AvailableSlotsUseCase
from appointment_engine.application.use_cases.cancel_appointment import CancelAppointmentUseCase
from appointment_engine.application.use_cases.complete_appointment import CompleteAppointmentUseCase
from appointment_engine.application.use_cases.confirm_appointment import ConfirmAppointmentUseCase
from appointment_engine.application.use_cases.join_waitlist import JoinWaitlistUseCase
from appointment_engine.application.use_cases.send_reminders import SendRemindersUseCase
from appointment_engine.domain.entities.loyalty import LoyaltyProgram
from appointment_engine.infrastructure.messaging.mock_messaging import MockMessaging
from appointment_engine.infrastructure.messaging.whatsapp_messaging import WhatsAppMessaging
from appointment_engine.infrastructure.messaging.zapi_client import ZApiClient
from appointment_engine.infrastructure.store.memory_store import MemoryDatastore
from appointment_engine.infrastructure.supabase.account_directory import SupabaseAccountDirectory
from appointment_engine.infrastructure.supabase.rest_client import SupabaseRestClient
from appointment_engine.infrastructure.supabase.supabase_store import SupabaseDatastore


_datastore: MemoryDatastore | SupabaseDatastore | None = None
_directory: AccountDirectoryPort | None = None
_rest: SupabaseRestClient | None = None

logger = logging.getLogger(__name__)


def _use_supabase() -> bool:
    return bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY)


def get_datastore() -> MemoryDatastore | SupabaseDatastore:
    global _datastore, _directory, _rest
    if _datastore is None:
        if _use_supabase():
            rest = SupabaseRestClient(
                base_url=settings.SUPABASE_URL,
                service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
                timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
            )
            _rest = rest
            _datastore = SupabaseDatastore(rest)
            _directory = SupabaseAccountDirectory(rest)
        elif settings.ENV.lower() in {"dev", "local", "test"}:
            logger.info("Using MemoryDatastore (Supabase not configured, ENV=%s)", settings.ENV)
            memory = MemoryDatastore()
            _datastore = memory
            _directory = memory
        else:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required outside dev.")
    return _datastore


def get_account_directory() -> AccountDirectoryPort:
    get_datastore()
    return _directory


@lru_cache
def get_messaging() -> MessagingPort:
    if settings.ZAPI_INSTANCE and settings.ZAPI_TOKEN:
        logger.info("Using Z-API WhatsApp messaging")
        client = ZApiClient(
            instance_id=settings.ZAPI_INSTANCE,
            token=settings.ZAPI_TOKEN,
            base_url=settings.ZAPI_BASE_URL,
            timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
        )
        return WhatsAppMessaging(client=client)
    logger.warning("ZAPI_INSTANCE/ZAPI_TOKEN not configured; WhatsApp messages are simulated")
    return MockMessaging()


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def get_loyalty_program() -> LoyaltyProgram:
    return LoyaltyProgram.from_thresholds(settings.LOYALTY_TIERS, settings.LOYALTY_REWARD_TARGET)


def get_available_slots_use_case() -> AvailableSlotsUseCase:
    store = get_datastore()
    return AvailableSlotsUseCase(
        schedule=store,
        appointments=store,
        timezone=get_timezone(),
        single_step_minutes=settings.SLOT_STEP_MINUTES_SINGLE,
        combo_step_minutes=settings.SLOT_STEP_MINUTES_COMBO,
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


def get_confirm_use_case() -> ConfirmAppointmentUseCase:
    return ConfirmAppointmentUseCase(
        appointments=get_datastore(),
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


def get_complete_use_case() -> CompleteAppointmentUseCase:
    store = get_datastore()
    return CompleteAppointmentUseCase(
        appointments=store,
        ledger=store,
        loyalty=store,
        referrals=store,
        loyalty_program=get_loyalty_program(),
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


def get_cancel_use_case() -> CancelAppointmentUseCase:
    store = get_datastore()
    return CancelAppointmentUseCase(
        appointments=store,
        waitlist=store,
        directory=get_account_directory(),
        messaging=get_messaging(),
        timezone=get_timezone(),
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


def get_join_waitlist_use_case() -> JoinWaitlistUseCase:
    return JoinWaitlistUseCase(
        waitlist=get_datastore(),
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


def get_send_reminders_use_case() -> SendRemindersUseCase:
    return SendRemindersUseCase(
        appointments=get_datastore(),
        messaging=get_messaging(),
        timezone=get_timezone(),
        lead_hours=settings.REMINDER_LEAD_HOURS,
        window_hours=settings.REMINDER_WINDOW_HOURS,
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


async def close_clients() -> None:
    """Release pooled HTTP connections on shutdown."""
    global _datastore, _directory, _rest
    if _rest is not None:
        await _rest.aclose()
    _datastore = _directory = _rest = None
    if get_messaging.cache_info().currsize:
        messaging = get_messaging()
        if isinstance(messaging, WhatsAppMessaging):
            await messaging.aclose()
        get_messaging.cache_clear()
