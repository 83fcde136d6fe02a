"""
Async job processing with Celery.
End-of-call processing and delayed retry calls run here.
"""

from datetime import datetime
from functools import lru_cache

from celery import Celery
from twilio.rest import Client

from call_retry.claims import build_claim_store
from call_retry.config import config, load_engine_settings
from call_retry.contacts import SQLContactStore
from call_retry.database import init_db
from call_retry.end_of_call import EndOfCallHandler, payload_from_twilio_status
from call_retry.logging_config import logger
from call_retry.models import EndOfCallPayload
from call_retry.reporting import default_reporter
from call_retry.scheduler import RetryScheduler
from call_retry.sms_client import SMSClient

# Validated once at worker start; a bad configuration stops the worker here.
engine_settings = load_engine_settings()

celery_app = Celery(
    'call_retry',
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_BROKER_URL
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
)


class CeleryCallDispatcher:
    """Enqueues the next call attempt to run at the decided time."""

    def schedule_call(self, contact_id: str, phone: str, attempt_number: int, at: datetime):
        result = place_retry_call.apply_async(
            kwargs={"contact_id": contact_id, "phone": phone, "attempt_number": attempt_number},
            eta=at,
        )
        logger.info(
            "retry_call_enqueued",
            contact_id=contact_id,
            attempt_number=attempt_number,
            eta=at.isoformat(),
            task_id=result.id,
        )
        return result


@lru_cache(maxsize=1)
def get_end_of_call_handler() -> EndOfCallHandler:
    """Handler wired to the production collaborators, built once per worker."""
    init_db()
    return EndOfCallHandler(
        scheduler=RetryScheduler.from_settings(engine_settings, reporter=default_reporter()),
        store=SQLContactStore(),
        dispatcher=CeleryCallDispatcher(),
        fallback_sender=SMSClient(),
        claims=build_claim_store(),
    )


@celery_app.task(name='process_end_of_call')
def process_end_of_call_task(payload: dict):
    """
    Apply the retry decision for an ended call.

    Args:
        payload: End-of-call report (see EndOfCallPayload)

    Returns:
        dict: Handler result
    """
    return get_end_of_call_handler().handle(EndOfCallPayload.model_validate(payload))


@celery_app.task(name='process_twilio_call_status')
def process_twilio_call_status_task(fields: dict):
    """Apply the retry decision for a Twilio status callback."""
    payload = payload_from_twilio_status(fields)
    if payload is None:
        logger.info("call_status_no_retry_needed", call_sid=fields.get("CallSid"), status=fields.get("CallStatus"))
        return {"success": True, "retry": False, "message": "No retry needed"}
    return get_end_of_call_handler().handle(payload)


@celery_app.task(name='place_retry_call')
def place_retry_call(contact_id: str, phone: str, attempt_number: int):
    """
    Place a scheduled retry call.

    Args:
        contact_id: CRM contact id
        phone: Number to dial
        attempt_number: Which attempt this call is

    Returns:
        dict: Call result with status and call_sid
    """
    if not config.has_twilio_config():
        logger.error("retry_call_twilio_not_configured", contact_id=contact_id)
        return {"status": "error", "message": "Twilio not configured"}

    try:
        client = Client(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)

        call = client.calls.create(
            to=phone,
            from_=config.TWILIO_CALLER_ID,
            url=f"{config.VOICE_WEBHOOK_URL}?contact_id={contact_id}",
        )

        logger.info(
            "retry_call_initiated",
            contact_id=contact_id,
            attempt_number=attempt_number,
            call_sid=call.sid,
        )

        return {
            "status": "success",
            "call_sid": call.sid,
            "contact_id": contact_id,
            "attempt_number": attempt_number,
        }

    except Exception as e:
        logger.error("retry_call_failed", contact_id=contact_id, error=str(e))
        return {"status": "error", "message": str(e)}
