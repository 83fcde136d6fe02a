from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from call_retry.errors import RetryEngineError
from call_retry.models import BusinessHoursCheckResponse, EndOfCallEvent, TimezoneLookupResponse
from call_retry.scheduler import RetryScheduler, utc_now

router = APIRouter(tags=["Retry"])


def get_scheduler(request: Request) -> RetryScheduler:
    """The process-wide scheduler built at startup."""
    return request.app.state.scheduler


# GET /timezone?phone=+447700900123
# Gets: query param phone (str)
# Returns: resolved IANA timezone and matched dialing prefix
# Example:
#   curl 'http://localhost:8000/timezone?phone=%2B93701234567'
@router.get("/timezone", response_model=TimezoneLookupResponse)
async def resolve_timezone(phone: str, scheduler: RetryScheduler = Depends(get_scheduler)):
    """Resolve the customer's timezone from their phone number."""
    resolver = scheduler.resolver
    return TimezoneLookupResponse(
        phone=phone,
        timezone=resolver.resolve(phone),
        country_code=resolver.country_code_of(phone),
        is_domestic=resolver.is_domestic(phone),
    )


# POST /retry/decide
# Gets: JSON EndOfCallEvent {ended_reason, attempts_so_far, phone_number, explicit_timezone}
# Returns: retry decision, tagged by "kind" ("retry" or "exhausted")
# Example:
#   curl -X POST http://localhost:8000/retry/decide -H 'Content-Type: application/json' \
#     -d '{"ended_reason": "customer-did-not-answer", "attempts_so_far": 0, "phone_number": "+93701234567"}'
@router.post("/retry/decide")
async def decide_retry(event: EndOfCallEvent, scheduler: RetryScheduler = Depends(get_scheduler)):
    """Decide when to call again, or that attempts are exhausted."""
    try:
        return scheduler.decide(event)
    except (RetryEngineError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))


# GET /retry/config
# Gets: nothing
# Returns: max attempts, delay schedules, fallback actions and business hours
# Example:
#   curl http://localhost:8000/retry/config
@router.get("/retry/config")
async def retry_configuration(scheduler: RetryScheduler = Depends(get_scheduler)):
    """Active retry configuration."""
    return scheduler.configuration()


# GET /business-hours/check?timezone=Europe/London&at=2025-01-06T10:00:00Z
# Gets: optional query params at (ISO datetime, default now), timezone (IANA) or phone
# Returns: whether the instant is callable and the next callable instant
# Example:
#   curl 'http://localhost:8000/business-hours/check?phone=%2B447700900123'
@router.get("/business-hours/check", response_model=BusinessHoursCheckResponse)
async def check_business_hours(
    at: Optional[datetime] = None,
    timezone: Optional[str] = None,
    phone: Optional[str] = None,
    scheduler: RetryScheduler = Depends(get_scheduler),
):
    """Pre-flight check before placing a call."""
    instant = at or utc_now()
    zone = timezone or scheduler.resolve_timezone(phone)
    try:
        return BusinessHoursCheckResponse(
            at=instant,
            timezone=zone,
            within_business_hours=scheduler.is_within_business_hours(instant, zone),
            next_callable_at=scheduler.next_callable_instant(instant, zone),
        )
    except (RetryEngineError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
