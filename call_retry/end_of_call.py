"""
End-of-call processing.

Turns a call platform's end-of-call report into a retry decision and carries
out its side effects: persisting the attempt counter, scheduling the next call,
or flagging the contact and sending the SMS fallback once retries run out.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from call_retry.claims import RetryClaimStore, claim_key
from call_retry.logging_config import call_context, get_logger
from call_retry.models import CallInfo, EndOfCallEvent, EndOfCallPayload, RetryScheduled
from call_retry.retry_policy import SMS_FALLBACK
from call_retry.scheduler import RetryScheduler, utc_now

logger = get_logger(__name__)

# Twilio terminal call statuses -> end-of-call reasons. "completed" is absent:
# a completed call needs no retry.
TWILIO_STATUS_REASONS = {
    "no-answer": "customer-did-not-answer",
    "busy": "customer-busy",
    "failed": "assistant-error",
    "canceled": "customer-ended-call",
}


def ended_reason_from_twilio_status(status: Optional[str]) -> Optional[str]:
    """Map a Twilio CallStatus to an end-of-call reason, or None if no retry is needed."""
    return TWILIO_STATUS_REASONS.get((status or "").strip().lower())


def payload_from_twilio_status(fields: dict[str, Any]) -> Optional[EndOfCallPayload]:
    """Build an end-of-call payload from Twilio status callback fields."""
    reason = ended_reason_from_twilio_status(fields.get("CallStatus"))
    if reason is None:
        return None
    metadata = {
        key: fields[key]
        for key in ("contact_id", "customerName", "timezone")
        if fields.get(key)
    }
    metadata.setdefault("customerPhone", fields.get("To"))
    return EndOfCallPayload(
        call=CallInfo(id=fields.get("CallSid"), customer_number=fields.get("To"), metadata=metadata),
        ended_reason=reason,
    )


class ContactStore(Protocol):
    def get_attempt_count(self, contact_id: str) -> int: ...

    def record_call_result(self, contact_id: str, **fields) -> None: ...

    def mark_unreachable(self, contact_id: str) -> None: ...


class CallDispatcher(Protocol):
    def schedule_call(self, contact_id: str, phone: str, attempt_number: int, at: datetime) -> Any: ...


class FallbackSender(Protocol):
    def send_fallback_sms(self, to: str, first_name: str = "there", attempts: int = 3) -> dict: ...


class EndOfCallHandler:
    """Applies retry decisions for ended calls."""

    def __init__(
        self,
        scheduler: RetryScheduler,
        store: ContactStore,
        dispatcher: CallDispatcher,
        fallback_sender: FallbackSender,
        claims: RetryClaimStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scheduler = scheduler
        self.store = store
        self.dispatcher = dispatcher
        self.fallback_sender = fallback_sender
        self.claims = claims
        self._clock = clock

    def handle(self, payload: EndOfCallPayload) -> dict:
        metadata = payload.call.metadata or {}
        contact_id = metadata.get("contact_id")
        with call_context(call_id=payload.call.id, contact_id=contact_id):
            return self._handle(payload, contact_id, metadata)

    def _handle(self, payload: EndOfCallPayload, contact_id: Optional[str], metadata: dict) -> dict:
        phone = metadata.get("customerPhone") or payload.call.customer_number

        logger.info("end_of_call_received", ended_reason=payload.ended_reason)

        if not contact_id:
            logger.warning("end_of_call_missing_contact_id")
            return {"success": False, "error": "No contact ID"}

        try:
            attempts = self.store.get_attempt_count(contact_id)
        except Exception as e:
            logger.warning("contact_fetch_failed", error=str(e))
            attempts = 0

        # The key identifies the report itself, not the stored counter, which
        # changes once this report has been applied.
        if payload.call.id:
            key = claim_key(contact_id, f"call-{payload.call.id}")
        else:
            logger.warning("end_of_call_missing_call_id", attempts=attempts)
            key = claim_key(contact_id, f"after-{attempts}")

        if not self.claims.claim(key):
            logger.warning("end_of_call_duplicate", claim=key)
            return {"success": True, "duplicate": True}

        event = EndOfCallEvent(
            ended_reason=payload.ended_reason,
            attempts_so_far=attempts,
            phone_number=phone,
            explicit_timezone=metadata.get("timezone"),
        )
        decision = self.scheduler.decide(event)

        if isinstance(decision, RetryScheduled):
            return self._schedule_retry(contact_id, phone, decision, key)
        return self._handle_exhausted(contact_id, phone, metadata, event, decision, key)

    def _schedule_retry(self, contact_id, phone, decision: RetryScheduled, key) -> dict:
        # Dispatch before persisting: a failed dispatch leaves the contact
        # untouched, so a redelivery retries the same attempt.
        try:
            self.dispatcher.schedule_call(
                contact_id=contact_id,
                phone=phone,
                attempt_number=decision.next_attempt_number,
                at=decision.next_call_time_utc,
            )
        except Exception as e:
            logger.error("retry_dispatch_failed", error=str(e))
            self.claims.release(key)
            return {
                "success": False,
                "retry": True,
                "call_scheduled": False,
                "error": "Retry dispatch failed",
            }

        next_call = decision.next_call_time_utc.isoformat()
        try:
            self.store.record_call_result(
                contact_id,
                attempt_count=decision.next_attempt_number,
                ended_reason=decision.ended_reason,
                timezone_name=decision.timezone_used,
                last_call_time=self._clock(),
                next_call_scheduled=decision.next_call_time_utc,
            )
        except Exception as e:
            # The call is already queued; the claim stays so it is not queued twice.
            logger.error("contact_update_failed", error=str(e), next_call_time=next_call)
            return {
                "success": False,
                "retry": True,
                "call_scheduled": True,
                "next_call_time": next_call,
                "error": "Contact update failed",
            }

        return {
            "success": True,
            "retry": True,
            "call_scheduled": True,
            "attempts": decision.next_attempt_number,
            "max_attempts": decision.max_attempts,
            "next_call_time": next_call,
            "delay_minutes": decision.delay_applied_minutes,
            "message": f"Retry scheduled for {next_call}",
        }

    def _handle_exhausted(self, contact_id, phone, metadata, event, decision, key) -> dict:
        logger.info("max_attempts_reached", attempts=decision.total_attempts)

        try:
            self.store.record_call_result(
                contact_id,
                attempt_count=decision.total_attempts,
                ended_reason=decision.ended_reason,
                timezone_name=self.scheduler.timezone_for(event),
                last_call_time=self._clock(),
                next_call_scheduled=None,
            )
            self.store.mark_unreachable(contact_id)
        except Exception as e:
            logger.error("contact_update_failed", error=str(e))
            self.claims.release(key)
            return {"success": False, "error": "Contact update failed"}

        sms_sent = False
        if decision.fallback_action != SMS_FALLBACK:
            logger.info("fallback_sms_not_requested", action=decision.fallback_action)
        elif phone:
            first_name = (metadata.get("customerName") or "").split(" ")[0] or "there"
            try:
                self.fallback_sender.send_fallback_sms(
                    to=phone, first_name=first_name, attempts=decision.total_attempts
                )
                sms_sent = True
                logger.info("fallback_sms_sent")
            except Exception as e:
                logger.error("fallback_sms_failed", error=str(e))
        else:
            logger.warning("fallback_sms_skipped_no_phone")

        return {
            "success": True,
            "retry": False,
            "max_attempts_reached": True,
            "fallback_action": decision.fallback_action,
            "sms_sent": sms_sent,
            "manual_followup": True,
            "message": "Max attempts reached. Contact flagged for manual follow-up.",
        }
