"""Tests for Celery task wiring (tasks are called directly, no broker)."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from call_retry import celery_tasks
from call_retry.models import EndOfCallPayload


@pytest.fixture
def fake_handler(monkeypatch):
    handler = MagicMock()
    handler.handle.return_value = {"success": True, "retry": True}
    monkeypatch.setattr(celery_tasks, "get_end_of_call_handler", lambda: handler)
    return handler


def test_process_end_of_call_validates_payload(fake_handler):
    result = celery_tasks.process_end_of_call_task({
        "call": {"id": "call-1", "metadata": {"contact_id": "c-1"}},
        "ended_reason": "customer-busy",
    })

    assert result == {"success": True, "retry": True}
    payload = fake_handler.handle.call_args.args[0]
    assert isinstance(payload, EndOfCallPayload)
    assert payload.call.metadata["contact_id"] == "c-1"


def test_completed_twilio_call_needs_no_retry(fake_handler):
    result = celery_tasks.process_twilio_call_status_task({"CallSid": "CA1", "CallStatus": "completed"})

    assert result["retry"] is False
    fake_handler.handle.assert_not_called()


def test_unanswered_twilio_call_is_handled(fake_handler):
    celery_tasks.process_twilio_call_status_task({
        "CallSid": "CA1",
        "CallStatus": "no-answer",
        "To": "+447700900123",
        "contact_id": "c-1",
    })

    payload = fake_handler.handle.call_args.args[0]
    assert payload.ended_reason == "customer-did-not-answer"


def test_dispatcher_enqueues_with_eta(monkeypatch):
    apply_async = MagicMock(return_value=MagicMock(id="task-1"))
    monkeypatch.setattr(celery_tasks.place_retry_call, "apply_async", apply_async)
    at = datetime(2025, 1, 8, 10, 30, tzinfo=timezone.utc)

    celery_tasks.CeleryCallDispatcher().schedule_call("c-1", "+447700900123", 2, at)

    apply_async.assert_called_once_with(
        kwargs={"contact_id": "c-1", "phone": "+447700900123", "attempt_number": 2},
        eta=at,
    )


def test_place_retry_call_without_twilio():
    result = celery_tasks.place_retry_call("c-1", "+447700900123", 2)
    assert result == {"status": "error", "message": "Twilio not configured"}


def test_place_retry_call(monkeypatch):
    from call_retry.config import Config, config

    for target in (Config, config):
        monkeypatch.setattr(target, "TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setattr(target, "TWILIO_AUTH_TOKEN", "token")
        monkeypatch.setattr(target, "TWILIO_CALLER_ID", "+15005550006")
        monkeypatch.setattr(target, "VOICE_WEBHOOK_URL", "https://example.com/twilio/voice")

    twilio = MagicMock()
    twilio.calls.create.return_value = MagicMock(sid="CA999")
    monkeypatch.setattr(celery_tasks, "Client", MagicMock(return_value=twilio))

    result = celery_tasks.place_retry_call("c-1", "+447700900123", 2)

    assert result["status"] == "success"
    assert result["call_sid"] == "CA999"
    twilio.calls.create.assert_called_once_with(
        to="+447700900123",
        from_="+15005550006",
        url="https://example.com/twilio/voice?contact_id=c-1",
    )


def test_place_retry_call_reports_twilio_errors(monkeypatch):
    from call_retry.config import Config, config

    for target in (Config, config):
        monkeypatch.setattr(target, "TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setattr(target, "TWILIO_AUTH_TOKEN", "token")
        monkeypatch.setattr(target, "TWILIO_CALLER_ID", "+15005550006")

    twilio = MagicMock()
    twilio.calls.create.side_effect = RuntimeError("invalid number")
    monkeypatch.setattr(celery_tasks, "Client", MagicMock(return_value=twilio))

    result = celery_tasks.place_retry_call("c-1", "+447700900123", 2)

    assert result == {"status": "error", "message": "invalid number"}
