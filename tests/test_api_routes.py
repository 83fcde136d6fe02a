"""Tests for API routes."""

import pytest
from fastapi.testclient import TestClient

from call_retry.main import app
from call_retry.routers.retry import get_scheduler

client = TestClient(app)


@pytest.fixture
def fixed_scheduler(scheduler):
    """Route requests through the fixed-clock scheduler."""
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield scheduler
    app.dependency_overrides.pop(get_scheduler, None)


def test_root_endpoint():
    """Test root endpoint returns API info."""
    response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert "message" in data
    assert data["endpoints"]["decide_retry"] == "/retry/decide"


def test_timezone_lookup():
    response = client.get("/timezone", params={"phone": "+93 70 123 4567"})
    assert response.status_code == 200

    data = response.json()
    assert data["timezone"] == "Asia/Kabul"
    assert data["country_code"] == "+93"
    assert data["is_domestic"] is False


def test_timezone_lookup_unmatched_uses_default():
    response = client.get("/timezone", params={"phone": "12345"})
    data = response.json()
    assert data["timezone"] == "Europe/London"
    assert data["country_code"] is None


def test_timezone_lookup_requires_phone():
    response = client.get("/timezone")
    assert response.status_code == 422


def test_decide_retry(fixed_scheduler):
    response = client.post(
        "/retry/decide",
        json={
            "ended_reason": "customer-did-not-answer",
            "attempts_so_far": 0,
            "phone_number": "+93701234567",
        }
    )

    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "retry"
    assert data["timezone_used"] == "Asia/Kabul"
    assert data["next_attempt_number"] == 1
    assert data["delay_applied_minutes"] == 30
    assert data["was_adjusted_for_business_hours"] is False
    assert data["next_call_time_utc"].startswith("2025-01-08T10:30:00")


def test_decide_exhausted(fixed_scheduler):
    response = client.post(
        "/retry/decide",
        json={"ended_reason": "customer-busy", "attempts_so_far": 3}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "exhausted"
    assert data["total_attempts"] == 3
    assert data["fallback_action"] == "send_sms_fallback"
    assert "next_call_time_utc" not in data


def test_decide_rejects_negative_attempts():
    response = client.post(
        "/retry/decide",
        json={"ended_reason": "customer-busy", "attempts_so_far": -1}
    )
    assert response.status_code == 422


def test_decide_requires_ended_reason():
    response = client.post("/retry/decide", json={"attempts_so_far": 0})
    assert response.status_code == 422


def test_retry_config():
    response = client.get("/retry/config")
    assert response.status_code == 200

    data = response.json()
    assert data["max_attempts"] == 3
    assert data["delays"]["customer-did-not-answer"] == [30, 120, 240]
    assert data["business_hours"]["days"][0] == "Monday"


def test_business_hours_check_inside_window():
    response = client.get(
        "/business-hours/check",
        params={"timezone": "Europe/London", "at": "2025-01-08T10:00:00Z"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["within_business_hours"] is True
    assert data["next_callable_at"].startswith("2025-01-08T10:00:00")


def test_business_hours_check_weekend_by_phone():
    response = client.get(
        "/business-hours/check",
        params={"phone": "+447700900123", "at": "2025-01-11T14:00:00Z"}
    )

    data = response.json()
    assert data["timezone"] == "Europe/London"
    assert data["within_business_hours"] is False
    assert data["next_callable_at"].startswith("2025-01-13T09:00:00")


def test_business_hours_check_defaults_to_now(fixed_scheduler):
    response = client.get("/business-hours/check")
    assert response.status_code == 200
    assert response.json()["timezone"] == "Europe/London"


def test_business_hours_check_unknown_timezone():
    response = client.get(
        "/business-hours/check",
        params={"timezone": "Mars/Olympus_Mons", "at": "2025-01-08T10:00:00Z"}
    )
    assert response.status_code == 400
    assert "Mars/Olympus_Mons" in response.json()["detail"]
