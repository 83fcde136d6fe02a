"""Data models for the call retry engine."""

from dataclasses import dataclass
from datetime import datetime, time
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from call_retry.errors import ConfigurationError


@dataclass(frozen=True)
class BusinessHoursConfig:
    """Daily calling window and allowed ISO weekdays (1=Monday, 7=Sunday)."""

    start_time: time
    end_time: time
    allowed_weekdays: frozenset

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_weekdays", frozenset(self.allowed_weekdays))
        if self.start_time >= self.end_time:
            raise ConfigurationError(
                f"Business hours start {self.start_time:%H:%M} must be before end {self.end_time:%H:%M}"
            )
        if not self.allowed_weekdays:
            raise ConfigurationError("At least one business weekday must be allowed")
        invalid = sorted(d for d in self.allowed_weekdays if d not in range(1, 8))
        if invalid:
            raise ConfigurationError(f"Business weekdays must be in 1..7, got {invalid}")


@dataclass(frozen=True)
class RetryPolicyEntry:
    """Delay schedule for one end-of-call reason."""

    reason_key: str
    delays_minutes: tuple
    fallback_action: str = "send_sms_fallback"

    def __post_init__(self) -> None:
        object.__setattr__(self, "delays_minutes", tuple(self.delays_minutes))
        if not self.delays_minutes:
            raise ConfigurationError(f"Retry policy {self.reason_key!r} has no delays")
        if any(int(d) <= 0 for d in self.delays_minutes):
            raise ConfigurationError(f"Retry policy {self.reason_key!r} delays must be positive")


class EndOfCallEvent(BaseModel):
    """Why a call attempt ended, and how many attempts came before it."""
    model_config = ConfigDict(frozen=True)

    ended_reason: str
    attempts_so_far: int = Field(default=0, ge=0)
    phone_number: Optional[str] = None
    explicit_timezone: Optional[str] = None


class RetryScheduled(BaseModel):
    """Decision: place the next attempt at ``next_call_time_utc``."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["retry"] = "retry"
    next_attempt_number: int
    next_call_time_utc: datetime
    timezone_used: str
    delay_applied_minutes: int  # real gap from now, after business-hours adjustment
    was_adjusted_for_business_hours: bool
    nominal_delay_minutes: int
    ended_reason: str
    max_attempts: int


class AttemptsExhausted(BaseModel):
    """Decision: stop retrying and trigger the fallback action."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["exhausted"] = "exhausted"
    total_attempts: int
    fallback_action: str
    ended_reason: str
    max_attempts: int


RetryDecision = Annotated[Union[RetryScheduled, AttemptsExhausted], Field(discriminator="kind")]


class CallInfo(BaseModel):
    """Subset of the call platform's call object."""
    id: Optional[str] = None
    customer_number: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EndOfCallPayload(BaseModel):
    """End-of-call report delivered by the call platform."""
    call: CallInfo = Field(default_factory=CallInfo)
    ended_reason: str = "default"
    summary: Optional[str] = None


class TimezoneLookupResponse(BaseModel):
    """Response model for /timezone."""
    phone: str
    timezone: str
    country_code: Optional[str] = None
    is_domestic: bool = False


class BusinessHoursCheckResponse(BaseModel):
    """Response model for /business-hours/check."""
    at: datetime
    timezone: str
    within_business_hours: bool
    next_callable_at: datetime
