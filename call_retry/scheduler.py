"""
Retry scheduling orchestrator.

Combines the timezone resolver, the business-hours calendar and the retry
policy table into a single decision per ended call: either "call again at T"
or "attempts exhausted, use the fallback". The scheduler holds no per-contact
state; the attempt count always comes from the caller.
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Callable, Optional

from call_retry.business_hours import BusinessHoursCalendar, as_utc, load_zone
from call_retry.config import EngineSettings
from call_retry.errors import InvalidAttemptError, UnknownTimezoneError
from call_retry.logging_config import get_logger
from call_retry.models import AttemptsExhausted, EndOfCallEvent, RetryDecision, RetryScheduled
from call_retry.reporting import DecisionReporter, LoggingDecisionReporter
from call_retry.retry_policy import DEFAULT_RETRY_POLICIES, RetryPolicyTable
from call_retry.timezone_resolver import DEFAULT_TIMEZONE_TABLE, TimezoneResolver

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class RetryScheduler:
    """Decides when the next call attempt should happen."""

    def __init__(
        self,
        resolver: TimezoneResolver,
        calendar: BusinessHoursCalendar,
        policy: RetryPolicyTable,
        clock: Callable[[], datetime] = utc_now,
        reporter: Optional[DecisionReporter] = None,
    ) -> None:
        self.resolver = resolver
        self.calendar = calendar
        self.policy = policy
        self._clock = clock
        self._reporter = reporter or LoggingDecisionReporter()

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        clock: Callable[[], datetime] = utc_now,
        reporter: Optional[DecisionReporter] = None,
    ) -> "RetryScheduler":
        """Build a scheduler with the built-in timezone and retry tables."""
        resolver = TimezoneResolver(
            DEFAULT_TIMEZONE_TABLE,
            default_timezone=settings.default_timezone,
            home_country_code=settings.home_country_code,
        )
        return cls(
            resolver=resolver,
            calendar=BusinessHoursCalendar(settings.business_hours),
            policy=RetryPolicyTable(DEFAULT_RETRY_POLICIES, max_attempts=settings.max_attempts),
            clock=clock,
            reporter=reporter,
        )

    def resolve_timezone(self, phone_number: Optional[str]) -> str:
        return self.resolver.resolve(phone_number)

    def is_within_business_hours(self, instant: datetime, timezone: str) -> bool:
        """Pre-flight check, also usable before a first attempt."""
        return self.calendar.is_callable(instant, timezone)

    def next_callable_instant(self, instant: datetime, timezone: str) -> datetime:
        return self.calendar.next_callable_instant(instant, timezone)

    def decide(self, event: EndOfCallEvent) -> RetryDecision:
        """
        Produce the next action for an ended call.

        Args:
            event: Why the call ended and how many attempts came before it

        Returns:
            RetryScheduled with the (business-hours adjusted) next call time,
            or AttemptsExhausted once the attempt ceiling is reached.

        Raises:
            InvalidAttemptError: if ``attempts_so_far`` is negative
        """
        attempts = event.attempts_so_far
        if attempts < 0:
            raise InvalidAttemptError(f"attempts_so_far must be >= 0, got {attempts}")

        if self.policy.is_exhausted(attempts):
            decision = AttemptsExhausted(
                total_attempts=attempts,
                fallback_action=self.policy.fallback_for(event.ended_reason),
                ended_reason=event.ended_reason,
                max_attempts=self.policy.max_attempts,
            )
            self._report(event, decision)
            return decision

        timezone = self.timezone_for(event)
        delay_minutes = self.policy.delay_for_attempt(event.ended_reason, attempts)

        now = as_utc(self._clock()).astimezone(dt_timezone.utc)
        target = now + timedelta(minutes=delay_minutes)

        if self.calendar.is_callable(target, timezone):
            next_call_time = target
            applied_minutes = delay_minutes
            adjusted = False
        else:
            next_call_time = self.calendar.next_callable_instant(target, timezone)
            # Report the real wait, not the nominal table value
            applied_minutes = round((next_call_time - now).total_seconds() / 60)
            adjusted = True

        decision = RetryScheduled(
            next_attempt_number=attempts + 1,
            next_call_time_utc=next_call_time,
            timezone_used=timezone,
            delay_applied_minutes=applied_minutes,
            was_adjusted_for_business_hours=adjusted,
            nominal_delay_minutes=delay_minutes,
            ended_reason=event.ended_reason,
            max_attempts=self.policy.max_attempts,
        )
        self._report(event, decision)
        return decision

    def configuration(self) -> dict:
        """Summary of the active retry configuration."""
        summary = self.policy.describe()
        summary["business_hours"] = self.calendar.describe()
        summary["default_timezone"] = self.resolver.default_timezone
        return summary

    def timezone_for(self, event: EndOfCallEvent) -> str:
        """The explicit timezone when it is a known zone, else the one resolved from the phone."""
        if event.explicit_timezone:
            try:
                load_zone(event.explicit_timezone)
                return event.explicit_timezone
            except UnknownTimezoneError:
                logger.warning(
                    "explicit_timezone_unknown",
                    timezone=event.explicit_timezone,
                    fallback="phone_number",
                )
        return self.resolver.resolve(event.phone_number)

    def _report(self, event: EndOfCallEvent, decision) -> None:
        try:
            self._reporter.record(event, decision)
        except Exception as e:
            logger.error("retry_reporter_failed", error=str(e), kind=decision.kind)
