"""Retry delay schedules keyed by end-of-call reason."""

from typing import Iterable

from call_retry.errors import ConfigurationError, InvalidAttemptError
from call_retry.models import RetryPolicyEntry

DEFAULT_REASON = "default"
SMS_FALLBACK = "send_sms_fallback"

DEFAULT_RETRY_POLICIES: tuple[RetryPolicyEntry, ...] = (
    # Voicemail / no pickup: 30 min, 2 hours, 4 hours
    RetryPolicyEntry("customer-did-not-answer", (30, 120, 240), SMS_FALLBACK),
    # Hung up mid-conversation: 2 hours, 6 hours, 24 hours
    RetryPolicyEntry("customer-ended-call", (120, 360, 1440), SMS_FALLBACK),
    # Said they were busy: 1 hour, 4 hours, 12 hours
    RetryPolicyEntry("customer-busy", (60, 240, 720), SMS_FALLBACK),
    # Technical / assistant error: 5 min, 15 min, 30 min
    RetryPolicyEntry("assistant-error", (5, 15, 30), SMS_FALLBACK),
    RetryPolicyEntry(DEFAULT_REASON, (60, 180, 360), SMS_FALLBACK),
)


class RetryPolicyTable:
    """
    Static retry configuration.

    Unknown end-of-call reasons use the ``default`` entry. Attempt indexes past
    the end of a schedule reuse its last (longest) delay. ``max_attempts`` is a
    single ceiling shared by every reason.
    """

    def __init__(self, entries: Iterable[RetryPolicyEntry] = DEFAULT_RETRY_POLICIES, max_attempts: int = 3):
        policies: dict[str, RetryPolicyEntry] = {}
        for entry in entries:
            if entry.reason_key in policies:
                raise ConfigurationError(f"Duplicate retry policy for reason {entry.reason_key!r}")
            policies[entry.reason_key] = entry
        if DEFAULT_REASON not in policies:
            raise ConfigurationError("Retry policy table requires a 'default' entry")
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1")

        self._policies = policies
        self.max_attempts = max_attempts

    def entry_for(self, ended_reason: str) -> RetryPolicyEntry:
        return self._policies.get(ended_reason) or self._policies[DEFAULT_REASON]

    def delay_for_attempt(self, ended_reason: str, attempt_index: int) -> int:
        """Delay in minutes before the attempt following ``attempt_index``."""
        if attempt_index < 0:
            raise InvalidAttemptError(f"attempt index must be >= 0, got {attempt_index}")
        delays = self.entry_for(ended_reason).delays_minutes
        return delays[min(attempt_index, len(delays) - 1)]

    def is_exhausted(self, attempts_so_far: int) -> bool:
        return attempts_so_far >= self.max_attempts

    def fallback_for(self, ended_reason: str) -> str:
        return self.entry_for(ended_reason).fallback_action

    def describe(self) -> dict:
        return {
            "max_attempts": self.max_attempts,
            "delays": {key: list(entry.delays_minutes) for key, entry in self._policies.items()},
            "fallback_actions": {key: entry.fallback_action for key, entry in self._policies.items()},
        }


def describe_delay(minutes: int) -> str:
    """Human-readable delay, e.g. ``30 minutes``, ``2 hours``, ``1 day``."""
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    if minutes < 1440:
        hours = round(minutes / 60)
        return f"{hours} hour{'s' if hours > 1 else ''}"
    days = round(minutes / 1440)
    return f"{days} day{'s' if days > 1 else ''}"
