"""
Observers for retry decisions.

The scheduler reports every decision to an injected reporter, so logging and
metrics stay out of the decision logic.
"""

from typing import Iterable, Protocol

from prometheus_client import Counter, Histogram

from call_retry.logging_config import get_logger
from call_retry.models import AttemptsExhausted, EndOfCallEvent, RetryScheduled
from call_retry.retry_policy import describe_delay

logger = get_logger(__name__)

# Prometheus metrics
retry_decisions_total = Counter(
    'retry_decisions_total', 'Retry decisions made', ['kind', 'ended_reason']
)
retry_business_hours_adjustments_total = Counter(
    'retry_business_hours_adjustments_total', 'Retries moved into the business-hours window'
)
retry_delay_minutes = Histogram(
    'retry_delay_minutes',
    'Applied retry delay in minutes',
    buckets=(5, 15, 30, 60, 120, 240, 360, 720, 1440, 2880, 4320),
)


class DecisionReporter(Protocol):
    def record(self, event: EndOfCallEvent, decision) -> None:
        ...


class LoggingDecisionReporter:
    """Logs each decision as a structured event."""

    def record(self, event: EndOfCallEvent, decision) -> None:
        if isinstance(decision, RetryScheduled):
            logger.info(
                "retry_scheduled",
                attempt=f"{decision.next_attempt_number}/{decision.max_attempts}",
                ended_reason=decision.ended_reason,
                next_call=decision.next_call_time_utc.isoformat(),
                delay=describe_delay(decision.delay_applied_minutes),
                timezone=decision.timezone_used,
                adjusted=decision.was_adjusted_for_business_hours,
            )
        elif isinstance(decision, AttemptsExhausted):
            logger.info(
                "retry_attempts_exhausted",
                attempts=decision.total_attempts,
                ended_reason=decision.ended_reason,
                action=decision.fallback_action,
            )


class PrometheusDecisionReporter:
    """Feeds decisions into the process-wide Prometheus metrics."""

    def record(self, event: EndOfCallEvent, decision) -> None:
        retry_decisions_total.labels(kind=decision.kind, ended_reason=decision.ended_reason).inc()
        if isinstance(decision, RetryScheduled):
            retry_delay_minutes.observe(decision.delay_applied_minutes)
            if decision.was_adjusted_for_business_hours:
                retry_business_hours_adjustments_total.inc()


class CompositeDecisionReporter:
    """Fans a decision out to several reporters."""

    def __init__(self, reporters: Iterable[DecisionReporter]):
        self.reporters = list(reporters)

    def record(self, event: EndOfCallEvent, decision) -> None:
        for reporter in self.reporters:
            reporter.record(event, decision)


def default_reporter() -> DecisionReporter:
    return CompositeDecisionReporter([LoggingDecisionReporter(), PrometheusDecisionReporter()])
