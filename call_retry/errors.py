"""Exception types raised by the retry engine."""


class RetryEngineError(Exception):
    """Base class for retry engine errors."""


class ConfigurationError(RetryEngineError):
    """Invalid engine configuration. Fatal at startup."""


class InvalidAttemptError(RetryEngineError, ValueError):
    """Attempt counter or index that cannot occur under correct usage."""


class UnknownTimezoneError(RetryEngineError, ValueError):
    """Timezone name not known to the tz database."""

    def __init__(self, timezone_name: str):
        self.timezone_name = timezone_name
        super().__init__(f"Unknown timezone: {timezone_name!r}")
