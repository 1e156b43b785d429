"""Custom exceptions for pr-threshold."""


class ThresholdError(Exception):
    """Base exception for all pr-threshold errors."""


class ConfigError(ThresholdError):
    """Configuration-related errors."""


class InvalidStateError(ThresholdError):
    """Raised when a commit status is requested with an unsupported state."""

    def __init__(self, state: str):
        super().__init__(f"Invalid commit status state: {state!r}")
        self.state = state


class UpstreamError(ThresholdError):
    """A call to the source-control host failed."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"GitHub {operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class PayloadError(ThresholdError, ValueError):
    """A webhook payload is missing fields needed to evaluate the pull request."""
