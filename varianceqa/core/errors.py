from __future__ import annotations


class VarianceQAError(Exception):
    """Base class for failures raised by the form controller."""

    default_message = "Unknown error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VarianceQAError):
    default_message = "no transcript"


class NotReadyError(VarianceQAError):
    default_message = "session identity is not ready"


class ConfigError(VarianceQAError):
    default_message = "Gemini API key is not configured"


class ApiError(VarianceQAError):
    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FormatError(VarianceQAError):
    default_message = "model returned non-array"


class TransportError(VarianceQAError):
    default_message = "network failure"


class BusyError(VarianceQAError):
    default_message = "another request is still running"


class IdentityProviderError(VarianceQAError):
    default_message = "identity provider request failed"
