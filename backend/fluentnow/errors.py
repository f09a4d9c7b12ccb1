"""Error taxonomy shared by the gateway, the pipeline and the HTTP layer.

Every error carries a stable ``code`` string and the HTTP status the API
answers with. None of them is fatal: callers display the message and let the
user retry the action.
"""

from __future__ import annotations


class FluentError(Exception):
    code = "error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class AuthError(FluentError):
    """The credential was rejected or is not configured."""

    code = "auth-error"
    status_code = 401


class NetworkError(FluentError):
    code = "network-error"
    status_code = 503


class RateLimitedError(FluentError):
    code = "rate-limited"
    status_code = 429


class MalformedResponseError(FluentError):
    code = "malformed-response"
    status_code = 502


class EmptyResponseError(FluentError):
    code = "empty-response"
    status_code = 502


class UpstreamError(FluentError):
    """Any other non-success answer from the model service."""

    code = "unknown"
    status_code = 502


class NoInputError(FluentError):
    code = "no-input"
    status_code = 400


class InputValidationError(FluentError):
    code = "validation-error"
    status_code = 422


class InvalidStateError(FluentError):
    code = "invalid-state"
    status_code = 409


class StaleResultError(FluentError):
    """The session changed while a model call was in flight."""

    code = "stale-result"
    status_code = 409


# Errors raised by the transport or by response-shape checks
GATEWAY_ERRORS = (
    AuthError,
    NetworkError,
    RateLimitedError,
    MalformedResponseError,
    EmptyResponseError,
    UpstreamError,
)
