"""
Error taxonomy for the submission endpoint.

Per-request errors derive from SubmissionError and carry everything the
exception handler in formrelay.main needs to build a response: the HTTP
status, a client-safe message and any extra headers. Internal error text
(DNS, transport, form parsing) is logged where it happens and never ends up
in ``message``.

Startup errors derive from StartupError and are fatal: the process exits
instead of running in a degraded mode.
"""

from typing import Optional


INTERNAL_ERROR_MESSAGE = "Error: Internal server error."


class SubmissionError(Exception):
    """Base class for every error that ends a request with a non-200 status."""

    status_code: int = 500

    def __init__(self, message: str, headers: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class OriginRejected(SubmissionError):
    """The Origin header does not match the configured site."""

    status_code = 403

    def __init__(self):
        super().__init__("Error: Only certain sites are allowed to use this endpoint.")


class MethodNotAllowed(SubmissionError):
    """Anything other than POST. The only error that echoes client input."""

    status_code = 405

    def __init__(self, method: str):
        super().__init__(
            f"Error: Method {method} not allowed. Only POST allowed.",
            headers={"Allow": "POST"},
        )
        self.method = method


class MalformedBody(SubmissionError):
    """The form body could not be read or decoded."""

    status_code = 500

    def __init__(self):
        super().__init__(INTERNAL_ERROR_MESSAGE)


class FieldInvalid(SubmissionError):
    """A single form field failed validation."""

    status_code = 400

    def __init__(self, field: str, reason: str, message: str):
        super().__init__(message)
        self.field = field
        self.reason = reason


class BotDetected(SubmissionError):
    """The honeypot field was filled in (or missing when required)."""

    status_code = 400

    def __init__(self):
        super().__init__("Error: Please, no robots!")


class DispatchFailed(SubmissionError):
    """The mail collaborator reported a failure."""

    status_code = 500

    def __init__(self):
        super().__init__(INTERNAL_ERROR_MESSAGE)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class StartupError(Exception):
    """Unrecoverable problem while bringing the service up."""


class ConfigError(StartupError, ValueError):
    """Missing or invalid configuration value."""


class AuthenticationError(StartupError):
    """The mail collaborator could not authenticate with its credentials."""


class SendError(Exception):
    """Raised by a Mailer when a message could not be delivered."""
