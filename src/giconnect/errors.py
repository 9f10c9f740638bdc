"""
Error taxonomy for the relay endpoints.

Every error carries the HTTP status it maps to and a client-safe message.
Nothing placed in ``safe_message`` may contain key material.
"""
from giconnect.constants import MAX_ERROR_DETAIL_CHARS


def truncate_detail(text: str | None, limit: int = MAX_ERROR_DETAIL_CHARS) -> str:
    """Cut downstream response text to a loggable, returnable length."""
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


class GIConnectError(Exception):
    """Base exception for all handled relay failures."""

    status_code: int = 500

    def __init__(self, message: str):
        """
        Args:
            message: Client-safe explanation of the failure
        """
        super().__init__(message)
        self.safe_message = message


class ConfigError(GIConnectError):
    """Raised when a secret or credential is missing or unusable."""


class NormalizationError(ConfigError):
    """Raised when no PEM private key can be recovered from the credential blob."""


class ValidationError(GIConnectError):
    """Raised when a request field is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class UnauthorizedError(GIConnectError):
    """Raised when the shared worker secret does not match."""

    status_code = 401


class AuthExchangeError(GIConnectError):
    """Raised when the authorization server rejects a signed assertion."""

    def __init__(self, message: str, downstream_status: int | None = None, detail: str | None = None):
        """
        Args:
            message: Client-safe explanation
            downstream_status: HTTP status returned by the token endpoint
            detail: Downstream response text, truncated before being stored
        """
        if detail:
            message = f"{message}: {truncate_detail(detail)}"
        super().__init__(message)
        self.downstream_status = downstream_status


class TokenExchangeError(AuthExchangeError):
    """Raised by the token issuer when no access token could be obtained."""


class UpstreamError(GIConnectError):
    """Raised when a warehouse, model or storage call fails."""

    def __init__(self, message: str, downstream_status: int | None = None, detail: str | None = None):
        if detail:
            message = f"{message}: {truncate_detail(detail)}"
        super().__init__(message)
        self.downstream_status = downstream_status


class InsertError(UpstreamError):
    """Raised when a row insertion fails or reports per-row insert errors."""


class DeadlineExceeded(UpstreamError):
    """Raised when an external call does not finish within the configured timeout."""
