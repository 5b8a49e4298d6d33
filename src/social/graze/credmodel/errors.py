"""Error taxonomy for the credential model.

Every error raised across the orchestrator boundary derives from
CredentialModelError and is built through a static factory so that messages
carry a stable code that can be grepped for in logs.
"""


class CredentialModelError(Exception):
    """Base class for all credential model failures."""


class NotFound(CredentialModelError):
    """
    A referenced code, token, client or user could not be resolved.

    The orchestrator maps this to `invalid_grant` or `invalid_client`.
    """

    @staticmethod
    def access_token() -> "NotFound":
        return NotFound("error-credmodel-1000 Access token not found")

    @staticmethod
    def refresh_token() -> "NotFound":
        return NotFound("error-credmodel-1001 Refresh token not found")

    @staticmethod
    def authorization_code() -> "NotFound":
        return NotFound("error-credmodel-1002 Authorization code not found")

    @staticmethod
    def client() -> "NotFound":
        """Unknown client id and wrong client secret share this message."""
        return NotFound("error-credmodel-1003 Client not found")

    @staticmethod
    def user() -> "NotFound":
        return NotFound("error-credmodel-1004 User not found")


class ConfigurationError(CredentialModelError):
    """A required construction option is missing or invalid."""

    @staticmethod
    def missing(option: str) -> "ConfigurationError":
        return ConfigurationError(
            f"error-credmodel-2000 Missing required option: {option}"
        )

    @staticmethod
    def invalid(msg: str) -> "ConfigurationError":
        return ConfigurationError(f"error-credmodel-2001 Invalid options: {msg}")


class SigningError(CredentialModelError):
    """Token generation failed."""

    @staticmethod
    def missing_secret() -> "SigningError":
        return SigningError("error-credmodel-3000 Client has no signing secret")

    @staticmethod
    def failed(msg: str = "") -> "SigningError":
        return SigningError(f"error-credmodel-3001 Token signing failed: {msg}")


class InvalidToken(CredentialModelError):
    """A token did not verify against the client's secret."""

    @staticmethod
    def bad_signature(msg: str = "") -> "InvalidToken":
        return InvalidToken(f"error-credmodel-3100 Token verification failed: {msg}")


class StoreUnavailable(CredentialModelError):
    """Transient failure talking to the credential store. Never retried here."""

    @staticmethod
    def wrap(operation: str) -> "StoreUnavailable":
        return StoreUnavailable(
            f"error-credmodel-4000 Credential store unavailable during {operation}"
        )


class DuplicateRecord(CredentialModelError):
    """A unique code or token string was inserted twice."""

    @staticmethod
    def wrap(operation: str) -> "DuplicateRecord":
        return DuplicateRecord(
            f"error-credmodel-4001 Duplicate record rejected during {operation}"
        )
