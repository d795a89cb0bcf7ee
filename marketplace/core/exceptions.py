"""
Exception taxonomy for the marketplace backend.

Every error carries a user-facing message, a machine code, the HTTP status it
maps to and an optional suggestion. Handlers in ``marketplace.main`` turn them
into screen payloads; nothing here retries.
"""

from typing import Any, Dict, List, Optional


class MarketplaceError(Exception):
    """Base exception for the marketplace backend."""

    def __init__(
        self,
        message: str,
        code: str = "MARKETPLACE_ERROR",
        status_code: int = 500,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response dict."""
        result: Dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth / gating
# =============================================================================

class AuthError(MarketplaceError):
    """Credential or session failure reported by the Identity Service.

    ``screen`` names the form the message is shown inline on.
    """

    def __init__(self, message: str, screen: str = "signin", code: str = "AUTH_ERROR"):
        super().__init__(message=message, code=code, status_code=401)
        self.screen = screen


class AuthCallbackError(AuthError):
    """The confirmation link was rejected. Shown as a blocking screen."""

    def __init__(self, message: str):
        super().__init__(message, screen="auth-error", code="AUTH_CALLBACK_ERROR")
        self.status_code = 400
        self.suggestion = "Return to sign in and try again"


class ResolverError(MarketplaceError):
    """Profile lookup failed for a reason other than "no profile yet"."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="PROFILE_RESOLUTION_FAILED",
            status_code=503,
            suggestion="Return to sign in and try again",
            details=details,
        )


class ValidationError(MarketplaceError):
    """Local form validation failure. Raised before any network call."""

    def __init__(self, message: str, fields: Optional[Dict[str, List[str]]] = None, screen: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=422,
            details={"fields": fields} if fields else None,
        )
        self.fields = fields or {}
        self.screen = screen

    @classmethod
    def from_pydantic(cls, exc, screen: Optional[str] = None) -> "ValidationError":
        fields: Dict[str, List[str]] = {}
        for err in exc.errors():
            name = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            msg = err.get("msg", "Invalid value")
            # "Value error, Invalid Instagram URL" -> "Invalid Instagram URL"
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            fields.setdefault(name, []).append(msg)
        first = next(iter(fields.values()))[0] if fields else "Invalid input"
        return cls(first, fields=fields, screen=screen)


# =============================================================================
# Data / storage
# =============================================================================

UNIQUE_VIOLATION = "23505"


class DataServiceError(MarketplaceError):
    """The Data Service rejected or failed a request."""

    def __init__(self, message: str, table: str, provider_code: Optional[str] = None):
        super().__init__(
            message=message,
            code="DATA_SERVICE_ERROR",
            status_code=502,
            details={"table": table, "provider_code": provider_code},
        )
        self.table = table
        self.provider_code = provider_code

    @property
    def is_unique_violation(self) -> bool:
        return self.provider_code == UNIQUE_VIOLATION


class RecordExistsError(MarketplaceError):
    """Raised when creating a per-user record that already exists."""

    def __init__(self, resource: str, edit_path: Optional[str] = None):
        super().__init__(
            message=f"You already have a {resource}",
            code="RECORD_EXISTS",
            status_code=409,
            suggestion=f"Edit it at {edit_path}" if edit_path else None,
            details={"resource": resource},
        )


class RecordNotFoundError(MarketplaceError):
    """Raised when a per-user record doesn't exist."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"{resource[0].upper()}{resource[1:]} not found",
            code="RECORD_NOT_FOUND",
            status_code=404,
            details={"resource": resource},
        )


class StorageError(MarketplaceError):
    """Blob upload failed."""

    def __init__(self, message: str, bucket: str, key: str):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            status_code=502,
            details={"bucket": bucket, "key": key},
        )
