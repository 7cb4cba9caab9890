# core/errors.py

from typing import Iterable, Optional, Union

from fastapi import HTTPException


# ============================================================
# RBAC exception taxonomy
# ============================================================
class RBACError(Exception):
    """
    Base class for every access-control outcome that is surfaced over HTTP.
    Subclasses carry their own status code and machine-readable error code.
    """

    status_code: int = 500
    error: str = "rbac_error"

    def __init__(self, reason: str = ""):
        super().__init__(reason or self.error)
        self.reason = reason or self.error

    def to_detail(self) -> dict:
        return {"error": self.error, "reason": self.reason}

    @property
    def headers(self) -> Optional[dict]:
        return None


class Unauthenticated(RBACError):
    """No resolvable identity (401)."""

    status_code = 401
    error = "unauthenticated"

    def __init__(self, reason: str = "User not authenticated"):
        super().__init__(reason)

    @property
    def headers(self) -> Optional[dict]:
        return {"WWW-Authenticate": "Bearer"}


class Unauthorized(RBACError):
    """
    Identity resolved but grants are insufficient (403).
    Only the permission(s) the caller failed to satisfy are ever reported.
    """

    status_code = 403
    error = "insufficient_permissions"

    def __init__(self, permissions: Union[str, Iterable[str]], reason: str = "NO_MATCHING_GRANT"):
        super().__init__(reason)
        if isinstance(permissions, str):
            permissions = [permissions]
        self.permissions = [str(p) for p in permissions]

    def to_detail(self) -> dict:
        detail = {"error": self.error, "reason": self.reason}
        if len(self.permissions) == 1:
            detail["required_permission"] = self.permissions[0]
        else:
            detail["required_permissions"] = self.permissions
        return detail


class ConfigurationError(RBACError):
    """
    Unknown permission, a role referencing an undefined permission,
    or an invalid RBAC setting. A deploy defect, never an authorization outcome.
    """

    status_code = 500
    error = "rbac_configuration_error"

    def to_detail(self) -> dict:
        # Internal details stay in the logs
        return {"error": self.error, "reason": "Permission configuration error"}


class StoreUnavailable(RBACError):
    """None of the role-fact sources could be reached."""

    status_code = 503
    error = "role_store_unavailable"

    def __init__(self, reason: str = "Role store unavailable"):
        super().__init__(reason)


class InvalidRoleError(RBACError):
    """A write asked for a role that cannot be assigned at that level."""

    status_code = 400
    error = "invalid_role"


class RateLimited(RBACError):
    status_code = 429
    error = "rate_limited"

    def __init__(self, max_requests: int, window_seconds: int):
        super().__init__(
            f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds."
        )
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @property
    def headers(self) -> Optional[dict]:
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Window": str(self.window_seconds),
            "Retry-After": str(self.window_seconds),
        }


# ============================================================
# Supabase error helpers
# ============================================================
def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1 - Supabase Auth / GoTrue errors
    if hasattr(error, "message"):
        try:
            return str(error.message)
        except Exception:
            pass

    # Case 2 - Supabase errors with args (common)
    if hasattr(error, "args") and error.args:
        try:
            return str(error.args[0])
        except Exception:
            pass

    # Case 3 - Plain string fallback
    try:
        return str(error)
    except Exception:
        return "Unknown Supabase error"


def handle_supabase_error(error: Exception, operation: str = "Database operation", status_code: int = 500) -> HTTPException:
    """
    Handle Supabase errors with consistent formatting.
    Returns HTTPException (doesn't raise) so caller can customize or re-raise.

    Args:
        error: The exception that occurred
        operation: Description of what operation failed (e.g., "Failed to update member role")
        status_code: HTTP status code (default 500)

    Returns:
        HTTPException with standardized error message
    """
    from core.logging_config import logger

    error_detail = extract_supabase_error(error)
    logger.error(f"{operation}: {error_detail}")

    error_lower = error_detail.lower()
    if "duplicate" in error_lower or "unique" in error_lower:
        return HTTPException(status_code=400, detail=f"{operation}: Record already exists")
    elif "foreign key" in error_lower or "violates foreign key" in error_lower:
        return HTTPException(status_code=400, detail=f"{operation}: Invalid reference")
    elif "not found" in error_lower or "does not exist" in error_lower:
        return HTTPException(status_code=404, detail=f"{operation}: Resource not found")
    else:
        return HTTPException(status_code=status_code, detail=f"{operation} failed")
