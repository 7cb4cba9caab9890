# core/rate_limiter.py

from typing import Dict, List, Tuple
from fastapi import Request
import time

from core.config import settings
from core.errors import RateLimited


# Simple in-memory, per-process sliding window
_rate_limit_store: Dict[str, List[float]] = {}


def _sweep(window_start: float):
    """Drop identifiers with no requests left inside the window."""
    stale = [k for k, stamps in _rate_limit_store.items() if not stamps or stamps[-1] <= window_start]
    for identifier in stale:
        del _rate_limit_store[identifier]


def check_rate_limit(
    identifier: str,
    max_requests: int = 10,
    window_seconds: int = 60,
) -> Tuple[bool, int]:
    """
    Check if a request should be rate limited.

    Args:
        identifier: Unique identifier (client IP, token fingerprint, etc.)
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds

    Returns:
        Tuple of (allowed: bool, remaining: int)
    """
    now = time.time()
    window_start = now - window_seconds

    _sweep(window_start)
    requests = [t for t in _rate_limit_store.get(identifier, []) if t > window_start]

    if len(requests) >= max_requests:
        return False, 0

    requests.append(now)
    _rate_limit_store[identifier] = requests

    return True, max_requests - len(requests)


def get_rate_limit_identifier(request: Request) -> str:
    """
    Identify the client before authentication has happened.
    X-Forwarded-For is client-controlled, so its first hop is used only
    when RBAC_TRUST_PROXY_HEADERS is set.
    """
    client_ip = request.client.host if request.client else "unknown"

    if settings.RBAC_TRUST_PROXY_HEADERS:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for and forwarded_for.split(",")[0].strip():
            client_ip = forwarded_for.split(",")[0].strip()

    return f"ip:{client_ip}"


def require_rate_limit(request: Request, max_requests: int, window_seconds: int = 60) -> int:
    """
    Raises RateLimited (429) once the client exceeds max_requests per window.
    Returns the remaining budget otherwise.
    """
    allowed, remaining = check_rate_limit(
        get_rate_limit_identifier(request), max_requests, window_seconds
    )
    if not allowed:
        raise RateLimited(max_requests, window_seconds)
    return remaining


def reset_rate_limits():
    _rate_limit_store.clear()
