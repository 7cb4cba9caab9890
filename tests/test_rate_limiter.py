# tests/test_rate_limiter.py

"""
Tests for the pre-authentication request throttle.
"""

from unittest.mock import patch

import pytest
from starlette.requests import Request

from core import rate_limiter
from core.config import settings
from core.errors import RateLimited
from core.rate_limiter import (
    check_rate_limit,
    get_rate_limit_identifier,
    require_rate_limit,
)


def make_request(host="10.0.0.5", forwarded_for=None):
    headers = []
    if forwarded_for:
        headers.append((b"x-forwarded-for", forwarded_for.encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/guarded",
        "query_string": b"",
        "headers": headers,
        "client": (host, 50000),
    })


# ============================================================
# Client identification
# ============================================================
def test_identifier_uses_socket_peer_by_default():
    request = make_request(forwarded_for="203.0.113.9")
    assert get_rate_limit_identifier(request) == "ip:10.0.0.5"


def test_spoofed_forwarded_for_is_still_limited():
    for i in range(2):
        require_rate_limit(make_request(forwarded_for=f"198.51.100.{i}"), max_requests=2)

    with pytest.raises(RateLimited):
        require_rate_limit(make_request(forwarded_for="198.51.100.99"), max_requests=2)


def test_trusted_proxy_uses_first_forwarded_hop():
    request = make_request(forwarded_for="203.0.113.9, 10.0.0.1")
    with patch.object(settings, "RBAC_TRUST_PROXY_HEADERS", True):
        assert get_rate_limit_identifier(request) == "ip:203.0.113.9"


def test_trusted_proxy_without_header_falls_back_to_peer():
    with patch.object(settings, "RBAC_TRUST_PROXY_HEADERS", True):
        assert get_rate_limit_identifier(make_request()) == "ip:10.0.0.5"


# ============================================================
# Window bookkeeping
# ============================================================
def test_window_slides():
    with patch("core.rate_limiter.time.time", return_value=1000.0):
        assert check_rate_limit("ip:a", max_requests=1) == (True, 0)
        assert check_rate_limit("ip:a", max_requests=1) == (False, 0)

    with patch("core.rate_limiter.time.time", return_value=1061.0):
        assert check_rate_limit("ip:a", max_requests=1) == (True, 0)


def test_stale_identifiers_are_dropped():
    with patch("core.rate_limiter.time.time", return_value=1000.0):
        for i in range(5):
            check_rate_limit(f"ip:client-{i}")
    assert len(rate_limiter._rate_limit_store) == 5

    with patch("core.rate_limiter.time.time", return_value=1100.0):
        check_rate_limit("ip:late")

    assert list(rate_limiter._rate_limit_store) == ["ip:late"]
