"""
Client credential extraction (RFC 6749 §2.3.1) and the token rate limiter.
"""
import base64
from unittest.mock import MagicMock

from login_server.client_auth import _parse_basic, get_client_credentials_from_request
from login_server.rate_limit import SlidingWindowLimiter


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def _request(headers: dict):
    req = MagicMock()
    req.headers = headers
    return req


def test_parse_basic():
    assert _parse_basic(f"Basic {_b64('client:secret')}") == ("client", "secret")
    # form-urlencoded parts
    assert _parse_basic(f"Basic {_b64('my+client:p%40ss%3Aword')}") == ("my client", "p@ss:word")


def test_parse_basic_rejects_garbage():
    assert _parse_basic("Bearer abc") is None
    assert _parse_basic("Basic ***") is None
    assert _parse_basic(f"Basic {_b64('no-colon')}") is None


def test_form_credentials_take_precedence():
    req = _request({"Authorization": f"Basic {_b64('basic:one')}"})
    assert get_client_credentials_from_request(req, "form", "two") == ("form", "two")


def test_basic_used_when_form_is_empty():
    req = _request({"Authorization": f"Basic {_b64('basic:one')}"})
    assert get_client_credentials_from_request(req, None, None) == ("basic", "one")


def test_no_credentials():
    assert get_client_credentials_from_request(_request({}), None, None) == (None, None)


def test_sliding_window_limiter():
    now = [0.0]
    limiter = SlidingWindowLimiter(window_seconds=60, clock=lambda: now[0])
    assert limiter.check_and_consume("ip", 2) == (True, None)
    assert limiter.check_and_consume("ip", 2) == (True, None)
    allowed, retry_after = limiter.check_and_consume("ip", 2)
    assert not allowed
    assert retry_after == 60
    assert limiter.check_and_consume("other", 2) == (True, None)

    now[0] = 61.0
    assert limiter.check_and_consume("ip", 2) == (True, None)


def test_limiter_disabled_with_zero_limit():
    limiter = SlidingWindowLimiter()
    for _ in range(10):
        assert limiter.check_and_consume("ip", 0) == (True, None)
