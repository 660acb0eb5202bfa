"""Unit tests for client address resolution behind proxies."""

import pytest
from starlette.requests import Request

from api.middleware.rate_limit import client_ip, get_rate_limit


def _request(headers: dict) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": ("10.0.0.5", 51000),
    }
    return Request(scope)


class TestClientIp:
    def test_first_forwarded_address(self):
        request = _request({"X-Forwarded-For": "93.184.216.34, 10.0.0.1"})
        assert client_ip(request) == "93.184.216.34"

    def test_real_ip_header(self):
        assert client_ip(_request({"X-Real-IP": " 93.184.216.34 "})) == "93.184.216.34"

    @pytest.mark.parametrize("value", ["192.168.1.10", "127.0.0.1", "not-an-ip", ""])
    def test_untrusted_values_fall_back_to_peer(self, value):
        assert client_ip(_request({"X-Forwarded-For": value})) == "10.0.0.5"

    def test_ipv6_normalised(self):
        request = _request({"X-Forwarded-For": "2606:2800:0220:0001:0248:1893:25c8:1946"})
        assert client_ip(request) == "2606:2800:220:1:248:1893:25c8:1946"


class TestRateLimits:
    def test_named_and_default(self):
        assert get_rate_limit("login") == "5/minute"
        assert get_rate_limit("unknown") == "100/minute"
