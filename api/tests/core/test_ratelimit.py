"""Unit tests for core.ratelimit."""

import pytest
from starlette.requests import Request

from core.ratelimit import CHECKIN_LIMIT, READ_LIMIT, _client_key


def _request(host: str) -> Request:
    return Request({"type": "http", "client": (host, 50000), "headers": []})


@pytest.mark.unit
class TestClientKey:
    def test_combines_user_key_and_address(self):
        assert _client_key(_request("10.0.0.7")) == "local:10.0.0.7"

    def test_distinct_hosts_get_distinct_buckets(self):
        assert _client_key(_request("10.0.0.7")) != _client_key(_request("10.0.0.8"))


@pytest.mark.unit
def test_check_in_limit_is_tighter_than_reads():
    assert int(CHECKIN_LIMIT.split("/")[0]) < int(READ_LIMIT.split("/")[0])
