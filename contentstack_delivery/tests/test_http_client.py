# tests/test_http_client.py
from unittest.mock import MagicMock

import pytest

from contentstack_delivery.http.client import HttpResponse, HttpTransport, default_headers
from contentstack_delivery.http.headers import (
    choose_parse_body,
    detect_charset,
    get_ci,
    merge_headers,
)


@pytest.fixture
def session():
    s = MagicMock()
    s.get.return_value = MagicMock(
        status_code=200,
        url="https://cdn.test/v3/assets?environment=prod",
        headers={"Content-Type": "application/json"},
        content=b'{"assets": []}',
    )
    return s


def test_send_wraps_requests_response(session):
    transport = HttpTransport(timeout=5, session=session)
    resp = transport.send(
        "https://cdn.test/v3/assets",
        [("environment", "prod")],
        {"api_key": "k", "access_token": "t"},
    )

    assert isinstance(resp, HttpResponse)
    assert resp.status == 200
    assert resp.ok
    assert resp.final_url.endswith("environment=prod")
    assert resp.json() == {"assets": []}

    _, kwargs = session.get.call_args
    assert kwargs["params"] == [("environment", "prod")]
    assert kwargs["timeout"] == 5.0
    assert kwargs["headers"]["api_key"] == "k"
    assert kwargs["headers"]["User-Agent"].startswith("contentstack-delivery-python/")
    assert kwargs["headers"]["X-User-Agent"] == kwargs["headers"]["User-Agent"]


def test_adapter_is_mounted_for_both_schemes(session):
    HttpTransport(pool_connections=3, pool_maxsize=7, session=session)
    mounted = [c.args[0] for c in session.mount.call_args_list]
    assert mounted == ["https://", "http://"]
    adapter = session.mount.call_args_list[0].args[1]
    assert adapter._pool_connections == 3
    assert adapter._pool_maxsize == 7


def test_close_is_idempotent(session):
    transport = HttpTransport(session=session)
    transport.close()
    transport.close()
    session.close.assert_called_once()
    assert transport.closed


def test_error_status_is_returned_not_raised(session):
    session.get.return_value = MagicMock(
        status_code=422, url="u", headers={"content-type": "application/json"}, content=b'{"error_code": 141}'
    )
    resp = HttpTransport(session=session).send("u")
    assert resp.status == 422
    assert not resp.ok
    assert resp.json() == {"error_code": 141}


def test_response_json_degrades_to_none():
    html = HttpResponse(status=502, url="u", final_url="u", headers={"Content-Type": "text/html"}, body=b"<h1>Bad</h1>")
    assert html.json() is None
    assert html.text == "<h1>Bad</h1>"

    empty = HttpResponse(status=200, url="u", final_url="u", headers={"Content-Type": "application/json"})
    assert empty.json() is None

    broken = HttpResponse(status=200, url="u", final_url="u", headers={"Content-Type": "application/json"}, body=b"{oops")
    assert broken.json() is None


def test_json_without_content_type_is_sniffed():
    text, parsed = choose_parse_body({}, b' {"a": 1}')
    assert parsed == {"a": 1}
    assert choose_parse_body({}, b"\x89PNG") == (None, None)


def test_detect_charset():
    assert detect_charset("application/json; charset=ISO-8859-1") == "ISO-8859-1"
    assert detect_charset("application/json") == "utf-8"
    assert detect_charset("image/png") is None
    assert detect_charset(None) is None


def test_merge_headers_local_wins_case_insensitively():
    merged = merge_headers({"api_key": "stack", "environment": "prod"}, {"API_KEY": "local", "x": None})
    assert merged == {"API_KEY": "local", "environment": "prod"}
    assert get_ci(merged, "Api_Key") == "local"
    assert get_ci(merged, "missing") is None


def test_default_headers_request_json():
    hdrs = default_headers()
    assert hdrs["Content-Type"] == "application/json"
    assert "User-Agent" in hdrs
