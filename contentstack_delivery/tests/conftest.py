# contentstack_delivery/tests/conftest.py
import json
import threading
from types import SimpleNamespace

import pytest

from contentstack_delivery.http.client import HttpResponse
from contentstack_delivery.services.stack import stack


def json_response(status=200, payload=None, url="https://cdn.test/v3/x"):
    body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return HttpResponse(
        status=status,
        url=url,
        final_url=url,
        headers={"Content-Type": "application/json; charset=utf-8"},
        body=body,
        elapsed_ms=1,
    )


class FakeTransport:
    """Records every send() and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.calls = []
        self._queue = list(responses)
        self._lock = threading.Lock()
        self.closed = False

    def queue(self, *responses):
        with self._lock:
            self._queue.extend(responses)
        return self

    def send(self, url, params=None, headers=None, timeout=None):
        with self._lock:
            self.calls.append(
                SimpleNamespace(url=url, params=list(params or []), headers=dict(headers or {}))
            )
            item = self._queue.pop(0) if self._queue else json_response(200, {})
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def cs_stack(transport):
    s = stack(
        "blt_api_key",
        "cs_delivery_token",
        "production",
        transport=transport,
        sleep=lambda _seconds: None,
        max_workers=2,
    )
    yield s
    s.close()
