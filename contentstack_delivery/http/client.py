# contentstack_delivery/http/client.py
from __future__ import annotations

import logging
import platform
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter

from contentstack_delivery.http.headers import choose_parse_body, merge_headers
from contentstack_delivery.logging_utils import log_requests_enabled

logger = logging.getLogger(__name__)

SDK_NAME = "contentstack-delivery-python"
SDK_VERSION = "1.0.0"

DEFAULT_TIMEOUT = 30.0
DEFAULT_POOL_CONNECTIONS = 10
DEFAULT_POOL_MAXSIZE = 10


def default_user_agent() -> str:
    return (
        f"{SDK_NAME}/{SDK_VERSION} python/{platform.python_version()} "
        f"requests/{requests.__version__}"
    )


def default_headers() -> Dict[str, str]:
    ua = default_user_agent()
    return {
        "User-Agent": ua,
        "X-User-Agent": ua,
        "Content-Type": "application/json",
        "Accept-Encoding": "gzip, deflate",
    }


# ---- response model ----


@dataclass
class HttpResponse:
    status: int
    url: str
    final_url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> Optional[str]:
        text, _ = choose_parse_body(self.headers, self.body)
        return text

    def json(self) -> Any:
        """Parsed JSON body, or None when the body is empty or not JSON."""
        _, parsed = choose_parse_body(self.headers, self.body)
        return parsed


# ---- transport ----


class HttpTransport:
    """
    Pooled GET transport over one requests.Session.

    Error statuses come back as an HttpResponse rather than an exception so the
    retry loop can inspect them; only transport failures (timeouts, refused
    connections, TLS errors) raise.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        pool_connections: int = DEFAULT_POOL_CONNECTIONS,
        pool_maxsize: int = DEFAULT_POOL_MAXSIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = float(timeout)
        self._session = session or requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_connections, pool_maxsize=pool_maxsize)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._closed = False

    @classmethod
    def from_config(cls, config: Any) -> "HttpTransport":
        return cls(
            timeout=config.timeout,
            pool_connections=config.pool_connections,
            pool_maxsize=config.pool_maxsize,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def send(
        self,
        url: str,
        params: Optional[Sequence[Tuple[str, str]]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        hdrs = merge_headers(default_headers(), headers)
        t0 = time.time()
        resp = self._session.get(
            url,
            params=list(params or []),
            headers=hdrs,
            timeout=self.timeout if timeout is None else float(timeout),
        )
        elapsed_ms = int((time.time() - t0) * 1000)
        if log_requests_enabled():
            logger.info(
                f"[http] GET {resp.url} -> {resp.status_code} ({elapsed_ms} ms)"
            )
        return HttpResponse(
            status=resp.status_code,
            url=url,
            final_url=resp.url or url,
            headers=dict(resp.headers.items()),
            body=resp.content or b"",
            elapsed_ms=elapsed_ms,
        )

    def close(self) -> None:
        if not self._closed:
            self._session.close()
            self._closed = True
