# contentstack_delivery/services/dispatcher.py
from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import requests

from contentstack_delivery.errors import ContractViolation
from contentstack_delivery.http.client import HttpTransport
from contentstack_delivery.http.retry import RetryOptions, execute_with_retry
from contentstack_delivery.logging_utils import (
    correlation_scope,
    current_correlation_id,
    log_requests_enabled,
    new_correlation_id,
)
from contentstack_delivery.models.results import CSError
from contentstack_delivery.services.mapper import (
    RequestKind,
    map_error,
    map_response,
    transport_error,
)
from contentstack_delivery.util.encode import as_pairs

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

ResultCallback = Callable[[Any, Optional[CSError]], Any]
Params = Union[Mapping[str, Any], Sequence[Tuple[str, str]], None]

__all__ = ["Dispatcher", "Outcome", "RequestKind", "deliver"]


class Outcome(NamedTuple):
    result: Any = None
    error: Optional[CSError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def deliver(callback: Optional[ResultCallback], outcome: Outcome) -> None:
    """Hands the outcome to the caller once. A None callback is a no-op."""
    if callback is None:
        return
    try:
        callback(outcome.result, outcome.error)
    except Exception:
        logger.exception("[dispatch] result callback raised; outcome is unchanged")


class Dispatcher:
    """
    Runs requests on a worker pool. dispatch() returns a Future right away;
    the worker applies the retry policy, maps the final response and delivers
    exactly one outcome to the callback and to the future.
    """

    def __init__(
        self,
        transport: HttpTransport,
        retry_options: RetryOptions,
        max_workers: int = DEFAULT_MAX_WORKERS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self._retry = retry_options
        self._sleep = sleep
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cs-delivery"
        )
        self._closed = False

    @property
    def retry_options(self) -> RetryOptions:
        return self._retry

    def dispatch(
        self,
        kind: RequestKind,
        url: str,
        params: Params = None,
        headers: Optional[Mapping[str, str]] = None,
        callback: Optional[ResultCallback] = None,
    ) -> "Future[Outcome]":
        if self._closed:
            raise ContractViolation("this stack has been closed; create a new one")
        kind = RequestKind(kind)
        pairs = as_pairs(params)
        hdrs = dict(headers or {})
        # keep the caller's id when one is bound so a drain logs as one unit
        cid = current_correlation_id()
        if cid == "-":
            cid = new_correlation_id()
        try:
            return self._pool.submit(self._run, kind, url, pairs, hdrs, callback, cid)
        except RuntimeError as exc:
            # close() on another thread won the race with the check above
            raise ContractViolation("this stack has been closed; create a new one") from exc

    def _run(
        self,
        kind: RequestKind,
        url: str,
        pairs: List[Tuple[str, str]],
        headers: Mapping[str, str],
        callback: Optional[ResultCallback],
        cid: str,
    ) -> Outcome:
        with correlation_scope(cid):
            start = time.perf_counter()
            if log_requests_enabled():
                logger.info(f">> {kind.value} {url}")
            outcome = self._execute(kind, url, pairs, headers)
            dur_ms = int((time.perf_counter() - start) * 1000)
            if outcome.ok:
                logger.debug(f"<< {kind.value} {url} ok {dur_ms}ms")
            else:
                logger.info(
                    f"<< {kind.value} {url} error code={outcome.error.error_code} "
                    f"status={outcome.error.status_code} {dur_ms}ms"
                )
            deliver(callback, outcome)
            return outcome

    def _execute(
        self,
        kind: RequestKind,
        url: str,
        pairs: List[Tuple[str, str]],
        headers: Mapping[str, str],
    ) -> Outcome:
        try:
            response = execute_with_retry(
                lambda: self._transport.send(url, pairs, headers),
                self._retry,
                sleep=self._sleep,
            )
        except requests.RequestException as exc:
            logger.warning(f"[dispatch] transport failure for {url}: {exc!r}")
            return Outcome(None, transport_error(exc))
        except Exception as exc:
            logger.exception(f"[dispatch] unexpected failure sending {url}")
            return Outcome(None, transport_error(exc))

        payload = response.json()
        if not response.ok:
            return Outcome(None, map_error(payload, response.status))
        try:
            return Outcome(map_response(kind, payload), None)
        except Exception as exc:
            logger.exception(f"[dispatch] could not map {kind.value} response")
            return Outcome(None, transport_error(exc, response.status))

    def close(self, wait: bool = True) -> None:
        self._closed = True
        self._pool.shutdown(wait=wait)
