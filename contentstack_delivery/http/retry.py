# contentstack_delivery/http/retry.py
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Tuple

import requests

from contentstack_delivery.errors import (
    ContractViolation,
    InvalidRetryConfiguration,
    MissingArgument,
)

if TYPE_CHECKING:
    from contentstack_delivery.http.client import HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_RETRY_LIMIT = 3
DEFAULT_RETRY_DELAY_MS = 1000
MAX_RETRY_LIMIT = 10
MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 599

DEFAULT_RETRYABLE_STATUS_CODES: Tuple[int, ...] = (
    408,  # request timeout
    429,  # rate limited
    502,
    503,
    504,
)

# status code handed to a custom backoff when no response came back
TRANSPORT_FAILURE = -1

# a reset while the body is streaming surfaces as ChunkedEncodingError
RETRYABLE_EXCEPTIONS = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)

CustomBackoff = Callable[[int, int, Optional[BaseException]], float]


class BackoffStrategy(str, Enum):
    FIXED = "FIXED"
    LINEAR = "LINEAR"
    EXPONENTIAL = "EXPONENTIAL"
    CUSTOM = "CUSTOM"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RetryOptions:
    """
    How a request is retried: how many times, how long to wait, and for which
    responses. Setters validate first, so a rejected value leaves the previous
    configuration in place. Call freeze() once built to share it read-only.
    """

    def __init__(self) -> None:
        self._retry_limit = DEFAULT_RETRY_LIMIT
        self._retry_delay_ms = DEFAULT_RETRY_DELAY_MS
        self._strategy = BackoffStrategy.EXPONENTIAL
        self._status_codes: Tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES
        self._enabled = True
        self._custom: Optional[CustomBackoff] = None
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ContractViolation(
                "RetryOptions are frozen once handed to a stack; build a new instance"
            )

    # ---- setters ----

    def set_retry_limit(self, limit: int) -> "RetryOptions":
        self._check_mutable()
        if not _is_int(limit):
            raise InvalidRetryConfiguration(
                f"Retry limit must be an integer. Provided: {limit!r}"
            )
        if limit < 0:
            raise InvalidRetryConfiguration(
                f"Retry limit cannot be negative. Provided: {limit}"
            )
        if limit > MAX_RETRY_LIMIT:
            raise InvalidRetryConfiguration(
                f"Retry limit cannot exceed {MAX_RETRY_LIMIT}. Provided: {limit}"
            )
        self._retry_limit = limit
        return self

    def set_retry_delay(self, delay_ms: float) -> "RetryOptions":
        self._check_mutable()
        if isinstance(delay_ms, bool) or not isinstance(delay_ms, (int, float)):
            raise InvalidRetryConfiguration(
                f"Retry delay must be a number of milliseconds. Provided: {delay_ms!r}"
            )
        if delay_ms < 0:
            raise InvalidRetryConfiguration(
                f"Retry delay cannot be negative. Provided: {delay_ms}"
            )
        self._retry_delay_ms = delay_ms
        return self

    def set_backoff_strategy(self, strategy: BackoffStrategy) -> "RetryOptions":
        self._check_mutable()
        if strategy is None:
            raise MissingArgument("Backoff strategy cannot be None")
        try:
            strategy = BackoffStrategy(strategy)
        except ValueError:
            raise InvalidRetryConfiguration(
                f"Unknown backoff strategy: {strategy!r}"
            ) from None
        self._strategy = strategy
        return self

    def set_retryable_status_codes(self, *codes: int) -> "RetryOptions":
        self._check_mutable()
        # accept set_retryable_status_codes([429, 503]) as well as varargs
        if len(codes) == 1 and isinstance(codes[0], (list, tuple, set, frozenset)):
            codes = tuple(codes[0])
        for code in codes:
            if not _is_int(code) or not MIN_STATUS_CODE <= code <= MAX_STATUS_CODE:
                raise InvalidRetryConfiguration(
                    f"Invalid HTTP status code: {code}. "
                    f"Must be between {MIN_STATUS_CODE} and {MAX_STATUS_CODE}."
                )
        self._status_codes = tuple(codes)
        return self

    def set_retry_enabled(self, enabled: bool) -> "RetryOptions":
        self._check_mutable()
        self._enabled = bool(enabled)
        return self

    def set_custom_backoff(self, fn: CustomBackoff) -> "RetryOptions":
        self._check_mutable()
        if fn is None:
            raise MissingArgument("Custom backoff strategy cannot be None")
        if not callable(fn):
            raise InvalidRetryConfiguration(
                f"Custom backoff strategy must be callable. Provided: {fn!r}"
            )
        self._custom = fn
        self._strategy = BackoffStrategy.CUSTOM
        return self

    def freeze(self) -> "RetryOptions":
        self._frozen = True
        return self

    # ---- getters ----

    def get_retry_limit(self) -> int:
        return self._retry_limit

    def get_retry_delay(self) -> float:
        return self._retry_delay_ms

    def get_backoff_strategy(self) -> BackoffStrategy:
        return self._strategy

    def get_retryable_status_codes(self) -> list[int]:
        return list(self._status_codes)

    def is_retry_enabled(self) -> bool:
        return self._enabled

    def get_custom_backoff(self) -> Optional[CustomBackoff]:
        return self._custom

    def has_custom_backoff(self) -> bool:
        return self._custom is not None

    def is_frozen(self) -> bool:
        return self._frozen

    # ---- decisions ----

    def max_attempts(self) -> int:
        return self._retry_limit + 1 if self._enabled else 1

    def should_retry_status(self, status_code: int) -> bool:
        return status_code in self._status_codes

    @staticmethod
    def is_retryable_error(exc: BaseException) -> bool:
        return isinstance(exc, RETRYABLE_EXCEPTIONS)

    def compute_delay(
        self,
        attempt: int,
        status_code: int = TRANSPORT_FAILURE,
        error: Optional[BaseException] = None,
    ) -> float:
        """
        attempt: 0-based index of the attempt that just failed.
        Returns the wait in milliseconds before the next attempt.

        CUSTOM without a function (set_backoff_strategy(CUSTOM) alone) waits the
        fixed retry delay; set_custom_backoff() is what supplies the function.
        """
        if self._strategy is BackoffStrategy.CUSTOM and self._custom is not None:
            return max(0.0, float(self._custom(attempt, status_code, error)))
        base = self._retry_delay_ms
        if self._strategy is BackoffStrategy.LINEAR:
            return base * (attempt + 1)
        if self._strategy is BackoffStrategy.EXPONENTIAL:
            return base * (2**attempt)
        return base

    def __repr__(self) -> str:
        return (
            f"RetryOptions(enabled={self._enabled}, limit={self._retry_limit}, "
            f"delay={self._retry_delay_ms}ms, strategy={self._strategy.value}, "
            f"retryable_codes={list(self._status_codes)})"
        )


def _log_retry(reason: str, attempt: int, delay_ms: float, **kwargs) -> None:
    logger.warning(
        f"[retry] reason='{reason}' attempt={attempt} delay_ms={delay_ms:.0f} details={kwargs}"
    )


def execute_with_retry(
    send: Callable[[], "HttpResponse"],
    options: RetryOptions,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Runs send() under the retry policy and returns the final response.

    A retryable status on the last attempt is returned as-is so the caller can
    map it into an error. A retryable transport error on the last attempt is
    re-raised; anything else propagates immediately.
    """
    max_attempts = options.max_attempts()
    attempt = 0
    while True:
        try:
            response = send()
        except Exception as exc:
            if not options.is_retryable_error(exc) or attempt + 1 >= max_attempts:
                raise
            delay = options.compute_delay(attempt, TRANSPORT_FAILURE, exc)
            _log_retry("transport_error", attempt + 1, delay, error=repr(exc))
            sleep(delay / 1000.0)
            attempt += 1
            continue

        if options.should_retry_status(response.status) and attempt + 1 < max_attempts:
            delay = options.compute_delay(attempt, response.status, None)
            _log_retry("status", attempt + 1, delay, status=response.status, url=response.url)
            sleep(delay / 1000.0)
            attempt += 1
            continue
        return response
