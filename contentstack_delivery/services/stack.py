# contentstack_delivery/services/stack.py
from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from contentstack_delivery.config.app_config import StackConfig
from contentstack_delivery.errors import ContractViolation, MissingArgument
from contentstack_delivery.http.client import HttpTransport
from contentstack_delivery.http.headers import get_ci
from contentstack_delivery.http.retry import RetryOptions
from contentstack_delivery.query.request import checked_params
from contentstack_delivery.services.dispatcher import (
    Dispatcher,
    Outcome,
    RequestKind,
    ResultCallback,
)
from contentstack_delivery.services.entities import (
    AssetLibrary,
    AssetRequest,
    ContentType,
    GlobalFieldRequest,
    Taxonomy,
)
from contentstack_delivery.services.sync import PublishType, SyncManager
from contentstack_delivery.util.encode import as_pairs
from contentstack_delivery.util.url import join_url, looks_like_url, url_with_params

logger = logging.getLogger(__name__)


class Stack:
    """
    Entry point for one stack: owns the connection pool, the worker pool and
    the stack-level headers (api_key, access_token, environment, branch).

    Request objects created from a stack copy its headers at creation; use
    set_header() on the request for per-request overrides.
    """

    def __init__(
        self,
        config: StackConfig,
        transport: Optional[HttpTransport] = None,
        retry_options: Optional[RetryOptions] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        config.validate_credentials()
        self.config = config
        self._headers: Dict[str, str] = {
            "api_key": config.api_key,
            "access_token": config.delivery_token,
            "environment": config.environment,
        }
        if config.branch:
            self._headers["branch"] = config.branch

        # shared read-only from here on
        self._retry = (retry_options or config.build_retry_options()).freeze()
        self._transport = transport or HttpTransport.from_config(config)
        self._dispatcher = Dispatcher(
            self._transport, self._retry, max_workers=config.max_workers, sleep=sleep
        )
        self._sync = SyncManager(self)
        logger.debug(
            f"[stack] ready endpoint={self.endpoint} environment={config.environment} "
            f"retry={self._retry!r}"
        )

    # ---- properties ----

    @property
    def api_key(self) -> str:
        return self._headers["api_key"]

    @property
    def environment(self) -> Optional[str]:
        return self._headers.get("environment")

    @property
    def endpoint(self) -> str:
        return join_url(self.config.endpoint, self.config.version)

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def retry_options(self) -> RetryOptions:
        return self._retry

    # ---- headers ----

    def set_header(self, key: str, value: str) -> "Stack":
        if not key or value is None:
            raise MissingArgument("set_header requires a key and a value")
        self._headers[key] = str(value)
        return self

    def remove_header(self, key: str) -> "Stack":
        self._headers.pop(key, None)
        return self

    # ---- plumbing used by request objects ----

    def url_for(self, *segments: str) -> str:
        return join_url(self.endpoint, *segments)

    def submit(
        self,
        kind: RequestKind,
        url: str,
        params: Any,
        headers: Mapping[str, str],
        callback: Optional[ResultCallback] = None,
    ) -> Future:
        pairs = as_pairs(params)
        env = get_ci(headers, "environment")
        if env and not any(k == "environment" for k, _ in pairs):
            pairs.append(("environment", str(env)))
        return self._dispatcher.dispatch(kind, url, pairs, headers, callback)

    # ---- request factories ----

    def content_type(self, uid: str) -> ContentType:
        return ContentType(self, uid)

    def asset(self, uid: str) -> AssetRequest:
        return AssetRequest(self, uid)

    def asset_library(self) -> AssetLibrary:
        return AssetLibrary(self)

    def global_field(self, uid: Optional[str] = None) -> GlobalFieldRequest:
        return GlobalFieldRequest(self, uid)

    def taxonomy(self) -> Taxonomy:
        return Taxonomy(self)

    def get_content_types(
        self,
        params: Optional[Mapping[str, Any]] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Future:
        """All content types; params such as include_count pass through."""
        return self.submit(
            RequestKind.CONTENT_TYPES,
            self.url_for("content_types"),
            checked_params(params),
            self._headers,
            callback,
        )

    def image_transform(self, image_url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Image delivery URL with transformation params (width, height, format...)."""
        if image_url is None:
            raise MissingArgument("image_transform requires an image url")
        if not looks_like_url(image_url):
            raise ContractViolation(f"Not an absolute http(s) url: {image_url!r}")
        return url_with_params(image_url, dict(params or {}))

    # ---- sync ----

    def sync(
        self,
        callback: Optional[ResultCallback] = None,
        content_type_uid: Optional[str] = None,
        locale: Optional[str] = None,
        publish_type: Optional[PublishType] = None,
        start_from: Union[datetime, date, str, None] = None,
    ) -> Future:
        return self._sync.sync_init(
            callback,
            content_type_uid=content_type_uid,
            locale=locale,
            publish_type=publish_type,
            start_from=start_from,
        )

    def sync_token(self, sync_token: str, callback: Optional[ResultCallback] = None) -> Future:
        return self._sync.sync_with_token(sync_token, callback)

    def sync_pagination_token(
        self, pagination_token: str, callback: Optional[ResultCallback] = None
    ) -> Future:
        return self._sync.sync_with_pagination_token(pagination_token, callback)

    def sync_from_date(
        self, start_from: Union[datetime, date, str], callback: Optional[ResultCallback] = None
    ) -> Future:
        return self._sync.sync_from_date(start_from, callback)

    def sync_content_type(
        self, content_type_uid: str, callback: Optional[ResultCallback] = None
    ) -> Future:
        return self._sync.sync_content_type(content_type_uid, callback)

    def sync_locale(self, locale: str, callback: Optional[ResultCallback] = None) -> Future:
        return self._sync.sync_locale(locale, callback)

    def sync_publish_type(
        self, publish_type: PublishType, callback: Optional[ResultCallback] = None
    ) -> Future:
        return self._sync.sync_publish_type(publish_type, callback)

    def sync_all(
        self, start_token: Optional[str] = None, callback: Optional[ResultCallback] = None
    ) -> Outcome:
        return self._sync.sync_all(start_token, callback)

    # ---- lifecycle ----

    def close(self) -> None:
        self._dispatcher.close()
        self._transport.close()

    def __enter__(self) -> "Stack":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Stack(api_key={self.api_key!r}, environment={self.environment!r}, endpoint={self.endpoint!r})"


def stack(
    api_key: str,
    delivery_token: str,
    environment: str,
    **overrides: Any,
) -> Stack:
    """
    stack("blt...", "cs...", "production", region="eu", retry_limit=5)

    Keyword overrides are StackConfig fields; `transport`, `retry_options` and
    `sleep` are passed to the Stack itself.
    """
    stack_kwargs = {
        k: overrides.pop(k) for k in ("transport", "retry_options", "sleep") if k in overrides
    }
    config = StackConfig(
        api_key=api_key,
        delivery_token=delivery_token,
        environment=environment,
        **overrides,
    )
    return Stack(config, **stack_kwargs)
