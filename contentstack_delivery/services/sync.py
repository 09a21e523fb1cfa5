# contentstack_delivery/services/sync.py
from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from contentstack_delivery.errors import ContractViolation, MissingArgument
from contentstack_delivery.logging_utils import correlation_scope
from contentstack_delivery.models.results import (
    CSError,
    SyncCursor,
    SyncResult,
    parse_datetime,
)
from contentstack_delivery.services.dispatcher import (
    Outcome,
    RequestKind,
    ResultCallback,
    deliver,
)

if TYPE_CHECKING:
    from contentstack_delivery.services.stack import Stack

logger = logging.getLogger(__name__)

SYNC_PATH = ("stacks", "sync")


class PublishType(str, Enum):
    ENTRY_PUBLISHED = "entry_published"
    ENTRY_UNPUBLISHED = "entry_unpublished"
    ENTRY_DELETED = "entry_deleted"
    ASSET_PUBLISHED = "asset_published"
    ASSET_UNPUBLISHED = "asset_unpublished"
    ASSET_DELETED = "asset_deleted"
    CONTENT_TYPE_DELETED = "content_type_deleted"


def format_sync_date(value: Union[datetime, date, str]) -> str:
    """
    UTC timestamp the sync API accepts for start_from: YYYY-MM-DDTHH:MM:SS.mmmZ.
    Naive datetimes are taken as UTC; plain dates start at midnight UTC.
    """
    if value is None:
        raise MissingArgument("sync_from_date requires a date")
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise ContractViolation(f"Unrecognised date {value!r}; use ISO 8601")
        value = parsed
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        raise ContractViolation(f"Expected a datetime or date, got {type(value).__name__}")
    dt = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _require_token(token: Any, name: str) -> str:
    if token is None:
        raise MissingArgument(f"{name} cannot be None")
    if not isinstance(token, str):
        raise ContractViolation(f"{name} must be a string. Provided: {token!r}")
    return token


class SyncManager:
    """
    Sync session protocol. Every call builds its parameters from scratch, so a
    token sent by one call is never carried into the next.

    A page carrying pagination_token means more pages follow in this session;
    a page carrying sync_token ends the session and can later be used to fetch
    only what changed since.
    """

    def __init__(self, stack: "Stack") -> None:
        self._stack = stack

    def _send(self, params: Dict[str, Any], callback: Optional[ResultCallback]) -> Future:
        return self._stack.submit(
            RequestKind.SYNC,
            self._stack.url_for(*SYNC_PATH),
            params,
            self._stack.headers,
            callback,
        )

    # ---- session start ----

    def sync_init(
        self,
        callback: Optional[ResultCallback] = None,
        content_type_uid: Optional[str] = None,
        locale: Optional[str] = None,
        publish_type: Optional[PublishType] = None,
        start_from: Union[datetime, date, str, None] = None,
    ) -> Future:
        params: Dict[str, Any] = {"init": True}
        if content_type_uid:
            params["content_type_uid"] = content_type_uid
        if start_from is not None:
            params["start_from"] = format_sync_date(start_from)
        if locale:
            params["locale"] = locale
        if publish_type is not None:
            params["type"] = PublishType(publish_type).value
        return self._send(params, callback)

    def sync_from_date(
        self, start_from: Union[datetime, date, str], callback: Optional[ResultCallback] = None
    ) -> Future:
        # the service rejects start_from without init
        return self._send({"init": True, "start_from": format_sync_date(start_from)}, callback)

    def sync_content_type(
        self, content_type_uid: str, callback: Optional[ResultCallback] = None
    ) -> Future:
        if not content_type_uid:
            raise MissingArgument("sync_content_type requires a content type uid")
        return self.sync_init(callback, content_type_uid=content_type_uid)

    def sync_locale(self, locale: str, callback: Optional[ResultCallback] = None) -> Future:
        if not locale:
            raise MissingArgument("sync_locale requires a locale code")
        return self.sync_init(callback, locale=locale)

    def sync_publish_type(
        self, publish_type: PublishType, callback: Optional[ResultCallback] = None
    ) -> Future:
        if publish_type is None:
            raise MissingArgument("sync_publish_type requires a publish type")
        return self.sync_init(callback, publish_type=publish_type)

    # ---- continuation ----

    def sync_with_token(self, sync_token: str, callback: Optional[ResultCallback] = None) -> Future:
        token = _require_token(sync_token, "Sync token")
        return self._send({"sync_token": token}, callback)

    def sync_with_pagination_token(
        self, pagination_token: str, callback: Optional[ResultCallback] = None
    ) -> Future:
        token = _require_token(pagination_token, "Pagination token")
        return self._send({"pagination_token": token}, callback)

    def sync_all(
        self,
        start_token: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Outcome:
        """
        Runs a whole sync session and blocks until it ends: an initial sync, or
        a delta sync from start_token, followed by every pagination page in
        order. Returns one SyncResult holding all items and the final sync
        token. The first failing page stops the drain and its error is
        returned instead.

        Do not call this from inside a result callback: it waits on the same
        worker pool.
        """
        with correlation_scope():
            future = (
                self.sync_with_token(start_token)
                if start_token is not None
                else self.sync_init()
            )
            items: List[Dict[str, Any]] = []
            total = 0
            pages = 0
            last_token: Optional[str] = None
            while True:
                outcome: Outcome = future.result()
                if not outcome.ok:
                    logger.warning(
                        f"[sync] drain stopped after {pages} page(s): {outcome.error}"
                    )
                    deliver(callback, outcome)
                    return outcome
                page: SyncResult = outcome.result
                pages += 1
                items.extend(page.items)
                total = max(total, page.total_count)
                cursor = page.cursor
                if not cursor.has_more_pages:
                    break
                if cursor.pagination_token == last_token:
                    stalled = Outcome(
                        None,
                        CSError(
                            error_message="Sync pagination token did not advance",
                            errors={"pagination_token": last_token},
                        ),
                    )
                    deliver(callback, stalled)
                    return stalled
                last_token = cursor.pagination_token
                future = self.sync_with_pagination_token(last_token)

            merged = SyncResult(
                items=items,
                cursor=SyncCursor(sync_token=cursor.sync_token, item_count=len(items)),
                skip=page.skip,
                limit=page.limit,
                total_count=total,
            )
            logger.info(f"[sync] drained {pages} page(s), {len(items)} item(s)")
            done = Outcome(merged, None)
            deliver(callback, done)
            return done
