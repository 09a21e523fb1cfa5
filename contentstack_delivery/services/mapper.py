# contentstack_delivery/services/mapper.py
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from contentstack_delivery.errors import DEFAULT_ERROR_MESSAGE
from contentstack_delivery.models.results import (
    Asset,
    AssetsResult,
    ContentTypeModel,
    ContentTypesResult,
    CSError,
    Entry,
    GlobalFieldModel,
    GlobalFieldsResult,
    QueryResult,
    SyncResult,
)


class RequestKind(str, Enum):
    ENTRY = "ENTRY"
    QUERY = "QUERY"
    SINGLE_QUERY = "SINGLE_QUERY"
    ASSET = "ASSET"
    ASSET_LIBRARY = "ASSET_LIBRARY"
    SYNC = "SYNC"
    CONTENT_TYPE = "CONTENT_TYPE"
    CONTENT_TYPES = "CONTENT_TYPES"
    GLOBAL_FIELD = "GLOBAL_FIELD"
    GLOBAL_FIELDS = "GLOBAL_FIELDS"


def _single_entry(payload: dict) -> Entry:
    entries = payload.get("entries")
    if isinstance(entries, list):
        for e in entries:
            if isinstance(e, dict):
                return Entry.from_payload(e)
    # zero matches still completes successfully, with an empty entry
    return Entry()


def map_response(kind: RequestKind, payload: Any):
    """
    Turns a decoded 2xx body into the result object for `kind`. Missing or
    mistyped keys degrade to empty models instead of raising.
    """
    body = payload if isinstance(payload, dict) else {}
    kind = RequestKind(kind)

    if kind is RequestKind.ENTRY:
        return Entry.from_payload(body.get("entry"))
    if kind is RequestKind.QUERY:
        return QueryResult.from_payload(body)
    if kind is RequestKind.SINGLE_QUERY:
        return _single_entry(body)
    if kind is RequestKind.ASSET:
        return Asset.from_payload(body.get("asset"))
    if kind is RequestKind.ASSET_LIBRARY:
        return AssetsResult.from_payload(body)
    if kind is RequestKind.SYNC:
        return SyncResult.from_payload(body)
    if kind is RequestKind.CONTENT_TYPE:
        return ContentTypeModel.from_payload(body.get("content_type"))
    if kind is RequestKind.CONTENT_TYPES:
        return ContentTypesResult.from_payload(body)
    if kind is RequestKind.GLOBAL_FIELD:
        return GlobalFieldModel.from_payload(body.get("global_field"))
    return GlobalFieldsResult.from_payload(body)


def map_error(payload: Any, status_code: int) -> CSError:
    """
    Non-2xx body -> CSError. The message falls back to the default message and
    the code falls back to the HTTP status when the body does not carry them.
    """
    body = payload if isinstance(payload, dict) else {}

    message = body.get("error_message")
    if not isinstance(message, str) or not message.strip():
        message = DEFAULT_ERROR_MESSAGE

    code = body.get("error_code")
    if isinstance(code, bool) or not isinstance(code, int):
        code = status_code

    return CSError(
        error_message=message,
        error_code=code,
        errors=body.get("errors"),
        status_code=status_code,
    )


def transport_error(exc: BaseException, status_code: int = 0) -> CSError:
    """A request that never produced a usable response."""
    detail: Optional[str] = str(exc) or exc.__class__.__name__
    return CSError(
        error_message=detail or DEFAULT_ERROR_MESSAGE,
        error_code=status_code,
        errors={"exception": exc.__class__.__name__},
        status_code=status_code,
    )
