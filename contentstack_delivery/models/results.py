# contentstack_delivery/models/results.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from contentstack_delivery.errors import DEFAULT_ERROR_MESSAGE


# ---- tolerant field readers (payloads are never trusted) ----


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _opt_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


# ---- single records ----


class Record(BaseModel):
    """
    A delivered object: the raw payload in `data` plus typed accessors.
    Fields the service adds later are reachable through get() without a model
    change.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: Dict[str, Any] = Field(default_factory=dict)
    uid: Optional[str] = None
    title: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    locale: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    @classmethod
    def _common(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "data": dict(payload),
            "uid": _opt_str(payload.get("uid")),
            "title": _opt_str(payload.get("title")),
            "tags": _str_list(payload.get("tags")),
            "locale": _opt_str(payload.get("locale")),
            "created_at": parse_datetime(payload.get("created_at")),
            "updated_at": parse_datetime(payload.get("updated_at")),
            "created_by": _opt_str(payload.get("created_by")),
            "updated_by": _opt_str(payload.get("updated_by")),
        }

    @classmethod
    def from_payload(cls, payload: Any):
        if not isinstance(payload, dict):
            return cls()
        return cls(**cls._common(payload))

    # ---- accessors ----

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        v = self.data.get(key)
        return v if isinstance(v, str) else default

    def get_number(self, key: str, default: Optional[float] = None):
        v = self.data.get(key)
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return default
        return v

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        v = self.data.get(key)
        return v if isinstance(v, bool) else default

    def get_list(self, key: str) -> List[Any]:
        v = self.data.get(key)
        return list(v) if isinstance(v, list) else []

    def get_dict(self, key: str) -> Dict[str, Any]:
        v = self.data.get(key)
        return dict(v) if isinstance(v, dict) else {}

    def get_date(self, key: str) -> Optional[datetime]:
        return parse_datetime(self.data.get(key))

    def __contains__(self, key: object) -> bool:
        return key in self.data


class Entry(Record):
    url: Optional[str] = None
    content_type_uid: Optional[str] = None
    version: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Entry":
        if not isinstance(payload, dict):
            return cls()
        return cls(
            **cls._common(payload),
            url=_opt_str(payload.get("url")),
            content_type_uid=_opt_str(payload.get("_content_type_uid")),
            version=_opt_int(payload.get("_version")),
        )

    def get_reference(self, key: str) -> List["Entry"]:
        """Resolved references under `key` (populated by include_reference)."""
        return [Entry.from_payload(v) for v in _dict_list(self.data.get(key))]


class Asset(Record):
    filename: Optional[str] = None
    file_size: Optional[int] = None
    content_type: Optional[str] = None
    url: Optional[str] = None
    dimension: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Asset":
        if not isinstance(payload, dict):
            return cls()
        size = payload.get("file_size")
        if isinstance(size, str) and size.isdigit():
            size = int(size)
        return cls(
            **cls._common(payload),
            filename=_opt_str(payload.get("filename")),
            file_size=_opt_int(size),
            content_type=_opt_str(payload.get("content_type")),
            url=_opt_str(payload.get("url")),
            dimension=_opt_dict(payload.get("dimension")),
        )


class _SchemaRecord(Record):
    description: Optional[str] = None
    schema_: List[Dict[str, Any]] = Field(default_factory=list, alias="schema")

    @classmethod
    def from_payload(cls, payload: Any):
        if not isinstance(payload, dict):
            return cls()
        return cls(
            **cls._common(payload),
            description=_opt_str(payload.get("description")),
            schema_=_dict_list(payload.get("schema")),
        )


class ContentTypeModel(_SchemaRecord):
    pass


class GlobalFieldModel(_SchemaRecord):
    pass


# ---- collections ----


class QueryResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entries: List[Entry] = Field(default_factory=list)
    count: Optional[int] = None
    schema_: Optional[List[Dict[str, Any]]] = Field(default=None, alias="schema")
    content_type: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "QueryResult":
        if not isinstance(payload, dict):
            return cls()
        schema = payload.get("schema")
        return cls(
            entries=[Entry.from_payload(e) for e in _dict_list(payload.get("entries"))],
            count=_opt_int(payload.get("count")),
            schema_=_dict_list(schema) if isinstance(schema, list) else None,
            content_type=_opt_dict(payload.get("content_type")),
        )

    def __len__(self) -> int:
        return len(self.entries)


class AssetsResult(BaseModel):
    assets: List[Asset] = Field(default_factory=list)
    count: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AssetsResult":
        if not isinstance(payload, dict):
            return cls()
        return cls(
            assets=[Asset.from_payload(a) for a in _dict_list(payload.get("assets"))],
            count=_opt_int(payload.get("count")),
        )

    def __len__(self) -> int:
        return len(self.assets)


class ContentTypesResult(BaseModel):
    content_types: List[ContentTypeModel] = Field(default_factory=list)
    count: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ContentTypesResult":
        if not isinstance(payload, dict):
            return cls()
        return cls(
            content_types=[
                ContentTypeModel.from_payload(c)
                for c in _dict_list(payload.get("content_types"))
            ],
            count=_opt_int(payload.get("count")),
        )


class GlobalFieldsResult(BaseModel):
    global_fields: List[GlobalFieldModel] = Field(default_factory=list)
    count: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "GlobalFieldsResult":
        if not isinstance(payload, dict):
            return cls()
        return cls(
            global_fields=[
                GlobalFieldModel.from_payload(g)
                for g in _dict_list(payload.get("global_fields"))
            ],
            count=_opt_int(payload.get("count")),
        )


# ---- sync ----


class SyncCursor(BaseModel):
    """
    Where a sync stands. A pagination token means the current session has more
    pages; a sync token means the session is complete and can be resumed later
    for deltas. The service hands out one or the other, never both.
    """

    sync_token: Optional[str] = None
    pagination_token: Optional[str] = None
    item_count: int = 0

    @property
    def has_more_pages(self) -> bool:
        return bool(self.pagination_token)

    @property
    def is_resumable(self) -> bool:
        return bool(self.sync_token)

    def next_params(self) -> Dict[str, str]:
        if self.pagination_token:
            return {"pagination_token": self.pagination_token}
        if self.sync_token:
            return {"sync_token": self.sync_token}
        return {}


class SyncResult(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    cursor: SyncCursor = Field(default_factory=SyncCursor)
    skip: int = 0
    limit: int = 0
    total_count: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "SyncResult":
        if not isinstance(payload, dict):
            return cls()
        items = _dict_list(payload.get("items"))
        return cls(
            items=items,
            cursor=SyncCursor(
                sync_token=_opt_str(payload.get("sync_token")) or None,
                pagination_token=_opt_str(payload.get("pagination_token")) or None,
                item_count=len(items),
            ),
            skip=_opt_int(payload.get("skip")) or 0,
            limit=_opt_int(payload.get("limit")) or 0,
            total_count=_opt_int(payload.get("total_count")) or 0,
        )

    @property
    def sync_token(self) -> Optional[str]:
        return self.cursor.sync_token

    @property
    def pagination_token(self) -> Optional[str]:
        return self.cursor.pagination_token


# ---- errors ----


class CSError(BaseModel):
    """Service or transport failure, delivered through the callback."""

    error_message: str = DEFAULT_ERROR_MESSAGE
    error_code: int = 0
    errors: Any = None
    status_code: int = 0

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.error_message}"
