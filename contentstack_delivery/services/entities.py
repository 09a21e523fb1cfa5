# contentstack_delivery/services/entities.py
from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional

from contentstack_delivery.errors import (
    ASSET_UID_REQUIRED,
    CONTENT_TYPE_UID_REQUIRED,
    ENTRY_UID_REQUIRED,
    GLOBAL_FIELD_UID_REQUIRED,
    MissingArgument,
)
from contentstack_delivery.query.filters import FilterTree, validate_field_path
from contentstack_delivery.query.request import (
    ASCENDING,
    DESCENDING,
    Query,
    RequestOptions,
    WireParameters,
    checked_params,
    validate_param_key,
)
from contentstack_delivery.services.dispatcher import RequestKind, ResultCallback

if TYPE_CHECKING:
    from contentstack_delivery.services.stack import Stack


class _HeaderCopy:
    """
    Request-level headers, copied from the stack when the request object is
    created. Later stack header changes do not reach existing requests.
    """

    _headers: Dict[str, str]

    def set_header(self, key: str, value: str):
        if not key or value is None:
            raise MissingArgument("set_header requires a key and a value")
        self._headers[key] = str(value)
        return self

    def remove_header(self, key: str):
        self._headers.pop(key, None)
        return self

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)


class ContentType(_HeaderCopy):
    def __init__(self, stack: "Stack", uid: str) -> None:
        if not uid:
            raise MissingArgument(CONTENT_TYPE_UID_REQUIRED)
        self._stack = stack
        self.uid = uid
        self._headers = stack.headers

    @property
    def stack(self) -> "Stack":
        return self._stack

    def entry(self, uid: str) -> "EntryRequest":
        return EntryRequest(self, uid)

    def query(self) -> Query:
        return Query(self.uid, owner=self)

    def fetch(
        self,
        params: Optional[Mapping[str, Any]] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Future:
        """Content type schema; params such as include_global_field_schema pass through."""
        return self._stack.submit(
            RequestKind.CONTENT_TYPE,
            self._stack.url_for("content_types", self.uid),
            checked_params(params),
            self._headers,
            callback,
        )

    def run_query(
        self,
        wire: WireParameters,
        callback: Optional[ResultCallback],
        single: bool = False,
    ) -> Future:
        kind = RequestKind.SINGLE_QUERY if single else RequestKind.QUERY
        return self._stack.submit(
            kind,
            self._stack.url_for("content_types", self.uid, "entries"),
            wire,
            self._headers,
            callback,
        )


class EntryRequest(_HeaderCopy, RequestOptions):
    def __init__(self, content_type: ContentType, uid: str) -> None:
        super().__init__()
        if not uid:
            raise MissingArgument(ENTRY_UID_REQUIRED)
        self._content_type = content_type
        self.uid = uid
        self._headers = content_type.headers

    @property
    def content_type_uid(self) -> str:
        return self._content_type.uid

    def fetch(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(Entry | None, CSError | None)"""
        stack = self._content_type.stack
        return stack.submit(
            RequestKind.ENTRY,
            stack.url_for("content_types", self._content_type.uid, "entries", self.uid),
            self.compile(),
            self._headers,
            callback,
        )


class AssetRequest(_HeaderCopy, RequestOptions):
    def __init__(self, stack: "Stack", uid: str) -> None:
        super().__init__()
        if not uid:
            raise MissingArgument(ASSET_UID_REQUIRED)
        self._stack = stack
        self.uid = uid
        self._headers = stack.headers

    def include_dimension(self) -> "AssetRequest":
        self._flags["include_dimension"] = True
        return self

    def fetch(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(Asset | None, CSError | None)"""
        return self._stack.submit(
            RequestKind.ASSET,
            self._stack.url_for("assets", self.uid),
            self.compile(),
            self._headers,
            callback,
        )


class AssetLibrary(_HeaderCopy, RequestOptions):
    def __init__(self, stack: "Stack") -> None:
        super().__init__()
        self._stack = stack
        self._headers = stack.headers
        self._filters = FilterTree()
        self._sort: Optional[tuple] = None

    def sort(self, field: str, ascending: bool = True) -> "AssetLibrary":
        self._sort = (validate_field_path(field), ASCENDING if ascending else DESCENDING)
        return self

    def where(self, path: str, value: Any) -> "AssetLibrary":
        self._filters.where(path, value)
        return self

    def include_count(self) -> "AssetLibrary":
        self._flags["include_count"] = True
        return self

    def include_relative_url(self) -> "AssetLibrary":
        self._flags["relative_urls"] = True
        return self

    def include_dimension(self) -> "AssetLibrary":
        self._flags["include_dimension"] = True
        return self

    def compile(self) -> WireParameters:
        out: Dict[str, Any] = {}
        if not self._filters.is_empty():
            out["query"] = self._filters.to_dict()
        if self._sort is not None:
            field, direction = self._sort
            out["sort"] = {field: direction}
        self._compile_common(out)
        return WireParameters(out)

    def fetch_all(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(AssetsResult | None, CSError | None)"""
        return self._stack.submit(
            RequestKind.ASSET_LIBRARY,
            self._stack.url_for("assets"),
            self.compile(),
            self._headers,
            callback,
        )


class GlobalFieldRequest(_HeaderCopy):
    def __init__(self, stack: "Stack", uid: Optional[str] = None) -> None:
        self._stack = stack
        self.uid = uid
        self._headers = stack.headers
        self._params: Dict[str, Any] = {}

    def include_branch(self) -> "GlobalFieldRequest":
        self._params["include_branch"] = True
        return self

    def include_global_field_schema(self) -> "GlobalFieldRequest":
        self._params["include_global_field_schema"] = True
        return self

    def add_param(self, key: str, value: Any) -> "GlobalFieldRequest":
        validate_param_key(key)
        if value is None:
            raise MissingArgument(f"add_param({key!r}) requires a value")
        self._params[key] = value
        return self

    def compile(self) -> WireParameters:
        return WireParameters(self._params)

    def fetch(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(GlobalFieldModel | None, CSError | None)"""
        if not self.uid:
            raise MissingArgument(GLOBAL_FIELD_UID_REQUIRED)
        return self._stack.submit(
            RequestKind.GLOBAL_FIELD,
            self._stack.url_for("global_fields", self.uid),
            self.compile(),
            self._headers,
            callback,
        )

    def find_all(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(GlobalFieldsResult | None, CSError | None)"""
        return self._stack.submit(
            RequestKind.GLOBAL_FIELDS,
            self._stack.url_for("global_fields"),
            self.compile(),
            self._headers,
            callback,
        )


class Taxonomy(_HeaderCopy):
    """
    Entries across all content types, filtered by taxonomy terms.

        stack.taxonomy().contained_in("taxonomies.color", ["red"]).equal_and_below("taxonomies.size", "m").find()

    Paths are taxonomy fields, usually `taxonomies.<taxonomy_uid>`.
    """

    def __init__(self, stack: "Stack") -> None:
        self._stack = stack
        self._headers = stack.headers
        self._filters = FilterTree()

    @property
    def filters(self) -> FilterTree:
        return self._filters

    def contained_in(self, taxonomy: str, term_uids: Iterable[str]) -> "Taxonomy":
        self._filters.contained_in(taxonomy, term_uids)
        return self

    def exists(self, taxonomy: str, flag: bool = True) -> "Taxonomy":
        self._filters.exists(taxonomy, flag)
        return self

    def equal_and_below(
        self, taxonomy: str, term_uid: str, levels: Optional[int] = None
    ) -> "Taxonomy":
        self._filters.equal_and_below(taxonomy, term_uid, levels)
        return self

    def below(self, taxonomy: str, term_uid: str, levels: Optional[int] = None) -> "Taxonomy":
        self._filters.below(taxonomy, term_uid, levels)
        return self

    def equal_and_above(
        self, taxonomy: str, term_uid: str, levels: Optional[int] = None
    ) -> "Taxonomy":
        self._filters.equal_and_above(taxonomy, term_uid, levels)
        return self

    def above(self, taxonomy: str, term_uid: str, levels: Optional[int] = None) -> "Taxonomy":
        self._filters.above(taxonomy, term_uid, levels)
        return self

    def and_(self, trees: Optional[Iterable[Any]]) -> "Taxonomy":
        self._filters.and_(trees)
        return self

    def or_(self, trees: Optional[Iterable[Any]]) -> "Taxonomy":
        self._filters.or_(trees)
        return self

    def compile(self) -> WireParameters:
        if self._filters.is_empty():
            return WireParameters({})
        return WireParameters({"query": self._filters.to_dict()})

    def find(self, callback: Optional[ResultCallback] = None) -> Future:
        """callback(QueryResult | None, CSError | None)"""
        return self._stack.submit(
            RequestKind.QUERY,
            self._stack.url_for("taxonomies", "entries"),
            self.compile(),
            self._headers,
            callback,
        )
