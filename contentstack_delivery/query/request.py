# contentstack_delivery/query/request.py
from __future__ import annotations

import copy
import re
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from contentstack_delivery.errors import (
    INVALID_PARAMETER_KEY,
    ContractViolation,
    InvalidFieldPath,
    MissingArgument,
    UnboundRequest,
)
from contentstack_delivery.query.filters import FilterTree, validate_field_path
from contentstack_delivery.query.projection import BASE, Projection
from contentstack_delivery.util.encode import encode_params

# raw parameter keys may carry array brackets, e.g. include[] or only[BASE][]
_PARAM_KEY_RE = re.compile(r"^[A-Za-z0-9_.\-]+(?:\[[A-Za-z0-9_.\-]*\])*$")

ASCENDING = 1
DESCENDING = -1


class WireParameters(Mapping):
    """
    Immutable snapshot of a compiled request. Reads hand out copies, so nothing
    done to a value obtained from here can reach back into the snapshot.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data))

    def __getitem__(self, key: str) -> Any:
        return copy.deepcopy(self._data[key])

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def to_request_params(self) -> List[Tuple[str, str]]:
        return encode_params(self._data)

    def __repr__(self) -> str:
        return f"WireParameters({self._data!r})"


def validate_param_key(key: Any) -> str:
    if not isinstance(key, str) or not _PARAM_KEY_RE.match(key):
        raise InvalidFieldPath(key, INVALID_PARAMETER_KEY)
    return key


def checked_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy of a caller-supplied params mapping, every key validated like add_param."""
    out: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        out[validate_param_key(key)] = copy.deepcopy(value)
    return out


def _non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ContractViolation(f"{name} must be an integer. Provided: {value!r}")
    if value < 0:
        raise ContractViolation(f"{name} cannot be negative. Provided: {value}")
    return value


class RequestOptions:
    """
    Options shared by every delivery request that returns entries or assets:
    projection, reference inclusion, locale, feature flags and raw params.
    """

    def __init__(self) -> None:
        self._projection = Projection()
        self._includes: List[str] = []
        self._locale: Optional[str] = None
        self._flags: Dict[str, bool] = {}
        self._raw: Dict[str, Any] = {}

    # ---- projection ----

    def only(self, fields: Iterable[str]):
        self._projection.only(fields)
        return self

    def exclude(self, fields: Iterable[str]):
        self._projection.exclude(fields)
        return self

    def only_with_reference(self, fields: Iterable[str], reference: str):
        if reference is None:
            raise MissingArgument("only_with_reference requires a reference path")
        self._projection.only(fields, reference)
        self._add_include(reference)
        return self

    def exclude_with_reference(self, fields: Iterable[str], reference: str):
        if reference is None:
            raise MissingArgument("exclude_with_reference requires a reference path")
        self._projection.exclude(fields, reference)
        self._add_include(reference)
        return self

    # ---- references ----

    def _add_include(self, path: str) -> None:
        validate_field_path(path)
        if path not in self._includes:
            self._includes.append(path)

    def include_reference(self, paths):
        if paths is None:
            raise MissingArgument("include_reference requires a path")
        if isinstance(paths, str):
            paths = [paths]
        paths = [validate_field_path(p) for p in paths]
        for p in paths:
            self._add_include(p)
        return self

    def include_reference_content_type_uid(self):
        self._flags["include_reference_content_type_uid"] = True
        return self

    # ---- locale / flags ----

    def locale(self, code: str):
        if not code or not isinstance(code, str):
            raise MissingArgument("locale requires a locale code such as 'en-us'")
        self._locale = code
        return self

    def include_fallback(self):
        self._flags["include_fallback"] = True
        return self

    def include_metadata(self):
        self._flags["include_metadata"] = True
        return self

    def include_embedded_items(self):
        self._flags["include_embedded_items"] = True
        return self

    def include_branch(self):
        self._flags["include_branch"] = True
        return self

    def include_owner(self):
        self._flags["include_owner"] = True
        return self

    def include_content_type(self):
        # one semantic instruction, one key
        self._raw.pop("include_schema", None)
        self._flags.pop("include_schema", None)
        self._flags["include_content_type"] = True
        return self

    def include_schema(self):
        """Deprecated: use include_content_type()."""
        if not self._flags.get("include_content_type"):
            self._flags["include_schema"] = True
        return self

    # ---- escape hatch ----

    def add_param(self, key: str, value: Any):
        validate_param_key(key)
        if value is None:
            raise MissingArgument(f"add_param({key!r}) requires a value")
        self._raw[key] = copy.deepcopy(value)
        return self

    def remove_param(self, key: str):
        self._raw.pop(key, None)
        return self

    # ---- compilation ----

    def _compile_common(self, out: Dict[str, Any]) -> None:
        out.update(self._projection.compile())
        if self._includes:
            out["include[]"] = list(self._includes)
        if self._locale:
            out["locale"] = self._locale
        for flag, on in self._flags.items():
            if not on:
                continue
            if flag == "include_embedded_items":
                out["include_embedded_items[]"] = [BASE]
            else:
                out[flag] = True
        for key, value in self._raw.items():
            if key == "include_schema" and out.get("include_content_type"):
                continue
            out.setdefault(key, copy.deepcopy(value))

    def compile(self) -> WireParameters:
        out: Dict[str, Any] = {}
        self._compile_common(out)
        return WireParameters(out)


class Query(RequestOptions):
    """
    Query request descriptor for the entries of one content type.

    Configure fully, then call find()/find_one(); each call compiles an
    immutable snapshot, so later edits never reach an in-flight request.
    """

    def __init__(self, content_type_uid: str, owner: Any = None) -> None:
        super().__init__()
        if not content_type_uid:
            raise MissingArgument("a query needs a content type uid")
        self.content_type_uid = content_type_uid
        self._owner = owner
        self._filters = FilterTree()
        self._sort: Optional[Tuple[str, int]] = None
        self._skip = 0
        self._limit: Optional[int] = None
        self._tags: List[str] = []
        self._search: Optional[str] = None

    @property
    def filters(self) -> FilterTree:
        return self._filters

    # ---- predicates (delegate to the filter tree) ----

    def where(self, path: str, value: Any) -> "Query":
        self._filters.where(path, value)
        return self

    def not_equal_to(self, path: str, value: Any) -> "Query":
        self._filters.not_equal_to(path, value)
        return self

    def less_than(self, path: str, value: Any) -> "Query":
        self._filters.less_than(path, value)
        return self

    def less_than_or_equal_to(self, path: str, value: Any) -> "Query":
        self._filters.less_than_or_equal_to(path, value)
        return self

    def greater_than(self, path: str, value: Any) -> "Query":
        self._filters.greater_than(path, value)
        return self

    def greater_than_or_equal_to(self, path: str, value: Any) -> "Query":
        self._filters.greater_than_or_equal_to(path, value)
        return self

    def contained_in(self, path: str, values: Iterable[Any]) -> "Query":
        self._filters.contained_in(path, values)
        return self

    def not_contained_in(self, path: str, values: Iterable[Any]) -> "Query":
        self._filters.not_contained_in(path, values)
        return self

    def exists(self, path: str) -> "Query":
        self._filters.exists(path)
        return self

    def not_exists(self, path: str) -> "Query":
        self._filters.not_exists(path)
        return self

    def regex(self, path: str, pattern: str, modifiers: Optional[str] = None) -> "Query":
        self._filters.regex(path, pattern, modifiers)
        return self

    def where_in(self, reference_path: str, subquery: Any) -> "Query":
        self._filters.where_in(reference_path, subquery)
        return self

    def where_not_in(self, reference_path: str, subquery: Any) -> "Query":
        self._filters.where_not_in(reference_path, subquery)
        return self

    def and_(self, queries: Optional[Iterable[Any]]) -> "Query":
        self._filters.and_(queries)
        return self

    def or_(self, queries: Optional[Iterable[Any]]) -> "Query":
        self._filters.or_(queries)
        return self

    # ---- sort / pagination ----

    def ascending(self, path: str) -> "Query":
        self._sort = (validate_field_path(path), ASCENDING)
        return self

    def descending(self, path: str) -> "Query":
        self._sort = (validate_field_path(path), DESCENDING)
        return self

    def skip(self, number: int) -> "Query":
        self._skip = _non_negative_int("skip", number)
        return self

    def limit(self, number: int) -> "Query":
        self._limit = _non_negative_int("limit", number)
        return self

    # ---- misc ----

    def include_count(self) -> "Query":
        self._flags["include_count"] = True
        return self

    def count(self) -> "Query":
        self._flags["count"] = True
        return self

    def tags(self, tags: Iterable[str]) -> "Query":
        if tags is None:
            raise MissingArgument("tags requires a list of tags")
        if isinstance(tags, str):
            tags = [tags]
        self._tags = [str(t) for t in tags if str(t).strip()]
        return self

    def search(self, text: str) -> "Query":
        if text is None:
            raise MissingArgument("search requires a value")
        self._search = str(text)
        return self

    # ---- compilation ----

    def compile(self, limit_override: Optional[int] = None) -> WireParameters:
        out: Dict[str, Any] = {}
        if not self._filters.is_empty():
            out["query"] = self._filters.to_dict()
        if self._sort is not None:
            field, direction = self._sort
            out["sort"] = {field: direction}
        if self._skip > 0:
            out["skip"] = self._skip
        limit = self._limit if limit_override is None else limit_override
        if limit is not None:
            out["limit"] = limit
        if self._tags:
            out["tags"] = ",".join(self._tags)
        if self._search is not None:
            out["typeahead"] = self._search
        self._compile_common(out)
        return WireParameters(out)

    # ---- execution ----

    def _bound(self) -> Any:
        if self._owner is None:
            raise UnboundRequest(
                "this query is not attached to a content type; "
                "create it with stack.content_type(uid).query()"
            )
        return self._owner

    def find(self, callback: Optional[Callable[..., Any]] = None):
        """Runs the query; callback(QueryResult | None, CSError | None)."""
        return self._bound().run_query(self.compile(), callback, single=False)

    def find_one(self, callback: Optional[Callable[..., Any]] = None):
        """First matching entry; callback(Entry | None, CSError | None)."""
        return self._bound().run_query(
            self.compile(limit_override=1), callback, single=True
        )
