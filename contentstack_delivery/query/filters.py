# contentstack_delivery/query/filters.py
from __future__ import annotations

import copy
import re
from typing import Any, Dict, Iterable, List, Optional

from contentstack_delivery.errors import (
    ContractViolation,
    InvalidFieldPath,
    MissingArgument,
)

# dotted paths: seo.title, taxonomies.color, modular_blocks.hero.title
_FIELD_PATH_RE = re.compile(r"^[A-Za-z0-9_\-]+(?:\.[A-Za-z0-9_\-]+)*$")

_SCALARS = (str, int, float, bool)

AND = "$and"
OR = "$or"


def validate_field_path(path: Any) -> str:
    """
    Returns the path unchanged when it is usable on the wire, otherwise raises
    InvalidFieldPath. No '@', whitespace, control characters or empty segments.
    """
    if not isinstance(path, str):
        raise InvalidFieldPath(path, "field path must be a string")
    if not path:
        raise InvalidFieldPath(path, "field path must not be empty")
    if not _FIELD_PATH_RE.match(path):
        raise InvalidFieldPath(path)
    return path


def _coerce_values(op: str, values: Any) -> List[Any]:
    if values is None:
        raise MissingArgument(f"{op} requires a collection of values")
    if isinstance(values, (str, bytes, dict)):
        raise ContractViolation(
            f"{op} expects an ordered collection, got {type(values).__name__}"
        )
    out: List[Any] = []
    for v in values:
        if not isinstance(v, _SCALARS):
            raise ContractViolation(
                f"{op} values must be str, number or bool; got {type(v).__name__}"
            )
        out.append(v)
    return out


def _subtree_dict(tree: Any) -> Dict[str, Any]:
    """Accepts a FilterTree, anything exposing .filters (a Query) or a plain dict."""
    if isinstance(tree, FilterTree):
        return tree.to_dict()
    inner = getattr(tree, "filters", None)
    if isinstance(inner, FilterTree):
        return inner.to_dict()
    if isinstance(tree, dict):
        return copy.deepcopy(tree)
    raise ContractViolation(
        f"expected a FilterTree, Query or dict, got {type(tree).__name__}"
    )


class FilterTree:
    """
    Fluent builder for the `query` wire parameter.

        tree = FilterTree().where("title", "Women").greater_than("price", 10)
        tree.to_dict()  # {"title": "Women", "price": {"$gt": 10}}
    """

    def __init__(self) -> None:
        self._tree: Dict[str, Any] = {}

    # ---- equality ----

    def where(self, path: str, value: Any) -> "FilterTree":
        validate_field_path(path)
        if value is None:
            raise MissingArgument(f"where({path!r}) requires a value")
        self._tree[path] = copy.deepcopy(value)
        return self

    # ---- comparison ----

    def _put_operator(self, path: str, op: str, value: Any) -> "FilterTree":
        validate_field_path(path)
        current = self._tree.get(path)
        if isinstance(current, dict) and current and all(
            str(k).startswith("$") for k in current
        ):
            current[op] = value
        else:
            self._tree[path] = {op: value}
        return self

    def _put_compare(self, path: str, op: str, value: Any) -> "FilterTree":
        if value is None:
            raise MissingArgument(f"{op} on {path!r} requires a value")
        return self._put_operator(path, op, copy.deepcopy(value))

    def not_equal_to(self, path: str, value: Any) -> "FilterTree":
        return self._put_compare(path, "$ne", value)

    def less_than(self, path: str, value: Any) -> "FilterTree":
        return self._put_compare(path, "$lt", value)

    def less_than_or_equal_to(self, path: str, value: Any) -> "FilterTree":
        return self._put_compare(path, "$lte", value)

    def greater_than(self, path: str, value: Any) -> "FilterTree":
        return self._put_compare(path, "$gt", value)

    def greater_than_or_equal_to(self, path: str, value: Any) -> "FilterTree":
        return self._put_compare(path, "$gte", value)

    # ---- arrays ----

    def contained_in(self, path: str, values: Iterable[Any]) -> "FilterTree":
        validate_field_path(path)
        return self._put_operator(path, "$in", _coerce_values("$in", values))

    def not_contained_in(self, path: str, values: Iterable[Any]) -> "FilterTree":
        validate_field_path(path)
        return self._put_operator(path, "$nin", _coerce_values("$nin", values))

    # ---- existence ----

    def exists(self, path: str, flag: bool = True) -> "FilterTree":
        return self._put_operator(path, "$exists", bool(flag))

    def not_exists(self, path: str) -> "FilterTree":
        return self.exists(path, False)

    # ---- text ----

    def regex(
        self, path: str, pattern: str, modifiers: Optional[str] = None
    ) -> "FilterTree":
        validate_field_path(path)
        if pattern is None:
            raise MissingArgument(f"regex on {path!r} requires a pattern")
        self._put_operator(path, "$regex", str(pattern))
        if modifiers:
            self._tree[path]["$options"] = str(modifiers)
        else:
            self._tree[path].pop("$options", None)
        return self

    # ---- references ----

    def where_in(self, reference_path: str, subtree: Any) -> "FilterTree":
        """Entries whose reference field points at records matching `subtree`."""
        validate_field_path(reference_path)
        if subtree is None:
            raise MissingArgument(f"where_in({reference_path!r}) requires a filter")
        self._tree[reference_path] = {"$in_query": _subtree_dict(subtree)}
        return self

    def where_not_in(self, reference_path: str, subtree: Any) -> "FilterTree":
        validate_field_path(reference_path)
        if subtree is None:
            raise MissingArgument(
                f"where_not_in({reference_path!r}) requires a filter"
            )
        self._tree[reference_path] = {"$nin_query": _subtree_dict(subtree)}
        return self

    # ---- taxonomy hierarchy ----

    def _put_term(
        self, path: str, op: str, term_uid: str, levels: Optional[int] = None
    ) -> "FilterTree":
        validate_field_path(path)
        if not term_uid or not isinstance(term_uid, str):
            raise MissingArgument(f"{op} on {path!r} requires a term uid")
        node: Dict[str, Any] = {op: term_uid}
        if levels is not None:
            if isinstance(levels, bool) or not isinstance(levels, int) or levels < 1:
                raise ContractViolation(
                    f"levels must be a positive integer. Provided: {levels!r}"
                )
            node["levels"] = levels
        self._tree[path] = node
        return self

    def equal_and_below(
        self, path: str, term_uid: str, levels: Optional[int] = None
    ) -> "FilterTree":
        """The term and its descendants, optionally only `levels` deep."""
        return self._put_term(path, "$eq_below", term_uid, levels)

    def below(self, path: str, term_uid: str, levels: Optional[int] = None) -> "FilterTree":
        return self._put_term(path, "$below", term_uid, levels)

    def equal_and_above(
        self, path: str, term_uid: str, levels: Optional[int] = None
    ) -> "FilterTree":
        return self._put_term(path, "$eq_above", term_uid, levels)

    def above(self, path: str, term_uid: str, levels: Optional[int] = None) -> "FilterTree":
        return self._put_term(path, "$above", term_uid, levels)

    # ---- logical combinators ----

    def _wrap(self, key: str, trees: Optional[Iterable[Any]]) -> "FilterTree":
        if trees is None:
            trees = []
        elif isinstance(trees, (FilterTree, dict)) or isinstance(
            getattr(trees, "filters", None), FilterTree
        ):
            trees = [trees]
        # build fully before touching state so a bad element leaves us intact
        wrapped = [_subtree_dict(t) for t in trees]
        self._tree.setdefault(key, []).extend(wrapped)
        return self

    def and_(self, trees: Optional[Iterable[Any]]) -> "FilterTree":
        return self._wrap(AND, trees)

    def or_(self, trees: Optional[Iterable[Any]]) -> "FilterTree":
        return self._wrap(OR, trees)

    # ---- housekeeping ----

    def remove(self, path: str) -> "FilterTree":
        self._tree.pop(path, None)
        return self

    def is_empty(self) -> bool:
        return not self._tree

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._tree)

    def __contains__(self, path: object) -> bool:
        return path in self._tree

    def __len__(self) -> int:
        return len(self._tree)

    def __repr__(self) -> str:
        return f"FilterTree({self._tree!r})"
