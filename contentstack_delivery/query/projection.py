# contentstack_delivery/query/projection.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from contentstack_delivery.errors import ContractViolation, MissingArgument
from contentstack_delivery.query.filters import validate_field_path

BASE = "BASE"


def _field_list(fields: Iterable[str]) -> List[str]:
    if fields is None:
        raise MissingArgument("projection expects a list of field paths")
    if isinstance(fields, str):
        return [validate_field_path(fields)]
    out = [validate_field_path(f) for f in fields]
    if not out:
        raise ContractViolation("projection expects at least one field path")
    return out


class Projection:
    """
    Field inclusion/exclusion, keyed by scope. Unscoped fields belong to BASE;
    reference-scoped fields belong to the reference path they were given with.
    When a scope both includes and excludes a field, the exclusion wins.
    """

    def __init__(self) -> None:
        self._only: Dict[str, List[str]] = {}
        self._except: Dict[str, List[str]] = {}

    @staticmethod
    def _add(bucket: Dict[str, List[str]], scope: str, fields: List[str]) -> None:
        current = bucket.setdefault(scope, [])
        for f in fields:
            if f not in current:
                current.append(f)

    def only(self, fields: Iterable[str], reference: Optional[str] = None) -> "Projection":
        scope = validate_field_path(reference) if reference is not None else BASE
        self._add(self._only, scope, _field_list(fields))
        return self

    def exclude(
        self, fields: Iterable[str], reference: Optional[str] = None
    ) -> "Projection":
        scope = validate_field_path(reference) if reference is not None else BASE
        self._add(self._except, scope, _field_list(fields))
        return self

    def is_empty(self) -> bool:
        return not self._only and not self._except

    def compile(self) -> Dict[str, List[str]]:
        """
        Emits only[<scope>][] / except[<scope>][] arrays; BASE first, then
        references in the order they were first mentioned.
        """
        out: Dict[str, List[str]] = {}
        for scope, fields in self._only.items():
            excluded = set(self._except.get(scope, ()))
            kept = [f for f in fields if f not in excluded]
            if kept:
                out[f"only[{scope}][]"] = kept
        for scope, fields in self._except.items():
            if fields:
                out[f"except[{scope}][]"] = list(fields)
        return out
