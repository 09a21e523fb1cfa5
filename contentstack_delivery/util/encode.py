from __future__ import annotations

import json
from typing import Any, List, Mapping, Tuple


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def encode_params(params: Mapping[str, Any] | None) -> List[Tuple[str, str]]:
    """
    Flattens wire parameters into (key, value) pairs for a GET query string.

      query            -> compact JSON
      sort {f: 1|-1}   -> asc=f | desc=f
      list values      -> repeated key
      bools            -> true | false
    """
    pairs: List[Tuple[str, str]] = []
    if not params:
        return pairs
    for key, value in params.items():
        if value is None:
            continue
        if key == "query":
            pairs.append((key, json.dumps(value, separators=(",", ":"), ensure_ascii=False)))
        elif key == "sort" and isinstance(value, Mapping):
            for field, direction in value.items():
                pairs.append(("desc" if int(direction) < 0 else "asc", str(field)))
        elif isinstance(value, (list, tuple)):
            for item in value:
                pairs.append((key, _scalar(item)))
        else:
            pairs.append((key, _scalar(value)))
    return pairs


def as_pairs(params: Any) -> List[Tuple[str, str]]:
    """
    Accepts compiled WireParameters, a plain mapping, or ready-made pairs and
    returns a fresh list of (key, value) pairs.
    """
    if params is None:
        return []
    if hasattr(params, "to_request_params"):
        return list(params.to_request_params())
    if isinstance(params, Mapping):
        return encode_params(params)
    return [(str(k), str(v)) for k, v in params]
