import json
import re
from typing import Dict, Mapping, Optional

_TEXT_CT_RE = re.compile(
    r"^(?:text/|application/(?:json|xml|x-www-form-urlencoded))(?:[;].*)?$",
    re.I,
)


def detect_charset(content_type: str | None) -> str | None:
    """
    Best-effort charset detection from Content-Type header.
    Returns codec name (e.g., 'utf-8') or None if not clearly text.
    """
    if not content_type:
        return None
    m = re.search(r"charset=([^\s;]+)", content_type, flags=re.I)
    if m:
        return m.group(1).strip('"').strip("'")
    if _TEXT_CT_RE.match(content_type):
        return "utf-8"
    return None


def get_ci(headers: Mapping, name: str):
    ln = name.lower()
    for k, v in headers.items():
        if k.lower() == ln:
            return v
    return None


def merge_headers(
    stack_headers: Optional[Mapping[str, str]],
    local_headers: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    """
    Stack-level headers first, request-level headers on top. Keys are compared
    case-insensitively so a local 'Access_Token' replaces the stack's
    'access_token' instead of sending both.
    """
    merged: Dict[str, str] = {}
    index: Dict[str, str] = {}
    for source in (stack_headers or {}, local_headers or {}):
        for k, v in source.items():
            if v is None:
                continue
            prev = index.get(k.lower())
            if prev is not None and prev != k:
                merged.pop(prev, None)
            merged[k] = str(v)
            index[k.lower()] = k
    return merged


def choose_parse_body(headers: Mapping, raw: bytes) -> tuple[str | None, object | None]:
    ctype = get_ci(headers, "Content-Type")
    ctype_l = (ctype or "").lower()
    cs = detect_charset(ctype)

    def _decode(b: bytes) -> str | None:
        if cs:
            try:
                return b.decode(cs, errors="replace")
            except LookupError:
                pass
        return b.decode("utf-8", errors="replace")

    def _loads(text: str | None):
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return None

    if "application/json" in ctype_l or ctype_l.endswith("+json"):
        text = _decode(raw)
        return text, _loads(text)

    if ctype_l.startswith("text/") or "xml" in ctype_l or "html" in ctype_l:
        return _decode(raw), None

    # CDNs occasionally drop the content type on error pages
    if raw and raw.lstrip()[:1] in (b"{", b"["):
        text = _decode(raw)
        return text, _loads(text)

    return None, None
