from urllib.parse import urlparse, parse_qsl, urlencode, urlunparse


def url_with_params(base_url: str, params: dict) -> str:
    if not params:
        return base_url
    p = urlparse(base_url)
    q = parse_qsl(p.query, keep_blank_values=True)
    q.extend((str(k), str(v)) for k, v in params.items())
    return urlunparse(p._replace(query=urlencode(q, doseq=True)))


def join_url(endpoint: str, *segments: str) -> str:
    parts = [endpoint.rstrip("/")]
    parts.extend(str(s).strip("/") for s in segments if s)
    return "/".join(parts)


def looks_like_url(s: object) -> bool:
    return isinstance(s, str) and (s.startswith("http://") or s.startswith("https://"))
