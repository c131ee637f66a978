"""URL normalization used as the identity of a source."""

from urllib.parse import urlsplit, urlunsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in _DEFAULT_PORTS and bool(parts.netloc)


def normalize_url(url: str) -> str:
    """
    Canonical form of a URL for deduplication and storage.

    - protocol-relative (``//host/x``) and scheme-less (``host/x``) URLs become https
    - scheme and host are lowercased, default ports and fragments are dropped
    - a trailing slash on the path is removed (the bare root becomes no path)

    Query strings are kept verbatim. Returns "" for blank or relative input.

    Args:
        url: Raw URL as returned by a provider or emitted by a model

    Returns:
        str: Normalized URL, or "" when the input cannot name a web page
    """
    raw = (url or "").strip()
    if not raw or (raw.startswith("/") and not raw.startswith("//")):
        return ""
    if raw.startswith("//"):
        raw = "https:" + raw
    elif "://" not in raw:
        raw = "https://" + raw

    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError:
        return ""

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.hostname:
        return ""

    host = parts.hostname.lower()
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    if parts.username:
        host = f"{parts.username}@{host}"

    path = parts.path.rstrip("/")
    return urlunsplit((scheme, host, path, parts.query, ""))
