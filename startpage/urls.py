"""URL canonicalisation and validation for links."""

from __future__ import annotations

import ipaddress
import logging
import re
from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

LOGGER = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_HTTP_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)

_HTTP_SCHEMES = frozenset({"http", "https"})
_DEFAULT_PORTS = {"http": 80, "https": 443}
_FORBIDDEN_HOST_CHARS = frozenset(" \t\r\n#%/:<>?@[\\]^|\"'`{}")

_PATH_SAFE = "/%:@!$&'()*+,;="
_QUERY_SAFE = "/?%:@!$&'()*+,;="


def has_http_scheme(raw: str) -> bool:
    """Return True when ``raw`` already starts with ``http://`` or ``https://``."""
    return bool(_HTTP_PREFIX_RE.match(raw.strip()))


def ensure_scheme(raw: str) -> str:
    """Prefix ``https://`` unless the url already names an http(s) scheme."""
    stripped = raw.strip()
    if has_http_scheme(stripped):
        return stripped
    return f"https://{stripped}"


def normalize_url(raw: str) -> str:
    """Return the canonical absolute form of ``raw`` (best effort).

    An absolute url keeps its scheme. A relative-looking value is retried with
    ``https://`` prefixed. When both attempts fail the original string is
    returned unchanged so a malformed entry never aborts a whole import.
    """
    canonical = _canonicalise(raw)
    if canonical is None:
        canonical = _canonicalise(f"https://{raw.strip()}")
    if canonical is None:
        LOGGER.debug("Could not normalise url %r; keeping original", raw)
        return raw
    return canonical


def is_valid_url(raw: str) -> bool:
    """Strict check used for RC lines: must be an http(s) url with a real host."""
    if not raw or not raw.strip():
        return False
    return _canonicalise(ensure_scheme(raw)) is not None


def _canonicalise(raw: str) -> str | None:
    candidate = raw.strip()
    if not candidate:
        return None
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return None

    scheme = parts.scheme.lower()
    if scheme not in _HTTP_SCHEMES:
        # Opaque or non-web scheme (mailto:, data:, ...): kept as written.
        return candidate

    netloc = _canonical_netloc(scheme, parts)
    if netloc is None:
        return None
    path = quote(parts.path, safe=_PATH_SAFE) or "/"
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_QUERY_SAFE)
    return urlunsplit((scheme, netloc, path, query, fragment))


def _canonical_netloc(scheme: str, parts: SplitResult) -> str | None:
    netloc = parts.netloc
    host = parts.hostname
    if not netloc or not host:
        return None
    try:
        port = parts.port
    except ValueError:
        return None

    host = _canonical_host(host)
    if host is None:
        return None

    userinfo, _, _ = netloc.rpartition("@")
    rebuilt = f"{userinfo}@" if userinfo else ""
    rebuilt += f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        rebuilt += f":{port}"
    return rebuilt


def _canonical_host(host: str) -> str | None:
    if ":" in host:
        try:
            return ipaddress.IPv6Address(host).compressed
        except ValueError:
            return None
    if any(char in _FORBIDDEN_HOST_CHARS or char.isspace() for char in host):
        return None
    if host.isascii():
        return host.lower()
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return None


def url_key(raw: str) -> str:
    """Case-insensitive de-duplication key; ``,`` and ``%2C`` compare equal."""
    return raw.strip().lower().replace(",", "%2c")
