from __future__ import annotations
"""Virtual-hosted-style URL construction.

The same :class:`RequestTarget` feeds both the outgoing URL and the canonical
request, so the path and query string that get signed are always the ones
that travel on the wire.
"""
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote

from .errors import ValidationError
from .models import Credentials

MAX_KEY_BYTES = 1024


def _encode(value: str) -> str:
    # Everything except A-Z a-z 0-9 - _ . ~ is escaped, UTF-8 first.
    return quote(value, safe="")


def encode_key(key: str) -> str:
    """Percent-encode each ``/``-separated segment of ``key`` independently."""

    return "/".join(_encode(segment) for segment in key.split("/"))


def canonical_uri(key: str) -> str:
    if not key:
        return "/"
    return "/" + encode_key(key)


def canonical_query_string(params: Optional[Mapping[str, Optional[str]]]) -> str:
    """Serialize ``params`` sorted by encoded name.

    Empty or ``None`` values serialize as the bare name, without ``=``.
    """

    if not params:
        return ""
    parts: list[tuple[str, str]] = []
    for name, value in params.items():
        encoded_name = _encode(str(name))
        if value is None or value == "":
            parts.append((encoded_name, encoded_name))
        else:
            parts.append((encoded_name, f"{encoded_name}={_encode(str(value))}"))
    parts.sort(key=lambda item: item[0])
    return "&".join(part for _, part in parts)


def validate_key(key: str) -> str:
    if not key or not key.strip():
        raise ValidationError("Object key cannot be empty")
    if len(key.encode("utf-8")) > MAX_KEY_BYTES:
        raise ValidationError(f"Object key exceeds {MAX_KEY_BYTES} bytes")
    return key


@dataclass(frozen=True)
class RequestTarget:
    """Where a request goes, in the exact form that gets signed."""

    scheme: str
    host: str
    canonical_uri: str
    canonical_query: str

    @property
    def url(self) -> str:
        url = f"{self.scheme}://{self.host}{self.canonical_uri}"
        if self.canonical_query:
            url += f"?{self.canonical_query}"
        return url


def build_target(
    credentials: Credentials,
    key: str = "",
    params: Optional[Mapping[str, Optional[str]]] = None,
) -> RequestTarget:
    if not credentials.bucket:
        raise ValidationError("Bucket name cannot be empty")
    if not credentials.endpoint:
        raise ValidationError("Endpoint cannot be empty")
    return RequestTarget(
        scheme=credentials.scheme,
        host=credentials.host,
        canonical_uri=canonical_uri(key),
        canonical_query=canonical_query_string(params),
    )


def build_url(
    credentials: Credentials,
    key: str = "",
    params: Optional[Mapping[str, Optional[str]]] = None,
) -> str:
    return build_target(credentials, key, params).url
