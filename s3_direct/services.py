from __future__ import annotations
"""Stateless object-store operations signed with SigV4."""
from datetime import datetime, timezone
import logging
import mimetypes
from typing import Callable, Mapping, Optional

from .errors import (
    AuthError,
    DeleteError,
    DownloadError,
    ListError,
    ServiceError,
    TransferCancelledError,
    UploadError,
    ValidationError,
    is_auth_failure,
)
from .models import Credentials, DeleteResult, DownloadResult, ListResult, UploadResult
from .parsing import parse_list_response
from .signing import UNSIGNED_PAYLOAD, sha256_hex, sign_target
from .transport import BotocoreTransport, HttpResponse, Transport
from .urls import build_target, validate_key

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
METADATA_PREFIX = "x-amz-meta-"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_metadata(metadata: Mapping[str, str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for name, value in metadata.items():
        name = str(name).strip().lower()
        if not name or not all(ch.isascii() and (ch.isalnum() or ch in "-_.") for ch in name):
            raise ValidationError(f"Invalid metadata name: {name!r}")
        value = str(value)
        if not value.isascii() or "\n" in value or "\r" in value:
            raise ValidationError(f"Metadata value for {name!r} must be single-line ASCII")
        headers[f"{METADATA_PREFIX}{name}"] = value
    return headers


class ObjectStoreService:
    """Encapsulates signed S3 requests independent of any client state."""

    def __init__(
        self,
        transport: Transport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._transport = transport or BotocoreTransport()
        self._clock = clock or utc_now

    def list_objects(
        self,
        credentials: Credentials,
        *,
        prefix: str = "",
        delimiter: str = "/",
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> ListResult:
        """Return the first page of objects and common prefixes under ``prefix``."""

        params: dict[str, str] = {"delimiter": delimiter}
        if prefix:
            params["prefix"] = prefix
        response = self._send(credentials, "GET", "", params=params, cancel_requested=cancel_requested)
        self._raise_for_status(response, ListError, f"List failed for prefix '{prefix}'")
        result = parse_list_response(response.body)
        if result.is_truncated:
            LOGGER.warning(
                "Listing for prefix '%s' is truncated after %d entries; later pages are not fetched",
                prefix,
                len(result.files) + len(result.folders),
            )
        return result

    def put_object(
        self,
        credentials: Credentials,
        *,
        key: str,
        data: bytes,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> UploadResult:
        validate_key(key)
        body = bytes(data)
        extra_headers = {
            "Content-Type": content_type or mimetypes.guess_type(key)[0] or DEFAULT_CONTENT_TYPE,
            "Content-Length": str(len(body)),
        }
        extra_headers.update(_validate_metadata(metadata or {}))
        response = self._send(
            credentials,
            "PUT",
            key,
            body=body,
            payload_hash=sha256_hex(body),
            extra_headers=extra_headers,
            cancel_requested=cancel_requested,
        )
        self._raise_for_status(response, UploadError, f"Upload failed for '{key}'")
        return UploadResult(key=key, size=len(body), etag=_header(response, "ETag"))

    def get_object(
        self,
        credentials: Credentials,
        *,
        key: str,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> DownloadResult:
        validate_key(key)
        response = self._send(credentials, "GET", key, cancel_requested=cancel_requested)
        self._raise_for_status(response, DownloadError, f"Download failed for '{key}'")
        return DownloadResult(key=key, data=response.body, content_type=_header(response, "Content-Type"))

    def delete_object(
        self,
        credentials: Credentials,
        *,
        key: str,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> DeleteResult:
        validate_key(key)
        response = self._send(
            credentials,
            "DELETE",
            key,
            extra_headers={"Content-Length": "0"},
            cancel_requested=cancel_requested,
        )
        self._raise_for_status(response, DeleteError, f"Delete failed for '{key}'")
        return DeleteResult(key=key)

    def _send(
        self,
        credentials: Credentials,
        method: str,
        key: str,
        *,
        params: Mapping[str, str] | None = None,
        body: bytes | None = None,
        payload_hash: str = UNSIGNED_PAYLOAD,
        extra_headers: Mapping[str, str] | None = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> HttpResponse:
        if cancel_requested and cancel_requested():
            raise TransferCancelledError(f"{method} '{key or '/'}' cancelled before sending")
        target = build_target(credentials, key, params)
        signed = sign_target(method, target, credentials, now=self._clock(), payload_hash=payload_hash)
        headers = signed.headers()
        headers.update(extra_headers or {})
        response = self._transport.send(method, signed.url, headers, body)
        # Only reads are abandoned once the server has answered.
        if method == "GET" and cancel_requested and cancel_requested():
            raise TransferCancelledError(f"{method} '{key or '/'}' cancelled")
        return response

    @staticmethod
    def _raise_for_status(response: HttpResponse, error_cls: type[ServiceError], message: str) -> None:
        if response.ok:
            return
        body = response.text
        if is_auth_failure(response.status_code, body):
            raise AuthError(message, status=response.status_code, body=body)
        raise error_cls(message, status=response.status_code, body=body)


def _header(response: HttpResponse, name: str) -> str | None:
    lowered = name.lower()
    for header, value in response.headers.items():
        if header.lower() == lowered:
            return value
    return None
