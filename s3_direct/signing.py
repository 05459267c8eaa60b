from __future__ import annotations
"""AWS Signature Version 4 for S3 requests.

Signing is a pure function of its inputs: the time, the credentials and the
request fields are all passed in and nothing is cached between calls, so a
single :class:`~s3_direct.models.Credentials` value can sign concurrently
from any number of threads.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import hmac
from typing import Mapping, Optional

from .models import Credentials
from .urls import RequestTarget, build_target

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_PAYLOAD_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"


def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def amz_date(now: datetime) -> str:
    """Format ``now`` as ``YYYYMMDDTHHMMSSZ`` in UTC; naive values are taken as UTC."""

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def derive_signing_key(secret: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    k_date = _hmac(f"AWS4{secret}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


@dataclass(frozen=True)
class SignedRequest:
    """One signed request; built and consumed within a single call."""

    method: str
    target: RequestTarget
    payload_hash: str
    amz_date: str
    credential_scope: str
    signature: str
    access_key_id: str

    @property
    def canonical_uri(self) -> str:
        return self.target.canonical_uri

    @property
    def canonical_query_string(self) -> str:
        return self.target.canonical_query

    @property
    def signed_header_names(self) -> str:
        return SIGNED_HEADERS

    @property
    def canonical_headers(self) -> str:
        return canonical_headers(self.target.host, self.payload_hash, self.amz_date)

    @property
    def canonical_request(self) -> str:
        return canonical_request(self.method, self.target, self.payload_hash, self.amz_date)

    @property
    def authorization(self) -> str:
        return (
            f"{ALGORITHM} Credential={self.access_key_id}/{self.credential_scope}, "
            f"SignedHeaders={SIGNED_HEADERS}, Signature={self.signature}"
        )

    @property
    def url(self) -> str:
        return self.target.url

    def headers(self) -> dict[str, str]:
        return {
            "Host": self.target.host,
            "x-amz-date": self.amz_date,
            "x-amz-content-sha256": self.payload_hash,
            "Authorization": self.authorization,
        }


def canonical_headers(host: str, payload_hash: str, date: str) -> str:
    return f"host:{host}\nx-amz-content-sha256:{payload_hash}\nx-amz-date:{date}\n"


def canonical_request(method: str, target: RequestTarget, payload_hash: str, date: str) -> str:
    return "\n".join(
        [
            method.upper(),
            target.canonical_uri,
            target.canonical_query,
            canonical_headers(target.host, payload_hash, date),
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def string_to_sign(date: str, credential_scope: str, request: str) -> str:
    return "\n".join([ALGORITHM, date, credential_scope, sha256_hex(request)])


def sign_target(
    method: str,
    target: RequestTarget,
    credentials: Credentials,
    *,
    now: datetime,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> SignedRequest:
    date = amz_date(now)
    date_stamp = date[:8]
    scope = f"{date_stamp}/{credentials.region}/{SERVICE}/{TERMINATOR}"
    request = canonical_request(method, target, payload_hash, date)
    signing_key = derive_signing_key(credentials.secret_access_key, date_stamp, credentials.region)
    signature = hmac.new(
        signing_key,
        string_to_sign(date, scope, request).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return SignedRequest(
        method=method.upper(),
        target=target,
        payload_hash=payload_hash,
        amz_date=date,
        credential_scope=scope,
        signature=signature,
        access_key_id=credentials.access_key_id,
    )


def sign(
    method: str,
    key: str,
    params: Optional[Mapping[str, Optional[str]]],
    credentials: Credentials,
    *,
    now: datetime,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> SignedRequest:
    """Sign ``method`` on ``key`` with query ``params`` at time ``now``."""

    target = build_target(credentials, key, params)
    return sign_target(method, target, credentials, now=now, payload_hash=payload_hash)
