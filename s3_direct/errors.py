from __future__ import annotations
"""Error taxonomy surfaced by the object-store client."""

AUTH_ERROR_CODES = (
    "SignatureDoesNotMatch",
    "InvalidAccessKeyId",
    "AccessDenied",
    "RequestTimeTooSkewed",
    "ExpiredToken",
    "InvalidToken",
)


class ObjectStoreError(Exception):
    """Base error for s3_direct."""


class ConfigError(ObjectStoreError):
    """Raised when an operation is attempted before connecting."""


class ValidationError(ObjectStoreError):
    """Raised when a key, path or header value is unusable."""


class NetworkError(ObjectStoreError):
    """Raised when the request never produced an HTTP response."""


class ParseError(ObjectStoreError):
    """Raised when a listing body cannot be understood."""


class TransferCancelledError(ObjectStoreError):
    """Raised when a request is cancelled by the caller."""


class ServiceError(ObjectStoreError):
    """The service answered with a non-2xx status."""

    def __init__(self, message: str, *, status: int, body: str = ""):
        super().__init__(f"{message} (HTTP {status})\n{body}".rstrip())
        self.status = status
        self.body = body


class AuthError(ServiceError):
    """Signature, credential or clock-skew rejection."""


class ListError(ServiceError):
    pass


class UploadError(ServiceError):
    pass


class DownloadError(ServiceError):
    pass


class DeleteError(ServiceError):
    pass


def is_auth_failure(status: int, body: str) -> bool:
    if status in (401, 403):
        return True
    return any(f"<Code>{code}</Code>" in body for code in AUTH_ERROR_CODES)
