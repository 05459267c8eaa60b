from __future__ import annotations
"""Data models representing object-store credentials, listings and results."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """Everything needed to address and sign requests for one bucket."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    bucket: str
    region: str = "eu-west-1"
    endpoint: str = "s3.cubbit.eu"
    use_ssl: bool = True

    @property
    def host(self) -> str:
        return f"{self.bucket}.{self.endpoint}"

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"


@dataclass
class ObjectEntry:
    """A single object returned by a listing."""

    key: str
    size: int
    last_modified: Optional[datetime]
    name: str


@dataclass
class PrefixEntry:
    """A common prefix ("folder") returned by a delimited listing."""

    prefix: str
    name: str


@dataclass
class ListResult:
    """Files and folders found under one prefix (first page only)."""

    files: list[ObjectEntry] = field(default_factory=list)
    folders: list[PrefixEntry] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None


class ClientStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class ClientState:
    """UI-facing cache of the last successful listing."""

    status: ClientStatus = ClientStatus.DISCONNECTED
    current_path: str = ""
    cached_files: list[ObjectEntry] = field(default_factory=list)
    cached_folders: list[PrefixEntry] = field(default_factory=list)

    @property
    def connected(self) -> bool:
        return self.status is ClientStatus.CONNECTED


@dataclass
class UploadResult:
    key: str
    size: int
    etag: Optional[str] = None


@dataclass
class DownloadResult:
    key: str
    data: bytes = field(repr=False)
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class DeleteResult:
    key: str


@dataclass
class TransferResult:
    """Outcome of one item in a bulk upload or delete."""

    key: str
    success: bool
    size: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class TransferProgress:
    current: str
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.completed * 100 / self.total)


@dataclass
class ClientStats:
    total_files: int = 0
    total_size: int = 0
    uploaded_files: int = 0
    uploaded_bytes: int = 0
    failed_uploads: int = 0
    downloaded_files: int = 0
    deleted_files: int = 0
