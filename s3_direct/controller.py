from __future__ import annotations
"""Client facade that owns connection state for one bucket."""

from dataclasses import replace
import logging
from pathlib import Path
import threading
from typing import Callable, Iterable, Mapping, Optional

from .errors import ConfigError, ObjectStoreError, ValidationError
from .models import (
    ClientState,
    ClientStats,
    ClientStatus,
    Credentials,
    DeleteResult,
    ListResult,
    TransferProgress,
    TransferResult,
    UploadResult,
)
from .profiles import ConfigStorage, CredentialProvider
from .services import ObjectStoreService
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)

ProgressFn = Callable[[TransferProgress], None]


def compose_key(path: str, name: str) -> str:
    """Join an upload folder and file name into an object key."""

    file_name = name.strip()
    if not file_name:
        raise ValidationError("File name cannot be empty")
    if "/" in file_name:
        raise ValidationError(f"File name cannot contain '/': {name!r}")
    folder = path.strip().strip("/")
    return f"{folder}/{file_name}" if folder else file_name


def parent_path(path: str) -> str:
    parts = [part for part in path.split("/") if part]
    if not parts:
        return ""
    parts.pop()
    return "/".join(parts) + "/" if parts else ""


class ObjectStoreClient:
    """Coordinates object-store operations for a single set of credentials.

    States move ``DISCONNECTED -> CONNECTING -> CONNECTED``; a failed
    connection check falls back to ``DISCONNECTED`` and :meth:`disconnect`
    returns there from any state.
    """

    def __init__(
        self,
        service: ObjectStoreService | None = None,
        storage: ConfigStorage | None = None,
        settings: AppSettings | None = None,
    ):
        self._settings = settings or AppSettings()
        self._service = service or ObjectStoreService()
        self._storage = storage or ConfigStorage()
        self._credentials: Credentials | None = None
        self._state = ClientState()
        self._stats = ClientStats()
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._state.status is ClientStatus.CONNECTED

    @property
    def status(self) -> ClientStatus:
        return self._state.status

    @property
    def state(self) -> ClientState:
        with self._lock:
            return replace(
                self._state,
                cached_files=list(self._state.cached_files),
                cached_folders=list(self._state.cached_folders),
            )

    @property
    def stats(self) -> ClientStats:
        with self._lock:
            return replace(self._stats)

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    def connect(self, access_key_id: str, secret_access_key: str, bucket: str) -> ListResult:
        """Store credentials, check them with a root listing and persist on success."""

        if not access_key_id or not secret_access_key or not bucket:
            raise ValidationError("Access key, secret and bucket are required")
        credentials = Credentials(
            access_key_id=access_key_id.strip(),
            secret_access_key=secret_access_key,
            bucket=bucket.strip(),
            region=self._settings.region,
            endpoint=self._settings.endpoint,
            use_ssl=self._settings.use_ssl,
        )
        return self.connect_with_credentials(credentials)

    def connect_with_credentials(self, credentials: Credentials, *, persist: bool = True) -> ListResult:
        """Check ``credentials`` with a root listing; save them only when ``persist``."""

        LOGGER.debug("Connecting to bucket '%s' at %s", credentials.bucket, credentials.endpoint)
        self._credentials = credentials
        self._state.status = ClientStatus.CONNECTING
        try:
            result = self.list_files("")
        except ObjectStoreError:
            LOGGER.exception("Connection to bucket '%s' failed", credentials.bucket)
            self._credentials = None
            with self._lock:
                self._state = ClientState()
            raise
        self._state.status = ClientStatus.CONNECTED
        if persist:
            try:
                self.save_config()
            except OSError:
                LOGGER.warning("Unable to save connection config for bucket '%s'", credentials.bucket)
        LOGGER.info("Connected to bucket '%s'", credentials.bucket)
        return result

    def connect_from(self, provider: CredentialProvider) -> ListResult:
        credentials = provider.load()
        if credentials is None or not credentials.secret_access_key:
            raise ConfigError("No credentials available")
        return self.connect_with_credentials(credentials, persist=False)

    def connect_saved(self) -> ListResult:
        return self.connect_from(self._storage)

    def disconnect(self) -> None:
        bucket = self._credentials.bucket if self._credentials else ""
        self._credentials = None
        with self._lock:
            self._state = ClientState()
        LOGGER.info("Disconnected from bucket '%s'", bucket)

    def save_config(self) -> None:
        credentials = self._require_credentials()
        self._storage.save(credentials)

    def load_config(self) -> Credentials | None:
        return self._storage.load()

    def clear_config(self) -> None:
        self._storage.clear()

    def list_files(
        self,
        path: str = "",
        *,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> ListResult:
        credentials = self._require_credentials(allow_connecting=True)
        result = self._service.list_objects(credentials, prefix=path, cancel_requested=cancel_requested)
        with self._lock:
            self._state.cached_files = list(result.files)
            self._state.cached_folders = list(result.folders)
            self._state.current_path = path
            self._stats.total_files = len(result.files)
            self._stats.total_size = sum(entry.size for entry in result.files)
        LOGGER.debug(
            "Listed '%s': %d file(s), %d folder(s)",
            path,
            len(result.files),
            len(result.folders),
        )
        return result

    def go_up(self) -> ListResult:
        return self.list_files(parent_path(self._state.current_path))

    def upload_file(
        self,
        data: bytes,
        name: str,
        path: str = "",
        metadata: Mapping[str, str] | None = None,
        *,
        content_type: str | None = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> UploadResult:
        credentials = self._require_credentials()
        key = compose_key(path, name)
        try:
            result = self._service.put_object(
                credentials,
                key=key,
                data=data,
                content_type=content_type,
                metadata=metadata,
                cancel_requested=cancel_requested,
            )
        except ObjectStoreError:
            with self._lock:
                self._stats.failed_uploads += 1
            raise
        with self._lock:
            self._stats.uploaded_files += 1
            self._stats.uploaded_bytes += result.size
        LOGGER.info("Uploaded '%s' (%d bytes)", key, result.size)
        return result

    def upload_path(
        self,
        source_path: str | Path,
        path: str = "",
        metadata: Mapping[str, str] | None = None,
        *,
        content_type: str | None = None,
    ) -> UploadResult:
        self._require_credentials()
        source = Path(source_path)
        return self.upload_file(
            source.read_bytes(),
            source.name,
            path,
            metadata,
            content_type=content_type,
        )

    def upload_files(
        self,
        files: Iterable[tuple[str, bytes]],
        path: str = "",
        progress_callback: ProgressFn | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> list[TransferResult]:
        """Upload ``(name, data)`` pairs one after another.

        Individual failures are recorded in the returned results; only a
        missing connection aborts the batch.
        """

        self._require_credentials()
        items = list(files)
        results: list[TransferResult] = []
        for index, (name, data) in enumerate(items):
            if progress_callback:
                progress_callback(TransferProgress(current=name, completed=index, total=len(items)))
            try:
                uploaded = self.upload_file(data, name, path, metadata)
            except ConfigError:
                raise
            except ObjectStoreError as exc:
                LOGGER.warning("Upload of '%s' failed: %s", name, exc)
                results.append(TransferResult(key=name, success=False, error=str(exc)))
            else:
                results.append(TransferResult(key=uploaded.key, success=True, size=uploaded.size))
        if progress_callback:
            progress_callback(TransferProgress(current="", completed=len(items), total=len(items)))
        return results

    def download_file(
        self,
        key: str,
        *,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> bytes:
        credentials = self._require_credentials()
        result = self._service.get_object(credentials, key=key, cancel_requested=cancel_requested)
        with self._lock:
            self._stats.downloaded_files += 1
        LOGGER.info("Downloaded '%s' (%d bytes)", key, result.size)
        return result.data

    def download_to(self, key: str, destination: str | Path) -> Path:
        data = self.download_file(key)
        target = Path(destination)
        if target.is_dir():
            target = target / (key.rstrip("/").rsplit("/", 1)[-1] or "download")
        target.write_bytes(data)
        return target

    def delete_file(
        self,
        key: str,
        *,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> DeleteResult:
        credentials = self._require_credentials()
        result = self._service.delete_object(credentials, key=key, cancel_requested=cancel_requested)
        with self._lock:
            self._stats.deleted_files += 1
            self._state.cached_files = [entry for entry in self._state.cached_files if entry.key != key]
        LOGGER.info("Deleted '%s'", key)
        return result

    def delete_files(
        self,
        keys: Iterable[str],
        progress_callback: ProgressFn | None = None,
    ) -> list[TransferResult]:
        self._require_credentials()
        items = list(keys)
        results: list[TransferResult] = []
        for index, key in enumerate(items):
            if progress_callback:
                progress_callback(TransferProgress(current=key, completed=index, total=len(items)))
            try:
                self.delete_file(key)
            except ConfigError:
                raise
            except ObjectStoreError as exc:
                LOGGER.warning("Delete of '%s' failed: %s", key, exc)
                results.append(TransferResult(key=key, success=False, error=str(exc)))
            else:
                results.append(TransferResult(key=key, success=True))
        if progress_callback:
            progress_callback(TransferProgress(current="", completed=len(items), total=len(items)))
        return results

    def _require_credentials(self, *, allow_connecting: bool = False) -> Credentials:
        allowed = {ClientStatus.CONNECTED}
        if allow_connecting:
            allowed.add(ClientStatus.CONNECTING)
        if self._credentials is None or self._state.status not in allowed:
            raise ConfigError("Not connected to the object store")
        return self._credentials
