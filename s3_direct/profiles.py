from __future__ import annotations
"""Credential providers and connection-config persistence."""
import json
import logging
import os
from pathlib import Path
from typing import Mapping, Protocol

import keyring
from keyring.errors import KeyringError

from .models import Credentials

LOGGER = logging.getLogger(__name__)

CONFIG_KEY = "object_store_config"


class CredentialProvider(Protocol):
    def load(self) -> Credentials | None:
        ...


class EnvironmentCredentialProvider:
    """Reads credentials from ``S3_*`` (or ``AWS_*``) environment variables."""

    def __init__(self, environ: Mapping[str, str] | None = None, *, defaults: Credentials | None = None):
        self._environ = os.environ if environ is None else environ
        self._defaults = defaults

    def _get(self, *names: str) -> str:
        for name in names:
            value = self._environ.get(name, "").strip()
            if value:
                return value
        return ""

    def load(self) -> Credentials | None:
        access_key_id = self._get("S3_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID")
        secret = self._get("S3_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY")
        bucket = self._get("S3_BUCKET")
        if not (access_key_id and secret and bucket):
            return None
        defaults = self._defaults or Credentials(access_key_id="", secret_access_key="", bucket="")
        use_ssl = self._get("S3_USE_SSL")
        return Credentials(
            access_key_id=access_key_id,
            secret_access_key=secret,
            bucket=bucket,
            region=self._get("S3_REGION", "AWS_REGION") or defaults.region,
            endpoint=self._get("S3_ENDPOINT") or defaults.endpoint,
            use_ssl=defaults.use_ssl if not use_ssl else use_ssl.lower() not in {"0", "false", "no", "off"},
        )


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "pys3d"):
        self._service_name = service_name

    def get_secret(self, account: str) -> str:
        if not account:
            return ""
        try:
            return keyring.get_password(self._service_name, account) or ""
        except KeyringError:
            LOGGER.warning("Keychain lookup failed for '%s'", account)
            return ""

    def set_secret(self, account: str, secret: str) -> None:
        if not account:
            return
        if not secret:
            self.delete_secret(account)
            return
        try:
            keyring.set_password(self._service_name, account, secret)
        except KeyringError:
            LOGGER.warning("Unable to store secret for '%s' in the keychain", account)

    def delete_secret(self, account: str) -> None:
        if not account:
            return
        try:
            keyring.delete_password(self._service_name, account)
        except KeyringError:
            return


class ConfigStorage:
    """JSON-backed store for the non-secret connection config.

    The secret access key lives in the OS keychain, keyed by access key id.
    """

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3d_config.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> Credentials | None:
        data = self._read()
        entry = data.get(CONFIG_KEY)
        if not isinstance(entry, dict):
            return None
        try:
            access_key_id = str(entry["access_key_id"])
            bucket = str(entry["bucket"])
        except KeyError:
            return None

        plaintext = entry.pop("secret_access_key", "")
        if plaintext:
            LOGGER.info("Moving plaintext secret for '%s' into the keychain", access_key_id)
            self._keychain.set_secret(access_key_id, str(plaintext))
            data[CONFIG_KEY] = entry
            self._write(data)
            secret = str(plaintext)
        else:
            secret = self._keychain.get_secret(access_key_id)

        defaults = Credentials(access_key_id="", secret_access_key="", bucket="")
        return Credentials(
            access_key_id=access_key_id,
            secret_access_key=secret,
            bucket=bucket,
            region=str(entry.get("region") or defaults.region),
            endpoint=str(entry.get("endpoint") or defaults.endpoint),
            use_ssl=bool(entry.get("use_ssl", defaults.use_ssl)),
        )

    def save(self, credentials: Credentials) -> None:
        data = self._read()
        previous = data.get(CONFIG_KEY)
        if isinstance(previous, dict):
            old_key = previous.get("access_key_id")
            if old_key and old_key != credentials.access_key_id:
                self._keychain.delete_secret(str(old_key))
        self._keychain.set_secret(credentials.access_key_id, credentials.secret_access_key)
        data[CONFIG_KEY] = {
            "bucket": credentials.bucket,
            "access_key_id": credentials.access_key_id,
            "endpoint": credentials.endpoint,
            "region": credentials.region,
            "use_ssl": credentials.use_ssl,
        }
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        entry = data.pop(CONFIG_KEY, None)
        if isinstance(entry, dict) and entry.get("access_key_id"):
            self._keychain.delete_secret(str(entry["access_key_id"]))
        self._write(data)

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
