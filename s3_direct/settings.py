from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import dataclass
import json
from pathlib import Path


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    endpoint: str = "s3.cubbit.eu"
    region: str = "eu-west-1"
    use_ssl: bool = True
    timeout: int = 60


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3d_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        return AppSettings(
            endpoint=_text(data.get("endpoint"), AppSettings.endpoint),
            region=_text(data.get("region"), AppSettings.region),
            use_ssl=data["use_ssl"] if isinstance(data.get("use_ssl"), bool) else AppSettings.use_ssl,
            timeout=_positive_int(data.get("timeout"), AppSettings.timeout),
        )

    def save(self, settings: AppSettings) -> None:
        payload = {
            "endpoint": settings.endpoint.strip() or AppSettings.endpoint,
            "region": settings.region.strip() or AppSettings.region,
            "use_ssl": bool(settings.use_ssl),
            "timeout": max(int(settings.timeout), 1),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return


def _text(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _positive_int(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
