from __future__ import annotations
"""UI-agnostic helpers for formatting listings."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version

from .models import ListResult, TransferResult

DIST_NAME = "pys3d"


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name=dist_name,
            version="",
            summary="S3-compatible object storage client with built-in SigV4 signing.",
        )
    return PackageInfo(
        name=distribution_metadata.get("Name") or dist_name,
        version=package_version,
        summary=distribution_metadata.get("Summary") or "",
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}" if suffix != "B" else f"{int(value)} {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: datetime | None) -> str:
    if not last_modified:
        return "-"
    return last_modified.strftime("%Y-%m-%d %H:%M:%S %Z").strip() or last_modified.isoformat()


def format_listing(result: ListResult) -> list[str]:
    """Render folders first, then files, one line each."""

    lines = [f"{'DIR':>10}  {'':19}  {folder.prefix}" for folder in result.folders]
    for entry in result.files:
        lines.append(
            f"{format_size(entry.size):>10}  {format_last_modified(entry.last_modified)[:19]:19}  {entry.key}"
        )
    if result.is_truncated:
        lines.append("(listing truncated; only the first page is shown)")
    return lines


def summarize_transfers(results: list[TransferResult]) -> str:
    succeeded = sum(1 for result in results if result.success)
    return f"{succeeded}/{len(results)} succeeded"
