from __future__ import annotations
"""Parsing of S3 ``ListBucketResult`` documents."""
from datetime import datetime
from typing import Optional
import xml.etree.ElementTree as ET

from .errors import ParseError
from .models import ListResult, ObjectEntry, PrefixEntry


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local(child.tag) == name:
            return child.text or ""
    return None


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ParseError(f"Invalid LastModified value: {value!r}") from exc


def object_name(key: str) -> str:
    return key.split("/")[-1]


def prefix_name(prefix: str) -> str:
    parts = [part for part in prefix.split("/") if part]
    return parts[-1] if parts else ""


def parse_list_response(xml: str | bytes) -> ListResult:
    """Extract files and folders from a listing body, in document order.

    ``Contents`` entries missing any of ``Key``, ``Size`` or ``LastModified``
    are skipped, as are ``CommonPrefixes`` entries without a ``Prefix``.
    """

    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as exc:
        raise ParseError(f"Malformed listing response: {exc}") from exc
    if _local(root.tag) != "ListBucketResult":
        raise ParseError(f"Unexpected root element <{_local(root.tag)}>")

    result = ListResult()
    for element in root:
        name = _local(element.tag)
        if name == "Contents":
            key = _child_text(element, "Key")
            size = _child_text(element, "Size")
            last_modified = _child_text(element, "LastModified")
            if key is None or size is None or last_modified is None:
                continue
            try:
                size_value = int(size.strip())
            except ValueError as exc:
                raise ParseError(f"Invalid Size for {key!r}: {size!r}") from exc
            if size_value < 0:
                raise ParseError(f"Negative Size for {key!r}: {size_value}")
            result.files.append(
                ObjectEntry(
                    key=key,
                    size=size_value,
                    last_modified=parse_timestamp(last_modified),
                    name=object_name(key),
                )
            )
        elif name == "CommonPrefixes":
            prefix = _child_text(element, "Prefix")
            if prefix is None:
                continue
            result.folders.append(PrefixEntry(prefix=prefix, name=prefix_name(prefix)))
        elif name == "IsTruncated":
            result.is_truncated = (element.text or "").strip().lower() == "true"
        elif name in ("NextContinuationToken", "NextMarker"):
            result.next_continuation_token = element.text or None
    return result
