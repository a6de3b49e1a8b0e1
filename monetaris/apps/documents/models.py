from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, computed_field

from monetaris.core.enums import DocumentType

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_file_size(size_bytes: int) -> str:
    """Human readable size with up to two decimals, e.g. ``1.5 KB``."""
    value = float(size_bytes)
    order = 0
    while value >= 1024 and order < len(_SIZE_UNITS) - 1:
        order += 1
        value /= 1024
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[order]}"


class DocumentOut(BaseModel):
    id: str
    debtor_id: str
    name: str
    type: DocumentType
    size_bytes: int
    preview_url: str | None = None
    uploaded_at: datetime

    @computed_field  # type: ignore[misc]
    @property
    def size_formatted(self) -> str:
        return format_file_size(self.size_bytes)


class DocumentDownload(BaseModel):
    content: bytes
    content_type: str
    file_name: str
