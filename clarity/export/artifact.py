"""Artifact — the payload an export produces, plus its declared media type."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from clarity.errors import UnsupportedFormat


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    DOCUMENT = "document"

    @classmethod
    def parse(cls, value: "ExportFormat | str") -> "ExportFormat":
        """Accept an ExportFormat or its name in any case.

        Raises:
            UnsupportedFormat: anything other than json, csv or document.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormat(
                f"unsupported export format {value!r}",
                {"format": str(value), "supported": [f.value for f in cls]},
            ) from None

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.DOCUMENT: "application/pdf",
}

_EXTENSIONS = {
    ExportFormat.JSON: "json",
    ExportFormat.CSV: "csv",
    ExportFormat.DOCUMENT: "pdf",
}

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-") or "project"


class Artifact(BaseModel):
    """A complete export: bytes plus the media type they are encoded in."""

    format: ExportFormat
    media_type: str
    filename: str
    content: bytes
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)

    def text(self) -> str:
        """Decoded content for the text formats (json, csv)."""
        return self.content.decode("utf-8")

    def save(self, path: Path | None = None) -> Path:
        """Write the artifact to *path* (default: ``./<filename>``).

        Creates parent directories if needed.

        Returns:
            The path where the file was written.
        """
        path = Path(path) if path is not None else Path(self.filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.content)
        return path
