"""Export engine — render a version history as json, csv or document.

``export(history, format)`` is pure: it reads the history, never mutates it,
keeps no state between calls, and either returns a complete ``Artifact`` or
raises. An empty history is not an error:

    json      →  ``[]``
    csv       →  header row only
    document  →  one "No decisions recorded" section

JSON output is lossless: ``parse_json_history(artifact.content)`` yields a
list of VersionRecords equal to the input.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog
from pydantic import ValidationError

from clarity.errors import InvalidInput
from clarity.models.history import HistoryAdapter, VersionRecord, decision_count
from .artifact import Artifact, ExportFormat, slugify
from .csv_export import render_csv
from .document import build_sections, paginate, render_pdf

logger = structlog.get_logger().bind(component="export.engine")


def _invalid_history(exc: ValidationError) -> InvalidInput:
    violations = [
        f"{'.'.join(str(p) for p in err['loc']) or 'history'}: {err['msg']}"
        for err in exc.errors()
    ]
    return InvalidInput(
        f"history is not a valid list of version records ({len(violations)} problem(s))",
        {"violations": violations},
    )


def _filename(history: Sequence[VersionRecord], fmt: ExportFormat) -> str:
    stem = slugify(history[0].project_id) if history else "project"
    return f"{stem}-history.{fmt.extension}"


def _export_json(history: list[VersionRecord]) -> Artifact:
    content = HistoryAdapter.dump_json(history, indent=2)
    return Artifact(
        format=ExportFormat.JSON,
        media_type=ExportFormat.JSON.media_type,
        filename=_filename(history, ExportFormat.JSON),
        content=content,
        metadata={"versions": len(history)},
    )


def _export_csv(history: list[VersionRecord]) -> Artifact:
    content, rows = render_csv(history)
    return Artifact(
        format=ExportFormat.CSV,
        media_type=ExportFormat.CSV.media_type,
        filename=_filename(history, ExportFormat.CSV),
        content=content,
        metadata={"row_count": rows},
    )


def _export_document(history: list[VersionRecord]) -> Artifact:
    from clarity.config import settings

    sections = build_sections(history)
    pages = paginate(
        sections,
        width=settings.export_wrap_width,
        lines_per_page=settings.export_lines_per_page,
    )
    title = (
        f"{history[0].project_id} — decision history" if history else "Decision history"
    )
    content = render_pdf(pages, title=title, lines_per_page=settings.export_lines_per_page)
    return Artifact(
        format=ExportFormat.DOCUMENT,
        media_type=ExportFormat.DOCUMENT.media_type,
        filename=_filename(history, ExportFormat.DOCUMENT),
        content=content,
        metadata={
            "page_count": len(pages),
            "section_count": len(sections),
            "section_titles": [s.title for s in sections],
        },
    )


_RENDERERS: dict[ExportFormat, Callable[[list[VersionRecord]], Artifact]] = {
    ExportFormat.JSON: _export_json,
    ExportFormat.CSV: _export_csv,
    ExportFormat.DOCUMENT: _export_document,
}


def export(history: Sequence[VersionRecord], format: ExportFormat | str) -> Artifact:
    """Render *history* in the requested format.

    Args:
        history: VersionRecords in history order (dicts are validated).
        format:  ``ExportFormat`` or one of "json", "csv", "document".

    Raises:
        UnsupportedFormat: for any other format.
        InvalidInput: an entry is not a valid version record.
    """
    fmt = ExportFormat.parse(format)
    try:
        records = HistoryAdapter.validate_python(list(history))
    except ValidationError as exc:
        raise _invalid_history(exc) from exc
    artifact = _RENDERERS[fmt](records)
    logger.info(
        "export_rendered",
        format=fmt.value,
        versions=len(records),
        decisions=decision_count(records),
        bytes=artifact.size,
    )
    return artifact


def parse_json_history(content: bytes | str) -> list[VersionRecord]:
    """Inverse of the json export."""
    try:
        return HistoryAdapter.validate_json(content)
    except ValidationError as exc:
        raise _invalid_history(exc) from exc
