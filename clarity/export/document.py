"""Paginated document export — a PDF rendering of a version history.

Rendering happens in three steps so the contractual parts can be checked
without parsing PDF:

``build_sections(history)``
    One ``DocumentSection`` per VersionRecord, in input order. Each section
    carries its heading, the project brief and insight summary when present,
    and every decision (chronologically) exactly once. An empty history
    yields a single "No decisions recorded" section.

``paginate(sections, width, lines_per_page)``
    Wraps text to ``width`` characters and flows the lines onto pages.
    A section title is never left alone at the bottom of a page.

``render_pdf(pages, title)``
    Draws each page as an A4 matplotlib figure and collects them with the
    PDF backend. The visual layout is not byte-stable across matplotlib
    versions; section order and completeness are.
"""

from __future__ import annotations

import io
import textwrap
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from clarity.models.history import Decision, VersionRecord
from clarity.utils.clock import human

logger = structlog.get_logger().bind(component="export.document")

# A4 portrait, inches
_PAGE_SIZE = (8.27, 11.69)
_MARGIN_X = 0.07
_TOP_Y = 0.93
_BOTTOM_Y = 0.06

# Font size per line style
_FONT = {"title": 14, "heading": 11, "body": 9, "bullet": 9, "blank": 9}
_WEIGHT = {"title": "bold", "heading": "bold"}

# Titles need this many lines below them on the same page
_KEEP_WITH_NEXT = 3

EMPTY_SECTION_TITLE = "No decisions recorded"


@dataclass
class Line:
    text: str
    style: str = "body"   # title | heading | body | bullet | blank


@dataclass
class DocumentSection:
    title: str
    lines: list[Line] = field(default_factory=list)
    decision_ids: list[str] = field(default_factory=list)

    def add(self, text: str, style: str = "body") -> None:
        self.lines.append(Line(text, style))

    def blank(self) -> None:
        self.lines.append(Line("", "blank"))


# ── Sections ─────────────────────────────────────────────────────────────────


def _decision_block(section: DocumentSection, index: int, d: Decision) -> None:
    section.add(f"{index}. {d.summary}", "heading")
    section.add(
        f"{d.decision_type.replace('_', ' ')} · {d.state.replace('_', ' ')} · "
        f"{human(d.timestamp)} · id {d.id}"
    )
    for reason in d.rationale:
        section.add(f"• {reason}", "bullet")
    if d.evidence:
        section.add(f"Evidence: {', '.join(d.evidence)}")
    section.decision_ids.append(d.id)


def _version_section(v: VersionRecord) -> DocumentSection:
    name = v.data.name if v.data and v.data.name else v.project_id
    section = DocumentSection(title=f"{name} — {v.display_label}")
    section.add(f"Version {v.sequence} · recorded {human(v.timestamp)} · id {v.id}")
    if v.job_id:
        section.add(f"Research job {v.job_id}")

    if v.data is not None:
        d = v.data
        section.blank()
        section.add("Project brief", "heading")
        section.add(f"Problem: {d.problem or 'Not provided'}")
        section.add(f"Why current solutions fail: {d.why_current_fails or 'Not provided'}")
        section.add(f"Target persona: {d.audience or 'Not provided'}")
        section.add(f"MVP feature set: {', '.join(d.must_haves) or 'None'}")
        section.add(f"Out of scope (not now): {', '.join(d.not_now) or 'None'}")
        section.add(f"Constraints: {d.constraints or 'Not provided'}")
        section.add(f"Positioning: {d.positioning_line}")

    if v.locked.must_haves_locked or v.locked.not_now_locked:
        section.add(f"Locked must-haves: {', '.join(v.locked.must_haves_locked) or 'None'}")
        section.add(f"Locked not-now: {', '.join(v.locked.not_now_locked) or 'None'}")

    if v.insight is not None:
        counts = v.insight.summary()
        section.blank()
        section.add("Insight snapshot", "heading")
        section.add(", ".join(f"{n} {k.replace('_', ' ')}" for k, n in counts.items()))
        for p in v.insight.pain_points:
            section.add(f"• [{p.severity}] {p.description}", "bullet")

    section.blank()
    decisions = v.chronological_decisions()
    section.add(f"Decisions ({len(decisions)})", "heading")
    if not decisions:
        section.add("No decisions recorded for this version.")
    for i, d in enumerate(decisions, 1):
        _decision_block(section, i, d)
    return section


def build_sections(history: Sequence[VersionRecord]) -> list[DocumentSection]:
    if not history:
        empty = DocumentSection(title=EMPTY_SECTION_TITLE)
        empty.add("This project has no version history yet.")
        return [empty]
    return [_version_section(v) for v in history]


# ── Pagination ───────────────────────────────────────────────────────────────


def _wrap(line: Line, width: int) -> list[Line]:
    if not line.text:
        return [line]
    indent = "  " if line.style == "bullet" else ""
    chunks = textwrap.wrap(
        line.text, width=width, subsequent_indent=indent, break_on_hyphens=False,
    ) or [""]
    return [Line(chunk, line.style) for chunk in chunks]


def paginate(
    sections: Sequence[DocumentSection],
    width: int = 95,
    lines_per_page: int = 64,
) -> list[list[Line]]:
    """Flow sections onto pages of at most *lines_per_page* lines."""
    if lines_per_page < 1 or width < 10:
        raise ValueError("lines_per_page must be >= 1 and width >= 10")
    flat: list[Line] = []
    for i, section in enumerate(sections):
        if i:
            flat.append(Line("", "blank"))
        flat.extend(_wrap(Line(section.title, "title"), width))
        for line in section.lines:
            flat.extend(_wrap(line, width))

    pages: list[list[Line]] = [[]]
    for line in flat:
        page = pages[-1]
        room = lines_per_page - len(page)
        needs = _KEEP_WITH_NEXT if line.style == "title" else 1
        if room < min(needs, lines_per_page):
            pages.append([])
            page = pages[-1]
        if line.style == "blank" and not page:
            continue
        page.append(line)
    return pages


# ── Rendering ────────────────────────────────────────────────────────────────


def render_pdf(pages: Sequence[Sequence[Line]], title: str, lines_per_page: int = 64) -> bytes:
    """Draw *pages* as A4 PDF pages and return the PDF bytes."""
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.backends.backend_pdf import PdfPages
    except ImportError as e:
        raise RuntimeError(f"matplotlib required for document export: {e}") from e

    step = (_TOP_Y - _BOTTOM_Y) / max(lines_per_page, 1)

    buf = io.BytesIO()
    # CreationDate omitted so identical input renders identical metadata
    with PdfPages(buf, metadata={"Title": title, "Creator": "clarity", "CreationDate": None}) as pdf:
        total = len(pages)
        for number, page in enumerate(pages, 1):
            fig = plt.figure(figsize=_PAGE_SIZE)
            fig.text(_MARGIN_X, 0.965, title, fontsize=8, color="#666666", parse_math=False)
            y = _TOP_Y
            for line in page:
                if line.text:
                    fig.text(
                        _MARGIN_X + (0.02 if line.style == "bullet" else 0.0),
                        y,
                        line.text,
                        fontsize=_FONT.get(line.style, 9),
                        fontweight=_WEIGHT.get(line.style, "normal"),
                        va="top",
                        parse_math=False,
                    )
                y -= step
            fig.text(
                1 - _MARGIN_X, 0.03, f"Page {number} of {total}",
                fontsize=8, color="#666666", ha="right", parse_math=False,
            )
            pdf.savefig(fig)
            plt.close(fig)

    logger.debug("document_rendered", pages=len(pages), title=title)
    return buf.getvalue()
