"""CSV projection of a version history — one row per Decision.

Columns (fixed, header always present)::

    version_id, timestamp, decision_id, summary, rationale

``timestamp`` is the decision's ISO 8601 timestamp. Sequence values
(``rationale``) are joined with ``CSV_LIST_DELIMITER``. Quoting follows
RFC 4180: a field containing a comma, quote or line break is wrapped in
double quotes and its quotes are doubled. Rows are CRLF-terminated.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence

from clarity.models.history import VersionRecord
from clarity.utils.clock import iso

CSV_HEADER = ("version_id", "timestamp", "decision_id", "summary", "rationale")

CSV_LIST_DELIMITER = "; "


def _cell(value) -> str:
    if isinstance(value, (list, tuple)):
        return CSV_LIST_DELIMITER.join(str(v) for v in value)
    return "" if value is None else str(value)


def render_csv(history: Sequence[VersionRecord]) -> tuple[bytes, int]:
    """Return ``(csv_bytes, data_row_count)``."""
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)

    rows = 0
    for version in history:
        for decision in version.decisions:
            writer.writerow([
                _cell(version.id),
                iso(decision.timestamp),
                _cell(decision.id),
                _cell(decision.summary),
                _cell(decision.rationale),
            ])
            rows += 1
    return buf.getvalue().encode("utf-8"), rows
