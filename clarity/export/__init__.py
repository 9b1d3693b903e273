"""Clarity Export — version history as downloadable artifacts.

Public surface
--------------
``export``              — history + format → ``Artifact``
``parse_json_history``  — re-read a json export
``ExportFormat``        — json | csv | document
``Artifact``            — bytes + media type + filename
"""

from .artifact import Artifact, ExportFormat
from .csv_export import CSV_HEADER, CSV_LIST_DELIMITER
from .exporter import export, parse_json_history

__all__ = [
    "Artifact",
    "CSV_HEADER",
    "CSV_LIST_DELIMITER",
    "ExportFormat",
    "export",
    "parse_json_history",
]
