"""Export result models."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class ExportArtifact:
    """One rendered report, created per (history, format) pair.

    ``content`` is the rendered text for markdown/html and the PDF bytes for pdf.
    """

    format: str
    path: Path
    content: str | bytes
