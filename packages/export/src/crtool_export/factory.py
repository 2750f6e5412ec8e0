"""Format registry and the per-format export loop."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from crtool_core.errors import ExportError, UnsupportedFormatError
from crtool_export.base import BaseExporter
from crtool_export.html import HTMLExporter
from crtool_export.markdown import MarkdownExporter
from crtool_export.models import ExportArtifact
from crtool_export.pdf import PDFExporter

if TYPE_CHECKING:
    from crtool_core.models import ReviewHistory

logger = logging.getLogger(__name__)

EXPORTERS: dict[str, type[BaseExporter]] = {
    MarkdownExporter.FORMAT: MarkdownExporter,
    HTMLExporter.FORMAT: HTMLExporter,
    PDFExporter.FORMAT: PDFExporter,
}


def get_exporter(fmt: str, config: dict) -> BaseExporter:
    exporter_cls = EXPORTERS.get(fmt)
    if exporter_cls is None:
        raise UnsupportedFormatError(fmt)
    return exporter_cls(config)


def export_history(history: ReviewHistory, formats: Iterable[str], config: dict) -> list[ExportArtifact]:
    """Export ``history`` once per format and return the artifacts that succeeded.

    A failing format is logged and skipped; it never prevents the others.
    A single format name given as a plain string is treated as a one-item list.
    """
    if isinstance(formats, str):
        formats = [formats]

    artifacts: list[ExportArtifact] = []
    for fmt in formats:
        try:
            artifact = get_exporter(fmt, config).export(history)
        except ExportError as e:
            logger.error("Export to %s failed: %s", fmt, e)
            continue
        except Exception as e:
            logger.exception("Unexpected error exporting %s: %s", fmt, e)
            continue
        logger.info("Saved %s report to %s", fmt, artifact.path)
        artifacts.append(artifact)
    return artifacts
