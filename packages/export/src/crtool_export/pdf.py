"""PDF report, rendered from the HTML report by an external converter.

The HTML intermediate lives in a private TemporaryDirectory, never in the
output directory, and is removed on every exit path: success, converter
failure, timeout, or any exception in between. A partially written PDF is
removed as well, so a failed export leaves nothing behind.

Supported engines:
  wkhtmltopdf  wkhtmltopdf --page-size A4 ... <in.html> <out.pdf>
  chrome       chrome --headless --print-to-pdf=<out.pdf> file://<in.html>
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from crtool_core.errors import ExportIOError, PdfConversionError
from crtool_export.base import BaseExporter
from crtool_export.html import HTMLExporter
from crtool_export.models import ExportArtifact

if TYPE_CHECKING:
    from crtool_core.models import ReviewHistory

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
_MARGIN_MM = "20"


class PDFExporter(BaseExporter):
    FORMAT = "pdf"
    EXTENSION = "pdf"

    def __init__(self, config: dict):
        super().__init__(config)
        self.html_exporter = HTMLExporter(config)
        pdf_cfg = self.output_cfg.get("pdf") or {}
        self.engine: str = pdf_cfg.get("engine") or "wkhtmltopdf"
        self.binary: str = pdf_cfg.get("binary") or self.engine
        self.page_size: str = pdf_cfg.get("page_size") or "A4"
        self.page_numbers: bool = bool(pdf_cfg.get("page_numbers", False))
        self.timeout: float = pdf_cfg.get("timeout") or DEFAULT_TIMEOUT

    def render(self, history: ReviewHistory) -> str:
        """The intermediate HTML document fed to the converter."""
        return self.html_exporter.render(history)

    def export(self, history: ReviewHistory) -> ExportArtifact:
        html = self.render(history)
        pdf_path = self.output_path()
        self.ensure_output_dir()

        with tempfile.TemporaryDirectory(prefix="cr-tool-") as tmp_dir:
            html_path = Path(tmp_dir) / f"review_{history.id}.html"
            try:
                html_path.write_text(html, encoding="utf-8")
            except OSError as e:
                raise ExportIOError(f"could not write intermediate HTML: {e}") from e

            try:
                self._convert(html_path, pdf_path)
                content = self._read_pdf(pdf_path)
            except BaseException:
                pdf_path.unlink(missing_ok=True)
                raise

        return ExportArtifact(format=self.FORMAT, path=pdf_path, content=content)

    def build_command(self, html_path: Path, pdf_path: Path) -> list[str]:
        if self.engine == "chrome":
            return [
                self.binary,
                "--headless",
                "--disable-gpu",
                "--no-pdf-header-footer",
                f"--print-to-pdf={pdf_path}",
                html_path.resolve().as_uri(),
            ]
        if self.engine == "wkhtmltopdf":
            cmd = [
                self.binary,
                "--quiet",
                "--page-size",
                self.page_size,
                "--margin-top",
                _MARGIN_MM,
                "--margin-right",
                _MARGIN_MM,
                "--margin-bottom",
                _MARGIN_MM,
                "--margin-left",
                _MARGIN_MM,
                "--encoding",
                "UTF-8",
            ]
            if self.page_numbers:
                cmd += ["--footer-right", "[page]/[topage]"]
            return cmd + [str(html_path), str(pdf_path)]
        raise PdfConversionError(f"unknown PDF engine {self.engine!r}; use 'wkhtmltopdf' or 'chrome'")

    def _convert(self, html_path: Path, pdf_path: Path) -> None:
        cmd = self.build_command(html_path, pdf_path)
        logger.debug("Running PDF converter: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise PdfConversionError(f"PDF converter {self.binary!r} not found on PATH") from e
        except OSError as e:
            raise PdfConversionError(f"could not run PDF converter {self.binary!r}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise PdfConversionError(f"PDF conversion timed out after {self.timeout}s") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise PdfConversionError(f"PDF conversion failed (exit {result.returncode}): {detail}")
        if not pdf_path.exists():
            raise PdfConversionError(f"PDF converter produced no output at {pdf_path}")

    @staticmethod
    def _read_pdf(pdf_path: Path) -> bytes:
        try:
            return pdf_path.read_bytes()
        except OSError as e:
            raise ExportIOError(f"could not read converted PDF {pdf_path}: {e}") from e
