"""Abstract exporter interface.

Every report format implements this interface. The CLI depends on
BaseExporter and the registry in factory.py, not on a concrete renderer, so
formats can be added without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from crtool_core.errors import ExportIOError
from crtool_export.models import ExportArtifact

if TYPE_CHECKING:
    from crtool_core.models import ReviewHistory

DEFAULT_OUTPUT_DIR = "./review_results"
_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class BaseExporter(ABC):
    """Renders a ReviewHistory and persists it under ``output.dir``."""

    FORMAT: str = ""
    EXTENSION: str = ""

    def __init__(self, config: dict):
        self.config = config
        self.output_cfg: dict = config.get("output") or {}
        self.output_dir = Path(self.output_cfg.get("dir") or DEFAULT_OUTPUT_DIR)

    @abstractmethod
    def render(self, history: ReviewHistory) -> str:
        """Return the report as text. Pure; must not touch the filesystem."""

    def export(self, history: ReviewHistory) -> ExportArtifact:
        content = self.render(history)
        path = self.output_path()
        self._write(path, content)
        return ExportArtifact(format=self.FORMAT, path=path, content=content)

    def output_path(self, now: datetime | None = None) -> Path:
        stamp = (now or datetime.now()).strftime(_TIMESTAMP_FORMAT)
        return self.output_dir / f"{stamp}_review.{self.EXTENSION}"

    def ensure_output_dir(self) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportIOError(f"could not create output directory {self.output_dir}: {e}") from e

    def _write(self, path: Path, content: str) -> None:
        self.ensure_output_dir()
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExportIOError(f"could not write report {path}: {e}") from e
