"""Exception hierarchy for cr-tool.

Each class carries its propagation policy:
  - ConfigError / InputError  → fatal, raised before any network or disk I/O
  - RemoteReviewError         → fatal, boundary failure surfaced verbatim
  - CacheError                → best-effort, callers log and continue
  - SourceInfoError           → best-effort, history gets no source info
  - stats failures            → logged by the reviewer, history gets empty stats
  - ExportError               → isolated to the one format that failed
"""

from __future__ import annotations


class CrToolError(Exception):
    """Base class for every error raised by cr-tool."""


class ConfigError(CrToolError):
    """Missing or invalid configuration (credential, model, endpoint, template)."""


class InputError(CrToolError):
    """The diff handed to the reviewer cannot be reviewed."""


class EmptyInputError(InputError):
    def __init__(self, message: str = "diff content is empty"):
        super().__init__(message)


class InputTooLargeError(InputError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"diff content exceeds the size limit ({size} > {limit} bytes)")


class RemoteReviewError(CrToolError):
    """The text-generation service failed or returned no usable answer."""


class CacheError(CrToolError):
    pass


class CacheWriteError(CacheError):
    pass


class CacheReadError(CacheError):
    pass


class SourceInfoError(CrToolError):
    """Version-control metadata could not be read (not a repository, git missing, ...)."""


class ExportError(CrToolError):
    pass


class UnsupportedFormatError(ExportError):
    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"unsupported export format: {fmt!r}")


class ExportIOError(ExportError):
    pass


class PdfConversionError(ExportError):
    pass
