"""Error taxonomy for zip extraction."""

from typing import Any, Dict


class ZipExtractError(Exception):
    """Base exception for all zip_extract errors."""

    kind = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    @property
    def cause(self) -> BaseException | None:
        """Underlying exception, if one was wrapped."""
        return self.context.get("cause")


class InvalidTargetError(ZipExtractError):
    """Target directory is not an absolute path."""

    kind = "invalid_target"


class ArchiveOpenError(ZipExtractError):
    """Archive source could not be opened or read."""

    kind = "archive_open"


class ArchiveCorruptError(ZipExtractError):
    """Archive is structurally corrupted."""

    kind = "archive_corrupt"


class OutOfBoundsError(ZipExtractError):
    """Entry would be written outside of the target directory."""

    kind = "out_of_bounds"

    def __init__(self, path: str, entry_name: str, **context: Any) -> None:
        super().__init__(
            f'Out of bound path "{path}" found while processing file {entry_name}',
            path=path,
            entry_name=entry_name,
            **context,
        )
        self.path = path
        self.entry_name = entry_name


class MaterializationError(ZipExtractError):
    """Filesystem operation failed while writing an entry."""

    kind = "materialization"
