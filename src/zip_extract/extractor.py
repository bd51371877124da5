"""Extraction coordinator: drives the entry stream into the target directory."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .archive import ArchiveHandle, EntryKind, EntryRecord, open_archive
from .common.errors import InvalidTargetError, MaterializationError, ZipExtractError
from .common.logging import LogContext
from .materializer import make_directory, materialize
from .resolver import ResolvedPath, certify, recertify, resolve

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755
MACOS_METADATA_PREFIX = "__MACOSX/"


@dataclass
class ExtractionOptions:
    """Options for a single extraction."""
    dir: str  # Must be absolute
    on_entry: Optional[Callable[[EntryRecord], None]] = None
    default_file_mode: int = DEFAULT_FILE_MODE
    default_dir_mode: int = DEFAULT_DIR_MODE
    skip_macos_metadata: bool = True


class ExtractionState(Enum):
    """Lifecycle of one extraction."""
    INIT = "init"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ExtractionSummary:
    """Counts of what an extraction wrote."""
    target: str
    entries: int = 0
    files: int = 0
    directories: int = 0
    symlinks: int = 0
    skipped: int = 0

    def record(self, kind: EntryKind) -> None:
        if kind is EntryKind.FILE:
            self.files += 1
        elif kind is EntryKind.DIRECTORY:
            self.directories += 1
        else:
            self.symlinks += 1


class ExtractionCoordinator:
    """Extracts one archive into one target directory.

    Entries are processed strictly in archive order, one at a time. On the
    first error the extraction is aborted: the archive is closed, entries
    written so far stay on disk, and the error is re-raised.
    """

    def __init__(self, source: Path | str, options: ExtractionOptions) -> None:
        self.source = os.fspath(source)
        self.options = options
        self.state = ExtractionState.INIT
        self.root: Optional[str] = None
        self.summary: Optional[ExtractionSummary] = None

    def run(self) -> ExtractionSummary:
        """Run the extraction.

        Returns:
            Summary of the written entries

        Raises:
            InvalidTargetError: If options.dir is not absolute
            ArchiveOpenError: If the source cannot be read
            ArchiveCorruptError: If the archive is malformed
            OutOfBoundsError: If an entry escapes the target directory
            MaterializationError: If a filesystem operation fails
        """
        if self.state is not ExtractionState.INIT:
            raise RuntimeError(f"Extraction of {self.source} already ran ({self.state.value})")

        target = os.fspath(self.options.dir)
        if not os.path.isabs(target):
            self.state = ExtractionState.ABORTED
            raise InvalidTargetError("Target directory is expected to be absolute", dir=target)

        with LogContext(archive=self.source, target=target):
            try:
                self.root = self._prepare_root(target)
                self.summary = ExtractionSummary(target=self.root)
                logger.info(f"Extracting {self.source} to {self.root}")

                with open_archive(self.source) as archive:
                    self.state = ExtractionState.STREAMING
                    self._stream(archive)
            except ZipExtractError as e:
                self.state = ExtractionState.ABORTED
                logger.error(f"Extraction of {self.source} aborted: {e}")
                raise
            except Exception:
                # Raised by an on_entry observer or an unexpected failure
                self.state = ExtractionState.ABORTED
                logger.exception(f"Extraction of {self.source} aborted")
                raise

            self.state = ExtractionState.COMPLETED
            logger.info(
                f"Extracted {self.summary.entries} entries "
                f"({self.summary.files} files, {self.summary.directories} directories, "
                f"{self.summary.symlinks} symlinks, {self.summary.skipped} skipped)"
            )
            return self.summary

    def _prepare_root(self, target: str) -> str:
        try:
            os.makedirs(target, exist_ok=True)
        except OSError as e:
            raise MaterializationError(
                f"Failed to create target directory {target}: {e}", path=target, cause=e
            ) from e
        return os.path.realpath(target)

    def _stream(self, archive: ArchiveHandle) -> None:
        # The next record is only pulled once the current one is fully written
        for entry in archive.entries():
            self.summary.entries += 1
            self._process(entry)

    def _process(self, entry: EntryRecord) -> None:
        if self.options.on_entry is not None:
            self.options.on_entry(entry)

        if self.options.skip_macos_metadata and entry.name.startswith(MACOS_METADATA_PREFIX):
            logger.debug(f"Skipping macOS metadata entry {entry.name}")
            self.summary.skipped += 1
            return

        logger.debug(f"Processing {entry.kind.value} entry {entry.name}")
        resolved = resolve(self.root, entry.name)
        self._ensure_ancestors(resolved)

        materialize(resolved, entry, self.options)
        if entry.kind is EntryKind.DIRECTORY:
            recertify(resolved)
        self.summary.record(entry.kind)

    def _ensure_ancestors(self, resolved: ResolvedPath) -> None:
        """Create implied parent directories top-down, certifying each one."""
        for ancestor in resolved.ancestors():
            if os.path.isdir(ancestor):
                continue
            certify(self.root, ancestor, resolved.entry_name)
            logger.debug(f"Creating implied directory {ancestor}")
            make_directory(ancestor, self.options.default_dir_mode, resolved.entry_name)
            certify(self.root, ancestor, resolved.entry_name)


def extract(source: Path | str, options: ExtractionOptions) -> ExtractionSummary:
    """Extract a zip archive into options.dir.

    Args:
        source: Path to the zip archive
        options: Extraction options; options.dir must be absolute

    Returns:
        Summary of the written entries
    """
    return ExtractionCoordinator(source, options).run()
