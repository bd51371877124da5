"""Create files, directories and symlinks for certified entry paths."""

import logging
import os
from typing import TYPE_CHECKING

from .archive import EntryKind, EntryRecord
from .common.errors import MaterializationError
from .resolver import ResolvedPath

if TYPE_CHECKING:
    from .extractor import ExtractionOptions

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 65536  # 64 KB chunks

_FILE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_NOFOLLOW", 0)


def _fail(action: str, path: str, entry_name: str, error: Exception) -> MaterializationError:
    return MaterializationError(
        f"Failed to {action} {path} while processing file {entry_name}: {error}",
        path=path,
        entry_name=entry_name,
        cause=error,
    )


def make_directory(path: str, mode: int, entry_name: str) -> None:
    """Create a directory (and missing ancestors) and apply its mode.

    An existing directory is not an error; an existing non-directory is.
    """
    try:
        os.makedirs(path, exist_ok=True)
        os.chmod(path, mode)
    except OSError as e:
        raise _fail("create directory", path, entry_name, e) from e


def write_file(path: str, entry: EntryRecord, mode: int) -> int:
    """Stream entry content into a new regular file.

    The final path component is opened with O_NOFOLLOW, so a symlink
    sitting at the destination is refused instead of written through.

    Returns:
        Number of bytes written
    """
    written = 0
    try:
        fd = os.open(path, _FILE_FLAGS, 0o600)
    except OSError as e:
        raise _fail("create file", path, entry.name, e) from e

    try:
        with os.fdopen(fd, 'wb') as target, entry.open() as source:
            while chunk := source.read(COPY_CHUNK_SIZE):
                target.write(chunk)
                written += len(chunk)
            os.fchmod(target.fileno(), mode)
    except OSError as e:
        raise _fail("write file", path, entry.name, e) from e

    return written


def make_symlink(path: str, entry: EntryRecord) -> None:
    """Create a symlink whose target is exactly the entry's raw link bytes."""
    if entry.link_target is None:
        raise MaterializationError(
            f"Symlink entry {entry.name} has no link target",
            path=path,
            entry_name=entry.name,
        )
    try:
        os.symlink(entry.link_target, os.fsencode(path))
    except (OSError, ValueError) as e:  # ValueError: NUL byte in the target
        raise _fail("create symlink", path, entry.name, e) from e


def materialize(resolved: ResolvedPath, entry: EntryRecord, options: "ExtractionOptions") -> None:
    """Write the filesystem object for one entry.

    Args:
        resolved: Certified destination
        entry: Entry being extracted
        options: Supplies default modes for entries without unix permissions

    Raises:
        MaterializationError: If the filesystem operation fails
        ArchiveCorruptError: If the content stream is corrupt
    """
    if not resolved.certified:
        raise ValueError(f"Refusing to write uncertified path {resolved.path}")

    path = resolved.path
    match entry.kind:
        case EntryKind.DIRECTORY:
            mode = entry.posix_mode if entry.posix_mode is not None else options.default_dir_mode
            logger.debug(f"mkdir {path} (mode {mode:o})")
            make_directory(path, mode, entry.name)
        case EntryKind.FILE:
            mode = entry.posix_mode if entry.posix_mode is not None else options.default_file_mode
            size = write_file(path, entry, mode)
            logger.debug(f"Wrote {size} bytes to {path} (mode {mode:o})")
        case EntryKind.SYMLINK:
            logger.debug(f"Creating symlink {path} -> {entry.link_target!r}")
            make_symlink(path, entry)
