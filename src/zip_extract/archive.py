"""Zip archive adapter.

Wraps :mod:`zipfile` so the rest of the package sees an archive as a
single-pass stream of :class:`EntryRecord` objects, and every parser failure
as an :class:`ArchiveCorruptError`.
"""

import logging
import os
import stat
import struct
import zipfile
import zlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional

from .common.errors import ArchiveCorruptError, ArchiveOpenError

logger = logging.getLogger(__name__)

CENTRAL_DIR_SIGNATURE = 0x02014B50
END_OF_CENTRAL_DIR_SIGNATURE = b"PK\x05\x06"
DOS_DIRECTORY_ATTR = 0x10
MAX_COMMENT_LENGTH = 0xFFFF
ZIP64_MARKER = 0xFFFFFFFF

# End of central directory record and central directory file header
_EOCD_STRUCT = struct.Struct("<4s4H2LH")
_CENTRAL_DIR_STRUCT = struct.Struct("<4s4B4HL2L5H2L")

PARSER_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)
# zipfile refuses encrypted members and unknown compression methods at open
MEMBER_OPEN_ERRORS = PARSER_ERRORS + (RuntimeError, NotImplementedError)


class EntryKind(Enum):
    """Kind of filesystem object an entry materializes to."""
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


def unix_mode(info: zipfile.ZipInfo) -> int:
    """Unix st_mode stored in the upper half of external_attr."""
    return (info.external_attr >> 16) & 0xFFFF


def entry_kind(info: zipfile.ZipInfo) -> EntryKind:
    """Classify a zip member.

    Args:
        info: Member metadata from the central directory

    Returns:
        SYMLINK or DIRECTORY when the unix mode says so, DIRECTORY for
        names ending in '/' or MS-DOS directory attributes, FILE otherwise
    """
    mode = unix_mode(info)
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode) or info.filename.endswith('/'):
        return EntryKind.DIRECTORY
    if info.create_system == 0 and info.external_attr == DOS_DIRECTORY_ATTR:
        return EntryKind.DIRECTORY
    return EntryKind.FILE


@dataclass(frozen=True)
class EntryRecord:
    """One archive member as seen by the extractor."""
    name: str  # Raw archive name, untrusted
    kind: EntryKind
    uncompressed_size: int
    compressed_size: int = 0
    crc: int = 0
    posix_mode: Optional[int] = None  # None when the archive carries no unix mode
    link_target: Optional[bytes] = None  # Symlinks only
    _opener: Optional[Callable[[], BinaryIO]] = field(default=None, repr=False, compare=False)

    @property
    def file_name(self) -> str:
        return self.name

    def open(self) -> BinaryIO:
        """Open the decompressed content stream."""
        if self._opener is None:
            raise ValueError(f"Entry {self.name} has no readable content")
        return self._opener()


class _CheckedStream:
    """Content stream that reports parser failures as ArchiveCorruptError."""

    def __init__(self, raw: BinaryIO, source: str, entry_name: str) -> None:
        self._raw = raw
        self._source = source
        self._entry_name = entry_name

    def read(self, size: int = -1) -> bytes:
        try:
            return self._raw.read(size)
        except PARSER_ERRORS as e:
            raise ArchiveCorruptError(
                str(e), source=self._source, entry_name=self._entry_name, cause=e
            ) from e

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> "_CheckedStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ArchiveHandle:
    """Single-pass view over an open zip archive."""

    def __init__(self, zip_file: zipfile.ZipFile, source: str) -> None:
        self._zip = zip_file
        self.source = source
        self._consumed = False
        self._closed = False
        self.exhausted = False

    @property
    def closed(self) -> bool:
        return self._closed

    def entries(self) -> Iterator[EntryRecord]:
        """Return the entry stream. Can only be called once per handle."""
        if self._closed:
            raise RuntimeError(f"Archive {self.source} is closed")
        if self._consumed:
            raise RuntimeError(f"Entries of {self.source} were already consumed")
        self._consumed = True
        return self._iter_entries()

    def _iter_entries(self) -> Iterator[EntryRecord]:
        for info in self._zip.infolist():
            if self._closed:
                return
            yield self._make_record(info)
        self.exhausted = True

    def _make_record(self, info: zipfile.ZipInfo) -> EntryRecord:
        kind = entry_kind(info)
        mode = unix_mode(info)
        link_target = None
        if kind is EntryKind.SYMLINK:
            link_target = self._read_all(info)

        return EntryRecord(
            name=info.filename,
            kind=kind,
            uncompressed_size=info.file_size,
            compressed_size=info.compress_size,
            crc=info.CRC,
            posix_mode=stat.S_IMODE(mode) & 0o777 if mode else None,
            link_target=link_target,
            _opener=lambda: self._open_member(info),
        )

    def _open_member(self, info: zipfile.ZipInfo) -> _CheckedStream:
        try:
            raw = self._zip.open(info)
        except MEMBER_OPEN_ERRORS as e:
            raise ArchiveCorruptError(
                str(e), source=self.source, entry_name=info.filename, cause=e
            ) from e
        return _CheckedStream(raw, self.source, info.filename)

    def _read_all(self, info: zipfile.ZipInfo) -> bytes:
        with self._open_member(info) as stream:
            return stream.read()

    def close(self) -> None:
        if not self._closed:
            self._zip.close()
            self._closed = True
            logger.debug(f"Closed archive {self.source}")

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def find_bad_central_directory_signature(source: Path | str) -> Optional[int]:
    """Walk the central directory and return the first invalid header signature.

    Args:
        source: Path to the zip file

    Returns:
        The offending 32-bit signature, or None if the end-of-central-directory
        record is missing, the archive is zip64, or every header is valid
    """
    with open(source, 'rb') as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        tail_len = min(size, _EOCD_STRUCT.size + MAX_COMMENT_LENGTH)
        f.seek(size - tail_len)
        tail = f.read()

        pos = tail.rfind(END_OF_CENTRAL_DIR_SIGNATURE)
        if pos < 0 or pos + _EOCD_STRUCT.size > len(tail):
            return None

        fields = _EOCD_STRUCT.unpack_from(tail, pos)
        total_entries, cd_size = fields[4], fields[5]
        if cd_size == ZIP64_MARKER:
            return None

        # Measured back from the EOCD record so prepended data is tolerated
        cd_start = size - tail_len + pos - cd_size
        if cd_start < 0:
            return None

        f.seek(cd_start)
        data = f.read(cd_size)

    offset = 0
    for _ in range(total_entries):
        if offset + 4 > len(data):
            return None
        (signature,) = struct.unpack_from("<L", data, offset)
        if signature != CENTRAL_DIR_SIGNATURE:
            return signature
        if offset + _CENTRAL_DIR_STRUCT.size > len(data):
            return None
        header = _CENTRAL_DIR_STRUCT.unpack_from(data, offset)
        # filename, extra field and comment lengths
        offset += _CENTRAL_DIR_STRUCT.size + header[12] + header[13] + header[14]

    return None


def open_archive(source: Path | str) -> ArchiveHandle:
    """Open a zip archive for streaming extraction.

    Raises:
        ArchiveOpenError: If the source cannot be read
        ArchiveCorruptError: If the archive structure is invalid
    """
    source = os.fspath(source)
    try:
        zip_file = zipfile.ZipFile(source, 'r')
    except zipfile.BadZipFile as e:
        try:
            signature = find_bad_central_directory_signature(source)
        except (OSError, struct.error) as diag_error:
            logger.debug(f"Could not diagnose {source}: {diag_error}")
            signature = None

        if signature is None:
            raise ArchiveCorruptError(str(e), source=source, cause=e) from e
        raise ArchiveCorruptError(
            f"invalid central directory file header signature: 0x{signature:x}",
            source=source,
            signature=signature,
            cause=e,
        ) from e
    except ValueError as e:
        # Undecodable UTF-8 entry names and similar malformed headers
        raise ArchiveCorruptError(str(e), source=source, cause=e) from e
    except OSError as e:
        raise ArchiveOpenError(
            f"Cannot open archive {source}: {e}", source=source, cause=e
        ) from e

    logger.debug(f"Opened archive {source} with {len(zip_file.infolist())} entries")
    return ArchiveHandle(zip_file, source)
