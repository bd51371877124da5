"""Safe, ordered extraction of zip archives."""

from .archive import ArchiveHandle, EntryKind, EntryRecord, open_archive
from .common.errors import (
    ZipExtractError, InvalidTargetError, ArchiveOpenError,
    ArchiveCorruptError, OutOfBoundsError, MaterializationError
)
from .extractor import (
    ExtractionCoordinator, ExtractionOptions, ExtractionState,
    ExtractionSummary, extract
)
from .resolver import ResolvedPath, resolve

__version__ = "0.1.0"

__all__ = [
    'extract',
    'ExtractionOptions',
    'ExtractionCoordinator',
    'ExtractionState',
    'ExtractionSummary',
    'open_archive',
    'ArchiveHandle',
    'EntryKind',
    'EntryRecord',
    'resolve',
    'ResolvedPath',
    'ZipExtractError',
    'InvalidTargetError',
    'ArchiveOpenError',
    'ArchiveCorruptError',
    'OutOfBoundsError',
    'MaterializationError',
]
