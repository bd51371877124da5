"""Common utilities shared by the extractor and its CLI."""

from .config import ConfigLoader
from .logging import setup_logging, setup_logging_from_config, LogContext
from .logging_config import LoggingConfig
from .errors import (
    ZipExtractError, InvalidTargetError, ArchiveOpenError,
    ArchiveCorruptError, OutOfBoundsError, MaterializationError
)
from .path_utils import split_entry_name, strip_absolute_prefix, to_posix

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'setup_logging_from_config',
    'LogContext',
    'ZipExtractError',
    'InvalidTargetError',
    'ArchiveOpenError',
    'ArchiveCorruptError',
    'OutOfBoundsError',
    'MaterializationError',
    'split_entry_name',
    'strip_absolute_prefix',
    'to_posix',
]
