"""Helpers for turning untrusted archive entry names into path segments."""

import re
from typing import Tuple

_DRIVE_PREFIX = re.compile(r'^[A-Za-z]:')


def to_posix(name: str) -> str:
    """Convert Windows separators to forward slashes."""
    return name.replace('\\', '/')


def strip_absolute_prefix(name: str) -> str:
    """Neutralize absolute-looking prefixes of an entry name.

    Examples:
        >>> strip_absolute_prefix("/etc/passwd")
        'etc/passwd'
        >>> strip_absolute_prefix("C:/Windows/win.ini")
        'Windows/win.ini'
    """
    name = to_posix(name)
    name = _DRIVE_PREFIX.sub('', name)
    return name.lstrip('/')


def split_entry_name(name: str) -> Tuple[str, ...]:
    """Split an entry name into relative path segments.

    Empty and ``.`` segments are dropped. ``..`` segments are kept so the
    caller can normalize them and check containment afterwards.
    """
    return tuple(
        part for part in strip_absolute_prefix(name).split('/')
        if part not in ('', '.')
    )
