"""Path resolution and containment checks for archive entries.

Containment is decided on real paths, not string prefixes: a directory
component that is a symlink pointing outside the target root makes every
path below it out of bounds, even though the joined string looks fine.
"""

import os
from dataclasses import dataclass
from typing import List

from .common.errors import OutOfBoundsError
from .common.path_utils import split_entry_name


@dataclass(frozen=True)
class ResolvedPath:
    """Destination of one entry inside the target root."""
    root: str
    path: str
    entry_name: str
    certified: bool = False

    def ancestors(self) -> List[str]:
        """Directories strictly between root and path, top-down."""
        relative = os.path.relpath(self.path, self.root)
        if relative == os.curdir:
            return []
        parts = relative.split(os.sep)[:-1]
        return [os.path.join(self.root, *parts[:i]) for i in range(1, len(parts) + 1)]


def is_within(root: str, path: str) -> bool:
    """True if path equals root or lies below it (both absolute, normalized)."""
    try:
        return os.path.commonpath([root, path]) == root
    except ValueError:
        return False


def _deepest_existing_ancestor(root: str, path: str) -> str:
    current = path
    while current != root:
        current = os.path.dirname(current)
        if os.path.lexists(current):
            return current
    return root


def certify(target_root: str, path: str, entry_name: str) -> ResolvedPath:
    """Check a lexically contained path against the real filesystem.

    Args:
        target_root: Canonical (realpath) target directory
        path: Absolute candidate path below target_root
        entry_name: Archive name, for error reporting

    Returns:
        Certified ResolvedPath

    Raises:
        OutOfBoundsError: If an existing ancestor or the path itself
            resolves outside target_root
    """
    real_root = os.path.realpath(target_root)

    ancestor = os.path.realpath(_deepest_existing_ancestor(target_root, path))
    if not is_within(real_root, ancestor):
        raise OutOfBoundsError(ancestor, entry_name)

    if os.path.lexists(path):
        real_path = os.path.realpath(path)
        if not is_within(real_root, real_path):
            raise OutOfBoundsError(real_path, entry_name)

    return ResolvedPath(root=target_root, path=path, entry_name=entry_name, certified=True)


def resolve(target_root: str, entry_name: str) -> ResolvedPath:
    """Compute and certify the destination of an archive entry.

    Absolute prefixes ("/", "C:") are stripped; ".." segments are
    normalized and must not climb above target_root.

    Raises:
        OutOfBoundsError: If the entry escapes target_root
    """
    root = os.path.normpath(target_root)
    candidate = os.path.normpath(os.path.join(root, *split_entry_name(entry_name)))

    if not is_within(root, candidate):
        raise OutOfBoundsError(candidate, entry_name)

    return certify(root, candidate, entry_name)


def recertify(resolved: ResolvedPath) -> ResolvedPath:
    """Re-run the real-path check after the filesystem changed."""
    return certify(resolved.root, resolved.path, resolved.entry_name)
