"""Eligibility rules for change tracking."""

import os
import stat
from collections.abc import Iterable
from pathlib import Path

HIDDEN_PREFIX = "."
BACKUP_SUFFIX = "~"


def normalize_path(path: str | bytes | os.PathLike) -> Path:
    """Return the absolute, normalized form of ``path`` without resolving symlinks."""
    return Path(os.path.normpath(os.path.abspath(os.fsdecode(path))))


class PathClassifier:
    """Decides whether a path is an ordinary, visible file under the root.

    A path is eligible when all of the following hold:
    - it exists and is a regular file (symlinks are followed)
    - its name does not end with a backup marker (``foo~``)
    - no segment relative to the root is hidden (``.git``) or an excluded
      build directory (``target``)
    """

    def __init__(
        self,
        root: str | Path,
        excluded_dirs: Iterable[str] = ("target",),
        backup_suffix: str = BACKUP_SUFFIX,
    ):
        self.root = normalize_path(root)
        self.excluded_dirs = frozenset(excluded_dirs)
        self.backup_suffix = backup_suffix

    def is_excluded_dir(self, name: str) -> bool:
        """Check if a directory name is never descended into."""
        return name.startswith(HIDDEN_PREFIX) or name in self.excluded_dirs

    def is_excluded(self, path: str | Path) -> bool:
        """Check the name-based rules only, without touching the filesystem."""
        path = normalize_path(path)
        if path.name.endswith(self.backup_suffix):
            return True
        try:
            rel_path = path.relative_to(self.root)
        except ValueError:
            return True
        return any(self.is_excluded_dir(part) for part in rel_path.parts)

    def is_eligible(self, path: str | Path) -> bool:
        """Check if a path is subject to change tracking."""
        if self.is_excluded(path):
            return False
        try:
            mode = os.stat(path).st_mode
        except OSError:
            # Gone before we got to it
            return False
        return stat.S_ISREG(mode)
