"""Confine conversions to files inside the upload root."""

from __future__ import annotations

import os
from pathlib import Path

from webpify.core.config import Settings
from webpify.core.logging import get_logger

logger = get_logger(__name__)


class PathGuard:
    """Decide whether a file on disk may be handed to the converter."""

    def __init__(self, settings: Settings, root: Path | None = None) -> None:
        self._settings = settings
        self._root = Path(root if root is not None else settings.upload_root)

    @property
    def root(self) -> Path:
        return self._root

    def is_convertible(self, path: str | os.PathLike) -> bool:
        """Return True when ``path`` is a readable, unconverted file under the root.

        Both paths are canonicalised first so that ``..`` segments and symlinks
        cannot escape the root. Any failure to resolve rejects the path.
        """

        candidate = Path(path)
        real_path = self.confined(candidate)
        if real_path is None:
            return False

        target = self._settings.target_extension.lower()
        if candidate.suffix.lower() == target or real_path.suffix.lower() == target:
            return False

        return real_path.is_file() and os.access(real_path, os.R_OK)

    def confined(self, path: str | os.PathLike) -> Path | None:
        """Canonical form of an existing ``path`` if it sits strictly below the root."""

        candidate = Path(path)
        try:
            real_path = candidate.resolve(strict=True)
            real_root = self._root.resolve(strict=True)
        except (OSError, RuntimeError):
            logger.debug("path_guard_unresolvable", path=str(candidate))
            return None

        if real_root not in real_path.parents:
            logger.debug("path_guard_outside_root", path=str(real_path), root=str(real_root))
            return None

        if self._in_reserved_subtree(real_path):
            logger.debug("path_guard_reserved_subtree", path=str(real_path))
            return None

        return real_path

    def _in_reserved_subtree(self, real_path: Path) -> bool:
        parts = set(real_path.parts)
        if parts.intersection(self._settings.system_dirs):
            return True
        return self._settings.content_dir in parts and self._settings.uploads_dir_name not in parts
