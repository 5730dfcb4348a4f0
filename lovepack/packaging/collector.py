"""File collection: enumerates a resolved root in deterministic order.

Traversal is depth-first with entries sorted by name at every level, so
byte offsets in the bundle are reproducible for identical inputs. Only
regular files are collected; symlinks and special files are skipped.
"""

import logging
import os
from pathlib import Path

from lovepack.packaging.types import CANONICAL_GAME_NAME, CollectedFile

logger = logging.getLogger(__name__)


def _sorted_entries(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _relative(path: str, root: Path) -> str:
    # as_posix() keeps the value free of host separators
    return Path(os.path.relpath(path, root)).as_posix()


def collect_files(root: Path) -> list[CollectedFile]:
    """Return every regular file under ``root`` in traversal order.

    A single-file root yields exactly one entry named ``game.love``.
    """
    if not root.is_dir():
        return [
            CollectedFile(
                absolute_path=root,
                relative_path=CANONICAL_GAME_NAME,
                size=root.stat().st_size,
            )
        ]

    files: list[CollectedFile] = []

    def walk(directory: Path) -> None:
        for entry in _sorted_entries(directory):
            if entry.is_dir(follow_symlinks=False):
                walk(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                files.append(
                    CollectedFile(
                        absolute_path=Path(entry.path),
                        relative_path=_relative(entry.path, root),
                        size=entry.stat(follow_symlinks=False).st_size,
                    )
                )

    walk(root)
    logger.debug("Collected %d files under %s", len(files), root)
    return files


def collect_directories(root: Path) -> list[str]:
    """Return every directory under ``root`` as a relative path.

    Parents come before their children; siblings are name-sorted. Empty and
    intermediate directories are included. A single-file root has none.
    """
    if not root.is_dir():
        return []

    directories: list[str] = []

    def walk(directory: Path) -> None:
        for entry in _sorted_entries(directory):
            if entry.is_dir(follow_symlinks=False):
                directories.append(_relative(entry.path, root))
                walk(Path(entry.path))

    walk(root)
    return directories
