"""Recursive discovery of indexable files."""

from __future__ import annotations

import logging
import os
import stat as stat_module
from pathlib import Path
from typing import Callable

from omnifind.models import FileDescriptor
from omnifind.utils.files import classify_file, get_mime_type

LOGGER = logging.getLogger(__name__)

ScanProgress = Callable[[int], None]

PROGRESS_EVERY = 10


class FolderScanner:
    """Depth-first walk that collects every supported file under a root.

    A directory that cannot be listed is logged and skipped together with its
    subtree; the rest of the walk carries on.
    """

    def __init__(
        self,
        *,
        list_dir: Callable[[str], list[str]] = os.listdir,
        stat: Callable[[str], os.stat_result] = os.stat,
    ) -> None:
        self._list_dir = list_dir
        self._stat = stat

    def scan(self, root: Path | str, progress: ScanProgress | None = None) -> list[FileDescriptor]:
        found: list[FileDescriptor] = []
        visited: set[tuple[int, int]] = set()
        try:
            root_info = self._stat(str(root))
            visited.add((root_info.st_dev, root_info.st_ino))
        except OSError:
            pass  # reported when listing fails below
        self._scan_directory(str(root), found, visited, progress)
        if progress is not None:
            progress(len(found))
        LOGGER.info("Found %d supported files under %s", len(found), root)
        return found

    def _scan_directory(
        self,
        directory: str,
        found: list[FileDescriptor],
        visited: set[tuple[int, int]],
        progress: ScanProgress | None,
    ) -> None:
        try:
            names = sorted(self._list_dir(directory))
        except OSError as exc:
            LOGGER.warning("Error reading directory %s: %s", directory, exc)
            return

        for name in names:
            entry_path = os.path.join(directory, name)
            try:
                info = self._stat(entry_path)
            except OSError as exc:
                LOGGER.warning("Cannot stat %s: %s", entry_path, exc)
                continue

            if stat_module.S_ISDIR(info.st_mode):
                key = (info.st_dev, info.st_ino)
                if key in visited:
                    continue
                visited.add(key)
                self._scan_directory(entry_path, found, visited, progress)
            elif stat_module.S_ISREG(info.st_mode):
                descriptor = FileDescriptor(
                    locator=entry_path,
                    name=name,
                    declared_type=get_mime_type(name),
                    size_bytes=info.st_size,
                )
                if classify_file(descriptor) is None:
                    continue
                found.append(descriptor)
                if progress is not None and len(found) % PROGRESS_EVERY == 0:
                    progress(len(found))
