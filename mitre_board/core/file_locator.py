"""
Definition File Locator
=======================

Recursively enumerates the regular files below a rule directory.

Traversal is depth-first with entries visited in lexicographic order at every
directory level, so two scans of an unchanged tree always return the same list
in the same order. That order decides which file "wins" when two definitions
share an id, which makes duplicate reports reproducible.

Entries that cannot be read, such as broken symbolic links or directories
without permissions, are skipped with a warning.
Symbolic links to directories are followed, but each real directory is
visited only once so link cycles terminate.
"""

import logging
import os
from typing import Dict, List, Set

logger = logging.getLogger(__name__)


class DefinitionFileLocator:
    """
    Finds candidate rule definition files under a root directory.

    The locator only enumerates; deciding which files are rule definitions
    (by extension) is the parser's job.

    Attributes:
        last_scan_stats: Counters from the most recent ``locate`` call
    """

    def __init__(self):
        self.last_scan_stats: Dict[str, int] = self._empty_stats()

    def locate(self, root_directory: str) -> List[str]:
        """
        Return every regular file path reachable from ``root_directory``.

        Args:
            root_directory: Directory to search

        Returns:
            List[str]: File paths in deterministic traversal order. An empty or
            entirely unreadable directory yields an empty list.
        """
        self.last_scan_stats = self._empty_stats()
        files: List[str] = []
        visited: Set[str] = set()

        self._walk(root_directory, files, visited)

        logger.debug(f"Located {len(files)} files under {root_directory} "
                     f"({self.last_scan_stats['directories_scanned']} directories, "
                     f"{self.last_scan_stats['entries_skipped']} entries skipped)")
        return files

    def _walk(self, directory: str, files: List[str], visited: Set[str]) -> None:
        real_path = os.path.realpath(directory)
        if real_path in visited:
            logger.debug(f"Already visited {real_path}, not descending into {directory} again")
            return
        visited.add(real_path)

        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as e:
            logger.warning(f"Skipping directory {directory}: cannot read ({e})")
            self.last_scan_stats['entries_skipped'] += 1
            return

        self.last_scan_stats['directories_scanned'] += 1

        for entry in entries:
            try:
                if entry.is_dir():
                    self._walk(entry.path, files, visited)
                elif entry.is_file():
                    files.append(entry.path)
                elif entry.is_symlink():
                    logger.warning(f"Skipping {entry.path}: broken symbolic link")
                    self.last_scan_stats['entries_skipped'] += 1
                else:
                    logger.debug(f"Skipping {entry.path}: not a regular file")
                    self.last_scan_stats['entries_skipped'] += 1
            except OSError as e:
                logger.warning(f"Skipping {entry.path}: cannot access ({e})")
                self.last_scan_stats['entries_skipped'] += 1

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {'directories_scanned': 0, 'entries_skipped': 0}
