"""
Rule Directory Validation
=========================

Startup checks for the rule directories given on the command line.

Think of this module as the gate in front of the scanner: a directory that
does not exist, is not a directory, or cannot be read is a configuration
mistake, and the board refuses to start rather than serve an empty or partial
view. Problems found *inside* a valid directory are the scanner's business and
are only logged.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class PathValidator:
    """Validation helpers for startup paths."""

    @staticmethod
    def validate_directory_path(dir_path: str) -> Tuple[bool, str]:
        """
        Check that a path names a readable directory.

        Args:
            dir_path: Directory path to validate

        Returns:
            Tuple[bool, str]: (is_valid, error_message)
            - is_valid: True if the directory can be scanned
            - error_message: Empty string if valid, the reason otherwise
        """
        if not dir_path or not str(dir_path).strip():
            return False, "Directory path is empty"

        try:
            path_obj = Path(dir_path).resolve()
        except (OSError, RuntimeError) as e:
            return False, f"Path resolution failed for {dir_path}: {e}"

        if not path_obj.exists():
            return False, f"Directory does not exist: {dir_path}"

        if not path_obj.is_dir():
            return False, f"Path is not a directory: {dir_path}"

        if not os.access(path_obj, os.R_OK | os.X_OK):
            return False, f"Directory is not readable: {dir_path}"

        if Path(dir_path).is_symlink():
            logger.debug(f"Directory is a symbolic link: {dir_path} -> {path_obj}")

        logger.debug(f"Directory validation passed: {path_obj}")
        return True, ""

    @classmethod
    def require_directory(cls, dir_path: str, label: str) -> str:
        """
        Validate a directory or raise ConfigurationError naming it.

        Args:
            dir_path: Directory path to validate
            label: What the directory is for, used in the error message

        Returns:
            str: The path, unchanged

        Raises:
            ConfigurationError: If the directory cannot be used
        """
        is_valid, error = cls.validate_directory_path(dir_path)
        if not is_valid:
            raise ConfigurationError(f"Invalid {label}: {error}")
        return dir_path

    @classmethod
    def optional_directory(cls, dir_path: Optional[str], label: str) -> Optional[str]:
        """Like ``require_directory``, but None means "not configured" and passes."""
        if dir_path is None:
            return None
        return cls.require_directory(dir_path, label)
