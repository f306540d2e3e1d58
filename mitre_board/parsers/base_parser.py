"""
Base Parser Interface
====================

This module defines the abstract base class for rule definition parsers.
A parser takes one file path and either returns a fully normalized RuleRecord
or returns None after logging why the file was skipped. Parsers never raise for
per-file problems: one unreadable or malformed file must not stop a scan.

The base class owns the two parts every format shares: extension filtering, and
safe file reading with size limits and encoding errors handled in one place.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Set

from ..config import ENCODING, MAX_FILE_SIZE
from ..models.rule_record import RuleRecord

logger = logging.getLogger(__name__)


class BaseRuleParser(ABC):
    """
    Abstract base class for all rule definition parsers.

    The design follows the Template Method pattern - subclasses decide how a
    document is decoded and which fields it carries, while this class handles
    reading files.
    """

    def __init__(self, parser_name: str):
        """
        Initialize the base parser with identification information.

        Args:
            parser_name: Human-readable name for this parser (e.g., "RuleDefinition")
        """
        self.parser_name = parser_name

        logger.debug(f"Initialized {parser_name} parser")

    @abstractmethod
    def parse(self, file_path: str) -> Optional[RuleRecord]:
        """
        Parse a rule file and return a RuleRecord.

        Args:
            file_path: Path to the rule file to parse

        Returns:
            RuleRecord: Normalized rule, or None if the file was skipped

        Raises:
            Should not raise exceptions - all per-file errors are logged and
            reported by returning None.
        """

    @abstractmethod
    def get_supported_extensions(self) -> Set[str]:
        """
        Get the file extensions this parser supports.

        Returns:
            Set[str]: Lower-case extensions including the dot, e.g. {'.yaml', '.yml'}
        """

    def can_parse(self, file_path: str) -> bool:
        """
        Determine if this parser handles the given file, by extension only.

        Files with other extensions are ignored silently by the scanner.
        """
        return Path(file_path).suffix.lower() in self.get_supported_extensions()

    def safe_file_read(self, file_path: str, max_size: Optional[int] = None) -> Optional[str]:
        """
        Safely read file content with size limits and error handling.

        Args:
            file_path: Path to file to read
            max_size: Maximum file size in bytes (uses config default if None)

        Returns:
            str: File content, or None if reading failed
        """
        size_limit = max_size or MAX_FILE_SIZE

        try:
            file_size = Path(file_path).stat().st_size
            if file_size > size_limit:
                logger.warning(f"Skipping {file_path}: file too large ({file_size} bytes, limit {size_limit})")
                return None

            with open(file_path, 'r', encoding=ENCODING) as f:
                content = f.read()

            logger.debug(f"Read {len(content)} characters from {file_path}")
            return content

        except FileNotFoundError:
            logger.warning(f"Skipping {file_path}: file not found")
            return None
        except PermissionError:
            logger.warning(f"Skipping {file_path}: permission denied")
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Skipping {file_path}: not valid {ENCODING} ({e})")
            return None
        except OSError as e:
            logger.warning(f"Skipping {file_path}: cannot read file ({e})")
            return None

    def __str__(self) -> str:
        return f"{self.parser_name}Parser"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(parser_name='{self.parser_name}')"
