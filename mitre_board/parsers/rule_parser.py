"""
Rule Definition Parser
======================

This module implements parsing for the board's rule definition files. A rule
definition is a YAML (or JSON) mapping; only a handful of keys matter here:

    id: 7a1c...                        # required, trimmed, must not be empty
    title: Suspicious LSASS access     # optional, falls back to 'name', then to id
    description: ...                   # optional, falls back to a placeholder
    tactics:                           # optional list of tactic identifiers
      - TA0006
    relevantTechniques:                # optional list of technique identifiers
      - T1003
      - T1003.001

Everything else in the document is ignored. All defaulting and trimming happens
here, once, so that later stages only ever handle RuleRecord objects. Files that
fail to decode or lack an id are skipped with a warning.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from ..config import DEFAULT_DESCRIPTION, SUPPORTED_EXTENSIONS, YAML_EXTENSIONS
from ..models.rule_record import RuleRecord
from .base_parser import BaseRuleParser

logger = logging.getLogger(__name__)


class RuleDefinitionParser(BaseRuleParser):
    """
    Parser for YAML/JSON detection rule definitions.

    The parser keeps no state, so a single instance can be shared by concurrent
    scans.
    """

    def __init__(self):
        super().__init__("RuleDefinition")

    def get_supported_extensions(self) -> Set[str]:
        return set(SUPPORTED_EXTENSIONS)

    def parse(self, file_path: str) -> Optional[RuleRecord]:
        """
        Parse one rule definition file.

        The parsing process follows these steps:
        1. Read the file content (size-limited, UTF-8)
        2. Decode it as YAML or JSON depending on the extension
        3. Check that the document is a mapping with a usable 'id'
        4. Normalize title, description and the two identifier lists

        Args:
            file_path: Path to the rule definition file

        Returns:
            RuleRecord: Normalized rule, or None if the file was skipped
        """
        content = self.safe_file_read(file_path)
        if content is None:
            return None

        document = self._load_document(file_path, content)
        if document is None:
            return None

        record = self.build_record(document, file_path)
        if record is None:
            return None

        logger.debug(f"Parsed rule '{record.id}' from {file_path}: "
                     f"{len(record.tactics)} tactics, {len(record.relevant_techniques)} techniques")
        return record

    def _load_document(self, file_path: str, content: str) -> Optional[Dict[str, Any]]:
        """Decode file content into a mapping, or log and return None."""
        extension = Path(file_path).suffix.lower()

        try:
            if extension in YAML_EXTENSIONS:
                # safe_load never constructs arbitrary Python objects
                document = yaml.safe_load(content)
            else:
                document = json.loads(content)
        except yaml.YAMLError as e:
            logger.warning(f"Skipping {file_path}: YAML parsing error ({e})")
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping {file_path}: JSON parsing error ({e})")
            return None

        if document is None:
            logger.warning(f"Skipping {file_path}: empty document")
            return None

        if not isinstance(document, dict):
            logger.warning(f"Skipping {file_path}: document is a {type(document).__name__}, expected a mapping")
            return None

        return document

    def build_record(self, document: Dict[str, Any], file_path: str) -> Optional[RuleRecord]:
        """
        Turn a decoded document into a RuleRecord.

        Args:
            document: Decoded rule definition mapping
            file_path: Source file path, kept on the record

        Returns:
            RuleRecord: Normalized rule, or None if the document has no usable id
        """
        rule_id = self._scalar_text(document.get('id'))
        if not rule_id:
            logger.warning(f"Skipping rule file {file_path}: missing 'id' field")
            return None

        title = document.get('title')
        if title is None:
            title = document.get('name')
        title = self._scalar_text(title)
        if title is None:
            title = rule_id

        description = self._scalar_text(document.get('description'))
        if description is None:
            description = DEFAULT_DESCRIPTION

        return RuleRecord(
            id=rule_id,
            title=title,
            description=description,
            tactics=self._identifier_list(document, 'tactics', file_path),
            relevant_techniques=self._identifier_list(document, 'relevantTechniques', file_path),
            source_path=file_path
        )

    @staticmethod
    def _scalar_text(value: Any) -> Optional[str]:
        """Trimmed text of a scalar YAML value; None for missing, boolean or structured values."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, (int, float)):
            return str(value)
        return None

    @staticmethod
    def _identifier_list(document: Dict[str, Any], key: str, file_path: str) -> Tuple[str, ...]:
        """
        Normalize one identifier list field.

        Entries are trimmed; empty and non-string entries are dropped, and repeated
        entries are kept once in first-seen order. A bare string is read as a
        one-element list; any other non-list value is ignored with a warning.
        """
        raw = document.get(key)
        if raw is None:
            return ()
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            logger.warning(f"Ignoring '{key}' in {file_path}: expected a list, got {type(raw).__name__}")
            return ()

        identifiers: List[str] = []
        for entry in raw:
            if not isinstance(entry, str):
                continue
            identifier = entry.strip()
            if identifier and identifier not in identifiers:
                identifiers.append(identifier)
        return tuple(identifiers)
