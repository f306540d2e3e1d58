"""
Rule Repository Management
=========================

This module turns a rule directory into a RuleCollection. It coordinates the
file locator (which files exist) and the rule parser (what each file says), and
it owns the one piece of cross-file logic in a scan: duplicate id detection.

Duplicate policy: the first file to define an id, in traversal order, wins.
Later files with the same id are excluded from the collection and recorded as
a conflict. Conflicts are reported once, as a batch, after the whole directory
has been scanned - a duplicate never stops or interrupts the scan.

Key responsibilities:
1. Rule discovery through the DefinitionFileLocator
2. Parsing through the RuleDefinitionParser (unrecognized extensions are ignored)
3. First-seen-wins de-duplication with conflict reporting
4. Scan statistics and a summary block in the log
"""

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.rule_record import DuplicateConflict, RuleRecord
from ..parsers.rule_parser import RuleDefinitionParser
from .file_locator import DefinitionFileLocator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleCollection:
    """
    Immutable result of scanning one rule directory.

    Attributes:
        name: Collection label used in logs and reports ('active' / 'inactive')
        directory: Scanned directory, or None for an empty placeholder collection
        records: De-duplicated rules in traversal order
        content_paths: Rule id -> source path, covering exactly ``records``
        conflicts: Duplicate id conflicts found during the scan
        statistics: Discovery and parsing counters
    """

    name: str
    directory: Optional[str]
    records: Tuple[RuleRecord, ...] = ()
    content_paths: Mapping[str, str] = field(default_factory=dict)
    conflicts: Tuple[DuplicateConflict, ...] = ()
    statistics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'content_paths', MappingProxyType(dict(self.content_paths)))
        object.__setattr__(self, 'statistics', MappingProxyType(dict(self.statistics)))

    @classmethod
    def empty(cls, name: str) -> 'RuleCollection':
        """Collection used when an optional directory was not configured."""
        return cls(name=name, directory=None)

    def content_path(self, rule_id: str) -> Optional[str]:
        return self.content_paths.get(rule_id)

    def __len__(self) -> int:
        return len(self.records)


class RuleRepository:
    """
    Scans rule directories into RuleCollection objects.

    Each call to ``scan`` starts from scratch; nothing is carried over between
    scans, so the same repository can build the active and the inactive
    collection, even concurrently.
    """

    def __init__(self, parser: Optional[RuleDefinitionParser] = None):
        """
        Initialize the repository.

        Args:
            parser: Rule parser to use (a RuleDefinitionParser by default)
        """
        self.parser = parser or RuleDefinitionParser()

    def scan(self, directory_path: str, name: str = 'rules') -> RuleCollection:
        """
        Discover, parse and de-duplicate every rule definition under a directory.

        Args:
            directory_path: Directory to scan recursively
            name: Collection label for logs and reports

        Returns:
            RuleCollection: Rules that survived parsing and de-duplication
        """
        logger.info(f"Parsing rule definitions for '{name}' from {directory_path}")

        statistics: Dict[str, Any] = {
            'discovery': {},
            'parsing': {},
            'attack_analysis': {}
        }

        # Phase 1: discovery
        start_time = time.time()
        locator = DefinitionFileLocator()
        all_files = locator.locate(directory_path)
        rule_files = [path for path in all_files if self.parser.can_parse(path)]
        discovery_time = time.time() - start_time

        statistics['discovery'] = {
            'directories_scanned': locator.last_scan_stats['directories_scanned'],
            'files_found': len(all_files),
            'files_discovered': len(rule_files),
            'files_ignored': len(all_files) - len(rule_files),
            'entries_skipped': locator.last_scan_stats['entries_skipped'],
            'discovery_time_seconds': discovery_time
        }
        logger.info(f"Found {len(rule_files)} rule definition files in {directory_path}")

        # Phase 2: parsing and de-duplication
        start_time = time.time()
        records, content_paths, conflicts, failed = self._parse_and_deduplicate(rule_files)
        parsing_time = time.time() - start_time
        duplicates_excluded = sum(len(conflict.files) - 1 for conflict in conflicts)

        statistics['parsing'] = {
            'total_files': len(rule_files),
            'successful_parses': len(records) + duplicates_excluded,
            'failed_parses': failed,
            'duplicates_excluded': duplicates_excluded,
            'unique_rules': len(records),
            'parsing_time_seconds': parsing_time,
            'files_per_second': len(rule_files) / parsing_time if parsing_time > 0 else 0
        }
        statistics['attack_analysis'] = self._analyze_records(records)

        if conflicts:
            self._report_conflicts(directory_path, conflicts)

        collection = RuleCollection(
            name=name,
            directory=directory_path,
            records=tuple(records),
            content_paths=content_paths,
            conflicts=tuple(conflicts),
            statistics=statistics
        )
        self._log_scan_summary(collection)
        return collection

    def _parse_and_deduplicate(self, rule_files: List[str]
                               ) -> Tuple[List[RuleRecord], Dict[str, str], List[DuplicateConflict], int]:
        """
        Parse files in order, keeping the first record seen for every id.

        Returns:
            Tuple of (records, content paths, conflicts, number of failed files)
        """
        records: List[RuleRecord] = []
        first_seen: Dict[str, str] = {}
        conflicts_by_id: Dict[str, DuplicateConflict] = {}
        failed = 0

        for i, file_path in enumerate(rule_files, 1):
            if i % 100 == 0:
                logger.info(f"Processing file {i}/{len(rule_files)}")

            record = self.parser.parse(file_path)
            if record is None:
                failed += 1
                continue

            existing_path = first_seen.get(record.id)
            if existing_path is not None:
                logger.debug(f"Duplicate rule id '{record.id}' in {file_path} (first defined in {existing_path})")
                conflict = conflicts_by_id.get(record.id)
                if conflict is None:
                    conflict = DuplicateConflict(rule_id=record.id, files=[existing_path])
                    conflicts_by_id[record.id] = conflict
                if file_path not in conflict.files:
                    conflict.files.append(file_path)
                continue

            first_seen[record.id] = file_path
            records.append(record)

        return records, first_seen, list(conflicts_by_id.values()), failed

    @staticmethod
    def _analyze_records(records: List[RuleRecord]) -> Dict[str, int]:
        """Aggregate identifier counts across parsed rules for the statistics block."""
        unique_tactics = set()
        unique_techniques = set()
        total_tactics = 0
        total_techniques = 0

        for record in records:
            unique_tactics.update(record.tactics)
            unique_techniques.update(record.relevant_techniques)
            total_tactics += len(record.tactics)
            total_techniques += len(record.relevant_techniques)

        return {
            'total_tactics': total_tactics,
            'unique_tactics': len(unique_tactics),
            'total_techniques': total_techniques,
            'unique_techniques': len(unique_techniques),
            'rules_without_mappings': sum(1 for record in records if not record.associated_ids())
        }

    @staticmethod
    def _report_conflicts(directory_path: str, conflicts: List[DuplicateConflict]) -> None:
        """Emit the batch duplicate diagnostic for one scan."""
        logger.error("-" * 50)
        logger.error(f"Found {len(conflicts)} rule IDs with duplicate definitions in {directory_path}:")
        for conflict in conflicts:
            logger.error(f"  - ID: '{conflict.rule_id}' found in files:")
            for file_path in conflict.files:
                logger.error(f"    * {file_path}")
        logger.error("Only the first definition of each ID was kept.")
        logger.error("-" * 50)

    @staticmethod
    def _log_scan_summary(collection: RuleCollection) -> None:
        """Log a summary block for operational visibility."""
        stats = collection.statistics
        discovery = stats['discovery']
        parsing = stats['parsing']
        attack = stats['attack_analysis']

        logger.info("=" * 60)
        logger.info(f"RULE SCAN SUMMARY ({collection.name})")
        logger.info("=" * 60)
        logger.info(f"Discovery: {discovery['files_discovered']} rule files "
                    f"({discovery['files_ignored']} other files ignored) "
                    f"in {discovery['discovery_time_seconds']:.2f}s")
        logger.info(f"Parsing: {parsing['unique_rules']} unique rules kept, "
                    f"{parsing['failed_parses']} files skipped, "
                    f"{parsing['duplicates_excluded']} duplicates excluded")
        logger.info(f"Coverage: {attack['unique_techniques']} unique techniques, "
                    f"{attack['unique_tactics']} unique tactics")
        logger.info("=" * 60)
