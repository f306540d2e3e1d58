"""
Board Context
=============

Everything the HTTP layer serves is computed once, at startup, and held in one
immutable BoardContext object:

    BoardSettings --build_context()--> BoardContext --create_app()--> FastAPI app

``build_context`` runs the three independent startup tasks side by side - load
and normalize the ATT&CK taxonomy, scan the active rules, scan the inactive
rules - and only returns once all of them have succeeded. If any fails, the
exception propagates and no context exists, so a half-built board can never be
served.

After construction nothing writes to the context. Request handlers share it
without locking, and gain computations derive fresh values per call.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Collection, Dict, List, Optional, Tuple

from ..config import DEFAULT_HOST, DEFAULT_PORT, MITRE_ATTACK_URL
from ..models.coverage_model import ActiveCoverage, CoverageThresholds, GainReport
from ..models.taxonomy_model import MitreData
from ..utils.logging_config import log_function_timing
from ..validators.path_validator import PathValidator
from .coverage_aggregator import CoverageAggregator
from .gain_engine import GainEngine
from .rule_repository import RuleCollection, RuleRepository
from .taxonomy_loader import TaxonomyLoader
from .taxonomy_normalizer import TaxonomyNormalizer

logger = logging.getLogger(__name__)

ACTIVE_COLLECTION = 'active'
INACTIVE_COLLECTION = 'inactive'


@dataclass(frozen=True)
class BoardSettings:
    """
    Runtime configuration gathered from the command line.

    Attributes:
        active_directory: Directory of implemented rules (required)
        inactive_directory: Directory of not-yet-implemented rules (optional)
        taxonomy_url: STIX bundle URL
        taxonomy_file: Local STIX bundle; used instead of ``taxonomy_url`` when set
        host: Interface to bind the HTTP server to
        port: Port to bind the HTTP server to
        static_dir: Directory with the browser client, served at '/'
        log_level: Root log level name
        log_file: Optional rotating log file
    """

    active_directory: str
    inactive_directory: Optional[str] = None
    taxonomy_url: str = MITRE_ATTACK_URL
    taxonomy_file: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    static_dir: Optional[str] = None
    log_level: str = 'INFO'
    log_file: Optional[str] = None


@dataclass(frozen=True)
class BoardContext:
    """
    Immutable startup snapshot shared by all request handlers.

    Attributes:
        mitre_data: Normalized ATT&CK tree
        active: Active rule collection
        inactive: Inactive (candidate) rule collection, empty when not configured
        active_coverage: Coverage map and per-technique rules index of ``active``
    """

    mitre_data: MitreData
    active: RuleCollection
    inactive: RuleCollection
    active_coverage: ActiveCoverage

    @property
    def inactive_catalogue(self) -> Tuple[Dict[str, Any], ...]:
        return CoverageAggregator.build_catalogue(self.inactive.records)

    def rule_content_path(self, rule_id: str) -> Optional[str]:
        """Source path for a rule id; the active collection is checked first."""
        return self.active.content_path(rule_id) or self.inactive.content_path(rule_id)

    def evaluate_gain(self,
                      selected_ids: Collection[str] = (),
                      effective_only: bool = False,
                      sort_by: Optional[str] = None,
                      descending: Optional[bool] = None,
                      thresholds: Optional[CoverageThresholds] = None) -> GainReport:
        """Rank inactive rules against active coverage plus the selected inactive rules."""
        return GainEngine().evaluate(
            self.active_coverage.counts,
            self.inactive.records,
            selected_ids,
            effective_only=effective_only,
            sort_by=sort_by,
            descending=descending,
            thresholds=thresholds
        )

    def coverage_summary(self) -> List[Dict[str, Any]]:
        return CoverageAggregator().coverage_summary(self.mitre_data, self.active_coverage.counts)

    def missing_techniques(self) -> List[Dict[str, Any]]:
        return CoverageAggregator.missing_techniques(self.mitre_data, self.active_coverage.counts)

    def duplicate_conflicts(self) -> List[Dict[str, Any]]:
        """Duplicate id conflicts from both scans, tagged with their collection."""
        conflicts = []
        for collection in (self.active, self.inactive):
            for conflict in collection.conflicts:
                entry = conflict.to_dict()
                entry['collection'] = collection.name
                conflicts.append(entry)
        return conflicts

    def statistics(self) -> Dict[str, Any]:
        return {
            'taxonomy': {
                'tactics': len(self.mitre_data.tactics),
                'techniques': len(self.mitre_data.techniques_by_id),
                'specVersion': self.mitre_data.spec_version
            },
            ACTIVE_COLLECTION: _collection_statistics(self.active),
            INACTIVE_COLLECTION: _collection_statistics(self.inactive)
        }


def _collection_statistics(collection: RuleCollection) -> Dict[str, Any]:
    return {
        'directory': collection.directory,
        'rules': len(collection),
        'duplicates': len(collection.conflicts),
        'scan': {section: dict(values) for section, values in collection.statistics.items()}
    }


@log_function_timing
def build_context(settings: BoardSettings,
                  loader: Optional[TaxonomyLoader] = None,
                  repository: Optional[RuleRepository] = None,
                  normalizer: Optional[TaxonomyNormalizer] = None) -> BoardContext:
    """
    Build the immutable board context.

    Directory validation happens first, so a configuration mistake is reported
    without touching the network. The taxonomy and both rule scans then run
    concurrently; each is a sequential fold of its own.

    Args:
        settings: Runtime configuration
        loader: Taxonomy loader (built from ``settings`` if None)
        repository: Rule repository (a fresh one if None)
        normalizer: Taxonomy normalizer (a default one if None)

    Returns:
        BoardContext: Fully built context

    Raises:
        ConfigurationError: If a configured rule directory is unusable
        TaxonomyLoadError: If the taxonomy cannot be fetched or decoded
    """
    active_directory = PathValidator.require_directory(settings.active_directory, "active rules directory")
    inactive_directory = PathValidator.optional_directory(settings.inactive_directory, "inactive rules directory")

    loader = loader or TaxonomyLoader(url=settings.taxonomy_url, file_path=settings.taxonomy_file)
    repository = repository or RuleRepository()
    normalizer = normalizer or TaxonomyNormalizer()

    with ThreadPoolExecutor(max_workers=3, thread_name_prefix='board-startup') as executor:
        taxonomy_future = executor.submit(lambda: normalizer.normalize(loader.load()))
        active_future = executor.submit(repository.scan, active_directory, ACTIVE_COLLECTION)
        inactive_future = None
        if inactive_directory is not None:
            inactive_future = executor.submit(repository.scan, inactive_directory, INACTIVE_COLLECTION)

        # result() re-raises whatever the task raised
        mitre_data = taxonomy_future.result()
        active = active_future.result()
        inactive = inactive_future.result() if inactive_future else RuleCollection.empty(INACTIVE_COLLECTION)

    if inactive_directory is None:
        logger.info("No inactive rules directory configured; inactive rule catalogue is empty")

    context = BoardContext(
        mitre_data=mitre_data,
        active=active,
        inactive=inactive,
        active_coverage=CoverageAggregator().aggregate(active.records)
    )

    logger.info(f"Board ready: {mitre_data}, {len(active)} active rules, {len(inactive)} inactive rules")
    return context
