"""
Coverage Aggregation
====================

This module folds a collection of RuleRecords into the numbers the board shows.

Think of it as a tally sheet: every rule puts one mark next to each taxonomy
identifier it declares (tactics and relevant techniques alike), and the
aggregator counts the marks. Two indexes come out of one pass:

1. Coverage map - identifier -> number of distinct rules referencing it
2. Rules index  - technique identifier -> the rules (id/title/description)
                  that list it under relevantTechniques, one entry per rule id

The fold is pure: the same records always produce the same maps, and nothing
outside the returned objects is touched.

On top of a coverage map and the normalized taxonomy the module also derives
the board views that only join the two by identifier: per-tactic rule totals,
the coverage summary and the "missing techniques" report (with CSV export).
"""

import csv
import io
import logging
from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models.coverage_model import ActiveCoverage
from ..models.rule_record import RuleRecord, RuleSummary
from ..models.taxonomy_model import MitreData, Tactic

logger = logging.getLogger(__name__)

MISSING_TECHNIQUE_FIELDS = [
    'tacticId', 'tacticName', 'techniqueId', 'techniqueName', 'isSubTechnique', 'parentId'
]


class CoverageAggregator:
    """
    Builds coverage maps and derived board views from rule records.

    The class holds no state; it is a namespace for the fold and the views
    computed from its result, kept as a class so callers can substitute it
    in tests the same way they substitute the repository.
    """

    def aggregate(self, records: Sequence[RuleRecord]) -> ActiveCoverage:
        """
        Fold rule records into a coverage map and a per-technique rules index.

        Args:
            records: De-duplicated rules of one collection

        Returns:
            ActiveCoverage: Read-only counts and rules index
        """
        counts = self.count_coverage(records)

        rules_by_technique: Dict[str, List[RuleSummary]] = {}
        seen_by_technique: Dict[str, set] = {}

        for record in records:
            summary = record.summary()
            for technique_id in record.relevant_techniques:
                seen = seen_by_technique.setdefault(technique_id, set())
                if record.id in seen:
                    continue
                seen.add(record.id)
                rules_by_technique.setdefault(technique_id, []).append(summary)

        logger.debug(f"Aggregated {len(records)} rules into {len(counts)} covered identifiers")

        return ActiveCoverage(
            counts=counts,
            rules_by_technique=MappingProxyType({
                technique_id: tuple(summaries)
                for technique_id, summaries in rules_by_technique.items()
            })
        )

    @staticmethod
    def count_coverage(records: Iterable[RuleRecord]) -> Mapping[str, int]:
        """
        Count, per identifier, the distinct records associated with it.

        A record listing the same identifier under both ``tactics`` and
        ``relevantTechniques`` still counts once for it.
        """
        counter: Counter = Counter()
        for record in records:
            counter.update(record.associated_ids())
        return MappingProxyType(dict(counter))

    @staticmethod
    def build_catalogue(records: Sequence[RuleRecord]) -> Tuple[Dict[str, Any], ...]:
        """Serialize candidate records with their static satisfies counts."""
        return tuple(record.to_catalogue_entry() for record in records)

    @staticmethod
    def tactic_rule_total(tactic: Tactic, counts: Mapping[str, int]) -> int:
        """
        Sum the active counts of a tactic's techniques.

        This is the number shown in a tactic's column header; a rule mapped to
        several techniques of the tactic contributes once per technique.
        """
        return sum(counts.get(technique.public_id, 0) for technique in tactic.techniques)

    def coverage_summary(self, mitre_data: MitreData, counts: Mapping[str, int]) -> List[Dict[str, Any]]:
        """
        Per-tactic coverage overview in taxonomy order.

        Returns:
            List of {tacticId, name, ruleTotal, techniques, coveredTechniques}
        """
        summary = []
        for tactic in mitre_data.tactics:
            summary.append({
                'tacticId': tactic.public_id,
                'name': tactic.name,
                'ruleTotal': self.tactic_rule_total(tactic, counts),
                'techniques': len(tactic.techniques),
                'coveredTechniques': sum(
                    1 for technique in tactic.techniques if counts.get(technique.public_id, 0) > 0
                )
            })
        return summary

    @staticmethod
    def missing_techniques(mitre_data: MitreData, counts: Mapping[str, int]) -> List[Dict[str, Any]]:
        """
        List techniques and sub-techniques no active rule covers.

        A technique that belongs to several tactics is reported once per tactic,
        mirroring how it appears on the board. Sub-techniques are listed right
        after their parent, whether or not the parent itself is covered.

        Returns:
            List of rows keyed by MISSING_TECHNIQUE_FIELDS
        """
        rows: List[Dict[str, Any]] = []

        for tactic in mitre_data.tactics:
            for technique in tactic.techniques:
                if counts.get(technique.public_id, 0) == 0:
                    rows.append(_missing_row(tactic, technique.public_id, technique.name, None))

                for sub_technique in technique.sub_techniques:
                    if counts.get(sub_technique.public_id, 0) == 0:
                        rows.append(_missing_row(
                            tactic, sub_technique.public_id, sub_technique.name, technique.public_id
                        ))

        logger.debug(f"Found {len(rows)} uncovered technique entries")
        return rows

    @staticmethod
    def missing_techniques_csv(rows: Sequence[Dict[str, Any]]) -> str:
        """Render missing-technique rows as CSV text with a header line."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=MISSING_TECHNIQUE_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()


def _missing_row(tactic: Tactic, technique_id: str, technique_name: str,
                 parent_id: Optional[str]) -> Dict[str, Any]:
    return {
        'tacticId': tactic.public_id,
        'tacticName': tactic.name,
        'techniqueId': technique_id,
        'techniqueName': technique_name,
        'isSubTechnique': parent_id is not None,
        'parentId': parent_id or ''
    }
