"""
Incremental Gain Engine
=======================

Ranks not-yet-active ("inactive") rules by how much new ATT&CK coverage they
would add on top of what is already covered.

The reference point is the *current coverage*: the active coverage map plus
every candidate the caller has selected. Selecting a candidate increments each
identifier it declares by one, and a selected sub-technique also credits its
parent technique (T1055.001 -> T1055). A candidate's gain is then the number of
its identifiers whose current coverage is exactly zero, split into tactics,
base techniques and sub-techniques.

Because selected candidates are part of the reference, their own gain is zero,
and selecting more candidates can only lower or keep every other candidate's
gain - never raise it.

Everything is recomputed from scratch per call. The inputs are immutable and
the work is linear in (candidates x identifiers per candidate), so there is no
incremental state to maintain and no session to keep on the server.
"""

import logging
from collections import Counter
from types import MappingProxyType
from typing import Collection, List, Mapping, Optional, Sequence

from ..models.coverage_model import CandidateEvaluation, CoverageThresholds, GainReport, GainTriple
from ..models.rule_record import RuleRecord
from ..models.technique_id import is_sub_technique, parent_technique_id

logger = logging.getLogger(__name__)

SORT_FIELDS = ('gain', 'satisfies', 'title', 'id')

# Direction used when the caller names a sort field but no direction
DEFAULT_DESCENDING = {
    'gain': True,
    'satisfies': True,
    'title': False,
    'id': False
}


class GainEngine:
    """
    Computes current coverage and per-candidate gain.

    Example:
        engine = GainEngine()
        report = engine.evaluate(active.counts, inactive_records, {'R9'}, effective_only=True)
        for evaluation in report.evaluations:
            print(evaluation.rule.id, evaluation.gain.total)
    """

    def evaluate(self,
                 baseline: Mapping[str, int],
                 candidates: Sequence[RuleRecord],
                 selected_ids: Collection[str] = (),
                 effective_only: bool = False,
                 sort_by: Optional[str] = None,
                 descending: Optional[bool] = None,
                 thresholds: Optional[CoverageThresholds] = None) -> GainReport:
        """
        Evaluate every candidate against the baseline plus the selected candidates.

        Args:
            baseline: Active coverage map (never modified)
            candidates: Inactive rule records
            selected_ids: Ids of candidates treated as already applied; unknown ids are ignored
            effective_only: Keep only candidates with a positive total gain
            sort_by: One of SORT_FIELDS; None means the default gain ranking
            descending: Sort direction; None uses the field's natural direction
            thresholds: Optional minimum-coverage filter

        Returns:
            GainReport: Current coverage and the filtered, ranked evaluations

        Raises:
            ValueError: If ``sort_by`` is not a known sort field
        """
        if sort_by is not None and sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{sort_by}', expected one of {', '.join(SORT_FIELDS)}")

        selected = set(selected_ids)
        current = self.current_coverage(baseline, [rule for rule in candidates if rule.id in selected])

        unknown = selected.difference(rule.id for rule in candidates)
        if unknown:
            logger.debug(f"Ignoring {len(unknown)} selected ids that are not inactive rules: {sorted(unknown)}")

        evaluations = [
            CandidateEvaluation(rule=rule, gain=self.gain(rule, current), selected=rule.id in selected)
            for rule in candidates
        ]

        if effective_only:
            evaluations = [evaluation for evaluation in evaluations if evaluation.is_effective]

        if thresholds is not None and thresholds.is_active:
            evaluations = [
                evaluation for evaluation in evaluations
                if self.below_threshold(evaluation.rule, current, thresholds)
            ]

        evaluations = self.rank(evaluations, sort_by, descending)

        logger.debug(f"Evaluated {len(candidates)} candidates with {len(selected)} selected; "
                     f"{len(evaluations)} after filtering")
        return GainReport(current_coverage=current, evaluations=tuple(evaluations))

    @staticmethod
    def current_coverage(baseline: Mapping[str, int], selected_rules: Sequence[RuleRecord]) -> Mapping[str, int]:
        """
        Baseline plus one per listed identifier of every selected rule, with parent credit.

        The two lists are counted separately, so an identifier named under both
        ``tactics`` and ``relevantTechniques`` is incremented twice.

        Returns:
            Mapping[str, int]: A new read-only map; ``baseline`` is left untouched
        """
        coverage: Counter = Counter(baseline)
        for rule in selected_rules:
            for identifier in rule.tactics + rule.relevant_techniques:
                coverage[identifier] += 1
                parent = parent_technique_id(identifier)
                if parent is not None:
                    coverage[parent] += 1
        return MappingProxyType(dict(coverage))

    @staticmethod
    def gain(rule: RuleRecord, coverage: Mapping[str, int]) -> GainTriple:
        """Count the rule's identifiers that are still at zero coverage, by kind."""
        tactics = sum(1 for tactic_id in rule.tactics if coverage.get(tactic_id, 0) == 0)
        techniques = 0
        sub_techniques = 0

        for technique_id in rule.relevant_techniques:
            if coverage.get(technique_id, 0) != 0:
                continue
            if is_sub_technique(technique_id):
                sub_techniques += 1
            else:
                techniques += 1

        return GainTriple(tactics=tactics, techniques=techniques, sub_techniques=sub_techniques)

    @staticmethod
    def below_threshold(rule: RuleRecord, coverage: Mapping[str, int], thresholds: CoverageThresholds) -> bool:
        """True if the rule touches at least one identifier still under its kind's threshold."""
        if any(coverage.get(tactic_id, 0) < thresholds.tactics for tactic_id in rule.tactics):
            return True

        for technique_id in rule.relevant_techniques:
            limit = thresholds.sub_techniques if is_sub_technique(technique_id) else thresholds.techniques
            if coverage.get(technique_id, 0) < limit:
                return True
        return False

    @staticmethod
    def rank(evaluations: List[CandidateEvaluation],
             sort_by: Optional[str] = None,
             descending: Optional[bool] = None) -> List[CandidateEvaluation]:
        """
        Order evaluations.

        The default ranking is total gain descending, then declared satisfies
        total descending, then title ascending. Explicit fields fall back to
        title (and for title, to id) for ties; sorts are stable.
        """
        field_name = sort_by or 'gain'
        if descending is None:
            descending = DEFAULT_DESCENDING[field_name]

        if field_name == 'title':
            ordered = sorted(evaluations, key=lambda e: e.rule.id)
            return sorted(ordered, key=lambda e: e.rule.title, reverse=descending)

        if field_name == 'id':
            return sorted(evaluations, key=lambda e: e.rule.id, reverse=descending)

        # Ties on the primary key always fall back to ascending title
        ordered = sorted(evaluations, key=lambda e: e.rule.title)
        if field_name == 'satisfies':
            return sorted(ordered, key=lambda e: e.rule.satisfies().total, reverse=descending)

        return sorted(
            ordered,
            key=lambda e: (e.gain.total, e.rule.satisfies().total),
            reverse=descending
        )
