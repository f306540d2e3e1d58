"""
Coverage Data Model
===================

Value objects produced by the coverage aggregator and the incremental gain engine.
A coverage map is a plain ``Mapping[str, int]`` from taxonomy identifier to the
number of rules associated with it; the classes below describe what a candidate
(not yet active) rule would add on top of such a map.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from .rule_record import RuleRecord, RuleSummary


@dataclass(frozen=True)
class GainTriple:
    """
    Number of currently uncovered identifiers a candidate would newly cover.

    Attributes:
        tactics: Uncovered tactic identifiers
        techniques: Uncovered base technique identifiers
        sub_techniques: Uncovered sub-technique identifiers
    """

    tactics: int = 0
    techniques: int = 0
    sub_techniques: int = 0

    @property
    def total(self) -> int:
        return self.tactics + self.techniques + self.sub_techniques

    def to_dict(self) -> Dict[str, int]:
        return {
            'tactics': self.tactics,
            'techniques': self.techniques,
            'subTechniques': self.sub_techniques
        }


@dataclass(frozen=True)
class CoverageThresholds:
    """
    Minimum coverage wanted per identifier kind.

    A candidate passes the threshold filter when it touches at least one
    identifier whose current coverage is still below the threshold for its kind.
    All-zero thresholds disable the filter.
    """

    tactics: int = 0
    techniques: int = 0
    sub_techniques: int = 0

    def __post_init__(self):
        for name in ('tactics', 'techniques', 'sub_techniques'):
            if getattr(self, name) < 0:
                raise ValueError(f"Coverage threshold '{name}' must be non-negative")

    @property
    def is_active(self) -> bool:
        return bool(self.tactics or self.techniques or self.sub_techniques)


@dataclass(frozen=True)
class CandidateEvaluation:
    """A candidate rule together with its marginal gain against the current baseline."""

    rule: RuleRecord
    gain: GainTriple
    selected: bool = False

    @property
    def is_effective(self) -> bool:
        return self.gain.total > 0

    def to_dict(self) -> Dict[str, Any]:
        entry = self.rule.to_catalogue_entry()
        entry.update({
            'gain': self.gain.to_dict(),
            'totalGain': self.gain.total,
            'isEffective': self.is_effective,
            'selected': self.selected
        })
        return entry


@dataclass(frozen=True)
class GainReport:
    """
    Result of one gain computation.

    Attributes:
        current_coverage: Baseline plus every selected candidate (with parent credit)
        evaluations: Candidates after filtering, in ranking order
    """

    current_coverage: Mapping[str, int]
    evaluations: Tuple[CandidateEvaluation, ...]

    def gain_for(self, rule_id: str) -> GainTriple:
        for evaluation in self.evaluations:
            if evaluation.rule.id == rule_id:
                return evaluation.gain
        raise KeyError(rule_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currentCoverage': dict(self.current_coverage),
            'rules': [evaluation.to_dict() for evaluation in self.evaluations]
        }


@dataclass(frozen=True)
class ActiveCoverage:
    """
    Output of the coverage aggregator for the active rule collection.

    Attributes:
        counts: Identifier -> number of distinct active rules referencing it
        rules_by_technique: Technique identifier -> summaries of the rules referencing it
    """

    counts: Mapping[str, int]
    rules_by_technique: Mapping[str, Tuple[RuleSummary, ...]]

    def rules_for(self, technique_id: str) -> Tuple[RuleSummary, ...]:
        return self.rules_by_technique.get(technique_id, ())
