"""
Rule Record Data Model
======================

This module defines the RuleRecord class, the normalized representation of one
detection rule definition file. Everything the parser reads from disk is checked
and defaulted once, at the parse boundary, and from then on the rest of the board
only ever sees frozen RuleRecord objects - never raw YAML dictionaries.

A rule declares which parts of the ATT&CK matrix it satisfies through two lists:
- tactics: tactic identifiers (e.g. 'TA0005')
- relevantTechniques: technique and sub-technique identifiers (e.g. 'T1055', 'T1055.001')
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Tuple

from .technique_id import is_sub_technique


@dataclass(frozen=True)
class RuleSummary:
    """The id/title/description triple shown in rule lists."""

    id: str
    title: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'title': self.title, 'description': self.description}


@dataclass(frozen=True)
class SatisfiesCounts:
    """
    Static count of what a rule declares, independent of any coverage baseline.

    Attributes:
        tactics: Number of tactic identifiers
        techniques: Number of base technique identifiers (no separator)
        sub_techniques: Number of sub-technique identifiers
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
class RuleRecord:
    """
    Normalized, immutable detection rule definition.

    Attributes:
        id: Trimmed, non-empty rule identifier (unique within one rule collection)
        title: Rule title, falling back to ``name`` and then to ``id``
        description: Rule description, falling back to a placeholder
        tactics: Tactic identifiers in declaration order, without duplicates
        relevant_techniques: Technique and sub-technique identifiers, without duplicates
        source_path: Path of the file the rule was read from
    """

    id: str
    title: str
    description: str
    tactics: Tuple[str, ...] = ()
    relevant_techniques: Tuple[str, ...] = ()
    source_path: str = ""

    def summary(self) -> RuleSummary:
        """Reduce the record to the triple used in per-technique rule lists."""
        return RuleSummary(id=self.id, title=self.title, description=self.description)

    def associated_ids(self) -> FrozenSet[str]:
        """Every taxonomy identifier this rule is associated with."""
        return frozenset(self.tactics) | frozenset(self.relevant_techniques)

    def satisfies(self) -> SatisfiesCounts:
        """
        Count what this rule declares, splitting techniques by kind.

        Returns:
            SatisfiesCounts: tactics, base techniques and sub-techniques declared
        """
        sub_count = sum(1 for technique_id in self.relevant_techniques if is_sub_technique(technique_id))
        return SatisfiesCounts(
            tactics=len(self.tactics),
            techniques=len(self.relevant_techniques) - sub_count,
            sub_techniques=sub_count
        )

    def to_catalogue_entry(self) -> Dict[str, Any]:
        """Serialize the record the way the inactive rule catalogue exposes it."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'tactics': list(self.tactics),
            'techniques': list(self.relevant_techniques),
            'satisfies': self.satisfies().to_dict()
        }

    def __str__(self) -> str:
        return (f"RuleRecord(id='{self.id}', tactics={len(self.tactics)}, "
                f"techniques={len(self.relevant_techniques)})")


@dataclass
class DuplicateConflict:
    """
    A rule id defined by more than one file within a single directory scan.

    The first path is the file that was kept; the others were excluded.
    """

    rule_id: str
    files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.rule_id, 'files': list(self.files)}
