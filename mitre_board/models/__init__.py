from .rule_record import RuleRecord, RuleSummary, SatisfiesCounts, DuplicateConflict
from .taxonomy_model import MitreData, Tactic, Technique
from .coverage_model import ActiveCoverage, CandidateEvaluation, CoverageThresholds, GainReport, GainTriple

__all__ = [
    'RuleRecord', 'RuleSummary', 'SatisfiesCounts', 'DuplicateConflict',
    'MitreData', 'Tactic', 'Technique',
    'ActiveCoverage', 'CandidateEvaluation', 'CoverageThresholds', 'GainReport', 'GainTriple'
]
