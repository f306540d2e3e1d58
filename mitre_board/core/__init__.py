from .board_context import BoardContext, BoardSettings, build_context
from .coverage_aggregator import CoverageAggregator
from .file_locator import DefinitionFileLocator
from .gain_engine import GainEngine
from .rule_repository import RuleCollection, RuleRepository
from .taxonomy_loader import TaxonomyLoader
from .taxonomy_normalizer import TaxonomyNormalizer

__all__ = [
    'BoardContext', 'BoardSettings', 'build_context',
    'CoverageAggregator', 'DefinitionFileLocator', 'GainEngine',
    'RuleCollection', 'RuleRepository', 'TaxonomyLoader', 'TaxonomyNormalizer'
]
