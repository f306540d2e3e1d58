from .base_parser import BaseRuleParser
from .rule_parser import RuleDefinitionParser

__all__ = ['BaseRuleParser', 'RuleDefinitionParser']
