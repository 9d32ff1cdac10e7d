# dtreepy/__init__.py
"""
dtreepy: decision and regression trees with aliased branches.

Exports:
    - DecisionTree, LEAF
    - AttributeSet, Attribute, AttributeType
    - infer, Prediction, DEFAULT_WEIGHT
    - describe, DescribeMode, parse_tree, load_tree, ParseResult
    - extract_rules, Rule, RuleSet, Condition, Operator, RuleMode
    - TreeClassifier, TreeRegressor
    - enable_logging, LoggingHandle
"""
from loguru import logger

from .attributes import Attribute, AttributeSet, AttributeType
from .exceptions import (
    AliasError,
    AttributeIndexError,
    BranchIndexError,
    CursorOccupiedError,
    NoCurrentNodeError,
    ParseDiagnostic,
    TargetTypeError,
    TreeError,
    TreeSyntaxError,
)
from .execute import DEFAULT_WEIGHT, Prediction, infer
from .logging import PACKAGE_NAME, LoggingHandle, enable_logging
from .parser import ParseResult, load_tree, parse_tree
from .printer import DescribeMode, describe
from .rules import Condition, Operator, Rule, RuleMode, RuleSet, extract_rules
from .tree import LEAF, DecisionTree
from .estimator import TreeClassifier, TreeRegressor

logger.disable(PACKAGE_NAME)

__all__ = [
    "AliasError", "Attribute", "AttributeIndexError", "AttributeSet", "AttributeType",
    "BranchIndexError", "Condition", "CursorOccupiedError", "DEFAULT_WEIGHT",
    "DecisionTree", "DescribeMode", "LEAF", "LoggingHandle", "NoCurrentNodeError", "Operator",
    "ParseDiagnostic", "ParseResult", "Prediction", "Rule", "RuleMode", "RuleSet",
    "TargetTypeError", "TreeClassifier", "TreeError", "TreeRegressor",
    "TreeSyntaxError", "describe", "enable_logging", "extract_rules", "infer",
    "load_tree", "parse_tree",
]
__version__ = "0.1.0"
