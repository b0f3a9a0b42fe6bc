"""Rule matching over lead attributes."""

from .evaluator import (
    Operator,
    Rule,
    Contains,
    Equals,
    GreaterThan,
    LessThan,
    Between,
    AnyValue,
    InvalidRule,
    RuleEvaluator,
    parse_rule,
    rule_to_dict,
    evaluate,
    matches_all,
)

__all__ = [
    "Operator",
    "Rule",
    "Contains",
    "Equals",
    "GreaterThan",
    "LessThan",
    "Between",
    "AnyValue",
    "InvalidRule",
    "RuleEvaluator",
    "parse_rule",
    "rule_to_dict",
    "evaluate",
    "matches_all",
]
