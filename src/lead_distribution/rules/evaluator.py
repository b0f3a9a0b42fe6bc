"""Rule evaluation against lead attributes.

Each operator is its own frozen dataclass so a rule can only be built with a
value of the right shape. Configuration that cannot be turned into a valid
rule becomes an ``InvalidRule``, which never matches.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)


class Operator(Enum):
    """Rule operators."""
    CONTAINS = "contains"
    EQUALS = "equals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    BETWEEN = "between"
    ANY = "any"


OPERATOR_ALIASES = {
    "contains": Operator.CONTAINS,
    "contém": Operator.CONTAINS,
    "contem": Operator.CONTAINS,
    "equals": Operator.EQUALS,
    "igual": Operator.EQUALS,
    "greaterthan": Operator.GREATER_THAN,
    "greater_than": Operator.GREATER_THAN,
    "maior": Operator.GREATER_THAN,
    "lessthan": Operator.LESS_THAN,
    "less_than": Operator.LESS_THAN,
    "menor": Operator.LESS_THAN,
    "between": Operator.BETWEEN,
    "entre": Operator.BETWEEN,
    "any": Operator.ANY,
    "qualquer": Operator.ANY,
}

# "precoMaiorQue" reads the "preco" attribute when the lead has no such key
FIELD_SUFFIXES = ("MaiorQue", "MenorQue", "Entre", "GreaterThan", "LessThan", "Between")


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings. Anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _values(raw: Any) -> Iterable[Any]:
    if isinstance(raw, (list, tuple, set)):
        return list(raw)
    return [raw]


@dataclass(frozen=True)
class Contains:
    field: str
    text: str
    operator: ClassVar[Operator] = Operator.CONTAINS

    def test(self, value: Any) -> bool:
        needle = self.text.lower()
        return any(needle in _stringify(v).lower() for v in _values(value))


@dataclass(frozen=True)
class Equals:
    field: str
    text: str
    operator: ClassVar[Operator] = Operator.EQUALS

    def test(self, value: Any) -> bool:
        expected = self.text.lower()
        return any(_stringify(v).lower() == expected for v in _values(value))


@dataclass(frozen=True)
class GreaterThan:
    field: str
    threshold: float
    operator: ClassVar[Operator] = Operator.GREATER_THAN

    def test(self, value: Any) -> bool:
        number = to_number(value)
        return number is not None and number > self.threshold


@dataclass(frozen=True)
class LessThan:
    field: str
    threshold: float
    operator: ClassVar[Operator] = Operator.LESS_THAN

    def test(self, value: Any) -> bool:
        number = to_number(value)
        return number is not None and number < self.threshold


@dataclass(frozen=True)
class Between:
    """Inclusive on both bounds."""

    field: str
    low: float
    high: float
    operator: ClassVar[Operator] = Operator.BETWEEN

    def test(self, value: Any) -> bool:
        number = to_number(value)
        return number is not None and self.low <= number <= self.high


@dataclass(frozen=True)
class AnyValue:
    field: str
    operator: ClassVar[Operator] = Operator.ANY

    def test(self, value: Any) -> bool:
        return True


@dataclass(frozen=True)
class InvalidRule:
    """Misconfigured rule. Never matches."""

    field: str
    raw_operator: Any
    raw_value: Any
    reason: str
    operator: ClassVar[Optional[Operator]] = None

    def test(self, value: Any) -> bool:
        return False


Rule = Union[Contains, Equals, GreaterThan, LessThan, Between, AnyValue, InvalidRule]


def parse_rule(data: Dict[str, Any]) -> Rule:
    """Build a rule from a ``{field, operator, value}`` mapping."""
    raw_field = data.get("field") or data.get("campo") or ""
    field_name = str(raw_field)
    raw_operator = data.get("operator", data.get("operador"))
    value = data.get("value", data.get("valor"))

    def invalid(reason: str) -> InvalidRule:
        logger.warning(f"Rule on field '{field_name}' disabled: {reason}")
        return InvalidRule(field_name, raw_operator, value, reason)

    if not field_name:
        return invalid("missing field")
    if not isinstance(raw_field, str):
        return invalid(f"field must be text, got {raw_field!r}")

    operator = OPERATOR_ALIASES.get(str(raw_operator).strip().lower())
    if operator is None:
        return invalid(f"unknown operator {raw_operator!r}")

    if operator == Operator.ANY:
        return AnyValue(field_name)

    if operator in (Operator.CONTAINS, Operator.EQUALS):
        if value is None or isinstance(value, (list, tuple, dict)):
            return invalid(f"{operator.value} needs a text value")
        text = _stringify(value)
        return Contains(field_name, text) if operator == Operator.CONTAINS else Equals(field_name, text)

    if operator in (Operator.GREATER_THAN, Operator.LESS_THAN):
        threshold = to_number(value)
        if threshold is None:
            return invalid(f"{operator.value} needs a numeric value, got {value!r}")
        if operator == Operator.GREATER_THAN:
            return GreaterThan(field_name, threshold)
        return LessThan(field_name, threshold)

    # between
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return invalid(f"between needs a two-element range, got {value!r}")
    low, high = to_number(value[0]), to_number(value[1])
    if low is None or high is None:
        return invalid(f"between needs numeric bounds, got {value!r}")
    return Between(field_name, low, high)


def rule_to_dict(rule: Rule) -> Dict[str, Any]:
    """Serialize a rule back to its configuration mapping."""
    if isinstance(rule, InvalidRule):
        return {"field": rule.field, "operator": rule.raw_operator, "value": rule.raw_value}
    data: Dict[str, Any] = {"field": rule.field, "operator": rule.operator.value}
    if isinstance(rule, (Contains, Equals)):
        data["value"] = rule.text
    elif isinstance(rule, (GreaterThan, LessThan)):
        data["value"] = rule.threshold
    elif isinstance(rule, Between):
        data["value"] = [rule.low, rule.high]
    else:
        data["value"] = None
    return data


def resolve_field(lead: Dict[str, Any], field_name: str) -> Any:
    """Look up a rule field on a lead, falling back to the unsuffixed name."""
    if field_name in lead:
        return lead[field_name]
    for suffix in FIELD_SUFFIXES:
        if field_name.endswith(suffix) and len(field_name) > len(suffix):
            base = field_name[: -len(suffix)]
            if base in lead:
                return lead[base]
    return None


def evaluate(lead: Dict[str, Any], rule: Rule) -> bool:
    """Evaluate one rule. Missing or null attributes never match."""
    value = resolve_field(lead, rule.field)
    if value is None:
        return False
    try:
        return rule.test(value)
    except Exception as e:
        logger.warning(f"Rule on field '{rule.field}' failed on {value!r}: {e}")
        return False


def matches_all(lead: Dict[str, Any], rules: Iterable[Rule]) -> bool:
    """All rules must match. An empty rule set matches any lead."""
    return all(evaluate(lead, rule) for rule in rules)


class RuleEvaluator:
    """Stateless facade over :func:`evaluate` and :func:`matches_all`."""

    def evaluate(self, lead: Dict[str, Any], rule: Rule) -> bool:
        return evaluate(lead, rule)

    def matches_all(self, lead: Dict[str, Any], rules: Iterable[Rule]) -> bool:
        return matches_all(lead, rules)
