"""Tests for rule parsing and evaluation."""

import pytest

from lead_distribution.rules import (
    AnyValue,
    Between,
    Contains,
    Equals,
    GreaterThan,
    InvalidRule,
    LessThan,
    RuleEvaluator,
    evaluate,
    matches_all,
    parse_rule,
    rule_to_dict,
)


@pytest.fixture
def evaluator():
    return RuleEvaluator()


class TestParseRule:
    """Tests for building rules from configuration."""

    def test_builds_variant_per_operator(self):
        assert isinstance(parse_rule({"field": "city", "operator": "contains", "value": "paulo"}), Contains)
        assert isinstance(parse_rule({"field": "city", "operator": "equals", "value": "Rio"}), Equals)
        assert isinstance(parse_rule({"field": "price", "operator": "greaterThan", "value": 10}), GreaterThan)
        assert isinstance(parse_rule({"field": "price", "operator": "lessThan", "value": 10}), LessThan)
        assert isinstance(parse_rule({"field": "price", "operator": "between", "value": [1, 2]}), Between)
        assert isinstance(parse_rule({"field": "price", "operator": "any"}), AnyValue)

    def test_accepts_portuguese_keys_and_aliases(self):
        rule = parse_rule({"campo": "preco", "operador": "maior", "valor": "400000"})
        assert rule == GreaterThan("preco", 400000.0)

    def test_numeric_operator_with_text_value_is_invalid(self):
        rule = parse_rule({"field": "price", "operator": "greaterThan", "value": "lots"})
        assert isinstance(rule, InvalidRule)

    def test_between_needs_two_bounds(self):
        assert isinstance(parse_rule({"field": "p", "operator": "between", "value": [1]}), InvalidRule)
        assert isinstance(parse_rule({"field": "p", "operator": "between", "value": 5}), InvalidRule)

    def test_unknown_operator_is_invalid(self):
        rule = parse_rule({"field": "p", "operator": "startsWith", "value": "a"})
        assert isinstance(rule, InvalidRule)
        assert "unknown operator" in rule.reason

    def test_missing_field_is_invalid(self):
        assert isinstance(parse_rule({"operator": "any"}), InvalidRule)

    def test_rule_to_dict(self):
        assert rule_to_dict(Between("price", 1.0, 2.0)) == {
            "field": "price", "operator": "between", "value": [1.0, 2.0]
        }
        invalid = parse_rule({"field": "p", "operator": "nope", "value": 3})
        assert rule_to_dict(invalid) == {"field": "p", "operator": "nope", "value": 3}


class TestEvaluate:
    """Tests for evaluating one rule against a lead."""

    def test_suffixed_field_reads_base_attribute(self, evaluator):
        rule = parse_rule({"field": "precoMaiorQue", "operator": "greaterThan", "value": 400000})
        assert evaluator.evaluate({"id": "L1", "preco": 500000}, rule)
        assert not evaluator.evaluate({"id": "L2", "preco": 300000}, rule)

    def test_exact_field_wins_over_suffix_fallback(self):
        rule = GreaterThan("precoMaiorQue", 10)
        assert evaluate({"precoMaiorQue": 20, "preco": 1}, rule)

    def test_contains_is_case_insensitive(self):
        assert evaluate({"city": "São Paulo"}, Contains("city", "PAULO"))
        assert not evaluate({"city": "Rio"}, Contains("city", "paulo"))

    def test_equals_is_case_insensitive(self):
        assert evaluate({"source": "Website"}, Equals("source", "website"))
        assert not evaluate({"source": "Website form"}, Equals("source", "website"))

    def test_equals_compares_numbers_as_text(self):
        assert evaluate({"rooms": 3}, Equals("rooms", "3"))
        assert evaluate({"rooms": 3.0}, Equals("rooms", "3"))

    def test_list_attribute_matches_any_element(self):
        lead = {"tags": ["vip", "investor"]}
        assert evaluate(lead, Equals("tags", "investor"))
        assert evaluate(lead, Contains("tags", "inv"))
        assert not evaluate(lead, Equals("tags", "renter"))

    def test_numeric_string_is_coerced(self):
        assert evaluate({"price": "500"}, GreaterThan("price", 400))
        assert evaluate({"price": "300"}, LessThan("price", 400))

    def test_non_numeric_value_does_not_match(self):
        assert not evaluate({"price": "abc"}, GreaterThan("price", 1))
        assert not evaluate({"price": True}, GreaterThan("price", 0))

    def test_between_is_inclusive(self):
        rule = Between("price", 100, 200)
        assert evaluate({"price": 100}, rule)
        assert evaluate({"price": 200}, rule)
        assert not evaluate({"price": 201}, rule)

    def test_missing_or_null_attribute_never_matches(self):
        assert not evaluate({}, AnyValue("price"))
        assert not evaluate({"price": None}, AnyValue("price"))
        assert not evaluate({}, Contains("city", ""))

    def test_any_matches_present_value(self):
        assert evaluate({"price": 0}, AnyValue("price"))

    def test_invalid_rule_never_matches(self):
        rule = parse_rule({"field": "price", "operator": "greaterThan", "value": "x"})
        assert not evaluate({"price": 10}, rule)


class TestMatchesAll:
    """Tests for rule sets."""

    def test_empty_rule_set_matches(self, evaluator):
        assert evaluator.matches_all({"id": "L1"}, [])

    def test_all_rules_must_match(self):
        rules = [Contains("city", "paulo"), GreaterThan("price", 100)]
        assert matches_all({"city": "Sao Paulo", "price": 150}, rules)
        assert not matches_all({"city": "Sao Paulo", "price": 50}, rules)
