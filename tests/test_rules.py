"""Tests for validation rules and the rule engine."""

from typing import Annotated

import pytest

from formant import ErrorSet, FormObject, RuleEngine, SchemaBuilder, register_rule, validates
from formant.rules import format_, get_rule, inclusion, is_blank, length, presence, registered_rules


class TestBuiltinRules:
    """Test each built-in rule on its own."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_presence_fails_on_blank(self, value):
        assert presence(value, {}) == ("blank", "can't be blank")

    @pytest.mark.parametrize("value", ["x", 0, False, [1]])
    def test_presence_passes(self, value):
        assert presence(value, {}) is None

    def test_custom_message(self):
        assert presence(None, {"message": "is required"}) == ("blank", "is required")

    def test_length(self):
        assert length("abc", {"minimum": 2, "maximum": 3}) is None
        assert length("a", {"minimum": 2})[0] == "too_short"
        assert length("abcd", {"maximum": 3}) == (
            "too_long",
            "is too long (maximum is 3 characters)",
        )
        assert length("ab", {"is": 3})[0] == "wrong_length"
        assert length(None, {"minimum": 2}) is None
        assert length(12345, {"maximum": 3})[0] == "too_long"

    def test_format(self):
        assert format_("12345", {"with": r"^\d{5}$"}) is None
        assert format_("1234a", {"with": r"^\d{5}$"}) == ("invalid", "is invalid")
        assert format_("spam@example.com", {"without": "spam"}) == ("invalid", "is invalid")
        assert format_(None, {"with": r"^\d+$"}) is None

    def test_inclusion(self):
        assert inclusion("US", {"in": ["US", "CA"]}) is None
        assert inclusion("MX", {"in": ["US", "CA"]}) == (
            "inclusion",
            "is not included in the list",
        )
        assert inclusion(None, {"in": ["US"]}) is None

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank(" \t")
        assert not is_blank(0)

    def test_builtins_are_registered(self):
        assert {"presence", "length", "format", "inclusion"} <= set(registered_rules())
        assert get_rule("presence") is presence


class TestRuleEngine:
    """Test evaluating a schema."""

    def test_errors_in_declaration_order(self):
        schema = (
            SchemaBuilder()
            .attribute("name", validates(presence=True, length={"minimum": 3}))
            .attribute("code", validates(format={"with": r"^[A-Z]+$"}))
            .build()
        )
        errors = RuleEngine().evaluate({"name": "", "code": "abc"}, schema, ErrorSet())

        assert errors.to_dict() == {
            "name": ["can't be blank", "is too short (minimum is 3 characters)"],
            "code": ["is invalid"],
        }
        assert errors.details("name") == [{"error": "blank"}, {"error": "too_short"}]

    def test_skip(self):
        schema = SchemaBuilder().attribute("name", validates(presence=True)).build()
        errors = RuleEngine().evaluate({"name": None}, schema, ErrorSet(), skip={"name"})
        assert errors.empty


class TestCustomRules:
    """Test registering rules."""

    def test_register_and_use_rule(self):
        @register_rule("even", options=("strict",))
        def even(value, options):
            if value is not None and int(value) % 2:
                return "odd", options.get("message", "must be even")
            return None

        class Form(FormObject):
            count: Annotated[int, validates(even=True)]

        form = Form(count=3)
        assert form.validate() is False
        assert form.errors["count"] == ["must be even"]
        assert form.errors.details("count") == [{"error": "odd"}]
        assert Form(count=4).validate()

    def test_reregistering_is_a_noop(self):
        original = get_rule("presence")

        @register_rule("presence")
        def always_fails(value, options):
            return "nope", "nope"

        assert get_rule("presence") is original

    def test_custom_engine_per_form(self):
        class CountingEngine(RuleEngine):
            calls = 0

            def evaluate(self, bag, schema, errors, skip=()):
                CountingEngine.calls += 1
                return super().evaluate(bag, schema, errors, skip)

        class Form(FormObject):
            rule_engine = CountingEngine()
            name: Annotated[str, validates(presence=True)]

        Form(name="x").validate()
        assert CountingEngine.calls == 1
