# tests/test_templates.py
"""
Tests for prompt templates and variable bindings.
"""

import pytest

from promptloop.config.models import UndefinedVariablePolicy
from promptloop.exceptions import TemplateVariableError
from promptloop.templates import PromptTemplate, VariableBindings, expand


class TestVariableBindings:
    """Immutable mapping semantics."""

    def test_set_returns_new_bindings(self):
        empty = VariableBindings()
        bound = empty.set("name", "Ann")

        assert len(empty) == 0
        assert bound["name"] == "Ann"
        assert dict(bound) == {"name": "Ann"}

    def test_overwrite(self):
        bindings = VariableBindings({"x": "1"}).set("x", "2")
        assert bindings["x"] == "2"
        assert list(bindings) == ["x"]

    def test_values_are_strings(self):
        assert VariableBindings().set("n", 3)["n"] == "3"

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            VariableBindings().set("", "x")

    def test_source_mapping_is_copied(self):
        source = {"a": "1"}
        bindings = VariableBindings(source)
        source["a"] = "changed"
        assert bindings["a"] == "1"


class TestExpansion:
    """Placeholder expansion."""

    def test_both_placeholder_styles(self):
        assert expand("Hi $name, ${greeting}!", {"name": "Ann", "greeting": "welcome"}) == "Hi Ann, welcome!"

    def test_double_dollar_left_as_written(self):
        assert expand("costs $$5 for $item", {"item": "tea"}) == "costs $$5 for tea"

    def test_shell_snippet_unchanged_without_bindings(self):
        text = "kill -9 $$ && echo \"pid $$ gone\""
        assert expand(text, {}) == text
        assert PromptTemplate(text).placeholders() == []

    def test_no_placeholders(self):
        assert expand("plain text", {}) == "plain text"

    def test_placeholders_listed_once_in_order(self):
        assert PromptTemplate("$b ${a} $b").placeholders() == ["b", "a"]

    def test_keep_policy_leaves_placeholder(self):
        assert expand("Hi ${name}", {}, UndefinedVariablePolicy.KEEP) == "Hi ${name}"

    def test_empty_policy(self):
        assert expand("Hi ${name}!", {}, UndefinedVariablePolicy.EMPTY) == "Hi !"

    def test_error_policy(self):
        with pytest.raises(TemplateVariableError) as exc_info:
            expand("$a and $b", {"a": "1"}, UndefinedVariablePolicy.ERROR)
        assert exc_info.value.names == ["b"]

    def test_invalid_placeholder_left_alone(self):
        assert expand("price: $5", {}) == "price: $5"
