"""Tests for the provider-neutral tool registry."""

from __future__ import annotations

import asyncio

import pytest

from compass.core.tools.registry import (
    ToolDefinition,
    ToolRegistry,
    ToolRegistryError,
    coerce_arguments,
    tool_error,
    validate_arguments,
)


def _run(coro):
    return asyncio.run(coro)


_SCHEMA = {
    "type": "object",
    "properties": {
        "exam": {"type": "string"},
        "rank": {"type": "integer"},
        "category": {"type": "string", "enum": ["General", "OBC"]},
        "branches": {"type": "array"},
    },
    "required": ["exam", "rank"],
}


def _echo(args):
    return {"echo": args}


async def _async_echo(args):
    return {"async": True, **args}


def _boom(args):
    raise RuntimeError("database exploded")


def _registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(ToolDefinition("echo", "Echo args", _SCHEMA, _echo, requires_exam=True))
    registry.register(ToolDefinition("async_echo", "Echo async", {}, _async_echo))
    registry.register(ToolDefinition("boom", "Always fails", {}, _boom))
    registry.register(ToolDefinition("bad_shape", "Returns a list", {}, lambda args: [1, 2]))
    return registry


class TestCatalogue:
    def test_registration_order_preserved(self):
        registry = _registry()
        assert registry.names() == ["echo", "async_echo", "boom", "bad_shape"]
        assert len(registry) == 4
        assert "echo" in registry

    def test_duplicate_registration_raises(self):
        registry = _registry()
        with pytest.raises(ToolRegistryError, match="Duplicate"):
            registry.register(ToolDefinition("echo", "again", {}, _echo))

    def test_prediction_tools(self):
        assert _registry().prediction_tools() == {"echo"}

    def test_definition_helpers(self):
        definition = _registry().get("echo")
        assert definition.required == ["exam", "rank"]
        assert set(definition.properties) == {"exam", "rank", "category", "branches"}


class TestValidateArguments:
    def _definition(self):
        return _registry().get("echo")

    def test_valid_arguments(self):
        assert validate_arguments(self._definition(), {"exam": "NEET", "rank": 10}) == []

    def test_missing_and_empty_required(self):
        problems = validate_arguments(self._definition(), {"exam": ""})
        assert "missing required parameter 'exam'" in problems
        assert "missing required parameter 'rank'" in problems

    def test_wrong_type(self):
        problems = validate_arguments(self._definition(), {"exam": "NEET", "rank": "ten"})
        assert problems == ["parameter 'rank' must be integer"]

    def test_bool_is_not_an_integer(self):
        problems = validate_arguments(self._definition(), {"exam": "NEET", "rank": True})
        assert problems == ["parameter 'rank' must be integer"]

    def test_enum_enforced(self):
        problems = validate_arguments(
            self._definition(), {"exam": "NEET", "rank": 1, "category": "Martian"}
        )
        assert len(problems) == 1
        assert "must be one of" in problems[0]

    def test_unknown_keys_ignored(self):
        assert validate_arguments(
            self._definition(), {"exam": "NEET", "rank": 1, "colour": "blue"}
        ) == []


class TestCoerceArguments:
    def _definition(self):
        return _registry().get("echo")

    @pytest.mark.parametrize("raw", ["5000", " 5,000 ", 5000.0, 5000])
    def test_integral_values_become_int(self, raw):
        coerced = coerce_arguments(self._definition(), {"exam": "NEET", "rank": raw})
        assert coerced["rank"] == 5000
        assert type(coerced["rank"]) is int

    @pytest.mark.parametrize("raw", ["ten", "5000.5", 5000.5, True, ""])
    def test_unusable_values_left_for_validation(self, raw):
        coerced = coerce_arguments(self._definition(), {"exam": "NEET", "rank": raw})
        assert validate_arguments(self._definition(), coerced)

    def test_only_numeric_parameters_touched(self):
        arguments = {"exam": "2024", "rank": "12", "colour": "7"}
        assert coerce_arguments(self._definition(), arguments) == {
            "exam": "2024", "rank": 12, "colour": "7",
        }


class TestExecute:
    def test_sync_executor(self):
        result = _run(_registry().execute("echo", {"exam": "NEET", "rank": 5}))
        assert result == {"echo": {"exam": "NEET", "rank": 5}}

    def test_async_executor(self):
        result = _run(_registry().execute("async_echo", {"x": 1}))
        assert result == {"async": True, "x": 1}

    def test_unknown_tool_returns_sentinel(self):
        result = _run(_registry().execute("nope", {}))
        assert result["error"] is True
        assert "not available" in result["message"]

    def test_invalid_arguments_return_problems(self):
        result = _run(_registry().execute("echo", {"exam": "NEET"}))
        assert result["error"] is True
        assert result["problems"] == ["missing required parameter 'rank'"]

    def test_executor_exception_is_contained(self):
        result = _run(_registry().execute("boom", None))
        assert result == tool_error('Tool "boom" failed: RuntimeError')

    def test_non_dict_result_is_an_error(self):
        result = _run(_registry().execute("bad_shape", {}))
        assert result["error"] is True

    def test_string_rank_is_executed_as_int(self):
        result = _run(_registry().execute("echo", {"exam": "NEET", "rank": "5000"}))
        assert result == {"echo": {"exam": "NEET", "rank": 5000}}
