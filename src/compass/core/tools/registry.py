"""Tool registry: the provider-neutral catalogue of grounding tools.

Every factual claim a provider makes about colleges must come through one of
these named, schema-described operations. Providers translate the catalogue
into their own function-calling dialect; the registry itself never talks to a
provider.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

ToolExecutor = Callable[[dict[str, Any]], Any]

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


@dataclass
class ToolDefinition:
    """A named operation with a JSON-schema parameter contract."""

    name: str
    description: str
    parameters: dict[str, Any]
    executor: ToolExecutor
    # Prediction-class tools may only run with a resolved exam argument.
    requires_exam: bool = False

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self.parameters.get("properties", {}))


class ToolRegistryError(Exception):
    """Raised for catalogue misconfiguration (never for a failed execution)."""


def tool_error(message: str, **extra: Any) -> dict[str, Any]:
    """Build the error sentinel fed back to providers."""
    return {"error": True, "message": message, **extra}


@dataclass
class ToolRegistry:
    """In-memory catalogue of grounding tools, in registration order."""

    _tools: dict[str, ToolDefinition] = field(default_factory=dict)

    def register(self, definition: ToolDefinition) -> None:
        if definition.name in self._tools:
            raise ToolRegistryError(f"Duplicate tool registered: {definition.name!r}")
        self._tools[definition.name] = definition

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def all(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def prediction_tools(self) -> set[str]:
        return {name for name, tool in self._tools.items() if tool.requires_exam}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Run a tool and return its result or an error sentinel. Never raises."""
        definition = self._tools.get(name)
        if definition is None:
            logger.error("Tool not found: %s", name)
            return tool_error(f'Tool "{name}" is not available or not implemented.')

        args = coerce_arguments(definition, dict(arguments or {}))
        problems = validate_arguments(definition, args)
        if problems:
            logger.warning("Rejected %s call: %s", name, "; ".join(problems))
            return tool_error(
                f'Invalid arguments for tool "{name}".', problems=problems
            )

        try:
            result = definition.executor(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("Tool %s failed", name)
            return tool_error(f'Tool "{name}" failed: {type(exc).__name__}')

        if not isinstance(result, dict):
            return tool_error(f'Tool "{name}" returned an unexpected result.')
        return result


def validate_arguments(definition: ToolDefinition, arguments: dict[str, Any]) -> list[str]:
    """Check required parameters and primitive types against the schema."""
    problems: list[str] = []
    properties = definition.properties

    for required in definition.required:
        value = arguments.get(required)
        if value is None or value == "" or value == []:
            problems.append(f"missing required parameter '{required}'")

    for key, value in arguments.items():
        spec = properties.get(key)
        if spec is None or value is None:
            continue
        expected = _JSON_TYPES.get(spec.get("type", ""))
        if expected is None:
            continue
        # bool is an int subclass; keep the two apart.
        if isinstance(value, bool) and bool not in expected:
            problems.append(f"parameter '{key}' must be {spec['type']}")
        elif not isinstance(value, expected):
            problems.append(f"parameter '{key}' must be {spec['type']}")
        elif "enum" in spec and value not in spec["enum"]:
            problems.append(f"parameter '{key}' must be one of {spec['enum']}")

    return problems


def _as_number(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            value = float(text)
        except ValueError:
            return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def coerce_arguments(definition: ToolDefinition, arguments: dict[str, Any]) -> dict[str, Any]:
    """Convert numeric strings and integral floats for numeric parameters.

    Models often send ``"5000"`` or ``5000.0`` for a rank; both become ``5000``.
    Anything that still doesn't fit is left for :func:`validate_arguments`.
    """
    properties = definition.properties
    coerced = dict(arguments)
    for key, value in arguments.items():
        if properties.get(key, {}).get("type") in ("integer", "number"):
            coerced[key] = _as_number(value)
    return coerced
