"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tickassist.models.llm import Credentials, ToolDefinition

ToolHandler = Callable[[dict[str, Any], Credentials], Awaitable[Any]]

FLAGGED_TAG = "flagged"


@dataclass
class Tool:
    """A tool definition bound to the handler that executes it.

    Handlers return a JSON-serializable value. Tools marked ``mutates``
    invalidate the read cache after every execution.
    """

    definition: ToolDefinition
    handler: ToolHandler
    mutates: bool = False

    @property
    def name(self) -> str:
        return self.definition.name


def object_schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    """Build an object parameter schema."""
    schema: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


def compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in values.items() if value is not None}


def pick_present(arguments: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Copy the fields the model actually sent, keeping explicit nulls."""
    return {field: arguments[field] for field in fields if field in arguments}
