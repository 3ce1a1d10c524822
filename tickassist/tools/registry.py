"""Tool catalog: definitions per feature level and JSON-in/JSON-out execution."""

import json
from typing import Any

from tickassist.clients.ticktick import TickTickService
from tickassist.clients.ticktick_v2 import TickTickV2Service
from tickassist.models.llm import Credentials, FeatureLevel, ToolDefinition
from tickassist.tools.base import Tool
from tickassist.tools.cache import TTLCache
from tickassist.tools.extended import create_extended_tools
from tickassist.tools.projects import create_project_tools
from tickassist.tools.tasks import create_task_tools
from tickassist.utils.logging import get_logger

logger = get_logger(__name__)


class ToolCatalog:
    """Registry for the TickTick tools the assistant may call.

    The base catalog (v1) talks to the open API with the OAuth token. The
    extended catalog (v2) adds tools backed by the session API; when no
    session token is available, v2 execution falls back to the base tools.
    """

    def __init__(
        self,
        ticktick: TickTickService,
        ticktick_v2: TickTickV2Service | None = None,
        cache: TTLCache | None = None,
    ):
        """Initialize the catalog with its backing-service clients."""
        self.cache = cache if cache is not None else TTLCache()
        self._base_tools: dict[str, Tool] = {}
        self._extended_tools: dict[str, Tool] = {}

        for tool in create_project_tools(ticktick, self.cache) + create_task_tools(ticktick, self.cache):
            self.register_tool(tool)
        if ticktick_v2 is not None:
            for tool in create_extended_tools(ticktick_v2, self.cache):
                self.register_tool(tool, extended=True)

    def register_tool(self, tool: Tool, extended: bool = False) -> None:
        """Register a tool in the base or extended catalog."""
        target = self._extended_tools if extended else self._base_tools
        target[tool.name] = tool

    def list_tools(self, feature_level: FeatureLevel = "v1") -> list[ToolDefinition]:
        """Tool definitions offered to the model at ``feature_level``."""
        tools = list(self._base_tools.values())
        if feature_level == "v2":
            tools += self._extended_tools.values()
        return [tool.definition for tool in tools]

    def get_tool_names(self, feature_level: FeatureLevel = "v1") -> list[str]:
        """Get list of tool names offered at ``feature_level``."""
        return [definition.name for definition in self.list_tools(feature_level)]

    def _resolve(self, feature_level: FeatureLevel, name: str, credentials: Credentials) -> Tool | None:
        if name in self._extended_tools:
            if feature_level == "v2" and credentials.session_token:
                return self._extended_tools[name]
            return None
        return self._base_tools.get(name)

    async def execute(
        self,
        feature_level: FeatureLevel,
        name: str,
        arguments: dict[str, Any],
        credentials: Credentials,
    ) -> str:
        """Run a tool and return its result as a JSON string.

        Never raises: unknown tools, backing-service failures and handler
        errors are all reported as ``{"error": message}``.
        """
        tool = self._resolve(feature_level, name, credentials)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {name}")
            return json.dumps({"error": f"Unknown tool: {name}"})

        logger.info(f"Executing tool {name}")
        try:
            result = await tool.handler(arguments, credentials)
        except KeyError as e:
            logger.error(f"Tool {name} called without argument {e}")
            result = {"error": f"Missing required argument: {e.args[0]}"}
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            result = {"error": str(e) or type(e).__name__}
        finally:
            if tool.mutates:
                self.cache.invalidate()

        return json.dumps(result)
