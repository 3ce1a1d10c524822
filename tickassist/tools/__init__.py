"""Tools for the conversational task assistant."""

from tickassist.tools.base import Tool
from tickassist.tools.cache import TTLCache
from tickassist.tools.registry import ToolCatalog

__all__ = ["Tool", "TTLCache", "ToolCatalog"]
