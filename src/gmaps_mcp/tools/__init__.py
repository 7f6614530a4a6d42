from gmaps_mcp.tools.maps import MAPS_TOOLS, build_registry, duration_to_seconds
from gmaps_mcp.tools.registry import ToolRegistry, ToolSpec

__all__ = ["MAPS_TOOLS", "ToolRegistry", "ToolSpec", "build_registry", "duration_to_seconds"]
