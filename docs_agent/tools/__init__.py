"""Tools package."""
from docs_agent.tools.registry import Tool, ToolResult, ToolRegistry
from docs_agent.tools.knowledge_search import SEARCH_TOOL_NAME, create_search_tool

__all__ = ["Tool", "ToolResult", "ToolRegistry", "SEARCH_TOOL_NAME", "create_search_tool"]
