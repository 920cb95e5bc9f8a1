"""Tool registry for LLM tool calling.

Provides a dataclass-based tool system where the model can call tools either
through Ollama's native `tool_calls` or a JSON-formatted request in its text.
Whatever the model sends, tool outputs come back as one `ToolResult` shape.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Callable, Awaitable, Dict, Any, List, Optional
from pydantic import BaseModel, ValidationError
import structlog

from docs_agent import config
from docs_agent.errors import UpstreamServiceError

logger = structlog.get_logger()


@dataclass
class Tool:
    """Tool definition with input/output schemas and handler."""
    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[BaseModel]]
    # Argument filled with the user's question when the model leaves it out
    default_arg: Optional[str] = None
    # Output field whose text is handed back to the model
    payload_field: Optional[str] = None


@dataclass
class ToolResult:
    """Result of a tool execution."""
    tool_name: str
    success: bool
    payload: str = ""
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def as_message(self) -> str:
        """Text returned to the model for this execution."""
        if self.success:
            return self.payload
        return f"Tool execution failed: {self.error}"


class ToolRegistry:
    """Registry for available tools."""

    def __init__(self, timeout: float = None):
        self.tools: Dict[str, Tool] = {}
        self._timeout = timeout if timeout is not None else config.TOOL_TIMEOUT

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self.tools[tool.name] = tool
        logger.info("tool_registered", tool_name=tool.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self.tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools."""
        return list(self.tools.values())

    def get_tools_description(self) -> str:
        """Get a formatted description of all tools for the LLM system prompt."""
        if not self.tools:
            return "No tools available."

        descriptions = []
        for tool in self.tools.values():
            input_schema = tool.input_model.model_json_schema()

            descriptions.append(f"""
Tool: {tool.name}
Description: {tool.description}
Input schema: {json.dumps(input_schema, indent=2)}
""")

        return "\n".join(descriptions)

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        """Function-tool schemas in the format Ollama's chat API expects."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_model.model_json_schema(),
                },
            }
            for tool in self.tools.values()
        ]

    async def execute_tool(
        self,
        tool_name: str,
        args: Dict[str, Any],
        default_value: Optional[str] = None,
    ) -> ToolResult:
        """Execute a tool with the given arguments.

        Args:
            tool_name: Name of the tool to execute
            args: Arguments to pass to the tool
            default_value: Value for the tool's default argument when missing

        Returns:
            ToolResult with success status and payload or error

        Raises:
            UpstreamServiceError: If the tool's backing service fails or the
                tool exceeds its timeout
        """
        tool = self.get_tool(tool_name)

        if not tool:
            logger.error("tool_not_found", tool_name=tool_name)
            return ToolResult(
                tool_name=tool_name,
                success=False,
                error=f"Tool '{tool_name}' not found",
            )

        args = dict(args or {})
        if tool.default_arg and not args.get(tool.default_arg) and default_value:
            args[tool.default_arg] = default_value

        try:
            validated_input = tool.input_model(**args)
        except ValidationError as e:
            logger.warning("tool_invalid_arguments", tool_name=tool_name, error=str(e))
            return ToolResult(
                tool_name=tool_name,
                success=False,
                error=f"Invalid arguments: {e.errors(include_url=False)}",
            )

        try:
            async with asyncio.timeout(self._timeout):
                result = await tool.handler(validated_input)

        except TimeoutError as e:
            logger.error("tool_timeout", tool_name=tool_name, timeout=self._timeout)
            raise UpstreamServiceError(
                f"Tool '{tool_name}' timed out after {self._timeout}s"
            ) from e

        except UpstreamServiceError:
            logger.error("tool_upstream_failure", tool_name=tool_name)
            raise

        except Exception as e:
            logger.exception("tool_execution_failed", tool_name=tool_name, error=str(e))
            return ToolResult(
                tool_name=tool_name,
                success=False,
                error=f"Tool execution failed: {str(e)}",
            )

        result_dict = result.model_dump() if hasattr(result, "model_dump") else {}

        if tool.payload_field:
            payload = str(result_dict.get(tool.payload_field, ""))
        else:
            payload = json.dumps(result_dict)

        logger.info(
            "tool_executed",
            tool_name=tool_name,
            success=True,
            result_preview=payload[:100],
        )

        return ToolResult(tool_name=tool_name, success=True, payload=payload, data=result_dict)
