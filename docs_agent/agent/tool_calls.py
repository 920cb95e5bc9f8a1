"""Normalisation of model tool requests into one `ToolCall` shape."""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


def _coerce_args(arguments: Any) -> Dict[str, Any]:
    """Tool arguments arrive as a dict or as a JSON-encoded string."""
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str) and arguments.strip():
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("tool_arguments_not_json", arguments_preview=arguments[:100])
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def parse_tool_call_text(text: str) -> Optional[ToolCall]:
    """Parse a tool call from LLM response text.

    Looks for JSON in the format:
    {
      "tool": "tool_name",
      "args": {...}
    }

    Handles markdown code blocks (```json ... ```)

    Args:
        text: LLM response text

    Returns:
        ToolCall if found, None otherwise
    """
    if not text:
        return None

    # Strip markdown code blocks if present
    code_block_match = re.search(r'```(?:json)?\s*(\{.*?\})\s*```', text, re.DOTALL)
    if code_block_match:
        text = code_block_match.group(1).strip()

    # Only treat a reply as a tool call when it is essentially a JSON object
    start_idx = text.find('{')
    if start_idx == -1 or text[:start_idx].strip():
        return None

    # Extract JSON by matching braces from start
    brace_count = 0
    end_idx = start_idx
    for i in range(start_idx, len(text)):
        if text[i] == '{':
            brace_count += 1
        elif text[i] == '}':
            brace_count -= 1
            if brace_count == 0:
                end_idx = i + 1
                break

    if brace_count != 0:
        # Unmatched braces
        return None

    json_str = text[start_idx:end_idx]

    try:
        tool_call = json.loads(json_str)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("failed_to_parse_tool_call", error=str(e), text_preview=json_str[:100])
        return None

    if isinstance(tool_call, dict) and "tool" in tool_call:
        return ToolCall(
            name=str(tool_call["tool"]),
            args=_coerce_args(tool_call.get("args")),
            raw=tool_call,
        )

    return None


def extract_tool_calls(message: Dict[str, Any]) -> List[ToolCall]:
    """Collect the tool calls of an assistant message.

    Native `tool_calls` take precedence; otherwise the message text is checked
    for a JSON tool request.

    Args:
        message: The 'message' object of an Ollama chat response

    Returns:
        Tool calls in the order the model issued them (may be empty)
    """
    calls = []
    for raw in message.get("tool_calls") or []:
        function = raw.get("function") or {}
        name = function.get("name")
        if not name:
            logger.warning("tool_call_without_name", raw=raw)
            continue
        calls.append(ToolCall(name=name, args=_coerce_args(function.get("arguments")), raw=raw))

    if calls:
        return calls

    text_call = parse_tool_call_text(message.get("content") or "")
    return [text_call] if text_call else []
