"""Bounded tool-calling loop that turns a question into an answer.

The loop is an explicit state machine:

    REASONING -> (TOOL_INVOCATION -> TOOL_RESULT -> REASONING)* -> TERMINAL

Each REASONING state is one tool-enabled model call and counts as one round;
at most `max_steps` rounds run per request. When TERMINAL is reached without a
direct text answer, the tool payloads collected in the transcript are handed
to a single tool-less "fallback synthesis" call. If that also yields nothing
usable, a fixed apology is returned instead of an error.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List
import structlog

from docs_agent import config
from docs_agent.agent import prompts
from docs_agent.agent.tool_calls import ToolCall, extract_tool_calls
from docs_agent.agent.transcript import AgentState, AgentStep, StepKind, Transcript
from docs_agent.llm_client import OllamaClient
from docs_agent.tools.registry import ToolRegistry, ToolResult

logger = structlog.get_logger()

# Strings some models emit in place of an answer
PLACEHOLDER_ANSWERS = {"undefined", "null", "none"}


class AnsweredBy(str, Enum):
    MODEL = "model"
    FALLBACK = "fallback"
    SAFETY_NET = "safety_net"


@dataclass
class AgentResult:
    """Outcome of one orchestrated request."""

    question: str
    answer: str
    answered_by: AnsweredBy
    transcript: Transcript

    @property
    def rounds(self) -> int:
        return self.transcript.rounds


def is_usable_answer(text: str) -> bool:
    """True when text is a real answer rather than empty or a placeholder."""
    if not text or not text.strip():
        return False
    return text.strip().lower() not in PLACEHOLDER_ANSWERS


class AgentOrchestrator:
    """Drives the model through retrieval rounds and guarantees an answer."""

    def __init__(
        self,
        llm: OllamaClient,
        tools: ToolRegistry,
        model: str = None,
        max_steps: int = None,
        native_tools: bool = None,
    ):
        """Initialize the orchestrator.

        Args:
            llm: Chat client
            tools: Registry of tools the model may call
            model: Chat model name (default from config)
            max_steps: Maximum reasoning rounds per request (default from config)
            native_tools: Use Ollama function calling instead of JSON-in-text
                tool requests (default from config)
        """
        self.llm = llm
        self.tools = tools
        self.model = model or config.CHAT_MODEL
        self.max_steps = max_steps if max_steps is not None else config.AGENT_MAX_STEPS
        self.native_tools = (
            config.AGENT_NATIVE_TOOLS if native_tools is None else native_tools
        )

        if self.max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {self.max_steps}")

    def _initial_messages(self, question: str) -> List[Dict[str, Any]]:
        system_content = prompts.AGENT_SYSTEM_PROMPT
        if not self.native_tools:
            system_content += prompts.TEXT_TOOL_INSTRUCTIONS.format(
                tools_description=self.tools.get_tools_description()
            )

        return [
            {"role": "system", "content": system_content},
            {"role": "user", "content": question},
        ]

    def _assistant_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        assistant = {"role": "assistant", "content": message.get("content") or ""}
        if self.native_tools and message.get("tool_calls"):
            assistant["tool_calls"] = message["tool_calls"]
        return assistant

    def _tool_message(self, call: ToolCall, result: ToolResult) -> Dict[str, Any]:
        if self.native_tools:
            return {"role": "tool", "tool_name": call.name, "content": result.as_message()}

        if not result.success:
            return {
                "role": "user",
                "content": f"{result.as_message()}. Please respond without using tools.",
            }
        return {
            "role": "user",
            "content": (
                f"Tool '{call.name}' returned:\n{result.payload}\n\n"
                "Please provide a natural language answer to the user based on this data."
            ),
        }

    async def run(self, question: str) -> AgentResult:
        """Answer a question, calling tools as the model requests.

        Args:
            question: The user's question

        Returns:
            AgentResult whose answer is never empty

        Raises:
            UpstreamServiceError: If the model or a tool's backing service fails
        """
        transcript = Transcript(question=question)
        messages = self._initial_messages(question)
        tool_schemas = self.tools.get_tool_schemas() if self.native_tools else None

        state = AgentState.REASONING
        round_number = 0
        answer = ""

        logger.info("agent_run_started", question_preview=question[:100], max_steps=self.max_steps)

        while state != AgentState.TERMINAL:
            if round_number >= self.max_steps:
                logger.warning("agent_step_bound_reached", rounds=round_number)
                state = AgentState.TERMINAL
                break

            round_number += 1
            response = await self.llm.chat(messages, model=self.model, tools=tool_schemas)
            message = response.get("message") or {}
            content = (message.get("content") or "").strip()
            calls = extract_tool_calls(message)

            if not calls:
                transcript.record(
                    AgentStep(round=round_number, kind=StepKind.MODEL_TEXT, content=content)
                )
                answer = content
                state = AgentState.TERMINAL
                logger.info(
                    "agent_model_finished",
                    round=round_number,
                    answer_length=len(content),
                )
                break

            if content and self.native_tools:
                transcript.record(
                    AgentStep(round=round_number, kind=StepKind.MODEL_TEXT, content=content)
                )

            messages.append(self._assistant_message(message))

            # Tool calls run one after another; each finishes before the next starts
            for call in calls:
                state = AgentState.TOOL_INVOCATION
                transcript.record(
                    AgentStep(
                        round=round_number,
                        kind=StepKind.TOOL_CALL,
                        tool_name=call.name,
                        args=dict(call.args),
                        state=state,
                    )
                )
                logger.info(
                    "tool_call_detected",
                    round=round_number,
                    state=state.value,
                    tool=call.name,
                    args=call.args,
                )

                result = await self.tools.execute_tool(call.name, call.args, default_value=question)

                state = AgentState.TOOL_RESULT
                transcript.record(
                    AgentStep(
                        round=round_number,
                        kind=StepKind.TOOL_RESULT,
                        content=result.payload if result.success else (result.error or ""),
                        tool_name=call.name,
                        success=result.success,
                        state=state,
                    )
                )
                logger.info(
                    "tool_result_received",
                    round=round_number,
                    state=state.value,
                    tool=call.name,
                    success=result.success,
                )
                messages.append(self._tool_message(call, result))

            state = AgentState.REASONING

        if is_usable_answer(answer):
            return self._finish(question, answer, AnsweredBy.MODEL, transcript)

        fallback = await self._synthesize_fallback(question, transcript)
        if is_usable_answer(fallback):
            return self._finish(question, fallback.strip(), AnsweredBy.FALLBACK, transcript)

        logger.warning("agent_fallback_exhausted", rounds=transcript.rounds)
        return self._finish(question, prompts.APOLOGY_ANSWER, AnsweredBy.SAFETY_NET, transcript)

    async def _synthesize_fallback(self, question: str, transcript: Transcript) -> str:
        """Make the single tool-less call that summarises retrieved context.

        Returns:
            The model's text, or "" when there was no tool output to ground on
        """
        payloads = transcript.tool_payloads()
        if not payloads:
            logger.info("agent_fallback_skipped_no_context")
            return ""

        context = "\n".join(payloads)
        logger.info(
            "agent_fallback_synthesis",
            payload_count=len(payloads),
            context_length=len(context),
        )

        response = await self.llm.chat(
            [
                {"role": "system", "content": prompts.FALLBACK_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": prompts.FALLBACK_USER_TEMPLATE.format(
                        question=question, context=context
                    ),
                },
            ],
            model=self.model,
        )
        return ((response.get("message") or {}).get("content") or "").strip()

    def _finish(
        self,
        question: str,
        answer: str,
        answered_by: AnsweredBy,
        transcript: Transcript,
    ) -> AgentResult:
        logger.info(
            "agent_run_completed",
            answered_by=answered_by.value,
            rounds=transcript.rounds,
            steps=len(transcript),
            answer_length=len(answer),
        )
        return AgentResult(
            question=question,
            answer=answer,
            answered_by=answered_by,
            transcript=transcript,
        )
