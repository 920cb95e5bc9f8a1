"""Per-request record of the agent loop."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class AgentState(str, Enum):
    REASONING = "reasoning"
    TOOL_INVOCATION = "tool_invocation"
    TOOL_RESULT = "tool_result"
    TERMINAL = "terminal"


class StepKind(str, Enum):
    MODEL_TEXT = "model_text"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class AgentStep:
    """One recorded event of the reasoning loop."""

    round: int
    kind: StepKind
    content: str = ""
    tool_name: Optional[str] = None
    args: Optional[Dict[str, Any]] = None
    success: bool = True
    # Loop state the step was produced in
    state: AgentState = AgentState.REASONING


@dataclass
class Transcript:
    """Append-only, ordered list of agent steps for one request."""

    question: str
    _steps: List[AgentStep] = field(default_factory=list)

    def record(self, step: AgentStep) -> None:
        self._steps.append(step)

    @property
    def steps(self) -> tuple:
        return tuple(self._steps)

    def __iter__(self) -> Iterator[AgentStep]:
        return iter(tuple(self._steps))

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def rounds(self) -> int:
        """Number of reasoning rounds recorded so far."""
        return max((step.round for step in self._steps), default=0)

    def tool_payloads(self) -> List[str]:
        """Payloads of successful tool executions, in order."""
        return [
            step.content
            for step in self._steps
            if step.kind == StepKind.TOOL_RESULT and step.success and step.content
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "steps": [
                {
                    "round": step.round,
                    "kind": step.kind.value,
                    "content": step.content,
                    "tool_name": step.tool_name,
                    "args": step.args,
                    "success": step.success,
                    "state": step.state.value,
                }
                for step in self._steps
            ],
        }
