"""Agent orchestration: the bounded reasoning/tool loop and its transcript."""
from docs_agent.agent.orchestrator import AgentOrchestrator, AgentResult, AnsweredBy
from docs_agent.agent.transcript import AgentState, AgentStep, StepKind, Transcript

__all__ = [
    "AgentOrchestrator",
    "AgentResult",
    "AnsweredBy",
    "AgentState",
    "AgentStep",
    "StepKind",
    "Transcript",
]
