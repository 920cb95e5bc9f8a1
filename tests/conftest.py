"""Shared fixtures and fakes for the test suite.

The collaborators (chat model, embedding model) are replaced by small
deterministic fakes; the FAISS/SQLite vector store runs for real in tmp_path.
"""
import re
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from docs_agent.db import RecordDatabase
from docs_agent.rag.store_faiss import FAISSVectorStore


def text_response(text: str) -> Dict[str, Any]:
    """Ollama chat response carrying plain text."""
    return {"message": {"role": "assistant", "content": text}, "done": True}


def tool_call_response(query: Optional[str] = None, name: str = "searchCompanyDocs") -> Dict[str, Any]:
    """Ollama chat response carrying one native tool call."""
    arguments = {} if query is None else {"query": query}
    return {
        "message": {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"function": {"name": name, "arguments": arguments}}],
        },
        "done": True,
    }


class ScriptedLLM:
    """Chat client that replays canned responses and records every call.

    `script` is either a list of responses (the last one repeats once the list
    runs out) or a callable(call_index, messages, tools) -> response.
    """

    def __init__(self, script: Union[List[Dict[str, Any]], Callable]):
        self.script = script
        self.calls: List[Dict[str, Any]] = []

    async def chat(self, messages, model=None, tools=None, temperature=None):
        index = len(self.calls)
        self.calls.append(
            {"messages": [dict(m) for m in messages], "model": model, "tools": tools}
        )
        if callable(self.script):
            return self.script(index, messages, tools)
        return self.script[min(index, len(self.script) - 1)]

    async def list_models(self):
        return []


class KeywordEmbedder:
    """Deterministic bag-of-words embedder over a fixed vocabulary."""

    VOCAB = [
        "frontend", "next.js", "router", "react", "backend", "fastapi",
        "auth", "oauth", "token", "deploy", "kubernetes", "docker",
        "database", "postgres", "cache", "redis",
    ]

    def __init__(self):
        self.batch_calls = 0
        self.single_calls = 0

    def vector(self, text: str) -> List[float]:
        words = re.findall(r"[a-z0-9.]+", text.lower())
        counts = [float(sum(1 for w in words if w.startswith(term))) for term in self.VOCAB]
        # Constant component keeps every vector non-zero
        return counts + [0.1]

    async def embed(self, text: str) -> List[float]:
        self.single_calls += 1
        return self.vector(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls += 1
        return [self.vector(t) for t in texts]


@pytest.fixture
def vector_store(tmp_path) -> FAISSVectorStore:
    """Real FAISS store backed by a throwaway SQLite database."""
    return FAISSVectorStore(
        index_dir=tmp_path / "index",
        database=RecordDatabase(tmp_path / "index" / "vectors.sqlite"),
    )


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def docs_dir(tmp_path):
    """A small documentation corpus."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "frontend.md").write_text(
        "# Frontend\n\n"
        "The frontend is built with Next.js App Router and React server components.\n"
        "Pages live under the app directory.\n",
        encoding="utf-8",
    )
    (docs / "auth.txt").write_text(
        "Authentication uses OAuth with short-lived access token rotation.\n"
        "Refresh tokens are stored in an httpOnly cookie.\n",
        encoding="utf-8",
    )
    (docs / "diagram.png").write_bytes(b"\x89PNG not a document")
    return docs


def tool_messages(call: Dict[str, Any]) -> List[str]:
    """Contents of the tool-role messages sent in a recorded chat call."""
    return [m["content"] for m in call["messages"] if m["role"] == "tool"]


