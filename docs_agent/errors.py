"""Exception hierarchy shared by the ingestion, retrieval and agent layers.

Only `PromptValidationError` and `UpstreamServiceError` are ever meant to
reach an HTTP caller. Empty retrievals and unanswered agent runs are handled
in-band and never raise.
"""


class DocsAgentError(Exception):
    """Base class for all docs agent errors."""


class PromptValidationError(DocsAgentError):
    """The chat request is missing its prompt or the prompt is empty."""


class UpstreamServiceError(DocsAgentError):
    """A call to the language model, embedding model or vector index failed."""

    service = "upstream"


class LLMServiceError(UpstreamServiceError):
    service = "llm"


class EmbeddingError(UpstreamServiceError):
    service = "embedding"


class VectorStoreError(UpstreamServiceError):
    service = "vector_store"
