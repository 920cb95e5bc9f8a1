"""Main Quart application for the documentation agent."""
from typing import Optional

from quart import Quart, request, jsonify
import structlog

from docs_agent import config
from docs_agent.agent import AgentOrchestrator
from docs_agent.errors import PromptValidationError
from docs_agent.llm_client import OllamaClient
from docs_agent.logging_setup import configure_logging
from docs_agent.rag.embedder import Embedder
from docs_agent.rag.retriever import KnowledgeRetriever
from docs_agent.rag.store_faiss import FAISSVectorStore
from docs_agent.tools import ToolRegistry, create_search_tool

logger = structlog.get_logger()

HEALTH_MESSAGE = "AI Agent Server is running!"


def build_orchestrator(
    llm: Optional[OllamaClient] = None,
    vector_store: Optional[FAISSVectorStore] = None,
) -> AgentOrchestrator:
    """Wire the default collaborators into an orchestrator.

    Args:
        llm: Ollama client for chat and embeddings (default: config-based)
        vector_store: Vector index (default: FAISS store in config.DATA_DIR)

    Returns:
        AgentOrchestrator with the documentation search tool registered
    """
    llm = llm or OllamaClient()
    vector_store = vector_store or FAISSVectorStore()

    retriever = KnowledgeRetriever(embedder=Embedder(llm), vector_store=vector_store)

    registry = ToolRegistry()
    registry.register(create_search_tool(retriever))

    return AgentOrchestrator(llm=llm, tools=registry)


def _require_prompt(data) -> str:
    """Return the prompt of a chat request body.

    Raises:
        PromptValidationError: If the prompt is missing, not a string or blank
    """
    prompt = data.get("prompt") if isinstance(data, dict) else None
    if not isinstance(prompt, str) or not prompt.strip():
        raise PromptValidationError("Prompt is required")
    return prompt


def create_app(
    orchestrator: Optional[AgentOrchestrator] = None,
    llm: Optional[OllamaClient] = None,
    vector_store: Optional[FAISSVectorStore] = None,
) -> Quart:
    """Create the Quart application.

    Args:
        orchestrator: Pre-built orchestrator (built from llm/vector_store if omitted)
        llm: Ollama client, also used by the readiness probe
        vector_store: Vector index, also used by the readiness probe

    Returns:
        Configured Quart app
    """
    configure_logging()

    llm = llm or OllamaClient()
    vector_store = vector_store or FAISSVectorStore()
    orchestrator = orchestrator or build_orchestrator(llm=llm, vector_store=vector_store)

    app = Quart(__name__)

    @app.route("/health", methods=["GET"])
    async def health():
        """Basic health check endpoint."""
        return jsonify({"status": "ok", "message": HEALTH_MESSAGE}), 200

    @app.route("/health/ready", methods=["GET"])
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Ollama service is reachable
        - Required chat and embedding models are available
        - The documentation namespace has vectors
        """
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
            "indexed_chunks": 0,
        }

        try:
            models = await llm.list_models()
            checks["ollama"] = True

            missing = [m for m in (config.CHAT_MODEL, config.EMBEDDING_MODEL) if m not in models]
            if missing:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing models: {', '.join(missing)}"
            else:
                checks["models"] = True

            checks["indexed_chunks"] = await vector_store.count(config.VECTOR_NAMESPACE)

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/api/chat", methods=["POST"])
    async def chat():
        """Answer a question with the documentation agent.

        Expects JSON body:
        {
            "prompt": "user question"
        }

        Returns JSON:
        {
            "question": "user question",
            "answer": "assistant answer"
        }
        """
        try:
            data = await request.get_json(force=True, silent=True)
            prompt = _require_prompt(data)
        except PromptValidationError as e:
            logger.warning("chat_request_invalid", error=str(e))
            return jsonify({"error": str(e)}), 400

        logger.info(
            "chat_request_received",
            prompt_length=len(prompt),
            prompt_preview=prompt[:100],
        )

        try:
            result = await orchestrator.run(prompt)
        except Exception as e:
            logger.error("chat_endpoint_error", error=str(e), error_type=type(e).__name__)
            return jsonify({"error": "Internal Server Error"}), 500

        logger.info(
            "chat_response_sent",
            answered_by=result.answered_by.value,
            rounds=result.rounds,
            answer_length=len(result.answer),
        )

        return jsonify({"question": prompt, "answer": result.answer}), 200

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal Server Error"}), 500

    return app


if __name__ == "__main__":
    # For development - run with hypercorn in production
    create_app().run(host=config.HOST, port=config.PORT, debug=True)
