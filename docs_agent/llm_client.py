"""Ollama LLM client wrapper with error handling."""
import httpx
from typing import Any, List, Dict, Optional, Union
import structlog

from docs_agent import config
from docs_agent.errors import EmbeddingError, LLMServiceError

logger = structlog.get_logger()


class OllamaClient:
    """Async client for interacting with Ollama API.

    Every call opens its own `httpx.AsyncClient` bounded by `timeout`, so one
    instance can be shared across concurrent requests.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (defaults to config.LLM_TIMEOUT)
            transport: Optional httpx transport (used to stub the API in tests)
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT
        self._transport = transport

    def _client(self, timeout: float = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        model: str = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
    ) -> Dict:
        """Send a non-streaming chat completion request to Ollama.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            tools: Optional function-tool schemas the model may call
            temperature: Sampling temperature (0.0-2.0)

        Returns:
            Response dict with 'message' containing 'content' and, when the
            model requested tools, 'tool_calls'

        Raises:
            LLMServiceError: On connection errors, timeouts and HTTP errors
        """
        model = model or config.CHAT_MODEL

        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
        }

        if tools:
            payload["tools"] = tools

        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        try:
            async with self._client() as client:
                logger.info(
                    "ollama_chat_request",
                    model=model,
                    message_count=len(messages),
                    tool_count=len(tools or []),
                )

                response = await client.post("/api/chat", json=payload)
                response.raise_for_status()

                data = response.json()

                message = data.get("message") or {}
                logger.info(
                    "ollama_chat_response",
                    model=model,
                    response_length=len(message.get("content") or ""),
                    tool_calls=len(message.get("tool_calls") or []),
                )

                return data

        except httpx.TimeoutException as e:
            logger.error("ollama_timeout", error=str(e), timeout=self.timeout)
            raise LLMServiceError(f"Chat request timed out after {self.timeout}s") from e
        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise LLMServiceError(f"Cannot reach Ollama at {self.base_url}") from e
        except httpx.HTTPError as e:
            response = getattr(e, "response", None)
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=getattr(response, "status_code", None),
            )
            raise LLMServiceError(f"Chat request failed: {e}") from e
        except ValueError as e:
            logger.error("ollama_invalid_json", error=str(e))
            raise LLMServiceError("Chat response was not valid JSON") from e

    async def embed(
        self,
        inputs: Union[str, List[str]],
        model: str = None,
    ) -> List[List[float]]:
        """Generate embeddings for one or more texts.

        Args:
            inputs: Text or list of texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            One embedding vector per input, in input order

        Raises:
            EmbeddingError: On API errors
        """
        model = model or config.EMBEDDING_MODEL

        payload = {
            "model": model,
            "input": inputs,
        }

        try:
            async with self._client() as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=model,
                    input_count=1 if isinstance(inputs, str) else len(inputs),
                )

                response = await client.post("/api/embed", json=payload)
                response.raise_for_status()

                data = response.json()
                embeddings = data.get("embeddings") or []

                logger.debug(
                    "ollama_embedding_response",
                    model=model,
                    count=len(embeddings),
                    dimension=len(embeddings[0]) if embeddings else 0,
                )

                return embeddings

        except httpx.TimeoutException as e:
            logger.error("ollama_embedding_timeout", error=str(e), timeout=self.timeout)
            raise EmbeddingError(f"Embedding request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e))
            raise EmbeddingError(f"Embedding request failed: {e}") from e
        except ValueError as e:
            logger.error("ollama_embedding_invalid_json", error=str(e))
            raise EmbeddingError("Embedding response was not valid JSON") from e

    async def list_models(self) -> List[str]:
        """List all available Ollama models.

        Returns:
            List of model names

        Raises:
            LLMServiceError: On API errors
        """
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                return [m["name"] for m in data.get("models", [])]
        except httpx.HTTPError as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise LLMServiceError(f"Failed to list models: {e}") from e
