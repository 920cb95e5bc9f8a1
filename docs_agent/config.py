"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DOCS_DIR = Path(os.getenv("DOCS_DIR", str(BASE_DIR / "docs")))

# Ensure data directory exists
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
CHAT_MODEL = os.getenv("CHAT_MODEL", "qwen2.5:7b")  # needs native tool calling
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60.0"))

# Chunking parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "500"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "100"))
MIN_CHUNK_LENGTH = int(os.getenv("MIN_CHUNK_LENGTH", "10"))
BOUNDARY_LOOKAHEAD = int(os.getenv("BOUNDARY_LOOKAHEAD", "50"))

# Ingestion
DOC_EXTENSIONS = tuple(
    ext.strip() for ext in os.getenv("DOC_EXTENSIONS", ".md,.txt").split(",") if ext.strip()
)
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "64"))

# Vector index
VECTOR_NAMESPACE = os.getenv("VECTOR_NAMESPACE", "my-company-docs")
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "2"))

# Agent loop
AGENT_MAX_STEPS = int(os.getenv("AGENT_MAX_STEPS", "5"))
TOOL_TIMEOUT = float(os.getenv("TOOL_TIMEOUT", "30.0"))
# Set to "false" for chat models without function calling (JSON-in-text tool requests)
AGENT_NATIVE_TOOLS = os.getenv("AGENT_NATIVE_TOOLS", "true").lower() in ("1", "true", "yes")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))

# Database
DB_PATH = DATA_DIR / "vectors.sqlite"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
