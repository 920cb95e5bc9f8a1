#!/usr/bin/env python
"""Validate the local setup - dependencies, configuration, Ollama and the index."""
import sys
import asyncio
from pathlib import Path

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")


def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")


def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")


def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")


def print_section(title):
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")


async def main():
    print_section("Docs Agent - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 11):
        print_success("Python version >= 3.11")
    else:
        print_error("Python version < 3.11 (required for asyncio.timeout)")
        errors.append("Python version too old")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    dependencies = [
        ("quart", "Quart web framework"),
        ("hypercorn", "Hypercorn ASGI server"),
        ("httpx", "HTTP client"),
        ("faiss", "FAISS vector store"),
        ("numpy", "Vector math"),
        ("pydantic", "Data validation"),
        ("structlog", "Structured logging"),
    ]

    for module_name, description in dependencies:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    # 3. Configuration
    print_section("3. Configuration")

    try:
        sys.path.insert(0, str(Path(__file__).parent.parent))
        from docs_agent import config

        print_success("Config loaded successfully")
        print_info(f"  Chat model: {config.CHAT_MODEL}")
        print_info(f"  Embedding model: {config.EMBEDDING_MODEL}")
        print_info(f"  Ollama URL: {config.OLLAMA_BASE_URL}")
        print_info(f"  Chunk size: {config.CHUNK_SIZE} chars (overlap {config.CHUNK_OVERLAP})")
        print_info(f"  Namespace: {config.VECTOR_NAMESPACE}")

        if config.DOCS_DIR.exists():
            print_success(f"Docs directory exists: {config.DOCS_DIR}")
        else:
            print_error(f"Docs directory missing: {config.DOCS_DIR}")
            errors.append("Docs directory missing")

    except Exception as e:
        print_error(f"Failed to load config: {e}")
        errors.append("Config loading failed")
        return errors, warnings

    from docs_agent.errors import DocsAgentError
    from docs_agent.llm_client import OllamaClient
    from docs_agent.rag.embedder import Embedder
    from docs_agent.rag.store_faiss import FAISSVectorStore

    client = OllamaClient()

    # 4. Ollama service and models
    print_section("4. Ollama Service")

    try:
        models = set(await client.list_models())
        print_success(f"Ollama service running at {config.OLLAMA_BASE_URL}")
        print_info(f"Found {len(models)} models installed")

        for label, model in (("Chat", config.CHAT_MODEL), ("Embedding", config.EMBEDDING_MODEL)):
            if model in models:
                print_success(f"{label} model available: {model}")
            else:
                print_error(f"{label} model missing: {model}")
                print_info(f"  Run: ollama pull {model}")
                errors.append(f"Missing {label.lower()} model: {model}")

    except DocsAgentError as e:
        print_error(f"Cannot reach Ollama: {e}")
        print_info("  Make sure Ollama is running: ollama serve")
        errors.append("Ollama not running")
        return errors, warnings

    # 5. Embedding API
    print_section("5. Embedding API Test")

    try:
        vector = await Embedder(client).embed("test")
        print_success(f"Embedding API working (dimension: {len(vector)})")
    except DocsAgentError as e:
        print_error(f"Embedding API test failed: {e}")
        errors.append(f"Embedding failed: {e}")

    # 6. Vector index
    print_section("6. Vector Index")

    try:
        count = await FAISSVectorStore().count(config.VECTOR_NAMESPACE)
        if count:
            print_success(f"Namespace '{config.VECTOR_NAMESPACE}' holds {count} chunks")
        else:
            print_warning(f"Namespace '{config.VECTOR_NAMESPACE}' is empty")
            print_info("  Run: python scripts/ingest.py")
            warnings.append("Index empty")
    except DocsAgentError as e:
        print_error(f"Vector index unreadable: {e}")
        errors.append("Vector index error")

    # 7. Summary
    print_section("Summary")

    if not errors:
        print_success("All checks passed! ✨")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings


if __name__ == "__main__":
    errors, warnings = asyncio.run(main())
    sys.exit(1 if errors else 0)
