#!/usr/bin/env python
"""Index the documents directory into the vector store.

Usage:
    python scripts/ingest.py                 # Re-scan docs and upsert every chunk
    python scripts/ingest.py --rebuild       # Clear the namespace first
    python scripts/ingest.py --docs-dir DIR  # Index another directory
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docs_agent import config
from docs_agent.errors import DocsAgentError
from docs_agent.llm_client import OllamaClient
from docs_agent.logging_setup import configure_logging
from docs_agent.rag.embedder import Embedder
from docs_agent.rag.ingest import IngestPipeline, IngestStats
from docs_agent.rag.store_faiss import FAISSVectorStore
import structlog

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        """Start progress reporting."""
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        """Update progress."""
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, stats: IngestStats, namespace: str):
        """Finish progress reporting."""
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        for source, count in stats.chunks_per_source.items():
            print(f"  File [{source}] has been split into {count} chunks.")
        if stats.chunks_per_source:
            print()

        print(f"{'=' * 60}")
        print("  Ingestion Complete!")
        print(f"{'=' * 60}\n")
        print(f"  Files processed:     {stats.files_processed}")
        print(f"  Files skipped:        {stats.files_skipped}")
        print(f"  Chunks created:       {stats.chunks_created}")
        print(f"  Embeddings generated: {stats.embeddings_generated}")
        print(f"  Records upserted:     {stats.records_upserted}")
        print(f"  Time elapsed:         {elapsed_seconds:.1f}s")
        print(f"\n{'=' * 60}\n")

        if stats.files_skipped > 0:
            print(f"Warning: {stats.files_skipped} file(s) could not be read.")
            print("   Check logs for details.\n")

        if stats.records_upserted > 0:
            print(f"Namespace '{namespace}' ready in {config.DATA_DIR}\n")
        elif stats.files_processed == 0:
            print("The docs folder is empty, or there are no matching files.\n")


async def main():
    """Main entry point for the ingest script."""
    parser = argparse.ArgumentParser(
        description="Chunk, embed and index the documents directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ingest.py                 # Re-scan and upsert
  python scripts/ingest.py --rebuild       # Clear the namespace first
        """,
    )

    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Delete the namespace before writing (removes chunks of deleted files)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output",
    )

    parser.add_argument(
        "--docs-dir",
        type=Path,
        default=None,
        help=f"Documents directory (default: {config.DOCS_DIR})",
    )

    parser.add_argument(
        "--namespace",
        default=None,
        help=f"Vector index namespace (default: {config.VECTOR_NAMESPACE})",
    )

    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else "WARNING")
    progress = ProgressReporter(verbose=args.verbose)

    try:
        print("\nConfiguration:")
        print(f"   Documents directory: {args.docs_dir or config.DOCS_DIR}")
        print(f"   Embedding model:     {config.EMBEDDING_MODEL}")
        print(f"   Chunk size:          {config.CHUNK_SIZE} chars")
        print(f"   Chunk overlap:       {config.CHUNK_OVERLAP} chars")
        print(f"   Namespace:           {args.namespace or config.VECTOR_NAMESPACE}")

        action = "Rebuilding" if args.rebuild else "Ingesting"
        progress.start(f"{action} Documents")

        pipeline = IngestPipeline(
            embedder=Embedder(OllamaClient()),
            vector_store=FAISSVectorStore(),
            docs_dir=args.docs_dir,
            namespace=args.namespace,
        )

        stats = await pipeline.ingest_all(
            rebuild=args.rebuild,
            progress_callback=progress.update,
        )

        progress.finish(stats, pipeline.namespace)

    except KeyboardInterrupt:
        print("\n\nIngestion cancelled by user.\n")
        sys.exit(1)

    except FileNotFoundError as e:
        print(f"\nError: {e}")
        print("Create the folder and put .md or .txt documents inside.\n")
        sys.exit(1)

    except DocsAgentError as e:
        print(f"\nError: {e}\n")
        logger.error("ingest_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
