"""Company documentation search tool backed by the knowledge retriever."""
from typing import Optional
from pydantic import BaseModel, Field
import structlog

from docs_agent.rag.retriever import KnowledgeRetriever
from docs_agent.tools.registry import Tool

logger = structlog.get_logger()

SEARCH_TOOL_NAME = "searchCompanyDocs"


class SearchDocsInput(BaseModel):
    """Input for the documentation search tool."""
    query: Optional[str] = Field(
        default=None,
        description="Search query for the knowledge base",
    )


class SearchDocsOutput(BaseModel):
    """Output from the documentation search tool."""
    query: str
    context: str


def create_search_tool(retriever: KnowledgeRetriever) -> Tool:
    """Build the documentation search tool around a retriever.

    Args:
        retriever: Retriever the tool delegates to

    Returns:
        Tool ready to register
    """

    async def search_handler(input_data: SearchDocsInput) -> SearchDocsOutput:
        query = input_data.query or ""
        logger.info("docs_search_started", query_preview=query[:100])
        context = await retriever.retrieve(query)
        return SearchDocsOutput(query=query, context=context)

    return Tool(
        name=SEARCH_TOOL_NAME,
        description=(
            "Search internal project documentation for frontend, backend, "
            "auth, and deployment specs."
        ),
        input_model=SearchDocsInput,
        output_model=SearchDocsOutput,
        handler=search_handler,
        default_arg="query",
        payload_field="context",
    )
