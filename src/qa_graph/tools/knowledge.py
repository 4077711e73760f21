from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from qa_graph.tools.registry import ToolSpec

if TYPE_CHECKING:
    from qa_graph.rag.knowledge import KnowledgeService

RAG_SEARCH_TOOL = "rag_search"


def build_rag_search_tool(knowledge: "KnowledgeService") -> ToolSpec:
    async def _handler(args: Dict[str, Any]) -> Dict[str, Any]:
        return await knowledge.search(args["query"])

    return ToolSpec(
        name=RAG_SEARCH_TOOL,
        description="Search in the knowledge base to answer to the question.",
        schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Question or keywords to look up in the knowledge base."},
            },
            "required": ["query"],
        },
        handler=_handler,
    )
