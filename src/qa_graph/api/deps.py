from __future__ import annotations

from functools import lru_cache

from qa_graph.api.config import get_settings
from qa_graph.graph.builder import build_qa_agents, build_qa_graph
from qa_graph.graph.executor import GraphExecutor
from qa_graph.llm.client import ChatModelClient
from qa_graph.llm.retry import RetryPolicy
from qa_graph.orchestrator.service import QAOrchestrator
from qa_graph.rag.embedder import build_embedder
from qa_graph.rag.knowledge import KnowledgeService
from qa_graph.tools.dispatcher import ToolDispatcher
from qa_graph.tools.knowledge import RAG_SEARCH_TOOL, build_rag_search_tool
from qa_graph.tools.registry import ToolRegistry
from qa_graph.tools.web_search import TAVILY_SEARCH_TOOL, TavilyClient, build_tavily_search_tool


@lru_cache
def get_knowledge_service() -> KnowledgeService:
    settings = get_settings()
    embedder = build_embedder(settings.embedding_provider, model=settings.embedding_model)
    return KnowledgeService(
        embedder,
        chunk_size=settings.kb_chunk_size,
        chunk_overlap=settings.kb_chunk_overlap,
        top_k=settings.kb_top_k,
    )


@lru_cache
def get_tavily_client() -> TavilyClient:
    settings = get_settings()
    return TavilyClient(base_url=settings.tavily_base_url, max_results=settings.tavily_max_results)


@lru_cache
def get_tool_registry() -> ToolRegistry:
    return ToolRegistry(
        [
            build_rag_search_tool(get_knowledge_service()),
            build_tavily_search_tool(get_tavily_client()),
        ],
        max_concurrency_global=20,
    )


@lru_cache
def get_model_client(model: str) -> ChatModelClient:
    settings = get_settings()
    return ChatModelClient(
        model=model,
        temperature=settings.llm_temperature,
        timeout_s=settings.llm_timeout_s,
        retry_policy=RetryPolicy(max_attempts=max(1, settings.llm_retries)),
        max_inflight=settings.llm_max_inflight,
    )


@lru_cache
def get_graph() -> GraphExecutor:
    settings = get_settings()
    registry = get_tool_registry()
    agents = build_qa_agents(
        coordinator_client=get_model_client(settings.coordinator_model),
        rag_client=get_model_client(settings.rag_model),
        tavily_client=get_model_client(settings.tavily_model),
        rag_tool=registry.get(RAG_SEARCH_TOOL),
        tavily_tool=registry.get(TAVILY_SEARCH_TOOL),
    )
    return build_qa_graph(
        agents,
        ToolDispatcher(registry),
        recursion_limit=settings.graph_recursion_limit,
        require_specialist_answers=settings.require_specialist_answers,
        debug_logging=settings.debug_logging,
    )


@lru_cache
def get_orchestrator() -> QAOrchestrator:
    return QAOrchestrator(graph=get_graph(), default_timeout_s=get_settings().run_timeout_s)
