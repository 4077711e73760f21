from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from qa_graph.secrets import get_secret
from qa_graph.tools.registry import ToolSpec

logger = logging.getLogger(__name__)

TAVILY_SEARCH_TOOL = "tavily_search"
DEFAULT_TAVILY_BASE_URL = "https://api.tavily.com"


class WebSearchError(RuntimeError):
    pass


class TavilyClient:
    """Minimal async client for the Tavily search endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_TAVILY_BASE_URL,
        max_results: int = 5,
        search_depth: str = "basic",
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_results = max_results
        self.search_depth = search_depth
        self.timeout_s = timeout_s
        self._transport = transport

    def _resolve_api_key(self) -> str:
        key = self._api_key or get_secret("TAVILY_API_KEY")
        if not key:
            raise WebSearchError("TAVILY_API_KEY is not configured")
        return key

    async def search(self, query: str, *, max_results: Optional[int] = None) -> Dict[str, Any]:
        if not query or not query.strip():
            raise ValueError("query must not be empty")

        headers = {
            "Authorization": f"Bearer {self._resolve_api_key()}",
            "Content-Type": "application/json",
        }
        payload = {
            "query": query,
            "max_results": max_results or self.max_results,
            "search_depth": self.search_depth,
            "topic": "general",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/search", json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise WebSearchError(f"Search timeout for query: {query}") from e
        except httpx.HTTPStatusError as e:
            raise WebSearchError(f"Search HTTP error: {e.response.status_code}") from e
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise WebSearchError(f"Search error: {e}") from e

        results = [
            {
                "title": item.get("title") or "",
                "url": item.get("url") or "",
                "content": item.get("content") or "",
                "score": item.get("score"),
            }
            for item in data.get("results") or []
        ]
        logger.info(
            json.dumps(
                {"event": "web_search", "provider": "tavily", "results": len(results)},
                ensure_ascii=False,
            )
        )
        return {"query": query, "answer": data.get("answer"), "results": results}


def build_tavily_search_tool(client: TavilyClient) -> ToolSpec:
    async def _handler(args: Dict[str, Any]) -> Dict[str, Any]:
        return await client.search(args["query"], max_results=args.get("max_results"))

    return ToolSpec(
        name=TAVILY_SEARCH_TOOL,
        description=(
            "A search engine optimized for comprehensive, accurate, and trusted results. "
            "Useful for when you need to answer questions about current events. Input should be a search query."
        ),
        schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query to look up on the web."},
                "max_results": {"type": "integer", "description": "Maximum number of results to return."},
            },
            "required": ["query"],
        },
        handler=_handler,
    )
