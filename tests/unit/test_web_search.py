import json

import httpx
import pytest

from qa_graph.tools.web_search import TavilyClient, WebSearchError, build_tavily_search_tool


def _client(handler, **kwargs):
    return TavilyClient(api_key="tvly-test", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_search_posts_query_and_normalises_results():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "answer": "Paris",
                "results": [
                    {"title": "France", "url": "https://example.org/fr", "content": "Paris is the capital.", "score": 0.9},
                    {"title": None, "url": "https://example.org/x"},
                ],
            },
        )

    result = await _client(handler, max_results=3).search("capital of France")

    assert seen["url"] == "https://api.tavily.com/search"
    assert seen["auth"] == "Bearer tvly-test"
    assert seen["body"]["query"] == "capital of France"
    assert seen["body"]["max_results"] == 3
    assert result["answer"] == "Paris"
    assert result["results"][0]["content"] == "Paris is the capital."
    assert result["results"][1] == {"title": "", "url": "https://example.org/x", "content": "", "score": None}


@pytest.mark.asyncio
async def test_http_errors_become_web_search_errors():
    client = _client(lambda request: httpx.Response(401, json={"detail": "bad key"}))

    with pytest.raises(WebSearchError, match="401"):
        await client.search("q")


@pytest.mark.asyncio
async def test_timeouts_become_web_search_errors():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(WebSearchError, match="timeout"):
        await _client(handler).search("q")


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch, tmp_path):
    monkeypatch.delenv("TAVILY_API_KEY", raising=False)
    monkeypatch.setenv("QA_GRAPH_SECRETS_DIR", str(tmp_path))

    with pytest.raises(WebSearchError):
        await TavilyClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))).search("q")


@pytest.mark.asyncio
async def test_tool_handler_forwards_max_results():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": []})

    tool = build_tavily_search_tool(_client(handler))
    result = await tool.handler({"query": "q", "max_results": 2})

    assert tool.name == "tavily_search"
    assert seen["body"]["max_results"] == 2
    assert result["results"] == []
