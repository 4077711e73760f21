import pytest
from fastapi.testclient import TestClient

from qa_graph.api.deps import get_knowledge_service, get_orchestrator
from qa_graph.main import create_app
from qa_graph.orchestrator.service import QAOrchestrator
from qa_graph.rag.knowledge import KnowledgeService
from tests.fakes import FakeEmbedder, ScriptedModelClient, france_clients, make_graph


@pytest.fixture
def knowledge():
    return KnowledgeService(FakeEmbedder())


@pytest.fixture
def client(knowledge):
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: QAOrchestrator(graph=make_graph(*france_clients()))
    app.dependency_overrides[get_knowledge_service] = lambda: knowledge
    # no context manager: the lifespan would build the real graph
    return TestClient(app)


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": "0.1.0"}
    assert resp.headers["X-Trace-Id"]


def test_run_state_graph(client):
    resp = client.post(
        "/v1/state-graph/run",
        json={"question": "What is the capital of France?"},
        headers={"X-Trace-Id": "trace-api"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert "Paris" in body["content"]
    assert body["trace_id"] == "trace-api"
    assert body["steps"] == 8


def test_run_state_graph_rejects_blank_question(client):
    resp = client.post("/v1/state-graph/run", json={"question": "  "}, headers={"X-Trace-Id": "t-blank"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "input_error"
    assert resp.headers["X-Trace-Id"] == "t-blank"


def test_run_state_graph_validation_error(client):
    resp = client.post("/v1/state-graph/run", json={})
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


def test_run_state_graph_recursion_limit_maps_to_500():
    app = create_app()
    looping = make_graph(
        ScriptedModelClient(responder=lambda _: "again"),
        ScriptedModelClient(responder=lambda _: "again"),
        ScriptedModelClient(responder=lambda _: "again"),
    )
    app.dependency_overrides[get_orchestrator] = lambda: QAOrchestrator(graph=looping)
    client = TestClient(app)

    resp = client.post("/v1/state-graph/run", json={"question": "loop"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "recursion_limit_exceeded"


def test_knowledge_search_after_ingest(client, knowledge):
    import asyncio

    asyncio.run(knowledge.ingest_text("Paris is the capital of France.", source="geo.txt"))

    resp = client.post("/v1/knowledge/search", json={"query": "capital of France"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["results"][0]["content"] == "Paris is the capital of France."
    assert body["results"][0]["metadata"]["source"] == "geo.txt"


def test_knowledge_search_empty_index(client):
    resp = client.post("/v1/knowledge/search", json={"query": "anything"})
    assert resp.status_code == 200
    assert resp.json()["results"] == []


def test_knowledge_search_blank_query(client):
    resp = client.post("/v1/knowledge/search", json={"query": " "})
    assert resp.status_code == 400
    assert resp.json()["error"] == "empty_query"


def test_upload_rejects_non_pdf(client):
    resp = client.post(
        "/v1/knowledge/upload-pdf",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "unsupported_file_type"


def test_upload_rejects_too_many_files(client):
    files = [("files", (f"doc{i}.pdf", b"%PDF-1.4", "application/pdf")) for i in range(11)]
    resp = client.post("/v1/knowledge/upload-pdf", files=files)
    assert resp.status_code == 400
    assert resp.json()["error"] == "too_many_files"


def test_upload_rejects_empty_pdf(client):
    resp = client.post("/v1/knowledge/upload-pdf", files=[("files", ("empty.pdf", b"", "application/pdf"))])
    assert resp.status_code == 400
    assert resp.json()["error"] == "empty_file"


def test_upload_rejects_whole_batch_before_ingesting(client, knowledge, monkeypatch):
    ingested = []

    async def fake_ingest_file(path, *, original_name=None):
        ingested.append(original_name)
        raise AssertionError("nothing should be ingested")

    monkeypatch.setattr(knowledge, "ingest_file", fake_ingest_file)
    resp = client.post(
        "/v1/knowledge/upload-pdf",
        files=[
            ("files", ("a.pdf", b"%PDF-1.4", "application/pdf")),
            ("files", ("b.txt", b"hello", "text/plain")),
        ],
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "unsupported_file_type"
    assert ingested == []
    assert knowledge.chunk_count == 0
