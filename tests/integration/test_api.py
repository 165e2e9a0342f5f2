"""HTTP adapter tests using FastAPI's TestClient."""

import json

import pytest
from fastapi.testclient import TestClient

from fakes import FakeKnowledgeStore, ScriptedLLM, SlowKnowledgeStore, kb_ref
from rag_orchestrator.api.app import create_app
from rag_orchestrator.models.schemas import CritiqueResponse, GradingResponse, PlanResponse

PARIS = kb_ref("geo-1", "Paris is the capital of France.", rerank=3.2, title="Geography")


def _llm() -> ScriptedLLM:
    return ScriptedLLM(
        {
            PlanResponse: [PlanResponse(strategy="knowledge_only", confidence=0.9)],
            GradingResponse: [GradingResponse(confidence="correct")],
            CritiqueResponse: [CritiqueResponse(grounded=True, coverage=0.95, action="accept")],
        },
        answers=["The capital of France is Paris [1]."],
    )


@pytest.fixture
def client(make_pipeline, settings):
    app = create_app(make_pipeline(_llm(), FakeKnowledgeStore(primary=[PARIS])), settings)
    with TestClient(app) as c:
        yield c


def _sse_events(body: str) -> list[tuple[str, dict]]:
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "knowledge_store": False, "web_search": False}


def test_session_round_trip(client):
    response = client.post(
        "/session",
        json={"query": "What is the capital of France?"},
        headers={"X-Request-ID": "req-123"},
    )
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"

    data = response.json()
    assert data["answer"] == "The capital of France is Paris [1]."
    assert data["state"] == "accepted"
    assert data["strategy"] == "knowledge_only"
    assert data["cited"] == [1]
    assert data["trace_id"] == "req-123"
    assert data["references"][0]["title"] == "Geography"
    assert data["references"][0]["source"] == "knowledge_store"
    assert data["diagnostics"]["fallback_level_used"] == 1
    assert data["diagnostics"]["threshold_history"] == [2.5]
    assert data["critiques"][0]["action"] == "accept"


def test_request_id_is_generated_when_absent(client):
    response = client.post("/session", json={"query": "What is the capital of France?"})
    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 32
    assert response.json()["trace_id"] == request_id
    assert float(response.headers["X-Duration-MS"]) >= 0


def test_empty_query_is_rejected(client):
    assert client.post("/session", json={"query": ""}).status_code == 422


def test_unknown_feature_override_is_rejected(client):
    response = client.post("/session", json={"query": "q", "features": {"google_api_key": "x"}})
    assert response.status_code == 422
    assert "google_api_key" in response.json()["detail"]


def test_stream_emits_ordered_events(client):
    response = client.post("/session/stream", json={"query": "What is the capital of France?"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    events = _sse_events(response.text)
    names = [name for name, _ in events]
    assert names[:4] == ["plan_decided", "retrieval_started", "retrieval_completed", "critique_completed"]
    assert names[-1] == "done"
    streamed = "".join(data["text"] for name, data in events if name == "answer_token")
    assert streamed == "The capital of France is Paris [1]."


def test_request_timeout_maps_to_504(make_pipeline, settings):
    pipeline = make_pipeline(
        ScriptedLLM({PlanResponse: [PlanResponse(strategy="knowledge_only", confidence=0.9)]}),
        SlowKnowledgeStore(),
    )
    app = create_app(pipeline, settings.model_copy(update={"request_timeout_s": 0.05}))
    with TestClient(app) as c:
        response = c.post("/session", json={"query": "What is the capital of France?"})
    assert response.status_code == 504
