"""
Tests du suggesteur Ollama.

On MOCK requests pour tester sans avoir besoin du vrai Ollama.
"""

import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.core.errors import SuggestionError
from app.models.ai_trace import AITrace
from app.schemas.ai_trace import TaskSuggestion
from app.services.ai_service import OllamaSuggester, parse_suggestion, suggest_task_metadata


def ollama_response(payload):
    response = MagicMock()
    response.raise_for_status.return_value = None
    text = payload if isinstance(payload, str) else json.dumps(payload)
    response.json.return_value = {"response": text}
    return response


# ========== parse_suggestion ==========

def test_parse_suggestion_full():
    suggestion = parse_suggestion({
        "tags": ["bug", " testing "],
        "priority": "High",
        "dueDate": "2025-04-01",
        "estimatedTime": 3,
        "subtasks": ["Reproduce", "Fix"],
    })
    assert suggestion.tags == ["bug", "testing"]
    assert suggestion.priority == "high"
    assert suggestion.due_date == date(2025, 4, 1)
    assert suggestion.estimated_time == 3
    assert suggestion.subtasks == ["Reproduce", "Fix"]


def test_parse_suggestion_drops_invalid_fields():
    suggestion = parse_suggestion({
        "tags": "bug",
        "priority": "asap",
        "dueDate": "someday",
        "estimatedTime": -1,
    })
    assert suggestion == TaskSuggestion()


def test_parse_suggestion_accepts_snake_case():
    suggestion = parse_suggestion({"due_date": "2025-01-02", "estimated_time": "2"})
    assert suggestion.due_date == date(2025, 1, 2)
    assert suggestion.estimated_time == 2


# ========== suggest_task_metadata ==========

def test_suggest_task_metadata_success():
    with patch("app.services.ai_service.requests.post") as mock_post:
        mock_post.return_value = ollama_response({"tags": ["feature"], "priority": "medium"})
        suggestion, elapsed_ms = suggest_task_metadata("Ship v2", "Release the new API")

    assert suggestion.tags == ["feature"]
    assert suggestion.priority == "medium"
    assert elapsed_ms >= 0
    sent = mock_post.call_args.kwargs["json"]
    assert sent["format"] == "json"
    assert "Release the new API" in sent["prompt"]


def test_suggest_task_metadata_not_json():
    with patch("app.services.ai_service.requests.post") as mock_post:
        mock_post.return_value = ollama_response("Sure! Here are some tags: bug")
        with pytest.raises(SuggestionError):
            suggest_task_metadata("x", "y")


def test_suggest_task_metadata_connection_error():
    with patch("app.services.ai_service.requests.post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(SuggestionError):
            OllamaSuggester()("x", "y")


# ========== POST /ai/suggest ==========

def test_suggest_endpoint(client, auth_headers, db, fake_suggester):
    fake_suggester.suggestion = TaskSuggestion(tags=["docs"], estimated_time=1)
    response = client.post(
        "/ai/suggest", headers=auth_headers, json={"name": "Docs", "description": "Write the README"}
    )
    assert response.status_code == 200
    assert response.json()["tags"] == ["docs"]
    assert fake_suggester.calls == [("Docs", "Write the README")]

    traces = client.get("/ai/traces", headers=auth_headers).json()
    assert len(traces) == 1
    assert traces[0]["analysis_type"] == "suggest_metadata"


def test_suggest_endpoint_requires_description(client, auth_headers, fake_suggester):
    response = client.post("/ai/suggest", headers=auth_headers, json={"name": "Docs", "description": " "})
    assert response.status_code == 422
    assert fake_suggester.calls == []


def test_suggest_endpoint_ollama_down(client, auth_headers, db, fake_suggester):
    fake_suggester.error = SuggestionError("Ollama request failed")
    response = client.post("/ai/suggest", headers=auth_headers, json={"description": "Something"})
    assert response.status_code == 503
    assert db.query(AITrace).filter(AITrace.success == False).count() == 1  # noqa: E712


def test_ai_health(client):
    with patch("app.routers.ai.is_ollama_running", return_value=False):
        response = client.get("/ai/health")
    assert response.json() == {"status": "warning", "ollama": "not running"}
