"""Tests for the REST API (Redis is not started, so caching is disabled)."""

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client() -> TestClient:
    # no context manager: the lifespan (and its Redis connection) is skipped
    return TestClient(app)


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["modes"] == ["simple", "smart", "terminal", "custom"]
        assert data["cache_enabled"] is False

    def test_cache_stats_without_redis(self, client: TestClient):
        data = client.get("/cache/stats").json()
        assert data["enabled"] is False
        assert data["connected"] is False
        assert data["keys_count"] is None


class TestProcess:
    def test_simple(self, client: TestClient):
        response = client.post("/process", json={"text": "Hello\n\nWorld"})
        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "Hello World"
        assert data["outcome"] == "success"
        assert data["compression_ratio"] == pytest.approx(8.33, abs=0.01)
        assert data["original_stats"]["paragraphs"] == 2

    def test_custom_with_options(self, client: TestClient):
        response = client.post("/process", json={
            "text": "Title\n\nPara one.\n\n- item1\n- item2",
            "mode": "custom",
            "options": {"paragraphSeparator": "[P]", "listSeparator": "[L]"},
        })
        assert response.json()["text"] == "Title [P] Para one. [L]- item1 [L]- item2"

    def test_custom_line_connector(self, client: TestClient):
        response = client.post("/process", json={
            "text": "a\nb\n\nc", "mode": "custom", "options": {"customLineBreak": ""},
        })
        assert response.json()["text"] == "ab [PARA] c"

    def test_non_finite_option_is_a_warning(self, client: TestClient):
        response = client.post(
            "/process",
            content='{"text": "x\\ny", "options": {"maxLineLength": Infinity}}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "x y"
        assert [issue["code"] for issue in data["issues"]] == ["config"]

    def test_preset(self, client: TestClient):
        response = client.post("/process", json={
            "text": "Hello\nWorld", "mode": "custom", "preset": "system-admin",
        })
        assert response.json()["text"] == '"Hello World"'

    def test_unknown_preset(self, client: TestClient):
        response = client.post("/process", json={"text": "x", "preset": "gamer"})
        assert response.status_code == 422

    def test_empty_text_is_reported_not_raised(self, client: TestClient):
        response = client.post("/process", json={"text": "   "})
        assert response.status_code == 200
        data = response.json()
        assert data["text"] is None
        assert data["outcome"] == "rejected"
        assert data["is_valid"] is False
        assert data["issues"][0]["code"] == "input_empty"

    def test_config_warnings_in_body(self, client: TestClient):
        response = client.post("/process", json={"text": "x", "options": {"maxLineLength": 5}})
        data = response.json()
        assert data["issues"][0]["severity"] == "warning"
        assert data["is_valid"] is True

    def test_missing_text_is_schema_error(self, client: TestClient):
        assert client.post("/process", json={"mode": "smart"}).status_code == 422

    def test_terminal_context(self, client: TestClient):
        data = client.post("/process", json={"text": "$a | b", "mode": "terminal"}).json()
        assert data["text"] == "`$a `| b"
        assert data["context"]["shell_intent"] is True


class TestBatch:
    def test_batch(self, client: TestClient):
        response = client.post("/process/batch", json={
            "mode": "smart",
            "items": [
                {"id": "one", "text": "- a\n- b"},
                {"id": "two", "text": ""},
                {"id": "three", "text": "x\n\ny"},
            ],
        })
        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data["items"]] == ["one", "two", "three"]
        assert data["succeeded"] == 2
        assert data["failed"] == 1
        assert data["items"][0]["result"]["text"] == "[LIST]- a [LIST]- b"
        assert data["items"][1]["result"]["outcome"] == "rejected"
        assert data["total_original_length"] == len("- a\n- b") + len("x\n\ny")


class TestAnalysis:
    def test_classify(self, client: TestClient):
        data = client.post("/classify", json={"text": "$var = Get-Process | Where-Object Name"}).json()
        assert data["type"] == "terminal"
        assert data["confidence"] > 0.3
        assert "cmdlet" in data["features"]

    def test_classify_plain(self, client: TestClient):
        data = client.post("/classify", json={"text": "Just a plain sentence."}).json()
        assert data["type"] == "plain"
        assert data["confidence"] == 0

    def test_validate(self, client: TestClient):
        data = client.post("/validate", json={
            "text": "x" * 80,
            "options": {"max_line_length": 60},
        }).json()
        assert data["is_valid"] is True
        assert [issue["code"] for issue in data["issues"]] == ["length"]

    def test_validate_shell_output(self, client: TestClient):
        data = client.post("/validate", json={
            "text": "$x | Get-Item",
            "original": "$x | Get-Item",
        }).json()
        assert [issue["code"] for issue in data["issues"]] == ["unescaped_chars"]

    def test_stats(self, client: TestClient):
        data = client.post("/stats", json={"text": "Hello world\n\nSecond para"}).json()
        assert data == {
            "characters": 24,
            "characters_no_spaces": 20,
            "words": 4,
            "lines": 3,
            "paragraphs": 2,
        }
