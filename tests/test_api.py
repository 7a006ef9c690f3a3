"""Tests for the Pattern Lab HTTP API."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from patternlab.api.main import create_app
from patternlab.export.markdown import FOOTER
from patternlab.utils.config import get_settings


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client with the lifespan running."""
    with TestClient(create_app(), headers={"userid": "tester"}) as test_client:
        yield test_client


class TestHealth:
    """Tests for health and user identification."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_user_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.headers["userid"] == "tester"

    def test_user_id_is_assigned(self, client: TestClient) -> None:
        response = client.get("/api/health", headers={"userid": ""})

        assert response.headers["userid"]
        assert response.headers["userid"] != "tester"


class TestPatternRoutes:
    """Tests for pattern browsing routes."""

    def test_list_patterns(self, client: TestClient) -> None:
        response = client.get("/api/patterns")

        assert response.status_code == 200
        patterns = response.json()
        assert patterns[0]["slug"] == "singleton"
        assert patterns[0]["id"] == 1
        assert "codeExample" in patterns[0]
        assert "code_example" not in patterns[0]

    def test_get_pattern(self, client: TestClient) -> None:
        response = client.get("/api/patterns/observer-pattern")

        assert response.status_code == 200
        assert response.json()["name"]

    def test_unknown_pattern(self, client: TestClient) -> None:
        response = client.get("/api/patterns/nope")

        assert response.status_code == 404
        assert response.json() == {"message": "Pattern not found"}

    def test_category(self, client: TestClient) -> None:
        response = client.get("/api/categories/pythonic")

        slugs = [p["slug"] for p in response.json()]
        assert slugs == ["context-manager-pattern", "decorator-pattern"]

    def test_search(self, client: TestClient) -> None:
        response = client.get("/api/search", params={"q": "middleware"})

        assert response.status_code == 200
        assert "middleware-pattern" in [p["slug"] for p in response.json()]

    def test_search_requires_query(self, client: TestClient) -> None:
        response = client.get("/api/search")

        assert response.status_code == 400
        assert response.json() == {"message": "Query parameter 'q' is required"}

    def test_markdown_export(self, client: TestClient) -> None:
        response = client.get("/api/patterns/singleton/markdown")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert 'filename="singleton.md"' in response.headers["content-disposition"]
        assert response.text.startswith("# Singleton")
        assert response.text.endswith(FOOTER)


class TestFavoriteRoutes:
    """Tests for favorites routes."""

    def test_add_check_remove(self, client: TestClient) -> None:
        created = client.post("/api/favorites", json={"patternId": 2})

        assert created.status_code == 201
        assert created.json()["patternId"] == 2
        assert created.json()["userId"] == "tester"

        assert client.get("/api/favorites/2").json() == {"isFavorite": True}
        assert [p["id"] for p in client.get("/api/favorites").json()] == [2]

        removed = client.delete("/api/favorites/2")
        assert removed.status_code == 204
        assert client.get("/api/favorites/2").json() == {"isFavorite": False}

    def test_favorites_are_per_user(self, client: TestClient) -> None:
        client.post("/api/favorites", json={"patternId": 1})

        response = client.get("/api/favorites", headers={"userid": "someone-else"})

        assert response.json() == []

    def test_duplicate_favorite(self, client: TestClient) -> None:
        client.post("/api/favorites", json={"patternId": 1})
        response = client.post("/api/favorites", json={"patternId": 1})

        assert response.status_code == 400
        assert response.json() == {"message": "Pattern is already a favorite"}

    def test_favorite_unknown_pattern(self, client: TestClient) -> None:
        response = client.post("/api/favorites", json={"patternId": 999})

        assert response.status_code == 404

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/api/favorites", json={"patternId": "abc"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request"

    def test_remove_missing_favorite(self, client: TestClient) -> None:
        response = client.delete("/api/favorites/3")

        assert response.status_code == 404
        assert response.json() == {"message": "Favorite not found"}

    def test_invalid_pattern_id(self, client: TestClient) -> None:
        assert client.delete("/api/favorites/abc").status_code == 400
        assert client.get("/api/favorites/abc").json() == {"message": "Invalid pattern ID"}


class TestSandboxRoutes:
    """Tests for code execution routes."""

    def test_execute(self, client: TestClient) -> None:
        response = client.post("/api/execute", json={"source": "print('hi'); print({'a': 1})"})

        data = response.json()
        assert data["outcome"] == "success"
        assert data["output"] == 'hi\n{\n  "a": 1\n}'

    def test_execute_failure(self, client: TestClient) -> None:
        response = client.post("/api/execute", json={"source": "raise Exception('boom')"})

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is False
        assert data["output"] == "# Error: boom"

    def test_session_starts_from_template(self, client: TestClient) -> None:
        template = client.get("/api/patterns/singleton").json()["codeTemplate"]

        response = client.get("/api/patterns/singleton/session")

        data = response.json()
        assert data["phase"] == "idle"
        assert data["activeView"] == "code"
        assert data["source"] == template

    def test_session_for_unknown_pattern(self, client: TestClient) -> None:
        response = client.get("/api/patterns/nope/session")

        assert response.status_code == 404

    def test_edit_and_run(self, client: TestClient) -> None:
        client.put("/api/patterns/singleton/session/source", json={"source": "print('edited')"})

        response = client.post("/api/patterns/singleton/session/run")

        data = response.json()
        assert data["phase"] == "showing_result"
        assert data["activeView"] == "output"
        assert data["output"] == "edited"
        assert data["notices"] == []

    def test_run_failure_returns_notice(self, client: TestClient) -> None:
        client.put("/api/patterns/singleton/session/source", json={"source": "1 / 0"})

        data = client.post("/api/patterns/singleton/session/run").json()

        assert data["output"] == "# Error: division by zero"
        assert data["notices"] == [{
            "title": "Execution Error",
            "description": "division by zero",
            "variant": "destructive",
        }]

    def test_select_view(self, client: TestClient) -> None:
        response = client.post("/api/patterns/singleton/session/view", json={"view": "output"})

        assert response.json()["activeView"] == "output"

        bad = client.post("/api/patterns/singleton/session/view", json={"view": "preview"})
        assert bad.status_code == 400

    def test_sessions_are_per_user(self, client: TestClient) -> None:
        client.put("/api/patterns/singleton/session/source", json={"source": "print(1)"})

        other = client.get("/api/patterns/singleton/session", headers={"userid": "other"})

        assert other.json()["source"] != "print(1)"

    def test_script_interrupt_keeps_server_up(self, client: TestClient) -> None:
        response = client.post("/api/execute", json={"source": "raise KeyboardInterrupt('k')"})

        assert response.status_code == 200
        assert response.json()["errorType"] == "KeyboardInterrupt"
        assert client.get("/api/health").status_code == 200


class TestAppSettings:
    """Tests for settings applied when building the app."""

    def test_debug_off_by_default(self) -> None:
        assert create_app().debug is False

    def test_debug_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATTERNLAB_DEBUG", "true")
        get_settings.cache_clear()

        assert create_app().debug is True
