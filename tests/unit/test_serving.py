"""Unit tests for the serving layer."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_HITS, SESSION_COOKIE, FakeAuthGate, FakeIndexer, FakeMemoryStore, FakeVectorStore
from personal_brain.config import Settings
from personal_brain.errors import StorageError
from personal_brain.ingestion.service import IngestService
from personal_brain.serving import dependencies
from personal_brain.serving.app import app


@pytest.fixture()
def settings_under_test(full_settings: Settings) -> Settings:
    return full_settings


@pytest.fixture()
def vector_stores() -> dict[str, FakeVectorStore]:
    return {}


@pytest.fixture()
def wired(
    auth_gate: FakeAuthGate,
    memory_store: FakeMemoryStore,
    indexer: FakeIndexer,
    settings_under_test: Settings,
    vector_stores: dict[str, FakeVectorStore],
) -> Iterator[None]:
    def vector_store_factory(namespace: str) -> FakeVectorStore:
        store = FakeVectorStore(hits=SAMPLE_HITS, namespace=namespace)
        vector_stores[namespace] = store
        return store

    app.dependency_overrides.update(
        {
            dependencies.get_settings: lambda: settings_under_test,
            dependencies.get_auth_gate: lambda: auth_gate,
            dependencies.get_memory_store: lambda: memory_store,
            dependencies.get_ingest_service: lambda: IngestService(
                auth_gate, memory_store, indexer_factory=lambda: indexer, settings=settings_under_test
            ),
            dependencies.get_vector_store_factory: lambda: (
                vector_store_factory if settings_under_test.indexing_enabled else None
            ),
        }
    )
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(wired: None) -> TestClient:
    return TestClient(app, cookies={SESSION_COOKIE: "session-1"})


@pytest.fixture()
def anonymous(wired: None) -> TestClient:
    return TestClient(app)


def test_health_endpoint() -> None:
    """GET /health should return 200 with status ok."""
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ── /api/ingest ───────────────────────────────────────────────────────


class TestIngestEndpoint:
    def test_indexed(self, client: TestClient, memory_store: FakeMemoryStore, indexer: FakeIndexer) -> None:
        response = client.post(
            "/api/ingest",
            json={"content": "Hello world, this is a test note.", "metadata": {"title": "Test"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body == {
            "success": True,
            "noteId": body["noteId"],
            "message": "Note saved to database and AI memory",
        }
        assert memory_store.records[body["noteId"]].metadata == {"title": "Test"}
        assert indexer.calls[0][1] == "user-1"

    def test_too_short(self, client: TestClient, indexer: FakeIndexer) -> None:
        response = client.post("/api/ingest", json={"content": "Hi"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "saved to DB only" in body["message"]
        assert indexer.calls == []

    def test_unauthenticated(self, anonymous: TestClient, memory_store: FakeMemoryStore) -> None:
        response = anonymous.post("/api/ingest", json={"content": "Some note"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert memory_store.writes == 0

    def test_empty_content(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        response = client.post("/api/ingest", json={"content": "   "})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Content cannot be empty"}
        assert memory_store.writes == 0

    def test_missing_content_field(self, client: TestClient) -> None:
        response = client.post("/api/ingest", json={"metadata": {"title": "x"}})
        assert response.status_code == 400

    def test_session_checked_before_body_shape(self, anonymous: TestClient, memory_store: FakeMemoryStore) -> None:
        response = anonymous.post("/api/ingest", json={"content": 123})
        assert response.status_code == 401
        assert memory_store.writes == 0

    @pytest.mark.parametrize("body", [{"content": 123}, ["not", "an", "object"], {"content": "ok note", "metadata": []}])
    def test_wrongly_typed_body_is_bad_input(self, client: TestClient, body: object) -> None:
        response = client.post("/api/ingest", json=body)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_storage_error(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        memory_store.fail_with = StorageError("duplicate key", code="23505")
        response = client.post("/api/ingest", json={"content": "Some note"})
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Database error",
            "details": "duplicate key",
            "code": "23505",
        }

    def test_indexing_failure_is_degraded_success(
        self, client: TestClient, indexer: FakeIndexer, memory_store: FakeMemoryStore
    ) -> None:
        indexer.error = ConnectionError("index endpoint unreachable")
        response = client.post("/api/ingest", json={"content": "Some note worth indexing"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["warning"] == "index endpoint unreachable"
        assert body["noteId"] in memory_store.records


class TestIngestNotConfigured:
    @pytest.fixture()
    def settings_under_test(self, bare_settings: Settings) -> Settings:
        return bare_settings

    def test_not_configured_warns(self, client: TestClient, indexer: FakeIndexer) -> None:
        response = client.post("/api/ingest", json={"content": "Some note worth indexing"})
        assert response.status_code == 200
        assert response.json()["warning"] == "Pinecone not configured"
        assert indexer.calls == []

    def test_search_falls_back_to_keywords(self, client: TestClient) -> None:
        client.post("/api/ingest", json={"content": "Buy seeds for the garden", "metadata": {"title": "Garden"}})
        client.post("/api/ingest", json={"content": "Call the plumber"})

        response = client.get("/api/search", params={"q": "GARDEN"})

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "keyword"
        assert "warning" in body
        assert [r["citation"]["title"] for r in body["results"]] == ["Garden"]

    def test_keyword_fallback_honours_tag(self, client: TestClient) -> None:
        client.post("/api/ingest", json={"content": "Garden at home", "metadata": {"tags": ["home"]}})
        client.post("/api/ingest", json={"content": "Garden at work", "metadata": {"tags": ["work"]}})

        response = client.get("/api/search", params={"q": "garden", "tag": "work"})

        assert [r["content"] for r in response.json()["results"]] == ["Garden at work"]


# ── /api/memories ─────────────────────────────────────────────────────


class TestMemoriesEndpoints:
    def test_list_newest_first(self, client: TestClient) -> None:
        first = client.post("/api/ingest", json={"content": "First note"}).json()["noteId"]
        second = client.post("/api/ingest", json={"content": "Second note"}).json()["noteId"]
        client.put(f"/api/memories/{first}", json={"content": "First note, edited"})

        response = client.get("/api/memories")

        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == [first, second]

    def test_list_only_own_records(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        memory_store.insert(user_id="user-2", content="someone else's", metadata={})
        assert client.get("/api/memories").json() == []

    def test_list_requires_auth(self, anonymous: TestClient) -> None:
        response = anonymous.get("/api/memories")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_get_foreign_record_is_404(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        foreign = memory_store.insert(user_id="user-2", content="private", metadata={})
        response = client.get(f"/api/memories/{foreign.id}")
        assert response.status_code == 404

    def test_get_own_record(self, client: TestClient) -> None:
        note_id = client.post("/api/ingest", json={"content": "Mine", "metadata": {"title": "M"}}).json()["noteId"]
        body = client.get(f"/api/memories/{note_id}").json()
        assert body["content"] == "Mine"
        assert body["metadata"] == {"title": "M"}

    def test_resave(self, client: TestClient, indexer: FakeIndexer) -> None:
        note_id = client.post("/api/ingest", json={"content": "Draft text"}).json()["noteId"]
        response = client.put(f"/api/memories/{note_id}", json={"content": "Final text", "metadata": {"title": "F"}})

        assert response.status_code == 200
        assert response.json()["noteId"] == note_id
        assert indexer.calls[-1][0][0].page_content == "Final text"

    def test_resave_unknown_is_404(self, client: TestClient) -> None:
        response = client.put("/api/memories/nope", json={"content": "text"})
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestUpload:
    def test_markdown_upload(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        response = client.post(
            "/api/memories/upload",
            files={"file": ("ideas.md", b"# Ideas\n\nBuild a greenhouse.", "text/markdown")},
            data={"source_name": "Notebook", "tags": "garden, projects ,", "is_private": "true"},
        )

        assert response.status_code == 200
        record = memory_store.records[response.json()["noteId"]]
        assert record.content == "# Ideas\n\nBuild a greenhouse."
        assert record.metadata == {
            "title": "ideas.md",
            "fileName": "ideas.md",
            "source": "Notebook",
            "tags": ["garden", "projects"],
            "isPrivate": True,
        }

    def test_unsupported_type(self, client: TestClient, memory_store: FakeMemoryStore) -> None:
        response = client.post(
            "/api/memories/upload", files={"file": ("photo.png", b"\x89PNG", "image/png")}
        )
        assert response.status_code == 400
        assert memory_store.writes == 0

    def test_too_large(self, client: TestClient, settings_under_test: Settings) -> None:
        settings_under_test.max_upload_bytes = 10
        response = client.post(
            "/api/memories/upload", files={"file": ("big.txt", b"x" * 11, "text/plain")}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported upload"

    def test_requires_auth(self, anonymous: TestClient) -> None:
        response = anonymous.post(
            "/api/memories/upload", files={"file": ("a.txt", b"hello", "text/plain")}
        )
        assert response.status_code == 401


# ── /api/search ───────────────────────────────────────────────────────


class TestSearch:
    def test_semantic_search_in_own_namespace(
        self, client: TestClient, vector_stores: dict[str, FakeVectorStore]
    ) -> None:
        response = client.get("/api/search", params={"q": "taxes", "k": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "semantic"
        assert "warning" not in body
        assert len(body["results"]) == 2
        assert body["results"][0]["citation"]["note_id"] == "note-1"
        assert list(vector_stores) == ["user-1"]

    def test_requires_query(self, client: TestClient) -> None:
        assert client.get("/api/search").status_code == 422

    def test_requires_auth(self, anonymous: TestClient) -> None:
        assert anonymous.get("/api/search", params={"q": "x"}).status_code == 401

    def test_note_and_tag_filters_forwarded(
        self, client: TestClient, vector_stores: dict[str, FakeVectorStore]
    ) -> None:
        response = client.get(
            "/api/search", params=[("q", "taxes"), ("note_id", "note-1"), ("tag", "work"), ("tag", "home")]
        )

        assert response.status_code == 200
        filters = vector_stores["user-1"].last_filters
        assert [(f.field, f.operator, f.value) for f in filters] == [
            ("noteId", "eq", "note-1"),
            ("tags", "in", ["work", "home"]),
        ]

    def test_min_score_drops_weak_hits(self, client: TestClient) -> None:
        response = client.get("/api/search", params={"q": "taxes", "min_score": 0.9})
        assert [r["citation"]["score"] for r in response.json()["results"]] == [0.92]
