"""End-to-end tests for the catalog HTTP API.

These tests drive the FastAPI app through TestClient against a fresh SQLite
file, so every request goes through routing, validation, the engine and the
error handler.
"""

import pytest
from fastapi.testclient import TestClient
from moodify.main import create_app
from tests.helpers.payloads import FULL_FEATURES, album, bulk_tracks, track


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["uptime_seconds"] >= 0

    def test_health_body_matches_model(self, client):
        body = client.get("/api/health").json()

        assert set(body) == {"status", "version", "database", "uptime_seconds"}
        assert isinstance(body["uptime_seconds"], int)


class TestAppFactory:
    """Test create_app wiring."""

    def test_bulk_max_attempts_reaches_catalog(self, db_path):
        with TestClient(create_app(db_path, bulk_max_attempts=1)) as client:
            assert client.app.state.catalog.bulk.max_attempts == 1

    def test_bulk_max_attempts_floor(self, db_path):
        with TestClient(create_app(db_path, bulk_max_attempts=0)) as client:
            assert client.app.state.catalog.bulk.max_attempts == 1

    def test_openapi_documents_error_and_health_models(self, client):
        schema = client.get("/openapi.json").json()

        assert {"ErrorResponse", "HealthResponse"} <= set(schema["components"]["schemas"])
        health = schema["paths"]["/api/health"]["get"]["responses"]["200"]
        assert health["content"]["application/json"]["schema"]["$ref"].endswith("/HealthResponse")
        get_track = schema["paths"]["/api/tracks/{spotify_id}"]["get"]["responses"]
        assert get_track["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
        assert "400" in schema["paths"]["/api/enrichment/claim"]["post"]["responses"]


class TestCreateTrackEndpoint:
    """Test POST /api/tracks."""

    def test_create_returns_201(self, client):
        response = client.post("/api/tracks", json=track())

        assert response.status_code == 201
        body = response.json()
        assert body["created"] is True
        assert body["record"]["spotify_id"] == "test-track-123"
        assert body["record"]["audio_features_status"] == "unprocessed"
        assert body["record"]["colour_palette"] == [[255, 0, 0], [0, 255, 0], [0, 0, 255]]

    def test_duplicate_returns_200_soft_conflict(self, client):
        first = client.post("/api/tracks", json=track()).json()
        response = client.post("/api/tracks", json=track())

        assert response.status_code == 200
        body = response.json()
        assert body["created"] is False
        assert body["record"] == first["record"]
        assert "already exists" in body["message"]

    def test_missing_field_returns_400(self, client):
        payload = track()
        del payload["album_spotify_id"]

        response = client.post("/api/tracks", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert "Missing required fields" in body["error"]
        assert body["detail"] == {"missing": ["album_spotify_id"]}

    def test_invalid_palette_returns_400(self, client):
        response = client.post("/api/tracks", json=track(colour_palette="[[1,"))
        assert response.status_code == 400

    def test_deeply_nested_palette_returns_400(self, client):
        response = client.post("/api/tracks", json=track(colour_palette="[" * 100000 + "]" * 100000))

        assert response.status_code == 400
        assert response.json()["detail"] == {"field": "colour_palette"}

    def test_invalid_status_returns_400(self, client):
        response = client.post("/api/tracks", json=track(audio_features_status="done"))
        assert response.status_code == 400

    def test_features_mark_track_imported(self, client):
        response = client.post("/api/tracks", json=track("with_audio_features"))

        assert response.status_code == 201
        assert response.json()["record"]["audio_features_status"] == "imported"

    def test_out_of_range_feature_rejected_by_schema(self, client):
        response = client.post("/api/tracks", json=track(popularity=150))
        assert response.status_code == 422


class TestReadTrackEndpoints:
    """Test track lookups."""

    def test_get_track(self, client):
        client.post("/api/tracks", json=track())

        response = client.get("/api/tracks/test-track-123")

        assert response.status_code == 200
        assert response.json()["title"] == "Test Song"

    def test_get_unknown_track_returns_404(self, client):
        response = client.get("/api/tracks/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == {"spotify_id": "missing"}

    def test_lookup_keeps_request_order(self, client):
        client.post("/api/tracks", json=track("valid"))
        client.post("/api/tracks", json=track("same_album"))

        response = client.post("/api/tracks/lookup", json={"ids": ["test-track-456", "nope", "test-track-123"]})

        assert response.status_code == 200
        assert [t["spotify_id"] for t in response.json()] == ["test-track-456", "test-track-123"]

    def test_lookup_empty_ids_returns_400(self, client):
        response = client.post("/api/tracks/lookup", json={"ids": []})
        assert response.status_code == 400

    def test_album_tracks(self, client):
        client.post("/api/tracks", json=track("valid"))
        client.post("/api/tracks", json=track("same_album"))

        response = client.get("/api/albums/test-album-123/tracks")

        assert response.status_code == 200
        tracks = response.json()
        assert [t["spotify_id"] for t in tracks] == ["test-track-123", "test-track-456"]
        assert len({t["album_id"] for t in tracks}) == 1

    def test_unknown_album_tracks_empty(self, client):
        response = client.get("/api/albums/missing/tracks")

        assert response.status_code == 200
        assert response.json() == []


class TestPatchEndpoints:
    """Test PATCH routes for tracks and albums."""

    def test_patch_track(self, client):
        client.post("/api/tracks", json=track())

        response = client.patch("/api/tracks/test-track-123", json={"title": "Renamed", "artists": ["A", "B"]})

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["artists"] == "A, B"

    def test_patch_track_without_fields_returns_400(self, client):
        client.post("/api/tracks", json=track())
        response = client.patch("/api/tracks/test-track-123", json={})
        assert response.status_code == 400

    def test_patch_unknown_track_returns_404(self, client):
        response = client.patch("/api/tracks/missing", json={"title": "x"})
        assert response.status_code == 404

    def test_patch_album(self, client):
        client.post("/api/albums", json=album())

        response = client.patch("/api/albums/test-album-123", json={"colour_palette": '{"palette": [[1, 2, 3]]}'})

        assert response.status_code == 200
        assert response.json()["colour_palette"] == [[1, 2, 3]]

    def test_patch_unknown_album_returns_404(self, client):
        response = client.patch("/api/albums/missing", json={"album": "x"})
        assert response.status_code == 404


class TestAlbumEndpoint:
    """Test POST /api/albums."""

    def test_create_album(self, client):
        response = client.post("/api/albums", json=album())

        assert response.status_code == 201
        assert response.json()["record"]["album"] == "Test Album"

    def test_duplicate_album_returns_200(self, client):
        client.post("/api/albums", json=album())
        response = client.post("/api/albums", json=album())

        assert response.status_code == 200
        assert response.json()["created"] is False

    def test_missing_album_name_returns_400(self, client):
        payload = album()
        del payload["album"]
        assert client.post("/api/albums", json=payload).status_code == 400


class TestBulkEndpoint:
    """Test POST /api/tracks/bulk."""

    def test_bulk_insert(self, client):
        response = client.post("/api/tracks/bulk", json=bulk_tracks(4))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["partial"] is False
        assert body["inserted"]["count"] == 4
        assert body["skipped"]["count"] == 0

    def test_bulk_partition(self, client):
        client.post("/api/tracks/bulk", json=bulk_tracks(2))

        body = client.post("/api/tracks/bulk", json=bulk_tracks(4)).json()

        assert body["inserted"]["count"] == 2
        assert body["skipped"]["count"] == 2
        assert body["total"] == {"processed": 4, "inserted": 2, "skipped": 2}

    def test_bulk_duplicates_return_400(self, client):
        items = bulk_tracks(2)
        items.append(items[0])

        response = client.post("/api/tracks/bulk", json=items)

        assert response.status_code == 400
        assert response.json()["detail"] == {"duplicate_ids": ["bulk-track-1"]}
        assert client.post("/api/tracks/lookup", json={"ids": ["bulk-track-1"]}).json() == []

    def test_bulk_empty_returns_400(self, client):
        assert client.post("/api/tracks/bulk", json=[]).status_code == 400

    def test_bulk_requires_array(self, client):
        assert client.post("/api/tracks/bulk", json={"spotify_id": "x"}).status_code == 422


class TestEnrichmentEndpoints:
    """Test the enrichment workflow routes."""

    @pytest.fixture
    def queued_client(self, client):
        client.post("/api/tracks/bulk", json=bulk_tracks(3, prefix="queued"))
        return client

    def test_list_unprocessed(self, queued_client):
        response = queued_client.get("/api/enrichment/unprocessed", params={"limit": 2})

        assert response.status_code == 200
        assert [t["spotify_id"] for t in response.json()] == ["queued-1", "queued-2"]

    def test_invalid_limit_rejected(self, queued_client):
        assert queued_client.get("/api/enrichment/unprocessed", params={"limit": 0}).status_code == 422

    def test_claim(self, queued_client):
        response = queued_client.post("/api/enrichment/claim", params={"limit": 2})

        assert response.status_code == 200
        claimed = response.json()
        assert [t["audio_features_status"] for t in claimed] == ["processing", "processing"]
        remaining = queued_client.get("/api/enrichment/unprocessed").json()
        assert [t["spotify_id"] for t in remaining] == ["queued-3"]

    def test_write_features(self, queued_client):
        response = queued_client.put("/api/enrichment/queued-1/features", json=FULL_FEATURES)

        assert response.status_code == 200
        body = response.json()
        assert body["audio_features_status"] == "processed"
        assert body["tempo"] == FULL_FEATURES["tempo"]
        assert body["explicit"] is True

    def test_write_features_failed(self, queued_client):
        response = queued_client.put("/api/enrichment/queued-1/features", json={"audio_features_status": "failed"})

        assert response.status_code == 200
        assert response.json()["audio_features_status"] == "failed"

    def test_write_features_with_bad_status_returns_400(self, queued_client):
        response = queued_client.put("/api/enrichment/queued-1/features", json={**FULL_FEATURES, "audio_features_status": "imported"})
        assert response.status_code == 400

    def test_write_features_unknown_track_returns_404(self, client):
        assert client.put("/api/enrichment/missing/features", json=FULL_FEATURES).status_code == 404

    def test_set_status(self, queued_client):
        response = queued_client.put("/api/enrichment/queued-2/status", json={"audio_features_status": "failed"})

        assert response.status_code == 200
        assert response.json()["audio_features_status"] == "failed"

    def test_set_unknown_status_returns_400(self, queued_client):
        response = queued_client.put("/api/enrichment/queued-2/status", json={"audio_features_status": "done"})

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "audio_features_status"
