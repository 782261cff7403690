"""Tests for the VOD ingestion API."""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings

API = "/api/v1/vod"

SRT = b"1\n00:00:01,000 --> 00:00:04,000\nStella!\n"


def wait_for_job(client: TestClient, job_id: str, timeout: float = 5.0) -> dict:
    """Poll a job until it reaches a terminal state."""
    deadline = time.monotonic() + timeout
    while True:
        response = client.get(f"{API}/import/jobs/{job_id}")
        assert response.status_code == 200
        job = response.json()
        if job["status"] in ("COMPLETED", "FAILED"):
            return job
        assert time.monotonic() < deadline, "import job did not finish"
        time.sleep(0.02)


# =============================================================================
# Collections, search and preview
# =============================================================================


class TestBrowsing:
    """Tests for collection, search and preview endpoints."""

    def test_list_collections(self, client):
        response = client.get(f"{API}/collections")

        assert response.status_code == 200
        collections = response.json()["collections"]
        assert len(collections) == 7
        first = collections[0]
        assert first["key"] == first["id"] == "feature_films"
        assert {"name", "icon", "description", "count"} <= set(first)

    def test_collection_stats(self, client, fake_source):
        fake_source.collections["feature_films"] = ["a", "b"]

        response = client.get(f"{API}/collections/stats")

        assert response.status_code == 200
        stats = {c["key"]: c["count"] for c in response.json()["stats"]}
        assert stats["feature_films"] == 2
        assert stats["film_noir"] == 0

    def test_browse(self, client, fake_source, make_item):
        fake_source.add(*(make_item(f"noir_{i}") for i in range(5)))
        fake_source.collections["film_noir"] = [f"noir_{i}" for i in range(5)]

        response = client.get(f"{API}/collections/film_noir/browse", params={"limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 5
        assert data["pages"] == 3
        assert data["page"] == 1
        assert [item["sourceId"] for item in data["items"]] == ["noir_0", "noir_1"]

    def test_browse_unknown_collection(self, client):
        response = client.get(f"{API}/collections/no_such_collection/browse")

        assert response.status_code == 404

    def test_browse_limit_validated(self, client):
        response = client.get(f"{API}/collections/film_noir/browse", params={"limit": 500})

        assert response.status_code == 422

    def test_search(self, client, fake_source, make_item):
        fake_source.add(make_item("the_general", title="The General"), make_item("other"))

        response = client.get(f"{API}/search", params={"q": "general"})

        assert response.status_code == 200
        assert [item["sourceId"] for item in response.json()["items"]] == ["the_general"]

    def test_search_requires_query(self, client):
        assert client.get(f"{API}/search").status_code == 422

    def test_preview(self, client, fake_source, make_item):
        fake_source.add(make_item("the_general", title="The General", year=1926))

        response = client.get(f"{API}/preview/the_general")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "The General"
        assert data["year"] == 1926
        assert data["videoUrl"].endswith("the_general.mp4")
        assert data["alreadyImported"] is False
        assert data["existingId"] is None

    def test_preview_imported_item(self, client, fake_source, make_item, seed_video):
        fake_source.add(make_item("the_general"))
        video = seed_video("the_general")

        data = client.get(f"{API}/preview/the_general").json()

        assert data["alreadyImported"] is True
        assert data["existingId"] == video.id

    def test_preview_unknown_item(self, client):
        assert client.get(f"{API}/preview/nonexistent123").status_code == 404

    def test_source_unavailable(self, client, fake_source, make_item):
        fake_source.add(make_item("the_general"))
        fake_source.unavailable_items.add("the_general")

        assert client.get(f"{API}/preview/the_general").status_code == 502


# =============================================================================
# Imports
# =============================================================================


class TestSingleImport:
    """Tests for POST /import/single."""

    def test_import(self, client, fake_source, make_item):
        fake_source.add(
            make_item(
                "night_of_the_living_dead",
                title="Night of the Living Dead",
                description="A zombie classic.",
            )
        )

        response = client.post(
            f"{API}/import/single", json={"identifier": "night_of_the_living_dead"}
        )

        assert response.status_code == 201
        video = response.json()["video"]
        assert video["sourceId"] == "night_of_the_living_dead"
        assert video["category"] == "Horror"
        assert video["isActive"] is True
        assert video["hasSubtitles"] is False

    def test_already_imported(self, client, fake_source, make_item):
        fake_source.add(make_item("a"))
        client.post(f"{API}/import/single", json={"identifier": "a"})

        response = client.post(f"{API}/import/single", json={"identifier": "a"})

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "ALREADY_IMPORTED"

    def test_duplicate_without_skip(self, client, fake_source, make_item):
        fake_source.add(make_item("a"))
        client.post(f"{API}/import/single", json={"identifier": "a"})

        response = client.post(
            f"{API}/import/single", json={"identifier": "a", "skipExisting": False}
        )

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "DUPLICATE_KEY"

    def test_unknown_item(self, client):
        """An unknown identifier fails with ITEM_NOT_FOUND and writes nothing."""
        response = client.post(f"{API}/import/single", json={"identifier": "nonexistent123"})

        assert response.status_code == 404
        assert response.json()["detail"]["reason"] == "ITEM_NOT_FOUND"
        assert client.get(f"{API}/stats").json()["total"] == 0

    def test_invalid_metadata(self, client, fake_source, make_item):
        fake_source.add(make_item("audio_only", video_url=None))

        response = client.post(f"{API}/import/single", json={"identifier": "audio_only"})

        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "INVALID_METADATA"

    def test_source_unavailable(self, client, fake_source, make_item):
        fake_source.add(make_item("a"))
        fake_source.unavailable_items.add("a")

        response = client.post(f"{API}/import/single", json={"identifier": "a"})

        assert response.status_code == 502

    def test_blank_identifier(self, client):
        response = client.post(f"{API}/import/single", json={"identifier": "   "})

        assert response.status_code == 422


class TestBatchImport:
    """Tests for POST /import/batch."""

    def test_outcomes_partitioned(self, client, fake_source, make_item, seed_video):
        fake_source.add(make_item("a"), make_item("b"), make_item("c"))
        seed_video("b")

        response = client.post(
            f"{API}/import/batch", json={"identifiers": ["a", "b", "c", "nonexistent123"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert {s["identifier"] for s in data["success"]} == {"a", "c"}
        assert all(s["videoId"] and s["title"] for s in data["success"])
        assert data["skipped"] == [{"identifier": "b", "reason": "already imported"}]
        assert [f["identifier"] for f in data["failed"]] == ["nonexistent123"]
        assert data["failed"][0]["reason"] == "ITEM_NOT_FOUND"
        assert data["message"] == "Imported 2 of 4 items"

    @pytest.mark.parametrize("identifiers", [[], [f"m{i}" for i in range(51)]])
    def test_batch_size_validated(self, client, identifiers):
        response = client.post(f"{API}/import/batch", json={"identifiers": identifiers})

        assert response.status_code == 422


class TestCollectionImport:
    """Tests for collection import jobs."""

    def test_job_runs_to_completion(self, client, fake_source, make_item):
        source_ids = [f"noir_{i:02d}" for i in range(25)]
        fake_source.add(*(make_item(source_id) for source_id in source_ids))
        fake_source.collections["film_noir"] = source_ids

        response = client.post(
            f"{API}/import/collection", json={"collection": "film_noir", "limit": 10}
        )

        assert response.status_code == 202
        job_id = response.json()["jobId"]
        job = wait_for_job(client, job_id)
        assert job["status"] == "COMPLETED"
        assert job["collectionKey"] == "film_noir"
        assert job["collectionName"] == "Film Noir"
        assert job["progressPercent"] == 100
        assert job["importedCount"] + job["skippedCount"] + job["failedCount"] == 10
        assert client.get(f"{API}/stats").json()["total"] == 10

        jobs = client.get(f"{API}/import/jobs").json()["jobs"]
        assert [j["id"] for j in jobs] == [job_id]

    def test_unknown_collection_job_fails(self, client):
        response = client.post(f"{API}/import/collection", json={"collection": "nope"})

        job = wait_for_job(client, response.json()["jobId"])
        assert job["status"] == "FAILED"
        assert job["error"]
        assert job["collectionName"] == "nope"

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_limit_validated(self, client, limit):
        response = client.post(
            f"{API}/import/collection", json={"collection": "film_noir", "limit": limit}
        )

        assert response.status_code == 422

    def test_unknown_job(self, client):
        assert client.get(f"{API}/import/jobs/missing").status_code == 404


# =============================================================================
# Catalog management
# =============================================================================


class TestCatalog:
    """Tests for stats and video management endpoints."""

    def test_stats(self, client, seed_video):
        seed_video("a", category="Horror", has_subtitles=True)
        seed_video("b", category="Horror")
        seed_video("c", category="Comedy")
        seed_video("d", category="Comedy", is_active=False)

        response = client.get(f"{API}/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["withSubtitles"] == 1
        assert data["withoutSubtitles"] == 2
        assert data["categories"] == [
            {"name": "Horror", "count": 2},
            {"name": "Comedy", "count": 1},
        ]
        assert len(data["recentImports"]) == 3

    def test_delete(self, client, seed_video):
        video = seed_video("a")

        response = client.delete(f"{API}/videos/{video.id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Video deleted"}

        assert client.delete(f"{API}/videos/{video.id}").status_code == 404

    def test_toggle(self, client, seed_video):
        video = seed_video("a")

        response = client.put(f"{API}/videos/{video.id}/toggle")

        assert response.status_code == 200
        assert response.json()["video"]["isActive"] is False
        assert client.get(f"{API}/stats").json()["total"] == 0

    def test_toggle_unknown(self, client):
        assert client.put(f"{API}/videos/missing/toggle").status_code == 404

    def test_subtitle_download(self, client, fake_source, make_item):
        fake_source.add(
            make_item(
                "streetcar",
                has_subtitles=True,
                subtitle_url="https://archive.org/download/streetcar/streetcar.en.srt",
                subtitle_language="en",
            )
        )
        fake_source.subtitles["streetcar"] = SRT
        video = client.post(
            f"{API}/import/single",
            json={"identifier": "streetcar", "syncSubtitles": True},
        ).json()["video"]
        assert video["subtitleSynced"] is True

        response = client.get(f"{API}/videos/{video['id']}/subtitle")

        assert response.status_code == 200
        assert response.content == SRT

    def test_subtitle_not_synced(self, client, seed_video):
        video = seed_video("a")

        assert client.get(f"{API}/videos/{video.id}/subtitle").status_code == 404


class TestAdminKey:
    """Tests for the optional admin key check."""

    def test_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "admin_api_key", "secret")

        assert client.get(f"{API}/collections").status_code == 401
        assert (
            client.get(f"{API}/collections", headers={"X-Admin-Key": "wrong"}).status_code
            == 401
        )
        assert (
            client.get(f"{API}/collections", headers={"X-Admin-Key": "secret"}).status_code
            == 200
        )

    def test_health_is_open(self, client, monkeypatch):
        monkeypatch.setattr(settings, "admin_api_key", "secret")

        assert client.get("/api/health").status_code == 200
