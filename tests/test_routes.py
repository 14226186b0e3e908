"""
Tests for API routes — health, ingest, rankings, series, history, admin jobs.
"""

from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from pixelstats.store import keys
from tests.helpers import fill


class TestSystem:
    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["store"] == "MemoryScoreStore"

    async def test_root(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert "pixelstats" in resp.json()["service"]


class TestIngest:
    async def test_record_placement(self, client, store):
        resp = await client.post("/api/v1/placements", json={"user_id": 4, "country_code": "AT"})
        assert resp.status_code == 202
        assert await store.get_score(keys.DAILY_COUNTRIES, "at") == 1
        assert await store.get_score(keys.TOTAL_USERS, "4") == 1

    async def test_record_placement_validation(self, client):
        resp = await client.post("/api/v1/placements", json={"user_id": 0, "country_code": "at"})
        assert resp.status_code == 422
        resp = await client.post("/api/v1/placements", json={"user_id": 1, "country_code": "  "})
        assert resp.status_code == 422

    async def test_store_down_is_503(self, client, store):
        store.increment_scores = AsyncMock(side_effect=RedisConnectionError("down"))
        resp = await client.post("/api/v1/placements", json={"user_id": 4, "country_code": "at"})
        assert resp.status_code == 503

    async def test_online_sample(self, client, store):
        resp = await client.post("/api/v1/stats/online", json={"count": 42})
        assert resp.status_code == 202
        resp = await client.get("/api/v1/stats/online")
        assert resp.json() == [42]


class TestRankings:
    async def test_user_ranks_unranked(self, client):
        resp = await client.get("/api/v1/users/12/ranks")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_score"] is None
        assert data["total_rank"] is None
        assert data["daily_score"] is None
        assert data["daily_rank"] is None

    async def test_user_ranks(self, client, populated_store):
        data = (await client.get("/api/v1/users/3/ranks")).json()
        assert data["daily_rank"] == 1
        assert data["total_rank"] == 3

    async def test_ranks_page(self, client, populated_store):
        resp = await client.get("/api/v1/ranks", params={"daily": "true", "start": 1, "amount": 5})
        assert resp.status_code == 200
        data = resp.json()
        assert [r["user_id"] for r in data] == [3, 1]
        assert data[0]["daily_rank"] == 1

    async def test_ranks_page_bounds_validated(self, client):
        assert (await client.get("/api/v1/ranks", params={"start": 0})).status_code == 422
        assert (await client.get("/api/v1/ranks", params={"amount": 101})).status_code == 422

    async def test_country_pages(self, client, populated_store):
        await fill(populated_store, keys.HOURLY_COUNTRIES, {"fr": 3})
        countries = (await client.get("/api/v1/ranks/countries")).json()
        assert countries == [
            {"country_code": "de", "pixels": 40},
            {"country_code": "fr", "pixels": 30},
        ]
        hourly = (await client.get("/api/v1/ranks/countries/hourly")).json()
        assert hourly == [{"country_code": "fr", "pixels": 3}]

    async def test_prev_top_empty(self, client):
        assert (await client.get("/api/v1/ranks/prev-top")).json() == []


class TestHistory:
    async def test_series_endpoints(self, client, store):
        await store.push_front(keys.DAILY_PIXELS, "900")
        assert (await client.get("/api/v1/stats/daily-pixels")).json() == [900]
        assert (await client.get("/api/v1/stats/hourly-pixels")).json() == []

    async def test_history_shapes(self, client):
        top = (await client.get("/api/v1/history/top-daily")).json()
        assert len(top["stats"]) == 13
        assert top["users"] == []
        countries = (await client.get("/api/v1/history/countries")).json()
        assert len(countries) == 14


class TestAdminJobs:
    async def test_trigger_rollover_once(self, client, populated_store):
        resp = await client.post("/api/v1/admin/jobs/rollover")
        assert resp.status_code == 200
        assert resp.json()["result"]["daily_pixels"] == 70
        assert await populated_store.range_by_rank(keys.DAILY_USERS, 0, -1) == []

        resp = await client.post("/api/v1/admin/jobs/rollover")
        assert resp.status_code == 409

    async def test_unknown_job(self, client):
        resp = await client.post("/api/v1/admin/jobs/defrag")
        assert resp.status_code == 422

    async def test_list_runs(self, client):
        await client.post("/api/v1/admin/jobs/hourly_countries")
        resp = await client.get("/api/v1/admin/jobs", params={"job": "hourly_countries"})
        assert resp.status_code == 200
        runs = resp.json()
        assert len(runs) == 1
        assert runs[0]["status"] == "success"
