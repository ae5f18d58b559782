"""Tests for the management API."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from arbi_cli.api import create_app
from arbi_cli.engine.models import EngineStats
from arbi_cli.scheduler.job_scheduler import CronScheduler


@pytest.fixture
def engine() -> MagicMock:
    engine = MagicMock()
    engine.run_scan = AsyncMock(return_value=[])
    engine.get_opportunities.return_value = []
    engine.cleanup_expired.return_value = 0
    engine.get_stats.return_value = EngineStats()
    return engine


@pytest.fixture
def backend() -> MagicMock:
    backend = MagicMock()
    backend.get_orders = AsyncMock(return_value={"orders": []})
    backend.get_active_listings = AsyncMock(return_value={"listings": []})
    backend.get_payout_history = AsyncMock(return_value={"stats": {}})
    return backend


@pytest.fixture
def scheduler(engine: MagicMock, backend: MagicMock) -> CronScheduler:
    scheduler = CronScheduler(engine, backend)
    scheduler.initialize()
    return scheduler


@pytest.fixture
def client(scheduler: CronScheduler) -> TestClient:
    return TestClient(create_app(scheduler))


class TestStatus:
    def test_lists_all_jobs(self, client: TestClient) -> None:
        response = client.get("/api/cron/status")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["isInitialized"] is True
        assert len(body["jobs"]) == 6
        assert body["schedules"]["opportunityScan"] == "Every 15 minutes"

        scan = next(j for j in body["jobs"] if j["name"] == "opportunity-scan")
        assert scan["schedule"] == "*/15 * * * *"
        assert scan["runCount"] == 0
        assert scan["status"] == "idle"
        assert scan["lastRun"] is None

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/cron/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["totalJobs"] == 6
        assert body["enabledJobs"] == 6
        assert body["runningJobs"] == 0
        assert body["errorJobs"] == 0

    def test_health_not_initialized(self, engine: MagicMock, backend: MagicMock) -> None:
        client = TestClient(create_app(CronScheduler(engine, backend)))

        body = client.get("/api/cron/health").json()

        assert body["status"] == "not_initialized"
        assert body["totalJobs"] == 0

    def test_health_counts_failed_jobs(self, engine: MagicMock, scheduler: CronScheduler, client: TestClient) -> None:
        engine.run_scan.side_effect = RuntimeError("scraper down")
        asyncio.run(scheduler.run_job_now("opportunity-scan"))

        body = client.get("/api/cron/health").json()

        assert body["errorJobs"] == 1


class TestStartStop:
    def test_start(self, scheduler: CronScheduler, client: TestClient) -> None:
        scheduler.start = AsyncMock()

        response = client.post("/api/cron/start")

        assert response.status_code == 200
        assert response.json()["message"] == "Cron jobs started"
        scheduler.start.assert_awaited_once()

    def test_stop(self, scheduler: CronScheduler, client: TestClient) -> None:
        scheduler.stop = AsyncMock()

        response = client.post("/api/cron/stop")

        assert response.status_code == 200
        assert response.json()["message"] == "Cron jobs stopped"
        scheduler.stop.assert_awaited_once()

    def test_start_uninitialized_is_server_error(self, engine: MagicMock, backend: MagicMock) -> None:
        client = TestClient(create_app(CronScheduler(engine, backend)))

        response = client.post("/api/cron/start")

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "not initialized" in response.json()["error"]


class TestJobRoutes:
    def test_disable_then_enable(self, client: TestClient) -> None:
        with client:
            disabled = client.post("/api/cron/jobs/cleanup/disable")
            enabled = client.post("/api/cron/jobs/cleanup/enable")

        assert disabled.status_code == 200
        assert disabled.json()["message"] == "Job cleanup disabled"
        cleanup = next(j for j in disabled.json()["status"]["jobs"] if j["name"] == "cleanup")
        assert cleanup["enabled"] is False
        assert cleanup["active"] is False

        assert enabled.status_code == 200
        jobs = {j["name"]: j for j in enabled.json()["status"]["jobs"]}
        assert jobs["cleanup"]["enabled"] is True
        assert jobs["cleanup"]["active"] is True
        assert jobs["cleanup"]["nextRun"] is not None
        assert jobs["daily-reset"]["active"] is False

    @pytest.mark.parametrize("action", ["enable", "disable", "run"])
    def test_unknown_job_is_404(self, action: str, scheduler: CronScheduler, client: TestClient) -> None:
        before = scheduler.get_status()

        response = client.post(f"/api/cron/jobs/nonexistent/{action}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Job 'nonexistent' not found"}
        assert scheduler.get_status() == before

    def test_run_acknowledges_trigger(self, client: TestClient) -> None:
        with client:
            response = client.post("/api/cron/jobs/opportunity-scan/run")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Job opportunity-scan triggered"
        assert body["result"]["triggered"] == "opportunity-scan"
        assert "at" in body["result"]


class TestConfigRoute:
    def test_partial_update(self, scheduler: CronScheduler, client: TestClient) -> None:
        response = client.put("/api/cron/config", json={"minScore": 80, "maxPrice": 150})

        assert response.status_code == 200
        body = response.json()
        assert body["note"] == "Changes will apply to next job run"
        assert body["config"]["minScore"] == 80
        assert body["config"]["maxPrice"] == 150
        assert body["config"]["minROI"] == 20
        assert scheduler.scan_parameters.min_score == 80

    def test_snake_case_accepted(self, scheduler: CronScheduler, client: TestClient) -> None:
        response = client.put("/api/cron/config", json={"daily_budget": 250})

        assert response.status_code == 200
        assert scheduler.scan_parameters.daily_budget == 250

    def test_fractional_scan_interval(self, scheduler: CronScheduler, client: TestClient) -> None:
        response = client.put("/api/cron/config", json={"scanInterval": 15.5})

        assert response.status_code == 200
        assert response.json()["config"]["scanInterval"] == 15.5
        assert scheduler.scan_parameters.scan_interval == 15.5

    @pytest.mark.parametrize(
        "payload",
        [
            {"bogus": 1},
            {"minScore": -5},
            {"autoBuyEnabled": "yes"},
            {"categories": "electronics"},
            {"minScore": "80"},
            {"dailyBudget": True},
        ],
    )
    def test_invalid_payload_is_422(self, payload: dict, scheduler: CronScheduler, client: TestClient) -> None:
        before = scheduler.scan_parameters

        response = client.put("/api/cron/config", json=payload)

        assert response.status_code == 422
        assert scheduler.scan_parameters == before

    def test_update_failure_is_500(self, scheduler: CronScheduler, client: TestClient) -> None:
        scheduler.update_config = MagicMock(side_effect=RuntimeError("boom"))

        response = client.put("/api/cron/config", json={"minScore": 80})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to update configuration: boom"}


class TestHistoryRoute:
    def test_filtered_history(self, scheduler: CronScheduler, client: TestClient) -> None:
        asyncio.run(scheduler.run_job_now("cleanup"))
        asyncio.run(scheduler.run_job_now("daily-reset"))

        response = client.get("/api/cron/history", params={"job": "cleanup"})

        assert response.status_code == 200
        history = response.json()["history"]
        assert len(history) == 1
        assert history[0]["jobName"] == "cleanup"
        assert history[0]["success"] is True

    def test_limit_bounds(self, client: TestClient) -> None:
        assert client.get("/api/cron/history", params={"limit": 0}).status_code == 422
        assert client.get("/api/cron/history", params={"limit": 5000}).status_code == 422
