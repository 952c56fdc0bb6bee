from __future__ import annotations

import time
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from claim_pipeline.bootstrap import ClaimPipeline, build_claim_pipeline
from claim_pipeline.config import Settings
from claim_pipeline.domain.entities import Account, ClaimExecution
from claim_pipeline.infrastructure.messaging import NoopMessagingClient
from claim_pipeline.infrastructure.repositories import InMemoryAccountRepository
from claim_pipeline.main import create_app


class StaticClaimExecutor:
    async def claim(self, account_id: str) -> ClaimExecution:
        return ClaimExecution(success=True, claimed_items=(f"gold-{account_id}",))


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    settings = Settings(
        schedule_enabled=False,
        confirmation_dir=str(tmp_path / "confirmations"),
        screenshot_dir=str(tmp_path / "screenshots"),
        finished_job_retention_seconds=0,
    )
    pipeline = build_claim_pipeline(
        settings,
        account_repository=InMemoryAccountRepository(
            [
                Account(account_id="1", owner_id="owner-1", username="alice"),
                Account(account_id="2", owner_id="owner-2", username="bob"),
            ]
        ),
        claim_executor=StaticClaimExecutor(),
        messaging_client=NoopMessagingClient(),
    )

    def _pipeline() -> ClaimPipeline:
        return pipeline

    monkeypatch.setattr("claim_pipeline.api.dependencies.get_claim_pipeline", _pipeline)
    monkeypatch.setattr("claim_pipeline.main.get_claim_pipeline", _pipeline)
    with TestClient(create_app()) as test_client:
        yield test_client


def _wait_for_terminal(client: TestClient, process_id: str) -> dict[str, object]:
    for _ in range(200):
        response = client.get(f"/admin/claim-progress/{process_id}")
        assert response.status_code == 200
        body = response.json()
        if body["status"] != "running":
            return body
        time.sleep(0.01)
    raise AssertionError(f"Claim job {process_id} did not finish.")


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_claim_users_returns_process_id_and_job_completes(client: TestClient) -> None:
    response = client.post("/admin/claim-users", json={"userIds": ["1", "unknown"]})

    assert response.status_code == 202
    process_id = response.json()["processId"]
    assert process_id.startswith("claim-")

    body = _wait_for_terminal(client, process_id)
    assert body["status"] == "completed"
    assert body["trigger"] == "manual_users"
    assert body["totalUsers"] == 1
    assert body["completedUsers"] == 1
    assert body["failedUsers"] == 0
    assert body["results"][0]["accountId"] == "1"
    assert body["results"][0]["claimedItems"] == ["gold-1"]


def test_claim_all_runs_every_registered_account(client: TestClient) -> None:
    response = client.post("/admin/claim-all")

    assert response.status_code == 202
    body = _wait_for_terminal(client, response.json()["processId"])
    assert body["trigger"] == "manual_all"
    assert body["totalUsers"] == 2
    assert sorted(result["accountId"] for result in body["results"]) == ["1", "2"]


def test_claim_users_requires_non_empty_ids(client: TestClient) -> None:
    assert client.post("/admin/claim-users", json={"userIds": []}).status_code == 422
    assert client.post("/admin/claim-users", json={"userIds": ["  "]}).status_code == 422
    assert client.post("/admin/claim-users", json={}).status_code == 422


def test_unknown_process_id_returns_404(client: TestClient) -> None:
    response = client.get("/admin/claim-progress/claim-missing")

    assert response.status_code == 404
    assert "claim-missing" in response.json()["detail"]


def test_finished_jobs_leave_active_list_and_are_cleaned_up(client: TestClient) -> None:
    process_id = client.post("/admin/claim-users", json={"userIds": ["2"]}).json()["processId"]
    _wait_for_terminal(client, process_id)

    listing = client.get("/admin/claim-progress")
    assert listing.status_code == 200
    assert process_id not in [job["processId"] for job in listing.json()["jobs"]]

    cleanup = client.delete("/admin/claim-progress/cleanup")
    assert cleanup.status_code == 200
    assert cleanup.json() == {"removed": 1, "remaining": 0}
    assert client.get(f"/admin/claim-progress/{process_id}").status_code == 404


def test_scheduler_status_reports_disabled_loop(client: TestClient) -> None:
    response = client.get("/admin/scheduler/status")

    assert response.status_code == 200
    body = response.json()
    assert body["enabled"] is False
    assert body["isRunning"] is False
    assert body["scheduleHoursUtc"] == [0, 6, 12, 18]
    assert body["nextRun"] is None
