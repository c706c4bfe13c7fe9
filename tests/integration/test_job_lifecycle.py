"""Job lifecycle against a real database

Create (charge) -> claim -> process (generate, upload) -> settle (refund),
driven through the API, the scheduler and the job processor.
"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import update
from sqlmodel import select

from src.domain.job import Job
from src.domain.ledger_entry import LedgerEntry


async def create_job(client, account_id, batch_count=4, unit_price=20, **extra):
    payload = {
        "account_id": account_id,
        "prompt": "a lighthouse at dusk",
        "batch_count": batch_count,
        "unit_price": unit_price,
    }
    payload.update(extra)
    return await client.post("/api/jobs", json=payload)


async def balance_of(client, account_id):
    response = await client.get(f"/api/accounts/{account_id}/balance")
    assert response.status_code == 200
    return response.json()["balance"]


async def claim_and_process(context):
    job_ids = await context.scheduler.run_claim_once()
    return [await context.processor.process(job_id) for job_id in job_ids]


@pytest.mark.asyncio
class TestJobLifecycle:
    async def test_full_success(self, client, context, open_account, storage_service):
        """
        Given: Balance 1000
        When: A 4-unit job at price 20 is created and all 4 units succeed
        Then: success, 4 URLs, balance 920, a single charge entry
        """
        account_id = await open_account(initial_balance=1000)

        response = await create_job(client, account_id)
        assert response.status_code == 201
        job = response.json()
        assert job["status"] == "pending"
        assert job["charged_amount"] == 80
        assert job["balance_after"] == 920

        completed = await claim_and_process(context)
        assert completed[0].status == "success"

        status = (await client.get(f"/api/jobs/{job['job_id']}")).json()
        assert status["status"] == "success"
        assert status["actual_unit_count"] == 4
        assert status["generated_urls"] == [
            f"https://cdn.test/generated/{account_id}/{job['job_id']}/{i}.png" for i in range(4)
        ]
        assert status["error_summary"] is None
        assert len(storage_service.objects) == 4

        assert await balance_of(client, account_id) == 920
        entries = (await client.get(f"/api/accounts/{account_id}/ledger-entries")).json()
        assert [e["category"] for e in entries["entries"]] == ["job_charge"]
        assert entries["entries"][0]["amount"] == -80

    async def test_partial_success_refunds_missing_unit(
        self, client, context, open_account, generation_service
    ):
        """3 of 4 units succeed: partial_success, refund 20, balance 940"""
        account_id = await open_account(initial_balance=1000)
        generation_service.failing_units = {2}

        job = (await create_job(client, account_id)).json()
        await claim_and_process(context)

        status = (await client.get(f"/api/jobs/{job['job_id']}")).json()
        assert status["status"] == "partial_success"
        assert status["actual_unit_count"] == 3
        assert status["error_summary"] == "1 of 4 units failed"
        assert status["unit_errors"][0]["index"] == 2
        assert status["unit_errors"][0]["stage"] == "generation"
        assert status["unit_errors"][0]["attempts"] == 3

        assert await balance_of(client, account_id) == 940
        entries = (await client.get(f"/api/accounts/{account_id}/ledger-entries")).json()["entries"]
        assert [(e["category"], e["amount"]) for e in entries] == [
            ("job_refund", 20),
            ("job_charge", -80),
        ]
        assert entries[0]["balance_before"] == 920
        assert entries[0]["balance_after"] == 940

    async def test_total_failure_refunds_everything(
        self, client, context, open_account, generation_service
    ):
        """0 of 4 units succeed: failed, full refund, balance back to 1000"""
        account_id = await open_account(initial_balance=1000)
        generation_service.failing_units = {0, 1, 2, 3}

        job = (await create_job(client, account_id)).json()
        await claim_and_process(context)

        status = (await client.get(f"/api/jobs/{job['job_id']}")).json()
        assert status["status"] == "failed"
        assert status["actual_unit_count"] == 0
        assert status["error_summary"] == "All units failed"
        assert len(status["unit_errors"]) == 4
        assert await balance_of(client, account_id) == 1000

    async def test_insufficient_balance_creates_nothing(self, client, open_account, db_session):
        account_id = await open_account(initial_balance=50)

        response = await create_job(client, account_id)

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"
        assert await balance_of(client, account_id) == 50
        jobs = (await db_session.execute(select(Job))).scalars().all()
        entries = (await db_session.execute(select(LedgerEntry))).scalars().all()
        assert jobs == []
        assert entries == []

    async def test_settled_job_is_not_processed_again(self, client, context, open_account):
        account_id = await open_account(initial_balance=1000)
        job = (await create_job(client, account_id, batch_count=2)).json()
        await claim_and_process(context)

        assert await context.processor.process(job["job_id"]) is None
        assert await context.scheduler.run_claim_once() == []
        assert await balance_of(client, account_id) == 960

    async def test_stuck_job_is_recovered_and_reprocessed(
        self, client, context, open_account, db_session
    ):
        """
        Given: A claimed job whose worker died (no heartbeat for 11 minutes)
        When: The recovery sweep runs
        Then: The job is pending again and the next claim completes it
        """
        account_id = await open_account(initial_balance=1000)
        job = (await create_job(client, account_id)).json()
        assert await context.scheduler.run_claim_once() == [job["job_id"]]

        await db_session.execute(
            update(Job)
            .where(Job.id == job["job_id"])
            .values(updated_at=datetime.utcnow() - timedelta(minutes=11))
        )
        await db_session.commit()

        assert await context.scheduler.run_recovery_once() == [job["job_id"]]
        status = (await client.get(f"/api/jobs/{job['job_id']}")).json()
        assert status["status"] == "pending"

        context.queue._in_flight.clear()
        await claim_and_process(context)

        status = (await client.get(f"/api/jobs/{job['job_id']}")).json()
        assert status["status"] == "success"
        assert await balance_of(client, account_id) == 920

    async def test_fresh_processing_job_is_not_recovered(self, client, context, open_account):
        account_id = await open_account(initial_balance=1000)
        await create_job(client, account_id)
        await context.scheduler.run_claim_once()

        assert await context.scheduler.run_recovery_once() == []

    async def test_jobs_are_claimed_oldest_first(self, client, context, open_account):
        account_id = await open_account(initial_balance=1000)
        first = (await create_job(client, account_id, batch_count=1)).json()
        second = (await create_job(client, account_id, batch_count=1)).json()

        context.scheduler.batch_size = 1

        assert await context.scheduler.run_claim_once() == [first["job_id"]]
        assert await context.scheduler.run_claim_once() == [second["job_id"]]

    async def test_ledger_reconciles_after_mixed_jobs(
        self, client, context, open_account, generation_service
    ):
        account_id = await open_account(initial_balance=1000)
        await create_job(client, account_id)
        await claim_and_process(context)
        generation_service.failing_units = {0}
        await create_job(client, account_id, batch_count=3, unit_price=10)
        await claim_and_process(context)

        assert await balance_of(client, account_id) == 920 - 20

        result = await context.reconciler.run_once()
        assert result.total_accounts_checked == 1
        assert result.discrepancies_found == 0

    async def test_template_prompt_reaches_generation(
        self, client, context, open_account, generation_service
    ):
        account_id = await open_account(initial_balance=1000)
        await create_job(
            client,
            account_id,
            batch_count=1,
            template_prompt="poster, {{ prompt }}, bold colors",
            reference_image_urls=["https://ref.test/a.png"],
            options={"watermark": True},
        )

        await claim_and_process(context)

        request = generation_service.requests[0]
        assert request.prompt == "poster, a lighthouse at dusk, bold colors"
        assert request.reference_image_urls == ["https://ref.test/a.png"]
        assert request.options.watermark is True


@pytest.mark.asyncio
class TestJobsApiValidation:
    async def test_batch_count_out_of_range(self, client, open_account):
        account_id = await open_account()

        response = await create_job(client, account_id, batch_count=16)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_expected_units_below_batch_count(self, client, open_account):
        account_id = await open_account()

        response = await create_job(client, account_id, batch_count=4, expected_unit_count=2)

        assert response.status_code == 400

    async def test_unknown_account(self, client):
        response = await create_job(client, 999)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"

    async def test_unknown_job(self, client):
        response = await client.get("/api/jobs/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "JOB_NOT_FOUND"

    async def test_open_account_is_idempotent(self, client):
        first = await client.post("/api/accounts", json={"user_id": "u", "initial_balance": 500})
        second = await client.post("/api/accounts", json={"user_id": "u", "initial_balance": 9})

        assert first.json()["created"] is True
        assert second.json()["created"] is False
        assert second.json()["account_id"] == first.json()["account_id"]
        assert second.json()["balance"] == 500

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.json() == {"status": "ok"}
