"""Automation repository integration tests. Require Postgres; session is rolled back after each test."""

from datetime import timedelta

import pytest

from automation.application.dtos.enrollment import StepLogCreate
from automation.application.dtos.workflow import WorkflowCreate
from automation.infrastructure.persistence.repositories import (
    EnrollmentRepository,
    StepLogRepository,
    WorkflowRepository,
)
from automation.shared.utils.datetime import utc_now
from automation.shared.utils.generators import generate_cuid


async def _active_workflow(db_session, store_id: str, **config):
    repo = WorkflowRepository(db_session)
    created = await repo.create_workflow(
        store_id,
        WorkflowCreate(
            name="Repo test",
            trigger_type="customer_created",
            trigger_config=config,
            steps=[{"type": "exit"}],
        ),
    )
    return await repo.update_workflow(store_id, created.id, {"status": "active"})


@pytest.mark.requires_db
async def test_workflow_create_get_and_soft_delete(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    repo = WorkflowRepository(db_session)
    wf = await _active_workflow(db_session, store_id)

    assert (await repo.get_by_id_and_store(wf.id, store_id)).status == "active"
    assert await repo.get_by_id_and_store(wf.id, "other-store") is None
    assert [w.id for w in await repo.get_active_by_trigger(store_id, "customer_created")] == [wf.id]

    assert await repo.soft_delete(store_id, wf.id) is True
    assert await repo.get_by_id_and_store(wf.id, store_id) is None
    assert await repo.soft_delete(store_id, wf.id) is False


@pytest.mark.requires_db
async def test_second_active_enrollment_is_rejected_by_constraint(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    wf = await _active_workflow(db_session, store_id)
    repo = EnrollmentRepository(db_session)

    first = await repo.create_enrollment(store_id, wf.id, "cust1", {"customerId": "cust1"})
    second = await repo.create_enrollment(store_id, wf.id, "cust1", {"customerId": "cust1"})

    assert first is not None
    assert second is None
    assert await repo.has_active_enrollment(store_id, wf.id, "cust1") is True


@pytest.mark.requires_db
async def test_re_enrollment_allowed_after_exit(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    wf = await _active_workflow(db_session, store_id)
    repo = EnrollmentRepository(db_session)
    now = utc_now()

    first = await repo.create_enrollment(store_id, wf.id, "cust1", {})
    assert await repo.update_enrollment(
        store_id, first.id, {"status": "exited", "exit_reason": "test", "exited_at": now}
    )
    again = await repo.create_enrollment(store_id, wf.id, "cust1", {})

    assert again is not None
    assert again.id != first.id


@pytest.mark.requires_db
async def test_claim_leases_rows_until_update(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    wf = await _active_workflow(db_session, store_id)
    repo = EnrollmentRepository(db_session)
    now = utc_now()
    enr = await repo.create_enrollment(store_id, wf.id, "cust1", {})

    claimed = await repo.claim_pending_enrollments(store_id, now, now + timedelta(minutes=5), 10)
    assert [c.enrollment.id for c in claimed] == [enr.id]
    assert claimed[0].workflow.id == wf.id
    assert claimed[0].customer is None

    again = await repo.claim_pending_enrollments(store_id, now, now + timedelta(minutes=5), 10)
    assert again == []

    assert await repo.update_enrollment(store_id, enr.id, {"current_step": 1, "last_step_at": now})
    after = await repo.claim_pending_enrollments(store_id, now, now + timedelta(minutes=5), 10)
    assert [c.enrollment.current_step for c in after] == [1]


@pytest.mark.requires_db
async def test_update_on_terminal_enrollment_returns_false(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    wf = await _active_workflow(db_session, store_id)
    repo = EnrollmentRepository(db_session)
    now = utc_now()
    enr = await repo.create_enrollment(store_id, wf.id, "cust1", {})

    assert await repo.update_enrollment(
        store_id, enr.id, {"status": "completed", "completed_at": now}
    )
    assert not await repo.update_enrollment(store_id, enr.id, {"current_step": 3})
    assert await repo.count_by_status(store_id, wf.id) == {"completed": 1}


@pytest.mark.requires_db
async def test_step_logs_newest_first_and_counted(db_session) -> None:
    store_id = f"store-{generate_cuid()}"
    wf = await _active_workflow(db_session, store_id)
    enr = await EnrollmentRepository(db_session).create_enrollment(store_id, wf.id, "cust1", {})
    repo = StepLogRepository(db_session)

    for index, status in enumerate(["success", "failed"]):
        await repo.log_step(
            store_id,
            StepLogCreate(
                workflow_id=wf.id,
                enrollment_id=enr.id,
                customer_id="cust1",
                step_index=index,
                step_type="add_tag",
                status=status,
                error_message="boom" if status == "failed" else None,
                metadata={"tagsAdded": ["vip"]},
            ),
        )

    failed = await repo.get_by_workflow(store_id, wf.id, status="failed")
    assert [log.error_message for log in failed] == ["boom"]
    assert await repo.count_by_status(store_id, wf.id) == {"success": 1, "failed": 1}
