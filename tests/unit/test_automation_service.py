"""AutomationService unit tests: workflow lifecycle, enrollment and batch processing."""

from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from automation.application.dtos.automation import AbandonedCartResult, CartResult
from automation.application.dtos.workflow import WorkflowCreate, WorkflowUpdate
from automation.application.use_cases.automation import AutomationService
from automation.domain.exceptions import (
    DuplicateEnrollmentException,
    ResourceNotFoundException,
    ValidationException,
    WorkflowStateException,
)
from tests.fakes import STORE_ID, T0, build_engine, enrollment, workflow

EXIT = {"type": "exit"}
TAG = {"type": "add_tag", "config": {"tags": ["vip"]}}


class TestWorkflowLifecycle:
    async def test_create_stores_draft(self) -> None:
        engine = build_engine()
        wf = await engine.service.create_workflow(
            STORE_ID,
            WorkflowCreate(name="Welcome", trigger_type="customer_created", steps=[TAG]),
        )
        assert wf.status == "draft"
        assert wf.steps == [TAG]

    async def test_create_rejects_unknown_trigger(self) -> None:
        engine = build_engine()
        with pytest.raises(ValidationException, match="trigger type"):
            await engine.service.create_workflow(
                STORE_ID, WorkflowCreate(name="x", trigger_type="moon_phase")
            )

    async def test_create_rejects_invalid_step(self) -> None:
        engine = build_engine()
        with pytest.raises(ValidationException):
            await engine.service.create_workflow(
                STORE_ID,
                WorkflowCreate(
                    name="x",
                    trigger_type="customer_created",
                    steps=[{"type": "send_email", "config": {}}],
                ),
            )

    async def test_create_rejects_blank_name(self) -> None:
        engine = build_engine()
        with pytest.raises(ValidationException, match="name"):
            await engine.service.create_workflow(
                STORE_ID, WorkflowCreate(name="  ", trigger_type="customer_created")
            )

    async def test_get_other_store_is_not_found(self) -> None:
        wf = workflow([EXIT], store_id="other-store")
        engine = build_engine(wf)
        with pytest.raises(ResourceNotFoundException):
            await engine.service.get_workflow(STORE_ID, wf.id)

    @patch("automation.application.use_cases.automation.automation_service.utc_now")
    async def test_activate_sets_status_and_timestamp(self, mock_now) -> None:
        mock_now.return_value = T0
        wf = workflow([TAG], status="draft")
        engine = build_engine(wf)

        activated = await engine.service.activate_workflow(STORE_ID, wf.id)

        assert activated.status == "active"
        assert activated.activated_at == T0

    async def test_activate_without_steps_raises(self) -> None:
        wf = workflow([], status="draft")
        engine = build_engine(wf)
        with pytest.raises(WorkflowStateException):
            await engine.service.activate_workflow(STORE_ID, wf.id)

    async def test_pause_active_workflow(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        paused = await engine.service.pause_workflow(STORE_ID, wf.id)
        assert paused.status == "paused"

    async def test_pause_draft_raises(self) -> None:
        wf = workflow([TAG], status="draft")
        engine = build_engine(wf)
        with pytest.raises(WorkflowStateException):
            await engine.service.pause_workflow(STORE_ID, wf.id)

    async def test_editing_steps_of_active_workflow_raises(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        with pytest.raises(WorkflowStateException):
            await engine.service.update_workflow(
                STORE_ID, wf.id, WorkflowUpdate(steps=[TAG, EXIT])
            )

    async def test_rename_active_workflow_is_allowed(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        updated = await engine.service.update_workflow(
            STORE_ID, wf.id, WorkflowUpdate(name="Renamed")
        )
        assert updated.name == "Renamed"
        assert updated.steps == [TAG]

    async def test_edit_steps_of_paused_workflow(self) -> None:
        wf = workflow([TAG], status="paused")
        engine = build_engine(wf)
        updated = await engine.service.update_workflow(
            STORE_ID, wf.id, WorkflowUpdate(steps=[TAG, EXIT])
        )
        assert updated.steps == [TAG, EXIT]

    async def test_cleared_fields_are_reset(self) -> None:
        source_filter = {"conditions": [{"field": "source", "operator": "is_set"}]}
        wf = replace(workflow([TAG], trigger_config=source_filter), description="Old copy")
        engine = build_engine(wf)
        updated = await engine.service.update_workflow(
            STORE_ID,
            wf.id,
            WorkflowUpdate(cleared=frozenset({"description", "trigger_config"})),
        )
        assert updated.description is None
        assert updated.trigger_config == {}
        assert updated.name == wf.name

    async def test_none_fields_are_left_unchanged(self) -> None:
        wf = replace(workflow([TAG]), description="Keep me")
        engine = build_engine(wf)
        updated = await engine.service.update_workflow(
            STORE_ID, wf.id, WorkflowUpdate(name="Renamed")
        )
        assert updated.description == "Keep me"

    async def test_required_field_cannot_be_cleared(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        with pytest.raises(ValidationException, match="cannot be cleared"):
            await engine.service.update_workflow(
                STORE_ID, wf.id, WorkflowUpdate(cleared=frozenset({"name"}))
            )

    async def test_delete_exits_active_enrollments(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        enr = engine.enrollments.add(enrollment(wf.id))

        await engine.service.delete_workflow(STORE_ID, wf.id)

        assert engine.enrollments.enrollments[enr.id].status == "exited"
        assert engine.enrollments.enrollments[enr.id].exit_reason == "Workflow deleted"
        with pytest.raises(ResourceNotFoundException):
            await engine.service.get_workflow(STORE_ID, wf.id)


class TestEnrollment:
    async def test_handle_trigger_rejects_unknown_type(self) -> None:
        engine = build_engine()
        with pytest.raises(ValidationException):
            await engine.service.handle_trigger(STORE_ID, "moon_phase", {"customerId": "c1"})

    async def test_manual_enroll_bypasses_conditions(self) -> None:
        wf = workflow(
            [TAG],
            trigger_type="manual",
            trigger_config={
                "conditions": [{"field": "orderTotal", "operator": "greater_than", "value": 100}]
            },
        )
        engine = build_engine(wf)

        enr = await engine.service.enroll_customer(STORE_ID, wf.id, "c1", {"source": "admin"})

        assert enr.current_step == 0
        assert enr.trigger_data == {"customerId": "c1", "source": "admin"}

    async def test_manual_enroll_twice_raises(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        await engine.service.enroll_customer(STORE_ID, wf.id, "c1")
        with pytest.raises(DuplicateEnrollmentException):
            await engine.service.enroll_customer(STORE_ID, wf.id, "c1")


class TestProcessPendingSteps:
    async def test_only_due_enrollments_are_processed(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf)
        due = engine.enrollments.add(enrollment(wf.id, customer_id="c1"))
        waiting = engine.enrollments.add(
            enrollment(wf.id, customer_id="c2", next_step_at=T0 + timedelta(hours=1))
        )

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert (result.processed, result.errors, result.skipped) == (1, 0, 0)
        assert engine.enrollments.enrollments[due.id].current_step == 1
        assert engine.enrollments.enrollments[waiting.id].current_step == 0

    async def test_paused_workflow_enrollments_stay_parked(self) -> None:
        wf = workflow([TAG], status="paused")
        engine = build_engine(wf)
        enr = engine.enrollments.add(enrollment(wf.id))

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert result.processed == 0
        assert engine.enrollments.enrollments[enr.id].current_step == 0

    async def test_error_in_one_enrollment_does_not_stop_batch(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf)
        engine.enrollments.add(enrollment(wf.id, customer_id="c1"))
        engine.enrollments.add(enrollment(wf.id, customer_id="c2"))
        engine.logs.log_step = AsyncMock(side_effect=[RuntimeError("db down"), None])

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert result.processed == 1
        assert result.errors == 1

    async def test_batch_size_limits_claim(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf, batch_size=2)
        for i in range(3):
            engine.enrollments.add(enrollment(wf.id, customer_id=f"c{i}"))

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert result.processed == 2

    async def test_unschedulable_delay_does_not_wedge_enrollment(self) -> None:
        wf = workflow(
            [{"type": "delay", "config": {"value": 10_000_000, "unit": "days"}}, TAG, EXIT]
        )
        engine = build_engine(wf)
        enr = engine.enrollments.add(enrollment(wf.id))

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert (result.processed, result.errors) == (1, 0)
        assert engine.enrollments.enrollments[enr.id].current_step == 1
        assert [e.status for e in engine.logs.entries] == ["failed"]

    async def test_claimed_enrollment_is_not_claimed_again_within_lease(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf)
        enr = engine.enrollments.add(enrollment(wf.id))
        engine.enrollments.leased[enr.id] = T0 + timedelta(minutes=5)

        result = await engine.service.process_pending_steps(STORE_ID, now=T0)

        assert result.processed == 0


class TestScheduledCycle:
    @staticmethod
    def _idle_cart() -> CartResult:
        return CartResult(
            id="cart1",
            customer_id="c9",
            email="c9@example.com",
            total=40.0,
            updated_at=T0 - timedelta(hours=2),
        )

    async def test_failed_cart_flag_does_not_block_step_processing(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf, carts=[self._idle_cart()])
        enr = engine.enrollments.add(enrollment(wf.id))
        engine.carts.mark_abandoned_email_sent = AsyncMock(side_effect=RuntimeError("db down"))

        cycle = await engine.service.run_scheduled_cycle(STORE_ID, now=T0)

        assert cycle.abandoned_carts == AbandonedCartResult(triggered=0, errors=1)
        assert cycle.steps.processed == 1
        assert engine.enrollments.enrollments[enr.id].current_step == 1

    async def test_failed_cart_scan_does_not_block_step_processing(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf)
        enr = engine.enrollments.add(enrollment(wf.id))
        engine.carts.get_idle_carts = AsyncMock(side_effect=RuntimeError("db down"))

        cycle = await engine.service.run_scheduled_cycle(STORE_ID, now=T0)

        assert cycle.abandoned_carts == AbandonedCartResult(triggered=0, errors=1)
        assert cycle.steps.processed == 1
        assert engine.enrollments.enrollments[enr.id].current_step == 1

class TestReporting:
    async def test_stats_count_enrollments_and_logs(self) -> None:
        wf = workflow([TAG, EXIT])
        engine = build_engine(wf)
        engine.enrollments.add(enrollment(wf.id, customer_id="c1"))
        engine.enrollments.add(enrollment(wf.id, customer_id="c2", status="completed"))

        await engine.service.process_pending_steps(STORE_ID, now=T0)
        stats = await engine.service.get_workflow_stats(STORE_ID, wf.id)

        assert stats.total_enrolled == 2
        assert stats.active == 1
        assert stats.completed == 1
        assert stats.steps_succeeded == 1
        assert stats.steps_failed == 0

    async def test_logs_filter_rejects_unknown_status(self) -> None:
        wf = workflow([TAG])
        engine = build_engine(wf)
        with pytest.raises(ValidationException):
            await engine.service.get_workflow_logs(STORE_ID, wf.id, status="maybe")

    def test_catalogs(self) -> None:
        triggers = AutomationService.list_trigger_types()
        steps = {s["value"]: s for s in AutomationService.list_step_types()}
        assert len(triggers) == 15
        assert {"id": "abandoned_cart", "name": "Abandoned Cart", "value": "abandoned_cart"} in triggers
        assert steps["delay"]["category"] == "flow_control"
        assert steps["send_email"]["category"] == "action"
