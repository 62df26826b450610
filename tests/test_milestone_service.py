"""Tests for the milestone store and lifecycle service."""
import datetime
from decimal import Decimal

import pytest

from progress_engine.exceptions import (
    EngineValidationError,
    InvalidStateError,
    NotFoundError,
)
from progress_engine.services import milestone_service, milestone_store
from progress_engine.services.events import EventDispatcher

T0 = datetime.datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def milestones(db, proposal):
    return milestone_service.initialize_milestones(db, proposal.id).milestones


class TestInitialize:
    def test_creates_five_default_milestones(self, db, proposal):
        result = milestone_service.initialize_milestones(db, proposal.id)

        assert [m.order for m in result.milestones] == [1, 2, 3, 4, 5]
        assert [m.type for m in result.milestones] == [
            "content_creation", "submission", "review", "approval", "payment",
        ]
        assert [m.title for m in result.milestones] == [
            "Content Creation", "Content Submission", "Review & Revisions",
            "Final Approval", "Payment Release",
        ]
        assert [m.estimated_hours for m in result.milestones] == [6.0, 1.0, 2.0, 0.5, 0.5]
        assert all(m.status == "pending" for m in result.milestones)
        assert all(m.actual_hours is None for m in result.milestones)
        assert result.progress.overall_progress == 0
        assert result.progress.current_stage == "content_creation"

    def test_default_schedule_pays_on_release(self, db, proposal):
        result = milestone_service.initialize_milestones(db, proposal.id)
        assert [m.payment_percentage for m in result.milestones] == [0, 0, 0, 0, 100]

    def test_is_idempotent(self, db, proposal):
        first = milestone_service.initialize_milestones(db, proposal.id)
        second = milestone_service.initialize_milestones(db, proposal.id)

        assert [m.id for m in first.milestones] == [m.id for m in second.milestones]
        assert len(milestone_store.list_by_proposal(db, proposal.id)) == 5

    def test_unknown_proposal(self, db):
        with pytest.raises(NotFoundError):
            milestone_service.initialize_milestones(db, 999)

    def test_custom_schedule_and_due_dates(self, db, proposal):
        due = datetime.datetime(2026, 4, 1, 18, 0, tzinfo=datetime.timezone.utc)
        result = milestone_service.initialize_milestones(
            db,
            proposal.id,
            payment_schedule=[30, 0, 0, 20, 50],
            due_dates=[due, None, None, None, None],
        )
        assert [m.payment_percentage for m in result.milestones] == [30, 0, 0, 20, 50]
        assert result.milestones[0].due_date == datetime.datetime(2026, 4, 1, 18, 0)
        assert result.milestones[1].due_date is None

    @pytest.mark.parametrize(
        "schedule, message",
        [
            ([50, 50, 10, 0, 0], "exceeds 100"),
            ([10, 10, 10, 10, 10], "must sum to 100"),
            ([100, 0, 0, 0], "5 entries"),
            ([-10, 10, 0, 0, 100], "between 0 and 100"),
            ([float("nan"), 0, 0, 0, 100], "finite"),
            ([float("inf"), 0, 0, 0, 100], "finite"),
            ([33.333, 33.333, 33.334, 0, 0], "must sum to 100, got 99.99"),
        ],
    )
    def test_invalid_schedule(self, db, proposal, schedule, message):
        with pytest.raises(EngineValidationError, match=message):
            milestone_service.initialize_milestones(db, proposal.id, payment_schedule=schedule)
        assert milestone_store.list_by_proposal(db, proposal.id) == []

    def test_schedule_rounded_to_cents(self, db, proposal):
        result = milestone_service.initialize_milestones(
            db, proposal.id, payment_schedule=[20.004, 19.996, 20, 20, 20]
        )
        assert [m.payment_percentage for m in result.milestones] == [20, 20, 20, 20, 20]

    def test_wrong_number_of_due_dates(self, db, proposal):
        with pytest.raises(EngineValidationError):
            milestone_service.initialize_milestones(db, proposal.id, due_dates=[None])


class TestUpdate:
    def test_partial_update(self, db, milestones):
        target = milestones[0]
        result = milestone_service.update_milestone(
            db, target.id, {"title": "Script & Filming", "estimated_hours": 5.5}
        )
        assert result.milestone.title == "Script & Filming"
        assert result.milestone.estimated_hours == 5.5
        assert result.milestone.description == "Script, film and edit the content"
        assert result.progress.proposal_id == target.proposal_id

    def test_rejects_negative_hours(self, db, milestones):
        with pytest.raises(EngineValidationError):
            milestone_service.update_milestone(db, milestones[0].id, {"estimated_hours": -1})

    @pytest.mark.parametrize("hours", [float("nan"), float("inf"), 10000])
    def test_rejects_unstorable_hours(self, db, milestones, hours):
        with pytest.raises(EngineValidationError):
            milestone_service.update_milestone(db, milestones[0].id, {"estimated_hours": hours})
        row = milestone_store.get_milestone(db, milestones[0].id)
        assert row.estimated_hours == Decimal("6.00")

    def test_rejects_blank_title(self, db, milestones):
        with pytest.raises(EngineValidationError):
            milestone_service.update_milestone(db, milestones[0].id, {"title": "   "})

    def test_rejects_status_change(self, db, milestones):
        with pytest.raises(EngineValidationError):
            milestone_service.update_milestone(db, milestones[0].id, {"status": "completed"})

    def test_completed_milestone_is_read_only(self, db, milestones):
        milestone_service.complete_milestone(db, milestones[0].id, now=T0)
        with pytest.raises(InvalidStateError):
            milestone_service.update_milestone(db, milestones[0].id, {"title": "Late edit"})

    def test_unknown_milestone(self, db):
        with pytest.raises(NotFoundError):
            milestone_service.update_milestone(db, 999, {"title": "x"})


class TestComplete:
    def test_completes_and_updates_progress(self, db, milestones):
        result = milestone_service.complete_milestone(db, milestones[0].id, now=T0)

        assert result.milestone.status == "completed"
        assert result.milestone.completed_at == T0
        assert result.progress.stage_progress["content_creation"] == 100
        assert result.progress.overall_progress == 20
        assert result.progress.current_stage == "submission"

    def test_second_completion_fails_and_keeps_timestamp(self, db, milestones):
        milestone_service.complete_milestone(db, milestones[0].id, now=T0)
        with pytest.raises(InvalidStateError):
            milestone_service.complete_milestone(
                db, milestones[0].id, now=T0 + datetime.timedelta(hours=1)
            )
        assert milestone_store.get_milestone(db, milestones[0].id).completed_at == T0

    def test_completing_all_reaches_100(self, db, milestones):
        progress_values = []
        for m in milestones:
            result = milestone_service.complete_milestone(db, m.id, now=T0)
            progress_values.append(result.progress.overall_progress)

        assert progress_values == [20, 40, 60, 80, 100]
        assert result.progress.current_stage == "payment"

    def test_publishes_event_once(self, db, milestones):
        events = []
        dispatcher = EventDispatcher()
        dispatcher.subscribe(events.append)

        milestone_service.complete_milestone(db, milestones[4].id, now=T0, dispatcher=dispatcher)
        with pytest.raises(InvalidStateError):
            milestone_service.complete_milestone(db, milestones[4].id, dispatcher=dispatcher)

        assert len(events) == 1
        assert events[0].milestone_id == milestones[4].id
        assert events[0].payment_percentage == 100.0
        assert events[0].completed_at == T0

    def test_failing_subscriber_does_not_undo_completion(self, db, milestones):
        dispatcher = EventDispatcher()

        def _boom(event):
            raise RuntimeError("payment service down")

        dispatcher.subscribe(_boom)
        result = milestone_service.complete_milestone(
            db, milestones[0].id, now=T0, dispatcher=dispatcher
        )
        assert result.milestone.status == "completed"
        assert milestone_store.get_milestone(db, milestones[0].id).status == "completed"

    def test_can_complete_pending_milestone_directly(self, db, milestones):
        result = milestone_service.complete_milestone(db, milestones[2].id, now=T0)
        assert result.milestone.status == "completed"
        assert result.milestone.started_at is None


class TestStoreHelpers:
    def test_recompute_actual_hours_without_sessions(self, db, milestones):
        assert milestone_store.recompute_actual_hours(db, milestones[0].id) == Decimal("0.00")

    def test_list_for_unknown_proposal_is_empty(self, db):
        assert milestone_store.list_by_proposal(db, 12345) == []
