"""Tests for the time session store and time tracking service."""
import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from progress_engine.exceptions import (
    ActiveSessionConflict,
    InvalidStateError,
    NotFoundError,
)
from progress_engine.models.time_session import TimeSession
from progress_engine.services import (
    milestone_service,
    milestone_store,
    time_session_store,
    time_tracking_service,
)

T0 = datetime.datetime(2026, 3, 1, 9, 0, 0)
ACTOR = "influencer-1"


@pytest.fixture
def milestones(db, proposal):
    return milestone_service.initialize_milestones(db, proposal.id).milestones


def _count_sessions(db):
    return db.query(TimeSession).count()


class TestStart:
    def test_start_opens_active_session(self, db, milestones):
        session = time_tracking_service.start_tracking(
            db, ACTOR, milestones[0].id, description="Filming", now=T0
        )

        assert session.is_active is True
        assert session.start_time == T0
        assert session.end_time is None
        assert session.duration_seconds is None
        assert session.proposal_id == milestones[0].proposal_id
        assert session.description == "Filming"

    def test_first_start_moves_milestone_in_progress(self, db, milestones):
        time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)

        row = milestone_store.get_milestone(db, milestones[0].id)
        assert row.status == "in_progress"
        assert row.started_at == T0

    def test_started_at_is_kept_on_later_timers(self, db, milestones):
        first = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, first.id, now=T0 + datetime.timedelta(minutes=5))
        time_tracking_service.start_tracking(
            db, ACTOR, milestones[0].id, now=T0 + datetime.timedelta(hours=2)
        )

        assert milestone_store.get_milestone(db, milestones[0].id).started_at == T0

    def test_second_start_conflicts_and_creates_nothing(self, db, milestones):
        first = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)

        with pytest.raises(ActiveSessionConflict) as excinfo:
            time_tracking_service.start_tracking(db, ACTOR, milestones[1].id, now=T0)

        assert excinfo.value.active_session_id == first.id
        assert _count_sessions(db) == 1
        assert milestone_store.get_milestone(db, milestones[1].id).status == "pending"

    def test_other_actor_can_start(self, db, milestones):
        time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        other = time_tracking_service.start_tracking(db, "influencer-2", milestones[0].id, now=T0)
        assert other.is_active

    def test_cannot_log_time_on_completed_milestone(self, db, milestones):
        milestone_service.complete_milestone(db, milestones[0].id, now=T0)
        with pytest.raises(InvalidStateError):
            time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)

    def test_unknown_milestone(self, db):
        with pytest.raises(NotFoundError):
            time_tracking_service.start_tracking(db, ACTOR, 999, now=T0)

    def test_database_rejects_second_active_session(self, db, milestones):
        """The partial unique index holds even if the lookup is bypassed."""
        for _ in range(2):
            db.add(TimeSession(
                milestone_id=milestones[0].id,
                proposal_id=milestones[0].proposal_id,
                actor_id=ACTOR,
                start_time=T0,
            ))
        with pytest.raises(IntegrityError):
            db.flush()
        db.rollback()

    def test_index_allows_many_stopped_sessions(self, db, milestones):
        for i in range(3):
            db.add(TimeSession(
                milestone_id=milestones[0].id,
                proposal_id=milestones[0].proposal_id,
                actor_id=ACTOR,
                start_time=T0,
                end_time=T0 + datetime.timedelta(minutes=i + 1),
                duration_seconds=60 * (i + 1),
            ))
        db.commit()
        assert _count_sessions(db) == 3


class TestStop:
    def test_duration_in_whole_seconds(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        result = time_tracking_service.stop_tracking(
            db, session.id, now=T0 + datetime.timedelta(seconds=3600, microseconds=900000)
        )

        assert result.session.duration_seconds == 3600
        assert result.session.is_active is False
        assert result.progress.total_time_spent_seconds == 3600
        assert result.progress.total_hours == 1.0

    def test_stop_updates_actual_hours(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, session.id, now=T0 + datetime.timedelta(hours=1))

        assert float(milestone_store.get_milestone(db, milestones[0].id).actual_hours) == 1.0

    def test_actual_hours_accumulates(self, db, milestones):
        start = T0
        for minutes in (30, 45):
            s = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=start)
            start = start + datetime.timedelta(minutes=minutes)
            time_tracking_service.stop_tracking(db, s.id, now=start)

        assert float(milestone_store.get_milestone(db, milestones[0].id).actual_hours) == 1.25

    def test_stop_twice_fails(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, session.id, now=T0 + datetime.timedelta(minutes=1))

        with pytest.raises(InvalidStateError):
            time_tracking_service.stop_tracking(db, session.id, now=T0 + datetime.timedelta(minutes=2))
        assert time_session_store.get_session(db, session.id).duration_seconds == 60

    def test_clock_skew_clamps_to_zero(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        result = time_tracking_service.stop_tracking(
            db, session.id, now=T0 - datetime.timedelta(seconds=30)
        )
        assert result.session.duration_seconds == 0
        assert result.session.end_time == T0

    def test_other_actor_cannot_stop(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        with pytest.raises(NotFoundError):
            time_tracking_service.stop_tracking(db, session.id, actor_id="influencer-2")
        assert time_session_store.get_active(db, ACTOR) is not None

    def test_unknown_session(self, db):
        with pytest.raises(NotFoundError):
            time_tracking_service.stop_tracking(db, 999)

    def test_stop_after_milestone_completed(self, db, milestones):
        session = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        milestone_service.complete_milestone(db, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, session.id, now=T0 + datetime.timedelta(minutes=30))

        row = milestone_store.get_milestone(db, milestones[0].id)
        assert row.status == "completed"
        assert float(row.actual_hours) == 0.5

    def test_start_again_after_stop(self, db, milestones):
        first = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, first.id, now=T0 + datetime.timedelta(minutes=1))
        second = time_tracking_service.start_tracking(
            db, ACTOR, milestones[1].id, now=T0 + datetime.timedelta(minutes=2)
        )
        assert second.id != first.id
        assert time_tracking_service.get_active_session(db, ACTOR).id == second.id


class TestTotals:
    def test_running_session_is_not_counted(self, db, milestones, proposal):
        s = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=T0)
        time_tracking_service.stop_tracking(db, s.id, now=T0 + datetime.timedelta(minutes=90))
        time_tracking_service.start_tracking(db, ACTOR, milestones[1].id, now=T0)

        totals = time_session_store.total_duration(db, proposal.id)
        assert totals.total_time_spent_seconds == 5400
        assert totals.total_hours == 1.5

    def test_durations_by_milestone(self, db, milestones, proposal):
        for milestone, minutes in ((milestones[0], 10), (milestones[0], 20), (milestones[1], 6)):
            s = time_tracking_service.start_tracking(db, ACTOR, milestone.id, now=T0)
            time_tracking_service.stop_tracking(
                db, s.id, now=T0 + datetime.timedelta(minutes=minutes)
            )

        by_milestone = time_session_store.durations_by_milestone(db, proposal.id)
        assert by_milestone[milestones[0].id].session_count == 2
        assert by_milestone[milestones[0].id].total_seconds == 1800
        assert by_milestone[milestones[1].id].total_seconds == 360
        assert milestones[2].id not in by_milestone

    def test_empty_proposal(self, db):
        totals = time_session_store.total_duration(db, 404)
        assert totals == (0, 0.0)

    def test_list_by_milestone_newest_first(self, db, milestones):
        ids = []
        for offset in (0, 10):
            start = T0 + datetime.timedelta(minutes=offset)
            s = time_tracking_service.start_tracking(db, ACTOR, milestones[0].id, now=start)
            time_tracking_service.stop_tracking(db, s.id, now=start + datetime.timedelta(minutes=5))
            ids.append(s.id)

        listed = time_session_store.list_by_milestone(db, milestones[0].id)
        assert [s.id for s in listed] == list(reversed(ids))
