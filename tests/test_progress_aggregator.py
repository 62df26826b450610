"""Unit tests for the pure progress aggregation functions."""
import datetime
import math
from types import SimpleNamespace

import pytest

from progress_engine.services.progress_aggregator import (
    build_snapshot,
    current_stage,
    hourly_rate,
    is_urgent,
    overall_progress,
    seconds_to_hours,
    stage_progress,
)
from progress_engine.utils.constants import STAGE_ORDER

NOW = datetime.datetime(2026, 3, 1, 12, 0, 0)


def _milestones(completed_count, due_date=None):
    return [
        SimpleNamespace(
            type=stage,
            status="completed" if i < completed_count else "pending",
            due_date=due_date,
        )
        for i, stage in enumerate(STAGE_ORDER)
    ]


class TestStageProgress:
    def test_all_pending_is_zero(self):
        assert stage_progress(_milestones(0)) == {stage: 0 for stage in STAGE_ORDER}

    def test_completed_stage_is_100(self):
        result = stage_progress(_milestones(1))
        assert result["content_creation"] == 100
        assert result["submission"] == 0

    def test_in_progress_counts_as_zero(self):
        rows = _milestones(0)
        rows[0].status = "in_progress"
        assert stage_progress(rows)["content_creation"] == 0

    def test_missing_stages_default_to_zero(self):
        assert stage_progress([]) == {stage: 0 for stage in STAGE_ORDER}


class TestOverallProgress:
    @pytest.mark.parametrize("completed, expected", [(0, 0), (1, 20), (2, 40), (4, 80), (5, 100)])
    def test_equal_weight_mean(self, completed, expected):
        assert overall_progress(stage_progress(_milestones(completed))) == expected

    def test_rounds_half_up(self):
        # 100+100+100+12.5 over five stages = 62.5
        stages = {"content_creation": 100, "submission": 100, "review": 100,
                  "approval": 12.5, "payment": 0}
        assert overall_progress(stages) == 63

    def test_monotonic_when_completing(self):
        values = [overall_progress(stage_progress(_milestones(n))) for n in range(6)]
        assert values == sorted(values)
        assert all(0 <= v <= 100 for v in values)


class TestCurrentStage:
    def test_first_incomplete_stage(self):
        assert current_stage(stage_progress(_milestones(2))) == "review"

    def test_all_complete_is_payment(self):
        assert current_stage(stage_progress(_milestones(5))) == "payment"

    def test_nothing_complete_is_content_creation(self):
        assert current_stage(stage_progress(_milestones(0))) == "content_creation"


class TestHourlyRate:
    @pytest.mark.parametrize("compensation", [0, 40000, 123.45])
    def test_zero_hours_is_zero(self, compensation):
        rate = hourly_rate(compensation, 0)
        assert rate == 0
        assert math.isfinite(rate)

    def test_one_hour(self):
        assert hourly_rate(40000, 1.0) == 40000.0

    def test_rounded_to_cents(self):
        assert hourly_rate(100, 3) == 33.33

    def test_non_finite_hours_is_zero(self):
        assert hourly_rate(100, float("inf")) == 0.0
        assert hourly_rate(100, float("nan")) == 0.0


class TestIsUrgent:
    def test_due_within_threshold(self):
        m = SimpleNamespace(status="pending", due_date=NOW + datetime.timedelta(hours=47))
        assert is_urgent(m, NOW, 48) is True

    def test_due_later_than_threshold(self):
        m = SimpleNamespace(status="pending", due_date=NOW + datetime.timedelta(hours=49))
        assert is_urgent(m, NOW, 48) is False

    def test_overdue_is_urgent(self):
        m = SimpleNamespace(status="in_progress", due_date=NOW - datetime.timedelta(days=1))
        assert is_urgent(m, NOW, 48) is True

    def test_completed_never_urgent(self):
        m = SimpleNamespace(status="completed", due_date=NOW)
        assert is_urgent(m, NOW, 48) is False

    def test_no_due_date(self):
        assert is_urgent(SimpleNamespace(status="pending", due_date=None), NOW, 48) is False


class TestBuildSnapshot:
    def test_example_snapshot(self):
        snapshot = build_snapshot(
            proposal_id=7,
            milestones=_milestones(1),
            total_time_spent_seconds=3600,
            compensation=40000,
            currency="INR",
        )
        assert snapshot.proposal_id == 7
        assert snapshot.overall_progress == 20
        assert snapshot.current_stage == "submission"
        assert snapshot.completed_milestones == 1
        assert snapshot.total_milestones == 5
        assert snapshot.total_hours == 1.0
        assert snapshot.hourly_rate == 40000.0
        assert snapshot.currency == "INR"

    def test_rate_uses_unrounded_hours(self):
        # 10 seconds rounds to 0.0 hours but still yields a rate
        snapshot = build_snapshot(1, [], 10, 100, "INR")
        assert snapshot.total_hours == 0.0
        assert snapshot.hourly_rate == 36000.0

    def test_seconds_to_hours(self):
        assert seconds_to_hours(5400) == 1.5
        assert seconds_to_hours(0) == 0.0
