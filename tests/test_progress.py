from datetime import datetime

import pytest

from psyrisk.domain.progress import ProgressTracker
from psyrisk.domain.questionnaire import get_dimension
from psyrisk.infrastructure.exceptions import (
    DimensionNotFoundError,
    SequenceViolation,
    ValidationError,
)
from psyrisk.infrastructure.models import AssessmentORM

NOW = datetime(2026, 10, 19, 12, 0, 0)


def new_assessment():
    # transient row; column defaults only apply on insert
    return AssessmentORM(id=1, status="not_started", current_dimension=1)


def pairs(dimension_id, value=50):
    return [(item_id, value) for item_id in get_dimension(dimension_id).item_ids]


@pytest.fixture
def tracker():
    return ProgressTracker(clock=lambda: NOW)


@pytest.fixture
def started(tracker):
    assessment = new_assessment()
    tracker.start(assessment)
    return assessment


def save_through(tracker, assessment, last):
    for d in range(assessment.current_dimension, last + 1):
        tracker.save_dimension(assessment, d, pairs(d))


class TestStart:
    def test_start_opens_at_dimension_one(self, tracker):
        assessment = new_assessment()
        tracker.start(assessment, session_key="tab-1")
        assert assessment.status == "in_progress"
        assert assessment.current_dimension == 1
        assert assessment.started_at == NOW
        assert assessment.resume_session_key == "tab-1"

    def test_start_twice_is_a_sequence_violation(self, tracker, started):
        with pytest.raises(SequenceViolation) as exc:
            tracker.start(started)
        assert exc.value.rule == "already_started"

    def test_first_save_starts_implicitly(self, tracker):
        assessment = new_assessment()
        tracker.save_dimension(assessment, 1, pairs(1))
        assert assessment.status == "in_progress"
        assert assessment.current_dimension == 2
        assert assessment.started_at == NOW


class TestSaveDimension:
    def test_advances_and_returns_responses_in_order(self, tracker, started):
        responses = tracker.save_dimension(started, 1, list(reversed(pairs(1, 75))))
        assert started.current_dimension == 2
        assert [r.item_id for r in responses] == list(get_dimension(1).item_ids)
        assert {r.value for r in responses} == {75}
        assert all(r.assessment_id == 1 and r.dimension_id == 1 for r in responses)

    def test_names_first_unanswered_item(self, tracker, started):
        answers = [p for p in pairs(1) if p[0] not in ("Q2", "Q5")]
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, answers)
        assert exc.value.field == "responses"
        assert "Q2" in exc.value.message
        assert started.current_dimension == 1

    def test_empty_submission_names_first_item(self, tracker, started):
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, [])
        assert "Q1" in exc.value.message

    @pytest.mark.parametrize("value", [30, -25, 125, True, 50.0, "50"])
    def test_off_scale_value(self, tracker, started, value):
        answers = pairs(1)
        answers[0] = ("Q1", value)
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, answers)
        assert exc.value.field == "value"

    def test_foreign_item(self, tracker, started):
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, pairs(1) + [("Q12", 50)])
        assert exc.value.field == "item_id"
        assert "belongs to dimension 2" in exc.value.message

    def test_unknown_item(self, tracker, started):
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, [("Q99", 50)] + pairs(1))
        assert exc.value.value == "Q99"
        assert "not a questionnaire item" in exc.value.message

    def test_duplicate_item(self, tracker, started):
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, pairs(1) + [("Q1", 25)])
        assert exc.value.field == "item_id"

    @pytest.mark.parametrize("dimension_id", [0, 11, 99])
    def test_unknown_dimension(self, tracker, started, dimension_id):
        with pytest.raises(DimensionNotFoundError):
            tracker.save_dimension(started, dimension_id, [])

    def test_skipping_ahead_is_a_sequence_violation(self, tracker, started):
        with pytest.raises(SequenceViolation) as exc:
            tracker.save_dimension(started, 3, pairs(3))
        assert exc.value.rule == "skip_ahead"
        assert started.current_dimension == 1

    def test_earlier_dimension_is_a_validation_error(self, tracker, started):
        save_through(tracker, started, 2)
        with pytest.raises(ValidationError) as exc:
            tracker.save_dimension(started, 1, pairs(1))
        assert exc.value.field == "dimension_id"
        assert started.current_dimension == 3

    def test_completion(self, tracker, started):
        save_through(tracker, started, 9)
        started.resume_anchor = 5
        tracker.save_dimension(started, 10, pairs(10))
        assert started.status == "completed"
        assert started.current_dimension == 11
        assert started.submitted_at == NOW
        assert started.resume_anchor is None

    def test_completed_assessment_is_closed(self, tracker, started):
        save_through(tracker, started, 10)
        with pytest.raises(SequenceViolation) as exc:
            tracker.save_dimension(started, 10, pairs(10))
        assert exc.value.rule == "assessment_closed"


class TestResumeAnchor:
    def test_back_navigation_is_free_without_anchor(self, tracker, started):
        save_through(tracker, started, 4)
        assert started.current_dimension == 5

        landed = [tracker.navigate_back(started).current_dimension for _ in range(4)]
        assert landed == [4, 3, 2, 1]

        result = tracker.navigate_back(started)
        assert result.outcome == "home"
        assert started.current_dimension == 1

    def test_anchor_stops_back_navigation(self, tracker, started):
        save_through(tracker, started, 3)
        assert started.current_dimension == 4

        assert tracker.detect_resume(started, "tab-2") == 4

        save_through(tracker, started, 5)
        assert started.current_dimension == 6

        first = tracker.navigate_back(started)
        second = tracker.navigate_back(started)
        third = tracker.navigate_back(started)
        assert (first.outcome, first.current_dimension) == ("moved", 5)
        assert (second.outcome, second.current_dimension) == ("moved", 4)
        assert (third.outcome, third.current_dimension) == ("refused", 4)
        assert started.current_dimension == 4
        assert tracker.can_navigate_back(started) is False

    def test_anchor_is_enforced_on_save(self, tracker, started):
        save_through(tracker, started, 3)
        tracker.detect_resume(started, "tab-2")
        started.current_dimension = 2  # e.g. a stale client that bypassed the guard
        with pytest.raises(SequenceViolation) as exc:
            tracker.save_dimension(started, 2, pairs(2))
        assert exc.value.rule == "below_resume_anchor"

    def test_anchor_recorded_once_per_session(self, tracker, started):
        save_through(tracker, started, 3)
        tracker.detect_resume(started, "tab-2")
        save_through(tracker, started, 5)
        assert tracker.detect_resume(started, "tab-2") == 4

    def test_new_session_only_raises_anchor(self, tracker, started):
        save_through(tracker, started, 3)
        assert tracker.detect_resume(started, "tab-2") == 4
        save_through(tracker, started, 5)
        assert tracker.detect_resume(started, "tab-3") == 6
        started.current_dimension = 5
        assert tracker.detect_resume(started, "tab-4") == 6

    def test_no_anchor_at_dimension_one(self, tracker, started):
        assert tracker.detect_resume(started, "tab-2") is None

    def test_refusal_on_terminal_assessment(self, tracker, started):
        save_through(tracker, started, 10)
        assert tracker.navigate_back(started).outcome == "refused"


class TestDeactivate:
    def test_deactivate_in_progress(self, tracker, started):
        tracker.deactivate(started)
        assert started.status == "deactivated"
        assert started.deactivated_at == NOW

    def test_deactivate_twice(self, tracker, started):
        tracker.deactivate(started)
        with pytest.raises(SequenceViolation):
            tracker.deactivate(started)

    def test_status_of(self, started):
        assert ProgressTracker.status_of(started) == {
            "status": "in_progress",
            "current_dimension": 1,
            "resume_anchor": None,
        }
