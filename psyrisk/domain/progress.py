"""
Per-assessment progression state machine.

States: ``not_started -> in_progress -> completed``; ``deactivated`` is reachable
from either non-terminal state through an administrative action.

The resume anchor is persisted on the assessment and enforced on every save,
so reopening the questionnaire in another tab or with cleared client storage
cannot reach dimensions submitted in an earlier session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, Protocol

from ..infrastructure.exceptions import NotFoundError, SequenceViolation, ValidationError
from .models import TERMINAL_STATUSES, NavigationResult, Response, utcnow
from .questionnaire import DIMENSION_COUNT, dimension_for_item, get_dimension, is_scale_value


def _misplaced(item_id: str, dimension_id: int) -> str:
    try:
        owner = dimension_for_item(item_id)
    except NotFoundError:
        return f"{item_id} is not a questionnaire item"
    return f"{item_id} belongs to dimension {owner.id}, not dimension {dimension_id}"


class ProgressState(Protocol):
    """Anything carrying the progression fields, in practice an ``AssessmentORM`` row."""

    id: Any
    status: str
    current_dimension: int
    resume_anchor: int | None
    resume_session_key: str | None
    started_at: datetime | None
    submitted_at: datetime | None
    deactivated_at: datetime | None


class ProgressTracker:
    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        logger: logging.Logger | None = None,
    ):
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def start(self, assessment: ProgressState, session_key: str | None = None) -> None:
        """Open a released assessment at dimension 1."""
        if assessment.status != "not_started":
            raise SequenceViolation(
                f"Assessment {assessment.id} has already been started",
                rule="already_started",
            )
        assessment.status = "in_progress"
        assessment.current_dimension = 1
        assessment.started_at = self.clock()
        assessment.resume_session_key = session_key
        self.logger.debug("Assessment %s started", assessment.id)

    def detect_resume(self, assessment: ProgressState, session_key: str) -> int | None:
        """
        Record the resume anchor for a client session returning to an incomplete assessment.

        The first call from a session key not seen before sets the anchor to the
        current dimension when that is past dimension 1. A later session can only
        raise the anchor; repeated calls from the same session change nothing.
        """
        if assessment.status != "in_progress":
            return assessment.resume_anchor
        if session_key == assessment.resume_session_key:
            return assessment.resume_anchor

        assessment.resume_session_key = session_key
        current = assessment.current_dimension
        if current > 1:
            previous = assessment.resume_anchor
            assessment.resume_anchor = max(previous or 0, current)
            if assessment.resume_anchor != previous:
                self.logger.info(
                    "Assessment %s resumed at dimension %s; anchor set to %s",
                    assessment.id,
                    current,
                    assessment.resume_anchor,
                )
        return assessment.resume_anchor

    def save_dimension(
        self,
        assessment: ProgressState,
        dimension_id: int,
        answers: Iterable[tuple[str, int]],
    ) -> list[Response]:
        """
        Validate a whole-dimension batch of answers and advance the assessment.

        Returns the validated responses in questionnaire order; the caller persists
        them in the same unit of work as the updated assessment.

        Raises:
            DimensionNotFoundError: dimension id is not part of the questionnaire
            SequenceViolation: closed assessment, below the resume anchor, or skipping ahead
            ValidationError: not the current dimension, unknown/duplicate item,
                off-scale value or an unanswered item
        """
        dimension = get_dimension(dimension_id)

        if assessment.status in TERMINAL_STATUSES:
            raise SequenceViolation(
                f"Assessment {assessment.id} is {assessment.status}",
                rule="assessment_closed",
            )
        anchor = assessment.resume_anchor
        if anchor is not None and dimension_id < anchor:
            raise SequenceViolation(
                f"Dimension {dimension_id} is below the resume anchor {anchor}",
                rule="below_resume_anchor",
                details={"dimension_id": dimension_id, "resume_anchor": anchor},
            )
        current = assessment.current_dimension
        if dimension_id > current:
            raise SequenceViolation(
                f"Cannot save dimension {dimension_id} before dimension {current}",
                rule="skip_ahead",
                details={"dimension_id": dimension_id, "current_dimension": current},
            )
        if dimension_id < current:
            raise ValidationError(
                "dimension_id",
                f"only the current dimension ({current}) can be saved",
                dimension_id,
            )

        allowed = set(dimension.item_ids)
        given: dict[str, int] = {}
        for item_id, value in answers:
            if item_id not in allowed:
                raise ValidationError("item_id", _misplaced(item_id, dimension_id), item_id)
            if item_id in given:
                raise ValidationError("item_id", f"{item_id} was answered more than once", item_id)
            if not is_scale_value(value):
                raise ValidationError(
                    "value", f"{value!r} for {item_id} is not on the 0/25/50/75/100 scale", value
                )
            given[item_id] = value

        for item_id in dimension.item_ids:
            if item_id not in given:
                raise ValidationError("responses", f"item {item_id} is unanswered", item_id)

        if assessment.status == "not_started":
            assessment.started_at = self.clock()
        if dimension_id < DIMENSION_COUNT:
            assessment.status = "in_progress"
            assessment.current_dimension = dimension_id + 1
        else:
            assessment.status = "completed"
            assessment.current_dimension = DIMENSION_COUNT + 1
            assessment.submitted_at = self.clock()
            assessment.resume_anchor = None
            self.logger.info("Assessment %s completed", assessment.id)

        return [
            Response(assessment.id, dimension_id, item_id, given[item_id])
            for item_id in dimension.item_ids
        ]

    def navigate_back(self, assessment: ProgressState) -> NavigationResult:
        """
        Step back one dimension.

        Never raises: a move below dimension 1 routes home, and a move below the
        resume anchor is refused without touching the assessment.
        """
        current = assessment.current_dimension
        if assessment.status in TERMINAL_STATUSES:
            return NavigationResult("refused", current)
        target = current - 1
        if target < 1:
            return NavigationResult("home", current)
        anchor = assessment.resume_anchor
        if anchor is not None and target < anchor:
            self.logger.debug(
                "Back navigation to %s refused for assessment %s (anchor %s)",
                target,
                assessment.id,
                anchor,
            )
            return NavigationResult("refused", current)
        assessment.current_dimension = target
        return NavigationResult("moved", target)

    def can_navigate_back(self, assessment: ProgressState) -> bool:
        """Whether the back control should be enabled."""
        if assessment.status in TERMINAL_STATUSES:
            return False
        target = assessment.current_dimension - 1
        anchor = assessment.resume_anchor
        return target < 1 or anchor is None or target >= anchor

    def deactivate(self, assessment: ProgressState) -> None:
        if assessment.status in TERMINAL_STATUSES:
            raise SequenceViolation(
                f"Assessment {assessment.id} is already {assessment.status}",
                rule="assessment_closed",
            )
        assessment.status = "deactivated"
        assessment.deactivated_at = self.clock()

    @staticmethod
    def status_of(assessment: ProgressState) -> dict[str, Any]:
        return {
            "status": assessment.status,
            "current_dimension": assessment.current_dimension,
            "resume_anchor": assessment.resume_anchor,
        }
