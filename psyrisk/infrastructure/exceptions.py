"""
Error hierarchy for the psychosocial risk assessment core.

Three recoverable kinds stay distinct so the transport layer can map each to
its own status: ``ValidationError`` (bad or incomplete input),
``SequenceViolation`` (an operation out of order) and ``NotFoundError``.
Everything else surfaces as a plain ``PsyRiskError`` or ``DatabaseError``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import exc as sa_exc

GENERIC_USER_MESSAGE = "An unexpected error occurred. Please try again."

# what a respondent or issuer is told for each ordering rule
SEQUENCE_MESSAGES = {
    "already_started": "This questionnaire has already been started.",
    "assessment_closed": "This questionnaire is already closed.",
    "below_resume_anchor": "Dimensions answered before this session can no longer be changed.",
    "skip_ahead": "Please answer the dimensions in order.",
    "stale_assessment": "This questionnaire was updated elsewhere. Reload and try again.",
    "report_not_draft": "The report has already been issued.",
    "report_not_issued": "The report must be issued before it is sent.",
    "batch_not_ready": "The report can only be issued once every assessment is finished.",
}

CONSTRAINT_MESSAGES = {
    "uq_response_assessment_item": "This item has already been answered.",
    "uq_assessment_batch_subject": "This subject is already part of the batch.",
    "ck_response_value": "Answers must be one of 0, 25, 50, 75 or 100.",
}


class PsyRiskError(Exception):
    """Base for every error the core raises on purpose."""

    default_user_message = GENERIC_USER_MESSAGE

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self.default_user_message

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"


class ValidationError(PsyRiskError):
    """A submission is malformed, incomplete, off-scale or for the wrong dimension."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )


class SequenceViolation(PsyRiskError):
    """An operation breaks the questionnaire order or the report lifecycle."""

    default_user_message = "This step cannot be performed at this point of the process."

    def __init__(
        self, message: str, rule: str | None = None, details: dict[str, Any] | None = None
    ):
        self.rule = rule
        super().__init__(
            message=message,
            details={"rule": rule, **(details or {})},
            user_message=SEQUENCE_MESSAGES.get(rule or ""),
        )


class NotFoundError(PsyRiskError):
    entity = "Record"

    def __init__(self, entity_id: Any, entity: str | None = None):
        if entity is not None:
            self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            message=f"{self.entity} with ID {entity_id} not found",
            details={"entity": self.entity, "entity_id": entity_id},
            user_message=f"The requested {self.entity.lower()} could not be found.",
        )


class AssessmentNotFoundError(NotFoundError):
    entity = "Assessment"


class DimensionNotFoundError(NotFoundError):
    entity = "Dimension"


class BatchNotFoundError(NotFoundError):
    entity = "Batch"


class ReportNotFoundError(NotFoundError):
    entity = "Report"


class DatabaseError(PsyRiskError):
    default_user_message = "A database error occurred. Please try again in a moment."

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
        )


class IntegrityError(DatabaseError):
    """A unique or check constraint rejected the write."""

    def __init__(self, message: str, operation: str, constraint: str | None = None):
        self.constraint = constraint
        super().__init__(message, operation, details={"operation": operation, "constraint": constraint})
        self.user_message = CONSTRAINT_MESSAGES.get(
            constraint or "", "The data breaks a database constraint. Please check your input."
        )


def _constraint_name(error: sa_exc.IntegrityError) -> str | None:
    text = str(error.orig)
    for name in CONSTRAINT_MESSAGES:
        if name in text:
            return name
    # sqlite names the columns of a failed unique constraint, not the constraint
    if "responses.assessment_id, responses.item_id" in text:
        return "uq_response_assessment_item"
    if "assessments.batch_id, assessments.subject_id" in text:
        return "uq_assessment_batch_subject"
    return None


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Translate a SQLAlchemy failure into a ``DatabaseError``.

    Example:
        >>> try:
        ...     session.flush()
        ... except SQLAlchemyError as e:
        ...     raise handle_database_error(e, "response.upsert_many") from e
    """
    if isinstance(e, sa_exc.IntegrityError):
        return IntegrityError(str(e.orig), operation, constraint=_constraint_name(e))
    return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Message safe to show a respondent or issuer for any exception.

    Example:
        >>> create_user_friendly_error_message(ValidationError("dimension_id", "not the current dimension"))
        'Invalid dimension id: not the current dimension'
    """
    if isinstance(error, PsyRiskError):
        return error.user_message
    if isinstance(error, (ValueError, TypeError, KeyError)):
        return "Invalid input provided. Please check your data and try again."
    return GENERIC_USER_MESSAGE


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Structured fields for the ``extra`` of a log call."""
    details: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }
    if isinstance(error, PsyRiskError):
        details["user_message"] = error.user_message
        details["error_details"] = error.details
    return details
