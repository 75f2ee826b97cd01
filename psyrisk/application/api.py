"""
Application API layer: the operations external collaborators call.

Every function takes an open SQLAlchemy session and leaves committing to the
caller (a route handler or a ``UnitOfWork`` block). Validation, sequence and
not-found errors pass through unchanged so the transport layer can tell them
apart; anything unexpected is wrapped into a ``PsyRiskError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict
from datetime import datetime
from typing import Any, Literal, NoReturn

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..domain.models import BatchProgress, DimensionScore, NavigationResult, utcnow
from ..domain.progress import ProgressTracker
from ..domain.questionnaire import questions_for_role
from ..domain.reports import (
    AssembledReport,
    ReportLifecycle,
    assemble_report,
    build_conclusion,
    build_profile,
    format_address,
)
from ..domain.schemas import (
    BatchReleaseInput,
    DimensionSubmission,
    ObservationsInput,
    validate_input,
)
from ..domain.scoring import group_score_table, individual_score_table, subject_dimension_means
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    PsyRiskError,
    SequenceViolation,
    ValidationError,
    create_user_friendly_error_message,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import AssessmentORM, BatchORM, ReportORM
from ..infrastructure.repositories import AssessmentRepo, BatchRepo, ReportRepo, ResponseRepo
from ..utils.exports import make_json_export_payload, make_xlsx_export_bytes, score_table_frame

logger = get_logger(__name__)

tracker = ProgressTracker()


def _fail(e: Exception, message: str, context: dict[str, Any]) -> NoReturn:
    """Log and re-raise: core errors as they are, anything else wrapped."""
    error_details = log_error_details(e, context)
    if isinstance(e, PsyRiskError):
        logger.warning(message, extra=error_details)
        raise e
    logger.error(message, extra=error_details)
    raise PsyRiskError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=create_user_friendly_error_message(e),
    ) from e


def _validated(schema, data: dict[str, Any], field: str) -> dict[str, Any]:
    result = validate_input(schema, data)
    if not result.success:
        error_msg = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
        logger.warning(f"Input validation failed: {error_msg}")
        raise ValidationError(field, error_msg)
    if result.data is None:
        raise RuntimeError("Validation succeeded but returned no data")
    return result.data


def _flush_assessment(session: Session, assessment: AssessmentORM) -> None:
    try:
        session.flush()
    except StaleDataError as e:
        raise SequenceViolation(
            f"Assessment {assessment.id} was modified by another session",
            rule="stale_assessment",
            details={"assessment_id": assessment.id},
        ) from e


# ---------------------------------------------------------------------------
# Release and progression
# ---------------------------------------------------------------------------


@log_operation("release_batch")
def release_batch(
    session: Session,
    employer_name: str,
    subjects: Iterable[Mapping[str, Any]],
    employer_tax_id: str | None = None,
    label: str | None = None,
    released_at: datetime | None = None,
    employer_address: Mapping[str, Any] | None = None,
) -> BatchORM:
    """
    Release a batch: one not-started assessment per subject, all at dimension 1.

    Example:
        >>> batch = release_batch(
        ...     session,
        ...     "Acme Ltda",
        ...     [{"name": "Ana", "sector": "Finance"}, {"name": "Bruno", "role_level": "management"}],
        ... )
        >>> len(batch.assessments)
        2
    """
    data = _validated(
        BatchReleaseInput,
        {
            "employer_name": employer_name,
            "employer_tax_id": employer_tax_id,
            "employer_address": dict(employer_address) if employer_address else None,
            "label": label,
            "released_at": released_at,
            "subjects": [dict(s) for s in subjects],
        },
        "batch_data",
    )

    try:
        batch = BatchRepo(session).release(BatchReleaseInput(**data))
        set_context(batch_id=batch.id)
        logger.info(
            f"Released batch {batch.id} for '{batch.employer_name}' "
            f"with {len(data['subjects'])} assessments"
        )
        return batch
    except Exception as e:
        _fail(e, "Failed to release batch", {"employer_name": employer_name})


@log_operation("start_assessment")
def start_assessment(
    session: Session, assessment_id: int, session_key: str | None = None
) -> AssessmentORM:
    set_context(assessment_id=assessment_id)
    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        tracker.start(assessment, session_key=session_key)
        _flush_assessment(session, assessment)
        return assessment
    except Exception as e:
        _fail(e, "Failed to start assessment", {"assessment_id": assessment_id})


@log_operation("get_assessment_status")
def get_assessment_status(session: Session, assessment_id: int) -> dict[str, Any]:
    """
    Status query consumed by the questionnaire client before it runs resume detection.

    Returns:
        ``{status, current_dimension, resume_anchor, can_navigate_back, role_level}``
    """
    assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
    status = tracker.status_of(assessment)
    status["can_navigate_back"] = tracker.can_navigate_back(assessment)
    status["role_level"] = assessment.subject.role_level
    return status


@log_operation("detect_resume")
def detect_resume(session: Session, assessment_id: int, session_key: str) -> dict[str, Any]:
    set_context(assessment_id=assessment_id)
    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        tracker.detect_resume(assessment, session_key)
        _flush_assessment(session, assessment)
        return get_assessment_status(session, assessment_id)
    except Exception as e:
        _fail(e, "Failed to detect resume", {"assessment_id": assessment_id})


@log_operation("save_dimension")
def save_dimension(
    session: Session,
    assessment_id: int,
    dimension_id: int,
    items: Iterable[Mapping[str, Any]],
) -> AssessmentORM:
    """
    Persist one whole dimension of answers and advance the assessment.

    Args:
        session: Database session
        assessment_id: Assessment being answered
        dimension_id: Dimension the answers belong to (must be the current one)
        items: ``[{"item_id": "Q1", "value": 75}, ...]`` covering every item once

    Raises:
        AssessmentNotFoundError: unknown assessment
        DimensionNotFoundError: dimension id outside the questionnaire
        SequenceViolation: closed assessment, below the resume anchor, skipping ahead
            or a concurrent write from another session
        ValidationError: incomplete, duplicate or off-scale answers, or not the
            current dimension

    Example:
        >>> save_dimension(session, 7, 1, [{"item_id": f"Q{i}", "value": 50} for i in range(1, 12)])
    """
    set_context(assessment_id=assessment_id)
    data = _validated(
        DimensionSubmission,
        {"dimension_id": dimension_id, "items": [dict(i) for i in items]},
        "responses",
    )
    submission = DimensionSubmission(**data)

    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        responses = tracker.save_dimension(assessment, submission.dimension_id, submission.pairs())
        _flush_assessment(session, assessment)
        ResponseRepo(session).upsert_many(assessment.id, responses)
        logger.info(
            f"Saved dimension {dimension_id} for assessment {assessment_id}; "
            f"now {assessment.status} at {assessment.current_dimension}"
        )
        return assessment
    except Exception as e:
        _fail(
            e,
            "Failed to save dimension",
            {"assessment_id": assessment_id, "dimension_id": dimension_id},
        )


@log_operation("navigate_back")
def navigate_back(session: Session, assessment_id: int) -> NavigationResult:
    """Step back one dimension; a refusal is an outcome, not an error."""
    set_context(assessment_id=assessment_id)
    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        result = tracker.navigate_back(assessment)
        if result.outcome == "moved":
            _flush_assessment(session, assessment)
        return result
    except Exception as e:
        _fail(e, "Failed to navigate back", {"assessment_id": assessment_id})


@log_operation("deactivate_assessment")
def deactivate_assessment(session: Session, assessment_id: int) -> AssessmentORM:
    set_context(assessment_id=assessment_id)
    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        tracker.deactivate(assessment)
        _flush_assessment(session, assessment)
        logger.info(f"Deactivated assessment {assessment_id}")
        return assessment
    except Exception as e:
        _fail(e, "Failed to deactivate assessment", {"assessment_id": assessment_id})


def get_questions(
    session: Session,
    assessment_id: int | None = None,
    role: Literal["operational", "management"] = "operational",
) -> list[dict[str, Any]]:
    """Questionnaire phrased for the subject's role level (or ``role`` when no assessment is given)."""
    if assessment_id is not None:
        role = AssessmentRepo(session).get_by_id_required(assessment_id).subject.role_level
    return questions_for_role(role)


def _batch_overview(
    batch: BatchORM, progress: BatchProgress, report_status: str | None
) -> dict[str, Any]:
    return {
        "id": batch.id,
        "employer_name": batch.employer_name,
        "label": batch.label,
        "released_at": batch.released_at,
        "total": progress.total,
        "completed": progress.completed,
        "deactivated": progress.deactivated,
        "pending": progress.pending,
        "ready": progress.ready,
        "report_status": report_status,
    }


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


@log_operation("get_batch_readiness")
def get_batch_readiness(session: Session, batch_id: int) -> dict[str, Any]:
    """
    Readiness query gating report generation.

    Example:
        >>> get_batch_readiness(session, 3)
        {'total': 10, 'completed': 9, 'deactivated': 1, 'pending': 0, 'ready': True}
    """
    repo = BatchRepo(session)
    repo.get_by_id_required(batch_id)
    progress = repo.progress(batch_id)
    return {
        "total": progress.total,
        "completed": progress.completed,
        "deactivated": progress.deactivated,
        "pending": progress.pending,
        "ready": progress.ready,
    }


@log_operation("list_batches")
def list_batches(session: Session) -> list[dict[str, Any]]:
    """Every released batch, newest first, with its progress counts and report status."""
    return [
        _batch_overview(batch, progress, report_status)
        for batch, progress, report_status in BatchRepo(session).list_with_progress()
    ]


@log_operation("list_batches_pending_report")
def list_batches_pending_report(session: Session) -> list[dict[str, Any]]:
    """
    Issuer work queue: ready batches whose report is missing or still a draft.

    A batch is ready once every assessment that is not deactivated is completed.
    """
    return [
        _batch_overview(batch, progress, report_status)
        for batch, progress, report_status in BatchRepo(session).list_with_progress()
        if progress.ready and report_status in (None, "draft")
    ]


@log_operation("list_batch_assessments")
def list_batch_assessments(session: Session, batch_id: int) -> list[dict[str, Any]]:
    """Roster of a batch: one row per subject with where their questionnaire stands."""
    BatchRepo(session).get_by_id_required(batch_id)
    return [
        {
            "assessment_id": a.id,
            "subject_name": a.subject.name,
            "sector": a.subject.sector,
            "role_level": a.subject.role_level,
            "status": a.status,
            "current_dimension": a.current_dimension,
            "submitted_at": a.submitted_at,
        }
        for a in AssessmentRepo(session).list_for_batch(batch_id)
    ]


@log_operation("compute_assessment_scores")
def compute_assessment_scores(session: Session, assessment_id: int) -> list[DimensionScore]:
    """Score table for one subject, aggregated over that subject's raw item values."""
    AssessmentRepo(session).get_by_id_required(assessment_id)
    return individual_score_table(ResponseRepo(session).list_for_assessment(assessment_id))


@log_operation("compute_batch_scores")
def compute_batch_scores(
    session: Session, batch_id: int, sector: str | None = None
) -> list[DimensionScore]:
    """
    Group score table over the completed assessments of a batch.

    Each subject contributes its own per-dimension mean.
    """
    set_context(batch_id=batch_id)
    repo = BatchRepo(session)
    repo.get_by_id_required(batch_id)
    per_assessment = repo.completed_responses(batch_id, sector=sector)
    return group_score_table(subject_dimension_means(r) for r in per_assessment.values())


@log_operation("compute_sector_scores")
def compute_sector_scores(session: Session, batch_id: int) -> dict[str, list[DimensionScore]]:
    repo = BatchRepo(session)
    repo.get_by_id_required(batch_id)
    return {
        sector: compute_batch_scores(session, batch_id, sector=sector)
        for sector in repo.sectors(batch_id)
    }


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _employer_address(batch: BatchORM) -> str | None:
    return format_address(
        batch.employer_street, batch.employer_city, batch.employer_state, batch.employer_postal_code
    )


def _lifecycle() -> ReportLifecycle:
    return ReportLifecycle(max_observations=get_settings().report.max_observations_length)


def _conclusion(observations: str | None, issued_at: datetime | None):
    report_config = get_settings().report
    return build_conclusion(
        observations,
        disclaimer=report_config.disclaimer,
        signature=report_config.signature(),
        city=report_config.city,
        issued_on=(issued_at or utcnow()).date(),
    )


@log_operation("get_or_create_report")
def get_or_create_report(session: Session, batch_id: int) -> ReportORM:
    set_context(batch_id=batch_id)
    BatchRepo(session).get_by_id_required(batch_id)
    return ReportRepo(session).get_or_create(batch_id)


@log_operation("assemble_batch_report")
def assemble_batch_report(
    session: Session, batch_id: int, issued_at: datetime | None = None
) -> AssembledReport:
    """
    Assemble the four report sections for a batch.

    Sector score tables travel in ``extra["sectors"]``.
    """
    set_context(batch_id=batch_id)
    try:
        batch_repo = BatchRepo(session)
        batch = batch_repo.get_by_id_required(batch_id)
        report = ReportRepo(session).get_for_batch(batch_id)

        profile = build_profile(
            batch.employer_name,
            batch_repo.progress(batch_id),
            released_at=batch.released_at,
            last_submission_at=batch_repo.last_submission_at(batch_id),
            employer_tax_id=batch.employer_tax_id,
            sample=batch_repo.sample_by_role(batch_id),
            employer_address=_employer_address(batch),
        )
        sectors = {
            sector: [asdict(s) for s in scores]
            for sector, scores in compute_sector_scores(session, batch_id).items()
        }
        return assemble_report(
            profile,
            compute_batch_scores(session, batch_id),
            _conclusion(
                report.observations if report else None,
                issued_at or (report.issued_at if report else None),
            ),
            extra={"batch_id": batch_id, "label": batch.label, "sectors": sectors},
        )
    except Exception as e:
        _fail(e, "Failed to assemble batch report", {"batch_id": batch_id})


@log_operation("assemble_assessment_report")
def assemble_assessment_report(session: Session, assessment_id: int) -> AssembledReport:
    """Individual report: the same sections computed for a single assessment."""
    set_context(assessment_id=assessment_id)
    try:
        assessment = AssessmentRepo(session).get_by_id_required(assessment_id)
        batch = assessment.batch
        completed = assessment.status == "completed"
        profile = build_profile(
            batch.employer_name,
            BatchProgress(
                total=1,
                completed=1 if completed else 0,
                deactivated=1 if assessment.status == "deactivated" else 0,
            ),
            released_at=batch.released_at,
            last_submission_at=assessment.submitted_at,
            employer_tax_id=batch.employer_tax_id,
            sample={assessment.subject.role_level: 1} if completed else None,
            employer_address=_employer_address(batch),
        )
        return assemble_report(
            profile,
            compute_assessment_scores(session, assessment_id),
            _conclusion(None, assessment.submitted_at),
            subject_name=assessment.subject.name,
            extra={
                "assessment_id": assessment_id,
                "subject_name": assessment.subject.name,
                "sector": assessment.subject.sector,
                "status": assessment.status,
            },
        )
    except Exception as e:
        _fail(e, "Failed to assemble assessment report", {"assessment_id": assessment_id})


@log_operation("update_report_observations")
def update_report_observations(
    session: Session, batch_id: int, observations: str | None
) -> ReportORM:
    data = _validated(ObservationsInput, {"observations": observations}, "observations")
    try:
        report = get_or_create_report(session, batch_id)
        _lifecycle().update_observations(report, data["observations"])
        session.flush()
        return report
    except Exception as e:
        _fail(e, "Failed to update report observations", {"batch_id": batch_id})


@log_operation("issue_report")
def issue_report(session: Session, batch_id: int) -> ReportORM:
    """
    Move the batch report from draft to issued, caching the assembled sections.

    Raises:
        SequenceViolation: the report is not a draft or the batch is not ready
    """
    try:
        report = get_or_create_report(session, batch_id)
        lifecycle = _lifecycle()
        issued_at = lifecycle.clock()
        ready = BatchRepo(session).progress(batch_id).ready
        sections = assemble_batch_report(session, batch_id, issued_at=issued_at).to_dict()
        lifecycle.issue(report, sections, ready)
        report.issued_at = issued_at
        session.flush()
        logger.info(f"Issued report {report.id} for batch {batch_id}")
        return report
    except Exception as e:
        _fail(e, "Failed to issue report", {"batch_id": batch_id})


@log_operation("send_report")
def send_report(session: Session, batch_id: int) -> ReportORM:
    try:
        report = ReportRepo(session).get_for_batch(batch_id)
        if report is None:
            report = get_or_create_report(session, batch_id)
        _lifecycle().send(report)
        session.flush()
        logger.info(f"Sent report {report.id} for batch {batch_id}")
        return report
    except Exception as e:
        _fail(e, "Failed to send report", {"batch_id": batch_id})


@log_operation("export_batch_scores")
def export_batch_scores(
    session: Session, batch_id: int, fmt: Literal["json", "xlsx"] = "json"
) -> str | bytes:
    """
    Export the batch score table.

    Returns:
        A JSON document (``fmt="json"``) or XLSX workbook bytes (``fmt="xlsx"``)
    """
    if fmt not in ("json", "xlsx"):
        raise ValidationError("fmt", "export format must be 'json' or 'xlsx'", fmt)
    scores = compute_batch_scores(session, batch_id)
    frame = score_table_frame(scores)
    if fmt == "json":
        return make_json_export_payload(batch_id, frame, get_batch_readiness(session, batch_id))
    return make_xlsx_export_bytes(frame)
