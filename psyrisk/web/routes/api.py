from __future__ import annotations

import io
import json
import logging
from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from psyrisk.application import api as app_api
from psyrisk.infrastructure.exceptions import (
    NotFoundError,
    PsyRiskError,
    SequenceViolation,
    ValidationError,
)
from psyrisk.infrastructure.models import ReportORM
from psyrisk.infrastructure.repositories import ReportRepo
from psyrisk.web.dependencies import get_db_session
from psyrisk.web.schemas import (
    AssessmentStatus,
    BatchListItem,
    BatchReadiness,
    BatchReleaseRequest,
    BatchSummary,
    DimensionScoreResponse,
    DimensionSubmissionRequest,
    NavigationResponse,
    ObservationsRequest,
    QuestionDimension,
    ReportSummary,
    ReportView,
    ResumeRequest,
    RosterEntry,
    StartRequest,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def _http_error(exc: PsyRiskError) -> HTTPException:
    if isinstance(exc, ValidationError):
        code = 422
    elif isinstance(exc, SequenceViolation):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.user_message)


def _report_summary(report: ReportORM | None) -> ReportSummary | None:
    if report is None:
        return None
    return ReportSummary(
        id=report.id,
        batch_id=report.batch_id,
        status=report.status,
        observations=report.observations,
        created_at=report.created_at,
        issued_at=report.issued_at,
        sent_at=report.sent_at,
    )


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/questions", response_model=list[QuestionDimension])
def list_questions(
    role: Literal["operational", "management"] = "operational",
    db: Session = Depends(get_db_session),
) -> list[QuestionDimension]:
    return [QuestionDimension(**d) for d in app_api.get_questions(db, role=role)]


# ----------------------------- batches ------------------------------------


@router.get("/batches", response_model=list[BatchListItem])
def list_batches(db: Session = Depends(get_db_session)) -> list[BatchListItem]:
    return [BatchListItem(**row) for row in app_api.list_batches(db)]


@router.get("/reports/pending", response_model=list[BatchListItem])
def list_batches_pending_report(db: Session = Depends(get_db_session)) -> list[BatchListItem]:
    return [BatchListItem(**row) for row in app_api.list_batches_pending_report(db)]


@router.post("/batches", response_model=BatchSummary, status_code=status.HTTP_201_CREATED)
def release_batch(
    payload: BatchReleaseRequest,
    db: Session = Depends(get_db_session),
) -> BatchSummary:
    address = payload.employer_address
    try:
        batch = app_api.release_batch(
            db,
            employer_name=payload.employer_name,
            subjects=[s.model_dump() for s in payload.subjects],
            employer_tax_id=payload.employer_tax_id,
            label=payload.label,
            released_at=payload.released_at,
            employer_address=address.model_dump() if address else None,
        )
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc

    return BatchSummary(
        id=batch.id,
        employer_name=batch.employer_name,
        label=batch.label,
        released_at=batch.released_at,
        assessment_ids=[a.id for a in batch.assessments],
    )


@router.get("/batches/{batch_id}/readiness", response_model=BatchReadiness)
def get_batch_readiness(batch_id: int, db: Session = Depends(get_db_session)) -> BatchReadiness:
    try:
        return BatchReadiness(**app_api.get_batch_readiness(db, batch_id))
    except PsyRiskError as exc:
        raise _http_error(exc) from exc


@router.get("/batches/{batch_id}/assessments", response_model=list[RosterEntry])
def list_batch_assessments(batch_id: int, db: Session = Depends(get_db_session)) -> list[RosterEntry]:
    try:
        return [RosterEntry(**row) for row in app_api.list_batch_assessments(db, batch_id)]
    except PsyRiskError as exc:
        raise _http_error(exc) from exc


@router.get("/batches/{batch_id}/scores", response_model=list[DimensionScoreResponse])
def get_batch_scores(
    batch_id: int,
    sector: str | None = None,
    db: Session = Depends(get_db_session),
) -> list[DimensionScoreResponse]:
    try:
        scores = app_api.compute_batch_scores(db, batch_id, sector=sector)
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return [DimensionScoreResponse(**asdict(s)) for s in scores]


@router.get(
    "/batches/{batch_id}/scores/sectors",
    response_model=dict[str, list[DimensionScoreResponse]],
)
def get_sector_scores(
    batch_id: int, db: Session = Depends(get_db_session)
) -> dict[str, list[DimensionScoreResponse]]:
    try:
        by_sector = app_api.compute_sector_scores(db, batch_id)
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return {
        sector: [DimensionScoreResponse(**asdict(s)) for s in scores]
        for sector, scores in by_sector.items()
    }


@router.get("/batches/{batch_id}/report", response_model=ReportView)
def get_batch_report(batch_id: int, db: Session = Depends(get_db_session)) -> ReportView:
    """Issued reports are served from their cached sections; drafts are assembled live."""
    try:
        report = ReportRepo(db).get_for_batch(batch_id)
        if report is not None and report.status != "draft" and report.sections:
            sections = report.sections
        else:
            sections = app_api.assemble_batch_report(db, batch_id).to_dict()
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return ReportView(report=_report_summary(report), sections=sections)


@router.put("/batches/{batch_id}/report/observations", response_model=ReportSummary)
def update_report_observations(
    batch_id: int,
    payload: ObservationsRequest,
    db: Session = Depends(get_db_session),
) -> ReportSummary:
    try:
        report = app_api.update_report_observations(db, batch_id, payload.observations)
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _report_summary(report)


@router.post("/batches/{batch_id}/report/issue", response_model=ReportSummary)
def issue_report(batch_id: int, db: Session = Depends(get_db_session)) -> ReportSummary:
    try:
        report = app_api.issue_report(db, batch_id)
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _report_summary(report)


@router.post("/batches/{batch_id}/report/send", response_model=ReportSummary)
def send_report(batch_id: int, db: Session = Depends(get_db_session)) -> ReportSummary:
    try:
        report = app_api.send_report(db, batch_id)
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return _report_summary(report)


@router.get("/batches/{batch_id}/exports/json")
def export_batch_json(batch_id: int, db: Session = Depends(get_db_session)) -> JSONResponse:
    try:
        payload_str = app_api.export_batch_scores(db, batch_id, fmt="json")
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content=json.loads(payload_str))


@router.get("/batches/{batch_id}/exports/xlsx")
def export_batch_xlsx(batch_id: int, db: Session = Depends(get_db_session)) -> StreamingResponse:
    try:
        xlsx_bytes = app_api.export_batch_scores(db, batch_id, fmt="xlsx")
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    filename = f"batch_{batch_id}_scores.xlsx"
    stream = io.BytesIO(xlsx_bytes)
    stream.seek(0)
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


# ---------------------------- assessments ---------------------------------


@router.get("/assessments/{assessment_id}/status", response_model=AssessmentStatus)
def get_assessment_status(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> AssessmentStatus:
    try:
        return AssessmentStatus(**app_api.get_assessment_status(db, assessment_id))
    except PsyRiskError as exc:
        raise _http_error(exc) from exc


@router.get("/assessments/{assessment_id}/questions", response_model=list[QuestionDimension])
def get_assessment_questions(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> list[QuestionDimension]:
    try:
        return [QuestionDimension(**d) for d in app_api.get_questions(db, assessment_id)]
    except PsyRiskError as exc:
        raise _http_error(exc) from exc


@router.post("/assessments/{assessment_id}/start", response_model=AssessmentStatus)
def start_assessment(
    assessment_id: int,
    payload: StartRequest | None = None,
    db: Session = Depends(get_db_session),
) -> AssessmentStatus:
    try:
        app_api.start_assessment(
            db, assessment_id, session_key=payload.session_key if payload else None
        )
        db.commit()
        return AssessmentStatus(**app_api.get_assessment_status(db, assessment_id))
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc


@router.post("/assessments/{assessment_id}/resume", response_model=AssessmentStatus)
def detect_resume(
    assessment_id: int,
    payload: ResumeRequest,
    db: Session = Depends(get_db_session),
) -> AssessmentStatus:
    try:
        state = app_api.detect_resume(db, assessment_id, payload.session_key)
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return AssessmentStatus(**state)


@router.post("/assessments/{assessment_id}/dimensions", response_model=AssessmentStatus)
def save_dimension(
    assessment_id: int,
    payload: DimensionSubmissionRequest,
    db: Session = Depends(get_db_session),
) -> AssessmentStatus:
    try:
        app_api.save_dimension(
            db,
            assessment_id,
            payload.dimension_id,
            [item.model_dump() for item in payload.items],
        )
        db.commit()
        return AssessmentStatus(**app_api.get_assessment_status(db, assessment_id))
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc


@router.post("/assessments/{assessment_id}/back", response_model=NavigationResponse)
def navigate_back(assessment_id: int, db: Session = Depends(get_db_session)) -> NavigationResponse:
    try:
        result = app_api.navigate_back(db, assessment_id)
        db.commit()
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    return NavigationResponse(outcome=result.outcome, current_dimension=result.current_dimension)


@router.post("/assessments/{assessment_id}/deactivate", response_model=AssessmentStatus)
def deactivate_assessment(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> AssessmentStatus:
    try:
        app_api.deactivate_assessment(db, assessment_id)
        db.commit()
        return AssessmentStatus(**app_api.get_assessment_status(db, assessment_id))
    except PsyRiskError as exc:
        db.rollback()
        raise _http_error(exc) from exc


@router.get(
    "/assessments/{assessment_id}/scores", response_model=list[DimensionScoreResponse]
)
def get_assessment_scores(
    assessment_id: int, db: Session = Depends(get_db_session)
) -> list[DimensionScoreResponse]:
    try:
        scores = app_api.compute_assessment_scores(db, assessment_id)
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return [DimensionScoreResponse(**asdict(s)) for s in scores]


@router.get("/assessments/{assessment_id}/report", response_model=ReportView)
def get_assessment_report(assessment_id: int, db: Session = Depends(get_db_session)) -> ReportView:
    try:
        sections = app_api.assemble_assessment_report(db, assessment_id).to_dict()
    except PsyRiskError as exc:
        raise _http_error(exc) from exc
    return ReportView(sections=sections)
