# psyrisk/infrastructure/repositories_batch.py
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import BatchProgress, Response, utcnow
from ..domain.schemas import BatchReleaseInput
from .exceptions import BatchNotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentORM, BatchORM, ReportORM, ResponseORM, SubjectORM
from .repositories_base import BaseRepository as GenericBaseRepository


def _progress_from(counts: dict[str, int]) -> BatchProgress:
    return BatchProgress(
        total=sum(counts.values()),
        completed=counts.get("completed", 0),
        deactivated=counts.get("deactivated", 0),
    )


class BatchRepo(GenericBaseRepository[BatchORM]):
    """
    Repository for released batches and the per-batch aggregates reports need.

    Example:
        >>> repo = BatchRepo(session)
        >>> repo.progress(batch_id=1)
        BatchProgress(total=12, completed=9, deactivated=1)
    """

    model = BatchORM
    not_found = BatchNotFoundError

    @log_op("batch.get_required")
    def get_by_id_required(self, id_: Any) -> BatchORM:
        return super().get_by_id_required(id_)

    @log_op("batch.release")
    def release(self, data: BatchReleaseInput) -> BatchORM:
        """Persist a batch with one subject and one not-started assessment per subject."""
        address = data.employer_address
        try:
            batch = BatchORM(
                employer_name=data.employer_name,
                employer_tax_id=data.employer_tax_id,
                employer_street=address.street if address else None,
                employer_city=address.city if address else None,
                employer_state=address.state if address else None,
                employer_postal_code=address.postal_code if address else None,
                label=data.label,
                released_at=data.released_at or utcnow(),
            )
            self.s.add(batch)
            for subject_in in data.subjects:
                subject = SubjectORM(
                    name=subject_in.name,
                    role_level=subject_in.role_level,
                    sector=subject_in.sector,
                    external_ref=subject_in.external_ref,
                )
                self.s.add(subject)
                self.s.add(AssessmentORM(batch=batch, subject=subject))
            self.s.flush()
            return batch
        except SQLAlchemyError as e:
            self._handle_error(e, "batch.release")

    @log_op("batch.progress")
    def progress(self, batch_id: int) -> BatchProgress:
        rows = self.s.execute(
            select(AssessmentORM.status, func.count(AssessmentORM.id))
            .where(AssessmentORM.batch_id == batch_id)
            .group_by(AssessmentORM.status)
        ).all()
        return _progress_from({status: int(n) for status, n in rows})

    @log_op("batch.list_with_progress")
    def list_with_progress(self) -> list[tuple[BatchORM, BatchProgress, str | None]]:
        """
        Every batch, newest release first, with its assessment counts and the
        status of its report (``None`` while no report exists).
        """
        batches = self.s.scalars(
            select(BatchORM).order_by(BatchORM.released_at.desc(), BatchORM.id.desc())
        ).all()
        counts: dict[int, dict[str, int]] = defaultdict(dict)
        rows = self.s.execute(
            select(AssessmentORM.batch_id, AssessmentORM.status, func.count(AssessmentORM.id))
            .group_by(AssessmentORM.batch_id, AssessmentORM.status)
        )
        for batch_id, status, n in rows:
            counts[batch_id][status] = int(n)
        report_status = dict(self.s.execute(select(ReportORM.batch_id, ReportORM.status)).tuples())
        return [
            (batch, _progress_from(counts[batch.id]), report_status.get(batch.id))
            for batch in batches
        ]

    @log_op("batch.sample_by_role")
    def sample_by_role(self, batch_id: int) -> dict[str, int]:
        """Completed respondents per role level."""
        rows = self.s.execute(
            select(SubjectORM.role_level, func.count(AssessmentORM.id))
            .join(AssessmentORM, AssessmentORM.subject_id == SubjectORM.id)
            .where(AssessmentORM.batch_id == batch_id, AssessmentORM.status == "completed")
            .group_by(SubjectORM.role_level)
        ).all()
        return {role: int(n) for role, n in rows}

    @log_op("batch.last_submission")
    def last_submission_at(self, batch_id: int) -> datetime | None:
        return self.s.execute(
            select(func.max(AssessmentORM.submitted_at)).where(
                AssessmentORM.batch_id == batch_id, AssessmentORM.status == "completed"
            )
        ).scalar_one_or_none()

    @log_op("batch.sectors")
    def sectors(self, batch_id: int) -> list[str]:
        rows = self.s.execute(
            select(SubjectORM.sector)
            .join(AssessmentORM, AssessmentORM.subject_id == SubjectORM.id)
            .where(AssessmentORM.batch_id == batch_id, SubjectORM.sector.is_not(None))
            .distinct()
            .order_by(SubjectORM.sector)
        ).scalars()
        return list(rows)

    @log_op("batch.completed_responses")
    def completed_responses(
        self, batch_id: int, sector: str | None = None
    ) -> dict[int, list[Response]]:
        """
        Responses of every completed assessment in the batch, keyed by assessment id.

        Deactivated and unfinished assessments never contribute to group scores.
        """
        stmt = (
            select(
                ResponseORM.assessment_id,
                ResponseORM.dimension_id,
                ResponseORM.item_id,
                ResponseORM.value,
            )
            .join(AssessmentORM, AssessmentORM.id == ResponseORM.assessment_id)
            .where(AssessmentORM.batch_id == batch_id, AssessmentORM.status == "completed")
            .order_by(ResponseORM.assessment_id, ResponseORM.id)
        )
        if sector is not None:
            stmt = stmt.join(SubjectORM, SubjectORM.id == AssessmentORM.subject_id).where(
                SubjectORM.sector == sector
            )

        grouped: dict[int, list[Response]] = defaultdict(list)
        for assessment_id, dimension_id, item_id, value in self.s.execute(stmt):
            grouped[assessment_id].append(Response(assessment_id, dimension_id, item_id, value))
        return dict(grouped)
