# psyrisk/infrastructure/repositories_report.py
from __future__ import annotations

from .exceptions import ReportNotFoundError
from .logging import log_database_operation as log_op
from .models import ReportORM
from .repositories_base import BaseRepository as GenericBaseRepository


class ReportRepo(GenericBaseRepository[ReportORM]):
    model = ReportORM
    not_found = ReportNotFoundError

    @log_op("report.get_for_batch")
    def get_for_batch(self, batch_id: int) -> ReportORM | None:
        return self.s.query(ReportORM).filter_by(batch_id=batch_id).one_or_none()

    @log_op("report.get_or_create")
    def get_or_create(self, batch_id: int) -> ReportORM:
        """One report document per batch, created in draft on first access."""
        report = self.get_for_batch(batch_id)
        if report is None:
            report = self.create(batch_id=batch_id, status="draft")
        return report
