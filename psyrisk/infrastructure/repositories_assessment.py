# psyrisk/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from .exceptions import AssessmentNotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentORM
from .repositories_base import BaseRepository as GenericBaseRepository


class AssessmentRepo(GenericBaseRepository[AssessmentORM]):
    model = AssessmentORM
    not_found = AssessmentNotFoundError

    @log_op("assessment.get")
    def get(self, id_: Any) -> AssessmentORM | None:
        return (
            self.s.query(AssessmentORM)
            .options(joinedload(AssessmentORM.subject))
            .filter(AssessmentORM.id == id_)
            .one_or_none()
        )

    @log_op("assessment.get_required")
    def get_by_id_required(self, id_: Any) -> AssessmentORM:
        return super().get_by_id_required(id_)

    @log_op("assessment.list_for_batch")
    def list_for_batch(self, batch_id: int) -> builtins.list[AssessmentORM]:
        stmt = (
            select(AssessmentORM)
            .options(joinedload(AssessmentORM.subject))
            .where(AssessmentORM.batch_id == batch_id)
            .order_by(AssessmentORM.id)
        )
        return builtins.list(self.s.scalars(stmt))
