# psyrisk/infrastructure/repositories_response.py
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..domain.models import Response
from .logging import log_database_operation as log_op
from .models import ResponseORM
from .repositories_base import BaseRepository as GenericBaseRepository


class ResponseRepo(GenericBaseRepository[ResponseORM]):
    """
    Item responses; at most one row per (assessment, item).

    A repeated save of the same item overwrites the stored value (last write wins).
    """

    model = ResponseORM

    @log_op("response.upsert_many")
    def upsert_many(self, assessment_id: int, responses: Iterable[Response]) -> list[ResponseORM]:
        responses = list(responses)
        try:
            existing = {
                row.item_id: row
                for row in self.s.query(ResponseORM)
                .filter(
                    ResponseORM.assessment_id == assessment_id,
                    ResponseORM.item_id.in_([r.item_id for r in responses]),
                )
                .all()
            }
            saved = []
            for r in responses:
                row = existing.get(r.item_id)
                if row is None:
                    row = ResponseORM(
                        assessment_id=assessment_id, dimension_id=r.dimension_id, item_id=r.item_id
                    )
                    self.s.add(row)
                row.value = r.value
                saved.append(row)
            self.s.flush()
            return saved
        except StaleDataError:
            # concurrent write to the owning assessment row
            raise
        except SQLAlchemyError as e:
            self._handle_error(e, "response.upsert_many")

    @log_op("response.list_for_assessment")
    def list_for_assessment(self, assessment_id: int) -> list[Response]:
        rows = (
            self.s.query(ResponseORM)
            .filter_by(assessment_id=assessment_id)
            .order_by(ResponseORM.dimension_id, ResponseORM.id)
            .all()
        )
        return [Response(r.assessment_id, r.dimension_id, r.item_id, r.value) for r in rows]
