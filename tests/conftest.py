from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from psyrisk.application import api as app_api
from psyrisk.domain.questionnaire import get_dimension
from psyrisk.infrastructure.models import Base


def make_engine():
    # one shared connection so TestClient worker threads see the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def SessionLocal() -> sessionmaker[Session]:
    engine = make_engine()
    yield sessionmaker(bind=engine, future=True, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def session(SessionLocal):
    s = SessionLocal()
    yield s
    s.close()


def answers_for(dimension_id: int, value: int = 50) -> list[dict[str, object]]:
    return [{"item_id": item_id, "value": value} for item_id in get_dimension(dimension_id).item_ids]


def release(session: Session, *subjects: dict, employer_name: str = "Acme Ltda"):
    subjects = subjects or ({"name": "Ana"},)
    batch = app_api.release_batch(session, employer_name, list(subjects), employer_tax_id="12.345.678/0001-90")
    return batch, [a.id for a in batch.assessments]


def complete(session: Session, assessment_id: int, values: dict[int, int] | None = None, default: int = 50):
    """Answer every dimension of an assessment; ``values`` maps dimension id -> value for all its items."""
    values = values or {}
    for dimension_id in range(1, 11):
        app_api.save_dimension(
            session, assessment_id, dimension_id, answers_for(dimension_id, values.get(dimension_id, default))
        )
