from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..domain.models import utcnow


class Base(DeclarativeBase):
    pass


class BatchORM(Base):
    __tablename__ = "batches"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employer_tax_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    employer_street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    employer_city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    employer_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    employer_postal_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    released_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    assessments: Mapped[list[AssessmentORM]] = relationship(
        back_populates="batch", cascade="all, delete"
    )
    report: Mapped[ReportORM | None] = relationship(
        back_populates="batch", cascade="all, delete", uselist=False
    )


class SubjectORM(Base):
    __tablename__ = "subjects"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    role_level: Mapped[str] = mapped_column(String(16), default="operational", nullable=False)
    sector: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("role_level IN ('operational', 'management')", name="ck_subject_role"),
    )

    assessments: Mapped[list[AssessmentORM]] = relationship(back_populates="subject")


class AssessmentORM(Base):
    __tablename__ = "assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[int] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), default="not_started", nullable=False)
    current_dimension: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    resume_anchor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resume_session_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    # optimistic concurrency: a stale writer fails with StaleDataError
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("batch_id", "subject_id", name="uq_assessment_batch_subject"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed', 'deactivated')",
            name="ck_assessment_status",
        ),
        CheckConstraint("current_dimension >= 1", name="ck_assessment_current_dimension"),
    )

    batch: Mapped[BatchORM] = relationship(back_populates="assessments")
    subject: Mapped[SubjectORM] = relationship(back_populates="assessments")
    responses: Mapped[list[ResponseORM]] = relationship(
        back_populates="assessment", cascade="all, delete"
    )


class ResponseORM(Base):
    __tablename__ = "responses"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dimension_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("assessment_id", "item_id", name="uq_response_assessment_item"),
        CheckConstraint("value IN (0, 25, 50, 75, 100)", name="ck_response_value"),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="responses")


class ReportORM(Base):
    __tablename__ = "reports"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    # cached for display only; scores are always recomputable from responses
    sections: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'issued', 'sent')", name="ck_report_status"),
    )

    batch: Mapped[BatchORM] = relationship(back_populates="report")
