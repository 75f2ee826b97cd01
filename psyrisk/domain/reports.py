"""
Report assembly: profile, score table, interpretation and conclusion sections,
plus the ``draft -> issued -> sent`` document lifecycle.

Rendering (HTML/PDF) consumes ``AssembledReport.to_dict()``; nothing here
produces or alters scores.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Protocol

from ..infrastructure.exceptions import SequenceViolation, ValidationError
from .models import BatchProgress, DimensionScore, RiskCategory, utcnow

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Narrative order is fixed: low, then medium, then high
BUCKET_ORDER: tuple[tuple[RiskCategory, str, str], ...] = (
    ("low", "excellent", "Excellent (low risk)"),
    ("medium", "monitor", "Monitor (medium risk)"),
    ("high", "attention", "Attention required (high risk)"),
)


@dataclass(frozen=True, slots=True)
class ProfileSection:
    employer_name: str
    employer_tax_id: str | None
    total_assessments: int
    completed: int
    deactivated: int
    pending: int
    completion_percentage: int
    released_at: datetime | None
    last_submission_at: datetime | None
    sample_operational: int = 0
    sample_management: int = 0
    employer_address: str | None = None


@dataclass(frozen=True, slots=True)
class InterpretationBucket:
    category: RiskCategory
    label: str
    heading: str
    dimensions: list[str]


@dataclass(frozen=True, slots=True)
class InterpretationSection:
    introduction: str
    buckets: list[InterpretationBucket]
    blocks: list[str]
    conclusion: str


@dataclass(frozen=True, slots=True)
class ConclusionSection:
    observations: str | None
    disclaimer: str
    issue_date_line: str
    signature: dict[str, str]


@dataclass(frozen=True, slots=True)
class AssembledReport:
    profile: ProfileSection
    score_table: list[DimensionScore]
    interpretation: InterpretationSection
    conclusion: ConclusionSection
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("released_at", "last_submission_at"):
            value = data["profile"][key]
            data["profile"][key] = value.isoformat() if value is not None else None
        return data


def format_address(*parts: str | None) -> str | None:
    """
    One-line address from its non-empty parts, joined by ``" - "``.

    Example:
        >>> format_address("Rua A, 123", "Campinas", "SP", None)
        'Rua A, 123 - Campinas - SP'
    """
    return " - ".join(p for p in parts if p) or None


def completion_percentage(completed: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 for an empty batch."""
    if total <= 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


def build_profile(
    employer_name: str,
    progress: BatchProgress,
    released_at: datetime | None,
    last_submission_at: datetime | None,
    employer_tax_id: str | None = None,
    sample: dict[str, int] | None = None,
    employer_address: str | None = None,
) -> ProfileSection:
    sample = sample or {}
    return ProfileSection(
        employer_name=employer_name,
        employer_tax_id=employer_tax_id,
        total_assessments=progress.total,
        completed=progress.completed,
        deactivated=progress.deactivated,
        pending=progress.pending,
        completion_percentage=completion_percentage(progress.completed, progress.total),
        released_at=released_at,
        last_submission_at=last_submission_at or released_at,
        sample_operational=sample.get("operational", 0),
        sample_management=sample.get("management", 0),
        employer_address=employer_address,
    )


def partition_scores(scores: Sequence[DimensionScore]) -> list[InterpretationBucket]:
    """Three buckets, always in low -> medium -> high order regardless of input order."""
    return [
        InterpretationBucket(
            category=category,
            label=label,
            heading=heading,
            dimensions=[s.domain for s in scores if s.risk_category == category],
        )
        for category, label, heading in BUCKET_ORDER
    ]


def _share(part: int, whole: int) -> int:
    return completion_percentage(part, whole)


def build_interpretation(subject_name: str, scores: Sequence[DimensionScore]) -> InterpretationSection:
    buckets = partition_scores(scores)
    blocks = [f"{b.heading}: {', '.join(b.dimensions)}" for b in buckets if b.dimensions]

    total = len(scores)
    low, medium, high = (len(b.dimensions) for b in buckets)
    conclusion = (
        f"The assessment shows that {_share(low, total)}% of the evaluated dimensions are in "
        f"excellent condition, {_share(medium, total)}% need monitoring and "
        f"{_share(high, total)}% need attention. "
    )
    if high:
        conclusion += "Dimensions at high risk require immediate action in the risk management plan."
    elif medium:
        conclusion += "Preventive measures are recommended for the dimensions under monitoring."
    else:
        conclusion += "The organisation shows good psychosocial working conditions."

    return InterpretationSection(
        introduction=f"{subject_name} presents the following results in the psychosocial risk assessment:",
        buckets=buckets,
        blocks=blocks,
        conclusion=conclusion,
    )


def format_issue_date(city: str, when: date) -> str:
    return f"{city}, {when.day:02d} {MONTHS[when.month - 1]} {when.year}"


def build_conclusion(
    observations: str | None,
    disclaimer: str,
    signature: dict[str, str],
    city: str,
    issued_on: date,
) -> ConclusionSection:
    cleaned = observations.strip() if observations else None
    return ConclusionSection(
        observations=cleaned or None,
        disclaimer=disclaimer,
        issue_date_line=format_issue_date(city, issued_on),
        signature=dict(signature),
    )


def assemble_report(
    profile: ProfileSection,
    scores: Sequence[DimensionScore],
    conclusion: ConclusionSection,
    subject_name: str | None = None,
    extra: dict[str, Any] | None = None,
) -> AssembledReport:
    return AssembledReport(
        profile=profile,
        score_table=list(scores),
        interpretation=build_interpretation(subject_name or profile.employer_name, scores),
        conclusion=conclusion,
        extra=extra or {},
    )


class ReportState(Protocol):
    status: str
    observations: str | None
    issued_at: datetime | None
    sent_at: datetime | None
    sections: Any


class ReportLifecycle:
    """``draft -> issued -> sent``; observations stay editable only while in draft."""

    def __init__(self, clock: Callable[[], datetime] = utcnow, max_observations: int = 10000):
        self.clock = clock
        self.max_observations = max_observations

    def update_observations(self, report: ReportState, observations: str | None) -> None:
        if report.status != "draft":
            raise SequenceViolation(
                f"Observations can only be edited in draft (report is {report.status})",
                rule="report_not_draft",
            )
        if observations is not None and len(observations) > self.max_observations:
            raise ValidationError(
                "observations", f"must be at most {self.max_observations} characters"
            )
        cleaned = observations.strip() if observations else ""
        report.observations = cleaned or None

    def issue(self, report: ReportState, sections: dict[str, Any], ready: bool) -> None:
        if report.status != "draft":
            raise SequenceViolation(
                f"Only a draft report can be issued (report is {report.status})",
                rule="report_not_draft",
            )
        if not ready:
            raise SequenceViolation(
                "The batch still has pending assessments", rule="batch_not_ready"
            )
        report.sections = sections
        report.status = "issued"
        report.issued_at = self.clock()

    def send(self, report: ReportState) -> None:
        if report.status != "issued":
            raise SequenceViolation(
                f"Only an issued report can be sent (report is {report.status})",
                rule="report_not_issued",
            )
        report.status = "sent"
        report.sent_at = self.clock()
