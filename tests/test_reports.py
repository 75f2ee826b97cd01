from datetime import date, datetime

import pytest

from psyrisk.domain.models import BatchProgress
from psyrisk.domain.questionnaire import get_dimension
from psyrisk.domain.reports import (
    ReportLifecycle,
    assemble_report,
    build_conclusion,
    build_interpretation,
    build_profile,
    completion_percentage,
    format_address,
    format_issue_date,
    partition_scores,
)
from psyrisk.domain.scoring import score_dimension, score_table
from psyrisk.infrastructure.exceptions import SequenceViolation, ValidationError
from psyrisk.infrastructure.models import ReportORM

NOW = datetime(2026, 10, 19, 9, 30)
SIGNATURE = {"name": "Dr. Ana Lima", "title": "Psychologist", "registration": "CRP 06/1", "organization": ""}


def mixed_scores():
    # categories in input order: high, low, medium
    return [
        score_dimension(get_dimension(1), [90]),
        score_dimension(get_dimension(2), [90]),
        score_dimension(get_dimension(4), [50]),
    ]


class TestProgressCounters:
    def test_not_ready_with_pending(self):
        progress = BatchProgress(total=10, completed=7, deactivated=1)
        assert progress.ready is False
        assert progress.pending == 2

    def test_ready_when_everyone_active_completed(self):
        progress = BatchProgress(total=10, completed=9, deactivated=1)
        assert progress.ready is True
        assert progress.pending == 0

    @pytest.mark.parametrize(
        "completed, total, expected",
        [(9, 10, 90), (1, 3, 33), (2, 3, 67), (1, 8, 13), (0, 0, 0), (5, 5, 100)],
    )
    def test_completion_percentage(self, completed, total, expected):
        assert completion_percentage(completed, total) == expected


class TestInterpretation:
    def test_buckets_ordered_low_medium_high(self):
        buckets = partition_scores(mixed_scores())
        assert [b.category for b in buckets] == ["low", "medium", "high"]
        assert buckets[0].dimensions == ["Organização e Conteúdo do Trabalho"]
        assert buckets[1].dimensions == ["Interface Trabalho-Indivíduo"]
        assert buckets[2].dimensions == ["Demandas no Trabalho"]

    def test_only_non_empty_buckets_get_a_block(self):
        section = build_interpretation("Acme", [score_dimension(get_dimension(2), [90])])
        assert len(section.blocks) == 1
        assert section.blocks[0].startswith("Excellent")
        assert [b.category for b in section.buckets] == ["low", "medium", "high"]

    def test_conclusion_sentence_driven_by_worst_bucket(self):
        section = build_interpretation("Acme", mixed_scores())
        assert "33% of the evaluated dimensions" in section.conclusion
        assert "immediate action" in section.conclusion
        assert section.introduction.startswith("Acme")

    def test_insufficient_data_lands_in_low_bucket(self):
        buckets = partition_scores(score_table({}))
        assert len(buckets[0].dimensions) == 10
        assert buckets[1].dimensions == [] and buckets[2].dimensions == []


class TestSections:
    def test_profile_falls_back_to_release_date(self):
        profile = build_profile("Acme", BatchProgress(4, 3, 0), released_at=NOW, last_submission_at=None)
        assert profile.last_submission_at == NOW
        assert profile.completion_percentage == 75
        assert profile.pending == 1

    def test_profile_sample_split(self):
        profile = build_profile(
            "Acme",
            BatchProgress(3, 3, 0),
            released_at=NOW,
            last_submission_at=NOW,
            sample={"operational": 2, "management": 1},
        )
        assert (profile.sample_operational, profile.sample_management) == (2, 1)
        assert profile.employer_address is None

    def test_employer_address_skips_missing_parts(self):
        assert format_address("Rua A, 123", None, "SP", "01000-000") == "Rua A, 123 - SP - 01000-000"
        assert format_address(None, "", None) is None
        profile = build_profile(
            "Acme",
            BatchProgress(1, 1, 0),
            released_at=NOW,
            last_submission_at=NOW,
            employer_address=format_address("Rua A, 123", "Campinas"),
        )
        assert profile.employer_address == "Rua A, 123 - Campinas"

    def test_issue_date_line(self):
        assert format_issue_date("São Paulo", date(2026, 10, 19)) == "São Paulo, 19 October 2026"

    def test_conclusion_strips_blank_observations(self):
        blank = build_conclusion("   ", "disclaimer", SIGNATURE, "Recife", date(2026, 1, 5))
        kept = build_conclusion("  All good.  ", "disclaimer", SIGNATURE, "Recife", date(2026, 1, 5))
        assert blank.observations is None
        assert kept.observations == "All good."
        assert kept.issue_date_line == "Recife, 05 January 2026"
        assert kept.signature["name"] == "Dr. Ana Lima"

    def test_assembled_report_serialises_dates(self):
        profile = build_profile("Acme", BatchProgress(1, 1, 0), released_at=NOW, last_submission_at=None)
        conclusion = build_conclusion(None, "disclaimer", SIGNATURE, "Recife", NOW.date())
        data = assemble_report(profile, score_table({}), conclusion).to_dict()
        assert data["profile"]["released_at"] == "2026-10-19T09:30:00"
        assert len(data["score_table"]) == 10
        assert set(data) == {"profile", "score_table", "interpretation", "conclusion", "extra"}


class TestLifecycle:
    @pytest.fixture
    def lifecycle(self):
        return ReportLifecycle(clock=lambda: NOW, max_observations=200)

    @pytest.fixture
    def report(self):
        return ReportORM(batch_id=1, status="draft")

    def test_draft_issued_sent(self, lifecycle, report):
        lifecycle.update_observations(report, "  Noted.  ")
        lifecycle.issue(report, {"profile": {}}, ready=True)
        assert report.status == "issued"
        assert report.issued_at == NOW
        assert report.sections == {"profile": {}}
        lifecycle.send(report)
        assert report.status == "sent"
        assert report.sent_at == NOW
        assert report.observations == "Noted."

    def test_issue_requires_ready_batch(self, lifecycle, report):
        with pytest.raises(SequenceViolation) as exc:
            lifecycle.issue(report, {}, ready=False)
        assert exc.value.rule == "batch_not_ready"
        assert report.status == "draft"
        assert report.issued_at is None

    def test_observations_frozen_after_issue(self, lifecycle, report):
        lifecycle.issue(report, {}, ready=True)
        with pytest.raises(SequenceViolation) as exc:
            lifecycle.update_observations(report, "late edit")
        assert exc.value.rule == "report_not_draft"

    def test_cannot_send_a_draft(self, lifecycle, report):
        with pytest.raises(SequenceViolation) as exc:
            lifecycle.send(report)
        assert exc.value.rule == "report_not_issued"

    def test_cannot_issue_twice(self, lifecycle, report):
        lifecycle.issue(report, {}, ready=True)
        with pytest.raises(SequenceViolation):
            lifecycle.issue(report, {}, ready=True)

    def test_observations_length_limit(self, lifecycle, report):
        with pytest.raises(ValidationError):
            lifecycle.update_observations(report, "x" * 201)
