import pytest

from psyrisk.domain.questionnaire import (
    ANSWER_SCALE,
    DIMENSIONS,
    dimension_for_item,
    get_dimension,
    is_scale_value,
    item_text,
    questions_for_role,
)
from psyrisk.domain.schemas import (
    AddressInput,
    AnswerInput,
    BatchReleaseInput,
    DimensionSubmission,
    ObservationsInput,
    SubjectInput,
    validate_input,
)
from psyrisk.infrastructure.exceptions import DimensionNotFoundError, NotFoundError


class TestQuestionnaire:
    def test_item_distribution(self):
        assert [len(d.items) for d in DIMENSIONS] == [11, 8, 9, 6, 8, 5, 8, 3, 6, 6]
        ids = [item.id for d in DIMENSIONS for item in d.items]
        assert ids == [f"Q{i}" for i in range(1, 71)]

    def test_scale(self):
        assert list(ANSWER_SCALE.values()) == [0, 25, 50, 75, 100]
        assert is_scale_value(75)
        assert not is_scale_value(70)
        assert not is_scale_value(True)

    def test_lookups(self):
        assert get_dimension(10).domain == "Endividamento Financeiro"
        assert dimension_for_item("Q12").id == 2
        with pytest.raises(DimensionNotFoundError):
            get_dimension(11)
        with pytest.raises(NotFoundError):
            dimension_for_item("Q71")

    def test_reversed_items(self):
        flagged = sorted(item.id for d in DIMENSIONS for item in d.items if item.reversed)
        assert flagged == ["Q32", "Q35", "Q36", "Q6"]

    def test_role_phrasing(self):
        item = get_dimension(1).items[0]
        assert item_text(item, "operational") == item.text
        assert item_text(item, "management") == item.management_text
        management = questions_for_role("management")
        assert management[0]["items"][0]["text"] == item.management_text


class TestSchemas:
    def test_answer_scale(self):
        assert validate_input(AnswerInput, {"item_id": "Q1", "value": 100}).success
        result = validate_input(AnswerInput, {"item_id": "Q1", "value": 30})
        assert result.success is False
        assert result.errors[0].field == "value"

    def test_submission_pairs(self):
        submission = DimensionSubmission(
            dimension_id=8,
            items=[{"item_id": "Q56", "value": 0}, {"item_id": "Q57", "value": 25}],
        )
        assert submission.pairs() == [("Q56", 0), ("Q57", 25)]

    def test_empty_submission_is_well_formed(self):
        assert validate_input(DimensionSubmission, {"dimension_id": 1, "items": []}).success

    def test_subject_sanitisation(self):
        subject = SubjectInput(name="  <b>Ana</b> ", sector="   ")
        assert subject.name == "Ana"
        assert subject.sector is None
        assert subject.role_level == "operational"

    def test_unknown_role(self):
        assert not validate_input(SubjectInput, {"name": "Ana", "role_level": "director"}).success

    def test_batch_requires_subjects(self):
        result = validate_input(BatchReleaseInput, {"employer_name": "Acme", "subjects": []})
        assert result.success is False
        assert any("subjects" in e.field for e in result.errors)

    def test_employer_address(self):
        data = BatchReleaseInput(
            employer_name="Acme",
            employer_address={"street": " Rua A, 123 ", "city": "", "postal_code": "01000-000"},
            subjects=[{"name": "Ana"}],
        )
        assert data.employer_address.street == "Rua A, 123"
        assert data.employer_address.city is None
        result = validate_input(AddressInput, {"postal_code": "x" * 17})
        assert result.success is False

    def test_observations_length_is_not_capped_here(self):
        # the configurable cap lives in the report settings
        assert validate_input(ObservationsInput, {"observations": "x" * 20000}).success
