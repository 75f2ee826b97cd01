import math

import pytest

from psyrisk.domain.models import Response
from psyrisk.domain.questionnaire import DIMENSIONS, get_dimension
from psyrisk.domain.scoring import (
    ACTION_HIGH,
    ACTION_INSUFFICIENT_DATA,
    ACTION_LOW,
    ACTION_MEDIUM,
    aggregate,
    classify,
    group_score_table,
    individual_score_table,
    score_dimension,
    score_table,
    subject_dimension_means,
)


class TestAggregate:
    def test_empty(self):
        result = aggregate([])
        assert result.mean == 0
        assert result.sd == 0

    def test_single_value(self):
        result = aggregate([75])
        assert result.mean == 75
        assert result.sd == 0

    def test_sample_standard_deviation(self):
        # denominator n - 1: variance of [70, 80] is 50
        result = aggregate([70, 80])
        assert result.mean == 75.0
        assert result.sd == pytest.approx(math.sqrt(50))

    def test_identical_values(self):
        assert aggregate([90, 90, 90]).sd == 0


class TestClassify:
    @pytest.mark.parametrize(
        "mean, expected",
        [(32.9, "low"), (33, "medium"), (66, "medium"), (66.1, "high"), (0, "low"), (100, "high")],
    )
    def test_negative_bands(self, mean, expected):
        assert classify(mean, "negative").category == expected

    @pytest.mark.parametrize(
        "mean, expected",
        [(66.1, "low"), (66, "medium"), (33, "medium"), (32.9, "high"), (100, "low"), (0, "high")],
    )
    def test_positive_bands(self, mean, expected):
        assert classify(mean, "positive").category == expected

    def test_semaphore_action_and_label_follow_category(self):
        low = classify(10, "negative")
        medium = classify(50, "negative")
        high = classify(90, "negative")
        assert (low.semaphore, low.action, low.label) == ("green", ACTION_LOW, "excellent")
        assert (medium.semaphore, medium.action, medium.label) == ("yellow", ACTION_MEDIUM, "monitor")
        assert (high.semaphore, high.action, high.label) == ("red", ACTION_HIGH, "attention")


def test_polarity_is_fixed_per_dimension():
    positive = sorted(d.id for d in DIMENSIONS if d.polarity == "positive")
    assert positive == [2, 3, 5, 6]
    assert len(DIMENSIONS) == 10


def test_aggregate_then_classify_is_repeatable():
    values = [25, 50, 75, 100, 0, 50]
    first = classify(aggregate(values).mean, "negative")
    second = classify(aggregate(values).mean, "negative")
    assert aggregate(values) == aggregate(values)
    assert first == second


def test_scenario_positive_dimension_low_risk():
    score = group_score_table([{3: 70.0}, {3: 80.0}])[2]
    assert score.domain == "Relações Sociais e Liderança"
    assert score.mean == 75.0
    assert score.standard_deviation == pytest.approx(7.07, abs=0.01)
    assert score.risk_category == "low"
    assert score.semaphore == "green"
    assert score.recommended_action == "maintain; monitor annually"


def test_scenario_negative_dimension_high_risk():
    score = group_score_table([{1: 90.0}, {1: 90.0}, {1: 90.0}])[0]
    assert score.domain == "Demandas no Trabalho"
    assert score.mean == 90
    assert score.standard_deviation == 0
    assert score.risk_category == "high"
    assert score.semaphore == "red"
    assert score.recommended_action == "immediate action; mitigation plan"


def test_score_dimension_without_values_is_insufficient_data():
    score = score_dimension(get_dimension(4), [])
    assert score.mean == 0
    assert score.standard_deviation == 0
    assert score.risk_category == "low"
    assert score.semaphore == "green"
    assert score.recommended_action == ACTION_INSUFFICIENT_DATA
    assert score.insufficient_data is True


def test_score_table_always_has_ten_rows_in_order():
    table = score_table({5: [100, 100]})
    assert [s.dimension_id for s in table] == list(range(1, 11))
    assert table[4].risk_category == "low"
    assert sum(1 for s in table if s.insufficient_data) == 9


def test_group_aggregation_is_nested():
    # subject A answers 3 items of dimension 8, subject B answers 1 (e.g. partial data);
    # the group mean averages subject means, not raw values
    subject_a = [Response(1, 8, "Q56", 100), Response(1, 8, "Q57", 100), Response(1, 8, "Q58", 100)]
    subject_b = [Response(2, 8, "Q56", 0)]
    means = [subject_dimension_means(subject_a), subject_dimension_means(subject_b)]
    score = group_score_table(means)[7]
    assert score.mean == 50.0
    assert score.sample_size == 2


def test_individual_table_uses_raw_item_values():
    responses = [Response(1, 2, item_id, 75) for item_id in get_dimension(2).item_ids]
    table = individual_score_table(responses)
    assert table[1].mean == 75
    assert table[1].risk_category == "low"
    assert table[1].sample_size == len(get_dimension(2).item_ids)
