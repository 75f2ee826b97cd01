"""
Aggregation and risk classification.

Every producer of a dimension score goes through ``aggregate`` and
``classify``; both are pure and never raise for well-typed input.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from .models import Aggregate, Classification, Dimension, DimensionScore, Polarity, Response
from .questionnaire import DIMENSIONS

LOWER_TERCILE = 33.0
UPPER_TERCILE = 66.0

ACTION_LOW = "maintain; monitor annually"
ACTION_MEDIUM = "attention; preventive intervention"
ACTION_HIGH = "immediate action; mitigation plan"
ACTION_INSUFFICIENT_DATA = "insufficient data"

_CLASSIFICATIONS: dict[str, Classification] = {
    "low": Classification("low", "green", ACTION_LOW, "excellent"),
    "medium": Classification("medium", "yellow", ACTION_MEDIUM, "monitor"),
    "high": Classification("high", "red", ACTION_HIGH, "attention"),
}

# Fallback for dimensions with no responses: low/green with an explicit marker
INSUFFICIENT_DATA = Classification("low", "green", ACTION_INSUFFICIENT_DATA, "excellent")


def aggregate(values: Sequence[float]) -> Aggregate:
    """
    Mean and sample standard deviation (denominator n - 1).

    >>> aggregate([])
    Aggregate(mean=0.0, sd=0.0)
    >>> aggregate([40])
    Aggregate(mean=40.0, sd=0.0)
    """
    count = len(values)
    if count == 0:
        return Aggregate(0.0, 0.0)
    mean = sum(values) / count
    if count == 1:
        return Aggregate(float(mean), 0.0)
    variance = sum((v - mean) ** 2 for v in values) / (count - 1)
    return Aggregate(float(mean), math.sqrt(variance))


def classify(mean: float, polarity: Polarity) -> Classification:
    """
    Fixed tercile bands on the 0-100 scale. 33 and 66 both belong to the medium band.

    Positive dimensions are healthier the higher they score; negative ones the lower.
    """
    if polarity == "positive":
        if mean > UPPER_TERCILE:
            category = "low"
        elif mean >= LOWER_TERCILE:
            category = "medium"
        else:
            category = "high"
    else:
        if mean < LOWER_TERCILE:
            category = "low"
        elif mean <= UPPER_TERCILE:
            category = "medium"
        else:
            category = "high"
    return _CLASSIFICATIONS[category]


def score_dimension(dimension: Dimension, values: Sequence[float]) -> DimensionScore:
    """Build the DimensionScore for one dimension from the values aggregated over it."""
    stats = aggregate(values)
    if values:
        result = classify(stats.mean, dimension.polarity)
    else:
        result = INSUFFICIENT_DATA
    return DimensionScore(
        dimension_id=dimension.id,
        domain=dimension.domain,
        description=dimension.description,
        polarity=dimension.polarity,
        mean=stats.mean,
        standard_deviation=stats.sd,
        mean_minus_sd=stats.mean - stats.sd,
        mean_plus_sd=stats.mean + stats.sd,
        risk_category=result.category,
        semaphore=result.semaphore,
        recommended_action=result.action,
        label=result.label,
        sample_size=len(values),
        insufficient_data=not values,
    )


def score_table(values_by_dimension: Mapping[int, Sequence[float]]) -> list[DimensionScore]:
    """One DimensionScore per questionnaire dimension, in dimension order, even when empty."""
    return [score_dimension(d, values_by_dimension.get(d.id, ())) for d in DIMENSIONS]


def group_values_by_dimension(responses: Iterable[Response]) -> dict[int, list[int]]:
    grouped: dict[int, list[int]] = defaultdict(list)
    for r in responses:
        grouped[r.dimension_id].append(r.value)
    return dict(grouped)


def subject_dimension_means(responses: Iterable[Response]) -> dict[int, float]:
    """Per-dimension mean of one subject's item values; dimensions without answers are omitted."""
    return {
        dim_id: aggregate(values).mean
        for dim_id, values in group_values_by_dimension(responses).items()
    }


def individual_score_table(responses: Iterable[Response]) -> list[DimensionScore]:
    """Score table for a single assessment, aggregated over raw item values."""
    return score_table(group_values_by_dimension(responses))


def group_score_table(subject_means: Iterable[Mapping[int, float]]) -> list[DimensionScore]:
    """
    Score table for a group of subjects.

    Aggregation is nested: each subject contributes its own per-dimension mean,
    never its raw item values.
    """
    collected: dict[int, list[float]] = defaultdict(list)
    for means in subject_means:
        for dim_id, mean in means.items():
            collected[dim_id].append(mean)
    return score_table(collected)
