from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

Polarity = Literal["positive", "negative"]
RoleLevel = Literal["operational", "management"]
RiskCategory = Literal["low", "medium", "high"]
Semaphore = Literal["green", "yellow", "red"]
NavigationOutcome = Literal["moved", "home", "refused"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "deactivated"})


def utcnow() -> datetime:
    # naive UTC, matching the DateTime(timezone=False) columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class Item:
    id: str
    text: str
    management_text: str | None = None
    reversed: bool = False  # carried for completeness; scoring never reads it


@dataclass(frozen=True, slots=True)
class Dimension:
    id: int
    title: str
    domain: str
    description: str
    polarity: Polarity
    items: tuple[Item, ...]

    @property
    def item_ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)


@dataclass(frozen=True, slots=True)
class Response:
    assessment_id: int | None
    dimension_id: int
    item_id: str
    value: int


@dataclass(frozen=True, slots=True)
class Aggregate:
    mean: float
    sd: float


@dataclass(frozen=True, slots=True)
class Classification:
    category: RiskCategory
    semaphore: Semaphore
    action: str
    label: str


@dataclass(frozen=True, slots=True)
class DimensionScore:
    dimension_id: int
    domain: str
    description: str
    polarity: Polarity
    mean: float
    standard_deviation: float
    mean_minus_sd: float
    mean_plus_sd: float
    risk_category: RiskCategory
    semaphore: Semaphore
    recommended_action: str
    label: str
    sample_size: int = 0
    insufficient_data: bool = False


@dataclass(frozen=True, slots=True)
class BatchProgress:
    total: int
    completed: int
    deactivated: int

    @property
    def pending(self) -> int:
        return self.total - self.deactivated - self.completed

    @property
    def ready(self) -> bool:
        return self.completed == self.total - self.deactivated


@dataclass(frozen=True, slots=True)
class NavigationResult:
    outcome: NavigationOutcome
    current_dimension: int

