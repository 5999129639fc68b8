from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel

from ..utils.numbers import round_half_up

QUARTERS = ("q1", "q2", "q3", "q4")
QUARTER_LABELS = ("Q1", "Q2", "Q3", "Q4")


class ScenarioType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class QuarterlyAmounts(BaseModel):
    q1: float = 0.0
    q2: float = 0.0
    q3: float = 0.0
    q4: float = 0.0

    @classmethod
    def from_list(cls, values: List[float]) -> "QuarterlyAmounts":
        padded = list(values) + [0.0] * (4 - len(values))
        return cls(q1=padded[0], q2=padded[1], q3=padded[2], q4=padded[3])

    @classmethod
    def even(cls, amount: float) -> "QuarterlyAmounts":
        per_quarter = round_half_up(amount / 4)
        return cls(q1=per_quarter, q2=per_quarter, q3=per_quarter, q4=amount - per_quarter * 3)

    def as_list(self) -> List[float]:
        return [self.q1, self.q2, self.q3, self.q4]

    def total(self) -> float:
        return self.q1 + self.q2 + self.q3 + self.q4

    def __add__(self, other: "QuarterlyAmounts") -> "QuarterlyAmounts":
        return QuarterlyAmounts.from_list([a + b for a, b in zip(self.as_list(), other.as_list())])

    def __sub__(self, other: "QuarterlyAmounts") -> "QuarterlyAmounts":
        return QuarterlyAmounts.from_list([a - b for a, b in zip(self.as_list(), other.as_list())])


class QuarterlyRatios(BaseModel):
    """Seasonal shape of a year; values need not sum to one."""

    q1: float = 0.25
    q2: float = 0.25
    q3: float = 0.25
    q4: float = 0.25

    def as_list(self) -> List[float]:
        return [self.q1, self.q2, self.q3, self.q4]
