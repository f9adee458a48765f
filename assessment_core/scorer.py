from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
import math
from typing import Any, Iterable, Mapping

from .evaluator import is_correct
from .types import Item


@dataclass(frozen=True)
class Score:
    percent: int
    correct_count: int
    total_count: int
    earned_points: float
    total_points: float


def round_half_away(value: Fraction) -> int:
    """Round to the nearest integer, halves away from zero (69.5 -> 70)."""

    if value < 0:
        return -round_half_away(-value)
    return int(math.floor(value + Fraction(1, 2)))


def _frac(x: float) -> Fraction:
    try:
        return Fraction(x)
    except (TypeError, ValueError, OverflowError):
        return Fraction(0)


def score(items: Iterable[Item], responses: Mapping[str, Any]) -> Score:
    items = list(items)
    earned = Fraction(0)
    total = Fraction(0)
    correct = 0
    for it in items:
        pts = _frac(it.points)
        total += pts
        if is_correct(it, responses.get(it.id)):
            correct += 1
            earned += pts
    # empty or weightless assessments never divide by zero
    percent = round_half_away(100 * earned / total) if total > 0 else 0
    return Score(
        percent=percent,
        correct_count=correct,
        total_count=len(items),
        earned_points=float(earned),
        total_points=float(total),
    )


def passed(percent: int, passing_score_percent: float) -> bool:
    return percent >= passing_score_percent


__all__ = ["Score", "score", "passed", "round_half_away"]
