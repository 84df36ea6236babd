"""Choropleth color classes for normalized metric values."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ColorClass:
    rank: int
    lower_bound: float | None
    color: str


# Ordered top to bottom; a value belongs to the first class whose bound it
# strictly exceeds. The final class has no bound and also absorbs missing data.
COLOR_CLASSES: tuple[ColorClass, ...] = (
    ColorClass(rank=5, lower_bound=1.0, color="#006837"),
    ColorClass(rank=4, lower_bound=0.80, color="#31a354"),
    ColorClass(rank=3, lower_bound=0.60, color="#78c679"),
    ColorClass(rank=2, lower_bound=0.40, color="#c2e699"),
    ColorClass(rank=1, lower_bound=0.20, color="#ffffcc"),
    ColorClass(rank=0, lower_bound=None, color="#ffffff"),
)

NO_DATA_CLASS = COLOR_CLASSES[-1]

LEGEND_GRADES: tuple[float, ...] = (0.0, 0.20, 0.40, 0.60, 0.80)
_LEGEND_SWATCH_OFFSET = 0.01


@dataclass(frozen=True, slots=True)
class LegendBucket:
    lower: float
    upper: float
    label: str
    color: str


def classify(value: Any) -> ColorClass:
    """Map a normalized value to its color class.

    None, NaN and anything non-numeric fall into the lowest class, the same
    one used for values at or below 0.20.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return NO_DATA_CLASS
    if math.isnan(value):
        return NO_DATA_CLASS
    for color_class in COLOR_CLASSES:
        if color_class.lower_bound is None or value > color_class.lower_bound:
            return color_class
    return NO_DATA_CLASS


def color_for(value: Any) -> str:
    return classify(value).color


def legend_buckets() -> list[LegendBucket]:
    buckets: list[LegendBucket] = []
    for idx, grade in enumerate(LEGEND_GRADES):
        upper = LEGEND_GRADES[idx + 1] if idx + 1 < len(LEGEND_GRADES) else 1.0
        buckets.append(
            LegendBucket(
                lower=grade,
                upper=upper,
                label=f"{grade:.2f}–{upper:.2f}",
                color=color_for(grade + _LEGEND_SWATCH_OFFSET),
            )
        )
    return buckets
