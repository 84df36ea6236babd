"""In-memory selection state for the dashboard and derived chart data."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from .errors import UnknownMetric
from .metrics import PRIMARY_METRIC_ID, chart_metrics, get_metric, is_registered, metric_label
from .models import REGION_ID_FIELD, ChartPoint, RegionDetails
from .util import MISSING, as_number, format_count, format_fixed


_LOGGER = logging.getLogger("resiliencemap.selection")


class ChartKind(str, Enum):
    BAR = "bar"
    RADAR = "radar"


class RegionSelection:
    """Selected region attributes, selected metric, and chart kind.

    State changes only through `select_region`, `select_metric` and
    `set_chart_kind`. There is no reset; a new region replaces the old one.
    """

    def __init__(
        self,
        *,
        metric_id: str = PRIMARY_METRIC_ID,
        chart_kind: ChartKind | str = ChartKind.BAR,
    ) -> None:
        get_metric(metric_id)
        self._region: dict[str, Any] | None = None
        self._metric_id = metric_id
        self._chart_kind = ChartKind(chart_kind)

    @property
    def region(self) -> Mapping[str, Any] | None:
        return None if self._region is None else dict(self._region)

    @property
    def region_id(self) -> str | None:
        if self._region is None:
            return None
        value = self._region.get(REGION_ID_FIELD)
        return None if value is None else str(value)

    @property
    def metric_id(self) -> str:
        return self._metric_id

    @property
    def chart_kind(self) -> ChartKind:
        return self._chart_kind

    @property
    def has_region(self) -> bool:
        return self._region is not None

    def select_region(self, attributes: Mapping[str, Any]) -> None:
        self._region = dict(attributes)
        _LOGGER.debug("Selected region %s", self.region_id or MISSING)

    def select_metric(self, metric_id: str) -> None:
        if not is_registered(metric_id):
            raise UnknownMetric(metric_id)
        self._metric_id = metric_id

    def set_chart_kind(self, kind: ChartKind | str) -> None:
        try:
            self._chart_kind = ChartKind(kind)
        except ValueError:
            raise ValueError(f"Unknown chart type: {kind!r}") from None

    def derive_chart_series(self) -> list[ChartPoint]:
        """One (label, value) point per charted metric; missing values become 0."""
        if self._region is None:
            return []
        series: list[ChartPoint] = []
        for metric in chart_metrics():
            value = as_number(self._region.get(metric.id))
            series.append(ChartPoint(label=metric.label, value=0.0 if value is None else value))
        return series

    def details(self) -> RegionDetails | None:
        if self._region is None:
            return None
        return region_details(self._region, self._metric_id)


def region_details(attributes: Mapping[str, Any], metric_id: str) -> RegionDetails:
    region_id = attributes.get(REGION_ID_FIELD)
    return RegionDetails(
        region_id=MISSING if region_id in (None, "") else str(region_id),
        metric_label=metric_label(metric_id),
        metric_value=format_fixed(attributes.get(metric_id), 2),
        population=format_count(attributes.get("Population")),
        land_area=format_fixed(attributes.get("LANDAREA"), 2),
        population_density=format_fixed(attributes.get("PopulationDensity"), 0),
    )
