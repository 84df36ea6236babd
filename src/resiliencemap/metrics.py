"""Fixed registry of normalized resilience metrics."""

from __future__ import annotations

from typing import Iterable

from .errors import UnknownMetric
from .models import MetricDescriptor


PRIMARY_METRIC_ID = "Earthquake_Vulnerability_Index_Normalized"

# Attributes that are never charted because they are not normalized to [0, 1].
NON_NORMALIZED_FIELDS = frozenset({"PopulationDensity"})

METRICS: tuple[MetricDescriptor, ...] = (
    MetricDescriptor(
        id=PRIMARY_METRIC_ID,
        label="Earthquake Resilience Score",
        description="Overall earthquake resilience index",
    ),
    MetricDescriptor(
        id="Age_Normalized",
        label="Age Score",
        description="Normalized age metric",
    ),
    MetricDescriptor(
        id="Building_Age_Normalized",
        label="Building Age Score",
        description="Age of buildings normalized",
    ),
    MetricDescriptor(
        id="Urgent_Care_Accessibility_Normalized",
        label="Urgent Care Accessibility Score",
        description="Access to urgent care facilities",
    ),
    MetricDescriptor(
        id="Hospital_Accessibility_Normalized",
        label="Hospital Accessibility Score",
        description="Access to hospital facilities",
    ),
    MetricDescriptor(
        id="Housing_Suitability_Normalized",
        label="Housing Suitability Score",
        description="Suitability of housing",
    ),
    MetricDescriptor(
        id="Communication_Normalized",
        label="Communication Score",
        description="Communication capabilities",
    ),
)

_BY_ID = {metric.id: metric for metric in METRICS}


def metric_ids() -> tuple[str, ...]:
    return tuple(metric.id for metric in METRICS)


def is_registered(metric_id: str) -> bool:
    return metric_id in _BY_ID


def get_metric(metric_id: str) -> MetricDescriptor:
    """Return the descriptor for `metric_id` or raise `UnknownMetric`."""
    try:
        return _BY_ID[metric_id]
    except KeyError:
        raise UnknownMetric(metric_id) from None


def metric_label(metric_id: str) -> str:
    """Display label, falling back to the raw id for unregistered metrics."""
    metric = _BY_ID.get(metric_id)
    return metric.label if metric is not None else metric_id


def chart_metrics(metrics: Iterable[MetricDescriptor] = METRICS) -> tuple[MetricDescriptor, ...]:
    return tuple(metric for metric in metrics if metric.id not in NON_NORMALIZED_FIELDS)
