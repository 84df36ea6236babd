"""Validation layer for config and the source dataset."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping

from .config import AppConfig
from .errors import FetchError, UnsupportedGeometryType
from .geometry import SUPPORTED_GEOMETRY_TYPES
from .loader import DatasetLoader
from .metrics import METRICS
from .models import REGION_ID_FIELD
from .util import as_number


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks the configured dataset before a dashboard build."""

    def __init__(self, cfg: AppConfig, loader: DatasetLoader | None = None) -> None:
        self.cfg = cfg
        self.loader = loader or DatasetLoader(cfg.dataset)

    def run(self) -> ValidationReport:
        report = ValidationReport()
        report.add_info(f"Config loaded from {self.cfg.source_path}")
        raw = self._load_raw(report)
        if raw is None:
            return report
        features = [item for item in raw["features"] if isinstance(item, Mapping)]
        if len(features) != len(raw["features"]):
            report.add_error("Dataset contains non-object entries in 'features'")
        report.add_info(f"Loaded {len(features)} features")
        if not features:
            report.add_error("Dataset contains no features")
            return report
        self._validate_crs(report, raw.get("crs"))
        self._validate_geometries(report, features)
        self._validate_properties(report, features)
        return report

    def _load_raw(self, report: ValidationReport) -> dict[str, Any] | None:
        local_path = self.cfg.dataset.local_path
        if local_path is not None and not local_path.exists():
            report.add_error(f"Missing dataset file: {local_path}")
            return None
        try:
            return self.loader.fetch(self.loader.resolve_url())
        except FetchError as exc:
            report.add_error(f"Failed reading dataset: {exc}")
            return None

    def _validate_crs(self, report: ValidationReport, crs: Any) -> None:
        if crs is None:
            report.add_warning(
                f"Dataset declares no CRS; assuming {self.cfg.dataset.source_crs}"
            )
            return
        text = json.dumps(crs)
        code = self.cfg.dataset.source_crs.split(":")[-1]
        if code not in text:
            report.add_warning(
                f"Dataset CRS {text} does not mention {self.cfg.dataset.source_crs}"
            )

    def _validate_geometries(self, report: ValidationReport, features: list[Mapping[str, Any]]) -> None:
        types: Counter[str] = Counter()
        for idx, feature in enumerate(features):
            geometry = feature.get("geometry")
            if not isinstance(geometry, Mapping):
                report.add_warning(f"Feature {idx} has no geometry")
                continue
            geometry_type = geometry.get("type")
            types[str(geometry_type)] += 1
            if geometry_type not in SUPPORTED_GEOMETRY_TYPES:
                report.add_error(f"Feature {idx}: {UnsupportedGeometryType(geometry_type)}")
        summary = ", ".join(f"{name}={count}" for name, count in sorted(types.items()))
        report.add_info(f"Geometry types: {summary or 'none'}")

    def _validate_properties(self, report: ValidationReport, features: list[Mapping[str, Any]]) -> None:
        region_ids: Counter[str] = Counter()
        present: Counter[str] = Counter()
        nulls: Counter[str] = Counter()
        for idx, feature in enumerate(features):
            props = feature.get("properties")
            if not isinstance(props, Mapping):
                report.add_error(f"Feature {idx} has no properties")
                continue
            region_id = props.get(REGION_ID_FIELD)
            if region_id is None:
                report.add_warning(f"Feature {idx} has no {REGION_ID_FIELD}")
            else:
                region_ids[str(region_id)] += 1
            for metric in METRICS:
                if metric.id not in props:
                    continue
                present[metric.id] += 1
                value = props[metric.id]
                number = as_number(value)
                if number is None:
                    nulls[metric.id] += 1
                    if value is not None:
                        report.add_error(
                            f"Feature {region_id or idx}: {metric.id} is not numeric ({value!r})"
                        )
                elif not 0.0 <= number <= 1.0:
                    report.add_error(
                        f"Feature {region_id or idx}: {metric.id}={number} outside [0, 1]"
                    )

        duplicates = sorted(key for key, count in region_ids.items() if count > 1)
        if duplicates:
            report.add_error(f"Duplicate {REGION_ID_FIELD} values: {', '.join(duplicates)}")
        for metric in METRICS:
            if present[metric.id] == 0:
                report.add_error(f"Metric field {metric.id} missing from every feature")
            elif nulls[metric.id]:
                report.add_warning(
                    f"{metric.id}: {nulls[metric.id]} null values (charted as 0, shown as N/A)"
                )


def format_report_lines(report: ValidationReport) -> list[str]:
    lines: list[str] = []
    for msg in report.infos:
        lines.append(f"[INFO] {msg}")
    for msg in report.warnings:
        lines.append(f"[WARN] {msg}")
    for msg in report.errors:
        lines.append(f"[ERROR] {msg}")
    if report.ok:
        lines.append("[OK] Validation completed with no errors.")
    return lines
