"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .metrics import PRIMARY_METRIC_ID, is_registered
from .projection import CRS_DEFINITIONS, DEST_CRS, SOURCE_CRS
from .selection import ChartKind


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _optional_float(value: Any, field_name: str) -> float | None:
    if value is None:
        return None
    return _float(value, field_name)


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _crs_code(value: Any, field_name: str) -> str:
    code = _str(value, field_name).upper()
    if code not in CRS_DEFINITIONS:
        allowed = ", ".join(sorted(CRS_DEFINITIONS))
        raise ValueError(f"Unsupported CRS '{code}' for '{field_name}' (allowed: {allowed})")
    return code


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    title: str
    heading: str
    region_name: str
    description: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectConfig:
        return cls(
            title=_str(raw.get("title"), "project.title"),
            heading=_str(raw.get("heading") or raw.get("title"), "project.heading"),
            region_name=_str(raw.get("region_name"), "project.region_name"),
            description=_str(raw.get("description"), "project.description"),
        )


@dataclass(frozen=True, slots=True)
class PathsConfig:
    build_root: Path
    output_html: Path
    reprojected_geojson: Path
    manifests_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (
            self.build_root,
            self.output_html.parent,
            self.reprojected_geojson.parent,
            self.manifests_dir,
            self.logs_dir,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            build_root=_path_from_cfg(raw.get("build_root"), "paths.build_root", root_dir),
            output_html=_path_from_cfg(raw.get("output_html"), "paths.output_html", root_dir),
            reprojected_geojson=_path_from_cfg(
                raw.get("reprojected_geojson"), "paths.reprojected_geojson", root_dir
            ),
            manifests_dir=_path_from_cfg(raw.get("manifests_dir"), "paths.manifests_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class DatasetConfig:
    url: str
    base_url: str | None
    root_dir: Path
    source_crs: str
    dest_crs: str
    request_timeout_s: float | None
    user_agent: str

    @property
    def is_remote(self) -> bool:
        return self.base_url is not None or self.url.startswith(("http://", "https://"))

    @property
    def local_path(self) -> Path | None:
        if self.is_remote:
            return None
        p = Path(self.url)
        return p if p.is_absolute() else self.root_dir / p

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> DatasetConfig:
        timeout = _optional_float(raw.get("request_timeout_s"), "dataset.request_timeout_s")
        if timeout is not None and timeout <= 0:
            raise ValueError("dataset.request_timeout_s must be positive or null")
        return cls(
            url=_str(raw.get("url"), "dataset.url"),
            base_url=_optional_str(raw.get("base_url"), "dataset.base_url"),
            root_dir=root_dir,
            source_crs=_crs_code(raw.get("source_crs", SOURCE_CRS), "dataset.source_crs"),
            dest_crs=_crs_code(raw.get("dest_crs", DEST_CRS), "dataset.dest_crs"),
            request_timeout_s=timeout,
            user_agent=_str(
                raw.get("user_agent", "resilience-dashboard/0.1"), "dataset.user_agent"
            ),
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    center: tuple[float, float]
    zoom: int
    tiles: str
    fill_opacity: float
    highlight_opacity: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        center_raw = raw.get("center", [49.13, -122.85])
        if not isinstance(center_raw, list) or len(center_raw) != 2:
            raise ValueError("Expected [lat, lon] list for 'map.center'")
        lat = _float(center_raw[0], "map.center[0]")
        lon = _float(center_raw[1], "map.center[1]")
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
            raise ValueError("map.center must be a valid [lat, lon]")
        fill_opacity = _float(raw.get("fill_opacity", 0.7), "map.fill_opacity")
        highlight_opacity = _float(raw.get("highlight_opacity", 0.8), "map.highlight_opacity")
        for name, value in (("fill_opacity", fill_opacity), ("highlight_opacity", highlight_opacity)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"map.{name} must be between 0 and 1")
        return cls(
            center=(lat, lon),
            zoom=_int(raw.get("zoom", 11), "map.zoom"),
            tiles=_str(raw.get("tiles", "CartoDB.DarkMatter"), "map.tiles"),
            fill_opacity=fill_opacity,
            highlight_opacity=highlight_opacity,
        )


@dataclass(frozen=True, slots=True)
class DashboardConfig:
    default_metric: str
    default_chart: ChartKind

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DashboardConfig:
        metric = _str(raw.get("default_metric", PRIMARY_METRIC_ID), "dashboard.default_metric")
        if not is_registered(metric):
            raise ValueError(f"Unknown metric '{metric}' for 'dashboard.default_metric'")
        chart_raw = _str(raw.get("default_chart", ChartKind.BAR.value), "dashboard.default_chart")
        try:
            chart = ChartKind(chart_raw.casefold())
        except ValueError:
            raise ValueError("dashboard.default_chart must be 'bar' or 'radar'") from None
        return cls(default_metric=metric, default_chart=chart)


@dataclass(frozen=True, slots=True)
class BuildConfig:
    write_manifest: bool
    write_reprojected: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> BuildConfig:
        return cls(
            write_manifest=_bool(raw.get("write_manifest", True), "build.write_manifest"),
            write_reprojected=_bool(raw.get("write_reprojected", True), "build.write_reprojected"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    project: ProjectConfig
    paths: PathsConfig
    dataset: DatasetConfig
    map: MapConfig
    dashboard: DashboardConfig
    build: BuildConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            project=ProjectConfig.from_mapping(_mapping(raw.get("project"), "project")),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            dataset=DatasetConfig.from_mapping(_mapping(raw.get("dataset"), "dataset"), root_dir),
            map=MapConfig.from_mapping(_optional_mapping(raw.get("map"), "map")),
            dashboard=DashboardConfig.from_mapping(
                _optional_mapping(raw.get("dashboard"), "dashboard")
            ),
            build=BuildConfig.from_mapping(_optional_mapping(raw.get("build"), "build")),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
