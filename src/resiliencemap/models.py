"""Domain models shared across dashboard modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence


REGION_ID_FIELD = "DAUID"


@dataclass(frozen=True, slots=True)
class MetricDescriptor:
    """Registry entry for one normalized metric shown on the map and charts."""

    id: str
    label: str
    description: str


@dataclass(frozen=True, slots=True)
class Feature:
    """One region shape plus its attribute values.

    `geometry` is a GeoJSON geometry mapping; `properties` may be None when
    the source file omits it.
    """

    geometry: Mapping[str, Any] | None
    properties: Mapping[str, Any] | None

    @property
    def region_id(self) -> str | None:
        if not self.properties:
            return None
        value = self.properties.get(REGION_ID_FIELD)
        return None if value is None else str(value)

    def value(self, metric_id: str) -> Any:
        if not self.properties:
            return None
        return self.properties.get(metric_id)

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": None if self.geometry is None else dict(self.geometry),
            "properties": None if self.properties is None else dict(self.properties),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Feature:
        geometry = data.get("geometry")
        properties = data.get("properties")
        if geometry is not None and not isinstance(geometry, Mapping):
            raise ValueError("Expected mapping for feature 'geometry'")
        if properties is not None and not isinstance(properties, Mapping):
            raise ValueError("Expected mapping for feature 'properties'")
        return cls(geometry=geometry, properties=properties)


@dataclass(frozen=True, slots=True)
class Dataset:
    """Ordered features plus the coordinate reference metadata they are in."""

    features: tuple[Feature, ...]
    crs: Mapping[str, Any] | None = None

    @property
    def crs_name(self) -> str | None:
        if not self.crs:
            return None
        props = self.crs.get("properties")
        if isinstance(props, Mapping) and props.get("name") is not None:
            return str(props["name"])
        name = self.crs.get("name")
        return None if name is None else str(name)

    def find(self, region_id: str) -> Feature | None:
        wanted = str(region_id).strip()
        for feature in self.features:
            if feature.region_id == wanted:
                return feature
        return None

    def to_geojson(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "FeatureCollection",
            "features": [feature.to_geojson() for feature in self.features],
        }
        if self.crs is not None:
            payload["crs"] = dict(self.crs)
        return payload

    @classmethod
    def from_geojson(cls, data: Mapping[str, Any]) -> Dataset:
        raw_features = data.get("features")
        if not isinstance(raw_features, Sequence) or isinstance(raw_features, (str, bytes)):
            raise ValueError("Expected list for 'features'")
        features: list[Feature] = []
        for idx, item in enumerate(raw_features):
            if not isinstance(item, Mapping):
                raise ValueError(f"Expected mapping at features[{idx}]")
            features.append(Feature.from_mapping(item))
        crs = data.get("crs")
        if crs is not None and not isinstance(crs, Mapping):
            raise ValueError("Expected mapping for 'crs'")
        return cls(features=tuple(features), crs=crs)


@dataclass(frozen=True, slots=True)
class ChartPoint:
    label: str
    value: float


@dataclass(frozen=True, slots=True)
class RegionDetails:
    """Display-ready strings for the popup and the detail panel."""

    region_id: str
    metric_label: str
    metric_value: str
    population: str
    land_area: str
    population_density: str


@dataclass(frozen=True, slots=True)
class BuildManifest:
    """Build metadata used for audit trails of generated dashboards."""

    generated_at_utc: str
    config_hash_sha256: str
    git_commit: str | None
    steps: Mapping[str, str]
    artifacts: Mapping[str, str]
    selection: Mapping[str, str | None] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        git_commit: str | None,
        steps: Mapping[str, str],
        artifacts: Mapping[str, str],
        selection: Mapping[str, str | None],
    ) -> BuildManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            git_commit=git_commit,
            steps=steps,
            artifacts=artifacts,
            selection=selection,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "git_commit": self.git_commit,
            "steps": dict(self.steps),
            "artifacts": dict(self.artifacts),
            "selection": dict(self.selection),
        }
