"""Recursive reprojection of GeoJSON geometry coordinates."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from .projection import DEST_CRS, SOURCE_CRS, ProjectionEngine, default_engine


_LOGGER = logging.getLogger("resiliencemap.geometry")


class GeometryKind(str, Enum):
    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_LINE_STRING = "MultiLineString"
    MULTI_POLYGON = "MultiPolygon"
    GEOMETRY_COLLECTION = "GeometryCollection"

    @classmethod
    def parse(cls, value: Any) -> GeometryKind | None:
        try:
            return cls(value)
        except ValueError:
            return None


SUPPORTED_GEOMETRY_TYPES = frozenset(kind.value for kind in GeometryKind)


class GeometryWalker:
    """Apply one coordinate transform to every leaf pair of a geometry.

    Output mirrors the input nesting exactly. Inputs are never mutated:
    composite levels are rebuilt as new lists.
    """

    def __init__(
        self,
        engine: ProjectionEngine | None = None,
        *,
        source: str = SOURCE_CRS,
        dest: str = DEST_CRS,
    ) -> None:
        self.engine = engine or default_engine()
        self.source = source
        self.dest = dest

    def transform_coordinates(self, coordinates: Any, geometry_type: Any) -> Any:
        if coordinates is None:
            return None
        kind = GeometryKind.parse(geometry_type)
        if kind is None:
            _LOGGER.warning("Unsupported geometry type for reprojection: %r", geometry_type)
            return coordinates
        if kind is GeometryKind.POINT:
            return self._pair(coordinates)
        if kind is GeometryKind.LINE_STRING:
            return [self._pair(point) for point in coordinates]
        if kind in (GeometryKind.POLYGON, GeometryKind.MULTI_LINE_STRING):
            return [self.transform_coordinates(ring, GeometryKind.LINE_STRING) for ring in coordinates]
        if kind is GeometryKind.MULTI_POLYGON:
            return [self.transform_coordinates(polygon, GeometryKind.POLYGON) for polygon in coordinates]
        # GeometryCollection: members carry their own declared type.
        return [self._member(member) for member in coordinates]

    def transform_geometry(self, geometry: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Return a reprojected copy of a GeoJSON geometry object."""
        if geometry is None:
            return None
        out = dict(geometry)
        geometry_type = geometry.get("type")
        if geometry_type == GeometryKind.GEOMETRY_COLLECTION.value and "geometries" in geometry:
            members = geometry.get("geometries") or []
            out["geometries"] = [self._member(member) for member in members]
            return out
        if geometry.get("coordinates") is not None:
            out["coordinates"] = self.transform_coordinates(geometry["coordinates"], geometry_type)
        return out

    def _member(self, member: Any) -> Any:
        if not isinstance(member, Mapping):
            _LOGGER.warning("Skipping non-geometry collection member: %r", member)
            return member
        return self.transform_geometry(member)

    def _pair(self, pair: Any) -> Any:
        return self.engine.transform(self.source, self.dest, pair)


def transform_coordinates(
    coordinates: Any,
    geometry_type: Any,
    *,
    engine: ProjectionEngine | None = None,
) -> Any:
    return GeometryWalker(engine).transform_coordinates(coordinates, geometry_type)


def transform_geometry(
    geometry: Mapping[str, Any] | None,
    *,
    engine: ProjectionEngine | None = None,
) -> dict[str, Any] | None:
    return GeometryWalker(engine).transform_geometry(geometry)
