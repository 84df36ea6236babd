"""Error taxonomy for dashboard startup, data loading, and selection."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for every failure the dashboard reports to the user."""


class LibraryLoadError(DashboardError):
    """A required external engine (map or projection) could not be loaded."""


class FetchError(DashboardError):
    """Dataset retrieval failed or returned a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(FetchError):
    """Dataset body is not valid GeoJSON-like structured data."""


class ReprojectionError(DashboardError):
    """Coordinate transform failed; only happens when the engine is broken."""


class UnknownMetric(DashboardError, ValueError):
    """Selection requested a metric identifier outside the registry."""

    def __init__(self, metric_id: str) -> None:
        super().__init__(f"Unknown metric: {metric_id!r}")
        self.metric_id = metric_id


class UnsupportedGeometryType(DashboardError):
    """Geometry type outside the known set.

    The geometry walker never raises this; it logs and passes coordinates
    through. Validation uses it to describe offending features.
    """

    def __init__(self, geometry_type: object) -> None:
        super().__init__(f"Unsupported geometry type for reprojection: {geometry_type!r}")
        self.geometry_type = geometry_type
