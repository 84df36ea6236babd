"""Coordinate reprojection between the dataset CRS and map display CRS."""

from __future__ import annotations

import logging
import math
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Sequence

from .errors import LibraryLoadError, ReprojectionError


SOURCE_CRS = "EPSG:26910"  # UTM zone 10N (NAD83)
DEST_CRS = "EPSG:4326"  # WGS84 longitude/latitude
DEST_CRS_URN = "urn:ogc:def:crs:EPSG::4326"

CRS_DEFINITIONS: Mapping[str, str] = {
    SOURCE_CRS: "+proj=utm +zone=10 +ellps=GRS80 +towgs84=0,0,0,0,0,0,0 +units=m +no_defs +type=crs",
    DEST_CRS: "+proj=longlat +datum=WGS84 +no_defs +type=crs",
}

_LOGGER = logging.getLogger("resiliencemap.projection")


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@lru_cache(maxsize=1)
def _require_pyproj() -> Any:
    try:
        import pyproj
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("pyproj is required for coordinate reprojection") from exc
    return pyproj


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ProjectionEngine:
    """Handle on pyproj with lazily registered CRS definitions.

    Definitions are registered on first use of a code and never replaced once
    present. Transformers are built once per (source, destination) pair.
    """

    def __init__(self, definitions: Mapping[str, str] = CRS_DEFINITIONS) -> None:
        self._known = dict(definitions)
        self._registered: dict[str, Any] = {}
        self._transformers: dict[tuple[str, str], Any] = {}
        self.state = EngineState.UNINITIALIZED
        self.error: str | None = None

    @property
    def ready(self) -> bool:
        return self.state is EngineState.READY

    def start(self) -> None:
        if self.state is EngineState.READY:
            return
        self.state = EngineState.LOADING
        try:
            pyproj = _require_pyproj()
        except LibraryLoadError as exc:
            self.state = EngineState.FAILED
            self.error = str(exc)
            raise
        self.state = EngineState.READY
        _LOGGER.info("Projection engine ready (pyproj %s)", getattr(pyproj, "__version__", "?"))

    def is_defined(self, code: str) -> bool:
        return code in self._registered

    def define(self, code: str, definition: str | None = None) -> None:
        """Register a CRS definition; no-op when `code` is already registered."""
        if code in self._registered:
            return
        self._require_ready()
        proj_string = definition if definition is not None else self._known.get(code)
        if proj_string is None:
            raise ReprojectionError(f"No projection definition for {code}")
        try:
            self._registered[code] = _require_pyproj().CRS.from_user_input(proj_string)
        except Exception as exc:
            raise ReprojectionError(f"Invalid projection definition for {code}: {exc}") from exc
        _LOGGER.debug("Registered projection definition %s", code)

    def transformer(self, source: str, dest: str) -> Any:
        key = (source, dest)
        cached = self._transformers.get(key)
        if cached is not None:
            return cached
        self.define(source)
        self.define(dest)
        try:
            built = _require_pyproj().Transformer.from_crs(
                self._registered[source],
                self._registered[dest],
                always_xy=True,
            )
        except Exception as exc:
            raise ReprojectionError(f"Cannot build transformer {source} -> {dest}: {exc}") from exc
        self._transformers[key] = built
        return built

    def transform(self, source: str, dest: str, pair: Sequence[Any]) -> Any:
        """Project one coordinate pair, returning a new `[x, y]` list.

        Pairs with fewer than two numeric components are returned unchanged.
        Any third dimension is dropped.
        """
        if not _is_pair(pair):
            return pair
        transformer = self.transformer(source, dest)
        try:
            x, y = transformer.transform(float(pair[0]), float(pair[1]))
        except Exception as exc:
            raise ReprojectionError(f"Failed to transform {list(pair[:2])}: {exc}") from exc
        if not (math.isfinite(x) and math.isfinite(y)):
            _LOGGER.debug("Non-finite projection result for %s", list(pair[:2]))
        return [x, y]

    def _require_ready(self) -> None:
        if self.state is EngineState.UNINITIALIZED:
            try:
                self.start()
            except LibraryLoadError as exc:
                raise ReprojectionError(str(exc)) from exc
        if self.state is not EngineState.READY:
            raise ReprojectionError(
                f"Projection engine is not available ({self.error or self.state.value})"
            )


def _is_pair(pair: Any) -> bool:
    if not isinstance(pair, Sequence) or isinstance(pair, (str, bytes)):
        return False
    return len(pair) >= 2 and _is_number(pair[0]) and _is_number(pair[1])


_DEFAULT_ENGINE: ProjectionEngine | None = None


def default_engine() -> ProjectionEngine:
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        _DEFAULT_ENGINE = ProjectionEngine()
    return _DEFAULT_ENGINE


def transform(
    source: str,
    dest: str,
    pair: Sequence[Any],
    *,
    engine: ProjectionEngine | None = None,
) -> Any:
    return (engine or default_engine()).transform(source, dest, pair)
