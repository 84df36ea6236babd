"""Dataset retrieval and reprojection into the map display CRS."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urljoin

import requests

from .config import DatasetConfig
from .errors import FetchError, ParseError, ReprojectionError
from .geometry import GeometryKind, GeometryWalker
from .models import Dataset
from .projection import DEST_CRS_URN, ProjectionEngine, default_engine


_LOGGER = logging.getLogger("resiliencemap.loader")


class DatasetLoader:
    """Single-shot loader: fetch, deep copy, reproject, relabel CRS.

    Nothing is cached or retried. Either the whole dataset is returned
    transformed or an error is raised.
    """

    def __init__(self, cfg: DatasetConfig, engine: ProjectionEngine | None = None) -> None:
        self.cfg = cfg
        self.engine = engine or default_engine()
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent})

    def resolve_url(self, url: str | None = None) -> str:
        target = url or self.cfg.url
        if self.cfg.base_url is not None and not target.startswith(("http://", "https://")):
            return urljoin(self.cfg.base_url, target)
        return target

    def load(self, url: str | None = None) -> Dataset:
        location = self.resolve_url(url)
        _LOGGER.info("Loading dataset from %s", location)
        raw = self.fetch(location)
        _LOGGER.debug("Dataset CRS: %s", json.dumps(raw.get("crs")) if raw.get("crs") else "none")
        reprojected = self.reproject(raw)
        try:
            dataset = Dataset.from_geojson(reprojected)
        except ValueError as exc:
            raise ParseError(f"Invalid dataset structure: {exc}") from exc
        _log_sample(dataset)
        return dataset

    def fetch(self, location: str) -> dict[str, Any]:
        if location.startswith(("http://", "https://")):
            text = self._fetch_remote(location)
        else:
            text = self._read_local(location)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Dataset is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
            raise ParseError("Dataset has no 'features' list")
        return payload

    def reproject(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Return a reprojected deep copy of a GeoJSON mapping."""
        result = copy.deepcopy(dict(raw))
        walker = GeometryWalker(self.engine, source=self.cfg.source_crs, dest=self.cfg.dest_crs)
        _LOGGER.info("Reprojecting %s -> %s", self.cfg.source_crs, self.cfg.dest_crs)
        features = result.get("features") or []
        for idx, feature in enumerate(features):
            if not isinstance(feature, dict):
                continue
            geometry = feature.get("geometry")
            if not isinstance(geometry, Mapping):
                continue
            try:
                feature["geometry"] = walker.transform_geometry(geometry)
            except ReprojectionError as exc:
                raise ReprojectionError(f"Failed to reproject feature {idx}: {exc}") from exc
            except (TypeError, ValueError, IndexError) as exc:
                raise ReprojectionError(
                    f"Malformed coordinates in feature {idx} ({geometry.get('type')!r}): {exc}"
                ) from exc
        result["crs"] = {"type": "name", "properties": {"name": DEST_CRS_URN}}
        _LOGGER.info("Reprojection complete (%d features)", len(features))
        return result

    def _fetch_remote(self, url: str) -> str:
        try:
            response = self._session.get(url, timeout=self.cfg.request_timeout_s)
        except requests.RequestException as exc:
            raise FetchError(f"File not found or network error: {exc}") from exc
        try:
            if not response.ok:
                raise FetchError(
                    f"File not found or network error: {response.status_code}",
                    status_code=response.status_code,
                )
            return response.text
        finally:
            response.close()

    def _read_local(self, location: str) -> str:
        path = Path(location.removeprefix("file://"))
        if not path.is_absolute():
            path = self.cfg.root_dir / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FetchError(f"File not found or unreadable: {path} ({exc})") from exc


def _log_sample(dataset: Dataset) -> None:
    if not dataset.features:
        return
    geometry = dataset.features[0].geometry or {}
    coords = geometry.get("coordinates")
    if geometry.get("type") == GeometryKind.MULTI_POLYGON.value and coords and coords[0] and coords[0][0]:
        _LOGGER.debug("Sample reprojected coordinates (lon, lat): %s", coords[0][0][:3])
    else:
        _LOGGER.debug("Sample reprojected coordinates: geometry type or structure not expected")
