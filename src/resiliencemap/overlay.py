"""Choropleth overlay on an interactive folium/Leaflet map."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from html import escape
from typing import Any, Callable, Mapping, Sequence

from .classify import color_for, legend_buckets
from .config import MapConfig
from .errors import LibraryLoadError
from .metrics import metric_label
from .models import Dataset, Feature
from .selection import region_details


_LOGGER = logging.getLogger("resiliencemap.overlay")

BASE_STYLE: Mapping[str, Any] = {
    "weight": 1,
    "opacity": 1,
    "color": "black",
    "dashArray": "3",
}
HIGHLIGHT_STYLE: Mapping[str, Any] = {
    "weight": 3,
    "color": "#fff",
    "dashArray": "",
}

_LEGEND_TEMPLATE = """
{% macro script(this, kwargs) %}
(function() {
  var legend = L.control({position: 'bottomright'});
  legend.onAdd = function(map) {
    var div = L.DomUtil.create('div', 'info legend');
    div.innerHTML = `{{ this.html | safe }}`;
    L.DomEvent.disableClickPropagation(div);
    return div;
  };
  legend.addTo({{ this._parent.get_name() }});
})();
{% endmacro %}
"""

SelectionHandler = Callable[[Mapping[str, Any]], None]


@lru_cache(maxsize=1)
def _require_folium() -> Any:
    try:
        import folium
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("folium is required for the interactive map") from exc
    return folium


@lru_cache(maxsize=1)
def _require_macro_element() -> tuple[Any, Any]:
    try:
        from branca.element import MacroElement
        from jinja2 import Template
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("branca and jinja2 are required for map legends") from exc
    return (MacroElement, Template)


@lru_cache(maxsize=1)
def _require_xyzservices_providers() -> Any:
    try:
        from xyzservices import providers
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("xyzservices is required for basemap tile definitions") from exc
    return providers


@lru_cache(maxsize=1)
def _require_shapely_shape() -> Any:
    try:
        from shapely.geometry import shape
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("shapely is required for overlay bounds") from exc
    return shape


@dataclass(slots=True)
class OverlayShape:
    """One rendered region with its base style and current (possibly hovered) style."""

    region_id: str | None
    attributes: Mapping[str, Any]
    feature: Feature
    base_style: Mapping[str, Any]
    style: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.style:
            self.style = dict(self.base_style)


def feature_style(
    attributes: Mapping[str, Any] | None,
    metric_id: str,
    *,
    fill_opacity: float = 0.7,
) -> dict[str, Any]:
    value = None if attributes is None else attributes.get(metric_id)
    return {"fillColor": color_for(value), **BASE_STYLE, "fillOpacity": fill_opacity}


def popup_html(attributes: Mapping[str, Any], metric_id: str) -> str:
    details = region_details(attributes, metric_id)
    return "\n".join(
        [
            "<div class='popup-content'>",
            f"  <h3>Dissemination Area: {escape(details.region_id)}</h3>",
            f"  <p><strong>{escape(details.metric_label)}:</strong> {escape(details.metric_value)}</p>",
            f"  <p>Population: {escape(details.population)}</p>",
            f"  <p>Land area: {escape(details.land_area)} km²</p>",
            f"  <p>Population Density: {escape(details.population_density)} people/km²</p>",
            "</div>",
        ]
    )


def legend_html(metric_id: str) -> str:
    lines = [f"<h4>{escape(metric_label(metric_id))}</h4>"]
    for bucket in legend_buckets():
        lines.append(f"<i style=\"background:{bucket.color}\"></i> {escape(bucket.label)}<br>")
    return "".join(lines)


def overlay_bounds(features: Sequence[Feature]) -> list[list[float]] | None:
    """Leaflet-style [[south, west], [north, east]] bounds, or None if invalid."""
    shape = _require_shapely_shape()
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for feature in features:
        if not feature.geometry:
            continue
        try:
            geom = shape(feature.geometry)
        except Exception as exc:
            _LOGGER.debug("Skipping unreadable geometry in bounds: %s", exc)
            continue
        if geom.is_empty:
            continue
        x0, y0, x1, y1 = geom.bounds
        min_x, min_y = min(min_x, x0), min(min_y, y0)
        max_x, max_y = max(max_x, x1), max(max_y, y1)
    values = (min_x, min_y, max_x, max_y)
    if not all(math.isfinite(v) for v in values) or min_x > max_x or min_y > max_y:
        return None
    return [[min_y, min_x], [max_y, max_x]]


class MapOverlayRenderer:
    """Builds the map surface and rebuilds the choropleth overlay on demand.

    Every `render()` discards the previous shapes and legend and creates them
    again for the given dataset and metric.
    """

    def __init__(self, cfg: MapConfig, *, on_select: SelectionHandler | None = None) -> None:
        self.cfg = cfg
        self.on_select = on_select
        self.surface: Any | None = None
        self.shapes: list[OverlayShape] = []
        self.legend: Any | None = None
        self.metric_id: str | None = None
        self.bounds: list[list[float]] | None = None

    @property
    def has_overlay(self) -> bool:
        return self.metric_id is not None

    def create_surface(self) -> Any:
        folium = _require_folium()
        self.surface = folium.Map(
            location=list(self.cfg.center),
            zoom_start=self.cfg.zoom,
            tiles=self._tiles(),
            zoom_control=True,
            control_scale=True,
        )
        _LOGGER.info("Map surface initialized at %s (zoom %d)", self.cfg.center, self.cfg.zoom)
        return self.surface

    def render(self, dataset: Dataset, metric_id: str) -> None:
        if self.surface is None:
            raise RuntimeError("Map surface must be created before rendering the overlay")
        self.clear()
        surface = self.create_surface()
        folium = _require_folium()

        group = folium.FeatureGroup(name=metric_label(metric_id))
        shapes: list[OverlayShape] = []
        for idx, feature in enumerate(dataset.features):
            if not feature.properties:
                _LOGGER.warning("Feature without properties found at index %d; skipping", idx)
                continue
            if not feature.geometry:
                _LOGGER.warning("Feature %s has no geometry; skipping", feature.region_id or idx)
                continue
            shape = OverlayShape(
                region_id=feature.region_id,
                attributes=dict(feature.properties),
                feature=feature,
                base_style=feature_style(
                    feature.properties, metric_id, fill_opacity=self.cfg.fill_opacity
                ),
            )
            self._layer_for(shape, metric_id).add_to(group)
            shapes.append(shape)
        group.add_to(surface)

        self.legend = self._legend_for(metric_id)
        surface.add_child(self.legend)
        self.shapes = shapes
        self.metric_id = metric_id
        _LOGGER.info("Overlay added: %d shapes styled by %s", len(shapes), metric_id)
        self._fit_view(shapes)

    def clear(self) -> None:
        self.shapes = []
        self.legend = None
        self.metric_id = None
        self.bounds = None

    def shape(self, region_id: str) -> OverlayShape:
        for shape in self.shapes:
            if shape.region_id == str(region_id):
                return shape
        raise KeyError(f"No rendered region {region_id!r}")

    def click(self, region_id: str) -> Mapping[str, Any]:
        shape = self.shape(region_id)
        attributes = dict(shape.attributes)
        if self.on_select is not None:
            self.on_select(attributes)
        return attributes

    def hover(self, region_id: str) -> dict[str, Any]:
        shape = self.shape(region_id)
        shape.style.update(self._highlight_style())
        return dict(shape.style)

    def leave(self, region_id: str) -> dict[str, Any]:
        shape = self.shape(region_id)
        shape.style = dict(shape.base_style)
        return dict(shape.style)

    def to_html(self) -> str:
        if self.surface is None:
            return ""
        return self.surface.get_root().render()

    def _highlight_style(self) -> dict[str, Any]:
        return {**HIGHLIGHT_STYLE, "fillOpacity": self.cfg.highlight_opacity}

    def _layer_for(self, shape: OverlayShape, metric_id: str) -> Any:
        folium = _require_folium()
        base_style = dict(shape.base_style)
        highlight = self._highlight_style()
        return folium.GeoJson(
            shape.feature.to_geojson(),
            style_function=lambda _feature, style=base_style: style,
            highlight_function=lambda _feature, style=highlight: style,
            popup=folium.Popup(popup_html(shape.attributes, metric_id), max_width=320),
            tooltip=shape.region_id,
        )

    def _legend_for(self, metric_id: str) -> Any:
        macro_element, template = _require_macro_element()
        legend = macro_element()
        legend._template = template(_LEGEND_TEMPLATE)
        legend.html = legend_html(metric_id).replace("`", "\\`")
        return legend

    def _fit_view(self, shapes: Sequence[OverlayShape]) -> None:
        try:
            bounds = overlay_bounds([shape.feature for shape in shapes])
        except LibraryLoadError as exc:
            _LOGGER.error("Error getting overlay bounds: %s", exc)
            bounds = None
        if bounds is None:
            _LOGGER.warning("Invalid overlay bounds; keeping configured center %s.", self.cfg.center)
            return
        self.bounds = bounds
        self.surface.fit_bounds(bounds)
        _LOGGER.info("Map fit to overlay bounds %s", bounds)

    def _tiles(self) -> Any:
        providers = _require_xyzservices_providers()
        try:
            return providers.query_name(self.cfg.tiles)
        except ValueError as exc:
            raise LibraryLoadError(f"Unknown tile provider '{self.cfg.tiles}'") from exc
