"""Dashboard controller: startup gates, selection wiring, and page assembly."""

from __future__ import annotations

import logging
from enum import Enum
from html import escape
from pathlib import Path

from .charts import ChartRenderer
from .config import AppConfig
from .errors import DashboardError, LibraryLoadError, ReprojectionError
from .loader import DatasetLoader
from .metrics import METRICS, metric_label
from .models import ChartPoint, Dataset
from .overlay import MapOverlayRenderer
from .projection import ProjectionEngine
from .selection import ChartKind, RegionSelection


_LOGGER = logging.getLogger("resiliencemap.dashboard")

_PAGE_CSS = (
    "    body { margin: 0; font-family: Arial, sans-serif; background: #121417; color: #e0e0e0; }",
    "    .app-header { background: #1e2124; padding: 15px 20px; border-bottom: 1px solid #3a3a3a; }",
    "    .app-header h1 { margin: 0; font-size: 24px; font-weight: 600; color: #fff; }",
    "    .dashboard-container { display: flex; gap: 16px; padding: 16px; flex-wrap: wrap; }",
    "    .map-card, .chart-card { background: #1e2124; border-radius: 8px; padding: 16px; }",
    "    .map-card { flex: 3 1 560px; }",
    "    .chart-card { flex: 2 1 380px; }",
    "    .map { width: 100%; height: 560px; border: 0; }",
    "    .control-panel, .chart-controls { margin: 8px 0; }",
    "    .instructions, .no-selection, .control-hint { color: #a0a0a0; }",
    "    .metric-options li.current { color: #4caf50; font-weight: 600; }",
    "    .error, .loading { padding: 32px; font-size: 18px; }",
    "    .error { color: #ef5350; }",
    "    .region-name { font-weight: 700; }",
)


class DashboardPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class Dashboard:
    """Owns the engines, dataset, selection model, and renderers.

    Startup runs through fixed gates: engines, map surface, dataset, overlay.
    Any failure on the way leaves the dashboard in `failed` with a single
    message and no overlay.
    """

    def __init__(
        self,
        cfg: AppConfig,
        *,
        engine: ProjectionEngine | None = None,
        loader: DatasetLoader | None = None,
        overlay: MapOverlayRenderer | None = None,
        charts: ChartRenderer | None = None,
    ) -> None:
        self.cfg = cfg
        self.phase = DashboardPhase.UNINITIALIZED
        self.error: str | None = None
        self.libraries_ready = False
        self.dataset: Dataset | None = None
        self.engine = engine or ProjectionEngine()
        self.selection = RegionSelection(
            metric_id=cfg.dashboard.default_metric,
            chart_kind=cfg.dashboard.default_chart,
        )
        self.loader = loader or DatasetLoader(cfg.dataset, self.engine)
        self.overlay = overlay or MapOverlayRenderer(cfg.map)
        self.overlay.on_select = self.selection.select_region
        self.charts = charts or ChartRenderer()

    @property
    def ready(self) -> bool:
        return self.phase is DashboardPhase.READY

    def start(self) -> bool:
        if self.phase is not DashboardPhase.UNINITIALIZED:
            return self.ready
        self.phase = DashboardPhase.LOADING
        try:
            self.engine.start()
            self.libraries_ready = True
            _LOGGER.info("Required libraries loaded.")
        except LibraryLoadError as exc:
            return self._fail(f"Failed to load required libraries: {exc}")

        try:
            self.overlay.create_surface()
        except LibraryLoadError as exc:
            return self._fail(f"Failed to initialize map: {exc}")

        try:
            self.dataset = self.loader.load()
        except ReprojectionError as exc:
            return self._fail(f"Failed to reproject GeoJSON: {exc}")
        except DashboardError as exc:
            return self._fail(f"Failed to load GeoJSON: {exc}")

        if not self._rebuild_overlay():
            return False
        self.phase = DashboardPhase.READY
        return True

    def select_metric(self, metric_id: str) -> None:
        self.selection.select_metric(metric_id)
        if self.ready:
            self._rebuild_overlay()

    def click_region(self, region_id: str) -> None:
        if not self.ready:
            raise RuntimeError(f"Dashboard is not ready (phase: {self.phase.value})")
        self.overlay.click(region_id)

    def set_chart_kind(self, kind: ChartKind | str) -> None:
        self.selection.set_chart_kind(kind)

    def chart_series(self) -> list[ChartPoint]:
        return self.selection.derive_chart_series()

    def render_page(self) -> str:
        if self.phase is DashboardPhase.FAILED:
            body = [f"  <div class='error'><p>{escape(self.error or 'Unknown error')}</p></div>"]
        elif self.phase is not DashboardPhase.READY:
            body = ["  <div class='loading'>", "    <p>Loading map dashboard...</p>"]
            if not self.libraries_ready:
                body.append("    <p>Loading required libraries...</p>")
            body.append("  </div>")
        else:
            body = self._dashboard_body()
        return _page(self.cfg.project.title, body)

    def write_page(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_page(), encoding="utf-8")
        return path

    def _rebuild_overlay(self) -> bool:
        if self.dataset is None:
            return False
        try:
            self.overlay.render(self.dataset, self.selection.metric_id)
        except (DashboardError, RuntimeError, ValueError, TypeError) as exc:
            self.overlay.clear()
            return self._fail(f"Failed to create GeoJSON layer: {exc}")
        return True

    def _fail(self, message: str) -> bool:
        _LOGGER.error(message)
        self.phase = DashboardPhase.FAILED
        self.error = message
        return False

    def _dashboard_body(self) -> list[str]:
        project = self.cfg.project
        current = self.selection.metric_id
        metrics = [
            f"            <li class='{'current' if metric.id == current else 'other'}'>"
            f"<code>{escape(metric.id)}</code> {escape(metric.label)}</li>"
            for metric in METRICS
        ]
        map_html = self.overlay.to_html()
        return [
            "  <div class='dashboard-container'>",
            "    <div class='map-card'>",
            f"      <h2>{escape(project.heading)}</h2>",
            f"      <p>{escape(project.description)}</p>",
            "      <div class='control-panel'>",
            f"        <p><strong>Display Index:</strong> "
            f"{escape(metric_label(self.selection.metric_id))}</p>",
            "        <details>",
            "          <summary>Other indexes (rebuild with <code>--metric ID</code>)</summary>",
            "          <ul class='metric-options'>",
            *metrics,
            "          </ul>",
            "        </details>",
            "      </div>",
            f"      <iframe class='map' title='{escape(project.region_name)} map' "
            f"srcdoc=\"{escape(map_html, quote=True)}\"></iframe>",
            "      <p class='instructions'>Click on a region to view detailed metrics</p>",
            "    </div>",
            "    <div class='chart-card'>",
            *self._chart_section(),
            "    </div>",
            "  </div>",
        ]

    def _chart_section(self) -> list[str]:
        details = self.selection.details()
        if details is None:
            return [
                "      <h2>Region Metrics</h2>",
                "      <div class='no-selection'>",
                "        <p>Select a region on the map to view detailed metrics</p>",
                "        <p class='control-hint'>Rebuild with <code>--region DAUID</code> "
                "to chart one dissemination area.</p>",
                "      </div>",
            ]
        kind = self.selection.chart_kind
        other = ", ".join(item.value for item in ChartKind if item is not kind)
        chart_html = self.charts.render_html(
            self.chart_series(),
            kind,
            region_name=self.selection.region_id,
        )
        return [
            f"      <h2>Resilience Metrics | Dissemination Area: {escape(details.region_id)}</h2>",
            "      <div class='region-info'>",
            f"        <p class='region-name'>Dissemination Area: {escape(details.region_id)}</p>",
            f"        <p><strong>{escape(metric_label(self.selection.metric_id))}:</strong> "
            f"{escape(details.metric_value)}</p>",
            f"        <p>Population: {escape(details.population)}</p>",
            f"        <p>Land Area: {escape(details.land_area)} km²</p>",
            f"        <p>Population Density: {escape(details.population_density)} people/km²</p>",
            "      </div>",
            "      <div class='chart-controls'>",
            f"        <p><strong>Chart type:</strong> {kind.value.title()} Chart</p>",
            f"        <p class='control-hint'>Rebuild with <code>--chart {other}</code> "
            "for the other view.</p>",
            "      </div>",
            "      <div class='chart'>",
            chart_html,
            "      </div>",
        ]


def _page(title: str, body: list[str]) -> str:
    return "\n".join(
        [
            "<!doctype html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <meta name='viewport' content='width=device-width, initial-scale=1'>",
            f"  <title>{escape(title)}</title>",
            "  <style>",
            *_PAGE_CSS,
            "  </style>",
            "</head>",
            "<body>",
            "  <div class='app-header'>",
            f"    <h1>{escape(title)}</h1>",
            "  </div>",
            *body,
            "</body>",
            "</html>",
            "",
        ]
    )
