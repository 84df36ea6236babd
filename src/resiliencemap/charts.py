"""Bar and radar charts of a region's normalized metrics."""

from __future__ import annotations

from functools import lru_cache
from html import escape
from typing import Any, Sequence

from .errors import LibraryLoadError
from .models import ChartPoint
from .selection import ChartKind


PLACEHOLDER_TEXT = "Select a region on the map to view its data"
MAX_VALUE = 1.0  # inputs are pre-normalized
ACCENT = "#4caf50"
GRID = "#3a3a3a"
TICK = "#a0a0a0"
BAR_BACKGROUND = "#2c2f33"


@lru_cache(maxsize=1)
def _require_plotly_graph_objects() -> Any:
    try:
        import plotly.graph_objects as go
    except ImportError as exc:  # pragma: no cover
        raise LibraryLoadError("plotly is required for chart rendering") from exc
    return go


class ChartRenderer:
    def __init__(self, *, include_plotlyjs: str | bool = "cdn") -> None:
        self.include_plotlyjs = include_plotlyjs

    def build_figure(
        self,
        series: Sequence[ChartPoint],
        kind: ChartKind | str,
        *,
        region_name: str | None = None,
    ) -> Any | None:
        """Plotly figure for `series`, or None when there is nothing to chart."""
        if not series:
            return None
        chart_kind = ChartKind(kind)
        if chart_kind is ChartKind.BAR:
            return self._bar(series)
        return self._radar(series, region_name=region_name or "Region")

    def render_html(
        self,
        series: Sequence[ChartPoint],
        kind: ChartKind | str,
        *,
        region_name: str | None = None,
    ) -> str:
        fig = self.build_figure(series, kind, region_name=region_name)
        if fig is None:
            return f"<div class='no-selection'><p>{escape(PLACEHOLDER_TEXT)}</p></div>"
        return fig.to_html(full_html=False, include_plotlyjs=self.include_plotlyjs)

    def _bar(self, series: Sequence[ChartPoint]) -> Any:
        go = _require_plotly_graph_objects()
        labels = [point.label for point in series]
        fig = go.Figure(
            go.Bar(
                x=[MAX_VALUE] * len(series),
                y=labels,
                orientation="h",
                marker=dict(color=BAR_BACKGROUND),
                hoverinfo="skip",
                showlegend=False,
            )
        )
        fig.add_trace(
            go.Bar(
                x=[point.value for point in series],
                y=labels,
                orientation="h",
                marker=dict(color=ACCENT),
                hovertemplate="%{y}: %{x:.2f}<extra></extra>",
                showlegend=False,
            )
        )
        fig.update_layout(
            barmode="overlay",
            margin=dict(t=5, r=30, l=150, b=5),
            paper_bgcolor="rgba(0,0,0,0)",
            plot_bgcolor="rgba(0,0,0,0)",
            font=dict(color=TICK, size=12),
        )
        fig.update_xaxes(range=[0, MAX_VALUE], tickformat=".1f", gridcolor=GRID, griddash="dash")
        fig.update_yaxes(autorange="reversed", showgrid=False)
        return fig

    def _radar(self, series: Sequence[ChartPoint], *, region_name: str) -> Any:
        go = _require_plotly_graph_objects()
        fig = go.Figure(
            go.Scatterpolar(
                r=[point.value for point in series],
                theta=[point.label for point in series],
                fill="toself",
                name=region_name,
                line=dict(color=ACCENT),
                fillcolor="rgba(76, 175, 80, 0.6)",
                hovertemplate="%{theta}: %{r:.2f}<extra></extra>",
            )
        )
        fig.update_layout(
            polar=dict(
                radialaxis=dict(range=[0, MAX_VALUE], tickformat=".1f", angle=30, gridcolor=GRID),
                angularaxis=dict(gridcolor=GRID),
                bgcolor="rgba(0,0,0,0)",
            ),
            paper_bgcolor="rgba(0,0,0,0)",
            font=dict(color=TICK, size=12),
            showlegend=False,
        )
        return fig
