"""CLI entrypoint for the resilience dashboard builder."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .dashboard import Dashboard
from .errors import DashboardError
from .loader import DatasetLoader
from .metrics import metric_ids
from .models import BuildManifest
from .selection import ChartKind
from .util import detect_git_commit, ensure_directories, sha256_file, setup_logging, write_json
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("resiliencemap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resiliencemap",
        description="Community earthquake resilience dashboard builder.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    build_p = subparsers.add_parser("build", help="Load, reproject, and write the dashboard page.")
    add_common(build_p)
    build_p.add_argument(
        "--metric",
        default=None,
        choices=metric_ids(),
        metavar="METRIC",
        help="Metric used to color the map (default from config).",
    )
    build_p.add_argument("--region", default=None, help="DAUID of the region to preselect.")
    build_p.add_argument(
        "--chart",
        default=None,
        choices=[kind.value for kind in ChartKind],
        help="Chart kind for the selected region (default from config).",
    )

    validate_p = subparsers.add_parser("validate", help="Validate config and dataset.")
    add_common(validate_p)

    reproject_p = subparsers.add_parser("reproject", help="Write the reprojected GeoJSON only.")
    add_common(reproject_p)
    reproject_p.add_argument("--output", default=None, help="Output path (default from config).")

    series_p = subparsers.add_parser("series", help="Log the chart series for one region.")
    add_common(series_p)
    series_p.add_argument("--region", required=True, help="DAUID of the region.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "build.log"
    setup_logging(log_path, verbose=args.verbose)
    for path in ensure_directories(cfg.paths.build_directories):
        LOGGER.debug("Created %s", path)
    return cfg


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_build(
    cfg: AppConfig,
    *,
    metric: str | None,
    region: str | None,
    chart: str | None,
) -> int:
    LOGGER.info("Starting dashboard build.")
    dashboard = Dashboard(cfg)
    if metric is not None:
        dashboard.select_metric(metric)
    if chart is not None:
        dashboard.set_chart_kind(chart)
    selection_step = "skipped"

    if dashboard.start():
        if region is not None:
            try:
                dashboard.click_region(region)
                selection_step = "ok"
            except KeyError:
                LOGGER.error("Region %s is not on the map.", region)
                selection_step = "error"

    page_path = dashboard.write_page(cfg.paths.output_html)
    LOGGER.info("Dashboard page written to %s", page_path)

    reprojected_path: Path | None = None
    if dashboard.ready and dashboard.dataset is not None and cfg.build.write_reprojected:
        reprojected_path = cfg.paths.reprojected_geojson
        write_json(reprojected_path, dashboard.dataset.to_geojson(), indent=None)
        LOGGER.info("Reprojected GeoJSON written to %s", reprojected_path)

    if cfg.build.write_manifest:
        manifest = BuildManifest.create(
            config_hash_sha256=sha256_file(cfg.source_path),
            git_commit=detect_git_commit(cfg.source_path.parent),
            steps={
                "load_dataset": "ok" if dashboard.dataset is not None else "error",
                "render_overlay": "ok" if dashboard.ready else "error",
                "select_region": selection_step,
            },
            artifacts={
                "dashboard_html": str(page_path),
                "reprojected_geojson": str(reprojected_path) if reprojected_path else "",
            },
            selection={
                "metric": dashboard.selection.metric_id,
                "region": dashboard.selection.region_id,
                "chart": dashboard.selection.chart_kind.value,
            },
        )
        manifest_path = cfg.paths.manifests_dir / "build_manifest.json"
        write_json(manifest_path, manifest.to_dict())
        LOGGER.info("Build manifest written to %s", manifest_path)

    if not dashboard.ready:
        LOGGER.error("Build finished with errors: %s", dashboard.error)
        return 1
    if selection_step == "error":
        return 1
    LOGGER.info("Build finished.")
    return 0


def _run_reproject(cfg: AppConfig, *, output: str | None) -> int:
    try:
        dataset = DatasetLoader(cfg.dataset).load()
    except DashboardError as exc:
        LOGGER.error("Reprojection failed: %s", exc)
        return 1
    out_path = Path(output) if output else cfg.paths.reprojected_geojson
    write_json(out_path, dataset.to_geojson(), indent=None)
    LOGGER.info("Reprojected %d features to %s", len(dataset.features), out_path)
    return 0


def _run_series(cfg: AppConfig, *, region: str) -> int:
    dashboard = Dashboard(cfg)
    if not dashboard.start():
        LOGGER.error("Dashboard failed to start: %s", dashboard.error)
        return 1
    try:
        dashboard.click_region(region)
    except KeyError:
        LOGGER.error("Region %s is not on the map.", region)
        return 1
    for point in dashboard.chart_series():
        LOGGER.info("%s: %.2f", point.label, point.value)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "build":
        return _run_build(cfg, metric=args.metric, region=args.region, chart=args.chart)
    if command == "validate":
        return _run_validate(cfg)
    if command == "reproject":
        return _run_reproject(cfg, output=args.output)
    if command == "series":
        return _run_series(cfg, region=str(args.region))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
