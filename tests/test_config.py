from pathlib import Path

import pytest
import yaml

from resiliencemap.config import AppConfig, load_config
from resiliencemap.selection import ChartKind

from conftest import config_mapping


def test_defaults_for_optional_sections(tmp_path):
    cfg = AppConfig.from_mapping(config_mapping(), tmp_path / 'config.yaml')

    assert cfg.map.center == (49.13, -122.85)
    assert cfg.map.tiles == 'CartoDB.DarkMatter'
    assert cfg.map.fill_opacity == 0.7
    assert cfg.map.highlight_opacity == 0.8
    assert cfg.dashboard.default_metric == 'Earthquake_Vulnerability_Index_Normalized'
    assert cfg.dashboard.default_chart is ChartKind.BAR
    assert cfg.build.write_manifest and cfg.build.write_reprojected
    assert cfg.dataset.source_crs == 'EPSG:26910'
    assert cfg.dataset.dest_crs == 'EPSG:4326'


def test_paths_resolve_against_config_dir(tmp_path):
    cfg = AppConfig.from_mapping(config_mapping(), tmp_path / 'config.yaml')

    assert cfg.paths.output_html == tmp_path.resolve() / 'build' / 'dashboard.html'
    assert cfg.dataset.local_path == tmp_path.resolve() / 'data' / 'map-data.geojson'
    assert not cfg.dataset.is_remote


def test_remote_dataset(tmp_path):
    raw = config_mapping('map-data.geojson', base_url='https://example.org/data/')
    cfg = AppConfig.from_mapping(raw, tmp_path / 'config.yaml')
    assert cfg.dataset.is_remote
    assert cfg.dataset.local_path is None


@pytest.mark.parametrize(
    'section, key, value, message',
    [
        ('dataset', 'source_crs', 'EPSG:3857', 'dataset.source_crs'),
        ('dataset', 'request_timeout_s', 0, 'request_timeout_s'),
        ('dataset', 'url', '', 'dataset.url'),
        ('map', 'zoom', 'eleven', 'map.zoom'),
        ('map', 'fill_opacity', 1.5, 'fill_opacity'),
        ('dashboard', 'default_metric', 'PopulationDensity', 'dashboard.default_metric'),
        ('dashboard', 'default_chart', 'pie', 'default_chart'),
        ('build', 'write_manifest', 'yes', 'build.write_manifest'),
    ],
)
def test_invalid_values_name_the_key(tmp_path, section, key, value, message):
    raw = config_mapping()
    raw.setdefault(section, {})[key] = value
    with pytest.raises(ValueError, match=message):
        AppConfig.from_mapping(raw, tmp_path / 'config.yaml')


def test_missing_required_section(tmp_path):
    raw = config_mapping()
    del raw['paths']
    with pytest.raises(ValueError, match='paths'):
        AppConfig.from_mapping(raw, tmp_path / 'config.yaml')


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(config_mapping()), encoding='utf-8')

    cfg = load_config(path)

    assert cfg.source_path == path.resolve()
    assert cfg.project.region_name == 'Surrey, BC'


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / 'missing.yaml')
    path = tmp_path / 'config.yaml'
    path.write_text('- just\n- a list\n', encoding='utf-8')
    with pytest.raises(ValueError, match='mapping'):
        load_config(path)


def test_sample_config_is_valid():
    cfg = load_config(Path(__file__).resolve().parents[1] / 'config.yaml')
    assert cfg.dataset.url
