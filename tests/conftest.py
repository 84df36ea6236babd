import json
from pathlib import Path

import pytest

from resiliencemap.config import AppConfig
from resiliencemap.projection import ProjectionEngine

FIXTURES = Path(__file__).resolve().parent / 'fixtures'


def _square(x, y, size=400.0):
    return [[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]


def make_feature(dauid, *, x=515000.0, y=5443000.0, **metrics):
    props = {
        'DAUID': dauid,
        'Earthquake_Vulnerability_Index_Normalized': 0.5,
        'Age_Normalized': 0.3,
        'Building_Age_Normalized': 0.7,
        'Urgent_Care_Accessibility_Normalized': 0.9,
        'Hospital_Accessibility_Normalized': 0.45,
        'Housing_Suitability_Normalized': 0.65,
        'Communication_Normalized': 0.1,
        'Population': 512,
        'LANDAREA': 0.4321,
        'PopulationDensity': 1184.9,
    }
    props.update(metrics)
    return {
        'type': 'Feature',
        'geometry': {'type': 'MultiPolygon', 'coordinates': [[_square(x, y)]]},
        'properties': props,
    }


@pytest.fixture
def source_geojson():
    return {
        'type': 'FeatureCollection',
        'crs': {'type': 'name', 'properties': {'name': 'urn:ogc:def:crs:EPSG::26910'}},
        'features': [
            make_feature('59150001', Earthquake_Vulnerability_Index_Normalized=0.85),
            make_feature(
                '59150002',
                x=516000.0,
                y=5444000.0,
                Hospital_Accessibility_Normalized=None,
            ),
            make_feature('59150003', x=517000.0, y=5445000.0, Communication_Normalized=0.0),
        ],
    }


@pytest.fixture
def dataset_path(tmp_path, source_geojson):
    path = tmp_path / 'data' / 'map-data.geojson'
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(source_geojson), encoding='utf-8')
    return path


def config_mapping(dataset_url='data/map-data.geojson', **dataset_overrides):
    dataset = {'url': dataset_url}
    dataset.update(dataset_overrides)
    return {
        'project': {
            'title': 'Community Earthquake Resilience Dashboard',
            'heading': 'Community Earthquake Resilience Visualizer',
            'region_name': 'Surrey, BC',
            'description': 'Resilience scores by dissemination area.',
        },
        'paths': {
            'build_root': 'build',
            'output_html': 'build/dashboard.html',
            'reprojected_geojson': 'build/map-data.wgs84.geojson',
            'manifests_dir': 'build/manifests',
            'logs_dir': 'build/logs',
        },
        'dataset': dataset,
    }


@pytest.fixture
def make_config(tmp_path):
    def _make(dataset_url='data/map-data.geojson', **dataset_overrides):
        raw = config_mapping(dataset_url, **dataset_overrides)
        return AppConfig.from_mapping(raw, tmp_path / 'config.yaml')

    return _make


@pytest.fixture
def engine():
    return ProjectionEngine()


@pytest.fixture
def golden_projection():
    return json.loads((FIXTURES / 'golden_projection.json').read_text(encoding='utf-8'))
