import pytest

from resiliencemap.config import MapConfig
from resiliencemap.loader import DatasetLoader
from resiliencemap.models import Dataset, Feature
from resiliencemap.overlay import (
    BASE_STYLE,
    MapOverlayRenderer,
    feature_style,
    legend_html,
    overlay_bounds,
    popup_html,
)


@pytest.fixture
def dataset(make_config, dataset_path, engine):
    return DatasetLoader(make_config().dataset, engine).load()


@pytest.fixture
def renderer():
    overlay = MapOverlayRenderer(MapConfig.from_mapping({}))
    overlay.create_surface()
    return overlay


def test_feature_style_uses_color_classes():
    style = feature_style({'m': 0.85}, 'm')
    assert style['fillColor'] == '#31a354'
    assert style['fillOpacity'] == 0.7
    for key, value in BASE_STYLE.items():
        assert style[key] == value


def test_feature_style_missing_value_gets_lowest_class():
    assert feature_style({}, 'm')['fillColor'] == '#ffffff'
    assert feature_style(None, 'm')['fillColor'] == '#ffffff'


def test_popup_shows_not_available_for_missing_values():
    html = popup_html({'DAUID': '59150002', 'Hospital_Accessibility_Normalized': None},
                      'Hospital_Accessibility_Normalized')
    assert 'Dissemination Area: 59150002' in html
    assert 'Hospital Accessibility Score:</strong> N/A' in html
    assert 'Population: N/A' in html


def test_legend_lists_five_grades():
    html = legend_html('Age_Normalized')
    assert '<h4>Age Score</h4>' in html
    assert html.count('<i style=') == 5
    assert '0.00–0.20' in html
    assert '0.80–1.00' in html


def test_render_requires_surface(dataset):
    overlay = MapOverlayRenderer(MapConfig.from_mapping({}))
    with pytest.raises(RuntimeError):
        overlay.render(dataset, 'Age_Normalized')


def test_render_styles_every_region(renderer, dataset):
    renderer.render(dataset, 'Earthquake_Vulnerability_Index_Normalized')

    assert renderer.has_overlay
    assert [s.region_id for s in renderer.shapes] == ['59150001', '59150002', '59150003']
    assert renderer.shape('59150001').style['fillColor'] == '#31a354'
    assert renderer.shape('59150002').style['fillColor'] == '#c2e699'
    assert renderer.legend is not None


def test_render_fits_bounds_to_overlay(renderer, dataset):
    renderer.render(dataset, 'Age_Normalized')

    (south, west), (north, east) = renderer.bounds
    assert -123.0 < west < east < -122.7
    assert 49.0 < south < north < 49.25


def test_features_without_properties_are_skipped(renderer, dataset, caplog):
    orphan = Feature(geometry=dataset.features[0].geometry, properties=None)
    with_orphan = Dataset(features=dataset.features + (orphan,), crs=dataset.crs)

    with caplog.at_level('WARNING', logger='resiliencemap.overlay'):
        renderer.render(with_orphan, 'Age_Normalized')

    assert len(renderer.shapes) == 3
    assert 'without properties' in caplog.text


def test_rebuild_on_metric_change(renderer, dataset):
    renderer.render(dataset, 'Earthquake_Vulnerability_Index_Normalized')
    first_surface = renderer.surface

    renderer.render(dataset, 'Communication_Normalized')

    assert renderer.metric_id == 'Communication_Normalized'
    assert renderer.surface is not first_surface
    assert len(renderer.shapes) == 3
    assert renderer.shape('59150003').style['fillColor'] == '#ffffff'
    assert 'Communication Score' in renderer.legend.html


def test_hover_and_leave(renderer, dataset):
    renderer.render(dataset, 'Age_Normalized')
    base = dict(renderer.shape('59150001').style)

    hovered = renderer.hover('59150001')
    assert hovered['weight'] == 3
    assert hovered['color'] == '#fff'
    assert hovered['dashArray'] == ''
    assert hovered['fillOpacity'] == 0.8
    assert hovered['fillColor'] == base['fillColor']

    assert renderer.leave('59150001') == base


def test_click_emits_selection(renderer, dataset):
    selected = []
    renderer.on_select = selected.append
    renderer.render(dataset, 'Age_Normalized')

    renderer.click('59150002')

    assert len(selected) == 1
    assert selected[0]['DAUID'] == '59150002'
    assert selected[0]['Hospital_Accessibility_Normalized'] is None


def test_unknown_region(renderer, dataset):
    renderer.render(dataset, 'Age_Normalized')
    with pytest.raises(KeyError):
        renderer.click('00000000')


def test_clear_removes_overlay(renderer, dataset):
    renderer.render(dataset, 'Age_Normalized')
    renderer.clear()
    assert not renderer.has_overlay
    assert renderer.shapes == []
    assert renderer.legend is None


def test_bounds_of_nothing():
    assert overlay_bounds([]) is None
    assert overlay_bounds([Feature(geometry=None, properties={'DAUID': '1'})]) is None


def test_map_html_contains_popup_text(renderer, dataset):
    renderer.render(dataset, 'Age_Normalized')
    html = renderer.to_html()
    assert 'leaflet' in html.lower()
    assert 'Dissemination Area: 59150001' in html
