import pytest

from resiliencemap import projection
from resiliencemap.errors import LibraryLoadError, ReprojectionError
from resiliencemap.projection import DEST_CRS, SOURCE_CRS, EngineState, ProjectionEngine


def test_golden_projection_matches_fixture(engine, golden_projection):
    for case in golden_projection['cases']:
        lon, lat = engine.transform(
            golden_projection['source_crs'],
            golden_projection['dest_crs'],
            case['input'],
        )
        assert lon == pytest.approx(case['expected'][0], abs=case['tolerance_deg'])
        assert lat == pytest.approx(case['expected'][1], abs=case['tolerance_deg'])


def test_projected_point_lies_in_study_area(engine, golden_projection):
    lon, lat = engine.transform(SOURCE_CRS, DEST_CRS, [515000, 5443000])
    lon_range = golden_projection['study_area']['lon']
    lat_range = golden_projection['study_area']['lat']
    assert lon_range[0] < lon < lon_range[1]
    assert lat_range[0] < lat < lat_range[1]


@pytest.mark.parametrize('pair', [[], [515000], ['a', 'b'], [None, 5443000], 'xy'])
def test_short_or_non_numeric_pairs_pass_through(engine, pair):
    assert engine.transform(SOURCE_CRS, DEST_CRS, pair) is pair


def test_extra_dimensions_are_dropped(engine):
    result = engine.transform(SOURCE_CRS, DEST_CRS, [515000, 5443000, 42.0])
    assert len(result) == 2


def test_transform_returns_new_list(engine):
    pair = [515000.0, 5443000.0]
    result = engine.transform(SOURCE_CRS, DEST_CRS, pair)
    assert result is not pair
    assert pair == [515000.0, 5443000.0]


def test_definitions_register_lazily_and_once(engine):
    assert engine.state is EngineState.UNINITIALIZED
    assert not engine.is_defined(SOURCE_CRS)

    engine.transform(SOURCE_CRS, DEST_CRS, [515000, 5443000])

    assert engine.state is EngineState.READY
    assert engine.is_defined(SOURCE_CRS)
    assert engine.is_defined(DEST_CRS)
    registered = engine._registered[SOURCE_CRS]
    engine.define(SOURCE_CRS, '+proj=longlat +datum=WGS84 +no_defs +type=crs')
    assert engine._registered[SOURCE_CRS] is registered


def test_transformer_is_reused(engine):
    first = engine.transformer(SOURCE_CRS, DEST_CRS)
    assert engine.transformer(SOURCE_CRS, DEST_CRS) is first


def test_unknown_code_raises_reprojection_error(engine):
    with pytest.raises(ReprojectionError):
        engine.transform('EPSG:99999', DEST_CRS, [1.0, 2.0])


def test_missing_pyproj_fails_engine(monkeypatch):
    def _missing():
        raise LibraryLoadError('pyproj is required for coordinate reprojection')

    monkeypatch.setattr(projection, '_require_pyproj', _missing)
    engine = ProjectionEngine()

    with pytest.raises(LibraryLoadError):
        engine.start()
    assert engine.state is EngineState.FAILED

    with pytest.raises(ReprojectionError):
        engine.transform(SOURCE_CRS, DEST_CRS, [515000, 5443000])


def test_lazy_start_wraps_library_error(monkeypatch):
    def _missing():
        raise LibraryLoadError('pyproj is required for coordinate reprojection')

    monkeypatch.setattr(projection, '_require_pyproj', _missing)
    with pytest.raises(ReprojectionError):
        ProjectionEngine().transform(SOURCE_CRS, DEST_CRS, [515000, 5443000])


def test_module_level_transform_uses_given_engine(engine):
    result = projection.transform(SOURCE_CRS, DEST_CRS, [515000, 5443000], engine=engine)
    assert engine.ready
    assert len(result) == 2
