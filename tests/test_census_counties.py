import urllib.error

import geopandas as gpd
import pytest
from shapely.geometry import box

from yieldmap.data.sources import census_counties
from yieldmap.data.sources.census_counties import (
    CountyBoundaryConfig,
    county_boundary_url,
    download_county_boundaries,
    load_state_counties,
)
from yieldmap.errors import LoadError


def _national(counties):
    other = gpd.GeoDataFrame(
        {"STATEFP": ["17"], "COUNTYFP": ["001"], "NAME": ["Adams"]},
        geometry=[box(-91.0, 39.0, -90.0, 40.0)],
        crs="EPSG:4326",
    )
    return gpd.GeoDataFrame(
        {c: list(counties[c]) + list(other[c]) for c in ("STATEFP", "COUNTYFP", "NAME")},
        geometry=list(counties.geometry) + list(other.geometry),
        crs="EPSG:4326",
    )


def test_filters_to_one_state(tmp_path, counties):
    path = tmp_path / "counties.gpkg"
    _national(counties).to_file(path, driver="GPKG")

    gdf = load_state_counties(CountyBoundaryConfig(path=path), state_fips=18)

    assert len(gdf) == 3
    assert set(gdf["STATEFP"]) == {"18"}
    # codes stay text until the join normalizes them
    assert gdf["COUNTYFP"].tolist() == ["001", "003", "005"]
    assert gdf.crs.to_epsg() == 4326


def test_unknown_state(tmp_path, counties):
    path = tmp_path / "counties.gpkg"
    _national(counties).to_file(path, driver="GPKG")

    with pytest.raises(LoadError):
        load_state_counties(CountyBoundaryConfig(path=path), state_fips=99)


def test_missing_file(tmp_path):
    with pytest.raises(LoadError):
        load_state_counties(CountyBoundaryConfig(path=tmp_path / "missing.shp"), state_fips=18)


def test_missing_key_column(tmp_path, counties):
    path = tmp_path / "counties.gpkg"
    counties.drop(columns=["COUNTYFP"]).to_file(path, driver="GPKG")

    with pytest.raises(LoadError):
        load_state_counties(CountyBoundaryConfig(path=path), state_fips=18)


def test_boundary_url():
    assert county_boundary_url(CountyBoundaryConfig()) == (
        "https://www2.census.gov/geo/tiger/GENZ2018/shp/cb_2018_us_county_20m.zip"
    )


def test_failed_download_leaves_no_partial_zip(tmp_path, monkeypatch):
    cfg = CountyBoundaryConfig(raw_dir=tmp_path)

    def broken(url, filename):
        with open(filename, "wb") as f:
            f.write(b"PK\x03\x04 truncated")
        raise urllib.error.ContentTooShortError("retrieval incomplete", None)

    monkeypatch.setattr(census_counties.urllib.request, "urlretrieve", broken)
    with pytest.raises(urllib.error.URLError):
        download_county_boundaries(cfg)
    assert list(tmp_path.iterdir()) == []

    def ok(url, filename):
        with open(filename, "wb") as f:
            f.write(b"zip bytes")

    monkeypatch.setattr(census_counties.urllib.request, "urlretrieve", ok)
    zip_path = download_county_boundaries(cfg)
    assert zip_path == tmp_path / "cb_2018_us_county_20m.zip"
    assert zip_path.read_bytes() == b"zip bytes"
    assert [p.name for p in tmp_path.iterdir()] == [zip_path.name]


def test_unreadable_layer_error_is_not_wrapped(tmp_path):
    path = tmp_path / "counties.gpkg"
    path.write_bytes(b"not a geopackage")

    with pytest.raises(Exception) as exc:
        load_state_counties(CountyBoundaryConfig(path=path), state_fips=18)
    assert not isinstance(exc.value, LoadError)
