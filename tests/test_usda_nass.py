import pandas as pd
import pytest

from yieldmap.data.sources.usda_nass import NassCsvConfig, load_nass_county_yield
from yieldmap.errors import LoadError


VALUE_HEADER = "CORN, GRAIN - YIELD, MEASURED IN BU / ACRE  -  <b>VALUE</b>"


def _nass_export(rows):
    cols = [
        "Program", "Year", "Period", "Week Ending", "Geo Level", "State", "State ANSI",
        "Ag District", "Ag District Code", "County", "County ANSI",
    ]
    cols += [f"pad_{i}" for i in range(24 - len(cols))]
    cols.append(VALUE_HEADER)

    records = []
    for geo_level, county, county_ansi, value in rows:
        r = {c: "" for c in cols}
        r.update(
            {
                "Program": "SURVEY",
                "Year": "2022",
                "Geo Level": geo_level,
                "State": "INDIANA",
                "State ANSI": "18",
                "County": county,
                "County ANSI": county_ansi,
                VALUE_HEADER: value,
            }
        )
        records.append(r)
    return pd.DataFrame(records, columns=cols)


def test_loader_drops_state_total_and_renames_value(tmp_path):
    path = tmp_path / "corn.csv"
    _nass_export(
        [
            ("COUNTY", "ADAMS", "001", "180.5"),
            ("COUNTY", "ALLEN", "003", "1,190"),
            ("COUNTY", "OTHER COUNTIES", "", "150"),
            ("STATE", "", "", "190"),
        ]
    ).to_csv(path, index=False)

    df = load_nass_county_yield(NassCsvConfig(path=path))

    assert list(df.columns) == ["state_ansi", "county_ansi", "county_name", "Yield"]
    assert len(df) == 3
    assert df["county_name"].tolist() == ["ADAMS", "ALLEN", "OTHER COUNTIES"]
    assert df["Yield"].tolist() == [180.5, 1190.0, 150.0]
    assert df["county_ansi"].iloc[0] == "001"
    assert pd.isna(df["county_ansi"].iloc[2])
    assert (df["state_ansi"] == 18).all()


def test_suppressed_values_become_missing(tmp_path):
    path = tmp_path / "corn.csv"
    _nass_export([("COUNTY", "ADAMS", "001", "(D)")]).to_csv(path, index=False)

    df = load_nass_county_yield(NassCsvConfig(path=path))
    assert pd.isna(df["Yield"].iloc[0])


def test_missing_file_is_load_error(tmp_path):
    with pytest.raises(LoadError):
        load_nass_county_yield(NassCsvConfig(path=tmp_path / "nope.csv"))


def test_value_index_out_of_range_is_load_error(tmp_path):
    path = tmp_path / "corn.csv"
    _nass_export([("COUNTY", "ADAMS", "001", "180")]).to_csv(path, index=False)

    with pytest.raises(LoadError):
        load_nass_county_yield(NassCsvConfig(path=path, value_col_index=40))


def test_missing_named_column_is_load_error(tmp_path):
    path = tmp_path / "corn.csv"
    _nass_export([("COUNTY", "ADAMS", "001", "180")]).drop(columns=["County ANSI"]).to_csv(path, index=False)

    # dropping a column shifts the value column to index 23
    with pytest.raises(LoadError):
        load_nass_county_yield(NassCsvConfig(path=path, value_col_index=23))
