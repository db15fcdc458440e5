from flight_utils import REQUIRED_COLUMNS, SAMPLE_PATH, load_flights


def test_bundled_sample_present() -> None:
    """
    The small sample next to the code backs `--sample` runs; the full 2018 file
    has to be downloaded separately into rawdata/2018.csv.
    """
    assert SAMPLE_PATH.exists(), f"Expected bundled sample at {SAMPLE_PATH}"


def test_bundled_sample_matches_schema() -> None:
    df = load_flights(SAMPLE_PATH)

    assert set(REQUIRED_COLUMNS) <= set(df.columns)
    assert "unnamed: 27" not in df.columns
    assert len(df) == 80
    assert df["arr_delay"].isna().sum() == 2
    assert (df["arr_delay"] > 30).any()
