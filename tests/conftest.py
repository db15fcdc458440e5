from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from flight_utils import REQUIRED_COLUMNS


def make_flights(n: int = 2000, seed: int = 0) -> pd.DataFrame:
    """Synthetic flight records with the 2018 (upper-case) CSV headers."""
    rng = np.random.default_rng(seed)
    dates = pd.Timestamp("2018-01-01") + pd.to_timedelta(rng.integers(0, 365, size=n), unit="D")
    dep_delay = rng.normal(5, 25, size=n).round()
    taxi_out = rng.integers(8, 35, size=n).astype(float)
    taxi_in = rng.integers(3, 15, size=n).astype(float)
    distance = rng.integers(150, 2500, size=n).astype(float)
    air_time = (distance / 7 + rng.normal(0, 5, size=n)).round()
    arr_delay = dep_delay + (taxi_out - 15) + (taxi_in - 7) + rng.normal(0, 8, size=n).round()
    arr_delay[rng.choice(n, size=20, replace=False)] = np.nan
    crs_dep = rng.integers(5, 23, size=n) * 100 + rng.integers(0, 12, size=n) * 5
    crs_arr = ((crs_dep // 100 + 2) % 24) * 100 + crs_dep % 100

    delayed = np.nan_to_num(arr_delay, nan=0) >= 15
    carrier_delay = np.where(delayed, (arr_delay * 0.5).round(), np.nan)
    late_aircraft = np.where(delayed, arr_delay - np.nan_to_num(carrier_delay), np.nan)
    zero_or_nan = np.where(delayed, 0.0, np.nan)

    return pd.DataFrame(
        {
            "FL_DATE": dates.strftime("%Y-%m-%d"),
            "OP_CARRIER": rng.choice(["AA", "DL", "UA", "WN"], size=n),
            "ORIGIN": rng.choice(["ATL", "ORD", "DEN"], size=n),
            "DEST": rng.choice(["LAX", "SFO", "SEA"], size=n),
            "CRS_DEP_TIME": crs_dep,
            "DEP_DELAY": dep_delay,
            "TAXI_OUT": taxi_out,
            "TAXI_IN": taxi_in,
            "CRS_ARR_TIME": crs_arr,
            "ARR_DELAY": arr_delay,
            "CANCELLED": 0.0,
            "DIVERTED": 0.0,
            "AIR_TIME": air_time,
            "DISTANCE": distance,
            "CARRIER_DELAY": carrier_delay,
            "WEATHER_DELAY": zero_or_nan,
            "NAS_DELAY": zero_or_nan,
            "SECURITY_DELAY": zero_or_nan,
            "LATE_AIRCRAFT_DELAY": late_aircraft,
        }
    )


def _raw_rows(n: int = 3, **columns) -> pd.DataFrame:
    """Minimal lower-case frame with every required column; override via kwargs."""
    base = {col: [0.0] * n for col in REQUIRED_COLUMNS}
    base["fl_date"] = ["2018-01-01"] * n
    base["op_carrier"] = ["AA"] * n
    base["crs_dep_time"] = [900] * n
    base["crs_arr_time"] = [1100] * n
    base.update(columns)
    return pd.DataFrame(base)


@pytest.fixture
def flights_frame() -> pd.DataFrame:
    return make_flights()


@pytest.fixture
def flights_csv(tmp_path: Path, flights_frame: pd.DataFrame) -> Path:
    path = tmp_path / "2018.csv"
    flights_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def raw_rows():
    return _raw_rows
