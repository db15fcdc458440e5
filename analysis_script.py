#!/usr/bin/env python3
"""
Clean and summarize the 2018 flight records.

Loads the CSV, draws the seeded subsample, fills missing delay causes, parses
dates and derives scheduled departure/arrival hours. Then breaks delays down by
carrier and by calendar day, and prints the correlation of the main numeric
columns.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pandas import DataFrame, Series

from flight_utils import (
    DELAY_CAUSE_COLS,
    DELAY_THRESHOLD_MINUTES,
    NUMERIC_COLS,
    ParseError,
    PipelineConfig,
    add_common_args,
    config_from_args,
    load_flights,
    make_rng,
    sample_flights,
    setup_logging,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

CORRELATION_COLS = [
    "dep_delay",
    "arr_delay",
    "air_time",
    "distance",
    "taxi_out",
    "taxi_in",
]

# Operating carriers present in the 2018 on-time data.
CARRIER_NAMES = {
    "9E": "Endeavor Air",
    "AA": "American Airlines",
    "AS": "Alaska Airlines",
    "B6": "JetBlue Airways",
    "DL": "Delta Air Lines",
    "EV": "ExpressJet",
    "F9": "Frontier Airlines",
    "G4": "Allegiant Air",
    "HA": "Hawaiian Airlines",
    "MQ": "Envoy Air",
    "NK": "Spirit Airlines",
    "OH": "PSA Airlines",
    "OO": "SkyWest Airlines",
    "UA": "United Airlines",
    "VX": "Virgin America",
    "WN": "Southwest Airlines",
    "YV": "Mesa Airlines",
    "YX": "Republic Airways",
}


# ---------------------------------------------------------------------------
# Cleaning and features
# ---------------------------------------------------------------------------
def parse_flight_dates(values: Series) -> Series:
    """
    Strict YYYY-MM-DD parsing. Missing values stay NaT; anything else that does
    not parse raises ParseError instead of being guessed at.
    """
    present = values.notna()
    try:
        parsed = pd.to_datetime(values[present], format=DATE_FORMAT, errors="raise")
    except (ValueError, TypeError) as exc:
        bad = values[present][pd.to_datetime(values[present], format=DATE_FORMAT, errors="coerce").isna()]
        sample = bad.astype(str).head(3).tolist()
        raise ParseError(f"Malformed fl_date values (expected {DATE_FORMAT}): {sample}") from exc
    return parsed.reindex(values.index)


def scheduled_hour(hhmm: Series) -> Series:
    """HHMM -> hour of day. Out-of-range times (e.g. 2400) pass through."""
    return np.floor(pd.to_numeric(hhmm, errors="coerce") / 100).astype("Int64")


def clean_flights(df: DataFrame) -> DataFrame:
    """
    Fill missing delay causes with zero, parse fl_date and add dep_hour/arr_hour.
    """
    cleaned = df.copy()

    numeric_cols = [col for col in NUMERIC_COLS if col in cleaned.columns]
    cleaned[numeric_cols] = cleaned[numeric_cols].apply(pd.to_numeric, errors="coerce")

    # Missing cause means no minutes attributed to it.
    cleaned[DELAY_CAUSE_COLS] = cleaned[DELAY_CAUSE_COLS].fillna(0)

    cleaned["fl_date"] = parse_flight_dates(cleaned["fl_date"])

    cleaned["dep_hour"] = scheduled_hour(cleaned["crs_dep_time"])
    cleaned["arr_hour"] = scheduled_hour(cleaned["crs_arr_time"])
    return cleaned


def add_delay_class(df: DataFrame, threshold: float = DELAY_THRESHOLD_MINUTES) -> DataFrame:
    """arr_delay_class is 1 for arrivals more than `threshold` minutes late."""
    labeled = df.copy()
    arr_delay = pd.to_numeric(labeled["arr_delay"], errors="coerce")
    labeled["arr_delay_class"] = (arr_delay > threshold).astype(int)
    return labeled


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------
def mean_by(df: DataFrame, keys: Union[str, List[str]], value_col: str) -> Series:
    """
    Mean of `value_col` per key, ignoring missing values: they add nothing to
    the sum and are not counted. Keys whose values are all missing get NaN.
    """
    values = pd.to_numeric(df[value_col], errors="coerce")
    by = df[keys] if isinstance(keys, str) else [df[k] for k in keys]
    totals = values.groupby(by).agg(["sum", "count"])
    means = totals["sum"] / totals["count"].where(totals["count"] > 0)
    means.name = value_col
    return means


def carrier_mean_delays(df: DataFrame) -> DataFrame:
    """Average departure and arrival delay per operating carrier."""
    out = pd.DataFrame(
        {
            "avg_dep_delay": mean_by(df, "op_carrier", "dep_delay"),
            "mean_arrival_delay": mean_by(df, "op_carrier", "arr_delay"),
        }
    )
    out.index.name = "op_carrier"
    return out


def day_month_mean_delay(df: DataFrame) -> DataFrame:
    """
    Mean departure delay per (month, day of month). The year is ignored, so a
    multi-year file folds onto the same calendar cells.
    """
    dates = pd.to_datetime(df["fl_date"])
    keyed = pd.DataFrame(
        {
            "month": dates.dt.month,
            "day": dates.dt.day,
            "dep_delay": df["dep_delay"],
        },
        index=df.index,
    ).dropna(subset=["month", "day"])
    keyed = keyed.astype({"month": int, "day": int})
    means = mean_by(keyed, ["month", "day"], "dep_delay")
    return means.rename("mean_dep_delay").reset_index()


def heatmap_grid(day_month: DataFrame) -> DataFrame:
    """Month x day grid (days 1-31 as columns); cells with no flights are NaN."""
    grid = day_month.pivot(index="month", columns="day", values="mean_dep_delay")
    return grid.reindex(columns=range(1, 32))


def correlation_matrix(df: DataFrame, columns: Sequence[str] = CORRELATION_COLS) -> DataFrame:
    """Pearson correlation over rows complete in every column."""
    numeric = df[list(columns)].apply(pd.to_numeric, errors="coerce").dropna()
    return numeric.corr()


def summarize_flights(full: DataFrame, sample: DataFrame) -> dict:
    """
    Carrier means come from the full table; calendar and correlation views from
    the cleaned sample.
    """
    day_month = day_month_mean_delay(sample)
    return {
        "total_rows": len(full),
        "sample_rows": len(sample),
        "carrier_means": carrier_mean_delays(full),
        "day_month": day_month,
        "heatmap": heatmap_grid(day_month),
        "correlation": correlation_matrix(sample),
    }


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------
def print_sample_overview(sample: DataFrame) -> None:
    print(f"Sampled rows: {len(sample):,}  columns: {sample.shape[1]}")
    print("\nColumn types:")
    print(sample.dtypes.to_string())
    if sample.empty:
        return
    print("\nSummary statistics:")
    print(sample.describe().T.to_string())


def print_summary(summary: dict, top_n: int = 10) -> None:
    print(f"Rows in file: {summary['total_rows']:,}")
    print(f"Rows in sample: {summary['sample_rows']:,}")

    carriers = summary["carrier_means"].sort_values("avg_dep_delay", ascending=False)
    print(f"\nTop {top_n} carriers by average departure delay (minutes, full data):")
    if carriers.empty:
        print("  No carrier data.")
    else:
        print(carriers.head(top_n).rename(index=CARRIER_NAMES).round(2).to_string())

    day_month = summary["day_month"]
    if not day_month.empty:
        worst = day_month.sort_values("mean_dep_delay", ascending=False).head(top_n)
        print(f"\nTop {top_n} calendar days by mean departure delay (sample):")
        print(worst.round(2).to_string(index=False))

    print("\nCorrelation matrix (complete rows only):")
    print(summary["correlation"].round(3).to_string())


def prepare_sample(config: PipelineConfig, full: Optional[DataFrame] = None):
    """Load (unless given), sample and clean. Returns (full, cleaned_sample)."""
    if full is None:
        full = load_flights(config.input_path, nrows=config.nrows, chunk_size=config.chunk_size)
    sample = sample_flights(full, config.sample_fraction, make_rng(config.seed))
    return full, clean_flights(sample)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sample and clean flight data, then summarize delays by carrier and day."
    )
    add_common_args(parser)
    parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="How many carriers/days to show in the summary.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = config_from_args(args)
    full, sample = prepare_sample(config)
    print_sample_overview(sample)
    print()
    print_summary(summarize_flights(full, sample), top_n=args.top)


if __name__ == "__main__":
    main()
