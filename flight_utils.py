#!/usr/bin/env python3
"""
Shared helpers for the 2018 flight delay project: run configuration, error
types, the CSV schema, and the loader/sampler used by every script.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DATA_PATH = Path("rawdata/2018.csv")
SAMPLE_PATH = Path(__file__).resolve().parent / "rawdata" / "flights_2018_sample.csv"
PLOT_DIR = Path("plots")

DEFAULT_SAMPLE_FRACTION = 0.001
# The bundled sample is tiny, so --sample keeps every row unless told otherwise.
SAMPLE_FILE_FRACTION = 1.0
DEFAULT_SEED = 123
# Arrival delay strictly above this many minutes counts as significant.
DELAY_THRESHOLD_MINUTES = 30
DEFAULT_TEST_SIZE = 0.2
DEFAULT_CHUNK_SIZE = 250_000

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DELAY_CAUSE_COLS = [
    "carrier_delay",
    "weather_delay",
    "nas_delay",
    "security_delay",
    "late_aircraft_delay",
]

NUMERIC_COLS = [
    "crs_dep_time",
    "crs_arr_time",
    "dep_delay",
    "arr_delay",
    "air_time",
    "distance",
    "taxi_out",
    "taxi_in",
    *DELAY_CAUSE_COLS,
]

REQUIRED_COLUMNS = ["fl_date", "op_carrier", *NUMERIC_COLS]

DTYPES = {
    "op_carrier": "string",
    **{col: "float32" for col in NUMERIC_COLS},
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class PipelineError(Exception):
    """Base class for fatal pipeline failures; `stage` names where it happened."""

    stage = "pipeline"


class DataFileError(PipelineError, OSError):
    stage = "load"


class SchemaError(PipelineError):
    stage = "load"


class ParseError(PipelineError):
    stage = "clean"


class PartitionError(PipelineError):
    stage = "split"


class FitError(PipelineError):
    stage = "model"


class PlotError(PipelineError):
    stage = "plot"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
@dataclass
class PipelineConfig:
    """Options for one end-to-end run."""

    input_path: Path = DATA_PATH
    sample_fraction: float = DEFAULT_SAMPLE_FRACTION
    seed: int = DEFAULT_SEED
    delay_threshold_minutes: float = DELAY_THRESHOLD_MINUTES
    test_size: float = DEFAULT_TEST_SIZE
    plot_dir: Path = PLOT_DIR
    plots: bool = True
    nrows: Optional[int] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        self.input_path = Path(self.input_path)
        self.plot_dir = Path(self.plot_dir)
        if not 0 < self.sample_fraction <= 1:
            raise ValueError(f"sample_fraction must be in (0, 1], got {self.sample_fraction}")
        if not 0 <= self.seed < 2**32:
            raise ValueError(f"seed must be in [0, 2**32), got {self.seed}")
        if not 0 < self.test_size < 1:
            raise ValueError(f"test_size must be in (0, 1), got {self.test_size}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.nrows is not None and self.nrows <= 0:
            raise ValueError(f"nrows must be positive, got {self.nrows}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PipelineConfig":
        return cls(
            input_path=args.input,
            sample_fraction=args.sample_fraction,
            seed=args.seed,
            delay_threshold_minutes=args.delay_threshold,
            test_size=args.test_size,
            plot_dir=args.plot_dir,
            plots=not args.no_plots,
            nrows=args.nrows,
            chunk_size=args.chunk_size,
        )


def add_common_args(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Register the flags every script in the project understands."""
    parser.add_argument(
        "--input",
        type=Path,
        default=DATA_PATH,
        help="Path to the flight records CSV.",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Use the bundled sample file instead of --input (keeps all of its rows by default).",
    )
    parser.add_argument(
        "--sample-fraction",
        type=float,
        default=None,
        help=(
            f"Fraction of rows to keep for the analysis (0 < f <= 1). Defaults to "
            f"{DEFAULT_SAMPLE_FRACTION}, or {SAMPLE_FILE_FRACTION} with --sample."
        ),
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=DEFAULT_SEED,
        help="Random seed for sampling and the train/test split.",
    )
    parser.add_argument(
        "--delay-threshold",
        type=float,
        default=DELAY_THRESHOLD_MINUTES,
        help="Arrival delay (minutes) above which a flight counts as significantly delayed.",
    )
    parser.add_argument(
        "--test-size",
        type=float,
        default=DEFAULT_TEST_SIZE,
        help="Fraction of modeled rows held out for evaluation.",
    )
    parser.add_argument(
        "--plot-dir",
        type=Path,
        default=PLOT_DIR,
        help="Directory where PNG plots are written.",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip writing plots.",
    )
    parser.add_argument(
        "--nrows",
        type=int,
        default=None,
        help="Only read the first N rows (for smoke testing).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Chunk size for streaming the CSV. Lower this if memory is tight.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    if args.sample:
        args.input = SAMPLE_PATH
    if args.sample_fraction is None:
        args.sample_fraction = SAMPLE_FILE_FRACTION if args.sample else DEFAULT_SAMPLE_FRACTION
    return PipelineConfig.from_args(args)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
def normalize_column(name: str) -> str:
    return str(name).strip().lower()


def _read_header(path: Path) -> List[str]:
    if not path.exists():
        raise DataFileError(f"Data file not found: {path}")
    try:
        return list(pd.read_csv(path, nrows=0).columns)
    except pd.errors.EmptyDataError as exc:
        raise DataFileError(f"Data file is empty: {path}") from exc
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise DataFileError(f"Could not read {path}: {exc}") from exc


def read_in_chunks(
    path: Path,
    nrows: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterable[pd.DataFrame]:
    """
    Yield DataFrames in manageable chunks so the full-year file never has to be
    parsed in one go. Column names are lower-cased; only the columns the
    pipeline needs are read.
    """
    path = Path(path)
    header = _read_header(path)
    by_name = {normalize_column(col): col for col in header}

    missing = [col for col in REQUIRED_COLUMNS if col not in by_name]
    if missing:
        raise SchemaError(f"{path} is missing expected columns: {', '.join(missing)}")

    wanted = REQUIRED_COLUMNS
    source_cols = [by_name[col] for col in wanted]
    rename = {by_name[col]: col for col in wanted}
    dtypes = {by_name[col]: DTYPES[col] for col in wanted if col in DTYPES}

    try:
        reader = pd.read_csv(
            path,
            usecols=source_cols,
            dtype=dtypes,
            na_values=["", "NA", "NaN"],
            chunksize=chunk_size,
            nrows=nrows,
            low_memory=False,
        )
        for chunk in reader:
            yield chunk.rename(columns=rename)[wanted]
    except (ValueError, pd.errors.ParserError) as exc:
        raise DataFileError(f"Could not parse {path}: {exc}") from exc


def load_flights(
    path: Path,
    nrows: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> pd.DataFrame:
    chunks = list(read_in_chunks(path, nrows=nrows, chunk_size=chunk_size))
    if not chunks:
        raise DataFileError(f"No rows read from {path}")
    df = pd.concat(chunks, ignore_index=True)
    logger.info("Loaded %s rows from %s", f"{len(df):,}", path)
    return df


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------
def make_rng(seed: int) -> np.random.RandomState:
    """Fresh generator per stochastic stage so each one reproduces on its own."""
    return np.random.RandomState(seed)


def sample_flights(
    df: pd.DataFrame,
    fraction: float,
    rng: np.random.RandomState,
) -> pd.DataFrame:
    """
    Draw floor(fraction * N) rows uniformly without replacement. Row labels of
    the source frame are preserved.
    """
    if not 0 < fraction <= 1:
        raise ValueError(f"fraction must be in (0, 1], got {fraction}")
    # epsilon guards products like 0.29 * 100 == 28.999999999999996
    n = int(np.floor(fraction * len(df) + 1e-9))
    if n == 0:
        logger.warning("Sampling %s of %d rows leaves nothing to analyze.", fraction, len(df))
    sampled = df.sample(n=n, replace=False, random_state=rng)
    logger.info("Sampled %s of %s rows (fraction=%s)", f"{n:,}", f"{len(df):,}", fraction)
    return sampled
