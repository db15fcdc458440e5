#!/usr/bin/env python3
"""
Generate exploratory plots (PNG) for the 2018 flight data.

Plots:
- Distribution of departure delays (histogram, 10-minute bins)
- Average departure delay by airline (horizontal bar, ordered)
- Average arrival delay by carrier (bar)
- Mean departure delay by day and month (heatmap)
- Correlation matrix of the numeric delay/time columns (lower triangle)
- ROC curve of the threshold-regression classifier
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import roc_curve

from analysis_script import CARRIER_NAMES, prepare_sample, summarize_flights
from flight_utils import PLOT_DIR, add_common_args, config_from_args, setup_logging

logger = logging.getLogger(__name__)

sns.set_theme(style="whitegrid")

CHART_KINDS = ("histogram", "bar", "heatmap", "correlation-matrix")


def savefig(plot_dir: Path, filename: str) -> Path:
    """Save the current figure to PLOT_DIR/filename and close it."""
    plot_dir = Path(plot_dir)
    plot_dir.mkdir(parents=True, exist_ok=True)
    out = plot_dir / filename
    try:
        plt.tight_layout()
        plt.savefig(out, dpi=160)
    finally:
        plt.close()
    logger.info("Saved plot to '%s'.", out.as_posix())
    return out


def render_chart(
    kind: str,
    data: Union[pd.Series, pd.DataFrame],
    *,
    title: str,
    xlabel: str = "",
    ylabel: str = "",
    filename: str,
    plot_dir: Path = PLOT_DIR,
    binwidth: Optional[float] = None,
    horizontal: bool = False,
) -> Path:
    """
    Draw one chart. `histogram` and `bar` take a Series (for bars: category ->
    value); `heatmap` and `correlation-matrix` take a 2-D frame.
    """
    if kind not in CHART_KINDS:
        raise ValueError(f"Unknown chart kind {kind!r}; expected one of {CHART_KINDS}")

    if kind == "histogram":
        plt.figure(figsize=(8, 5))
        values = pd.to_numeric(pd.Series(data), errors="coerce").dropna()
        sns.histplot(x=values, binwidth=binwidth, color="blue", alpha=0.7)
    elif kind == "bar":
        series = pd.Series(data)
        if horizontal:
            plt.figure(figsize=(8, max(4, 0.35 * len(series))))
            sns.barplot(y=series.index.astype(str), x=series.values, orient="h", color="#4c72b0")
        else:
            plt.figure(figsize=(max(6, 0.5 * len(series)), 5))
            sns.barplot(x=series.index.astype(str), y=series.values, color="#4c72b0")
            plt.xticks(rotation=45, ha="right")
    elif kind == "heatmap":
        plt.figure(figsize=(12, 5))
        sns.heatmap(
            data,
            cmap="YlOrRd",
            cbar_kws={"label": "Mean delay (minutes)"},
            linewidths=0.2,
            linecolor="white",
        )
    else:
        plt.figure(figsize=(7, 6))
        # hide the redundant upper triangle
        mask = np.triu(np.ones(data.shape, dtype=bool), k=1)
        sns.heatmap(
            data,
            mask=mask,
            annot=True,
            fmt=".2f",
            cmap="coolwarm",
            vmin=-1,
            vmax=1,
            square=True,
        )

    plt.title(title)
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    return savefig(plot_dir, filename)


def plot_dep_delay_histogram(sample: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> Path:
    return render_chart(
        "histogram",
        sample["dep_delay"],
        title="Distribution of Departure Delays",
        xlabel="Departure Delay (minutes)",
        ylabel="Frequency",
        filename="dep_delay_histogram.png",
        plot_dir=plot_dir,
        binwidth=10,
    )


def plot_avg_dep_delay_by_airline(carrier_means: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> Path:
    series = carrier_means["avg_dep_delay"].dropna().sort_values(ascending=False)
    return render_chart(
        "bar",
        series.rename(index=CARRIER_NAMES),
        title="Average Departure Delay by Airline",
        xlabel="Average Departure Delay (minutes)",
        ylabel="Airline",
        filename="avg_dep_delay_by_airline.png",
        plot_dir=plot_dir,
        horizontal=True,
    )


def plot_mean_arr_delay_by_carrier(carrier_means: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> Path:
    series = carrier_means["mean_arrival_delay"].dropna().sort_index()
    return render_chart(
        "bar",
        series,
        title="Average Arrival Delay by Carrier",
        xlabel="Carrier",
        ylabel="Mean Arrival Delay (minutes)",
        filename="mean_arr_delay_by_carrier.png",
        plot_dir=plot_dir,
    )


def plot_day_month_heatmap(grid: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> Path:
    return render_chart(
        "heatmap",
        grid,
        title="Heatmap of Average Departure Delay",
        xlabel="Day",
        ylabel="Month",
        filename="dep_delay_heatmap_day_month.png",
        plot_dir=plot_dir,
    )


def plot_correlation_matrix(corr: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> Path:
    return render_chart(
        "correlation-matrix",
        corr,
        title="Correlation Matrix",
        filename="correlation_matrix.png",
        plot_dir=plot_dir,
    )


def plot_roc_curve(y_true, scores, auc: float, plot_dir: Path = PLOT_DIR) -> Path:
    fpr, tpr, _ = roc_curve(y_true, scores)
    plt.figure()
    plt.plot(fpr, tpr, label=f"Linear regression (AUC={auc:.3f})")
    plt.plot([0, 1], [0, 1], "k--", label="Random guess")
    plt.xlabel("False Positive Rate")
    plt.ylabel("True Positive Rate")
    plt.title("ROC Curve - Significant Arrival Delay")
    plt.legend()
    plt.grid(True, alpha=0.3)
    return savefig(plot_dir, "roc_curve_linear_regression.png")


def generate_eda_plots(summary: dict, sample: pd.DataFrame, plot_dir: Path = PLOT_DIR) -> list:
    written = []
    if sample["dep_delay"].notna().any():
        written.append(plot_dep_delay_histogram(sample, plot_dir))
    else:
        logger.warning("No departure delays in the sample; skipping histogram.")

    carrier_means = summary["carrier_means"]
    if carrier_means.dropna(how="all").empty:
        logger.warning("No carrier means to plot.")
    else:
        written.append(plot_avg_dep_delay_by_airline(carrier_means, plot_dir))
        written.append(plot_mean_arr_delay_by_carrier(carrier_means, plot_dir))

    if summary["heatmap"].notna().any().any():
        written.append(plot_day_month_heatmap(summary["heatmap"], plot_dir))
    else:
        logger.warning("No calendar cells with data; skipping heatmap.")

    if summary["correlation"].notna().any().any():
        written.append(plot_correlation_matrix(summary["correlation"], plot_dir))
    else:
        logger.warning("Not enough complete rows for a correlation matrix.")
    return written


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate EDA plots for flight delay analysis.")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = config_from_args(args)
    full, sample = prepare_sample(config)
    generate_eda_plots(summarize_flights(full, sample), sample, config.plot_dir)
    print(f"Plots saved to {config.plot_dir}/")


if __name__ == "__main__":
    main()
