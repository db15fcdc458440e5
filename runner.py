#!/usr/bin/env python3
"""
Run the whole 2018 flight delay job: load, sample, clean, summarize, plot,
then fit and evaluate the threshold-regression classifier.

Any pipeline failure stops the run with a message naming the failing stage and
a non-zero exit status.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from analysis_script import print_sample_overview, print_summary, prepare_sample, summarize_flights
from baseline_model import TARGET, print_metrics, train_and_evaluate
from flight_utils import (
    PipelineConfig,
    PipelineError,
    PlotError,
    add_common_args,
    config_from_args,
    setup_logging,
)
from plot_generation import generate_eda_plots, plot_roc_curve

logger = logging.getLogger(__name__)


def run_pipeline(config: PipelineConfig, verbose: bool = True) -> dict:
    """Execute every stage once; returns the test-set metrics."""
    full, sample = prepare_sample(config)
    summary = summarize_flights(full, sample)
    if verbose:
        print_sample_overview(sample)
        print()
        print_summary(summary)

    if config.plots:
        try:
            generate_eda_plots(summary, sample, config.plot_dir)
        except OSError as exc:
            raise PlotError(f"Could not write plots to {config.plot_dir}: {exc}") from exc

    _, metrics, test, scores = train_and_evaluate(
        sample,
        threshold=config.delay_threshold_minutes,
        seed=config.seed,
        test_size=config.test_size,
    )
    if config.plots:
        try:
            plot_roc_curve(test[TARGET], scores, metrics["auc"], config.plot_dir)
        except OSError as exc:
            raise PlotError(f"Could not write plots to {config.plot_dir}: {exc}") from exc
    if verbose:
        print()
        print_metrics(metrics)
    return metrics


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Analyze 2018 flight delays and evaluate a linear-regression delay classifier."
    )
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    try:
        run_pipeline(config)
    except PipelineError as exc:
        logger.error("%s stage failed: %s", exc.stage, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
