#!/usr/bin/env python3
"""
Threshold-regression classifier for significant arrival delays.

Fits ordinary least squares on a 0/1 target (arr_delay > 30 minutes) and calls
a flight delayed when the fitted value exceeds 0.5. This is deliberately not
logistic regression; the reported numbers depend on the OLS + threshold setup.
Reports accuracy, precision, recall, F1 (delayed = positive class) and ROC-AUC
computed from the raw regression output.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
    roc_auc_score,
)
from sklearn.model_selection import train_test_split

from analysis_script import add_delay_class, prepare_sample
from flight_utils import (
    DEFAULT_SEED,
    DEFAULT_TEST_SIZE,
    DELAY_THRESHOLD_MINUTES,
    FitError,
    PartitionError,
    add_common_args,
    config_from_args,
    make_rng,
    setup_logging,
)

logger = logging.getLogger(__name__)

TARGET = "arr_delay_class"
PREDICTION_THRESHOLD = 0.5

NUMERIC_FEATURES = ["dep_delay", "distance", "taxi_out", "taxi_in"]
CATEGORICAL_FEATURES = ["op_carrier"]
FEATURE_COLS = NUMERIC_FEATURES + CATEGORICAL_FEATURES


def encode_carrier(carriers: pd.Series) -> pd.Series:
    """
    Ordinal codes 1..k over the sorted distinct carrier codes; missing -> 0.
    Not one-hot: the carrier ends up as a single numeric column.
    """
    levels = sorted(carriers.dropna().astype(str).unique())
    codes = pd.Categorical(carriers.astype("object"), categories=levels).codes
    return pd.Series(codes + 1, index=carriers.index, dtype="int64")


def build_model_data(df: pd.DataFrame, threshold: float = DELAY_THRESHOLD_MINUTES) -> pd.DataFrame:
    """
    Keep rows with a known arrival delay, zero-fill missing predictors, label
    significant delays and ordinal-encode the carrier.
    """
    model_data = df[["arr_delay"] + FEATURE_COLS].copy()
    model_data["arr_delay"] = pd.to_numeric(model_data["arr_delay"], errors="coerce")
    model_data = model_data.loc[model_data["arr_delay"].notna()].copy()

    model_data[NUMERIC_FEATURES] = (
        model_data[NUMERIC_FEATURES].apply(pd.to_numeric, errors="coerce").fillna(0)
    )
    model_data = add_delay_class(model_data, threshold)
    model_data["op_carrier"] = encode_carrier(model_data["op_carrier"])
    return model_data


def split_train_test(
    model_data: pd.DataFrame,
    test_size: float = DEFAULT_TEST_SIZE,
    rng: Optional[np.random.RandomState] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Stratified split into disjoint train/test frames. Every class present in
    the data must end up on both sides.
    """
    if rng is None:
        rng = make_rng(DEFAULT_SEED)
    y = model_data[TARGET]
    counts = y.value_counts()
    too_small = counts[counts < 2]
    if not too_small.empty:
        raise PartitionError(
            f"Cannot stratify: class(es) {too_small.index.tolist()} have fewer than 2 rows"
        )
    try:
        train, test = train_test_split(
            model_data,
            test_size=test_size,
            random_state=rng,
            stratify=y,
        )
    except ValueError as exc:
        raise PartitionError(f"Cannot stratify {len(model_data)} rows: {exc}") from exc

    classes = set(counts.index)
    for name, part in (("train", train), ("test", test)):
        missing = classes - set(part[TARGET].unique())
        if missing:
            raise PartitionError(f"{name} partition has no rows of class(es) {sorted(missing)}")
    return train, test


def fit_threshold_model(train: pd.DataFrame) -> LinearRegression:
    X = train[FEATURE_COLS].to_numpy(dtype=float)
    y = train[TARGET].to_numpy(dtype=float)

    if len(np.unique(y)) < 2:
        raise FitError("Training labels contain a single class")
    design = np.column_stack([np.ones(len(X)), X])
    if len(X) == 0 or np.linalg.matrix_rank(design) < design.shape[1]:
        raise FitError(
            "Design matrix is rank-deficient (constant or perfectly collinear predictors)"
        )

    model = LinearRegression()
    model.fit(X, y)
    return model


def predict_scores(model: LinearRegression, frame: pd.DataFrame) -> np.ndarray:
    return model.predict(frame[FEATURE_COLS].to_numpy(dtype=float))


def evaluate_predictions(y_true, scores, threshold: float = PREDICTION_THRESHOLD) -> dict:
    y_true = np.asarray(y_true).astype(int)
    scores = np.asarray(scores, dtype=float)
    y_pred = (scores > threshold).astype(int)

    if len(np.unique(y_true)) < 2:
        logger.warning("Only one class in the evaluation labels; AUC is undefined.")
        auc = float("nan")
    else:
        auc = roc_auc_score(y_true, scores)

    return {
        "accuracy": accuracy_score(y_true, y_pred),
        "precision": precision_score(y_true, y_pred, pos_label=1, zero_division=0),
        "recall": recall_score(y_true, y_pred, pos_label=1, zero_division=0),
        "f1": f1_score(y_true, y_pred, pos_label=1, zero_division=0),
        "auc": auc,
        "confusion_matrix": confusion_matrix(y_true, y_pred, labels=[0, 1]),
    }


def train_and_evaluate(
    df: pd.DataFrame,
    threshold: float = DELAY_THRESHOLD_MINUTES,
    seed: int = DEFAULT_SEED,
    test_size: float = DEFAULT_TEST_SIZE,
):
    """Returns (model, metrics, test_frame, test_scores)."""
    model_data = build_model_data(df, threshold)
    logger.info(
        "Modeling %s rows; positive rate (arr_delay > %s): %.3f",
        f"{len(model_data):,}",
        threshold,
        model_data[TARGET].mean() if len(model_data) else float("nan"),
    )
    train, test = split_train_test(model_data, test_size=test_size, rng=make_rng(seed))
    model = fit_threshold_model(train)
    scores = predict_scores(model, test)
    metrics = evaluate_predictions(test[TARGET], scores)
    return model, metrics, test, scores


def format_metrics_report(metrics: dict) -> str:
    return "\n".join(
        [
            "Linear Regression (Classification):",
            f"Accuracy: {metrics['accuracy']}",
            f"Precision: {metrics['precision']}",
            f"Recall: {metrics['recall']}",
            f"F1-score: {metrics['f1']}",
            f"AUC: {metrics['auc']}",
        ]
    )


def print_metrics(metrics: dict) -> None:
    print(format_metrics_report(metrics))
    print("\nConfusion matrix [[TN, FP], [FN, TP]]:")
    print(metrics["confusion_matrix"])


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fit a linear-regression threshold classifier for significant arrival delays."
    )
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = config_from_args(args)
    _, sample = prepare_sample(config)
    _, metrics, _, _ = train_and_evaluate(
        sample,
        threshold=config.delay_threshold_minutes,
        seed=config.seed,
        test_size=config.test_size,
    )
    print_metrics(metrics)


if __name__ == "__main__":
    main()
