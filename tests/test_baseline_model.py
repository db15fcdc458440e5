import numpy as np
import pandas as pd
import pytest

from analysis_script import clean_flights
from baseline_model import (
    FEATURE_COLS,
    TARGET,
    build_model_data,
    encode_carrier,
    evaluate_predictions,
    fit_threshold_model,
    format_metrics_report,
    split_train_test,
    train_and_evaluate,
)
from flight_utils import FitError, PartitionError, load_flights, make_rng


@pytest.fixture
def cleaned_flights(flights_csv) -> pd.DataFrame:
    return clean_flights(load_flights(flights_csv))


def test_encode_carrier_is_ordinal_over_sorted_codes() -> None:
    carriers = pd.Series(["WN", "AA", "DL", None, "AA"], dtype="string")
    assert encode_carrier(carriers).tolist() == [3, 1, 2, 0, 1]


def test_build_model_data_drops_unknown_targets_and_fills_predictors() -> None:
    df = pd.DataFrame(
        {
            "arr_delay": [10, 40, np.nan, -5],
            "dep_delay": [np.nan, 35, 1, -2],
            "distance": [500, 600, 700, np.nan],
            "taxi_out": [10, 12, 14, 16],
            "taxi_in": [5, np.nan, 6, 7],
            "op_carrier": ["UA", "AA", "AA", "UA"],
        }
    )
    model_data = build_model_data(df)

    assert len(model_data) == 3
    assert model_data[TARGET].tolist() == [0, 1, 0]
    assert model_data["dep_delay"].tolist() == [0, 35, -2]
    assert model_data["distance"].iloc[-1] == 0
    assert model_data["op_carrier"].tolist() == [2, 1, 2]
    assert not model_data[FEATURE_COLS].isna().any().any()
    assert "arr_delay" not in FEATURE_COLS


def test_split_is_a_stratified_partition(cleaned_flights: pd.DataFrame) -> None:
    model_data = build_model_data(cleaned_flights)
    train, test = split_train_test(model_data, test_size=0.2, rng=make_rng(123))

    assert set(train.index).isdisjoint(test.index)
    assert set(train.index) | set(test.index) == set(model_data.index)
    assert len(test) == pytest.approx(0.2 * len(model_data), abs=1)

    overall = model_data[TARGET].mean()
    assert train[TARGET].mean() == pytest.approx(overall, abs=0.01)
    assert test[TARGET].mean() == pytest.approx(overall, abs=0.01)


def test_split_is_reproducible(cleaned_flights: pd.DataFrame) -> None:
    model_data = build_model_data(cleaned_flights)
    _, first = split_train_test(model_data, rng=make_rng(7))
    _, second = split_train_test(model_data, rng=make_rng(7))
    assert first.index.equals(second.index)


def test_split_rejects_class_with_single_row() -> None:
    model_data = pd.DataFrame(
        {
            TARGET: [0] * 9 + [1],
            "dep_delay": range(10),
        }
    )
    with pytest.raises(PartitionError) as excinfo:
        split_train_test(model_data, rng=make_rng(1))
    assert excinfo.value.stage == "split"


def test_split_rejects_too_small_test_partition() -> None:
    model_data = pd.DataFrame({TARGET: [0, 0, 0, 1, 1], "dep_delay": range(5)})
    with pytest.raises(PartitionError):
        split_train_test(model_data, test_size=0.2, rng=make_rng(1))


def _train_frame(**overrides) -> pd.DataFrame:
    frame = pd.DataFrame(
        {
            "dep_delay": [0, 5, 40, 60, -3, 35, 2, 50],
            "distance": [300, 800, 500, 1200, 900, 400, 700, 1000],
            "taxi_out": [10, 14, 20, 25, 11, 19, 12, 30],
            "taxi_in": [4, 6, 8, 9, 5, 7, 3, 10],
            "op_carrier": [1, 2, 1, 2, 3, 3, 1, 2],
            TARGET: [0, 0, 1, 1, 0, 1, 0, 1],
        }
    )
    for col, values in overrides.items():
        frame[col] = values
    return frame


def test_fit_rejects_single_class() -> None:
    with pytest.raises(FitError, match="single class"):
        fit_threshold_model(_train_frame(**{TARGET: 0}))


def test_fit_rejects_constant_predictor() -> None:
    with pytest.raises(FitError, match="rank-deficient"):
        fit_threshold_model(_train_frame(taxi_in=0))


def test_fit_rejects_collinear_predictors() -> None:
    frame = _train_frame()
    frame["taxi_out"] = frame["dep_delay"] * 2 + 1
    with pytest.raises(FitError) as excinfo:
        fit_threshold_model(frame)
    assert excinfo.value.stage == "model"


def test_fit_returns_linear_model() -> None:
    model = fit_threshold_model(_train_frame())
    assert model.coef_.shape == (len(FEATURE_COLS),)


def test_metrics_for_perfect_predictions() -> None:
    metrics = evaluate_predictions([0, 1], [0.1, 0.9])

    assert metrics["accuracy"] == 1.0
    assert metrics["precision"] == 1.0
    assert metrics["recall"] == 1.0
    assert metrics["f1"] == 1.0
    assert metrics["auc"] == 1.0
    assert metrics["confusion_matrix"].tolist() == [[1, 0], [0, 1]]


def test_threshold_is_strictly_greater_than_half() -> None:
    metrics = evaluate_predictions([0, 1, 1], [0.5, 0.5, 0.51])

    # [[TN, FP], [FN, TP]]
    assert metrics["confusion_matrix"].tolist() == [[1, 0], [1, 1]]
    assert metrics["precision"] == 1.0
    assert metrics["recall"] == 0.5


def test_no_positive_predictions_gives_zero_precision() -> None:
    metrics = evaluate_predictions([0, 0, 1, 0], [0.1, 0.2, 0.3, 0.0])

    assert metrics["accuracy"] == 0.75
    assert metrics["precision"] == 0.0
    assert metrics["f1"] == 0.0
    assert metrics["auc"] == 1.0


def test_train_and_evaluate_metric_relationships(cleaned_flights: pd.DataFrame) -> None:
    _, metrics, test, scores = train_and_evaluate(cleaned_flights, seed=123)
    (tn, fp), (fn, tp) = metrics["confusion_matrix"]

    assert len(scores) == len(test)
    assert tn + fp + fn + tp == len(test)
    assert metrics["accuracy"] == pytest.approx((tp + tn) / len(test))
    assert metrics["precision"] == pytest.approx(tp / (tp + fp))
    assert metrics["recall"] == pytest.approx(tp / (tp + fn))
    p, r = metrics["precision"], metrics["recall"]
    assert metrics["f1"] == pytest.approx(2 * p * r / (p + r))
    assert 0.5 < metrics["auc"] <= 1.0
    # accuracy alone is flattered by the majority class; it must at least
    # beat always predicting "on time"
    assert metrics["accuracy"] >= 1 - test[TARGET].mean() - 0.05


def test_train_and_evaluate_is_deterministic(cleaned_flights: pd.DataFrame) -> None:
    first = train_and_evaluate(cleaned_flights, seed=123)[1]
    second = train_and_evaluate(cleaned_flights, seed=123)[1]

    for key in ("accuracy", "precision", "recall", "f1", "auc"):
        assert first[key] == second[key]
    assert np.array_equal(first["confusion_matrix"], second["confusion_matrix"])


def test_format_metrics_report() -> None:
    report = format_metrics_report(
        {"accuracy": 0.95, "precision": 0.8, "recall": 0.5, "f1": 0.6, "auc": 0.9}
    )
    lines = report.splitlines()

    assert lines[0] == "Linear Regression (Classification):"
    assert lines[1:] == [
        "Accuracy: 0.95",
        "Precision: 0.8",
        "Recall: 0.5",
        "F1-score: 0.6",
        "AUC: 0.9",
    ]
