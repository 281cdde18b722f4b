"""Tests for holdout evaluation."""

import pytest
import pandas as pd
import numpy as np

from src.data.loader import FEATURE_COLUMNS, recode_labels
from src.errors import DataError, UndefinedMetricError
from src.models.evaluate import (
    ConfusionMatrix,
    build_confusion_matrix,
    evaluate_holdout,
    print_confusion_matrix
)
from src.models.train import FraudDetectionModel, ModelConfig, ModelFamily


def make_frame(target, shift=6.0, seed=0):
    rng = np.random.RandomState(seed)
    target = np.asarray(target, dtype=int)
    data = {col: rng.randn(len(target)) for col in FEATURE_COLUMNS}
    data['V1'] = data['V1'] + shift * target
    data['Class'] = target
    return recode_labels(pd.DataFrame(data))


@pytest.fixture
def fitted_model():
    train = make_frame(np.r_[np.ones(50), np.zeros(150)])
    X, y = train[FEATURE_COLUMNS], train['Class'].to_numpy()
    return FraudDetectionModel(ModelConfig(ModelFamily.LOGISTIC)).fit(X, y)


def test_build_confusion_matrix_counts():
    y_true = [1, 1, 1, 0, 0, 0, 0]
    y_pred = [1, 0, 1, 0, 1, 0, 0]

    cm = build_confusion_matrix(y_true, y_pred)

    assert (cm.tp, cm.fn, cm.fp, cm.tn) == (2, 1, 1, 3)
    assert cm.total == 7


def test_derived_rates():
    cm = ConfusionMatrix(tp=8, fn=2, fp=4, tn=86)

    assert cm.accuracy == pytest.approx(94 / 100)
    assert cm.sensitivity == pytest.approx(8 / 10)
    assert cm.specificity == pytest.approx(86 / 90)
    assert cm.precision == pytest.approx(8 / 12)


def test_undefined_rates_raise():
    # no actual fraud and nothing flagged
    cm = ConfusionMatrix(tp=0, fn=0, fp=0, tn=10)

    with pytest.raises(UndefinedMetricError, match="sensitivity") as excinfo:
        cm.sensitivity
    assert excinfo.value.metric == 'sensitivity'

    with pytest.raises(UndefinedMetricError, match="precision"):
        cm.precision

    with pytest.raises(ZeroDivisionError):
        cm.precision


def test_precision_undefined_when_nothing_flagged():
    cm = ConfusionMatrix(tp=0, fn=2, fp=0, tn=8)

    assert cm.sensitivity == 0.0
    with pytest.raises(UndefinedMetricError, match="precision"):
        cm.precision


def test_precision_zero_when_every_flag_is_wrong():
    cm = ConfusionMatrix(tp=0, fn=0, fp=3, tn=7)

    assert cm.precision == 0.0
    with pytest.raises(UndefinedMetricError, match="sensitivity"):
        cm.sensitivity


def test_specificity_undefined_when_holdout_is_all_fraud():
    cm = ConfusionMatrix(tp=4, fn=1, fp=0, tn=0)

    with pytest.raises(UndefinedMetricError, match="specificity"):
        cm.specificity
    assert cm.sensitivity == pytest.approx(0.8)
    assert cm.precision == 1.0
    assert cm.rates()['specificity'] is None


def test_rates_flag_undefined_as_none():
    cm = ConfusionMatrix(tp=0, fn=2, fp=0, tn=8)

    rates = cm.rates()

    assert rates['precision'] is None
    assert rates['sensitivity'] == 0.0
    assert rates['specificity'] == 1.0
    assert rates['accuracy'] == pytest.approx(0.8)

    rates = ConfusionMatrix(tp=0, fn=0, fp=3, tn=7).rates()

    assert rates['sensitivity'] is None
    assert rates['precision'] == 0.0
    assert rates['specificity'] == pytest.approx(0.7)


def test_evaluate_holdout_counts_sum_to_test_size(fitted_model):
    test = make_frame(np.r_[np.ones(10), np.zeros(90)], seed=1)

    cm = evaluate_holdout(fitted_model, test)

    assert cm.total == len(test)
    for value in cm.rates().values():
        assert 0.0 <= value <= 1.0
    assert cm.sensitivity > 0.9
    assert cm.specificity > 0.9


def test_evaluate_holdout_single_label_set(fitted_model):
    test = make_frame(np.zeros(30), seed=2)

    cm = evaluate_holdout(fitted_model, test)

    assert cm.total == 30
    assert cm.tp + cm.fn == 0
    with pytest.raises(UndefinedMetricError):
        cm.sensitivity
    assert cm.summary()['sensitivity'] is None


def test_evaluate_holdout_threshold(fitted_model):
    test = make_frame(np.r_[np.ones(10), np.zeros(20)], seed=3)

    cm = evaluate_holdout(fitted_model, test, threshold=0.0)

    assert cm.tp == 10
    assert cm.fp == 20
    assert cm.tn == 0
    assert cm.specificity == 0.0


def test_build_confusion_matrix_rejects_mismatch():
    with pytest.raises(DataError):
        build_confusion_matrix([0, 1], [0])

    with pytest.raises(DataError, match="empty"):
        build_confusion_matrix([], [])


def test_to_frame_layout():
    cm = ConfusionMatrix(tp=1, fn=2, fp=3, tn=4)
    frame = cm.to_frame()

    assert frame.loc['fraud', 'fraud'] == 1
    assert frame.loc['genuine', 'fraud'] == 2
    assert frame.loc['fraud', 'genuine'] == 3
    assert frame.loc['genuine', 'genuine'] == 4
    assert frame.to_numpy().sum() == cm.total


def test_print_confusion_matrix(capsys):
    print_confusion_matrix(ConfusionMatrix(tp=0, fn=0, fp=1, tn=9), 'logistic')

    out = capsys.readouterr().out
    assert 'logistic Holdout Performance' in out
    assert 'undefined' in out
    assert 'TN:     9' in out
