"""Holdout evaluation: confusion matrix and derived rates."""

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from ..data.loader import features_and_target
from ..errors import DataError, UndefinedMetricError
from .train import FraudDetectionModel

RATE_NAMES = ('accuracy', 'sensitivity', 'specificity', 'precision')


def _ratio(metric: str, numerator: int, denominator: int, denominator_name: str) -> float:
    if denominator == 0:
        raise UndefinedMetricError(metric, denominator_name)
    return numerator / denominator


@dataclass(frozen=True)
class ConfusionMatrix:
    """2x2 counts with fraud as the positive class."""

    tp: int
    fn: int
    fp: int
    tn: int

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    @property
    def accuracy(self) -> float:
        return _ratio('accuracy', self.tp + self.tn, self.total, 'TP+TN+FP+FN')

    @property
    def sensitivity(self) -> float:
        return _ratio('sensitivity', self.tp, self.tp + self.fn, 'TP+FN')

    @property
    def specificity(self) -> float:
        return _ratio('specificity', self.tn, self.tn + self.fp, 'TN+FP')

    @property
    def precision(self) -> float:
        return _ratio('precision', self.tp, self.tp + self.fp, 'TP+FP')

    def rates(self) -> Dict[str, Optional[float]]:
        """Derived rates; an undefined rate is None, never NaN."""
        values = {}
        for name in RATE_NAMES:
            try:
                values[name] = float(getattr(self, name))
            except UndefinedMetricError:
                values[name] = None
        return values

    def summary(self) -> Dict[str, Optional[float]]:
        summary = {
            'true_positives': self.tp,
            'false_negatives': self.fn,
            'false_positives': self.fp,
            'true_negatives': self.tn,
        }
        summary.update(self.rates())
        return summary

    def to_frame(self) -> pd.DataFrame:
        """Predicted label (rows) x actual label (columns)."""
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index(['fraud', 'genuine'], name='predicted'),
            columns=pd.Index(['fraud', 'genuine'], name='actual')
        )


def build_confusion_matrix(y_true, y_pred) -> ConfusionMatrix:
    """Count a 2x2 table from 0/1 labels (1 = fraud)."""
    y_true = np.asarray(y_true).astype(int)
    y_pred = np.asarray(y_pred).astype(int)
    if len(y_true) != len(y_pred):
        raise DataError(f"Got {len(y_true)} labels but {len(y_pred)} predictions")
    if len(y_true) == 0:
        raise DataError("Cannot evaluate on an empty holdout set")

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return ConfusionMatrix(tp=int(tp), fn=int(fn), fp=int(fp), tn=int(tn))


def evaluate_holdout(
    model: FraudDetectionModel,
    test_df: pd.DataFrame,
    threshold: float = 0.5
) -> ConfusionMatrix:
    """
    Apply a fitted model to the holdout set.

    Args:
        model: Model fit on its full training subset
        test_df: Untouched holdout partition
        threshold: Decision threshold on fraud probability

    Returns:
        ConfusionMatrix over every holdout record
    """
    X, y = features_and_target(test_df)
    y_pred = model.predict(X, threshold=threshold)
    return build_confusion_matrix(y, y_pred)


def print_confusion_matrix(cm: ConfusionMatrix, name: str = "Model") -> None:
    """Print formatted counts and rates."""
    print(f"\n{name} Holdout Performance:")
    for metric, value in cm.rates().items():
        formatted = f"{value:.4f}" if value is not None else "undefined"
        print(f"  {metric.capitalize() + ':':13s}{formatted}")

    print("\n  Confusion Matrix:")
    print(f"    TP: {cm.tp:5d}  FP: {cm.fp:5d}")
    print(f"    FN: {cm.fn:5d}  TN: {cm.tn:5d}")
