"""Stratified k-fold ROC-AUC evaluation of model configurations."""

import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import roc_auc_score
from sklearn.model_selection import StratifiedKFold

from ..data.loader import features_and_target
from ..data.splits import stage_seed
from ..errors import ConfigurationError, DataError, FitError
from ..monitoring import ExperimentMetrics
from .train import FraudDetectionModel, ModelConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CVResult:
    """Mean ROC-AUC over k folds for one configuration, or the error that stopped it."""

    config: ModelConfig
    score: Optional[float]
    fold_scores: tuple[float, ...] = ()
    error: Optional[str] = None

    @property
    def family(self) -> str:
        return self.config.family.value

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def std(self) -> float:
        if not self.fold_scores:
            return float('nan')
        return float(np.std(self.fold_scores))


def fold_indices(y: np.ndarray, k: int, seed: int) -> list[tuple[np.ndarray, np.ndarray]]:
    """
    Fixed stratified fold assignment for a target vector.

    Every configuration evaluated on the same subset with the same seed
    gets identical folds.
    """
    if k < 2:
        raise ConfigurationError(f"k must be at least 2, got {k}")
    if len(y) < k:
        raise ConfigurationError(f"k={k} folds requested for only {len(y)} records")

    skf = StratifiedKFold(n_splits=k, shuffle=True, random_state=stage_seed(seed, 'folds'))
    try:
        return list(skf.split(np.zeros(len(y)), y))
    except ValueError as exc:
        raise DataError(f"Cannot build {k} stratified folds: {exc}") from exc


def cross_validate(
    subset: pd.DataFrame,
    config: ModelConfig,
    k: int = 5,
    seed: int = 42,
    metrics: Optional[ExperimentMetrics] = None,
    subset_name: Optional[str] = 'subset'
) -> CVResult:
    """
    Cross-validate one configuration on a training subset.

    Args:
        subset: Training subset with features and label
        config: Model family and hyperparameters
        k: Number of folds
        seed: Master random seed (fold assignment and model seed)
        metrics: Optional metrics collector
        subset_name: Subset label for the CV score gauge (None skips the gauge)

    Returns:
        CVResult with the mean and per-fold ROC-AUC

    Raises:
        FitError: If any fold has a single class or its fit fails
    """
    X, y = features_and_target(subset)
    folds = fold_indices(y, k, seed)
    model_seed = stage_seed(seed, 'model')

    fold_scores = []
    for fold, (train_idx, val_idx) in enumerate(folds, start=1):
        y_train, y_val = y[train_idx], y[val_idx]

        for side, values in (('training', y_train), ('validation', y_val)):
            if len(np.unique(values)) < 2:
                if metrics is not None:
                    metrics.record_fit_failure(config.name)
                raise FitError(
                    f"{side} fold contains a single class",
                    stage='cross_validation',
                    family=config.name,
                    params=config.params,
                    fold=fold
                )

        model = FraudDetectionModel(config, random_state=model_seed)
        start = time.perf_counter()
        try:
            model.fit(X.iloc[train_idx], y_train)
            val_proba = model.predict_proba(X.iloc[val_idx])
        except Exception as exc:
            if metrics is not None:
                metrics.record_fit_failure(config.name)
            raise FitError(
                str(exc),
                stage='cross_validation',
                family=config.name,
                params=config.params,
                fold=fold
            ) from exc

        if metrics is not None:
            metrics.record_fit(config.name, time.perf_counter() - start)

        auc = float(roc_auc_score(y_val, val_proba))
        fold_scores.append(auc)
        logger.info("%s fold %d/%d ROC-AUC: %.4f", config.describe(), fold, k, auc)

    result = CVResult(
        config=config,
        score=float(np.mean(fold_scores)),
        fold_scores=tuple(fold_scores)
    )

    if metrics is not None and subset_name is not None:
        metrics.record_cv_score(subset_name, config.name, result.score)

    return result


def compare_models(
    subsets: Mapping[str, pd.DataFrame],
    configs: Sequence[ModelConfig],
    k: int = 5,
    seed: int = 42,
    metrics: Optional[ExperimentMetrics] = None
) -> pd.DataFrame:
    """
    Cross-validate every configuration on every subset.

    Returns:
        DataFrame with one row per (subset, model) and the CV ROC-AUC
    """
    rows = []
    for subset_name, subset in subsets.items():
        for config in configs:
            result = cross_validate(
                subset, config, k=k, seed=seed, metrics=metrics, subset_name=subset_name
            )
            rows.append({
                'subset': subset_name,
                'model': config.name,
                'roc_auc': result.score,
                'roc_auc_std': result.std,
                'result': result,
            })
            logger.info("[%s] %s: CV ROC-AUC %.4f", subset_name, config.describe(), result.score)

    return pd.DataFrame(rows, columns=['subset', 'model', 'roc_auc', 'roc_auc_std', 'result'])


def print_comparison(comparison: pd.DataFrame) -> None:
    """Print the subset x model AUC table."""
    table = comparison.pivot(index='model', columns='subset', values='roc_auc')
    print("\nCross-validated ROC-AUC:")
    print(table.to_string(float_format=lambda value: f"{value:.4f}"))
