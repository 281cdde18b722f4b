"""Sequence the stages of one model comparison run."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd

from .config import ExperimentConfig
from .data.loader import load_transactions
from .data.resampling import class_distribution, subsample, undersample
from .data.splits import split_dataset
from .models.cross_validation import compare_models
from .models.evaluate import ConfusionMatrix, evaluate_holdout
from .models.train import FraudDetectionModel, ModelFamily, baseline_configs
from .models.tuning import TuningResult, refit_best, tune
from .monitoring import ExperimentMetrics

logger = logging.getLogger(__name__)


@dataclass
class ExperimentReport:
    """Everything a run produces, for printing, saving and plotting."""

    dataset: pd.DataFrame
    train: pd.DataFrame
    test: pd.DataFrame
    subsets: Dict[str, pd.DataFrame]
    comparison: pd.DataFrame
    tuning: Dict[str, TuningResult] = field(default_factory=dict)
    models: Dict[str, FraudDetectionModel] = field(default_factory=dict)
    holdout: Dict[str, ConfusionMatrix] = field(default_factory=dict)
    metrics: Optional[ExperimentMetrics] = None


def select_families(comparison: pd.DataFrame, subset_name: str, n: int) -> list[ModelFamily]:
    """Families with the highest CV ROC-AUC on one subset, best first."""
    scores = comparison[comparison['subset'] == subset_name]
    # stable sort keeps baseline order on ties
    ranked = scores.sort_values('roc_auc', ascending=False, kind='mergesort')
    return [ModelFamily(name) for name in ranked['model'].head(n)]


def build_subsets(train: pd.DataFrame, config: ExperimentConfig) -> Dict[str, pd.DataFrame]:
    return {
        'undersampled': undersample(train, config.undersample_ratio, seed=config.seed),
        'subsampled': subsample(
            train,
            config.subsample_fraction,
            seed=config.seed,
            stratify=config.stratify_subsample
        ),
    }


def run_experiment(
    config: ExperimentConfig,
    dataset: Optional[pd.DataFrame] = None,
    metrics: Optional[ExperimentMetrics] = None
) -> ExperimentReport:
    """
    Load, split, resample, compare, tune and evaluate.

    Args:
        config: Validated experiment settings
        dataset: Already loaded transactions (read from config.data_path if None)
        metrics: Metrics collector (a fresh one if None)

    Returns:
        ExperimentReport
    """
    config.validate()
    metrics = metrics or ExperimentMetrics()

    if dataset is None:
        dataset = load_transactions(config.data_path)

    train, test = split_dataset(
        dataset, config.train_fraction, seed=config.seed, stratify=config.stratify_split
    )

    subsets = build_subsets(train, config)
    for name, subset in subsets.items():
        metrics.record_subset(name, class_distribution(subset)['count'].to_dict())

    logger.info("Comparing baseline models on %s", list(subsets))
    comparison = compare_models(
        subsets, baseline_configs(), k=config.cv_folds, seed=config.seed, metrics=metrics
    )

    report = ExperimentReport(
        dataset=dataset,
        train=train,
        test=test,
        subsets=subsets,
        comparison=comparison,
        metrics=metrics
    )

    tuning_subset = subsets[config.tuning_subset]
    families = select_families(comparison, config.tuning_subset, config.n_tuned_families)
    logger.info("Tuning %s on %s", [f.value for f in families], config.tuning_subset)

    for family in families:
        result = tune(
            tuning_subset,
            family,
            config.grid_for(family),
            k=config.cv_folds,
            seed=config.seed,
            metrics=metrics,
            subset_name=config.tuning_subset
        )
        model = refit_best(tuning_subset, result, seed=config.seed)
        model.threshold = config.threshold
        cm = evaluate_holdout(model, test, threshold=config.threshold)
        metrics.record_holdout_rates(family.value, cm.rates())

        report.tuning[family.value] = result
        report.models[family.value] = model
        report.holdout[family.value] = cm

    return report
