"""Grid search over hyperparameters using cross-validated ROC-AUC."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import pandas as pd
from sklearn.model_selection import ParameterGrid

from ..data.loader import features_and_target
from ..data.splits import stage_seed
from ..errors import ConfigurationError, FitError
from ..monitoring import ExperimentMetrics
from .cross_validation import CVResult, cross_validate
from .train import TUNABLE_PARAMS, FraudDetectionModel, ModelConfig, ModelFamily

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TuningResult:
    """Best configuration plus every evaluated candidate, in grid order."""

    family: ModelFamily
    best_config: ModelConfig
    best_result: CVResult
    all_results: tuple[CVResult, ...]

    @property
    def failed_results(self) -> tuple[CVResult, ...]:
        return tuple(result for result in self.all_results if result.failed)

    def to_frame(self) -> pd.DataFrame:
        """
        One row per candidate: hyperparameters, mean and std ROC-AUC.

        Failed candidates keep their row with a NaN score and the error message.
        """
        rows = []
        for rank, result in enumerate(self.all_results):
            row = dict(result.config.params)
            row.update({
                'candidate': rank,
                'roc_auc': float('nan') if result.failed else result.score,
                'roc_auc_std': result.std,
                'is_best': result is self.best_result,
                'error': result.error,
            })
            rows.append(row)
        return pd.DataFrame(rows)


def expand_grid(family: ModelFamily, grid: Mapping[str, Sequence[Any]]) -> list[ModelConfig]:
    """
    Enumerate the Cartesian product of candidate values.

    Order follows scikit-learn's ParameterGrid, which is fixed for a given
    grid, so the first-encountered tie-break is deterministic. A family
    without tunable hyperparameters has exactly one candidate, its default
    configuration, and takes no grid.
    """
    family = ModelFamily.parse(family)
    if not TUNABLE_PARAMS[family]:
        if grid:
            raise ConfigurationError(
                f"{family.value} has no tunable hyperparameters, got grid {dict(grid)}"
            )
        return [ModelConfig(family)]

    if not grid:
        raise ConfigurationError(f"Empty tuning grid for {family.value}")

    not_lists = [name for name, values in grid.items() if not isinstance(values, (list, tuple))]
    if not_lists:
        raise ConfigurationError(f"Grid values must be lists of candidates: {not_lists}")

    empty = [name for name, values in grid.items() if len(values) == 0]
    if empty:
        raise ConfigurationError(f"No candidate values for {empty}")

    return [ModelConfig(family, params) for params in ParameterGrid(dict(grid))]


def tune(
    subset: pd.DataFrame,
    family: ModelFamily,
    grid: Mapping[str, Sequence[Any]],
    k: int = 5,
    seed: int = 42,
    metrics: Optional[ExperimentMetrics] = None,
    subset_name: str = 'tuning'
) -> TuningResult:
    """
    Cross-validate every grid candidate and keep the best.

    A candidate whose cross-validation raises FitError is kept in
    all_results as failed and never selected.

    Args:
        subset: Training subset
        family: Model family to tune
        grid: Hyperparameter name -> candidate values
        k: Number of folds
        seed: Master random seed
        metrics: Optional metrics collector
        subset_name: Name used in logs

    Returns:
        TuningResult; ties go to the first candidate in grid order

    Raises:
        FitError: If every candidate failed
    """
    family = ModelFamily.parse(family)
    candidates = expand_grid(family, grid)

    logger.info(
        "Tuning %s: %d candidates, %d-fold CV on %s",
        family.value, len(candidates), k, subset_name
    )

    # reduce per-fold log noise during the sweep
    cv_logger = logging.getLogger(cross_validate.__module__)
    previous_level = cv_logger.level
    cv_logger.setLevel(logging.WARNING)

    results = []
    best: Optional[CVResult] = None
    last_error: Optional[FitError] = None
    try:
        for config in candidates:
            try:
                result = cross_validate(
                    subset, config, k=k, seed=seed, metrics=metrics, subset_name=None
                )
            except FitError as exc:
                logger.warning("  %s failed: %s", config.describe(), exc)
                last_error = exc
                results.append(CVResult(config=config, score=None, error=str(exc)))
                continue
            results.append(result)
            logger.info("  %s: %.4f", config.describe(), result.score)
            if best is None or result.score > best.score:
                best = result
    finally:
        cv_logger.setLevel(previous_level)

    if best is None:
        raise FitError(
            f"all {len(candidates)} candidates failed",
            stage='tuning',
            family=family.value
        ) from last_error

    if metrics is not None:
        metrics.record_tuned_score(family.value, best.score)

    logger.info("Best %s: %s ROC-AUC %.4f", family.value, best.config.describe(), best.score)

    return TuningResult(
        family=family,
        best_config=best.config,
        best_result=best,
        all_results=tuple(results)
    )


def refit_best(
    subset: pd.DataFrame,
    tuning_result: TuningResult,
    seed: int = 42
) -> FraudDetectionModel:
    """Fit the winning configuration on the whole subset."""
    X, y = features_and_target(subset)
    config = tuning_result.best_config
    model = FraudDetectionModel(config, random_state=stage_seed(seed, 'model'))
    try:
        model.fit(X, y)
    except Exception as exc:
        raise FitError(
            str(exc),
            stage='refit',
            family=config.name,
            params=config.params
        ) from exc
    return model


def print_tuning_results(tuning_result: TuningResult) -> None:
    """Print every candidate with its score, best marked and failures flagged."""
    print(f"\nTuning results for {tuning_result.family.value}:")
    for result in tuning_result.all_results:
        marker = '*' if result is tuning_result.best_result else ' '
        if result.failed:
            print(f" ! {result.config.describe():60s} failed: {result.error}")
            continue
        print(f" {marker} {result.config.describe():60s} {result.score:.4f} (+/- {result.std:.4f})")
