"""Experiment configuration loaded from YAML."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import ConfigurationError
from .models.train import TUNABLE_PARAMS, ModelFamily
from .models.tuning import expand_grid

SUBSET_NAMES = ('undersampled', 'subsampled')


def default_grids() -> Dict[str, Dict[str, List[Any]]]:
    return {
        'random_forest': {
            'n_estimators': [500],
            'max_features': [2, 3, 5, 8, 12],
        },
        'gradient_boosting': {
            'n_estimators': [100, 300, 500],
            'max_depth': [1, 3, 5],
            'learning_rate': [0.01, 0.1],
            'min_child_samples': [10, 20],
        },
        'decision_tree': {
            'min_impurity_decrease': [0.0, 0.0005, 0.001, 0.005, 0.01],
        },
    }


@dataclass
class ExperimentConfig:
    """All settings for one run of the model comparison."""

    data_path: Path = Path('data/creditcard.csv')
    seed: int = 42
    train_fraction: float = 0.7
    stratify_split: bool = False
    undersample_ratio: float = 0.5
    subsample_fraction: float = 0.1
    stratify_subsample: bool = False
    cv_folds: int = 5
    tuning_subset: str = 'undersampled'
    n_tuned_families: int = 2
    grids: Dict[str, Dict[str, List[Any]]] = field(default_factory=default_grids)
    threshold: float = 0.5
    output_dir: Path = Path('models/runs')
    save_splits: bool = False

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "ExperimentConfig":
        """Build from the sectioned layout used by config/default.yaml."""
        known = {'data', 'split', 'resampling', 'cross_validation', 'tuning', 'evaluation', 'output'}
        unknown = set(cfg) - known
        if unknown:
            raise ConfigurationError(f"Unknown config sections: {sorted(unknown)}")

        data = cfg.get('data') or {}
        split = cfg.get('split') or {}
        resampling = cfg.get('resampling') or {}
        cv = cfg.get('cross_validation') or {}
        tuning = cfg.get('tuning') or {}
        evaluation = cfg.get('evaluation') or {}
        output = cfg.get('output') or {}

        defaults = cls()
        config = cls(
            data_path=Path(data.get('path', defaults.data_path)),
            seed=int(split.get('seed', defaults.seed)),
            train_fraction=float(split.get('train_fraction', defaults.train_fraction)),
            stratify_split=bool(split.get('stratify', defaults.stratify_split)),
            undersample_ratio=float(
                resampling.get('undersample_ratio', defaults.undersample_ratio)
            ),
            subsample_fraction=float(
                resampling.get('subsample_fraction', defaults.subsample_fraction)
            ),
            stratify_subsample=bool(
                resampling.get('stratify_subsample', defaults.stratify_subsample)
            ),
            cv_folds=int(cv.get('folds', defaults.cv_folds)),
            tuning_subset=tuning.get('subset', defaults.tuning_subset),
            n_tuned_families=int(tuning.get('n_families', defaults.n_tuned_families)),
            grids={**defaults.grids, **(tuning.get('grids') or {})},
            threshold=float(evaluation.get('threshold', defaults.threshold)),
            output_dir=Path(output.get('dir', defaults.output_dir)),
            save_splits=bool(output.get('save_splits', defaults.save_splits)),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "ExperimentConfig":
        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}
        if not isinstance(cfg, dict):
            raise ConfigurationError(f"{path} must contain a mapping of sections")
        return cls.from_dict(cfg)

    def validate(self) -> None:
        """
        Check every setting before any data is read or model fit.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        if not 0 < self.train_fraction < 1:
            raise ConfigurationError(f"train_fraction must be in (0, 1), got {self.train_fraction}")
        if not 0 < self.undersample_ratio < 1:
            raise ConfigurationError(
                f"undersample_ratio must be in (0, 1), got {self.undersample_ratio}"
            )
        if not 0 < self.subsample_fraction <= 1:
            raise ConfigurationError(
                f"subsample_fraction must be in (0, 1], got {self.subsample_fraction}"
            )
        if self.cv_folds < 2:
            raise ConfigurationError(f"cross_validation.folds must be >= 2, got {self.cv_folds}")
        if self.tuning_subset not in SUBSET_NAMES:
            raise ConfigurationError(
                f"tuning.subset must be one of {SUBSET_NAMES}, got {self.tuning_subset!r}"
            )
        if not 1 <= self.n_tuned_families <= len(ModelFamily):
            raise ConfigurationError(
                f"tuning.n_families must be in [1, {len(ModelFamily)}], got {self.n_tuned_families}"
            )
        if not 0 <= self.threshold <= 1:
            raise ConfigurationError(f"evaluation.threshold must be in [0, 1], got {self.threshold}")

        # raises on unknown families or hyperparameters and on empty candidate lists
        for family_name, grid in self.grids.items():
            expand_grid(ModelFamily.parse(family_name), grid)

        missing = [
            family.value for family in ModelFamily
            if TUNABLE_PARAMS[family] and family.value not in self.grids
        ]
        if missing:
            raise ConfigurationError(f"No tuning grid configured for {missing}")

    def grid_for(self, family: ModelFamily) -> Dict[str, List[Any]]:
        """Candidate grid for a family; empty for families without tunable hyperparameters."""
        family = ModelFamily.parse(family)
        if not TUNABLE_PARAMS[family]:
            return {}
        if family.value not in self.grids:
            raise ConfigurationError(f"No tuning grid configured for {family.value}")
        return self.grids[family.value]
