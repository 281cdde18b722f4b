"""Classifier families behind a single fit/predict interface."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import joblib
import numpy as np
from lightgbm import LGBMClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.tree import DecisionTreeClassifier

from ..errors import ConfigurationError


class ModelFamily(str, Enum):
    """Supported classifier families."""

    LOGISTIC = 'logistic'
    DECISION_TREE = 'decision_tree'
    RANDOM_FOREST = 'random_forest'
    GRADIENT_BOOSTING = 'gradient_boosting'

    @classmethod
    def parse(cls, value) -> 'ModelFamily':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            choices = [family.value for family in cls]
            raise ConfigurationError(
                f"Unknown model family: {value!r} (expected one of {choices})"
            ) from None


@dataclass(frozen=True)
class ModelConfig:
    """A model family plus its hyperparameter values."""

    family: ModelFamily
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'family', ModelFamily.parse(self.family))
        object.__setattr__(self, 'params', dict(self.params))
        unknown = set(self.params) - TUNABLE_PARAMS[self.family]
        if unknown:
            raise ConfigurationError(
                f"Unknown hyperparameters for {self.family.value}: {sorted(unknown)} "
                f"(allowed: {sorted(TUNABLE_PARAMS[self.family])})"
            )

    def __hash__(self):
        return hash((self.family, tuple(sorted(self.params.items()))))

    @property
    def name(self) -> str:
        return self.family.value

    def describe(self) -> str:
        if not self.params:
            return self.family.value
        values = ', '.join(f"{key}={value}" for key, value in sorted(self.params.items()))
        return f"{self.family.value}({values})"


TUNABLE_PARAMS: Dict[ModelFamily, frozenset] = {
    ModelFamily.LOGISTIC: frozenset(),
    ModelFamily.DECISION_TREE: frozenset({'min_impurity_decrease'}),
    ModelFamily.RANDOM_FOREST: frozenset({'n_estimators', 'max_features'}),
    ModelFamily.GRADIENT_BOOSTING: frozenset({
        'n_estimators', 'max_depth', 'learning_rate', 'min_child_samples'
    }),
}


def _build_logistic(params: Dict[str, Any], random_state: int):
    return make_pipeline(
        StandardScaler(),
        LogisticRegression(max_iter=1000, random_state=random_state, **params)
    )


def _build_decision_tree(params: Dict[str, Any], random_state: int):
    default_params = {
        'min_impurity_decrease': 0.001,
        'random_state': random_state,
    }
    default_params.update(params)
    return DecisionTreeClassifier(**default_params)


def _build_random_forest(params: Dict[str, Any], random_state: int):
    default_params = {
        'n_estimators': 500,
        'max_features': 'sqrt',
        'random_state': random_state,
        'n_jobs': -1
    }
    default_params.update(params)
    return RandomForestClassifier(**default_params)


def _build_gradient_boosting(params: Dict[str, Any], random_state: int):
    default_params = {
        'n_estimators': 100,
        'max_depth': 3,
        'learning_rate': 0.1,
        'min_child_samples': 10,
        'random_state': random_state,
        'verbose': -1
    }
    default_params.update(params)
    # interaction depth d allows up to 2**d leaves
    if default_params['max_depth'] > 0:
        default_params['num_leaves'] = max(2, 2 ** default_params['max_depth'])
    return LGBMClassifier(**default_params)


ESTIMATOR_BUILDERS: Dict[ModelFamily, Callable[[Dict[str, Any], int], Any]] = {
    ModelFamily.LOGISTIC: _build_logistic,
    ModelFamily.DECISION_TREE: _build_decision_tree,
    ModelFamily.RANDOM_FOREST: _build_random_forest,
    ModelFamily.GRADIENT_BOOSTING: _build_gradient_boosting,
}


def baseline_configs() -> list[ModelConfig]:
    """The four families with their untuned settings."""
    return [
        ModelConfig(ModelFamily.LOGISTIC),
        ModelConfig(ModelFamily.DECISION_TREE, {'min_impurity_decrease': 0.001}),
        ModelConfig(ModelFamily.RANDOM_FOREST, {'n_estimators': 500, 'max_features': 5}),
        ModelConfig(ModelFamily.GRADIENT_BOOSTING, {
            'n_estimators': 100,
            'max_depth': 3,
            'learning_rate': 0.1,
            'min_child_samples': 10,
        }),
    ]


class FraudDetectionModel:
    """Wrapper for fraud detection models with consistent interface."""

    def __init__(
        self,
        config: ModelConfig,
        random_state: int = 42
    ):
        """
        Initialize fraud detection model.

        Args:
            config: Model family and hyperparameters
            random_state: Random seed for reproducibility
        """
        self.config = config
        self.random_state = random_state
        self.model = ESTIMATOR_BUILDERS[config.family](dict(config.params), random_state)
        self.threshold = 0.5

    @property
    def model_type(self) -> str:
        return self.config.family.value

    @property
    def hyperparams(self) -> Dict[str, Any]:
        return dict(self.config.params)

    def fit(self, X, y):
        """Train the model."""
        self.model.fit(X, y)
        return self

    def predict_proba(self, X) -> np.ndarray:
        """Predict fraud probabilities."""
        return self.model.predict_proba(X)[:, 1]

    def predict(self, X, threshold: Optional[float] = None) -> np.ndarray:
        """Predict classes with optional threshold."""
        if threshold is None:
            threshold = self.threshold

        proba = self.predict_proba(X)
        return (proba >= threshold).astype(int)


def _json_safe(value):
    if isinstance(value, np.generic):
        return value.item()
    return value


def save_model(
    model: FraudDetectionModel,
    output_dir: Path,
    metrics: Optional[Dict] = None,
    metadata: Optional[Dict] = None
) -> None:
    """
    Save model, metrics, and metadata.

    Args:
        model: Trained model
        output_dir: Directory to save artifacts
        metrics: Model metrics dictionary
        metadata: Additional metadata
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    joblib.dump(model, output_dir / 'model.pkl')

    model_info = {
        'model_type': model.model_type,
        'threshold': float(model.threshold),
        'hyperparameters': {k: _json_safe(v) for k, v in model.hyperparams.items()},
        'random_state': model.random_state,
        'timestamp': datetime.now().isoformat(),
    }

    if metrics:
        model_info['metrics'] = metrics

    if metadata:
        model_info.update(metadata)

    with open(output_dir / 'model_info.json', 'w') as f:
        json.dump(model_info, f, indent=2, default=_json_safe)


def load_model(model_dir: Path) -> FraudDetectionModel:
    """Load trained model from disk."""
    return joblib.load(model_dir / 'model.pkl')
