"""Tests for experiment configuration."""

from pathlib import Path

import pytest
import yaml

from src.config import ExperimentConfig
from src.errors import ConfigurationError
from src.models.train import ModelFamily

DEFAULT_CONFIG = Path(__file__).parent.parent / 'config' / 'default.yaml'


def test_default_yaml_matches_defaults():
    config = ExperimentConfig.from_yaml(DEFAULT_CONFIG)

    assert config.seed == 42
    assert config.train_fraction == 0.7
    assert config.undersample_ratio == 0.5
    assert config.subsample_fraction == 0.1
    assert config.cv_folds == 5
    assert config.tuning_subset == 'undersampled'
    assert config.grids == ExperimentConfig().grids


def test_from_yaml_overrides(tmp_path):
    path = tmp_path / 'exp.yaml'
    path.write_text(yaml.safe_dump({
        'split': {'seed': 7, 'train_fraction': 0.8},
        'cross_validation': {'folds': 3},
        'tuning': {'grids': {'random_forest': {'max_features': [3, 4]}}},
    }))

    config = ExperimentConfig.from_yaml(path)

    assert config.seed == 7
    assert config.train_fraction == 0.8
    assert config.cv_folds == 3
    assert config.grid_for(ModelFamily.RANDOM_FOREST) == {'max_features': [3, 4]}
    assert 'learning_rate' in config.grid_for('gradient_boosting')


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')

    assert ExperimentConfig.from_yaml(path) == ExperimentConfig()


@pytest.mark.parametrize('section, values, message', [
    ('split', {'train_fraction': 1.0}, 'train_fraction'),
    ('resampling', {'undersample_ratio': 0}, 'undersample_ratio'),
    ('resampling', {'subsample_fraction': 1.5}, 'subsample_fraction'),
    ('cross_validation', {'folds': 1}, 'folds'),
    ('tuning', {'subset': 'everything'}, 'tuning.subset'),
    ('tuning', {'n_families': 0}, 'n_families'),
    ('tuning', {'grids': {'svm': {'C': [1]}}}, 'Unknown model family'),
    ('tuning', {'grids': {'random_forest': {}}}, 'Empty tuning grid'),
    ('tuning', {'grids': {'random_forest': {'mtry': [2]}}}, 'mtry'),
    ('evaluation', {'threshold': 2}, 'threshold'),
])
def test_invalid_settings_fail_fast(section, values, message):
    with pytest.raises(ConfigurationError, match=message):
        ExperimentConfig.from_dict({section: values})


def test_unknown_section():
    with pytest.raises(ConfigurationError, match="Unknown config sections"):
        ExperimentConfig.from_dict({'plots': {}})


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / 'list.yaml'
    path.write_text('- 1\n- 2\n')

    with pytest.raises(ConfigurationError, match="mapping"):
        ExperimentConfig.from_yaml(path)


def test_missing_grid_detected():
    config = ExperimentConfig()
    del config.grids['random_forest']

    with pytest.raises(ConfigurationError, match="random_forest"):
        config.validate()


def test_logistic_needs_no_grid():
    config = ExperimentConfig()

    assert 'logistic' not in config.grids
    config.validate()
    assert config.grid_for(ModelFamily.LOGISTIC) == {}


def test_logistic_grid_rejected():
    with pytest.raises(ConfigurationError, match="no tunable hyperparameters"):
        ExperimentConfig.from_dict({'tuning': {'grids': {'logistic': {'C': [0.1, 1.0]}}}})


def test_decision_tree_grid_limited_to_complexity_threshold():
    with pytest.raises(ConfigurationError, match="max_depth"):
        ExperimentConfig.from_dict({'tuning': {'grids': {'decision_tree': {'max_depth': [2, 4]}}}})
