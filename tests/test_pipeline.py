"""End-to-end tests for the experiment runner and CLI."""

import json

import pytest
import pandas as pd
import numpy as np
import yaml

from src.config import ExperimentConfig
from src.data.loader import FEATURE_COLUMNS, FRAUD, LABEL_COLUMN, recode_labels
from src.errors import ConfigurationError
from src.models.train import ModelConfig, ModelFamily
from src.pipeline import run_experiment, select_families
from train import main

SMALL_GRIDS = {
    'random_forest': {'n_estimators': [20], 'max_features': [2, 5]},
    'gradient_boosting': {'n_estimators': [20], 'max_depth': [1, 2], 'min_child_samples': [5]},
    'decision_tree': {'min_impurity_decrease': [0.0, 0.01]},
}


@pytest.fixture(scope='module')
def raw_data():
    """Imbalanced transactions with fraud shifted along V1 and V4."""
    rng = np.random.RandomState(42)
    n_samples = 600
    target = np.r_[np.ones(60, dtype=int), np.zeros(540, dtype=int)]

    data = {col: rng.randn(n_samples) for col in FEATURE_COLUMNS}
    data['V1'] = data['V1'] + 3 * target
    data['V4'] = data['V4'] - 2 * target
    data['Time'] = np.sort(rng.uniform(0, 172800, n_samples))
    data['Amount'] = rng.lognormal(4, 1.5, n_samples)
    data['Class'] = target
    return pd.DataFrame(data)


@pytest.fixture
def config(tmp_path):
    return ExperimentConfig(
        seed=1,
        train_fraction=0.7,
        subsample_fraction=0.5,
        cv_folds=3,
        grids=SMALL_GRIDS,
        output_dir=tmp_path / 'runs'
    )


def test_select_families():
    comparison = pd.DataFrame({
        'subset': ['a', 'a', 'a', 'b'],
        'model': ['logistic', 'decision_tree', 'random_forest', 'gradient_boosting'],
        'roc_auc': [0.90, 0.95, 0.95, 0.99],
    })

    assert select_families(comparison, 'a', 2) == [
        ModelFamily.DECISION_TREE, ModelFamily.RANDOM_FOREST
    ]


def test_run_experiment(raw_data, config):
    report = run_experiment(config, dataset=recode_labels(raw_data))

    assert len(report.train) + len(report.test) == len(raw_data)
    assert set(report.train.index).isdisjoint(report.test.index)

    undersampled = report.subsets['undersampled']
    fraud_in_train = int((report.train[LABEL_COLUMN] == FRAUD).sum())
    assert int((undersampled[LABEL_COLUMN] == FRAUD).sum()) == fraud_in_train
    assert len(report.subsets['subsampled']) == round(0.5 * len(report.train))

    assert len(report.comparison) == 8
    assert report.comparison['roc_auc'].between(0, 1).all()

    assert len(report.tuning) == 2
    for family, result in report.tuning.items():
        assert all(result.best_result.score >= r.score for r in result.all_results if not r.failed)
        assert report.models[family].config == result.best_config
        assert report.holdout[family].total == len(report.test)

    gauge = report.metrics.registry.get_sample_value(
        'fraud_model_cv_roc_auc', {'subset': 'subsampled', 'family': 'logistic'}
    )
    assert gauge is not None


def test_run_experiment_logistic_tuned_as_single_candidate(raw_data, config):
    config.n_tuned_families = len(ModelFamily)

    report = run_experiment(config, dataset=recode_labels(raw_data))

    logistic = report.tuning['logistic']
    assert len(logistic.all_results) == 1
    assert logistic.best_config == ModelConfig(ModelFamily.LOGISTIC)
    assert report.holdout['logistic'].total == len(report.test)


def test_run_experiment_is_reproducible(raw_data, config):
    first = run_experiment(config, dataset=recode_labels(raw_data))
    second = run_experiment(config, dataset=recode_labels(raw_data))

    pd.testing.assert_frame_equal(
        first.comparison.drop(columns=['result']),
        second.comparison.drop(columns=['result'])
    )
    assert first.holdout == second.holdout


def test_run_experiment_rejects_bad_config_before_loading(config):
    config.cv_folds = 1
    config.data_path = config.output_dir / 'does-not-exist.csv'

    with pytest.raises(ConfigurationError):
        run_experiment(config)


def test_cli_writes_artifacts(raw_data, tmp_path):
    data_path = tmp_path / 'creditcard.csv'
    raw_data.to_csv(data_path, index=False)

    config_path = tmp_path / 'experiment.yaml'
    config_path.write_text(yaml.safe_dump({
        'split': {'seed': 3},
        'resampling': {'subsample_fraction': 0.5},
        'cross_validation': {'folds': 3},
        'tuning': {'n_families': 1, 'grids': SMALL_GRIDS},
    }))

    output_dir = tmp_path / 'out'
    main([
        '--config', str(config_path),
        '--data', str(data_path),
        '--output-dir', str(output_dir),
        '--save-splits',
    ])

    assert (output_dir / 'cv_roc_auc.csv').exists()
    assert (output_dir / 'holdout_rates.csv').exists()
    assert (output_dir / 'metrics.prom').exists()
    assert (output_dir / 'splits' / 'metadata.json').exists()
    assert (output_dir / 'figures' / 'class_distribution.png').exists()

    model_dirs = [path for path in output_dir.iterdir() if (path / 'model.pkl').exists()]
    assert len(model_dirs) == 1

    with open(model_dirs[0] / 'model_info.json') as f:
        info = json.load(f)
    assert info['seed'] == 3
    assert info['metrics']['holdout']['true_positives'] >= 0

    with open(output_dir / 'tuning_results.json') as f:
        tuning = json.load(f)
    assert list(tuning) == [model_dirs[0].name]
