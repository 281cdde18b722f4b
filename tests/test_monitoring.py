"""Tests for the experiment metrics exporter."""

import pytest
from prometheus_client.parser import text_string_to_metric_families

from src.monitoring import ExperimentMetrics


def test_registries_are_independent():
    first = ExperimentMetrics()
    second = ExperimentMetrics()

    first.record_fit('logistic', 0.2)

    assert first.registry.get_sample_value('fraud_model_fits_total', {'family': 'logistic'}) == 1.0
    assert second.registry.get_sample_value('fraud_model_fits_total', {'family': 'logistic'}) is None


def test_record_fit_observes_duration():
    metrics = ExperimentMetrics()

    metrics.record_fit('random_forest', 0.3)
    metrics.record_fit('random_forest', 0.7)

    assert metrics.registry.get_sample_value(
        'fraud_model_fit_duration_seconds_count', {'family': 'random_forest'}
    ) == 2.0
    assert metrics.registry.get_sample_value(
        'fraud_model_fit_duration_seconds_sum', {'family': 'random_forest'}
    ) == pytest.approx(1.0)


def test_holdout_rates_skip_undefined():
    metrics = ExperimentMetrics()

    metrics.record_holdout_rates('logistic', {'accuracy': 0.9, 'precision': None})

    assert metrics.registry.get_sample_value(
        'fraud_model_holdout_rate', {'family': 'logistic', 'metric': 'accuracy'}
    ) == 0.9
    assert metrics.registry.get_sample_value(
        'fraud_model_holdout_rate', {'family': 'logistic', 'metric': 'precision'}
    ) is None


def written_samples(path):
    """Parse an exposition file into {(name, frozenset(labels)): value}."""
    samples = {}
    for family in text_string_to_metric_families(path.read_text()):
        for sample in family.samples:
            samples[(sample.name, frozenset(sample.labels.items()))] = sample.value
    return samples


def test_write_metrics(tmp_path):
    metrics = ExperimentMetrics()
    metrics.record_cv_score('undersampled', 'gradient_boosting', 0.97)
    metrics.record_subset('undersampled', {'fraud': 300, 'genuine': 300})

    path = tmp_path / 'out' / 'metrics.prom'
    metrics.write_metrics(path)

    samples = written_samples(path)
    cv_labels = frozenset({'subset': 'undersampled', 'family': 'gradient_boosting'}.items())
    subset_labels = frozenset({'subset': 'undersampled', 'label': 'fraud'}.items())
    assert samples[('fraud_model_cv_roc_auc', cv_labels)] == pytest.approx(0.97)
    assert samples[('fraud_subset_records', subset_labels)] == 300.0
