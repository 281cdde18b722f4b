"""Prometheus metrics for fraud model comparison runs."""

import logging
from pathlib import Path
from typing import Mapping, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile

logger = logging.getLogger(__name__)


class ExperimentMetrics:
    """Prometheus metrics for one experiment run, kept in a private registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Fitting
        self.fits_total = Counter(
            'fraud_model_fits_total',
            'Total number of successful model fits',
            ['family'],
            registry=self.registry
        )

        self.fit_failures_total = Counter(
            'fraud_model_fit_failures_total',
            'Total number of failed model fits',
            ['family'],
            registry=self.registry
        )

        self.fit_duration = Histogram(
            'fraud_model_fit_duration_seconds',
            'Fit plus predict duration per fold in seconds',
            ['family'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
            registry=self.registry
        )

        # Model performance
        self.cv_roc_auc = Gauge(
            'fraud_model_cv_roc_auc',
            'Mean cross-validated ROC-AUC',
            ['subset', 'family'],
            registry=self.registry
        )

        self.tuned_roc_auc = Gauge(
            'fraud_model_tuned_roc_auc',
            'Best cross-validated ROC-AUC after grid search',
            ['family'],
            registry=self.registry
        )

        self.holdout_rate = Gauge(
            'fraud_model_holdout_rate',
            'Holdout confusion matrix rates',
            ['family', 'metric'],
            registry=self.registry
        )

        # Data
        self.subset_records = Gauge(
            'fraud_subset_records',
            'Number of records per subset and label',
            ['subset', 'label'],
            registry=self.registry
        )

    def record_fit(self, family: str, duration: float) -> None:
        """Record a successful fit."""
        self.fits_total.labels(family=family).inc()
        self.fit_duration.labels(family=family).observe(duration)

    def record_fit_failure(self, family: str) -> None:
        """Record a failed fit."""
        self.fit_failures_total.labels(family=family).inc()

    def record_cv_score(self, subset: str, family: str, score: float) -> None:
        self.cv_roc_auc.labels(subset=subset, family=family).set(score)

    def record_tuned_score(self, family: str, score: float) -> None:
        self.tuned_roc_auc.labels(family=family).set(score)

    def record_holdout_rates(self, family: str, rates: Mapping[str, Optional[float]]) -> None:
        """Update holdout rates; undefined rates are skipped."""
        for metric, value in rates.items():
            if value is not None:
                self.holdout_rate.labels(family=family, metric=metric).set(value)

    def record_subset(self, subset: str, label_counts: Mapping[str, int]) -> None:
        for label, count in label_counts.items():
            self.subset_records.labels(subset=subset, label=label).set(count)

    def write_metrics(self, path: Path) -> None:
        """Write metrics in the Prometheus text format (textfile collector)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), self.registry)
        logger.info("Metrics written to %s", path)
