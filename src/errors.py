"""Exception hierarchy for the fraud model comparison pipeline."""

from typing import Any, Dict, Optional


class FraudPipelineError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationError(FraudPipelineError, ValueError):
    """Invalid experiment settings, detected before any model is fit."""


class DataError(FraudPipelineError, ValueError):
    """Input data does not satisfy the transaction schema or class requirements."""


class FitError(FraudPipelineError, RuntimeError):
    """A model fit failed for a specific fold and configuration."""

    def __init__(
        self,
        message: str,
        stage: str,
        family: str,
        params: Optional[Dict[str, Any]] = None,
        fold: Optional[int] = None
    ):
        self.stage = stage
        self.family = family
        self.params = dict(params or {})
        self.fold = fold
        location = f" on fold {fold}" if fold is not None else ""
        super().__init__(
            f"[{stage}] {family} {self.params} failed{location}: {message}"
        )


class UndefinedMetricError(FraudPipelineError, ZeroDivisionError):
    """A derived rate has a zero denominator."""

    def __init__(self, metric: str, denominator: str):
        self.metric = metric
        self.denominator = denominator
        super().__init__(f"{metric} is undefined: {denominator} is 0")
