"""Derive resampled training subsets to handle class imbalance."""

import logging

import pandas as pd

from ..errors import ConfigurationError, DataError
from .loader import FRAUD, GENUINE, LABEL_CATEGORIES, LABEL_COLUMN
from .splits import stage_seed

logger = logging.getLogger(__name__)


def class_distribution(df: pd.DataFrame) -> pd.DataFrame:
    """Count and share of each label, both categories always present."""
    counts = df[LABEL_COLUMN].value_counts().reindex(LABEL_CATEGORIES, fill_value=0)
    total = int(counts.sum())
    return pd.DataFrame({
        'count': counts.astype(int),
        'share': counts / total if total else counts.astype(float),
    })


def _minority_majority(df: pd.DataFrame) -> tuple[str, str]:
    counts = class_distribution(df)['count']
    minority = counts.idxmin()
    majority = counts.idxmax()
    if minority == majority:
        # equal counts; treat the later category (fraud) as minority
        minority, majority = FRAUD, GENUINE
    return minority, majority


def undersample(
    train_df: pd.DataFrame,
    target_minority_ratio: float = 0.5,
    seed: int = 42
) -> pd.DataFrame:
    """
    Keep every minority record and sample majority records to reach a class ratio.

    Args:
        train_df: Training partition
        target_minority_ratio: Desired minority share of the result
        seed: Master random seed

    Returns:
        Balanced subset in original row order
    """
    if not 0 < target_minority_ratio < 1:
        raise ConfigurationError(
            f"target_minority_ratio must be in (0, 1), got {target_minority_ratio}"
        )

    minority, majority = _minority_majority(train_df)
    minority_df = train_df[train_df[LABEL_COLUMN] == minority]
    majority_df = train_df[train_df[LABEL_COLUMN] == majority]

    if len(minority_df) == 0:
        raise DataError(f"Cannot undersample: class '{minority}' has no records")

    n_majority = int(round(
        len(minority_df) * (1 - target_minority_ratio) / target_minority_ratio
    ))
    if n_majority > len(majority_df):
        raise DataError(
            f"Cannot undersample: need {n_majority} '{majority}' records "
            f"but only {len(majority_df)} available"
        )

    sampled = majority_df.sample(n=n_majority, random_state=stage_seed(seed, 'undersample'))
    balanced = pd.concat([minority_df, sampled]).sort_index()

    logger.info(
        "Undersampled %d -> %d records (%d %s / %d %s)",
        len(train_df), len(balanced), len(minority_df), minority, n_majority, majority
    )
    return balanced


def subsample(
    train_df: pd.DataFrame,
    keep_fraction: float = 0.1,
    seed: int = 42,
    stratify: bool = False
) -> pd.DataFrame:
    """
    Uniform random subsample of the training partition.

    Unstratified by default, so the class ratio matches the source only in
    expectation; check it with class_distribution.
    """
    if not 0 < keep_fraction <= 1:
        raise ConfigurationError(f"keep_fraction must be in (0, 1], got {keep_fraction}")
    if len(train_df) == 0:
        raise DataError("Cannot subsample an empty training set")

    random_state = stage_seed(seed, 'subsample')

    if stratify:
        parts = [
            group.sample(n=int(round(keep_fraction * len(group))), random_state=random_state)
            for _, group in train_df.groupby(LABEL_COLUMN, observed=True)
        ]
        small = pd.concat(parts)
    else:
        n_keep = int(round(keep_fraction * len(train_df)))
        small = train_df.sample(n=n_keep, random_state=random_state)

    if len(small) == 0:
        raise DataError(
            f"keep_fraction={keep_fraction} leaves no records out of {len(train_df)}"
        )

    small = small.sort_index()
    logger.info(
        "Subsampled %d -> %d records, fraud share %.4f",
        len(train_df), len(small), class_distribution(small).loc[FRAUD, 'share']
    )
    return small


def print_class_distribution(df: pd.DataFrame, name: str = "Subset") -> None:
    """Print label counts and shares."""
    dist = class_distribution(df)
    print(f"\n{name} ({len(df):,} rows):")
    for label, row in dist.iterrows():
        print(f"  {label:8s}: {int(row['count']):7d} ({100 * row['share']:.3f}%)")
