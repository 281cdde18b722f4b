"""Create reproducible train/test splits."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

import pandas as pd
from sklearn.model_selection import train_test_split

from ..errors import ConfigurationError, DataError
from .loader import FRAUD, LABEL_COLUMN, TARGET_COLUMN, recode_labels, validate_schema

logger = logging.getLogger(__name__)


def stage_seed(seed: int, stage: str) -> int:
    """
    Derive an independent seed for one sampling stage.

    The same (seed, stage) pair always maps to the same value, so stages
    can run in any order without sharing a random stream.
    """
    digest = hashlib.sha256(f"{stage}:{seed}".encode('utf-8')).hexdigest()
    return int(digest[:8], 16)


def fraud_count(df: pd.DataFrame) -> int:
    if LABEL_COLUMN in df.columns:
        return int((df[LABEL_COLUMN] == FRAUD).sum())
    return int(df[TARGET_COLUMN].sum())


def split_dataset(
    df: pd.DataFrame,
    train_fraction: float = 0.7,
    seed: int = 42,
    stratify: bool = False
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partition the dataset into disjoint train and holdout sets.

    Args:
        df: Input DataFrame with features and label
        train_fraction: Proportion of records in the training set
        seed: Master random seed
        stratify: Whether to stratify by label (off by default, the class
            ratio is reported after the split instead)

    Returns:
        Tuple of (train_df, test_df); both keep the original row index
    """
    if not 0 < train_fraction < 1:
        raise ConfigurationError(
            f"train_fraction must be in (0, 1), got {train_fraction}"
        )
    if len(df) == 0:
        raise DataError("Cannot split an empty dataset")

    n_train = int(round(train_fraction * len(df)))
    if n_train == 0 or n_train == len(df):
        raise DataError(
            f"train_fraction={train_fraction} leaves an empty partition "
            f"for {len(df)} records"
        )

    stratify_by = df[LABEL_COLUMN] if stratify else None

    train_df, test_df = train_test_split(
        df,
        train_size=n_train,
        random_state=stage_seed(seed, 'split'),
        stratify=stratify_by
    )

    logger.info(
        "Split %d records into %d train / %d test", len(df), len(train_df), len(test_df)
    )
    return train_df.sort_index(), test_df.sort_index()


def compute_dataset_hash(df: pd.DataFrame) -> str:
    """Compute SHA256 hash of dataset for versioning."""
    df_bytes = pd.util.hash_pandas_object(df, index=True).values.tobytes()
    return hashlib.sha256(df_bytes).hexdigest()


def save_splits(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    output_dir: Path,
    metadata: Optional[dict] = None
) -> None:
    """
    Save train/test splits to CSV files with metadata.

    Args:
        train_df: Training set
        test_df: Holdout set
        output_dir: Directory to save splits
        metadata: Optional metadata dictionary
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    train_df.drop(columns=[LABEL_COLUMN], errors='ignore').to_csv(
        output_dir / 'train.csv', index_label='record_id'
    )
    test_df.drop(columns=[LABEL_COLUMN], errors='ignore').to_csv(
        output_dir / 'test.csv', index_label='record_id'
    )

    split_metadata = {
        'train_size': len(train_df),
        'test_size': len(test_df),
        'train_fraud_count': fraud_count(train_df),
        'test_fraud_count': fraud_count(test_df),
        'train_hash': compute_dataset_hash(train_df),
        'test_hash': compute_dataset_hash(test_df),
    }

    if metadata:
        split_metadata.update(metadata)

    with open(output_dir / 'metadata.json', 'w') as f:
        json.dump(split_metadata, f, indent=2)


def load_splits(data_dir: Path) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Load train/test splits written by save_splits."""
    frames = []
    for name in ('train', 'test'):
        df = pd.read_csv(data_dir / f'{name}.csv', index_col='record_id')
        df.index.name = None
        validate_schema(df)
        frames.append(recode_labels(df))
    return frames[0], frames[1]


def print_split_stats(train_df: pd.DataFrame, test_df: pd.DataFrame) -> None:
    """Print statistics about the splits."""
    def stats(df, name):
        total = len(df)
        fraud = fraud_count(df)
        fraud_pct = 100 * fraud / total if total else 0.0
        print(f"{name:10s}: {total:6d} rows, {fraud:4d} fraud ({fraud_pct:.3f}%)")

    stats(train_df, "Train")
    stats(test_df, "Test")
    print(f"{'Total':10s}: {len(train_df) + len(test_df):6d} rows")
