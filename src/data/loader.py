"""Load and validate the credit card transaction dataset."""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from ..errors import DataError

logger = logging.getLogger(__name__)

V_FEATURES = [f'V{i}' for i in range(1, 29)]
FEATURE_COLUMNS = V_FEATURES + ['Time', 'Amount']
TARGET_COLUMN = 'Class'
LABEL_COLUMN = 'label'

GENUINE = 'genuine'
FRAUD = 'fraud'
LABEL_CATEGORIES = [GENUINE, FRAUD]


def validate_schema(df: pd.DataFrame) -> bool:
    """
    Validate input data schema.

    Args:
        df: Raw transaction DataFrame

    Returns:
        True if schema is valid

    Raises:
        DataError: If schema validation fails
    """
    required_cols = FEATURE_COLUMNS + [TARGET_COLUMN]

    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        raise DataError(f"Missing required columns: {missing_cols}")

    non_numeric = [col for col in required_cols if not is_numeric_dtype(df[col])]
    if non_numeric:
        raise DataError(f"Non-numeric columns: {non_numeric}")

    null_counts = df[required_cols].isnull().sum()
    if null_counts.any():
        raise DataError(
            f"Data contains missing values: {null_counts[null_counts > 0].to_dict()}"
        )

    bad_labels = ~df[TARGET_COLUMN].isin([0, 1])
    if bad_labels.any():
        rows = df.index[bad_labels].tolist()[:10]
        raise DataError(f"Class column must be 0/1, invalid values at rows {rows}")

    return True


def recode_labels(df: pd.DataFrame) -> pd.DataFrame:
    """Add the categorical `label` column (1 -> fraud, 0 -> genuine)."""
    df = df.copy()
    df[LABEL_COLUMN] = pd.Categorical(
        np.where(df[TARGET_COLUMN] == 1, FRAUD, GENUINE),
        categories=LABEL_CATEGORIES
    )
    return df


def load_transactions(path: Path) -> pd.DataFrame:
    """
    Read creditcard.csv, validate it and recode the label.

    Args:
        path: Path to the delimited transaction file

    Returns:
        DataFrame with the 30 inputs, `Class` and categorical `label`
    """
    df = pd.read_csv(path)
    validate_schema(df)
    df = recode_labels(df)
    logger.info(
        "Loaded %d transactions from %s (%d fraud)",
        len(df), path, int((df[LABEL_COLUMN] == FRAUD).sum())
    )
    return df


def features_and_target(df: pd.DataFrame) -> tuple[pd.DataFrame, np.ndarray]:
    """Split a transaction frame into model inputs and a 0/1 fraud target."""
    missing_cols = [col for col in FEATURE_COLUMNS if col not in df.columns]
    if missing_cols:
        raise DataError(f"Missing required columns: {missing_cols}")

    if LABEL_COLUMN in df.columns:
        y = (df[LABEL_COLUMN] == FRAUD).to_numpy(dtype=int)
    elif TARGET_COLUMN in df.columns:
        y = df[TARGET_COLUMN].to_numpy(dtype=int)
    else:
        raise DataError(f"Frame has neither '{LABEL_COLUMN}' nor '{TARGET_COLUMN}' column")

    return df[FEATURE_COLUMNS], y
