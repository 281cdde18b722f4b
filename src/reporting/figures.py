"""Tables and figures for the model comparison report.

Every function builds its own matplotlib Figure (no pyplot state), so the
results can be rendered in a notebook or saved to disk by the caller.
"""

from pathlib import Path
from typing import Mapping, Optional

import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

from ..data.loader import FRAUD, GENUINE, LABEL_COLUMN
from ..data.resampling import class_distribution
from ..models.evaluate import ConfusionMatrix
from ..models.tuning import TuningResult

CLASS_COLORS = {GENUINE: '#2ecc71', FRAUD: '#e74c3c'}


def auc_table(comparison: pd.DataFrame) -> pd.DataFrame:
    """Model x subset table of cross-validated ROC-AUC."""
    table = comparison.pivot(index='model', columns='subset', values='roc_auc')
    table.columns.name = None
    return table.round(4)


def rates_table(matrices: Mapping[str, ConfusionMatrix]) -> pd.DataFrame:
    """One row per model with confusion counts and rates (None if undefined)."""
    # object dtype keeps None instead of coercing it to NaN
    return pd.DataFrame(
        [cm.summary() for cm in matrices.values()],
        index=list(matrices),
        dtype=object
    )


def class_distribution_figure(df: pd.DataFrame, title: str = 'Class Distribution') -> Figure:
    counts = class_distribution(df)['count']

    fig = Figure(figsize=(12, 4))
    ax1, ax2 = fig.subplots(1, 2)
    colors = [CLASS_COLORS[label] for label in counts.index]

    ax1.bar(counts.index.astype(str), counts.values, color=colors)
    ax1.set_title(f'{title} (Absolute Counts)', fontsize=12, fontweight='bold')
    ax1.set_xlabel('Class')
    ax1.set_ylabel('Count')

    ax2.bar(counts.index.astype(str), counts.values, color=colors, log=True)
    ax2.set_title(f'{title} (Log Scale)', fontsize=12, fontweight='bold')
    ax2.set_xlabel('Class')
    ax2.set_ylabel('Count (log scale)')

    fig.tight_layout()
    return fig


def amount_histogram_figure(df: pd.DataFrame, max_amount: float = 1000, bins: int = 50) -> Figure:
    fig = Figure(figsize=(14, 4))
    axes = fig.subplots(1, 2)

    for ax, label in zip(axes, (GENUINE, FRAUD)):
        amounts = df.loc[df[LABEL_COLUMN] == label, 'Amount']
        ax.hist(amounts, bins=bins, range=(0, max_amount),
                color=CLASS_COLORS[label], alpha=0.7, edgecolor='black')
        ax.set_title(f'Amount Distribution - {label.capitalize()} Transactions',
                     fontsize=11, fontweight='bold')
        ax.set_xlabel('Amount ($)')
        ax.set_ylabel('Frequency')
        ax.set_xlim(0, max_amount)

    fig.tight_layout()
    return fig


def tuning_curve_figure(
    tuning_result: TuningResult,
    param: str,
    hue: Optional[str] = None
) -> Figure:
    """
    Hyperparameter value vs. cross-validated ROC-AUC.

    With `hue`, one line per value of that second hyperparameter; other
    hyperparameters are collapsed to their best score.
    """
    frame = tuning_result.to_frame()
    if param not in frame.columns:
        raise KeyError(f"{param!r} is not a tuned hyperparameter of {tuning_result.family.value}")
    frame = frame[frame['error'].isna()]

    group_cols = [param] + ([hue] if hue else [])
    curve = frame.groupby(group_cols, as_index=False)['roc_auc'].max()

    fig = Figure(figsize=(8, 5))
    ax = fig.subplots()
    sns.lineplot(data=curve, x=param, y='roc_auc', hue=hue, marker='o', ax=ax)

    best = tuning_result.best_config.params
    if param in best:
        ax.axvline(x=best[param], color='black', linestyle='--', linewidth=0.8)

    ax.set_title(f'{tuning_result.family.value}: {param} vs. CV ROC-AUC',
                 fontsize=13, fontweight='bold')
    ax.set_xlabel(param)
    ax.set_ylabel('ROC-AUC')
    fig.tight_layout()
    return fig


def confusion_matrix_figure(cm: ConfusionMatrix, title: str = 'Confusion Matrix') -> Figure:
    fig = Figure(figsize=(6, 5))
    ax = fig.subplots()
    sns.heatmap(cm.to_frame(), annot=True, fmt='d', cmap='Blues', cbar=False, ax=ax)
    ax.set_xlabel('Actual')
    ax.set_ylabel('Predicted')
    ax.set_title(title, fontsize=12, fontweight='bold')
    fig.tight_layout()
    return fig


def save_figure(fig: Figure, path: Path, dpi: int = 150) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    return path
