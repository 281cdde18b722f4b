import marimo

__generated_with = "0.17.7"
app = marimo.App(width="medium")


@app.cell
def _():
    import marimo as mo
    from pathlib import Path

    project_root = Path(__file__).parent.parent

    mo.md(
        """
        # Credit Card Fraud Detection - Model Comparison

        **Objective**: Compare four classifier families on resampled training subsets,
        tune the two strongest, and check them on an untouched holdout set.

        **Dataset**: creditcard.csv (284,807 transactions, Class: 0=genuine, 1=fraud)
        """
    )
    return mo, project_root


@app.cell
def _(project_root):
    from src.config import ExperimentConfig
    from src.pipeline import run_experiment
    from src.reporting import figures

    config = ExperimentConfig.from_yaml(project_root / "config" / "default.yaml")
    config.data_path = project_root / config.data_path
    return config, figures, run_experiment


@app.cell
def _(config, mo):
    mo.md(f"**Loading dataset from**: `{config.data_path}`")
    return


@app.cell
def _(config, run_experiment):
    report = run_experiment(config)
    return (report,)


@app.cell
def _(mo, report):
    fraud_count = int(report.dataset["Class"].sum())
    mo.md(
        f"""
        ## Dataset Overview

        - **Total transactions**: {len(report.dataset):,}
        - **Fraudulent transactions**: {fraud_count:,} ({100 * fraud_count / len(report.dataset):.3f}%)
        - **Train / holdout**: {len(report.train):,} / {len(report.test):,}
        """
    )
    return


@app.cell
def _(figures, report):
    figures.class_distribution_figure(report.dataset)
    return


@app.cell
def _(figures, report):
    figures.amount_histogram_figure(report.dataset)
    return


@app.cell
def _(mo, report):
    from src.data.resampling import class_distribution

    subset_tables = {
        name: class_distribution(subset) for name, subset in report.subsets.items()
    }
    mo.vstack([
        mo.md("## Resampled Training Subsets"),
        *[mo.vstack([mo.md(f"### {name}"), table]) for name, table in subset_tables.items()],
    ])
    return


@app.cell
def _(figures, mo, report):
    mo.vstack([
        mo.md("## Cross-validated ROC-AUC (baseline settings)"),
        figures.auc_table(report.comparison),
    ])
    return


@app.cell
def _(figures, mo, report):
    curves = []
    for family, result in report.tuning.items():
        curves.append(mo.md(f"### {family}: best `{result.best_config.describe()}` "
                            f"(ROC-AUC {result.best_result.score:.4f})"))
        frame = result.to_frame()
        for param in result.best_config.params:
            if frame[param].nunique() > 1:
                curves.append(figures.tuning_curve_figure(result, param))
    mo.vstack([mo.md("## Hyperparameter Tuning"), *curves])
    return


@app.cell
def _(figures, mo, report):
    matrices = [
        figures.confusion_matrix_figure(cm, title=f"{family} (holdout)")
        for family, cm in report.holdout.items()
    ]
    mo.vstack([
        mo.md("## Holdout Evaluation"),
        figures.rates_table(report.holdout),
        mo.hstack(matrices),
    ])
    return


if __name__ == "__main__":
    app.run()
