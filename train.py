"""Compare fraud detection models on resampled training subsets."""

import argparse
import json
import logging
from pathlib import Path

from src.config import ExperimentConfig
from src.data.resampling import print_class_distribution
from src.data.splits import print_split_stats, save_splits
from src.errors import FraudPipelineError
from src.models.cross_validation import print_comparison
from src.models.evaluate import print_confusion_matrix
from src.models.train import save_model
from src.models.tuning import print_tuning_results
from src.pipeline import run_experiment
from src.reporting.figures import (
    amount_histogram_figure,
    auc_table,
    class_distribution_figure,
    confusion_matrix_figure,
    rates_table,
    save_figure,
    tuning_curve_figure,
)

logger = logging.getLogger('train')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Compare fraud detection models')
    parser.add_argument('--config', type=Path, default=Path('config/default.yaml'),
                        help='Experiment YAML config')
    parser.add_argument('--data', type=Path, help='Path to creditcard.csv (overrides config)')
    parser.add_argument('--output-dir', type=Path, help='Output directory (overrides config)')
    parser.add_argument('--random-seed', type=int, help='Random seed (overrides config)')
    parser.add_argument('--save-splits', action='store_true', help='Write train/test CSVs')
    parser.add_argument('--no-figures', action='store_true', help='Skip PNG figures')
    parser.add_argument('--verbose', action='store_true', help='Log every fold')
    return parser.parse_args(argv)


def load_config(args) -> ExperimentConfig:
    if args.config.exists():
        config = ExperimentConfig.from_yaml(args.config)
    else:
        logger.warning("Config %s not found, using defaults", args.config)
        config = ExperimentConfig()

    if args.data is not None:
        config.data_path = args.data
    if args.output_dir is not None:
        config.output_dir = args.output_dir
    if args.random_seed is not None:
        config.seed = args.random_seed
    if args.save_splits:
        config.save_splits = True

    config.validate()
    return config


def save_figures(report, output_dir: Path) -> None:
    figures_dir = output_dir / 'figures'
    save_figure(class_distribution_figure(report.dataset), figures_dir / 'class_distribution.png')
    save_figure(amount_histogram_figure(report.dataset), figures_dir / 'amount_histogram.png')

    for family, result in report.tuning.items():
        for param in result.best_config.params:
            if result.to_frame()[param].nunique() > 1:
                save_figure(tuning_curve_figure(result, param),
                            figures_dir / f'tuning_{family}_{param}.png')

    for family, cm in report.holdout.items():
        save_figure(confusion_matrix_figure(cm, title=f'{family} (holdout)'),
                    figures_dir / f'confusion_{family}.png')

    print(f"  Figures saved to {figures_dir}")


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if not args.verbose:
        logging.getLogger('src.models.cross_validation').setLevel(logging.WARNING)

    config = load_config(args)

    print("Comparing fraud detection models...")
    print(f"  Data: {config.data_path}")
    print(f"  Output: {config.output_dir}")
    print(f"  Seed: {config.seed}")

    try:
        report = run_experiment(config)
    except FraudPipelineError:
        logger.exception("Experiment failed")
        raise

    print_split_stats(report.train, report.test)
    for name, subset in report.subsets.items():
        print_class_distribution(subset, name.capitalize())

    print_comparison(report.comparison)

    for result in report.tuning.values():
        print_tuning_results(result)

    for family, cm in report.holdout.items():
        print_confusion_matrix(cm, family)

    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    if config.save_splits:
        splits_dir = output_dir / 'splits'
        save_splits(report.train, report.test, splits_dir, metadata={'seed': config.seed})
        print(f"\nSplits saved to {splits_dir}")

    for family, model in report.models.items():
        cm = report.holdout[family]
        save_model(
            model,
            output_dir / family,
            metrics={
                'cv_roc_auc': report.tuning[family].best_result.score,
                'holdout': cm.summary(),
            },
            metadata={
                'seed': config.seed,
                'tuning_subset': config.tuning_subset,
                'train_size': len(report.train),
                'test_size': len(report.test),
            }
        )

    auc_table(report.comparison).to_csv(output_dir / 'cv_roc_auc.csv')
    rates_table(report.holdout).to_csv(output_dir / 'holdout_rates.csv')
    with open(output_dir / 'tuning_results.json', 'w') as f:
        json.dump(
            {family: result.to_frame().to_dict(orient='records')
             for family, result in report.tuning.items()},
            f, indent=2, default=str
        )

    report.metrics.write_metrics(output_dir / 'metrics.prom')

    print(f"\nArtifacts saved to {output_dir}")
    print("  - <family>/model.pkl, <family>/model_info.json")
    print("  - cv_roc_auc.csv, holdout_rates.csv, tuning_results.json")
    print("  - metrics.prom")

    if not args.no_figures:
        save_figures(report, output_dir)


if __name__ == '__main__':
    main()
