"""
Bias Report Pipeline Orchestrator

Main entry point for running the end-to-end analysis:
1. Data loading and joining
2. Descriptive statistics
3. Train/validation split
4. Fitting and scoring every configured bias model variant

"""

import argparse
import logging
import time
from typing import Dict, List, Optional

import pandas as pd

from . import config
from .bias_model import fit_bias_model
from .data_io import load_dataset
from .evaluate import ResultsTable, evaluate_model, sweep_regularization
from .split import train_validation_split
from .statistics import compute_dataset_statistics

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def evaluate_variants(train_df: pd.DataFrame,
                      validation_df: pd.DataFrame,
                      model_variants: List[Dict],
                      lambdas: List[float]) -> Dict:
    """
    Fit and score each model variant, appending one results row per variant.

    Regularized variants sweep the lambdas and record the best RMSE.

    Returns:
        Dict with 'results' (ResultsTable) and 'sweeps' ({label: RegularizationSweep})
    """
    results = ResultsTable()
    sweeps = {}

    for variant in model_variants:
        stages = tuple(variant.get('stages', ()))
        if variant.get('regularized', False):
            sweep = sweep_regularization(train_df, validation_df, lambdas, stages=stages)
            sweeps[variant['label']] = sweep
            score = sweep.best_rmse
        else:
            model = fit_bias_model(train_df, stages=stages, lam=0.0)
            score = evaluate_model(model, validation_df)

        results.append(variant['label'], variant['method'], score)

    return {'results': results, 'sweeps': sweeps}


def run_report_pipeline(ratings_path: Optional[str] = None,
                        movies_path: Optional[str] = None,
                        split_config: Optional[Dict] = None,
                        regularization_config: Optional[Dict] = None,
                        model_variants: Optional[List[Dict]] = None,
                        loader_config: Optional[Dict] = None) -> Dict:
    """
    Run the complete analysis from raw files to the results table.

    Args:
        ratings_path: Path to ratings.dat (uses default if None)
        movies_path: Path to movies.dat (uses default if None)
        split_config: test_size / random_state (uses default if None)
        regularization_config: lambdas to sweep (uses default if None)
        model_variants: Ordered model variants (uses default if None)
        loader_config: Separators, encoding, rating scale (uses default if None)

    Returns:
        Dict with pipeline results:
        - statistics: Dict of descriptive statistics
        - results: ResultsTable of (label, method, rmse)
        - sweeps: Dict of RegularizationSweep per regularized variant
        - n_train / n_validation: int
        - elapsed_sec: float

    Example:
        >>> results = run_report_pipeline("data/ratings.dat", "data/movies.dat")
        >>> print(results['results'].to_frame())
    """
    start_time = time.time()

    if ratings_path is None:
        ratings_path = config.RATINGS_PATH
    if movies_path is None:
        movies_path = config.MOVIES_PATH
    if split_config is None:
        split_config = config.SPLIT_CONFIG
    if regularization_config is None:
        regularization_config = config.REGULARIZATION_CONFIG
    if model_variants is None:
        model_variants = config.MODEL_VARIANTS
    if loader_config is None:
        loader_config = config.LOADER_CONFIG

    logger.info("=" * 60)
    logger.info("STARTING BIAS REPORT PIPELINE")
    logger.info("=" * 60)

    # Step 1: Load and join
    logger.info(f"[1/4] Loading data from {ratings_path} and {movies_path}...")
    joined_df = load_dataset(ratings_path, movies_path, loader_config)
    logger.info(f"  Loaded {len(joined_df)} joined ratings")

    # Step 2: Descriptive statistics
    logger.info("[2/4] Computing descriptive statistics...")
    statistics = compute_dataset_statistics(joined_df)

    # Step 3: Split
    logger.info("[3/4] Splitting into train/validation sets...")
    train_df, validation_df = train_validation_split(
        joined_df,
        test_size=split_config.get('test_size', 0.1),
        random_state=split_config.get('random_state', 1)
    )
    logger.info(f"  Train: {len(train_df)}, Validation: {len(validation_df)}")

    # Step 4: Fit and score the model variants
    logger.info(f"[4/4] Evaluating {len(model_variants)} model variants...")
    evaluated = evaluate_variants(
        train_df,
        validation_df,
        model_variants,
        regularization_config.get('lambdas', [0.0])
    )
    results = evaluated['results']

    elapsed_sec = time.time() - start_time

    logger.info("=" * 60)
    logger.info("PIPELINE COMPLETED SUCCESSFULLY")
    logger.info("=" * 60)
    logger.info(f"Total time: {elapsed_sec:.2f} seconds")
    for row in results.rows:
        logger.info(f"{row.label:<8} {row.method:<50} {row.rmse:.5f}")
    logger.info("=" * 60)

    return {
        'statistics': statistics,
        'results': results,
        'sweeps': evaluated['sweeps'],
        'n_train': len(train_df),
        'n_validation': len(validation_df),
        'elapsed_sec': elapsed_sec,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run pipeline from command line.

    Usage:
        python -m movielens_bias.pipeline
        python -m movielens_bias.pipeline --ratings ratings.dat --movies movies.dat --seed 1
    """
    parser = argparse.ArgumentParser(description='Run the MovieLens bias report')
    parser.add_argument('--ratings', type=str, default=None,
                        help=f'Path to ratings.dat (default: {config.RATINGS_PATH})')
    parser.add_argument('--movies', type=str, default=None,
                        help=f'Path to movies.dat (default: {config.MOVIES_PATH})')
    parser.add_argument('--test-size', type=float, default=config.SPLIT_CONFIG['test_size'],
                        help='Held-out fraction (default: %(default)s)')
    parser.add_argument('--seed', type=int, default=config.SPLIT_CONFIG['random_state'],
                        help='Random seed for the split (default: %(default)s)')
    args = parser.parse_args(argv)

    try:
        output = run_report_pipeline(
            ratings_path=args.ratings,
            movies_path=args.movies,
            split_config={'test_size': args.test_size, 'random_state': args.seed},
        )
    except Exception:
        logger.exception("Bias report pipeline failed")
        raise

    print(output['results'].to_frame().to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
