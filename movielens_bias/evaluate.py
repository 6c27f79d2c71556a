"""
Model Evaluation Module

Provides the evaluation tools for the bias models:
- RMSE (Root Mean Squared Error)
- Scoring a fitted model on the validation set
- Regularization (lambda) sweep with first-minimum selection
- Results table of (label, method, rmse) rows
"""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np
import pandas as pd

from .bias_model import STAGES, BiasModel, fit_bias_model
from .data_io import explode_genres
from .errors import DimensionMismatch

logger = logging.getLogger(__name__)


def rmse(true_ratings, predicted_ratings) -> float:
    """
    Calculate Root Mean Squared Error.

    Operationalization: RMSE = sqrt(mean((true - predicted)^2))

    Args:
        true_ratings: Sequence of ground-truth ratings
        predicted_ratings: Sequence of predictions, same length and order

    Returns:
        RMSE value (lower is better), nan for empty input

    Raises:
        DimensionMismatch: if the two sequences differ in length
    """
    actuals = np.asarray(true_ratings, dtype=np.float64).ravel()
    predictions = np.asarray(predicted_ratings, dtype=np.float64).ravel()

    if len(actuals) != len(predictions):
        raise DimensionMismatch(len(actuals), len(predictions))

    if len(actuals) == 0:
        return float('nan')

    mse = np.mean((actuals - predictions) ** 2)
    return float(np.sqrt(mse))


def evaluate_model(model: BiasModel, validation_df: pd.DataFrame) -> float:
    """
    Score a fitted bias model on held-out ratings.

    Models with a genre stage are scored once per (rating, genre tag) row.
    """
    frame = model.scoring_frame(validation_df)
    return rmse(frame["rating"].to_numpy(), model.predict_rows(frame))


def select_best_lambda(lambdas: Sequence[float], rmses: Sequence[float]) -> Tuple[float, float]:
    """
    Pick the lambda with the lowest RMSE.

    Lambdas are scanned in the given order and only a strict improvement
    replaces the incumbent, so ties go to the first candidate.

    Example:
        >>> select_best_lambda([0, 0.25, 0.5, 0.75], [5, 3, 3, 4])
        (0.25, 3.0)
    """
    if len(lambdas) != len(rmses):
        raise DimensionMismatch(len(lambdas), len(rmses))
    if len(lambdas) == 0:
        raise ValueError("No lambda candidates to select from")

    best_lambda, best_rmse = float(lambdas[0]), float(rmses[0])
    for lam, score in zip(lambdas[1:], rmses[1:]):
        if score < best_rmse:
            best_lambda, best_rmse = float(lam), float(score)
    return best_lambda, best_rmse


@dataclass(frozen=True)
class RegularizationSweep:
    """RMSE per candidate lambda and the selected optimum."""
    stages: Tuple[str, ...]
    lambdas: Tuple[float, ...]
    rmses: Tuple[float, ...]
    best_lambda: float
    best_rmse: float

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"lambda": self.lambdas, "rmse": self.rmses})


def sweep_regularization(train_df: pd.DataFrame,
                         validation_df: pd.DataFrame,
                         lambdas: Sequence[float],
                         stages: Sequence[str] = STAGES) -> RegularizationSweep:
    """
    Refit the bias model for every candidate lambda and keep the best.

    Args:
        train_df: Training partition
        validation_df: Held-out partition
        lambdas: Candidate shrinkage values, scanned in order
        stages: Bias stages to fit for each candidate

    Returns:
        RegularizationSweep
    """
    lambdas = tuple(float(lam) for lam in lambdas)
    stages = tuple(stages)
    rmses: List[float] = []

    # The genre fan-out does not depend on lambda
    genre_frame = explode_genres(train_df) if "genre" in stages else None
    scoring = None

    for lam in lambdas:
        model = fit_bias_model(train_df, stages=stages, lam=lam, genre_frame=genre_frame)
        if scoring is None:
            scoring = model.scoring_frame(validation_df)
        score = rmse(scoring["rating"].to_numpy(), model.predict_rows(scoring))
        logger.debug(f"  lambda={lam:.2f} RMSE={score:.5f}")
        rmses.append(score)

    best_lambda, best_rmse = select_best_lambda(lambdas, rmses)
    logger.info(f"  Best lambda for {'+'.join(stages)}: {best_lambda} (RMSE {best_rmse:.5f})")

    return RegularizationSweep(
        stages=stages,
        lambdas=lambdas,
        rmses=tuple(rmses),
        best_lambda=best_lambda,
        best_rmse=best_rmse,
    )


class ResultRow(NamedTuple):
    label: str
    method: str
    rmse: float


class ResultsTable:
    """Append-only table of evaluated model variants."""

    COLUMNS = list(ResultRow._fields)

    def __init__(self):
        self._rows: List[ResultRow] = []

    def append(self, label: str, method: str, rmse: float) -> ResultRow:
        row = ResultRow(label, method, float(rmse))
        self._rows.append(row)
        logger.info(f"  {label} | {method} | RMSE {row.rmse:.5f}")
        return row

    @property
    def rows(self) -> Tuple[ResultRow, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=self.COLUMNS)
