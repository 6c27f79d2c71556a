"""
Additive Bias Model

Sequential bias decomposition for rating prediction:

    r_hat = mu + b_i[movie] + b_u[user] + b_y[year] + b_g[genre]

Where:
- mu  = global mean rating of the training set
- b_i = movie bias, mean residual after mu
- b_u = user bias, mean residual after mu and b_i
- b_y = release-year bias, mean residual after mu, b_i and b_u
- b_g = genre bias, mean residual after all of the above, computed with one
        observation per genre tag of each rating

Each bias is regularized by dividing the residual sum by (count + lambda);
lambda = 0 gives the plain group mean. Stages are fitted strictly left to
right and earlier stages are never refitted.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .data_io import explode_genres

logger = logging.getLogger(__name__)

STAGES = ("movie", "user", "year", "genre")

STAGE_KEYS = {
    "movie": "movieId",
    "user": "userId",
    "year": "year",
    "genre": "genre",
}


@dataclass(frozen=True)
class BiasTable:
    """
    Residual sum and count per group key for one stage.

    The offsets are derived on demand as sums / (counts + lam).
    """
    stage: str
    sums: pd.Series
    counts: pd.Series
    lam: float = 0.0

    @property
    def key(self) -> str:
        return STAGE_KEYS[self.stage]

    @property
    def offsets(self) -> pd.Series:
        return self.sums / (self.counts + self.lam)

    def lookup(self, keys: pd.Series) -> np.ndarray:
        """Offsets for the given keys; unknown or null keys contribute 0."""
        return keys.map(self.offsets).fillna(0.0).to_numpy(dtype=np.float64)

    def __len__(self) -> int:
        return len(self.counts)


@dataclass(frozen=True)
class BiasModel:
    """Immutable snapshot of a fitted global mean plus bias tables."""
    global_mean: float
    tables: Tuple[BiasTable, ...] = field(default_factory=tuple)
    lam: float = 0.0

    @property
    def stages(self) -> Tuple[str, ...]:
        return tuple(table.stage for table in self.tables)

    def table(self, stage: str) -> BiasTable:
        for table in self.tables:
            if table.stage == stage:
                return table
        raise KeyError(f"Stage not fitted: {stage}")

    def scoring_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Rows the model scores: the input itself, or one row per
        (record, genre tag) once a genre table is part of the model.
        """
        if "genre" in self.stages:
            return explode_genres(df)
        return df

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """
        Predict ratings for every row of scoring_frame(df).

        Args:
            df: Joined ratings frame (userId, movieId, year, genres)

        Returns:
            float64 array aligned with scoring_frame(df)
        """
        return self.predict_rows(self.scoring_frame(df))

    def predict_rows(self, frame: pd.DataFrame) -> np.ndarray:
        """Predict for a frame already in scoring shape (see scoring_frame)."""
        return self.global_mean + _sum_offsets(frame, self.tables)


def _sum_offsets(frame: pd.DataFrame, tables: Sequence[BiasTable]) -> np.ndarray:
    total = np.zeros(len(frame), dtype=np.float64)
    for table in tables:
        total += table.lookup(frame[table.key])
    return total


def _validate_stages(stages: Sequence[str]) -> Tuple[str, ...]:
    stages = tuple(stages)
    unknown = [s for s in stages if s not in STAGES]
    if unknown:
        raise ValueError(f"Unknown stages {unknown}. Must be drawn from {STAGES}")

    order = [STAGES.index(s) for s in stages]
    if order != sorted(set(order)):
        raise ValueError(f"Stages must be unique and ordered as {STAGES}, got {stages}")
    return stages


def fit_global_mean(train_df: pd.DataFrame) -> float:
    """Arithmetic mean of all training ratings."""
    if len(train_df) == 0:
        raise ValueError("Cannot fit a global mean on an empty training set")
    return float(train_df["rating"].to_numpy(dtype=np.float64).mean())


def fit_bias_table(train_df: pd.DataFrame,
                   stage: str,
                   global_mean: float,
                   prior_tables: Sequence[BiasTable] = (),
                   lam: float = 0.0,
                   genre_frame: Optional[pd.DataFrame] = None) -> BiasTable:
    """
    Fit one bias stage on the residuals left by the prior stages.

    residual = rating - mu - sum(prior offsets), grouped by the stage key
    and accumulated as (sum, count). The genre stage counts a rating once
    for each of its genre tags.

    Args:
        train_df: Joined training frame
        stage: One of STAGES
        global_mean: mu of the same training set
        prior_tables: Already fitted tables, in fitting order
        lam: Shrinkage, >= 0
        genre_frame: explode_genres(train_df), if already computed

    Returns:
        New BiasTable
    """
    if stage not in STAGES:
        raise ValueError(f"Unknown stage '{stage}'. Must be one of {STAGES}")
    if lam < 0:
        raise ValueError(f"Regularization lambda must be >= 0, got {lam}")

    frame = train_df
    if stage == "genre":
        frame = genre_frame if genre_frame is not None else explode_genres(train_df)
    key = STAGE_KEYS[stage]

    residuals = (frame["rating"].to_numpy(dtype=np.float64)
                 - global_mean
                 - _sum_offsets(frame, prior_tables))

    grouped = (pd.DataFrame({"key": frame[key].to_numpy(), "residual": residuals})
               .groupby("key", sort=True, dropna=True)["residual"]
               .agg(["sum", "count"]))

    return BiasTable(
        stage=stage,
        sums=grouped["sum"].astype(np.float64),
        counts=grouped["count"].astype(np.int64),
        lam=float(lam),
    )


def fit_bias_model(train_df: pd.DataFrame,
                   stages: Sequence[str] = STAGES,
                   lam: float = 0.0,
                   genre_frame: Optional[pd.DataFrame] = None) -> BiasModel:
    """
    Fit mu and the requested bias stages left to right.

    Args:
        train_df: Joined training frame
        stages: Ordered subset of STAGES
        lam: Shrinkage applied to every stage (0 = unregularized)
        genre_frame: Pre-exploded training frame, reused across refits

    Returns:
        Fitted BiasModel

    Example:
        >>> model = fit_bias_model(train_df, stages=("movie", "user"), lam=4.75)
        >>> model.stages
        ('movie', 'user')
    """
    stages = _validate_stages(stages)
    mu = fit_global_mean(train_df)

    tables: Tuple[BiasTable, ...] = ()
    for stage in stages:
        table = fit_bias_table(train_df, stage, mu, tables, lam, genre_frame)
        logger.debug(f"Fitted {stage} bias: {len(table)} groups (lambda={lam})")
        tables = tables + (table,)

    return BiasModel(global_mean=mu, tables=tables, lam=float(lam))
