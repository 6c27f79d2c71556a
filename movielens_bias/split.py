"""
Train/Validation Split Module

Handles partitioning of the joined ratings into a training set and a
held-out validation set, stratified by rating value, followed by a
referential-closure repair: every user and movie in the validation set
must also be present in the training set.
"""

import logging
import math
from typing import Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

logger = logging.getLogger(__name__)


def _can_stratify(ratings: pd.Series, test_size: float) -> bool:
    """
    Whether scikit-learn can stratify on the rating column.

    Every rating value needs two rows and both sides of the split need
    at least one row per rating value.
    """
    counts = ratings.value_counts()
    n_classes = len(counts)
    n_test = math.ceil(test_size * len(ratings))
    n_train = len(ratings) - n_test
    return counts.min() >= 2 and n_test >= n_classes and n_train >= n_classes


def enforce_referential_closure(train_df: pd.DataFrame,
                                holdout_df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Move held-out rows with an unseen userId or movieId back into training.

    Args:
        train_df: Training partition
        holdout_df: Raw held-out partition

    Returns:
        Tuple of (train_df, validation_df); the validation set only
        references users and movies that appear in training
    """
    known = (holdout_df["userId"].isin(train_df["userId"]) &
             holdout_df["movieId"].isin(train_df["movieId"]))

    validation_df = holdout_df[known]
    removed = holdout_df[~known]

    if len(removed):
        logger.info(f"  Moved {len(removed)} held-out rows with unseen users/movies back to training")
        train_df = pd.concat([train_df, removed])

    return train_df, validation_df


def train_validation_split(joined_df: pd.DataFrame,
                           test_size: float = 0.1,
                           random_state: int = 1) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split joined ratings into training and validation sets.

    The split is stratified on the rating value so the held-out fraction
    mirrors the rating distribution. Tiny inputs that cannot be stratified
    fall back to a plain random split. The original row index is kept, so
    the two outputs together contain every input row exactly once.

    Args:
        joined_df: Joined ratings frame (userId, movieId, rating, ...)
        test_size: Held-out fraction, strictly between 0 and 1
        random_state: Random seed for reproducibility

    Returns:
        Tuple of (train_df, validation_df)

    Example:
        >>> train_df, validation_df = train_validation_split(df, test_size=0.1, random_state=1)
        >>> len(train_df) + len(validation_df) == len(df)
        True
    """
    if not 0 < test_size < 1:
        raise ValueError(f"test_size must be between 0 and 1, got {test_size}")

    stratify = None
    if _can_stratify(joined_df["rating"], test_size):
        stratify = joined_df["rating"]
    else:
        logger.warning("Too few rows per rating value to stratify; using an unstratified split")

    train_df, holdout_df = train_test_split(
        joined_df,
        test_size=test_size,
        random_state=random_state,
        stratify=stratify
    )

    return enforce_referential_closure(train_df, holdout_df)
