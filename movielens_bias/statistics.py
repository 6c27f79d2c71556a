"""
Descriptive Statistics Module
=============================

Summarises the joined ratings frame before any model is fitted.

Main Components
---------------
1. compute_dataset_statistics(df)
   → Counts, rating distribution, user activity, movie popularity,
     genre and release-year breakdowns

2. to_python(obj)
   → Converts numpy scalars inside nested containers to plain Python
"""

import logging
from typing import Any, Dict

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from .data_io import explode_genres

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Data Type Handling
# ---------------------------------------------------------------------
def to_python(obj):
    if isinstance(obj, np.generic):
        return obj.item()
    elif isinstance(obj, dict):
        return {to_python(k): to_python(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [to_python(x) for x in obj]
    elif isinstance(obj, tuple):
        return tuple(to_python(x) for x in obj)
    else:
        return obj


def _percentiles(values: pd.Series) -> Dict[str, float]:
    return {str(q): float(values.quantile(q / 100)) for q in (25, 50, 75, 90)}


def _skew(values: pd.Series) -> float:
    if len(values) < 3:
        return float('nan')
    return float(scipy_stats.skew(values.to_numpy(dtype=np.float64)))


def compute_dataset_statistics(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Compute descriptive statistics of the joined ratings frame.

    Args:
        df: Joined ratings (userId, movieId, rating, title, genres, year)

    Returns:
        Dict of plain-Python statistics

    Example:
        >>> summary = compute_dataset_statistics(joined_df)
        >>> print(summary['rating_stats']['mean'])
        3.51
    """
    logger.info("Computing dataset statistics...")

    summary = {
        'n_ratings': int(len(df)),
        'n_users': int(df['userId'].nunique()),
        'n_movies': int(df['movieId'].nunique()),
    }

    # Rating statistics
    ratings = df['rating'].dropna()
    summary['rating_stats'] = {
        'mean': float(ratings.mean()),
        'std': float(ratings.std()),
        'median': float(ratings.median()),
        'skew': _skew(ratings),
        'whole_star_share': float((ratings % 1 == 0).mean()) if len(ratings) else float('nan'),
        'distribution': {float(k): int(v) for k, v in ratings.value_counts().sort_index().items()},
        'percentiles': _percentiles(ratings),
    }

    # User activity statistics
    user_counts = df['userId'].value_counts()
    summary['user_activity_stats'] = {
        'mean_ratings_per_user': float(user_counts.mean()),
        'median_ratings_per_user': float(user_counts.median()),
        'std': float(user_counts.std()),
        'skew': _skew(user_counts),
        'percentiles': _percentiles(user_counts),
    }

    # Movie popularity statistics
    movie_counts = df['movieId'].value_counts()
    titles = df.drop_duplicates('movieId').set_index('movieId')['title']
    top_movies = movie_counts.head(10)
    summary['movie_popularity_stats'] = {
        'mean_ratings_per_movie': float(movie_counts.mean()),
        'median_ratings_per_movie': float(movie_counts.median()),
        'std': float(movie_counts.std()),
        'n_single_rating_movies': int((movie_counts == 1).sum()),
        'top_10_movies': [
            {'movieId': int(movie_id), 'title': titles.get(movie_id), 'count': int(count)}
            for movie_id, count in top_movies.items()
        ],
    }

    # Genre breakdown (one observation per genre tag)
    by_genre = (explode_genres(df)
                .groupby('genre')['rating']
                .agg(['count', 'mean'])
                .sort_values('count', ascending=False))
    summary['genre_stats'] = {
        genre: {'count': int(row['count']), 'mean_rating': float(row['mean'])}
        for genre, row in by_genre.iterrows()
    }

    # Release-year breakdown
    by_year = df.dropna(subset=['year']).groupby('year')['rating'].agg(['count', 'mean'])
    summary['year_stats'] = {
        int(year): {'count': int(row['count']), 'mean_rating': float(row['mean'])}
        for year, row in by_year.iterrows()
    }

    logger.info(f"  {summary['n_ratings']} ratings, {summary['n_users']} users, "
                f"{summary['n_movies']} movies, {len(summary['genre_stats'])} genres")

    return to_python(summary)
