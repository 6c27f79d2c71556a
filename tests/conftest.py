"""
Pytest configuration and shared fixtures

This file contains fixtures that are available to all test files.
"""

import pytest
import numpy as np
import pandas as pd

GENRES = ["Action", "Comedy", "Drama", "Thriller", "Romance", "Sci-Fi"]

# ---------------------------------------------------
# DataFrame fixtures
# ---------------------------------------------------

@pytest.fixture
def hand_ratings_df():
    """
    Four ratings, 2 users x 2 movies, small enough to compute biases by hand.

    mu = 3.5, b_i = {10: +1.0, 20: -1.0}, b_u = {1: +0.5, 2: -0.5}
    """
    return pd.DataFrame({
        'userId': [1, 1, 2, 2],
        'movieId': [10, 20, 10, 20],
        'rating': [5.0, 3.0, 4.0, 2.0],
        'timestamp': [100, 101, 102, 103],
        'title': ['Alpha (1995)', 'Beta (2001)', 'Alpha (1995)', 'Beta (2001)'],
        'genres': ['Action|Comedy', 'Drama', 'Action|Comedy', 'Drama'],
        'year': [1995.0, 2001.0, 1995.0, 2001.0],
    })


def _make_movielens(seed: int = 7, n_users: int = 40, n_movies: int = 25,
                    per_user: int = 15):
    rng = np.random.default_rng(seed)

    movie_ids = np.arange(1, n_movies + 1)
    years = rng.integers(1980, 2006, size=n_movies)
    movies = pd.DataFrame({
        'movieId': movie_ids,
        'title': [f"Movie {m} ({y})" for m, y in zip(movie_ids, years)],
        'genres': ["|".join(rng.choice(GENRES, size=rng.integers(1, 4), replace=False))
                   for _ in movie_ids],
        'year': years,
    })

    movie_effect = rng.normal(0, 0.6, size=n_movies)
    user_effect = rng.normal(0, 0.4, size=n_users)
    rows = []
    for u in range(n_users):
        for m in rng.choice(n_movies, size=per_user, replace=False):
            raw = 3.5 + movie_effect[m] + user_effect[u] + rng.normal(0, 0.5)
            rating = float(np.clip(np.round(raw * 2) / 2, 0.5, 5.0))
            rows.append((u + 1, int(movie_ids[m]), rating, 978300000 + len(rows)))
    ratings = pd.DataFrame(rows, columns=['userId', 'movieId', 'rating', 'timestamp'])

    # Seed every half-star value at least twice so the split can stratify
    scale = [i * 0.5 for i in range(1, 11)]
    for i, value in enumerate(scale * 2):
        ratings.loc[i * 7, 'rating'] = value
    return ratings, movies


@pytest.fixture(scope="session")
def synthetic_movielens():
    """Synthetic (ratings, movies) frames: 40 users, 25 movies, 600 ratings."""
    return _make_movielens()


@pytest.fixture(scope="session")
def joined_df(synthetic_movielens):
    """Synthetic ratings joined with their movie metadata."""
    ratings, movies = synthetic_movielens
    joined = ratings.merge(movies, on='movieId', how='left')
    joined['year'] = joined['year'].astype('float64')
    return joined


# ---------------------------------------------------
# File fixtures
# ---------------------------------------------------

@pytest.fixture
def movielens_files(tmp_path, synthetic_movielens):
    """
    Write the synthetic dataset as '::'-delimited ratings.dat / movies.dat.

    Returns:
        Tuple of (ratings_path, movies_path)
    """
    ratings, movies = synthetic_movielens
    ratings_path = tmp_path / "ratings.dat"
    movies_path = tmp_path / "movies.dat"

    ratings_path.write_text("".join(
        f"{r.userId}::{r.movieId}::{r.rating:g}::{r.timestamp}\n"
        for r in ratings.itertuples(index=False)
    ), encoding="utf-8")
    movies_path.write_text("".join(
        f"{m.movieId}::{m.title}::{m.genres}\n"
        for m in movies.itertuples(index=False)
    ), encoding="utf-8")

    return ratings_path, movies_path


@pytest.fixture
def write_lines(tmp_path):
    """Factory writing raw lines to a file under tmp_path."""
    def _write(name, lines):
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write
