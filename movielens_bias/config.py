"""
Configuration file for the bias report pipeline

Contains all paths, split settings, regularization grid and model variants.
"""

import os
from pathlib import Path

# ============================================================================
# PATHS
# ============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("MOVIELENS_DATA_DIR", PROJECT_ROOT / "data" / "ml-10M100K"))

RATINGS_PATH = DATA_DIR / os.getenv("RATINGS_FILE", "ratings.dat")
MOVIES_PATH = DATA_DIR / os.getenv("MOVIES_FILE", "movies.dat")

# ============================================================================
# LOADER CONFIGURATION
# ============================================================================

LOADER_CONFIG = {
    "separator": "::",  # Field separator in both .dat files
    "genre_separator": "|",  # Separator between genre tags
    "encoding": os.getenv("MOVIELENS_ENCODING", "utf-8"),
    "rating_scale": tuple(i * 0.5 for i in range(1, 11)),  # 0.5 .. 5.0 stars
}

# ============================================================================
# SPLIT CONFIGURATION
# ============================================================================

SPLIT_CONFIG = {
    "test_size": float(os.getenv("HOLDOUT_FRACTION", "0.1")),  # Held-out fraction
    "random_state": int(os.getenv("SPLIT_SEED", "1")),  # Seed for reproducibility
}

# ============================================================================
# REGULARIZATION
# ============================================================================

REGULARIZATION_CONFIG = {
    "lambdas": [i * 0.25 for i in range(41)],  # 0, 0.25, ..., 10
}

# ============================================================================
# MODEL VARIANTS
# ============================================================================

# Evaluated in order; each appends one row to the results table.
MODEL_VARIANTS = [
    {"label": "Model 0", "method": "Just the average",
     "stages": (), "regularized": False},
    {"label": "Model 1", "method": "Movie effect",
     "stages": ("movie",), "regularized": False},
    {"label": "Model 2", "method": "Movie + user effects",
     "stages": ("movie", "user"), "regularized": False},
    {"label": "Model 3", "method": "Movie + user + year effects",
     "stages": ("movie", "user", "year"), "regularized": False},
    {"label": "Model 4", "method": "Movie + user + year + genre effects",
     "stages": ("movie", "user", "year", "genre"), "regularized": False},
    {"label": "Model 5", "method": "Regularized movie + user effects",
     "stages": ("movie", "user"), "regularized": True},
    {"label": "Model 6", "method": "Regularized movie + user + year + genre effects",
     "stages": ("movie", "user", "year", "genre"), "regularized": True},
]
