"""
MovieLens Bias Report Package

This package contains modular components for:
- Data loading (MovieLens '::'-delimited ratings and movie metadata)
- Descriptive statistics over the joined dataset
- Train/validation splitting with referential-closure repair
- Additive bias estimation (movie, user, year, genre effects)
- Model evaluation (RMSE, regularization sweep, results table)
"""

__version__ = "1.0.0"
