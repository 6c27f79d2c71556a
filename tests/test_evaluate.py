"""
Tests for movielens_bias.evaluate module
----------------------------------------
Covers:
- rmse
- evaluate_model
- select_best_lambda
- sweep_regularization
- ResultsTable
"""

import math

import pytest
import numpy as np
import pandas as pd

from movielens_bias import bias_model, evaluate
from movielens_bias.bias_model import fit_bias_model
from movielens_bias.errors import DimensionMismatch
from movielens_bias.split import train_validation_split


@pytest.fixture(scope="module")
def split_frames(joined_df):
    return train_validation_split(joined_df, test_size=0.1, random_state=1)


# -------------------------------------------------------------------
# RMSE
# -------------------------------------------------------------------

class TestRMSE:
    """Tests for rmse()"""

    def test_identical_sequences(self):
        x = [0.5, 3.0, 4.5, 5.0]
        assert evaluate.rmse(x, x) == 0.0

    def test_known_value(self):
        # errors 1 and 3 -> sqrt((1 + 9) / 2)
        assert evaluate.rmse([1.0, 2.0], [2.0, 5.0]) == pytest.approx(math.sqrt(5))

    def test_symmetric(self):
        rng = np.random.default_rng(0)
        a, b = rng.uniform(0.5, 5, 50), rng.uniform(0.5, 5, 50)
        assert evaluate.rmse(a, b) == pytest.approx(evaluate.rmse(b, a))

    def test_accepts_series(self):
        assert evaluate.rmse(pd.Series([3.0, 4.0]), np.array([3.0, 4.0])) == 0.0

    def test_length_mismatch(self):
        with pytest.raises(DimensionMismatch) as exc:
            evaluate.rmse([1.0, 2.0, 3.0], [1.0, 2.0])
        assert exc.value.expected == 3
        assert exc.value.actual == 2

    def test_empty_returns_nan(self):
        assert math.isnan(evaluate.rmse([], []))


# -------------------------------------------------------------------
# Model scoring
# -------------------------------------------------------------------

class TestEvaluateModel:
    """Tests for evaluate_model()"""

    def test_perfect_fit(self, hand_ratings_df):
        model = fit_bias_model(hand_ratings_df, stages=("movie", "user"))
        assert evaluate.evaluate_model(model, hand_ratings_df) == pytest.approx(0.0, abs=1e-12)

    def test_naive_mean_is_rating_std(self, split_frames):
        train_df, validation_df = split_frames
        model = fit_bias_model(train_df, stages=())
        expected = np.sqrt(np.mean((validation_df["rating"] - train_df["rating"].mean()) ** 2))
        assert evaluate.evaluate_model(model, validation_df) == pytest.approx(expected)

    def test_movie_effect_beats_naive_mean(self, split_frames):
        train_df, validation_df = split_frames
        naive = evaluate.evaluate_model(fit_bias_model(train_df, stages=()), validation_df)
        movie = evaluate.evaluate_model(fit_bias_model(train_df, stages=("movie",)), validation_df)
        assert movie < naive

    def test_genre_model_scores_fanned_out_rows(self, hand_ratings_df):
        model = fit_bias_model(hand_ratings_df)
        score = evaluate.evaluate_model(model, hand_ratings_df)
        assert np.isfinite(score)

    def test_genre_fan_out_computed_once(self, hand_ratings_df, mocker):
        model = fit_bias_model(hand_ratings_df)
        spy = mocker.spy(bias_model, "explode_genres")
        evaluate.evaluate_model(model, hand_ratings_df)
        assert spy.call_count == 1


# -------------------------------------------------------------------
# Regularization sweep
# -------------------------------------------------------------------

class TestSelectBestLambda:
    """Tests for select_best_lambda()"""

    def test_first_minimum_wins(self):
        best_lambda, best_rmse = evaluate.select_best_lambda([0, 0.25, 0.5, 0.75], [5, 3, 3, 4])
        assert best_lambda == 0.25
        assert best_rmse == 3.0

    def test_first_candidate_best(self):
        assert evaluate.select_best_lambda([0, 1, 2], [1.0, 2.0, 1.0]) == (0.0, 1.0)

    def test_length_mismatch(self):
        with pytest.raises(DimensionMismatch):
            evaluate.select_best_lambda([0, 1], [1.0])

    def test_empty(self):
        with pytest.raises(ValueError):
            evaluate.select_best_lambda([], [])


class TestSweepRegularization:
    """Tests for sweep_regularization()"""

    def test_sweep_shape_and_selection(self, split_frames):
        train_df, validation_df = split_frames
        lambdas = [0.0, 0.5, 1.0, 2.0, 4.0]
        sweep = evaluate.sweep_regularization(train_df, validation_df, lambdas, stages=("movie", "user"))

        assert sweep.lambdas == tuple(lambdas)
        assert len(sweep.rmses) == len(lambdas)
        assert sweep.best_rmse == min(sweep.rmses)
        assert sweep.best_lambda == lambdas[sweep.rmses.index(min(sweep.rmses))]

    def test_lambda_zero_matches_unregularized(self, split_frames):
        train_df, validation_df = split_frames
        sweep = evaluate.sweep_regularization(train_df, validation_df, [0.0])
        plain = evaluate.evaluate_model(fit_bias_model(train_df), validation_df)
        assert sweep.rmses[0] == pytest.approx(plain)
        assert sweep.best_rmse <= plain + 1e-12

    def test_genre_fan_out_not_repeated_per_lambda(self, split_frames, mocker):
        train_df, validation_df = split_frames
        in_sweep = mocker.spy(evaluate, "explode_genres")
        in_model = mocker.spy(bias_model, "explode_genres")

        sweep = evaluate.sweep_regularization(train_df, validation_df, [0.0, 1.0, 2.0])

        assert len(sweep.rmses) == 3
        # training frame once in the sweep, validation frame once for scoring
        assert in_sweep.call_count == 1
        assert in_model.call_count == 1

    def test_sweep_matches_independent_refits(self, split_frames):
        train_df, validation_df = split_frames
        sweep = evaluate.sweep_regularization(train_df, validation_df, [0.0, 3.0])
        for lam, score in zip(sweep.lambdas, sweep.rmses):
            refit = fit_bias_model(train_df, lam=lam)
            assert score == pytest.approx(evaluate.evaluate_model(refit, validation_df))

    def test_to_frame(self, split_frames):
        train_df, validation_df = split_frames
        sweep = evaluate.sweep_regularization(train_df, validation_df, [0.0, 1.0], stages=("movie",))
        frame = sweep.to_frame()
        assert list(frame.columns) == ["lambda", "rmse"]
        assert len(frame) == 2


# -------------------------------------------------------------------
# Results table
# -------------------------------------------------------------------

class TestResultsTable:
    """Tests for ResultsTable"""

    def test_append_in_order(self):
        table = evaluate.ResultsTable()
        table.append("Model 0", "Just the average", 1.06)
        table.append("Model 1", "Movie effect", 0.94)

        assert len(table) == 2
        assert [row.label for row in table.rows] == ["Model 0", "Model 1"]
        assert table.rows[1].rmse == pytest.approx(0.94)

    def test_to_frame(self):
        table = evaluate.ResultsTable()
        table.append("Model 0", "Just the average", 1.06)
        frame = table.to_frame()
        assert list(frame.columns) == ["label", "method", "rmse"]
        assert frame.iloc[0]["method"] == "Just the average"

    def test_empty_frame(self):
        frame = evaluate.ResultsTable().to_frame()
        assert frame.empty
        assert list(frame.columns) == ["label", "method", "rmse"]

    def test_rows_are_snapshot(self):
        table = evaluate.ResultsTable()
        rows = table.rows
        table.append("Model 0", "Just the average", 1.0)
        assert rows == ()
        assert len(table.rows) == 1
