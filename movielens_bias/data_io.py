"""
Data I/O Module

Handles loading of the MovieLens 10M '::'-delimited files:
- ratings.dat  (userId::movieId::rating::timestamp)
- movies.dat   (movieId::title::genres)

Files are read with pandas and validated column-wise; the first malformed
line fails fast with a ParseError (or FormatError for a title without a
year) naming the file and line. The per-line parsers return immutable
typed records. The two tables are then left-joined on movieId and the
release year is pulled out of the title.
"""

import csv
import logging
import os
import re
from functools import partial
from typing import Callable, NamedTuple, Optional, Sequence

import pandas as pd

from .config import LOADER_CONFIG
from .errors import FormatError, ParseError

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"\((\d{4})\)$")

RATING_COLUMNS = ["userId", "movieId", "rating", "timestamp"]
MOVIE_COLUMNS = ["movieId", "title", "genres", "year"]


class RatingRecord(NamedTuple):
    userId: int
    movieId: int
    rating: float
    timestamp: int


class MovieRecord(NamedTuple):
    movieId: int
    title: str
    genres: str
    year: int


def _split_fields(line: str, line_number: int, separator: str, n_fields: int) -> list:
    fields = line.rstrip("\r\n").split(separator)
    if len(fields) != n_fields:
        raise ParseError(f"expected {n_fields} fields, got {len(fields)}", line_number, line)
    return fields


def parse_rating_line(line: str, line_number: int,
                      separator: str = LOADER_CONFIG["separator"],
                      rating_scale: Optional[Sequence[float]] = LOADER_CONFIG["rating_scale"]) -> RatingRecord:
    """
    Parse one ratings.dat line.

    Args:
        line: Raw line (trailing newline allowed)
        line_number: 1-based line number, used in error messages
        separator: Field separator
        rating_scale: Allowed rating values (None disables the check)

    Returns:
        RatingRecord

    Raises:
        ParseError: wrong field count, non-numeric field or off-scale rating

    Example:
        >>> parse_rating_line("1::122::5::838985046", 1)
        RatingRecord(userId=1, movieId=122, rating=5.0, timestamp=838985046)
    """
    user_id, movie_id, rating, timestamp = _split_fields(line, line_number, separator, 4)
    try:
        record = RatingRecord(int(user_id), int(movie_id), float(rating), int(timestamp))
    except ValueError as e:
        raise ParseError(f"non-numeric field ({e})", line_number, line) from e

    if rating_scale is not None and record.rating not in rating_scale:
        raise ParseError(f"rating {record.rating} is not on the rating scale", line_number, line)
    return record


def parse_movie_line(line: str, line_number: int,
                     separator: str = LOADER_CONFIG["separator"]) -> MovieRecord:
    """
    Parse one movies.dat line, extracting the release year from the title.

    Raises:
        ParseError: wrong field count or non-numeric movieId
        FormatError: title without a trailing (YYYY)
    """
    movie_id, title, genres = _split_fields(line, line_number, separator, 3)
    try:
        movie_id = int(movie_id)
    except ValueError as e:
        raise ParseError(f"non-numeric movieId ({e})", line_number, line) from e

    try:
        year = extract_year(title)
    except FormatError as e:
        raise FormatError(title, line_number=line_number) from e
    return MovieRecord(movie_id, title, genres, year)


def extract_year(title: str) -> int:
    """
    Extract the release year from a title such as "Toy Story (1995)".

    Only the trailing parenthesised group counts, so
    "Se7en (a.k.a. Seven) (1995)" yields 1995.
    """
    match = YEAR_PATTERN.search(title.strip())
    if match is None:
        raise FormatError(title)
    return int(match.group(1))


def _read_fields(path: str, columns: list, config: dict) -> pd.DataFrame:
    """Read a '::'-delimited file as raw strings, one column per field."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Data file not found: {path}")

    try:
        raw = pd.read_csv(
            path,
            sep=re.escape(config["separator"]),
            engine="python",
            header=None,
            dtype=str,
            keep_default_na=False,
            quoting=csv.QUOTE_NONE,
            skip_blank_lines=True,
            encoding=config["encoding"],
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame({column: pd.Series(dtype=object) for column in columns})

    # Width comes from the first line; shorter rows are NaN-padded, longer ones raise
    if raw.shape[1] != len(columns):
        raise pd.errors.ParserError(f"expected {len(columns)} fields, got {raw.shape[1]}")
    raw.columns = columns
    return raw


def _raise_for_line(path: str, encoding: str, parse_line: Callable, position: Optional[int] = None):
    """
    Re-parse the non-blank lines of a file to raise the precise error.

    With a position, only the position-th non-blank line (the row pandas
    rejected) is checked; otherwise the first failing line wins.
    """
    with open(path, "r", encoding=encoding) as f:
        non_blank = ((n, line) for n, line in enumerate(f, start=1) if line.strip())
        for row, (line_number, line) in enumerate(non_blank):
            if position is not None and row != position:
                continue
            try:
                parse_line(line, line_number)
            except (ParseError, FormatError) as e:
                e.path = path
                raise
            if position is not None:
                raise ParseError("invalid field value", line_number, line, path=path)


def _integer_like(column: pd.Series) -> pd.Series:
    return column.str.fullmatch(r"\s*[+-]?\d+\s*", na=False)


def load_ratings(path: str, config: Optional[dict] = None) -> pd.DataFrame:
    """
    Load ratings.dat into a typed DataFrame.

    Args:
        path: Path to the ratings file
        config: Loader configuration (defaults to config.LOADER_CONFIG)

    Returns:
        DataFrame with columns: userId, movieId, rating, timestamp

    Raises:
        FileNotFoundError: path does not exist
        ParseError: first malformed line, with file, line number and raw text
    """
    config = config or LOADER_CONFIG
    path = str(path)
    parse_line = partial(parse_rating_line, separator=config["separator"],
                         rating_scale=config["rating_scale"])
    try:
        raw = _read_fields(path, RATING_COLUMNS, config)
    except pd.errors.ParserError as e:
        _raise_for_line(path, config["encoding"], parse_line)
        raise ParseError(str(e), 0, "", path=path) from e

    rating = pd.to_numeric(raw["rating"], errors="coerce")
    valid = rating.notna()
    for column in ["userId", "movieId", "timestamp"]:
        valid &= _integer_like(raw[column])
    if config["rating_scale"] is not None:
        valid &= rating.isin(config["rating_scale"])

    if not valid.all():
        _raise_for_line(path, config["encoding"], parse_line, position=int((~valid).to_numpy().argmax()))

    df = pd.DataFrame({
        "userId": raw["userId"].astype("int64"),
        "movieId": raw["movieId"].astype("int64"),
        "rating": rating.astype("float64"),
        "timestamp": raw["timestamp"].astype("int64"),
    })
    logger.info(f"Loaded {len(df)} ratings from {path}")
    return df


def load_movies(path: str, config: Optional[dict] = None) -> pd.DataFrame:
    """
    Load movies.dat into a typed DataFrame.

    Returns:
        DataFrame with columns: movieId, title, genres, year

    Raises:
        ParseError: wrong field count or non-numeric movieId
        FormatError: title without a trailing (YYYY), with file and line number
    """
    config = config or LOADER_CONFIG
    path = str(path)
    parse_line = partial(parse_movie_line, separator=config["separator"])
    try:
        raw = _read_fields(path, ["movieId", "title", "genres"], config)
    except pd.errors.ParserError as e:
        _raise_for_line(path, config["encoding"], parse_line)
        raise ParseError(str(e), 0, "", path=path) from e

    year = raw["title"].str.strip().str.extract(YEAR_PATTERN.pattern, expand=False)
    valid = _integer_like(raw["movieId"]) & raw["genres"].notna() & year.notna()

    if not valid.all():
        _raise_for_line(path, config["encoding"], parse_line, position=int((~valid).to_numpy().argmax()))

    df = pd.DataFrame({
        "movieId": raw["movieId"].astype("int64"),
        "title": raw["title"],
        "genres": raw["genres"],
        "year": year.astype("int64"),
    }, columns=MOVIE_COLUMNS)
    logger.info(f"Loaded {len(df)} movies from {path}")
    return df


def join_ratings_movies(ratings: pd.DataFrame, movies: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join ratings to movie metadata on movieId.

    Ratings whose movie is missing from the metadata keep null title,
    genres and year; they are counted and logged, not rejected.

    Returns:
        DataFrame with columns: userId, movieId, rating, timestamp,
        title, genres, year (float64, NaN without metadata)
    """
    joined = ratings.merge(movies, on="movieId", how="left", validate="many_to_one")
    joined["year"] = joined["year"].astype("float64")

    n_unmatched = int(joined["title"].isna().sum())
    if n_unmatched:
        logger.warning(f"{n_unmatched} ratings reference movies without metadata")
    return joined


def load_dataset(ratings_path: str, movies_path: str, config: Optional[dict] = None) -> pd.DataFrame:
    """Load both MovieLens files and return the joined ratings frame."""
    ratings = load_ratings(ratings_path, config)
    movies = load_movies(movies_path, config)
    return join_ratings_movies(ratings, movies)


def explode_genres(df: pd.DataFrame,
                   separator: str = LOADER_CONFIG["genre_separator"]) -> pd.DataFrame:
    """
    Fan out each record once per genre tag.

    Adds a 'genre' column; "Action|Comedy" becomes two rows tagged
    "Action" and "Comedy". The original index is kept (and repeated).
    Records with null genres stay as a single row with a null tag.
    """
    tags = df["genres"].astype(object).str.split(separator, regex=False)
    return df.assign(genre=tags).explode("genre")
