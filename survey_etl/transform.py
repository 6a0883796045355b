"""
Survey Transformation Module
============================

Reshapes the wide survey export into three tables:

- movies:    film
- reviewers: reviewer_name, favorite_movie
- reviews:   reviewer_name, film, rating, num_rating

The export has one column per movie, headed by the exact title. The
reviewer and favorite-movie columns are found by declared label; every
other column that is not ignored metadata is a movie.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd
from loguru import logger

from .config import SurveySettings, UnknownRatingPolicy, settings
from .exceptions import SurveySchemaError, UnknownRatingError


# Ordinal labels in ascending order
RATING_SCALE: Dict[str, int] = {
    "Bad": 1,
    "Poor": 2,
    "Okay": 3,
    "Good": 4,
    "Great": 5,
}

MOVIE_COLUMNS = ["film"]
REVIEWER_COLUMNS = ["reviewer_name", "favorite_movie"]
REVIEW_COLUMNS = ["reviewer_name", "film", "rating", "num_rating"]


@dataclass(frozen=True)
class ColumnLayout:
    """Roles of the export's columns."""
    reviewer_column: str
    favorite_column: str
    movie_columns: List[str]
    ignored_columns: List[str]


@dataclass
class SurveyModel:
    """Normalized tables built from one export."""
    movies: pd.DataFrame
    reviewers: pd.DataFrame
    reviews: pd.DataFrame
    layout: ColumnLayout

    def counts(self) -> Dict[str, int]:
        return {
            "movies": len(self.movies),
            "reviewers": len(self.reviewers),
            "reviews": len(self.reviews),
        }


def classify_columns(
    columns: Iterable[str],
    survey_settings: Optional[SurveySettings] = None,
) -> ColumnLayout:
    """
    Split header labels into reviewer, favorite, ignored and movie columns.

    Args:
        columns: Header labels in source order
        survey_settings: Declared layout; defaults to global settings

    Returns:
        ColumnLayout with movie columns in source order

    Raises:
        SurveySchemaError: If a label repeats, a required label is absent,
            or no movie column remains
    """
    survey_settings = survey_settings or settings.survey
    columns = list(columns)
    reviewer = survey_settings.reviewer_column
    favorite = survey_settings.favorite_column

    if reviewer == favorite:
        raise SurveySchemaError(
            "Reviewer and favorite-movie columns must have different labels",
            found=[reviewer],
        )

    duplicates = sorted({c for c in columns if columns.count(c) > 1})
    if duplicates:
        raise SurveySchemaError("Survey export has repeated column labels", found=duplicates)

    missing = [label for label in survey_settings.identity_columns if label not in columns]
    if missing:
        raise SurveySchemaError(
            "Survey export does not match the declared layout",
            missing=missing,
            found=columns,
        )

    ignored = [c for c in columns if c in survey_settings.ignored_columns]
    non_movie = {reviewer, favorite, *ignored}
    movie_columns = [c for c in columns if c not in non_movie]

    if not movie_columns:
        raise SurveySchemaError("Survey export has no movie columns", found=columns)

    logger.debug(f"Classified {len(movie_columns)} movie columns, ignoring {ignored}")
    return ColumnLayout(
        reviewer_column=reviewer,
        favorite_column=favorite,
        movie_columns=movie_columns,
        ignored_columns=ignored,
    )


def to_numeric_rating(label) -> Optional[int]:
    """Map an ordinal label to 1-5; anything else, missing included, is None."""
    if not isinstance(label, str):
        return None
    return RATING_SCALE.get(label)


def build_movies(layout: ColumnLayout, favorites: pd.Series) -> pd.DataFrame:
    """Union of movie columns and distinct non-missing favorites, sorted by title."""
    titles = set(layout.movie_columns) | set(favorites.dropna())
    return pd.DataFrame({"film": sorted(titles)}, columns=MOVIE_COLUMNS)


def build_reviewers(frame: pd.DataFrame, layout: ColumnLayout) -> pd.DataFrame:
    """One row per respondent, in input order, duplicates kept."""
    reviewers = frame[[layout.reviewer_column, layout.favorite_column]].rename(
        columns={
            layout.reviewer_column: "reviewer_name",
            layout.favorite_column: "favorite_movie",
        }
    )
    return reviewers.reset_index(drop=True)[REVIEWER_COLUMNS]


def unpivot_ratings(
    frame: pd.DataFrame,
    layout: ColumnLayout,
    unknown_rating: UnknownRatingPolicy = "null",
) -> pd.DataFrame:
    """
    Turn the reviewer x movie matrix into one row per submitted rating.

    Empty cells produce no row. Rows with a missing reviewer name are kept.

    Args:
        frame: Raw survey DataFrame
        layout: Classified columns
        unknown_rating: "null" keeps unrecognized labels with a missing
            num_rating, "error" rejects them

    Returns:
        DataFrame with REVIEW_COLUMNS; num_rating is nullable Int64

    Raises:
        UnknownRatingError: If unknown_rating is "error" and a label is off-scale
    """
    reviews = frame[[layout.reviewer_column, *layout.movie_columns]].melt(
        id_vars=[layout.reviewer_column],
        value_vars=layout.movie_columns,
        var_name="film",
        value_name="rating",
    )
    reviews = reviews.rename(columns={layout.reviewer_column: "reviewer_name"})
    reviews = reviews.dropna(subset=["rating"]).reset_index(drop=True)
    reviews["num_rating"] = pd.array(
        [to_numeric_rating(label) for label in reviews["rating"]],
        dtype="Int64",
    )

    unknown = sorted(set(reviews.loc[reviews["num_rating"].isna(), "rating"]))
    if unknown:
        if unknown_rating == "error":
            raise UnknownRatingError(unknown)
        logger.warning(f"Unrecognized rating labels stored without a score: {unknown}")

    return reviews[REVIEW_COLUMNS]


def normalize_survey(
    frame: pd.DataFrame,
    survey_settings: Optional[SurveySettings] = None,
    unknown_rating: Optional[UnknownRatingPolicy] = None,
) -> SurveyModel:
    """
    Build the movies, reviewers and reviews tables from a raw export.

    Args:
        frame: Raw survey DataFrame from load_survey()
        survey_settings: Declared layout; defaults to global settings
        unknown_rating: Unknown-label policy; defaults to global settings

    Returns:
        SurveyModel holding the three tables
    """
    survey_settings = survey_settings or settings.survey
    unknown_rating = unknown_rating or settings.etl.unknown_rating

    layout = classify_columns(frame.columns, survey_settings)
    model = SurveyModel(
        movies=build_movies(layout, frame[layout.favorite_column]),
        reviewers=build_reviewers(frame, layout),
        reviews=unpivot_ratings(frame, layout, unknown_rating),
        layout=layout,
    )

    counts = model.counts()
    logger.info(
        f"Normalized survey: {counts['movies']} movies, "
        f"{counts['reviewers']} reviewers, {counts['reviews']} reviews"
    )
    return model
