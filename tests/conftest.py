"""Shared fixtures: a small survey export in memory and on disk."""

import pandas as pd
import pytest

from survey_etl.config import SurveySettings

NAME = "What is your name?"
FAVORITE = "What is your favorite movie?"

SURVEY_CSV = (
    "Timestamp,What is your name?,What is your favorite movie?,Oppenheimer,Barbie\n"
    "2024/01/15 9:02:11 AM EST,Keith,Lord of the Rings,Great,\n"
    "2024/01/15 9:10:45 AM EST,Maria,Barbie,Good,Great\n"
    "2024/01/15 10:31:02 AM EST,,Oppenheimer,Meh,Bad\n"
    "2024/01/16 8:15:20 AM EST,Keith,,,Okay\n"
)


@pytest.fixture
def survey_settings():
    return SurveySettings(
        reviewer_column=NAME,
        favorite_column=FAVORITE,
        ignored_columns=["Timestamp"],
        delimiter=",",
        encoding="utf-8",
    )


@pytest.fixture
def raw_frame():
    """Same content as SURVEY_CSV, as load_survey() would return it."""
    return pd.DataFrame(
        {
            "Timestamp": ["t1", "t2", "t3", "t4"],
            NAME: ["Keith", "Maria", None, "Keith"],
            FAVORITE: ["Lord of the Rings", "Barbie", "Oppenheimer", None],
            "Oppenheimer": ["Great", "Good", "Meh", None],
            "Barbie": [None, "Great", "Bad", "Okay"],
        }
    )


@pytest.fixture
def survey_csv(tmp_path):
    path = tmp_path / "survey.csv"
    path.write_text(SURVEY_CSV, encoding="utf-8")
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "store" / "reviews.duckdb"
