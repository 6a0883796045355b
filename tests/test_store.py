"""Tests for the DuckDB store writer."""

import pytest
from sqlalchemy.exc import DBAPIError

from survey_etl.db_duckdb import frame_to_records, store_connection, write_tables
from survey_etl.queries import fetch_table, run_sql, table_counts
from survey_etl.transform import SurveyModel, normalize_survey


@pytest.fixture
def model(raw_frame, survey_settings):
    return normalize_survey(raw_frame, survey_settings, unknown_rating="null")


def test_write_creates_store_and_tables(db_path, model):
    with store_connection(db_path) as conn:
        written = write_tables(conn, model)

    assert db_path.exists()
    assert written == {"movies": 3, "reviewers": 4, "reviews": 6}

    with store_connection(db_path, read_only=True) as conn:
        assert table_counts(conn) == written


def test_rewrite_replaces_instead_of_appending(db_path, model):
    for _ in range(2):
        with store_connection(db_path) as conn:
            write_tables(conn, model)

    with store_connection(db_path, read_only=True) as conn:
        assert table_counts(conn) == {"movies": 3, "reviewers": 4, "reviews": 6}


def test_rewrite_with_smaller_model(db_path, model, raw_frame, survey_settings):
    with store_connection(db_path) as conn:
        write_tables(conn, model)

    smaller = normalize_survey(raw_frame.iloc[:1], survey_settings, unknown_rating="null")
    with store_connection(db_path) as conn:
        write_tables(conn, smaller)

    with store_connection(db_path, read_only=True) as conn:
        assert table_counts(conn) == {"movies": 3, "reviewers": 1, "reviews": 1}
        movies = fetch_table(conn, "movies")
    assert list(movies["film"]) == ["Barbie", "Lord of the Rings", "Oppenheimer"]


def test_missing_values_stored_as_null(db_path, model):
    with store_connection(db_path) as conn:
        write_tables(conn, model)

    with store_connection(db_path, read_only=True) as conn:
        meh = run_sql(conn, "SELECT reviewer_name, num_rating FROM reviews WHERE rating = 'Meh'")
        no_favorite = run_sql(
            conn, "SELECT COUNT(*) AS n FROM reviewers WHERE favorite_movie IS NULL"
        )
        scores = run_sql(
            conn, "SELECT num_rating FROM reviews WHERE reviewer_name = 'Keith' ORDER BY num_rating"
        )

    assert meh == [{"reviewer_name": None, "num_rating": None}]
    assert no_favorite == [{"n": 1}]
    assert [row["num_rating"] for row in scores] == [3, 5]


def test_reviewer_order_preserved(db_path, model):
    with store_connection(db_path) as conn:
        write_tables(conn, model)

    with store_connection(db_path, read_only=True) as conn:
        reviewers = fetch_table(conn, "reviewers")
    assert reviewers["reviewer_name"].tolist()[:2] == ["Keith", "Maria"]


def test_frame_to_records_uses_none(model):
    records = frame_to_records(model.reviews)
    meh = next(r for r in records if r["rating"] == "Meh")
    assert meh["num_rating"] is None
    assert meh["reviewer_name"] is None
    great = next(r for r in records if r["rating"] == "Great" and r["film"] == "Oppenheimer")
    assert great["num_rating"] == 5
    assert type(great["num_rating"]) is int


def test_read_only_store_must_exist(tmp_path):
    with pytest.raises(FileNotFoundError):
        with store_connection(tmp_path / "absent.duckdb", read_only=True):
            pass


def test_failed_write_keeps_previous_tables(db_path, model):
    with store_connection(db_path) as conn:
        write_tables(conn, model)

    # reviews.film is NOT NULL, so the last insert of the rewrite fails
    broken = SurveyModel(
        movies=model.movies.iloc[:1],
        reviewers=model.reviewers.iloc[:1],
        reviews=model.reviews.assign(film=None),
        layout=model.layout,
    )
    with store_connection(db_path) as conn:
        with pytest.raises(DBAPIError):
            write_tables(conn, broken)

    with store_connection(db_path, read_only=True) as conn:
        assert table_counts(conn) == {"movies": 3, "reviewers": 4, "reviews": 6}
        movies = fetch_table(conn, "movies")
    assert list(movies["film"]) == ["Barbie", "Lord of the Rings", "Oppenheimer"]
