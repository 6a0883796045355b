"""
Read-only exploration queries over the loaded survey tables.

Every helper takes an open connection and returns plain dicts, so the
same functions serve the post-load summary and standalone sessions
opened with store_connection(read_only=True).
"""

import re
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from .db_duckdb import TABLES, movies_table, reviewers_table, reviews_table
from .exceptions import ReadOnlyQueryError
from .transform import RATING_SCALE

READ_ONLY_KEYWORDS = ("select", "with")

STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
SQL_COMMENT = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)
LEADING_KEYWORD = re.compile(r"[\s(]*([A-Za-z]+)")


def _rows(result) -> List[Dict[str, Any]]:
    return [dict(row) for row in result.mappings().all()]


def table_counts(conn: Connection) -> Dict[str, int]:
    return {
        name: conn.execute(select(func.count()).select_from(table)).scalar_one()
        for name, table in TABLES.items()
    }


def fetch_table(conn: Connection, name: str) -> pd.DataFrame:
    """Whole table as a DataFrame, in storage order."""
    table = TABLES[name]
    rows = _rows(conn.execute(select(table)))
    return pd.DataFrame(rows, columns=[c.name for c in table.columns])


def movie_leaderboard(conn: Connection, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Review count and average score per reviewed film, best average first."""
    r = reviews_table.c
    avg_rating = func.avg(r.num_rating)
    stmt = (
        select(
            r.film,
            func.count().label("review_count"),
            avg_rating.label("avg_rating"),
        )
        .group_by(r.film)
        .order_by(avg_rating.desc().nulls_last(), r.film)
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    rows = _rows(conn.execute(stmt))
    for row in rows:
        if row["avg_rating"] is not None:
            row["avg_rating"] = round(float(row["avg_rating"]), 2)
    return rows


def rating_distribution(conn: Connection) -> List[Dict[str, Any]]:
    """Reviews per ordinal label, Bad to Great, unrecognized labels last."""
    r = reviews_table.c
    stmt = select(r.rating, func.count().label("count")).group_by(r.rating)
    rows = _rows(conn.execute(stmt))
    for row in rows:
        row["num_rating"] = RATING_SCALE.get(row["rating"])
    return sorted(
        rows,
        key=lambda row: (row["num_rating"] is None, row["num_rating"] or 0, row["rating"]),
    )


def favorite_movies(conn: Connection) -> List[Dict[str, Any]]:
    """How many reviewers named each film as their favorite."""
    fav = reviewers_table.c.favorite_movie
    count = func.count().label("reviewer_count")
    stmt = (
        select(fav, count)
        .where(fav.is_not(None))
        .group_by(fav)
        .order_by(count.desc(), fav)
    )
    return _rows(conn.execute(stmt))


def unreviewed_movies(conn: Connection) -> List[str]:
    """Films that appear only as someone's favorite."""
    film = movies_table.c.film
    stmt = (
        select(film)
        .where(film.not_in(select(reviews_table.c.film)))
        .order_by(film)
    )
    return list(conn.execute(stmt).scalars())


def reviews_by_reviewer(conn: Connection, reviewer_name: str) -> List[Dict[str, Any]]:
    r = reviews_table.c
    stmt = (
        select(r.film, r.rating, r.num_rating)
        .where(r.reviewer_name == reviewer_name)
        .order_by(r.num_rating.desc().nulls_last(), r.film)
    )
    return _rows(conn.execute(stmt))


def run_sql(conn: Connection, sql: str) -> List[Dict[str, Any]]:
    """
    Run one ad-hoc read query.

    Leading comments and opening parentheses are skipped when looking for
    the statement keyword, and semicolons inside single-quoted literals or
    comments do not count as statement separators.

    Args:
        conn: Open store connection
        sql: A single SELECT or WITH statement

    Returns:
        Result rows as dicts

    Raises:
        ReadOnlyQueryError: If the statement is empty, compound, or not a read
    """
    statement = sql.strip().rstrip(";").strip()

    # literals first, so "--" or ";" inside quotes is left alone
    scan = STRING_LITERAL.sub("''", statement)
    scan = SQL_COMMENT.sub(" ", scan).strip().rstrip(";").strip()
    if not scan:
        raise ReadOnlyQueryError("Empty query")
    if ";" in scan:
        raise ReadOnlyQueryError("Only one statement per query is allowed")

    match = LEADING_KEYWORD.match(scan)
    keyword = match.group(1).lower() if match else scan.split(None, 1)[0].lower()
    if keyword not in READ_ONLY_KEYWORDS:
        raise ReadOnlyQueryError(f"Only SELECT/WITH queries are allowed, got {keyword.upper()}")

    return _rows(conn.exec_driver_sql(statement))


def exploration_summary(conn: Connection) -> Dict[str, Any]:
    """All exploration queries in one dict."""
    return {
        "table_counts": table_counts(conn),
        "movie_leaderboard": movie_leaderboard(conn),
        "rating_distribution": rating_distribution(conn),
        "favorite_movies": favorite_movies(conn),
        "unreviewed_movies": unreviewed_movies(conn),
    }
