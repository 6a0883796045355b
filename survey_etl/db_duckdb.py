"""
Movie Survey DuckDB Store Module
================================

SQLAlchemy table definitions and connection management for the
embedded DuckDB store (via the duckdb-engine dialect).

Schema Design:
- movies:    one row per distinct title (natural key: film)
- reviewers: one row per survey response (no uniqueness on name)
- reviews:   one row per submitted reviewer x movie rating

Design Decisions:
- Natural keys only, no surrogate ids
- No foreign keys: the survey is trusted to be consistent
- Every load replaces all three tables
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

import pandas as pd
from loguru import logger
from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
)
from sqlalchemy.engine import Connection, Engine

from .config import settings
from .transform import SurveyModel


# ============================================
# Table Definitions
# ============================================

metadata = MetaData()

movies_table = Table(
    "movies",
    metadata,
    Column("film", String, nullable=False),
)

reviewers_table = Table(
    "reviewers",
    metadata,
    Column("reviewer_name", String, nullable=True),
    Column("favorite_movie", String, nullable=True),
)

reviews_table = Table(
    "reviews",
    metadata,
    Column("reviewer_name", String, nullable=True),
    Column("film", String, nullable=False),
    Column("rating", String, nullable=False),
    Column("num_rating", Integer, nullable=True),
)

TABLES = {
    "movies": movies_table,
    "reviewers": reviewers_table,
    "reviews": reviews_table,
}


# ============================================
# Connection Management
# ============================================

def get_engine(db_path: Union[str, Path, None] = None, read_only: bool = False) -> Engine:
    """
    Create SQLAlchemy engine for a DuckDB file.
    
    Args:
        db_path: Database file; defaults to the configured store path
        read_only: Open the file without write access
    
    Returns:
        Engine: SQLAlchemy engine instance
    """
    db_path = Path(db_path) if db_path is not None else settings.store.db_path
    
    if read_only:
        if not db_path.exists():
            raise FileNotFoundError(f"DuckDB store not found: {db_path}")
        connect_args = {"read_only": True}
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        connect_args = {}
    
    return create_engine(f"duckdb:///{db_path}", connect_args=connect_args)


@contextmanager
def store_connection(
    db_path: Union[str, Path, None] = None,
    read_only: bool = False,
) -> Iterator[Connection]:
    """
    Open the store for the duration of a run.
    
    The connection is closed and the engine disposed on every exit path,
    which releases DuckDB's lock on the file.
    
    Usage:
        with store_connection(path) as conn:
            write_tables(conn, model)
    """
    engine = get_engine(db_path, read_only=read_only)
    logger.debug(f"Opening DuckDB store {engine.url.database} (read_only={read_only})")
    try:
        with engine.connect() as conn:
            yield conn
    finally:
        engine.dispose()
        logger.debug("DuckDB store closed")


# ============================================
# Store Writer
# ============================================

def _native(value: Any) -> Any:
    """Convert pandas/numpy scalars and missing markers to DB-API values."""
    if value is None or pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def frame_to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as plain dicts with None for missing values."""
    return [
        {column: _native(value) for column, value in row.items()}
        for row in frame.to_dict("records")
    ]


def write_tables(conn: Connection, model: SurveyModel) -> Dict[str, int]:
    """
    Replace the movies, reviewers and reviews tables with the model's rows.
    
    All three tables are dropped, recreated and filled in one transaction.
    
    Args:
        conn: Open store connection
        model: Normalized survey tables
    
    Returns:
        Rows written per table
    """
    frames = {
        "movies": model.movies,
        "reviewers": model.reviewers,
        "reviews": model.reviews,
    }
    written: Dict[str, int] = {}
    
    try:
        for name, table in TABLES.items():
            table.drop(conn, checkfirst=True)
            table.create(conn)
            
            records = frame_to_records(frames[name][[c.name for c in table.columns]])
            if records:
                conn.execute(table.insert(), records)
            written[name] = len(records)
            logger.debug(f"Replaced table {name} ({len(records)} rows)")
        
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error("Store write failed, previous tables kept")
        raise
    
    logger.info(f"Wrote tables: {written}")
    return written

