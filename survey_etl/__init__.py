"""
Movie Survey ETL
================

Reshapes a wide movie-survey export into a normalized
movies / reviewers / reviews model and loads it into DuckDB.

Components:
- config: Configuration management (Pydantic Settings)
- loader: Survey file extraction (pandas)
- transform: Column classification, movie catalog, rating unpivot
- db_duckdb: SQLAlchemy table definitions and the DuckDB store writer
- queries: Read-only exploration queries
- main: ETL orchestration and CLI
"""

__version__ = "0.1.0"
__author__ = "Movie Survey Team"
