"""
Movie Survey ETL Pipeline - Main Orchestrator
=============================================

Entry point for the ETL (Extract, Transform, Load) pipeline.

Pipeline Flow:
1. EXTRACT: Read the wide survey export (one column per movie)
2. TRANSFORM: Classify columns, build movies/reviewers, unpivot ratings
3. LOAD: Replace the movies, reviewers and reviews tables in DuckDB

Usage:
    # Load the configured export into the configured store
    python -m survey_etl.main run
    
    # Custom paths, fail on unknown rating labels, print exploration queries
    python -m survey_etl.main run --input survey.csv --db reviews.duckdb \\
        --unknown-rating error --summary
    
    # Explore an existing store
    python -m survey_etl.main summary
    python -m survey_etl.main query "SELECT film, COUNT(*) FROM reviews GROUP BY film"
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
from loguru import logger

from .config import Settings, settings
from .db_duckdb import store_connection, write_tables
from .exceptions import SurveyETLError
from .loader import load_survey
from .queries import exploration_summary, run_sql
from .transform import normalize_survey


# ============================================
# ETL Pipeline
# ============================================

@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    db_path: Path
    counts: Dict[str, int]
    summary: Optional[Dict[str, Any]] = None


def run_pipeline(
    csv_path: Union[str, Path, None] = None,
    db_path: Union[str, Path, None] = None,
    unknown_rating: Optional[str] = None,
    with_summary: bool = False,
    app_settings: Optional[Settings] = None,
) -> PipelineResult:
    """
    Execute the survey ETL pipeline.
    
    The export is loaded and normalized before the store is opened, so a
    bad input never touches the database.
    
    Args:
        csv_path: Survey export; defaults to settings
        db_path: DuckDB file; defaults to settings
        unknown_rating: "null" or "error"; defaults to settings
        with_summary: Run the exploration queries after loading
        app_settings: Settings override (tests, embedding)
    
    Returns:
        PipelineResult with per-table row counts
    """
    app_settings = app_settings or settings
    csv_path = Path(csv_path) if csv_path is not None else app_settings.survey.csv_path
    db_path = Path(db_path) if db_path is not None else app_settings.store.db_path
    unknown_rating = unknown_rating or app_settings.etl.unknown_rating
    
    logger.info("🚀 Starting Movie Survey ETL Pipeline")
    logger.info(f"   Input: {csv_path}")
    logger.info(f"   Store: {db_path}")
    
    try:
        frame = load_survey(csv_path, app_settings.survey)
        model = normalize_survey(frame, app_settings.survey, unknown_rating)
        
        summary = None
        with store_connection(db_path) as conn:
            counts = write_tables(conn, model)
            if with_summary:
                summary = exploration_summary(conn)
    except Exception as e:
        logger.error(f"❌ ETL Pipeline failed: {e}")
        raise
    
    logger.info("📊 Final Statistics:")
    for name, count in counts.items():
        logger.info(f"   {name}: {count}")
    logger.success("✅ Survey ETL Pipeline completed successfully!")
    
    return PipelineResult(db_path=db_path, counts=counts, summary=summary)


# ============================================
# Output Helpers
# ============================================

def format_rows(rows: List[Dict[str, Any]]) -> str:
    if not rows:
        return "(no rows)"
    return pd.DataFrame(rows).to_string(index=False)


def print_summary(summary: Dict[str, Any]) -> None:
    print("\n=== Table Counts ===")
    for name, count in summary["table_counts"].items():
        print(f"  {name:12s}: {count:>6}")
    
    print("\n=== Movie Leaderboard ===")
    print(format_rows(summary["movie_leaderboard"]))
    
    print("\n=== Rating Distribution ===")
    print(format_rows(summary["rating_distribution"]))
    
    print("\n=== Favorite Movies ===")
    print(format_rows(summary["favorite_movies"]))
    
    unreviewed = summary["unreviewed_movies"]
    print("\n=== Favorites Nobody Rated ===")
    print("\n".join(f"  {title}" for title in unreviewed) if unreviewed else "(none)")


# ============================================
# CLI Entry Point
# ============================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Movie Survey ETL - Normalize a movie survey export into DuckDB"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    run_parser = subparsers.add_parser("run", help="Load the survey export into the store")
    run_parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help=f"Survey export file (default: {settings.survey.csv_path})",
    )
    run_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"DuckDB file (default: {settings.store.db_path})",
    )
    run_parser.add_argument(
        "--unknown-rating",
        choices=["null", "error"],
        default=None,
        help=f"Handling of unrecognized rating labels (default: {settings.etl.unknown_rating})",
    )
    run_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print exploration queries after loading",
    )
    
    query_parser = subparsers.add_parser("query", help="Run one read-only SQL query")
    query_parser.add_argument("sql", help="SELECT or WITH statement")
    query_parser.add_argument("--db", type=Path, default=None, help="DuckDB file")
    
    summary_parser = subparsers.add_parser("summary", help="Print exploration queries")
    summary_parser.add_argument("--db", type=Path, default=None, help="DuckDB file")
    
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    # Configure logging
    sink_id = logger.add(
        settings.etl.log_file,
        rotation="10 MB",
        retention="7 days",
        level=settings.etl.log_level,
    )
    
    try:
        if args.command == "run":
            result = run_pipeline(
                csv_path=args.input,
                db_path=args.db,
                unknown_rating=args.unknown_rating,
                with_summary=args.summary,
            )
            if result.summary is not None:
                print_summary(result.summary)
        elif args.command == "query":
            with store_connection(args.db, read_only=True) as conn:
                print(format_rows(run_sql(conn, args.sql)))
        elif args.command == "summary":
            with store_connection(args.db, read_only=True) as conn:
                print_summary(exploration_summary(conn))
    except (FileNotFoundError, SurveyETLError) as e:
        logger.error(str(e))
        return 1
    finally:
        logger.remove(sink_id)
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
