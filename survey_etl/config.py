"""
Movie Survey ETL Configuration Module
=====================================

Uses Pydantic Settings for type-safe configuration management.
Loads settings from environment variables with .env file support.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


UnknownRatingPolicy = Literal["null", "error"]


class SurveySettings(BaseSettings):
    """Declared layout of the survey export."""
    
    model_config = SettingsConfigDict(
        env_prefix="SURVEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    csv_path: Path = Field(default=Path("data/movie_survey.csv"), description="Survey export file")
    reviewer_column: str = Field(default="What is your name?", description="Reviewer identity column label")
    favorite_column: str = Field(default="What is your favorite movie?", description="Favorite movie column label")
    ignored_columns: List[str] = Field(
        default_factory=lambda: ["Timestamp"],
        description="Metadata columns dropped at load time"
    )
    delimiter: str = Field(default=",", description="Field delimiter")
    encoding: str = Field(default="utf-8", description="File encoding")
    
    @property
    def identity_columns(self) -> List[str]:
        """Non-movie columns every export must carry."""
        return [self.reviewer_column, self.favorite_column]


class StoreSettings(BaseSettings):
    """DuckDB store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    db_path: Path = Field(default=Path("data/movie_reviews.duckdb"), description="DuckDB database file")


class ETLSettings(BaseSettings):
    """ETL pipeline configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="survey_etl.log", description="Log file sink for CLI runs")
    unknown_rating: UnknownRatingPolicy = Field(
        default="null",
        description="What to do with unrecognized rating labels: keep with null score, or fail"
    )


class Settings(BaseSettings):
    """Aggregated application settings."""
    
    survey: SurveySettings = Field(default_factory=SurveySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    etl: ETLSettings = Field(default_factory=ETLSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Returns:
        Settings: Application configuration instance
    """
    return Settings()


# Convenience access
settings = get_settings()
