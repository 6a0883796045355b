"""
Survey Extraction Module
========================

Reads the wide-format survey export into a DataFrame.

Every cell is kept as text. Only empty cells count as missing, so a
reviewer literally called "NA" survives the load.
"""

from pathlib import Path
from typing import Optional, Union

import pandas as pd
from loguru import logger

from .config import SurveySettings, settings
from .exceptions import SurveySchemaError


def load_survey(
    path: Union[str, Path, None] = None,
    survey_settings: Optional[SurveySettings] = None,
) -> pd.DataFrame:
    """
    Load the survey export.

    Args:
        path: Export file; defaults to the configured csv_path
        survey_settings: Layout/format settings; defaults to global settings

    Returns:
        DataFrame with one row per respondent and the raw header labels

    Raises:
        FileNotFoundError: If the export does not exist
        SurveySchemaError: If a header label appears more than once
    """
    survey_settings = survey_settings or settings.survey
    path = Path(path) if path is not None else survey_settings.csv_path

    if not path.exists():
        raise FileNotFoundError(f"Survey export not found: {path}")

    read_options = dict(
        sep=survey_settings.delimiter,
        encoding=survey_settings.encoding,
        dtype=str,
        keep_default_na=False,
    )

    # pandas renames repeated labels ("Heat" -> "Heat.1"), so check the raw header
    header = pd.read_csv(path, header=None, nrows=1, **read_options).iloc[0].tolist()
    duplicates = sorted({label for label in header if header.count(label) > 1})
    if duplicates:
        raise SurveySchemaError("Survey export has repeated column labels", found=duplicates)

    frame = pd.read_csv(path, na_values=[""], **read_options)
    logger.info(f"Loaded {len(frame)} responses x {len(frame.columns)} columns from {path}")
    logger.debug(f"Columns: {list(frame.columns)}")
    return frame
