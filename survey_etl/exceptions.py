"""Error types raised by the survey ETL."""

from typing import Iterable, List


class SurveyETLError(Exception):
    """Base class for errors the pipeline raises on purpose."""


class SurveySchemaError(SurveyETLError):
    """The export does not match the declared column layout."""

    def __init__(self, message: str, missing: Iterable[str] = (), found: Iterable[str] = ()):
        self.missing: List[str] = list(missing)
        self.found: List[str] = list(found)
        details = []
        if self.missing:
            details.append(f"missing={self.missing}")
        if self.found:
            details.append(f"found={self.found}")
        super().__init__(f"{message} ({', '.join(details)})" if details else message)


class UnknownRatingError(SurveyETLError):
    """Rating labels outside the ordinal scale, under the strict policy."""

    def __init__(self, labels: Iterable[str]):
        self.labels: List[str] = sorted(set(labels))
        super().__init__(f"Unrecognized rating labels: {self.labels}")


class ReadOnlyQueryError(SurveyETLError):
    """An ad-hoc statement that is not a single SELECT/WITH query."""
