"""Analysis result stores."""

from .base import AnalysisPage, AnalysisStore, ListCriteria, NullAnalysisStore
from .sqlite_store import SqliteAnalysisStore

__all__ = [
    "AnalysisPage",
    "AnalysisStore",
    "ListCriteria",
    "NullAnalysisStore",
    "SqliteAnalysisStore",
]
