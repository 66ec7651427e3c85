"""
External Clients Module

Low-level clients for the collaborators the pipeline consumes. These
contain no classification or synthesis logic.

Clients:
- DataSource: university records (private tool operations and public data)
"""

from .data_source import (
    DataSource,
    InMemoryDataSource,
    DataSourceError,
    NotFound,
    Forbidden,
    canonical_course_code,
)

__all__ = [
    "DataSource",
    "InMemoryDataSource",
    "DataSourceError",
    "NotFound",
    "Forbidden",
    "canonical_course_code",
]
