"""
Error taxonomy for the query pipeline.

Only AuthenticationRequired is meant to reach callers. The others are
raised and absorbed inside the pipeline: unknown tools are dropped,
tool failures become failed ToolResults, and generation failures switch
the synthesizer to its deterministic formatter.
"""

from typing import Optional

from ai.llm_service import GenerationError, GenerationTimeout
from tools.catalog import ToolNotFound
from tools.executor import ToolExecutionError


class QueryError(Exception):
    """Base class for query pipeline errors."""


class AuthenticationRequired(QueryError):
    """A private or mixed query arrived without an actor identity."""

    def __init__(self, query_type: str, message: Optional[str] = None):
        self.query_type = query_type
        super().__init__(message or "Authentication required for private queries")


__all__ = [
    "QueryError",
    "AuthenticationRequired",
    "ToolNotFound",
    "ToolExecutionError",
    "GenerationError",
    "GenerationTimeout",
]
