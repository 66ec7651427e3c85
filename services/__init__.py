"""
Application Services Module

This module contains the entry points used by the HTTP API:
- Query service: wires the pipeline and shapes its responses

Services assemble core components and apply no classification or
synthesis logic of their own.
"""

from .query_service import (
    QueryResponse,
    QueryService,
    build_orchestrator,
    build_query_service,
    process_query,
)

__all__ = [
    # Query Service
    "QueryResponse",
    "QueryService",
    "build_orchestrator",
    "build_query_service",
    "process_query",
]
