"""
API Routes

- query: /query, /query/stream and /health
"""

from .query import router as query_router

__all__ = [
    "query_router",
]
