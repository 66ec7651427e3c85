"""
FastAPI dependencies.

Shared resources are built once in the application lifespan and stored
on app.state; routes receive them through these dependencies so tests
can swap them with app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from ai.llm_service import GenerativeBackend
from config import ACTOR_HEADER
from services.query_service import QueryService

logger = logging.getLogger(__name__)


def get_query_service(request: Request) -> QueryService:
    """QueryService built at startup."""
    service = getattr(request.app.state, "query_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Query service not initialized",
        )
    return service


def get_generative_backend(request: Request) -> GenerativeBackend:
    """Generative backend built at startup."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Generative backend not initialized",
        )
    return backend


def get_actor_id(
    actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER),
) -> Optional[str]:
    """
    Actor identity set by the upstream authentication layer.

    Missing or blank headers mean an anonymous caller; whether that is
    acceptable depends on the query type.
    """
    if actor_id is None or not actor_id.strip():
        return None
    return actor_id.strip()
