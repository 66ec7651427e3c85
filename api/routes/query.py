"""
Query endpoints - the caller-facing side of the pipeline.

- POST /query          buffered answer
- POST /query/stream   answer as Server-Sent Events
- GET  /health         generative backend status
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from ai.llm_service import CancellationToken, GenerativeBackend, health_check
from api.dependencies import get_actor_id, get_generative_backend, get_query_service
from config import MAX_QUERY_LENGTH
from core.errors import AuthenticationRequired
from services.query_service import QueryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["query"])


# ============================================================================
# REQUEST / RESPONSE MODELS
# ============================================================================

class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class QueryResponseModel(BaseModel):
    queryType: str
    response: str
    recommendations: List[str] = []
    hasContext: bool = False


class ErrorResponse(BaseModel):
    error: str
    queryType: Optional[str] = None


def _auth_error(exc: AuthenticationRequired) -> Dict[str, Any]:
    return {"error": str(exc), "queryType": exc.query_type}


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post(
    "/query",
    response_model=QueryResponseModel,
    responses={401: {"model": ErrorResponse}},
)
def run_query(
    request: QueryRequest,
    service: QueryService = Depends(get_query_service),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """Answer a query in one response."""
    try:
        result = service.process_query(request.query, actor_id)
    except AuthenticationRequired as exc:
        return JSONResponse(status_code=401, content=_auth_error(exc))
    return result.to_dict()


def _sse_data(data: Any) -> str:
    """Format one Server-Sent Event data line."""
    payload = data if isinstance(data, str) else json.dumps(data)
    return f"data: {payload}\n\n"


@router.post("/query/stream")
def run_query_stream(
    request: QueryRequest,
    service: QueryService = Depends(get_query_service),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Answer a query as Server-Sent Events.

    Events: zero or more {"content": fragment}, then
    {"metadata": {"duration": ms}}, then [DONE]. Failures produce an
    {"error": message} event before the metadata. Disconnecting cancels
    the in-flight generation.
    """
    started = time.time()
    cancel_token = CancellationToken()

    def generate():
        stream = None
        try:
            stream = service.stream_query(request.query, actor_id, cancel_token)
            for fragment in stream:
                yield _sse_data({"content": fragment})
        except AuthenticationRequired as exc:
            yield _sse_data(_auth_error(exc))
        except Exception as exc:
            logger.error(f"❌ Streaming query failed: {exc}", exc_info=True)
            yield _sse_data({"error": str(exc)})
        finally:
            if stream is not None:
                stream.close()

        duration = int((time.time() - started) * 1000)
        yield _sse_data({"metadata": {"duration": duration}})
        yield _sse_data("[DONE]")

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
        background=BackgroundTask(cancel_token.cancel),
    )


@router.get("/health")
def get_health(backend: GenerativeBackend = Depends(get_generative_backend)):
    """Generative backend and tracing status."""
    status = health_check(backend)
    status["status"] = "ok" if status["gemini_api"] == "healthy" else "degraded"
    return status
