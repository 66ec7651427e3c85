"""
Query Service - Main Entry Point

Wires the pipeline components together and shapes orchestrator output
for callers:
1. Receives the query text and the actor identity
2. Runs the orchestrator (buffered or streaming)
3. Returns a QueryResponse with the answer, query type and suggestions

This is the main entry point for the HTTP API.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ai.llm_service import CancellationToken, GenerativeBackend, get_backend
from clients.data_source import DataSource, InMemoryDataSource
from config import (
    DATA_FILE,
    DEFAULT_INTENT_CATALOG,
    IntentCatalog,
    MatchThresholds,
)
from core import (
    Classifier,
    FuzzyIntentMatcher,
    LLMFallbackClassifier,
    OrchestrationContext,
    PublicContextCollector,
    QueryOrchestrator,
    QueryStream,
    RecommendationGenerator,
    ResponseSynthesizer,
    ToolSelector,
)
from tools import DEFAULT_TOOL_CATALOG, ToolCatalog, ToolExecutor

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class QueryResponse:
    """
    Response from the query service.

    Attributes:
        query_type: "public", "private" or "mixed"
        response: The answer text to show the user
        recommendations: Follow-up questions (only when no data was found)
        has_context: Whether any data backed the answer
        metadata: Execution summary for logging and debugging
    """
    query_type: str
    response: str
    recommendations: List[str] = field(default_factory=list)
    has_context: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_context(cls, context: OrchestrationContext) -> "QueryResponse":
        return cls(
            query_type=context.query_type.value,
            response=context.response,
            recommendations=list(context.recommendations),
            has_context=context.has_context,
            metadata=context.get_execution_summary(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire format of POST /query."""
        return {
            "queryType": self.query_type,
            "response": self.response,
            "recommendations": self.recommendations,
            "hasContext": self.has_context,
        }


# ============================================================================
# QUERY SERVICE
# ============================================================================

class QueryService:
    """Thin coordinator between callers and the QueryOrchestrator."""

    def __init__(self, orchestrator: QueryOrchestrator):
        self.orchestrator = orchestrator
        logger.info("✅ QueryService initialized")

    def process_query(self, query: str, actor_id: Optional[str] = None) -> QueryResponse:
        """
        Answer a query.

        Args:
            query: The user's question
            actor_id: Authenticated user identity, if any

        Returns:
            QueryResponse

        Raises:
            AuthenticationRequired: Private or mixed query without actor_id
        """
        request_id = uuid.uuid4().hex[:8]
        logger.info(f"💬 [{request_id}] Processing query: {query[:50]}...")

        context = self.orchestrator.process_query(query, actor_id)
        response = QueryResponse.from_context(context)

        logger.info(
            f"📤 [{request_id}] {response.query_type} answer "
            f"(context: {response.has_context}, {context.total_duration_ms:.0f}ms)"
        )
        return response

    def stream_query(
        self,
        query: str,
        actor_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> QueryStream:
        """
        Answer a query as a stream of fragments.

        Raises:
            AuthenticationRequired: Private or mixed query without actor_id
        """
        logger.info(f"💬 Streaming query: {query[:50]}...")
        return self.orchestrator.stream_query(query, actor_id, cancel_token)


# ============================================================================
# WIRING
# ============================================================================

def build_orchestrator(
    backend: GenerativeBackend,
    data_source: DataSource,
    tool_catalog: ToolCatalog = DEFAULT_TOOL_CATALOG,
    intent_catalog: IntentCatalog = DEFAULT_INTENT_CATALOG,
    thresholds: Optional[MatchThresholds] = None,
) -> QueryOrchestrator:
    """
    Assemble the pipeline from its collaborators.

    Args:
        backend: Generative backend for classification, selection, synthesis
        data_source: University records
        tool_catalog: Tools the pipeline may run
        intent_catalog: Intent patterns for fuzzy matching
        thresholds: Matching thresholds (defaults from settings)

    Returns:
        Ready-to-use QueryOrchestrator
    """
    thresholds = thresholds or MatchThresholds()
    matcher = FuzzyIntentMatcher(intent_catalog, thresholds)

    return QueryOrchestrator(
        classifier=Classifier(
            fuzzy=matcher,
            fallback=LLMFallbackClassifier(backend, tool_catalog, intent_catalog),
            thresholds=thresholds,
        ),
        tool_selector=ToolSelector(backend, tool_catalog, matcher),
        tool_executor=ToolExecutor(data_source, tool_catalog),
        synthesizer=ResponseSynthesizer(backend),
        recommender=RecommendationGenerator(),
        public_context=PublicContextCollector(data_source),
    )


def build_query_service(
    backend: Optional[GenerativeBackend] = None,
    data_source: Optional[DataSource] = None,
) -> QueryService:
    """
    Build a QueryService with defaults from settings.

    The Gemini backend is used unless one is given; records come from
    DATA_FILE when it exists, otherwise an empty in-memory source.
    """
    if data_source is None:
        if DATA_FILE.exists():
            data_source = InMemoryDataSource.from_json_file(DATA_FILE)
        else:
            logger.warning(f"⚠️  Data file {DATA_FILE} not found, starting with empty records")
            data_source = InMemoryDataSource()

    return QueryService(build_orchestrator(backend or get_backend(), data_source))


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def process_query(query: str, actor_id: Optional[str] = None, **kwargs) -> QueryResponse:
    """
    Convenience function to answer one query with a default service.

    Args:
        query: The user's question
        actor_id: Authenticated user identity, if any
        **kwargs: Passed to build_query_service

    Returns:
        QueryResponse
    """
    service = build_query_service(**kwargs)
    return service.process_query(query, actor_id)
