"""
Query Orchestrator - Main Pipeline

Drives one query end to end:
1. Classify: normalize, fuzzy match, LLM fallback when unsure
2. Gate: private and mixed queries require an actor identity
3. Gather: public context from the DataSource, tool calls for private data
4. Respond: synthesize the answer (buffered or streamed), with
   recommendations when nothing was found

Every request gets its own OrchestrationContext; nothing is shared
between requests except the immutable catalogs.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from ai.llm_service import CancellationToken, get_langfuse_client
from config import AUTHENTICATION_REQUIRED_MESSAGE, NO_INFORMATION_MESSAGE
from langfuse import observe
from tools.catalog import ToolCall
from tools.executor import ToolExecutor, ToolResult
from .errors import AuthenticationRequired
from .normalizer import Query, build_query
from .public_context import PublicContextCollector
from .recommendations import RecommendationGenerator
from .router import ClassificationResult, Classifier, QueryType
from .synthesizer import ResponseSynthesizer, SynthesisOutcome
from .tool_selector import ToolSelector

logger = logging.getLogger(__name__)


# ============================================================================
# STATE MACHINE
# ============================================================================

class ContextStatus(Enum):
    """Pipeline stage of one query."""
    RECEIVED = "received"
    CLASSIFIED = "classified"
    TOOLS_SELECTED = "tools_selected"
    TOOLS_EXECUTED = "tools_executed"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    ContextStatus.RECEIVED: {ContextStatus.CLASSIFIED, ContextStatus.FAILED},
    ContextStatus.CLASSIFIED: {ContextStatus.TOOLS_SELECTED},
    ContextStatus.TOOLS_SELECTED: {ContextStatus.TOOLS_EXECUTED},
    ContextStatus.TOOLS_EXECUTED: {ContextStatus.SYNTHESIZING},
    ContextStatus.SYNTHESIZING: {ContextStatus.COMPLETED, ContextStatus.FAILED},
    ContextStatus.COMPLETED: set(),
    ContextStatus.FAILED: set(),
}


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class OrchestrationContext:
    """
    State of one query while it moves through the pipeline.

    Tracks classification, tool calls and results, public context, the
    synthesized response, and per-stage timings in milliseconds.
    """
    query: Query
    actor_id: Optional[str] = None

    status: ContextStatus = ContextStatus.RECEIVED
    classification: Optional[ClassificationResult] = None

    # Data gathering
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    public_context: Dict[str, Any] = field(default_factory=dict)

    # Results
    response: str = ""
    recommendations: List[str] = field(default_factory=list)
    used_fallback: bool = False
    error_message: Optional[str] = None

    # Timing
    start_time: float = field(default_factory=time.time)
    timings: Dict[str, float] = field(default_factory=dict)
    total_duration_ms: float = 0.0

    def transition(self, new_status: ContextStatus) -> None:
        """
        Move to the next stage.

        Raises:
            ValueError: If the transition is not allowed
        """
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(
                f"Illegal transition {self.status.value} -> {new_status.value}"
            )
        logger.debug(f"🔄 {self.status.value} -> {new_status.value}")
        self.status = new_status

    def record_timing(self, stage: str, started: float) -> None:
        self.timings[stage] = (time.time() - started) * 1000

    @property
    def query_type(self) -> Optional[QueryType]:
        return self.classification.query_type if self.classification else None

    @property
    def is_finished(self) -> bool:
        return self.status in (ContextStatus.COMPLETED, ContextStatus.FAILED)

    @property
    def has_context(self) -> bool:
        return bool(self.public_context) or any(r.success for r in self.tool_results)

    def get_execution_summary(self) -> Dict[str, Any]:
        """Get a summary of the execution."""
        return {
            "query_type": self.query_type.value if self.query_type else "unknown",
            "status": self.status.value,
            "intents": self.classification.intents if self.classification else [],
            "tools_used": [r.tool_name for r in self.tool_results],
            "failed_tools": [r.tool_name for r in self.tool_results if not r.success],
            "public_context": list(self.public_context),
            "has_context": self.has_context,
            "used_fallback": self.used_fallback,
            "timings_ms": dict(self.timings),
            "duration_ms": self.total_duration_ms,
        }


class QueryStream:
    """
    Handle for a streamed answer.

    Iterating yields answer fragments in order; the context is finalized
    when iteration ends or the stream is closed. on_close finalizes a
    context whose stream was closed before the first fragment.
    """

    def __init__(
        self,
        context: OrchestrationContext,
        fragments: Iterator[str],
        cancel_token: CancellationToken,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.context = context
        self._fragments = fragments
        self.cancel_token = cancel_token
        self._on_close = on_close

    def __iter__(self) -> Iterator[str]:
        return self._fragments

    def cancel(self) -> None:
        """Stop generation; fragments already delivered are kept."""
        self.cancel_token.cancel()

    def close(self) -> None:
        self.cancel_token.cancel()
        self._fragments.close()
        if not self.context.is_finished and self._on_close is not None:
            self._on_close()


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class QueryOrchestrator:
    """
    Runs the classification → tools → synthesis pipeline for one query.

    Only AuthenticationRequired escapes; tool and generation failures are
    absorbed by the components.
    """

    def __init__(
        self,
        classifier: Classifier,
        tool_selector: ToolSelector,
        tool_executor: ToolExecutor,
        synthesizer: ResponseSynthesizer,
        recommender: Optional[RecommendationGenerator] = None,
        public_context: Optional[PublicContextCollector] = None,
    ):
        self.classifier = classifier
        self.tool_selector = tool_selector
        self.tool_executor = tool_executor
        self.synthesizer = synthesizer
        self.recommender = recommender or RecommendationGenerator()
        self.public_context = public_context

    @observe(name="process_query", capture_output=False)
    def process_query(self, query: str, actor_id: Optional[str] = None) -> OrchestrationContext:
        """
        Answer a query in one piece.

        Args:
            query: The user's question
            actor_id: Authenticated user, required for private data

        Returns:
            Finished OrchestrationContext (COMPLETED or FAILED)

        Raises:
            AuthenticationRequired: Private or mixed query without actor_id
        """
        context = self._prepare(query, actor_id)
        self._trace(context)

        context.transition(ContextStatus.SYNTHESIZING)
        started = time.time()
        outcome = self.synthesizer.synthesize(
            context.query.raw, context.tool_results, context.public_context
        )
        context.record_timing("synthesis", started)

        self._finish(context, outcome)
        return context

    @observe(name="stream_query", capture_output=False)
    def stream_query(
        self,
        query: str,
        actor_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> QueryStream:
        """
        Answer a query as a stream of fragments.

        Classification, tool selection and tool execution run before this
        returns; synthesis runs as the stream is consumed.

        Raises:
            AuthenticationRequired: Private or mixed query without actor_id
        """
        cancel_token = cancel_token or CancellationToken()
        context = self._prepare(query, actor_id)
        self._trace(context)
        return QueryStream(
            context,
            self._stream_fragments(context, cancel_token),
            cancel_token,
            on_close=lambda: self._abandon(context),
        )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _prepare(self, raw_query: str, actor_id: Optional[str]) -> OrchestrationContext:
        context = OrchestrationContext(query=build_query(raw_query), actor_id=actor_id)

        started = time.time()
        context.classification = self.classifier.classify(context.query)
        context.record_timing("classification", started)
        query_type = context.classification.query_type

        if query_type.needs_actor and not actor_id:
            context.error_message = AUTHENTICATION_REQUIRED_MESSAGE
            context.transition(ContextStatus.FAILED)
            logger.warning(f"🔒 {query_type.value} query without actor identity")
            raise AuthenticationRequired(query_type.value, AUTHENTICATION_REQUIRED_MESSAGE)

        context.transition(ContextStatus.CLASSIFIED)

        if query_type is not QueryType.PRIVATE and self.public_context is not None:
            started = time.time()
            context.public_context = self.public_context.collect(
                context.query, context.classification.intents
            )
            context.record_timing("public_context", started)

        if query_type.needs_actor:
            started = time.time()
            context.tool_calls = self.tool_selector.select(context.query, query_type)
            context.record_timing("tool_selection", started)
        context.transition(ContextStatus.TOOLS_SELECTED)

        if context.tool_calls:
            started = time.time()
            context.tool_results = self.tool_executor.execute(actor_id, context.tool_calls)
            context.record_timing("tool_execution", started)
        context.transition(ContextStatus.TOOLS_EXECUTED)

        if not context.has_context:
            logger.info("ℹ️  No context found, generating without data")
        return context

    def _stream_fragments(
        self,
        context: OrchestrationContext,
        cancel_token: CancellationToken,
    ) -> Iterator[str]:
        context.transition(ContextStatus.SYNTHESIZING)
        started = time.time()
        stream = self.synthesizer.stream(
            context.query.raw,
            context.tool_results,
            context.public_context,
            cancel_token=cancel_token,
        )
        outcome = stream.outcome

        try:
            for fragment in stream:
                yield fragment
            if not outcome.cancelled and not outcome.text.strip():
                yield self._no_information(context)
        finally:
            stream.close()
            if cancel_token.cancelled:
                outcome.cancelled = True
            context.record_timing("synthesis", started)
            if not context.is_finished:
                self._finish(context, outcome)

    def _abandon(self, context: OrchestrationContext) -> None:
        """Finish a stream that was closed before synthesis started."""
        context.transition(ContextStatus.SYNTHESIZING)
        self._finish(context, SynthesisOutcome(cancelled=True))

    def _finish(self, context: OrchestrationContext, outcome: SynthesisOutcome) -> None:
        context.used_fallback = outcome.used_fallback

        if outcome.text.strip() or outcome.cancelled:
            context.response = outcome.text
            context.transition(ContextStatus.COMPLETED)
        else:
            context.response = self._no_information(context)
            context.error_message = outcome.error or "no response produced"
            context.transition(ContextStatus.FAILED)

        if not context.has_context:
            context.recommendations = self.recommender.generate(
                context.query.raw, context.query_type
            )

        context.total_duration_ms = (time.time() - context.start_time) * 1000
        logger.info(
            f"✅ Query {context.status.value} in {context.total_duration_ms:.0f}ms "
            f"({context.query_type.value}, fallback: {context.used_fallback})"
        )

    @staticmethod
    def _no_information(context: OrchestrationContext) -> str:
        return NO_INFORMATION_MESSAGE.format(query=context.query.raw)

    @staticmethod
    def _trace(context: OrchestrationContext) -> None:
        client = get_langfuse_client()
        if client is None:
            return
        client.update_current_trace(
            user_id=context.actor_id,
            metadata={
                "query_type": context.query_type.value,
                "intents": context.classification.intents,
                "tools": [c.name for c in context.tool_calls],
            },
        )
