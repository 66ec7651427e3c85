"""
Query Classification Router

Decides whether a query needs private (per-user) data, public (shared)
data, or both. Two strategies are composed:
- FuzzyIntentMatcher: typo-tolerant keyword matching (fast path)
- LLMFallbackClassifier: asks the generative backend when the fuzzy
  confidence is too low to trust

Query types:
- public: calendar, electives, timetable, credit rules
- private: grades, payments, attendance, enrollments, profile, summary
- mixed: both of the above in one question
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from ai.llm_service import GenerationError, GenerativeBackend
from config import (
    CLASSIFIER_PROMPT,
    CLASSIFIER_TEMPERATURE,
    DEFAULT_INTENT_CATALOG,
    IntentCatalog,
    IntentCategory,
    MatchThresholds,
    format_prompt,
)
from tools.catalog import DEFAULT_TOOL_CATALOG, ToolCatalog
from .fuzzy_matcher import FuzzyIntentMatcher, FuzzyMatchResult
from .normalizer import Query, build_query
from .parsing import ParseFailed, parse_json_object

logger = logging.getLogger(__name__)


# ============================================================================
# QUERY TYPES
# ============================================================================

class QueryType(Enum):
    """Which kind of data a query needs."""

    PUBLIC = "public"
    PRIVATE = "private"
    MIXED = "mixed"

    @property
    def needs_actor(self) -> bool:
        return self is not QueryType.PUBLIC


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ClassificationResult:
    """
    Result of query classification.

    Attributes:
        query_type: PUBLIC, PRIVATE or MIXED
        intents: Matched intent names, in catalog order
        suggested_tools: Tools serving the matched intents
        confidence: Classification confidence (0.0 - 1.0)
        normalized_query: Text the classification was computed from
        has_private_indicator: Whether a first-person word was present
        source: "fuzzy" or "llm"
    """
    query_type: QueryType
    intents: List[str] = field(default_factory=list)
    suggested_tools: List[str] = field(default_factory=list)
    confidence: float = 0.0
    normalized_query: str = ""
    has_private_indicator: bool = False
    source: str = "fuzzy"


# ============================================================================
# CLASSIFICATION RULES
# ============================================================================

def determine_query_type(fuzzy_result: FuzzyMatchResult) -> QueryType:
    """
    Apply the query-type rules to a fuzzy match.

    Mixed when both a private and a public intent matched; otherwise
    private when a private intent matched, or when a first-person word
    appears together with a record-related term; public by default.
    """
    has_private = fuzzy_result.has_category(IntentCategory.PRIVATE)
    has_public = fuzzy_result.has_category(IntentCategory.PUBLIC)

    if has_private and has_public:
        return QueryType.MIXED
    if has_private:
        return QueryType.PRIVATE
    if fuzzy_result.has_private_indicator and fuzzy_result.has_data_term:
        return QueryType.PRIVATE
    return QueryType.PUBLIC


def from_fuzzy(fuzzy_result: FuzzyMatchResult) -> ClassificationResult:
    """Build a ClassificationResult from a fuzzy match."""
    return ClassificationResult(
        query_type=determine_query_type(fuzzy_result),
        intents=fuzzy_result.intent_names,
        suggested_tools=fuzzy_result.suggested_tools,
        confidence=fuzzy_result.confidence,
        normalized_query=fuzzy_result.normalized_query,
        has_private_indicator=fuzzy_result.has_private_indicator,
        source="fuzzy",
    )


def _categories(intent_names: Iterable[str], catalog: IntentCatalog) -> set:
    patterns = (catalog.get(name) for name in intent_names)
    return {p.category for p in patterns if p is not None}


# ============================================================================
# LLM FALLBACK
# ============================================================================

REQUIRED_FIELDS = ("queryType", "intents", "suggestedTools", "confidence")


class LLMFallbackClassifier:
    """
    Classifies low-confidence queries with the generative backend.

    Never raises: any generation failure, unparseable reply or missing
    field returns the fuzzy result unchanged.
    """

    def __init__(
        self,
        backend: GenerativeBackend,
        tool_catalog: ToolCatalog = DEFAULT_TOOL_CATALOG,
        intent_catalog: IntentCatalog = DEFAULT_INTENT_CATALOG,
        temperature: float = CLASSIFIER_TEMPERATURE,
    ):
        self.backend = backend
        self.tool_catalog = tool_catalog
        self.intent_catalog = intent_catalog
        self.temperature = temperature

    def build_prompt(self, raw_query: str) -> str:
        return format_prompt(
            CLASSIFIER_PROMPT,
            query=raw_query,
            tool_list=self.tool_catalog.to_summary_lines(),
            intent_names=", ".join(self.intent_catalog.names),
        )

    def classify(self, raw_query: str, fuzzy_result: ClassificationResult) -> ClassificationResult:
        """
        Ask the backend to classify a query.

        Args:
            raw_query: The user's question as typed
            fuzzy_result: Result to return when the backend can't help

        Returns:
            The backend's classification, validated against the catalogs,
            or fuzzy_result unchanged
        """
        messages = [{"role": "user", "content": self.build_prompt(raw_query)}]
        try:
            reply = self.backend.chat(messages, temperature=self.temperature)
        except GenerationError as e:
            logger.warning(f"⚠️  LLM classification failed, keeping fuzzy result: {e}")
            return fuzzy_result

        parsed = parse_json_object(reply)
        if isinstance(parsed, ParseFailed):
            logger.warning(f"⚠️  Unparseable classification reply ({parsed.reason})")
            return fuzzy_result

        data = parsed.value
        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            logger.warning(f"⚠️  Classification reply missing fields: {missing}")
            return fuzzy_result

        try:
            query_type = QueryType(str(data["queryType"]).strip().lower())
            confidence = float(data["confidence"])
        except (TypeError, ValueError):
            logger.warning(f"⚠️  Invalid classification reply: {data}")
            return fuzzy_result

        if not math.isfinite(confidence):
            logger.warning(f"⚠️  Non-finite classification confidence: {confidence}")
            return fuzzy_result

        if not isinstance(data["intents"], list) or not isinstance(data["suggestedTools"], list):
            logger.warning(f"⚠️  Invalid classification reply: {data}")
            return fuzzy_result

        intents = [name for name in data["intents"] if name in self.intent_catalog.names]
        tools = []
        for name in data["suggestedTools"]:
            if isinstance(name, str) and name in self.tool_catalog and name not in tools:
                tools.append(name)

        if query_type is QueryType.MIXED:
            categories = _categories(intents, self.intent_catalog)
            if categories != {IntentCategory.PRIVATE, IntentCategory.PUBLIC}:
                logger.info("🔀 Mixed without both categories, treating as private")
                query_type = QueryType.PRIVATE

        result = ClassificationResult(
            query_type=query_type,
            intents=intents,
            suggested_tools=tools,
            confidence=min(max(confidence, 0.0), 1.0),
            normalized_query=fuzzy_result.normalized_query,
            has_private_indicator=fuzzy_result.has_private_indicator,
            source="llm",
        )
        logger.info(f"🤖 LLM classification: {result.query_type.value} {result.intents}")
        return result


# ============================================================================
# CLASSIFIER
# ============================================================================

class Classifier:
    """Fuzzy matching first, LLM fallback when confidence is low."""

    def __init__(
        self,
        fuzzy: Optional[FuzzyIntentMatcher] = None,
        fallback: Optional[LLMFallbackClassifier] = None,
        thresholds: Optional[MatchThresholds] = None,
    ):
        self.fuzzy = fuzzy or FuzzyIntentMatcher()
        self.fallback = fallback
        self.thresholds = thresholds or self.fuzzy.thresholds

    def classify(self, query: Union[Query, str]) -> ClassificationResult:
        """
        Classify a query.

        Args:
            query: A Query built by build_query, or raw text

        Returns:
            ClassificationResult

        Example:
            >>> Classifier().classify("What is my GPA?").query_type
            <QueryType.PRIVATE: 'private'>
        """
        if isinstance(query, str):
            query = build_query(query)

        result = from_fuzzy(self.fuzzy.match(query.normalized))
        logger.info(
            f"🎯 Fuzzy classification: {result.query_type.value} {result.intents} "
            f"(confidence: {result.confidence:.2f})"
        )

        if result.confidence >= self.thresholds.fast_path or self.fallback is None:
            return result

        logger.info("🤔 Low fuzzy confidence, consulting LLM classifier")
        return self.fallback.classify(query.raw, result)
