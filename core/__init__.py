"""
Core Query Pipeline Module

This module contains the query-understanding and orchestration logic:
- Normalization and entity extraction
- Fuzzy intent matching and query classification (router)
- LLM fallback classification and tool selection
- Public context collection, response synthesis, recommendations
- The orchestrator that drives one query end to end

Only AuthenticationRequired escapes the pipeline; every other failure
degrades to a fallback inside the component that hit it.
"""

from .normalizer import (
    Query,
    normalize_query,
    extract_semester,
    extract_course_code,
    extract_department,
    build_query,
)

from .parsing import (
    ParseOk,
    ParseFailed,
    parse_json_object,
    parse_json_array,
)

from .fuzzy_matcher import (
    IntentMatch,
    FuzzyMatchResult,
    FuzzyIntentMatcher,
)

from .router import (
    QueryType,
    ClassificationResult,
    determine_query_type,
    LLMFallbackClassifier,
    Classifier,
)

from .tool_selector import ToolSelector

from .public_context import (
    PublicContextRule,
    PublicContextCollector,
    has_data,
)

from .synthesizer import (
    ResponseSynthesizer,
    SynthesisOutcome,
    SynthesisStream,
    format_fallback,
    format_tool_result,
)

from .recommendations import RecommendationGenerator

from .orchestrator import (
    ContextStatus,
    OrchestrationContext,
    QueryOrchestrator,
    QueryStream,
)

from .errors import (
    QueryError,
    AuthenticationRequired,
)

__all__ = [
    # Normalizer
    "Query",
    "normalize_query",
    "extract_semester",
    "extract_course_code",
    "extract_department",
    "build_query",

    # Parsing
    "ParseOk",
    "ParseFailed",
    "parse_json_object",
    "parse_json_array",

    # Matching and classification
    "IntentMatch",
    "FuzzyMatchResult",
    "FuzzyIntentMatcher",
    "QueryType",
    "ClassificationResult",
    "determine_query_type",
    "LLMFallbackClassifier",
    "Classifier",

    # Tools
    "ToolSelector",

    # Context, synthesis, recommendations
    "PublicContextRule",
    "PublicContextCollector",
    "has_data",
    "ResponseSynthesizer",
    "SynthesisOutcome",
    "SynthesisStream",
    "format_fallback",
    "format_tool_result",
    "RecommendationGenerator",

    # Orchestrator
    "ContextStatus",
    "OrchestrationContext",
    "QueryOrchestrator",
    "QueryStream",

    # Errors
    "QueryError",
    "AuthenticationRequired",
]
