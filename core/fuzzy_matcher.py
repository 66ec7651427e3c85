"""
Fuzzy Intent Matching

Scores normalized query text against the intent catalog using keyword
containment, known misspellings, prefixes and edit-distance similarity.
This is the fast path of classification: no LLM call is needed when the
aggregate confidence is high enough.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from config import (
    IntentCatalog,
    IntentCategory,
    IntentPattern,
    MatchThresholds,
    DEFAULT_INTENT_CATALOG,
)
from utils.similarity import similarity

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class IntentMatch:
    """One accepted intent with its best word score."""
    name: str
    score: float
    category: IntentCategory
    tool: Optional[str] = None


@dataclass
class FuzzyMatchResult:
    """
    Output of fuzzy matching for one query.

    Attributes:
        normalized_query: Text that was matched
        matches: Accepted intents, in catalog order
        has_private_indicator: Whether a first-person word was found
        has_data_term: Whether a record-related term was found
        confidence: Mean score of accepted intents (fixed low value if none)
    """
    normalized_query: str
    matches: List[IntentMatch] = field(default_factory=list)
    has_private_indicator: bool = False
    has_data_term: bool = False
    confidence: float = 0.0

    @property
    def intent_names(self) -> List[str]:
        return [m.name for m in self.matches]

    @property
    def suggested_tools(self) -> List[str]:
        tools = []
        for match in self.matches:
            if match.tool and match.tool not in tools:
                tools.append(match.tool)
        return tools

    def has_category(self, category: IntentCategory) -> bool:
        return any(m.category == category for m in self.matches)


# ============================================================================
# MATCHER
# ============================================================================

class FuzzyIntentMatcher:
    """
    Typo-tolerant keyword matcher over an immutable intent catalog.

    For each intent and each query word the best of these scores is kept:
    - exact score if the word contains a keyword or is contained by one
    - fuzzy variant score if the word is similar to a known misspelling
    - prefix score if a keyword starts with the word
    - the raw similarity to a keyword, when above the typo threshold
    """

    def __init__(
        self,
        catalog: IntentCatalog = DEFAULT_INTENT_CATALOG,
        thresholds: Optional[MatchThresholds] = None,
    ):
        self.catalog = catalog
        self.thresholds = thresholds or MatchThresholds()

    def match(self, normalized_query: str) -> FuzzyMatchResult:
        """
        Match normalized text against every intent in the catalog.

        Args:
            normalized_query: Output of normalize_query

        Returns:
            FuzzyMatchResult with accepted intents and aggregate confidence
        """
        words = normalized_query.split() if normalized_query else []
        scoring_words = [w for w in words if w not in self.catalog.stopwords]

        matches = []
        for pattern in self.catalog.intents:
            score = max((self.score_word(word, pattern) for word in scoring_words), default=0.0)
            if score > self.thresholds.accept:
                matches.append(IntentMatch(
                    name=pattern.name,
                    score=score,
                    category=pattern.category,
                    tool=pattern.tool,
                ))

        if matches:
            confidence = sum(m.score for m in matches) / len(matches)
        else:
            confidence = self.thresholds.no_match_confidence

        result = FuzzyMatchResult(
            normalized_query=normalized_query,
            matches=matches,
            has_private_indicator=self.has_private_indicator(words),
            has_data_term=self.has_data_term(normalized_query),
            confidence=min(max(confidence, 0.0), 1.0),
        )

        logger.debug(
            f"🔎 Fuzzy match '{normalized_query}': {result.intent_names} "
            f"(confidence: {result.confidence:.2f})"
        )
        return result

    def score_word(self, word: str, pattern: IntentPattern) -> float:
        """Best score of a single word against one intent pattern."""
        t = self.thresholds
        best = 0.0

        for keyword in pattern.keywords:
            if keyword in word or (
                len(word) >= self.catalog.min_partial_length and word in keyword
            ):
                return t.exact_score

        if any(similarity(word, variant) > t.typo_similarity for variant in pattern.fuzzy_variants):
            best = max(best, t.fuzzy_variant_score)

        for keyword in pattern.keywords:
            # Abbreviations like "att" -> "attendance"
            if keyword.startswith(word) and len(word) >= self.catalog.min_partial_length:
                best = max(best, t.prefix_score)
            score = similarity(word, keyword)
            if score > t.typo_similarity:
                best = max(best, score)

        return best

    def has_private_indicator(self, words: List[str]) -> bool:
        """Check words for first-person indicators (exact or near-exact)."""
        indicators = self.catalog.private_indicators
        threshold = self.thresholds.private_indicator_similarity
        return any(
            word in indicators
            or any(similarity(word, indicator) > threshold for indicator in indicators)
            for word in words
        )

    def has_data_term(self, normalized_query: str) -> bool:
        return any(term in normalized_query for term in self.catalog.data_terms)

    def suggest_tools(self, normalized_query: str) -> Tuple[str, ...]:
        """Intent → tool mapping applied to the matched intents."""
        return tuple(self.match(normalized_query).suggested_tools)
