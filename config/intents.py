"""
Intent catalog and matching thresholds.

The catalog is an immutable configuration value: it is built once at
startup and handed to the FuzzyIntentMatcher and Classifier. Nothing in
the pipeline mutates it, so one instance is shared by every request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from .settings import (
    INTENT_ACCEPT_THRESHOLD,
    FAST_PATH_CONFIDENCE,
    TYPO_SIMILARITY_THRESHOLD,
    PREFIX_MATCH_SCORE,
    PRIVATE_INDICATOR_SIMILARITY,
    FUZZY_VARIANT_SCORE,
    NO_MATCH_CONFIDENCE,
)


class IntentCategory(Enum):
    """Whether an intent needs per-user data or shared data."""

    PRIVATE = "private"
    PUBLIC = "public"


@dataclass(frozen=True)
class IntentPattern:
    """
    Matching patterns for one named intent.

    Attributes:
        name: Intent name (e.g., "grades")
        keywords: Canonical words; containment gives a full score
        fuzzy_variants: Known abbreviations and misspellings
        category: PRIVATE or PUBLIC
        tool: Tool that serves this intent, if any
    """
    name: str
    keywords: Tuple[str, ...]
    fuzzy_variants: Tuple[str, ...]
    category: IntentCategory
    tool: Optional[str] = None


@dataclass(frozen=True)
class MatchThresholds:
    """Named, overridable constants used by the fuzzy matcher."""

    accept: float = INTENT_ACCEPT_THRESHOLD
    fast_path: float = FAST_PATH_CONFIDENCE
    typo_similarity: float = TYPO_SIMILARITY_THRESHOLD
    prefix_score: float = PREFIX_MATCH_SCORE
    private_indicator_similarity: float = PRIVATE_INDICATOR_SIMILARITY
    fuzzy_variant_score: float = FUZZY_VARIANT_SCORE
    no_match_confidence: float = NO_MATCH_CONFIDENCE
    exact_score: float = 1.0


@dataclass(frozen=True)
class IntentCatalog:
    """
    Immutable set of intent patterns plus the word lists used around them.

    Attributes:
        intents: Intent patterns, in priority order
        private_indicators: First-person words hinting at personal data
        data_terms: Substrings that mark a query as asking about records
        stopwords: Words skipped when scoring intents
        min_partial_length: Shortest word allowed to match as a fragment
            of a longer keyword
    """
    intents: Tuple[IntentPattern, ...]
    private_indicators: Tuple[str, ...]
    data_terms: Tuple[str, ...]
    stopwords: FrozenSet[str] = field(default_factory=frozenset)
    min_partial_length: int = 3

    def get(self, name: str) -> Optional[IntentPattern]:
        return next((p for p in self.intents if p.name == name), None)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.intents)

    def tool_map(self) -> Dict[str, str]:
        """Intent name → tool name for intents served by a tool."""
        return {p.name: p.tool for p in self.intents if p.tool}


# ============================================================================
# DEFAULT CATALOG
# ============================================================================

DEFAULT_INTENTS = (
    # Private intents
    IntentPattern(
        name="grades",
        keywords=("grade", "gpa", "cgpa", "mark", "result", "score", "transcript"),
        fuzzy_variants=("grde", "grds", "grd", "mrks", "mrk", "scre", "gps", "cgp"),
        category=IntentCategory.PRIVATE,
        tool="get_student_grades",
    ),
    IntentPattern(
        name="payment",
        keywords=("payment", "fee", "fees", "due", "owe", "outstanding", "balance", "pay", "tuition"),
        fuzzy_variants=("pymnt", "pymt", "paymnt", "pament", "feee", "fes", "dew", "oww"),
        category=IntentCategory.PRIVATE,
        tool="get_student_payments",
    ),
    IntentPattern(
        name="attendance",
        keywords=("attendance", "present", "absent", "miss", "class", "attend"),
        fuzzy_variants=("att", "attnd", "attndc", "attendace", "presnt", "absnt", "atendance"),
        category=IntentCategory.PRIVATE,
        tool="get_attendance",
    ),
    IntentPattern(
        name="enrollment",
        keywords=("enroll", "enrolled", "course", "register", "current course", "my course"),
        fuzzy_variants=("enrol", "enrll", "corse", "cors", "registr", "registred"),
        category=IntentCategory.PRIVATE,
        tool="get_enrolled_courses",
    ),
    IntentPattern(
        name="profile",
        keywords=("profile", "info", "information", "standing", "status", "details"),
        fuzzy_variants=("profil", "prfl", "inf", "statuz", "detls"),
        category=IntentCategory.PRIVATE,
        tool="get_student_profile",
    ),
    IntentPattern(
        name="summary",
        keywords=("summary", "overall", "dashboard", "academic summary", "overview"),
        fuzzy_variants=("summry", "sumary", "overal", "dashbrd", "ovrview"),
        category=IntentCategory.PRIVATE,
        tool="get_academic_summary",
    ),
    # Public intents
    IntentPattern(
        name="calendar",
        keywords=("midsem", "endsem", "exam", "calendar", "schedule", "date", "when"),
        fuzzy_variants=("midsm", "endsm", "exm", "calender", "schedl", "schdule"),
        category=IntentCategory.PUBLIC,
    ),
    IntentPattern(
        name="electives",
        keywords=("elective", "open elective", "optional", "choose", "selection"),
        fuzzy_variants=("electve", "eletive", "optn", "optionl"),
        category=IntentCategory.PUBLIC,
    ),
    IntentPattern(
        name="timetable",
        keywords=("timetable", "time table", "slot", "timing", "lecture"),
        fuzzy_variants=("timetbl", "timtable", "lect", "lectr"),
        category=IntentCategory.PUBLIC,
    ),
    IntentPattern(
        name="credits",
        keywords=("credit", "credit system", "unit", "credit hour"),
        fuzzy_variants=("credt", "crdt", "crdit"),
        category=IntentCategory.PUBLIC,
    ),
)

PRIVATE_INDICATORS = ("my", "i", "me", "mine", "im", "i'm", "ive", "i've")

DATA_TERMS = (
    "grade", "gpa", "cgpa", "payment", "fee", "attendance", "course",
    "enroll", "schedule", "mark", "result", "transcript", "balance",
    "grde", "grd", "pymnt", "att", "corse", "mrk", "fes",
)

# Function words that would otherwise match keyword fragments
# ("is" in "register", "all" in "overall", "our" in "credit hour").
STOPWORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "am", "be", "been",
    "what", "which", "who", "whom", "how", "why", "where",
    "do", "does", "did", "to", "of", "in", "on", "at", "for", "and", "or",
    "but", "with", "about", "from", "by", "it", "its", "this", "that",
    "these", "those", "show", "tell", "give", "can", "could", "would",
    "please", "there", "any", "all", "our", "out", "you", "your", "much",
    "many", "have", "has", "had", "get", "let", "know", "s", "m", "ve",
})

DEFAULT_INTENT_CATALOG = IntentCatalog(
    intents=DEFAULT_INTENTS,
    private_indicators=PRIVATE_INDICATORS,
    data_terms=DATA_TERMS,
    stopwords=STOPWORDS,
)
