"""
Follow-up Recommendations

When a query found no usable data, suggest questions the assistant can
answer. Suggestions come from a static keyword table, filtered by query
type, deduplicated and capped.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Tuple

from config import MAX_RECOMMENDATIONS
from .router import QueryType

PUBLIC_TYPES = frozenset({QueryType.PUBLIC, QueryType.MIXED})
PRIVATE_TYPES = frozenset({QueryType.PRIVATE, QueryType.MIXED})


@dataclass(frozen=True)
class RecommendationRule:
    """Suggestions offered when any keyword appears in the query."""
    keywords: Tuple[str, ...]
    query_types: FrozenSet[QueryType]
    suggestions: Tuple[str, ...]


DEFAULT_RULES = (
    # Public
    RecommendationRule(
        keywords=("midsem", "exam"),
        query_types=PUBLIC_TYPES,
        suggestions=(
            "What are the end-semester examination dates?",
            "When does the semester start?",
            "What is the academic calendar for this semester?",
        ),
    ),
    RecommendationRule(
        keywords=("elective", "course"),
        query_types=PUBLIC_TYPES,
        suggestions=(
            "What are the open electives available?",
            "Show me all courses in the catalog",
            "What courses are available in CS department?",
        ),
    ),
    RecommendationRule(
        keywords=("timetable", "schedule"),
        query_types=PUBLIC_TYPES,
        suggestions=(
            "What is the course timetable?",
            "Show me the academic calendar",
        ),
    ),
    RecommendationRule(
        keywords=("gpa", "grade"),
        query_types=PUBLIC_TYPES,
        suggestions=(
            "How is GPA calculated?",
            "Explain the credit system",
        ),
    ),
    RecommendationRule(
        keywords=("calendar", "date"),
        query_types=PUBLIC_TYPES,
        suggestions=(
            "What is the academic calendar?",
            "When do midsemester exams start?",
            "What are the semester dates?",
        ),
    ),
    # Private
    RecommendationRule(
        keywords=("grade", "mark"),
        query_types=PRIVATE_TYPES,
        suggestions=(
            "What are my grades?",
            "Show me my academic summary",
            "What is my GPA?",
        ),
    ),
    RecommendationRule(
        keywords=("payment", "fee"),
        query_types=PRIVATE_TYPES,
        suggestions=(
            "What are my payment details?",
            "Show me my fee status",
        ),
    ),
    RecommendationRule(
        keywords=("course", "enroll"),
        query_types=PRIVATE_TYPES,
        suggestions=(
            "What courses am I enrolled in?",
            "Show me my enrolled courses",
        ),
    ),
    RecommendationRule(
        keywords=("attendance",),
        query_types=PRIVATE_TYPES,
        suggestions=(
            "What is my attendance?",
            "Show me my attendance records",
        ),
    ),
)

GENERIC_RECOMMENDATIONS = (
    "What are the open electives this semester?",
    "When do midsemester exams start?",
    "What is the academic calendar?",
    "Explain the credit system",
    "How is GPA calculated?",
)


class RecommendationGenerator:
    """Keyword-triggered follow-up questions."""

    def __init__(
        self,
        rules: Tuple[RecommendationRule, ...] = DEFAULT_RULES,
        generic: Tuple[str, ...] = GENERIC_RECOMMENDATIONS,
        limit: int = MAX_RECOMMENDATIONS,
    ):
        self.rules = rules
        self.generic = generic
        self.limit = limit

    def generate(self, query: str, query_type: QueryType) -> List[str]:
        """
        Suggest up to `limit` follow-up questions.

        Args:
            query: The user's question
            query_type: Its classification

        Returns:
            Matching suggestions in rule order, or the generic list
        """
        lowered = (query or "").lower()
        suggestions: List[str] = []

        for rule in self.rules:
            if query_type not in rule.query_types:
                continue
            if not any(keyword in lowered for keyword in rule.keywords):
                continue
            for suggestion in rule.suggestions:
                if suggestion not in suggestions:
                    suggestions.append(suggestion)

        if not suggestions:
            suggestions = list(self.generic)

        return suggestions[:self.limit]
