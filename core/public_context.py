"""
Public Context Collection

For public and mixed queries, shared data (electives, exam dates,
timetables, GPA and credit rules, announcement locations, the academic
calendar) is read straight from the DataSource public accessors rather
than through tool calls. Each rule fires on matched intents or on
keywords in the normalized query; a failing accessor is logged and
skipped.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Tuple

from clients.data_source import DataSource
from .normalizer import Query

logger = logging.getLogger(__name__)


def has_data(value: Any) -> bool:
    """True for non-empty collections and non-blank scalars."""
    if value is None:
        return False
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    if isinstance(value, str):
        return bool(value.strip())
    return True


@dataclass(frozen=True)
class PublicContextRule:
    """
    When and how to fetch one piece of public data.

    Attributes:
        key: Context key the data is stored under
        fetch: Reads the data from a DataSource for a query
        intents: Matched intents that trigger the rule
        keyword_groups: Each group triggers when all its words appear
    """
    key: str
    fetch: Callable[[DataSource, Query], Any]
    intents: Tuple[str, ...] = ()
    keyword_groups: Tuple[Tuple[str, ...], ...] = ()

    def applies(self, normalized_query: str, intents: Iterable[str]) -> bool:
        if any(intent in self.intents for intent in intents):
            return True
        return any(
            all(keyword in normalized_query for keyword in group)
            for group in self.keyword_groups
        )


DEFAULT_PUBLIC_RULES = (
    PublicContextRule(
        key="openElectives",
        fetch=lambda ds, q: ds.get_open_electives(q.semester),
        intents=("electives",),
        keyword_groups=(("open elective",),),
    ),
    PublicContextRule(
        key="midsemDates",
        fetch=lambda ds, q: ds.get_midsem_dates(q.semester),
        keyword_groups=(("midsem",),),
    ),
    PublicContextRule(
        key="timetable",
        fetch=lambda ds, q: ds.get_course_timetable(q.course_code, q.department),
        intents=("timetable",),
        keyword_groups=(("timetable",), ("schedule",)),
    ),
    PublicContextRule(
        key="gpaRules",
        fetch=lambda ds, q: ds.get_gpa_rules(),
        keyword_groups=(("gpa", "calculat"),),
    ),
    PublicContextRule(
        key="creditSystem",
        fetch=lambda ds, q: ds.get_credit_system_info(),
        intents=("credits",),
        keyword_groups=(("credit system",),),
    ),
    PublicContextRule(
        key="announcements",
        fetch=lambda ds, q: ds.get_announcement_locations(),
        keyword_groups=(("announcement",),),
    ),
    PublicContextRule(
        key="calendar",
        fetch=lambda ds, q: ds.get_academic_calendar(q.semester),
        intents=("calendar",),
        keyword_groups=(("calendar",),),
    ),
)


class PublicContextCollector:
    """Gathers public data for a query from the DataSource."""

    def __init__(self, data_source: DataSource, rules: Tuple[PublicContextRule, ...] = DEFAULT_PUBLIC_RULES):
        self.data_source = data_source
        self.rules = rules

    def collect(self, query: Query, intents: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Run every applicable rule.

        Args:
            query: The normalized query with its entities
            intents: Intent names matched by classification

        Returns:
            Context key → data, only for rules that produced data
        """
        intents = list(intents)
        context: Dict[str, Any] = {}

        for rule in self.rules:
            if not rule.applies(query.normalized, intents):
                continue
            try:
                value = rule.fetch(self.data_source, query)
            except Exception as e:
                logger.error(f"❌ Public data '{rule.key}' failed: {e}")
                continue
            if has_data(value):
                context[rule.key] = value

        if context:
            logger.info(f"📚 Public context: {list(context)}")
        return context
