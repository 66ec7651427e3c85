"""
Query Normalization and Entity Extraction

Turns raw user text into a Query record: a normalized form used for
matching, plus the few entities (semester, course code, department)
that tools and public-data lookups accept as parameters.
"""

import re
from dataclasses import dataclass
from typing import Optional

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

_SEMESTER_PATTERNS = (
    re.compile(
        r"(first|second|third|fourth|fifth|sixth|seventh|eighth)\s+semester\s+(\d{4}[-/]\d{4})",
        re.IGNORECASE,
    ),
    re.compile(r"semester\s+(\d{4}[-/]\d{4})", re.IGNORECASE),
    re.compile(r"(\d{4}[-/]\d{4})"),
)

_COURSE_CODE_PATTERN = re.compile(r"\b([A-Z]{2,4}\s*F?\d{3})\b", re.IGNORECASE)

DEPARTMENTS = ("cs", "math", "phy", "chem", "bio", "gs", "ee", "me")

# Department codes that are also ordinary English words
_AMBIGUOUS_DEPARTMENTS = {"me"}
_DEPARTMENT_MARKERS = {"department", "dept"}


@dataclass(frozen=True)
class Query:
    """
    One incoming question.

    Attributes:
        raw: Text exactly as the user typed it
        normalized: Lowercased, punctuation-free, whitespace-collapsed text
        semester: Semester string if one was mentioned
        course_code: Canonical course code (e.g., "CS F213") if mentioned
        department: Upper-cased department code if mentioned
    """
    raw: str
    normalized: str
    semester: Optional[str] = None
    course_code: Optional[str] = None
    department: Optional[str] = None

    @property
    def words(self):
        return self.normalized.split() if self.normalized else []


def normalize_query(text: str) -> str:
    """
    Lowercase, replace non-word characters with spaces, collapse whitespace.

    Example:
        >>> normalize_query("  What's my GPA?? ")
        'what s my gpa'
    """
    if not text:
        return ""
    lowered = text.lower()
    cleaned = _NON_WORD.sub(" ", lowered)
    return _WHITESPACE.sub(" ", cleaned).strip()


def extract_semester(text: str) -> Optional[str]:
    """Return the most specific semester mention, upper-cased."""
    for pattern in _SEMESTER_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return _WHITESPACE.sub(" ", match.group(0)).upper()
    return None


def extract_course_code(text: str) -> Optional[str]:
    """Return a course code such as "CS F213", or None."""
    match = _COURSE_CODE_PATTERN.search(text or "")
    if not match:
        return None
    return _WHITESPACE.sub(" ", match.group(1)).upper()


def extract_department(text: str) -> Optional[str]:
    """Return an upper-cased department code mentioned as a whole word."""
    words = set(normalize_query(text).split())
    for dept in DEPARTMENTS:
        if dept not in words:
            continue
        if dept in _AMBIGUOUS_DEPARTMENTS and not words & _DEPARTMENT_MARKERS:
            continue
        return dept.upper()
    return None


def build_query(text: str) -> Query:
    """Normalize text and extract its entities."""
    return Query(
        raw=text or "",
        normalized=normalize_query(text),
        semester=extract_semester(text),
        course_code=extract_course_code(text),
        department=extract_department(text),
    )
