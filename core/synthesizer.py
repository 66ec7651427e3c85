"""
Response Synthesis

Turns tool results and public context into the final answer:
- Buffered: one backend call returns the complete text
- Streaming: backend fragments are forwarded in arrival order

If generation fails (error, timeout, or blank output) a deterministic
per-tool formatter produces the answer instead, so a response exists
whenever any data was found.
"""

import json
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from ai.llm_service import CancellationToken, GenerationError, GenerativeBackend, Message
from config import (
    DATA_SECTION,
    FORMAT_INSTRUCTIONS,
    NO_DATA_SECTION,
    SYNTHESIS_PROMPT,
    SYSTEM_PROMPT,
    TABLE_FORMAT_INSTRUCTIONS,
    TABLE_REQUEST_KEYWORDS,
    TEMPERATURE,
    format_prompt,
)
from tools.executor import ToolResult
from .normalizer import normalize_query

logger = logging.getLogger(__name__)


# ============================================================================
# FALLBACK FORMATTING
# ============================================================================

def _value(value: Any, default: str = "N/A") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _course_label(record: Dict) -> str:
    course = record.get("course") or {}
    code = course.get("courseCode") or record.get("courseCode")
    return f"{_value(code)}: {_value(course.get('courseName'))}"


def format_grades(data: Any) -> str:
    if not data:
        return "No grades found for the specified criteria."
    lines = ["Student Grades:"]
    for g in data:
        lines.append(
            f"- {_course_label(g)}\n"
            f"  Semester: {_value(g.get('semester'))}\n"
            f"  Mid-Sem: {_value(g.get('midSemMarks'))} ({_value(g.get('midSemGrade'))})\n"
            f"  Final: {_value(g.get('finalMarks'))} ({_value(g.get('finalGrade'))})\n"
            f"  Total: {_value(g.get('totalMarks'))}\n"
            f"  GPA: {_value(g.get('gpa'))}\n"
            f"  Status: {_value(g.get('status'))}"
        )
    return "\n\n".join(lines)


def format_payments(data: Any) -> str:
    if not data:
        return "No payment records found."
    lines = ["Payment Information:"]
    for p in data:
        amount = p.get("amount")
        amount_text = f"{amount:,}" if isinstance(amount, (int, float)) else _value(amount)
        lines.append(
            f"- {p.get('description') or 'Payment'}\n"
            f"  Semester: {_value(p.get('semester'))}\n"
            f"  Amount: {amount_text}\n"
            f"  Status: {_value(p.get('status'))}\n"
            f"  Due Date: {_value(p.get('dueDate'))}\n"
            f"  Paid Date: {_value(p.get('paidDate'), 'Pending')}"
        )
    return "\n\n".join(lines)


def format_enrolled_courses(data: Any) -> str:
    if not data:
        return "No enrolled courses found."
    lines = ["Enrolled Courses:"]
    for e in data:
        course = e.get("course") or {}
        lines.append(
            f"- {_course_label(e)}\n"
            f"  Credits: {_value(course.get('credits'))}\n"
            f"  Semester: {_value(e.get('semester'))}\n"
            f"  Status: {_value(e.get('status'))}"
        )
    return "\n\n".join(lines)


def format_attendance(data: Any) -> str:
    """Attendance aggregated per course."""
    if not data:
        return "No attendance records found."
    by_course: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
    for record in data:
        course = record.get("course") or {}
        code = course.get("courseCode") or record.get("courseCode") or "Unknown"
        stats = by_course.setdefault(code, {"present": 0, "absent": 0, "total": 0})
        status = str(record.get("status", "")).lower()
        if status in ("present", "absent"):
            stats[status] += 1
        stats["total"] += 1
    lines = ["Attendance Records:"]
    for code, stats in by_course.items():
        lines.append(
            f"- {code}: {stats['present']} present, {stats['absent']} absent "
            f"(Total: {stats['total']} records)"
        )
    return "\n".join(lines)


def format_profile(data: Any) -> str:
    if not data:
        return "No profile information found."
    return (
        "Student Profile:\n"
        f"- Name: {_value(data.get('name'))}\n"
        f"- Student ID: {_value(data.get('studentId'))}\n"
        f"- Program: {_value(data.get('program'))}\n"
        f"- GPA: {_value(data.get('gpa'))}\n"
        f"- CGPA: {_value(data.get('cgpa'))}\n"
        f"- Status: {_value(data.get('status'))}"
    )


def format_summary(data: Any) -> str:
    if not data:
        return "No academic summary found."
    if not isinstance(data, dict):
        return _as_json(data)
    sections = ["Academic Summary:"]
    if "grades" in data:
        sections.append(format_grades(data["grades"]))
    if "enrollments" in data:
        sections.append(format_enrolled_courses(data["enrollments"]))
    if "payments" in data:
        sections.append(format_payments(data["payments"]))
    rest = {k: v for k, v in data.items() if k not in ("grades", "enrollments", "payments")}
    if rest:
        sections.append(_as_json(rest))
    return "\n\n".join(sections)


def _as_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


TOOL_FORMATTERS: Dict[str, Callable[[Any], str]] = {
    "get_student_grades": format_grades,
    "get_student_payments": format_payments,
    "get_enrolled_courses": format_enrolled_courses,
    "get_attendance": format_attendance,
    "get_academic_summary": format_summary,
    "get_student_profile": format_profile,
}


def format_tool_result(tool_name: str, payload: Any) -> str:
    """Deterministic text for one successful tool payload."""
    formatter = TOOL_FORMATTERS.get(tool_name, _as_json)
    try:
        return formatter(payload)
    except (AttributeError, TypeError, ValueError):
        # Payload shape the formatter doesn't know
        return _as_json(payload)


def _format_events(title: str, events: List[Dict]) -> str:
    lines = [f"{title}:"]
    for event in events:
        dates = _value(event.get("startDate"))
        if event.get("endDate"):
            dates += f" to {event['endDate']}"
        lines.append(f"- {_value(event.get('event') or event.get('name'))}: {dates}")
    return "\n".join(lines)


def _format_rules(data: Dict) -> str:
    items = data.get("rules") or data.get("info") or data.get("locations") or []
    title = data.get("description", "Information")
    return "\n".join([f"{title}:"] + [f"- {item}" for item in items])


def format_public_context(context: Dict[str, Any]) -> str:
    """Deterministic text for directly fetched public data."""
    sections = []
    for key, data in context.items():
        try:
            if key == "openElectives":
                lines = ["Open Electives:"] + [
                    f"- {_value(c.get('courseCode'))}: {_value(c.get('courseName'))} "
                    f"({_value(c.get('credits'))} credits)"
                    for c in data
                ]
                sections.append("\n".join(lines))
            elif key == "midsemDates":
                sections.append(_format_events("Mid-Semester Examinations", data))
            elif key == "calendar":
                sections.append(_format_events("Academic Calendar", data))
            elif key == "timetable":
                lines = ["Course Timetable:"] + [
                    f"- {_value(s.get('courseCode'))}: {_value(s.get('day'))} "
                    f"{_value(s.get('startTime'))}-{_value(s.get('endTime'))}, "
                    f"Room {_value(s.get('room'))}"
                    for s in data
                ]
                sections.append("\n".join(lines))
            elif key == "announcements":
                lines = ["Where to find announcements:"] + [
                    f"- {location}" for location in data.get("locations", [])
                ]
                sections.append("\n".join(lines))
            elif isinstance(data, dict):
                sections.append(_format_rules(data))
            else:
                sections.append(_as_json(data))
        except (AttributeError, TypeError, ValueError):
            sections.append(_as_json(data))
    return "\n\n".join(sections)


def format_fallback(
    tool_results: Sequence[ToolResult],
    public_context: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Deterministic answer from all available data.

    Returns:
        Formatted text; empty only when no tool succeeded and there is
        no public context
    """
    sections = [
        format_tool_result(r.tool_name, r.payload)
        for r in tool_results
        if r.success
    ]
    if public_context:
        sections.append(format_public_context(public_context))
    return "\n\n".join(s for s in sections if s)


# ============================================================================
# SYNTHESIZER
# ============================================================================

@dataclass
class SynthesisOutcome:
    """
    Final answer of one synthesis.

    Attributes:
        text: Answer text (generated, fallback, or both when a stream
            failed part way)
        used_fallback: Whether the deterministic formatter contributed
        error: Generation error message, if any
        cancelled: Whether the consumer cancelled the stream
    """
    text: str = ""
    used_fallback: bool = False
    error: Optional[str] = None
    cancelled: bool = False


class SynthesisStream:
    """Iterable of answer fragments; outcome is filled in as they flow."""

    def __init__(self, fragments: Iterator[str], outcome: SynthesisOutcome):
        self._fragments = fragments
        self.outcome = outcome

    def __iter__(self) -> Iterator[str]:
        return self._fragments

    def close(self) -> None:
        self._fragments.close()


class ResponseSynthesizer:
    """Builds the synthesis prompt and produces the answer."""

    def __init__(
        self,
        backend: GenerativeBackend,
        system_prompt: str = SYSTEM_PROMPT,
        temperature: float = TEMPERATURE,
    ):
        self.backend = backend
        self.system_prompt = system_prompt
        self.temperature = temperature

    @staticmethod
    def collect_data(
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Successful payloads keyed by tool name, plus public context."""
        data: Dict[str, Any] = dict(public_context or {})
        for result in tool_results:
            if result.success:
                data[result.tool_name] = result.payload
        return data

    def build_prompt(
        self,
        query: str,
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        data = self.collect_data(tool_results, public_context)
        if data:
            context_section = format_prompt(
                DATA_SECTION, data=json.dumps(data, indent=2, default=str)
            )
        else:
            context_section = NO_DATA_SECTION

        words = set(normalize_query(query).split())
        wants_table = any(keyword in words for keyword in TABLE_REQUEST_KEYWORDS)

        return format_prompt(
            SYNTHESIS_PROMPT,
            query=query,
            context_section=context_section,
            format_instructions=TABLE_FORMAT_INSTRUCTIONS if wants_table else FORMAT_INSTRUCTIONS,
        )

    def build_messages(
        self,
        query: str,
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]] = None,
    ) -> List[Message]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.build_prompt(query, tool_results, public_context)},
        ]

    def synthesize(
        self,
        query: str,
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]] = None,
    ) -> SynthesisOutcome:
        """
        Generate the complete answer in one backend call.

        Falls back to deterministic formatting on GenerationError,
        GenerationTimeout, or blank output.
        """
        messages = self.build_messages(query, tool_results, public_context)
        error = None
        try:
            text = self.backend.chat(messages, temperature=self.temperature)
        except GenerationError as e:
            logger.warning(f"⚠️  Synthesis failed, using fallback formatter: {e}")
            text, error = "", str(e)

        if text and text.strip():
            return SynthesisOutcome(text=text)

        if error is None:
            logger.warning("⚠️  Synthesis returned blank output, using fallback formatter")
            error = "empty generation"
        return SynthesisOutcome(
            text=format_fallback(tool_results, public_context),
            used_fallback=True,
            error=error,
        )

    def stream(
        self,
        query: str,
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SynthesisStream:
        """
        Generate the answer as a stream of fragments.

        Fragments are forwarded in arrival order. When the stream fails
        before any visible text the fallback text is yielded instead;
        when it fails after partial output the fallback is appended.
        Cancellation stops the stream without fallback.
        """
        outcome = SynthesisOutcome()
        cancel_token = cancel_token or CancellationToken()
        fragments = self._stream_fragments(
            outcome, query, tool_results, public_context, cancel_token
        )
        return SynthesisStream(fragments, outcome)

    def _stream_fragments(
        self,
        outcome: SynthesisOutcome,
        query: str,
        tool_results: Sequence[ToolResult],
        public_context: Optional[Dict[str, Any]],
        cancel_token: CancellationToken,
    ) -> Iterator[str]:
        messages = self.build_messages(query, tool_results, public_context)
        produced: List[str] = []
        source = None

        try:
            source = self.backend.chat(
                messages,
                stream=True,
                cancel_token=cancel_token,
                temperature=self.temperature,
            )
            for fragment in source:
                if cancel_token.cancelled:
                    break
                if not fragment:
                    continue
                produced.append(fragment)
                outcome.text += fragment
                yield fragment
        except GenerationError as e:
            logger.warning(f"⚠️  Streaming synthesis failed: {e}")
            outcome.error = str(e)
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()

        if cancel_token.cancelled:
            logger.info("🛑 Synthesis stream cancelled")
            outcome.cancelled = True
            return

        partial = "".join(produced)
        if outcome.error is None and partial.strip():
            return

        if outcome.error is None:
            outcome.error = "empty generation"
        fallback = format_fallback(tool_results, public_context)
        if not fallback:
            return

        outcome.used_fallback = True
        if partial.strip():
            fallback = "\n\n" + fallback
        outcome.text += fallback
        yield fallback
