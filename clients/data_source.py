"""
DataSource Client

Narrow interface to the university records store. Persistence lives
outside this project; the pipeline only needs:
- one operation per tool name, taking (actor_id, parameters)
- a course-code → course-id lookup
- direct accessors for public data (electives, calendar, timetable,
  GPA/credit rule text, announcement locations)

InMemoryDataSource implements the interface over plain dictionaries and
can be loaded from a JSON file for development and tests.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class DataSourceError(Exception):
    """Base class for DataSource failures."""


class NotFound(DataSourceError):
    """The requested record does not exist."""


class Forbidden(DataSourceError):
    """The actor may not read the requested record."""


# ============================================================================
# INTERFACE
# ============================================================================

class DataSource(Protocol):
    """Capability consumed by the ToolExecutor and public-context lookups."""

    # Private data, one method per tool name
    def get_student_grades(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...
    def get_student_payments(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...
    def get_enrolled_courses(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...
    def get_attendance(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...
    def get_academic_summary(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...
    def get_student_profile(self, actor_id: str, parameters: Mapping[str, Any]) -> Any: ...

    def resolve_course_id(self, course_code: str) -> Optional[str]: ...

    # Public data
    def get_open_electives(self, semester: Optional[str] = None) -> List[Dict]: ...
    def get_academic_calendar(self, semester: Optional[str] = None) -> List[Dict]: ...
    def get_midsem_dates(self, semester: Optional[str] = None) -> List[Dict]: ...
    def get_course_timetable(
        self, course_code: Optional[str] = None, department: Optional[str] = None
    ) -> List[Dict]: ...
    def get_gpa_rules(self) -> Dict: ...
    def get_credit_system_info(self) -> Dict: ...
    def get_announcement_locations(self) -> Dict: ...


# ============================================================================
# STATIC POLICY TEXT
# ============================================================================

DEFAULT_GPA_RULES = {
    "description": "GPA Calculation Rules",
    "rules": [
        "GPA is calculated on a 10-point scale",
        "Grade points: A = 10, A- = 9, B = 8, B- = 7, C = 6, C- = 5, D = 4, F = 0",
        "GPA = Sum of (Grade Points x Credits) / Total Credits",
        "CGPA is the cumulative GPA across all semesters",
        "Minimum GPA of 4.5 is required to maintain good standing",
    ],
}

DEFAULT_CREDIT_SYSTEM = {
    "description": "Credit System",
    "info": [
        "Each course has a credit value (typically 2-4 credits)",
        "Total credits required for graduation varies by program",
        "Core courses are mandatory",
        "Elective courses allow specialization",
        "Open electives can be chosen from any department",
        "Minimum credits per semester: 12, Maximum: 24",
    ],
}

DEFAULT_ANNOUNCEMENT_LOCATIONS = {
    "locations": [
        "LMS (Learning Management System) - Course announcements",
        "Student Portal - General academic announcements",
        "Email notifications - Important deadlines",
        "Academic Calendar - Scheduled events and deadlines",
        "Course handouts - Assignment and exam information",
    ],
}


def canonical_course_code(course_code: str) -> str:
    """Upper-case and collapse whitespace ("cs  f213" → "CS F213")."""
    return " ".join(course_code.upper().split())


# ============================================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================================

class InMemoryDataSource:
    """
    Dictionary-backed DataSource.

    Expected data layout:
        {
            "courses": [{"id", "courseCode", "courseName", "credits",
                         "department", "type", "isOpen"}],
            "students": {actor_id: {"profile": {...}, "grades": [...],
                         "payments": [...], "enrollments": [...],
                         "attendance": [...]}},
            "calendar": [{"event", "eventType", "semester", ...}],
            "timetable": [{"courseCode", "day", "startTime", ...}],
            "gpaRules": {...}, "creditSystem": {...}, "announcements": {...}
        }

    Grade, enrollment and attendance records reference courses by
    "courseCode"; returned records embed the matching course under
    "course". Returned values are copies, never the stored objects.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        data = data or {}
        self._courses: List[Dict] = list(data.get("courses", []))
        self._students: Dict[str, Dict] = dict(data.get("students", {}))
        self._calendar: List[Dict] = list(data.get("calendar", []))
        self._timetable: List[Dict] = list(data.get("timetable", []))
        self._gpa_rules = data.get("gpaRules", DEFAULT_GPA_RULES)
        self._credit_system = data.get("creditSystem", DEFAULT_CREDIT_SYSTEM)
        self._announcements = data.get("announcements", DEFAULT_ANNOUNCEMENT_LOCATIONS)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryDataSource":
        """
        Load records from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the JSON is malformed or not an object
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found at {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path.name}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must contain a JSON object")

        logger.info(
            f"✅ Loaded {len(data.get('students', {}))} students and "
            f"{len(data.get('courses', []))} courses from {path}"
        )
        return cls(data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _student(self, actor_id: str) -> Dict:
        student = self._students.get(actor_id)
        if student is None:
            raise NotFound(f"Student '{actor_id}' not found")
        return student

    def _course_by_code(self, course_code: Optional[str]) -> Optional[Dict]:
        if not course_code:
            return None
        code = canonical_course_code(course_code)
        return next((c for c in self._courses if canonical_course_code(c.get("courseCode", "")) == code), None)

    def _with_course(self, records: List[Dict]) -> List[Dict]:
        joined = []
        for record in records:
            item = copy.deepcopy(record)
            course = self._course_by_code(record.get("courseCode"))
            if course is not None:
                item["course"] = copy.deepcopy(course)
            joined.append(item)
        return joined

    @staticmethod
    def _by_semester(records: List[Dict], semester: Optional[str]) -> List[Dict]:
        if not semester:
            return list(records)
        wanted = semester.strip().upper()
        return [r for r in records if str(r.get("semester", "")).upper() == wanted]

    # ------------------------------------------------------------------
    # Private data (tool operations)
    # ------------------------------------------------------------------

    def get_student_grades(self, actor_id: str, parameters: Mapping[str, Any]) -> List[Dict]:
        grades = self._student(actor_id).get("grades", [])
        return self._with_course(self._by_semester(grades, parameters.get("semester")))

    def get_student_payments(self, actor_id: str, parameters: Mapping[str, Any]) -> List[Dict]:
        payments = self._student(actor_id).get("payments", [])
        return copy.deepcopy(self._by_semester(payments, parameters.get("semester")))

    def get_enrolled_courses(self, actor_id: str, parameters: Mapping[str, Any]) -> List[Dict]:
        enrollments = self._student(actor_id).get("enrollments", [])
        return self._with_course(self._by_semester(enrollments, parameters.get("semester")))

    def get_attendance(self, actor_id: str, parameters: Mapping[str, Any]) -> List[Dict]:
        records = self._student(actor_id).get("attendance", [])
        course_id = parameters.get("courseId")
        if course_id:
            codes = {c.get("courseCode") for c in self._courses if c.get("id") == course_id}
            records = [r for r in records if r.get("courseCode") in codes]
        return self._with_course(records)

    def get_academic_summary(self, actor_id: str, parameters: Mapping[str, Any]) -> Dict:
        return {
            "grades": self.get_student_grades(actor_id, {}),
            "enrollments": self.get_enrolled_courses(actor_id, {}),
            "payments": self.get_student_payments(actor_id, {}),
        }

    def get_student_profile(self, actor_id: str, parameters: Mapping[str, Any]) -> Dict:
        profile = self._student(actor_id).get("profile")
        if not profile:
            raise Forbidden("Student not found")
        return copy.deepcopy(profile)

    def resolve_course_id(self, course_code: str) -> Optional[str]:
        course = self._course_by_code(course_code)
        return course.get("id") if course else None

    # ------------------------------------------------------------------
    # Public data
    # ------------------------------------------------------------------

    def get_open_electives(self, semester: Optional[str] = None) -> List[Dict]:
        return [
            copy.deepcopy(c) for c in self._courses
            if c.get("type") == "open_elective" and c.get("isOpen", True)
        ]

    def get_academic_calendar(self, semester: Optional[str] = None) -> List[Dict]:
        events = [e for e in self._calendar if e.get("isActive", True)]
        return copy.deepcopy(self._by_semester(events, semester))

    def get_midsem_dates(self, semester: Optional[str] = None) -> List[Dict]:
        return [e for e in self.get_academic_calendar(semester) if e.get("eventType") == "midsem"]

    def get_course_timetable(
        self,
        course_code: Optional[str] = None,
        department: Optional[str] = None,
    ) -> List[Dict]:
        slots = self._with_course(self._timetable)
        if course_code:
            code = canonical_course_code(course_code)
            return [s for s in slots if canonical_course_code(s.get("courseCode", "")) == code]
        if department:
            dept = department.upper()
            return [s for s in slots if str(s.get("course", {}).get("department", "")).upper() == dept]
        return slots

    def get_gpa_rules(self) -> Dict:
        return copy.deepcopy(self._gpa_rules)

    def get_credit_system_info(self) -> Dict:
        return copy.deepcopy(self._credit_system)

    def get_announcement_locations(self) -> Dict:
        return copy.deepcopy(self._announcements)
