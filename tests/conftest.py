"""
Shared fixtures: sample university records and a scripted generative
backend that answers by prompt kind.
"""

import copy
from typing import List, Optional
from unittest.mock import Mock

import pytest

from ai.llm_service import FragmentStream, GenerationError
from clients.data_source import InMemoryDataSource


SAMPLE_DATA = {
    "courses": [
        {"id": "c1", "courseCode": "CS F213", "courseName": "Object Oriented Programming",
         "credits": 4, "department": "CS", "type": "core", "isOpen": True},
        {"id": "c2", "courseCode": "CS F214", "courseName": "Logic in Computer Science",
         "credits": 3, "department": "CS", "type": "core", "isOpen": True},
        {"id": "c3", "courseCode": "HSS F236", "courseName": "Symbolic Logic",
         "credits": 3, "department": "HSS", "type": "open_elective", "isOpen": True},
        {"id": "c4", "courseCode": "ECON F211", "courseName": "Principles of Economics",
         "credits": 3, "department": "ECON", "type": "open_elective", "isOpen": False},
    ],
    "students": {
        "stu-1": {
            "profile": {
                "name": "Asha Rao",
                "studentId": "2023A7PS0001",
                "program": "B.E. Computer Science",
                "gpa": 8.2,
                "cgpa": 8.0,
                "status": "active",
            },
            "grades": [
                {"courseCode": "CS F213", "semester": "FIRST SEMESTER 2024-2025",
                 "midSemMarks": 75, "midSemGrade": "C", "finalMarks": 78, "finalGrade": "C",
                 "totalMarks": 76.5, "gpa": 6.0, "status": "completed"},
                {"courseCode": "CS F214", "semester": "FIRST SEMESTER 2025-2026",
                 "status": "in_progress"},
            ],
            "payments": [
                {"description": "Tuition Fee", "semester": "FIRST SEMESTER 2025-2026",
                 "amount": 250000, "status": "pending", "dueDate": "2025-08-15"},
            ],
            "enrollments": [
                {"courseCode": "CS F214", "semester": "FIRST SEMESTER 2025-2026",
                 "status": "enrolled"},
            ],
            "attendance": [
                {"courseCode": "CS F213", "date": "2025-09-01", "status": "present"},
                {"courseCode": "CS F213", "date": "2025-09-03", "status": "absent"},
                {"courseCode": "CS F214", "date": "2025-09-02", "status": "present"},
            ],
        },
    },
    "calendar": [
        {"event": "Semester Begins", "eventType": "semester_start",
         "semester": "FIRST SEMESTER 2025-2026", "startDate": "2025-08-04"},
        {"event": "Mid-Semester Examinations", "eventType": "midsem",
         "semester": "FIRST SEMESTER 2025-2026", "startDate": "2025-10-06",
         "endDate": "2025-10-12"},
    ],
    "timetable": [
        {"courseCode": "CS F213", "day": "Monday", "startTime": "09:00",
         "endTime": "10:00", "room": "F102"},
        {"courseCode": "CS F214", "day": "Tuesday", "startTime": "11:00",
         "endTime": "12:00", "room": "F105"},
    ],
}


class FakeBackend:
    """
    Scripted GenerativeBackend.

    Replies depend on which prompt it receives: classification,
    tool selection, or synthesis. Set any reply to an exception instance
    to raise it instead.
    """

    def __init__(
        self,
        classification="{}",
        tool_reply="[]",
        answer="Here is your answer.",
        fragments: Optional[List[str]] = None,
    ):
        self.classification = classification
        self.tool_reply = tool_reply
        self.answer = answer
        self.fragments = fragments
        self.calls = []

    @staticmethod
    def kind_of(messages) -> str:
        prompt = messages[-1]["content"]
        if "query classifier" in prompt:
            return "classify"
        if "determine which tool(s)" in prompt:
            return "select"
        return "synthesize"

    def chat(self, messages, stream=False, cancel_token=None, temperature=None):
        kind = self.kind_of(messages)
        self.calls.append(kind)

        reply = {
            "classify": self.classification,
            "select": self.tool_reply,
            "synthesize": self.answer,
        }[kind]
        if isinstance(reply, Exception):
            raise reply

        if stream:
            fragments = self.fragments if self.fragments is not None else [reply]
            return FragmentStream(iter(fragments), cancel_token)
        return reply

    def embed(self, text):
        return [0.0, 0.0, 0.0]


@pytest.fixture
def sample_data():
    """Deep copy of the sample records."""
    return copy.deepcopy(SAMPLE_DATA)


@pytest.fixture
def data_source(sample_data):
    """InMemoryDataSource over the sample records."""
    return InMemoryDataSource(sample_data)


@pytest.fixture
def spy_data_source(data_source):
    """Mock wrapping the sample DataSource, for call assertions."""
    return Mock(wraps=data_source)


@pytest.fixture
def fake_backend():
    """Backend that selects grades and answers with fixed text."""
    return FakeBackend(
        tool_reply='[{"name": "get_student_grades", "parameters": {}}]',
        answer="Your GPA is 6.0.",
    )


@pytest.fixture
def failing_backend():
    """Backend where every call fails."""
    error = GenerationError("backend unavailable")
    return FakeBackend(classification=error, tool_reply=error, answer=error)
