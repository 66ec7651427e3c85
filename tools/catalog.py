"""
Tool Catalog

Static registry of the data-retrieval operations ("tools") the pipeline
can ask the DataSource to run. Each tool carries a natural-language
description that is used verbatim in prompts, and a parameter schema
used to validate LLM-proposed calls.

The catalog is immutable and shared by all concurrent requests.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


class ToolNotFound(Exception):
    """A tool name that is not in the catalog."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' not found in catalog")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class ToolParameter:
    """Schema of one tool parameter."""
    type: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class ToolDefinition:
    """
    A named, parameterized data-retrieval operation.

    Attributes:
        name: Unique tool name (also the DataSource method name)
        description: Natural-language description used in prompts
        parameters: Parameter name → ToolParameter
    """
    name: str
    description: str
    parameters: Mapping[str, ToolParameter] = field(default_factory=dict)

    @property
    def required_parameters(self) -> Tuple[str, ...]:
        return tuple(name for name, p in self.parameters.items() if p.required)

    def schema(self) -> Dict[str, Any]:
        """JSON-schema style description of the parameters."""
        return {
            "type": "object",
            "properties": {
                name: {"type": p.type, "description": p.description}
                for name, p in self.parameters.items()
            },
            "required": list(self.required_parameters),
        }


@dataclass(frozen=True)
class ToolCall:
    """A request to run one catalog tool with the given parameters."""
    name: str
    parameters: Mapping[str, Any] = field(default_factory=dict)


class ToolCatalog:
    """Immutable, ordered collection of ToolDefinitions."""

    def __init__(self, tools):
        self._tools: Tuple[ToolDefinition, ...] = tuple(tools)
        self._by_name = {tool.name: tool for tool in self._tools}
        if len(self._by_name) != len(self._tools):
            raise ValueError("Tool names in a catalog must be unique")

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._by_name)

    def get(self, name: str) -> ToolDefinition:
        """
        Look up a tool by name.

        Raises:
            ToolNotFound: If the name is not in the catalog
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise ToolNotFound(name)

    def find(self, name: str) -> Optional[ToolDefinition]:
        return self._by_name.get(name)

    def to_prompt_block(self) -> str:
        """Descriptions and parameter schemas, one tool per paragraph."""
        return "\n\n".join(
            f"- {tool.name}: {tool.description}\n  Parameters: {json.dumps(tool.schema())}"
            for tool in self._tools
        )

    def to_summary_lines(self) -> str:
        """One line per tool, for short prompts."""
        return "\n".join(f"- {tool.name}: {tool.description}" for tool in self._tools)


# ============================================================================
# DEFAULT CATALOG
# ============================================================================

_SEMESTER_FILTER = ToolParameter(
    type="string",
    description="Optional semester filter (e.g., \"FIRST SEMESTER 2025-2026\"). If not provided, returns all semesters.",
)

DEFAULT_TOOLS = (
    ToolDefinition(
        name="get_student_grades",
        description="Get student grades for a specific semester or all semesters. Use this when the user asks about grades, GPA, marks, or academic performance.",
        parameters={"semester": _SEMESTER_FILTER},
    ),
    ToolDefinition(
        name="get_student_payments",
        description="Get student payment and fee information. Use this when the user asks about payments, fees, dues, or financial status.",
        parameters={"semester": _SEMESTER_FILTER},
    ),
    ToolDefinition(
        name="get_enrolled_courses",
        description="Get courses the student is enrolled in. Use this when the user asks about enrolled courses, current courses, or course registration.",
        parameters={
            "semester": ToolParameter(
                type="string",
                description="Optional semester filter. If not provided, returns current semester.",
            ),
        },
    ),
    ToolDefinition(
        name="get_attendance",
        description="Get student attendance records. Use this when the user asks about attendance, presence, or class participation.",
        parameters={
            "courseCode": ToolParameter(
                type="string",
                description="Optional course code filter (e.g., \"CS F213\"). If not provided, returns all courses.",
            ),
        },
    ),
    ToolDefinition(
        name="get_academic_summary",
        description="Get comprehensive academic summary including grades, enrollments, and payments. Use this when the user asks for overall academic status, summary, or dashboard information.",
    ),
    ToolDefinition(
        name="get_student_profile",
        description="Get basic student profile information including name, program, GPA, CGPA. Use this when the user asks about their profile, personal info, or academic standing.",
    ),
)

DEFAULT_TOOL_CATALOG = ToolCatalog(DEFAULT_TOOLS)
