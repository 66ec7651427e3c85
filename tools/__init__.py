"""
Data-Retrieval Tools Module

Tools are named, parameterized operations the pipeline can run against
the DataSource on behalf of an actor. This module holds:
- The tool catalog: names, descriptions and parameter schemas
- The tool executor: runs calls with per-call failure isolation

The catalog is immutable and shared by every request.
"""

from .catalog import (
    ToolNotFound,
    ToolParameter,
    ToolDefinition,
    ToolCall,
    ToolCatalog,
    DEFAULT_TOOLS,
    DEFAULT_TOOL_CATALOG,
)

from .executor import (
    ToolExecutionError,
    ToolResult,
    ToolExecutor,
)

__all__ = [
    # Catalog
    "ToolNotFound",
    "ToolParameter",
    "ToolDefinition",
    "ToolCall",
    "ToolCatalog",
    "DEFAULT_TOOLS",
    "DEFAULT_TOOL_CATALOG",

    # Executor
    "ToolExecutionError",
    "ToolResult",
    "ToolExecutor",
]
