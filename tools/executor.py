"""
Tool Executor

Runs validated ToolCalls against the DataSource on behalf of one actor.

Each call is isolated: an exception or a timeout becomes a failed
ToolResult and never prevents the other calls from running. Calls are
executed concurrently on a bounded thread pool; results are returned in
the same order as the calls.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from clients.data_source import DataSource
from config import MAX_TOOL_WORKERS, TOOL_TIMEOUT
from .catalog import DEFAULT_TOOL_CATALOG, ToolCall, ToolCatalog

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    """One tool call failed."""

    def __init__(self, tool_name: str, reason: str):
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool '{tool_name}' failed: {reason}")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ToolResult:
    """
    Result from a tool execution.

    Attributes:
        tool_name: Name of the tool that was called
        success: Whether the tool executed successfully
        payload: The returned record (on success)
        error: Error message (on failure)
        execution_time: Time taken to execute (seconds)
        metadata: Parameters actually passed to the DataSource
    """
    tool_name: str
    success: bool
    payload: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# EXECUTOR
# ============================================================================

class ToolExecutor:
    """Executes tool calls with per-call failure isolation."""

    def __init__(
        self,
        data_source: DataSource,
        catalog: ToolCatalog = DEFAULT_TOOL_CATALOG,
        max_workers: int = MAX_TOOL_WORKERS,
        timeout: float = TOOL_TIMEOUT,
    ):
        """
        Initialize the executor.

        Args:
            data_source: Collaborator exposing one method per tool name
            catalog: Tools allowed to be dispatched
            max_workers: Upper bound on concurrently running calls
            timeout: Seconds to wait for each call's result
        """
        self.data_source = data_source
        self.catalog = catalog
        self.max_workers = max(1, max_workers)
        self.timeout = timeout

    def execute(self, actor_id: str, calls: Sequence[ToolCall]) -> List[ToolResult]:
        """
        Execute every catalog tool call for the given actor.

        Calls naming a tool outside the catalog are dropped, never
        dispatched. Exactly one ToolResult is returned per remaining call,
        in call order.

        Args:
            actor_id: Identity the private data is read for
            calls: Validated tool calls

        Returns:
            List of ToolResult, same order as the accepted calls
        """
        accepted = []
        for call in calls:
            if call.name in self.catalog:
                accepted.append(call)
            else:
                logger.warning(f"⚠️  Dropping unknown tool '{call.name}'")

        if not accepted:
            return []

        workers = min(self.max_workers, len(accepted))
        pool = ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="tool",
        )
        try:
            started = time.time()
            futures = [pool.submit(self._run_call, actor_id, call) for call in accepted]

            # Queued calls get one timeout per wave of workers
            waves = -(-len(accepted) // workers)
            deadline = started + self.timeout * waves

            results = []
            for call, future in zip(accepted, futures):
                remaining = max(0.0, deadline - time.time())
                try:
                    results.append(future.result(timeout=remaining))
                except FutureTimeout:
                    future.cancel()
                    logger.error(f"❌ Tool {call.name} timed out after {self.timeout}s")
                    results.append(ToolResult(
                        tool_name=call.name,
                        success=False,
                        error=str(ToolExecutionError(call.name, f"timed out after {self.timeout}s")),
                        execution_time=time.time() - started,
                        metadata={"args": dict(call.parameters)},
                    ))
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"🔧 Executed {len(results)} tools ({succeeded} succeeded)")
        return results

    def _run_call(self, actor_id: str, call: ToolCall) -> ToolResult:
        start_time = time.time()
        params = dict(call.parameters)

        try:
            if call.name == "get_attendance" and params.get("courseCode"):
                params = self._resolve_course(params)

            tool_func = getattr(self.data_source, call.name)
            payload = tool_func(actor_id, params)

            return ToolResult(
                tool_name=call.name,
                success=True,
                payload=payload,
                execution_time=time.time() - start_time,
                metadata={"args": params},
            )

        except Exception as e:
            logger.error(f"❌ Tool {call.name} execution failed: {e}")
            return ToolResult(
                tool_name=call.name,
                success=False,
                error=str(e) or type(e).__name__,
                execution_time=time.time() - start_time,
                metadata={"args": params},
            )

    def _resolve_course(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Replace courseCode with the DataSource's courseId."""
        course_code = params.pop("courseCode")
        course_id = self.data_source.resolve_course_id(course_code)
        if course_id is None:
            raise ToolExecutionError("get_attendance", f"Course {course_code} not found")
        params["courseId"] = course_id
        return params
