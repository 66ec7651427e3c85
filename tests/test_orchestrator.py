"""
Unit Tests for the Query Orchestrator

Tests the full pipeline with a scripted backend and the sample records:
authentication gating, fallbacks, streaming and the state machine.
"""

import pytest

from config import NO_INFORMATION_MESSAGE
from core.errors import AuthenticationRequired
from core.normalizer import build_query
from core.orchestrator import ContextStatus, OrchestrationContext
from core.recommendations import GENERIC_RECOMMENDATIONS
from core.router import QueryType
from services.query_service import build_orchestrator
from tests.conftest import FakeBackend


class TestProcessQuery:
    """Test QueryOrchestrator.process_query."""

    def test_private_query(self, fake_backend, data_source):
        """Test a private question is answered from the actor's records."""
        orchestrator = build_orchestrator(fake_backend, data_source)

        context = orchestrator.process_query("What is my GPA?", actor_id="stu-1")

        assert context.status == ContextStatus.COMPLETED
        assert context.query_type == QueryType.PRIVATE
        assert context.response == "Your GPA is 6.0."
        assert [r.tool_name for r in context.tool_results] == ["get_student_grades"]
        assert context.has_context is True
        assert context.recommendations == []
        assert fake_backend.calls == ["select", "synthesize"]

    @pytest.mark.parametrize("query, query_type", [
        ("What is my GPA?", "private"),
        ("Show my fees and the open electives", "mixed"),
    ])
    def test_private_data_requires_actor(self, fake_backend, spy_data_source, query, query_type):
        """Test no private data is read without an actor identity."""
        orchestrator = build_orchestrator(fake_backend, spy_data_source)

        with pytest.raises(AuthenticationRequired) as exc_info:
            orchestrator.process_query(query, actor_id=None)

        assert exc_info.value.query_type == query_type
        assert str(exc_info.value) == "Authentication required for private queries"
        assert fake_backend.calls == []
        spy_data_source.get_student_grades.assert_not_called()
        spy_data_source.get_student_payments.assert_not_called()

    def test_public_query_without_actor(self, fake_backend, spy_data_source):
        """Test public questions need no actor and run no tools."""
        orchestrator = build_orchestrator(fake_backend, spy_data_source)

        context = orchestrator.process_query("When do midsems start?")

        assert context.status == ContextStatus.COMPLETED
        assert context.query_type == QueryType.PUBLIC
        assert list(context.public_context) == ["midsemDates", "calendar"]
        assert context.tool_results == []
        assert fake_backend.calls == ["synthesize"]
        spy_data_source.get_student_grades.assert_not_called()

    def test_mixed_query(self, data_source):
        """Test mixed questions gather both tools and public context."""
        backend = FakeBackend(tool_reply='[{"name": "get_student_payments", "parameters": {}}]')
        orchestrator = build_orchestrator(backend, data_source)

        context = orchestrator.process_query("Show my fees and the open electives", actor_id="stu-1")

        assert context.query_type == QueryType.MIXED
        assert [r.tool_name for r in context.tool_results] == ["get_student_payments"]
        assert "openElectives" in context.public_context

    def test_backend_down_uses_fallbacks(self, failing_backend, data_source):
        """Test tool selection and synthesis both degrade to deterministic paths."""
        orchestrator = build_orchestrator(failing_backend, data_source)

        context = orchestrator.process_query("What is my GPA?", actor_id="stu-1")

        assert context.status == ContextStatus.COMPLETED
        assert context.used_fallback is True
        assert context.response.startswith("Student Grades:")
        assert [c.name for c in context.tool_calls] == ["get_student_grades"]

    def test_nothing_found_and_backend_down(self, failing_backend, data_source):
        """Test the FAILED path: no data and no generation."""
        orchestrator = build_orchestrator(failing_backend, data_source)

        context = orchestrator.process_query("hello there")

        assert context.status == ContextStatus.FAILED
        assert context.response == NO_INFORMATION_MESSAGE.format(query="hello there")
        assert context.error_message == "backend unavailable"
        assert context.recommendations == list(GENERIC_RECOMMENDATIONS)

    def test_low_confidence_consults_classifier(self, data_source):
        """Test the LLM classifier is asked when fuzzy matching is unsure."""
        backend = FakeBackend(
            classification='{"queryType": "PUBLIC", "intents": ["credits"], '
                           '"suggestedTools": [], "confidence": 0.9}',
            answer="Courses carry 2 to 4 credits.",
        )
        orchestrator = build_orchestrator(backend, data_source)

        context = orchestrator.process_query("hello there")

        assert backend.calls == ["classify", "synthesize"]
        assert context.classification.source == "llm"
        assert "creditSystem" in context.public_context
        assert context.recommendations == []

    def test_failed_tools_get_recommendations(self, fake_backend, data_source):
        """Test recommendations are offered when every tool failed."""
        orchestrator = build_orchestrator(fake_backend, data_source)

        context = orchestrator.process_query("What is my GPA?", actor_id="ghost")

        assert context.status == ContextStatus.COMPLETED
        assert context.has_context is False
        assert context.tool_results[0].success is False
        assert context.recommendations

    def test_execution_summary(self, fake_backend, data_source):
        """Test timings and the execution summary."""
        orchestrator = build_orchestrator(fake_backend, data_source)

        context = orchestrator.process_query("What is my GPA?", actor_id="stu-1")
        summary = context.get_execution_summary()

        assert summary["query_type"] == "private"
        assert summary["tools_used"] == ["get_student_grades"]
        assert summary["failed_tools"] == []
        assert {"classification", "tool_selection", "tool_execution", "synthesis"} <= set(context.timings)
        assert summary["duration_ms"] == context.total_duration_ms


class TestStreamQuery:
    """Test QueryOrchestrator.stream_query."""

    def test_stream(self, data_source):
        """Test fragments arrive in order and the context completes."""
        backend = FakeBackend(fragments=["Midsems ", "start on ", "6 October."])
        orchestrator = build_orchestrator(backend, data_source)

        stream = orchestrator.stream_query("When do midsems start?")
        fragments = list(stream)

        assert fragments == ["Midsems ", "start on ", "6 October."]
        assert stream.context.status == ContextStatus.COMPLETED
        assert stream.context.response == "Midsems start on 6 October."

    def test_stream_requires_actor(self, fake_backend, data_source):
        """Test authentication is checked before the stream is returned."""
        orchestrator = build_orchestrator(fake_backend, data_source)

        with pytest.raises(AuthenticationRequired):
            orchestrator.stream_query("What is my GPA?")

    def test_stream_cancelled(self, data_source):
        """Test cancelling keeps the fragments already delivered."""
        backend = FakeBackend(fragments=["Your ", "GPA ", "is 6.0."])
        orchestrator = build_orchestrator(backend, data_source)

        stream = orchestrator.stream_query("What is my GPA?", actor_id="stu-1")
        received = []
        for fragment in stream:
            received.append(fragment)
            stream.cancel()

        assert received == ["Your "]
        assert stream.context.status == ContextStatus.COMPLETED
        assert stream.context.response == "Your "
        assert stream.context.used_fallback is False

    def test_stream_closed_before_first_fragment(self, data_source):
        """Test closing an unread stream still finishes the context."""
        backend = FakeBackend(fragments=["Your ", "GPA ", "is 6.0."])
        orchestrator = build_orchestrator(backend, data_source)

        stream = orchestrator.stream_query("What is my GPA?", actor_id="stu-1")
        stream.close()

        assert stream.context.status == ContextStatus.COMPLETED
        assert stream.context.response == ""
        assert stream.cancel_token.cancelled
        assert list(stream) == []

    def test_stream_nothing_found(self, failing_backend, data_source):
        """Test the no-information message is streamed when nothing was produced."""
        orchestrator = build_orchestrator(failing_backend, data_source)

        stream = orchestrator.stream_query("hello there")
        fragments = list(stream)

        assert fragments == [NO_INFORMATION_MESSAGE.format(query="hello there")]
        assert stream.context.status == ContextStatus.FAILED


class TestOrchestrationContext:
    """Test the per-query state machine."""

    @pytest.fixture
    def context(self):
        """Fixture providing a fresh context."""
        return OrchestrationContext(query=build_query("What is my GPA?"))

    def test_happy_path(self, context):
        """Test the full sequence of legal transitions."""
        for status in (
            ContextStatus.CLASSIFIED,
            ContextStatus.TOOLS_SELECTED,
            ContextStatus.TOOLS_EXECUTED,
            ContextStatus.SYNTHESIZING,
            ContextStatus.COMPLETED,
        ):
            context.transition(status)

        assert context.is_finished

    def test_illegal_transition(self, context):
        """Test skipping a stage raises ValueError."""
        with pytest.raises(ValueError):
            context.transition(ContextStatus.SYNTHESIZING)

    def test_terminal_states(self, context):
        """Test nothing follows FAILED."""
        context.transition(ContextStatus.FAILED)

        with pytest.raises(ValueError):
            context.transition(ContextStatus.CLASSIFIED)
