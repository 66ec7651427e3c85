"""
Unit Tests for LLM Service

Tests the Gemini backend with the SDK mocked out, error mapping,
fragment streams and the health check.
"""

import pytest
from unittest.mock import Mock, PropertyMock, patch

from google.api_core import exceptions as google_exceptions

from ai.llm_service import (
    CancellationToken,
    FragmentStream,
    GeminiBackend,
    GenerationError,
    GenerationTimeout,
    get_generation_config,
    health_check,
    split_messages,
)

MESSAGES = [
    {"role": "system", "content": "Be brief."},
    {"role": "user", "content": "What is my GPA?"},
]


def text_chunk(text):
    chunk = Mock()
    chunk.text = text
    return chunk


def empty_chunk():
    """Chunk whose .text raises, like a safety-only response part."""
    chunk = Mock()
    type(chunk).text = PropertyMock(side_effect=ValueError("no text parts"))
    return chunk


class TestMessageConversion:
    """Test split_messages and get_generation_config."""

    def test_split_messages(self):
        """Test system prompts are lifted out and roles renamed."""
        system, contents = split_messages(MESSAGES + [{"role": "assistant", "content": "6.0"}])

        assert system == "Be brief."
        assert contents == [
            {"role": "user", "parts": ["What is my GPA?"]},
            {"role": "model", "parts": ["6.0"]},
        ]

    def test_no_system_message(self):
        """Test the system instruction is None without system messages."""
        system, _ = split_messages(MESSAGES[1:])
        assert system is None

    def test_zero_temperature_kept(self):
        """Test an explicit 0.0 temperature is not replaced by the default."""
        assert get_generation_config(temperature=0.0).temperature == 0.0


class TestGeminiBackend:
    """Test GeminiBackend class."""

    @pytest.fixture
    def mock_genai(self):
        """Fixture patching the google.generativeai module."""
        with patch("ai.llm_service.genai") as mock_genai:
            yield mock_genai

    @pytest.fixture
    def model(self, mock_genai):
        """Fixture providing the mocked GenerativeModel instance."""
        return mock_genai.GenerativeModel.return_value

    @pytest.fixture
    def backend(self, mock_genai):
        """Fixture providing a backend with a test key."""
        return GeminiBackend(api_key="test-key", timeout=5)

    def test_configures_api_key(self, mock_genai, backend):
        """Test the API key is configured on construction."""
        mock_genai.configure.assert_called_once_with(api_key="test-key")

    def test_missing_api_key(self, mock_genai):
        """Test construction fails without an API key."""
        with patch("ai.llm_service.GOOGLE_API_KEY", None):
            with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
                GeminiBackend()

    def test_chat(self, mock_genai, model, backend):
        """Test a buffered completion."""
        model.generate_content.return_value = Mock(candidates=[Mock()], text="Your GPA is 6.0.", usage_metadata=None)

        assert backend.chat(MESSAGES) == "Your GPA is 6.0."

        assert mock_genai.GenerativeModel.call_args.kwargs["system_instruction"] == "Be brief."
        args, kwargs = model.generate_content.call_args
        assert args[0] == [{"role": "user", "parts": ["What is my GPA?"]}]
        assert kwargs["request_options"] == {"timeout": 5}

    def test_no_candidates(self, model, backend):
        """Test an empty response is a GenerationError."""
        model.generate_content.return_value = Mock(candidates=[], usage_metadata=None)

        with pytest.raises(GenerationError):
            backend.chat(MESSAGES)

    def test_deadline_exceeded(self, model, backend):
        """Test SDK deadline errors become GenerationTimeout."""
        model.generate_content.side_effect = google_exceptions.DeadlineExceeded("too slow")

        with pytest.raises(GenerationTimeout):
            backend.chat(MESSAGES)

    def test_other_errors(self, model, backend):
        """Test any other SDK error becomes a plain GenerationError."""
        model.generate_content.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(GenerationError) as exc_info:
            backend.chat(MESSAGES)

        assert not isinstance(exc_info.value, GenerationTimeout)
        assert "quota exceeded" in str(exc_info.value)

    def test_stream(self, model, backend):
        """Test streamed chunks without text are skipped."""
        model.generate_content.return_value = iter([
            text_chunk("Your GPA "),
            empty_chunk(),
            text_chunk("is 6.0."),
        ])

        stream = backend.chat(MESSAGES, stream=True)

        assert isinstance(stream, FragmentStream)
        assert list(stream) == ["Your GPA ", "is 6.0."]
        assert model.generate_content.call_args.kwargs["stream"] is True

    def test_stream_fails_to_start(self, model, backend):
        """Test errors starting a stream are raised from chat."""
        model.generate_content.side_effect = google_exceptions.DeadlineExceeded("too slow")

        with pytest.raises(GenerationTimeout):
            backend.chat(MESSAGES, stream=True)

    def test_stream_interrupted(self, model, backend):
        """Test errors mid-stream surface as GenerationError."""
        def chunks():
            yield text_chunk("Your GPA ")
            raise RuntimeError("connection reset")

        model.generate_content.return_value = chunks()
        stream = backend.chat(MESSAGES, stream=True)

        assert next(stream) == "Your GPA "
        with pytest.raises(GenerationError):
            next(stream)
        assert stream.closed

    def test_embed(self, mock_genai, backend):
        """Test embeddings are returned as a list of floats."""
        mock_genai.embed_content.return_value = {"embedding": [0.1, 0.2]}

        assert backend.embed("credit system") == [0.1, 0.2]


class TestFragmentStream:
    """Test FragmentStream class."""

    def test_cancel_before_iteration(self):
        """Test a cancelled token stops the stream and closes the source."""
        closed = []

        def source():
            try:
                yield "a"
                yield "b"
            finally:
                closed.append(True)

        token = CancellationToken()
        stream = FragmentStream(source(), token)
        assert next(stream) == "a"

        token.cancel()

        assert list(stream) == []
        assert closed == [True]
        assert stream.closed

    def test_on_close_called_once(self):
        """Test the close callback runs exactly once."""
        on_close = Mock()
        stream = FragmentStream(["a"], on_close=on_close)

        assert list(stream) == ["a"]
        stream.close()

        on_close.assert_called_once_with()

    def test_cancel(self):
        """Test cancel() closes the stream and sets the token."""
        stream = FragmentStream(["a", "b"])

        stream.cancel()

        assert stream.cancel_token.cancelled
        assert list(stream) == []


class TestHealthCheck:
    """Test health_check function."""

    @patch("ai.llm_service.get_langfuse_client", return_value=None)
    def test_healthy(self, mock_langfuse):
        """Test a backend answering OK."""
        backend = Mock()
        backend.chat.return_value = "OK"

        status = health_check(backend)

        assert status["gemini_api"] == "healthy"
        assert status["langfuse"] == "disabled"

    @patch("ai.llm_service.get_langfuse_client", return_value=None)
    def test_backend_error(self, mock_langfuse):
        """Test backend failures are reported in the status."""
        backend = Mock()
        backend.chat.side_effect = GenerationError("quota exceeded")

        status = health_check(backend)

        assert status["gemini_api"] == "error: quota exceeded"
