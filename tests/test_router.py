"""
Unit Tests for Query Classification

Tests query-type rules, the fast path, and the LLM fallback classifier.
"""

import json

import pytest
from unittest.mock import Mock

from ai.llm_service import GenerationError
from config import CLASSIFIER_TEMPERATURE
from core.fuzzy_matcher import FuzzyIntentMatcher, FuzzyMatchResult
from core.router import (
    ClassificationResult,
    Classifier,
    LLMFallbackClassifier,
    QueryType,
    determine_query_type,
    from_fuzzy,
)


class TestDetermineQueryType:
    """Test determine_query_type function."""

    def test_indicator_with_data_term_is_private(self):
        """Test first-person word plus a record term without a matched intent."""
        result = FuzzyMatchResult(
            normalized_query="x",
            has_private_indicator=True,
            has_data_term=True,
        )
        assert determine_query_type(result) == QueryType.PRIVATE

    def test_indicator_alone_is_public(self):
        """Test a first-person word without any record term."""
        result = FuzzyMatchResult(normalized_query="x", has_private_indicator=True)
        assert determine_query_type(result) == QueryType.PUBLIC

    def test_needs_actor(self):
        """Test which query types need an actor identity."""
        assert QueryType.PRIVATE.needs_actor
        assert QueryType.MIXED.needs_actor
        assert not QueryType.PUBLIC.needs_actor


class TestClassifier:
    """Test Classifier class."""

    @pytest.fixture
    def classifier(self):
        """Fixture providing a fuzzy-only classifier."""
        return Classifier()

    def test_private_query(self, classifier):
        """Test 'What is my GPA?' is private with the grades tool."""
        result = classifier.classify("What is my GPA?")

        assert result.query_type == QueryType.PRIVATE
        assert result.intents == ["grades"]
        assert result.suggested_tools == ["get_student_grades"]
        assert result.source == "fuzzy"

    def test_public_query(self, classifier):
        """Test 'When do midsems start?' is public."""
        result = classifier.classify("When do midsems start?")

        assert result.query_type == QueryType.PUBLIC
        assert result.intents == ["calendar"]
        assert result.suggested_tools == []

    def test_mixed_query(self, classifier):
        """Test a question asking for private and public data."""
        result = classifier.classify("Show my fees and the open electives")

        assert result.query_type == QueryType.MIXED
        assert result.suggested_tools == ["get_student_payments"]

    @pytest.mark.parametrize("query", [
        "What are my grdes",
        "show me my marks",
        "my cgpa please",
    ])
    def test_private_indicator_with_grade_term(self, classifier, query):
        """Test first-person grade questions are private with usable confidence."""
        result = classifier.classify(query)

        assert result.query_type == QueryType.PRIVATE
        assert result.confidence >= 0.5

    def test_fast_path_skips_fallback(self):
        """Test the fallback is not consulted for confident matches."""
        fallback = Mock()
        classifier = Classifier(fallback=fallback)

        classifier.classify("What is my GPA?")

        fallback.classify.assert_not_called()

    def test_low_confidence_uses_fallback(self):
        """Test the fallback decides when fuzzy confidence is low."""
        fallback = Mock()
        llm_result = ClassificationResult(query_type=QueryType.PUBLIC, source="llm")
        fallback.classify.return_value = llm_result
        classifier = Classifier(fallback=fallback)

        result = classifier.classify("hello there")

        assert result is llm_result
        raw_query, fuzzy_result = fallback.classify.call_args.args
        assert raw_query == "hello there"
        assert fuzzy_result.source == "fuzzy"


class TestLLMFallbackClassifier:
    """Test LLMFallbackClassifier class."""

    @pytest.fixture
    def fuzzy_result(self):
        """Fixture providing a low-confidence fuzzy classification."""
        return from_fuzzy(FuzzyIntentMatcher().match("hello there"))

    @staticmethod
    def make(reply):
        backend = Mock()
        if isinstance(reply, Exception):
            backend.chat.side_effect = reply
        else:
            backend.chat.return_value = reply if isinstance(reply, str) else json.dumps(reply)
        return LLMFallbackClassifier(backend), backend

    def test_valid_reply(self, fuzzy_result):
        """Test a valid reply is validated against the catalogs."""
        classifier, backend = self.make({
            "queryType": "PRIVATE",
            "intents": ["grades", "astrology"],
            "suggestedTools": ["get_student_grades", "drop_tables", "get_student_grades"],
            "confidence": 1.4,
        })

        result = classifier.classify("how am i doing", fuzzy_result)

        assert result.query_type == QueryType.PRIVATE
        assert result.intents == ["grades"]
        assert result.suggested_tools == ["get_student_grades"]
        assert result.confidence == 1.0
        assert result.source == "llm"
        assert backend.chat.call_args.kwargs["temperature"] == CLASSIFIER_TEMPERATURE

    def test_prompt_lists_tools_and_intents(self, fuzzy_result):
        """Test the prompt carries the query, tool names and intent names."""
        classifier, backend = self.make("{}")

        classifier.classify("how am i doing", fuzzy_result)

        prompt = backend.chat.call_args.args[0][0]["content"]
        assert '"how am i doing"' in prompt
        assert "get_student_grades" in prompt
        assert "electives" in prompt

    @pytest.mark.parametrize("reply", [
        GenerationError("boom"),
        "I am not sure",
        {"queryType": "PUBLIC", "intents": []},
        {"queryType": "SECRET", "intents": [], "suggestedTools": [], "confidence": 0.9},
        {"queryType": "PUBLIC", "intents": "grades", "suggestedTools": [], "confidence": 0.9},
        {"queryType": "PUBLIC", "intents": [], "suggestedTools": [], "confidence": "high"},
        {"queryType": "PUBLIC", "intents": [], "suggestedTools": [], "confidence": float("nan")},
        {"queryType": "PUBLIC", "intents": [], "suggestedTools": [], "confidence": float("inf")},
    ])
    def test_unusable_reply_keeps_fuzzy_result(self, fuzzy_result, reply):
        """Test errors and malformed replies return the fuzzy result unchanged."""
        classifier, _ = self.make(reply)
        assert classifier.classify("hello there", fuzzy_result) is fuzzy_result

    def test_mixed_without_both_categories_is_private(self, fuzzy_result):
        """Test MIXED naming only private intents is downgraded."""
        classifier, _ = self.make({
            "queryType": "MIXED",
            "intents": ["grades", "payment"],
            "suggestedTools": ["get_student_grades"],
            "confidence": 0.8,
        })

        result = classifier.classify("grades and dues", fuzzy_result)

        assert result.query_type == QueryType.PRIVATE

    def test_mixed_with_both_categories(self, fuzzy_result):
        """Test MIXED is kept when private and public intents are present."""
        classifier, _ = self.make({
            "queryType": "mixed",
            "intents": ["grades", "calendar"],
            "suggestedTools": [],
            "confidence": 0.8,
        })

        result = classifier.classify("grades and exam dates", fuzzy_result)

        assert result.query_type == QueryType.MIXED
        assert result.confidence == pytest.approx(0.8)
