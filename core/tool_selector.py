"""
Tool Selection

Asks the generative backend which catalog tools a query needs, then
validates the reply against the catalog. Whenever the backend cannot
produce a usable list, the fuzzy matcher's intent → tool mapping for the
same query text is used instead.
"""

import logging
from typing import Any, Dict, List, Optional

from ai.llm_service import GenerationError, GenerativeBackend
from config import TOOL_SELECTION_PROMPT, TOOL_SELECTION_TEMPERATURE, format_prompt
from tools.catalog import DEFAULT_TOOL_CATALOG, ToolCall, ToolCatalog, ToolNotFound
from .fuzzy_matcher import FuzzyIntentMatcher
from .normalizer import Query
from .parsing import ParseFailed, parse_json_array
from .router import QueryType

logger = logging.getLogger(__name__)


# Extracted entities used to seed fallback calls: parameter → Query attribute
ENTITY_PARAMETERS = {
    "semester": "semester",
    "courseCode": "course_code",
}


class ToolSelector:
    """
    LLM-driven tool selection with a deterministic fallback.

    Every returned ToolCall names a catalog tool, carries only declared
    parameters, and has all required parameters set.
    """

    def __init__(
        self,
        backend: GenerativeBackend,
        catalog: ToolCatalog = DEFAULT_TOOL_CATALOG,
        matcher: Optional[FuzzyIntentMatcher] = None,
        temperature: float = TOOL_SELECTION_TEMPERATURE,
    ):
        self.backend = backend
        self.catalog = catalog
        self.matcher = matcher or FuzzyIntentMatcher()
        self.temperature = temperature

    def build_prompt(self, query: Query, query_type: QueryType) -> str:
        return format_prompt(
            TOOL_SELECTION_PROMPT,
            query=query.raw,
            tools_description=self.catalog.to_prompt_block(),
            query_type=query_type.value.upper(),
        )

    def select(self, query: Query, query_type: QueryType) -> List[ToolCall]:
        """
        Choose the tool calls for a query.

        Args:
            query: The normalized query with its entities
            query_type: Classification of the query

        Returns:
            Validated ToolCalls (possibly empty when nothing applies)
        """
        messages = [{"role": "user", "content": self.build_prompt(query, query_type)}]
        try:
            reply = self.backend.chat(messages, temperature=self.temperature)
        except GenerationError as e:
            logger.warning(f"⚠️  Tool selection failed, using fuzzy tools: {e}")
            return self.fallback_calls(query)

        parsed = parse_json_array(reply)
        if isinstance(parsed, ParseFailed):
            logger.warning(f"⚠️  Unparseable tool selection reply ({parsed.reason}), using fuzzy tools")
            return self.fallback_calls(query)

        calls = self.validate(parsed.value)
        if not calls:
            logger.info("ℹ️  No valid tools proposed, using fuzzy tools")
            return self.fallback_calls(query)

        logger.info(f"🔧 Selected tools: {[c.name for c in calls]}")
        return calls

    def validate(self, entries: List[Any]) -> List[ToolCall]:
        """
        Keep well-formed entries that name catalog tools.

        Undeclared parameters are stripped; calls missing a required
        parameter are dropped.
        """
        calls = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue

            name = entry.get("name")
            try:
                definition = self.catalog.get(name) if isinstance(name, str) else None
            except ToolNotFound as e:
                logger.warning(f"⚠️  {e}, dropping")
                continue
            if definition is None:
                continue

            raw_params = entry.get("parameters") or {}
            if not isinstance(raw_params, dict):
                raw_params = {}
            params = {
                key: value for key, value in raw_params.items()
                if key in definition.parameters and value not in (None, "")
            }

            missing = [p for p in definition.required_parameters if p not in params]
            if missing:
                logger.warning(f"⚠️  {name} missing required parameters {missing}, dropping")
                continue

            calls.append(ToolCall(name=name, parameters=params))
        return calls

    def fallback_calls(self, query: Query) -> List[ToolCall]:
        """Fuzzy intent → tool mapping, seeded with extracted entities."""
        calls = []
        for name in self.matcher.suggest_tools(query.normalized):
            definition = self.catalog.find(name)
            if definition is None:
                continue
            params: Dict[str, Any] = {}
            for param, attribute in ENTITY_PARAMETERS.items():
                value = getattr(query, attribute)
                if param in definition.parameters and value:
                    params[param] = value
            calls.append(ToolCall(name=name, parameters=params))
        return calls
