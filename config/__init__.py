"""
Configuration module for the campus query assistant.

This module provides centralized configuration management including:
- Application settings (models, API keys, timeouts, thresholds)
- Prompt templates and user-facing messages
- The immutable intent catalog

All configurable values should be imported from this module to ensure
consistency across the application.
"""

from .settings import (
    # Paths
    BASE_DIR,
    DATA_DIR,
    DATA_FILE,

    # API Keys
    GOOGLE_API_KEY,

    # LLM Settings
    GEMINI_MODEL,
    EMBEDDING_MODEL,
    TEMPERATURE,
    CLASSIFIER_TEMPERATURE,
    TOOL_SELECTION_TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    GENERATION_TIMEOUT,
    TOOL_TIMEOUT,
    MAX_TOOL_WORKERS,

    # Langfuse Settings
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,

    # Application Settings
    ASSISTANT_NAME,
    INSTITUTION_NAME,
    MAX_RECOMMENDATIONS,
    MAX_QUERY_LENGTH,
    ACTOR_HEADER,
    API_HOST,
    API_PORT,
    DEBUG,
    LOG_LEVEL,
)

from .intents import (
    IntentCategory,
    IntentPattern,
    IntentCatalog,
    MatchThresholds,
    DEFAULT_INTENT_CATALOG,
)

from .prompts import (
    SYSTEM_PROMPT,
    CLASSIFIER_PROMPT,
    TOOL_SELECTION_PROMPT,
    SYNTHESIS_PROMPT,
    DATA_SECTION,
    NO_DATA_SECTION,
    FORMAT_INSTRUCTIONS,
    TABLE_FORMAT_INSTRUCTIONS,
    TABLE_REQUEST_KEYWORDS,
    NO_INFORMATION_MESSAGE,
    AUTHENTICATION_REQUIRED_MESSAGE,
    format_prompt,
)

__all__ = [
    # Settings
    "BASE_DIR",
    "DATA_DIR",
    "DATA_FILE",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "EMBEDDING_MODEL",
    "TEMPERATURE",
    "CLASSIFIER_TEMPERATURE",
    "TOOL_SELECTION_TEMPERATURE",
    "MAX_TOKENS",
    "TOP_P",
    "TOP_K",
    "GENERATION_TIMEOUT",
    "TOOL_TIMEOUT",
    "MAX_TOOL_WORKERS",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "LANGFUSE_ENABLED",
    "ASSISTANT_NAME",
    "INSTITUTION_NAME",
    "MAX_RECOMMENDATIONS",
    "MAX_QUERY_LENGTH",
    "ACTOR_HEADER",
    "API_HOST",
    "API_PORT",
    "DEBUG",
    "LOG_LEVEL",

    # Intents
    "IntentCategory",
    "IntentPattern",
    "IntentCatalog",
    "MatchThresholds",
    "DEFAULT_INTENT_CATALOG",

    # Prompts
    "SYSTEM_PROMPT",
    "CLASSIFIER_PROMPT",
    "TOOL_SELECTION_PROMPT",
    "SYNTHESIS_PROMPT",
    "DATA_SECTION",
    "NO_DATA_SECTION",
    "FORMAT_INSTRUCTIONS",
    "TABLE_FORMAT_INSTRUCTIONS",
    "TABLE_REQUEST_KEYWORDS",
    "NO_INFORMATION_MESSAGE",
    "AUTHENTICATION_REQUIRED_MESSAGE",
    "format_prompt",
]
