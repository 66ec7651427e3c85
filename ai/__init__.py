"""
AI Infrastructure Module

This module provides the generative backend for the query pipeline:
- Gemini chat (buffered and cancellable streaming) and embeddings
- Langfuse observability integration
- Generation error taxonomy

All LLM calls should go through a GenerativeBackend so that timeouts,
error mapping and tracing stay consistent.
"""

from .llm_service import (
    # Backend
    GenerativeBackend,
    GeminiBackend,
    get_backend,
    Message,

    # Streaming
    CancellationToken,
    FragmentStream,

    # Errors
    GenerationError,
    GenerationTimeout,

    # Utility functions
    get_generation_config,
    split_messages,
    health_check,

    # Observability
    get_langfuse_client,
)

__all__ = [
    "GenerativeBackend",
    "GeminiBackend",
    "get_backend",
    "Message",
    "CancellationToken",
    "FragmentStream",
    "GenerationError",
    "GenerationTimeout",
    "get_generation_config",
    "split_messages",
    "health_check",
    "get_langfuse_client",
]
