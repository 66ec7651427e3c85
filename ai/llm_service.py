"""
LLM Service - Gemini Backend with Langfuse Observability

This service provides the generative backend used by the query pipeline:
- Chat completion, buffered or as a cancellable fragment stream
- Embeddings
- Langfuse tracing for every generation call (when configured)
- Error mapping to GenerationError / GenerationTimeout

Every call is bounded by GENERATION_TIMEOUT and attempted exactly once.
Callers decide what to do on failure (the pipeline falls back to
deterministic formatting), so nothing here retries.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple, Union

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import GenerationConfig, HarmCategory, HarmBlockThreshold
from langfuse import Langfuse, observe

from config import (
    GOOGLE_API_KEY,
    GEMINI_MODEL,
    EMBEDDING_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    GENERATION_TIMEOUT,
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,
)

logger = logging.getLogger(__name__)

Message = Dict[str, str]


# ============================================================================
# ERRORS
# ============================================================================

class GenerationError(Exception):
    """The generative backend failed or returned nothing usable."""


class GenerationTimeout(GenerationError):
    """The generative backend did not answer within the call timeout."""


def _map_error(error: Exception) -> GenerationError:
    if isinstance(error, GenerationError):
        return error
    if isinstance(error, (google_exceptions.DeadlineExceeded, TimeoutError)):
        return GenerationTimeout(f"Generation timed out: {error}")
    return GenerationError(f"{type(error).__name__}: {error}")


# ============================================================================
# LANGFUSE
# ============================================================================

_langfuse_client: Optional[Langfuse] = None
_langfuse_lock = threading.Lock()


def get_langfuse_client() -> Optional[Langfuse]:
    """Get the Langfuse client instance, or None when tracing is disabled."""
    global _langfuse_client

    if not LANGFUSE_ENABLED:
        return None

    with _langfuse_lock:
        if _langfuse_client is None:
            _langfuse_client = Langfuse(
                public_key=LANGFUSE_PUBLIC_KEY,
                secret_key=LANGFUSE_SECRET_KEY,
                host=LANGFUSE_HOST,
            )
            logger.info("✅ Langfuse observability initialized")
    return _langfuse_client


# ============================================================================
# SAFETY SETTINGS
# ============================================================================

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


# ============================================================================
# GENERATION CONFIGURATION
# ============================================================================

def get_generation_config(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> GenerationConfig:
    """
    Create a generation configuration for Gemini API calls.

    Args:
        temperature: Sampling temperature (0.0 - 2.0). Defaults to config value.
        max_tokens: Maximum tokens to generate. Defaults to config value.

    Returns:
        GenerationConfig object
    """
    return GenerationConfig(
        temperature=TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or MAX_TOKENS,
        top_p=TOP_P,
        top_k=TOP_K,
    )


def split_messages(messages: List[Message]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Convert chat messages to Gemini contents.

    System messages become the system instruction and the "assistant"
    role is renamed "model".

    Returns:
        (system_instruction or None, contents)
    """
    system_parts = []
    contents = []
    for message in messages:
        role = message.get("role", "user")
        content = message.get("content", "")
        if role == "system":
            system_parts.append(content)
            continue
        contents.append({
            "role": "model" if role == "assistant" else "user",
            "parts": [content],
        })
    return ("\n\n".join(system_parts) or None), contents


# ============================================================================
# STREAMING
# ============================================================================

class CancellationToken:
    """Thread-safe flag a consumer sets to stop an in-flight generation."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class FragmentStream:
    """
    Iterator over generated text fragments.

    Stops pulling from the backend as soon as the token is cancelled and
    closes the underlying source. Fragments are yielded in arrival order.
    """

    def __init__(
        self,
        fragments: Iterable[str],
        cancel_token: Optional[CancellationToken] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._iterator: Iterator[str] = iter(fragments)
        self.cancel_token = cancel_token or CancellationToken()
        self._on_close = on_close
        self._closed = False

    def __iter__(self) -> "FragmentStream":
        return self

    def __next__(self) -> str:
        if self._closed:
            raise StopIteration
        if self.cancel_token.cancelled:
            self.close()
            raise StopIteration
        try:
            return next(self._iterator)
        except Exception:
            # StopIteration included
            self.close()
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """Request cancellation and release the underlying source."""
        self.cancel_token.cancel()
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()
        if self._on_close is not None:
            self._on_close()


# ============================================================================
# BACKEND
# ============================================================================

class GenerativeBackend(Protocol):
    """Capability the pipeline needs from an LLM provider."""

    def chat(
        self,
        messages: List[Message],
        stream: bool = False,
        cancel_token: Optional[CancellationToken] = None,
        temperature: Optional[float] = None,
    ) -> Union[str, FragmentStream]: ...

    def embed(self, text: str) -> List[float]: ...


class GeminiBackend:
    """
    GenerativeBackend implemented with google-generativeai.

    Construction configures the API key; no network call happens until
    chat() or embed() is invoked.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = GEMINI_MODEL,
        embedding_model: str = EMBEDDING_MODEL,
        timeout: float = GENERATION_TIMEOUT,
    ):
        api_key = api_key or GOOGLE_API_KEY
        if not api_key:
            raise ValueError(
                "GOOGLE_API_KEY not found. Please set it in your .env file or environment variables."
            )
        genai.configure(api_key=api_key)

        self.model_name = model_name
        self.embedding_model = embedding_model
        self.timeout = timeout

    def _build_model(self, system_instruction: Optional[str], temperature: Optional[float]):
        return genai.GenerativeModel(
            model_name=self.model_name,
            generation_config=get_generation_config(temperature),
            safety_settings=SAFETY_SETTINGS,
            system_instruction=system_instruction,
        )

    def chat(
        self,
        messages: List[Message],
        stream: bool = False,
        cancel_token: Optional[CancellationToken] = None,
        temperature: Optional[float] = None,
    ) -> Union[str, FragmentStream]:
        """
        Send a conversation to Gemini.

        Args:
            messages: [{"role": "system"|"user"|"assistant", "content": str}]
            stream: Return a FragmentStream instead of the complete text
            cancel_token: Token that stops the stream when cancelled
            temperature: Sampling temperature (overrides default)

        Returns:
            Complete text, or a FragmentStream when stream=True

        Raises:
            GenerationTimeout: If the call exceeded the timeout
            GenerationError: On any other failure or an empty reply
        """
        if stream:
            return self._stream(messages, cancel_token, temperature)
        return self._complete(messages, temperature)

    @observe(name="gemini_chat", as_type="generation")
    def _complete(self, messages: List[Message], temperature: Optional[float]) -> str:
        system_instruction, contents = split_messages(messages)
        model = self._build_model(system_instruction, temperature)

        start_time = time.time()
        try:
            response = model.generate_content(
                contents,
                request_options={"timeout": self.timeout},
            )
            if not response.candidates:
                raise GenerationError("No response candidates returned from Gemini API")
            text = response.text
        except Exception as e:
            error = _map_error(e)
            logger.error(f"❌ Gemini call failed: {error}")
            raise error from e
        latency = time.time() - start_time

        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            client = get_langfuse_client()
            if client is not None:
                client.update_current_generation(
                    model=self.model_name,
                    usage_details={
                        "input": usage.prompt_token_count,
                        "output": usage.candidates_token_count,
                        "total": usage.total_token_count,
                    },
                )
            logger.debug(
                f"📊 Tokens: {usage.prompt_token_count} in, "
                f"{usage.candidates_token_count} out, "
                f"⏱️  {latency:.2f}s"
            )

        return text

    def _stream(
        self,
        messages: List[Message],
        cancel_token: Optional[CancellationToken],
        temperature: Optional[float],
    ) -> FragmentStream:
        system_instruction, contents = split_messages(messages)
        model = self._build_model(system_instruction, temperature)

        try:
            response = model.generate_content(
                contents,
                stream=True,
                request_options={"timeout": self.timeout},
            )
        except Exception as e:
            error = _map_error(e)
            logger.error(f"❌ Gemini stream failed to start: {error}")
            raise error from e

        return FragmentStream(self._iter_fragments(response), cancel_token)

    @staticmethod
    def _iter_fragments(response) -> Iterator[str]:
        try:
            for chunk in response:
                try:
                    text = chunk.text
                except ValueError:
                    # Chunks without text parts (safety or finish metadata)
                    continue
                if text:
                    yield text
        except Exception as e:
            error = _map_error(e)
            logger.error(f"❌ Gemini stream interrupted: {error}")
            raise error from e

    @observe(name="gemini_embed")
    def embed(self, text: str) -> List[float]:
        """Embed text with the configured embedding model."""
        try:
            result = genai.embed_content(
                model=self.embedding_model,
                content=text,
                request_options={"timeout": self.timeout},
            )
        except Exception as e:
            raise _map_error(e) from e
        return list(result["embedding"])


# ============================================================================
# BACKEND SINGLETON
# ============================================================================

_backend: Optional[GeminiBackend] = None
_backend_lock = threading.Lock()


def get_backend() -> GeminiBackend:
    """Get the shared GeminiBackend, constructing it on first use."""
    global _backend
    with _backend_lock:
        if _backend is None:
            _backend = GeminiBackend()
            logger.info(f"✅ Gemini backend ready ({_backend.model_name})")
    return _backend


# ============================================================================
# HEALTH CHECK
# ============================================================================

def health_check(backend: Optional[GenerativeBackend] = None) -> Dict[str, Any]:
    """
    Perform a health check on the generative backend.

    Args:
        backend: Backend to probe (defaults to the shared GeminiBackend)

    Returns:
        Dict with service status information
    """
    status = {
        "gemini_api": "unknown",
        "langfuse": "unknown",
        "model": GEMINI_MODEL,
    }

    try:
        backend = backend or get_backend()
        reply = backend.chat(
            [{"role": "user", "content": "Say 'OK' if you can read this."}],
            temperature=0.0,
        )
        status["gemini_api"] = "healthy" if "ok" in reply.lower() else "degraded"
    except (GenerationError, ValueError) as e:
        status["gemini_api"] = f"error: {str(e)[:100]}"

    client = get_langfuse_client()
    if client is not None:
        try:
            client.flush()
            status["langfuse"] = "connected"
        except Exception as e:
            status["langfuse"] = f"error: {str(e)[:50]}"
    else:
        status["langfuse"] = "disabled"

    return status
