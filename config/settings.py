"""
Application settings and configuration values.

This module centralizes all configuration values including:
- File paths
- API keys and credentials
- Model parameters and call timeouts
- Fuzzy matching thresholds
- Application constants

Environment variables are loaded via python-dotenv.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# PATHS
# ============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
DATA_FILE = Path(os.getenv("DATA_FILE", str(DATA_DIR / "university.json")))

# ============================================================================
# LLM CONFIGURATION
# ============================================================================

# Gemini API Settings
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "models/text-embedding-004")

# Only required once the Gemini backend is actually constructed
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

# Model Parameters
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
CLASSIFIER_TEMPERATURE = float(os.getenv("CLASSIFIER_TEMPERATURE", "0.1"))
TOOL_SELECTION_TEMPERATURE = float(os.getenv("TOOL_SELECTION_TEMPERATURE", "0.2"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "8192"))
TOP_P = float(os.getenv("TOP_P", "0.95"))
TOP_K = int(os.getenv("TOP_K", "40"))

# Timeouts (seconds). Every external call is attempted exactly once.
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "30"))
TOOL_TIMEOUT = float(os.getenv("TOOL_TIMEOUT", "10"))

# Tool calls within one request run on a bounded pool
MAX_TOOL_WORKERS = int(os.getenv("MAX_TOOL_WORKERS", "4"))

# ============================================================================
# LANGFUSE OBSERVABILITY
# ============================================================================

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# Enable/disable Langfuse tracing
LANGFUSE_ENABLED = os.getenv("LANGFUSE_ENABLED", "true").lower() == "true"

if LANGFUSE_ENABLED and (not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY):
    LANGFUSE_ENABLED = False

# ============================================================================
# FUZZY MATCHING THRESHOLDS
# ============================================================================

# Hand-tuned values; kept overridable rather than derived.
INTENT_ACCEPT_THRESHOLD = float(os.getenv("INTENT_ACCEPT_THRESHOLD", "0.5"))
FAST_PATH_CONFIDENCE = float(os.getenv("FAST_PATH_CONFIDENCE", "0.7"))
TYPO_SIMILARITY_THRESHOLD = float(os.getenv("TYPO_SIMILARITY_THRESHOLD", "0.7"))
PREFIX_MATCH_SCORE = float(os.getenv("PREFIX_MATCH_SCORE", "0.75"))
PRIVATE_INDICATOR_SIMILARITY = float(os.getenv("PRIVATE_INDICATOR_SIMILARITY", "0.8"))
FUZZY_VARIANT_SCORE = float(os.getenv("FUZZY_VARIANT_SCORE", "0.85"))
NO_MATCH_CONFIDENCE = float(os.getenv("NO_MATCH_CONFIDENCE", "0.3"))

# ============================================================================
# APPLICATION SETTINGS
# ============================================================================

ASSISTANT_NAME = os.getenv("ASSISTANT_NAME", "Campus Assistant")
INSTITUTION_NAME = os.getenv("INSTITUTION_NAME", "the university")

MAX_RECOMMENDATIONS = 5
MAX_QUERY_LENGTH = 2000

# Header carrying the actor identity set by the upstream auth layer
ACTOR_HEADER = os.getenv("ACTOR_HEADER", "X-Actor-Id")

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# ============================================================================
# DEVELOPMENT / DEBUG SETTINGS
# ============================================================================

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
