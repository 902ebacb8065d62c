"""
Runtime configuration for the salon chat service.
Every setting is read from the environment once at import; getters below build
the shared providers from these values.
"""

import os
import threading
from pathlib import Path

from ..util.logging import logger

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/salon_chat.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Vector index configuration
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "faiss")  # faiss|memory
FAISS_INDEX_PATH = os.getenv("FAISS_INDEX_PATH", "./data/salon_services.faiss")

# Embedding configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "sentence_transformers")  # sentence_transformers|ollama|hash
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "BAAI/bge-base-en-v1.5")
EMBED_DIM = int(os.getenv("EMBED_DIM", "768"))

# Completion configuration
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "llama3:8b-instruct")
AVAILABLE_MODELS = [
    m.strip() for m in os.getenv("AVAILABLE_MODELS", DEFAULT_MODEL).split(",") if m.strip()
]

# Retrieval
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# Generation parameters
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "500"))
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
TOP_P = float(os.getenv("TOP_P", "0.9"))
TOP_K = int(os.getenv("TOP_K", "40"))
FREQUENCY_PENALTY = float(os.getenv("FREQUENCY_PENALTY", "0.0"))
PRESENCE_PENALTY = float(os.getenv("PRESENCE_PENALTY", "0.0"))

# Per-call timeouts for external dependencies
EMBED_TIMEOUT_SEC = float(os.getenv("EMBED_TIMEOUT_SEC", "10"))
VECTOR_TIMEOUT_SEC = float(os.getenv("VECTOR_TIMEOUT_SEC", "5"))
COMPLETION_TIMEOUT_SEC = float(os.getenv("COMPLETION_TIMEOUT_SEC", "60"))

# Prompt and HTTP surface
SALON_NAME = os.getenv("SALON_NAME", "Apotheca Salon")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
FALLBACK_REPLY = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Please try again in a moment or contact the salon directly for assistance."
)

# Version string
VERSION = "1.0.0"

_vector_store = None
_vector_store_stamp = None
_vector_store_lock = threading.Lock()
_embedding_provider = None
_completion_provider = None


def _index_stamp():
    """Modification times of the saved index and its sidecar; None for a missing file."""
    stamp = []
    for path in (FAISS_INDEX_PATH, f"{FAISS_INDEX_PATH}.json"):
        try:
            stamp.append(os.stat(path).st_mtime_ns)
        except OSError:
            stamp.append(None)
    return tuple(stamp)


def get_vector_store():
    """
    Get the process-wide vector store.

    The FAISS store is reloaded whenever the saved index files change on disk,
    so a rebuild by the ingestion script reaches a running server. A reload that
    fails keeps serving the previously loaded index.
    """
    global _vector_store, _vector_store_stamp
    if VECTOR_PROVIDER != "faiss":
        if _vector_store is None:
            from ..vector.index import SimpleInMemoryVectorStore
            _vector_store = SimpleInMemoryVectorStore()
        return _vector_store

    with _vector_store_lock:
        stamp = _index_stamp()
        if _vector_store is not None and stamp == _vector_store_stamp:
            return _vector_store

        from ..vector.faiss_store import FaissVectorStore
        store = FaissVectorStore(dimension=EMBED_DIM, index_path=FAISS_INDEX_PATH)
        try:
            store.load()
        except (ValueError, RuntimeError, OSError) as e:
            if _vector_store is None:
                raise
            logger.log_dependency_failure("vector_index", e, action="degraded")
            return _vector_store

        _vector_store = store
        _vector_store_stamp = stamp
        return _vector_store


def get_embedding_provider():
    """Get the process-wide embedding provider."""
    global _embedding_provider
    if _embedding_provider is not None:
        return _embedding_provider

    if EMBED_PROVIDER == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        provider = DeterministicHashEmbedding(dimension=EMBED_DIM)
    elif EMBED_PROVIDER == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        provider = OllamaEmbedding(model_name=EMBED_MODEL_NAME, host=OLLAMA_HOST, timeout=EMBED_TIMEOUT_SEC)
    else:
        from ..vector.embeddings import SentenceTransformerEmbedding
        provider = SentenceTransformerEmbedding(model_name=EMBED_MODEL_NAME)

    _embedding_provider = provider
    return _embedding_provider


def get_completion_provider():
    """Get the process-wide completion provider."""
    global _completion_provider
    if _completion_provider is None:
        from ..agents.completion import OllamaCompletionProvider
        _completion_provider = OllamaCompletionProvider(host=OLLAMA_HOST, timeout=COMPLETION_TIMEOUT_SEC)
    return _completion_provider


def reset_providers():
    """Drop cached providers so the next getter call rebuilds them."""
    global _vector_store, _vector_store_stamp, _embedding_provider, _completion_provider
    _vector_store = None
    _vector_store_stamp = None
    _embedding_provider = None
    _completion_provider = None


def get_generation_params():
    """Build generation parameters from the configured defaults."""
    from ..agents.completion import GenerationParams
    return GenerationParams(
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        top_p=TOP_P,
        top_k=TOP_K,
        frequency_penalty=FREQUENCY_PENALTY,
        presence_penalty=PRESENCE_PENALTY,
    )


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if VECTOR_PROVIDER not in ["faiss", "memory"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_PROVIDER not in ["sentence_transformers", "ollama", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if RETRIEVAL_TOP_K < 1:
        issues.append("RETRIEVAL_TOP_K must be >= 1")

    if MAX_TOKENS < 1:
        issues.append("MAX_TOKENS must be >= 1")

    if not 0.0 <= TOP_P <= 1.0:
        issues.append("TOP_P must be between 0 and 1")

    for name, value in (("EMBED_TIMEOUT_SEC", EMBED_TIMEOUT_SEC),
                        ("VECTOR_TIMEOUT_SEC", VECTOR_TIMEOUT_SEC),
                        ("COMPLETION_TIMEOUT_SEC", COMPLETION_TIMEOUT_SEC)):
        if value <= 0:
            issues.append(f"{name} must be > 0")

    if not DEFAULT_MODEL.strip():
        issues.append("DEFAULT_MODEL must not be empty")

    return issues
