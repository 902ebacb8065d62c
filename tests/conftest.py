"""
Shared fixtures: temporary SQLite stores, the in-memory index and fake providers.
"""

import os
import tempfile

# Keep every default-path store out of the working tree and away from model downloads
os.environ.setdefault('DB_PATH', os.path.join(tempfile.mkdtemp(), 'salon_chat_test.db'))
os.environ.setdefault('EMBED_PROVIDER', 'hash')
os.environ.setdefault('VECTOR_PROVIDER', 'memory')

import pytest

from salon_chat.agents.completion import ICompletionProvider
from salon_chat.agents.orchestrator import RetrievalOrchestrator
from salon_chat.core.catalog import CatalogStore
from salon_chat.core.errors import DependencyError
from salon_chat.core.sessions import SessionStore
from salon_chat.core.settings_store import SettingsStore
from salon_chat.vector import DeterministicHashEmbedding, SimpleInMemoryVectorStore

SAMPLE_SERVICES = [
    {
        "id": "svc-balayage",
        "name": "Balayage",
        "category": "Color",
        "price_from": 180,
        "description": "Hand-painted highlights for a soft, sun-kissed finish.",
        "details": {
            "treatment_options": ["Partial", "Full"],
            "optional_addons": [{"name": "Gloss", "price": "35"}],
            "not_for": ["Recently permed hair"]
        }
    },
    {
        "id": "svc-haircut",
        "name": "Women's Haircut",
        "category": "Cut",
        "price": "$65",
        "description": "Consultation, wash, precision cut and blow-dry."
    },
    {
        "id": "svc-keratin",
        "name": "Keratin Smoothing Treatment",
        "category": "Treatment",
        "price": "$250",
        "description": "Reduces frizz and smooths hair for up to three months.",
        "details": {"unit": "treatment"}
    }
]


class FakeCompletionProvider(ICompletionProvider):
    """Records every call; replies or fails per model."""

    def __init__(self, reply="Happy to help!", failing_models=(), models=None):
        self.reply = reply
        self.failing_models = set(failing_models)
        self.models = models if models is not None else ["llama3:8b-instruct", "mistral:7b"]
        self.calls = []

    def complete(self, model, messages, params=None):
        self.calls.append({"model": model, "messages": [dict(m) for m in messages], "params": params})
        if model in self.failing_models or "*" in self.failing_models:
            raise DependencyError(f"model {model} unavailable", dependency="completion")
        return self.reply

    def list_models(self):
        return list(self.models)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "salon_chat.db")


@pytest.fixture
def session_store(db_path):
    return SessionStore(db_path)


@pytest.fixture
def catalog(db_path):
    return CatalogStore(db_path)


@pytest.fixture
def settings_store(db_path):
    return SettingsStore(db_path)


@pytest.fixture
def embedder():
    return DeterministicHashEmbedding(dimension=512)


@pytest.fixture
def vector_store():
    return SimpleInMemoryVectorStore()


@pytest.fixture
def completion():
    return FakeCompletionProvider()


@pytest.fixture
def sample_services():
    return [dict(s) for s in SAMPLE_SERVICES]


@pytest.fixture
def ingested(catalog, embedder, vector_store):
    """Catalog and index loaded with SAMPLE_SERVICES."""
    from salon_chat.core.ingest import ingest_services
    return ingest_services(SAMPLE_SERVICES, embedder, vector_store, catalog=catalog)


@pytest.fixture
def orchestrator(session_store, catalog, settings_store, vector_store, embedder, completion):
    return RetrievalOrchestrator(
        session_store=session_store,
        catalog=catalog,
        settings=settings_store,
        vector_store=vector_store,
        embedding_provider=embedder,
        completion_provider=completion,
        top_k=2
    )


@pytest.fixture
def completion_factory():
    """Build extra fake completion providers with custom behaviour."""
    return FakeCompletionProvider
