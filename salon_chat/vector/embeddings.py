"""
Embedding providers that turn query and service text into fixed-length vectors.
"""

from abc import ABC, abstractmethod
import hashlib
import re
from typing import Optional

import numpy as np
import ollama
from sentence_transformers import SentenceTransformer

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Each lowercase token is hashed into a bucket with a signed weight, so texts
    that share words get similar vectors. Reproducible across processes and
    needs no model download.
    """

    def __init__(self, dimension: int = 768):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = np.zeros(self.dimension, dtype=np.float32)
        for token in _TOKEN_RE.findall((text or "").lower()):
            digest = hashlib.md5(token.encode()).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimension
            sign = 1.0 if digest[4] % 2 == 0 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to BAAI/bge-base-en-v1.5 (768 dimensions).
    """

    def __init__(self, model_name: str = "BAAI/bge-base-en-v1.5"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embeddings served by a local Ollama instance (e.g. nomic-embed-text)."""

    def __init__(self, model_name: str, host: Optional[str] = None, timeout: Optional[float] = None):
        self.model_name = model_name
        self.client = ollama.Client(host=host, timeout=timeout)
        self._dimension = None

    def embed_text(self, text: str) -> list[float]:
        response = self.client.embed(model=self.model_name, input=text)
        embeddings = response["embeddings"]
        if not embeddings:
            raise ValueError(f"Ollama returned no embedding for model {self.model_name}")
        return list(embeddings[0])

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed_text("dimension check"))
        return self._dimension
