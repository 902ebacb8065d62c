"""
Vector index interface and an in-memory cosine similarity implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List
import numpy as np

from .types import VectorRecord, QueryResult, rank_results


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    @abstractmethod
    def add(self, record: VectorRecord) -> None:
        """Add a single vector record, replacing any vector with the same id."""
        pass

    @abstractmethod
    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the store."""
        pass

    @abstractmethod
    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        """Report record count and dimension."""
        pass

    def upsert(self, record: VectorRecord) -> None:
        """Insert or replace the vector for `record.id`."""
        self.add(record)


class SimpleInMemoryVectorStore(IVectorStore):
    """Simple in-memory implementation of IVectorStore using cosine similarity."""

    def __init__(self):
        self._vectors = {}  # record_id -> VectorRecord
        self._index = {}    # record_id -> normalized_vector (for fast lookup)

    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the store."""
        if record.vector is None:
            return

        vector = np.asarray(record.vector, dtype=np.float32)
        self._vectors[record.id] = record

        # Store normalized vector for similarity calculations
        norm = np.linalg.norm(vector)
        self._index[record.id] = vector / norm if norm > 0 else vector

    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the store."""
        for record in records:
            self.add(record)

    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self._index or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float32)
        norm = np.linalg.norm(query)
        if norm == 0:
            # Return empty results if query vector is zero
            return []

        normalized_query = query / norm

        results = []
        for record_id, stored_vector in self._index.items():
            if stored_vector.shape != normalized_query.shape:
                raise ValueError(
                    f"Query dimension {normalized_query.shape[0]} does not match stored dimension {stored_vector.shape[0]}"
                )
            results.append(QueryResult(
                id=record_id,
                score=float(np.dot(normalized_query, stored_vector)),
                metadata=self._vectors[record_id].metadata
            ))

        return rank_results(results, top_k)

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        self._vectors.pop(record_id, None)
        self._index.pop(record_id, None)

    def clear(self) -> None:
        """Clear all records from the store."""
        self._vectors.clear()
        self._index.clear()

    def stats(self) -> Dict[str, Any]:
        dimension = None
        if self._index:
            dimension = int(next(iter(self._index.values())).shape[0])
        return {"provider": "memory", "count": len(self._index), "dimension": dimension}
