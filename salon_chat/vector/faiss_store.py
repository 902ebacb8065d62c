"""
FAISS-backed vector index for catalog records, persisted next to the SQLite database.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
import numpy as np
import faiss

from .types import VectorRecord, QueryResult, rank_results
from .index import IVectorStore
from ..util.logging import logger

# Extra candidates fetched beyond top_k so equal scores can be re-ranked by id
_CANDIDATE_FLOOR = 64


class FaissVectorStore(IVectorStore):
    """FAISS-backed implementation of IVectorStore."""

    def __init__(self, dimension: int = 768, index_path: Optional[str] = None):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Dimension of the vectors (768 for bge-base embeddings)
            index_path: Where save()/load() keep the index; a `.json` sidecar holds ids and metadata
        """
        self.dimension = dimension
        self.index_path = index_path

        # Inner product over normalized vectors is cosine similarity
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))

        self.id_to_vector_index = {}  # record ID -> faiss int64 id
        self.vector_id_map = {}       # faiss int64 id -> record ID
        self.id_to_metadata = {}
        self.next_vector_index = 0

    def _normalize(self, vector) -> Optional[np.ndarray]:
        array = np.asarray(vector, dtype=np.float32).reshape(-1)
        if array.shape[0] != self.dimension:
            raise ValueError(f"Vector dimension {array.shape[0]} does not match expected dimension {self.dimension}")
        norm = np.linalg.norm(array)
        if norm == 0:
            return None
        return array / norm

    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the FAISS store, replacing an existing one."""
        self.batch_add([record])

    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the FAISS store."""
        vectors_to_add = []
        valid_records = []

        for record in records:
            if record.vector is None or len(record.vector) == 0:
                continue

            normalized = self._normalize(record.vector)
            if normalized is None:
                logger.log_vector_operation("skipped", record.id, {"reason": "zero vector"}, status="skipped")
                continue

            if record.id in self.id_to_vector_index:
                self.delete(record.id)

            vectors_to_add.append(normalized)
            valid_records.append(record)

        if not vectors_to_add:
            return

        faiss_ids = np.arange(self.next_vector_index, self.next_vector_index + len(valid_records), dtype=np.int64)
        self.index.add_with_ids(np.vstack(vectors_to_add).astype(np.float32), faiss_ids)

        for faiss_id, record in zip(faiss_ids.tolist(), valid_records):
            self.id_to_vector_index[record.id] = faiss_id
            self.vector_id_map[faiss_id] = record.id
            self.id_to_metadata[record.id] = dict(record.metadata or {})

        self.next_vector_index += len(valid_records)

    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self.index.ntotal or top_k <= 0:
            return []

        normalized_query = self._normalize(query_vector)
        if normalized_query is None:
            return []

        k = min(self.index.ntotal, max(top_k * 4, _CANDIDATE_FLOOR))
        scores, indices = self.index.search(normalized_query.reshape(1, -1), k)

        candidates = []
        for score, faiss_id in zip(scores[0].tolist(), indices[0].tolist()):
            if faiss_id == -1 or faiss_id not in self.vector_id_map:
                continue
            record_id = self.vector_id_map[faiss_id]
            candidates.append(QueryResult(
                id=record_id,
                score=float(score),
                metadata=self.id_to_metadata.get(record_id, {})
            ))

        return rank_results(candidates, top_k)

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        faiss_id = self.id_to_vector_index.pop(record_id, None)
        if faiss_id is None:
            return
        self.index.remove_ids(np.array([faiss_id], dtype=np.int64))
        self.vector_id_map.pop(faiss_id, None)
        self.id_to_metadata.pop(record_id, None)

    def clear(self) -> None:
        """Clear all records from the FAISS store."""
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))
        self.id_to_vector_index.clear()
        self.vector_id_map.clear()
        self.id_to_metadata.clear()
        self.next_vector_index = 0

    def stats(self) -> Dict[str, Any]:
        return {"provider": "faiss", "count": int(self.index.ntotal), "dimension": self.dimension}

    def _sidecar_path(self) -> str:
        return f"{self.index_path}.json"

    def save(self) -> None:
        """Write the index and its id map to `index_path`."""
        if not self.index_path:
            return
        Path(self.index_path).parent.mkdir(parents=True, exist_ok=True)
        # Write beside the target and rename, so readers never see a partial file
        faiss.write_index(self.index, f"{self.index_path}.tmp")
        os.replace(f"{self.index_path}.tmp", self.index_path)
        with open(f"{self._sidecar_path()}.tmp", "w", encoding="utf-8") as f:
            json.dump({
                "dimension": self.dimension,
                "next_vector_index": self.next_vector_index,
                "ids": self.id_to_vector_index,
                "metadata": self.id_to_metadata
            }, f)
        os.replace(f"{self._sidecar_path()}.tmp", self._sidecar_path())
        logger.log_vector_operation("saved", self.index_path, {"count": int(self.index.ntotal)})

    def load(self) -> bool:
        """Load a previously saved index. Returns False when none exists."""
        if not self.index_path or not os.path.exists(self.index_path) or not os.path.exists(self._sidecar_path()):
            return False

        with open(self._sidecar_path(), "r", encoding="utf-8") as f:
            sidecar = json.load(f)

        if sidecar.get("dimension") != self.dimension:
            raise ValueError(
                f"Saved index dimension {sidecar.get('dimension')} does not match configured dimension {self.dimension}"
            )

        self.index = faiss.read_index(self.index_path)
        self.id_to_vector_index = {rid: int(fid) for rid, fid in sidecar.get("ids", {}).items()}
        self.vector_id_map = {fid: rid for rid, fid in self.id_to_vector_index.items()}
        self.id_to_metadata = sidecar.get("metadata", {})
        self.next_vector_index = int(sidecar.get("next_vector_index", len(self.id_to_vector_index)))
        logger.log_vector_operation("loaded", self.index_path, {"count": int(self.index.ntotal)})
        return True
