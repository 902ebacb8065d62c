"""
Record types for the service vector index.
"""

from typing import Dict, Optional, Sequence, Union
import numpy as np
from dataclasses import dataclass, field


@dataclass
class VectorRecord:
    """Represents a vector record with metadata."""

    id: str
    """Catalog record id this vector belongs to"""

    vector: Optional[Union[np.ndarray, Sequence[float]]]
    """The embedding of the service text"""

    metadata: Dict[str, object] = field(default_factory=dict)
    """Additional metadata (name, category) associated with the vector"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Cosine similarity of the match, higher is more similar"""

    metadata: Dict[str, object] = field(default_factory=dict)
    """Metadata associated with the matched record"""


def rank_results(results, top_k: int):
    """Order by descending score, ties broken by ascending id, and cut to top_k."""
    return sorted(results, key=lambda r: (-r.score, r.id))[:top_k]
