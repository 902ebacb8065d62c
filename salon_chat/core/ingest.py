"""
Catalog ingestion: replaces the whole service catalog and rebuilds the vector
index from it, so catalog rows and vectors never drift apart.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog import CatalogStore
from .errors import DependencyError
from .prompt import render_service
from .schema import CatalogRecord, ServiceDetails
from ..util.logging import logger
from ..vector.types import VectorRecord


@dataclass
class IngestReport:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def normalize_service(raw: Dict[str, Any]) -> CatalogRecord:
    """
    Build a catalog record from one raw service entry.

    Accepts either a display `price` or a numeric `price_from`.

    Raises:
        ValueError: when the service has no name
    """
    name = _text(raw.get("name"))
    if not name:
        raise ValueError("Missing service name")

    price = _text(raw.get("price"))
    if not price and raw.get("price_from") is not None:
        price = f"From ${_text(raw.get('price_from'))}"

    return CatalogRecord(
        id=_text(raw.get("id")) or str(uuid.uuid4()),
        name=name,
        category=_text(raw.get("category")) or "Uncategorized",
        price=price or "Price varies",
        description=_text(raw.get("description")),
        details=ServiceDetails.from_payload(raw.get("details"))
    )


def embed_text_for(record: CatalogRecord) -> str:
    """Text embedded for a service: the same labeled lines used in prompts."""
    return render_service(record)


def _embed_records(records: List[CatalogRecord], embedding_provider):
    """Embed each record. Returns (vector records, ids that failed)."""
    vectors, failed = [], []
    for record in records:
        try:
            vector = embedding_provider.embed_text(embed_text_for(record))
        except Exception as e:
            logger.log_vector_operation("embed", record.id, {"error": str(e)}, status="failed")
            failed.append(record.id)
            continue
        vectors.append(VectorRecord(
            id=record.id,
            vector=vector,
            metadata={"name": record.name, "category": record.category}
        ))
    return vectors, failed


def _write_index(vectors: List[VectorRecord], vector_store) -> None:
    vector_store.clear()
    for vector in vectors:
        vector_store.upsert(vector)
    if hasattr(vector_store, "save"):
        try:
            vector_store.save()
        except (OSError, RuntimeError) as e:
            raise DependencyError("Failed to save vector index", dependency="vector_index") from e
    logger.log_vector_operation("rebuilt", "*", {"count": len(vectors)})


def rebuild_index(records: List[CatalogRecord], embedding_provider, vector_store) -> List[str]:
    """Clear the index and re-embed existing catalog records. Returns ids that failed to embed."""
    vectors, failed = _embed_records(records, embedding_provider)
    _write_index(vectors, vector_store)
    return failed


def ingest_services(raw_services: List[Dict[str, Any]], embedding_provider, vector_store,
                    catalog: Optional[CatalogStore] = None) -> IngestReport:
    """
    Replace the catalog with `raw_services` and rebuild the index from it.

    Every service is embedded before anything is written; services that fail
    validation or embedding, and repeats of an id already seen, are left out of
    both the catalog and the index.

    Raises:
        DependencyError: when the catalog or the index cannot be written
    """
    catalog = catalog or CatalogStore()
    report = IngestReport(processed=len(raw_services))

    records, seen_ids = [], set()
    for raw in raw_services:
        try:
            record = normalize_service(raw)
        except ValueError as e:
            report.failed += 1
            report.results.append({"success": False, "name": _text(raw.get("name")) or "Unnamed service", "error": str(e)})
            continue
        # First occurrence of an id wins
        if record.id in seen_ids:
            report.failed += 1
            report.results.append({"success": False, "id": record.id, "name": record.name,
                                   "error": "Duplicate service id"})
            continue
        seen_ids.add(record.id)
        records.append(record)

    vectors, failed_ids = _embed_records(records, embedding_provider)
    failed_ids = set(failed_ids)
    kept = [r for r in records if r.id not in failed_ids]

    # The index is written inside the catalog transaction, so a failed index
    # write leaves the previous catalog in place
    catalog.replace_all(kept, before_commit=lambda: _write_index(vectors, vector_store))

    for record in records:
        if record.id in failed_ids:
            report.failed += 1
            report.results.append({"success": False, "id": record.id, "name": record.name, "error": "Embedding failed"})
        else:
            report.succeeded += 1
            report.results.append({"success": True, "id": record.id, "name": record.name})

    logger.log_ingestion(report.processed, report.succeeded, report.failed)
    return report
