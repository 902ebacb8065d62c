"""
Catalog store: salon service records keyed by id.
Read-only for the chat pipeline; ingestion replaces the whole table at once.
"""

import json
from typing import Callable, Iterable, List, Optional

from .db import DB_ERRORS, get_db, init_db
from .errors import DependencyError
from .schema import CatalogRecord, ServiceDetails
from ..util.logging import logger

_COLUMNS = "id, name, category, price, description, details"


def _row_to_record(row) -> CatalogRecord:
    id_, name, category, price, description, details = row
    return CatalogRecord(
        id=id_,
        name=name,
        category=category,
        price=price,
        description=description,
        details=ServiceDetails.from_payload(details)
    )


class CatalogStore:
    """SQLite-backed salon service catalog."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    def get_services(self, ids: Iterable[str]) -> List[CatalogRecord]:
        """
        Hydrate records for the given ids.

        Results follow the order of `ids`; ids with no catalog row are dropped.
        """
        ids = [i for i in ids if i]
        if not ids:
            return []

        placeholders = ",".join("?" for _ in ids)
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT {_COLUMNS} FROM salon_services WHERE id IN ({placeholders})",
                    ids
                )
                by_id = {row[0]: _row_to_record(row) for row in cursor.fetchall()}
        except DB_ERRORS as e:
            raise DependencyError("Failed to hydrate catalog records", dependency="catalog") from e

        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    def get_service(self, service_id: str) -> Optional[CatalogRecord]:
        records = self.get_services([service_id])
        return records[0] if records else None

    def list_services(self) -> List[CatalogRecord]:
        """List all services in insertion order."""
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(f"SELECT {_COLUMNS} FROM salon_services ORDER BY rowid")
                return [_row_to_record(row) for row in cursor.fetchall()]
        except DB_ERRORS as e:
            raise DependencyError("Failed to list catalog records", dependency="catalog") from e

    def count_services(self) -> int:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM salon_services")
                return cursor.fetchone()[0]
        except DB_ERRORS as e:
            logger.error(f"Failed to count catalog records: {e}")
            return 0

    def replace_all(self, records: List[CatalogRecord], before_commit: Optional[Callable[[], None]] = None) -> int:
        """
        Delete every record and insert `records` in a single transaction.

        `before_commit` runs once the rows are written but not yet committed; if it
        raises, the transaction is rolled back and the previous catalog is kept.
        """
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM salon_services")
                cursor.executemany(
                    "INSERT INTO salon_services (id, name, category, price, description, details) VALUES (?, ?, ?, ?, ?, ?)",
                    [
                        (r.id, r.name, r.category, r.price, r.description, json.dumps(r.details.to_payload()))
                        for r in records
                    ]
                )
                if before_commit is not None:
                    before_commit()
                conn.commit()
        except DB_ERRORS as e:
            raise DependencyError("Failed to replace catalog", dependency="catalog") from e

        logger.log_operation("catalog.replace_all", "success", {"records": len(records)})
        return len(records)
