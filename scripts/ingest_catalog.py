#!/usr/bin/env python3
"""
Catalog ingestion utility.

Loads salon services from a JSON file, replaces the service catalog with them
and rebuilds the vector index so both hold exactly the same services.
"""

import argparse
import json
import sys

from salon_chat.core.config import get_embedding_provider, get_vector_store
from salon_chat.core.catalog import CatalogStore
from salon_chat.core.errors import DependencyError
from salon_chat.core.ingest import ingest_services, normalize_service


def load_services(path):
    """Read a JSON list of services, or an object with a `services` list."""
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    if isinstance(payload, dict):
        payload = payload.get("services", [])
    if not isinstance(payload, list):
        raise ValueError("Expected a list of services")
    return payload


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Replace the salon service catalog and rebuild its vector index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s services.json             # Ingest services and rebuild the index
  %(prog)s services.json --dry-run   # Validate entries without writing anything

Each service needs a name; category, price (or price_from), description and
details are optional.
        """
    )

    parser.add_argument(
        "services_file",
        help="Path to a JSON file with the services to ingest"
    )

    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Validate services without touching the catalog or index"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print one line per service"
    )

    args = parser.parse_args(argv)

    try:
        raw_services = load_services(args.services_file)
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read services: {e}")
        return 1

    if args.dry_run:
        invalid, seen_ids = 0, set()
        for raw in raw_services:
            try:
                record = normalize_service(raw)
            except ValueError as e:
                invalid += 1
                print(f"  error {raw.get('name') or 'Unnamed service'}: {e}")
                continue
            if record.id in seen_ids:
                invalid += 1
                print(f"  error {record.name}: Duplicate service id {record.id}")
                continue
            seen_ids.add(record.id)
            if args.verbose:
                print(f"  ok    {record.name} ({record.category}, {record.price})")
        print(f"Validated {len(raw_services)} services, {invalid} invalid")
        return 0 if invalid == 0 else 1

    try:
        report = ingest_services(
            raw_services,
            embedding_provider=get_embedding_provider(),
            vector_store=get_vector_store(),
            catalog=CatalogStore()
        )
    except DependencyError as e:
        print(f"ERROR: Ingestion aborted, previous catalog kept: {e.message}")
        return 1

    if args.verbose:
        for result in report.results:
            status = "ok   " if result["success"] else "error"
            suffix = "" if result["success"] else f": {result['error']}"
            print(f"  {status} {result['name']}{suffix}")

    print(f"Processed {report.processed} services: {report.succeeded} ingested, {report.failed} failed")
    return 0 if report.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
