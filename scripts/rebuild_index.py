#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds the service vector index from the SQLite catalog after the index was
lost or the embedding model changed.
"""

import argparse
import sys

from salon_chat.core.config import get_embedding_provider, get_vector_store
from salon_chat.core.catalog import CatalogStore
from salon_chat.core.errors import DependencyError
from salon_chat.core.ingest import embed_text_for, rebuild_index


def main(argv=None):
    parser = argparse.ArgumentParser(description="Rebuild the service vector index from the catalog")
    parser.add_argument(
        "--verify", action="store_true",
        help="Run a search for the first service after rebuilding"
    )
    args = parser.parse_args(argv)

    print("Starting vector index rebuild...")

    vector_store = get_vector_store()
    embedding_provider = get_embedding_provider()

    try:
        records = CatalogStore().list_services()
        print(f"Found {len(records)} services in catalog")
        failed = rebuild_index(records, embedding_provider, vector_store)
    except DependencyError as e:
        print(f"ERROR: Rebuild failed: {e.message}")
        return 1

    for record_id in failed:
        print(f"ERROR: Failed to embed service {record_id}")

    print(f"✓ Rebuilt index with {len(records) - len(failed)} vectors")

    if args.verify and records:
        results = vector_store.search(embedding_provider.embed_text(embed_text_for(records[0])), 3)
        print(f"✓ Verification search returned {len(results)} results")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
