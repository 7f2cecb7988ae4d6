#!/usr/bin/env python3
"""
Data import script for the e-commerce AI backend.

Loads raw sales export CSV files into the fact table and knowledge base JSON
files into the knowledge store.
"""

import os
import sys
import csv
import json
from typing import List

# Allow running from repo root or from backend/
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from backend.app.knowledge import ensure_unique_ids, new_entry_id
from backend.app.series import fact_row_from_record
from backend.data.database import create_tables
from backend.data.store import FactStore, KnowledgeStore
from backend.schemas.io_models import FactRow, KnowledgeEntry


def read_fact_csv(filepath: str) -> List[FactRow]:
    """
    Read a sales export CSV and map each record onto a FactRow.

    Args:
        filepath: Path to the CSV file

    Returns:
        Fact rows; records without identifier or date are skipped
    """
    print(f"Processing CSV file: {filepath}")

    rows = []
    skipped = 0
    with open(filepath, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        for record in reader:
            row = fact_row_from_record(record)
            if row is None:
                skipped += 1
                continue
            rows.append(row)

    print(f"Read {len(rows)} fact rows from {filepath} ({skipped} skipped)")
    return rows


def read_knowledge_json(filepath: str) -> List[KnowledgeEntry]:
    """Read a JSON list of ``{question, answer, category?, id?}`` objects."""
    print(f"Processing JSON file: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{filepath} must contain a JSON list of knowledge entries")

    entries = []
    for item in data:
        entries.append(KnowledgeEntry(
            id=str(item.get("id") or new_entry_id()),
            category=item.get("category", ""),
            question=item["question"],
            answer=item["answer"],
        ))
    ensure_unique_ids(entries)
    return entries


def main():
    """Main function to run the import."""
    import argparse

    parser = argparse.ArgumentParser(description='Import sales history and knowledge base data')
    parser.add_argument('--facts', '-f', nargs='*', default=[],
                        help='Sales export CSV files to append to the fact table')
    parser.add_argument('--source', '-s', default='shangzhi',
                        help='Fact table partition the rows belong to')
    parser.add_argument('--replace', action='store_true',
                        help='Clear the partition before importing')
    parser.add_argument('--knowledge', '-k', default=None,
                        help='Knowledge base JSON file (replaces the stored knowledge base)')

    args = parser.parse_args()

    create_tables()

    fact_store = FactStore(source=args.source)
    if args.replace:
        fact_store.clear()
        print(f"Cleared fact partition '{args.source}'")
    for filepath in args.facts:
        count = fact_store.bulk_add(read_fact_csv(filepath))
        print(f"Imported {count} rows into '{args.source}'")

    if args.knowledge:
        entries = read_knowledge_json(args.knowledge)
        KnowledgeStore().save_knowledge_base(entries)
        print(f"Saved {len(entries)} knowledge entries")

    print("Import completed!")

if __name__ == '__main__':
    main()
