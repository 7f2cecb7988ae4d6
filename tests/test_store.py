#!/usr/bin/env python3
"""Tests for the SQLAlchemy-backed knowledge and fact stores (in-memory SQLite)."""

import os
import sys
import threading
import time
import unittest

from sqlalchemy.orm import sessionmaker

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from backend.app.errors import InsufficientHistory, KnowledgeBaseError
from backend.app.knowledge import add_entry, delete_entry
from backend.app.series import SeriesAggregator
from backend.data.database import create_tables, make_engine
from backend.data.store import FactStore, KnowledgeStore
from backend.schemas.io_models import FactRow, KnowledgeEntry


def memory_session_factory():
    engine = make_engine("sqlite://")
    create_tables(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class TestKnowledgeStore(unittest.TestCase):

    def setUp(self):
        self.store = KnowledgeStore(memory_session_factory())

    def test_empty_store(self):
        self.assertEqual(self.store.load_knowledge_base(), [])

    def test_round_trip_keeps_insertion_order(self):
        entries = [
            KnowledgeEntry(id="z", category="shipping", question="发货", answer="48 小时内发货"),
            KnowledgeEntry(id="a", category="pricing", question="价格", answer="活动价 2599 元"),
        ]
        self.store.save_knowledge_base(entries)
        self.assertEqual(self.store.load_knowledge_base(), entries)

    def test_save_replaces_whole_collection(self):
        self.store.save_knowledge_base([KnowledgeEntry(id="old", question="q", answer="a")])
        self.store.save_knowledge_base([KnowledgeEntry(id="new", question="q2", answer="a2")])
        self.assertEqual([e.id for e in self.store.load_knowledge_base()], ["new"])

    def test_duplicate_ids_rejected_without_touching_store(self):
        self.store.save_knowledge_base([KnowledgeEntry(id="k1", question="q", answer="a")])
        duplicates = [
            KnowledgeEntry(id="k2", question="q", answer="a"),
            KnowledgeEntry(id="k2", question="q", answer="b"),
        ]
        with self.assertRaises(KnowledgeBaseError):
            self.store.save_knowledge_base(duplicates)
        self.assertEqual([e.id for e in self.store.load_knowledge_base()], ["k1"])

    def test_modify_applies_change_and_returns_new_collection(self):
        self.store.save_knowledge_base([KnowledgeEntry(id="k1", question="q", answer="a")])
        entry = KnowledgeEntry(id="k2", question="q2", answer="a2")
        result = self.store.modify_knowledge_base(lambda entries: add_entry(entries, entry))
        self.assertEqual([e.id for e in result], ["k1", "k2"])
        self.assertEqual(self.store.load_knowledge_base(), result)

    def test_failed_modify_leaves_store_untouched(self):
        self.store.save_knowledge_base([KnowledgeEntry(id="k1", question="q", answer="a")])
        with self.assertRaises(KnowledgeBaseError):
            self.store.modify_knowledge_base(lambda entries: delete_entry(entries, "missing"))
        self.assertEqual([e.id for e in self.store.load_knowledge_base()], ["k1"])

    def test_concurrent_adds_are_all_kept(self):
        def slow_add(entry):
            def change(entries):
                # widen the gap between load and save
                time.sleep(0.05)
                return add_entry(entries, entry)
            return change

        entries = [KnowledgeEntry(id=f"k{i}", question=f"q{i}", answer="a") for i in range(4)]
        threads = [
            threading.Thread(target=self.store.modify_knowledge_base, args=(slow_add(entry),))
            for entry in entries
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(e.id for e in self.store.load_knowledge_base()), ["k0", "k1", "k2", "k3"])


class TestFactStore(unittest.TestCase):

    def setUp(self):
        factory = memory_session_factory()
        self.store = FactStore(factory)
        self.other_source = FactStore(factory, source="jingzhuntong")

    def test_query_is_inclusive_and_scoped_to_source(self):
        self.store.bulk_add([
            FactRow(identifier="A", date="2023-12-31", quantity=1),
            FactRow(identifier="A", date="2024-01-01", quantity=2),
            FactRow(identifier="B", date="2024-01-15", quantity=3),
            FactRow(identifier="A", date="2024-01-31", quantity=4),
            FactRow(identifier="A", date="2024-02-01", quantity=5),
        ])
        self.other_source.bulk_add([FactRow(identifier="A", date="2024-01-10", quantity=99)])

        rows = self.store.query_fact_rows("2024-01-01", "2024-01-31")
        self.assertEqual(
            sorted((r.identifier, r.date, r.quantity) for r in rows),
            [("A", "2024-01-01", 2), ("A", "2024-01-31", 4), ("B", "2024-01-15", 3)],
        )

    def test_bulk_add_counts_and_neutralises_bad_quantities(self):
        count = self.store.bulk_add([
            FactRow(identifier="A", date="2024-01-01", quantity="7"),
            FactRow(identifier="A", date="2024-01-02", quantity="n/a"),
            FactRow(identifier="A", date="2024-01-03", quantity=10 ** 400),
        ])
        self.assertEqual(count, 3)
        quantities = {r.date: r.quantity for r in self.store.query_fact_rows("2024-01-01", "2024-01-03")}
        self.assertEqual(quantities, {"2024-01-01": 7, "2024-01-02": None, "2024-01-03": None})

    def test_clear_only_touches_own_source(self):
        self.store.bulk_add([FactRow(identifier="A", date="2024-01-01", quantity=1)])
        self.other_source.bulk_add([FactRow(identifier="A", date="2024-01-01", quantity=1)])
        self.store.clear()
        self.assertEqual(self.store.query_fact_rows("2024-01-01", "2024-01-01"), [])
        self.assertEqual(len(self.other_source.query_fact_rows("2024-01-01", "2024-01-01")), 1)

    def test_store_rows_feed_the_aggregator(self):
        self.store.bulk_add([
            FactRow(identifier="A", date="2024-01-02", quantity=5),
            FactRow(identifier="A", date="2024-01-01", quantity=3),
            FactRow(identifier="A", date="2024-01-01", quantity=2),
        ])
        rows = self.store.query_fact_rows("2024-01-01", "2024-01-31")
        aggregator = SeriesAggregator()
        series = aggregator.aggregate(rows, "A", "2024-01-01", "2024-01-31", 2)
        self.assertEqual([(p.date, p.value) for p in series], [("2024-01-01", 5), ("2024-01-02", 5)])
        with self.assertRaises(InsufficientHistory):
            aggregator.aggregate(rows, "A", "2024-01-01", "2024-01-31", 3)


if __name__ == "__main__":
    unittest.main()
