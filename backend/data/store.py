"""Persistence for the knowledge base and the historical fact rows.

The pipeline only ever sees snapshots returned from here: the whole knowledge
base, or every fact row inside an inclusive date range.
"""
import threading
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from ..app.knowledge import ensure_unique_ids
from ..app.series import coerce_quantity
from ..schemas.io_models import FactRow, KnowledgeEntry
from ..utils.logger import get_logger
from .database import SessionLocal
from .models import FactRowRecord, KnowledgeEntryRecord

logger = get_logger()


class KnowledgeStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal
        # serializes read-modify-write cycles from concurrent request threads
        self._lock = threading.RLock()

    def load_knowledge_base(self) -> List[KnowledgeEntry]:
        with self._lock:
            db = self.session_factory()
            try:
                records = db.query(KnowledgeEntryRecord).order_by(KnowledgeEntryRecord.position).all()
                return [
                    KnowledgeEntry(id=r.id, category=r.category or "", question=r.question, answer=r.answer)
                    for r in records
                ]
            finally:
                db.close()

    def save_knowledge_base(self, entries: Iterable[KnowledgeEntry]) -> None:
        """Replace the whole collection in one transaction."""
        entries = list(entries)
        ensure_unique_ids(entries)
        with self._lock:
            self._replace(entries)

    def modify_knowledge_base(
        self, change: Callable[[List[KnowledgeEntry]], List[KnowledgeEntry]]
    ) -> List[KnowledgeEntry]:
        """
        Load the knowledge base, apply ``change`` and save the result as one step.

        ``change`` receives the current entries and returns the new list; any
        exception it raises leaves the stored knowledge base untouched.
        """
        with self._lock:
            entries = list(change(self.load_knowledge_base()))
            ensure_unique_ids(entries)
            self._replace(entries)
            return entries

    def _replace(self, entries: List[KnowledgeEntry]) -> None:
        db = self.session_factory()
        try:
            db.query(KnowledgeEntryRecord).delete()
            for position, entry in enumerate(entries):
                db.add(KnowledgeEntryRecord(
                    id=entry.id,
                    position=position,
                    category=entry.category,
                    question=entry.question,
                    answer=entry.answer,
                ))
            db.commit()
            logger.info("[STORE] knowledge base saved with %d entries", len(entries))
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class FactStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None, source: str = "shangzhi"):
        self.session_factory = session_factory or SessionLocal
        self.source = source

    def query_fact_rows(self, start_date: str, end_date: str) -> List[FactRow]:
        """Return every row of this source with ``start_date <= date <= end_date``, unsorted."""
        db = self.session_factory()
        try:
            records = (
                db.query(FactRowRecord)
                .filter(FactRowRecord.source == self.source)
                .filter(FactRowRecord.date >= start_date, FactRowRecord.date <= end_date)
                .all()
            )
            return [FactRow(identifier=r.identifier, date=r.date, quantity=r.quantity) for r in records]
        finally:
            db.close()

    def bulk_add(self, rows: Iterable[FactRow]) -> int:
        """Insert rows in a single transaction and return how many were written."""
        db = self.session_factory()
        count = 0
        try:
            for row in rows:
                db.add(FactRowRecord(
                    source=self.source,
                    identifier=row.identifier,
                    date=row.date,
                    quantity=coerce_quantity(row.quantity),
                ))
                count += 1
            db.commit()
            logger.info("[STORE] imported %d fact rows into %s", count, self.source)
            return count
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def clear(self) -> None:
        db = self.session_factory()
        try:
            db.query(FactRowRecord).filter(FactRowRecord.source == self.source).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
