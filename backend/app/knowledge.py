#!/usr/bin/env python3
"""
Knowledge base lookup and maintenance.

Matching is a cheap lexical gate: an entry matches when the query contains its
question, or its question contains the query. The first matching entry in base
order wins; there is no relevance ranking.
"""

import uuid
from typing import List, Optional, Sequence

from ..schemas.io_models import KnowledgeEntry
from ..utils.logger import get_logger
from .errors import KnowledgeBaseError

logger = get_logger()


class KnowledgeMatcher:
    """Finds the grounding entry for a free-text customer question."""

    def match(self, query: str, base: Sequence[KnowledgeEntry]) -> Optional[KnowledgeEntry]:
        """
        Return the first entry whose question and the query contain one another.

        Args:
            query: Customer question as typed by the operator
            base: Knowledge base snapshot in insertion order

        Returns:
            The matching entry, or None to answer without grounding
        """
        for entry in base:
            # a one-character question matches almost any query
            if entry.question in query or query in entry.question:
                logger.debug("[KNOWLEDGE] query matched entry %s (%s)", entry.id, entry.question)
                return entry
        logger.debug("[KNOWLEDGE] no entry matched query of length %d", len(query))
        return None


def new_entry_id() -> str:
    return uuid.uuid4().hex


def add_entry(base: Sequence[KnowledgeEntry], entry: KnowledgeEntry) -> List[KnowledgeEntry]:
    if any(existing.id == entry.id for existing in base):
        raise KnowledgeBaseError(f"Knowledge entry '{entry.id}' already exists", entry.id)
    return list(base) + [entry]


def edit_entry(base: Sequence[KnowledgeEntry], entry: KnowledgeEntry) -> List[KnowledgeEntry]:
    """Replace the entry sharing ``entry.id``, keeping its position."""
    updated = []
    found = False
    for existing in base:
        if existing.id == entry.id:
            updated.append(entry)
            found = True
        else:
            updated.append(existing)
    if not found:
        raise KnowledgeBaseError(f"Knowledge entry '{entry.id}' not found", entry.id)
    return updated


def delete_entry(base: Sequence[KnowledgeEntry], entry_id: str) -> List[KnowledgeEntry]:
    remaining = [existing for existing in base if existing.id != entry_id]
    if len(remaining) == len(base):
        raise KnowledgeBaseError(f"Knowledge entry '{entry_id}' not found", entry_id)
    return remaining


def ensure_unique_ids(entries: Sequence[KnowledgeEntry]) -> None:
    seen = set()
    for entry in entries:
        if entry.id in seen:
            raise KnowledgeBaseError(f"Duplicate knowledge entry id '{entry.id}'", entry.id)
        seen.add(entry.id)
