"""
Expansion Ledger - append-only audit trail of expansion decisions.

One record per decision (auto, ai, manual, direct, import). After creation a
record only gains its backfill result (cleaned count and rewrite provenance)
and, when a reviewer reverses the term, the ``manual-rejected`` type.
Records are never deleted and survive their term.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ..lib.term_types import ExpansionRecord

logger = logging.getLogger(__name__)


def new_batch_id(prefix: str) -> str:
    """Batch ids group records written by one run, e.g. ``auto-1718000000000``."""
    return f"{prefix}-{int(time.time() * 1000)}"


class ExpansionLedger:
    """Thin service over the ledger table."""

    def __init__(self, db):
        self.db = db

    def append(self, record: ExpansionRecord) -> ExpansionRecord:
        stored = self.db.insert_expansion_record(record)
        logger.info(
            f"Ledger: {stored.expansion_type} '{stored.term}' ({stored.category}) "
            f"batch={stored.expansion_batch_id} id={stored.id}"
        )
        return stored

    def get(self, record_id) -> Optional[ExpansionRecord]:
        return self.db.get_expansion_record(record_id)

    def records_for_term(self, term_id) -> List[ExpansionRecord]:
        return self.db.list_expansion_records(term_id=term_id)

    def record_backfill(
        self,
        record_id,
        cleaned_count: int,
        provenance: List[Dict[str, Any]],
        completed: bool,
    ) -> Optional[ExpansionRecord]:
        """
        Attach a backfill run to a record.

        Counts and provenance accumulate across runs so a re-run after a
        partial failure keeps the rewrites of the first run restorable.
        """
        current = self.db.get_expansion_record(record_id)
        if current is None:
            logger.warning(f"Ledger record {record_id} vanished before backfill could be attached")
            return None
        return self.db.attach_backfill(
            record_id,
            current.cleaned_count + cleaned_count,
            current.provenance + list(provenance),
            completed,
        )

    def mark_rejected(self, term_id) -> int:
        count = self.db.mark_records_rejected(term_id)
        logger.info(f"Ledger: {count} record(s) for term id={term_id} marked manual-rejected")
        return count

    def history(
        self,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[ExpansionRecord]:
        return self.db.list_expansion_records(category=category, keyword=keyword, limit=limit, offset=offset)

    def count(self, category: Optional[str] = None, keyword: Optional[str] = None) -> int:
        return self.db.count_expansion_records(category=category, keyword=keyword)

    def all_records(self) -> List[ExpansionRecord]:
        return self.db.list_expansion_records()
