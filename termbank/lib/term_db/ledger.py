"""Expansion ledger storage (term_expansion_records)."""

import logging
from typing import Any, Dict, List, Optional

from psycopg2 import extras

from ..term_types import MANUAL_REJECTED, ExpansionRecord
from .base import _as_id

logger = logging.getLogger(__name__)


class LedgerMixin:
    """Append-only audit records; only backfill results and rejection are written later."""

    def insert_expansion_record(self, record: ExpansionRecord) -> ExpansionRecord:
        row = self._fetch_one(
            "INSERT INTO term_expansion_records (term_id, term, category, term_type, trigger_count, "
            "bound_film_types, validation_passed, validation_details, expansion_type, expanded_by, "
            "expansion_batch_id, historical_data_cleaned, cleaned_count, provenance, created_at) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) RETURNING *",
            (
                _as_id(record.term_id), record.term, record.category, record.term_type,
                record.trigger_count, extras.Json(record.bound_film_types),
                record.validation_passed, extras.Json(record.validation_details),
                record.expansion_type, record.expanded_by, record.expansion_batch_id,
                record.historical_data_cleaned, record.cleaned_count,
                extras.Json(record.provenance), record.created_at,
            ),
        )
        return self._row_to_record(row)

    def get_expansion_record(self, record_id) -> Optional[ExpansionRecord]:
        key = _as_id(record_id)
        if key is None:
            return None
        row = self._fetch_one("SELECT * FROM term_expansion_records WHERE id = %s", (key,))
        return self._row_to_record(row) if row else None

    def _record_filters(self, term_id, category, keyword, expansion_type):
        return self._where([
            ("term_id = %s", _as_id(term_id) if term_id is not None else None),
            ("category = %s", category),
            ("expansion_type = %s", expansion_type),
            ("term ILIKE %s", f"%{keyword}%" if keyword else None),
        ])

    def list_expansion_records(
        self,
        term_id=None,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        expansion_type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ExpansionRecord]:
        """Records newest first."""
        where, params = self._record_filters(term_id, category, keyword, expansion_type)
        query = f"SELECT * FROM term_expansion_records{where} ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT %s OFFSET %s"
            params.extend([limit, offset])
        return [self._row_to_record(r) for r in self._fetch_all(query, tuple(params))]

    def count_expansion_records(
        self,
        term_id=None,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        expansion_type: Optional[str] = None,
    ) -> int:
        where, params = self._record_filters(term_id, category, keyword, expansion_type)
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM term_expansion_records{where}", tuple(params))
        return row["n"] if row else 0

    def attach_backfill(
        self,
        record_id,
        cleaned_count: int,
        provenance: List[Dict[str, Any]],
        completed: bool,
    ) -> Optional[ExpansionRecord]:
        key = _as_id(record_id)
        if key is None:
            return None
        row = self._fetch_one(
            "UPDATE term_expansion_records SET cleaned_count = %s, provenance = %s, "
            "historical_data_cleaned = %s WHERE id = %s RETURNING *",
            (cleaned_count, extras.Json(provenance), completed, key),
        )
        return self._row_to_record(row) if row else None

    def mark_records_rejected(self, term_id) -> int:
        key = _as_id(term_id)
        if key is None:
            return 0
        return self._execute(
            "UPDATE term_expansion_records SET expansion_type = %s WHERE term_id = %s",
            (MANUAL_REJECTED, key),
        )
