"""Unrecognized term storage (unrecognized_terms)."""

import logging
from typing import Callable, List, Optional, Sequence

from psycopg2 import extras

from ..term_types import UnrecognizedTerm, utcnow
from .base import _as_id

logger = logging.getLogger(__name__)


class UnrecognizedMixin:
    """Frequency rows keyed by (term, category)."""

    def upsert_unrecognized(
        self,
        term: str,
        category: str,
        mutate: Callable[[UnrecognizedTerm], UnrecognizedTerm],
    ) -> UnrecognizedTerm:
        """
        Apply ``mutate`` to the (term, category) row under a row lock.

        A missing row is created with occurrence_count 0 first, so ``mutate``
        always sees a row and concurrent first sightings both count.
        """
        conn = self.pool.getconn()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(
                    "INSERT INTO unrecognized_terms (term, category, occurrence_count) "
                    "VALUES (%s, %s, 0) ON CONFLICT (term, category) DO NOTHING",
                    (term, category),
                )
                cur.execute(
                    "SELECT * FROM unrecognized_terms WHERE term = %s AND category = %s FOR UPDATE",
                    (term, category),
                )
                current = self._row_to_unrecognized(dict(cur.fetchone()))
                updated = mutate(current)
                cur.execute(
                    "UPDATE unrecognized_terms SET occurrence_count = %s, related_film_types = %s, "
                    "expansion_status = %s, rejection_reason = %s, first_seen_at = %s, "
                    "last_seen_at = %s, updated_at = %s WHERE id = %s RETURNING *",
                    (
                        updated.occurrence_count, extras.Json(updated.related_film_types),
                        updated.expansion_status, updated.rejection_reason,
                        updated.first_seen_at, updated.last_seen_at, utcnow(), _as_id(current.id),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
            return self._row_to_unrecognized(dict(row))
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def get_unrecognized(self, row_id) -> Optional[UnrecognizedTerm]:
        key = _as_id(row_id)
        if key is None:
            return None
        row = self._fetch_one("SELECT * FROM unrecognized_terms WHERE id = %s", (key,))
        return self._row_to_unrecognized(row) if row else None

    def find_unrecognized(self, term: str, category: str) -> Optional[UnrecognizedTerm]:
        row = self._fetch_one(
            "SELECT * FROM unrecognized_terms WHERE term = %s AND category = %s",
            (term, category),
        )
        return self._row_to_unrecognized(row) if row else None

    def _unrecognized_filters(self, category, status, min_count, ids):
        id_list = [k for k in (_as_id(i) for i in ids) if k is not None] if ids is not None else None
        return self._where([
            ("category = %s", category),
            ("expansion_status = %s", status),
            ("occurrence_count >= %s", min_count),
            ("id = ANY(%s)", id_list),
        ])

    def list_unrecognized(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        min_count: Optional[int] = None,
        ids: Optional[Sequence] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[UnrecognizedTerm]:
        """Rows ordered by occurrence_count DESC."""
        where, params = self._unrecognized_filters(category, status, min_count, ids)
        query = f"SELECT * FROM unrecognized_terms{where} ORDER BY occurrence_count DESC, id ASC"
        if limit is not None:
            query += " LIMIT %s OFFSET %s"
            params.extend([limit, offset])
        return [self._row_to_unrecognized(r) for r in self._fetch_all(query, tuple(params))]

    def count_unrecognized(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        min_count: Optional[int] = None,
    ) -> int:
        where, params = self._unrecognized_filters(category, status, min_count, None)
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM unrecognized_terms{where}", tuple(params))
        return row["n"] if row else 0

    def set_unrecognized_status(self, row_id, status: str, reason: Optional[str] = None) -> bool:
        key = _as_id(row_id)
        if key is None:
            return False
        return self._execute(
            "UPDATE unrecognized_terms SET expansion_status = %s, rejection_reason = %s, "
            "updated_at = %s WHERE id = %s",
            (status, reason, utcnow(), key),
        ) > 0
