"""
Standard term storage.

Uniqueness of every surface string (a term, its suffix-normalized form and
each synonym) is enforced by the primary key of ``term_surface_forms``, so
two concurrent inserts claiming the same string cannot both commit.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import psycopg2
from psycopg2 import extras

from ..errors import DuplicateTermError
from ..term_types import StandardTerm, utcnow
from .base import _as_id

logger = logging.getLogger(__name__)

_TERM_COLUMNS = (
    "term, category, term_type, film_types, synonyms, is_auto_expanded, "
    "expansion_source, expansion_reason, review_status, reviewed_by, "
    "reviewed_at, review_comment, usage_count, created_at, updated_at"
)


class TermsMixin:
    """CRUD over standard_terms and term_surface_forms."""

    def _first_taken_surface(self, surfaces: Sequence[str]) -> Optional[str]:
        row = self._fetch_one(
            "SELECT surface FROM term_surface_forms WHERE surface = ANY(%s) "
            "ORDER BY array_position(%s, surface::text) LIMIT 1",
            (list(surfaces), list(surfaces)),
        )
        return row["surface"] if row else None

    def insert_term(self, term: StandardTerm, surfaces: Sequence[Tuple[str, str]]) -> StandardTerm:
        """
        Insert a term and claim its surface strings atomically.

        Args:
            term: Term to insert (id ignored)
            surfaces: (surface, kind) pairs; kind is term/normalized/synonym

        Raises:
            DuplicateTermError: Any surface already belongs to a term
        """
        conn = self.pool.getconn()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(
                    f"INSERT INTO standard_terms ({_TERM_COLUMNS}) "
                    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) "
                    "RETURNING *",
                    (
                        term.term, term.category, term.term_type,
                        extras.Json(term.film_types), extras.Json(term.synonyms),
                        term.is_auto_expanded, term.expansion_source, term.expansion_reason,
                        term.review_status, term.reviewed_by, term.reviewed_at,
                        term.review_comment, term.usage_count, term.created_at, term.updated_at,
                    ),
                )
                row = cur.fetchone()
                for surface, kind in surfaces:
                    cur.execute(
                        "INSERT INTO term_surface_forms (surface, term_id, kind) VALUES (%s, %s, %s)",
                        (surface, row["id"], kind),
                    )
            conn.commit()
            return self._row_to_term(dict(row))
        except psycopg2.IntegrityError as e:
            conn.rollback()
            logger.info(f"Unique violation inserting '{term.term}': {e.pgerror or e}")
            taken = self._first_taken_surface([s for s, _ in surfaces]) or term.term
            raise DuplicateTermError(taken) from e
        finally:
            self.pool.putconn(conn)

    def get_term(self, term_id) -> Optional[StandardTerm]:
        key = _as_id(term_id)
        if key is None:
            return None
        row = self._fetch_one("SELECT * FROM standard_terms WHERE id = %s", (key,))
        return self._row_to_term(row) if row else None

    def find_term_by_surface(self, surface: str) -> Optional[StandardTerm]:
        row = self._fetch_one(
            "SELECT t.* FROM term_surface_forms s JOIN standard_terms t ON t.id = s.term_id "
            "WHERE s.surface = %s",
            (surface,),
        )
        return self._row_to_term(row) if row else None

    def _term_filters(self, category, review_status, term_type, keyword):
        return self._where([
            ("category = %s", category),
            ("review_status = %s", review_status),
            ("term_type = %s", term_type),
            ("(term ILIKE %s OR synonyms::text ILIKE %s)", f"%{keyword}%" if keyword else None),
        ])

    def list_terms(
        self,
        category: Optional[str] = None,
        review_status: Optional[str] = None,
        term_type: Optional[str] = None,
        keyword: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[StandardTerm]:
        """Terms ordered by usage_count DESC, then creation time."""
        where, params = self._term_filters(category, review_status, term_type, keyword)
        if keyword:
            params.append(params[-1])
        query = f"SELECT * FROM standard_terms{where} ORDER BY usage_count DESC, created_at ASC, id ASC"
        if limit is not None:
            query += " LIMIT %s OFFSET %s"
            params.extend([limit, offset])
        return [self._row_to_term(r) for r in self._fetch_all(query, tuple(params))]

    def count_terms(
        self,
        category: Optional[str] = None,
        review_status: Optional[str] = None,
        term_type: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> int:
        where, params = self._term_filters(category, review_status, term_type, keyword)
        if keyword:
            params.append(params[-1])
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM standard_terms{where}", tuple(params))
        return row["n"] if row else 0

    def merge_term(
        self,
        term_id,
        synonyms: Sequence[str],
        film_types: Sequence[str],
        surfaces: Sequence[Tuple[str, str]],
    ) -> Optional[StandardTerm]:
        """
        Replace synonyms/film types with already-merged lists and claim new surfaces.

        Raises:
            DuplicateTermError: A new surface belongs to another term
        """
        key = _as_id(term_id)
        if key is None:
            return None
        conn = self.pool.getconn()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                for surface, kind in surfaces:
                    cur.execute(
                        "INSERT INTO term_surface_forms (surface, term_id, kind) VALUES (%s, %s, %s) "
                        "ON CONFLICT (surface) DO UPDATE SET kind = term_surface_forms.kind "
                        "WHERE term_surface_forms.term_id = EXCLUDED.term_id",
                        (surface, key, kind),
                    )
                    if cur.rowcount == 0:
                        raise DuplicateTermError(surface, f'"{surface}"已被其他标准词使用')
                cur.execute(
                    "UPDATE standard_terms SET synonyms = %s, film_types = %s, updated_at = %s "
                    "WHERE id = %s RETURNING *",
                    (extras.Json(list(synonyms)), extras.Json(list(film_types)), utcnow(), key),
                )
                row = cur.fetchone()
            conn.commit()
            return self._row_to_term(dict(row)) if row else None
        except DuplicateTermError:
            conn.rollback()
            raise
        except psycopg2.IntegrityError as e:
            conn.rollback()
            raise DuplicateTermError(self._first_taken_surface([s for s, _ in surfaces]) or "") from e
        finally:
            self.pool.putconn(conn)

    def update_term_review(
        self,
        term_id,
        review_status: str,
        reviewed_by: Optional[str],
        review_comment: Optional[str],
        reviewed_at=None,
    ) -> Optional[StandardTerm]:
        key = _as_id(term_id)
        if key is None:
            return None
        row = self._fetch_one(
            "UPDATE standard_terms SET review_status = %s, reviewed_by = %s, review_comment = %s, "
            "reviewed_at = %s, updated_at = %s WHERE id = %s RETURNING *",
            (review_status, reviewed_by, review_comment, reviewed_at or utcnow(), utcnow(), key),
        )
        return self._row_to_term(row) if row else None

    def delete_term(self, term_id) -> bool:
        """Delete a term; its surface forms go with it (ON DELETE CASCADE)."""
        key = _as_id(term_id)
        if key is None:
            return False
        return self._execute("DELETE FROM standard_terms WHERE id = %s", (key,)) > 0
