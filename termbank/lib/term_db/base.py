"""
Base mixin for PostgreSQL term storage.

Provides connection pool management and row conversion. All other mixins
depend on the infrastructure defined here.

Key infrastructure:
- ThreadedConnectionPool (psycopg2) for thread-safe connection reuse
- _fetch_all() / _fetch_one() / _execute(): short-lived cursor helpers
- _row_to_term() / _row_to_record() / ...: RealDictCursor rows to dataclasses
"""

import logging
import os
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras, pool

from ..term_types import AnalysisRecord, ExpansionRecord, StandardTerm, UnrecognizedTerm

logger = logging.getLogger(__name__)


def _as_id(value: Any) -> Optional[int]:
    """Primary keys are BIGSERIAL; anything non-numeric can never match."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _str_id(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class BaseMixin:
    """Connection management and query helpers."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None
    ):
        """
        Initialize the client with connection details.

        Args:
            host: PostgreSQL host (defaults to POSTGRES_HOST env var)
            port: PostgreSQL port (defaults to POSTGRES_PORT env var)
            database: Database name (defaults to POSTGRES_DB env var)
            user: Database user (defaults to POSTGRES_USER env var)
            password: Database password (defaults to POSTGRES_PASSWORD env var)

        Raises:
            ValueError: If connection details are missing
            psycopg2.OperationalError: If cannot connect to PostgreSQL
        """
        self.host = host or os.getenv("POSTGRES_HOST", "localhost")
        self.port = port or int(os.getenv("POSTGRES_PORT", "5432"))
        self.database = database or os.getenv("POSTGRES_DB", "termbank")
        self.user = user or os.getenv("POSTGRES_USER", "admin")
        self.password = password or os.getenv("POSTGRES_PASSWORD", "password")

        if not all([self.host, self.port, self.database, self.user, self.password]):
            raise ValueError(
                "Missing PostgreSQL connection details. Provide via parameters or "
                "set POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, "
                "POSTGRES_PASSWORD environment variables."
            )

        try:
            self.pool = psycopg2.pool.ThreadedConnectionPool(
                1,  # minconn
                10,  # maxconn
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password
            )
        except psycopg2.OperationalError as e:
            raise psycopg2.OperationalError(
                f"Cannot connect to PostgreSQL at {self.host}:{self.port}: {e}"
            )

    def close(self):
        """Close all pooled connections."""
        if getattr(self, "pool", None):
            self.pool.closeall()

    # -------------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------------

    def _fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        conn = self.pool.getconn()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(query, params)
                return [dict(r) for r in cur.fetchall()]
        finally:
            conn.commit()
            self.pool.putconn(conn)

    def _fetch_one(self, query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch_all(query, params)
        return rows[0] if rows else None

    def _execute(self, query: str, params: Optional[tuple] = None) -> int:
        """Run a write statement, returning the affected row count."""
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                count = cur.rowcount
            conn.commit()
            return count
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    @staticmethod
    def _where(filters: List[tuple]) -> tuple:
        """Build a WHERE clause from (sql_fragment, value) pairs, skipping None values."""
        clauses, params = [], []
        for fragment, value in filters:
            if value is None:
                continue
            clauses.append(fragment)
            params.append(value)
        sql = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return sql, params

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_term(row: Dict[str, Any]) -> StandardTerm:
        return StandardTerm(
            id=_str_id(row["id"]),
            term=row["term"],
            category=row["category"],
            term_type=row["term_type"],
            film_types=list(row.get("film_types") or []),
            synonyms=list(row.get("synonyms") or []),
            is_auto_expanded=row["is_auto_expanded"],
            expansion_source=row["expansion_source"],
            expansion_reason=row.get("expansion_reason"),
            review_status=row["review_status"],
            reviewed_by=row.get("reviewed_by"),
            reviewed_at=row.get("reviewed_at"),
            review_comment=row.get("review_comment"),
            usage_count=row.get("usage_count") or 0,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_record(row: Dict[str, Any]) -> ExpansionRecord:
        return ExpansionRecord(
            id=_str_id(row["id"]),
            term_id=_str_id(row.get("term_id")),
            term=row["term"],
            category=row["category"],
            term_type=row["term_type"],
            trigger_count=row.get("trigger_count") or 0,
            bound_film_types=list(row.get("bound_film_types") or []),
            validation_passed=row["validation_passed"],
            validation_details=dict(row.get("validation_details") or {}),
            expansion_type=row["expansion_type"],
            expanded_by=row["expanded_by"],
            expansion_batch_id=row["expansion_batch_id"],
            historical_data_cleaned=row["historical_data_cleaned"],
            cleaned_count=row.get("cleaned_count") or 0,
            provenance=list(row.get("provenance") or []),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_unrecognized(row: Dict[str, Any]) -> UnrecognizedTerm:
        return UnrecognizedTerm(
            id=_str_id(row["id"]),
            term=row["term"],
            category=row["category"],
            occurrence_count=row["occurrence_count"],
            related_film_types=list(row.get("related_film_types") or []),
            expansion_status=row["expansion_status"],
            rejection_reason=row.get("rejection_reason"),
            first_seen_at=row.get("first_seen_at"),
            last_seen_at=row.get("last_seen_at"),
        )

    @staticmethod
    def _row_to_analysis(row: Dict[str, Any]) -> AnalysisRecord:
        return AnalysisRecord(
            id=_str_id(row["id"]),
            film_type=row.get("film_type"),
            scenarios=list(row.get("scenarios") or []),
            film_scenes=list(row.get("film_scenes") or []),
        )
