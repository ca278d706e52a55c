"""
Analysis record access for backfill and rollback.

``music_analyses`` belongs to the analysis pipeline; only the ``scenarios``
and ``film_scenes`` JSONB columns are read or written here.
"""

import logging
from typing import List, Optional, Sequence

from psycopg2 import extras

from ..term_types import AnalysisRecord
from .base import _as_id

logger = logging.getLogger(__name__)


class AnalysesMixin:
    """Lookups by tag value and write-back of rewritten tag arrays."""

    def find_analyses_with_scenario(self, value: str) -> List[AnalysisRecord]:
        """Records whose scenarios array contains ``value`` exactly."""
        rows = self._fetch_all(
            "SELECT id, film_type, scenarios, film_scenes FROM music_analyses "
            "WHERE scenarios @> %s ORDER BY id",
            (extras.Json([value]),),
        )
        return [self._row_to_analysis(r) for r in rows]

    def find_analyses_with_dubbing_text(self, text: str) -> List[AnalysisRecord]:
        """Records whose film_scenes JSON mentions ``text`` anywhere."""
        rows = self._fetch_all(
            "SELECT id, film_type, scenarios, film_scenes FROM music_analyses "
            "WHERE film_scenes::text LIKE %s ORDER BY id",
            (f"%{text}%",),
        )
        return [self._row_to_analysis(r) for r in rows]

    def count_analyses_with_scenarios(self, values: Sequence[str]) -> int:
        if not values:
            return 0
        row = self._fetch_one(
            "SELECT COUNT(*) AS n FROM music_analyses WHERE scenarios ?| %s",
            (list(values),),
        )
        return row["n"] if row else 0

    def get_analysis(self, analysis_id) -> Optional[AnalysisRecord]:
        key = _as_id(analysis_id)
        if key is None:
            return None
        row = self._fetch_one(
            "SELECT id, film_type, scenarios, film_scenes FROM music_analyses WHERE id = %s",
            (key,),
        )
        return self._row_to_analysis(row) if row else None

    def save_analysis(self, record: AnalysisRecord) -> bool:
        return self._execute(
            "UPDATE music_analyses SET scenarios = %s, film_scenes = %s, updated_at = NOW() WHERE id = %s",
            (extras.Json(record.scenarios), extras.Json(record.film_scenes), _as_id(record.id)),
        ) > 0

    def insert_analysis(self, record: AnalysisRecord) -> AnalysisRecord:
        row = self._fetch_one(
            "INSERT INTO music_analyses (film_type, scenarios, film_scenes) VALUES (%s, %s, %s) "
            "RETURNING id, film_type, scenarios, film_scenes",
            (record.film_type, extras.Json(record.scenarios), extras.Json(record.film_scenes)),
        )
        return self._row_to_analysis(row)
