"""
In-memory term database.

Same interface as ``TermDatabase`` with a single lock standing in for the
PostgreSQL constraints and row locks. Used by the test-suite and by
``TERM_STORE_BACKEND=memory`` for local development. Every read returns a
copy, so callers only ever change stored state through the write methods.
"""

import copy
import itertools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import DuplicateTermError
from ..term_types import (
    MANUAL_REJECTED,
    AnalysisRecord,
    ExpansionRecord,
    StandardTerm,
    UnrecognizedTerm,
    utcnow,
)

logger = logging.getLogger(__name__)


def _page(items: List[Any], limit: Optional[int], offset: int) -> List[Any]:
    if limit is None:
        return items[offset:]
    return items[offset:offset + limit]


class InMemoryTermDatabase:
    """Thread-safe dictionary-backed storage."""

    def __init__(self):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.terms: Dict[str, StandardTerm] = {}
        self.surfaces: Dict[str, Tuple[str, str]] = {}
        self.records: Dict[str, ExpansionRecord] = {}
        self.unrecognized: Dict[str, UnrecognizedTerm] = {}
        self.analyses: Dict[str, AnalysisRecord] = {}

    def _next_id(self) -> str:
        return str(next(self._ids))

    def close(self):
        pass

    # =========================================================================
    # Terms
    # =========================================================================

    def insert_term(self, term: StandardTerm, surfaces: Sequence[Tuple[str, str]]) -> StandardTerm:
        with self._lock:
            for surface, _ in surfaces:
                if surface in self.surfaces:
                    raise DuplicateTermError(surface)
            stored = copy.deepcopy(term)
            stored.id = self._next_id()
            self.terms[stored.id] = stored
            for surface, kind in surfaces:
                self.surfaces[surface] = (stored.id, kind)
            return copy.deepcopy(stored)

    def get_term(self, term_id) -> Optional[StandardTerm]:
        with self._lock:
            term = self.terms.get(str(term_id))
            return copy.deepcopy(term) if term else None

    def find_term_by_surface(self, surface: str) -> Optional[StandardTerm]:
        with self._lock:
            owner = self.surfaces.get(surface)
            return copy.deepcopy(self.terms[owner[0]]) if owner else None

    def _matching_terms(self, category, review_status, term_type, keyword) -> List[StandardTerm]:
        result = []
        for term in self.terms.values():
            if category is not None and term.category != category:
                continue
            if review_status is not None and term.review_status != review_status:
                continue
            if term_type is not None and term.term_type != term_type:
                continue
            if keyword:
                needle = keyword.lower()
                haystack = [term.term] + term.synonyms
                if not any(needle in s.lower() for s in haystack):
                    continue
            result.append(term)
        order = {term_id: i for i, term_id in enumerate(self.terms)}
        return sorted(result, key=lambda t: (-t.usage_count, t.created_at, order[t.id]))

    def list_terms(self, category=None, review_status=None, term_type=None, keyword=None,
                   limit=None, offset=0) -> List[StandardTerm]:
        with self._lock:
            matched = self._matching_terms(category, review_status, term_type, keyword)
            return copy.deepcopy(_page(matched, limit, offset))

    def count_terms(self, category=None, review_status=None, term_type=None, keyword=None) -> int:
        with self._lock:
            return len(self._matching_terms(category, review_status, term_type, keyword))

    def merge_term(self, term_id, synonyms, film_types, surfaces) -> Optional[StandardTerm]:
        with self._lock:
            term = self.terms.get(str(term_id))
            if term is None:
                return None
            for surface, _ in surfaces:
                owner = self.surfaces.get(surface)
                if owner and owner[0] != term.id:
                    raise DuplicateTermError(surface, f'"{surface}"已被其他标准词使用')
            for surface, kind in surfaces:
                self.surfaces.setdefault(surface, (term.id, kind))
            term.synonyms = list(synonyms)
            term.film_types = list(film_types)
            term.updated_at = utcnow()
            return copy.deepcopy(term)

    def update_term_review(self, term_id, review_status, reviewed_by, review_comment,
                           reviewed_at=None) -> Optional[StandardTerm]:
        with self._lock:
            term = self.terms.get(str(term_id))
            if term is None:
                return None
            term.review_status = review_status
            term.reviewed_by = reviewed_by
            term.review_comment = review_comment
            term.reviewed_at = reviewed_at or utcnow()
            term.updated_at = utcnow()
            return copy.deepcopy(term)

    def delete_term(self, term_id) -> bool:
        with self._lock:
            term = self.terms.pop(str(term_id), None)
            if term is None:
                return False
            for surface in [s for s, (owner, _) in self.surfaces.items() if owner == term.id]:
                del self.surfaces[surface]
            return True

    # =========================================================================
    # Ledger
    # =========================================================================

    def insert_expansion_record(self, record: ExpansionRecord) -> ExpansionRecord:
        with self._lock:
            stored = copy.deepcopy(record)
            stored.id = self._next_id()
            self.records[stored.id] = stored
            return copy.deepcopy(stored)

    def get_expansion_record(self, record_id) -> Optional[ExpansionRecord]:
        with self._lock:
            record = self.records.get(str(record_id))
            return copy.deepcopy(record) if record else None

    def _matching_records(self, term_id, category, keyword, expansion_type) -> List[ExpansionRecord]:
        result = [
            r for r in self.records.values()
            if (term_id is None or r.term_id == str(term_id))
            and (category is None or r.category == category)
            and (expansion_type is None or r.expansion_type == expansion_type)
            and (not keyword or keyword.lower() in r.term.lower())
        ]
        return sorted(result, key=lambda r: (r.created_at, int(r.id)), reverse=True)

    def list_expansion_records(self, term_id=None, category=None, keyword=None, expansion_type=None,
                               limit=None, offset=0) -> List[ExpansionRecord]:
        with self._lock:
            matched = self._matching_records(term_id, category, keyword, expansion_type)
            return copy.deepcopy(_page(matched, limit, offset))

    def count_expansion_records(self, term_id=None, category=None, keyword=None, expansion_type=None) -> int:
        with self._lock:
            return len(self._matching_records(term_id, category, keyword, expansion_type))

    def attach_backfill(self, record_id, cleaned_count: int, provenance: List[Dict[str, Any]],
                        completed: bool) -> Optional[ExpansionRecord]:
        with self._lock:
            record = self.records.get(str(record_id))
            if record is None:
                return None
            record.cleaned_count = cleaned_count
            record.provenance = copy.deepcopy(provenance)
            record.historical_data_cleaned = completed
            return copy.deepcopy(record)

    def mark_records_rejected(self, term_id) -> int:
        with self._lock:
            count = 0
            for record in self.records.values():
                if record.term_id == str(term_id):
                    record.expansion_type = MANUAL_REJECTED
                    count += 1
            return count

    # =========================================================================
    # Unrecognized terms
    # =========================================================================

    def upsert_unrecognized(self, term: str, category: str,
                            mutate: Callable[[UnrecognizedTerm], UnrecognizedTerm]) -> UnrecognizedTerm:
        with self._lock:
            current = next(
                (r for r in self.unrecognized.values() if r.term == term and r.category == category),
                None,
            )
            if current is None:
                current = UnrecognizedTerm(term=term, category=category, id=self._next_id())
            updated = mutate(copy.deepcopy(current))
            updated.id = current.id
            self.unrecognized[current.id] = copy.deepcopy(updated)
            return updated

    def get_unrecognized(self, row_id) -> Optional[UnrecognizedTerm]:
        with self._lock:
            row = self.unrecognized.get(str(row_id))
            return copy.deepcopy(row) if row else None

    def find_unrecognized(self, term: str, category: str) -> Optional[UnrecognizedTerm]:
        with self._lock:
            for row in self.unrecognized.values():
                if row.term == term and row.category == category:
                    return copy.deepcopy(row)
            return None

    def _matching_unrecognized(self, category, status, min_count, ids) -> List[UnrecognizedTerm]:
        wanted = {str(i) for i in ids} if ids is not None else None
        result = [
            r for r in self.unrecognized.values()
            if (category is None or r.category == category)
            and (status is None or r.expansion_status == status)
            and (min_count is None or r.occurrence_count >= min_count)
            and (wanted is None or r.id in wanted)
        ]
        return sorted(result, key=lambda r: (-r.occurrence_count, int(r.id)))

    def list_unrecognized(self, category=None, status=None, min_count=None, ids=None,
                          limit=None, offset=0) -> List[UnrecognizedTerm]:
        with self._lock:
            matched = self._matching_unrecognized(category, status, min_count, ids)
            return copy.deepcopy(_page(matched, limit, offset))

    def count_unrecognized(self, category=None, status=None, min_count=None) -> int:
        with self._lock:
            return len(self._matching_unrecognized(category, status, min_count, None))

    def set_unrecognized_status(self, row_id, status: str, reason: Optional[str] = None) -> bool:
        with self._lock:
            row = self.unrecognized.get(str(row_id))
            if row is None:
                return False
            row.expansion_status = status
            row.rejection_reason = reason
            return True

    # =========================================================================
    # Analysis records
    # =========================================================================

    def insert_analysis(self, record: AnalysisRecord) -> AnalysisRecord:
        with self._lock:
            stored = copy.deepcopy(record)
            if stored.id is None:
                stored.id = self._next_id()
            stored.id = str(stored.id)
            self.analyses[stored.id] = stored
            return copy.deepcopy(stored)

    def find_analyses_with_scenario(self, value: str) -> List[AnalysisRecord]:
        with self._lock:
            return [copy.deepcopy(a) for a in self.analyses.values() if value in a.scenarios]

    def find_analyses_with_dubbing_text(self, text: str) -> List[AnalysisRecord]:
        with self._lock:
            return [
                copy.deepcopy(a) for a in self.analyses.values()
                if any(text in str(scene.get("type", "")) or text in str(scene.get("description", ""))
                       for scene in a.film_scenes)
            ]

    def count_analyses_with_scenarios(self, values: Sequence[str]) -> int:
        wanted = set(values)
        with self._lock:
            return sum(1 for a in self.analyses.values() if wanted.intersection(a.scenarios))

    def get_analysis(self, analysis_id) -> Optional[AnalysisRecord]:
        with self._lock:
            record = self.analyses.get(str(analysis_id))
            return copy.deepcopy(record) if record else None

    def save_analysis(self, record: AnalysisRecord) -> bool:
        with self._lock:
            if str(record.id) not in self.analyses:
                return False
            self.analyses[str(record.id)] = copy.deepcopy(record)
            return True
