"""
Unrecognized Term Tracker - frequency source of the auto-expansion path.

Every time the analysis pipeline fails to standardize a tag it reports the
raw string here. Rows are keyed by (term, category) and carry a histogram of
the film types the string was seen with.

Eligibility:
    eligible  <=> occurrence_count >= min_frequency AND a film type is bound

A string never seen with a film type cannot be classified safely, so it can
never auto-expand however often it occurs.

Sticky statuses (never recomputed by new sightings):
    expanded, rejected, and ineligible rows a human reviewer rejected
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..lib.errors import CandidateRuleError
from ..lib.naming import clean
from ..lib.term_types import CATEGORY_VALUES, ExpansionStatus, UnrecognizedTerm, utcnow

logger = logging.getLogger(__name__)

HUMAN_REJECTION_PREFIX = "人工审核拒绝"


@dataclass
class RecordResult:
    term: str
    category: str
    occurrence_count: int
    is_eligible: bool
    status: str


def is_sticky(row: UnrecognizedTerm) -> bool:
    if row.expansion_status in (ExpansionStatus.expanded.value, ExpansionStatus.rejected.value):
        return True
    return (
        row.expansion_status == ExpansionStatus.ineligible.value
        and (row.rejection_reason or "").startswith(HUMAN_REJECTION_PREFIX)
    )


def compute_status(row: UnrecognizedTerm, min_frequency: int) -> str:
    if row.occurrence_count >= min_frequency and row.related_film_types:
        return ExpansionStatus.eligible.value
    return ExpansionStatus.pending.value


def apply_occurrence(
    row: UnrecognizedTerm,
    film_type: Optional[str],
    min_frequency: int,
) -> UnrecognizedTerm:
    """Count one more sighting of ``row`` (a fresh row arrives with count 0)."""
    now = utcnow()
    if row.occurrence_count == 0:
        row.first_seen_at = now
    row.occurrence_count += 1
    row.last_seen_at = now

    film_type = clean(film_type or "")
    if film_type:
        for item in row.related_film_types:
            if item.get("filmType") == film_type:
                item["count"] = int(item.get("count", 0)) + 1
                break
        else:
            row.related_film_types.append({"filmType": film_type, "count": 1})
    row.related_film_types.sort(key=lambda item: item.get("count", 0), reverse=True)

    if not is_sticky(row):
        row.expansion_status = compute_status(row, min_frequency)
        if row.expansion_status == ExpansionStatus.eligible.value:
            row.rejection_reason = None
    return row


class UnrecognizedTermTracker:
    """
    Upsert and query unrecognized-term counters.

    Args:
        db: Storage backend
        min_frequency: Default eligibility threshold
    """

    def __init__(self, db, min_frequency: int = 10):
        self.db = db
        self.min_frequency = min_frequency

    def record(
        self,
        term: str,
        category: str,
        film_type: Optional[str] = None,
        min_frequency: Optional[int] = None,
    ) -> RecordResult:
        """
        Count one sighting of an unrecognized string.

        Raises:
            CandidateRuleError: Blank term or unknown category
        """
        term = clean(term)
        if not term:
            raise CandidateRuleError(["词汇不能为空"])
        if category not in CATEGORY_VALUES:
            raise CandidateRuleError(["无效的词汇类别"])

        threshold = min_frequency or self.min_frequency
        row = self.db.upsert_unrecognized(
            term, category, lambda current: apply_occurrence(current, film_type, threshold)
        )
        eligible = row.expansion_status == ExpansionStatus.eligible.value
        if eligible and row.occurrence_count == threshold:
            logger.info(f"Unrecognized '{term}' ({category}) became eligible after {threshold} sightings")
        return RecordResult(term, category, row.occurrence_count, eligible, row.expansion_status)

    def eligible(self, ids: Optional[Sequence] = None) -> List[UnrecognizedTerm]:
        """Rows currently flagged eligible, optionally limited to ``ids``."""
        return self.db.list_unrecognized(status=ExpansionStatus.eligible.value, ids=ids)

    def find(self, term: str, category: str) -> Optional[UnrecognizedTerm]:
        return self.db.find_unrecognized(clean(term), category)

    def mark(self, row: UnrecognizedTerm, status: ExpansionStatus, reason: Optional[str] = None) -> None:
        self.db.set_unrecognized_status(row.id, status.value, reason)
        logger.info(f"Unrecognized '{row.term}' ({row.category}) → {status.value}" + (f": {reason}" if reason else ""))

    def mark_matching(
        self,
        terms: Sequence[str],
        category: str,
        status: ExpansionStatus,
        reason: Optional[str] = None,
    ) -> int:
        """Set the status of every row whose term is in ``terms``."""
        count = 0
        for term in dict.fromkeys(terms):
            row = self.find(term, category)
            if row is not None and row.expansion_status != status.value:
                self.mark(row, status, reason)
                count += 1
        return count

    def list_rows(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        min_count: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[UnrecognizedTerm]:
        return self.db.list_unrecognized(
            category=category, status=status, min_count=min_count, limit=limit, offset=offset
        )

    def count_rows(self, category: Optional[str] = None, status: Optional[str] = None,
                  min_count: Optional[int] = None) -> int:
        return self.db.count_unrecognized(category=category, status=status, min_count=min_count)

    def stats(self) -> Dict[str, object]:
        """Counts per status and per category, plus the most frequent rows."""
        rows = self.db.list_unrecognized()
        by_status = Counter(r.expansion_status for r in rows)
        by_category = Counter(r.category for r in rows)
        return {
            "total": len(rows),
            "byStatus": {s.value: by_status.get(s.value, 0) for s in ExpansionStatus},
            "byCategory": dict(by_category),
            "top": [
                {"term": r.term, "category": r.category, "occurrenceCount": r.occurrence_count}
                for r in rows[:10]
            ],
        }
