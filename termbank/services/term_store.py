"""
Term Store - authoritative CRUD over the canonical vocabulary.

Uniqueness is enforced here, not only upstream: every string that resolves
to a term (the trimmed term, its suffix-normalized form and each synonym) is
claimed in the storage layer's surface table inside the insert transaction,
so "追逐戏" and "追逐" collide and two concurrent submissions of the same
text cannot both succeed.

Every write invalidates the shared vocabulary snapshot used by the conflict
checker.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..lib.errors import CandidateRuleError, TermNotFoundError
from ..lib.naming import clean, clean_synonyms, merge_unique, normalize_term
from ..lib.term_types import CATEGORY_VALUES, ReviewStatus, StandardTerm, utcnow
from ..lib.vocabulary_cache import VocabularySnapshotCache

logger = logging.getLogger(__name__)


@dataclass
class VocabularyProjection:
    """Read-only lookup for downstream classifiers."""
    category: str
    mapping: Dict[str, str] = field(default_factory=dict)
    standard_list: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"mapping": self.mapping, "standardList": self.standard_list}


def surfaces_for(term: str, synonyms: Sequence[str]) -> List[Tuple[str, str]]:
    """(surface, kind) pairs a term claims, without repeats."""
    pairs: List[Tuple[str, str]] = [(term, "term")]
    normalized = normalize_term(term)
    if normalized and normalized != term:
        pairs.append((normalized, "normalized"))
    seen = {s for s, _ in pairs}
    for synonym in synonyms:
        if synonym not in seen:
            pairs.append((synonym, "synonym"))
            seen.add(synonym)
    return pairs


class TermStore:
    """
    CRUD layer over standard terms.

    Args:
        db: Storage backend (TermDatabase or InMemoryTermDatabase)
        cache: Shared approved-vocabulary cache; created if not given
    """

    def __init__(self, db, cache: Optional[VocabularySnapshotCache] = None):
        self.db = db
        self.cache = cache or VocabularySnapshotCache(
            lambda: self.db.list_terms(review_status=ReviewStatus.approved.value)
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, term: StandardTerm) -> StandardTerm:
        """
        Insert a term after trimming and de-duplicating its synonyms.

        Raises:
            DuplicateTermError: Term, normalized form or a synonym is taken
            CandidateRuleError: Blank term or unknown category
        """
        term.term = clean(term.term)
        if not term.term:
            raise CandidateRuleError(["词汇不能为空"])
        if term.category not in CATEGORY_VALUES:
            raise CandidateRuleError(["无效的词汇类别"])

        term.synonyms = clean_synonyms(term.synonyms, exclude=[term.term])
        term.film_types = clean_synonyms(term.film_types)

        try:
            stored = self.db.insert_term(term, surfaces_for(term.term, term.synonyms))
        finally:
            self.cache.invalidate()
        logger.info(f"Inserted term '{stored.term}' ({stored.category}, {stored.review_status}) id={stored.id}")
        return stored

    def merge(self, term_id, new_synonyms: Sequence[str], new_film_types: Sequence[str]) -> StandardTerm:
        """
        Union new synonyms and film types into an existing term.

        Raises:
            TermNotFoundError: No such term
            DuplicateTermError: A new synonym belongs to another term
        """
        current = self.get(term_id)
        synonyms = merge_unique(current.synonyms, clean_synonyms(new_synonyms, exclude=[current.term]))
        film_types = merge_unique(current.film_types, new_film_types)
        added = [s for s in synonyms if s not in current.synonyms]

        try:
            merged = self.db.merge_term(
                current.id, synonyms, film_types,
                [(s, "synonym") for s in added],
            )
        finally:
            self.cache.invalidate()
        if merged is None:
            raise TermNotFoundError(term_id)
        if added:
            logger.info(f"Merged synonyms {added} into '{merged.term}'")
        return merged

    def set_review_status(
        self,
        term_id,
        status: ReviewStatus,
        reviewer: Optional[str],
        comment: Optional[str],
    ) -> StandardTerm:
        updated = self.db.update_term_review(term_id, status.value, reviewer, comment, utcnow())
        self.cache.invalidate()
        if updated is None:
            raise TermNotFoundError(term_id)
        return updated

    def delete(self, term_id) -> bool:
        """Remove a term. The caller restores dependent records first."""
        deleted = self.db.delete_term(term_id)
        self.cache.invalidate()
        if deleted:
            logger.info(f"Deleted term id={term_id}")
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, term_id) -> StandardTerm:
        term = self.db.get_term(term_id)
        if term is None:
            raise TermNotFoundError(term_id)
        return term

    def find(self, surface: str) -> Optional[StandardTerm]:
        """Term owning ``surface`` as term, normalized form or synonym."""
        return self.db.find_term_by_surface(clean(surface))

    def approved_terms(self, category: Optional[str] = None) -> List[StandardTerm]:
        snapshot = self.cache.get()
        return snapshot.in_category(category) if category else list(snapshot.terms)

    def list_terms(self, **filters) -> List[StandardTerm]:
        return self.db.list_terms(**filters)

    def count_terms(self, **filters) -> int:
        return self.db.count_terms(**filters)

    def projection(self, category: str) -> VocabularyProjection:
        """
        Term/synonym → standard term mapping for one category.

        Built from approved terms in usage order, so when two terms ever
        claim the same synonym the more used one wins.
        """
        projection = VocabularyProjection(category=category)
        for term in self.approved_terms(category):
            projection.standard_list.append(term.term)
            projection.mapping.setdefault(term.term, term.term)
            for synonym in term.synonyms:
                projection.mapping.setdefault(synonym, term.term)
        return projection
