"""
Approved-vocabulary snapshot cache.

The conflict checker reads an in-memory index of the approved vocabulary so
it never touches the database on the hot path. The snapshot is shared by
every request in the process, so it is an explicit object: the term store
calls ``invalidate()`` after every insert, merge, delete or status change and
the next reader rebuilds it through ``refresh()``.

Usage:
    cache = VocabularySnapshotCache(lambda: db.list_terms(review_status="approved"))
    snapshot = cache.get()
    owner = snapshot.synonym_owner("埋伏")
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from .term_types import StandardTerm

logger = logging.getLogger(__name__)


class VocabularySnapshot:
    """Immutable index over a list of approved terms."""

    def __init__(self, terms: List[StandardTerm]):
        self.terms = list(terms)
        self._by_term: Dict[str, StandardTerm] = {}
        self._by_synonym: Dict[str, StandardTerm] = {}
        self._by_category: Dict[str, List[StandardTerm]] = {}

        for term in self.terms:
            self._by_term[term.term] = term
            self._by_category.setdefault(term.category, []).append(term)
        # Second pass so a synonym never shadows a real term
        for term in self.terms:
            for synonym in term.synonyms:
                if synonym not in self._by_term:
                    self._by_synonym.setdefault(synonym, term)

    def term(self, value: str) -> Optional[StandardTerm]:
        return self._by_term.get(value)

    def synonym_owner(self, value: str) -> Optional[StandardTerm]:
        return self._by_synonym.get(value)

    def in_category(self, category: str) -> List[StandardTerm]:
        return list(self._by_category.get(category, []))

    def __len__(self) -> int:
        return len(self.terms)


class VocabularySnapshotCache:
    """Lazily rebuilt, thread-safe holder of the current snapshot."""

    def __init__(self, loader: Callable[[], List[StandardTerm]]):
        self._loader = loader
        self._lock = threading.Lock()
        self._snapshot: Optional[VocabularySnapshot] = None
        self.version = 0

    def get(self) -> VocabularySnapshot:
        with self._lock:
            if self._snapshot is None:
                self._snapshot = VocabularySnapshot(self._loader())
                logger.debug(f"Vocabulary snapshot v{self.version} built ({len(self._snapshot)} terms)")
            return self._snapshot

    def refresh(self) -> VocabularySnapshot:
        self.invalidate()
        return self.get()

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self.version += 1
