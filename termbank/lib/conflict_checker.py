"""
Local conflict checker - cheap lexical checks before any LLM call.

Checks a candidate against the approved-vocabulary snapshot, in order:
    exact_match    candidate is already a standard term (any category)
    synonym        candidate is already a synonym of a standard term
    partial_match  candidate and a same-category term contain one another
    near_synonym   candidate and a same-category synonym contain one another

The first two are duplicates; the last two are structural near-duplicates
("追逐" vs "追逐戏") that a human may still decide to add by hand, which is
why the containment checks can be switched off per entry path.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import ConflictError, DuplicateTermError, ExpansionError
from .naming import clean
from .term_types import CATEGORY_VALUES
from .vocabulary_cache import VocabularySnapshotCache

logger = logging.getLogger(__name__)


@dataclass
class ConflictResult:
    """Outcome of a conflict check."""
    has_conflict: bool
    message: str
    conflicting_term: Optional[str] = None
    conflict_type: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.conflict_type in ("exact_match", "synonym")

    def to_error(self) -> ExpansionError:
        if self.is_duplicate:
            return DuplicateTermError(self.conflicting_term, self.message)
        return ConflictError(
            self.message,
            conflicting_term=self.conflicting_term,
            conflict_type=self.conflict_type,
            suggestion=self.suggestion,
        )


@dataclass
class RuleCheckResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ConflictChecker:
    """
    Read-only checks against the cached approved vocabulary.

    Args:
        cache: Shared snapshot cache (invalidated by the term store on writes)

    Example:
        checker = ConflictChecker(cache)
        result = checker.check("追逐戏", "scenario")
        if result.has_conflict:
            raise result.to_error()
    """

    def __init__(self, cache: VocabularySnapshotCache):
        self.cache = cache

    def check(self, candidate: str, category: str, include_containment: bool = True) -> ConflictResult:
        term = clean(candidate)
        if not term:
            return ConflictResult(True, "词汇不能为空", conflict_type="invalid")
        if category not in CATEGORY_VALUES:
            return ConflictResult(True, "无效的词汇类别", conflict_type="invalid")

        snapshot = self.cache.get()

        existing = snapshot.term(term)
        if existing is not None:
            return ConflictResult(
                True,
                f'该词汇"{term}"已存在于标准词库中，无需重复添加',
                conflicting_term=existing.term,
                conflict_type="exact_match",
            )

        owner = snapshot.synonym_owner(term)
        if owner is not None:
            return ConflictResult(
                True,
                f'该词汇"{term}"是现有标准词"{owner.term}"的近义词，请使用标准词"{owner.term}"',
                conflicting_term=owner.term,
                conflict_type="synonym",
                suggestion=owner.term,
            )

        if include_containment:
            lowered = term.lower()
            same_category = snapshot.in_category(category)

            for existing in same_category:
                other = existing.term.strip().lower()
                if other and (lowered in other or other in lowered):
                    return ConflictResult(
                        True,
                        f'该词汇"{term}"与现有标准词"{existing.term}"存在包含关系，请确认是否需要新增或使用现有标准词',
                        conflicting_term=existing.term,
                        conflict_type="partial_match",
                        suggestion=existing.term,
                    )

            for existing in same_category:
                for synonym in existing.synonyms:
                    other = synonym.strip().lower()
                    if other and (lowered in other or other in lowered):
                        return ConflictResult(
                            True,
                            f'该词汇"{term}"与现有近义词"{synonym}"存在语义相似，请确认是否需要新增或使用现有标准词"{existing.term}"',
                            conflicting_term=existing.term,
                            conflict_type="near_synonym",
                            suggestion=existing.term,
                        )

        return ConflictResult(False, f'该词汇"{term}"可以安全添加到词库中')

    def check_synonyms(self, synonyms: Sequence[str]) -> List[Tuple[str, str]]:
        """
        Return (synonym, message) for each synonym already used as a term or synonym.

        An empty list means every synonym is free to be claimed.
        """
        snapshot = self.cache.get()
        problems = []
        for synonym in synonyms:
            value = clean(synonym)
            if snapshot.term(value) is not None:
                problems.append((value, f'"{value}"已作为标准词存在'))
                continue
            owner = snapshot.synonym_owner(value)
            if owner is not None:
                problems.append((value, f'"{value}"是"{owner.term}"的近义词'))
        return problems

    def check_candidate_rules(
        self,
        term: str,
        category: str,
        synonyms: Sequence[str],
        film_types: Sequence[str],
        reason: Optional[str],
        confidence: Optional[float] = None,
        min_confidence: float = 0.65,
    ) -> RuleCheckResult:
        """
        Submission hygiene checks that do not depend on other terms.

        ``confidence`` is a 0-1 fraction; callers normalize percentages first.
        """
        result = RuleCheckResult()

        if not clean(term):
            result.errors.append("词汇不能为空")
        if category not in CATEGORY_VALUES:
            result.errors.append("无效的词汇类别")
        if not clean(reason or ""):
            result.errors.append("未提供推荐理由")
        if confidence is not None and confidence < min_confidence:
            result.errors.append(
                f"置信度{confidence * 100:.0f}%低于最低要求{min_confidence * 100:.0f}%，不建议添加"
            )
        if not synonyms:
            result.warnings.append("未提供近义词，建议提供3-5个近义词以便后续标准化")
        if not film_types:
            result.warnings.append("未提供适配的影视类型，建议补充")

        return result
