"""
Expansion Engine - orchestrates every way a term enters the vocabulary.

Entry paths are variants of one ``ExpansionRequest`` consumed by
``ExpansionEngine.evaluate``, so the order of checks is fixed in one place:

    rules → ConflictChecker → SimilarityOracle (ai only) → TermStore.insert
          → ExpansionLedger.append → AnalysisBackfill.promote
          → UnrecognizedTerm rows marked expanded

Paths:
    auto     frequency-triggered, from eligible unrecognized rows → approved
    ai       AI-recommended candidate, similarity band decides status
    manual   human entry with a reason → always pending
    direct   human promotes a raw string straight to a standard term → approved
    import   curated seed vocabulary → approved

Review state machine:
    rejected-duplicate (never stored) | pending → approved
                                      | pending → rejected-by-human (row removed)
    Automatically approved terms (no human reviewer recorded) may also be
    rejected; terms a human approved are final.

Usage:
    engine = build_engine()
    outcome = await engine.submit_candidate("伏击", "scenario", synonyms=["埋伏"],
                                            film_types=["战争片"], reason="...", source="ai",
                                            confidence=0.9)
    engine.review_terms([outcome.term_id], "approve", reviewer="alice")
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..lib.config import ExpansionSettings, get_settings
from ..lib.conflict_checker import ConflictChecker
from ..lib.errors import (
    CandidateRuleError,
    DuplicateTermError,
    ExpansionError,
    IneligibleError,
    PartialBackfillFailure,
    ReviewStateError,
    SimilarityRejection,
    TermNotFoundError,
)
from ..lib.naming import clean, clean_synonyms, normalize_term
from ..lib.similarity_oracle import SimilarityOracle, SimilarityVerdict
from ..lib.term_types import (
    Category,
    ExpandedBy,
    ExpansionRecord,
    ExpansionSource,
    ExpansionStatus,
    RecommendedAction,
    ReviewStatus,
    StandardTerm,
    TermType,
    UnrecognizedTerm,
    utcnow,
)
from .analysis_backfill import AnalysisBackfill, BackfillResult
from .expansion_ledger import ExpansionLedger, new_batch_id
from .integrity import IntegrityChecker, IntegrityReport
from .term_store import TermStore, VocabularyProjection
from .unrecognized_tracker import HUMAN_REJECTION_PREFIX, RecordResult, UnrecognizedTermTracker

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER = "admin"
DEFAULT_APPROVE_COMMENT = "审核通过"
DEFAULT_REJECT_COMMENT = "不符合标准"

AUTO_CONFLICT_REASON = "与现有标准词或近义词冲突"
NO_FILM_TYPE_REASON = "无法明确绑定影视类型"


# =============================================================================
# Requests
# =============================================================================

class ExpansionPath(str, Enum):
    auto = "auto"
    ai = "ai"
    manual = "manual"
    direct = "direct"
    imported = "import"


@dataclass(frozen=True)
class PathPolicy:
    """How a path is checked and what it writes."""
    containment: bool
    uses_oracle: bool
    requires_reason: bool
    source: ExpansionSource
    expanded_by: ExpandedBy
    initial_status: ReviewStatus
    is_auto_expanded: bool
    batch_prefix: str


PATH_POLICIES: Dict[ExpansionPath, PathPolicy] = {
    ExpansionPath.auto: PathPolicy(
        containment=True, uses_oracle=False, requires_reason=False,
        source=ExpansionSource.auto, expanded_by=ExpandedBy.auto,
        initial_status=ReviewStatus.approved, is_auto_expanded=True, batch_prefix="auto",
    ),
    ExpansionPath.ai: PathPolicy(
        containment=True, uses_oracle=True, requires_reason=True,
        source=ExpansionSource.ai_recommend, expanded_by=ExpandedBy.ai,
        initial_status=ReviewStatus.pending, is_auto_expanded=False, batch_prefix="ai",
    ),
    ExpansionPath.manual: PathPolicy(
        containment=False, uses_oracle=False, requires_reason=True,
        source=ExpansionSource.manual, expanded_by=ExpandedBy.manual,
        initial_status=ReviewStatus.pending, is_auto_expanded=False, batch_prefix="manual",
    ),
    ExpansionPath.direct: PathPolicy(
        containment=False, uses_oracle=False, requires_reason=False,
        source=ExpansionSource.manual_approve_directly, expanded_by=ExpandedBy.manual,
        initial_status=ReviewStatus.approved, is_auto_expanded=False, batch_prefix="direct",
    ),
    ExpansionPath.imported: PathPolicy(
        containment=False, uses_oracle=False, requires_reason=False,
        source=ExpansionSource.manual_import, expanded_by=ExpandedBy.manual,
        initial_status=ReviewStatus.approved, is_auto_expanded=False, batch_prefix="import",
    ),
}


def _synonym_conflict(problems: List[Tuple[str, str]]) -> DuplicateTermError:
    message = f"近义词冲突：{'、'.join(m for _, m in problems)}，请修改近义词清单"
    return DuplicateTermError(problems[0][0], message)


def _normalize_confidence(confidence: Optional[float]) -> Optional[float]:
    """Accept 0-1 fractions or 0-100 percentages."""
    if confidence is None:
        return None
    value = float(confidence)
    return value / 100.0 if value > 1 else value


@dataclass
class ExpansionRequest:
    """
    One candidate on its way into the vocabulary.

    ``raw_term`` is the string the analysis pipeline actually produced when
    it differs in role from ``term`` (auto and direct paths); it is rewritten
    to ``term`` by the backfill together with every synonym.
    """
    path: ExpansionPath
    term: str
    category: str
    synonyms: List[str] = field(default_factory=list)
    film_types: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    term_type: str = TermType.extended.value
    confidence: Optional[float] = None
    trigger_count: Optional[int] = None
    usage_count: int = 0
    raw_term: Optional[str] = None
    reviewer: Optional[str] = None
    batch_id: Optional[str] = None
    threshold: Optional[float] = None
    unrecognized_id: Optional[str] = None

    @property
    def policy(self) -> PathPolicy:
        return PATH_POLICIES[self.path]

    @classmethod
    def from_unrecognized(cls, row: UnrecognizedTerm, max_film_types: int, batch_id: Optional[str] = None):
        standard = normalize_term(row.term)
        return cls(
            path=ExpansionPath.auto,
            term=standard,
            category=row.category,
            synonyms=[row.term] if row.term != standard else [],
            film_types=row.film_type_names()[:max_film_types],
            reason=f"自动扩充：未识别内容出现{row.occurrence_count}次",
            trigger_count=row.occurrence_count,
            usage_count=row.occurrence_count,
            raw_term=row.term,
            batch_id=batch_id,
            unrecognized_id=row.id,
        )


@dataclass
class ExpansionOutcome:
    """Result of a successful ``evaluate``."""
    term: StandardTerm
    record: ExpansionRecord
    message: str
    verdict: Optional[SimilarityVerdict] = None
    warnings: List[str] = field(default_factory=list)
    backfill: Optional[BackfillResult] = None

    @property
    def term_id(self) -> str:
        return self.term.id

    @property
    def review_status(self) -> str:
        return self.term.review_status


@dataclass
class AutoExpandResult:
    batch_id: str
    promoted: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ReviewResult:
    term_id: str
    term: Optional[str]
    action: str
    success: bool
    error: Optional[str] = None
    restored_count: int = 0


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


# =============================================================================
# Engine
# =============================================================================

class ExpansionEngine:
    """
    Vocabulary expansion and review.

    Args:
        store: TermStore
        ledger: ExpansionLedger
        tracker: UnrecognizedTermTracker
        backfill: AnalysisBackfill
        checker: ConflictChecker sharing the store's snapshot cache
        oracle: SimilarityOracle (ai path)
        settings: Thresholds and limits
    """

    def __init__(
        self,
        store: TermStore,
        ledger: ExpansionLedger,
        tracker: UnrecognizedTermTracker,
        backfill: AnalysisBackfill,
        checker: ConflictChecker,
        oracle: SimilarityOracle,
        settings: Optional[ExpansionSettings] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.tracker = tracker
        self.backfill = backfill
        self.checker = checker
        self.oracle = oracle
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Core evaluation
    # -------------------------------------------------------------------------

    async def evaluate(self, request: ExpansionRequest) -> ExpansionOutcome:
        """
        Run one candidate through checks, storage, audit and backfill.

        Raises:
            CandidateRuleError: Malformed submission
            DuplicateTermError: Term or a synonym already exists
            ConflictError: Structural near-duplicate
            SimilarityRejection: Semantic near-duplicate (ai path)
        """
        policy = request.policy
        term = clean(request.term)
        synonyms = clean_synonyms(request.synonyms, exclude=[term])
        film_types = clean_synonyms(request.film_types)
        confidence = _normalize_confidence(request.confidence) if request.path is ExpansionPath.ai else None

        # 1. Submission rules
        rules = self.checker.check_candidate_rules(
            term, request.category, synonyms, film_types,
            request.reason if policy.requires_reason else (request.reason or request.path.value),
            confidence=confidence,
            min_confidence=self.settings.min_ai_confidence,
        )
        if not rules.is_valid:
            raise CandidateRuleError(rules.errors)

        # 2. Local conflicts, term then synonyms
        conflict = self.checker.check(term, request.category, include_containment=policy.containment)
        if conflict.has_conflict:
            logger.info(f"Conflict for '{term}' ({request.path.value}): {conflict.message}")
            raise conflict.to_error()

        synonym_problems = self.checker.check_synonyms(synonyms)
        if synonym_problems:
            raise _synonym_conflict(synonym_problems)

        # 3. Semantic similarity
        status = policy.initial_status
        source = policy.source
        verdict: Optional[SimilarityVerdict] = None
        message = self._path_message(request.path)
        review_comment: Optional[str] = None

        if policy.uses_oracle:
            threshold = request.threshold if request.threshold is not None else self.settings.similarity_threshold
            existing = [t.term for t in self.store.approved_terms(request.category)]
            verdict = await self.oracle.evaluate(term, existing, threshold, request.category)
            if verdict.recommended_action is RecommendedAction.reject:
                logger.info(f"Similarity rejection for '{term}': {verdict.message}")
                raise SimilarityRejection(
                    verdict.message, verdict.similar_terms_dicts(), verdict.highest_similarity
                )
            if verdict.recommended_action is RecommendedAction.accept:
                status, source = ReviewStatus.approved, ExpansionSource.ai_auto_expand
            else:
                status, source = ReviewStatus.pending, ExpansionSource.ai_recommend
            message = verdict.message
            review_comment = verdict.message

        # 4. Store (uniqueness re-checked atomically by the storage layer)
        now = utcnow()
        reviewer = None
        if status is ReviewStatus.approved and not (policy.is_auto_expanded or policy.uses_oracle):
            reviewer = request.reviewer or DEFAULT_REVIEWER
        stored = self.store.insert(StandardTerm(
            term=term,
            category=request.category,
            term_type=request.term_type or TermType.extended.value,
            film_types=film_types,
            synonyms=synonyms,
            is_auto_expanded=policy.is_auto_expanded or source is ExpansionSource.ai_auto_expand,
            expansion_source=source.value,
            expansion_reason=request.reason or message,
            review_status=status.value,
            reviewed_by=reviewer,
            reviewed_at=now if status is ReviewStatus.approved else None,
            review_comment=review_comment,
            usage_count=request.usage_count,
        ))

        # 5. Audit
        record = self.ledger.append(ExpansionRecord(
            term_id=stored.id,
            term=stored.term,
            category=stored.category,
            term_type=stored.term_type,
            trigger_count=self._trigger_count(request, confidence),
            bound_film_types=stored.film_types,
            validation_passed=True,
            validation_details=self._validation_details(request, stored, verdict, rules.warnings),
            expansion_type=source.value,
            expanded_by=policy.expanded_by.value,
            expansion_batch_id=request.batch_id or new_batch_id(policy.batch_prefix),
        ))

        # 6. Backfill denormalized copies, then close out unrecognized rows
        warnings = list(rules.warnings)
        raw_terms = [request.raw_term or stored.term] + stored.synonyms
        result = self._run_backfill(record, stored, raw_terms)
        if not result.completed:
            warnings.append(PartialBackfillFailure(stored.term, result.failed_record_ids).message)

        self.tracker.mark_matching(
            [stored.term] + raw_terms, stored.category, ExpansionStatus.expanded
        )

        return ExpansionOutcome(
            term=stored,
            record=self.ledger.get(record.id) or record,
            message=message,
            verdict=verdict,
            warnings=warnings,
            backfill=result,
        )

    def _run_backfill(self, record: ExpansionRecord, term: StandardTerm, raw_terms: Sequence[str]) -> BackfillResult:
        try:
            result = self.backfill.promote(term.category, raw_terms, term.term)
        except Exception as e:
            logger.error(f"Backfill for '{term.term}' failed: {e}", exc_info=True)
            result = BackfillResult(failed_record_ids=["*"])
        if not result.completed:
            failure = PartialBackfillFailure(term.term, result.failed_record_ids, result.cleaned_count)
            logger.warning(f"⚠️  {failure.message} - term kept, re-run backfill for ledger record {record.id}")
        self.ledger.record_backfill(record.id, result.cleaned_count, result.provenance, result.completed)
        return result

    @staticmethod
    def _trigger_count(request: ExpansionRequest, confidence: Optional[float]) -> int:
        if request.trigger_count is not None:
            return request.trigger_count
        if confidence is not None:
            return int(round(confidence * 100))
        return 1

    @staticmethod
    def _validation_details(
        request: ExpansionRequest,
        term: StandardTerm,
        verdict: Optional[SimilarityVerdict],
        warnings: List[str],
    ) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "namingNormalized": bool(request.raw_term) and request.raw_term != term.term,
            "synonymsChecked": len(term.synonyms),
            "conflictsResolved": True,
            "provenanceTracked": True,
            "rawTerm": request.raw_term or term.term,
        }
        if verdict is not None:
            details.update({
                "similarityChecked": True,
                "highestSimilarity": verdict.highest_similarity,
                "recommendedAction": verdict.recommended_action.value,
                "similarTerms": verdict.similar_terms_dicts(),
                "oracleFailures": verdict.oracle_failures,
            })
        if warnings:
            details["warnings"] = list(warnings)
        return details

    @staticmethod
    def _path_message(path: ExpansionPath) -> str:
        return {
            ExpansionPath.auto: "自动扩充成功",
            ExpansionPath.manual: "候选词已提交，等待人工审核",
            ExpansionPath.direct: "已直接审核通过并录入词库",
            ExpansionPath.imported: "已导入词库",
            ExpansionPath.ai: "",
        }[path]

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def record_unrecognized(self, term: str, category: str, film_type: Optional[str] = None) -> RecordResult:
        return self.tracker.record(term, category, film_type, self.settings.min_frequency)

    async def submit_candidate(
        self,
        term: str,
        category: str,
        synonyms: Sequence[str] = (),
        film_types: Sequence[str] = (),
        reason: Optional[str] = None,
        source: str = "manual",
        term_type: str = TermType.extended.value,
        confidence: Optional[float] = None,
        threshold: Optional[float] = None,
    ) -> ExpansionOutcome:
        """AI-recommended (``source="ai"``) or manual candidate."""
        path = ExpansionPath.ai if source == "ai" else ExpansionPath.manual
        return await self.evaluate(ExpansionRequest(
            path=path,
            term=term,
            category=category,
            synonyms=list(synonyms),
            film_types=list(film_types),
            reason=reason,
            term_type=term_type,
            confidence=confidence,
            threshold=threshold,
        ))

    async def auto_expand_eligible(
        self,
        candidate_ids: Optional[Sequence] = None,
        min_frequency: Optional[int] = None,
    ) -> AutoExpandResult:
        """
        Promote eligible unrecognized rows.

        Eligibility is re-validated per row because the stored flag may be
        stale. Disqualified rows get a reason and a status; no term is made.
        """
        min_frequency = min_frequency or self.settings.min_frequency
        batch = AutoExpandResult(batch_id=new_batch_id("auto"))

        for row in self.tracker.eligible(candidate_ids):
            try:
                self._gate(row, min_frequency)
                outcome = await self.evaluate(ExpansionRequest.from_unrecognized(
                    row, self.settings.max_bound_film_types, batch.batch_id
                ))
            except IneligibleError as e:
                self.tracker.mark(row, ExpansionStatus(e.status), e.reason)
                batch.skipped.append({"id": row.id, "term": row.term, "status": e.status, "reason": e.reason})
                continue
            except ExpansionError as e:
                logger.info(f"Auto-expand rejected '{row.term}': {e.message}")
                self.tracker.mark(row, ExpansionStatus.rejected, AUTO_CONFLICT_REASON)
                batch.skipped.append({
                    "id": row.id, "term": row.term,
                    "status": ExpansionStatus.rejected.value, "reason": AUTO_CONFLICT_REASON,
                    "detail": e.message,
                })
                continue

            batch.promoted.append({
                "id": row.id,
                "term": row.term,
                "standardTerm": outcome.term.term,
                "termId": outcome.term_id,
                "occurrenceCount": row.occurrence_count,
                "filmTypes": outcome.term.film_types,
                "cleanedCount": outcome.record.cleaned_count,
            })

        logger.info(
            f"Auto-expand {batch.batch_id}: {len(batch.promoted)} promoted, {len(batch.skipped)} skipped"
        )
        return batch

    @staticmethod
    def _gate(row: UnrecognizedTerm, min_frequency: int) -> None:
        if row.occurrence_count < min_frequency:
            raise IneligibleError(f"出现次数不足（{row.occurrence_count} < {min_frequency}）")
        if not row.film_type_names():
            raise IneligibleError(NO_FILM_TYPE_REASON)

    async def approve_directly(
        self,
        raw_term: str,
        standard_term: str,
        category: str,
        term_type: str = TermType.extended.value,
        synonyms: Sequence[str] = (),
        film_types: Sequence[str] = (),
        reason: Optional[str] = None,
        reviewer: Optional[str] = None,
    ) -> ExpansionOutcome:
        """Promote a raw string straight to a new approved standard term."""
        return await self.evaluate(ExpansionRequest(
            path=ExpansionPath.direct,
            term=standard_term,
            category=category,
            synonyms=[raw_term] + list(synonyms),
            film_types=list(film_types),
            reason=reason or "用户手动一键转正",
            term_type=term_type,
            raw_term=clean(raw_term),
            reviewer=reviewer,
        ))

    async def import_terms(self, items: Sequence[Dict[str, Any]], reviewer: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Seed approved terms; each item is reported independently.

        An item naming an existing term of the same category is merged into
        it (synonym and film type union) instead of being rejected.
        """
        batch_id = new_batch_id("import")
        results = []
        for item in items:
            try:
                name = clean(item.get("term", ""))
                existing = self.store.find(name) if name else None
                if existing and existing.term == name and existing.category == item.get("category"):
                    merged = self._merge_into(
                        existing,
                        item.get("synonyms") or [],
                        item.get("filmTypes") or item.get("film_types") or [],
                    )
                    results.append({"term": merged.term, "termId": merged.id, "success": True, "merged": True})
                    continue
                outcome = await self.evaluate(ExpansionRequest(
                    path=ExpansionPath.imported,
                    term=item.get("term", ""),
                    category=item.get("category", ""),
                    synonyms=list(item.get("synonyms") or []),
                    film_types=list(item.get("filmTypes") or item.get("film_types") or []),
                    reason=item.get("reason") or "批量导入",
                    term_type=item.get("termType") or item.get("term_type") or TermType.core.value,
                    usage_count=int(item.get("usageCount") or item.get("usage_count") or 0),
                    reviewer=reviewer,
                    batch_id=batch_id,
                ))
                results.append({"term": outcome.term.term, "termId": outcome.term_id, "success": True})
            except ExpansionError as e:
                results.append({"term": item.get("term"), "success": False, "error": e.message})
        return results

    def _merge_into(self, term: StandardTerm, synonyms: Sequence[str], film_types: Sequence[str]) -> StandardTerm:
        """Union into an existing term and backfill only the synonyms it gained."""
        problems = [(s, m) for s, m in self.checker.check_synonyms(clean_synonyms(synonyms))
                    if s not in term.synonyms and s != term.term]
        if problems:
            raise _synonym_conflict(problems)

        merged = self.store.merge(term.id, synonyms, film_types)
        added = [s for s in merged.synonyms if s not in term.synonyms]
        records = self.ledger.records_for_term(term.id)
        if added and records:
            self._run_backfill(records[0], merged, added)
        self.tracker.mark_matching(added, merged.category, ExpansionStatus.expanded)
        return merged

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    def review_terms(
        self,
        term_ids: Sequence,
        action: str,
        reviewer: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> List[ReviewResult]:
        """Approve or reject each term independently."""
        if action not in ("approve", "reject"):
            raise CandidateRuleError([f"无效的审核操作：{action}"])

        results = []
        for term_id in term_ids:
            name = None
            try:
                term = self.store.get(term_id)
                name = term.term
                if action == "approve":
                    self._approve(term, reviewer, comment)
                    results.append(ReviewResult(str(term_id), name, action, True))
                else:
                    restored = self._reject(term, reviewer, comment)
                    results.append(ReviewResult(str(term_id), name, action, True, restored_count=restored))
            except ExpansionError as e:
                results.append(ReviewResult(str(term_id), name, action, False, e.message))
            except Exception as e:
                logger.error(f"Review {action} failed for term {term_id}: {e}", exc_info=True)
                results.append(ReviewResult(str(term_id), name, action, False, str(e)))
        return results

    def _approve(self, term: StandardTerm, reviewer: Optional[str], comment: Optional[str]) -> StandardTerm:
        if term.is_approved:
            return term
        approved = self.store.set_review_status(
            term.id, ReviewStatus.approved,
            reviewer or DEFAULT_REVIEWER,
            comment or DEFAULT_APPROVE_COMMENT,
        )
        logger.info(f"Approved '{term.term}' by {approved.reviewed_by}")
        return approved

    @staticmethod
    def is_rejectable(term: StandardTerm) -> bool:
        if term.review_status == ReviewStatus.pending.value:
            return True
        return term.is_approved and term.reviewed_by is None

    def _reject(self, term: StandardTerm, reviewer: Optional[str], comment: Optional[str]) -> int:
        """Roll back, delete, journal. Returns the number of restored entries."""
        if not self.is_rejectable(term):
            raise ReviewStateError(f'标准词"{term.term}"已由{term.reviewed_by}审核通过，不能撤销')

        records = self.ledger.records_for_term(term.id)
        tracked = [r for r in records if r.validation_details.get("provenanceTracked")]
        provenance = [entry for r in tracked for entry in r.provenance] if tracked else None

        result = self.backfill.rollback(term, provenance)
        if not result.completed:
            failure = PartialBackfillFailure(term.term, result.failed_record_ids, result.cleaned_count)
            logger.warning(f"⚠️  Rollback incomplete: {failure.message}")

        self.store.delete(term.id)
        self.ledger.mark_rejected(term.id)
        reason = f"{HUMAN_REJECTION_PREFIX}：{comment or DEFAULT_REJECT_COMMENT}"
        raws = [r.validation_details.get("rawTerm") for r in records if r.validation_details.get("rawTerm")]
        self.tracker.mark_matching(term.surfaces() + raws, term.category, ExpansionStatus.ineligible, reason)

        logger.info(f"Rejected '{term.term}' by {reviewer or DEFAULT_REVIEWER}: {result.cleaned_count} entries restored")
        return result.cleaned_count

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def query_vocabulary(self, category: Optional[str] = None) -> Dict[str, VocabularyProjection]:
        """Approved vocabulary projection, one entry per category."""
        categories = [category] if category else [c.value for c in Category]
        return {c: self.store.projection(c) for c in categories}

    def standardize_terms(self, terms: Sequence[str], category: str) -> List[Dict[str, Any]]:
        """Map raw strings to standard terms through the approved vocabulary."""
        projection = self.store.projection(category)
        results = []
        for raw in terms:
            value = clean(raw)
            standard = projection.mapping.get(value)
            if standard is None:
                results.append({"original": raw, "standard": None, "matched": False, "reason": "无法识别"})
            elif standard == value:
                results.append({"original": raw, "standard": standard, "matched": True, "reason": "已是标准词"})
            else:
                results.append({
                    "original": raw, "standard": standard, "matched": True,
                    "reason": f'是"{standard}"的近义词',
                })
        return results

    def list_terms(
        self,
        category: Optional[str] = None,
        term_type: Optional[str] = None,
        review_status: Optional[str] = None,
        keyword: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        filters = dict(category=category, term_type=term_type, review_status=review_status, keyword=keyword)
        items = self.store.list_terms(limit=limit, offset=(page - 1) * limit, **filters)
        return Page(items, self.store.count_terms(**filters), page, limit)

    def list_history(
        self,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        items = self.ledger.history(category=category, keyword=keyword, limit=limit, offset=(page - 1) * limit)
        return Page(items, self.ledger.count(category=category, keyword=keyword), page, limit)

    def list_unrecognized(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        min_count: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        items = self.tracker.list_rows(category, status, min_count, limit=limit, offset=(page - 1) * limit)
        return Page(items, self.tracker.count_rows(category, status, min_count), page, limit)

    def unrecognized_stats(self) -> Dict[str, Any]:
        return self.tracker.stats()

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def rerun_backfill(self, record_id) -> ExpansionRecord:
        """Re-apply the promotion backfill recorded by a ledger entry."""
        record = self.ledger.get(record_id)
        if record is None:
            raise TermNotFoundError(record_id)
        term = self.store.get(record.term_id)
        raw = record.validation_details.get("rawTerm") or term.term
        self._run_backfill(record, term, [raw] + term.synonyms)
        return self.ledger.get(record_id)

    def validate_integrity(self) -> IntegrityReport:
        return IntegrityChecker(self.store.db, self.settings).run()


def build_engine(db=None, ai_provider=None, settings: Optional[ExpansionSettings] = None) -> ExpansionEngine:
    """
    Wire an engine from a storage backend and an AI provider.

    Args:
        db: Storage backend (default: ``get_term_database()``)
        ai_provider: Provider for the similarity oracle (default: ``get_provider()``)
        settings: Defaults to environment settings
    """
    from ..lib.ai_providers import get_provider
    from ..lib.term_db import get_term_database

    settings = settings or get_settings()
    db = db if db is not None else get_term_database(settings.backend)
    ai_provider = ai_provider if ai_provider is not None else get_provider()

    store = TermStore(db)
    return ExpansionEngine(
        store=store,
        ledger=ExpansionLedger(db),
        tracker=UnrecognizedTermTracker(db, settings.min_frequency),
        backfill=AnalysisBackfill(db),
        checker=ConflictChecker(store.cache),
        oracle=SimilarityOracle(
            ai_provider,
            batch_size=settings.oracle_batch_size,
            timeout=settings.oracle_timeout,
            similarity_floor=settings.similarity_floor,
            review_margin=settings.review_margin,
        ),
        settings=settings,
    )
