"""
Controlled vocabulary endpoints.

Provides REST API access to:
- Unrecognized-term reporting and statistics
- Candidate submission (AI-recommended and manual)
- Frequency-triggered auto-expansion
- Human review (approve / reject with rollback)
- Vocabulary mapping, standardization and history
- Integrity validation and backfill reconciliation
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from ..models.vocabulary import (
    # Terms and history
    StandardTermInfo,
    TermListResponse,
    ExpansionRecordInfo,
    ExpansionHistoryResponse,

    # Unrecognized terms
    RecordUnrecognizedRequest,
    RecordUnrecognizedResponse,
    UnrecognizedTermInfo,
    UnrecognizedListResponse,

    # Expansion
    SubmitCandidateRequest,
    ExpansionResponse,
    AutoExpandRequest,
    AutoExpandResponse,
    ApproveDirectlyRequest,

    # Review
    ReviewRequest,
    ReviewResultInfo,
    ReviewResponse,

    # Queries
    CategoryMapping,
    VocabularyMappingResponse,
    StandardizeRequest,
    StandardizeResultInfo,
    StandardizeResponse,
    IntegrityResponse,

    # Enums
    CategoryEnum,
    ExpansionStatusEnum,
    ReviewStatusEnum,
    TermTypeEnum,
)

from ..lib.errors import (
    ConflictError,
    DuplicateTermError,
    ExpansionError,
    ReviewStateError,
    SimilarityRejection,
    TermNotFoundError,
)
from ..services.expansion_engine import ExpansionEngine, build_engine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])

_engine: Optional[ExpansionEngine] = None


def get_engine() -> ExpansionEngine:
    """Get the process-wide ExpansionEngine (built on first use)"""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def _status_for(error: ExpansionError) -> int:
    if isinstance(error, (DuplicateTermError, ConflictError, SimilarityRejection, ReviewStateError)):
        return 409
    if isinstance(error, TermNotFoundError):
        return 404
    # CandidateRuleError and anything else the caller can fix
    return 400


def _http_error(error: ExpansionError) -> HTTPException:
    return HTTPException(status_code=_status_for(error), detail=error.to_detail())


# =============================================================================
# Unrecognized Terms
# =============================================================================

@router.post("/unrecognized", response_model=RecordUnrecognizedResponse)
async def record_unrecognized(
    request: RecordUnrecognizedRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """
    Count one sighting of a string the analysis pipeline could not standardize.

    Example:
        POST /vocabulary/unrecognized
        {"term": "秘密潜入", "category": "scenario", "film_type": "警匪片"}
    """
    try:
        result = engine.record_unrecognized(request.term, request.category.value, request.film_type)
        return RecordUnrecognizedResponse(
            term=result.term,
            category=result.category,
            occurrence_count=result.occurrence_count,
            is_eligible=result.is_eligible,
            status=result.status,
        )
    except ExpansionError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to record unrecognized term: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to record unrecognized term: {str(e)}")


@router.get("/unrecognized", response_model=UnrecognizedListResponse)
async def list_unrecognized(
    category: Optional[CategoryEnum] = Query(None),
    status: Optional[ExpansionStatusEnum] = Query(None),
    min_count: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    engine: ExpansionEngine = Depends(get_engine),
):
    """List unrecognized-term counters, most frequent first"""
    try:
        result = engine.list_unrecognized(
            category=category.value if category else None,
            status=status.value if status else None,
            min_count=min_count,
            page=page,
            limit=limit,
        )
        return UnrecognizedListResponse(
            items=[UnrecognizedTermInfo.from_row(row) for row in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )
    except Exception as e:
        logger.error(f"Failed to list unrecognized terms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list unrecognized terms: {str(e)}")


@router.get("/unrecognized/stats")
async def unrecognized_stats(engine: ExpansionEngine = Depends(get_engine)):
    """Counts per status and per category"""
    try:
        return engine.unrecognized_stats()
    except Exception as e:
        logger.error(f"Failed to compute unrecognized stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute unrecognized stats: {str(e)}")


# =============================================================================
# Expansion
# =============================================================================

@router.post("/candidates", response_model=ExpansionResponse)
async def submit_candidate(
    request: SubmitCandidateRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """
    Submit an AI-recommended or manual candidate term.

    AI candidates go through the similarity check and are auto-approved,
    sent to review, or rejected. Manual candidates always wait for review.

    Returns:
        ExpansionResponse (409 with the conflicting terms on rejection)

    Example:
        POST /vocabulary/candidates
        {"term": "伏击", "category": "scenario", "synonyms": ["埋伏"],
         "film_types": ["战争片"], "reason": "...", "source": "ai", "confidence": 0.9}
    """
    try:
        outcome = await engine.submit_candidate(
            term=request.term,
            category=request.category.value,
            synonyms=request.synonyms,
            film_types=request.film_types,
            reason=request.reason,
            source=request.source.value,
            term_type=request.term_type.value,
            confidence=request.confidence,
            threshold=request.threshold,
        )
        return ExpansionResponse.from_outcome(outcome)
    except ExpansionError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to submit candidate: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to submit candidate: {str(e)}")


@router.post("/auto-expand", response_model=AutoExpandResponse)
async def auto_expand(
    request: AutoExpandRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """Promote eligible unrecognized terms to approved standard terms"""
    try:
        result = await engine.auto_expand_eligible(request.candidate_ids, request.min_frequency)
        return AutoExpandResponse(
            batch_id=result.batch_id,
            promoted_terms=result.promoted,
            skipped=result.skipped,
        )
    except Exception as e:
        logger.error(f"Auto-expand failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Auto-expand failed: {str(e)}")


@router.post("/approve-directly", response_model=ExpansionResponse)
async def approve_directly(
    request: ApproveDirectlyRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """Promote a raw string straight to a new approved standard term"""
    try:
        outcome = await engine.approve_directly(
            raw_term=request.term,
            standard_term=request.standard_term,
            category=request.category.value,
            term_type=request.term_type.value,
            synonyms=request.synonyms,
            film_types=request.film_types,
            reason=request.reason,
        )
        return ExpansionResponse.from_outcome(outcome)
    except ExpansionError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to approve term directly: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to approve term directly: {str(e)}")


# =============================================================================
# Review
# =============================================================================

@router.post("/review", response_model=ReviewResponse)
async def review_terms(
    request: ReviewRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """
    Approve or reject terms. Each term is processed independently.

    Rejection restores rewritten analysis records, deletes the term and marks
    its ledger records manual-rejected.
    """
    try:
        results = engine.review_terms(
            request.term_ids, request.action.value, request.reviewed_by, request.comment
        )
        items = [
            ReviewResultInfo(
                term_id=r.term_id,
                term=r.term,
                action=r.action,
                success=r.success,
                error=r.error,
                restored_count=r.restored_count,
            )
            for r in results
        ]
        succeeded = sum(1 for r in items if r.success)
        return ReviewResponse(success_count=succeeded, failure_count=len(items) - succeeded, results=items)
    except ExpansionError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Review failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Review failed: {str(e)}")


# =============================================================================
# Queries
# =============================================================================

@router.get("/terms", response_model=TermListResponse)
async def list_terms(
    category: Optional[CategoryEnum] = Query(None),
    term_type: Optional[TermTypeEnum] = Query(None),
    review_status: Optional[ReviewStatusEnum] = Query(None),
    keyword: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    engine: ExpansionEngine = Depends(get_engine),
):
    """List standard terms, most used first"""
    try:
        result = engine.list_terms(
            category=category.value if category else None,
            term_type=term_type.value if term_type else None,
            review_status=review_status.value if review_status else None,
            keyword=keyword,
            page=page,
            limit=limit,
        )
        return TermListResponse(
            items=[StandardTermInfo.from_term(t) for t in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )
    except Exception as e:
        logger.error(f"Failed to list terms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list terms: {str(e)}")


@router.get("/history", response_model=ExpansionHistoryResponse)
async def list_history(
    category: Optional[CategoryEnum] = Query(None),
    keyword: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    engine: ExpansionEngine = Depends(get_engine),
):
    """Expansion ledger, newest first"""
    try:
        result = engine.list_history(
            category=category.value if category else None,
            keyword=keyword,
            page=page,
            limit=limit,
        )
        return ExpansionHistoryResponse(
            items=[ExpansionRecordInfo.from_record(r) for r in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )
    except Exception as e:
        logger.error(f"Failed to list expansion history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list expansion history: {str(e)}")


@router.get("/mapping", response_model=VocabularyMappingResponse)
async def get_mapping(
    category: Optional[CategoryEnum] = Query(None),
    engine: ExpansionEngine = Depends(get_engine),
):
    """
    Approved vocabulary as term/synonym → standard term lookups.

    Example:
        GET /vocabulary/mapping?category=scenario
    """
    try:
        projections = engine.query_vocabulary(category.value if category else None)
        return VocabularyMappingResponse(categories={
            name: CategoryMapping(mapping=p.mapping, standard_list=p.standard_list)
            for name, p in projections.items()
        })
    except Exception as e:
        logger.error(f"Failed to build vocabulary mapping: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build vocabulary mapping: {str(e)}")


@router.post("/standardize", response_model=StandardizeResponse)
async def standardize(
    request: StandardizeRequest,
    engine: ExpansionEngine = Depends(get_engine),
):
    """Map raw strings to standard terms"""
    try:
        results = engine.standardize_terms(request.terms, request.category.value)
        return StandardizeResponse(results=[StandardizeResultInfo(**r) for r in results])
    except Exception as e:
        logger.error(f"Failed to standardize terms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to standardize terms: {str(e)}")


# =============================================================================
# Integrity and Reconciliation
# =============================================================================

@router.post("/backfill/{record_id}", response_model=ExpansionRecordInfo)
async def rerun_backfill(record_id: str, engine: ExpansionEngine = Depends(get_engine)):
    """Re-apply the analysis-record backfill for a ledger record"""
    try:
        return ExpansionRecordInfo.from_record(engine.rerun_backfill(record_id))
    except ExpansionError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Backfill re-run failed for record {record_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Backfill re-run failed: {str(e)}")


@router.get("/integrity", response_model=IntegrityResponse)
async def validate_integrity(engine: ExpansionEngine = Depends(get_engine)):
    """Diagnostic sweep over terms, ledger and analysis records"""
    try:
        return IntegrityResponse(**engine.validate_integrity().to_dict())
    except Exception as e:
        logger.error(f"Integrity check failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Integrity check failed: {str(e)}")
