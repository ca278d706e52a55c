"""Pydantic models for controlled vocabulary expansion and review"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


# =============================================================================
# Enums
# =============================================================================

class CategoryEnum(str, Enum):
    """Vocabulary category"""
    emotion = "emotion"
    style = "style"
    instrument = "instrument"
    film = "film"
    scenario = "scenario"
    dubbing = "dubbing"


class TermTypeEnum(str, Enum):
    core = "core"
    extended = "extended"


class CandidateSourceEnum(str, Enum):
    """Who proposes a candidate"""
    manual = "manual"
    ai = "ai"


class ReviewActionEnum(str, Enum):
    approve = "approve"
    reject = "reject"


class ReviewStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ExpansionStatusEnum(str, Enum):
    pending = "pending"
    eligible = "eligible"
    ineligible = "ineligible"
    rejected = "rejected"
    expanded = "expanded"


# =============================================================================
# Term Models
# =============================================================================

class StandardTermInfo(BaseModel):
    """A canonical vocabulary entry"""
    id: str
    term: str
    category: str
    term_type: str
    film_types: List[str] = []
    synonyms: List[str] = []
    is_auto_expanded: bool = False
    expansion_source: str
    expansion_reason: Optional[str] = None
    review_status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_term(cls, term) -> "StandardTermInfo":
        return cls(
            id=str(term.id),
            term=term.term,
            category=term.category,
            term_type=term.term_type,
            film_types=term.film_types,
            synonyms=term.synonyms,
            is_auto_expanded=term.is_auto_expanded,
            expansion_source=term.expansion_source,
            expansion_reason=term.expansion_reason,
            review_status=term.review_status,
            reviewed_by=term.reviewed_by,
            reviewed_at=term.reviewed_at,
            review_comment=term.review_comment,
            usage_count=term.usage_count,
            created_at=term.created_at,
            updated_at=term.updated_at,
        )


class TermListResponse(BaseModel):
    items: List[StandardTermInfo]
    total: int
    page: int
    limit: int
    total_pages: int


# =============================================================================
# Ledger Models
# =============================================================================

class ExpansionRecordInfo(BaseModel):
    """Audit entry for one expansion decision"""
    id: str
    term_id: Optional[str] = None
    term: str
    category: str
    term_type: str
    expansion_type: str
    expanded_by: str
    expansion_batch_id: str
    trigger_count: int = 0
    bound_film_types: List[str] = []
    validation_passed: bool = True
    validation_details: Dict[str, Any] = {}
    historical_data_cleaned: bool = False
    cleaned_count: int = 0
    provenance: List[Dict[str, Any]] = []
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "ExpansionRecordInfo":
        return cls(
            id=str(record.id),
            term_id=str(record.term_id) if record.term_id is not None else None,
            term=record.term,
            category=record.category,
            term_type=record.term_type,
            expansion_type=record.expansion_type,
            expanded_by=record.expanded_by,
            expansion_batch_id=record.expansion_batch_id,
            trigger_count=record.trigger_count,
            bound_film_types=record.bound_film_types,
            validation_passed=record.validation_passed,
            validation_details=record.validation_details,
            historical_data_cleaned=record.historical_data_cleaned,
            cleaned_count=record.cleaned_count,
            provenance=record.provenance,
            created_at=record.created_at,
        )


class ExpansionHistoryResponse(BaseModel):
    items: List[ExpansionRecordInfo]
    total: int
    page: int
    limit: int
    total_pages: int


# =============================================================================
# Unrecognized Term Models
# =============================================================================

class RecordUnrecognizedRequest(BaseModel):
    """One sighting of a string the analysis pipeline could not standardize"""
    term: str = Field(..., min_length=1, max_length=100)
    category: CategoryEnum
    film_type: Optional[str] = Field(None, description="Film type the string was seen with")


class RecordUnrecognizedResponse(BaseModel):
    term: str
    category: str
    occurrence_count: int
    is_eligible: bool
    status: str


class UnrecognizedTermInfo(BaseModel):
    id: str
    term: str
    category: str
    occurrence_count: int
    related_film_types: List[Dict[str, Any]] = []
    expansion_status: str
    rejection_reason: Optional[str] = None
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "UnrecognizedTermInfo":
        return cls(
            id=str(row.id),
            term=row.term,
            category=row.category,
            occurrence_count=row.occurrence_count,
            related_film_types=row.related_film_types,
            expansion_status=row.expansion_status,
            rejection_reason=row.rejection_reason,
            first_seen_at=row.first_seen_at,
            last_seen_at=row.last_seen_at,
        )


class UnrecognizedListResponse(BaseModel):
    items: List[UnrecognizedTermInfo]
    total: int
    page: int
    limit: int
    total_pages: int


# =============================================================================
# Expansion Models
# =============================================================================

class SubmitCandidateRequest(BaseModel):
    """AI-recommended or manual candidate term"""
    term: str = Field(..., min_length=1, max_length=100)
    category: CategoryEnum
    synonyms: List[str] = []
    film_types: List[str] = []
    reason: Optional[str] = None
    source: CandidateSourceEnum = CandidateSourceEnum.manual
    term_type: TermTypeEnum = TermTypeEnum.extended
    confidence: Optional[float] = Field(None, ge=0, le=100, description="0-1 or 0-100")
    threshold: Optional[float] = Field(None, gt=0, le=1)


class SimilarTermInfo(BaseModel):
    term: str
    similarity: float
    reason: Optional[str] = None


class ExpansionResponse(BaseModel):
    """Result of a successful expansion"""
    success: bool = True
    message: str
    term: StandardTermInfo
    record_id: str
    review_status: str
    highest_similarity: Optional[float] = None
    recommended_action: Optional[str] = None
    similar_terms: List[SimilarTermInfo] = []
    warnings: List[str] = []
    cleaned_count: int = 0
    backfill_complete: bool = True

    @classmethod
    def from_outcome(cls, outcome) -> "ExpansionResponse":
        verdict = outcome.verdict
        return cls(
            message=outcome.message,
            term=StandardTermInfo.from_term(outcome.term),
            record_id=str(outcome.record.id),
            review_status=outcome.review_status,
            highest_similarity=verdict.highest_similarity if verdict else None,
            recommended_action=verdict.recommended_action.value if verdict else None,
            similar_terms=[SimilarTermInfo(**item) for item in verdict.similar_terms_dicts()] if verdict else [],
            warnings=outcome.warnings,
            cleaned_count=outcome.record.cleaned_count,
            backfill_complete=outcome.backfill.completed if outcome.backfill else True,
        )


class AutoExpandRequest(BaseModel):
    candidate_ids: Optional[List[str]] = Field(None, description="Limit to these unrecognized rows")
    min_frequency: Optional[int] = Field(None, ge=1)


class AutoExpandResponse(BaseModel):
    batch_id: str
    promoted_terms: List[Dict[str, Any]]
    skipped: List[Dict[str, Any]]


class ApproveDirectlyRequest(BaseModel):
    """Promote a raw string straight to an approved standard term"""
    term: str = Field(..., min_length=1, max_length=100, description="Raw string as produced by analysis")
    standard_term: str = Field(..., min_length=1, max_length=100)
    category: CategoryEnum
    term_type: TermTypeEnum = TermTypeEnum.extended
    synonyms: List[str] = []
    film_types: List[str] = []
    reason: Optional[str] = None


# =============================================================================
# Review Models
# =============================================================================

class ReviewRequest(BaseModel):
    term_ids: List[str] = Field(..., min_length=1)
    action: ReviewActionEnum
    reviewed_by: Optional[str] = None
    comment: Optional[str] = None


class ReviewResultInfo(BaseModel):
    term_id: str
    term: Optional[str] = None
    action: str
    success: bool
    error: Optional[str] = None
    restored_count: int = 0


class ReviewResponse(BaseModel):
    success_count: int
    failure_count: int
    results: List[ReviewResultInfo]


# =============================================================================
# Query Models
# =============================================================================

class CategoryMapping(BaseModel):
    mapping: Dict[str, str]
    standard_list: List[str]


class VocabularyMappingResponse(BaseModel):
    categories: Dict[str, CategoryMapping]


class StandardizeRequest(BaseModel):
    terms: List[str]
    category: CategoryEnum

    @field_validator("terms")
    @classmethod
    def terms_not_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("terms must not be empty")
        return value


class StandardizeResultInfo(BaseModel):
    original: str
    standard: Optional[str] = None
    matched: bool
    reason: str


class StandardizeResponse(BaseModel):
    results: List[StandardizeResultInfo]


class IntegrityResponse(BaseModel):
    errors: List[str]
    warnings: List[str]
    suggestions: List[str]
    statistics: Dict[str, Any] = {}
