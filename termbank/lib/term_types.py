"""
Domain types for the controlled vocabulary.

Four entities take part in an expansion:
    StandardTerm      canonical vocabulary entry (with its synonyms)
    ExpansionRecord   audit entry for one expansion decision
    UnrecognizedTerm  frequency counter for raw strings nothing matched
    AnalysisRecord    external analysis row holding denormalized tag copies
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================

class Category(str, Enum):
    emotion = "emotion"
    style = "style"
    instrument = "instrument"
    film = "film"
    scenario = "scenario"
    dubbing = "dubbing"


class TermType(str, Enum):
    core = "core"
    extended = "extended"


class ExpansionSource(str, Enum):
    """Entry path that created a term (also recorded as ledger expansion_type)."""
    manual = "manual"
    manual_import = "manual-import"
    manual_approve_directly = "manual_approve_directly"
    ai_recommend = "ai-recommend"
    ai_auto_expand = "ai-auto-expand"
    auto = "auto"


# Ledger-only expansion type written when a human reverses a term
MANUAL_REJECTED = "manual-rejected"


class ReviewStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ExpansionStatus(str, Enum):
    """Lifecycle of an UnrecognizedTerm row."""
    pending = "pending"
    eligible = "eligible"
    ineligible = "ineligible"
    rejected = "rejected"
    expanded = "expanded"


class ExpandedBy(str, Enum):
    auto = "auto"
    ai = "ai"
    manual = "manual"


class RecommendedAction(str, Enum):
    """Similarity decision band."""
    accept = "accept"
    review = "review"
    reject = "reject"


CATEGORY_VALUES = {c.value for c in Category}

# Placeholder values written by the analysis pipeline for unmatched tags
UNCLASSIFIED_DUBBING_TYPE = "未分类"
UNCLASSIFIED_DUBBING_ALIASES = (UNCLASSIFIED_DUBBING_TYPE, "unclassified")


# =============================================================================
# Entities
# =============================================================================

@dataclass
class StandardTerm:
    """A canonical vocabulary entry."""
    term: str
    category: str
    term_type: str = TermType.extended.value
    film_types: List[str] = field(default_factory=list)
    synonyms: List[str] = field(default_factory=list)
    is_auto_expanded: bool = False
    expansion_source: str = ExpansionSource.manual.value
    expansion_reason: Optional[str] = None
    review_status: str = ReviewStatus.pending.value
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None
    usage_count: int = 0
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_approved(self) -> bool:
        return self.review_status == ReviewStatus.approved.value

    def surfaces(self) -> List[str]:
        """Every string that resolves to this term (term first)."""
        return [self.term] + [s for s in self.synonyms if s != self.term]

    def __repr__(self) -> str:
        return (
            f"StandardTerm({self.term!r}, category={self.category}, "
            f"status={self.review_status}, synonyms={self.synonyms})"
        )


@dataclass
class ExpansionRecord:
    """
    Audit entry for one expansion decision.

    Only ``historical_data_cleaned``, ``cleaned_count``, ``provenance`` and
    the ``manual-rejected`` expansion type are ever written after creation.
    ``provenance`` lists every analysis-record rewrite made by the backfill:
        {"analysisId", "field", "index", "original", "originalDescription"?}
    """
    term: str
    category: str
    term_type: str
    expansion_type: str
    expanded_by: str
    expansion_batch_id: str
    term_id: Optional[str] = None
    trigger_count: int = 0
    bound_film_types: List[str] = field(default_factory=list)
    validation_passed: bool = True
    validation_details: Dict[str, Any] = field(default_factory=dict)
    historical_data_cleaned: bool = False
    cleaned_count: int = 0
    provenance: List[Dict[str, Any]] = field(default_factory=list)
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class UnrecognizedTerm:
    """Frequency counter for a raw string that failed standardization."""
    term: str
    category: str
    occurrence_count: int = 0
    related_film_types: List[Dict[str, Any]] = field(default_factory=list)
    expansion_status: str = ExpansionStatus.pending.value
    rejection_reason: Optional[str] = None
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    id: Optional[str] = None

    def film_type_names(self) -> List[str]:
        return [item["filmType"] for item in self.related_film_types if item.get("filmType")]


@dataclass
class AnalysisRecord:
    """
    Analysis row owned by the analysis pipeline.

    ``scenarios`` is a list of scene tags; ``film_scenes`` is the JSON list of
    dubbing suggestions, each ``{"type": ..., "description": ...}``.
    """
    id: Any
    scenarios: List[str] = field(default_factory=list)
    film_scenes: List[Dict[str, Any]] = field(default_factory=list)
    film_type: Optional[str] = None
