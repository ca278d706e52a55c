"""
Expansion error taxonomy.

Every error carries a human-readable ``message``: reviewers and AI callers
read it to decide whether to resubmit with a different term. Structured
fields name the conflicting term(s) so the HTTP layer can return them.

Fatal to a submission (returned to the caller):
    DuplicateTermError, ConflictError, SimilarityRejection, CandidateRuleError

Absorbed internally (logged, counted, never raised to a caller):
    IneligibleError, OracleFailure, PartialBackfillFailure
"""

from typing import Any, Dict, List, Optional


class ExpansionError(Exception):
    """Base class for vocabulary expansion failures."""

    kind = "expansion_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def conflicting_terms(self) -> List[str]:
        return []

    def to_detail(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "conflictingTerms": self.conflicting_terms,
        }


class DuplicateTermError(ExpansionError):
    """Term (or one of its synonyms) already exists as a term or synonym."""

    kind = "duplicate_term"

    def __init__(self, conflicting_term: str, message: Optional[str] = None):
        super().__init__(message or f'标准词"{conflicting_term}"已存在')
        self.conflicting_term = conflicting_term

    @property
    def conflicting_terms(self) -> List[str]:
        return [self.conflicting_term]


class ConflictError(ExpansionError):
    """Structural near-duplicate found by the local conflict checker."""

    kind = "conflict"

    def __init__(
        self,
        message: str,
        conflicting_term: Optional[str] = None,
        conflict_type: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.conflicting_term = conflicting_term
        self.conflict_type = conflict_type
        self.suggestion = suggestion

    @property
    def conflicting_terms(self) -> List[str]:
        return [self.conflicting_term] if self.conflicting_term else []


class SimilarityRejection(ExpansionError):
    """Semantic near-duplicate reported by the similarity oracle."""

    kind = "similarity_rejection"

    def __init__(self, message: str, similar_terms: List[Dict[str, Any]], highest_similarity: float):
        super().__init__(message)
        self.similar_terms = similar_terms
        self.highest_similarity = highest_similarity

    @property
    def conflicting_terms(self) -> List[str]:
        return [item["term"] for item in self.similar_terms]

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["similarTerms"] = self.similar_terms
        detail["highestSimilarity"] = self.highest_similarity
        return detail


class CandidateRuleError(ExpansionError):
    """Submission is malformed (missing reason, confidence too low, ...)."""

    kind = "invalid_candidate"

    def __init__(self, errors: List[str]):
        super().__init__("；".join(errors))
        self.errors = errors


class TermNotFoundError(ExpansionError):
    kind = "not_found"

    def __init__(self, term_id: str):
        super().__init__(f"术语不存在：{term_id}")
        self.term_id = term_id


class ReviewStateError(ExpansionError):
    """Term cannot take the requested review transition."""

    kind = "invalid_review_state"


class IneligibleError(ExpansionError):
    """Frequency or film-type gate not met on the auto path."""

    kind = "ineligible"

    def __init__(self, reason: str, status: str = "ineligible"):
        super().__init__(reason)
        self.reason = reason
        self.status = status


class OracleFailure(ExpansionError):
    """A pairwise similarity call to the LLM failed or timed out."""

    kind = "oracle_failure"

    def __init__(self, term: str, existing_term: str, cause: str):
        super().__init__(f'相似度计算失败 "{term}" vs "{existing_term}": {cause}')
        self.term = term
        self.existing_term = existing_term


class PartialBackfillFailure(ExpansionError):
    """Promotion succeeded but some analysis records were not rewritten."""

    kind = "partial_backfill"

    def __init__(self, term: str, failed_record_ids: List[Any], cleaned_count: int = 0):
        super().__init__(
            f'历史数据回填未完成 "{term}"：{len(failed_record_ids)} 条记录失败'
        )
        self.term = term
        self.failed_record_ids = failed_record_ids
        self.cleaned_count = cleaned_count
