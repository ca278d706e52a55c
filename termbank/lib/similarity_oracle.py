"""
Similarity Oracle - LLM-scored semantic similarity between terms.

Asks the configured LLM to judge each (candidate, existing term) pair and
maps the highest score onto a decision band.

Decision Bands (threshold t, default 0.80, review margin 0.10):
    - highest >= t:              reject (semantic duplicate)
    - t - 0.10 <= highest < t:   review (stored as pending)
    - highest < t - 0.10:        accept (auto-approved)
    - highest == 0:              accept, "no similar terms"

Failure Policy:
    Any pairwise failure (exception, unparseable reply, chunk timeout)
    scores 0 for that pair and is logged. Scoring never raises: a flaky
    LLM must not block vocabulary expansion.

Usage:
    from termbank.lib.similarity_oracle import SimilarityOracle

    oracle = SimilarityOracle(ai_provider)
    verdict = await oracle.evaluate("伏击", ["埋伏", "追逐"], threshold=0.8)
    if verdict.recommended_action is RecommendedAction.reject:
        ...
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import OracleFailure
from .llm_utils import call_llm_sync, parse_json_object
from .term_types import RecommendedAction

logger = logging.getLogger(__name__)


SIMILARITY_PROMPT = """你是一位语言学专家，擅长判断中文{label}词汇之间的语义关系。

请判断以下两个词汇是否为近义词或同义词：

词汇A：「{candidate}」
词汇B：「{existing}」

请从以下维度分析：
1. 语义是否相同或高度相似
2. 使用场景是否重叠
3. 是否可以互换使用

请只返回JSON：
{{"isSynonym": true/false, "similarity": 0.95, "reason": "判断理由"}}

similarity 为 0-1 之间的小数，保留2位小数；≥0.8 视为近义词。"""

SYSTEM_MSG = "You judge semantic similarity between vocabulary terms. Respond with valid JSON only."


@dataclass
class SimilarityScore:
    """LLM judgement for one (candidate, existing) pair."""
    term: str
    similarity: float
    reason: str = ""
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"term": self.term, "similarity": self.similarity}

    def __repr__(self) -> str:
        flag = ", failed" if self.failed else ""
        return f"SimilarityScore({self.term}, sim={self.similarity:.2f}{flag})"


@dataclass
class SimilarityVerdict:
    """
    Decision for a candidate against an existing vocabulary.

    Attributes:
        candidate: Term being evaluated
        highest_similarity: Max score over all pairs (unfiltered)
        recommended_action: accept / review / reject
        similar_terms: Scores above the floor, descending
        message: Human-readable explanation
        threshold: Threshold the band was computed against
        oracle_failures: Pairs that failed and were scored 0
    """
    candidate: str
    highest_similarity: float
    recommended_action: RecommendedAction
    similar_terms: List[SimilarityScore] = field(default_factory=list)
    message: str = ""
    threshold: float = 0.8
    oracle_failures: int = 0

    def similar_terms_dicts(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.similar_terms]

    def __repr__(self) -> str:
        return (
            f"SimilarityVerdict({self.candidate}, highest={self.highest_similarity:.2f}, "
            f"{self.recommended_action.value})"
        )


def classify(highest: float, threshold: float = 0.8, margin: float = 0.1) -> RecommendedAction:
    """
    Map a highest-similarity score to a decision band.

    Lowering ``threshold`` can only move a fixed score toward reject, never
    from reject back to accept.
    """
    if highest >= threshold:
        return RecommendedAction.reject
    if highest >= round(threshold - margin, 6):
        return RecommendedAction.review
    return RecommendedAction.accept


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def build_message(
    candidate: str,
    highest: float,
    action: RecommendedAction,
    similar_terms: Sequence[SimilarityScore],
    threshold: float,
) -> str:
    if highest == 0:
        return "无相似词汇，自动通过"
    if action is RecommendedAction.reject:
        listing = "、".join(f"{s.term}({_pct(s.similarity)})" for s in similar_terms)
        return (
            f'该词"{candidate}"与词库中已有词汇相似度过高（≥{threshold * 100:.0f}%），'
            f"避免重复录入。相似词汇：{listing}"
        )
    if action is RecommendedAction.review:
        return f"最高相似度{_pct(highest)}，接近阈值{threshold * 100:.0f}%，需要人工审核"
    return f"最高相似度{_pct(highest)}，低于阈值{threshold * 100:.0f}%，自动通过"


class SimilarityOracle:
    """
    Score a candidate against existing terms with the LLM, in bounded chunks.

    Pairs are scored ``batch_size`` at a time; the pairs of one chunk run
    concurrently, chunks run one after another. Each chunk has its own
    timeout, so a stalled chunk scores 0 without discarding earlier chunks.
    """

    def __init__(
        self,
        ai_provider,
        batch_size: int = 5,
        timeout: float = 30.0,
        similarity_floor: float = 0.5,
        review_margin: float = 0.1,
    ):
        """
        Args:
            ai_provider: Provider accepted by ``call_llm_sync``
            batch_size: Pairs scored concurrently per chunk
            timeout: Seconds allowed per chunk
            similarity_floor: Scores at or below this are not reported
            review_margin: Width of the review band below the threshold
        """
        self.ai_provider = ai_provider
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.similarity_floor = similarity_floor
        self.review_margin = review_margin

    async def score_pair(self, candidate: str, existing: str, category: Optional[str] = None) -> SimilarityScore:
        """
        Ask the LLM for one pair.

        Raises:
            OracleFailure: Provider error or unusable reply
        """
        prompt = SIMILARITY_PROMPT.format(
            label=category or "",
            candidate=candidate,
            existing=existing,
        )
        try:
            reply = await asyncio.to_thread(
                call_llm_sync,
                self.ai_provider,
                prompt,
                SYSTEM_MSG,
                200,
                0.1,
                True,
            )
        except Exception as e:
            raise OracleFailure(candidate, existing, str(e)) from e

        data = parse_json_object(reply)
        if data is None:
            raise OracleFailure(candidate, existing, "LLM返回格式错误")
        try:
            similarity = float(data.get("similarity", 0))
        except (TypeError, ValueError):
            raise OracleFailure(candidate, existing, f"invalid similarity {data.get('similarity')!r}")

        similarity = min(1.0, max(0.0, similarity))
        return SimilarityScore(existing, similarity, str(data.get("reason", "")))

    async def _score_or_zero(self, candidate: str, existing: str, category: Optional[str]) -> SimilarityScore:
        try:
            return await self.score_pair(candidate, existing, category)
        except OracleFailure as e:
            logger.warning(f"⚠️  {e.message} - scoring as 0")
            return SimilarityScore(existing, 0.0, "scoring failed", failed=True)

    async def _score_chunk(self, candidate: str, chunk: List[str], category: Optional[str]) -> List[SimilarityScore]:
        try:
            return await asyncio.wait_for(
                asyncio.gather(*(self._score_or_zero(candidate, t, category) for t in chunk)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"⚠️  Similarity chunk timed out after {self.timeout}s for '{candidate}' "
                f"({len(chunk)} pairs) - scoring as 0"
            )
            return [SimilarityScore(t, 0.0, "timeout", failed=True) for t in chunk]

    async def score_all_raw(
        self,
        candidate: str,
        existing_terms: Sequence[str],
        category: Optional[str] = None,
    ) -> List[SimilarityScore]:
        """Score every pair, in input order, failures included as 0."""
        terms = [t for t in dict.fromkeys(existing_terms) if t]
        results: List[SimilarityScore] = []
        for start in range(0, len(terms), self.batch_size):
            chunk = terms[start:start + self.batch_size]
            results.extend(await self._score_chunk(candidate, chunk, category))
        return results

    async def score_all(
        self,
        candidate: str,
        existing_terms: Sequence[str],
        category: Optional[str] = None,
    ) -> List[SimilarityScore]:
        """
        Score the candidate against every existing term.

        Returns:
            Scores above the similarity floor, highest first. Failed pairs
            are left out.
        """
        raw = await self.score_all_raw(candidate, existing_terms, category)
        return self.rank(raw)

    def rank(self, raw: Sequence[SimilarityScore]) -> List[SimilarityScore]:
        """Drop failed pairs and scores at or below the floor, highest first."""
        kept = [s for s in raw if not s.failed and s.similarity > self.similarity_floor]
        return sorted(kept, key=lambda s: s.similarity, reverse=True)

    async def evaluate(
        self,
        candidate: str,
        existing_terms: Sequence[str],
        threshold: float = 0.8,
        category: Optional[str] = None,
    ) -> SimilarityVerdict:
        """
        Score and classify a candidate.

        An empty existing vocabulary is an immediate accept without any LLM
        call.
        """
        if not existing_terms:
            return SimilarityVerdict(
                candidate=candidate,
                highest_similarity=0.0,
                recommended_action=RecommendedAction.accept,
                message=build_message(candidate, 0.0, RecommendedAction.accept, [], threshold),
                threshold=threshold,
            )

        raw = await self.score_all_raw(candidate, existing_terms, category)
        highest = max((s.similarity for s in raw), default=0.0)
        failures = sum(1 for s in raw if s.failed)
        action = classify(highest, threshold, self.review_margin)
        similar = self.rank(raw)

        if failures:
            logger.warning(f"Similarity for '{candidate}': {failures}/{len(raw)} pairs failed open")
        logger.info(f"Similarity for '{candidate}': highest={highest:.2f} → {action.value}")

        return SimilarityVerdict(
            candidate=candidate,
            highest_similarity=highest,
            recommended_action=action,
            similar_terms=similar,
            message=build_message(candidate, highest, action, similar, threshold),
            threshold=threshold,
            oracle_failures=failures,
        )
