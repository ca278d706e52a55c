"""
Tests for similarity_oracle.py

Validates decision bands, fail-open scoring and chunked LLM calls.
"""

import pytest
from termbank.lib.mock_ai_provider import MockAIProvider
from termbank.lib.similarity_oracle import SimilarityOracle, build_message, classify
from termbank.lib.term_types import RecommendedAction


RANK = {RecommendedAction.accept: 0, RecommendedAction.review: 1, RecommendedAction.reject: 2}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def provider():
    return MockAIProvider(similarities={
        ("伏击", "埋伏"): 0.82,
        ("伏击", "偷袭"): 0.72,
        ("伏击", "追逐"): 0.5,
        ("伏击", "对峙"): 0.6,
    })


@pytest.fixture
def oracle(provider):
    return SimilarityOracle(provider, batch_size=2, timeout=5.0)


# ============================================================================
# Decision Bands
# ============================================================================

@pytest.mark.unit
@pytest.mark.parametrize("highest,expected", [
    (0.82, RecommendedAction.reject),
    (0.8, RecommendedAction.reject),
    (0.72, RecommendedAction.review),
    (0.7, RecommendedAction.review),
    (0.69, RecommendedAction.accept),
    (0.5, RecommendedAction.accept),
    (0.0, RecommendedAction.accept),
])
def test_classify_bands(highest, expected):
    assert classify(highest, threshold=0.8) is expected


@pytest.mark.unit
def test_lower_threshold_never_relaxes_decision():
    """Decreasing the threshold can only move a fixed score toward reject."""
    scores = [i / 100 for i in range(0, 101, 3)]
    thresholds = [0.95, 0.9, 0.85, 0.8, 0.75, 0.7, 0.6, 0.5]

    for score in scores:
        ranks = [RANK[classify(score, t)] for t in thresholds]
        assert ranks == sorted(ranks), f"non-monotonic bands for score {score}"


@pytest.mark.unit
def test_no_similar_terms_message():
    assert build_message("伏击", 0.0, RecommendedAction.accept, [], 0.8) == "无相似词汇，自动通过"


# ============================================================================
# Evaluation
# ============================================================================

@pytest.mark.asyncio
async def test_reject_lists_similar_terms(oracle):
    verdict = await oracle.evaluate("伏击", ["埋伏", "偷袭", "追逐"], threshold=0.8)

    assert verdict.recommended_action is RecommendedAction.reject
    assert verdict.highest_similarity == pytest.approx(0.82)
    assert [s.term for s in verdict.similar_terms] == ["埋伏", "偷袭"]
    assert "埋伏(82.0%)" in verdict.message


@pytest.mark.asyncio
async def test_review_band(oracle):
    verdict = await oracle.evaluate("伏击", ["偷袭", "追逐"], threshold=0.8)

    assert verdict.recommended_action is RecommendedAction.review
    assert "需要人工审核" in verdict.message


@pytest.mark.asyncio
async def test_accept_band(oracle):
    verdict = await oracle.evaluate("伏击", ["追逐"], threshold=0.8)

    assert verdict.recommended_action is RecommendedAction.accept
    assert verdict.similar_terms == []


@pytest.mark.asyncio
async def test_empty_vocabulary_skips_llm(oracle, provider):
    verdict = await oracle.evaluate("伏击", [], threshold=0.8)

    assert verdict.recommended_action is RecommendedAction.accept
    assert verdict.message == "无相似词汇，自动通过"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_scores_every_term_in_chunks(oracle, provider):
    await oracle.evaluate("伏击", ["埋伏", "偷袭", "追逐", "对峙", "悲伤"])

    assert sorted(b for _, b in provider.calls) == sorted(["埋伏", "偷袭", "追逐", "对峙", "悲伤"])


# ============================================================================
# Fail-Open Policy
# ============================================================================

@pytest.mark.asyncio
async def test_score_all_ranks_and_drops_low_and_failed_pairs():
    provider = MockAIProvider(similarities={
        ("伏击", "埋伏"): 0.9,
        ("伏击", "追逐"): 0.5,
        ("伏击", "对峙"): 0.6,
    }, fail_on={"偷袭"})
    oracle = SimilarityOracle(provider, batch_size=2, timeout=5.0)

    scores = await oracle.score_all("伏击", ["追逐", "埋伏", "偷袭", "对峙"])

    assert [s.term for s in scores] == ["埋伏", "对峙"]
    assert [s.similarity for s in scores] == [pytest.approx(0.9), pytest.approx(0.6)]
    assert not any(s.failed for s in scores)


@pytest.mark.asyncio
async def test_highest_below_floor_is_still_reported():
    provider = MockAIProvider(similarities={("伏击", "追逐"): 0.4})
    oracle = SimilarityOracle(provider, timeout=5.0)

    verdict = await oracle.evaluate("伏击", ["追逐"], threshold=0.8)

    assert verdict.highest_similarity == pytest.approx(0.4)
    assert verdict.similar_terms == []
    assert verdict.recommended_action is RecommendedAction.accept


@pytest.mark.asyncio
async def test_failed_pair_scores_zero(provider):
    provider.fail_on = {"埋伏"}
    oracle = SimilarityOracle(provider, batch_size=5, timeout=5.0)

    verdict = await oracle.evaluate("伏击", ["埋伏", "偷袭"], threshold=0.8)

    assert verdict.oracle_failures == 1
    assert verdict.highest_similarity == pytest.approx(0.72)
    assert verdict.recommended_action is RecommendedAction.review


@pytest.mark.asyncio
async def test_unparseable_reply_scores_zero(provider):
    provider.raw_responses = {"埋伏": "I think they are similar"}
    oracle = SimilarityOracle(provider, batch_size=5, timeout=5.0)

    verdict = await oracle.evaluate("伏击", ["埋伏"], threshold=0.8)

    assert verdict.oracle_failures == 1
    assert verdict.highest_similarity == 0.0
    assert verdict.recommended_action is RecommendedAction.accept


@pytest.mark.asyncio
async def test_chunk_timeout_scores_zero(provider):
    provider.delays = {"埋伏": 1.0}
    oracle = SimilarityOracle(provider, batch_size=5, timeout=0.1)

    verdict = await oracle.evaluate("伏击", ["埋伏", "偷袭"], threshold=0.8)

    assert verdict.oracle_failures == 2
    assert verdict.recommended_action is RecommendedAction.accept


@pytest.mark.asyncio
async def test_timeout_keeps_earlier_chunks(provider):
    provider.delays = {"追逐": 1.0}
    oracle = SimilarityOracle(provider, batch_size=1, timeout=0.2)

    verdict = await oracle.evaluate("伏击", ["埋伏", "追逐"], threshold=0.8)

    assert verdict.oracle_failures == 1
    assert verdict.recommended_action is RecommendedAction.reject
