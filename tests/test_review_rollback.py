"""
Tests for review_terms in expansion_engine.py

Validates approve/reject transitions and the exact rollback of analysis
records rewritten by a promotion.
"""

import pytest
from termbank.lib.errors import CandidateRuleError
from termbank.lib.term_types import MANUAL_REJECTED, ReviewStatus, StandardTerm


async def _submit(engine, term, synonyms=(), category="scenario"):
    return await engine.submit_candidate(term, category, synonyms=list(synonyms), reason="人工补充")


# ============================================================================
# Approve
# ============================================================================

@pytest.mark.asyncio
async def test_approve_pending_term(engine):
    outcome = await _submit(engine, "伏击", ["埋伏"])

    results = engine.review_terms([outcome.term_id], "approve", reviewer="alice", comment="合适")

    assert results[0].success
    term = engine.store.get(outcome.term_id)
    assert term.review_status == ReviewStatus.approved.value
    assert term.reviewed_by == "alice"
    assert term.review_comment == "合适"
    assert engine.query_vocabulary("scenario")["scenario"].mapping["埋伏"] == "伏击"


@pytest.mark.asyncio
async def test_approve_defaults(engine):
    outcome = await _submit(engine, "伏击")

    engine.review_terms([outcome.term_id], "approve")

    term = engine.store.get(outcome.term_id)
    assert term.reviewed_by == "admin"
    assert term.review_comment == "审核通过"


@pytest.mark.asyncio
async def test_approve_is_idempotent(engine):
    outcome = await _submit(engine, "伏击")
    engine.review_terms([outcome.term_id], "approve", reviewer="alice")

    results = engine.review_terms([outcome.term_id], "approve", reviewer="bob")

    assert results[0].success
    assert engine.store.get(outcome.term_id).reviewed_by == "alice"


@pytest.mark.unit
def test_invalid_action(engine):
    with pytest.raises(CandidateRuleError):
        engine.review_terms(["1"], "archive")


@pytest.mark.asyncio
async def test_batch_continues_after_failure(engine):
    outcome = await _submit(engine, "伏击")

    results = engine.review_terms(["999", outcome.term_id], "approve")

    assert results[0].success is False
    assert "术语不存在" in results[0].error
    assert results[1].success is True


# ============================================================================
# Reject and Rollback
# ============================================================================

@pytest.mark.asyncio
async def test_reject_restores_single_synonym(engine, db, add_analysis):
    record = add_analysis(scenarios=["追击", "悲伤"])
    outcome = await _submit(engine, "追逐", ["追击"])
    assert db.get_analysis(record.id).scenarios == ["追逐", "悲伤"]

    results = engine.review_terms([outcome.term_id], "reject", comment="太宽泛")

    assert results[0].success
    assert results[0].restored_count == 1
    assert db.get_analysis(record.id).scenarios == ["追击", "悲伤"]
    assert engine.store.find("追逐") is None
    assert engine.store.find("追击") is None


@pytest.mark.asyncio
async def test_reject_restores_each_synonym_exactly(engine, db, add_analysis):
    first = add_analysis(scenarios=["追击"])
    second = add_analysis(scenarios=["追赶", "追击"])
    outcome = await _submit(engine, "追逐", ["追击", "追赶"])
    assert db.get_analysis(second.id).scenarios == ["追逐", "追逐"]

    engine.review_terms([outcome.term_id], "reject")

    assert db.get_analysis(first.id).scenarios == ["追击"]
    assert db.get_analysis(second.id).scenarios == ["追赶", "追击"]


@pytest.mark.asyncio
async def test_reject_restores_dubbing_entries(engine, db, add_analysis):
    record = add_analysis(film_scenes=[
        {"type": "未分类", "description": "建议使用低沉男声旁白"},
        {"type": "女高音", "description": "高潮部分"},
    ])
    outcome = await _submit(engine, "男低音", ["低沉男声"], category="dubbing")

    engine.review_terms([outcome.term_id], "reject")

    assert db.get_analysis(record.id).film_scenes == [
        {"type": "未分类", "description": "建议使用低沉男声旁白"},
        {"type": "女高音", "description": "高潮部分"},
    ]


@pytest.mark.asyncio
async def test_reject_leaves_later_edits_alone(engine, db, add_analysis):
    record = add_analysis(scenarios=["追击", "追击"])
    outcome = await _submit(engine, "追逐", ["追击"])
    edited = db.get_analysis(record.id)
    edited.scenarios[1] = "悲伤"
    db.save_analysis(edited)

    engine.review_terms([outcome.term_id], "reject")

    assert db.get_analysis(record.id).scenarios == ["追击", "悲伤"]


@pytest.mark.asyncio
async def test_reject_marks_ledger_and_unrecognized(engine):
    engine.record_unrecognized("追击", "scenario", "动作片")
    outcome = await _submit(engine, "追逐", ["追击"])

    engine.review_terms([outcome.term_id], "reject", comment="太宽泛")

    records = engine.ledger.records_for_term(outcome.term_id)
    assert [r.expansion_type for r in records] == [MANUAL_REJECTED]
    row = engine.tracker.find("追击", "scenario")
    assert row.expansion_status == "ineligible"
    assert row.rejection_reason == "人工审核拒绝：太宽泛"

    for _ in range(12):
        result = engine.record_unrecognized("追击", "scenario", "动作片")
    assert result.is_eligible is False


@pytest.mark.asyncio
async def test_rejected_term_can_be_resubmitted(engine):
    outcome = await _submit(engine, "追逐", ["追击"])
    engine.review_terms([outcome.term_id], "reject")

    again = await _submit(engine, "追逐", ["追击"])

    assert again.review_status == "pending"


@pytest.mark.asyncio
async def test_reject_auto_approved_term(engine, db, add_analysis):
    record = add_analysis(scenarios=["秘密潜入戏"])
    for _ in range(10):
        engine.record_unrecognized("秘密潜入戏", "scenario", "警匪片")
    await engine.auto_expand_eligible()
    term = engine.store.find("秘密潜入")

    assert db.get_analysis(record.id).scenarios == ["秘密潜入"]

    results = engine.review_terms([term.id], "reject")

    assert results[0].success
    assert db.get_analysis(record.id).scenarios == ["秘密潜入戏"]


@pytest.mark.asyncio
async def test_cannot_reject_human_approved_term(engine):
    outcome = await _submit(engine, "伏击")
    engine.review_terms([outcome.term_id], "approve", reviewer="alice")

    results = engine.review_terms([outcome.term_id], "reject")

    assert results[0].success is False
    assert "alice" in results[0].error
    assert engine.store.find("伏击") is not None


@pytest.mark.asyncio
async def test_cannot_reject_directly_approved_term(engine):
    outcome = await engine.approve_directly("秘密潜入", "潜入", "scenario")

    results = engine.review_terms([outcome.term_id], "reject")

    assert results[0].success is False


# ============================================================================
# Rollback without provenance
# ============================================================================

@pytest.mark.unit
def test_untracked_term_falls_back_to_first_synonym(engine, db, add_analysis):
    record = add_analysis(scenarios=["追逐", "悲伤"])
    term = engine.store.insert(StandardTerm(
        term="追逐", category="scenario", synonyms=["追击", "追赶"],
        review_status=ReviewStatus.pending.value,
    ))

    results = engine.review_terms([term.id], "reject")

    assert results[0].success
    assert db.get_analysis(record.id).scenarios == ["追击", "悲伤"]


@pytest.mark.unit
def test_untracked_dubbing_fallback(engine, db, add_analysis):
    record = add_analysis(film_scenes=[{"type": "男低音", "description": "使用男低音"}])
    term = engine.store.insert(StandardTerm(
        term="男低音", category="dubbing", synonyms=["低沉男声"],
        review_status=ReviewStatus.pending.value,
    ))

    engine.review_terms([term.id], "reject")

    assert db.get_analysis(record.id).film_scenes == [{"type": "未分类", "description": "使用低沉男声"}]
