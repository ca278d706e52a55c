"""
Tests for integrity.py

Validates the diagnostic sweep over terms, ledger and analysis records.
"""

import pytest
from termbank.lib.config import ExpansionSettings
from termbank.lib.term_types import ReviewStatus, StandardTerm
from termbank.services.integrity import IntegrityChecker


def _approved(term, category="scenario", synonyms=()):
    return StandardTerm(
        term=term, category=category, synonyms=list(synonyms),
        review_status=ReviewStatus.approved.value,
    )


@pytest.mark.asyncio
async def test_clean_vocabulary(engine, add_analysis):
    add_analysis(scenarios=["追击"])
    await engine.submit_candidate("追逐", "scenario", synonyms=["追击"], reason="人工补充")

    report = engine.validate_integrity()

    assert report.ok
    assert report.errors == []
    assert report.warnings == []
    assert report.suggestions == ["✅ 数据完整性良好，无需修复"]


@pytest.mark.unit
def test_duplicate_and_crossed_terms(db):
    db.insert_term(_approved("追逐", synonyms=["追击"]), [("追逐", "term"), ("追击", "synonym")])
    db.insert_term(_approved("追逐"), [])
    db.insert_term(_approved("追击"), [])

    report = IntegrityChecker(db, ExpansionSettings()).run()

    assert not report.ok
    assert any("重复的 term 值" in e for e in report.errors)
    assert any("近义词与标准词重复" in e for e in report.errors)
    assert report.suggestions[0] == "1. 备份数据库，防止误操作"


@pytest.mark.unit
def test_term_length_limits(db):
    db.insert_term(_approved("一二三四五六七八"), [])
    db.insert_term(_approved("一二三四五六七八九十十一"), [])
    settings = ExpansionSettings(term_length_warn=5, term_length_max=10)

    report = IntegrityChecker(db, settings).run()

    assert any("超过 5 字符" in w for w in report.warnings)
    assert any("超过 10 字符" in e for e in report.errors)


@pytest.mark.unit
def test_unknown_category_and_missing_status(db):
    db.insert_term(StandardTerm(term="晴天", category="weather", review_status=""), [])

    report = IntegrityChecker(db, ExpansionSettings()).run()

    assert report.ok
    assert any("未知的分类: weather" in w for w in report.warnings)
    assert any("review_status 字段为 null" in w for w in report.warnings)


@pytest.mark.asyncio
async def test_ledger_drift(engine, db):
    outcome = await engine.submit_candidate("伏击", "scenario", reason="人工补充")
    db.delete_term(outcome.term_id)

    report = engine.validate_integrity()

    assert any("未同步到标准词库表" in w and "伏击" in w for w in report.warnings)
    assert "4. 同步扩充词到标准词库表" in report.suggestions


@pytest.mark.asyncio
async def test_rejected_terms_are_not_drift(engine):
    outcome = await engine.submit_candidate("伏击", "scenario", reason="人工补充")
    engine.review_terms([outcome.term_id], "reject")

    assert engine.validate_integrity().warnings == []


@pytest.mark.asyncio
async def test_incomplete_backfill_reported(engine, db, add_analysis, monkeypatch):
    add_analysis(scenarios=["追击"])
    monkeypatch.setattr(db, "save_analysis", lambda record: False)
    outcome = await engine.submit_candidate("追逐", "scenario", synonyms=["追击"], reason="人工补充")
    engine.review_terms([outcome.term_id], "approve")

    report = engine.validate_integrity()

    assert report.statistics["unfinishedBackfills"] == [outcome.record.id]
    assert report.statistics["staleAnalyses"] == 1
    assert "5. 对未完成的扩充记录重新执行历史数据回填" in report.suggestions


@pytest.mark.unit
def test_stale_analysis_records(db, add_analysis):
    db.insert_term(_approved("追逐", synonyms=["追击"]), [("追逐", "term"), ("追击", "synonym")])
    add_analysis(scenarios=["追击"])
    add_analysis(scenarios=["追逐"])

    report = IntegrityChecker(db, ExpansionSettings()).run()

    assert report.statistics["staleAnalyses"] == 1
    assert any("仍使用近义词" in w for w in report.warnings)
