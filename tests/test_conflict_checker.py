"""
Tests for conflict_checker.py

Validates the local lexical checks run before any LLM call.
"""

import pytest
from termbank.lib.conflict_checker import ConflictChecker
from termbank.lib.errors import ConflictError, DuplicateTermError
from termbank.lib.term_types import ReviewStatus, StandardTerm
from termbank.services.term_store import TermStore


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store(db):
    store = TermStore(db)
    store.insert(StandardTerm(
        term="追逐", category="scenario", synonyms=["追击", "追赶"],
        review_status=ReviewStatus.approved.value,
    ))
    store.insert(StandardTerm(
        term="悲伤", category="emotion", synonyms=["哀伤"],
        review_status=ReviewStatus.approved.value,
    ))
    store.insert(StandardTerm(
        term="埋伏", category="scenario", review_status=ReviewStatus.pending.value,
    ))
    return store


@pytest.fixture
def checker(store):
    return ConflictChecker(store.cache)


# ============================================================================
# Conflict Checks
# ============================================================================

@pytest.mark.unit
def test_exact_match_any_category(checker):
    result = checker.check("追逐", "emotion")

    assert result.has_conflict
    assert result.conflict_type == "exact_match"
    assert isinstance(result.to_error(), DuplicateTermError)


@pytest.mark.unit
def test_synonym_match_names_owner(checker):
    result = checker.check("追击", "scenario")

    assert result.conflict_type == "synonym"
    assert result.conflicting_term == "追逐"
    assert result.suggestion == "追逐"
    assert "追逐" in result.message


@pytest.mark.unit
def test_containment_is_conflict(checker):
    result = checker.check("追逐戏", "scenario")

    assert result.conflict_type == "partial_match"
    error = result.to_error()
    assert isinstance(error, ConflictError)
    assert error.conflicting_terms == ["追逐"]


@pytest.mark.unit
def test_near_synonym_containment(checker):
    result = checker.check("追击战", "scenario")

    assert result.conflict_type == "near_synonym"
    assert result.conflicting_term == "追逐"


@pytest.mark.unit
def test_containment_only_within_category(checker):
    result = checker.check("追逐戏", "emotion")

    assert not result.has_conflict


@pytest.mark.unit
def test_containment_can_be_disabled(checker):
    result = checker.check("追逐戏", "scenario", include_containment=False)

    assert not result.has_conflict


@pytest.mark.unit
def test_pending_terms_not_in_snapshot(checker):
    """Only approved terms are checked here; storage catches pending ones."""
    assert not checker.check("埋伏", "scenario").has_conflict


@pytest.mark.unit
def test_snapshot_sees_new_terms_after_write(store, checker):
    assert not checker.check("伏击", "scenario").has_conflict

    store.insert(StandardTerm(term="伏击", category="scenario", review_status=ReviewStatus.approved.value))

    assert checker.check("伏击", "scenario").conflict_type == "exact_match"


@pytest.mark.unit
def test_invalid_category(checker):
    result = checker.check("伏击", "weather")

    assert result.has_conflict
    assert result.conflict_type == "invalid"


# ============================================================================
# Synonym and Rule Checks
# ============================================================================

@pytest.mark.unit
def test_check_synonyms_reports_each_problem(checker):
    problems = checker.check_synonyms(["悲伤", "追赶", "新词"])

    assert problems == [
        ("悲伤", '"悲伤"已作为标准词存在'),
        ("追赶", '"追赶"是"追逐"的近义词'),
    ]


@pytest.mark.unit
def test_rules_require_reason(checker):
    result = checker.check_candidate_rules("伏击", "scenario", ["埋伏"], ["战争片"], reason=" ")

    assert not result.is_valid
    assert "未提供推荐理由" in result.errors


@pytest.mark.unit
def test_rules_reject_low_confidence(checker):
    result = checker.check_candidate_rules(
        "伏击", "scenario", ["埋伏"], ["战争片"], reason="常见", confidence=0.5, min_confidence=0.65
    )

    assert not result.is_valid
    assert "低于最低要求" in result.errors[0]


@pytest.mark.unit
def test_rules_warn_without_synonyms_or_film_types(checker):
    result = checker.check_candidate_rules("伏击", "scenario", [], [], reason="常见")

    assert result.is_valid
    assert len(result.warnings) == 2
