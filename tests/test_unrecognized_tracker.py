"""
Tests for unrecognized_tracker.py

Validates occurrence counting, the frequency gate and sticky statuses.
"""

import pytest
from termbank.lib.errors import CandidateRuleError
from termbank.lib.term_types import ExpansionStatus
from termbank.services.unrecognized_tracker import UnrecognizedTermTracker


@pytest.fixture
def tracker(db):
    return UnrecognizedTermTracker(db, min_frequency=10)


@pytest.mark.unit
def test_tenth_sighting_becomes_eligible(tracker):
    for _ in range(9):
        result = tracker.record("秘密潜入", "scenario", "警匪片")
    assert result.occurrence_count == 9
    assert result.is_eligible is False

    result = tracker.record("秘密潜入", "scenario", "警匪片")

    assert result.occurrence_count == 10
    assert result.is_eligible is True
    assert result.status == ExpansionStatus.eligible.value


@pytest.mark.unit
def test_never_eligible_without_film_type(tracker):
    for _ in range(15):
        result = tracker.record("秘密潜入", "scenario")

    assert result.occurrence_count == 15
    assert result.is_eligible is False


@pytest.mark.unit
def test_film_type_histogram_sorted(tracker):
    tracker.record("秘密潜入", "scenario", "动作片")
    tracker.record("秘密潜入", "scenario", "警匪片")
    tracker.record("秘密潜入", "scenario", "警匪片")

    row = tracker.find("秘密潜入", "scenario")

    assert row.related_film_types == [
        {"filmType": "警匪片", "count": 2},
        {"filmType": "动作片", "count": 1},
    ]
    assert row.first_seen_at is not None
    assert row.last_seen_at >= row.first_seen_at


@pytest.mark.unit
def test_rows_keyed_by_category(tracker):
    tracker.record("潜入", "scenario", "警匪片")
    tracker.record("潜入", "dubbing", "警匪片")

    assert tracker.count_rows() == 2


@pytest.mark.unit
def test_custom_min_frequency(tracker):
    tracker.record("秘密潜入", "scenario", "警匪片", min_frequency=2)
    result = tracker.record("秘密潜入", "scenario", "警匪片", min_frequency=2)

    assert result.is_eligible


@pytest.mark.unit
def test_expanded_rows_stay_expanded(tracker):
    tracker.record("秘密潜入", "scenario", "警匪片")
    row = tracker.find("秘密潜入", "scenario")
    tracker.mark(row, ExpansionStatus.expanded)

    for _ in range(12):
        result = tracker.record("秘密潜入", "scenario", "警匪片")

    assert result.status == ExpansionStatus.expanded.value
    assert result.is_eligible is False


@pytest.mark.unit
def test_human_rejection_is_sticky(tracker):
    tracker.record("秘密潜入", "scenario", "警匪片")
    row = tracker.find("秘密潜入", "scenario")
    tracker.mark(row, ExpansionStatus.ineligible, "人工审核拒绝：不符合标准")

    for _ in range(12):
        result = tracker.record("秘密潜入", "scenario", "警匪片")

    assert result.status == ExpansionStatus.ineligible.value


@pytest.mark.unit
def test_frequency_ineligibility_recovers(tracker):
    tracker.record("秘密潜入", "scenario", "警匪片")
    row = tracker.find("秘密潜入", "scenario")
    tracker.mark(row, ExpansionStatus.ineligible, "出现次数不足（1 < 10）")

    for _ in range(9):
        result = tracker.record("秘密潜入", "scenario", "警匪片")

    assert result.is_eligible


@pytest.mark.unit
def test_record_validates_input(tracker):
    with pytest.raises(CandidateRuleError):
        tracker.record("  ", "scenario")
    with pytest.raises(CandidateRuleError):
        tracker.record("潜入", "weather")


@pytest.mark.unit
def test_stats(tracker):
    for _ in range(10):
        tracker.record("秘密潜入", "scenario", "警匪片")
    tracker.record("低语", "dubbing")

    stats = tracker.stats()

    assert stats["total"] == 2
    assert stats["byStatus"]["eligible"] == 1
    assert stats["byStatus"]["pending"] == 1
    assert stats["byCategory"] == {"scenario": 1, "dubbing": 1}
    assert stats["top"][0]["term"] == "秘密潜入"
