"""
Tests for term_store.py

Validates storage-level uniqueness, review updates and the vocabulary
projection.
"""

import pytest
from termbank.lib.errors import CandidateRuleError, DuplicateTermError, TermNotFoundError
from termbank.lib.term_types import ReviewStatus, StandardTerm
from termbank.services.term_store import TermStore, surfaces_for


@pytest.fixture
def store(db):
    return TermStore(db)


def _term(term, category="scenario", synonyms=(), status=ReviewStatus.approved, usage=0):
    return StandardTerm(
        term=term, category=category, synonyms=list(synonyms),
        review_status=status.value, usage_count=usage,
    )


@pytest.mark.unit
def test_surfaces_include_normalized_form():
    assert surfaces_for("追逐戏", ["追击"]) == [("追逐戏", "term"), ("追逐", "normalized"), ("追击", "synonym")]


@pytest.mark.unit
def test_surfaces_claim_fully_normalized_form():
    assert surfaces_for("追逐戏场景", []) == [("追逐戏场景", "term"), ("追逐", "normalized")]


@pytest.mark.unit
def test_insert_trims_and_dedupes(store):
    stored = store.insert(_term("  伏击 ", synonyms=["埋伏", " 埋伏", "伏击", ""]))

    assert stored.id is not None
    assert stored.term == "伏击"
    assert stored.synonyms == ["埋伏"]


@pytest.mark.unit
def test_same_term_twice_is_duplicate_in_any_category(store):
    store.insert(_term("追逐"))

    with pytest.raises(DuplicateTermError) as exc:
        store.insert(_term("追逐", category="emotion"))
    assert exc.value.conflicting_term == "追逐"


@pytest.mark.unit
def test_term_cannot_reuse_existing_synonym(store):
    store.insert(_term("追逐", synonyms=["追击"]))

    with pytest.raises(DuplicateTermError):
        store.insert(_term("追击"))


@pytest.mark.unit
def test_synonym_cannot_reuse_existing_term(store):
    store.insert(_term("追逐"))

    with pytest.raises(DuplicateTermError):
        store.insert(_term("追赶", synonyms=["追逐"]))


@pytest.mark.unit
def test_suffix_variant_collides(store):
    store.insert(_term("追逐"))

    with pytest.raises(DuplicateTermError):
        store.insert(_term("追逐戏"))


@pytest.mark.unit
def test_pending_terms_still_claim_surfaces(store):
    store.insert(_term("埋伏", status=ReviewStatus.pending))

    with pytest.raises(DuplicateTermError):
        store.insert(_term("埋伏"))


@pytest.mark.unit
def test_failed_insert_leaves_nothing_behind(store):
    store.insert(_term("追逐"))

    with pytest.raises(DuplicateTermError):
        store.insert(_term("伏击", synonyms=["埋伏", "追逐"]))

    assert store.find("伏击") is None
    assert store.find("埋伏") is None


@pytest.mark.unit
def test_uniqueness_invariant_over_many_inserts(store):
    attempts = [
        ("追逐", ["追击"]), ("追击", []), ("追赶", ["追逐"]), ("伏击", ["埋伏"]),
        ("埋伏", []), ("追逐戏", []), ("对峙", ["僵持"]), ("僵持", ["对峙"]),
    ]
    for term, synonyms in attempts:
        try:
            store.insert(_term(term, synonyms=synonyms))
        except DuplicateTermError:
            pass

    terms = store.list_terms()
    names = [t.term for t in terms]
    assert len(names) == len(set(names))
    for a in terms:
        for b in terms:
            if a.id != b.id:
                assert a.term not in b.synonyms
                assert not set(a.synonyms) & set(b.synonyms)


@pytest.mark.unit
def test_insert_rejects_bad_category(store):
    with pytest.raises(CandidateRuleError):
        store.insert(_term("伏击", category="weather"))


@pytest.mark.unit
def test_merge_adds_synonyms(store):
    stored = store.insert(_term("追逐", synonyms=["追击"]))

    merged = store.merge(stored.id, ["追赶", "追击"], ["动作片"])

    assert merged.synonyms == ["追击", "追赶"]
    assert merged.film_types == ["动作片"]
    assert store.find("追赶").id == stored.id


@pytest.mark.unit
def test_merge_rejects_foreign_synonym(store):
    first = store.insert(_term("追逐"))
    store.insert(_term("对峙", synonyms=["僵持"]))

    with pytest.raises(DuplicateTermError):
        store.merge(first.id, ["僵持"], [])


@pytest.mark.unit
def test_review_status_update(store):
    stored = store.insert(_term("伏击", status=ReviewStatus.pending))

    updated = store.set_review_status(stored.id, ReviewStatus.approved, "alice", "ok")

    assert updated.is_approved
    assert updated.reviewed_by == "alice"
    assert updated.reviewed_at is not None


@pytest.mark.unit
def test_get_missing_term(store):
    with pytest.raises(TermNotFoundError):
        store.get("999")


@pytest.mark.unit
def test_delete_frees_surfaces(store):
    stored = store.insert(_term("追逐", synonyms=["追击"]))

    assert store.delete(stored.id)

    assert store.insert(_term("追击")).term == "追击"


@pytest.mark.unit
def test_projection_maps_terms_and_synonyms(store):
    store.insert(_term("追逐", synonyms=["追击"], usage=5))
    store.insert(_term("伏击", synonyms=["埋伏"], usage=9))
    store.insert(_term("对峙", status=ReviewStatus.pending))
    store.insert(_term("悲伤", category="emotion"))

    projection = store.projection("scenario")

    assert projection.standard_list == ["伏击", "追逐"]
    assert projection.mapping == {"伏击": "伏击", "埋伏": "伏击", "追逐": "追逐", "追击": "追逐"}
    assert projection.to_dict()["standardList"] == ["伏击", "追逐"]
