"""
Tests for naming.py

Validates suffix normalization and synonym list cleanup.
"""

import pytest
from termbank.lib.naming import clean, clean_synonyms, merge_unique, normalize_term


@pytest.mark.unit
@pytest.mark.parametrize("raw,expected", [
    ("追逐戏", "追逐"),
    ("战斗场景", "战斗"),
    ("旁白配音", "旁白"),
    ("  高潮时刻 ", "高潮"),
    ("追逐", "追逐"),
])
def test_normalize_strips_one_suffix(raw, expected):
    assert normalize_term(raw) == expected


@pytest.mark.unit
def test_normalize_keeps_bare_suffix():
    """A term that is only a suffix is left alone."""
    assert normalize_term("戏") == "戏"
    assert normalize_term("场景") == "场景"


@pytest.mark.unit
@pytest.mark.parametrize("raw,expected", [
    ("追逐戏场景", "追逐"),
    ("对白片段配音", "对白"),
    ("戏场景", "戏"),
])
def test_normalize_strips_chained_suffixes(raw, expected):
    assert normalize_term(raw) == expected


@pytest.mark.unit
def test_normalize_strips_each_suffix_once():
    assert normalize_term("戏戏") == "戏"


@pytest.mark.unit
def test_clean_handles_none():
    assert clean(None) == ""


@pytest.mark.unit
def test_clean_synonyms_dedupes_and_excludes():
    result = clean_synonyms([" 追击", "追击", "", "追逐", "追赶 "], exclude=["追逐"])

    assert result == ["追击", "追赶"]


@pytest.mark.unit
def test_merge_unique_preserves_order():
    assert merge_unique(["a", "b"], ["b", " c", ""]) == ["a", "b", "c"]
