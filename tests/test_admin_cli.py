"""
Admin CLI tests.

Each CLI builds its own engine from the environment, which conftest points
at the in-memory store and the mock provider.
"""

import json

import pytest

from termbank.admin import auto_expand, check_integrity, import_terms


@pytest.mark.unit
def test_import_terms_cli(tmp_path, capsys):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps([
        {"term": "追逐", "category": "scenario", "synonyms": ["追击"], "filmTypes": ["动作片"]},
        {"term": "紧张", "category": "emotion"},
    ], ensure_ascii=False), encoding="utf-8")

    assert import_terms.main([str(seed), "--reviewer", "alice"]) == 0
    assert "Imported" in capsys.readouterr().out


@pytest.mark.unit
def test_import_terms_cli_reports_failures(tmp_path, capsys):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps([
        {"term": "追逐", "category": "scenario", "synonyms": ["追击"]},
        {"term": "追击", "category": "scenario"},
    ], ensure_ascii=False), encoding="utf-8")

    assert import_terms.main([str(seed)]) == 1
    assert "追击" in capsys.readouterr().out


@pytest.mark.unit
def test_import_terms_cli_rejects_non_list(tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({"term": "追逐"}), encoding="utf-8")

    assert import_terms.main([str(seed)]) == 1


@pytest.mark.unit
def test_import_terms_cli_missing_file(tmp_path):
    assert import_terms.main([str(tmp_path / "missing.json")]) == 1


@pytest.mark.unit
def test_auto_expand_cli_with_nothing_eligible(capsys):
    assert auto_expand.main([]) == 0
    assert "No eligible terms" in capsys.readouterr().out


@pytest.mark.unit
def test_check_integrity_cli_on_empty_store(capsys):
    assert check_integrity.main([]) == 0
    assert "Vocabulary Integrity Check" in capsys.readouterr().out
