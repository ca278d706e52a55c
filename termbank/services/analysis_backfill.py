"""
Analysis Backfill - keeps denormalized tag copies in analysis records
consistent with the canonical vocabulary.

Promotion rewrites raw strings to the new standard term:
    scenario  scenarios[i] == raw            → standard
    dubbing   film_scenes[i].type unclassified and raw in description
              → type = standard, first raw in description → standard

Every rewrite is returned as a provenance entry so a later rollback can put
back exactly what was there:
    {"analysisId", "field", "index", "original", "raw", "originalDescription"?}

Rollback with provenance restores each position that still holds the
standard term. Terms without provenance fall back to restoring every
occurrence of the standard term to its first synonym.

Failures are per record: one unwritable record is logged and reported in
``failed_record_ids``, the rest of the run continues.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..lib.naming import clean
from ..lib.term_types import (
    UNCLASSIFIED_DUBBING_ALIASES,
    UNCLASSIFIED_DUBBING_TYPE,
    AnalysisRecord,
    Category,
    StandardTerm,
)

logger = logging.getLogger(__name__)

SCENARIOS = "scenarios"
FILM_SCENES = "film_scenes"


@dataclass
class BackfillResult:
    """Outcome of one promotion or rollback run."""
    cleaned_count: int = 0
    provenance: List[Dict[str, Any]] = field(default_factory=list)
    failed_record_ids: List[Any] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return not self.failed_record_ids

    def __repr__(self) -> str:
        return f"BackfillResult(cleaned={self.cleaned_count}, failed={len(self.failed_record_ids)})"


class AnalysisBackfill:
    """Rewrite and restore tag values in analysis records."""

    def __init__(self, db):
        self.db = db

    def _save(self, record: AnalysisRecord, result: BackfillResult) -> bool:
        try:
            if not self.db.save_analysis(record):
                raise LookupError(f"analysis record {record.id} no longer exists")
            return True
        except Exception as e:
            logger.error(f"Failed to write analysis record {record.id}: {e}", exc_info=True)
            result.failed_record_ids.append(record.id)
            return False

    # =========================================================================
    # Promotion
    # =========================================================================

    def promote(self, category: str, raw_terms: Sequence[str], standard: str) -> BackfillResult:
        """
        Rewrite every raw string in ``raw_terms`` to ``standard``.

        Only scenario and dubbing tags are denormalized into analysis records;
        other categories are a no-op.
        """
        result = BackfillResult()
        for raw in dict.fromkeys(clean(r) for r in raw_terms):
            if not raw:
                continue
            try:
                if category == Category.scenario.value:
                    self._promote_scenarios(raw, standard, result)
                elif category == Category.dubbing.value:
                    self._promote_dubbing(raw, standard, result)
            except Exception as e:
                logger.error(f"Backfill lookup failed for '{raw}' → '{standard}': {e}", exc_info=True)
                result.failed_record_ids.append(f"lookup:{raw}")

        if result.cleaned_count:
            logger.info(f"Backfill '{standard}' ({category}): {result.cleaned_count} entries rewritten")
        return result

    def _promote_scenarios(self, raw: str, standard: str, result: BackfillResult) -> None:
        if raw == standard:
            return
        for record in self.db.find_analyses_with_scenario(raw):
            entries = []
            for index, value in enumerate(record.scenarios):
                if value == raw:
                    record.scenarios[index] = standard
                    entries.append({
                        "analysisId": record.id,
                        "field": SCENARIOS,
                        "index": index,
                        "original": raw,
                        "raw": raw,
                    })
            if entries and self._save(record, result):
                result.cleaned_count += len(entries)
                result.provenance.extend(entries)

    def _promote_dubbing(self, raw: str, standard: str, result: BackfillResult) -> None:
        for record in self.db.find_analyses_with_dubbing_text(raw):
            entries = []
            for index, scene in enumerate(record.film_scenes):
                scene_type = scene.get("type")
                description = scene.get("description") or ""
                if scene_type in UNCLASSIFIED_DUBBING_ALIASES and raw in description:
                    entries.append({
                        "analysisId": record.id,
                        "field": FILM_SCENES,
                        "index": index,
                        "original": scene_type,
                        "raw": raw,
                        "originalDescription": description,
                    })
                    scene["type"] = standard
                    scene["description"] = description.replace(raw, standard, 1)
            if entries and self._save(record, result):
                result.cleaned_count += len(entries)
                result.provenance.extend(entries)

    # =========================================================================
    # Rollback
    # =========================================================================

    def rollback(self, term: StandardTerm, provenance: Optional[List[Dict[str, Any]]]) -> BackfillResult:
        """
        Undo a promotion of ``term``.

        Args:
            term: Term being rejected (synonyms still attached)
            provenance: Rewrites recorded at promotion; None when the term was
                never promoted with provenance tracking
        """
        if provenance is not None:
            return self._rollback_exact(term, provenance)
        return self._rollback_first_synonym(term)

    def _rollback_exact(self, term: StandardTerm, provenance: List[Dict[str, Any]]) -> BackfillResult:
        result = BackfillResult()
        by_record: Dict[str, List[Dict[str, Any]]] = {}
        for entry in provenance:
            by_record.setdefault(str(entry["analysisId"]), []).append(entry)

        for analysis_id, entries in by_record.items():
            try:
                record = self.db.get_analysis(analysis_id)
            except Exception as e:
                logger.error(f"Rollback could not load analysis record {analysis_id}: {e}", exc_info=True)
                result.failed_record_ids.append(analysis_id)
                continue
            if record is None:
                logger.warning(f"Rollback: analysis record {analysis_id} no longer exists")
                continue

            restored = 0
            for entry in entries:
                index = entry.get("index", -1)
                if entry.get("field") == SCENARIOS:
                    if 0 <= index < len(record.scenarios) and record.scenarios[index] == term.term:
                        record.scenarios[index] = entry["original"]
                        restored += 1
                elif entry.get("field") == FILM_SCENES:
                    if 0 <= index < len(record.film_scenes):
                        scene = record.film_scenes[index]
                        if scene.get("type") == term.term:
                            scene["type"] = entry.get("original") or UNCLASSIFIED_DUBBING_TYPE
                            if "originalDescription" in entry:
                                scene["description"] = entry["originalDescription"]
                            restored += 1

            if restored and self._save(record, result):
                result.cleaned_count += restored

        logger.info(f"Rollback '{term.term}': {result.cleaned_count} entries restored from provenance")
        return result

    def _rollback_first_synonym(self, term: StandardTerm) -> BackfillResult:
        """Restore every occurrence of the term to its first synonym (lossy)."""
        result = BackfillResult()
        if not term.synonyms:
            logger.info(f"Rollback '{term.term}': no synonyms, nothing to restore")
            return result
        synonym = term.synonyms[0]

        if term.category == Category.scenario.value:
            for record in self.db.find_analyses_with_scenario(term.term):
                hits = 0
                for index, value in enumerate(record.scenarios):
                    if value == term.term:
                        record.scenarios[index] = synonym
                        hits += 1
                if hits and self._save(record, result):
                    result.cleaned_count += hits

        elif term.category == Category.dubbing.value:
            for record in self.db.find_analyses_with_dubbing_text(term.term):
                hits = 0
                for scene in record.film_scenes:
                    if scene.get("type") == term.term:
                        scene["type"] = UNCLASSIFIED_DUBBING_TYPE
                        scene["description"] = (scene.get("description") or "").replace(term.term, synonym)
                        hits += 1
                if hits and self._save(record, result):
                    result.cleaned_count += hits

        logger.info(f"Rollback '{term.term}' → '{synonym}': {result.cleaned_count} entries restored")
        return result
