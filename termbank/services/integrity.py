"""
Vocabulary integrity validation

Diagnostic sweep over the vocabulary stores. Detects:
- Null or blank terms, duplicate terms, over-long terms
- Terms that are also a synonym of another term
- Unknown categories and missing review status
- Approved ledger entries with no live StandardTerm (audit drift)
- Ledger entries whose backfill never completed
- Analysis records still holding a synonym of an approved term

Nothing is repaired here; the report lists what to do next.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..lib.config import ExpansionSettings, get_settings
from ..lib.console import Colors, Console
from ..lib.term_types import CATEGORY_VALUES, MANUAL_REJECTED, Category, ReviewStatus

logger = logging.getLogger(__name__)


@dataclass
class IntegrityReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    statistics: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "suggestions": self.suggestions,
            "statistics": self.statistics,
        }


class IntegrityChecker:
    """
    Validate vocabulary integrity

    Args:
        db: Storage backend
        settings: Provides the term length limits
    """

    def __init__(self, db, settings: Optional[ExpansionSettings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def run(self) -> IntegrityReport:
        """
        Run every check.

        Returns:
            IntegrityReport with errors, warnings and suggestions
        """
        report = IntegrityReport()
        terms = self.db.list_terms()
        records = self.db.list_expansion_records()

        report.statistics = {
            "terms": len(terms),
            "approvedTerms": sum(1 for t in terms if t.is_approved),
            "expansionRecords": len(records),
        }

        self._check_terms(terms, report)
        self._check_ledger(terms, records, report)
        self._check_analyses(terms, report)
        self._suggest(report)

        logger.info(
            f"Integrity check: {len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    def _check_terms(self, terms, report: IntegrityReport) -> None:
        blank = [t for t in terms if not (t.term or "").strip()]
        if blank:
            report.errors.append(f"standard_terms 表有 {len(blank)} 条记录的 term 字段为空")

        missing_category = sum(1 for t in terms if not t.category)
        if missing_category:
            report.warnings.append(f"standard_terms 表有 {missing_category} 条记录的 category 字段为 null")

        missing_status = sum(1 for t in terms if not t.review_status)
        if missing_status:
            report.warnings.append(f"standard_terms 表有 {missing_status} 条记录的 review_status 字段为 null")

        duplicates = [value for value, n in Counter(t.term for t in terms if t.term).items() if n > 1]
        if duplicates:
            report.errors.append(
                f"standard_terms 表有 {len(duplicates)} 个重复的 term 值: {', '.join(duplicates)}"
            )

        long_terms = sum(
            1 for t in terms
            if self.settings.term_length_warn < len(t.term or "") <= self.settings.term_length_max
        )
        very_long_terms = sum(1 for t in terms if len(t.term or "") > self.settings.term_length_max)
        if long_terms:
            report.warnings.append(
                f"standard_terms 表有 {long_terms} 条记录的 term 超过 {self.settings.term_length_warn} 字符"
            )
        if very_long_terms:
            report.errors.append(
                f"standard_terms 表有 {very_long_terms} 条记录的 term 超过 "
                f"{self.settings.term_length_max} 字符（可能影响性能）"
            )

        unknown = sorted({t.category for t in terms if t.category and t.category not in CATEGORY_VALUES})
        if unknown:
            report.warnings.append(
                f"standard_terms 表包含 {len(unknown)} 个未知的分类: {', '.join(unknown)}"
            )

        owners = {t.term: t for t in terms if t.term}
        crossed = []
        for term in terms:
            for synonym in term.synonyms:
                other = owners.get(synonym)
                if other is not None and other.id != term.id:
                    crossed.append(f'"{synonym}"（"{term.term}"的近义词）')
        if crossed:
            report.errors.append(f"近义词与标准词重复: {', '.join(crossed)}")

    def _check_ledger(self, terms, records, report: IntegrityReport) -> None:
        blank = sum(1 for r in records if not (r.term or "").strip())
        if blank:
            report.errors.append(f"term_expansion_records 表有 {blank} 条记录的 term 字段为 null")

        live = {t.term for t in terms if t.review_status == ReviewStatus.approved.value}
        live_ids = {str(t.id) for t in terms}
        active = [r for r in records if r.expansion_type != MANUAL_REJECTED and r.validation_passed]

        missing = sorted({r.term for r in active if r.term and str(r.term_id) not in live_ids and r.term not in live})
        if missing:
            report.warnings.append(
                f"有 {len(missing)} 个已审核通过的扩充词未同步到标准词库表: {', '.join(missing)}"
            )

        unfinished = [r for r in active if not r.historical_data_cleaned and str(r.term_id) in live_ids]
        if unfinished:
            report.warnings.append(
                f"有 {len(unfinished)} 条扩充记录的历史数据回填未完成: "
                + ", ".join(f"{r.term}(#{r.id})" for r in unfinished)
            )
        report.statistics["unfinishedBackfills"] = [r.id for r in unfinished]

    def _check_analyses(self, terms, report: IntegrityReport) -> None:
        synonyms = [
            s for t in terms
            if t.is_approved and t.category == Category.scenario.value
            for s in t.synonyms
        ]
        stale = self.db.count_analyses_with_scenarios(synonyms) if synonyms else 0
        if stale:
            report.warnings.append(f"有 {stale} 条分析记录的场景仍使用近义词而非标准词")
        report.statistics["staleAnalyses"] = stale

    @staticmethod
    def _suggest(report: IntegrityReport) -> None:
        if report.errors or report.warnings:
            report.suggestions.append("1. 备份数据库，防止误操作")
            if report.errors:
                report.suggestions.append("2. 清理空值、重复记录与超长字符串")
            if any("分类" in w for w in report.warnings):
                report.suggestions.append("3. 检查非法分类")
            if any("未同步" in w for w in report.warnings):
                report.suggestions.append("4. 同步扩充词到标准词库表")
            if report.statistics.get("unfinishedBackfills") or report.statistics.get("staleAnalyses"):
                report.suggestions.append("5. 对未完成的扩充记录重新执行历史数据回填")
        else:
            report.suggestions.append("✅ 数据完整性良好，无需修复")


def print_integrity_report(report: IntegrityReport) -> None:
    """Print an integrity report to the console."""
    Console.section("Vocabulary Integrity")

    for key, value in report.statistics.items():
        if isinstance(value, list):
            value = len(value)
        Console.key_value(f"  {key}", str(value))

    if report.errors:
        Console.findings("✗ Errors", report.errors, Colors.FAIL)
    if report.warnings:
        Console.findings("⚠ Warnings", report.warnings, Colors.WARNING)
    Console.findings("Suggestions", report.suggestions, Colors.OKCYAN)

    if report.ok:
        Console.success("\n✓ No integrity errors")
    else:
        Console.error(f"\n✗ {len(report.errors)} integrity error(s) found")
