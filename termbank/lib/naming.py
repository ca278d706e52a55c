"""Term name normalization shared by the conflict checker and the store."""

from typing import Iterable, List

# Category words the analysis pipeline tends to append to scene/dubbing tags
CATEGORY_SUFFIXES = ("场景", "戏", "配音", "建议", "片段", "时刻")


def clean(term: str) -> str:
    """Trim surrounding whitespace. Matching stays case-sensitive."""
    return (term or "").strip()


def normalize_term(term: str) -> str:
    """
    Strip known category suffixes, each once and in CATEGORY_SUFFIXES order.

    A suffix is only removed while something remains before it.

    Example:
        >>> normalize_term("追逐戏")
        '追逐'
        >>> normalize_term("追逐戏场景")
        '追逐'
        >>> normalize_term("戏")
        '戏'
    """
    value = clean(term)
    for suffix in CATEGORY_SUFFIXES:
        if value.endswith(suffix) and len(value) > len(suffix):
            value = value[: -len(suffix)].strip()
    return value


def clean_synonyms(synonyms: Iterable[str], exclude: Iterable[str] = ()) -> List[str]:
    """Trim, drop blanks and duplicates, preserving first-seen order."""
    excluded = {clean(e) for e in exclude}
    result: List[str] = []
    for synonym in synonyms or []:
        value = clean(synonym)
        if value and value not in excluded and value not in result:
            result.append(value)
    return result


def merge_unique(existing: Iterable[str], additions: Iterable[str]) -> List[str]:
    """Set union that keeps the order of ``existing`` then new items."""
    merged = [v for v in existing]
    for value in additions:
        value = clean(value)
        if value and value not in merged:
            merged.append(value)
    return merged
