from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

from tracker.models.schemas import Journal, JournalSuggestion

# 权重合计 100
AREA_WEIGHT = 40.0
QUALIS_WEIGHT = 30.0
KEYWORD_WEIGHT = 10.0
POPULARITY_WEIGHT = 20.0

# Placeholder until submission counts per journal feed a real signal.
POPULARITY_PLACEHOLDER_POINTS = 10.0

QUALIS_POINTS: Dict[str, float] = {
    "A1": 30.0,
    "A2": 27.0,
    "B1": 22.5,
    "B2": 18.0,
    "B3": 13.5,
    "B4": 9.0,
    "B5": 6.0,
}
# 未分级 / 未知等级按 B4 计分（低置信度默认值，不是 0）
UNRANKED_QUALIS_POINTS = 9.0
TOP_QUALIS = ("A1", "A2", "B1")

HIGH_TIER_MIN = 80
MEDIUM_TIER_MIN = 60

REASON_SAME_AREA = "Same field of knowledge"
REASON_FALLBACK = "Relevant journal in the field"


def _norm(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def split_keywords(raw: Optional[str]) -> List[str]:
    """Comma-separated keyword field -> trimmed, lower-cased, non-empty terms."""
    return [t for t in (p.strip() for p in _norm(raw).split(",")) if t]


def area_points(candidate_area: Optional[str], current_area: Optional[str]) -> float:
    """
    领域对齐（权重 40）。

    中文注释:
    - 完全相同（忽略大小写）-> 40；
    - 任一方向子串包含 -> 60% 即 24（例如 "Science" 与 "Computer Science"）；
    - 其它 -> 20% 即 8；
    - 任一侧没有 area 时该项不计分。
    """
    a = _norm(candidate_area)
    b = _norm(current_area)
    if not a or not b:
        return 0.0
    if a == b:
        return AREA_WEIGHT
    if a in b or b in a:
        return AREA_WEIGHT * 0.6
    return AREA_WEIGHT * 0.2


def qualis_points(qualis: Optional[str]) -> float:
    key = (qualis or "").strip().upper()
    return QUALIS_POINTS.get(key, UNRANKED_QUALIS_POINTS)


def keyword_points(terms: List[str], description: Optional[str]) -> float:
    desc = _norm(description)
    if not desc or not terms:
        return 0.0
    matches = sum(1 for t in terms if t in desc)
    return matches / len(terms) * KEYWORD_WEIGHT


def popularity_points(_journal: Journal) -> float:
    return POPULARITY_PLACEHOLDER_POINTS


def round_score(value: float) -> int:
    # round half up: 40.5 -> 41（Python 内置 round 是银行家舍入）
    return int(math.floor(value + 0.5))


def classify(score: int) -> str:
    if score >= HIGH_TIER_MIN:
        return "high"
    if score >= MEDIUM_TIER_MIN:
        return "medium"
    return "low"


def build_reasons(candidate: Journal, current_area: Optional[str]) -> str:
    reasons: List[str] = []
    area = _norm(candidate.area)
    if area and area == _norm(current_area):
        reasons.append(REASON_SAME_AREA)
    if candidate.qualis and candidate.qualis.upper() in TOP_QUALIS:
        reasons.append(f"Qualis {candidate.qualis.upper()} rating")
    return ", ".join(reasons) or REASON_FALLBACK


def score_journal(candidate: Journal, *, current_area: Optional[str], terms: List[str]) -> Tuple[int, Dict[str, float]]:
    breakdown = {
        "area": area_points(candidate.area, current_area),
        "qualis": qualis_points(candidate.qualis),
        "keywords": keyword_points(terms, candidate.description),
        "popularity": popularity_points(candidate),
    }
    return round_score(sum(breakdown.values())), breakdown


def rank_journals(
    candidates: Iterable[Journal],
    *,
    current_journal_id: Optional[str],
    current_area: Optional[str],
    keywords: Optional[str],
    limit: int = 10,
) -> List[JournalSuggestion]:
    """
    为转投推荐候选期刊打分并排序。

    中文注释:
    1. 排除当前期刊本身；
    2. 四项加权得分（领域 40 / qualis 30 / 关键词 10 / 热度 20）求和后四舍五入；
    3. sorted() 是稳定排序，同分时保持目录原有顺序；
    4. 最多返回 limit 条。
    """
    terms = split_keywords(keywords)
    results: List[JournalSuggestion] = []
    for journal in candidates:
        if current_journal_id is not None and journal.id == current_journal_id:
            continue
        score, _ = score_journal(journal, current_area=current_area, terms=terms)
        results.append(
            JournalSuggestion(
                journal=journal,
                score=score,
                tier=classify(score),
                reasons=build_reasons(journal, current_area),
            )
        )

    results.sort(key=lambda s: s.score, reverse=True)
    return results[: max(0, int(limit))]
