"""
邮件时间衰减

score * 0.5 ^ (age_days / half_life_days)；没有可解析发送时间的记录保持不变
"""

from datetime import datetime, timezone
from typing import List, Optional

from hybridrag.rag.models.candidate import CandidateResult, SourceKind

SECONDS_PER_DAY = 86400.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def age_in_days(sent_at: datetime, now: datetime) -> float:
    """发送至今的天数（未来时间按 0 处理）"""
    delta = _as_utc(now) - _as_utc(sent_at)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def decay_factor(age_days: float, half_life_days: float) -> float:
    return 0.5 ** (age_days / half_life_days)


def apply_temporal_decay(
    candidates: List[CandidateResult],
    half_life_days: float = 365.0,
    now: Optional[datetime] = None,
) -> List[CandidateResult]:
    """
    对邮件候选应用时间衰减

    Args:
        candidates: 候选
        half_life_days: 半衰期（天）
        now: 当前时间（默认 UTC 当前时间）

    Returns:
        原列表（就地更新分数，不重新排序）
    """
    now = now or datetime.now(timezone.utc)

    for candidate in candidates:
        if candidate.source != SourceKind.EMAIL or candidate.sent_at is None:
            continue

        age = age_in_days(candidate.sent_at, now)
        factor = decay_factor(age, half_life_days)
        candidate.update_score(
            "temporal_decay",
            candidate.score * factor,
            {"age_days": round(age, 1), "factor": factor},
        )

    return candidates
