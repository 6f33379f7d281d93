"""
语义加权

按查询词在内容中的命中比例给高于阈值的候选加分，加分后不超过 1.0
"""

from typing import List, Sequence

from hybridrag.rag.models.candidate import CandidateResult


def match_ratio(query_tokens: Sequence[str], content: str) -> float:
    """查询词在内容中出现的比例"""
    if not query_tokens:
        return 0.0
    text = (content or "").lower()
    matches = sum(1 for token in query_tokens if token in text)
    return matches / len(query_tokens)


def boost_amount(ratio: float, max_boost: float, dynamic: bool = False) -> float:
    """
    加分幅度

    固定模式: ratio * max_boost
    动态模式: min(ratio * max_boost * (1 + ratio), 2 * max_boost)
    """
    if dynamic:
        return min(ratio * max_boost * (1 + ratio), 2 * max_boost)
    return min(ratio * max_boost, max_boost)


def apply_semantic_boost(
    candidates: List[CandidateResult],
    query_tokens: Sequence[str],
    max_boost: float = 0.05,
    min_boost_threshold: float = 0.30,
    dynamic: bool = False,
) -> List[CandidateResult]:
    """
    语义加权

    Args:
        candidates: 候选
        query_tokens: 去重后的查询分词
        max_boost: 最大加分
        min_boost_threshold: 低于该分数的候选不加分
        dynamic: 是否使用动态加分

    Returns:
        原列表（就地更新分数，不重新排序）
    """
    for candidate in candidates:
        if candidate.score < min_boost_threshold:
            continue

        ratio = match_ratio(query_tokens, candidate.content)
        amount = boost_amount(ratio, max_boost, dynamic)
        if amount <= 0:
            continue

        boosted = min(1.0, max(0.0, candidate.score + amount))
        candidate.update_score(
            "semantic_boost", boosted, {"match_ratio": ratio, "boost": amount}
        )
        candidate.rerank_score = boosted

    return candidates
