"""
多样性过滤

按分数从高到低贪心选择，与任一已选结果的内容相似度 >= 阈值的候选直接丢弃
"""

from typing import List

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.rerank.similarity import SimilarityFn


def apply_diversity_filter(
    candidates: List[CandidateResult],
    similarity: SimilarityFn,
    threshold: float = 0.85,
) -> List[CandidateResult]:
    """
    多样性过滤

    Args:
        candidates: 按分数降序的候选
        similarity: 内容相似度函数
        threshold: 相似度阈值

    Returns:
        保持原顺序的过滤结果
    """
    accepted: List[CandidateResult] = []

    for candidate in candidates:
        duplicate_of = next(
            (s for s in accepted if similarity(candidate, s) >= threshold), None
        )
        if duplicate_of is not None:
            logger.debug(
                f"[Diversity] 过滤相似结果: {candidate.id} ~ {duplicate_of.id}"
            )
            continue
        accepted.append(candidate)

    if len(accepted) < len(candidates):
        logger.debug(
            f"[Diversity] 多样性过滤: {len(candidates)} -> {len(accepted)} "
            f"(threshold={threshold})"
        )
    return accepted
