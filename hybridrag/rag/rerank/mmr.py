"""
MMR (最大边际相关性) 算法实现

用于在保持相关性的同时，增加搜索结果的多样性。
"""

from typing import List, Tuple

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.rerank.similarity import SimilarityFn


def calculate_mmr(
    candidates: List[CandidateResult],
    selected: List[CandidateResult],
    similarity: SimilarityFn,
    lambda_param: float = 0.7,
) -> List[Tuple[CandidateResult, float]]:
    """
    计算每个候选相对已选集合的 MMR 分数

    已选集合为空时，MMR 分数即相关性分数

    Returns:
        (候选, 未截断的 MMR 分数) 列表，顺序与输入一致
    """
    scored = []
    for candidate in candidates:
        relevance = candidate.score
        if not selected:
            scored.append((candidate, relevance))
            continue

        max_similarity = max(similarity(candidate, s) for s in selected)
        scored.append(
            (candidate, lambda_param * relevance - (1 - lambda_param) * max_similarity)
        )
    return scored


def mmr_rerank(
    candidates: List[CandidateResult],
    similarity: SimilarityFn,
    lambda_param: float = 0.7,
    top_n: int = 10,
) -> List[CandidateResult]:
    """
    使用 MMR 算法重新排序，增加多样性

    算法公式:
        MMR = argmax[λ * Sim(D, Q) - (1-λ) * max Sim(D, Di)]
              D∈R\\S

    参数说明:
        - λ=1: 只看相关性（不考虑多样性）
        - λ=0: 只看多样性（不考虑相关性）

    选中结果的 MMR 分数（截断到 [0, 1]）成为其当前分数

    Args:
        candidates: 按分数降序的候选
        similarity: 内容相似度函数
        lambda_param: 平衡参数 (0-1)
        top_n: 返回前N个结果

    Returns:
        按选择顺序排列的结果
    """
    if not candidates:
        return []

    selected: List[CandidateResult] = []
    remaining = list(candidates)

    logger.debug(
        f"[MMR] 开始 MMR 重排: 候选数={len(remaining)}, lambda={lambda_param}, top_n={top_n}"
    )

    while len(selected) < top_n and remaining:
        scored = calculate_mmr(remaining, selected, similarity, lambda_param)

        # 同分时保留靠前的候选
        best_idx = 0
        for idx, (_, mmr_score) in enumerate(scored):
            if mmr_score > scored[best_idx][1]:
                best_idx = idx

        best, raw_score = scored[best_idx]
        best.update_score(
            "mmr",
            max(0.0, min(raw_score, 1.0)),
            {"raw": raw_score, "position": len(selected) + 1, "lambda": lambda_param},
        )
        best.rerank_score = best.score

        # 添加到结果，并从候选中移除
        selected.append(best)
        remaining.pop(best_idx)

    logger.debug(f"[MMR] MMR 重排完成: 输出数={len(selected)}")
    return selected
