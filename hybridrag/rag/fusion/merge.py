"""
多查询结果合并

同一文档在多个查询变体中出现时按 max / average / sum 合并分数（sum 截断到 1.0）
"""

from typing import Dict, List

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult, sort_by_score

MERGE_METHODS = ("max", "average", "sum")


def merge_results(
    result_sets: List[List[CandidateResult]], method: str = "max"
) -> List[CandidateResult]:
    """
    按 ID 合并多个结果集

    Args:
        result_sets: 各查询变体的融合结果
        method: max | average | sum

    Returns:
        去重后按分数降序的列表，同分按首次出现顺序
    """
    if method not in MERGE_METHODS:
        raise ValueError(f"Unknown merge method: {method}")

    groups: Dict[str, List[CandidateResult]] = {}
    for result_set in result_sets:
        for candidate in result_set:
            groups.setdefault(candidate.id, []).append(candidate)

    merged: List[CandidateResult] = []
    for seq, occurrences in enumerate(groups.values()):
        # 选择分数最高的一次出现作为代表，保留其相似度和分数历史
        best = max(occurrences, key=lambda c: c.score)
        best.seq = seq

        if len(occurrences) > 1:
            scores = [c.score for c in occurrences]
            if method == "max":
                combined = max(scores)
            elif method == "average":
                combined = sum(scores) / len(scores)
            else:
                combined = min(sum(scores), 1.0)

            for other in occurrences:
                if other.similarity is not None and (
                    best.similarity is None or other.similarity > best.similarity
                ):
                    best.similarity = other.similarity

            best.update_score(
                "merge",
                combined,
                {"method": method, "occurrences": len(occurrences), "scores": scores},
            )
            best.fused_score = combined

        merged.append(best)

    results = sort_by_score(merged)
    logger.debug(
        f"[Merge] 多查询结果合并完成: sets={len(result_sets)}, "
        f"total={sum(len(s) for s in result_sets)}, merged={len(results)}, method={method}"
    )
    return results
