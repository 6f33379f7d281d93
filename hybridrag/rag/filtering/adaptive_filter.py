"""
自适应过滤

Embedding 相似度分数普遍被压缩在很窄的区间内，单一固定阈值要么太松要么太严。
这里先多召回（internal_search_limit），再按每个来源的分数分布依次过滤：

1. 与最高分的差距：保留 >= top - top_score_gap_percent 的结果（下限不低于来源阈值）
2. z-score：剩余结果 >= 5 条时，丢弃 z < min_std_dev_above_mean 的结果
3. 来源绝对阈值，始终最后执行

所有比较都在相似度尺度（CandidateResult.similarity）上进行，不改变候选的当前分数
"""

from typing import Dict, List

from loguru import logger

from hybridrag.rag.fusion.normalization import mean_and_std
from hybridrag.rag.models.candidate import CandidateResult, SourceKind
from hybridrag.rag.models.rag_config import RAGConfig


def _similarity(candidate: CandidateResult) -> float:
    return candidate.similarity if candidate.similarity is not None else 0.0


class AdaptiveFilter:
    """按来源分组的统计过滤"""

    def __init__(self, config: RAGConfig):
        self.config = config

    def apply(self, candidates: List[CandidateResult]) -> List[CandidateResult]:
        """
        过滤候选集

        Args:
            candidates: 按当前分数排序的候选集（可包含多个来源）

        Returns:
            过滤后的候选集，保持输入顺序；可以为空
        """
        if not candidates:
            return []

        kept_ids = set()
        groups: Dict[SourceKind, List[CandidateResult]] = {}
        for candidate in candidates:
            groups.setdefault(candidate.source, []).append(candidate)

        for source, group in groups.items():
            for candidate in self.filter_source(source, group):
                kept_ids.add(candidate.id)

        return [c for c in candidates if c.id in kept_ids]

    def filter_source(
        self, source: SourceKind, group: List[CandidateResult]
    ) -> List[CandidateResult]:
        """对单个来源执行三步过滤"""
        config = self.config
        threshold = config.threshold_for(source)
        filtered = sorted(group, key=lambda c: (-_similarity(c), c.seq))

        if not config.use_adaptive_filtering:
            result = [c for c in filtered if _similarity(c) >= threshold]
            logger.debug(
                f"[AdaptiveFilter] {source.value}: 仅阈值过滤 "
                f"(>= {threshold}) {len(group)} -> {len(result)}"
            )
            return result

        # Strategy 1: 与最高分的差距
        if config.top_score_gap_percent > 0 and filtered:
            top_score = _similarity(filtered[0])
            effective_threshold = max(top_score - config.top_score_gap_percent, threshold)
            filtered = [c for c in filtered if _similarity(c) >= effective_threshold]
            logger.debug(
                f"[AdaptiveFilter] {source.value}: top-gap 过滤后 {len(filtered)} 条 "
                f"(threshold={effective_threshold:.3f})"
            )

        # Strategy 2: z-score 过滤（数量不足时跳过）
        if (
            config.use_normalization
            and len(filtered) >= config.min_results_for_normalization
        ):
            scores = [_similarity(c) for c in filtered]
            mean, std = mean_and_std(scores)
            filtered = [
                c
                for c, s in zip(filtered, scores)
                if (0.0 if std == 0 else (s - mean) / std) >= config.min_std_dev_above_mean
            ]
            logger.debug(
                f"[AdaptiveFilter] {source.value}: z-score 过滤后 {len(filtered)} 条 "
                f"(mean={mean:.3f}, std={std:.3f})"
            )

        # Strategy 3: 来源绝对阈值
        filtered = [c for c in filtered if _similarity(c) >= threshold]

        logger.debug(
            f"[AdaptiveFilter] {source.value}: {len(group)} -> {len(filtered)} "
            f"(threshold={threshold})"
        )
        return filtered
