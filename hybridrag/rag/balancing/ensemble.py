"""
集成平衡

1. 按查询类型和两路召回的分数分布，动态调整融合权重
2. 按来源限制结果构成（每个来源的最少条数和最大占比）
"""

import math
import re
from typing import Dict, List, Sequence

from loguru import logger

from hybridrag.rag.fusion.normalization import mean_and_std
from hybridrag.rag.models.candidate import CandidateResult, SourceKind, sort_by_score
from hybridrag.rag.models.rag_config import FusionWeights, RAGConfig

QUERY_TYPE_KEYWORD = "keyword"
QUERY_TYPE_SEMANTIC = "semantic"
QUERY_TYPE_MIXED = "mixed"

MIN_WEIGHT = 0.3
MAX_WEIGHT = 0.7

_INTERROGATIVE_PATTERN = re.compile(
    r"\b(what|how|why|when|where|who|which|can|is|are|do|does)\b", re.IGNORECASE
)
_QUOTED_PHRASE_PATTERN = re.compile(r'"[^"]+"')


def classify_query_type(query: str) -> str:
    """
    查询类型识别

    - keyword: 不超过 3 个词，或包含引号短语
    - semantic: 至少 7 个词且包含疑问词
    - mixed: 其他
    """
    word_count = len(query.split())

    if word_count <= 3 or _QUOTED_PHRASE_PATTERN.search(query):
        return QUERY_TYPE_KEYWORD

    if word_count >= 7 and _INTERROGATIVE_PATTERN.search(query):
        return QUERY_TYPE_SEMANTIC

    return QUERY_TYPE_MIXED


def calculate_adaptive_weights(
    query: str,
    vector_scores: Sequence[float],
    bm25_scores: Sequence[float],
    config: RAGConfig,
) -> FusionWeights:
    """
    计算本次融合的权重

    从配置的默认权重出发：
    - 平均分更高的一路 +0.05
    - 方差更小的一路 +0.03
    - keyword 查询偏向 BM25 +0.10，semantic 查询偏向向量 +0.10
    每个权重截断到 [0.3, 0.7] 后再归一化，保证两者之和为 1

    Args:
        query: 查询文本
        vector_scores: 向量召回的（归一化后）分数
        bm25_scores: 关键词召回的（归一化后）分数
        config: 配置快照

    Returns:
        融合权重
    """
    defaults = config.default_weights
    if not (config.ensemble_balancing_enabled and config.adaptive_weights_enabled):
        return defaults

    vector_mean, vector_std = mean_and_std(list(vector_scores))
    bm25_mean, bm25_std = mean_and_std(list(bm25_scores))
    query_type = classify_query_type(query)

    adjustment = 0.0  # 正值偏向向量，负值偏向 BM25

    # 平均分更高的一路更可信（平均分相同时偏向 BM25）
    adjustment += 0.05 if vector_mean > bm25_mean else -0.05

    # 方差更小的一路更稳定
    adjustment += 0.03 if vector_std ** 2 < bm25_std ** 2 else -0.03

    if query_type == QUERY_TYPE_KEYWORD:
        adjustment -= 0.10
    elif query_type == QUERY_TYPE_SEMANTIC:
        adjustment += 0.10

    vector_weight = min(MAX_WEIGHT, max(MIN_WEIGHT, defaults.vector_weight + adjustment))
    bm25_weight = min(MAX_WEIGHT, max(MIN_WEIGHT, defaults.bm25_weight - adjustment))

    total = vector_weight + bm25_weight
    weights = FusionWeights(
        vector_weight=vector_weight / total, bm25_weight=bm25_weight / total
    )

    logger.debug(
        f"[EnsembleBalancer] 自适应权重: query_type={query_type}, "
        f"vector(mean={vector_mean:.3f}, std={vector_std:.3f}), "
        f"bm25(mean={bm25_mean:.3f}, std={bm25_std:.3f}), "
        f"weights=({weights.vector_weight:.3f}, {weights.bm25_weight:.3f})"
    )
    return weights


def source_limits(config: RAGConfig, n: int) -> Dict[SourceKind, Dict[str, int]]:
    """每个来源的最少条数和上限（上限不低于最少条数）"""
    minimums = {
        SourceKind.EMAIL: min(config.min_email_results, n),
        SourceKind.KNOWLEDGE_BASE: min(config.min_kb_results, n),
    }
    ratios = {
        SourceKind.EMAIL: config.max_email_ratio,
        SourceKind.KNOWLEDGE_BASE: config.max_kb_ratio,
    }
    return {
        source: {
            "min": minimums[source],
            "cap": max(math.floor(n * ratios[source]), minimums[source]),
        }
        for source in SourceKind
    }


def balance_sources(
    pool: List[CandidateResult], n: int, config: RAGConfig
) -> List[CandidateResult]:
    """
    按来源平衡结果构成

    1. 先为每个来源保留最少条数（有足够候选时）
    2. 按分数从高到低选取，每个来源不超过 floor(n * max_ratio)
    3. 仍不足 n 条时，从其他来源的剩余候选中补齐，再允许结果变短

    Args:
        pool: 候选集
        n: 目标条数
        config: 配置快照

    Returns:
        按分数降序的结果，长度 <= n
    """
    ordered = sort_by_score(pool)
    if not config.ensemble_balancing_enabled or n <= 0:
        return ordered[:max(n, 0)]

    limits = source_limits(config, n)
    selected: List[CandidateResult] = []
    selected_ids = set()
    counts: Dict[SourceKind, int] = {source: 0 for source in SourceKind}

    def take(candidate: CandidateResult) -> None:
        selected.append(candidate)
        selected_ids.add(candidate.id)
        counts[candidate.source] += 1

    # Step 1: 保留每个来源的最少条数
    reserved: List[CandidateResult] = []
    for source in SourceKind:
        reserved.extend(
            [c for c in ordered if c.source == source][: limits[source]["min"]]
        )
    for candidate in sort_by_score(reserved)[:n]:
        take(candidate)

    # Step 2: 在占比上限内按分数选取
    for candidate in ordered:
        if len(selected) >= n:
            break
        if candidate.id in selected_ids:
            continue
        if counts[candidate.source] < limits[candidate.source]["cap"]:
            take(candidate)

    # Step 3: 补齐
    backfilled = 0
    for candidate in ordered:
        if len(selected) >= n:
            break
        if candidate.id not in selected_ids:
            take(candidate)
            backfilled += 1

    result = sort_by_score(selected)
    logger.debug(
        f"[EnsembleBalancer] 来源平衡: pool={len(pool)}, n={n}, "
        f"email={counts[SourceKind.EMAIL]}, kb={counts[SourceKind.KNOWLEDGE_BASE]}, "
        f"backfilled={backfilled}"
    )
    return result
