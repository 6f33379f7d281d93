"""
按配置组装流水线
"""

from typing import List

from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.pipeline.base import Pipeline, PipelineStage
from hybridrag.rag.pipeline.stages import (
    AdaptiveFilterStage,
    EnsembleBalanceStage,
    FinalOrderStage,
    RerankStage,
    ScoreAdjustmentStage,
)
from hybridrag.rag.rerank.base import IRerankService


def build_pipeline(config: RAGConfig, rerank_service: IRerankService) -> Pipeline:
    """
    组装融合后的处理阶段

    过滤、平衡和最终排序总是存在（关闭时退化为阈值过滤 / 截断）；
    重排和分数调整阶段只在对应开关打开时加入
    """
    stages: List[PipelineStage] = [AdaptiveFilterStage(), EnsembleBalanceStage()]

    if config.reranking_enabled and (config.use_diversity_filter or config.use_mmr):
        stages.append(RerankStage(rerank_service))

    if (config.reranking_enabled and config.semantic_boost_enabled) or (
        config.temporal_decay_enabled
    ):
        stages.append(ScoreAdjustmentStage(rerank_service))

    stages.append(FinalOrderStage())
    return Pipeline(stages)
