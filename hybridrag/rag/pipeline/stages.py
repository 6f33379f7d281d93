"""
流水线阶段实现

顺序: AdaptiveFilter -> EnsembleBalance -> Rerank -> ScoreAdjustment -> FinalOrder
"""

from typing import List

from hybridrag.rag.balancing.ensemble import balance_sources
from hybridrag.rag.filtering.adaptive_filter import AdaptiveFilter
from hybridrag.rag.models.candidate import CandidateResult, sort_by_score
from hybridrag.rag.pipeline.base import PipelineContext, PipelineStage
from hybridrag.rag.rerank.base import IRerankService


class AdaptiveFilterStage(PipelineStage):
    """自适应过滤（关闭时只应用来源绝对阈值）"""

    name = "adaptive_filter"

    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        return AdaptiveFilter(context.config).apply(candidates)


class EnsembleBalanceStage(PipelineStage):
    """来源平衡（关闭时按分数截断到 max_results）"""

    name = "ensemble_balance"

    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        return balance_sources(candidates, context.config.max_results, context.config)


class RerankStage(PipelineStage):
    """多样性过滤 / MMR"""

    name = "rerank"

    def __init__(self, rerank_service: IRerankService):
        self.rerank_service = rerank_service

    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        return self.rerank_service.diversify(candidates, context.config)


class ScoreAdjustmentStage(PipelineStage):
    """语义加权 / 时间衰减"""

    name = "score_adjustment"

    def __init__(self, rerank_service: IRerankService):
        self.rerank_service = rerank_service

    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        return self.rerank_service.adjust_scores(
            context.query, candidates, context.config, now=context.now
        )


class FinalOrderStage(PipelineStage):
    """按最后一次生效的分数稳定排序并截断"""

    name = "final"

    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        return sort_by_score(candidates)[: context.config.max_results]
