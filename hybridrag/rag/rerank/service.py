"""
重排服务实现

整合多样性过滤、MMR、语义加权和时间衰减
"""

from datetime import datetime
from typing import List, Optional

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.rerank.base import IRerankService
from hybridrag.rag.rerank.boost import apply_semantic_boost
from hybridrag.rag.rerank.decay import apply_temporal_decay
from hybridrag.rag.rerank.diversity import apply_diversity_filter
from hybridrag.rag.rerank.mmr import mmr_rerank
from hybridrag.rag.rerank.similarity import ContentSimilarity
from hybridrag.services.tokenizer_service import TokenizerService


class RerankService(IRerankService):
    """
    重排服务实现

    流程：
    1. 多样性过滤（丢弃与已选结果过于相似的候选）
    2. MMR（可选，分数替换为 MMR 分数）
    3. 语义加权（可选）
    4. 邮件时间衰减（可选）
    """

    def __init__(self, tokenizer: Optional[TokenizerService] = None):
        """
        初始化重排服务

        Args:
            tokenizer: 分词服务（内容相似度和查询命中共用）
        """
        self.tokenizer = tokenizer or TokenizerService()
        logger.info("[RerankService] 初始化完成")

    def diversify(
        self, candidates: List[CandidateResult], config: RAGConfig
    ) -> List[CandidateResult]:
        if not candidates or not config.reranking_enabled:
            return candidates

        similarity = ContentSimilarity(self.tokenizer)
        result = candidates

        if config.use_diversity_filter:
            result = apply_diversity_filter(
                result, similarity, threshold=config.diversity_threshold
            )

        if config.use_mmr:
            result = mmr_rerank(
                result,
                similarity,
                lambda_param=config.mmr_lambda,
                top_n=config.max_results,
            )

        logger.debug(f"[RerankService] 多样性重排: {len(candidates)} -> {len(result)}")
        return result

    def adjust_scores(
        self,
        query: str,
        candidates: List[CandidateResult],
        config: RAGConfig,
        now: Optional[datetime] = None,
    ) -> List[CandidateResult]:
        if not candidates:
            return candidates

        if config.reranking_enabled and config.semantic_boost_enabled:
            query_tokens = self.tokenizer.tokenize(query, dedupe=True)
            apply_semantic_boost(
                candidates,
                query_tokens,
                max_boost=config.max_boost,
                min_boost_threshold=config.min_boost_threshold,
                dynamic=config.dynamic_boost_enabled,
            )

        if config.temporal_decay_enabled:
            apply_temporal_decay(
                candidates, half_life_days=config.decay_half_life_days, now=now
            )

        return candidates
