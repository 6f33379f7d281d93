"""
关键词召回策略

基于 BM25 的关键词召回策略
"""

import math
from typing import List
from loguru import logger

from hybridrag.rag.clients.base import ILexicalIndex, SourceScope
from hybridrag.rag.models.candidate import CandidateResult, RetrieverKind
from hybridrag.rag.models.search_context import SearchContext
from hybridrag.rag.strategies.base import IRecallStrategy, build_candidate


def bm25_to_similarity(score: float) -> float:
    """BM25 分数单调映射到 [0, 1) 的相似度尺度：s / (s + 1)"""
    if score <= 0:
        return 0.0
    return score / (score + 1.0)


class KeywordRecallStrategy(IRecallStrategy):
    """
    关键词召回策略

    BM25 分数无上界；similarity 字段写入换算后的相似度，
    只在没有余弦相似度时（纯关键词命中）被过滤阶段使用
    """

    def __init__(self, lexical_index: ILexicalIndex):
        """
        初始化

        Args:
            lexical_index: 关键词索引实例
        """
        self.lexical_index = lexical_index
        logger.info("关键词召回策略初始化完成")

    async def recall(
        self, context: SearchContext, scope: SourceScope, top_k: int = 20
    ) -> List[CandidateResult]:
        """
        执行关键词召回

        Args:
            context: 搜索上下文
            scope: 检索范围
            top_k: 返回结果数量

        Returns:
            候选文档列表
        """
        try:
            logger.info(
                f"[KeywordRecall] 开始执行关键词召回: query='{context.query[:50]}', "
                f"source={scope.source.value}, top_k={top_k}"
            )

            # 检查是否有分词结果
            if not context.tokens:
                logger.warning("[KeywordRecall] 搜索上下文中没有分词结果，跳过关键词召回")
                return []

            hits = await self.lexical_index.search(
                context.query, scope, top_k, k1=context.bm25_k1, b=context.bm25_b
            )

            candidates = []
            for hit in hits:
                if not math.isfinite(hit.score):
                    logger.warning(f"[KeywordRecall] 丢弃非有限分数: id={hit.record_id}")
                    continue
                candidate = build_candidate(scope.source, hit)
                candidate.bm25_score = hit.score
                candidate.similarity = bm25_to_similarity(hit.score)
                candidate.update_score("bm25_recall", hit.score)
                candidates.append(candidate)

            logger.info(
                f"[KeywordRecall] 关键词召回完成，返回 {len(candidates)} 条结果"
            )
            return candidates

        except Exception as e:
            logger.error(f"[KeywordRecall] 关键词召回失败: {e}")
            # 召回失败时返回空列表，不影响其他召回路径
            return []

    @property
    def strategy_name(self) -> RetrieverKind:
        """策略名称"""
        return RetrieverKind.LEXICAL
