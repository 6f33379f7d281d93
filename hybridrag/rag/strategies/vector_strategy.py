"""
向量召回策略

基于向量索引的余弦相似度召回
"""

import math
from typing import List
from loguru import logger

from hybridrag.core.exceptions import DimensionMismatchError
from hybridrag.rag.clients.base import IVectorIndex, SourceScope
from hybridrag.rag.models.candidate import CandidateResult, RetrieverKind
from hybridrag.rag.models.search_context import SearchContext
from hybridrag.rag.strategies.base import IRecallStrategy, build_candidate


class VectorRecallStrategy(IRecallStrategy):
    """
    向量召回策略

    使用查询向量在向量索引中进行相似度检索，分数为余弦相似度（约 0-1）
    """

    def __init__(self, vector_index: IVectorIndex):
        """
        初始化

        Args:
            vector_index: 向量索引实例
        """
        self.vector_index = vector_index
        logger.info("向量召回策略初始化完成")

    async def recall(
        self, context: SearchContext, scope: SourceScope, top_k: int = 20
    ) -> List[CandidateResult]:
        """
        执行向量召回

        Args:
            context: 搜索上下文
            scope: 检索范围
            top_k: 返回结果数量

        Returns:
            候选文档列表
        """
        try:
            logger.info(
                f"[VectorRecall] 开始执行向量召回: query='{context.query[:50]}', "
                f"source={scope.source.value}, top_k={top_k}"
            )

            # 检查是否有查询向量
            if not context.query_vector:
                logger.warning("[VectorRecall] 搜索上下文中没有查询向量，跳过向量召回")
                return []

            hits = await self.vector_index.search(context.query_vector, scope, top_k)

            candidates = []
            for hit in hits:
                if not math.isfinite(hit.score):
                    logger.warning(f"[VectorRecall] 丢弃非有限分数: id={hit.record_id}")
                    continue
                candidate = build_candidate(scope.source, hit)
                candidate.vector_score = hit.score
                candidate.similarity = hit.score
                candidate.update_score("vector_recall", hit.score)
                candidates.append(candidate)

            logger.info(f"[VectorRecall] 向量召回完成，返回 {len(candidates)} 条结果")
            return candidates

        except DimensionMismatchError:
            raise

        except Exception as e:
            logger.error(f"[VectorRecall] 向量召回失败: {e}")
            # 召回失败时返回空列表，不影响其他召回路径
            return []

    @property
    def strategy_name(self) -> RetrieverKind:
        """策略名称"""
        return RetrieverKind.VECTOR
