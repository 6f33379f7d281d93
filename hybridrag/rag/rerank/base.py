"""
重排服务接口定义
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.models.rag_config import RAGConfig


class IRerankService(ABC):
    """
    重排服务接口

    diversify: 多样性过滤 / MMR
    adjust_scores: 语义加权 / 时间衰减
    """

    @abstractmethod
    def diversify(
        self, candidates: List[CandidateResult], config: RAGConfig
    ) -> List[CandidateResult]:
        """
        在相关性与多样性之间重新取舍

        Args:
            candidates: 按分数降序的候选
            config: 配置快照

        Returns:
            候选列表
        """
        pass

    @abstractmethod
    def adjust_scores(
        self,
        query: str,
        candidates: List[CandidateResult],
        config: RAGConfig,
        now: Optional[datetime] = None,
    ) -> List[CandidateResult]:
        """
        根据查询命中和邮件时间调整分数

        Args:
            query: 查询文本
            candidates: 候选
            config: 配置快照
            now: 当前时间（时间衰减使用）

        Returns:
            候选列表（不重新排序）
        """
        pass
