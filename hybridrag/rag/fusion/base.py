"""
融合服务接口定义

定义统一的融合服务接口
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Tuple

from hybridrag.rag.models.candidate import CandidateResult, sort_by_score
from hybridrag.rag.models.rag_config import FusionWeights


class IFusionService(ABC):
    """
    融合服务接口

    负责将同一查询、同一来源的向量召回和关键词召回结果融合为单一排序列表
    """

    @abstractmethod
    def fuse(
        self,
        vector_results: List[CandidateResult],
        bm25_results: List[CandidateResult],
        weights: FusionWeights,
    ) -> List[CandidateResult]:
        """
        融合两路召回结果

        Args:
            vector_results: 向量召回结果（按相似度降序）
            bm25_results: 关键词召回结果（按 BM25 分数降序）
            weights: 融合权重（RRF 不使用）

        Returns:
            按 ID 去重、按融合分数降序的候选列表
        """
        pass

    @property
    @abstractmethod
    def fusion_method(self) -> str:
        pass


def union_by_id(
    candidate_lists: List[List[CandidateResult]],
) -> Tuple[List[CandidateResult], Dict[str, CandidateResult]]:
    """
    按 ID 合并多路候选

    保留首次出现的候选对象作为基础，补齐另一路的原始分数；
    余弦相似度优先于 BM25 换算出的相似度。seq 记录首次出现顺序。
    """
    ordered: List[CandidateResult] = []
    by_id: Dict[str, CandidateResult] = {}

    for candidate_list in candidate_lists:
        for candidate in candidate_list:
            existing = by_id.get(candidate.id)
            if existing is None:
                candidate.seq = len(ordered)
                by_id[candidate.id] = candidate
                ordered.append(candidate)
                continue

            if existing.vector_score is None and candidate.vector_score is not None:
                existing.vector_score = candidate.vector_score
                existing.similarity = candidate.similarity
            if existing.bm25_score is None and candidate.bm25_score is not None:
                existing.bm25_score = candidate.bm25_score
                if existing.similarity is None:
                    existing.similarity = candidate.similarity

    return ordered, by_id


def finalize(candidates: List[CandidateResult]) -> List[CandidateResult]:
    """把 fused_score 记为当前分数后稳定排序"""
    for candidate in candidates:
        candidate.fused_score = candidate.score
    return sort_by_score(candidates)
