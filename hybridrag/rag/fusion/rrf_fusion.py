"""
RRF 融合算法实现

实现 Reciprocal Rank Fusion (RRF) 融合算法
"""

from collections import defaultdict
from typing import Dict, List, Optional

from loguru import logger

from hybridrag.rag.fusion.base import IFusionService, finalize, union_by_id
from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.models.rag_config import FusionWeights


class RRFMergeImpl(IFusionService):
    """
    RRF 融合算法实现

    只依赖排名，不依赖各路分数的量级
    """

    def __init__(self, k: int = 60):
        """
        Args:
            k: RRF 平滑参数（默认 60）
        """
        self.k = k

    @property
    def fusion_method(self) -> str:
        return "rrf"

    def fuse(
        self,
        vector_results: List[CandidateResult],
        bm25_results: List[CandidateResult],
        weights: Optional[FusionWeights] = None,
    ) -> List[CandidateResult]:
        return self.rrf_merge([vector_results, bm25_results])

    def rrf_merge(
        self,
        candidate_lists: List[List[CandidateResult]],
        top_n: Optional[int] = None,
    ) -> List[CandidateResult]:
        """
        RRF 融合算法

        公式: score(d) = Σ 1/(k + rank(d))
        其中 rank(d) 是文档 d 在某一召回列表中的排名（从 1 开始），
        只在包含该文档的召回列表上求和

        Args:
            candidate_lists: 多路召回结果列表
            top_n: 返回结果数量（默认全部返回）

        Returns:
            融合后的候选列表，按 RRF 分数降序排列
        """
        try:
            logger.debug(
                f"[RRF] 开始融合: list_sizes={[len(lst) for lst in candidate_lists]}, k={self.k}"
            )

            # doc_id -> RRF 分数
            rrf_scores: Dict[str, float] = defaultdict(float)
            # doc_id -> 各路排名
            ranks: Dict[str, List[Optional[int]]] = defaultdict(
                lambda: [None] * len(candidate_lists)
            )

            for list_idx, candidate_list in enumerate(candidate_lists):
                for rank, candidate in enumerate(candidate_list, start=1):
                    # 同一路中重复出现的文档只计第一次
                    if ranks[candidate.id][list_idx] is not None:
                        continue
                    ranks[candidate.id][list_idx] = rank
                    rrf_scores[candidate.id] += 1.0 / (self.k + rank)

            merged, _ = union_by_id(candidate_lists)
            for candidate in merged:
                candidate.update_score(
                    "fusion",
                    rrf_scores[candidate.id],
                    {"method": "rrf", "k": self.k, "ranks": ranks[candidate.id]},
                )

            final_results = finalize(merged)
            if top_n is not None:
                final_results = final_results[:top_n]

            logger.debug(
                f"[RRF] 融合完成: merged={len(merged)}, "
                f"top3={[(c.id, round(c.score, 4)) for c in final_results[:3]]}"
            )
            return final_results

        except Exception as e:
            logger.error(f"[RRF] 融合失败: {e}")
            raise
