"""
加权融合算法实现

fused = vector_weight * norm(vector) + bm25_weight * norm(bm25)
"""

from typing import Dict, List, Tuple

from loguru import logger

from hybridrag.rag.fusion.base import IFusionService, finalize, union_by_id
from hybridrag.rag.fusion.normalization import NORMALIZATION_METHODS, normalize_scores
from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.models.rag_config import FusionWeights


def normalize_lists(
    vector_results: List[CandidateResult],
    bm25_results: List[CandidateResult],
    method: str = "robust",
) -> Tuple[List[float], List[float]]:
    """
    分别归一化两路召回的原始分数

    robust: 余弦相似度本身已在 0-1 之间，直接使用；BM25 使用 z-score + sigmoid
    """
    vector_raw = [c.vector_score or 0.0 for c in vector_results]
    bm25_raw = [c.bm25_score or 0.0 for c in bm25_results]

    if method == "robust":
        return list(vector_raw), normalize_scores(bm25_raw, "z-score")

    return normalize_scores(vector_raw, method), normalize_scores(bm25_raw, method)


class WeightedFusionImpl(IFusionService):
    """
    加权分数融合

    只出现在一路召回中的文档，另一路贡献为 0
    """

    def __init__(self, normalization_method: str = "robust"):
        if normalization_method not in NORMALIZATION_METHODS:
            raise ValueError(f"Unknown normalization method: {normalization_method}")
        self.normalization_method = normalization_method

    @property
    def fusion_method(self) -> str:
        return "weighted"

    def fuse(
        self,
        vector_results: List[CandidateResult],
        bm25_results: List[CandidateResult],
        weights: FusionWeights,
    ) -> List[CandidateResult]:
        try:
            vector_norm, bm25_norm = normalize_lists(
                vector_results, bm25_results, self.normalization_method
            )
            vector_map: Dict[str, float] = {}
            for candidate, score in zip(vector_results, vector_norm):
                vector_map.setdefault(candidate.id, score)
            bm25_map: Dict[str, float] = {}
            for candidate, score in zip(bm25_results, bm25_norm):
                bm25_map.setdefault(candidate.id, score)

            merged, _ = union_by_id([vector_results, bm25_results])
            for candidate in merged:
                v = vector_map.get(candidate.id, 0.0)
                b = bm25_map.get(candidate.id, 0.0)
                fused = v * weights.vector_weight + b * weights.bm25_weight
                candidate.normalized_score = v if candidate.id in vector_map else b
                candidate.update_score(
                    "fusion",
                    fused,
                    {
                        "method": "weighted",
                        "normalization": self.normalization_method,
                        "vector": v,
                        "bm25": b,
                        "weights": [weights.vector_weight, weights.bm25_weight],
                    },
                )

            results = finalize(merged)
            logger.debug(
                f"[WeightedFusion] 融合完成: vector={len(vector_results)}, "
                f"bm25={len(bm25_results)}, fused={len(results)}, "
                f"weights=({weights.vector_weight:.3f}, {weights.bm25_weight:.3f})"
            )
            return results

        except Exception as e:
            logger.error(f"[WeightedFusion] 融合失败: {e}")
            raise
