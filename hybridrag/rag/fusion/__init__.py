"""
融合服务模块

实现 RRF、加权融合以及多查询结果合并
"""

from hybridrag.core.exceptions import ConfigurationError
from hybridrag.rag.fusion.base import IFusionService
from hybridrag.rag.fusion.merge import merge_results
from hybridrag.rag.fusion.rrf_fusion import RRFMergeImpl
from hybridrag.rag.fusion.weighted_fusion import WeightedFusionImpl
from hybridrag.rag.models.rag_config import RAGConfig


def create_fusion_service(config: RAGConfig) -> IFusionService:
    """按配置创建融合服务"""
    if config.fusion_method == "rrf":
        return RRFMergeImpl(k=config.rrf_k)
    if config.fusion_method == "weighted":
        return WeightedFusionImpl(normalization_method=config.normalization_method)
    raise ConfigurationError(f"Unknown fusion method: {config.fusion_method}")


__all__ = [
    "IFusionService",
    "RRFMergeImpl",
    "WeightedFusionImpl",
    "create_fusion_service",
    "merge_results",
]
