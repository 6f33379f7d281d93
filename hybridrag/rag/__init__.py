"""
RAG 模块 - 混合检索引擎

向量召回 + BM25 关键词召回，加权 / RRF 融合，自适应过滤、来源平衡和重排
"""

# 数据模型
from hybridrag.rag.models import (
    CandidateResult,
    ConversationTurn,
    FusionWeights,
    RAGConfig,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    SourceKind,
)

# 检索后端
from hybridrag.rag.clients import (
    ILexicalIndex,
    IndexRecord,
    IVectorIndex,
    InMemoryBM25Index,
    InMemoryVectorIndex,
)

# 召回策略
from hybridrag.rag.strategies import (
    IRecallStrategy,
    VectorRecallStrategy,
    KeywordRecallStrategy,
)

# 查询增强
from hybridrag.rag.enhancement import EnhancedQuery, QueryEnhancer

# 融合服务
from hybridrag.rag.fusion import IFusionService, RRFMergeImpl, WeightedFusionImpl

# 重排服务
from hybridrag.rag.rerank import IRerankService, RerankService

# 租户配置
from hybridrag.rag.config_store import InMemoryTenantConfigStore, ITenantConfigStore

# 搜索网关（核心编排器）
from hybridrag.rag.search_gateway import SearchGateway

__all__ = [
    # 数据模型
    "CandidateResult",
    "ConversationTurn",
    "FusionWeights",
    "RAGConfig",
    "SearchRequest",
    "SearchResponse",
    "SearchResultItem",
    "SourceKind",
    # 检索后端
    "ILexicalIndex",
    "IndexRecord",
    "IVectorIndex",
    "InMemoryBM25Index",
    "InMemoryVectorIndex",
    # 召回策略
    "IRecallStrategy",
    "VectorRecallStrategy",
    "KeywordRecallStrategy",
    # 查询增强
    "EnhancedQuery",
    "QueryEnhancer",
    # 融合服务
    "IFusionService",
    "RRFMergeImpl",
    "WeightedFusionImpl",
    # 重排服务
    "IRerankService",
    "RerankService",
    # 租户配置
    "InMemoryTenantConfigStore",
    "ITenantConfigStore",
    # 核心网关
    "SearchGateway",
]
