"""
数据模型模块

定义混合检索系统的核心数据结构
"""

from hybridrag.rag.models.candidate import (
    CandidateResult,
    DocumentProvenance,
    EmailProvenance,
    RetrieverKind,
    RetrieverResultSet,
    ScoreEvent,
    SourceKind,
    sort_by_score,
)
from hybridrag.rag.models.rag_config import FusionWeights, RAGConfig
from hybridrag.rag.models.search_context import (
    ConversationTurn,
    SearchContext,
    SearchRequest,
)
from hybridrag.rag.models.search_result import SearchResponse, SearchResultItem

__all__ = [
    "CandidateResult",
    "DocumentProvenance",
    "EmailProvenance",
    "RetrieverKind",
    "RetrieverResultSet",
    "ScoreEvent",
    "SourceKind",
    "sort_by_score",
    "FusionWeights",
    "RAGConfig",
    "ConversationTurn",
    "SearchContext",
    "SearchRequest",
    "SearchResponse",
    "SearchResultItem",
]
