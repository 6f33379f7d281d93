"""
组件装配

根据系统配置创建检索后端、外部服务和搜索网关
"""

from typing import List, Optional

from loguru import logger

from hybridrag.core.config import Settings, settings
from hybridrag.core.exceptions import ConfigurationError
from hybridrag.rag.clients.base import ILexicalIndex, IVectorIndex
from hybridrag.rag.clients.memory_index import InMemoryBM25Index, InMemoryVectorIndex
from hybridrag.rag.config_store import ITenantConfigStore
from hybridrag.rag.enhancement.query_enhancer import QueryEnhancer
from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.search_gateway import SearchGateway
from hybridrag.rag.strategies.base import IRecallStrategy
from hybridrag.rag.strategies.keyword_strategy import KeywordRecallStrategy
from hybridrag.rag.strategies.vector_strategy import VectorRecallStrategy
from hybridrag.services.embedding_service import EmbeddingService
from hybridrag.services.llm_service import LLMService
from hybridrag.services.tokenizer_service import TokenizerService


def create_vector_index(config: Settings = settings) -> IVectorIndex:
    """创建向量索引（memory | milvus）"""
    backend = config.VECTOR_BACKEND.lower()
    if backend == "memory":
        return InMemoryVectorIndex()
    if backend == "milvus":
        from hybridrag.rag.clients.milvus_client import MilvusVectorIndex

        return MilvusVectorIndex()
    raise ConfigurationError(f"Unknown VECTOR_BACKEND: {config.VECTOR_BACKEND}")


def create_lexical_index(
    config: Settings = settings,
    tokenizer: Optional[TokenizerService] = None,
    rag_config: Optional[RAGConfig] = None,
) -> ILexicalIndex:
    """
    创建关键词索引（memory | elasticsearch）

    索引默认的 BM25 k1 / b 取自 rag_config（默认为系统默认配置）
    """
    rag_config = rag_config or RAGConfig()
    backend = config.LEXICAL_BACKEND.lower()
    if backend == "memory":
        return InMemoryBM25Index(
            tokenizer=tokenizer, k1=rag_config.bm25_k1, b=rag_config.bm25_b
        )
    if backend == "elasticsearch":
        from hybridrag.rag.clients.es_client import ElasticsearchLexicalIndex

        return ElasticsearchLexicalIndex(k1=rag_config.bm25_k1, b=rag_config.bm25_b)
    raise ConfigurationError(f"Unknown LEXICAL_BACKEND: {config.LEXICAL_BACKEND}")


def create_search_gateway(
    lexical_index: ILexicalIndex,
    vector_index: Optional[IVectorIndex] = None,
    config: Settings = settings,
    tokenizer: Optional[TokenizerService] = None,
    config_store: Optional[ITenantConfigStore] = None,
) -> SearchGateway:
    """
    创建搜索网关

    没有配置 OPENAI_API_KEY 时不创建向量化和查询增强服务，检索以纯关键词模式运行
    """
    tokenizer = tokenizer or TokenizerService()
    strategies: List[IRecallStrategy] = [KeywordRecallStrategy(lexical_index)]

    embedding_service = None
    query_enhancer = None
    if config.OPENAI_API_KEY:
        embedding_service = EmbeddingService()
        query_enhancer = QueryEnhancer(LLMService())
        if vector_index is not None:
            strategies.insert(0, VectorRecallStrategy(vector_index))
    else:
        logger.warning("未配置 OPENAI_API_KEY，检索以纯关键词模式运行")

    return SearchGateway(
        recall_strategies=strategies,
        embedding_service=embedding_service,
        tokenizer_service=tokenizer,
        query_enhancer=query_enhancer,
        config_store=config_store,
        retriever_timeout=config.RETRIEVER_TIMEOUT_SECONDS,
    )
