"""
外部服务模块

向量化、对话模型和分词服务
"""

from hybridrag.services.base import IChatProvider, IEmbeddingProvider
from hybridrag.services.embedding_service import EmbeddingService
from hybridrag.services.llm_service import LLMService
from hybridrag.services.tokenizer_service import TokenizerService

__all__ = ["IChatProvider", "IEmbeddingProvider", "EmbeddingService", "LLMService", "TokenizerService"]
