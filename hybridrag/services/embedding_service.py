"""
Embedding 向量化服务

封装 OpenAI Embedding API 调用
"""

import math
from typing import List, Optional

from openai import AsyncOpenAI
from loguru import logger

from hybridrag.core.config import settings
from hybridrag.core.exceptions import DimensionMismatchError, ProviderError
from hybridrag.services.base import IEmbeddingProvider


class EmbeddingService(IEmbeddingProvider):
    """
    OpenAI Embedding 服务

    负责将文本转换为向量表示，返回前校验向量维度和数值
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
    ):
        """
        初始化 OpenAI 客户端

        Args:
            client: 已创建的 AsyncOpenAI 客户端（测试时注入）
            model: Embedding 模型名称
            dimension: 期望的向量维度
        """
        if client is None:
            client_params = {"api_key": settings.OPENAI_API_KEY}

            # 如果配置了自定义 API 端点
            if settings.OPENAI_API_BASE:
                client_params["base_url"] = settings.OPENAI_API_BASE
                logger.info(f"使用自定义 OpenAI API 端点: {settings.OPENAI_API_BASE}")

            client = AsyncOpenAI(**client_params)

        self.client = client
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        logger.info(
            f"Embedding 服务初始化完成，使用模型: {self.model}, dimension={self.dimension}"
        )

    async def generate_embedding(self, text: str) -> List[float]:
        """
        文本向量化

        Args:
            text: 输入文本

        Returns:
            向量表示
        """
        vectors = await self.generate_batch_embeddings([text])
        return vectors[0]

    async def generate_batch_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        批量文本向量化

        Args:
            texts: 文本列表

        Returns:
            向量列表（与输入顺序一致）

        Raises:
            ProviderError: API 调用失败或返回数据不合法
            DimensionMismatchError: 向量维度与配置不一致
        """
        if not texts:
            return []

        try:
            logger.debug(f"批量向量化: batch_size={len(texts)}")

            response = await self.client.embeddings.create(
                input=texts, model=self.model
            )

        except Exception as e:
            logger.error(f"批量向量化失败: {e}")
            raise ProviderError(f"Embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda d: d.index)
        vectors = [list(d.embedding) for d in data]

        if len(vectors) != len(texts):
            raise ProviderError(
                f"Embedding count mismatch: sent {len(texts)}, got {len(vectors)}"
            )

        for vector in vectors:
            self.validate(vector)

        logger.info(f"批量向量化完成: count={len(vectors)}")
        return vectors

    def validate(self, vector: List[float]) -> None:
        """校验向量维度和数值"""
        if len(vector) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(vector))

        if not all(math.isfinite(v) for v in vector):
            raise ProviderError("Embedding contains non-finite values")
