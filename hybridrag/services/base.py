"""
外部模型服务接口定义

检索核心只依赖这里的接口，测试时可替换为进程内实现
"""

from abc import ABC, abstractmethod
from typing import List


class IEmbeddingProvider(ABC):
    """向量化服务接口"""

    dimension: int

    @abstractmethod
    async def generate_embedding(self, text: str) -> List[float]:
        pass

    @abstractmethod
    async def generate_batch_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        批量向量化

        Args:
            texts: 文本列表

        Returns:
            与输入顺序一致的向量列表
        """
        pass


class IChatProvider(ABC):
    """对话模型接口"""

    @abstractmethod
    async def complete(
        self, prompt: str, temperature: float = 0.7, max_tokens: int = 300
    ) -> str:
        pass
