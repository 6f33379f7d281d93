"""
检索后端接口定义

向量索引和关键词索引的统一接口，召回策略只依赖这里的接口
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hybridrag.rag.models.candidate import SourceKind


@dataclass(frozen=True)
class SourceScope:
    """检索范围：租户 + 来源"""

    tenant_id: str
    source: SourceKind


@dataclass
class IndexRecord:
    """写入内存索引的记录"""

    id: str
    tenant_id: str
    source: SourceKind
    content: str
    title: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None


@dataclass
class IndexHit:
    """
    检索后端返回的单条命中

    score 为后端原始分数（向量索引为余弦相似度，关键词索引为 BM25 分数）
    """

    record_id: str
    score: float
    content: str
    title: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class IVectorIndex(ABC):
    """向量索引接口"""

    @abstractmethod
    async def search(
        self, embedding: List[float], scope: SourceScope, top_k: int
    ) -> List[IndexHit]:
        """
        向量检索

        Args:
            embedding: 查询向量
            scope: 检索范围
            top_k: 返回结果数量

        Returns:
            按余弦相似度降序的命中列表
        """
        pass


class ILexicalIndex(ABC):
    """关键词索引接口"""

    @abstractmethod
    async def search(
        self,
        query: str,
        scope: SourceScope,
        top_k: int,
        k1: Optional[float] = None,
        b: Optional[float] = None,
    ) -> List[IndexHit]:
        """
        BM25 检索

        Args:
            query: 查询文本
            scope: 检索范围
            top_k: 返回结果数量
            k1: 本次调用的 BM25 k1（为空时使用索引默认值）
            b: 本次调用的 BM25 b（为空时使用索引默认值）

        Returns:
            按 BM25 分数降序的命中列表
        """
        pass
