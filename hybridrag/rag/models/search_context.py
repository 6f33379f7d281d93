"""
搜索请求与搜索上下文

SearchRequest 是一次检索调用的输入；SearchContext 在召回阶段传递单个查询变体的信息
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from hybridrag.core.exceptions import ValidationError
from hybridrag.rag.models.candidate import SourceKind

MAX_QUERY_LENGTH = 10000


@dataclass(frozen=True)
class ConversationTurn:
    """一轮对话消息"""

    sender: str
    content: str


@dataclass
class SearchRequest:
    """
    检索请求

    options 中的字段与 RAGConfig 对应，只覆盖本次调用
    """

    query: str
    tenant_id: str
    conversation_history: List[ConversationTurn] = field(default_factory=list)
    sources: Sequence[SourceKind] = (SourceKind.KNOWLEDGE_BASE, SourceKind.EMAIL)
    options: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """数据验证"""
        if not isinstance(self.query, str) or not self.query.strip():
            raise ValidationError("Invalid query: must be a non-empty string")

        if len(self.query) > MAX_QUERY_LENGTH:
            raise ValidationError(
                f"Query too long: maximum {MAX_QUERY_LENGTH:,} characters"
            )

        if not isinstance(self.tenant_id, str) or not self.tenant_id.strip():
            raise ValidationError("Invalid tenant_id: must be a non-empty string")

        if not self.sources:
            raise ValidationError("At least one source must be searched")

        self.sources = tuple(dict.fromkeys(SourceKind(s) for s in self.sources))

        try:
            self.conversation_history = [
                turn if isinstance(turn, ConversationTurn) else ConversationTurn(**turn)
                for turn in self.conversation_history
            ]
        except TypeError as e:
            raise ValidationError(f"Invalid conversation_history entry: {e}") from e

        limit = (self.options or {}).get("max_results")
        if limit is not None:
            if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= 100:
                raise ValidationError(
                    "Invalid limit: must be an integer between 1 and 100"
                )


@dataclass
class SearchContext:
    """
    单个查询变体的搜索上下文

    用于在向量化、分词、召回各个阶段传递查询信息
    """

    query: str
    query_vector: Optional[List[float]] = None  # 查询向量（纯关键词模式下为空）
    tokens: Optional[List[str]] = None  # 分词结果
    tenant_id: Optional[str] = None
    bm25_k1: Optional[float] = None  # 本次调用的 BM25 参数（为空时使用索引默认值）
    bm25_b: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)
