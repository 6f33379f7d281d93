"""
召回策略接口定义

定义统一的召回策略接口，所有召回策略必须实现此接口。
后端返回的记录在这里统一转换为 CandidateResult。
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from hybridrag.rag.clients.base import IndexHit, SourceScope
from hybridrag.rag.models.candidate import (
    CandidateResult,
    DocumentProvenance,
    EmailProvenance,
    Provenance,
    RetrieverKind,
    SourceKind,
)
from hybridrag.rag.models.search_context import SearchContext


class IRecallStrategy(ABC):
    """
    召回策略接口

    每次调用只针对一个查询变体和一个来源
    """

    @abstractmethod
    async def recall(
        self, context: SearchContext, scope: SourceScope, top_k: int = 20
    ) -> List[CandidateResult]:
        """
        执行召回

        Args:
            context: 搜索上下文（包含 query、向量、tokens 等）
            scope: 检索范围（租户 + 来源）
            top_k: 返回结果数量

        Returns:
            按原始分数降序的候选列表
        """
        pass

    @property
    @abstractmethod
    def strategy_name(self) -> RetrieverKind:
        """
        策略名称

        用于日志记录和召回统计
        """
        pass


def parse_timestamp(value: Any) -> Optional[datetime]:
    """解析邮件发送时间，无法解析时返回 None"""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_provenance(source: SourceKind, hit: IndexHit) -> Provenance:
    meta = hit.metadata
    if source == SourceKind.EMAIL:
        return EmailProvenance(
            sender_name=meta.get("sender_name"),
            sender_email=meta.get("sender_email"),
            sent_at=parse_timestamp(meta.get("sent_at")),
        )
    return DocumentProvenance(
        file_name=meta.get("file_name"),
        chunk_index=meta.get("chunk_index"),
        total_chunks=meta.get("total_chunks"),
    )


def build_candidate(source: SourceKind, hit: IndexHit) -> CandidateResult:
    """将后端命中转换为带来源前缀 ID 的候选结果"""
    title = hit.title
    if title is None and source == SourceKind.KNOWLEDGE_BASE:
        title = hit.metadata.get("file_name")

    return CandidateResult(
        id=f"{source.value}:{hit.record_id}",
        source=source,
        content=hit.content,
        title=title,
        provenance=build_provenance(source, hit),
    )
