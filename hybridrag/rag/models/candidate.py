"""
候选文档数据模型

定义召回、融合、过滤、重排各阶段共用的候选结果表示
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class SourceKind(str, Enum):
    """知识来源"""

    KNOWLEDGE_BASE = "knowledge_base"
    EMAIL = "email"


class RetrieverKind(str, Enum):
    """召回路类型"""

    VECTOR = "vector"
    LEXICAL = "lexical"


@dataclass(frozen=True)
class DocumentProvenance:
    """知识库分块出处"""

    file_name: Optional[str] = None
    chunk_index: Optional[int] = None
    total_chunks: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "chunk_index": self.chunk_index,
            "total_chunks": self.total_chunks,
        }


@dataclass(frozen=True)
class EmailProvenance:
    """邮件出处"""

    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    sent_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender_name": self.sender_name,
            "sender_email": self.sender_email,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }


Provenance = Union[DocumentProvenance, EmailProvenance]


@dataclass(frozen=True)
class ScoreEvent:
    """分数变更记录（stage -> before/after）"""

    stage: str
    before: Optional[float]
    after: float
    detail: Optional[Dict[str, Any]] = None


@dataclass(eq=False)
class CandidateResult:
    """
    候选结果

    在召回边界统一不同来源的记录格式，下游只依赖这里的字段。
    score 始终是最近一次生效的分数，每次变更都追加到 score_history。
    """

    id: str  # 带来源前缀的ID，如 "email:123"
    source: SourceKind
    content: str
    title: Optional[str] = None
    provenance: Optional[Provenance] = None

    # 各路召回原始分数
    vector_score: Optional[float] = None
    bm25_score: Optional[float] = None

    # 相似度尺度上的相关性（余弦相似度，或纯关键词模式下换算后的相似度）
    similarity: Optional[float] = None

    normalized_score: Optional[float] = None
    fused_score: Optional[float] = None
    rerank_score: Optional[float] = None

    score: float = 0.0
    score_history: List[ScoreEvent] = field(default_factory=list)

    # 首次出现的顺序，用于同分时的稳定排序
    seq: int = 0

    def __hash__(self):
        """用于去重"""
        return hash(self.id)

    def __eq__(self, other):
        """相等性判断：仅比较 id"""
        if not isinstance(other, CandidateResult):
            return False
        return self.id == other.id

    def update_score(
        self, stage: str, new_score: float, detail: Optional[Dict[str, Any]] = None
    ) -> None:
        """更新当前分数并追加一条分数历史"""
        new_score = float(new_score)
        if not math.isfinite(new_score):
            raise ValueError(f"non-finite score at stage '{stage}': {new_score}")

        before = self.score if self.score_history else None
        self.score_history.append(
            ScoreEvent(stage=stage, before=before, after=new_score, detail=detail)
        )
        self.score = new_score

    @property
    def sent_at(self) -> Optional[datetime]:
        if isinstance(self.provenance, EmailProvenance):
            return self.provenance.sent_at
        return None


@dataclass
class RetrieverResultSet:
    """单路召回（某个召回器 x 某个查询 x 某个来源）的有序结果"""

    retriever: RetrieverKind
    source: SourceKind
    query: str
    items: List[CandidateResult] = field(default_factory=list)

    def __len__(self):
        return len(self.items)


def sort_by_score(candidates: List[CandidateResult]) -> List[CandidateResult]:
    """按当前分数降序排序，同分按首次出现顺序"""
    return sorted(candidates, key=lambda c: (-c.score, c.seq))
