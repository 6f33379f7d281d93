"""
搜索结果数据模型

定义检索核心返回的结果格式（使用 Pydantic 进行序列化和验证）
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any

from hybridrag.rag.models.candidate import CandidateResult, SourceKind


class SearchResultItem(BaseModel):
    """单个搜索结果项"""

    id: str = Field(..., description="带来源前缀的文档ID")
    source: SourceKind = Field(..., description="知识来源")
    title: Optional[str] = Field(None, description="标题（文件名 / 邮件主题）")
    content: str = Field(..., description="文档内容片段")
    score: float = Field(..., description="最终相关性分数")
    provenance: Optional[Dict[str, Any]] = Field(None, description="出处信息")

    @classmethod
    def from_candidate(cls, candidate: CandidateResult) -> "SearchResultItem":
        return cls(
            id=candidate.id,
            source=candidate.source,
            title=candidate.title,
            content=candidate.content,
            score=candidate.score,
            provenance=candidate.provenance.to_dict() if candidate.provenance else None,
        )


class SearchResponse(BaseModel):
    """
    搜索结果响应

    results 为空是合法结果，不代表出错
    """

    query: str = Field(..., description="原始查询")
    enhanced_query: str = Field(..., description="增强后的查询")
    query_variants: List[str] = Field(default_factory=list, description="实际参与召回的查询")
    results: List[SearchResultItem] = Field(..., description="搜索结果列表")
    total: int = Field(..., description="返回结果数量")
    took_ms: float = Field(..., description="耗时（毫秒）")

    # 调试信息（可选）
    recall_stats: Optional[Dict[str, Any]] = Field(
        None, description="召回统计信息（各路召回数量、各阶段剩余数量等）"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "query": "pricing for consulting",
                "enhanced_query": "pricing for consulting",
                "query_variants": ["pricing for consulting"],
                "results": [
                    {
                        "id": "knowledge_base:chunk_17",
                        "source": "knowledge_base",
                        "title": "Pricing",
                        "content": "Consulting is billed at ...",
                        "score": 0.92,
                        "provenance": {
                            "file_name": "pricing.pdf",
                            "chunk_index": 3,
                            "total_chunks": 12,
                        },
                    }
                ],
                "total": 1,
                "took_ms": 125.3,
                "recall_stats": {"vector": 20, "lexical": 20, "fused": 31, "final": 1},
            }
        }
    )
