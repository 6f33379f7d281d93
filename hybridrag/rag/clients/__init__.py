"""
检索后端客户端模块

封装 Milvus、ElasticSearch 以及进程内索引
"""

from hybridrag.rag.clients.base import (
    ILexicalIndex,
    IndexHit,
    IndexRecord,
    IVectorIndex,
    SourceScope,
)
from hybridrag.rag.clients.memory_index import InMemoryBM25Index, InMemoryVectorIndex

__all__ = [
    "ILexicalIndex",
    "IndexHit",
    "IndexRecord",
    "IVectorIndex",
    "SourceScope",
    "InMemoryBM25Index",
    "InMemoryVectorIndex",
]
