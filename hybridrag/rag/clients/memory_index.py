"""
内存索引

进程内的向量索引和 BM25 索引，用于本地运行和测试
"""

import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from hybridrag.rag.clients.base import (
    ILexicalIndex,
    IndexHit,
    IndexRecord,
    IVectorIndex,
    SourceScope,
)
from hybridrag.services.tokenizer_service import TokenizerService


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """余弦相似度，任一向量为零向量时返回 0"""
    if len(a) != len(b):
        raise ValueError(f"vector length mismatch: {len(a)} != {len(b)}")

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def bm25_term_score(
    term_freq: int,
    doc_length: int,
    avg_doc_length: float,
    doc_count: int,
    docs_with_term: int,
    k1: float = 1.5,
    b: float = 0.75,
) -> float:
    """
    单个词项的 BM25 分数

    idf = ln((N - n + 0.5) / (n + 0.5) + 1)
    tf  = f * (k1 + 1) / (f + k1 * (1 - b + b * dl / avgdl))
    """
    if term_freq == 0:
        return 0.0

    idf = math.log((doc_count - docs_with_term + 0.5) / (docs_with_term + 0.5) + 1)
    length_ratio = doc_length / avg_doc_length if avg_doc_length > 0 else 1.0
    tf_component = (term_freq * (k1 + 1)) / (
        term_freq + k1 * (1 - b + b * length_ratio)
    )
    return idf * tf_component


def _to_hit(record: IndexRecord, score: float) -> IndexHit:
    return IndexHit(
        record_id=record.id,
        score=score,
        content=record.content,
        title=record.title,
        metadata=dict(record.metadata),
    )


class InMemoryVectorIndex(IVectorIndex):
    """内存向量索引（暴力余弦检索）"""

    def __init__(self, records: Optional[Iterable[IndexRecord]] = None):
        self._records: Dict[Tuple[str, str], List[IndexRecord]] = defaultdict(list)
        if records:
            self.add(records)

    def add(self, records: Iterable[IndexRecord]) -> None:
        for record in records:
            if record.embedding is None:
                raise ValueError(f"record '{record.id}' has no embedding")
            self._records[(record.tenant_id, record.source.value)].append(record)

    async def search(
        self, embedding: List[float], scope: SourceScope, top_k: int
    ) -> List[IndexHit]:
        records = self._records.get((scope.tenant_id, scope.source.value), [])
        scored = [(cosine_similarity(embedding, r.embedding), r) for r in records]
        scored.sort(key=lambda pair: pair[0], reverse=True)

        hits = [_to_hit(r, s) for s, r in scored[:top_k]]
        logger.debug(
            f"[MemoryVectorIndex] 检索完成: source={scope.source.value}, hits={len(hits)}"
        )
        return hits


class InMemoryBM25Index(ILexicalIndex):
    """
    内存 BM25 索引

    每个（租户, 来源）维护独立的语料统计（文档数、平均长度、文档频率）
    """

    def __init__(
        self,
        tokenizer: Optional[TokenizerService] = None,
        k1: float = 1.5,
        b: float = 0.75,
        records: Optional[Iterable[IndexRecord]] = None,
    ):
        self.tokenizer = tokenizer or TokenizerService()
        self.k1 = k1
        self.b = b
        self._docs: Dict[Tuple[str, str], List[Tuple[IndexRecord, Counter, int]]] = (
            defaultdict(list)
        )
        self._doc_freq: Dict[Tuple[str, str], Counter] = defaultdict(Counter)
        if records:
            self.add(records)

    def add(self, records: Iterable[IndexRecord]) -> None:
        for record in records:
            key = (record.tenant_id, record.source.value)
            tokens = self.tokenizer.tokenize(record.content)
            term_freqs = Counter(tokens)
            self._docs[key].append((record, term_freqs, len(tokens)))
            self._doc_freq[key].update(term_freqs.keys())

    async def search(
        self,
        query: str,
        scope: SourceScope,
        top_k: int,
        k1: Optional[float] = None,
        b: Optional[float] = None,
    ) -> List[IndexHit]:
        k1 = self.k1 if k1 is None else k1
        b = self.b if b is None else b
        key = (scope.tenant_id, scope.source.value)
        docs = self._docs.get(key, [])
        query_terms = self.tokenizer.tokenize(query, dedupe=True)
        if not docs or not query_terms:
            return []

        doc_count = len(docs)
        avg_doc_length = sum(length for _, _, length in docs) / doc_count
        doc_freq = self._doc_freq[key]

        scored = []
        for record, term_freqs, length in docs:
            score = sum(
                bm25_term_score(
                    term_freqs.get(term, 0),
                    length,
                    avg_doc_length,
                    doc_count,
                    doc_freq.get(term, 0),
                    k1=k1,
                    b=b,
                )
                for term in query_terms
            )
            if score > 0:
                scored.append((score, record))

        scored.sort(key=lambda pair: pair[0], reverse=True)

        hits = [_to_hit(r, s) for s, r in scored[:top_k]]
        logger.debug(
            f"[MemoryBM25Index] 检索完成: source={scope.source.value}, "
            f"terms={query_terms}, hits={len(hits)}"
        )
        return hits
