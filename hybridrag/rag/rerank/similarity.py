"""
内容相似度

基于分词结果的 Jaccard 相似度，用于多样性过滤和 MMR
"""

from typing import Callable, Dict, FrozenSet

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.services.tokenizer_service import TokenizerService

SimilarityFn = Callable[[CandidateResult, CandidateResult], float]


def jaccard_similarity(tokens_a: FrozenSet[str], tokens_b: FrozenSet[str]) -> float:
    """|A ∩ B| / |A ∪ B|，两者都为空时返回 0"""
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


class ContentSimilarity:
    """
    候选内容相似度（按候选 ID 缓存分词结果）

    每次检索调用创建一个实例
    """

    def __init__(self, tokenizer: TokenizerService):
        self.tokenizer = tokenizer
        self._cache: Dict[str, FrozenSet[str]] = {}

    def tokens(self, candidate: CandidateResult) -> FrozenSet[str]:
        cached = self._cache.get(candidate.id)
        if cached is None:
            cached = frozenset(self.tokenizer.tokenize(candidate.content or ""))
            self._cache[candidate.id] = cached
        return cached

    def __call__(self, a: CandidateResult, b: CandidateResult) -> float:
        return jaccard_similarity(self.tokens(a), self.tokens(b))
