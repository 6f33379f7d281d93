"""
上下文预算

按估算的 token 数截断最终结果，保证拼接进提示词的上下文不超过预算
"""

import math
from typing import List

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult

ELLIPSIS = "..."


def estimate_token_count(text: str, characters_per_token: int = 4) -> int:
    """粗略估算 token 数（约 4 个字符一个 token）"""
    if not text:
        return 0
    return math.ceil(len(text) / characters_per_token)


def truncate_text(text: str, max_tokens: int, characters_per_token: int = 4) -> str:
    """
    截断文本到预算以内

    截断点之前 80% 以后有句号时在句号处截断，截断后统一追加 "..."
    """
    max_chars = max_tokens * characters_per_token
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_period = truncated.rfind(".")
    if last_period > max_chars * 0.8:
        truncated = truncated[: last_period + 1]

    return truncated + ELLIPSIS


def truncate_context(
    candidates: List[CandidateResult],
    max_tokens: int,
    characters_per_token: int = 4,
) -> List[CandidateResult]:
    """
    在 token 预算内保留尽可能多的结果

    第一条结果本身就超出预算时，保留它并截断内容；之后的结果一旦超出预算即停止

    Args:
        candidates: 最终排序结果
        max_tokens: token 预算
        characters_per_token: 每个 token 的字符数

    Returns:
        截断后的结果（分数、标题、来源不变）
    """
    kept: List[CandidateResult] = []
    used = 0

    for candidate in candidates:
        tokens = estimate_token_count(candidate.content, characters_per_token)

        if used + tokens > max_tokens:
            if not kept:
                candidate.content = truncate_text(
                    candidate.content, max_tokens, characters_per_token
                )
                kept.append(candidate)
            break

        kept.append(candidate)
        used += tokens

    logger.debug(
        f"[Context] 上下文截断: {len(candidates)} -> {len(kept)}, "
        f"estimated_tokens={used}, budget={max_tokens}"
    )
    return kept
