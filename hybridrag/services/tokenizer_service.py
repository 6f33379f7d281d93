"""
Tokenizer 分词服务

英文按单词切分并去停用词，中文片段使用 jieba 分词。
BM25、查询分类、语义加权和内容相似度共用同一套分词规则。
"""

import re
from typing import List

import jieba
from loguru import logger

# 常见英文停用词
STOPWORDS = frozenset(
    [
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
        "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
        "to", "was", "will", "with", "or", "but", "not", "have", "had",
        "over", "this", "can", "were", "been", "into", "would", "there",
    ]
)

# 英文 / 数字单词，或连续的中文片段
_TOKEN_PATTERN = re.compile(r"[a-z0-9]+|[\u4e00-\u9fff]+")
_CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")


class TokenizerService:
    """
    混合语言分词服务

    - 英文：小写、去标点、去停用词、丢弃长度 <= 2 的 token
    - 中文：jieba 精确模式分词，保留任意长度的词
    """

    def __init__(self, min_token_length: int = 3):
        """
        初始化分词器

        Args:
            min_token_length: 英文 token 的最小长度
        """
        # jieba 首次使用时会自动加载词典
        self.min_token_length = min_token_length
        logger.info("Tokenizer 服务初始化完成")

    def tokenize(self, text: str, dedupe: bool = False) -> List[str]:
        """
        文本分词

        Args:
            text: 输入文本
            dedupe: 是否去重（保留首次出现顺序）

        Returns:
            分词结果列表
        """
        if not text:
            return []

        tokens: List[str] = []
        for piece in _TOKEN_PATTERN.findall(text.lower()):
            if _CJK_PATTERN.match(piece):
                tokens.extend(t.strip() for t in jieba.lcut(piece) if t.strip())
            elif len(piece) >= self.min_token_length and piece not in STOPWORDS:
                tokens.append(piece)

        if dedupe:
            tokens = list(dict.fromkeys(tokens))

        return tokens

    async def analyze(self, text: str) -> List[str]:
        """
        查询分词（去重）

        Args:
            text: 输入文本

        Returns:
            分词结果列表
        """
        try:
            logger.debug(f"执行文本分词: text_length={len(text)}")
            tokens = self.tokenize(text, dedupe=True)
            logger.debug(f"分词完成: token_count={len(tokens)}")
            return tokens

        except Exception as e:
            logger.error(f"分词失败: {e}")
            raise
