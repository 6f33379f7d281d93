"""
查询增强

在召回之前改写 / 扩展查询：
1. 对话上下文注入：结合最近几轮对话，把问题改写为独立问题
2. HyDE：生成假设性答案，作为额外的召回查询
3. 多查询扩展：生成若干同义改写

任何一步调用模型失败都回退到安全默认值，查询增强不会让检索失败
"""

import json
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from loguru import logger

from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.models.search_context import ConversationTurn
from hybridrag.services.base import IChatProvider

HYDE_PROMPT_TEMPLATE = """Given the following question, write a detailed hypothetical answer that would perfectly answer this question:

Question: {query}

Write a detailed, informative answer (2-3 paragraphs):"""

MULTI_QUERY_PROMPT_TEMPLATE = """You are a helpful expert. Generate {count} different versions of the following question to retrieve relevant documents from a knowledge base. Each version should capture the same intent but use different wording or perspective.

Original question: {query}

Provide the variations as a JSON array of strings."""

CONTEXT_INJECTION_TEMPLATE = """Given the conversation history and current question, rephrase the question to be standalone and include relevant context:

Conversation history:
{history}

Current question: {query}

Rephrased standalone question:"""

_JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


@dataclass
class EnhancedQuery:
    """查询增强结果"""

    original_query: str
    enhanced_query: str
    hyde_document: Optional[str] = None
    query_variants: List[str] = field(default_factory=list)


def parse_query_variants(content: str, count: int) -> List[str]:
    """
    解析模型返回的 JSON 数组（也支持包在代码块中的数组）

    格式不合法时返回空列表
    """
    match = _JSON_ARRAY_PATTERN.search(content or "")
    if not match:
        return []

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []

    if not isinstance(parsed, list):
        return []

    variants = [v.strip() for v in parsed if isinstance(v, str) and v.strip()]
    return variants[:count]


class QueryEnhancer:
    """
    查询增强服务

    llm 为空时所有增强步骤都直接返回原始查询
    """

    def __init__(self, llm: Optional[IChatProvider] = None):
        self.llm = llm
        logger.info(
            f"[QueryEnhancer] 初始化完成: llm={'enabled' if llm else 'disabled'}"
        )

    async def enhance_query_with_context(
        self,
        query: str,
        conversation_history: Sequence[ConversationTurn],
        max_messages: int = 3,
    ) -> str:
        """
        结合对话历史把问题改写为独立问题

        Args:
            query: 当前问题
            conversation_history: 对话历史（按时间顺序）
            max_messages: 使用最近几轮对话

        Returns:
            改写后的问题，失败时返回原问题
        """
        if not conversation_history or max_messages <= 0 or self.llm is None:
            return query

        recent = list(conversation_history)[-max_messages:]
        history_text = "\n".join(f"{turn.sender}: {turn.content}" for turn in recent)
        prompt = CONTEXT_INJECTION_TEMPLATE.format(history=history_text, query=query)

        try:
            reply = await self.llm.complete(prompt, temperature=0.3, max_tokens=150)
            enhanced = reply.strip()
        except Exception as e:
            logger.warning(f"[QueryEnhancer] 上下文注入失败，使用原始查询: {e}")
            return query

        if not enhanced:
            return query

        logger.debug(f"[QueryEnhancer] 上下文注入完成: '{query}' -> '{enhanced}'")
        return enhanced

    async def generate_hyde(self, query: str) -> Optional[str]:
        """
        生成假设性答案（HyDE）

        Returns:
            假设性答案文本，失败时返回 None
        """
        if self.llm is None:
            return None

        prompt = HYDE_PROMPT_TEMPLATE.format(query=query)
        try:
            reply = await self.llm.complete(prompt, temperature=0.7, max_tokens=300)
            document = reply.strip()
        except Exception as e:
            logger.warning(f"[QueryEnhancer] HyDE 生成失败: {e}")
            return None

        logger.debug(f"[QueryEnhancer] HyDE 生成完成: length={len(document)}")
        return document or None

    async def generate_query_variants(self, query: str, count: int = 3) -> List[str]:
        """
        生成查询改写

        Args:
            query: 查询
            count: 改写数量（1-10）

        Returns:
            改写列表，失败或格式不合法时为空
        """
        if self.llm is None:
            return []

        count = max(1, min(10, count))
        prompt = MULTI_QUERY_PROMPT_TEMPLATE.format(count=count, query=query)
        try:
            content = await self.llm.complete(prompt, temperature=0.8, max_tokens=200)
            variants = parse_query_variants(content, count)
        except Exception as e:
            logger.warning(f"[QueryEnhancer] 查询改写失败: {e}")
            return []

        if not variants:
            logger.warning("[QueryEnhancer] 查询改写结果无法解析为 JSON 数组，忽略")
        else:
            logger.debug(f"[QueryEnhancer] 查询改写完成: {variants}")
        return variants

    async def enhance_query(
        self,
        query: str,
        conversation_history: Sequence[ConversationTurn],
        config: RAGConfig,
    ) -> EnhancedQuery:
        """
        完整的查询增强流程：上下文注入 -> HyDE -> 多查询扩展

        Args:
            query: 原始查询
            conversation_history: 对话历史
            config: 本次调用的配置快照

        Returns:
            查询增强结果
        """
        result = EnhancedQuery(
            original_query=query, enhanced_query=query, query_variants=[query]
        )
        if not config.query_enhancement_enabled:
            return result

        if config.use_context_injection and conversation_history:
            result.enhanced_query = await self.enhance_query_with_context(
                query, conversation_history, config.max_context_messages
            )

        if config.use_hyde:
            result.hyde_document = await self.generate_hyde(result.enhanced_query)

        if config.use_multi_query:
            result.query_variants.extend(
                await self.generate_query_variants(
                    result.enhanced_query, config.query_variants
                )
            )

        logger.info(
            f"[QueryEnhancer] 查询增强完成: enhanced='{result.enhanced_query[:80]}', "
            f"hyde={'yes' if result.hyde_document else 'no'}, "
            f"variants={len(result.query_variants)}"
        )
        return result

    @staticmethod
    def get_all_search_queries(enhanced: EnhancedQuery) -> List[str]:
        """
        汇总所有召回查询

        顺序：增强后的查询、HyDE 文档、各个改写；去重并去掉空字符串，
        全部为空时回退到原始查询
        """
        queries: List[str] = [enhanced.enhanced_query]
        if enhanced.hyde_document:
            queries.append(enhanced.hyde_document)
        queries.extend(enhanced.query_variants or [])

        unique = [q for q in dict.fromkeys(q for q in queries if q) if q.strip()]
        if not unique:
            return [enhanced.original_query]
        return unique
