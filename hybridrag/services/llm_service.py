"""
LLM 对话服务

封装 OpenAI Chat Completions API，供查询增强使用
"""

from typing import Optional

from openai import AsyncOpenAI
from loguru import logger

from hybridrag.core.config import settings
from hybridrag.core.exceptions import ProviderError
from hybridrag.services.base import IChatProvider


class LLMService(IChatProvider):
    """
    OpenAI Chat 服务

    单轮提示词调用，返回模型回复文本
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        """
        初始化 OpenAI 客户端

        Args:
            client: 已创建的 AsyncOpenAI 客户端（测试时注入）
            model: 对话模型名称
        """
        if client is None:
            client_params = {"api_key": settings.OPENAI_API_KEY}
            if settings.OPENAI_API_BASE:
                client_params["base_url"] = settings.OPENAI_API_BASE
            client = AsyncOpenAI(**client_params)

        self.client = client
        self.model = model or settings.OPENAI_CHAT_MODEL
        logger.info(f"LLM 服务初始化完成，使用模型: {self.model}")

    async def complete(
        self, prompt: str, temperature: float = 0.7, max_tokens: int = 300
    ) -> str:
        """
        单轮补全

        Args:
            prompt: 提示词
            temperature: 采样温度
            max_tokens: 最大生成 token 数

        Returns:
            模型回复文本（去除首尾空白）

        Raises:
            ProviderError: API 调用失败或返回为空
        """
        try:
            logger.debug(
                f"[LLM] 调用模型: model={self.model}, prompt_length={len(prompt)}, "
                f"temperature={temperature}, max_tokens={max_tokens}"
            )

            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        except Exception as e:
            logger.error(f"[LLM] 调用失败: {e}")
            raise ProviderError(f"Chat completion failed: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            raise ProviderError("Chat completion returned no content")

        return response.choices[0].message.content.strip()
