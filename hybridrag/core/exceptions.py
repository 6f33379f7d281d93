"""
异常定义

检索核心的错误分类：
- ValidationError: 输入不合法，在任何检索工作之前拒绝
- ProviderError: 向量化 / LLM 调用失败，由各阶段就地降级，不向外抛出
- DimensionMismatchError: 向量维度错误，致命，直接向上抛出
- RetrieverTimeoutError: 单路召回超时，该路降级为空列表
- ConfigurationError: 配置不合法，在加载配置时校验
"""


class RAGError(Exception):
    """检索核心异常基类"""


class ValidationError(RAGError):
    """查询参数校验失败"""


class ProviderError(RAGError):
    """外部模型服务（Embedding / LLM）调用失败"""


class DimensionMismatchError(RAGError):
    """向量维度与配置不一致"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )


class RetrieverTimeoutError(RAGError):
    """单路召回超时"""

    def __init__(self, retriever: str, source: str, timeout: float):
        self.retriever = retriever
        self.source = source
        self.timeout = timeout
        super().__init__(
            f"{retriever} retriever for source '{source}' timed out after {timeout}s"
        )


class ConfigurationError(RAGError):
    """RAG 配置校验失败"""
