"""
重排服务模块

多样性过滤、MMR、语义加权和邮件时间衰减
"""

from hybridrag.rag.rerank.base import IRerankService
from hybridrag.rag.rerank.service import RerankService

__all__ = ["IRerankService", "RerankService"]
