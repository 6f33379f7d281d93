"""
召回策略模块

定义召回策略接口和具体实现（向量召回、关键词召回）
"""

from hybridrag.rag.strategies.base import IRecallStrategy
from hybridrag.rag.strategies.vector_strategy import VectorRecallStrategy
from hybridrag.rag.strategies.keyword_strategy import KeywordRecallStrategy

__all__ = ["IRecallStrategy", "VectorRecallStrategy", "KeywordRecallStrategy"]
