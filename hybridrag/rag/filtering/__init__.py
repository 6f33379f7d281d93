"""
自适应过滤模块
"""

from hybridrag.rag.filtering.adaptive_filter import AdaptiveFilter

__all__ = ["AdaptiveFilter"]
