"""
查询增强模块
"""

from hybridrag.rag.enhancement.query_enhancer import EnhancedQuery, QueryEnhancer

__all__ = ["EnhancedQuery", "QueryEnhancer"]
