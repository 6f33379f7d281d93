"""
集成平衡模块
"""

from hybridrag.rag.balancing.ensemble import (
    balance_sources,
    calculate_adaptive_weights,
    classify_query_type,
)

__all__ = ["balance_sources", "calculate_adaptive_weights", "classify_query_type"]
