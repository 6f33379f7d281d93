"""
分数归一化

- min-max: (s - min) / (max - min)
- z-score: sigmoid((s - mean) / std)，把无界分数压到 (0, 1)，对离群值更稳健
- none: 原样返回

只有一个分数或分数全部相同时，统一归一化为 1.0
"""

import math
from typing import List, Sequence, Tuple

NORMALIZATION_METHODS = ("robust", "min-max", "z-score", "none")


def mean_and_std(scores: Sequence[float]) -> Tuple[float, float]:
    """总体均值与标准差"""
    if not scores:
        return 0.0, 0.0
    mean = sum(scores) / len(scores)
    variance = sum((s - mean) ** 2 for s in scores) / len(scores)
    return mean, math.sqrt(variance)


def sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def normalize_scores(scores: Sequence[float], method: str = "min-max") -> List[float]:
    """
    归一化一组分数

    Args:
        scores: 原始分数（同一路召回）
        method: min-max | z-score | none

    Returns:
        与输入顺序一致的归一化分数
    """
    if not scores:
        return []

    if method == "none":
        return [float(s) for s in scores]

    if len(scores) == 1:
        return [1.0]

    if method == "min-max":
        low, high = min(scores), max(scores)
        spread = high - low
        if spread == 0:
            return [1.0] * len(scores)
        return [(s - low) / spread for s in scores]

    if method == "z-score":
        mean, std = mean_and_std(scores)
        if std == 0:
            return [1.0] * len(scores)
        return [sigmoid((s - mean) / std) for s in scores]

    raise ValueError(f"Unknown normalization method: {method}")
