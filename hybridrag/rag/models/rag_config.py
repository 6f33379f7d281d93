"""
RAG 配置快照

每个租户一份只读配置，默认值即系统默认值；每次检索调用开始时取一次快照，
调用级 options 只覆盖本次调用。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from hybridrag.core.exceptions import ConfigurationError
from hybridrag.rag.models.candidate import SourceKind


@dataclass(frozen=True)
class FusionWeights:
    """加权融合权重，vector_weight + bm25_weight == 1"""

    vector_weight: float
    bm25_weight: float


class RAGConfig(BaseModel):
    """租户级 RAG 配置（不可变）"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # 各来源的绝对相似度阈值
    knowledge_base_threshold: float = 0.20
    email_threshold: float = 0.50

    # 混合检索
    hybrid_search_enabled: bool = True
    vector_weight: float = 0.6
    bm25_weight: float = 0.4
    fusion_method: Literal["rrf", "weighted"] = "weighted"
    normalization_method: Literal["robust", "min-max", "z-score", "none"] = "robust"
    rrf_k: int = 60
    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    merge_method: Literal["max", "average", "sum"] = "max"

    # 自适应过滤（先多召回，再按分布过滤）
    internal_search_limit: int = 20
    use_adaptive_filtering: bool = True
    top_score_gap_percent: float = 0.05
    use_normalization: bool = True
    min_std_dev_above_mean: float = 0.5
    min_results_for_normalization: int = 5

    # 集成平衡
    ensemble_balancing_enabled: bool = True
    adaptive_weights_enabled: bool = True
    min_email_results: int = 1
    min_kb_results: int = 1
    max_email_ratio: float = 0.2
    max_kb_ratio: float = 0.8

    # 重排
    reranking_enabled: bool = True
    use_diversity_filter: bool = True
    diversity_threshold: float = 0.85
    use_mmr: bool = False
    mmr_lambda: float = 0.7

    # 语义加权
    semantic_boost_enabled: bool = True
    max_boost: float = 0.05
    min_boost_threshold: float = 0.30
    dynamic_boost_enabled: bool = False

    # 邮件时间衰减
    temporal_decay_enabled: bool = False
    decay_half_life_days: float = 365.0

    # 结果数量与上下文预算
    max_results: int = 5
    max_context_tokens: Optional[int] = None
    characters_per_token: int = 4

    # 查询增强
    query_enhancement_enabled: bool = True
    use_context_injection: bool = True
    use_hyde: bool = False
    use_multi_query: bool = False
    query_variants: int = 3
    max_context_messages: int = 3

    @model_validator(mode="after")
    def _validate_ranges(self) -> "RAGConfig":
        errors: List[str] = []

        unit_fields = [
            "knowledge_base_threshold",
            "email_threshold",
            "vector_weight",
            "bm25_weight",
            "top_score_gap_percent",
            "max_email_ratio",
            "max_kb_ratio",
            "diversity_threshold",
            "mmr_lambda",
            "max_boost",
            "min_boost_threshold",
        ]
        for name in unit_fields:
            value = getattr(self, name)
            if value < 0 or value > 1:
                errors.append(f"{name} must be between 0 and 1")

        if abs(self.vector_weight + self.bm25_weight - 1.0) > 0.01:
            errors.append("vector_weight + bm25_weight must equal 1.0")

        if self.min_std_dev_above_mean < 0:
            errors.append("min_std_dev_above_mean must be non-negative")

        if self.rrf_k <= 0:
            errors.append("rrf_k must be a positive integer")

        if self.bm25_k1 < 0 or self.bm25_b < 0 or self.bm25_b > 1:
            errors.append("bm25_k1 must be non-negative and bm25_b between 0 and 1")

        if self.max_results < 1 or self.max_results > 100:
            errors.append("max_results must be an integer between 1 and 100")

        if self.internal_search_limit < 1:
            errors.append("internal_search_limit must be positive")

        if self.min_email_results < 0 or self.min_kb_results < 0:
            errors.append("min_email_results / min_kb_results must be non-negative")

        if self.query_variants < 1 or self.query_variants > 10:
            errors.append("query_variants must be between 1 and 10")

        if self.max_context_messages < 0:
            errors.append("max_context_messages must be non-negative")

        if self.decay_half_life_days <= 0:
            errors.append("decay_half_life_days must be positive")

        if self.max_context_tokens is not None and self.max_context_tokens < 1:
            errors.append("max_context_tokens must be positive")

        if self.characters_per_token < 1:
            errors.append("characters_per_token must be positive")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )
        return self

    @classmethod
    def build(cls, data: Optional[Mapping[str, Any]] = None) -> "RAGConfig":
        """从字典构建配置，字段类型错误也统一转为 ConfigurationError"""
        try:
            return cls.model_validate(dict(data or {}))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid RAG configuration: {e}") from e

    def with_overrides(self, options: Optional[Mapping[str, Any]]) -> "RAGConfig":
        """合并调用级覆盖项，返回新的快照"""
        if not options:
            return self

        unknown = sorted(set(options) - set(type(self).model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown RAG option(s): {', '.join(unknown)}")

        merged: Dict[str, Any] = self.model_dump()
        merged.update(options)
        return type(self).build(merged)

    @property
    def recall_limit(self) -> int:
        """每路召回的数量：至少多召回 max_results 条"""
        return max(self.internal_search_limit, self.max_results)

    @property
    def default_weights(self) -> FusionWeights:
        return FusionWeights(
            vector_weight=self.vector_weight, bm25_weight=self.bm25_weight
        )

    def threshold_for(self, source: SourceKind) -> float:
        """按来源取绝对阈值"""
        if source == SourceKind.EMAIL:
            return self.email_threshold
        return self.knowledge_base_threshold
