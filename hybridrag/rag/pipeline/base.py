"""
融合后处理流水线

每个阶段都实现 apply(candidates, context) -> candidates，
关闭的阶段直接透传，空输入永远返回空输出
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger

from hybridrag.rag.models.candidate import CandidateResult
from hybridrag.rag.models.rag_config import RAGConfig


@dataclass
class PipelineContext:
    """单次检索调用的流水线上下文"""

    query: str
    config: RAGConfig
    now: Optional[datetime] = None
    stage_counts: Dict[str, int] = field(default_factory=dict)


class PipelineStage(ABC):
    """流水线阶段"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def apply(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        pass


class Pipeline:
    """按固定顺序执行的阶段序列"""

    def __init__(self, stages: List[PipelineStage]):
        self.stages = list(stages)

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def run(
        self, candidates: List[CandidateResult], context: PipelineContext
    ) -> List[CandidateResult]:
        context.stage_counts["fused"] = len(candidates)

        for stage in self.stages:
            before = len(candidates)
            candidates = stage.apply(candidates, context)
            context.stage_counts[stage.name] = len(candidates)
            logger.debug(f"[Pipeline] {stage.name}: {before} -> {len(candidates)}")

        return candidates
