"""
融合后处理流水线模块
"""

from hybridrag.rag.pipeline.base import Pipeline, PipelineContext, PipelineStage
from hybridrag.rag.pipeline.builder import build_pipeline

__all__ = ["Pipeline", "PipelineContext", "PipelineStage", "build_pipeline"]
