"""
检索流水线结构化日志

RAG_LOG_VERBOSE=true 时输出每条结果的分数历史，否则只输出紧凑摘要
"""

from typing import Dict, List, Optional

from loguru import logger

from hybridrag.core.config import settings
from hybridrag.rag.enhancement.query_enhancer import EnhancedQuery
from hybridrag.rag.models.candidate import CandidateResult, SourceKind
from hybridrag.rag.models.rag_config import RAGConfig


def _is_verbose(verbose: Optional[bool]) -> bool:
    return settings.RAG_LOG_VERBOSE if verbose is None else verbose


def format_score(score: Optional[float]) -> str:
    if score is None:
        return "N/A"
    # BM25 分数无上界，直接显示原值
    if score > 1.0:
        return f"{score:.2f}"
    return f"{round(score * 100)}%"


def log_search_start(tenant_id: str, query: str, config: RAGConfig) -> None:
    logger.info(
        f"[RAG] 检索开始: tenant={tenant_id}, query='{query[:100]}', "
        f"fusion={config.fusion_method}, max_results={config.max_results}, "
        f"kb_threshold={config.knowledge_base_threshold}, "
        f"email_threshold={config.email_threshold}"
    )


def log_query_enhancement(enhanced: EnhancedQuery, queries: List[str]) -> None:
    if enhanced.enhanced_query != enhanced.original_query:
        logger.info(f"[RAG] 查询改写: '{enhanced.enhanced_query[:80]}'")
    if enhanced.hyde_document:
        logger.info(f"[RAG] HyDE 文档: {len(enhanced.hyde_document)} chars")
    logger.info(f"[RAG] 召回查询数: {len(queries)}")


def log_candidates(
    label: str, candidates: List[CandidateResult], verbose: Optional[bool] = None
) -> None:
    emails = sum(1 for c in candidates if c.source == SourceKind.EMAIL)
    logger.info(
        f"[RAG] {label}: total={len(candidates)} "
        f"(email={emails}, kb={len(candidates) - emails})"
    )

    if not _is_verbose(verbose):
        return

    for idx, candidate in enumerate(candidates[:5], start=1):
        trail = " -> ".join(
            f"{e.stage}:{format_score(e.after)}" for e in candidate.score_history
        )
        logger.info(
            f"[RAG]   {idx}. [{candidate.source.value}] {format_score(candidate.score)} "
            f"{(candidate.title or 'Untitled')[:50]} | {trail}"
        )


def log_pipeline_summary(
    query: str,
    stage_counts: Dict[str, int],
    results: List[CandidateResult],
    took_ms: float,
    verbose: Optional[bool] = None,
) -> None:
    counts = ", ".join(f"{name}={count}" for name, count in stage_counts.items())
    logger.info(
        f"[RAG] 检索完成: query='{query[:50]}', {counts}, "
        f"results={len(results)}, took={took_ms:.2f}ms"
    )
    log_candidates("最终结果", results, verbose=verbose)
