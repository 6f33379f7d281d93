"""
搜索网关 - 混合检索核心入口

协调查询增强、向量化、并行召回、融合、过滤、平衡和重排的完整流程
"""

import asyncio
import time
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from loguru import logger

from hybridrag.core.config import settings
from hybridrag.core.exceptions import DimensionMismatchError, RetrieverTimeoutError
from hybridrag.rag import rag_logger
from hybridrag.rag.balancing.ensemble import calculate_adaptive_weights
from hybridrag.rag.clients.base import SourceScope
from hybridrag.rag.config_store import InMemoryTenantConfigStore, ITenantConfigStore
from hybridrag.rag.context import truncate_context
from hybridrag.rag.enhancement.query_enhancer import EnhancedQuery, QueryEnhancer
from hybridrag.rag.fusion import create_fusion_service, merge_results
from hybridrag.rag.fusion.weighted_fusion import normalize_lists
from hybridrag.rag.models.candidate import CandidateResult, RetrieverKind, RetrieverResultSet
from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.models.search_context import SearchContext, SearchRequest
from hybridrag.rag.models.search_result import SearchResponse, SearchResultItem
from hybridrag.rag.pipeline import PipelineContext, build_pipeline
from hybridrag.rag.rerank.base import IRerankService
from hybridrag.rag.rerank.service import RerankService
from hybridrag.rag.strategies.base import IRecallStrategy
from hybridrag.services.base import IEmbeddingProvider
from hybridrag.services.tokenizer_service import TokenizerService


class SearchGateway:
    """
    搜索网关

    混合检索系统的主入口，负责：
    1. 读取租户配置快照并合并调用级覆盖项
    2. 查询增强（上下文注入 / HyDE / 多查询）
    3. 创建搜索上下文（批量向量化、分词）
    4. 并行执行多路召回（查询变体 x 来源 x 召回器）
    5. 逐来源融合，再合并多个查询变体
    6. 自适应过滤 -> 来源平衡 -> 重排 -> 分数调整 -> 最终排序
    7. 上下文预算截断，构建返回结果
    """

    def __init__(
        self,
        recall_strategies: List[IRecallStrategy],
        embedding_service: Optional[IEmbeddingProvider] = None,
        tokenizer_service: Optional[TokenizerService] = None,
        query_enhancer: Optional[QueryEnhancer] = None,
        config_store: Optional[ITenantConfigStore] = None,
        rerank_service: Optional[IRerankService] = None,
        retriever_timeout: Optional[float] = None,
    ):
        """
        初始化搜索网关

        Args:
            recall_strategies: 召回策略列表（向量、关键词）
            embedding_service: 向量化服务（为空时只做关键词召回）
            tokenizer_service: 分词服务
            query_enhancer: 查询增强服务（可选）
            config_store: 租户配置存储
            rerank_service: 重排服务
            retriever_timeout: 单路召回超时（秒）
        """
        self.strategies: Dict[RetrieverKind, IRecallStrategy] = {
            s.strategy_name: s for s in recall_strategies
        }
        self.embedding_service = embedding_service
        self.tokenizer_service = tokenizer_service or TokenizerService()
        self.query_enhancer = query_enhancer
        self.config_store = config_store or InMemoryTenantConfigStore()
        self.rerank_service = rerank_service or RerankService(self.tokenizer_service)
        self.retriever_timeout = (
            retriever_timeout
            if retriever_timeout is not None
            else settings.RETRIEVER_TIMEOUT_SECONDS
        )

        logger.info(
            f"SearchGateway 初始化完成: strategies={[k.value for k in self.strategies]}, "
            f"embedding={'enabled' if embedding_service else 'disabled'}, "
            f"enhancer={'enabled' if query_enhancer else 'disabled'}, "
            f"timeout={self.retriever_timeout}s"
        )

    async def search(
        self, request: SearchRequest, now: Optional[datetime] = None
    ) -> SearchResponse:
        """
        执行混合检索

        Args:
            request: 检索请求（构造时已完成参数校验）
            now: 当前时间（邮件时间衰减使用，默认取当前 UTC 时间）

        Returns:
            搜索结果；results 为空是合法结果
        """
        start_time = time.time()

        try:
            # Step 1: 配置快照
            config = await self._load_config(request)
            rag_logger.log_search_start(request.tenant_id, request.query, config)

            # Step 2: 查询增强
            enhanced = await self._enhance_query(request, config)
            queries = QueryEnhancer.get_all_search_queries(enhanced)
            rag_logger.log_query_enhancement(enhanced, queries)

            # Step 3: 搜索上下文
            contexts = await self._create_search_contexts(
                queries, request.tenant_id, config
            )
            lexical_only = not any(c.query_vector for c in contexts)

            # Step 4: 并行召回
            result_sets, timeouts = await self._parallel_recall(
                contexts, request, config, lexical_only
            )

            # Step 5: 融合 + 多查询合并
            fused_sets = self._fuse(result_sets, contexts, config)
            merged = merge_results(fused_sets, config.merge_method)
            rag_logger.log_candidates("融合结果", merged)

            # Step 6: 后处理流水线
            pipeline = build_pipeline(config, self.rerank_service)
            pipeline_context = PipelineContext(
                query=enhanced.enhanced_query, config=config, now=now
            )
            final_results = pipeline.run(merged, pipeline_context)

            # Step 7: 上下文预算
            if config.max_context_tokens is not None:
                final_results = truncate_context(
                    final_results,
                    config.max_context_tokens,
                    config.characters_per_token,
                )
                pipeline_context.stage_counts["context_budget"] = len(final_results)

            took_ms = (time.time() - start_time) * 1000
            response = self._build_search_result(
                request,
                enhanced,
                queries,
                final_results,
                result_sets,
                pipeline_context.stage_counts,
                timeouts,
                lexical_only,
                took_ms,
            )

            rag_logger.log_pipeline_summary(
                request.query, pipeline_context.stage_counts, final_results, took_ms
            )
            return response

        except Exception as e:
            logger.error(f"[SearchGateway] 搜索失败: {e}")
            raise

    async def _load_config(self, request: SearchRequest) -> RAGConfig:
        """读取租户配置并合并调用级覆盖项"""
        tenant_config = await self.config_store.get(request.tenant_id)
        return tenant_config.with_overrides(request.options)

    async def _enhance_query(
        self, request: SearchRequest, config: RAGConfig
    ) -> EnhancedQuery:
        if self.query_enhancer is None:
            return EnhancedQuery(
                original_query=request.query,
                enhanced_query=request.query,
                query_variants=[request.query],
            )
        return await self.query_enhancer.enhance_query(
            request.query, request.conversation_history, config
        )

    async def _create_search_contexts(
        self, queries: List[str], tenant_id: str, config: RAGConfig
    ) -> List[SearchContext]:
        """
        创建搜索上下文

        所有查询变体一次批量向量化；向量化服务失败时降级为纯关键词召回，
        向量维度错误直接向上抛出

        Args:
            queries: 召回查询
            tenant_id: 租户ID
            config: 本次调用的配置快照（BM25 参数）

        Returns:
            每个查询一个搜索上下文
        """
        vectors: List[Optional[List[float]]] = [None] * len(queries)

        if self.embedding_service is not None and RetrieverKind.VECTOR in self.strategies:
            try:
                vectors = list(
                    await self.embedding_service.generate_batch_embeddings(queries)
                )
            except DimensionMismatchError:
                raise
            except Exception as e:
                logger.warning(f"[SearchGateway] 向量化失败，降级为纯关键词召回: {e}")
                vectors = [None] * len(queries)

            expected = getattr(self.embedding_service, "dimension", None)
            for vector in vectors:
                if vector is not None and expected and len(vector) != expected:
                    raise DimensionMismatchError(expected, len(vector))

        contexts = []
        for query, vector in zip(queries, vectors):
            contexts.append(
                SearchContext(
                    query=query,
                    query_vector=vector,
                    tokens=await self.tokenizer_service.analyze(query),
                    tenant_id=tenant_id,
                    bm25_k1=config.bm25_k1,
                    bm25_b=config.bm25_b,
                )
            )

        logger.info(
            f"[SearchGateway] 搜索上下文创建完成: queries={len(contexts)}, "
            f"vectorized={sum(1 for c in contexts if c.query_vector)}"
        )
        return contexts

    async def _parallel_recall(
        self,
        contexts: List[SearchContext],
        request: SearchRequest,
        config: RAGConfig,
        lexical_only: bool,
    ) -> Tuple[List[RetrieverResultSet], int]:
        """
        并行执行多路召回

        每个（查询变体, 来源, 召回器）一个任务，全部并发执行；
        超时的召回路返回空列表

        Returns:
            (各路召回结果, 超时的召回路数量)
        """
        kinds: List[RetrieverKind] = []
        if not lexical_only:
            kinds.append(RetrieverKind.VECTOR)
        if lexical_only or config.hybrid_search_enabled:
            kinds.append(RetrieverKind.LEXICAL)
        kinds = [k for k in kinds if k in self.strategies]

        plan = [
            (context, source, kind)
            for context in contexts
            for source in request.sources
            for kind in kinds
        ]

        logger.info(
            f"[SearchGateway] 开始并行召回: tasks={len(plan)}, "
            f"retrievers={[k.value for k in kinds]}, top_k={config.recall_limit}"
        )

        outcomes = await asyncio.gather(
            *[
                self._recall_with_timeout(
                    self.strategies[kind],
                    context,
                    SourceScope(tenant_id=request.tenant_id, source=source),
                    config.recall_limit,
                )
                for context, source, kind in plan
            ]
        )

        result_sets = []
        timeouts = 0
        for (context, source, kind), (items, timed_out) in zip(plan, outcomes):
            timeouts += int(timed_out)
            result_sets.append(
                RetrieverResultSet(
                    retriever=kind, source=source, query=context.query, items=items
                )
            )

        logger.info(
            f"[SearchGateway] 并行召回完成: "
            f"{[(rs.retriever.value, rs.source.value, len(rs)) for rs in result_sets]}"
        )
        return result_sets, timeouts

    async def _recall_with_timeout(
        self,
        strategy: IRecallStrategy,
        context: SearchContext,
        scope: SourceScope,
        top_k: int,
    ) -> Tuple[List[CandidateResult], bool]:
        try:
            items = await asyncio.wait_for(
                strategy.recall(context, scope, top_k), timeout=self.retriever_timeout
            )
            return items, False
        except asyncio.TimeoutError:
            error = RetrieverTimeoutError(
                strategy.strategy_name.value, scope.source.value, self.retriever_timeout
            )
            logger.warning(f"[SearchGateway] {error}")
            return [], True

    def _fuse(
        self,
        result_sets: List[RetrieverResultSet],
        contexts: List[SearchContext],
        config: RAGConfig,
    ) -> List[List[CandidateResult]]:
        """
        逐（查询变体, 来源）融合向量召回和关键词召回

        加权融合时，每次融合按两路归一化后的分数分布计算自适应权重
        """
        fusion_service = create_fusion_service(config)

        grouped: Dict[Tuple[str, str], Dict[RetrieverKind, List[CandidateResult]]] = {}
        for rs in result_sets:
            grouped.setdefault((rs.query, rs.source.value), {})[rs.retriever] = rs.items

        fused_sets = []
        for (query, _), lists in grouped.items():
            vector_results = lists.get(RetrieverKind.VECTOR, [])
            bm25_results = lists.get(RetrieverKind.LEXICAL, [])

            weights = config.default_weights
            if fusion_service.fusion_method == "weighted":
                vector_norm, bm25_norm = normalize_lists(
                    vector_results, bm25_results, config.normalization_method
                )
                weights = calculate_adaptive_weights(query, vector_norm, bm25_norm, config)

            fused_sets.append(fusion_service.fuse(vector_results, bm25_results, weights))

        logger.debug(
            f"[SearchGateway] 融合完成: groups={len(fused_sets)}, "
            f"method={fusion_service.fusion_method}, queries={len(contexts)}"
        )
        return fused_sets

    def _build_search_result(
        self,
        request: SearchRequest,
        enhanced: EnhancedQuery,
        queries: List[str],
        final_results: List[CandidateResult],
        result_sets: List[RetrieverResultSet],
        stage_counts: Dict[str, int],
        timeouts: int,
        lexical_only: bool,
        took_ms: float,
    ) -> SearchResponse:
        """
        构建搜索结果响应

        Args:
            request: 检索请求
            enhanced: 查询增强结果
            queries: 实际参与召回的查询
            final_results: 最终结果列表
            result_sets: 各路召回结果（用于统计）
            stage_counts: 各阶段剩余数量
            timeouts: 超时的召回路数量
            lexical_only: 是否为纯关键词模式
            took_ms: 耗时（毫秒）

        Returns:
            搜索结果
        """
        result_items = [SearchResultItem.from_candidate(c) for c in final_results]

        recall_stats: Dict[str, object] = {
            "mode": "lexical_only" if lexical_only else "hybrid",
            "queries": len(queries),
            "timeouts": timeouts,
        }
        for kind in RetrieverKind:
            recall_stats[kind.value] = sum(
                len(rs) for rs in result_sets if rs.retriever == kind
            )
        recall_stats.update(stage_counts)

        return SearchResponse(
            query=request.query,
            enhanced_query=enhanced.enhanced_query,
            query_variants=queries,
            results=result_items,
            total=len(result_items),
            took_ms=took_ms,
            recall_stats=recall_stats,
        )
