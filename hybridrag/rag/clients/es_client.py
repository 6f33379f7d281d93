"""
ElasticSearch 搜索引擎客户端

封装 ElasticSearch BM25 关键词检索操作，每个来源一个索引，支持本地和远程部署
"""

from typing import Any, Dict, List, Mapping, Optional

from elasticsearch import AsyncElasticsearch
from loguru import logger

from hybridrag.core.config import settings
from hybridrag.rag.clients.base import ILexicalIndex, IndexHit, SourceScope
from hybridrag.rag.models.candidate import SourceKind

INDEX_MAPPING = {
    "properties": {
        "tenant_id": {"type": "keyword"},
        "content": {"type": "text", "analyzer": "standard"},
        "title": {"type": "text"},
        "file_name": {"type": "keyword"},
        "chunk_index": {"type": "integer"},
        "total_chunks": {"type": "integer"},
        "sender_name": {"type": "keyword"},
        "sender_email": {"type": "keyword"},
        "sent_at": {"type": "date"},
    }
}


class ElasticsearchLexicalIndex(ILexicalIndex):
    """
    ElasticSearch 关键词索引

    content 字段上的 match 查询（ES 默认 BM25 打分），按 tenant_id 过滤
    """

    def __init__(
        self,
        client: Optional[AsyncElasticsearch] = None,
        index_names: Optional[Mapping[SourceKind, str]] = None,
        k1: float = 1.5,
        b: float = 0.75,
    ):
        """
        初始化 ES 客户端

        Args:
            client: 已创建的 AsyncElasticsearch 客户端（测试时注入）
            index_names: 来源 -> 索引名称
            k1: 建索引时写入的 BM25 k1
            b: 建索引时写入的 BM25 b
        """
        self.k1 = k1
        self.b = b
        self.index_names = dict(
            index_names
            or {
                SourceKind.KNOWLEDGE_BASE: settings.ES_KB_INDEX,
                SourceKind.EMAIL: settings.ES_EMAIL_INDEX,
            }
        )
        self.client = client or self._create_client()

    @property
    def index_settings(self) -> Dict[str, Any]:
        """索引级 BM25 相似度设置"""
        return {
            "similarity": {"default": {"type": "BM25", "k1": self.k1, "b": self.b}}
        }

    def _create_client(self) -> AsyncElasticsearch:
        """
        创建 ES 客户端连接

        根据配置自动适配本地/远程部署，支持 HTTPS 和基础认证
        """
        try:
            es_config: Dict[str, Any] = {
                "hosts": [
                    f"{settings.ES_SCHEME}://{settings.ES_HOST}:{settings.ES_PORT}"
                ]
            }

            if settings.ES_USERNAME and settings.ES_PASSWORD:
                es_config["basic_auth"] = (settings.ES_USERNAME, settings.ES_PASSWORD)
                logger.info(f"连接 ES 使用认证: user={settings.ES_USERNAME}")

            if settings.ES_SCHEME == "https":
                es_config["verify_certs"] = True
                logger.info("连接 ES 启用 HTTPS")

            client = AsyncElasticsearch(**es_config)
            logger.info(
                f"成功创建 ES 客户端: {settings.ES_SCHEME}://{settings.ES_HOST}:{settings.ES_PORT}"
            )
            return client

        except Exception as e:
            logger.error(f"创建 ES 客户端失败: {e}")
            raise

    async def search(
        self,
        query: str,
        scope: SourceScope,
        top_k: int,
        k1: Optional[float] = None,
        b: Optional[float] = None,
    ) -> List[IndexHit]:
        """
        BM25 关键词检索

        ES 的 BM25 参数是索引级设置，调用级的 k1 / b 与建索引时不同时只记录日志

        Args:
            query: 查询文本
            scope: 检索范围（租户过滤 + 来源索引）
            top_k: 返回结果数量
            k1: 本次调用的 BM25 k1
            b: 本次调用的 BM25 b

        Returns:
            命中列表，score 为 BM25 分数
        """
        index_name = self.index_names.get(scope.source)
        if index_name is None:
            logger.warning(f"[ES] 来源 {scope.source.value} 没有配置索引，跳过")
            return []

        if (k1 is not None and k1 != self.k1) or (b is not None and b != self.b):
            logger.debug(
                f"[ES] 索引 {index_name} 使用索引级 BM25 参数 k1={self.k1}, b={self.b}，"
                f"忽略调用级 k1={k1}, b={b}"
            )

        try:
            logger.debug(
                f"[ES] 执行 BM25 检索: index={index_name}, query='{query}', top_k={top_k}"
            )

            response = await self.client.search(
                index=index_name,
                query={
                    "bool": {
                        "must": [
                            {"match": {"content": {"query": query, "operator": "or"}}}
                        ],
                        "filter": [{"term": {"tenant_id": scope.tenant_id}}],
                    }
                },
                size=top_k,
            )

            hits = []
            for hit in response["hits"]["hits"]:
                source = dict(hit.get("_source") or {})
                content = source.pop("content", "") or ""
                title = source.pop("title", None)
                source.pop("tenant_id", None)
                hits.append(
                    IndexHit(
                        record_id=str(hit["_id"]),
                        score=float(hit["_score"] or 0.0),
                        content=content,
                        title=title,
                        metadata=source,
                    )
                )

            logger.info(f"[ES] BM25 检索完成，返回 {len(hits)} 条结果")
            return hits

        except Exception as e:
            logger.error(f"[ES] BM25 检索失败: {e}")
            raise

    async def create_index_if_not_exists(self, source: SourceKind) -> None:
        """
        创建来源索引（如果不存在）

        Args:
            source: 知识来源
        """
        index_name = self.index_names[source]

        try:
            exists = await self.client.indices.exists(index=index_name)
            if not exists:
                await self.client.indices.create(
                    index=index_name,
                    settings=self.index_settings,
                    mappings=INDEX_MAPPING,
                )
                logger.info(f"成功创建 ES 索引: {index_name}")
            else:
                logger.debug(f"ES 索引已存在: {index_name}")

        except Exception as e:
            logger.error(f"创建 ES 索引失败: {e}")
            raise

    async def close(self):
        """关闭连接"""
        try:
            if self.client:
                await self.client.close()
                logger.info("ES 连接已关闭")
        except Exception as e:
            logger.warning(f"关闭 ES 连接时出错: {e}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
