"""
Milvus 向量数据库客户端

封装 Milvus 向量检索操作，每个来源一个集合，支持本地和远程部署
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional

from pymilvus import connections, Collection
from loguru import logger

from hybridrag.core.config import settings
from hybridrag.rag.clients.base import IndexHit, IVectorIndex, SourceScope
from hybridrag.rag.models.candidate import SourceKind

OUTPUT_FIELDS = [
    "content",
    "title",
    "file_name",
    "chunk_index",
    "total_chunks",
    "sender_name",
    "sender_email",
    "sent_at",
]


class MilvusVectorIndex(IVectorIndex):
    """
    Milvus 向量索引

    使用 COSINE 度量，distance 即余弦相似度（越大越相似）。
    pymilvus 为同步 SDK，检索调用放到工作线程中执行。
    """

    def __init__(
        self,
        collection_names: Optional[Mapping[SourceKind, str]] = None,
        connect_alias: str = "default",
        collections: Optional[Mapping[SourceKind, Any]] = None,
    ):
        """
        初始化 Milvus 客户端

        Args:
            collection_names: 来源 -> 集合名称
            connect_alias: 连接别名
            collections: 已加载的集合对象（测试时注入，不再建立连接）
        """
        self.collection_names = dict(
            collection_names
            or {
                SourceKind.KNOWLEDGE_BASE: settings.MILVUS_KB_COLLECTION,
                SourceKind.EMAIL: settings.MILVUS_EMAIL_COLLECTION,
            }
        )
        self.connect_alias = connect_alias

        if collections is not None:
            self.collections: Dict[SourceKind, Any] = dict(collections)
        else:
            self.collections = {}
            self._connect()

    def _connect(self):
        """
        连接到 Milvus 并加载各来源集合

        根据配置自动适配本地/远程部署，支持认证和TLS
        """
        try:
            # 构建连接参数
            connect_params = {
                "alias": self.connect_alias,
                "host": settings.MILVUS_HOST,
                "port": str(settings.MILVUS_PORT),
            }

            if settings.MILVUS_USER and settings.MILVUS_PASSWORD:
                connect_params["user"] = settings.MILVUS_USER
                connect_params["password"] = settings.MILVUS_PASSWORD
                logger.info(f"连接 Milvus 使用认证: user={settings.MILVUS_USER}")

            if settings.MILVUS_SECURE:
                connect_params["secure"] = True
                logger.info("连接 Milvus 启用 TLS 加密")

            connections.connect(**connect_params)
            logger.info(
                f"成功连接到 Milvus: {settings.MILVUS_HOST}:{settings.MILVUS_PORT}"
            )

            for source, name in self.collection_names.items():
                collection = Collection(name, using=self.connect_alias)
                collection.load()
                self.collections[source] = collection
                logger.info(f"成功加载 Milvus 集合: {name} ({source.value})")

        except Exception as e:
            logger.error(f"连接 Milvus 失败: {e}")
            raise

    async def search(
        self, embedding: List[float], scope: SourceScope, top_k: int
    ) -> List[IndexHit]:
        """
        向量检索

        Args:
            embedding: 查询向量
            scope: 检索范围（租户过滤 + 来源集合）
            top_k: 返回结果数量

        Returns:
            命中列表，score 为余弦相似度
        """
        collection = self.collections.get(scope.source)
        if collection is None:
            logger.warning(f"[Milvus] 来源 {scope.source.value} 没有配置集合，跳过")
            return []

        try:
            logger.debug(
                f"[Milvus] 执行向量检索: source={scope.source.value}, "
                f"vector_dim={len(embedding)}, top_k={top_k}"
            )

            search_params = {"metric_type": "COSINE", "params": {"nprobe": 10}}

            results = await asyncio.to_thread(
                collection.search,
                data=[embedding],
                anns_field="embedding",
                param=search_params,
                limit=top_k,
                expr=f'tenant_id == "{_escape(scope.tenant_id)}"',
                output_fields=OUTPUT_FIELDS,
            )

            hits = []
            for hit in results[0]:
                entity = hit.entity
                metadata = {
                    name: entity.get(name)
                    for name in OUTPUT_FIELDS
                    if name not in ("content", "title") and entity.get(name) is not None
                }
                hits.append(
                    IndexHit(
                        record_id=str(hit.id),
                        score=float(hit.distance),
                        content=entity.get("content") or "",
                        title=entity.get("title"),
                        metadata=metadata,
                    )
                )

            logger.info(f"[Milvus] 向量检索完成，返回 {len(hits)} 条结果")
            return hits

        except Exception as e:
            logger.error(f"[Milvus] 向量检索失败: {e}")
            raise

    def close(self):
        """关闭连接"""
        try:
            connections.disconnect(self.connect_alias)
            logger.info("Milvus 连接已关闭")
        except Exception as e:
            logger.warning(f"关闭 Milvus 连接时出错: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
