"""
租户 RAG 配置存储

存储每个租户的覆盖项，读取时合并到系统默认值上，得到不可变的配置快照
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from hybridrag.rag.models.rag_config import RAGConfig


class ITenantConfigStore(ABC):
    """租户配置存储接口"""

    @abstractmethod
    async def get(self, tenant_id: str) -> RAGConfig:
        """
        读取租户配置快照

        Args:
            tenant_id: 租户ID

        Returns:
            合并了租户覆盖项的配置（没有覆盖项时为系统默认值）
        """
        pass


class InMemoryTenantConfigStore(ITenantConfigStore):
    """内存租户配置存储"""

    def __init__(self, defaults: Optional[RAGConfig] = None):
        self.defaults = defaults or RAGConfig()
        self._overrides: Dict[str, Dict[str, Any]] = {}
        self._snapshots: Dict[str, RAGConfig] = {}

    def set_overrides(self, tenant_id: str, overrides: Mapping[str, Any]) -> RAGConfig:
        """
        写入租户覆盖项

        写入前完成校验，非法配置抛出 ConfigurationError 且不会覆盖已有配置
        """
        snapshot = self.defaults.with_overrides(overrides)
        self._overrides[tenant_id] = dict(overrides)
        self._snapshots[tenant_id] = snapshot
        logger.info(
            f"[TenantConfig] 更新租户配置: tenant={tenant_id}, keys={sorted(overrides)}"
        )
        return snapshot

    def clear(self, tenant_id: str) -> None:
        self._overrides.pop(tenant_id, None)
        self._snapshots.pop(tenant_id, None)

    async def get(self, tenant_id: str) -> RAGConfig:
        return self._snapshots.get(tenant_id, self.defaults)
