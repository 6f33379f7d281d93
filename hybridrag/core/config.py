# 读取 .env 配置
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    RAG_LOG_VERBOSE: bool = False

    # OpenAI（向量化 + 查询增强）
    OPENAI_API_KEY: str = ""
    OPENAI_API_BASE: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    EMBEDDING_DIMENSION: int = 1536

    # 召回后端: "memory" | "milvus" / "memory" | "elasticsearch"
    VECTOR_BACKEND: str = "memory"
    LEXICAL_BACKEND: str = "memory"

    # Milvus
    MILVUS_HOST: str = "localhost"
    MILVUS_PORT: str = "19530"
    MILVUS_USER: str = ""
    MILVUS_PASSWORD: str = ""
    MILVUS_SECURE: bool = False
    MILVUS_KB_COLLECTION: str = "knowledge_base_chunks"
    MILVUS_EMAIL_COLLECTION: str = "email_knowledge"

    # ElasticSearch
    ES_SCHEME: str = "http"
    ES_HOST: str = "localhost"
    ES_PORT: int = 9200
    ES_USERNAME: str = ""
    ES_PASSWORD: str = ""
    ES_KB_INDEX: str = "knowledge_base_chunks"
    ES_EMAIL_INDEX: str = "email_knowledge"

    # 单路召回超时（秒），超时的召回路返回空列表
    RETRIEVER_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"  # 忽略多余的环境变量
    )


settings = Settings()
