"""
命令行演示

    python -m hybridrag CORPUS.json "query" [--tenant TENANT] [--max-results N]

CORPUS.json 格式:
    {
        "tenant_id": "demo",
        "knowledge_base": [{"id": "1", "content": "...", "title": "...", "file_name": "..."}],
        "email": [{"id": "7", "content": "...", "title": "...", "sent_at": "2024-01-01T00:00:00Z"}]
    }

配置了 OPENAI_API_KEY 时会为语料生成向量并启用混合检索，否则只做关键词检索
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List

from loguru import logger

from hybridrag.core.config import settings
from hybridrag.core.exceptions import RAGError
from hybridrag.core.logger import setup_logger
from hybridrag.rag.clients.base import IndexRecord
from hybridrag.rag.clients.memory_index import InMemoryBM25Index, InMemoryVectorIndex
from hybridrag.rag.factory import create_search_gateway
from hybridrag.rag.models.candidate import SourceKind
from hybridrag.rag.models.search_context import SearchRequest
from hybridrag.services.embedding_service import EmbeddingService
from hybridrag.services.tokenizer_service import TokenizerService

RESERVED_FIELDS = ("id", "content", "title", "subject", "embedding")


def load_corpus(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def build_records(corpus: Dict[str, Any], tenant_id: str) -> List[IndexRecord]:
    records = []
    for source in SourceKind:
        for item in corpus.get(source.value, []):
            records.append(
                IndexRecord(
                    id=str(item["id"]),
                    tenant_id=tenant_id,
                    source=source,
                    content=item.get("content", ""),
                    title=item.get("title") or item.get("subject"),
                    metadata={
                        k: v for k, v in item.items() if k not in RESERVED_FIELDS
                    },
                    embedding=item.get("embedding"),
                )
            )
    return records


async def run(args: argparse.Namespace) -> int:
    corpus = load_corpus(args.corpus)
    tenant_id = args.tenant or corpus.get("tenant_id") or "default"
    records = build_records(corpus, tenant_id)

    tokenizer = TokenizerService()
    lexical_index = InMemoryBM25Index(tokenizer=tokenizer, records=records)

    vector_index = None
    if settings.OPENAI_API_KEY:
        missing = [r for r in records if r.embedding is None]
        if missing:
            vectors = await EmbeddingService().generate_batch_embeddings(
                [r.content for r in missing]
            )
            for record, vector in zip(missing, vectors):
                record.embedding = vector
        vector_index = InMemoryVectorIndex(records)

    gateway = create_search_gateway(
        lexical_index, vector_index=vector_index, tokenizer=tokenizer
    )

    options = {"max_results": args.max_results} if args.max_results else None
    response = await gateway.search(
        SearchRequest(query=args.query, tenant_id=tenant_id, options=options)
    )
    print(response.model_dump_json(indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="hybridrag", description="Run one hybrid search over a JSON corpus"
    )
    parser.add_argument("corpus", help="path to the corpus JSON file")
    parser.add_argument("query", help="search query")
    parser.add_argument("--tenant", help="tenant id (defaults to corpus tenant_id)")
    parser.add_argument("--max-results", type=int, help="number of results to return")
    args = parser.parse_args(argv)

    setup_logger()

    try:
        return asyncio.run(run(args))
    except RAGError as e:
        logger.error(f"检索失败: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
