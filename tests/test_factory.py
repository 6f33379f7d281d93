from __future__ import annotations

import asyncio
import json
import os
import tempfile
import unittest

from loguru import logger

from hybridrag.__main__ import build_records, load_corpus
from hybridrag.core.config import Settings
from hybridrag.core.exceptions import ConfigurationError
from hybridrag.core.logger import setup_logger
from hybridrag.rag.clients import InMemoryBM25Index, InMemoryVectorIndex
from hybridrag.rag.factory import create_lexical_index, create_search_gateway, create_vector_index
from hybridrag.rag.models.candidate import RetrieverKind, SourceKind
from hybridrag.rag.models.rag_config import RAGConfig
from hybridrag.rag.models.search_context import SearchRequest

CORPUS = {
    "tenant_id": "demo",
    "knowledge_base": [
        {
            "id": 1,
            "content": "Consulting pricing starts at 200 per hour.",
            "title": "Pricing",
            "file_name": "pricing.pdf",
        }
    ],
    "email": [
        {
            "id": "7",
            "content": "Can you send the consulting pricing sheet?",
            "subject": "Pricing sheet",
            "sender_name": "Dana",
            "sent_at": "2024-01-01T00:00:00Z",
        }
    ],
}


def _settings(**kwargs) -> Settings:
    kwargs.setdefault("OPENAI_API_KEY", "")
    return Settings(_env_file=None, **kwargs)


class FactoryTestCase(unittest.TestCase):
    def test_memory_backends(self) -> None:
        self.assertIsInstance(create_vector_index(_settings()), InMemoryVectorIndex)
        self.assertIsInstance(create_lexical_index(_settings()), InMemoryBM25Index)

    def test_lexical_index_takes_bm25_defaults(self) -> None:
        index = create_lexical_index(
            _settings(), rag_config=RAGConfig(bm25_k1=1.2, bm25_b=0.5)
        )
        self.assertEqual((index.k1, index.b), (1.2, 0.5))

    def test_unknown_backend(self) -> None:
        with self.assertRaises(ConfigurationError):
            create_vector_index(_settings(VECTOR_BACKEND="faiss"))
        with self.assertRaises(ConfigurationError):
            create_lexical_index(_settings(LEXICAL_BACKEND="solr"))

    def test_gateway_without_api_key_is_lexical_only(self) -> None:
        gateway = create_search_gateway(
            InMemoryBM25Index(),
            vector_index=InMemoryVectorIndex(),
            config=_settings(RETRIEVER_TIMEOUT_SECONDS=1.5),
        )
        self.assertEqual(list(gateway.strategies), [RetrieverKind.LEXICAL])
        self.assertIsNone(gateway.embedding_service)
        self.assertIsNone(gateway.query_enhancer)
        self.assertEqual(gateway.retriever_timeout, 1.5)


class DemoCorpusTestCase(unittest.TestCase):
    def test_load_and_search(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "corpus.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(CORPUS, f)
            corpus = load_corpus(path)

        records = build_records(corpus, "demo")
        self.assertEqual([r.id for r in records], ["1", "7"])
        self.assertEqual(records[0].metadata, {"file_name": "pricing.pdf"})
        self.assertEqual(records[1].title, "Pricing sheet")
        self.assertEqual(records[1].source, SourceKind.EMAIL)

        gateway = create_search_gateway(InMemoryBM25Index(records=records), config=_settings())
        response = asyncio.run(
            gateway.search(SearchRequest(query="consulting pricing", tenant_id="demo"))
        )
        self.assertEqual(response.recall_stats["mode"], "lexical_only")
        self.assertEqual(response.results[0].id, "knowledge_base:1")


class LoggerSetupTestCase(unittest.TestCase):
    def test_console_and_file_sinks(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            handler_ids = setup_logger(level="INFO", log_file=os.path.join(tmp, "rag.log"))
            self.assertEqual(len(handler_ids), 2)
            for handler_id in handler_ids:
                logger.remove(handler_id)

    def test_console_only(self) -> None:
        handler_ids = setup_logger(level="WARNING", log_file="")
        self.assertEqual(len(handler_ids), 1)
        logger.remove(handler_ids[0])


if __name__ == "__main__":
    unittest.main()
