from __future__ import annotations

import asyncio
import math
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from hybridrag.rag.clients import (
    IndexRecord,
    InMemoryBM25Index,
    InMemoryVectorIndex,
    SourceScope,
)
from hybridrag.rag.clients.es_client import INDEX_MAPPING, ElasticsearchLexicalIndex
from hybridrag.rag.clients.memory_index import bm25_term_score, cosine_similarity
from hybridrag.rag.clients.milvus_client import MilvusVectorIndex
from hybridrag.rag.models.candidate import SourceKind

KB = SourceScope(tenant_id="acme", source=SourceKind.KNOWLEDGE_BASE)
EMAIL = SourceScope(tenant_id="acme", source=SourceKind.EMAIL)


def _record(record_id: str, content: str, tenant: str = "acme", embedding=None, **meta):
    return IndexRecord(
        id=record_id,
        tenant_id=tenant,
        source=SourceKind.KNOWLEDGE_BASE,
        content=content,
        metadata=meta,
        embedding=embedding,
    )


class CosineTestCase(unittest.TestCase):
    def test_values(self) -> None:
        self.assertAlmostEqual(cosine_similarity([1.0, 0.0], [2.0, 0.0]), 1.0)
        self.assertAlmostEqual(cosine_similarity([1.0, 0.0], [0.0, 1.0]), 0.0)
        self.assertEqual(cosine_similarity([0.0, 0.0], [1.0, 1.0]), 0.0)

    def test_length_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            cosine_similarity([1.0], [1.0, 0.0])


class BM25TestCase(unittest.TestCase):
    def test_term_score(self) -> None:
        # N=2, n=1, tf=1, dl == avgdl
        self.assertAlmostEqual(bm25_term_score(1, 5, 5.0, 2, 1), math.log(2))
        self.assertEqual(bm25_term_score(0, 5, 5.0, 2, 1), 0.0)

    def test_ranking_and_scope(self) -> None:
        index = InMemoryBM25Index(
            records=[
                _record("1", "Consulting pricing starts at 200 per hour."),
                _record("2", "Office hours and holiday schedule."),
                _record("3", "Consulting engagements and consulting pricing tiers."),
                _record("4", "Consulting pricing for another tenant.", tenant="globex"),
            ]
        )

        hits = asyncio.run(index.search("consulting pricing", KB, top_k=10))

        self.assertEqual({h.record_id for h in hits}, {"1", "3"})
        self.assertTrue(all(h.score > 0 for h in hits))
        self.assertEqual(hits, sorted(hits, key=lambda h: h.score, reverse=True))

    def test_no_match(self) -> None:
        index = InMemoryBM25Index(records=[_record("1", "holiday schedule")])
        self.assertEqual(asyncio.run(index.search("pricing", KB, top_k=5)), [])
        self.assertEqual(asyncio.run(index.search("pricing", EMAIL, top_k=5)), [])
        self.assertEqual(asyncio.run(index.search("a an the", KB, top_k=5)), [])

    def test_top_k(self) -> None:
        index = InMemoryBM25Index(
            records=[_record(str(i), f"pricing document {i}") for i in range(5)]
        )
        self.assertEqual(len(asyncio.run(index.search("pricing", KB, top_k=2))), 2)

    def test_per_call_parameters_change_scores(self) -> None:
        index = InMemoryBM25Index(
            records=[_record("1", "pricing pricing"), _record("2", "holiday schedule")]
        )

        default = asyncio.run(index.search("pricing", KB, top_k=5))[0].score
        explicit = asyncio.run(index.search("pricing", KB, top_k=5, k1=1.5, b=0.75))[0].score
        tuned = asyncio.run(index.search("pricing", KB, top_k=5, k1=0.5))[0].score

        self.assertAlmostEqual(default, explicit)
        # tf=2, dl == avgdl: idf * 2(k1+1)/(2+k1)
        self.assertAlmostEqual(tuned / default, (3.0 / 2.5) / (5.0 / 3.5))
        self.assertLess(tuned, default)


class MemoryVectorIndexTestCase(unittest.TestCase):
    def test_search_orders_by_cosine(self) -> None:
        index = InMemoryVectorIndex(
            [
                _record("near", "n", embedding=[1.0, 0.1], file_name="near.pdf"),
                _record("far", "f", embedding=[0.0, 1.0]),
                _record("other", "o", tenant="globex", embedding=[1.0, 0.0]),
            ]
        )
        hits = asyncio.run(index.search([1.0, 0.0], KB, top_k=5))

        self.assertEqual([h.record_id for h in hits], ["near", "far"])
        self.assertEqual(hits[0].metadata, {"file_name": "near.pdf"})

    def test_record_without_embedding(self) -> None:
        with self.assertRaises(ValueError):
            InMemoryVectorIndex([_record("x", "no vector")])


class ElasticsearchLexicalIndexTestCase(unittest.TestCase):
    def _index(self, response=None):
        client = MagicMock()
        client.search = AsyncMock(return_value=response or {"hits": {"hits": []}})
        client.indices.exists = AsyncMock(return_value=False)
        client.indices.create = AsyncMock()
        client.close = AsyncMock()
        index = ElasticsearchLexicalIndex(
            client=client,
            index_names={SourceKind.KNOWLEDGE_BASE: "kb", SourceKind.EMAIL: "mail"},
        )
        return index, client

    def test_search_maps_hits(self) -> None:
        response = {
            "hits": {
                "hits": [
                    {
                        "_id": "7",
                        "_score": 3.2,
                        "_source": {
                            "content": "Consulting rates",
                            "title": "Re: rates",
                            "tenant_id": "acme",
                            "sender_name": "Bob",
                            "sent_at": "2024-01-01T00:00:00Z",
                        },
                    }
                ]
            }
        }
        index, client = self._index(response)

        hits = asyncio.run(index.search("consulting", EMAIL, top_k=5))

        self.assertEqual(len(hits), 1)
        self.assertEqual(hits[0].record_id, "7")
        self.assertEqual(hits[0].score, 3.2)
        self.assertEqual(hits[0].title, "Re: rates")
        self.assertEqual(
            hits[0].metadata, {"sender_name": "Bob", "sent_at": "2024-01-01T00:00:00Z"}
        )

        kwargs = client.search.call_args.kwargs
        self.assertEqual(kwargs["index"], "mail")
        self.assertEqual(kwargs["size"], 5)
        self.assertEqual(
            kwargs["query"]["bool"]["filter"], [{"term": {"tenant_id": "acme"}}]
        )

    def test_search_error_propagates(self) -> None:
        index, client = self._index()
        client.search.side_effect = RuntimeError("cluster down")
        with self.assertRaises(RuntimeError):
            asyncio.run(index.search("consulting", KB, top_k=5))

    def test_create_index(self) -> None:
        index, client = self._index()
        asyncio.run(index.create_index_if_not_exists(SourceKind.KNOWLEDGE_BASE))
        client.indices.create.assert_awaited_once_with(
            index="kb",
            settings={"similarity": {"default": {"type": "BM25", "k1": 1.5, "b": 0.75}}},
            mappings=INDEX_MAPPING,
        )

    def test_close(self) -> None:
        index, client = self._index()
        asyncio.run(index.close())
        client.close.assert_awaited_once()


class MilvusVectorIndexTestCase(unittest.TestCase):
    def test_search_maps_hits(self) -> None:
        hit = SimpleNamespace(
            id=42,
            distance=0.87,
            entity={
                "content": "Pricing overview",
                "title": "Pricing",
                "file_name": "pricing.pdf",
                "chunk_index": 3,
                "sender_name": None,
            },
        )
        collection = MagicMock()
        collection.search.return_value = [[hit]]
        index = MilvusVectorIndex(collections={SourceKind.KNOWLEDGE_BASE: collection})

        hits = asyncio.run(index.search([0.1, 0.2], KB, top_k=3))

        self.assertEqual(len(hits), 1)
        self.assertEqual(hits[0].record_id, "42")
        self.assertAlmostEqual(hits[0].score, 0.87)
        self.assertEqual(hits[0].content, "Pricing overview")
        self.assertEqual(hits[0].metadata, {"file_name": "pricing.pdf", "chunk_index": 3})

        kwargs = collection.search.call_args.kwargs
        self.assertEqual(kwargs["limit"], 3)
        self.assertEqual(kwargs["expr"], 'tenant_id == "acme"')
        self.assertEqual(kwargs["param"]["metric_type"], "COSINE")

    def test_missing_collection(self) -> None:
        index = MilvusVectorIndex(collections={})
        self.assertEqual(asyncio.run(index.search([0.1], EMAIL, top_k=3)), [])

    def test_tenant_is_escaped(self) -> None:
        collection = MagicMock()
        collection.search.return_value = [[]]
        index = MilvusVectorIndex(collections={SourceKind.KNOWLEDGE_BASE: collection})
        scope = SourceScope(tenant_id='a"b', source=SourceKind.KNOWLEDGE_BASE)

        asyncio.run(index.search([0.1], scope, top_k=1))

        self.assertEqual(collection.search.call_args.kwargs["expr"], 'tenant_id == "a\\"b"')


if __name__ == "__main__":
    unittest.main()
