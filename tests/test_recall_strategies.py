from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timezone

from fakes import RaisingIndex, StaticLexicalIndex, StaticVectorIndex

from hybridrag.core.exceptions import DimensionMismatchError
from hybridrag.rag.clients.base import IndexHit, SourceScope
from hybridrag.rag.models.candidate import DocumentProvenance, EmailProvenance, SourceKind
from hybridrag.rag.models.search_context import SearchContext
from hybridrag.rag.strategies import KeywordRecallStrategy, VectorRecallStrategy
from hybridrag.rag.strategies.base import parse_timestamp

KB = SourceScope(tenant_id="acme", source=SourceKind.KNOWLEDGE_BASE)
EMAIL = SourceScope(tenant_id="acme", source=SourceKind.EMAIL)


def _context(vector=None, tokens=None) -> SearchContext:
    return SearchContext(
        query="pricing for consulting",
        query_vector=vector,
        tokens=tokens if tokens is not None else ["pricing", "consulting"],
        tenant_id="acme",
    )


class VectorRecallTestCase(unittest.TestCase):
    def test_builds_prefixed_candidates(self) -> None:
        index = StaticVectorIndex(
            {
                SourceKind.KNOWLEDGE_BASE: [
                    IndexHit(
                        record_id="17",
                        score=0.92,
                        content="Consulting is billed hourly.",
                        metadata={"file_name": "pricing.pdf", "chunk_index": 2},
                    )
                ]
            }
        )
        results = asyncio.run(VectorRecallStrategy(index).recall(_context([1.0]), KB, 5))

        self.assertEqual(len(results), 1)
        candidate = results[0]
        self.assertEqual(candidate.id, "knowledge_base:17")
        self.assertEqual(candidate.title, "pricing.pdf")
        self.assertEqual(candidate.similarity, 0.92)
        self.assertEqual(candidate.vector_score, 0.92)
        self.assertIsInstance(candidate.provenance, DocumentProvenance)
        self.assertEqual(candidate.score_history[0].stage, "vector_recall")

    def test_no_vector_skips(self) -> None:
        index = StaticVectorIndex()
        self.assertEqual(asyncio.run(VectorRecallStrategy(index).recall(_context(), KB)), [])
        self.assertEqual(index.calls, [])

    def test_backend_error_returns_empty(self) -> None:
        strategy = VectorRecallStrategy(RaisingIndex(RuntimeError("milvus down")))
        self.assertEqual(asyncio.run(strategy.recall(_context([1.0]), KB)), [])

    def test_dimension_mismatch_propagates(self) -> None:
        strategy = VectorRecallStrategy(RaisingIndex(DimensionMismatchError(3, 2)))
        with self.assertRaises(DimensionMismatchError):
            asyncio.run(strategy.recall(_context([1.0, 0.0]), KB))

    def test_non_finite_dropped(self) -> None:
        index = StaticVectorIndex(
            {SourceKind.KNOWLEDGE_BASE: [IndexHit(record_id="1", score=float("nan"), content="x")]}
        )
        self.assertEqual(asyncio.run(VectorRecallStrategy(index).recall(_context([1.0]), KB)), [])


class KeywordRecallTestCase(unittest.TestCase):
    def test_email_candidates(self) -> None:
        index = StaticLexicalIndex(
            {
                SourceKind.EMAIL: [
                    IndexHit(
                        record_id="7",
                        score=3.0,
                        content="Consulting rates attached",
                        title="Rates",
                        metadata={"sender_name": "Bob", "sent_at": "2024-01-01T00:00:00Z"},
                    )
                ]
            }
        )
        results = asyncio.run(KeywordRecallStrategy(index).recall(_context(), EMAIL, 5))

        candidate = results[0]
        self.assertEqual(candidate.id, "email:7")
        self.assertEqual(candidate.bm25_score, 3.0)
        self.assertAlmostEqual(candidate.similarity, 0.75)
        self.assertIsInstance(candidate.provenance, EmailProvenance)
        self.assertEqual(
            candidate.sent_at, datetime(2024, 1, 1, tzinfo=timezone.utc)
        )
        self.assertEqual(index.calls[0][0], "pricing for consulting")

    def test_no_tokens_skips(self) -> None:
        index = StaticLexicalIndex()
        result = asyncio.run(KeywordRecallStrategy(index).recall(_context(tokens=[]), KB))
        self.assertEqual(result, [])
        self.assertEqual(index.calls, [])

    def test_backend_error_returns_empty(self) -> None:
        strategy = KeywordRecallStrategy(RaisingIndex(RuntimeError("es down")))
        self.assertEqual(asyncio.run(strategy.recall(_context(), KB)), [])


class ParseTimestampTestCase(unittest.TestCase):
    def test_values(self) -> None:
        self.assertEqual(
            parse_timestamp("2024-03-01T10:00:00Z"),
            datetime(2024, 3, 1, 10, tzinfo=timezone.utc),
        )
        self.assertIsNone(parse_timestamp("yesterday"))
        self.assertIsNone(parse_timestamp(None))
        value = datetime(2024, 1, 1)
        self.assertIs(parse_timestamp(value), value)


if __name__ == "__main__":
    unittest.main()
