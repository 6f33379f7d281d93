from __future__ import annotations

import math
import unittest

from fakes import bm25_candidate, vector_candidate

from hybridrag.core.exceptions import ConfigurationError
from hybridrag.rag.fusion import (
    RRFMergeImpl,
    WeightedFusionImpl,
    create_fusion_service,
    merge_results,
)
from hybridrag.rag.fusion.normalization import normalize_scores, sigmoid
from hybridrag.rag.models.rag_config import FusionWeights, RAGConfig


class NormalizationTestCase(unittest.TestCase):
    def test_empty_and_single(self) -> None:
        self.assertEqual(normalize_scores([], "min-max"), [])
        self.assertEqual(normalize_scores([7.5], "min-max"), [1.0])
        self.assertEqual(normalize_scores([7.5], "z-score"), [1.0])

    def test_identical_scores_normalize_to_one(self) -> None:
        self.assertEqual(normalize_scores([0.4, 0.4, 0.4], "min-max"), [1.0, 1.0, 1.0])
        self.assertEqual(normalize_scores([2.0, 2.0], "z-score"), [1.0, 1.0])

    def test_min_max(self) -> None:
        self.assertEqual(normalize_scores([0.0, 5.0, 10.0], "min-max"), [0.0, 0.5, 1.0])

    def test_z_score_is_bounded_and_symmetric(self) -> None:
        normalized = normalize_scores([2.0, 4.0], "z-score")
        self.assertAlmostEqual(normalized[0], sigmoid(-1.0))
        self.assertAlmostEqual(normalized[1], sigmoid(1.0))
        self.assertAlmostEqual(sum(normalized), 1.0)
        for value in normalize_scores([0.1, 50.0, 3.0, 12.0], "z-score"):
            self.assertTrue(0.0 < value < 1.0)

    def test_none_passes_through(self) -> None:
        self.assertEqual(normalize_scores([3.0, 1.5], "none"), [3.0, 1.5])

    def test_unknown_method(self) -> None:
        with self.assertRaises(ValueError):
            normalize_scores([1.0, 2.0], "softmax")


class RRFFusionTestCase(unittest.TestCase):
    def test_rank_based_scores(self) -> None:
        fusion = RRFMergeImpl(k=60)
        vector = [vector_candidate("a", 0.9), vector_candidate("b", 0.8)]
        bm25 = [bm25_candidate("b", 12.0), bm25_candidate("c", 3.0)]

        results = fusion.fuse(vector, bm25)
        scores = {c.id: c.score for c in results}

        self.assertAlmostEqual(scores["knowledge_base:b"], 1 / 62 + 1 / 61)
        self.assertAlmostEqual(scores["knowledge_base:a"], 1 / 61)
        self.assertAlmostEqual(scores["knowledge_base:c"], 1 / 62)
        self.assertEqual(results[0].id, "knowledge_base:b")

    def test_scores_only_depend_on_ranks(self) -> None:
        fusion = RRFMergeImpl(k=60)
        first = fusion.fuse(
            [vector_candidate("a", 0.9), vector_candidate("b", 0.2)],
            [bm25_candidate("b", 40.0), bm25_candidate("a", 0.5)],
        )
        second = fusion.fuse(
            [vector_candidate("a", 0.51), vector_candidate("b", 0.5)],
            [bm25_candidate("b", 1.1), bm25_candidate("a", 1.0)],
        )
        self.assertEqual(
            [(c.id, c.score) for c in first], [(c.id, c.score) for c in second]
        )

    def test_ties_keep_first_seen_order(self) -> None:
        results = RRFMergeImpl().fuse(
            [vector_candidate("a", 0.9)], [bm25_candidate("z", 5.0)]
        )
        self.assertEqual([c.id for c in results], ["knowledge_base:a", "knowledge_base:z"])

    def test_score_history_records_fusion(self) -> None:
        results = RRFMergeImpl(k=10).fuse([vector_candidate("a", 0.9)], [])
        event = results[0].score_history[-1]
        self.assertEqual(event.stage, "fusion")
        self.assertEqual(event.before, 0.9)
        self.assertEqual(event.detail["ranks"], [1, None])
        self.assertEqual(results[0].fused_score, results[0].score)


class WeightedFusionTestCase(unittest.TestCase):
    def test_missing_list_contributes_zero(self) -> None:
        fusion = WeightedFusionImpl("robust")
        vector = [vector_candidate("a", 0.9), vector_candidate("b", 0.5)]
        bm25 = [bm25_candidate("c", 4.0), bm25_candidate("a", 2.0)]

        results = fusion.fuse(vector, bm25, FusionWeights(0.5, 0.5))
        scores = {c.id: c.score for c in results}

        self.assertAlmostEqual(scores["knowledge_base:a"], 0.45 + 0.5 * sigmoid(-1.0))
        self.assertAlmostEqual(scores["knowledge_base:b"], 0.25)
        self.assertAlmostEqual(scores["knowledge_base:c"], 0.5 * sigmoid(1.0))
        self.assertEqual(
            [c.id for c in results],
            ["knowledge_base:a", "knowledge_base:c", "knowledge_base:b"],
        )

    def test_union_keeps_cosine_similarity(self) -> None:
        vector = [vector_candidate("a", 0.7)]
        bm25 = [bm25_candidate("a", 9.0)]
        results = WeightedFusionImpl().fuse(vector, bm25, FusionWeights(0.6, 0.4))

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].similarity, 0.7)
        self.assertEqual(results[0].bm25_score, 9.0)
        self.assertEqual(results[0].vector_score, 0.7)

    def test_bm25_only_candidate_keeps_converted_similarity(self) -> None:
        results = WeightedFusionImpl().fuse([], [bm25_candidate("x", 3.0)], FusionWeights(0.6, 0.4))
        self.assertAlmostEqual(results[0].similarity, 0.75)
        self.assertAlmostEqual(results[0].score, 0.4)

    def test_unknown_normalization(self) -> None:
        with self.assertRaises(ValueError):
            WeightedFusionImpl("softmax")

    def test_scores_are_finite(self) -> None:
        results = WeightedFusionImpl("min-max").fuse(
            [vector_candidate("a", 0.3), vector_candidate("b", 0.3)],
            [bm25_candidate("a", 0.0)],
            FusionWeights(0.6, 0.4),
        )
        self.assertTrue(all(math.isfinite(c.score) for c in results))


class FusionFactoryTestCase(unittest.TestCase):
    def test_create_by_method(self) -> None:
        rrf = create_fusion_service(RAGConfig(fusion_method="rrf", rrf_k=30))
        self.assertIsInstance(rrf, RRFMergeImpl)
        self.assertEqual(rrf.k, 30)

        weighted = create_fusion_service(RAGConfig(normalization_method="min-max"))
        self.assertIsInstance(weighted, WeightedFusionImpl)
        self.assertEqual(weighted.normalization_method, "min-max")

    def test_rrf_k_must_be_positive(self) -> None:
        with self.assertRaises(ConfigurationError):
            RAGConfig(rrf_k=0)


class MergeResultsTestCase(unittest.TestCase):
    def _sets(self):
        return [
            [vector_candidate("a", 0.7), vector_candidate("b", 0.2)],
            [vector_candidate("a", 0.6, similarity=0.95)],
        ]

    def test_max(self) -> None:
        merged = merge_results(self._sets(), "max")
        self.assertEqual(len(merged), 2)
        self.assertAlmostEqual(merged[0].score, 0.7)
        self.assertEqual(merged[0].similarity, 0.95)

    def test_average(self) -> None:
        merged = merge_results(self._sets(), "average")
        self.assertAlmostEqual(merged[0].score, 0.65)

    def test_sum_is_clamped(self) -> None:
        merged = merge_results(self._sets(), "sum")
        self.assertEqual(merged[0].score, 1.0)
        self.assertEqual(merged[0].score_history[-1].stage, "merge")

    def test_single_occurrence_untouched(self) -> None:
        merged = merge_results(self._sets(), "sum")
        b = next(c for c in merged if c.id == "knowledge_base:b")
        self.assertEqual(b.score, 0.2)
        self.assertEqual(len(b.score_history), 1)

    def test_ties_follow_first_seen(self) -> None:
        merged = merge_results(
            [[vector_candidate("x", 0.5)], [vector_candidate("y", 0.5)]], "max"
        )
        self.assertEqual([c.id for c in merged], ["knowledge_base:x", "knowledge_base:y"])

    def test_unknown_method(self) -> None:
        with self.assertRaises(ValueError):
            merge_results([], "median")


if __name__ == "__main__":
    unittest.main()
