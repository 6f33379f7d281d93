from __future__ import annotations

import unittest

from fakes import make_candidate

from hybridrag.rag.context import ELLIPSIS, estimate_token_count, truncate_context, truncate_text
from hybridrag.rag.models.candidate import SourceKind


class ContextTruncationTestCase(unittest.TestCase):
    def test_top_candidate_truncated(self) -> None:
        top = make_candidate("k1", 0.9, content="a" * 1000, title="Pricing")
        second = make_candidate("e1", 0.5, source=SourceKind.EMAIL, content="short note")

        kept = truncate_context([top, second], max_tokens=10)

        self.assertEqual(len(kept), 1)
        self.assertIs(kept[0], top)
        self.assertLess(len(top.content), 1000)
        self.assertTrue(top.content.endswith(ELLIPSIS))
        self.assertEqual(top.title, "Pricing")
        self.assertEqual(top.source, SourceKind.KNOWLEDGE_BASE)
        self.assertEqual(top.score, 0.9)

    def test_within_budget_untouched(self) -> None:
        candidates = [
            make_candidate("k1", 0.9, content="x" * 40),
            make_candidate("k2", 0.8, content="y" * 40),
        ]
        kept = truncate_context(candidates, max_tokens=20)
        self.assertEqual(len(kept), 2)
        self.assertEqual(kept[0].content, "x" * 40)

    def test_stops_at_first_overflow(self) -> None:
        candidates = [
            make_candidate("k1", 0.9, content="x" * 40),
            make_candidate("k2", 0.8, content="y" * 400),
            make_candidate("k3", 0.7, content="z" * 4),
        ]
        kept = truncate_context(candidates, max_tokens=20)
        self.assertEqual([c.id for c in kept], ["knowledge_base:k1"])

    def test_sentence_boundary(self) -> None:
        text = "x" * 35 + ". " + "y" * 100
        self.assertEqual(truncate_text(text, 10), "x" * 35 + "." + ELLIPSIS)

    def test_no_boundary_hard_cut(self) -> None:
        self.assertEqual(truncate_text("a" * 100, 5), "a" * 20 + ELLIPSIS)

    def test_estimate(self) -> None:
        self.assertEqual(estimate_token_count(""), 0)
        self.assertEqual(estimate_token_count("abcde"), 2)
        self.assertEqual(estimate_token_count("abcdef", characters_per_token=3), 2)


if __name__ == "__main__":
    unittest.main()
