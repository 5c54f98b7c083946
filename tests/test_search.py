"""
Unit tests for the beam search engine.

Tests cover:
- Top-k selection order and ties
- Hypothesis extension
- Context commit, completion and ranking
- The two-step A/B/END walkthrough
"""

import math
import sys
import threading
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


# Vocabulary used throughout: <s>=0, A=1, B=2, </s>=3
BOS, A, B, EOS = 0, 1, 2, 3


class TestTopK(unittest.TestCase):
    """Test bounded top-k selection."""

    def test_descending_order(self):
        """Test that the k largest values come back largest first."""
        from src.decoding.search.topk import top_k

        self.assertEqual(top_k([3, 1, 4, 1, 5, 9, 2, 6], 3), [9, 6, 5])

    def test_first_seen_wins_ties(self):
        """Test that equal keys keep their input order."""
        from src.decoding.search.topk import top_k

        items = [("a", 0.5), ("b", 0.7), ("c", 0.5), ("d", 0.5)]
        result = top_k(items, 3, key=lambda item: item[1])

        self.assertEqual([name for name, _ in result], ["b", "a", "c"])

    def test_small_inputs(self):
        """Test k larger than input and non-positive k."""
        from src.decoding.search.topk import top_k

        self.assertEqual(top_k([2, 1], 5), [2, 1])
        self.assertEqual(top_k([2, 1], 0), [])
        self.assertEqual(top_k([], 3), [])

    def test_indices_prefer_lower_token(self):
        """Test that tied probabilities go to the lower token index."""
        from src.decoding.search.topk import top_k_indices

        result = top_k_indices([0.0, 0.5, 0.0, 0.5], 2)

        self.assertEqual(result, [(1, 0.5), (3, 0.5)])

    def test_indices_skip_zero_probability(self):
        """Test that entries at or below the threshold are excluded."""
        from src.decoding.search.topk import top_k_indices

        result = top_k_indices([0.0, 0.2, 0.0, 0.0], 3, min_value=0.0)

        self.assertEqual(result, [(1, 0.2)])


class TestHypothesis(unittest.TestCase):
    """Test hypothesis extension."""

    def test_initial_values(self):
        """Test a fresh hypothesis."""
        from src.decoding.search import Hypothesis, SequenceState

        hyp = Hypothesis(state=SequenceState(tokens=(BOS,)))

        self.assertEqual(hyp.log_probability, 0.0)
        self.assertFalse(hyp.is_completed)
        self.assertEqual(hyp.length, 0)
        self.assertEqual(hyp.state.last_token, BOS)

    def test_extend(self):
        """Test that extension accumulates score, length and tokens."""
        from src.decoding.search import Hypothesis, SequenceState, extend

        parent = Hypothesis(state=SequenceState(tokens=(BOS,), step_state="h0"))
        child = extend(parent, A, "h1", math.log(0.6), False)

        self.assertAlmostEqual(child.log_probability, math.log(0.6))
        self.assertEqual(child.length, 1)
        self.assertEqual(child.state.tokens, (BOS, A))
        self.assertEqual(child.state.step_state, "h1")
        self.assertFalse(child.is_completed)

        # Parent untouched
        self.assertEqual(parent.state.tokens, (BOS,))
        self.assertEqual(parent.length, 0)

    def test_extension_never_increases_score(self):
        """Test that valid steps do not raise the log-probability."""
        from src.decoding.search import Hypothesis, SequenceState

        hyp = Hypothesis(state=SequenceState(tokens=(BOS,)))
        for prob in (0.9, 1.0, 0.01):
            child = hyp.extended(A, None, math.log(prob), False)
            self.assertLessEqual(child.log_probability, hyp.log_probability)
            hyp = child

    def test_completed_is_frozen(self):
        """Test that extending a completed hypothesis returns it unchanged."""
        from src.decoding.search import Hypothesis, SequenceState

        hyp = Hypothesis(state=SequenceState(tokens=(BOS,)))
        done = hyp.extended(EOS, None, math.log(0.5), True)

        self.assertTrue(done.is_completed)
        self.assertIs(done.extended(A, "other", math.log(0.1), False), done)
        self.assertEqual(done.extended(A, "other", math.log(0.1), False), done)

    def test_plain_state(self):
        """Test that states without appending are replaced outright."""
        from src.decoding.search import Hypothesis

        hyp = Hypothesis(state=("x",))
        child = hyp.extended(A, ("x", "y"), -1.0, False)

        self.assertEqual(child.state, ("x", "y"))
        self.assertEqual(child.normalized_score, -1.0)


class TestBeamSearchContext(unittest.TestCase):
    """Test the beam context."""

    def _context(self, beam_width=2, max_length=3):
        from src.decoding.search import BeamSearchContext, SequenceState

        return BeamSearchContext.create(beam_width, max_length, SequenceState(tokens=(BOS,)))

    def test_initial_beam(self):
        """Test that the context starts with one seed hypothesis."""
        context = self._context()

        self.assertEqual(len(context.hypotheses), 1)
        self.assertFalse(context.is_completed())

    def test_invalid_arguments(self):
        """Test that non-positive sizes are rejected."""
        from src.decoding.search import BeamSearchContext

        with self.assertRaises(ValueError):
            BeamSearchContext(0, 3, None)
        with self.assertRaises(ValueError):
            BeamSearchContext(2, 0, None)

    def test_end_iteration_prunes(self):
        """Test that only the best beam_width proposals survive."""
        context = self._context(beam_width=2)
        seed = context.hypotheses[0]

        for token, prob in ((A, 0.2), (B, 0.5), (EOS, 0.3)):
            context.add(seed.extended(token, None, math.log(prob), token == EOS))
        self.assertEqual(context.num_pending, 3)

        context.end_iteration()

        self.assertEqual([h.state.last_token for h in context.hypotheses], [B, EOS])
        self.assertEqual(context.num_pending, 0)

    def test_ties_keep_submission_order(self):
        """Test that equal scores are ranked by submission order."""
        context = self._context(beam_width=2)
        seed = context.hypotheses[0]

        for token in (B, A, EOS):
            context.add(seed.extended(token, None, math.log(0.25), False))
        context.end_iteration()

        self.assertEqual([h.state.last_token for h in context.hypotheses], [B, A])

    def test_empty_iteration(self):
        """Test that committing without proposals empties the beam."""
        context = self._context()

        context.end_iteration()

        self.assertEqual(context.hypotheses, [])
        self.assertEqual(context.best_hypotheses(), [])
        self.assertTrue(context.is_completed())

    def test_completion_by_length(self):
        """Test that reaching max_length completes the context."""
        context = self._context(beam_width=1, max_length=2)

        for _ in range(2):
            self.assertFalse(context.is_completed())
            hyp = context.hypotheses[0]
            context.add(hyp.extended(A, None, math.log(0.5), False))
            context.end_iteration()

        self.assertTrue(context.is_completed())
        self.assertFalse(context.hypotheses[0].is_completed)

    def test_best_hypotheses_sorted_and_stable(self):
        """Test ranking order and repeatability."""
        context = self._context(beam_width=3)
        seed = context.hypotheses[0]

        for token, prob in ((A, 0.1), (B, 0.6), (EOS, 0.3)):
            context.add(seed.extended(token, None, math.log(prob), False))
        context.end_iteration()

        best = context.best_hypotheses()
        scores = [h.log_probability for h in best]

        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertEqual(best, context.best_hypotheses())

    def test_concurrent_add(self):
        """Test that adds from several threads are all kept."""
        context = self._context(beam_width=4)
        seed = context.hypotheses[0]

        def worker():
            for _ in range(200):
                context.add(seed.extended(A, None, -1.0, False))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(context.num_pending, 800)
        context.end_iteration()
        self.assertEqual(len(context), 4)


class TestBeamSearchWalkthrough(unittest.TestCase):
    """Drive the context by hand with fixed distributions."""

    DISTRIBUTIONS = {
        (): [0.0, 0.6, 0.3, 0.1],
        (A,): [0.0, 0.0, 0.1, 0.9],
        (B,): [0.0, 0.5, 0.0, 0.5],
    }

    def _distribution(self, tokens):
        prefix = tuple(tokens[1:])
        if prefix in self.DISTRIBUTIONS:
            return self.DISTRIBUTIONS[prefix]
        return self.DISTRIBUTIONS[(prefix[-1],)]

    def _iterate(self, context, beam_width):
        from src.decoding.search import top_k_indices

        for hyp in context.hypotheses:
            if hyp.is_completed:
                context.add(hyp)
                continue
            probs = self._distribution(hyp.state.tokens)
            for token, prob in top_k_indices(probs, beam_width, 0.0):
                context.add(hyp.extended(token, None, math.log(prob), token == EOS))
        context.end_iteration()

    def test_walkthrough(self):
        """Test the beam after each iteration."""
        from src.decoding.search import BeamSearchContext, SequenceState

        context = BeamSearchContext.create(2, 3, SequenceState(tokens=(BOS,)))

        self._iterate(context, 2)
        self.assertEqual([h.state.tokens for h in context.hypotheses], [(BOS, A), (BOS, B)])
        self.assertAlmostEqual(context.hypotheses[0].log_probability, math.log(0.6))
        self.assertAlmostEqual(context.hypotheses[1].log_probability, math.log(0.3))

        self._iterate(context, 2)
        beam = context.hypotheses
        self.assertEqual(beam[0].state.tokens, (BOS, A, EOS))
        self.assertTrue(beam[0].is_completed)
        self.assertAlmostEqual(beam[0].log_probability, math.log(0.6) + math.log(0.9))
        # [B, A] and [B, END] tie; [B, A] was submitted first
        self.assertEqual(beam[1].state.tokens, (BOS, B, A))
        self.assertAlmostEqual(beam[1].log_probability, math.log(0.3) + math.log(0.5))

        iterations = 2
        while not context.is_completed():
            self._iterate(context, 2)
            iterations += 1

        self.assertLessEqual(iterations, 3)
        best = context.best_hypotheses()
        self.assertEqual(best[0].state.tokens, (BOS, A, EOS))
        self.assertLessEqual(len(best), 2)


if __name__ == '__main__':
    unittest.main()
