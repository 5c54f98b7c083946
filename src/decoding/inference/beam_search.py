"""
Beam Search Decoding.

Drives a BeamSearchContext with any one-step scorer:
- Top-k candidates per live hypothesis, global prune per iteration
- Completed hypotheses pass through and keep competing on raw score
- Optional parallel scorer calls within an iteration

Ranking uses cumulative log-probability without length normalization.
"""

import math
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from ..config import DecodingConfig
from ..scorers import as_probabilities
from ..search import BeamSearchContext, Hypothesis, SequenceState, top_k_indices


class BeamSearchDecoder:
    """Beam search over a one-step scorer.

    Args:
        scorer: Callable ``(last_token, step_state) -> (distribution, step_state)``.
        beam_width: Number of beams to maintain.
        max_length: Maximum number of generated tokens.
        bos_id: Seed token ID.
        eos_id: End of sequence token ID.
        min_probability: Candidates at or below this probability are skipped.
        num_workers: Threads for parallel scorer calls (0 = sequential).
        verbose: Print a line per iteration.
    """

    def __init__(
        self,
        scorer: Callable,
        beam_width: int = 4,
        max_length: int = 256,
        bos_id: int = 2,
        eos_id: int = 3,
        min_probability: float = 0.0,
        num_workers: int = 0,
        verbose: bool = False
    ):
        if beam_width < 1:
            raise ValueError(f"beam_width must be positive, got {beam_width}")
        if max_length < 1:
            raise ValueError(f"max_length must be positive, got {max_length}")

        self.scorer = scorer
        self.beam_width = beam_width
        self.max_length = max_length
        self.bos_id = bos_id
        self.eos_id = eos_id
        self.min_probability = min_probability
        self.num_workers = num_workers
        self.verbose = verbose

    @classmethod
    def from_config(cls, scorer: Callable, config: DecodingConfig, **kwargs) -> "BeamSearchDecoder":
        """Build a decoder from a config; keyword arguments take precedence."""
        params = dict(
            beam_width=config.beam_width,
            max_length=config.max_length,
            bos_id=config.bos_id,
            eos_id=config.eos_id,
            min_probability=config.min_probability,
            num_workers=config.num_workers
        )
        params.update(kwargs)
        return cls(scorer=scorer, **params)

    def decode(
        self,
        initial_step_state: Any = None,
        n_best: Optional[int] = None,
        executor: Optional[Executor] = None
    ) -> List[Hypothesis[SequenceState]]:
        """Run beam search from the seed token.

        Args:
            initial_step_state: Scorer state for the seed step.
            n_best: Number of hypotheses to return (whole beam if None).
            executor: Runs the scorer calls of an iteration concurrently.
                Overrides ``num_workers``.

        Returns:
            Hypotheses sorted by log-probability, best first. Hypotheses cut
            off by ``max_length`` are included without an end token.
        """
        if executor is None and self.num_workers > 0:
            with ThreadPoolExecutor(max_workers=self.num_workers) as pool:
                return self.decode(initial_step_state, n_best=n_best, executor=pool)

        context = BeamSearchContext.create(
            self.beam_width,
            self.max_length,
            SequenceState(tokens=(self.bos_id,), step_state=initial_step_state)
        )

        iteration = 0
        while not context.is_completed():
            self.step(context, executor=executor)
            iteration += 1

            if self.verbose:
                best = context.best_hypotheses()
                best_score = best[0].log_probability if best else float('-inf')
                print(f"[BeamSearch] iteration {iteration}: "
                      f"{len(context)} hypotheses, best log p = {best_score:.4f}")

        results = context.best_hypotheses()
        return results if n_best is None else results[:n_best]

    def step(self, context: BeamSearchContext, executor: Optional[Executor] = None):
        """Run one iteration: propose extensions for the beam, then prune."""
        hypotheses = context.hypotheses
        live = [h for h in hypotheses if not self._is_frozen(h)]

        # Scorer calls are independent; collect all before touching the context
        if executor is not None:
            outputs = list(executor.map(self._score, live))
        else:
            outputs = [self._score(h) for h in live]
        outputs = iter(outputs)

        for hyp in hypotheses:
            if self._is_frozen(hyp):
                context.add(hyp)
                continue

            distribution, step_state = next(outputs)
            probs = as_probabilities(distribution)

            for token, prob in top_k_indices(probs, self.beam_width, self.min_probability):
                context.add(hyp.extended(
                    token,
                    step_state,
                    math.log(prob),
                    is_completed=token == self.eos_id
                ))

        context.end_iteration()

    def _is_frozen(self, hyp: Hypothesis) -> bool:
        return hyp.is_completed or hyp.length >= self.max_length

    def _score(self, hyp: Hypothesis[SequenceState]):
        return self.scorer(hyp.state.last_token, hyp.state.step_state)


def beam_search(
    scorer: Callable,
    bos_id: int,
    eos_id: int,
    beam_width: int = 4,
    max_length: int = 256,
    initial_step_state: Any = None,
    n_best: Optional[int] = None,
    min_probability: float = 0.0,
    executor: Optional[Executor] = None
) -> List[Hypothesis[SequenceState]]:
    """Simple beam search decoding.

    Convenience wrapper around :class:`BeamSearchDecoder`.

    Args:
        scorer: One-step scorer.
        bos_id: Seed token ID.
        eos_id: End of sequence token ID.
        beam_width: Number of beams.
        max_length: Maximum output length.
        initial_step_state: Scorer state for the seed step.
        n_best: Number of hypotheses to return.
        min_probability: Candidates at or below this probability are skipped.
        executor: Optional executor for parallel scorer calls.

    Returns:
        Ranked hypotheses, best first.
    """
    decoder = BeamSearchDecoder(
        scorer=scorer,
        beam_width=beam_width,
        max_length=max_length,
        bos_id=bos_id,
        eos_id=eos_id,
        min_probability=min_probability
    )
    return decoder.decode(initial_step_state, n_best=n_best, executor=executor)
