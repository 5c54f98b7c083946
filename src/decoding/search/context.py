"""
Beam Search Context.

Owns the beam for one decode request. The caller drives the iterations:

    context = BeamSearchContext.create(beam_width, max_length, initial_state)
    while not context.is_completed():
        for hyp in context.hypotheses:
            ...                       # score, extend, context.add(...)
        context.end_iteration()
    results = context.best_hypotheses()

Pruning only happens in ``end_iteration``, so every proposal of an iteration
competes against every other one, including passed-through completed
hypotheses.
"""

import threading
from typing import Generic, List

from .hypothesis import Hypothesis, State


class BeamSearchContext(Generic[State]):
    """Beam state of a single search.

    Args:
        beam_width: Number of hypotheses kept after each iteration.
        max_length: Hypotheses of this length stop being extended.
        initial_state: State of the seed hypothesis.
    """

    def __init__(self, beam_width: int, max_length: int, initial_state: State):
        if beam_width < 1:
            raise ValueError(f"beam_width must be positive, got {beam_width}")
        if max_length < 1:
            raise ValueError(f"max_length must be positive, got {max_length}")

        self.beam_width = beam_width
        self.max_length = max_length
        self._hypotheses: List[Hypothesis[State]] = [Hypothesis(state=initial_state)]
        self._pending: List[Hypothesis[State]] = []
        self._lock = threading.Lock()

    @classmethod
    def create(cls, beam_width: int, max_length: int, initial_state: State) -> "BeamSearchContext[State]":
        return cls(beam_width, max_length, initial_state)

    @property
    def hypotheses(self) -> List[Hypothesis[State]]:
        """Current beam, in the order of the last commit."""
        return list(self._hypotheses)

    @property
    def num_pending(self) -> int:
        return len(self._pending)

    def add(self, hypothesis: Hypothesis[State]):
        """Propose a hypothesis for the running iteration.

        Nothing is ranked or filtered here. Safe to call from several
        threads.
        """
        with self._lock:
            self._pending.append(hypothesis)

    def end_iteration(self):
        """Commit the iteration: keep the best ``beam_width`` proposals.

        ``sorted`` is stable, so proposals with equal scores keep their
        submission order. Committing with no proposals empties the beam.
        """
        with self._lock:
            ranked = sorted(self._pending, key=lambda h: h.log_probability, reverse=True)
            self._hypotheses = ranked[:self.beam_width]
            self._pending = []

    def is_completed(self) -> bool:
        """True once no hypothesis in the beam can be extended further."""
        return all(
            h.is_completed or h.length >= self.max_length
            for h in self._hypotheses
        )

    def best_hypotheses(self) -> List[Hypothesis[State]]:
        """Beam sorted by cumulative log-probability, best first.

        Scores are not length-normalized.
        """
        return sorted(self._hypotheses, key=lambda h: h.log_probability, reverse=True)

    def __len__(self):
        return len(self._hypotheses)

    def __repr__(self):
        return (
            f"BeamSearchContext(beam_width={self.beam_width}, "
            f"max_length={self.max_length}, hypotheses={len(self._hypotheses)})"
        )
