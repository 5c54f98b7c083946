"""
Greedy and Forced Decoding.

Single-path strategies sharing the scorer contract of beam search:
- greedy_decode: always pick the most likely token (ties -> lower ID)
- forced_decode: feed a given target sequence and score it

Greedy decoding is equivalent to beam search with a beam width of 1 and is
used for fast inference, debugging and baselines.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence

from ..scorers import as_probabilities
from ..search import Hypothesis, SequenceState, top_k_indices


def greedy_decode(
    scorer: Callable,
    bos_id: int,
    eos_id: int,
    max_length: int = 256,
    initial_step_state: Any = None,
    min_probability: float = 0.0
) -> Hypothesis[SequenceState]:
    """Greedy decoding.

    At each step, select the token with highest probability.
    Fast but suboptimal compared to beam search.

    Args:
        scorer: One-step scorer.
        bos_id: Seed token ID.
        eos_id: End of sequence token ID.
        max_length: Maximum number of generated tokens.
        initial_step_state: Scorer state for the seed step.
        min_probability: Tokens at or below this probability are never picked.

    Returns:
        The decoded hypothesis. It is not completed if ``max_length`` was
        reached or the scorer offered no admissible token.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be positive, got {max_length}")

    hyp = Hypothesis(state=SequenceState(tokens=(bos_id,), step_state=initial_step_state))

    while not hyp.is_completed and hyp.length < max_length:
        distribution, step_state = scorer(hyp.state.last_token, hyp.state.step_state)
        best = top_k_indices(as_probabilities(distribution), 1, min_probability)
        if not best:
            break

        token, prob = best[0]
        hyp = hyp.extended(token, step_state, math.log(prob), is_completed=token == eos_id)

    return hyp


@dataclass
class ForcedDecodingResult:
    """Outcome of scoring a fixed target sequence."""
    hypothesis: Hypothesis[SequenceState]
    step_log_probabilities: List[float] = field(default_factory=list)
    distributions: List[List[float]] = field(default_factory=list)

    @property
    def log_probability(self) -> float:
        return self.hypothesis.log_probability


def forced_decode(
    scorer: Callable,
    target: Sequence[int],
    bos_id: int,
    eos_id: int,
    initial_step_state: Any = None
) -> ForcedDecodingResult:
    """Feed ``target`` through the scorer token by token.

    The model's own prediction is ignored at every step; the next input is
    always the next target token. Scoring stops after the first end token.

    Args:
        scorer: One-step scorer.
        target: Token IDs to force (without the seed token).
        bos_id: Seed token ID.
        eos_id: End of sequence token ID.
        initial_step_state: Scorer state for the seed step.

    Returns:
        ForcedDecodingResult with the per-step distributions and the
        log-probability of each forced token (-inf for probability 0).
    """
    hyp = Hypothesis(state=SequenceState(tokens=(bos_id,), step_state=initial_step_state))
    result = ForcedDecodingResult(hypothesis=hyp)

    for token in target:
        distribution, step_state = scorer(hyp.state.last_token, hyp.state.step_state)
        probs = as_probabilities(distribution)
        if not 0 <= token < len(probs):
            raise ValueError(f"Token {token} outside vocabulary of size {len(probs)}")

        prob = probs[token]
        log_prob = math.log(prob) if prob > 0 else float('-inf')

        hyp = hyp.extended(token, step_state, log_prob, is_completed=token == eos_id)
        result.step_log_probabilities.append(log_prob)
        result.distributions.append(probs)

        if hyp.is_completed:
            break

    result.hypothesis = hyp
    return result
