"""
Beam Hypotheses.

A hypothesis is an immutable value: extending it returns a new object and
leaves the parent untouched, so sibling hypotheses that share a parent can
keep using its state.
"""

from dataclasses import dataclass, replace
from typing import Any, Generic, Tuple, TypeVar


State = TypeVar("State")


@dataclass(frozen=True)
class SequenceState:
    """Default decoding state: emitted tokens plus the scorer's own state.

    Attributes:
        tokens: Emitted token IDs, starting with the seed token.
        step_state: Opaque value returned by the scorer (hidden tensor,
            decoder prefix, ...). Never inspected by the search.
    """
    tokens: Tuple[int, ...]
    step_state: Any = None

    @property
    def last_token(self) -> int:
        return self.tokens[-1]

    def appending(self, token: int, step_state: Any) -> "SequenceState":
        return SequenceState(tokens=self.tokens + (token,), step_state=step_state)

    def __len__(self):
        return len(self.tokens)


@dataclass(frozen=True)
class Hypothesis(Generic[State]):
    """A single beam hypothesis.

    Attributes:
        state: Generation state after the last extension.
        log_probability: Sum of step log-probabilities (0.0 = log 1).
        is_completed: Set once end-of-sequence was emitted.
        length: Number of extension steps applied.
    """
    state: State
    log_probability: float = 0.0
    is_completed: bool = False
    length: int = 0

    def extended(
        self,
        token: int,
        step_state: Any,
        log_probability: float,
        is_completed: bool
    ) -> "Hypothesis[State]":
        """Extend the hypothesis by one token.

        Completed hypotheses are frozen and returned unchanged, so their
        score and length stop accumulating.

        Args:
            token: Candidate token ID.
            step_state: Scorer state produced by feeding ``token``'s parent.
                Folded into ``state`` via ``state.appending`` when the state
                supports it, otherwise used as the new state directly.
            log_probability: Natural log of the token's step probability.
            is_completed: Whether ``token`` ends the sequence.

        Returns:
            The extended hypothesis.
        """
        if self.is_completed:
            return self

        appending = getattr(self.state, "appending", None)
        new_state = appending(token, step_state) if appending is not None else step_state

        return replace(
            self,
            state=new_state,
            log_probability=self.log_probability + log_probability,
            is_completed=is_completed,
            length=self.length + 1
        )

    @property
    def normalized_score(self) -> float:
        """Log-probability per step (0.0 for the empty seed)."""
        if self.length == 0:
            return self.log_probability
        return self.log_probability / self.length


def extend(
    hypothesis: Hypothesis,
    token: int,
    step_state: Any,
    log_probability: float,
    is_completed: bool
) -> Hypothesis:
    """Functional form of :meth:`Hypothesis.extended`."""
    return hypothesis.extended(token, step_state, log_probability, is_completed)
