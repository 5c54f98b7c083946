"""Beam Search Engine."""

from .hypothesis import Hypothesis, SequenceState, extend
from .context import BeamSearchContext
from .topk import top_k, top_k_indices

__all__ = [
    "Hypothesis",
    "SequenceState",
    "extend",
    "BeamSearchContext",
    "top_k",
    "top_k_indices",
]
