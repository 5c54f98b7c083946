"""
Sequence Decoding Subsystem.

Beam search, greedy and forced decoding for sequence-to-sequence models.

Modules:
    - search: Hypotheses, beam context and top-k selection
    - inference: Beam search, greedy/forced decoding and the translator
    - scorers: Adapters from models and tables to the one-step scorer contract
"""

from .config import DecodingConfig
from .search import BeamSearchContext, Hypothesis, SequenceState

__version__ = "1.0.0"
__all__ = ["DecodingConfig", "BeamSearchContext", "Hypothesis", "SequenceState"]
