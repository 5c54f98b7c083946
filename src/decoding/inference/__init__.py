"""Decoding Inference Module."""

from .beam_search import beam_search, BeamSearchDecoder
from .greedy import greedy_decode, forced_decode, ForcedDecodingResult
from .translator import Translator

__all__ = [
    "beam_search",
    "BeamSearchDecoder",
    "greedy_decode",
    "forced_decode",
    "ForcedDecodingResult",
    "Translator",
]
