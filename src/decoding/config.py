"""
Decoding Configuration Module.

Defines all settings for the decoding system.
Uses dataclasses for type safety and easy serialization.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional
import json


STRATEGIES = ("beam", "greedy")


@dataclass
class DecodingConfig:
    """Search configuration shared by all decoders.

    A beam width of 4 with a hard cap of 256 steps matches what the
    translation models were tuned with. Set ``max_length_factor`` to let
    the translator scale the cap with the source length.
    """

    # Search strategy
    strategy: str = "beam"
    beam_width: int = 4
    n_best: int = 1

    # Termination
    max_length: int = 256
    max_length_factor: Optional[float] = None  # 2.0 -> twice the source length

    # Special token IDs (set by tokenizer)
    bos_id: int = 2
    eos_id: int = 3

    # Candidates with probability <= this never enter the beam (ln(0) guard)
    min_probability: float = 0.0

    # Parallel scorer calls per iteration (0 = score on the calling thread)
    num_workers: int = 0

    def __post_init__(self):
        """Validate configuration."""
        assert self.strategy in STRATEGIES, \
            f"strategy must be one of {STRATEGIES}, got '{self.strategy}'"
        assert self.beam_width >= 1, \
            f"beam_width ({self.beam_width}) must be positive"
        assert 1 <= self.n_best <= self.beam_width, \
            f"n_best ({self.n_best}) must be between 1 and beam_width ({self.beam_width})"
        assert self.max_length >= 1, \
            f"max_length ({self.max_length}) must be positive"
        assert self.max_length_factor is None or self.max_length_factor > 0, \
            f"max_length_factor ({self.max_length_factor}) must be positive"
        assert self.min_probability >= 0.0, \
            f"min_probability ({self.min_probability}) must be non-negative"
        assert self.num_workers >= 0, \
            f"num_workers ({self.num_workers}) must be non-negative"

    def length_limit(self, source_length: int) -> int:
        """Maximum number of decoding steps for a source of given length."""
        if self.max_length_factor is None:
            return self.max_length
        return max(1, min(self.max_length, int(source_length * self.max_length_factor)))

    def save(self, path: Path):
        """Save configuration to JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Path) -> "DecodingConfig":
        """Load configuration from JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)

        return cls(**config_dict)


# Default configurations for different uses
def get_default_config() -> DecodingConfig:
    """Beam search with the settings used for translation."""
    return DecodingConfig()


def get_greedy_config() -> DecodingConfig:
    """Single-path argmax decoding for fast inference."""
    config = DecodingConfig(strategy="greedy", beam_width=1)
    return config


def get_debug_config() -> DecodingConfig:
    """Minimal configuration for debugging and testing."""
    config = DecodingConfig()
    config.beam_width = 2
    config.n_best = 2
    config.max_length = 8
    return config
