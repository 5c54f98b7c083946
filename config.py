"""Configuration settings for the decoding tools."""

from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent
DATA_DIR = BASE_DIR / "data"

# Transition tables
TABLES_DIR = DATA_DIR / "tables"
DEFAULT_TABLE_PATH = TABLES_DIR / "demo.json"

# Decoding settings
DECODING_STRATEGY = "beam"  # Options: beam, greedy
BEAM_WIDTH = 4
MAX_LENGTH = 256
N_BEST = 1

# Threading
NUM_WORKERS = 0  # Parallel scorer calls per iteration
