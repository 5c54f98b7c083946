#!/usr/bin/env python3
"""
CLI Decoding Tool for transition tables.

Runs beam, greedy or forced decoding over a JSON transition table.

Usage:
    python scripts/decode_table.py --table data/tables/demo.json --beam-width 2 --max-length 3
    python scripts/decode_table.py --table data/tables/demo.json --strategy greedy
    python scripts/decode_table.py --table data/tables/demo.json --strategy forced --force "B A </s>"
    python scripts/decode_table.py --config decoding.json --json
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from src.decoding.config import DecodingConfig
from src.decoding.inference import BeamSearchDecoder, forced_decode, greedy_decode
from src.decoding.scorers import TransitionTableScorer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Decode sequences from a transition table")

    # Table
    parser.add_argument("--table", type=str, default=str(config.DEFAULT_TABLE_PATH),
                       help="Path to transition table JSON")

    # Decoding
    parser.add_argument("--strategy", type=str, default=None,
                       choices=["beam", "greedy", "forced"],
                       help="Decoding strategy")
    parser.add_argument("--config", type=str, default=None,
                       help="DecodingConfig JSON file")
    parser.add_argument("--beam-width", type=int, default=None,
                       help="Beam width")
    parser.add_argument("--max-length", type=int, default=None,
                       help="Maximum output length")
    parser.add_argument("--n-best", type=int, default=None,
                       help="Number of hypotheses to print")
    parser.add_argument("--workers", type=int, default=None,
                       help="Threads for parallel scorer calls")
    parser.add_argument("--force", type=str, default=None,
                       help="Space-separated tokens to score (forced strategy)")

    # Output
    parser.add_argument("--json", action="store_true",
                       help="Print results as JSON")
    parser.add_argument("--verbose", action="store_true",
                       help="Print per-iteration progress")

    return parser.parse_args(argv)


def build_config(args) -> DecodingConfig:
    """Merge config file, module defaults and command-line overrides."""
    if args.config:
        decoding_config = DecodingConfig.load(Path(args.config))
    else:
        decoding_config = DecodingConfig(
            strategy=config.DECODING_STRATEGY,
            beam_width=config.BEAM_WIDTH,
            max_length=config.MAX_LENGTH,
            n_best=config.N_BEST,
            num_workers=config.NUM_WORKERS
        )

    overrides = {
        "strategy": args.strategy if args.strategy != "forced" else None,
        "beam_width": args.beam_width,
        "max_length": args.max_length,
        "n_best": args.n_best,
        "num_workers": args.workers,
    }
    values = {k: v for k, v in vars(decoding_config).items()}
    values.update({k: v for k, v in overrides.items() if v is not None})

    # n_best never exceeds the beam
    if args.n_best is None:
        values["n_best"] = min(values["n_best"], values["beam_width"])

    return DecodingConfig(**values)


def hypothesis_record(scorer, hyp, rank):
    tokens = list(hyp.state.tokens[1:])
    return {
        "rank": rank,
        "tokens": [scorer.vocabulary[t] for t in tokens],
        "text": scorer.decode(tokens),
        "log_probability": hyp.log_probability,
        "normalized_score": hyp.normalized_score,
        "length": hyp.length,
        "completed": hyp.is_completed,
    }


def run(args):
    scorer = TransitionTableScorer.from_file(args.table)
    decoding_config = build_config(args)

    if args.strategy == "forced":
        if not args.force:
            raise ValueError("--force is required for the forced strategy")
        target = scorer.encode(args.force)[1:-1]
        result = forced_decode(scorer, target, bos_id=scorer.bos_id, eos_id=scorer.eos_id)
        record = hypothesis_record(scorer, result.hypothesis, 1)
        record["step_log_probabilities"] = result.step_log_probabilities
        return [record]

    if decoding_config.strategy == "greedy":
        hypotheses = [greedy_decode(
            scorer,
            bos_id=scorer.bos_id,
            eos_id=scorer.eos_id,
            max_length=decoding_config.max_length,
            min_probability=decoding_config.min_probability
        )]
    else:
        decoder = BeamSearchDecoder.from_config(
            scorer,
            decoding_config,
            bos_id=scorer.bos_id,
            eos_id=scorer.eos_id,
            verbose=args.verbose
        )
        hypotheses = decoder.decode(scorer.initial_step_state, n_best=decoding_config.n_best)

    return [hypothesis_record(scorer, hyp, i + 1) for i, hyp in enumerate(hypotheses)]


def print_records(records):
    for record in records:
        status = "done" if record["completed"] else "cut"
        print(f"#{record['rank']} [{status}] {' '.join(record['tokens'])}")
        print(f"    log p = {record['log_probability']:.4f}  "
              f"per token = {record['normalized_score']:.4f}")
        if "step_log_probabilities" in record:
            steps = ", ".join(f"{lp:.4f}" for lp in record["step_log_probabilities"])
            print(f"    steps = [{steps}]")


def main(argv=None):
    args = parse_args(argv)

    try:
        records = run(args)
    except (OSError, ValueError, TypeError, AssertionError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(records, indent=2, ensure_ascii=False))
    else:
        print_records(records)
    return 0


if __name__ == "__main__":
    sys.exit(main())
