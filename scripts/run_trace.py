#!/usr/bin/env python3
"""
Replay escrow scenario traces and report which ones pass.

Usage:
    python run_trace.py <trace.yaml> [trace.esc ...]
    python run_trace.py --dir escrow/tests/traces   # Every trace in a directory
    python run_trace.py -v FILE                     # Also show event log and final state
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from escrow.simulator import TraceError, load_trace, parse_trace_file
from escrow.transactions.simulation_harness import EscrowSimulation

YAML_SUFFIXES = {".yaml", ".yml"}
TEXT_SUFFIXES = {".esc"}


def load_any(path: Path):
    """Load a trace in whichever form its suffix names."""
    if path.suffix in YAML_SUFFIXES:
        return load_trace(path)
    if path.suffix in TEXT_SUFFIXES:
        return parse_trace_file(path)
    raise TraceError(f"Unrecognized trace file type: {path.suffix or path.name}")


def find_traces(directory: Path):
    return sorted(
        p for p in directory.iterdir()
        if p.suffix in YAML_SUFFIXES | TEXT_SUFFIXES
    )


def run_file(path: Path, verbose: bool = False) -> bool:
    """Replay one trace file, print its outcome, return whether it passed."""
    try:
        trace = load_any(path)
    except (TraceError, FileNotFoundError) as e:
        print(f"ERROR {path}: {e}")
        return False

    sim = EscrowSimulation.from_trace(trace)
    result = sim.run_trace(trace)

    status = "PASS" if result.passed else "FAIL"
    print(f"{status}  {trace.name} ({result.steps_run} steps)")
    for failure in result.failures:
        print(f"      {failure}")

    if verbose:
        chain = sim.contract.chain
        for block in chain.blocks:
            print(f"      {json.dumps(block.to_dict(), sort_keys=True, default=str)}")
        print(f"      chain verified: {chain.verify_chain()}")
        print(f"      state: {json.dumps(sim.contract.snapshot(), sort_keys=True)}")

    return result.passed


def main():
    parser = argparse.ArgumentParser(
        description="Replay escrow scenario traces."
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Trace files (.yaml, .yml or .esc)"
    )
    parser.add_argument(
        "--dir",
        type=Path,
        help="Replay every trace in this directory"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print the event log and final state of each trace"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for the escrow engine (default: WARNING)"
    )

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    files = [Path(f) for f in args.files]
    if args.dir:
        files.extend(find_traces(args.dir))
    if not files:
        parser.print_help()
        sys.exit(1)

    failed = 0
    for path in files:
        if not run_file(path, verbose=args.verbose):
            failed += 1

    print(f"\n{len(files) - failed} passed, {failed} failed")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
