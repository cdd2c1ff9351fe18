#!/usr/bin/env python3
"""
Compute RNA partition functions and base-pair probabilities from the command line.

Examples:
  - python pf_fold.py "GGGGAAAACCCC"
  - python pf_fold.py -p --cutoff 0.01 --json "GGGAAACCCAAAGGGUUUCCC"
  - python pf_fold.py --circ "GGGGAAAACCCCAAAGGGGAAAACCCC"
  - python pf_fold.py --alignment "GGGGAAAACCCC" "GGGCAAAAGCCC" "GGG-AAAA-CCC"
  - python pf_fold.py -vv --tempC 25 --yaml /path/to/params.yaml "ACGU..."
"""

# --- Standard Library Imports ---
from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List, Optional

# --- Local Application Imports ---
from rna_pf_fold.utils.logging_utils import ENGINE_LOGGERS, DEFAULT_LOG_DIR, setup_logger
from rna_pf_fold.energies import load_energy_model
from rna_pf_fold.folding.alignment import consensus_sequence
from rna_pf_fold.folding.partition import PartitionResult, alipf_fold, pf_circfold, pf_fold
from rna_pf_fold.folding.pair_probs import mean_bp_distance
from rna_pf_fold.folding.pf_recurrences import PartitionFoldingConfig
from rna_pf_fold.folding.scaling import PartitionOverflowError

# Set up module logger
logger = logging.getLogger(__name__)


# --------------------------
# Logging Configuration
# --------------------------
def setup_cli_logging(verbose_level: int, log_file: Optional[str] = None) -> None:
    """
    Configures logging for the CLI and the partition-function engines.

    Parameters
    ----------
    verbose_level : int
        The verbosity level: 0 for WARNING, 1 for INFO, 2 for DEBUG.
    log_file : Optional[str]
        The path to a specific log file. If not provided, a default timestamped
        log file is created in the `var/log/` directory when verbosity is > 0.
    """
    level_map = {
        0: logging.WARNING,  # Quiet mode: only show warnings and errors.
        1: logging.INFO,     # Normal mode: show progress and key steps.
        2: logging.DEBUG,    # Verbose mode: show detailed internal states.
    }
    log_level = level_map.get(verbose_level, logging.DEBUG)
    should_log_to_file = (verbose_level > 0) or (log_file is not None)

    for logger_name in (__name__, *ENGINE_LOGGERS):
        setup_logger(
            logger_name,
            level=log_level,
            log_file=log_file,
            enable_file_logging=should_log_to_file,
        )

    if should_log_to_file and log_file is None:
        logger.info(f"Logs will be saved to: {DEFAULT_LOG_DIR.resolve()}")


# --------------------------
# Helpers
# --------------------------
def build_config(cli_args: argparse.Namespace) -> PartitionFoldingConfig:
    """Map CLI flags onto a :class:`PartitionFoldingConfig`."""
    return PartitionFoldingConfig(
        temp_c=cli_args.tempC,
        min_loop_size=cli_args.min_loop,
        max_loop=cli_args.max_loop,
        circular=cli_args.circ,
        backtrack_type=cli_args.ensemble,
        compute_bpp=cli_args.bpp,
        pf_scale=cli_args.pf_scale,
        cv_fact=cli_args.cv_fact,
        nc_fact=cli_args.nc_fact,
        verbose=logger.isEnabledFor(logging.INFO),
    )


def run_fold(cli_args: argparse.Namespace, config: PartitionFoldingConfig) -> PartitionResult:
    """Dispatch to the single-sequence, circular or alignment fold."""
    model = load_energy_model(cli_args.yaml, temp_c=config.temp_c)
    logger.info(f"Temperature: {config.temp_c}°C, kT={model.kT:.4f} kcal/mol")

    if cli_args.alignment:
        return alipf_fold(cli_args.sequences, config=config, model=model)
    if len(cli_args.sequences) != 1:
        raise ValueError("Exactly one sequence expected (use --alignment for several).")
    if config.circular:
        return pf_circfold(cli_args.sequences[0], cli_args.constraint, config=config, model=model)

    return pf_fold(cli_args.sequences[0], cli_args.constraint, config=config, model=model, cutoff=cli_args.cutoff)


# --------------------------
# Command-Line Interface
# --------------------------
def main(argv: Optional[List[str]] = None) -> int:
    """
    Parses command-line arguments and runs the partition-function fold.
    """
    parser = argparse.ArgumentParser(description="Compute the RNA ensemble free energy and pair probabilities.")
    parser.add_argument("sequences", nargs="+", help="RNA sequence, or aligned rows with --alignment")
    parser.add_argument("--alignment", action="store_true",
                        help="Treat the positional arguments as rows of an alignment.")
    parser.add_argument("--circ", action="store_true",
                        help="Assume a circular RNA molecule.")
    parser.add_argument("-p", "--bpp", action="store_true",
                        help="Compute base-pair probabilities (linear single sequences).")
    parser.add_argument("--cutoff", type=float, default=1e-3,
                        help="Smallest pair probability to report (default: 1e-3).")
    parser.add_argument("-C", "--constraint", default=None,
                        help="Pseudo dot-bracket hard constraint (. x | < > ( )).")
    parser.add_argument("--ensemble", choices=["F", "C", "M"], default="F",
                        help="Ensemble for the free energy: F full, C closed by (1,n), M multiloop.")
    parser.add_argument("--yaml", default=None,
                        help="Path to parameter YAML (defaults to package data).")
    parser.add_argument("--tempC", type=float, default=37.0,
                        help="Temperature in °C (default: 37.0).")
    parser.add_argument("--pf-scale", type=float, default=None,
                        help="Per-nucleotide scale factor (default: estimated).")
    parser.add_argument("--min-loop", type=int, default=3,
                        help="Minimum hairpin size (default: 3).")
    parser.add_argument("--max-loop", type=int, default=30,
                        help="Maximum interior loop size (default: 30).")
    parser.add_argument("--cv-fact", type=float, default=1.0,
                        help="Covariance weight for alignments (default: 1.0).")
    parser.add_argument("--nc-fact", type=float, default=1.0,
                        help="Non-compatible penalty weight for alignments (default: 1.0).")
    parser.add_argument("--json", action="store_true",
                        help="Emit JSON instead of human-readable text.")

    # Logging arguments
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (-v=INFO, -vv=DEBUG)")
    parser.add_argument("--log-file", default=None,
                        help="Path to log file (default: var/log/<logger>_TIMESTAMP.log if verbose)")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress all output except final result")

    cli_args = parser.parse_args(argv)
    if cli_args.bpp and (cli_args.circ or cli_args.alignment):
        parser.error("-p/--bpp is only available for linear single sequences (drop --circ and --alignment).")

    verbose_level = 0 if cli_args.quiet else cli_args.verbose
    setup_cli_logging(verbose_level, cli_args.log_file)

    logger.info("=" * 60)
    logger.info("RNA Partition Function CLI")
    logger.info("=" * 60)

    try:
        config = build_config(cli_args)
        result = run_fold(cli_args, config)
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        if not cli_args.json:
            print(f"Error: {e}", file=sys.stderr)
        return 2
    except PartitionOverflowError as e:
        logger.error(str(e))
        if not cli_args.json:
            print(f"Error: {e}", file=sys.stderr)
        return 1

    fc = result.fold_compound
    ensemble_distance = mean_bp_distance(fc) if fc.state.probs is not None else None
    pairs = result.probabilities or []

    # --- Output ---
    if cli_args.json:
        print(json.dumps({
            "sequences": list(fc.alignment),
            "consensus": consensus_sequence(fc.alignment) if fc.n_seq > 1 else None,
            "length": fc.seq_len,
            "circular": config.circular,
            "ensemble_free_energy_kcal_per_mol": result.free_energy,
            "pf_scale": fc.scale_factors.pf_scale,
            "mean_bp_distance": ensemble_distance,
            "pair_probabilities": [[p.base_i, p.base_j, p.probability] for p in pairs],
        }, indent=2))
    else:
        for row in fc.alignment:
            print(f"Sequence : {row}")
        if fc.n_seq > 1:
            print(f"Consensus : {consensus_sequence(fc.alignment)}")
        print(f"Length : {fc.seq_len}")
        print(f"Ensemble ΔG (kcal/mol): {result.free_energy:.2f}")
        if ensemble_distance is not None:
            print(f"Mean bp distance: {ensemble_distance:.2f}")
        for p in pairs:
            print(f"{p.base_i:5d} {p.base_j:5d} {p.probability:.4f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
