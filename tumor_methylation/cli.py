"""
Command-line entry point for the tumor vs normal-adjacent analysis.

Usage:
    tumor-methylation                                  # Defaults from config
    tumor-methylation --config configs/analysis.yaml   # Custom configuration
    tumor-methylation --methylation-file beta.csv --clinical-file clinical.csv
    tumor-methylation --seed 7 --permutations 0 --skip-plots

Examples:
    # Stratify the train/test split by tissue type
    tumor-methylation --stratify-split

    # Write results somewhere else, with debug logging
    tumor-methylation --output-dir /tmp/results -v
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .exceptions import AnalysisError
from .pipeline import AnalysisPipeline
from .utils.config import load_config
from .utils.logging_utils import set_verbosity, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tumor vs normal-adjacent DNA methylation analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--config",
        help="Path to custom YAML configuration file"
    )
    parser.add_argument(
        "--methylation-file",
        help="Beta-value matrix (CpG sites x samples)"
    )
    parser.add_argument(
        "--clinical-file",
        help="Clinical table (one row per sample)"
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for result tables and figures"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for splits, folds, permutations and subsets"
    )
    parser.add_argument(
        "--stratify-split",
        action="store_true",
        help="Stratify the train/test split by tissue type"
    )
    parser.add_argument(
        "--permutations",
        type=int,
        help="Label shuffles for the permutation diagnostic (0 to skip)"
    )
    parser.add_argument(
        "--skip-plots",
        action="store_true",
        help="Skip diagnostic figures"
    )
    parser.add_argument(
        "--log-file",
        help="Also write the log to this file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    return parser


def _from_cwd(path: Optional[str]) -> Optional[Path]:
    """Resolve a command-line path against the working directory."""
    return Path(path).resolve() if path else None


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logger = setup_logger(
        "tumor_methylation", level=logging.INFO, log_file=_from_cwd(args.log_file)
    )
    set_verbosity(logger, args.verbose)

    logger.info("=" * 60)
    logger.info("Tumor vs Normal-Adjacent Methylation Analysis")
    logger.info("=" * 60)

    try:
        config = load_config(config_file=_from_cwd(args.config))
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    if args.seed is not None:
        config.analysis_params["random_state"] = args.seed
    if args.stratify_split:
        config.analysis_params["classifier"]["stratify_split"] = True
    if args.output_dir:
        config.output_dir = _from_cwd(args.output_dir)

    logger.info(f"Configuration: {config}")
    logger.info(f"Random seed: {config.random_state}")

    try:
        pipeline = AnalysisPipeline(config)
        results = pipeline.run(
            methylation_path=_from_cwd(args.methylation_file),
            clinical_path=_from_cwd(args.clinical_file),
            output_dir=config.output_dir,
            n_permutations=args.permutations,
            make_plots=not args.skip_plots
        )
    except (AnalysisError, FileNotFoundError, IsADirectoryError) as e:
        logger.error(f"Analysis aborted: {type(e).__name__}: {e}")
        return 1

    logger.info("")
    logger.info("=" * 60)
    logger.info(
        f"{results.association.n_significant} significant sites, "
        f"{len(results.model.selected_sites)} model sites, "
        f"{len(results.corroborated_sites)} in both"
    )
    logger.info(f"Results saved to: {config.output_dir}")
    logger.info("=" * 60)
    return 0
