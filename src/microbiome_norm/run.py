"""
Microbiome Normalization Benchmark
----------------------------------------------------------------------------------------
Compares relative (RMP, CLR, VST) and quantitative (ACS, QMP) normalizations of
amplicon sequencing data against the absolute abundances of the real communities,
scoring diversity estimates and differential abundance calls.
"""
# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import argparse
import traceback
from pathlib import Path
from typing import Dict, List, Optional

# Third-Party Imports
import pandas as pd

# Local Imports
from microbiome_norm import constants
from microbiome_norm.analysis import NormalizationBenchmark
from microbiome_norm.config import get_config
from microbiome_norm.logger import setup_logging
from microbiome_norm.simulate import simulate_cohort, write_cohort

# ========================== INITIALIZATION & CONFIGURATION ========================== #

pd.set_option('display.max_colwidth', None)

# =================================== MAIN WORKFLOW ================================== #

class Workflow:
    def __init__(self, config_path: Path = constants.DEFAULT_CONFIG) -> None:
        self.config = get_config(config_path)
        self.logger = setup_logging(self.config.get("log_dir"))
        self.benchmark: Optional[NormalizationBenchmark] = None

    def run(self) -> Dict:
        """Execute the benchmark based on configuration settings."""
        try:
            self.benchmark = NormalizationBenchmark(self.config)
            return self.benchmark.results
        except Exception as e:
            self.logger.error(f"Workflow execution failed: {e}\n"
                              f"Traceback: {traceback.format_exc()}")
            raise WorkflowError("Workflow aborted due to errors") from e


class WorkflowError(Exception):
    pass


def simulate(out_dir: Path, seed: int, n_taxa: int, n_samples: int) -> Path:
    """Simulate a cohort and write it in the layout the benchmark reads."""
    logger = setup_logging()
    try:
        cohort = simulate_cohort(seed=seed, n_taxa=n_taxa, n_samples=n_samples)
        return write_cohort(cohort, out_dir)
    except Exception as e:
        logger.error(f"Simulation failed: {e}\nTraceback: {traceback.format_exc()}")
        raise WorkflowError("Simulation aborted due to errors") from e


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark normalization methods for microbiome data."
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the normalization benchmark.")
    run_parser.add_argument(
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG,
        help="Path to the configuration file.",
    )

    sim_parser = subparsers.add_parser(
        "simulate", help="Simulate real communities and their sequencing data."
    )
    sim_parser.add_argument(
        "--out-dir", type=Path, default=Path(constants.DEFAULT_DATA_DIR),
        help="Directory receiving real_community/ and seq_data/.",
    )
    sim_parser.add_argument(
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG,
        help="Configuration file providing the default seed.",
    )
    sim_parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed (default: the `seed` setting of the configuration).",
    )
    sim_parser.add_argument("--n-taxa", type=int, default=300)
    sim_parser.add_argument("--n-samples", type=int, default=200)

    args = parser.parse_args(argv)
    if args.command is None:
        # Bare invocation runs the benchmark with the default config
        args.command = "run"
        args.config = constants.DEFAULT_CONFIG
    return args


def simulation_seed(config_path: Path) -> int:
    """Seed from the configuration file, or the package default without one."""
    if not Path(config_path).exists():
        return constants.DEFAULT_SEED
    return int(get_config(config_path)["seed"])


def main(argv: Optional[List[str]] = None) -> None:
    """Run the entire workflow."""
    args = parse_args(argv)
    if args.command == "simulate":
        seed = args.seed if args.seed is not None else simulation_seed(args.config)
        simulate(args.out_dir, seed, args.n_taxa, args.n_samples)
    else:
        Workflow(args.config).run()


if __name__ == "__main__":
    main()
