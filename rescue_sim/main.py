"""
Main entry point for the rescue therapy simulation.

This script provides a command-line interface to simulate the trial,
fit the three mixed models and produce the trajectory figure.
"""

import argparse
import sys
from pathlib import Path

from .config.settings import OUTPUT_DIR, TrialDesignConfig, AnalysisConfig
from .analysis.rescue_analysis import run_rescue_analysis
from .utils.visualization import TrajectoryVisualizer


def build_parser() -> argparse.ArgumentParser:
    """Command-line options."""
    parser = argparse.ArgumentParser(description='Rescue therapy simulation figure')
    parser.add_argument(
        '--seed',
        type=int,
        default=AnalysisConfig.RANDOM_SEED,
        help=f'Random seed (default: {AnalysisConfig.RANDOM_SEED})'
    )
    parser.add_argument(
        '--n-treatment',
        type=int,
        default=TrialDesignConfig.N_TREATMENT,
        help='Subjects in the treatment arm'
    )
    parser.add_argument(
        '--n-control',
        type=int,
        default=TrialDesignConfig.N_CONTROL,
        help='Subjects in the control arm'
    )
    parser.add_argument(
        '--output-dir',
        type=Path,
        default=OUTPUT_DIR,
        help='Directory for tables and figures'
    )
    parser.add_argument(
        '--no-save',
        action='store_true',
        help="Don't save tables or the figure"
    )
    parser.add_argument(
        '--show',
        action='store_true',
        help='Show the figure interactively'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Run with minimal output'
    )
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    try:
        results = run_rescue_analysis(
            seed=args.seed,
            n_treatment=args.n_treatment,
            n_control=args.n_control,
            output_dir=args.output_dir,
            save_outputs=not args.no_save,
            verbose=not args.quiet,
        )
    except Exception as e:
        print(f"Error during analysis: {str(e)}")
        return 1

    if args.show and results['figure'] is not None:
        TrajectoryVisualizer.show_all()
        TrajectoryVisualizer.close_all()

    return 0


if __name__ == "__main__":
    sys.exit(main())
