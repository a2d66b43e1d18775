#!/usr/bin/env python3
"""
Main control script for ep → e'p'K⁺K⁻ (φ → K⁺K⁻) event reconstruction

This script:
1. Streams the REC::Particle bank from one or more ROOT files
2. Applies the exclusivity selections configured for the channel
3. Reconstructs candidates, the missing kaon (if any) and the observables
4. Writes one row per surviving event to a ROOT tree

Usage:
    # Full detection with the shipped configuration
    python -m phi_analysis.main --channel full --input run.root --output full.root

    # Missing K⁻ at a different beam energy
    python -m phi_analysis.main --channel missing_kminus --input run.root \\
        --output mkm.root --beam-energy 10.2
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import awkward as ak

from .modules.channels import CHANNELS, get_channel
from .modules.data_handler import DEFAULT_CONFIG_DIR, DataManager, TOMLConfig
from .modules.event_selection import EventSelector
from .modules.exceptions import AnalysisError, DataLoadError
from .utils.logging_config import suppress_warnings


def setup_logging(verbose=False):
    """Configure logging level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger("PhiAnalysis")


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Reconstruction of ep → e'p'K⁺K⁻ events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Channels:
  full              e', p', K⁺ and K⁻ all measured
  missing_kminus    K⁻ reconstructed from e', p', K⁺ (alias: exclusive_kplus)
  missing_kplus     K⁺ reconstructed from e', p', K⁻ (alias: exclusive_kminus)

Input files default to [input] files of data.toml, the output file to
<[output] base_path>/<channel>.root.
        """
    )

    parser.add_argument(
        "--channel",
        default="full",
        choices=list(CHANNELS),
        help="Reconstruction hypothesis (default: full)"
    )

    parser.add_argument(
        "--config-dir",
        default=str(DEFAULT_CONFIG_DIR),
        help="Directory with reconstruction/selection/data TOML files"
    )

    parser.add_argument(
        "--input",
        nargs='+',
        default=None,
        help="Input ROOT files"
    )

    parser.add_argument(
        "--output",
        default=None,
        help="Output ROOT file"
    )

    parser.add_argument(
        "--beam-energy",
        type=float,
        default=None,
        help="Override [beam] energy of reconstruction.toml (GeV)"
    )

    parser.add_argument(
        "--warnings",
        default="off",
        choices=["off", "error", "default", "all"],
        help="Warning level (default: off)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    return parser.parse_args(argv)


def run_reconstruction(config: TOMLConfig,
                       channel: str,
                       inputs: Sequence[str],
                       output: Path,
                       beam_energy: Optional[float] = None) -> ak.Array:
    """
    Select, reconstruct and write one channel

    Args:
        config: Loaded configuration
        channel: Name registered in CHANNELS
        inputs: Input ROOT files
        output: Output ROOT file
        beam_energy: Beam energy override (GeV), config value if None

    Returns:
        The reconstructed events that were written
    """
    logger = logging.getLogger("PhiAnalysis.Pipeline")

    reconstruct = get_channel(channel)
    beam_energy = beam_energy if beam_energy is not None else config.get_beam_energy()
    sentinel = config.get_sentinel()
    selections = config.get_pipeline_selections(channel)

    selector = EventSelector.from_config(config)
    data_manager = DataManager(config)

    logger.info(f"Channel: {channel}, beam energy: {beam_energy} GeV")
    logger.info(f"Selections: {selections or 'none'}")

    results = []
    for chunk in data_manager.iterate_events(inputs):
        selected = selector.apply(chunk, selections)
        results.append(reconstruct(selected, beam_energy, sentinel=sentinel))

    if not results:
        raise DataLoadError(f"No events read from {list(inputs)}")

    events = ak.concatenate(results) if len(results) > 1 else results[0]
    logger.info(f"Reconstructed {len(events)} events")

    data_manager.write_events(events, output)
    return events


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main function"""
    args = parse_args(argv)
    logger = setup_logging(args.verbose)
    suppress_warnings(args.warnings)

    try:
        config = TOMLConfig(args.config_dir)

        inputs = args.input or config.get_input_files()
        if not inputs:
            raise DataLoadError(
                "No input files given\n"
                "Use --input or set [input] files in data.toml"
            )
        output = Path(args.output) if args.output else config.get_output_path() / f"{args.channel}.root"

        run_reconstruction(config, args.channel, inputs, output, args.beam_energy)

    except AnalysisError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Output written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
