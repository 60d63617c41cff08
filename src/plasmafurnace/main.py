"""
Command Line Runner
===================
Runs one simulation described by a JSON configuration file.

Why is this file needed?
------------------------
It is the composition root for batch use. It:
1. Sets up logging (console + optional file).
2. Loads and validates the SimulationConfig.
3. Runs the simulation and prints a summary.
4. Optionally stores the full result in an HDF5 file.

Exit codes: 0 success, 1 cancelled, 2 invalid configuration, 3 run failed.
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from plasmafurnace.controller.workers import SimulationRun
from plasmafurnace.errors import ConfigurationError, SimulationError
from plasmafurnace.logging_config import setup_logging
from plasmafurnace.model.io import IOManager
from plasmafurnace.model.state import SimulationConfig
from plasmafurnace.utils import kelvin_to_celsius

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plasmafurnace",
        description="Transient heat-transfer simulation of a cylindrical plasma furnace.",
    )
    parser.add_argument("config", help="Path to the JSON simulation configuration.")
    parser.add_argument("-o", "--output", help="Write the full result to this HDF5 file.")
    parser.add_argument("--log-file", help="Also write the log to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every time step.")
    parser.add_argument(
        "--log-every",
        type=int,
        default=1,
        metavar="N",
        help="With --verbose, log only every N-th time step.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    if args.log_every < 1:
        parser.error("--log-every must be >= 1")
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
        step_interval=args.log_every,
    )

    # 2. Load the configuration
    try:
        config = SimulationConfig.load_json(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read configuration '{args.config}': {e}")
        return 2

    # 3. Run
    try:
        result = SimulationRun(config).run()
    except ConfigurationError as e:
        for issue in e.issues:
            logger.error(f"Invalid parameter {issue}")
        return 2
    except SimulationError as e:
        logger.error(f"Simulation failed: {e}")
        return 3

    # 4. Report
    summary = result.summary()
    logger.info(
        f"{summary['termination']}: {summary['steps_executed']} steps, "
        f"{summary['simulated_time']:.2f} s simulated in {summary['execution_time']:.2f} s"
    )
    logger.info(
        f"Final temperature max {summary['max_temperature']:.1f} K "
        f"({kelvin_to_celsius(summary['max_temperature']):.1f} °C), "
        f"mean {summary['mean_temperature']:.1f} K, "
        f"max melt fraction {summary['max_melt_fraction']:.3f}"
    )
    logger.info(f"Energy conservation error {summary['energy_conservation_error']:.2e}")

    # 5. Save
    if args.output:
        IOManager.save_result(result, args.output)

    return 1 if result.was_cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
