#!/usr/bin/env python3
"""
Command-line acne progression simulator.

Runs a headless simulation, prints a summary and optionally exports the
stage events, the level timeline and the full results.

Usage:
    python simulate.py [--hours HOURS] [--tick TICK] [--preset PRESET]
                       [--accelerator X] [--config DIR] [--stop-at STAGE]
                       [--csv FILE] [--levels-csv FILE] [--json FILE]
    python simulate.py --demo

Examples:
    python simulate.py --hours 240 --preset oily_skin
    python simulate.py --stop-at pustule --csv events.csv
    python simulate.py --preset aggravated --log-level debug
"""

import os
import sys
import argparse

from acnesim.config import ConfigError, load_config
from acnesim.core.stages import Stage
from acnesim.output import LogLevel, create_console_logger
from acnesim.simulation import SimulationRunner, run_demo


DEFAULT_CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config')


def write_exports(args, results) -> None:
    """Write the requested result files."""
    if args.csv:
        with open(args.csv, 'w', newline='') as f:
            f.write(results.stage_events_to_csv())
        print(f"Stage events written to {args.csv}")

    if args.levels_csv:
        with open(args.levels_csv, 'w', newline='') as f:
            f.write(results.levels_to_csv())
        print(f"Level timeline written to {args.levels_csv}")

    if args.json:
        with open(args.json, 'w') as f:
            f.write(results.to_json())
        print(f"Results written to {args.json}")


def run_batch(args, config) -> int:
    """Run a headless simulation from the parsed arguments."""
    logger = create_console_logger(level=LogLevel.from_name(args.log_level))
    runner = SimulationRunner(config=config, logger=logger)
    runner.configure(
        duration=args.hours,
        tick_hours=args.tick,
        initial_preset=args.preset,
        progression_accelerator=args.accelerator,
        stop_at_stage=args.stop_at,
        sample_interval=args.sample_interval,
    )

    tick = runner.sim_config.tick_hours
    per_tick = f" at {tick}h per tick" if tick is not None else ""
    print(f"Simulating {args.hours:.0f}h{per_tick}...")
    results = runner.run()
    print(results.summary())

    write_exports(args, results)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Acne lesion progression simulator"
    )
    parser.add_argument('--hours', type=float, default=120.0,
                        help='Simulated hours to run (default: 120)')
    parser.add_argument('--tick', type=float,
                        help='Simulated hours per tick (default: tick_hours from engine.json)')
    parser.add_argument('--preset', help='Parameter preset ID from presets.json')
    parser.add_argument('--accelerator', type=float,
                        help='Progression accelerator (0.1-10)')
    parser.add_argument('--config',
                        help='Config directory (default: ./config next to this script)')
    parser.add_argument('--stop-at', choices=[s.value for s in Stage],
                        help='Stop when this stage is entered')
    parser.add_argument('--sample-interval', type=float,
                        help='Level sampling interval in hours '
                             '(default: sample_interval_hours from engine.json)')
    parser.add_argument('--csv', help='Write stage events to CSV')
    parser.add_argument('--levels-csv', help='Write the level timeline to CSV')
    parser.add_argument('--json', help='Write full results to JSON')
    parser.add_argument('--log-level', default='info',
                        choices=['trace', 'debug', 'info', 'warning', 'error', 'none'])
    parser.add_argument('--demo', action='store_true',
                        help='Run the demo scenario')

    args = parser.parse_args(argv)

    if args.tick is not None and not 0 < args.tick < float("inf"):
        parser.error("--tick must be a positive number of hours")
    if args.sample_interval is not None and not 0 < args.sample_interval < float("inf"):
        parser.error("--sample-interval must be a positive number of hours")

    config_dir = args.config
    if config_dir is None and os.path.isdir(DEFAULT_CONFIG_DIR):
        config_dir = DEFAULT_CONFIG_DIR

    config = None
    if config_dir:
        try:
            config = load_config(config_dir)
        except ConfigError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 2

    if args.demo:
        results = run_demo(config_path=config_dir)
        print(results.summary())
        write_exports(args, results)
        return 0

    return run_batch(args, config)


if __name__ == "__main__":
    sys.exit(main())
