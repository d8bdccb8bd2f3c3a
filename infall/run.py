#!/usr/bin/env python3
"""
Headless command-line driver for the infall engine.

Runs a simulation without a renderer, the way a display loop would drive
it: one tick per frame with a fixed frame duration. It handles:
- Configuration loading and validation
- Simulation execution with progress reporting
- Summary output (deaths by cause, fall time vs analytic proper time)
- CSV and JSON output, optional plots
- Graceful keyboard interrupt handling

Usage:
    python -m infall.run config.yaml
    python -m infall.run config.yaml --output-dir results --verbose
    python -m infall.run config.yaml --validate-only
    python -m infall.run --create-example infall.yaml
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Dict, Any

from infall.config import SimConfig, VelocityLaw
from infall.diagnostics import population_summary, proper_fall_time
from infall.errors import ConfigurationError
from infall.io_cfg import (
    load_config,
    validate_config,
    create_example_config,
    save_history_csv,
    save_diagnostics_json,
)
from infall.lifecycle import Simulation, run_ticks
from infall.render import horizon_marker


# ============================================================================
# Main simulation runner
# ============================================================================

def run_simulation(
    config: SimConfig,
    n_ticks: int,
    elapsed: float,
    verbose: bool = False,
    save_every: int = 1,
    stop_when_absorbed: bool = True,
) -> Dict[str, Any]:
    """
    Run the infall simulation headless.

    Parameters
    ----------
    config : SimConfig
        Validated configuration
    n_ticks : int
        Maximum number of frames
    elapsed : float
        Frame duration [s]
    verbose : bool
        Enable verbose progress output
    save_every : int
        Record history every N ticks
    stop_when_absorbed : bool
        Stop when the whole population has been absorbed

    Returns
    -------
    results : dict
        - 'simulation': the Simulation after the run
        - 'history': history from run_ticks
        - 'summary': summary statistics dict
    """
    sim = Simulation(config, verbose=verbose)
    const = sim.constants

    if verbose:
        print("=" * 80)
        print("RELATIVISTIC INFALL")
        print("=" * 80)
        print()
        print("Black hole:")
        print(f"  Mass:               {const.mass:.6e} kg ({const.mass_solar:.3f} M_sun)")
        print(f"  Schwarzschild rs:   {const.rs:.6e} m")
        print(f"  rs (display units): {const.rs * config.meters_to_units:.6e}")
        print()
        print(f"Body: {config.body_size:.3e} m, {config.n_elements} elements "
              f"({config.subdivisions}^3), released at {config.start_radius_rs:.3f} rs")
        print()
        print("Integration:")
        print(f"  Velocity law:       {config.velocity_law.value}")
        if config.velocity_law is VelocityLaw.PROPER:
            print(f"  Epsilon:            {config.epsilon:.3e}")
        else:
            print(f"  Step:               {config.step:.3e} s")
        print(f"  Horizon floor:      {config.horizon_floor:.3e}")
        print(f"  Frame duration:     {elapsed:.6e} s")
        print()

    t_start = time.time()
    history = run_ticks(sim, n_ticks, elapsed, {
        'save_every': save_every,
        'stop_when_absorbed': stop_when_absorbed,
        'verbose': verbose,
        'progress_every': max(1, n_ticks // 100),
    })
    wall = time.time() - t_start

    summary = compute_summary(sim, history, wall)

    return {
        'simulation': sim,
        'history': history,
        'summary': summary,
    }


def compute_summary(sim: Simulation, history: Dict, elapsed_time: float) -> Dict[str, Any]:
    """
    Compute summary statistics from a recorded run.

    Parameters
    ----------
    sim : Simulation
        Simulation after the run
    history : dict
        History from run_ticks
    elapsed_time : float
        Wall-clock time of the run [seconds]

    Returns
    -------
    summary : dict
        - timing: wall time, ticks/sec
        - population: counts, causes, extremes (diagnostics.population_summary)
        - fall: proper time of the slowest element vs the analytic value
    """
    const = sim.constants
    ticks_run = history['ticks_run']

    r0_centre = sim.config.start_radius_rs * const.rs
    tau_analytic = proper_fall_time(r0_centre, const.rs, const.c,
                                    r=const.rs * (1.0 + sim.config.horizon_floor))

    # counted per tick by run_ticks, so deaths before a reset are kept
    return {
        'timing': {
            'elapsed_seconds': elapsed_time,
            'ticks_per_second': ticks_run / elapsed_time if elapsed_time > 0 else 0.0,
            'ticks_run': ticks_run,
        },
        'population': population_summary(sim.bodies, const.rs),
        'fall': {
            'n_deaths': history['deaths'],
            'max_tau_at_death': history['max_death_tau'],
            'analytic_tau_centre_to_floor': tau_analytic,
        },
        'resets': history['resets'],
    }


def print_summary(summary: Dict[str, Any]) -> None:
    """Print human-readable simulation summary."""
    print()
    print("=" * 80)
    print("SIMULATION SUMMARY")
    print("=" * 80)
    print()

    t = summary['timing']
    print("Performance:")
    print(f"  Wall time:          {t['elapsed_seconds']:.2f} seconds")
    print(f"  Ticks run:          {t['ticks_run']:,}")
    print(f"  Speed:              {t['ticks_per_second']:.1f} ticks/second")
    print()

    p = summary['population']
    print("Population:")
    print(f"  Elements:           {p['n_bodies']}")
    print(f"  Alive / dead:       {p['n_alive']} / {p['n_dead']}")
    for cause, count in sorted(p['death_causes'].items()):
        print(f"    {cause:16s}  {count}")
    print(f"  Min radius:         {p['min_r_rs']:.6f} rs")
    print(f"  Max stretch:        {p['max_stretch']:.4f}")
    print(f"  Resets:             {summary['resets']}")
    print()

    f = summary['fall']
    print("Fall:")
    if f['max_tau_at_death'] is not None:
        print(f"  Max proper time at death: {f['max_tau_at_death']:.6e} s")
    print(f"  Analytic tau (centre to floor): {f['analytic_tau_centre_to_floor']:.6e} s")
    print()


def save_outputs(results: Dict[str, Any], output_dir: Path, plots: bool = False,
                 verbose: bool = False) -> None:
    """Save history CSV, diagnostics JSON and optional plots."""
    output_dir.mkdir(parents=True, exist_ok=True)
    sim = results['simulation']

    csv_path = output_dir / "history.csv"
    if verbose:
        print(f"Saving history to {csv_path}...")
    save_history_csv(str(csv_path), results['history'])

    json_path = output_dir / "diagnostics.json"
    save_diagnostics_json(str(json_path), {
        'config': vars(sim.config),
        'rs': sim.constants.rs,
        'summary': results['summary'],
    })

    if plots:
        from infall.viz import plot_infall_history, plot_render_snapshot

        plot_infall_history(results['history'], sim.constants.rs,
                            str(output_dir / "history.png"),
                            horizon_floor=sim.config.horizon_floor)
        plot_render_snapshot(sim.snapshots(), horizon_marker(sim.constants, sim.config),
                             str(output_dir / "snapshot.png"))

    print()
    print(f"✓ Outputs saved to: {output_dir.absolute()}")
    print()


# ============================================================================
# Command-line interface
# ============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='infall.run',
        description=(
            'Relativistic infall engine: drop a lattice of test bodies toward a '
            'non-rotating black hole and record radius, proper time, tidal '
            'stretch and opacity per frame.'
        ),
        epilog=(
            'Examples:\n'
            '  python -m infall.run infall.yaml\n'
            '  python -m infall.run infall.yaml --output-dir results --verbose\n'
            '  python -m infall.run infall.yaml --validate-only\n'
            '  python -m infall.run --create-example infall.yaml\n'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        'config',
        type=str,
        help='Path to YAML configuration file',
    )

    parser.add_argument(
        '--create-example',
        action='store_true',
        help='Write an example configuration to CONFIG and exit',
    )

    parser.add_argument(
        '--ticks',
        type=int,
        default=100000,
        help='Maximum number of frames (default: 100000)',
    )

    parser.add_argument(
        '--elapsed',
        type=float,
        default=1.0 / 60.0,
        help='Frame duration in seconds (default: 1/60)',
    )

    parser.add_argument(
        '--save-every',
        type=int,
        default=10,
        help='Record history every N frames (default: 10)',
    )

    parser.add_argument(
        '--keep-running',
        action='store_true',
        help='Keep ticking through cooldown and resets instead of stopping at absorption',
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        default='output',
        help='Output directory for results (default: output/)',
    )

    parser.add_argument(
        '--plots',
        action='store_true',
        help='Write history and snapshot plots',
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output (progress, transitions)',
    )

    parser.add_argument(
        '--validate-only',
        action='store_true',
        help='Validate configuration and exit (no simulation)',
    )

    return parser


def main(argv=None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.create_example:
        create_example_config(args.config)
        return 0

    if args.ticks < 1 or args.save_every < 1 or not args.elapsed >= 0:
        print("ERROR: --ticks and --save-every must be >= 1 and --elapsed >= 0", file=sys.stderr)
        return 2

    # 1) Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"ERROR: Configuration file not found: {args.config}", file=sys.stderr)
        return 1
    except ConfigurationError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    # 2) Validate configuration
    is_valid, warnings_list = validate_config(config)

    if warnings_list:
        print("⚠️  Configuration warnings/errors:")
        for w in warnings_list:
            print(f"    - {w}")
        print()

    if not is_valid:
        print("❌ Configuration is INVALID. Please fix errors above.", file=sys.stderr)
        return 1

    if args.validate_only:
        print("✓ Configuration validated successfully. Exiting (--validate-only mode).")
        return 0

    # 3) Run simulation
    try:
        results = run_simulation(
            config,
            args.ticks,
            args.elapsed,
            verbose=args.verbose,
            save_every=args.save_every,
            stop_when_absorbed=not args.keep_running,
        )
    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user. Exiting without saving.")
        return 130

    # 4) Summary and outputs
    print_summary(results['summary'])

    try:
        save_outputs(results, Path(args.output_dir), plots=args.plots, verbose=args.verbose)
    except OSError as e:
        print(f"ERROR: Failed to save outputs: {e}", file=sys.stderr)
        return 1

    print("=" * 80)
    print("✓ Simulation complete!")
    print("=" * 80)
    print()

    return 0


if __name__ == '__main__':
    sys.exit(main())
