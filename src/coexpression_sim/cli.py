"""
Command-line interface for the co-expression module simulator.

Usage:
    python -m coexpression_sim --output outputs/simulated
    coexsim --config configs/tutorial.yaml --seed 7
"""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import InvalidConfiguration, SimulationConfig, load_config, validate_config
from .diagnostics import plot_eigengene_network, realized_effect_sizes
from .export import export_simulation
from .simulation import DimensionMismatch, simulate_modules

DEFAULT_OUTPUT_DIR = "outputs/simulated"


def setup_logging(output_dir: Path, verbose: bool) -> None:
    """Log to a file in the output directory and to stdout."""
    output_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(output_dir / "simulation.log"),
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    default=None,
    help="Path to YAML configuration file (default: tutorial scenario)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Override output directory from config",
)
@click.option(
    "--seed",
    "-s",
    type=int,
    default=None,
    help="Override random seed from config",
)
@click.option(
    "--plot/--no-plot",
    default=False,
    help="Save an eigengene network heatmap",
)
@click.option(
    "--verbose/--quiet",
    "-v/-q",
    default=True,
    help="Enable/disable verbose output",
)
@click.version_option(version=__version__, prog_name="coexpression-sim")
def main(config: str, output: str, seed: int, plot: bool, verbose: bool) -> None:
    """
    Co-expression Module Simulator

    Generate synthetic expression data with known co-expression modules
    and export it for network analysis tools.

    Example:
        coexsim --config configs/tutorial.yaml --output outputs/run1
    """
    click.echo(f"Co-expression Module Simulator v{__version__}")
    click.echo("=" * 50)

    try:
        formats = None
        output_dir = DEFAULT_OUTPUT_DIR
        if config:
            click.echo(f"Loading config: {config}")
            raw = load_config(config)
            validate_config(raw)
            sim_config = SimulationConfig.from_dict(raw)
            output_section = raw.get("output", {}) or {}
            output_dir = output_section.get("output_dir", output_dir)
            formats = output_section.get("formats")
        else:
            click.echo("Using tutorial scenario")
            sim_config = SimulationConfig()

        if output:
            output_dir = output
        if seed is not None:
            sim_config.seed = seed

        output_path = Path(output_dir)
        setup_logging(output_path, verbose)

        data = simulate_modules(sim_config)
        export_simulation(data, str(output_path), formats=formats)

        if plot:
            plot_eigengene_network(data, output_path=str(output_path / "eigengene_network.png"))

        summary = data.to_dict()
        click.echo("")
        click.echo(
            f"Simulated {summary['n_samples']} samples x {summary['n_genes']} genes "
            f"(seed {summary['seed']})"
        )
        for name, size in summary["module_sizes"].items():
            click.echo(f"  {name}: {size} genes")
        click.echo(f"  {summary['background_label']}: {summary['background_size']} genes")

        if verbose:
            effects = realized_effect_sizes(data)
            click.echo("")
            click.echo(
                effects[["target_effect_size", "realized_anchor_correlation", "mean_kME"]]
                .round(3)
                .to_string()
            )

        click.echo("")
        click.echo(f"Results: {output_path}")

    except (InvalidConfiguration, DimensionMismatch, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Simulation failed: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
