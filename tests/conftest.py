"""
Pytest configuration and shared fixtures for coexpression_sim tests.
"""

import logging
import tempfile
from pathlib import Path

import pytest

from coexpression_sim.config import ModuleSpec, SimulationConfig, tutorial_config
from coexpression_sim.simulation import simulate_modules


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root):
    """Return the configs directory."""
    return project_root / "configs"


@pytest.fixture
def tutorial_config_path(config_dir):
    """Return path to the tutorial scenario config."""
    return config_dir / "tutorial.yaml"


@pytest.fixture
def temp_output_dir():
    """Create a temporary output directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def small_config():
    """A small three-module configuration with a derived module."""
    return SimulationConfig(
        n_samples=20,
        n_genes=100,
        modules=[
            ModuleSpec("turquoise", proportion=0.3, effect_size=0.0, anchor="primary"),
            ModuleSpec("blue", proportion=0.2, effect_size=0.6, anchor="turquoise"),
            ModuleSpec("brown", proportion=0.15, effect_size=-0.6),
        ],
        seed=7,
    )


@pytest.fixture
def small_data(small_config):
    """Simulated bundle for the small configuration."""
    return simulate_modules(small_config)


@pytest.fixture
def tutorial_data():
    """Simulated bundle for the tutorial scenario (50 x 3000, seed 1)."""
    return simulate_modules(tutorial_config(seed=1))


@pytest.fixture
def reset_logging():
    """Drop root handlers installed by the CLI after a test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
