"""
Tests for exporting simulated data to files.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from coexpression_sim.export import export_simulation, load_expression


class TestExportSimulation:
    """Tests for export_simulation."""

    def test_csv_files_written(self, small_data, temp_output_dir):
        """Test the default export writes four tables and metadata."""
        written = export_simulation(small_data, str(temp_output_dir))

        names = sorted(Path(p).name for p in written)
        assert names == [
            "eigengenes.csv",
            "expression.csv",
            "metadata.json",
            "traits.csv",
            "true_modules.csv",
        ]
        assert all(Path(p).exists() for p in written)

    def test_expression_round_trip(self, small_data, temp_output_dir):
        """Test the exported matrix reads back unchanged."""
        export_simulation(small_data, str(temp_output_dir))
        loaded = load_expression(str(temp_output_dir / "expression.csv"))

        assert loaded.shape == (20, 100)
        assert list(loaded.index) == list(small_data.expression.index)
        assert list(loaded.columns) == list(small_data.expression.columns)
        np.testing.assert_allclose(loaded.to_numpy(), small_data.expression.to_numpy())

    def test_true_modules(self, small_data, temp_output_dir):
        """Test the module table lists every gene once."""
        export_simulation(small_data, str(temp_output_dir))
        modules = pd.read_csv(temp_output_dir / "true_modules.csv")

        assert list(modules.columns) == ["gene_id", "module"]
        assert len(modules) == 100
        assert modules["gene_id"].is_unique
        assert modules["module"].value_counts()["grey"] == small_data.background_size

    def test_eigengenes_and_traits(self, small_data, temp_output_dir):
        """Test eigengene and trait tables carry y."""
        export_simulation(small_data, str(temp_output_dir))
        eigengenes = pd.read_csv(temp_output_dir / "eigengenes.csv", index_col=0)
        traits = pd.read_csv(temp_output_dir / "traits.csv", index_col=0)

        assert list(eigengenes.columns) == ["y", "MEturquoise", "MEblue", "MEbrown"]
        assert list(traits.columns) == ["y", "trait"]
        assert set(traits["trait"]) == {"high", "low"}

    def test_metadata(self, tutorial_data, temp_output_dir):
        """Test metadata carries the summary and the configuration."""
        export_simulation(tutorial_data, str(temp_output_dir))
        metadata = json.loads((temp_output_dir / "metadata.json").read_text())

        assert metadata["summary"]["background_size"] == 1410
        assert metadata["summary"]["seed"] == 1
        assert metadata["config"]["simulation"]["n_genes"] == 3000
        assert len(metadata["config"]["modules"]) == 5

    def test_tsv_format(self, small_data, temp_output_dir):
        """Test tab-separated export."""
        written = export_simulation(small_data, str(temp_output_dir), formats=["tsv"])

        assert str(temp_output_dir / "expression.tsv") in written
        loaded = load_expression(str(temp_output_dir / "expression.tsv"))
        assert loaded.shape == (20, 100)

    def test_creates_directory(self, small_data, tmp_path):
        """Test nested output directories are created."""
        target = tmp_path / "nested" / "run"
        export_simulation(small_data, str(target))
        assert (target / "expression.csv").exists()

    def test_unknown_format(self, small_data, temp_output_dir):
        """Test unsupported formats are rejected."""
        with pytest.raises(ValueError, match="Unsupported"):
            export_simulation(small_data, str(temp_output_dir), formats=["xlsx"])
