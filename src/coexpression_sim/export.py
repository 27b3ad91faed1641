"""
Export of simulated co-expression data to flat files.

Writes the bundle in the layout co-expression tools expect as input:
- expression.{csv,tsv}: samples x genes matrix
- true_modules.{csv,tsv}: gene_id, module
- eigengenes.{csv,tsv}: sample_id, y, ME<name> columns
- traits.{csv,tsv}: sample_id, y, trait
- metadata.json: run summary and configuration
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .simulation import SimulatedModuleData

logger = logging.getLogger(__name__)

_SEPARATORS = {"csv": ",", "tsv": "\t"}


def export_simulation(
    data: SimulatedModuleData,
    output_dir: str,
    formats: Optional[List[str]] = None,
) -> List[str]:
    """
    Export a simulation bundle to delimited text files and JSON metadata.

    Args:
        data: SimulatedModuleData from simulate_modules()
        output_dir: Directory to write output files
        formats: List of formats to export ("csv", "tsv"). Defaults to ["csv"].

    Returns:
        List of file paths written
    """
    if formats is None:
        formats = ["csv"]
    unknown = [fmt for fmt in formats if fmt not in _SEPARATORS]
    if unknown:
        raise ValueError(f"Unsupported export format(s): {', '.join(unknown)}")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    written_files: List[str] = []

    modules_df = data.module_assignment.rename("module").reset_index()
    eigengenes_df = pd.concat([data.reference_signal, data.eigengenes], axis=1)
    traits_df = pd.concat([data.reference_signal, data.trait_labels], axis=1)

    tables = [
        ("expression", data.expression, True),
        ("true_modules", modules_df, False),
        ("eigengenes", eigengenes_df, True),
        ("traits", traits_df, True),
    ]

    for fmt in formats:
        sep = _SEPARATORS[fmt]
        for name, df, with_index in tables:
            path = output_path / f"{name}.{fmt}"
            df.to_csv(path, sep=sep, index=with_index)
            written_files.append(str(path))

    metadata = {
        "summary": data.to_dict(),
        "config": data.config.to_dict(),
    }
    metadata_path = output_path / "metadata.json"
    metadata_path.write_text(json.dumps(metadata, indent=2), encoding="utf-8")
    written_files.append(str(metadata_path))

    logger.info(f"[Export] Wrote {len(written_files)} files to {output_path}")
    return written_files


def load_expression(path: str) -> pd.DataFrame:
    """Read an exported expression matrix back as a samples x genes DataFrame."""
    sep = "\t" if str(path).endswith(".tsv") else ","
    return pd.read_csv(path, sep=sep, index_col=0)
