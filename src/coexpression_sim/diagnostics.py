"""
Diagnostics for simulated co-expression data.

Checks that a generated fixture carries the structure it was asked for:
- Eigengene network (correlations between y and the module eigengenes)
- Module membership (kME) and gene significance with p-values
- Realized versus target effect sizes per module
- Agreement between detected and true modules (ARI / NMI)

These are plain correlation and agreement statistics; network
construction and module detection belong to the analysis library that
consumes the fixture.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import adjusted_rand_score, normalized_mutual_info_score

from .config import ANCHOR_PRIMARY, ANCHOR_REFERENCE
from .simulation import SimulatedModuleData, mix_signals
from .utils.seed import get_rng, spawn_seeds

logger = logging.getLogger(__name__)


def correlation_pvalues(r: Any, n_samples: int) -> np.ndarray:
    """
    Two-sided Student-t p-values for Pearson correlations.

    Args:
        r: Correlation coefficient(s)
        n_samples: Number of observations behind each coefficient

    Returns:
        Array of p-values with the shape of ``r``
    """
    r = np.clip(np.asarray(r, dtype=float), -1.0, 1.0)
    df = n_samples - 2
    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = r * np.sqrt(df / (1.0 - r**2))
    return 2 * stats.t.sf(np.abs(t_stat), df)


def _correlate_columns(matrix: pd.DataFrame, vector: np.ndarray) -> np.ndarray:
    x = matrix.to_numpy(dtype=float)
    x = x - x.mean(axis=0)
    v = np.asarray(vector, dtype=float)
    v = v - v.mean()
    denom = np.sqrt((x**2).sum(axis=0)) * np.sqrt((v**2).sum())
    with np.errstate(divide="ignore", invalid="ignore"):
        return (x.T @ v) / denom


def eigengene_network(data: SimulatedModuleData) -> pd.DataFrame:
    """Correlation matrix of the reference signal y and all module eigengenes."""
    frame = pd.concat([data.reference_signal, data.eigengenes], axis=1)
    return frame.corr(method="pearson")


def module_membership(
    expression: pd.DataFrame,
    eigengenes: pd.DataFrame,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Module membership (kME) of every gene in every module.

    Args:
        expression: Samples x genes expression matrix
        eigengenes: Samples x modules eigengenes (ME<name> columns)

    Returns:
        Tuple of (kME table, p-value table), both genes x modules with
        kME<name> columns
    """
    if not expression.index.equals(eigengenes.index):
        raise ValueError("expression and eigengenes must share the same sample index")

    kme = {}
    for column in eigengenes.columns:
        name = column[2:] if column.startswith("ME") else column
        kme[f"kME{name}"] = _correlate_columns(expression, eigengenes[column].to_numpy())

    kme_df = pd.DataFrame(kme, index=expression.columns)
    pvalues = pd.DataFrame(
        correlation_pvalues(kme_df.to_numpy(), expression.shape[0]),
        index=kme_df.index,
        columns=kme_df.columns,
    )
    return kme_df, pvalues


def gene_significance(expression: pd.DataFrame, trait: pd.Series) -> pd.DataFrame:
    """
    Correlation of each gene with a numeric sample trait.

    Args:
        expression: Samples x genes expression matrix
        trait: Numeric trait per sample (aligned on the sample index)

    Returns:
        DataFrame indexed by gene with "GS" and "p_value" columns
    """
    trait = trait.reindex(expression.index)
    if trait.isna().any():
        raise ValueError("trait is missing values for some expression samples")

    gs = _correlate_columns(expression, trait.to_numpy(dtype=float))
    return pd.DataFrame(
        {"GS": gs, "p_value": correlation_pvalues(gs, expression.shape[0])},
        index=expression.columns,
    )


def realized_effect_sizes(data: SimulatedModuleData) -> pd.DataFrame:
    """
    Compare target and realized correlations for every module.

    For the primary module the anchor is the reference signal, since its
    effect size sets the correlation between its eigengene and y.

    Returns:
        DataFrame indexed by module name
    """
    kme, _ = module_membership(data.expression, data.eigengenes)
    y = data.reference_signal.to_numpy()

    rows = []
    for module in data.config.modules:
        eigengene = data.eigengenes[f"ME{module.name}"].to_numpy()
        if module.anchor in (ANCHOR_PRIMARY, ANCHOR_REFERENCE):
            anchor_vector = y
        else:
            anchor_vector = data.eigengenes[f"ME{module.anchor}"].to_numpy()

        members = data.module_genes(module.name)
        mean_kme = float(kme.loc[members, f"kME{module.name}"].mean()) if members else np.nan

        rows.append(
            {
                "module": module.name,
                "anchor": module.anchor,
                "target_effect_size": module.effect_size,
                "realized_anchor_correlation": float(np.corrcoef(eigengene, anchor_vector)[0, 1]),
                "realized_reference_correlation": float(np.corrcoef(eigengene, y)[0, 1]),
                "target_loading": module.loading,
                "mean_kME": mean_kme,
                "n_genes": len(members),
            }
        )

    return pd.DataFrame(rows).set_index("module")


def empirical_mixing_correlation(
    rho: float,
    n_samples: int = 50,
    n_repeats: int = 100,
    seed: Optional[int] = None,
) -> float:
    """
    Average realized correlation of the mixing law over repeated seeds.

    Args:
        rho: Target correlation
        n_samples: Vector length per repeat
        n_repeats: Number of independent repeats
        seed: Base seed; each repeat gets its own derived stream

    Returns:
        Mean Pearson correlation between base and mixed vectors
    """
    correlations = []
    for repeat_seed in spawn_seeds(seed, n_repeats):
        rng = get_rng(repeat_seed)
        base = rng.standard_normal(n_samples)
        mixed = mix_signals(base, rho, rng)
        correlations.append(np.corrcoef(base, mixed)[0, 1])
    return float(np.mean(correlations))


@dataclass
class RecoveryResult:
    """
    Agreement between detected modules and the simulated ground truth.

    Attributes:
        ari: Adjusted Rand Index between predicted and true modules
        nmi: Normalized Mutual Information
        n_modules_predicted: Number of distinct predicted labels
        n_modules_true: Number of distinct true labels
        correct_k: Whether the number of modules matches
    """

    ari: float
    nmi: float
    n_modules_predicted: int
    n_modules_true: int
    correct_k: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ari": round(self.ari, 4),
            "nmi": round(self.nmi, 4),
            "n_modules_predicted": self.n_modules_predicted,
            "n_modules_true": self.n_modules_true,
            "correct_k": self.correct_k,
        }


def evaluate_module_recovery(predicted_labels: Any, true_labels: Any) -> RecoveryResult:
    """
    Evaluate how well a module detection recovered the simulated modules.

    Labels are compared as partitions, so module names need not match.

    Args:
        predicted_labels: Detected module per gene
        true_labels: Simulated module per gene (e.g. data.module_assignment)

    Returns:
        RecoveryResult with ARI, NMI and module counts
    """
    predicted = np.asarray(predicted_labels)
    truth = np.asarray(true_labels)
    if predicted.shape != truth.shape:
        raise ValueError(
            f"Label vectors differ in length: {predicted.shape[0]} vs {truth.shape[0]}"
        )

    ari = adjusted_rand_score(truth, predicted)
    nmi = normalized_mutual_info_score(truth, predicted)

    n_pred = len(np.unique(predicted))
    n_true = len(np.unique(truth))

    logger.info(f"[Diagnostics] Module recovery: ARI={ari:.3f}, NMI={nmi:.3f}")

    return RecoveryResult(
        ari=float(ari),
        nmi=float(nmi),
        n_modules_predicted=n_pred,
        n_modules_true=n_true,
        correct_k=(n_pred == n_true),
    )


def plot_eigengene_network(
    data: SimulatedModuleData,
    output_path: Optional[str] = None,
    figsize: Tuple[int, int] = (8, 7),
) -> Any:
    """
    Heatmap of the eigengene network (y and every module eigengene).

    Args:
        data: Simulation bundle
        output_path: Optional file path to save the figure
        figsize: Figure size (width, height) in inches

    Returns:
        matplotlib Figure object
    """
    import matplotlib.pyplot as plt

    network = eigengene_network(data)
    labels = list(network.columns)
    matrix = network.to_numpy()

    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(matrix, cmap="RdBu_r", vmin=-1, vmax=1)

    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=45, ha="right", fontsize=9)
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels, fontsize=9)

    for i in range(matrix.shape[0]):
        for j in range(matrix.shape[1]):
            val = matrix[i, j]
            color = "white" if abs(val) > 0.6 else "black"
            ax.text(j, i, f"{val:.2f}", ha="center", va="center", color=color, fontsize=8)

    ax.set_title("Eigengene Network (Pearson correlation)", fontsize=13)
    fig.colorbar(im, ax=ax, label="Correlation", shrink=0.8)
    fig.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        logger.info(f"[Diagnostics] Saved eigengene network heatmap: {output_path}")
        plt.close(fig)

    return fig
