"""
Co-expression Module Simulator

Generates reproducible synthetic gene expression data with a known
co-expression module structure, for testing weighted gene co-expression
network analysis tools.
"""

__version__ = "0.1.0"

from .config import (
    DEFAULT_BACKGROUND_LABEL,
    DEFAULT_LOADING,
    InvalidConfiguration,
    ModuleSpec,
    SimulationConfig,
    load_config,
    tutorial_config,
    validate_config,
)
from .diagnostics import (
    RecoveryResult,
    correlation_pvalues,
    eigengene_network,
    empirical_mixing_correlation,
    evaluate_module_recovery,
    gene_significance,
    module_membership,
    plot_eigengene_network,
    realized_effect_sizes,
)
from .export import export_simulation, load_expression
from .simulation import (
    TRAIT_HIGH,
    TRAIT_LOW,
    DimensionMismatch,
    ExpressionResult,
    LabeledExpression,
    ReferenceAndModules,
    SimulatedModuleData,
    generate_expression_matrix,
    generate_reference_and_modules,
    label_entities,
    median_split,
    mix_signals,
    partition_genes,
    simulate_modules,
)

__all__ = [
    # Configuration
    "DEFAULT_BACKGROUND_LABEL",
    "DEFAULT_LOADING",
    "InvalidConfiguration",
    "ModuleSpec",
    "SimulationConfig",
    "load_config",
    "tutorial_config",
    "validate_config",
    # Simulation
    "TRAIT_HIGH",
    "TRAIT_LOW",
    "DimensionMismatch",
    "ExpressionResult",
    "LabeledExpression",
    "ReferenceAndModules",
    "SimulatedModuleData",
    "generate_expression_matrix",
    "generate_reference_and_modules",
    "label_entities",
    "median_split",
    "mix_signals",
    "partition_genes",
    "simulate_modules",
    # Diagnostics
    "RecoveryResult",
    "correlation_pvalues",
    "eigengene_network",
    "empirical_mixing_correlation",
    "evaluate_module_recovery",
    "gene_significance",
    "module_membership",
    "plot_eigengene_network",
    "realized_effect_sizes",
    # Export
    "export_simulation",
    "load_expression",
    # Meta
    "__version__",
]
