"""
Configuration loading and validation.

Defines the simulation data model (module definitions and the run
configuration) and utility functions for loading it from YAML files.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Tightness of gene membership in its module when not set per module
DEFAULT_LOADING = 0.8

DEFAULT_BACKGROUND_LABEL = "grey"

ANCHOR_PRIMARY = "primary"
ANCHOR_REFERENCE = "reference"

# Slack allowed when checking that proportions sum to at most 1
PROPORTION_TOLERANCE = 1e-9


class InvalidConfiguration(ValueError):
    """Exception raised for out-of-range or inconsistent simulation settings."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.field = field
        self.value = value
        self.suggestions = suggestions or []
        super().__init__(self._format_message(message))

    def _format_message(self, message: str) -> str:
        lines = [message]
        if self.field:
            lines.append(f"Field: {self.field}")
        if self.value is not None:
            lines.append(f"Value: {self.value!r}")
        if self.suggestions:
            lines.append("\nSuggested fixes:")
            for i, s in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {s}")
        return "\n".join(lines)


def check_correlation(value: Any, field: str) -> float:
    """Check that a correlation-like value is a real number in [-1, 1]."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or math.isnan(value):
        raise InvalidConfiguration(
            f"Invalid {field}: {value} (must be a number in [-1, 1])",
            field=field,
            value=value,
        )
    if value < -1 or value > 1:
        raise InvalidConfiguration(
            f"Invalid {field}: {value} (must be in [-1, 1])",
            field=field,
            value=value,
            suggestions=["Use a correlation between -1 and 1, e.g. 0.6"],
        )
    return float(value)


def check_positive_int(value: Any, field: str, minimum: int = 1) -> int:
    """Check that a count is an integer >= ``minimum``."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < minimum:
        raise InvalidConfiguration(
            f"Invalid {field}: {value} (must be an integer >= {minimum})",
            field=field,
            value=value,
        )
    return value


@dataclass
class ModuleSpec:
    """
    Definition of one simulated co-expression module.

    Attributes:
        name: Module identifier (WGCNA colour names by convention)
        proportion: Fraction of all genes assigned to this module
        effect_size: Correlation between the eigengene and its anchor
        anchor: "primary", "reference", or the name of an earlier module
        loading: Correlation of each member gene with the eigengene
    """

    name: str
    proportion: float = 0.0
    effect_size: float = 0.0
    anchor: str = ANCHOR_REFERENCE
    loading: float = DEFAULT_LOADING

    @property
    def is_primary(self) -> bool:
        return self.anchor == ANCHOR_PRIMARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "proportion": self.proportion,
            "effect_size": self.effect_size,
            "anchor": self.anchor,
            "loading": self.loading,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleSpec":
        if "name" not in data:
            raise InvalidConfiguration(
                "Module definition is missing a name",
                field="modules.name",
                suggestions=["Add 'name: turquoise' (or any unique label) to each module"],
            )
        return cls(
            name=str(data["name"]),
            proportion=data.get("proportion", 0.0),
            effect_size=data.get("effect_size", 0.0),
            anchor=str(data.get("anchor", ANCHOR_REFERENCE)),
            loading=data.get("loading", DEFAULT_LOADING),
        )


def tutorial_modules() -> List[ModuleSpec]:
    """Module layout of the five-module WGCNA simulation tutorial.

    Module sizes and effect sizes follow the tutorial, but the free latent
    vector is the turquoise eigengene (with y independent of it) rather
    than the tutorial's green eigengene. The correlation structure matches;
    the drawn values do not reproduce the R script's output for the same seed.
    """
    return [
        ModuleSpec("turquoise", proportion=0.20, effect_size=0.0, anchor=ANCHOR_PRIMARY),
        ModuleSpec("blue", proportion=0.15, effect_size=0.6, anchor="turquoise"),
        ModuleSpec("brown", proportion=0.08, effect_size=-0.6),
        ModuleSpec("green", proportion=0.06, effect_size=0.6),
        ModuleSpec("yellow", proportion=0.04, effect_size=0.0),
    ]


@dataclass
class SimulationConfig:
    """
    Configuration for synthetic co-expression data generation.

    Attributes:
        n_samples: Number of samples (rows of the expression matrix)
        n_genes: Number of genes (columns of the expression matrix)
        modules: Ordered module definitions; order fixes the draw order
        background_label: Module identifier given to unassigned genes
        seed: Random seed for reproducibility
    """

    n_samples: int = 50
    n_genes: int = 3000
    modules: List[ModuleSpec] = field(default_factory=tutorial_modules)
    background_label: str = DEFAULT_BACKGROUND_LABEL
    seed: Optional[int] = 1

    def __post_init__(self):
        self.modules = [
            m if isinstance(m, ModuleSpec) else ModuleSpec.from_dict(m) for m in self.modules
        ]

    @property
    def module_names(self) -> List[str]:
        return [m.name for m in self.modules]

    @property
    def proportions(self) -> Dict[str, float]:
        return {m.name: m.proportion for m in self.modules}

    @property
    def loadings(self) -> Dict[str, float]:
        return {m.name: m.loading for m in self.modules}

    def validate(self) -> None:
        """Check every setting; raises InvalidConfiguration on the first problem."""
        check_positive_int(self.n_samples, "simulation.n_samples", minimum=2)
        check_positive_int(self.n_genes, "simulation.n_genes")
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral)
        ):
            raise InvalidConfiguration(
                f"Invalid seed value: {self.seed} (must be an integer)",
                field="simulation.seed",
                value=self.seed,
                suggestions=["Use an integer value like: seed: 1"],
            )
        validate_modules(self.modules, background_label=self.background_label)
        n_positive = sum(1 for m in self.modules if m.proportion > 0)
        if self.n_genes < n_positive:
            raise InvalidConfiguration(
                f"n_genes ({self.n_genes}) is smaller than the number of modules "
                f"with a positive proportion ({n_positive})",
                field="simulation.n_genes",
                value=self.n_genes,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulation": {
                "n_samples": self.n_samples,
                "n_genes": self.n_genes,
                "seed": self.seed,
                "background_label": self.background_label,
            },
            "modules": [m.to_dict() for m in self.modules],
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "SimulationConfig":
        """Build a configuration from the nested YAML layout."""
        simulation = config_dict.get("simulation", {}) or {}
        modules = config_dict.get("modules")
        return cls(
            n_samples=simulation.get("n_samples", 50),
            n_genes=simulation.get("n_genes", 3000),
            modules=tutorial_modules() if modules is None else modules,
            background_label=str(simulation.get("background_label", DEFAULT_BACKGROUND_LABEL)),
            seed=simulation.get("seed", 1),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SimulationConfig":
        """Load configuration from YAML file."""
        config_dict = load_config(yaml_path)
        validate_config(config_dict)
        return cls.from_dict(config_dict)


def tutorial_config(seed: Optional[int] = 1) -> SimulationConfig:
    """The tutorial scenario: 50 samples, 3000 genes, five modules."""
    return SimulationConfig(n_samples=50, n_genes=3000, modules=tutorial_modules(), seed=seed)


def validate_modules(
    modules: List[ModuleSpec],
    background_label: Optional[str] = None,
    require_primary: bool = True,
) -> None:
    """
    Validate an ordered list of module definitions.

    Args:
        modules: Module definitions in declared order
        background_label: Label reserved for unassigned genes
        require_primary: If True, exactly one module must be primary

    Raises:
        InvalidConfiguration: If any definition is invalid
    """
    if not modules:
        raise InvalidConfiguration(
            "At least one module is required",
            field="modules",
            suggestions=["Add a 'modules:' list with at least one entry"],
        )

    seen: List[str] = []
    n_primary = 0
    total = 0.0
    for i, module in enumerate(modules):
        prefix = f"modules[{i}]"
        if not module.name:
            raise InvalidConfiguration("Module name must be non-empty", field=f"{prefix}.name")
        if module.name in seen:
            raise InvalidConfiguration(
                f"Duplicate module name: {module.name}",
                field=f"{prefix}.name",
                value=module.name,
            )
        if background_label is not None and module.name == background_label:
            raise InvalidConfiguration(
                f"Module name '{module.name}' is reserved for background genes",
                field=f"{prefix}.name",
                value=module.name,
                suggestions=["Rename the module or change simulation.background_label"],
            )

        proportion = module.proportion
        if isinstance(proportion, bool) or not isinstance(proportion, numbers.Real):
            raise InvalidConfiguration(
                f"Invalid proportion for module {module.name}: {proportion}",
                field=f"{prefix}.proportion",
                value=proportion,
            )
        if math.isnan(proportion) or proportion < 0 or proportion > 1:
            raise InvalidConfiguration(
                f"Invalid proportion for module {module.name}: {proportion} (must be in [0, 1])",
                field=f"{prefix}.proportion",
                value=proportion,
            )
        total += proportion

        check_correlation(module.effect_size, f"{prefix}.effect_size")
        check_correlation(module.loading, f"{prefix}.loading")

        if module.anchor == ANCHOR_PRIMARY:
            n_primary += 1
        elif module.anchor != ANCHOR_REFERENCE and module.anchor not in seen:
            raise InvalidConfiguration(
                f"Module {module.name} is anchored to '{module.anchor}', "
                "which is not a module declared before it",
                field=f"{prefix}.anchor",
                value=module.anchor,
                suggestions=[
                    f"Use '{ANCHOR_PRIMARY}', '{ANCHOR_REFERENCE}', or the name of an earlier module",
                    "Declare derived modules after the module they derive from",
                ],
            )
        seen.append(module.name)

    if total > 1 + PROPORTION_TOLERANCE:
        raise InvalidConfiguration(
            f"Module proportions sum to {total:.4f} (must be <= 1)",
            field="modules.proportion",
            value=total,
            suggestions=["Reduce module proportions; the remainder becomes background genes"],
        )

    if require_primary and n_primary != 1:
        raise InvalidConfiguration(
            f"Exactly one module must have anchor '{ANCHOR_PRIMARY}', found {n_primary}",
            field="modules.anchor",
            value=n_primary,
            suggestions=[f"Set 'anchor: {ANCHOR_PRIMARY}' on the module whose eigengene is free"],
        )


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load simulation configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f)

    if config is None:
        raise InvalidConfiguration(
            "Config file is empty or invalid",
            suggestions=["Check the file contains valid YAML", "Ensure proper indentation"],
        )

    if not isinstance(config, dict):
        raise InvalidConfiguration(
            "Config file must contain a mapping at the top level",
            suggestions=["Start the file with a 'simulation:' section"],
        )

    return config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate a simulation configuration dictionary.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        InvalidConfiguration: If configuration is invalid
    """
    if "simulation" not in config:
        raise InvalidConfiguration(
            "Missing required config section: simulation",
            field="simulation",
            suggestions=["Add a 'simulation:' section with n_samples and n_genes"],
        )

    modules = config.get("modules")
    if modules is not None:
        if not isinstance(modules, list) or not all(isinstance(m, dict) for m in modules):
            raise InvalidConfiguration(
                "modules must be a list of mappings",
                field="modules",
                suggestions=["Use format: - {name: turquoise, proportion: 0.2, anchor: primary}"],
            )

    output = config.get("output", {})
    if output:
        _validate_output_section(output)

    SimulationConfig.from_dict(config).validate()
    return True


def _validate_output_section(output: Dict[str, Any]) -> None:
    """Validate the output section of config."""
    valid_formats = ["csv", "tsv"]
    formats = output.get("formats")
    if formats is not None:
        if not isinstance(formats, list) or not formats:
            raise InvalidConfiguration(
                f"Invalid output formats: {formats} (must be a non-empty list)",
                field="output.formats",
                suggestions=["Use format: formats: [csv]"],
            )
        for fmt in formats:
            if fmt not in valid_formats:
                raise InvalidConfiguration(
                    f"Invalid output format: {fmt}",
                    field="output.formats",
                    value=fmt,
                    suggestions=[f"Use one of: {', '.join(valid_formats)}"],
                )

    output_dir = output.get("output_dir")
    if output_dir:
        parent = Path(output_dir).parent
        if not parent.exists():
            logger.warning(f"Output directory parent does not exist: {parent}")
