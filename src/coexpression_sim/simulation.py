"""
Simulation of co-expression data with a known module structure.

Generates a synthetic expression matrix (samples x genes) whose genes are
organised into co-expression modules around latent module eigengenes, the
way the WGCNA tutorials simulate their test data:

- A primary latent vector R0 ~ N(0, 1) is the free eigengene of one module.
- A reference signal S is mixed from R0; its median split is the trait.
- Every other eigengene is mixed from S (or from an earlier eigengene)
  with a target correlation equal to the module's effect size.
- Member genes track their eigengene with a fixed loading; background
  genes are pure noise.

All correlation-controlled vectors use the same mixing law::

    x = rho * base + sqrt(1 - rho^2) * noise

Random draws happen on one explicit stream in a fixed order: R0, the
reference noise, the mixing noise of each module in declared order, then
gene noise module by module with background genes last.
"""

import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import (
    ANCHOR_PRIMARY,
    ANCHOR_REFERENCE,
    DEFAULT_BACKGROUND_LABEL,
    DEFAULT_LOADING,
    InvalidConfiguration,
    ModuleSpec,
    SimulationConfig,
    check_correlation,
    check_positive_int,
    validate_modules,
)
from .utils.seed import SeedLike, get_rng

logger = logging.getLogger(__name__)

TRAIT_HIGH = "high"
TRAIT_LOW = "low"


class DimensionMismatch(ValueError):
    """Exception raised when vector or matrix lengths disagree."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        if expected is not None:
            message = f"{message} (expected {expected}, got {actual})"
        super().__init__(message)


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def sample_ids(n_samples: int) -> List[str]:
    return [f"Sample{i}" for i in range(1, n_samples + 1)]


def gene_ids(n_genes: int) -> List[str]:
    return [f"Gene{j}" for j in range(1, n_genes + 1)]


# ---------------------------------------------------------------------------
# Latent eigengenes and reference signal
# ---------------------------------------------------------------------------


def mix_signals(base: np.ndarray, rho: float, seed: SeedLike = None) -> np.ndarray:
    """
    Draw a vector with expected correlation ``rho`` to ``base``.

    Args:
        base: Anchor vector (standard normal scale)
        rho: Target correlation in [-1, 1]
        seed: Integer seed or an existing random stream

    Returns:
        ``rho * base + sqrt(1 - rho^2) * noise`` with fresh N(0, 1) noise
    """
    rho = check_correlation(rho, "rho")
    base = np.asarray(base, dtype=float)
    rng = get_rng(seed)
    noise = rng.standard_normal(base.shape[0])
    return rho * base + math.sqrt(1.0 - rho**2) * noise


def median_split(signal: np.ndarray) -> np.ndarray:
    """Label samples "high" above the median of ``signal`` and "low" otherwise.

    A sample exactly at the median is "low", so with distinct values the
    number of "high" labels is floor(n / 2).
    """
    signal = np.asarray(signal, dtype=float)
    return np.where(signal > np.median(signal), TRAIT_HIGH, TRAIT_LOW).astype(object)


def _coerce_modules(module_effect_sizes: Sequence[Any]) -> List[ModuleSpec]:
    # Bare effect sizes: the first is the primary module, the rest follow the reference
    modules = []
    for i, item in enumerate(module_effect_sizes):
        if isinstance(item, ModuleSpec):
            modules.append(item)
        elif isinstance(item, Mapping):
            modules.append(ModuleSpec.from_dict(item))
        elif isinstance(item, Real) and not isinstance(item, bool):
            anchor = ANCHOR_PRIMARY if i == 0 else ANCHOR_REFERENCE
            modules.append(ModuleSpec(name=f"module{i + 1}", effect_size=item, anchor=anchor))
        else:
            raise InvalidConfiguration(
                f"Invalid module definition at position {i}: {item!r}",
                field=f"modules[{i}]",
                value=item,
                suggestions=["Pass ModuleSpec objects, mappings, or numeric effect sizes"],
            )
    return modules


@dataclass
class ReferenceAndModules:
    """
    Latent signals of one simulation run.

    Attributes:
        eigengenes: Module name -> eigengene vector, in declared order
        reference_signal: Reference signal S (one value per sample)
        trait_labels: Median split of S ("high"/"low")
        primary: Name of the module whose eigengene is R0
        modules: Module definitions used
    """

    eigengenes: Dict[str, np.ndarray]
    reference_signal: np.ndarray
    trait_labels: np.ndarray
    primary: str
    modules: List[ModuleSpec]

    @property
    def sample_count(self) -> int:
        return int(self.reference_signal.shape[0])


def generate_reference_and_modules(
    sample_count: int,
    module_effect_sizes: Sequence[Union[ModuleSpec, Mapping[str, Any], float]],
    seed: SeedLike = None,
) -> ReferenceAndModules:
    """
    Generate module eigengenes, the reference signal and the trait labels.

    Args:
        sample_count: Number of samples (>= 2)
        module_effect_sizes: Ordered module definitions. Bare numbers are
            named module1..moduleK; the first becomes the primary module.
        seed: Integer seed or an existing random stream

    Returns:
        ReferenceAndModules with eigengenes in declared module order

    Raises:
        InvalidConfiguration: If sample_count < 2, any effect size is outside
            [-1, 1], or the anchors are inconsistent
    """
    check_positive_int(sample_count, "sample_count", minimum=2)
    modules = _coerce_modules(module_effect_sizes)
    validate_modules(modules)

    rng = get_rng(seed)
    primary = next(m for m in modules if m.is_primary)

    r0 = rng.standard_normal(sample_count)
    reference = mix_signals(r0, primary.effect_size, rng)

    eigengenes: Dict[str, np.ndarray] = {}
    for module in modules:
        if module.is_primary:
            eigengenes[module.name] = _read_only(r0.copy())
            continue
        if module.anchor == ANCHOR_REFERENCE:
            base = reference
        else:
            base = eigengenes[module.anchor]
        eigengenes[module.name] = _read_only(mix_signals(base, module.effect_size, rng))

    trait_labels = median_split(reference)

    logger.debug(
        "[Simulation] Drew %d eigengenes over %d samples (primary: %s)",
        len(eigengenes),
        sample_count,
        primary.name,
    )

    return ReferenceAndModules(
        eigengenes=eigengenes,
        reference_signal=_read_only(reference),
        trait_labels=_read_only(trait_labels),
        primary=primary.name,
        modules=modules,
    )


# ---------------------------------------------------------------------------
# Expression matrix
# ---------------------------------------------------------------------------


def partition_genes(gene_count: int, proportions: Sequence[float]) -> List[int]:
    """Per-module gene counts: floor(proportion * gene_count), never rounded up.

    Proportions are read as written (0.29 of 100 genes is 29), not as the
    nearest binary float.
    """
    return [math.floor(Fraction(str(p)) * gene_count) for p in proportions]


def _align(
    values: Optional[Union[Mapping[str, float], Sequence[float]]],
    names: List[str],
    field: str,
    default: Optional[float] = None,
) -> List[float]:
    if values is None:
        if default is None:
            raise InvalidConfiguration(f"{field} is required", field=field)
        return [default] * len(names)

    if isinstance(values, Mapping):
        unknown = [k for k in values if k not in names]
        if unknown:
            raise InvalidConfiguration(
                f"{field} refers to unknown module(s): {', '.join(map(str, unknown))}",
                field=field,
                value=unknown,
                suggestions=[f"Use module names from: {', '.join(names)}"],
            )
        missing = [n for n in names if n not in values]
        if missing and default is None:
            raise InvalidConfiguration(
                f"{field} is missing module(s): {', '.join(missing)}",
                field=field,
                value=missing,
            )
        return [values.get(n, default) for n in names]

    values = list(values)
    if len(values) != len(names):
        raise InvalidConfiguration(
            f"{field} has {len(values)} entries for {len(names)} modules",
            field=field,
            value=values,
        )
    return values


@dataclass
class ExpressionResult:
    """
    Raw expression matrix and its ground-truth module assignment.

    Attributes:
        matrix: Samples x genes expression values
        module_assignment: Module identifier per gene (column order)
        module_sizes: Module name -> number of genes
        background_size: Number of unassigned genes
        background_label: Identifier used for unassigned genes
    """

    matrix: np.ndarray
    module_assignment: np.ndarray
    module_sizes: Dict[str, int]
    background_size: int
    background_label: str = DEFAULT_BACKGROUND_LABEL


def generate_expression_matrix(
    eigengenes_by_module: Mapping[str, np.ndarray],
    gene_count: int,
    module_proportions: Union[Mapping[str, float], Sequence[float]],
    seed: SeedLike = None,
    loadings: Optional[Union[Mapping[str, float], Sequence[float]]] = None,
    background_label: str = DEFAULT_BACKGROUND_LABEL,
    sample_count: Optional[int] = None,
) -> ExpressionResult:
    """
    Generate gene expression vectors around module eigengenes.

    Gene indices are handed out to modules in declared order as consecutive
    blocks of floor(proportion * gene_count); the remaining genes are
    background noise.

    Args:
        eigengenes_by_module: Module name -> eigengene, in declared order
        gene_count: Total number of genes
        module_proportions: Per-module fraction of genes (mapping or sequence
            aligned with the eigengene order)
        seed: Integer seed or an existing random stream
        loadings: Per-module gene loading (default DEFAULT_LOADING)
        background_label: Identifier for unassigned genes
        sample_count: Expected eigengene length, if known

    Returns:
        ExpressionResult with the samples x genes matrix and assignment

    Raises:
        InvalidConfiguration: For invalid counts, proportions or loadings
        DimensionMismatch: If eigengene lengths disagree
    """
    names = [str(n) for n in eigengenes_by_module.keys()]
    check_positive_int(gene_count, "gene_count")
    proportions = _align(module_proportions, names, "module_proportions")
    gene_loadings = _align(loadings, names, "loadings", default=DEFAULT_LOADING)

    specs = [
        ModuleSpec(name=name, proportion=p, loading=loading)
        for name, p, loading in zip(names, proportions, gene_loadings)
    ]
    validate_modules(specs, background_label=background_label, require_primary=False)

    n_positive = sum(1 for p in proportions if p > 0)
    if gene_count < n_positive:
        raise InvalidConfiguration(
            f"gene_count ({gene_count}) is smaller than the number of modules "
            f"with a positive proportion ({n_positive})",
            field="gene_count",
            value=gene_count,
        )

    vectors = [np.asarray(v, dtype=float) for v in eigengenes_by_module.values()]
    for name, vector in zip(names, vectors):
        if vector.ndim != 1:
            raise DimensionMismatch(f"Eigengene {name} must be one-dimensional")
    if sample_count is None:
        sample_count = vectors[0].shape[0]
    else:
        check_positive_int(sample_count, "sample_count", minimum=2)
    for name, vector in zip(names, vectors):
        if vector.shape[0] != sample_count:
            raise DimensionMismatch(
                f"Eigengene {name} length does not match the sample count",
                expected=sample_count,
                actual=vector.shape[0],
            )

    counts = partition_genes(gene_count, proportions)
    background_size = gene_count - sum(counts)

    rng = get_rng(seed)
    matrix = np.empty((sample_count, gene_count), dtype=float)
    assignment = np.empty(gene_count, dtype=object)

    start = 0
    for name, vector, loading, count in zip(names, vectors, gene_loadings, counts):
        stop = start + count
        if count > 0:
            # One (count, n) block consumes the stream like count draws of length n
            noise = rng.standard_normal((count, sample_count))
            genes = loading * vector[None, :] + math.sqrt(1.0 - loading**2) * noise
            matrix[:, start:stop] = genes.T
        assignment[start:stop] = name
        start = stop

    if background_size > 0:
        matrix[:, start:] = rng.standard_normal((background_size, sample_count)).T
    assignment[start:] = background_label

    logger.debug(
        "[Simulation] Generated %d module genes and %d background genes",
        gene_count - background_size,
        background_size,
    )

    return ExpressionResult(
        matrix=_read_only(matrix),
        module_assignment=_read_only(assignment),
        module_sizes=dict(zip(names, counts)),
        background_size=background_size,
        background_label=background_label,
    )


# ---------------------------------------------------------------------------
# Identifiers and the result bundle
# ---------------------------------------------------------------------------


@dataclass
class LabeledExpression:
    """Expression matrix and module assignment keyed by sample and gene ids."""

    expression: pd.DataFrame
    module_assignment: pd.Series


def label_entities(matrix: np.ndarray, module_assignment: Sequence[str]) -> LabeledExpression:
    """
    Attach sample ids (Sample1..SampleN) and gene ids (Gene1..GeneM).

    Args:
        matrix: Samples x genes expression values
        module_assignment: Module identifier per gene

    Returns:
        LabeledExpression with a labelled DataFrame and Series

    Raises:
        DimensionMismatch: If the assignment length differs from the number
            of matrix columns
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2:
        raise DimensionMismatch("Expression matrix must be two-dimensional")
    assignment = np.asarray(module_assignment, dtype=object)
    if assignment.shape[0] != matrix.shape[1]:
        raise DimensionMismatch(
            "Module assignment length does not match the number of genes",
            expected=matrix.shape[1],
            actual=assignment.shape[0],
        )

    genes = pd.Index(gene_ids(matrix.shape[1]), name="gene_id")
    expression = pd.DataFrame(
        matrix.copy(),
        index=pd.Index(sample_ids(matrix.shape[0]), name="sample_id"),
        columns=genes,
    )
    modules = pd.Series(assignment.copy(), index=genes, name="module")
    return LabeledExpression(expression=expression, module_assignment=modules)


@dataclass
class SimulatedModuleData:
    """
    Container for simulated expression data with ground truth.

    Attributes:
        expression: Samples x genes expression matrix (Sample*/Gene* ids)
        module_assignment: True module per gene
        eigengenes: Samples x modules eigengene matrix (ME<name> columns)
        reference_signal: Reference signal y per sample
        trait_labels: "high"/"low" per sample
        config: SimulationConfig used to generate the data
        seed: Integer seed of the run, if one was given
    """

    expression: pd.DataFrame
    module_assignment: pd.Series
    eigengenes: pd.DataFrame
    reference_signal: pd.Series
    trait_labels: pd.Series
    config: SimulationConfig
    seed: Optional[int] = None

    @property
    def module_sizes(self) -> Dict[str, int]:
        counts = self.module_assignment.value_counts()
        return {name: int(counts.get(name, 0)) for name in self.config.module_names}

    @property
    def background_size(self) -> int:
        return int((self.module_assignment == self.config.background_label).sum())

    @property
    def trait_indicator(self) -> pd.Series:
        """1 for "high" samples, 0 for "low" ones."""
        return (self.trait_labels == TRAIT_HIGH).astype(int).rename("trait_high")

    def module_genes(self, module: str) -> List[str]:
        return list(self.module_assignment.index[self.module_assignment == module])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_samples": int(self.expression.shape[0]),
            "n_genes": int(self.expression.shape[1]),
            "n_modules": len(self.config.modules),
            "module_sizes": self.module_sizes,
            "background_label": self.config.background_label,
            "background_size": self.background_size,
            "trait_counts": {
                TRAIT_HIGH: int((self.trait_labels == TRAIT_HIGH).sum()),
                TRAIT_LOW: int((self.trait_labels == TRAIT_LOW).sum()),
            },
            "seed": self.seed,
        }


def simulate_modules(
    config: Optional[SimulationConfig] = None,
    seed: SeedLike = None,
) -> SimulatedModuleData:
    """
    Run the full simulation on one random stream.

    The whole configuration is validated before the first draw.

    Args:
        config: SimulationConfig (default: the tutorial scenario)
        seed: Overrides config.seed; may also be an existing random stream

    Returns:
        SimulatedModuleData bundle
    """
    if config is None:
        config = SimulationConfig()
    config.validate()

    run_seed = config.seed if seed is None else seed
    rng = get_rng(run_seed)

    latent = generate_reference_and_modules(config.n_samples, config.modules, rng)
    result = generate_expression_matrix(
        latent.eigengenes,
        config.n_genes,
        config.proportions,
        rng,
        loadings=config.loadings,
        background_label=config.background_label,
        sample_count=config.n_samples,
    )
    labeled = label_entities(result.matrix, result.module_assignment)

    samples = labeled.expression.index
    eigengenes = pd.DataFrame(
        {f"ME{name}": vector for name, vector in latent.eigengenes.items()},
        index=samples,
    )
    reference = pd.Series(latent.reference_signal, index=samples, name="y")
    traits = pd.Series(latent.trait_labels, index=samples, name="trait")

    logger.info(
        f"[Simulation] Generated synthetic co-expression data: "
        f"{config.n_samples} samples, {config.n_genes} genes, "
        f"{len(config.modules)} modules, {result.background_size} background genes"
    )

    return SimulatedModuleData(
        expression=labeled.expression,
        module_assignment=labeled.module_assignment,
        eigengenes=eigengenes,
        reference_signal=reference,
        trait_labels=traits,
        config=config,
        seed=int(run_seed) if isinstance(run_seed, (int, np.integer)) else None,
    )
