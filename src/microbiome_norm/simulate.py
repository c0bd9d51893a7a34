# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Union

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.utils.io import write_dataset_dir

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ================================= DEFAULT VALUES =================================== #

PHYLA = [
    "Firmicutes", "Bacteroidetes", "Actinobacteria", "Proteobacteria",
    "Verrucomicrobia"
]

# ==================================== CLASSES ======================================= #

@dataclass
class SimulatorConfig:
    n_taxa: int = 300
    n_samples: int = 200
    patient_fraction: float = 0.5
    n_opportunists: int = 2
    opportunist_fold_change: float = 20.0
    # Mean microbial load of controls (cells / gram) and fold reduction in patients
    control_load: float = 1e11
    load_fold_change: float = 3.0
    load_sigma: float = 0.3
    # Measurement noise of the cell counting (log scale)
    measurement_sigma: float = 0.1
    read_depth: int = 20000
    read_depth_sigma: float = 0.1
    abundance_sigma: float = 2.0
    sample_sigma: float = 1.0
    # Upper bound of the per-taxon dropout probability
    max_dropout: float = 0.6
    # Share of taxa present in every sample of both groups
    core_fraction: float = 0.3
    # Extra dropout of non-core taxa in patients (lower richness)
    patient_dropout_increase: float = 0.2
    # Shrinkage of patient log-abundance profiles towards their mean (higher evenness)
    patient_evenness: float = 0.85
    seed: int = constants.DEFAULT_SEED


@dataclass
class SimulatedCohort:
    """Ground-truth absolute abundances and the matching sequencing data."""
    real: AbundanceDataset
    sequenced: AbundanceDataset
    opportunists: List[str] = field(default_factory=list)


# ==================================== FUNCTIONS ===================================== #

def _taxonomy(n_taxa: int, rng: np.random.Generator) -> pd.DataFrame:
    taxa = [f"ASV{i + 1:04d}" for i in range(n_taxa)]
    phyla = rng.choice(PHYLA, size=n_taxa)
    genus_ids = rng.integers(1, max(2, n_taxa // 4) + 1, size=n_taxa)
    return pd.DataFrame({
        "Kingdom": "Bacteria",
        "Phylum": phyla,
        "Class": [f"{p}_class" for p in phyla],
        "Order": [f"{p}_order" for p in phyla],
        "Family": [f"Family{g // 3 + 1}" for g in genus_ids],
        "Genus": [f"Genus{g}" for g in genus_ids],
        "Species": [f"species{i + 1}" for i in range(n_taxa)],
    }, index=pd.Index(taxa, name="taxon"))[constants.TAX_RANKS]


def simulate_cohort(
    config: Optional[SimulatorConfig] = None,
    **overrides
) -> SimulatedCohort:
    """
    Simulate a case-control cohort in which patients carry lower microbial loads.

    Absolute taxon abundances are drawn from log-normal profiles with per-taxon
    dropout outside a core of always-present taxa. Patient communities are less
    rich and more even, and a few opportunist taxa are enriched in them. Sequencing counts
    are obtained by multinomial sampling of each community to roughly
    ``read_depth`` reads and cell counts by adding log-normal noise to the loads.

    Args:
        config:    Simulation settings.
        overrides: Individual settings overriding ``config``.

    Returns:
        SimulatedCohort with the real and the sequenced datasets.
    """
    config = config or SimulatorConfig()
    unknown = [key for key in overrides if not hasattr(config, key)]
    if unknown:
        raise ValueError(f"Unknown simulation settings: {unknown}")
    config = replace(config, **overrides)
    rng = np.random.default_rng(config.seed)

    n_taxa, n_samples = config.n_taxa, config.n_samples
    samples = [f"S{i + 1:03d}" for i in range(n_samples)]
    n_patients = int(round(n_samples * config.patient_fraction))
    status = np.array(["Control"] * (n_samples - n_patients) + ["Patient"] * n_patients)
    status = rng.permutation(status)
    is_patient = status == "Patient"

    taxonomy = _taxonomy(n_taxa, rng)
    taxa = taxonomy.index.tolist()

    # Community composition
    base_profile = rng.normal(0.0, config.abundance_sigma, size=n_taxa)
    patient_profile = base_profile.mean() + config.patient_evenness * (
        base_profile - base_profile.mean()
    )
    log_abundance = np.where(is_patient, patient_profile[:, None], base_profile[:, None])
    log_abundance = log_abundance + rng.normal(
        0.0, config.sample_sigma, size=(n_taxa, n_samples)
    )
    opportunist_idx = rng.choice(n_taxa, size=config.n_opportunists, replace=False)
    log_abundance[np.ix_(opportunist_idx, np.where(is_patient)[0])] += np.log(
        config.opportunist_fold_change
    )
    # Core taxa and opportunists are present in every sample
    core_idx = rng.choice(
        n_taxa, size=int(round(n_taxa * config.core_fraction)), replace=False
    )
    dropout = rng.uniform(0.0, config.max_dropout, size=n_taxa)[:, None] + (
        config.patient_dropout_increase * is_patient[None, :]
    )
    dropout[core_idx, :] = 0.0
    dropout[opportunist_idx, :] = 0.0
    present = rng.random((n_taxa, n_samples)) >= np.clip(dropout, 0.0, 1.0)
    abundance = np.exp(log_abundance) * present
    empty = abundance.sum(axis=0) == 0
    abundance[0, empty] = 1.0
    proportions = abundance / abundance.sum(axis=0)

    # Microbial loads
    mean_load = np.where(
        is_patient, config.control_load / config.load_fold_change, config.control_load
    )
    loads = mean_load * rng.lognormal(0.0, config.load_sigma, size=n_samples)
    absolute = proportions * loads

    # Sequencing and cell counting
    depths = np.round(
        config.read_depth * rng.lognormal(0.0, config.read_depth_sigma, size=n_samples)
    ).astype(int)
    reads = np.column_stack([
        rng.multinomial(depths[j], proportions[:, j]) for j in range(n_samples)
    ])
    estimated_loads = loads * rng.lognormal(0.0, config.measurement_sigma, size=n_samples)

    real = AbundanceDataset(
        abundances=pd.DataFrame(np.round(absolute), index=taxa, columns=samples),
        taxonomy=taxonomy,
        metadata=pd.DataFrame(
            {constants.DEFAULT_GROUP_COLUMN: status, constants.DEFAULT_LOAD_COLUMN: loads},
            index=samples
        ),
    )
    sequenced = AbundanceDataset(
        abundances=pd.DataFrame(reads, index=taxa, columns=samples),
        taxonomy=taxonomy,
        metadata=pd.DataFrame(
            {
                constants.DEFAULT_GROUP_COLUMN: status,
                constants.DEFAULT_ESTIMATED_LOAD_COLUMN: estimated_loads,
            },
            index=samples
        ),
    )
    opportunists = [taxa[i] for i in sorted(opportunist_idx)]
    logger.info(
        f"Simulated {n_taxa} taxa × {n_samples} samples "
        f"({n_patients} patients, opportunists: {opportunists})"
    )
    return SimulatedCohort(real=real, sequenced=sequenced, opportunists=opportunists)


def write_cohort(cohort: SimulatedCohort, out_dir: Union[str, Path]) -> Path:
    """Write both datasets using the ``real_community`` / ``seq_data`` layout."""
    out_dir = Path(out_dir)
    write_dataset_dir(cohort.real, out_dir / constants.REAL_COMMUNITY_DIR)
    write_dataset_dir(cohort.sequenced, out_dir / constants.SEQ_DATA_DIR)
    logger.info(f"Simulated cohort written to {out_dir}")
    return out_dir
