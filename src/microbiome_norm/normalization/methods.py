# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Callable, Dict, Optional

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.normalization.compositional import centered_log_ratio
from microbiome_norm.normalization.rarefaction import (
    quantitative_microbiome_profiling, rarefy_even_depth
)
from microbiome_norm.normalization.scaling import absolute_count_scaling
from microbiome_norm.normalization.variance_stabilizing import (
    variance_stabilizing_transform
)

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ============================ METHOD ADAPTERS & REGISTRY ============================ #

def _rmp(dataset: AbundanceDataset, params: Dict) -> pd.DataFrame:
    return rarefy_even_depth(
        dataset.abundances,
        seed=params.get("rarefaction_seed", constants.DEFAULT_RAREFACTION_SEED),
    )


def _clr(dataset: AbundanceDataset, params: Dict) -> pd.DataFrame:
    return centered_log_ratio(dataset.abundances)


def _vst(dataset: AbundanceDataset, params: Dict) -> pd.DataFrame:
    return variance_stabilizing_transform(
        dataset.abundances,
        dataset.metadata,
        group_column=params.get("group_column", constants.DEFAULT_GROUP_COLUMN),
    )


def _acs(dataset: AbundanceDataset, params: Dict) -> pd.DataFrame:
    load_column = params.get("load_column", constants.DEFAULT_ESTIMATED_LOAD_COLUMN)
    return absolute_count_scaling(dataset.abundances, dataset.load_vector(load_column))


def _qmp(dataset: AbundanceDataset, params: Dict) -> pd.DataFrame:
    load_column = params.get("load_column", constants.DEFAULT_ESTIMATED_LOAD_COLUMN)
    return quantitative_microbiome_profiling(
        dataset.abundances,
        dataset.load_vector(load_column),
        seed=params.get("qmp_seed", constants.DEFAULT_QMP_SEED),
    )


NORMALIZATION_METHODS: Dict[str, Callable[[AbundanceDataset, Dict], pd.DataFrame]] = {
    constants.RMP: _rmp,
    constants.CLR: _clr,
    constants.VST: _vst,
    constants.ACS: _acs,
    constants.QMP: _qmp,
}

METHOD_DESCRIPTIONS = {
    constants.RMP: "Rarefaction to even sequencing depth",
    constants.CLR: "Centered log-ratio transformation",
    constants.VST: "Variance-stabilizing transformation",
    constants.ACS: "Absolute count scaling",
    constants.QMP: "Quantitative microbiome profiling",
}

# ==================================== FUNCTIONS ===================================== #

def normalize(
    dataset: AbundanceDataset,
    method: str,
    params: Optional[Dict] = None,
) -> AbundanceDataset:
    """Apply one normalization method to a dataset.

    Args:
        dataset: Input (usually prevalence-filtered) dataset.
        method:  One of ``RMP``, ``CLR``, ``VST``, ``ACS``, ``QMP``.
        params:  Optional overrides: ``rarefaction_seed``, ``qmp_seed``,
                 ``load_column``, ``group_column``.

    Returns:
        New dataset carrying the transformed abundance table.

    Raises:
        ValueError: For unknown methods.
    """
    if method not in NORMALIZATION_METHODS:
        raise ValueError(
            f"Unknown normalization method '{method}'. "
            f"Expected one of {list(NORMALIZATION_METHODS)}"
        )
    logger.debug(f"Applying {METHOD_DESCRIPTIONS[method]} ({method})")
    transformed = NORMALIZATION_METHODS[method](dataset, params or {})
    return dataset.with_abundances(transformed)
