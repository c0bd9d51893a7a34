# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import List, Union

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ================================ TABLE FILTERING =================================== #

def prevalence(table: pd.DataFrame) -> pd.Series:
    """Fraction of samples in which each taxon is non-zero.

    Args:
        table: Taxa × samples table.
    """
    if table.shape[1] == 0:
        return pd.Series(0.0, index=table.index)
    return (table != 0).sum(axis=1) / table.shape[1]


def filter_prevalence(
    table: pd.DataFrame,
    threshold: float = constants.DEFAULT_PREVALENCE_THRESHOLD,
) -> pd.DataFrame:
    """Keep taxa whose prevalence is strictly greater than ``threshold``.

    Args:
        table:     Taxa × samples table.
        threshold: Prevalence fraction in [0, 1].

    Returns:
        Filtered taxa × samples table (original row order).
    """
    keep = prevalence(table) > threshold
    filtered = table.loc[keep]
    if filtered.empty:
        logger.warning(
            f"Prevalence threshold {threshold} removed all {table.shape[0]} taxa"
        )
    else:
        logger.debug(
            f"Prevalence filter (>{threshold}): kept {filtered.shape[0]} of "
            f"{table.shape[0]} taxa"
        )
    return filtered


def filter_dataset(
    dataset: AbundanceDataset,
    threshold: float = constants.DEFAULT_PREVALENCE_THRESHOLD,
) -> AbundanceDataset:
    """Prune low-prevalence taxa from a dataset."""
    filtered = filter_prevalence(dataset.abundances, threshold)
    return dataset.prune_taxa(filtered.index)


def top_taxa(
    table: Union[pd.DataFrame, AbundanceDataset],
    n: int = constants.DEFAULT_TOP_N,
) -> List[str]:
    """Identifiers of the ``n`` taxa with the largest total abundance."""
    if isinstance(table, AbundanceDataset):
        table = table.abundances
    return table.sum(axis=1).sort_values(ascending=False, kind="mergesort").index[:n].tolist()
