# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Sequence, Union

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm.utils.data import align_vector, table_to_df

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def scaling_factors(
    table: pd.DataFrame,
    cell_counts: Union[pd.Series, pd.DataFrame, Sequence[float]],
) -> pd.Series:
    """Per-sample factor = estimated cell count / sequencing depth.

    Samples without reads get a factor of 0.
    """
    table = table_to_df(table)
    counts = align_vector(cell_counts, table.columns, name="cell counts")
    sequencing_counts = table.sum(axis=0)
    empty = sequencing_counts[sequencing_counts == 0]
    if len(empty):
        logger.warning(
            f"{len(empty)} samples have no reads and stay empty after scaling: "
            f"{empty.index.tolist()[:5]}"
        )
    return (counts / sequencing_counts.replace(0, np.nan)).fillna(0.0)


def absolute_count_scaling(
    table: pd.DataFrame,
    cell_counts: Union[pd.Series, pd.DataFrame, Sequence[float]],
) -> pd.DataFrame:
    """Scale each sample's counts to its estimated cell count, then round.

    Args:
        table:       Taxa × samples count table.
        cell_counts: Per-sample cell count estimates.

    Returns:
        Taxa × samples table of absolute abundance estimates.
    """
    table = table_to_df(table)
    factors = scaling_factors(table, cell_counts)
    return table.mul(factors, axis=1).round()
