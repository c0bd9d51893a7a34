# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging

# Third-Party Imports
import numpy as np
import pandas as pd
from skbio.stats.composition import clr as CLR
from skbio.stats.composition import multi_replace

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm.utils.data import table_to_df

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def replace_zeros(table: pd.DataFrame) -> pd.DataFrame:
    """Impute zeros by multiplicative replacement, returned as pseudo-counts.

    Each sample is closed, zeros are replaced and the non-zero parts shrunk
    multiplicatively, then the sample is rescaled so that its originally
    non-zero entries keep their count values.

    Args:
        table: Taxa × samples count table.

    Returns:
        Strictly positive taxa × samples table.

    Raises:
        ValueError: If a sample has no counts at all.
    """
    table = table_to_df(table).astype(float)
    values = table.T.values  # samples × taxa
    totals = values.sum(axis=1)
    if (totals <= 0).any():
        empty = table.columns[totals <= 0].tolist()
        raise ValueError(f"Cannot impute zeros in empty samples: {empty[:5]}")

    n_zeros = int((values == 0).sum())
    if n_zeros == 0:
        return table.copy()
    logger.debug(f"Replacing {n_zeros} zeros ({n_zeros / values.size:.1%} of the table)")

    proportions = np.asarray(multi_replace(values))
    nonzero = values > 0
    scale = (values * nonzero).sum(axis=1) / (proportions * nonzero).sum(axis=1)
    pseudo_counts = proportions * scale[:, np.newaxis]
    return pd.DataFrame(pseudo_counts.T, index=table.index, columns=table.columns)


def clr_transform(table: pd.DataFrame) -> pd.DataFrame:
    """Per-sample centered log-ratio transform.

    Args:
        table: Strictly positive taxa × samples table.

    Returns:
        Taxa × samples CLR table; every column sums to zero.

    Raises:
        ValueError: If the table contains zeros or negative values.
    """
    table = table_to_df(table).astype(float)
    if (table.values <= 0).any():
        raise ValueError("CLR requires strictly positive values; replace zeros first")
    clr_data = np.asarray(CLR(table.T.values))
    return pd.DataFrame(clr_data.T, index=table.index, columns=table.columns)


def centered_log_ratio(table: pd.DataFrame) -> pd.DataFrame:
    """Zero replacement followed by the CLR transform."""
    return clr_transform(replace_zeros(table))
