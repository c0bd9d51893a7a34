# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging

# Third-Party Imports
import numpy as np
import pandas as pd
from pydeseq2.dds import DeseqDataSet
from pydeseq2.default_inference import DefaultInference

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.utils.data import is_integer_valued, table_to_df

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def variance_stabilizing_transform(
    table: pd.DataFrame,
    metadata: pd.DataFrame,
    group_column: str = constants.DEFAULT_GROUP_COLUMN,
    n_cpus: int = 1,
) -> pd.DataFrame:
    """Blind variance-stabilizing transformation of a count table (DESeq2 model).

    Size factors and negative-binomial dispersions are fitted with PyDESeq2
    ignoring the design; ``group_column`` is only used to build the dataset.

    Args:
        table:        Taxa × samples integer count table.
        metadata:     Sample metadata indexed by sample.
        group_column: Metadata column for the (unused) design.
        n_cpus:       Worker processes for the dispersion fits.

    Returns:
        Taxa × samples table of variance-stabilized (log2-like) values.

    Raises:
        ValueError: For non-integer counts or a missing group column.
    """
    table = table_to_df(table)
    if not is_integer_valued(table):
        raise ValueError("Variance-stabilizing transformation requires integer counts")
    if group_column not in metadata.columns:
        raise ValueError(f"Column '{group_column}' not found in sample metadata")

    counts = table.round().astype(int).T  # samples × taxa
    counts.index = counts.index.astype(str)
    counts.columns = counts.columns.astype(str)
    design_meta = metadata.loc[table.columns, [group_column]].astype(str)
    design_meta.index = counts.index

    dds = DeseqDataSet(
        counts=counts,
        metadata=design_meta,
        design=f"~{group_column}",
        inference=DefaultInference(n_cpus=n_cpus),
        quiet=True,
    )
    dds.vst(use_design=False)
    vst_counts = np.asarray(dds.layers["vst_counts"])
    logger.debug(f"VST fitted on {counts.shape[1]} taxa × {counts.shape[0]} samples")
    return pd.DataFrame(vst_counts.T, index=table.index, columns=table.columns)
