# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Optional, Sequence, Union

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.utils.data import (
    align_vector, biom_to_df, is_integer_valued, table_to_df, to_biom
)

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def _subsample(table: pd.DataFrame, depth: int, seed: Optional[int]) -> pd.DataFrame:
    """Subsample every sample of ``table`` to ``depth`` reads without replacement.

    Samples with fewer than ``depth`` reads come back as all-zero columns; taxa
    are never trimmed.
    """
    if depth <= 0:
        return pd.DataFrame(0, index=table.index, columns=table.columns)

    biom_table = to_biom(table)
    rarefied = biom_table.subsample(
        depth, axis="sample", by_id=False, with_replacement=False, seed=seed
    )
    out = biom_to_df(
        rarefied,
        taxa=[str(t) for t in table.index],
        samples=[str(s) for s in table.columns],
    )
    out.index, out.columns = table.index, table.columns
    return out.round().astype(int)


def _as_counts(table: pd.DataFrame) -> pd.DataFrame:
    if not is_integer_valued(table):
        logger.warning("Non-integer values found; rounding to counts before rarefaction")
    return table.round().astype(int)


def rarefy_even_depth(
    table: pd.DataFrame,
    depth: Optional[int] = None,
    seed: Optional[int] = constants.DEFAULT_RAREFACTION_SEED,
) -> pd.DataFrame:
    """Rarefy all samples to an even sequencing depth (downsizing).

    Args:
        table: Taxa × samples count table.
        depth: Target reads per sample (default: minimum sample sum).
        seed:  Random seed for the subsampling.

    Returns:
        Rarefied taxa × samples count table with the same taxa and samples.
    """
    table = _as_counts(table_to_df(table))
    sample_sums = table.sum(axis=0)
    if depth is None:
        depth = int(sample_sums.min()) if len(sample_sums) else 0
    depth = int(depth)

    too_shallow = sample_sums[sample_sums < depth]
    if len(too_shallow):
        logger.warning(
            f"{len(too_shallow)} samples have fewer than {depth} reads and will be "
            f"empty after rarefaction: {too_shallow.index.tolist()[:5]}"
        )
    if depth == 0:
        logger.warning("Rarefaction depth is 0; every sample will be empty")

    logger.debug(f"Rarefying {table.shape[1]} samples to {depth} reads (seed={seed})")
    return _subsample(table, depth, seed)


def sampling_depths(
    table: pd.DataFrame,
    cell_counts: Union[pd.Series, pd.DataFrame, Sequence[float]],
) -> pd.Series:
    """Reads per cell for each sample (sequencing depth / cell count)."""
    table = table_to_df(table)
    counts = align_vector(cell_counts, table.columns, name="cell counts")
    if (counts <= 0).any() or counts.isna().any():
        bad = counts[(counts <= 0) | counts.isna()].index.tolist()
        raise ValueError(f"Cell counts must be positive; invalid for samples {bad[:5]}")
    return table.sum(axis=0) / counts


def rarefy_even_sampling_depth(
    table: pd.DataFrame,
    cell_counts: Union[pd.Series, pd.DataFrame, Sequence[float]],
    seed: Optional[int] = constants.DEFAULT_QMP_SEED,
) -> pd.DataFrame:
    """Rarefy each sample to an even sampling depth and scale by its cell count.

    Every sample is downsized so that its reads-per-cell ratio equals the lowest
    ratio in the cohort, i.e. to ``cell_count × min(depth / cell_count)`` reads. The
    rarefied profiles are converted to relative abundances and multiplied by the
    cell counts, giving (unrounded) quantitative profiles.

    Args:
        table:       Taxa × samples copy-number-corrected count table.
        cell_counts: Per-sample cell count estimates (Series indexed by sample,
                     single-column DataFrame, or sequence in sample order).
        seed:        Random seed, reused for every sample.

    Returns:
        Taxa × samples table of quantitative abundances.
    """
    table = np.ceil(table_to_df(table)).astype(int)
    counts = align_vector(cell_counts, table.columns, name="cell counts")
    depths = sampling_depths(table, counts)
    min_depth = depths.min()

    sample_sums = table.sum(axis=0)
    # tolerance keeps the limiting sample at its full depth
    rarefy_to = np.floor(counts * min_depth + 1e-6).clip(upper=sample_sums).astype(int)
    logger.debug(
        f"Even sampling depth: {min_depth:.3g} reads per cell "
        f"(limiting sample: {depths.idxmin()})"
    )

    rarefied = pd.DataFrame(0, index=table.index, columns=table.columns)
    for sample in table.columns:
        rarefied[sample] = _subsample(table[[sample]], int(rarefy_to[sample]), seed)[sample]

    totals = rarefied.sum(axis=0)
    empty = totals[totals == 0]
    if len(empty):
        logger.warning(
            f"{len(empty)} samples are empty after even-sampling-depth rarefaction: "
            f"{empty.index.tolist()[:5]}"
        )
    relative = rarefied.div(totals.replace(0, np.nan), axis=1).fillna(0.0)
    return relative.mul(counts, axis=1)


def quantitative_microbiome_profiling(
    table: pd.DataFrame,
    cell_counts: Union[pd.Series, pd.DataFrame, Sequence[float]],
    seed: Optional[int] = constants.DEFAULT_QMP_SEED,
) -> pd.DataFrame:
    """QMP: even-sampling-depth rarefaction scaled by cell counts, rounded."""
    return rarefy_even_sampling_depth(table, cell_counts, seed=seed).round()
