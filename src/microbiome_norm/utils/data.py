# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Dict, Optional, Sequence, Union

# Third-Party Imports
import numpy as np
import pandas as pd
from biom import Table

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ================================ TABLE CONVERSION ================================== #

def to_biom(table: Union[Dict, Table, pd.DataFrame]) -> Table:
    """Convert an abundance table to a BIOM Table.

    DataFrames are expected in taxa × samples orientation (taxa as index),
    which is also the orientation BIOM uses (observations × samples).

    Args:
        table: Input table.

    Returns:
        BIOM Table.

    Raises:
        TypeError: For unsupported input types.
    """
    if isinstance(table, Table):
        return table
    if isinstance(table, dict):
        table = pd.DataFrame(table)
    if isinstance(table, pd.DataFrame):
        return Table(
            table.values.astype(float),
            observation_ids=[str(i) for i in table.index],
            sample_ids=[str(c) for c in table.columns],
        )
    raise TypeError("Input must be BIOM Table, dict, or DataFrame.")


def biom_to_df(
    table: Table,
    taxa: Optional[Sequence[str]] = None,
    samples: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Convert a BIOM Table back to a taxa × samples DataFrame.

    BIOM drops empty observations and samples on several operations; passing the
    original ``taxa`` / ``samples`` reinstates them as all-zero rows/columns.
    """
    df = table.to_dataframe(dense=True)
    if taxa is not None or samples is not None:
        df = df.reindex(
            index=list(taxa) if taxa is not None else df.index,
            columns=list(samples) if samples is not None else df.columns,
            fill_value=0.0,
        )
    return df


def table_to_df(table: Union[Dict, Table, pd.DataFrame]) -> pd.DataFrame:
    """Return a taxa × samples DataFrame for any supported table type."""
    if isinstance(table, pd.DataFrame):
        return table
    if isinstance(table, Table):
        return biom_to_df(table)
    if isinstance(table, dict):
        return pd.DataFrame(table)
    raise TypeError("Input must be BIOM Table, dict, or DataFrame.")


def is_integer_valued(table: pd.DataFrame, atol: float = 1e-5) -> bool:
    values = np.asarray(table.values, dtype=float)
    return bool(np.allclose(values, np.round(values), atol=atol))


def align_vector(
    values: Union[pd.Series, pd.DataFrame, Sequence[float]],
    samples: Sequence[str],
    name: str = "values",
) -> pd.Series:
    """Return a per-sample vector ordered like ``samples``.

    Accepts a Series indexed by sample, a single-column DataFrame (the cell-count
    table layout) or a plain sequence already in sample order.

    Raises:
        ValueError: If samples are missing or the length does not match.
    """
    if isinstance(values, pd.DataFrame):
        if values.shape[1] != 1:
            raise ValueError(
                f"Expected a single-column table for {name}, got {values.shape[1]} columns"
            )
        values = values.iloc[:, 0]
    if isinstance(values, pd.Series):
        missing = [s for s in samples if s not in values.index]
        if missing:
            raise ValueError(
                f"{name} missing for {len(missing)} samples (e.g. {missing[:3]})"
            )
        return values.loc[list(samples)].astype(float)
    values = list(values)
    if len(values) != len(samples):
        raise ValueError(
            f"Length of {name} ({len(values)}) does not match number of samples "
            f"({len(samples)})"
        )
    return pd.Series(values, index=list(samples), dtype=float, name=name)
