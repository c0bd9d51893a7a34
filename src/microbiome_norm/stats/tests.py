# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Dict, List, Optional, Sequence, Union

# Third-Party Imports
import numpy as np
import pandas as pd
from scipy.stats import mannwhitneyu, pearsonr, spearmanr
from skbio.diversity import alpha
from statsmodels.stats.multitest import multipletests

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.utils.data import table_to_df

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ================================= DEFAULT VALUES =================================== #

CORRELATION_METHODS = {"spearman": spearmanr, "pearson": pearsonr}

# ================================= ALPHA DIVERSITY ================================== #

def alpha_diversity(
    table: Union[pd.DataFrame, AbundanceDataset],
    metrics: Sequence[str] = constants.DEFAULT_ALPHA_METRICS,
) -> pd.DataFrame:
    """
    Calculate alpha diversity metrics for each sample.

    Args:
        table:   Taxa × samples abundance table (or dataset).
        metrics: Any of ``Observed`` (number of taxa present) and ``Shannon``
                 (natural-log Shannon index).

    Returns:
        DataFrame with alpha diversity values (samples × metrics).

    Raises:
        ValueError: For unsupported metrics.
    """
    if isinstance(table, AbundanceDataset):
        table = table.abundances
    df = table_to_df(table)
    results = pd.DataFrame(index=df.columns)

    for metric in metrics:
        if metric == "Observed":
            results[metric] = (df > 0).sum(axis=0).astype(int)
        elif metric == "Shannon":
            if (df.values < 0).any():
                raise ValueError("Shannon diversity is undefined for negative abundances")
            results[metric] = [
                alpha.shannon(df[sample].to_numpy(dtype=float), base=np.e)
                if df[sample].sum() > 0 else np.nan
                for sample in df.columns
            ]
        else:
            raise ValueError(f"Unsupported alpha diversity metric: {metric}")
    return results


def diversity_correlation(
    original: pd.DataFrame,
    transformed: pd.DataFrame,
    method: str = constants.DEFAULT_CORRELATION_METHOD,
) -> pd.DataFrame:
    """
    Correlate per-sample alpha diversity of a transformed dataset with the
    diversity of the original communities.

    Args:
        original:    Samples × metrics alpha diversity of the real communities.
        transformed: Samples × metrics alpha diversity of the transformed data.
        method:      ``spearman`` or ``pearson``.

    Returns:
        DataFrame indexed by metric with ``r``, ``p_value`` and ``n``.
    """
    if method not in CORRELATION_METHODS:
        raise ValueError(
            f"Unknown correlation method '{method}'. Expected one of "
            f"{list(CORRELATION_METHODS)}"
        )
    common_samples = original.index.intersection(transformed.index, sort=False)
    if len(common_samples) < len(transformed.index):
        logger.warning(
            f"Only {len(common_samples)} of {len(transformed.index)} samples are shared "
            f"with the original diversity table"
        )

    results = []
    for metric in original.columns.intersection(transformed.columns, sort=False):
        pair = pd.concat(
            [original.loc[common_samples, metric], transformed.loc[common_samples, metric]],
            axis=1
        ).dropna()
        if len(pair) < 3:
            r, p_val = np.nan, np.nan
        else:
            r, p_val = CORRELATION_METHODS[method](pair.iloc[:, 0], pair.iloc[:, 1])
        results.append({
            'metric': metric, 'method': method, 'r': float(r), 'p_value': float(p_val),
            'n': len(pair)
        })
    return pd.DataFrame(results).set_index('metric')

# ================================ GROUP COMPARISONS ================================= #

def _group_masks(
    metadata: pd.DataFrame,
    samples: Sequence[str],
    group_column: str,
    group_column_values: Sequence[str],
) -> List[np.ndarray]:
    if group_column not in metadata.columns:
        raise ValueError(f"Column '{group_column}' not found in sample metadata")
    if len(group_column_values) != 2:
        raise ValueError(
            f"Exactly two groups are required, got {list(group_column_values)}"
        )
    missing = [s for s in samples if s not in metadata.index]
    if missing:
        raise ValueError(f"{len(missing)} samples have no metadata (e.g. {missing[:3]})")

    labels = metadata.loc[list(samples), group_column].astype(str).to_numpy()
    masks = [labels == str(value) for value in group_column_values]
    for value, mask in zip(group_column_values, masks):
        if not mask.any():
            raise ValueError(f"No samples in group '{value}' of column '{group_column}'")
    return masks


def _rank_sum(group1: np.ndarray, group2: np.ndarray) -> Dict[str, float]:
    """Two-sided Wilcoxon rank-sum test; constant data is not testable."""
    if len(group1) == 0 or len(group2) == 0:
        return {'statistic': np.nan, 'p': np.nan}
    pooled = np.concatenate([group1, group2])
    if np.all(pooled == pooled[0]):
        return {'statistic': np.nan, 'p': np.nan}
    u_stat, p_val = mannwhitneyu(group1, group2, alternative='two-sided')
    return {'statistic': float(u_stat), 'p': float(p_val)}


def compare_groups(
    values: Union[pd.Series, pd.DataFrame],
    metadata: pd.DataFrame,
    group_column: str = constants.DEFAULT_GROUP_COLUMN,
    group_column_values: Sequence[str] = constants.DEFAULT_GROUP_COLUMN_VALUES,
) -> pd.DataFrame:
    """
    Wilcoxon rank-sum comparison of per-sample values between two groups.

    Args:
        values:              Per-sample values (Series) or samples × variables table,
                             e.g. microbial loads or an alpha diversity table.
        metadata:            Sample metadata indexed by sample.
        group_column:        Metadata column containing group labels.
        group_column_values: The two groups to compare.

    Returns:
        DataFrame indexed by variable with ``group1``, ``group2``, ``n1``, ``n2``,
        ``statistic``, ``p``, ``median1`` and ``median2``.
    """
    if isinstance(values, pd.Series):
        values = values.to_frame(values.name or 'value')
    masks = _group_masks(metadata, values.index, group_column, group_column_values)

    results = []
    for variable in values.columns:
        column = values[variable].to_numpy(dtype=float)
        group1, group2 = column[masks[0]], column[masks[1]]
        group1, group2 = group1[~np.isnan(group1)], group2[~np.isnan(group2)]
        results.append({
            'variable': variable,
            'group1': group_column_values[0],
            'group2': group_column_values[1],
            'n1': len(group1),
            'n2': len(group2),
            **_rank_sum(group1, group2),
            'median1': float(np.median(group1)) if len(group1) else np.nan,
            'median2': float(np.median(group2)) if len(group2) else np.nan,
        })
    return pd.DataFrame(results).set_index('variable')

# ============================= DIFFERENTIAL ABUNDANCE =============================== #

def adjust_p_values(
    p_values: pd.Series,
    method: str = constants.DEFAULT_CORRECTION_METHOD,
) -> pd.Series:
    """Multiple-testing correction ignoring untestable (NaN) entries."""
    adjusted = pd.Series(np.nan, index=p_values.index, dtype=float)
    testable = p_values.notna()
    if testable.any():
        _, p_adj, _, _ = multipletests(p_values[testable].to_numpy(), method=method)
        adjusted[testable] = p_adj
    return adjusted


def wilcoxon_by_taxon(
    table: pd.DataFrame,
    metadata: pd.DataFrame,
    group_column: str = constants.DEFAULT_GROUP_COLUMN,
    group_column_values: Sequence[str] = constants.DEFAULT_GROUP_COLUMN_VALUES,
    correction_method: str = constants.DEFAULT_CORRECTION_METHOD,
) -> pd.DataFrame:
    """
    Per-taxon Wilcoxon rank-sum tests between two groups with FDR correction.

    Args:
        table:               Taxa × samples abundance table.
        metadata:            Sample metadata indexed by sample.
        group_column:        Metadata column containing group labels.
        group_column_values: The two groups to compare.
        correction_method:   statsmodels ``multipletests`` method.

    Returns:
        DataFrame indexed by taxon with ``group1``, ``group2``, ``n1``, ``n2``,
        ``statistic``, ``p`` and ``p_adjusted``. Taxa that are constant across
        all samples get NaN p-values.
    """
    df = table_to_df(table)
    masks = _group_masks(metadata, df.columns, group_column, group_column_values)
    values = df.to_numpy(dtype=float)

    results = []
    for i, taxon in enumerate(df.index):
        group1, group2 = values[i, masks[0]], values[i, masks[1]]
        results.append({
            'taxon': taxon,
            'group1': group_column_values[0],
            'group2': group_column_values[1],
            'n1': len(group1),
            'n2': len(group2),
            **_rank_sum(group1, group2),
        })
    results_df = pd.DataFrame(
        results, columns=['taxon', 'group1', 'group2', 'n1', 'n2', 'statistic', 'p']
    ).set_index('taxon')

    untestable = results_df['p'].isna().sum()
    if untestable:
        logger.warning(f"{untestable} taxa are constant across samples and were not tested")
    results_df['p_adjusted'] = adjust_p_values(results_df['p'], correction_method)
    return results_df


def mean_differences(
    table: pd.DataFrame,
    metadata: pd.DataFrame,
    group_column: str = constants.DEFAULT_GROUP_COLUMN,
    group_column_values: Sequence[str] = constants.DEFAULT_GROUP_COLUMN_VALUES,
) -> pd.Series:
    """Per-taxon difference in group means (first group minus second group)."""
    df = table_to_df(table)
    masks = _group_masks(metadata, df.columns, group_column, group_column_values)
    estimate = df.loc[:, masks[0]].mean(axis=1) - df.loc[:, masks[1]].mean(axis=1)
    estimate.name = 'estimate'
    return estimate


def differential_abundance(
    dataset: AbundanceDataset,
    method: Optional[str] = None,
    group_column: str = constants.DEFAULT_GROUP_COLUMN,
    group_column_values: Sequence[str] = constants.DEFAULT_GROUP_COLUMN_VALUES,
    correction_method: str = constants.DEFAULT_CORRECTION_METHOD,
) -> pd.DataFrame:
    """
    Differential abundance between two groups for every taxon of a dataset.

    Args:
        dataset:             Dataset to test (original or normalized).
        method:              Label stored in the ``method`` column.
        group_column:        Metadata column containing group labels.
        group_column_values: The two groups to compare.
        correction_method:   statsmodels ``multipletests`` method.

    Returns:
        DataFrame indexed by species name with the rank-sum results, the mean
        difference ``estimate``, the taxon id and the method label.
    """
    tests = wilcoxon_by_taxon(
        dataset.abundances, dataset.metadata,
        group_column, group_column_values, correction_method
    )
    tests['estimate'] = mean_differences(
        dataset.abundances, dataset.metadata, group_column, group_column_values
    )
    tests['method'] = method
    tests.index.name = 'taxon'
    tests = tests.reset_index()

    names = dataset.species_names()
    tests.insert(0, constants.SPECIES_NAME_COLUMN, tests['taxon'].map(names))
    if tests[constants.SPECIES_NAME_COLUMN].duplicated().any():
        logger.warning("Species names are not unique; taxon ids are used as labels")
        tests[constants.SPECIES_NAME_COLUMN] = tests['taxon']
    return tests.set_index(constants.SPECIES_NAME_COLUMN)
