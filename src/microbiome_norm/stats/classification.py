# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import List, Optional, Sequence

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def classify_outcome(
    reference_significant: bool,
    reference_sign: float,
    test_significant: bool,
    test_sign: float,
) -> str:
    """Outcome of one taxon's test result against the ground-truth result.

    Args:
        reference_significant: Significant in the reference (real) data.
        reference_sign:        Sign of the reference mean difference.
        test_significant:      Significant after normalization.
        test_sign:             Sign of the mean difference after normalization.

    Returns:
        One of ``True Positive``, ``Discordant``, ``False Positive``,
        ``True Negative``, ``False Negative``.
    """
    if test_significant and reference_significant:
        if np.sign(test_sign) == np.sign(reference_sign):
            return constants.TRUE_POSITIVE
        return constants.DISCORDANT
    if test_significant:
        return constants.FALSE_POSITIVE
    if reference_significant:
        return constants.FALSE_NEGATIVE
    return constants.TRUE_NEGATIVE


def significance_table(
    results: pd.DataFrame,
    alpha: float = constants.DEFAULT_SIGNIFICANCE_ALPHA,
) -> pd.DataFrame:
    """Significance flag and direction of change for each tested taxon.

    Untestable taxa (NaN adjusted p-value) are not significant.
    """
    return pd.DataFrame({
        'p_adjusted_significant': (results['p_adjusted'] < alpha).fillna(False).astype(bool),
        'direction_change': np.sign(results['estimate']),
    }, index=results.index)


def classify_taxa(
    reference: pd.DataFrame,
    results: pd.DataFrame,
    alpha: float = constants.DEFAULT_SIGNIFICANCE_ALPHA,
) -> pd.DataFrame:
    """Assign an outcome class to every (taxon, method) result.

    Args:
        reference: Differential abundance of the real communities, indexed by
                   species name.
        results:   Differential abundance of one or more normalized datasets,
                   indexed by species name (with a ``method`` column).
        alpha:     Significance level on the adjusted p-values.

    Returns:
        Copy of ``results`` with a ``class_taxa`` column.

    Results are matched to the reference on the ``taxon`` id column when both
    tables carry it, so species-name labels may differ between the two; tables
    without it are matched on their index.

    Raises:
        KeyError: If a tested taxon has no reference result.
    """
    if 'taxon' in reference.columns and 'taxon' in results.columns:
        reference_keys = pd.Index(reference['taxon'])
        result_keys = pd.Index(results['taxon'])
    else:
        reference_keys, result_keys = reference.index, results.index

    missing = result_keys.difference(reference_keys).unique()
    if len(missing):
        raise KeyError(
            f"{len(missing)} taxa have no reference result: {missing[:5].tolist()}"
        )

    real = significance_table(reference, alpha)
    real.index = reference_keys
    real = real.loc[result_keys]
    test = significance_table(results, alpha)

    classified = results.copy()
    classified['class_taxa'] = [
        classify_outcome(r_sig, r_dir, t_sig, t_dir)
        for r_sig, r_dir, t_sig, t_dir in zip(
            real['p_adjusted_significant'], real['direction_change'],
            test['p_adjusted_significant'], test['direction_change'],
        )
    ]
    return classified


def _count_table(
    classified: pd.DataFrame,
    methods: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    methods = list(methods) if methods is not None else _ordered_methods(classified)
    counts = pd.crosstab(classified['method'], classified['class_taxa'])
    return (
        counts
        .reindex(index=methods, columns=constants.OUTCOME_CLASSES, fill_value=0)
        .rename_axis(index='method', columns='class_taxa')
    )


def _ordered_methods(classified: pd.DataFrame) -> List[str]:
    present = list(pd.unique(classified['method']))
    known = [m for m in constants.DEFAULT_METHODS if m in present]
    return known + [m for m in present if m not in known]


def summarize_outcomes(
    classified: pd.DataFrame,
    methods: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Number of taxa per method and outcome class (methods × classes)."""
    return _count_table(classified, methods)


def disease_associated(
    classified: pd.DataFrame,
    alpha: float = constants.DEFAULT_SIGNIFICANCE_ALPHA,
    methods: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Outcome counts restricted to taxa called more abundant in the second group
    (significant with a negative estimate)."""
    methods = list(methods) if methods is not None else _ordered_methods(classified)
    called = classified[(classified['p_adjusted'] < alpha) & (classified['estimate'] < 0)]
    return _count_table(called, methods)


def opportunist_taxa(
    reference: pd.DataFrame,
    alpha: float = constants.DEFAULT_SIGNIFICANCE_ALPHA,
) -> List[str]:
    """Taxa significantly more abundant in the second group (e.g. patients)."""
    mask = (reference['estimate'] < 0) & (reference['p_adjusted'] < alpha)
    return reference.index[mask].tolist()


def unresponsive_taxa(
    reference: pd.DataFrame,
    alpha: float = constants.DEFAULT_SIGNIFICANCE_ALPHA,
) -> List[str]:
    """Taxa tested without a significant difference between groups (untestable
    taxa are excluded)."""
    return reference.index[reference['p_adjusted'] > alpha].tolist()
