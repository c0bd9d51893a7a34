"""
Tests for prevalence filtering and top-taxa selection.
"""
import numpy as np
import pandas as pd
import pytest

from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.utils.table_filtering import (
    filter_dataset, filter_prevalence, prevalence, top_taxa
)

from conftest import make_taxonomy


@pytest.fixture
def prevalence_table():
    # Prevalences: 1.0, 0.6, 0.4, 0.2, 0.0
    return pd.DataFrame(
        [
            [1, 2, 3, 4, 5],
            [1, 1, 1, 0, 0],
            [0, 7, 0, 2, 0],
            [0, 0, 0, 0, 9],
            [0, 0, 0, 0, 0],
        ],
        index=["A", "B", "C", "D", "E"],
        columns=[f"S{i}" for i in range(5)],
    )


def test_prevalence_is_fraction_of_nonzero_samples(prevalence_table):
    expected = pd.Series([1.0, 0.6, 0.4, 0.2, 0.0], index=prevalence_table.index)
    pd.testing.assert_series_equal(prevalence(prevalence_table), expected)


def test_threshold_is_strict(prevalence_table):
    """A taxon whose prevalence equals the threshold is removed."""
    filtered = filter_prevalence(prevalence_table, 0.2)
    assert filtered.index.tolist() == ["A", "B", "C"]


def test_zero_threshold_keeps_taxa_seen_once(prevalence_table):
    filtered = filter_prevalence(prevalence_table, 0.0)
    assert filtered.index.tolist() == ["A", "B", "C", "D"]


def test_filtered_set_shrinks_with_threshold(count_table):
    previous = set(count_table.index)
    for threshold in np.linspace(0.0, 0.95, 20):
        kept = set(filter_prevalence(count_table, threshold).index)
        assert kept <= previous
        previous = kept


def test_threshold_removing_everything_returns_empty(prevalence_table):
    filtered = filter_prevalence(prevalence_table, 1.0)
    assert filtered.empty
    assert list(filtered.columns) == list(prevalence_table.columns)


def test_filter_dataset_prunes_taxonomy(prevalence_table):
    dataset = AbundanceDataset(
        abundances=prevalence_table,
        taxonomy=make_taxonomy(prevalence_table.index.tolist()),
        metadata=pd.DataFrame(
            {"disease_status": ["Control"] * 5}, index=prevalence_table.columns
        ),
    )
    filtered = filter_dataset(dataset, 0.5)
    assert filtered.taxa == ["A", "B"]
    assert filtered.taxonomy.index.tolist() == ["A", "B"]
    assert filtered.samples == dataset.samples


def test_top_taxa_orders_by_total_abundance(prevalence_table):
    assert top_taxa(prevalence_table, 3) == ["A", "C", "D"]


def test_top_taxa_keeps_table_order_on_ties():
    table = pd.DataFrame({"S1": [5, 5, 1]}, index=["X", "Y", "Z"])
    assert top_taxa(table, 2) == ["X", "Y"]
