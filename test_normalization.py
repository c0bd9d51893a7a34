"""
Tests for the normalization transforms and the method registry.
"""
import numpy as np
import pandas as pd
import pytest

from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.normalization.compositional import (
    centered_log_ratio, clr_transform, replace_zeros
)
from microbiome_norm.normalization.methods import NORMALIZATION_METHODS, normalize
from microbiome_norm.normalization.rarefaction import (
    quantitative_microbiome_profiling, rarefy_even_depth, sampling_depths
)
from microbiome_norm.normalization.scaling import absolute_count_scaling, scaling_factors
from microbiome_norm.normalization.variance_stabilizing import (
    variance_stabilizing_transform
)

from conftest import make_taxonomy


# ================================== RAREFACTION ===================================== #

def test_rarefied_columns_sum_to_minimum_depth(count_table):
    rarefied = rarefy_even_depth(count_table, seed=123)
    min_depth = count_table.sum(axis=0).min()
    assert (rarefied.sum(axis=0) == min_depth).all()
    assert rarefied.index.equals(count_table.index)
    assert rarefied.columns.equals(count_table.columns)


def test_rarefaction_never_adds_reads(count_table):
    rarefied = rarefy_even_depth(count_table, seed=123)
    assert (rarefied <= count_table).all().all()


def test_rarefaction_is_reproducible_with_seed(count_table):
    first = rarefy_even_depth(count_table, seed=7)
    second = rarefy_even_depth(count_table, seed=7)
    pd.testing.assert_frame_equal(first, second)


def test_samples_below_depth_are_emptied(count_table):
    sample_sums = count_table.sum(axis=0)
    depth = int(sample_sums.min()) + 1
    rarefied = rarefy_even_depth(count_table, depth=depth, seed=123)
    shallow = sample_sums < depth
    assert (rarefied.loc[:, shallow].sum(axis=0) == 0).all()
    assert (rarefied.loc[:, ~shallow].sum(axis=0) == depth).all()


# ====================================== QMP ========================================= #

@pytest.fixture
def cell_counts(count_table):
    factors = pd.Series([1.0, 2.0, 3.0, 1.5, 2.5, 1.2], index=count_table.columns)
    return count_table.sum(axis=0) * factors


def test_sampling_depths_are_reads_per_cell(count_table, cell_counts):
    depths = sampling_depths(count_table, cell_counts)
    np.testing.assert_allclose(depths.values, 1 / np.array([1.0, 2.0, 3.0, 1.5, 2.5, 1.2]))


def test_sampling_depths_reject_non_positive_counts(count_table, cell_counts):
    cell_counts.iloc[0] = 0
    with pytest.raises(ValueError):
        sampling_depths(count_table, cell_counts)


def test_qmp_columns_sum_to_cell_counts(count_table, cell_counts):
    qmp = quantitative_microbiome_profiling(count_table, cell_counts, seed=711)
    # Rounding moves each entry by at most one half
    tolerance = 0.5 * count_table.shape[0]
    assert (np.abs(qmp.sum(axis=0) - cell_counts) <= tolerance).all()


def test_qmp_keeps_limiting_sample_profile(count_table, cell_counts):
    qmp = quantitative_microbiome_profiling(count_table, cell_counts, seed=711)
    # S2 has the lowest reads-per-cell ratio and is not downsized
    np.testing.assert_allclose(qmp["S2"].values, (count_table["S2"] * 3).round().values)


def test_qmp_accepts_single_column_table(count_table, cell_counts):
    from_series = quantitative_microbiome_profiling(count_table, cell_counts)
    from_frame = quantitative_microbiome_profiling(
        count_table, cell_counts.to_frame("cells")
    )
    pd.testing.assert_frame_equal(from_series, from_frame)


# ====================================== CLR ========================================= #

def test_clr_columns_sum_to_zero(count_table):
    clr = centered_log_ratio(count_table)
    np.testing.assert_allclose(clr.sum(axis=0).values, 0.0, atol=1e-10)
    assert np.isfinite(clr.values).all()


def test_zero_replacement_keeps_nonzero_counts(count_table):
    replaced = replace_zeros(count_table)
    nonzero = count_table.values > 0
    assert (replaced.values > 0).all()
    np.testing.assert_allclose(replaced.values[nonzero], count_table.values[nonzero])


def test_clr_transform_rejects_zeros(count_table):
    table = count_table.copy()
    table.iloc[0, 0] = 0
    with pytest.raises(ValueError):
        clr_transform(table)


def test_zero_replacement_rejects_empty_samples(count_table):
    table = count_table.copy()
    table["S3"] = 0
    with pytest.raises(ValueError):
        replace_zeros(table)


# ====================================== ACS ========================================= #

def test_acs_with_unit_factor_reproduces_input(count_table):
    cells = count_table.sum(axis=0)
    np.testing.assert_array_equal(scaling_factors(count_table, cells).values, 1.0)
    scaled = absolute_count_scaling(count_table, cells)
    np.testing.assert_allclose(scaled.values, count_table.values)


def test_acs_scales_each_sample_to_its_cell_count(count_table):
    cells = count_table.sum(axis=0) * 10
    scaled = absolute_count_scaling(count_table, cells)
    np.testing.assert_allclose(scaled.values, count_table.values * 10)


def test_acs_leaves_empty_samples_empty(count_table):
    table = count_table.copy()
    table["S4"] = 0
    scaled = absolute_count_scaling(table, pd.Series(1000.0, index=table.columns))
    assert (scaled["S4"] == 0).all()


# ====================================== VST ========================================= #

@pytest.fixture
def vst_dataset():
    rng = np.random.default_rng(3)
    counts = rng.negative_binomial(5, 0.05, size=(30, 8)) + 1
    taxa = [f"ASV{i}" for i in range(30)]
    samples = [f"S{j}" for j in range(8)]
    return AbundanceDataset(
        abundances=pd.DataFrame(counts, index=taxa, columns=samples),
        taxonomy=make_taxonomy(taxa),
        metadata=pd.DataFrame(
            {
                "disease_status": ["Control"] * 4 + ["Patient"] * 4,
                "estimated_microbial_load": rng.uniform(1e8, 1e9, size=8),
            },
            index=samples,
        ),
    )


def test_vst_keeps_shape_and_is_finite(vst_dataset):
    vst = variance_stabilizing_transform(vst_dataset.abundances, vst_dataset.metadata)
    assert vst.shape == vst_dataset.abundances.shape
    assert vst.index.equals(vst_dataset.abundances.index)
    assert np.isfinite(vst.values).all()


def test_vst_rejects_non_integer_values(vst_dataset):
    with pytest.raises(ValueError):
        variance_stabilizing_transform(
            vst_dataset.abundances + 0.5, vst_dataset.metadata
        )


# =================================== REGISTRY ======================================= #

def test_registry_covers_default_methods():
    assert list(NORMALIZATION_METHODS) == constants.DEFAULT_METHODS


@pytest.mark.parametrize("method", ["RMP", "CLR", "ACS", "QMP"])
def test_normalize_keeps_samples_and_metadata(vst_dataset, method):
    normalized = normalize(vst_dataset, method)
    assert normalized.samples == vst_dataset.samples
    assert normalized.taxa == vst_dataset.taxa
    pd.testing.assert_frame_equal(normalized.metadata, vst_dataset.metadata)


def test_normalize_rejects_unknown_method(vst_dataset):
    with pytest.raises(ValueError, match="Unknown normalization method"):
        normalize(vst_dataset, "TSS")


def test_quantitative_methods_need_load_column(vst_dataset):
    with pytest.raises(ValueError):
        normalize(vst_dataset, "ACS", {"load_column": "flow_cytometry"})
