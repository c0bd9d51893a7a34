"""
Shared synthetic data for the test modules.
"""
# ===================================== IMPORTS ====================================== #

import numpy as np
import pandas as pd
import pytest

from microbiome_norm.dataset import AbundanceDataset

# ==================================== FIXTURES ====================================== #

def make_taxonomy(taxa):
    return pd.DataFrame({
        "Kingdom": "Bacteria",
        "Phylum": "Firmicutes",
        "Class": "Clostridia",
        "Order": "Clostridiales",
        "Family": "Lachnospiraceae",
        "Genus": [f"G{i}" for i in range(len(taxa))],
        "Species": [f"s{i}" for i in range(len(taxa))],
    }, index=taxa)


@pytest.fixture
def count_table():
    """15 taxa × 6 samples of integer counts with uneven depths."""
    rng = np.random.default_rng(1)
    counts = rng.integers(0, 60, size=(15, 6))
    counts[:, 0] += 20
    return pd.DataFrame(
        counts,
        index=[f"ASV{i}" for i in range(15)],
        columns=[f"S{j}" for j in range(6)],
    )


@pytest.fixture
def benchmark_data():
    """Real and sequenced datasets, 10 taxa × 20 samples, where only the first
    two taxa differ between groups.

    The non-differential taxa hold the same values in both groups (reversed), so
    the reference test finds no difference for them.
    """
    rng = np.random.default_rng(42)
    n_taxa, n_per_group = 10, 10
    taxa = [f"ASV{i}" for i in range(n_taxa)]
    samples = [f"S{j:02d}" for j in range(2 * n_per_group)]
    status = ["Control"] * n_per_group + ["Patient"] * n_per_group

    base = rng.uniform(50, 500, size=(n_taxa, n_per_group)).round()
    absolute = np.hstack([base, base[:, ::-1]])
    absolute[:2, n_per_group:] = absolute[:2, n_per_group:] * 20 + 1000
    loads = absolute.sum(axis=0)

    proportions = absolute / loads
    reads = np.column_stack([
        rng.multinomial(5000, proportions[:, j]) for j in range(len(samples))
    ])

    taxonomy = make_taxonomy(taxa)
    real = AbundanceDataset(
        abundances=pd.DataFrame(absolute, index=taxa, columns=samples),
        taxonomy=taxonomy,
        metadata=pd.DataFrame(
            {"disease_status": status, "microbial_load": loads}, index=samples
        ),
    )
    sequenced = AbundanceDataset(
        abundances=pd.DataFrame(reads, index=taxa, columns=samples),
        taxonomy=taxonomy,
        metadata=pd.DataFrame(
            {"disease_status": status, "estimated_microbial_load": loads}, index=samples
        ),
    )
    return {"real": real, "sequenced": sequenced, "da_taxa": ["G0 s0", "G1 s1"]}
