"""
Tests for the dataset container, table I/O and configuration loading.
"""
import pandas as pd
import pytest

from microbiome_norm import constants
from microbiome_norm.config import get_config
from microbiome_norm.dataset import AbundanceDataset, TableAlignmentError
from microbiome_norm.utils.io import (
    import_table_tsv, load_dataset, load_dataset_dir, write_dataset_dir
)

from conftest import make_taxonomy


@pytest.fixture
def dataset():
    taxa = ["ASV1", "ASV2", "ASV3"]
    samples = ["S1", "S2"]
    return AbundanceDataset(
        abundances=pd.DataFrame([[1, 0], [4, 5], [0, 2]], index=taxa, columns=samples),
        taxonomy=make_taxonomy(taxa),
        metadata=pd.DataFrame(
            {"disease_status": ["Control", "Patient"],
             "estimated_microbial_load": [1e9, 2e9]},
            index=samples,
        ),
    )


# ================================== VALIDATION ====================================== #

def test_validate_reorders_taxonomy_and_metadata(dataset):
    shuffled = AbundanceDataset(
        dataset.abundances,
        dataset.taxonomy.iloc[::-1],
        dataset.metadata.iloc[::-1],
    )
    validated = shuffled.validate()
    assert validated.taxonomy.index.tolist() == dataset.taxa
    assert validated.metadata.index.tolist() == dataset.samples


def test_validate_rejects_missing_metadata(dataset):
    broken = AbundanceDataset(
        dataset.abundances, dataset.taxonomy, dataset.metadata.iloc[:1]
    )
    with pytest.raises(TableAlignmentError, match="metadata"):
        broken.validate()


def test_validate_rejects_unknown_taxa(dataset):
    taxonomy = dataset.taxonomy.rename(index={"ASV3": "ASV9"})
    with pytest.raises(ValueError):
        AbundanceDataset(dataset.abundances, taxonomy, dataset.metadata).validate()


def test_validate_rejects_duplicate_samples(dataset):
    metadata = pd.concat([dataset.metadata, dataset.metadata.iloc[:1]])
    with pytest.raises(TableAlignmentError, match="Duplicate"):
        AbundanceDataset(dataset.abundances, dataset.taxonomy, metadata).validate()


# =================================== ACCESSORS ====================================== #

def test_sums_and_shape(dataset):
    assert (dataset.n_taxa, dataset.n_samples) == (3, 2)
    assert dataset.taxa_sums().tolist() == [1, 9, 2]
    assert dataset.sample_sums().tolist() == [5, 7]


def test_species_names(dataset):
    names = dataset.species_names()
    assert names.tolist() == ["G0 s0", "G1 s1", "G2 s2"]
    assert names.name == constants.SPECIES_NAME_COLUMN


def test_prune_taxa_keeps_table_order(dataset):
    pruned = dataset.prune_taxa(["ASV3", "ASV1"])
    assert pruned.taxa == ["ASV1", "ASV3"]
    assert pruned.taxonomy.index.tolist() == ["ASV1", "ASV3"]


def test_load_vector(dataset):
    loads = dataset.load_vector("estimated_microbial_load")
    assert loads.tolist() == [1e9, 2e9]
    with pytest.raises(ValueError):
        dataset.load_vector("microbial_load")


def test_melt_is_one_row_per_taxon_and_sample(dataset):
    long = dataset.melt(["disease_status"])
    assert len(long) == 6
    assert list(long.columns) == [
        "OTU", "Sample", "Abundance", "disease_status", constants.SPECIES_NAME_COLUMN
    ]
    row = long[(long["OTU"] == "ASV2") & (long["Sample"] == "S2")].iloc[0]
    assert row["Abundance"] == 5
    assert row["disease_status"] == "Patient"


# ====================================== I/O ========================================= #

def test_dataset_dir_round_trip(dataset, tmp_path):
    write_dataset_dir(dataset, tmp_path / "seq_data")
    loaded = load_dataset_dir(tmp_path / "seq_data")
    pd.testing.assert_frame_equal(loaded.abundances, dataset.abundances)
    assert loaded.taxonomy.equals(dataset.taxonomy.astype(str))
    assert loaded.metadata["disease_status"].tolist() == ["Control", "Patient"]


def test_misaligned_files_fail_fast(dataset, tmp_path):
    write_dataset_dir(dataset, tmp_path)
    metadata = dataset.metadata.rename(index={"S2": "S3"})
    metadata.to_csv(tmp_path / constants.METADATA_TABLE_FILENAME, sep="\t")
    with pytest.raises(TableAlignmentError):
        load_dataset_dir(tmp_path)
    # Validation can be switched off
    assert load_dataset_dir(tmp_path, validate=False).n_samples == 2


def test_missing_table_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        import_table_tsv(tmp_path / "missing.tsv")
    with pytest.raises(FileNotFoundError):
        load_dataset(
            tmp_path / "a.tsv", tmp_path / "b.txt", tmp_path / "c.txt"
        )


# ==================================== CONFIG ======================================== #

def test_config_resolves_paths_and_fills_defaults(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "data_dir: ./data\n"
        "filtering:\n"
        "  prevalence_threshold: 0.1\n"
    )
    config = get_config(config_path)
    assert config["data_dir"] == (tmp_path / "data").resolve()
    assert config["filtering"]["prevalence_threshold"] == 0.1
    assert config["filtering"]["top_n"] == constants.DEFAULT_TOP_N
    assert config["normalization"]["qmp_seed"] == constants.DEFAULT_QMP_SEED
    assert config["group_column"] == constants.DEFAULT_GROUP_COLUMN
