# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Union

# Third-Party Imports
import pandas as pd

# Local Imports
from microbiome_norm import constants
from microbiome_norm.dataset import AbundanceDataset

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== FUNCTIONS ===================================== #

def import_table_tsv(tsv_path: Union[str, Path]) -> pd.DataFrame:
    """Load a tab-separated table whose first column holds the row identifiers.

    Raises:
        FileNotFoundError: If specified path doesn't exist.
    """
    tsv_path = Path(tsv_path)
    if not tsv_path.exists():
        raise FileNotFoundError(f"Table not found: {tsv_path}")
    df = pd.read_csv(tsv_path, sep="\t", index_col=0)
    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    logger.debug(f"Loaded {tsv_path.name}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def import_taxonomy_tsv(tsv_path: Union[str, Path]) -> pd.DataFrame:
    """Load a taxonomy table, keeping rank labels as strings."""
    taxonomy = import_table_tsv(tsv_path)
    return taxonomy.astype(str)


def load_dataset(
    abundance_path: Union[str, Path],
    taxonomy_path: Union[str, Path],
    metadata_path: Union[str, Path],
    validate: bool = True,
) -> AbundanceDataset:
    """Build an AbundanceDataset from the three flat tables.

    Args:
        abundance_path: Taxa × samples TSV.
        taxonomy_path:  Taxa × ranks TSV.
        metadata_path:  Samples × variables TSV.
        validate:       Fail fast on misaligned identifiers.
    """
    dataset = AbundanceDataset(
        abundances=import_table_tsv(abundance_path),
        taxonomy=import_taxonomy_tsv(taxonomy_path),
        metadata=import_table_tsv(metadata_path),
    )
    if validate:
        dataset = dataset.validate()
    else:
        logger.warning(
            "Identifier alignment between abundance, taxonomy and metadata tables "
            "is not checked"
        )
    logger.info(f"Loaded {dataset}")
    return dataset


def load_dataset_dir(
    dataset_dir: Union[str, Path],
    validate: bool = True,
) -> AbundanceDataset:
    """Load a dataset laid out as ``abundance_table.tsv``, ``tax_table.txt`` and
    ``metadata_samples.txt`` inside one directory."""
    dataset_dir = Path(dataset_dir)
    return load_dataset(
        dataset_dir / constants.ABUNDANCE_TABLE_FILENAME,
        dataset_dir / constants.TAXONOMY_TABLE_FILENAME,
        dataset_dir / constants.METADATA_TABLE_FILENAME,
        validate=validate,
    )


def write_table_tsv(df: pd.DataFrame, tsv_path: Union[str, Path], index: bool = True) -> Path:
    tsv_path = Path(tsv_path)
    tsv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(tsv_path, sep="\t", index=index)
    logger.debug(f"Wrote {tsv_path}")
    return tsv_path


def write_dataset_dir(dataset: AbundanceDataset, dataset_dir: Union[str, Path]) -> Path:
    dataset_dir = Path(dataset_dir)
    write_table_tsv(dataset.abundances, dataset_dir / constants.ABUNDANCE_TABLE_FILENAME)
    write_table_tsv(dataset.taxonomy, dataset_dir / constants.TAXONOMY_TABLE_FILENAME)
    write_table_tsv(dataset.metadata, dataset_dir / constants.METADATA_TABLE_FILENAME)
    return dataset_dir
