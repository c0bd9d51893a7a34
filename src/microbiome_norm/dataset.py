# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

# Third-Party Imports
import pandas as pd

# Local Imports
from microbiome_norm import constants

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== CLASSES ======================================= #

class TableAlignmentError(ValueError):
    """Raised when abundance, taxonomy and metadata identifiers disagree."""
    pass


@dataclass(frozen=True)
class AbundanceDataset:
    """Abundance matrix annotated with taxonomy and sample metadata.

    Attributes:
        abundances: Taxa × samples table.
        taxonomy:   Taxa × ranks table, indexed like ``abundances`` rows.
        metadata:   Samples × variables table, indexed like ``abundances`` columns.
    """
    abundances: pd.DataFrame
    taxonomy: pd.DataFrame
    metadata: pd.DataFrame

    # ----------------------------------------------------------------------------- #

    @property
    def taxa(self) -> List[str]:
        return list(self.abundances.index)

    @property
    def samples(self) -> List[str]:
        return list(self.abundances.columns)

    @property
    def n_taxa(self) -> int:
        return self.abundances.shape[0]

    @property
    def n_samples(self) -> int:
        return self.abundances.shape[1]

    def taxa_sums(self) -> pd.Series:
        return self.abundances.sum(axis=1)

    def sample_sums(self) -> pd.Series:
        return self.abundances.sum(axis=0)

    def __repr__(self) -> str:
        return (
            f"AbundanceDataset({self.n_taxa} taxa × {self.n_samples} samples, "
            f"{self.taxonomy.shape[1]} ranks, {self.metadata.shape[1]} sample variables)"
        )

    # ----------------------------------------------------------------------------- #

    def validate(self, reorder: bool = True) -> "AbundanceDataset":
        """Check that the three tables describe the same taxa and samples.

        Args:
            reorder: Reindex taxonomy/metadata to the abundance order when the
                     identifier sets match but the order differs.

        Returns:
            The (possibly reordered) dataset.

        Raises:
            TableAlignmentError: If the identifier sets differ or contain duplicates.
        """
        for label, index in (
            ("abundance taxa", self.abundances.index),
            ("abundance samples", self.abundances.columns),
            ("taxonomy taxa", self.taxonomy.index),
            ("metadata samples", self.metadata.index),
        ):
            if index.has_duplicates:
                dups = index[index.duplicated()].unique().tolist()
                raise TableAlignmentError(f"Duplicate {label}: {dups[:5]}")

        _check_same_ids(
            self.abundances.index, self.taxonomy.index, "abundance table", "taxonomy table"
        )
        _check_same_ids(
            self.abundances.columns, self.metadata.index, "abundance table", "metadata table"
        )

        if not reorder:
            return self
        taxonomy, metadata = self.taxonomy, self.metadata
        if not taxonomy.index.equals(self.abundances.index):
            logger.debug("Reordering taxonomy rows to match abundance table")
            taxonomy = taxonomy.loc[self.abundances.index]
        if not metadata.index.equals(self.abundances.columns):
            logger.debug("Reordering metadata rows to match abundance table")
            metadata = metadata.loc[self.abundances.columns]
        return replace(self, taxonomy=taxonomy, metadata=metadata)

    # ----------------------------------------------------------------------------- #

    def with_abundances(self, abundances: pd.DataFrame) -> "AbundanceDataset":
        """Return a copy carrying a transformed abundance table.

        Taxonomy is restricted to the taxa present in the new table.
        """
        return replace(
            self,
            abundances=abundances,
            taxonomy=self.taxonomy.loc[self.taxonomy.index.intersection(abundances.index, sort=False)],
        )

    def prune_taxa(self, keep: Iterable[str]) -> "AbundanceDataset":
        keep_set = set(keep)
        keep = [t for t in self.abundances.index if t in keep_set]
        return replace(
            self,
            abundances=self.abundances.loc[keep],
            taxonomy=self.taxonomy.loc[self.taxonomy.index.intersection(keep, sort=False)],
        )

    def species_names(self) -> pd.Series:
        """Full species names (``"<Genus> <Species>"``) indexed by taxon id."""
        taxonomy = self.taxonomy.reindex(self.abundances.index)
        if {"Genus", "Species"}.issubset(taxonomy.columns):
            names = (
                taxonomy["Genus"].astype(str) + " " + taxonomy["Species"].astype(str)
            )
        else:
            names = pd.Series(self.abundances.index, index=self.abundances.index)
        names.name = constants.SPECIES_NAME_COLUMN
        return names

    def load_vector(self, column: str) -> pd.Series:
        """Per-sample load (cell count) column from metadata, in sample order.

        Raises:
            ValueError: If the column is missing.
        """
        if column not in self.metadata.columns:
            raise ValueError(f"Column '{column}' not found in sample metadata")
        return self.metadata.loc[self.samples, column].astype(float)

    def melt(self, columns: Optional[List[str]] = None) -> pd.DataFrame:
        """Long-format table: one row per taxon × sample.

        Columns are ``OTU``, ``Sample``, ``Abundance`` followed by the metadata
        columns and the species name.

        Args:
            columns: Metadata columns to keep (all by default).
        """
        long = (
            self.abundances
            .rename_axis(index="OTU", columns="Sample")
            .stack()
            .rename("Abundance")
            .reset_index()
        )
        meta = self.metadata if columns is None else self.metadata[columns]
        long = long.merge(meta, left_on="Sample", right_index=True, how="left")
        long[constants.SPECIES_NAME_COLUMN] = long["OTU"].map(self.species_names())
        return long

# ==================================== FUNCTIONS ===================================== #

def _check_same_ids(
    left: pd.Index, right: pd.Index, left_name: str, right_name: str
) -> None:
    left_only = left.difference(right)
    right_only = right.difference(left)
    if len(left_only) or len(right_only):
        raise TableAlignmentError(
            f"Identifiers differ between {left_name} and {right_name}: "
            f"{len(left_only)} only in {left_name} (e.g. {left_only[:3].tolist()}), "
            f"{len(right_only)} only in {right_name} (e.g. {right_only[:3].tolist()})"
        )
