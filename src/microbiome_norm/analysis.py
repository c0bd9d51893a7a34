# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from microbiome_norm import constants
from microbiome_norm.config import DEFAULT_SETTINGS, merge_defaults
from microbiome_norm.dataset import AbundanceDataset
from microbiome_norm.normalization.methods import normalize
from microbiome_norm.stats.classification import (
    classify_taxa, disease_associated, opportunist_taxa, summarize_outcomes,
    unresponsive_taxa
)
from microbiome_norm.stats.tests import (
    alpha_diversity, compare_groups, differential_abundance, diversity_correlation
)
from microbiome_norm.utils.io import load_dataset_dir, write_table_tsv
from microbiome_norm.utils.progress import _format_task_desc, get_progress_bar
from microbiome_norm.utils.table_filtering import filter_dataset, top_taxa

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("microbiome_norm")

# ==================================== CLASSES ======================================= #

class NormalizationBenchmark:
    """Benchmark normalization methods against the real (absolute) communities.

    The real communities give the reference diversity and differential abundance;
    each normalization of the sequencing data is scored against that reference.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        real: Optional[AbundanceDataset] = None,
        sequenced: Optional[AbundanceDataset] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ):
        self.config = merge_defaults(config or {}, DEFAULT_SETTINGS)
        output_dir = output_dir if output_dir is not None else self.config["output_dir"]
        self.output_dir = Path(output_dir) if output_dir else None

        self.group_column = self.config["group_column"]
        self.group_column_values = list(self.config["group_column_values"])
        self.real = real
        self.sequenced = sequenced

        self.normalized: Dict[str, AbundanceDataset] = {}
        self.results: Dict[str, Dict[str, Any]] = {"real": {}, "sequenced": {}}

        logger.info("Running normalization benchmark...")
        self._execute_pipeline()

    def _execute_pipeline(self):
        """Execute the benchmark in sequence."""
        self._load_data()
        self._analyze_real()
        self._analyze_sequenced()
        logger.info("Normalization benchmark finished.")

    # ------------------------------------------------------------------ #
    # Data
    # ------------------------------------------------------------------ #

    def _dataset_dir(self, key: str, default_name: str) -> Path:
        if self.config.get(key):
            return Path(self.config[key])
        return Path(self.config["data_dir"]) / default_name

    def _load_data(self):
        validate = self.config["validate_alignment"]
        if self.real is None:
            self.real = load_dataset_dir(
                self._dataset_dir("real_community_dir", constants.REAL_COMMUNITY_DIR),
                validate=validate,
            )
        if self.sequenced is None:
            self.sequenced = load_dataset_dir(
                self._dataset_dir("seq_data_dir", constants.SEQ_DATA_DIR),
                validate=validate,
            )

    def _write(self, df: pd.DataFrame, filename: str) -> None:
        if self.output_dir is not None:
            write_table_tsv(df, self.output_dir / filename)

    def _compare(self, values: Union[pd.Series, pd.DataFrame], metadata: pd.DataFrame):
        return compare_groups(
            values, metadata, self.group_column, self.group_column_values
        )

    def _load_comparison(self, dataset: AbundanceDataset, column: str) -> Optional[pd.DataFrame]:
        if column not in dataset.metadata.columns:
            logger.warning(f"No '{column}' column in sample metadata; load comparison skipped")
            return None
        comparison = self._compare(dataset.load_vector(column), dataset.metadata)
        row = comparison.iloc[0]
        logger.info(
            f"{column}: median {row['median1']:.3g} ({row['group1']}) vs "
            f"{row['median2']:.3g} ({row['group2']}), p = {row['p']:.3g}"
        )
        return comparison

    # ------------------------------------------------------------------ #
    # Real communities
    # ------------------------------------------------------------------ #

    def _analyze_real(self):
        results = self.results["real"]
        results["load_comparison"] = self._load_comparison(
            self.real, constants.DEFAULT_LOAD_COLUMN
        )
        results["top_taxa"] = top_taxa(self.real, self.config["filtering"]["top_n"])

        alpha_cfg = self.config["alpha_diversity"]
        if alpha_cfg["enabled"]:
            alpha_div = alpha_diversity(self.real, alpha_cfg["metrics"])
            results["alpha_diversity"] = alpha_div
            results["alpha_comparison"] = self._compare(alpha_div, self.real.metadata)
            self._write(alpha_div, "original_alpha_div.tsv")

        da_cfg = self.config["differential_abundance"]
        if da_cfg["enabled"]:
            reference = differential_abundance(
                self.real, "Original", self.group_column, self.group_column_values,
                da_cfg["correction_method"],
            )
            results["differential_abundance"] = reference
            results["opportunists"] = opportunist_taxa(reference, da_cfg["alpha"])
            results["unresponsive"] = unresponsive_taxa(reference, da_cfg["alpha"])
            self._write(reference, "original_differential_abundance.tsv")
            logger.info(
                f"Reference: {len(results['opportunists'])} taxa enriched in "
                f"'{self.group_column_values[1]}', {len(results['unresponsive'])} "
                f"without a significant difference"
            )

    # ------------------------------------------------------------------ #
    # Sequencing data
    # ------------------------------------------------------------------ #

    def _normalization_params(self) -> Dict:
        norm_cfg = self.config["normalization"]
        return {
            "rarefaction_seed": norm_cfg["rarefaction_seed"],
            "qmp_seed": norm_cfg["qmp_seed"],
            "load_column": norm_cfg["load_column"],
            "group_column": self.group_column,
        }

    def _analyze_sequenced(self):
        results = self.results["sequenced"]
        norm_cfg = self.config["normalization"]
        alpha_cfg = self.config["alpha_diversity"]
        da_cfg = self.config["differential_abundance"]

        results["load_comparison"] = self._load_comparison(
            self.sequenced, norm_cfg["load_column"]
        )
        filtered = filter_dataset(
            self.sequenced, self.config["filtering"]["prevalence_threshold"]
        )
        results["filtered"] = filtered
        logger.info(
            f"Prevalence filter kept {filtered.n_taxa} of {self.sequenced.n_taxa} taxa"
        )

        methods: List[str] = list(norm_cfg["methods"])
        params = self._normalization_params()
        results.update({
            "alpha_diversity": {}, "alpha_comparison": {}, "diversity_correlation": {}
        })
        da_results = []

        with get_progress_bar() as progress:
            task = progress.add_task(
                _format_task_desc("Benchmarking normalization methods"),
                total=len(methods)
            )
            for method in methods:
                progress.update(task, description=_format_task_desc(f"Normalizing ({method})"))
                normalized = normalize(filtered, method, params)
                self.normalized[method] = normalized

                if alpha_cfg["enabled"] and method in constants.COUNT_METHODS:
                    self._method_alpha_diversity(method, normalized)
                if da_cfg["enabled"]:
                    da_results.append(differential_abundance(
                        normalized, method, self.group_column, self.group_column_values,
                        da_cfg["correction_method"],
                    ))
                progress.update(task, advance=1)

        if results["diversity_correlation"]:
            correlations = pd.concat(
                results["diversity_correlation"], names=["normalization", "metric"]
            )
            self._write(correlations, "diversity_correlation.tsv")

        if da_results:
            self._classify(pd.concat(da_results), methods)

    def _method_alpha_diversity(self, method: str, normalized: AbundanceDataset):
        results = self.results["sequenced"]
        alpha_cfg = self.config["alpha_diversity"]
        alpha_div = alpha_diversity(normalized, alpha_cfg["metrics"])
        results["alpha_diversity"][method] = alpha_div
        results["alpha_comparison"][method] = self._compare(alpha_div, normalized.metadata)
        self._write(alpha_div, f"{method}_alpha_div.tsv")

        original = self.results["real"].get("alpha_diversity")
        if original is not None:
            correlation = diversity_correlation(
                original, alpha_div, alpha_cfg["correlation_method"]
            )
            results["diversity_correlation"][method] = correlation
            for metric, row in correlation.iterrows():
                logger.debug(f"{method} {metric}: r = {row['r']:.3f} (n = {row['n']})")

    def _classify(self, da_results: pd.DataFrame, methods: List[str]):
        results = self.results["sequenced"]
        alpha = self.config["differential_abundance"]["alpha"]
        reference = self.results["real"]["differential_abundance"]

        classified = classify_taxa(reference, da_results, alpha)
        summary = summarize_outcomes(classified, methods)
        associated = disease_associated(classified, alpha, methods)
        results.update({
            "differential_abundance": classified,
            "outcome_summary": summary,
            "disease_associated": associated,
        })
        self._write(classified, "differential_abundance.tsv")
        self._write(summary, "outcome_summary.tsv")
        self._write(associated, "disease_associated_summary.tsv")
        for method, row in summary.iterrows():
            logger.info(
                f"{method}: " + ", ".join(f"{cls} {row[cls]}" for cls in summary.columns)
            )
