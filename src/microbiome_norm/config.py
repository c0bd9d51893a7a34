# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from pathlib import Path
from typing import Any, Dict, Union

# Third-Party Imports
import yaml

# Local Imports
from microbiome_norm import constants

# ================================= DEFAULT VALUES =================================== #

DEFAULT_SETTINGS: Dict[str, Any] = {
    "seed": constants.DEFAULT_SEED,
    "output_dir": constants.DEFAULT_OUTPUT_DIR,
    "log_dir": constants.DEFAULT_LOG_DIR,
    # Holds real_community/ and seq_data/ unless those are given explicitly
    "data_dir": constants.DEFAULT_DATA_DIR,
    "real_community_dir": None,
    "seq_data_dir": None,
    "validate_alignment": True,
    "group_column": constants.DEFAULT_GROUP_COLUMN,
    "group_column_values": constants.DEFAULT_GROUP_COLUMN_VALUES,
    "filtering": {
        "prevalence_threshold": constants.DEFAULT_PREVALENCE_THRESHOLD,
        "top_n": constants.DEFAULT_TOP_N,
    },
    "normalization": {
        "methods": constants.DEFAULT_METHODS,
        "rarefaction_seed": constants.DEFAULT_RAREFACTION_SEED,
        "qmp_seed": constants.DEFAULT_QMP_SEED,
        "load_column": constants.DEFAULT_ESTIMATED_LOAD_COLUMN,
    },
    "alpha_diversity": {
        "enabled": True,
        "metrics": constants.DEFAULT_ALPHA_METRICS,
        "correlation_method": constants.DEFAULT_CORRELATION_METHOD,
    },
    "differential_abundance": {
        "enabled": True,
        "alpha": constants.DEFAULT_SIGNIFICANCE_ALPHA,
        "correction_method": constants.DEFAULT_CORRECTION_METHOD,
    },
}

# ==================================== FUNCTIONS ===================================== #

def resolve_relative_paths(config: Dict, config_dir: Path) -> Dict:
    """Converts any relative paths in the configuration to absolute paths based on
    the directory of the config file."""
    for key, value in config.items():
        if isinstance(value, str):
            if value.startswith("./") or value.startswith("../"):
                config[key] = (config_dir / value).resolve()
        elif isinstance(value, dict):
            config[key] = resolve_relative_paths(value, config_dir)
    return config


def merge_defaults(config: Dict, defaults: Dict = DEFAULT_SETTINGS) -> Dict:
    """Fill keys missing from a (possibly nested) config with the package defaults."""
    merged = dict(defaults)
    for key, value in config.items():
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            merged[key] = merge_defaults(value, defaults[key])
        else:
            merged[key] = value
    return merged


def get_config(
    config_path: Union[str, Path] = constants.DEFAULT_CONFIG
) -> Dict:
    # Load the YAML configuration file
    with open(config_path, "r") as file:
        config = yaml.safe_load(file) or {}

    # Resolve any relative paths in the config
    config_dir = Path(config_path).resolve().parent
    config = resolve_relative_paths(config, config_dir)

    return merge_defaults(config)
