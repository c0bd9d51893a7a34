from pathlib import Path

# ==================================================================================== #
# PROGRESS BAR
# ==================================================================================== #
# See supported colors at: https://www.w3schools.com/colors/colors_x11.asp

# Total character width of the progress bar text
DEFAULT_PROGRESS_TEXT_N: int = 55
# Color of the progress bar description text
DEFAULT_DESCRIPTION_STYLE: str = "white"
# Width of the progress bar
DEFAULT_BAR_WIDTH: int = 40
# Color of the filled/complete portion of the progress bar
DEFAULT_BAR_COLUMN_COMPLETE_STYLE: str = "honeydew2"
# Color used when the progress bar is finished
DEFAULT_FINISHED_STYLE: str = "dark_cyan"
# Color of the "X of Y complete" text (e.g., "3/5")
DEFAULT_M_OF_N_COMPLETE_STYLE: str = "honeydew2"
# Color of the time elapsed display
DEFAULT_TIME_ELAPSED_STYLE: str = "light_sky_blue1"

# ==================================================================================== #
# SETTINGS
# ==================================================================================== #
# Go up two levels
DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "references" / "config.yaml"
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_LOG_DIR = "logs"
DEFAULT_DATA_DIR = "data"

# Process-level seed; randomized transforms receive their own explicit seeds
DEFAULT_SEED: int = 777
DEFAULT_RAREFACTION_SEED: int = 123
DEFAULT_QMP_SEED: int = 711

# ==================================================================================== #
# INPUT TABLES
# ==================================================================================== #
ABUNDANCE_TABLE_FILENAME = "abundance_table.tsv"
TAXONOMY_TABLE_FILENAME = "tax_table.txt"
METADATA_TABLE_FILENAME = "metadata_samples.txt"

REAL_COMMUNITY_DIR = "real_community"
SEQ_DATA_DIR = "seq_data"

TAX_RANKS = ["Kingdom", "Phylum", "Class", "Order", "Family", "Genus", "Species"]
SPECIES_NAME_COLUMN = "Species_name"

# ==================================================================================== #
# METADATA
# ==================================================================================== #
DEFAULT_GROUP_COLUMN = "disease_status"
DEFAULT_GROUP_COLUMN_VALUES = ["Control", "Patient"]
DEFAULT_LOAD_COLUMN = "microbial_load"
DEFAULT_ESTIMATED_LOAD_COLUMN = "estimated_microbial_load"

# ==================================================================================== #
# FILTERING
# ==================================================================================== #
DEFAULT_PREVALENCE_THRESHOLD: float = 0.2
DEFAULT_TOP_N: int = 10

# ==================================================================================== #
# NORMALIZATION
# ==================================================================================== #
RMP = "RMP"
CLR = "CLR"
VST = "VST"
ACS = "ACS"
QMP = "QMP"

DEFAULT_METHODS = [RMP, CLR, VST, ACS, QMP]
# Methods whose output is still interpretable as counts
COUNT_METHODS = (RMP, ACS, QMP)

# ==================================================================================== #
# DIVERSITY & STATISTICS
# ==================================================================================== #
DEFAULT_ALPHA_METRICS = ["Observed", "Shannon"]
DEFAULT_CORRELATION_METHOD = "spearman"

DEFAULT_SIGNIFICANCE_ALPHA: float = 0.05
DEFAULT_CORRECTION_METHOD = "fdr_bh"

TRUE_POSITIVE = "True Positive"
FALSE_POSITIVE = "False Positive"
DISCORDANT = "Discordant"
FALSE_NEGATIVE = "False Negative"
TRUE_NEGATIVE = "True Negative"

OUTCOME_CLASSES = [
    TRUE_POSITIVE, FALSE_POSITIVE, DISCORDANT, FALSE_NEGATIVE, TRUE_NEGATIVE
]
