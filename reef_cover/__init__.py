"""
Reef benthic cover preparation package.

This package turns point-level photo-quadrat classifications from coral reef
surveys into transect-level functional group counts ready for binomial and
beta-binomial cover models.
"""

# Re-export constants
from .constants import (
    SURVEY_COLUMNS,
    CLASSIFICATION_COLUMNS,
    IMAGE_CONTEXT_COLS,
    TRANSECT_CONTEXT_COLS,
    GROUP_COL,
    HARD_CORAL_GROUP,
    TROP_YEAR_SHIFT_MONTHS,
)

from .exceptions import (
    SchemaError,
    DuplicateLabelError,
    UnmappedCodeWarning,
    IncompleteContextWarning,
)

# Re-export benthic module functions for convenience
from .benthic import (
    # Data loading
    load_survey_table,
    load_label_map,
    project_fields,
    required_survey_columns,
    filter_image_quality,
    unpivot_classifications,
    join_labels,
    add_transect_keys,
    compute_trop_year,
    add_temporal_fields,
    # Zero filling
    complete_context_group_grid,
    summarise_incomplete_contexts,
    # Cover calculation
    tally_points,
    aggregate_transect_counts,
    add_reef_id,
    build_model_table,
    summarise_unmapped_codes,
    # Main workflow
    prepare_reef_cover_full,
    prepare_model_data,
    prepare_all_surveys,
)

__version__ = "0.1.0"
