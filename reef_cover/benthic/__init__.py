"""
Benthic photo-quadrat survey processing: loading, reshaping, tallying and
zero filling point classifications into transect-level cover counts.
"""

from .data_loader import (
    require_columns,
    load_survey_table,
    load_label_map,
    project_fields,
    required_survey_columns,
    filter_image_quality,
    unpivot_classifications,
    join_labels,
    format_transect_number,
    add_transect_keys,
    compute_trop_year,
    add_temporal_fields,
)

from .gap_filling import (
    complete_context_group_grid,
    summarise_incomplete_contexts,
    drop_incomplete_contexts,
)

from .cover_calculator import (
    tally_points,
    aggregate_transect_counts,
    add_reef_id,
    build_model_table,
    summarise_unmapped_codes,
)

from .main import (
    tally_to_transects,
    prepare_reef_cover_full,
    prepare_model_data,
    prepare_all_surveys,
)
