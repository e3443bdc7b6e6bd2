"""
Main workflow orchestration for turning photo-quadrat point classifications
into model-ready transect-level benthic cover counts.
"""

import warnings
import pandas as pd
from pathlib import Path
from typing import List, Optional, Dict, Any

from .data_loader import (
    load_survey_table,
    load_label_map,
    project_fields,
    required_survey_columns,
    filter_image_quality,
    add_transect_keys,
    unpivot_classifications,
    join_labels,
)
from .gap_filling import (
    complete_context_group_grid,
    summarise_incomplete_contexts,
    drop_incomplete_contexts,
)
from .cover_calculator import (
    tally_points,
    aggregate_transect_counts,
    build_model_table,
    summarise_unmapped_codes,
)
from ..constants import (
    BAD_QUALITY_VALUE,
    CLASSIFICATION_COLUMNS,
    DISABLED_COLS,
    HARD_CORAL_GROUP,
    GROUP_COL,
    IMAGE_CONTEXT_COLS,
    LABEL_GROUP_COL,
    TRANSECT_CONTEXT_COLS,
)
from ..exceptions import IncompleteContextWarning


def tally_to_transects(
    observations: pd.DataFrame,
    groups: List[str],
    value: str = 'count',
    drop_incomplete: bool = True
) -> Dict[str, pd.DataFrame]:
    """
    Run the tally chain for one value function.

    Tallies points per image, zero fills every image against `groups`,
    optionally drops images with no recoverable TOTAL, and sums to transects.

    Parameters
    ----------
    observations : pd.DataFrame
        Joined observations
    groups : List[str]
        Functional groups to materialise for every image
    value : str
        'count' for point counts, 'weight' for weight sums
    drop_incomplete : bool
        Whether to drop INCOMPLETE images before aggregating

    Returns
    -------
    Dict[str, pd.DataFrame]
        'image_counts', 'incomplete_contexts' and 'transect_counts'
    """
    tally = tally_points(observations, IMAGE_CONTEXT_COLS, value=value)

    # Every image in the joined table is part of the design, including images
    # whose points all lack a functional group
    image_counts = complete_context_group_grid(
        tally, IMAGE_CONTEXT_COLS, groups=groups, contexts=observations
    )
    incomplete = summarise_incomplete_contexts(image_counts, IMAGE_CONTEXT_COLS)

    to_aggregate = drop_incomplete_contexts(image_counts) if drop_incomplete else image_counts
    transect_counts = aggregate_transect_counts(to_aggregate, TRANSECT_CONTEXT_COLS)

    return {
        'image_counts': image_counts,
        'incomplete_contexts': incomplete,
        'transect_counts': transect_counts,
    }


def prepare_reef_cover_full(
    survey_path: str,
    label_map_path: str,
    quality_policy: str = 'quality',
    bad_quality_value: float = BAD_QUALITY_VALUE,
    disabled_cols: List[str] = DISABLED_COLS,
    classification_columns: Dict[str, str] = CLASSIFICATION_COLUMNS,
    label_group_col: str = LABEL_GROUP_COL,
    label_weight_col: Optional[str] = None,
    groups: Optional[List[str]] = None,
    target_group: str = HARD_CORAL_GROUP,
    classification_type: Optional[str] = None,
    site_grouping: str = 'strip_number',
    drop_incomplete: bool = True,
    verbose: bool = True
) -> Dict[str, Any]:
    """
    Prepare transect-level benthic cover counts with every intermediate table.

    Workflow:
    1. Load the survey export and the label map
    2. Project the survey to the required columns
    3. Remove points on low-quality or disabled images
    4. Build transect keys
    5. Unpivot machine/human classifications
    6. Join functional groups (and weights) from the label map
    7. Tally points per image and zero fill missing groups
    8. Sum image tallies to transects
    9. Build the model-ready table for the target group
    If `label_weight_col` is given, steps 7-8 also run on summed weights.

    Parameters
    ----------
    survey_path : str
        Path to the survey export CSV
    label_map_path : str
        Path to the label map CSV
    quality_policy : str
        'quality' (drop image_quality == bad_quality_value) or
        'disabled' (drop rows flagged in disabled_cols)
    bad_quality_value : float
        Quality sentinel for the 'quality' policy
    disabled_cols : List[str]
        Flag columns for the 'disabled' policy
    classification_columns : Dict[str, str]
        Mapping of classification kind -> survey column
    label_group_col : str
        Functional group column in the label map
    label_weight_col : str, optional
        Weight column in the label map (e.g. 'TAU')
    groups : List[str], optional
        Functional groups to materialise. Defaults to every group present
        in the joined observations; pass the label map groups to also
        zero fill groups no point was assigned to.
    target_group : str
        Functional group for the model-ready table
    classification_type : str, optional
        Restrict the model-ready table to one classification type
    site_grouping : str
        Site grouping scheme used to derive 'Reef'
    drop_incomplete : bool
        Drop images with no recoverable TOTAL before aggregating
    verbose : bool
        Whether to print progress messages

    Returns
    -------
    Dict[str, Any]
        Dictionary containing:
        - 'survey': projected, quality-filtered survey with transect keys
        - 'observations': joined observations
        - 'unmapped_codes': per-code count of points without a group
        - 'image_counts': zero-filled image-level tally
        - 'incomplete_contexts': images with no recoverable TOTAL
        - 'transect_counts': transect-level counts for every group
        - 'weighted_transect_counts': weight sums (only with label_weight_col)
        - 'model_data': model-ready rows for target_group
        - 'metadata': dictionary with processing information
    """
    # Step 1: Load inputs
    if verbose:
        print(f"Preparing reef cover from: {survey_path}")
        print("  Loading survey table...")
    required = required_survey_columns(quality_policy)
    raw = load_survey_table(survey_path, required_columns=required)

    if verbose:
        print("  Loading label map...")
    label_map = load_label_map(
        label_map_path, group_col=label_group_col, weight_col=label_weight_col
    )

    # Step 2-3: Project and filter
    survey = project_fields(raw, required)
    n_points_raw = len(survey)
    survey = filter_image_quality(
        survey,
        policy=quality_policy,
        bad_quality_value=bad_quality_value,
        disabled_cols=disabled_cols,
    )
    n_points_removed = n_points_raw - len(survey)
    if verbose:
        print(f"  Removed {n_points_removed} point(s) on low-quality or disabled images")

    # Step 4-6: Keys, unpivot, label join
    if verbose:
        print("  Joining classifications to functional groups...")
    survey = add_transect_keys(survey)
    observations = unpivot_classifications(survey, classification_columns)
    observations = join_labels(
        observations, label_map,
        group_col=label_group_col, weight_col=label_weight_col
    )
    unmapped_codes = summarise_unmapped_codes(observations)
    n_missing = int(observations['classification'].isna().sum())

    if groups is None:
        groups = sorted(observations[GROUP_COL].dropna().unique())

    # Step 7-8: Tally, zero fill, aggregate
    if verbose:
        print("  Tallying points per image and transect...")
    counts = tally_to_transects(
        observations, groups, value='count', drop_incomplete=drop_incomplete
    )

    weighted = None
    if label_weight_col is not None:
        if verbose:
            print("  Tallying weighted points...")
        # Same images are incomplete as in the count chain, already warned
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', IncompleteContextWarning)
            weighted = tally_to_transects(
                observations, groups, value='weight', drop_incomplete=drop_incomplete
            )

    # Step 9: Model-ready table
    if verbose:
        print(f"  Building model table for {target_group!r}...")
    model_data = build_model_table(
        counts['transect_counts'],
        target_group=target_group,
        classification_type=classification_type,
        site_grouping=site_grouping,
    )

    if verbose:
        print(f"  Done! {len(counts['transect_counts'])} transect-group rows, "
              f"{len(model_data)} model rows.")
        if not unmapped_codes.empty:
            print(f"  Unmapped points: {int(unmapped_codes['n_points'].sum())}")
        if not counts['incomplete_contexts'].empty:
            print(f"  Incomplete images: {len(counts['incomplete_contexts'])}")

    output = {
        'survey': survey,
        'observations': observations,
        'unmapped_codes': unmapped_codes,
        'image_counts': counts['image_counts'],
        'incomplete_contexts': counts['incomplete_contexts'],
        'transect_counts': counts['transect_counts'],
        'model_data': model_data,
    }
    if weighted is not None:
        output['weighted_transect_counts'] = weighted['transect_counts']

    output['metadata'] = {
        'survey_path': str(survey_path),
        'label_map_path': str(label_map_path),
        'quality_policy': quality_policy,
        'target_group': target_group,
        'classification_type': classification_type,
        'groups': list(groups),
        'drop_incomplete': drop_incomplete,
        'n_points': len(survey),
        'n_points_removed': n_points_removed,
        'n_missing_classifications': n_missing,
        'n_unmapped_points': int(unmapped_codes['n_points'].sum()) if not unmapped_codes.empty else 0,
        'n_incomplete_contexts': len(counts['incomplete_contexts']),
        'n_transects': counts['transect_counts']['transect_id'].nunique(),
        'n_model_rows': len(model_data),
    }

    return output


def prepare_model_data(
    survey_path: str,
    label_map_path: str,
    **kwargs
) -> pd.DataFrame:
    """
    Prepare only the model-ready table.

    Takes the same keyword arguments as prepare_reef_cover_full and returns
    its 'model_data' entry: one row per transect for the target functional
    group, with COUNT, TOTAL, Year, TropYear, Reef and cover.
    """
    output = prepare_reef_cover_full(survey_path, label_map_path, **kwargs)
    return output['model_data']


def prepare_all_surveys(
    survey_paths: List[str],
    label_map_path: str,
    verbose: bool = True,
    **kwargs
) -> pd.DataFrame:
    """
    Prepare model-ready tables for several survey exports sharing a label map.

    Files that cannot be read or processed (missing, unparseable, schema or
    label map errors, no rows for the target group) are reported and skipped.

    Parameters
    ----------
    survey_paths : List[str]
        Survey export CSVs
    label_map_path : str
        Label map CSV
    verbose : bool
        Whether to print progress messages
    **kwargs
        Passed to prepare_reef_cover_full

    Returns
    -------
    pd.DataFrame
        Combined model-ready rows, with a 'source' column naming the file
    """
    all_results = []

    for survey_path in survey_paths:
        try:
            model_data = prepare_model_data(
                survey_path, label_map_path, verbose=verbose, **kwargs
            )
        except (FileNotFoundError, ValueError) as e:
            if verbose:
                print(f"  Error processing {survey_path}: {e}")
            continue
        model_data = model_data.copy()
        model_data['source'] = Path(survey_path).name
        all_results.append(model_data)

    if all_results:
        return pd.concat(all_results, ignore_index=True)
    else:
        return pd.DataFrame()


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 3:
        print("Usage: python -m reef_cover.benthic.main SURVEY_CSV LABEL_MAP_CSV [OUTPUT_DIR]")
        sys.exit(1)

    survey_csv, label_csv = sys.argv[1], sys.argv[2]
    output_dir = Path(sys.argv[3]) if len(sys.argv) > 3 else Path("output")

    output = prepare_reef_cover_full(survey_csv, label_csv)

    output_dir.mkdir(exist_ok=True)
    output['model_data'].to_csv(output_dir / "model_data.csv", index=False)
    output['transect_counts'].to_csv(output_dir / "transect_counts.csv", index=False)
    print(f"\nResults saved to: {output_dir}/")
