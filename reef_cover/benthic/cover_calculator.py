"""
Cover calculation functions for computing image- and transect-level
functional group counts and the model-ready cover table.
"""

import re
import numpy as np
import pandas as pd
from typing import List, Optional

from ..constants import (
    GROUP_COL,
    WEIGHT_COL,
    HARD_CORAL_GROUP,
    SITE_GROUPING_SCHEMES,
)
from .data_loader import require_columns, add_temporal_fields


def tally_points(
    observations: pd.DataFrame,
    context_cols: List[str],
    group_col: str = GROUP_COL,
    value: str = 'count',
    weight_col: str = WEIGHT_COL
) -> pd.DataFrame:
    """
    Tally points per context and functional group.

    Observations without a functional group (unmapped or missing codes) are
    excluded; they are reported by summarise_unmapped_codes instead of being
    counted towards any group or total.

    Parameters
    ----------
    observations : pd.DataFrame
        Joined observations, one row per point per classification type
    context_cols : List[str]
        Columns identifying a context, e.g. IMAGE_CONTEXT_COLS
    group_col : str
        Functional group column
    value : str
        'count' to count points, 'weight' to sum `weight_col` per group
    weight_col : str
        Weight column used when value='weight'

    Returns
    -------
    pd.DataFrame
        One row per observed (context, group) with COUNT, and TOTAL equal to
        the sum of COUNT over every group observed in that context
    """
    require_columns(observations, context_cols + [group_col], table='observations')

    mapped = observations[observations[group_col].notna()].copy()

    if value == 'count':
        mapped['_value'] = 1
    elif value == 'weight':
        require_columns(mapped, [weight_col], table='observations')
        mapped['_value'] = pd.to_numeric(mapped[weight_col], errors='coerce')
    else:
        raise ValueError(f"Unknown tally value: {value!r}")

    tally = (
        mapped.groupby(context_cols + [group_col], dropna=False, sort=True)['_value']
        .sum()
        .reset_index(name='COUNT')
    )
    tally['TOTAL'] = tally.groupby(context_cols, dropna=False)['COUNT'].transform('sum')

    return tally


def _strict_sum(values: pd.Series) -> float:
    # A missing image total makes the transect total missing
    return values.sum(skipna=False)


def aggregate_transect_counts(
    image_counts: pd.DataFrame,
    transect_cols: List[str],
    group_col: str = GROUP_COL
) -> pd.DataFrame:
    """
    Sum image-level COUNT and TOTAL up to the transect.

    Parameters
    ----------
    image_counts : pd.DataFrame
        Zero-filled image-level tally
    transect_cols : List[str]
        Columns identifying a transect context, e.g. TRANSECT_CONTEXT_COLS
    group_col : str
        Functional group column

    Returns
    -------
    pd.DataFrame
        One row per (transect context, group) with COUNT, TOTAL and n_images.
        Output is sorted by the keys, so image order does not matter.
    """
    keys = transect_cols + [group_col]
    require_columns(image_counts, keys + ['COUNT', 'TOTAL'], table='image counts')

    result = (
        image_counts.groupby(keys, dropna=False, sort=True)
        .agg(
            COUNT=('COUNT', 'sum'),
            TOTAL=('TOTAL', _strict_sum),
            n_images=('COUNT', 'size'),
        )
        .reset_index()
    )

    return result


def add_reef_id(
    df: pd.DataFrame,
    scheme: str = 'strip_number',
    pattern: Optional[str] = None,
    site_name_col: str = 'site_name'
) -> pd.DataFrame:
    """
    Add a 'Reef' column grouping sites by a part of their name.

    Parameters
    ----------
    df : pd.DataFrame
        Table with a site name column
    scheme : str
        Key into SITE_GROUPING_SCHEMES ('strip_number' or 'prefix')
    pattern : str, optional
        Custom regex with a named group 'reef'; overrides `scheme`
    site_name_col : str
        Column holding the site name

    Returns
    -------
    pd.DataFrame
        Copy of the table with 'Reef'. Names the pattern does not match fall
        back to the full site name.
    """
    require_columns(df, [site_name_col])

    if pattern is None:
        if scheme not in SITE_GROUPING_SCHEMES:
            raise ValueError(f"Unknown site grouping scheme: {scheme!r}")
        pattern = SITE_GROUPING_SCHEMES[scheme]

    df = df.copy()
    names = df[site_name_col].astype(str).where(df[site_name_col].notna())
    reef = names.str.extract(pattern, flags=re.IGNORECASE, expand=True)['reef']
    reef = reef.str.strip()
    reef = reef.mask(reef == '')
    df['Reef'] = reef.fillna(names)

    return df


def build_model_table(
    transect_counts: pd.DataFrame,
    target_group: str = HARD_CORAL_GROUP,
    classification_type: Optional[str] = None,
    site_grouping: str = 'strip_number',
    reef_pattern: Optional[str] = None,
    group_col: str = GROUP_COL,
    date_col: str = 'survey_start_date'
) -> pd.DataFrame:
    """
    Build the model-ready table for one functional group.

    Filters transect counts to `target_group` (and one classification type
    if given), then adds Year, TropYear, Reef and cover (COUNT / TOTAL).

    Parameters
    ----------
    transect_counts : pd.DataFrame
        Output of aggregate_transect_counts
    target_group : str
        Functional group to model, e.g. 'Hard coral'
    classification_type : str, optional
        Keep only this classification type (e.g. 'human')
    site_grouping : str
        Site grouping scheme passed to add_reef_id
    reef_pattern : str, optional
        Custom reef regex passed to add_reef_id

    Returns
    -------
    pd.DataFrame
        Model-ready rows, one per transect (and type)

    Raises
    ------
    ValueError
        If no rows remain for the target group
    """
    require_columns(transect_counts, [group_col, 'COUNT', 'TOTAL', date_col])

    rows = transect_counts[transect_counts[group_col] == target_group]
    if classification_type is not None:
        require_columns(rows, ['type'])
        rows = rows[rows['type'] == classification_type]

    if rows.empty:
        raise ValueError(
            f"No transect counts for functional group {target_group!r}"
            + (f" and type {classification_type!r}" if classification_type else "")
        )

    model_df = add_temporal_fields(rows, date_col=date_col)
    model_df = add_reef_id(model_df, scheme=site_grouping, pattern=reef_pattern)

    total = model_df['TOTAL'].astype(float)
    model_df['cover'] = (model_df['COUNT'] / total).where(total > 0)

    return model_df.reset_index(drop=True)


def summarise_unmapped_codes(
    observations: pd.DataFrame,
    group_col: str = GROUP_COL
) -> pd.DataFrame:
    """
    Count points whose classification code has no label map entry.

    Parameters
    ----------
    observations : pd.DataFrame
        Joined observations

    Returns
    -------
    pd.DataFrame
        Columns classification, type and n_points, largest first
    """
    require_columns(observations, ['classification', 'type', group_col])

    unmapped = observations[
        observations['classification'].notna() & observations[group_col].isna()
    ]
    if unmapped.empty:
        return pd.DataFrame(columns=['classification', 'type', 'n_points'])

    summary = (
        unmapped.groupby(['classification', 'type'])
        .size()
        .reset_index(name='n_points')
        .sort_values(['n_points', 'classification'], ascending=[False, True])
    )

    return summary.reset_index(drop=True)
