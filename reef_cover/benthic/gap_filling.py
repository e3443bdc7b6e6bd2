"""
Zero filling for image-level functional group tallies.

A functional group that was never recorded on an image has no tally row.
These functions materialise those absences as explicit zero counts so every
image carries one row per functional group.
"""

import warnings
import numpy as np
import pandas as pd
from typing import List, Optional

from ..constants import GROUP_COL, ORIGINAL, FILLED, INCOMPLETE
from ..exceptions import IncompleteContextWarning
from .data_loader import require_columns


def complete_context_group_grid(
    tally_df: pd.DataFrame,
    context_cols: List[str],
    groups: Optional[List[str]] = None,
    contexts: Optional[pd.DataFrame] = None,
    group_col: str = GROUP_COL
) -> pd.DataFrame:
    """
    Create a complete grid of context-group combinations with zero filling.

    Every context is crossed with every functional group and the observed
    tallies are merged onto the grid. Missing COUNT values become 0. The
    TOTAL of a filled row is taken from the observed rows of the same
    context (they all share one TOTAL), never from another context.

    Contexts listed in `contexts` that have no observed tally at all cannot
    recover their TOTAL. Their rows keep TOTAL missing, are flagged
    'INCOMPLETE' and an IncompleteContextWarning is raised.

    Parameters
    ----------
    tally_df : pd.DataFrame
        Image-level tally with context columns, `group_col`, COUNT and TOTAL
    context_cols : List[str]
        Columns identifying a context (excluding the group)
    groups : List[str], optional
        Functional groups to materialise. Defaults to the distinct groups
        present in `tally_df`.
    contexts : pd.DataFrame, optional
        Table whose distinct `context_cols` rows define the design. Defaults
        to the contexts present in `tally_df`.
    group_col : str
        Functional group column

    Returns
    -------
    pd.DataFrame
        One row per (context, group) with COUNT, TOTAL and a 'gapFilling'
        column: 'ORIGINAL' for observed tallies, 'FILLED' for synthesised
        zeros, 'INCOMPLETE' for contexts with no observed tally.

    Raises
    ------
    ValueError
        If the tally holds groups outside `groups`, or observed TOTALs
        disagree within a context
    """
    require_columns(tally_df, context_cols + [group_col, 'COUNT', 'TOTAL'], table='tally')

    if groups is None:
        groups = sorted(tally_df[group_col].dropna().unique())
    else:
        groups = list(dict.fromkeys(groups))

    unknown = set(tally_df[group_col].dropna()) - set(groups)
    if unknown:
        raise ValueError(
            f"Tally has functional group(s) outside the group set: {', '.join(sorted(unknown))}"
        )

    if contexts is None:
        contexts = tally_df
    require_columns(contexts, context_cols, table='contexts')
    design = contexts[context_cols].drop_duplicates().reset_index(drop=True)

    grid = design.merge(pd.DataFrame({group_col: groups}), how='cross')

    observed = tally_df[context_cols + [group_col, 'COUNT', 'TOTAL']].copy()
    observed['gapFilling'] = ORIGINAL

    merged = grid.merge(observed, on=context_cols + [group_col], how='left')
    merged['gapFilling'] = merged['gapFilling'].fillna(FILLED)
    merged['COUNT'] = merged['COUNT'].fillna(0)

    # Backfill TOTAL from the same context only
    context_totals = merged.groupby(context_cols, dropna=False, sort=False)['TOTAL']
    if (context_totals.transform('nunique') > 1).any():
        raise ValueError("Observed TOTAL values disagree within a context")
    merged['TOTAL'] = context_totals.transform('max')

    incomplete = merged['TOTAL'].isna()
    merged.loc[incomplete, 'gapFilling'] = INCOMPLETE
    if incomplete.any():
        n_contexts = len(merged.loc[incomplete, context_cols].drop_duplicates())
        warnings.warn(
            f"{n_contexts} context(s) have no observed tally; TOTAL left missing",
            IncompleteContextWarning
        )

    if pd.api.types.is_integer_dtype(tally_df['COUNT']):
        merged['COUNT'] = merged['COUNT'].astype(np.int64)
        if not incomplete.any():
            merged['TOTAL'] = merged['TOTAL'].astype(np.int64)

    merged = merged.sort_values(context_cols + [group_col], kind='stable')

    return merged.reset_index(drop=True)


def summarise_incomplete_contexts(
    filled_df: pd.DataFrame,
    context_cols: List[str]
) -> pd.DataFrame:
    """
    List the contexts flagged 'INCOMPLETE' by complete_context_group_grid.
    """
    if 'gapFilling' not in filled_df.columns:
        return pd.DataFrame(columns=context_cols)

    incomplete = filled_df[filled_df['gapFilling'] == INCOMPLETE]
    return incomplete[context_cols].drop_duplicates().reset_index(drop=True)


def drop_incomplete_contexts(filled_df: pd.DataFrame) -> pd.DataFrame:
    """
    Remove rows of contexts whose TOTAL could not be recovered.
    """
    if 'gapFilling' not in filled_df.columns:
        return filled_df.copy()
    return filled_df[filled_df['gapFilling'] != INCOMPLETE].reset_index(drop=True)
