"""
Data loading and reshaping functions for photo-quadrat benthic survey exports
and classification label maps.
"""

import warnings
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional

from ..constants import (
    SURVEY_COLUMNS,
    QUALITY_COL,
    DISABLED_COLS,
    BAD_QUALITY_VALUE,
    CLASSIFICATION_COLUMNS,
    LABEL_CODE_COL,
    LABEL_GROUP_COL,
    GROUP_COL,
    WEIGHT_COL,
    TROP_YEAR_SHIFT_MONTHS,
)
from ..exceptions import SchemaError, DuplicateLabelError, UnmappedCodeWarning


TRUE_STRINGS = {'true', 't', 'yes', 'y', '1'}


def require_columns(df: pd.DataFrame, columns: List[str], table: str = 'table') -> None:
    """
    Raise SchemaError if any of `columns` is absent from `df`.
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(missing, table=table)


def _read_delimited(path: str, sep: str) -> pd.DataFrame:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"No data file found at {csv_path}")

    df = pd.read_csv(csv_path, sep=sep, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]

    # Trim string cells; blank cells become missing
    for col in df.columns:
        if df[col].dtype == object or pd.api.types.is_string_dtype(df[col]):
            stripped = df[col].str.strip()
            cleaned = stripped.where(stripped.notna(), df[col])
            df[col] = cleaned.mask(cleaned == '')

    return df


def load_survey_table(
    path: str,
    required_columns: Optional[List[str]] = None,
    date_col: str = 'survey_start_date',
    sep: str = ','
) -> pd.DataFrame:
    """
    Load a point-level photo-quadrat survey export.

    Parameters
    ----------
    path : str
        Path to the delimited survey export
    required_columns : List[str], optional
        Columns that must be present. Defaults to SURVEY_COLUMNS.
    date_col : str
        Survey date column, parsed to datetime (unparseable values become NaT)
    sep : str
        Field delimiter

    Returns
    -------
    pd.DataFrame
        One row per classified point, with whitespace-trimmed string fields

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    SchemaError
        If any required column is missing
    """
    if required_columns is None:
        required_columns = SURVEY_COLUMNS

    df = _read_delimited(path, sep)
    require_columns(df, required_columns, table='survey table')

    if date_col in df.columns:
        df[date_col] = pd.to_datetime(df[date_col], errors='coerce')

    return df


def load_label_map(
    path: str,
    group_col: str = LABEL_GROUP_COL,
    weight_col: Optional[str] = None,
    sep: str = ','
) -> pd.DataFrame:
    """
    Load the classification code to functional group lookup table.

    Parameters
    ----------
    path : str
        Path to the delimited label map
    group_col : str
        Name of the functional group column in this label source
    weight_col : str, optional
        Name of the relative weight column (e.g. 'TAU'), if used

    Returns
    -------
    pd.DataFrame
        Label map with at least CODE and the group column
    """
    df = _read_delimited(path, sep)

    required = [LABEL_CODE_COL, group_col]
    if weight_col is not None:
        required.append(weight_col)
    require_columns(df, required, table='label map')

    if weight_col is not None:
        df[weight_col] = pd.to_numeric(df[weight_col], errors='coerce')

    return df


def project_fields(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    """
    Restrict a table to exactly `columns`, in that order.

    Row order and count are unchanged. Applying the same projection twice
    gives the same table.
    """
    require_columns(df, columns)
    return df[list(columns)].copy()


def required_survey_columns(policy: str = 'quality') -> List[str]:
    """
    Survey columns needed downstream for a given image quality policy.
    """
    if policy == 'quality':
        return SURVEY_COLUMNS + [QUALITY_COL]
    elif policy == 'disabled':
        return SURVEY_COLUMNS + DISABLED_COLS
    raise ValueError(f"Unknown image quality policy: {policy!r}")


def _as_bool(value) -> bool:
    if pd.isna(value):
        return False
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    return str(value).strip().lower() in TRUE_STRINGS


def filter_image_quality(
    df: pd.DataFrame,
    policy: str = 'quality',
    quality_col: str = QUALITY_COL,
    bad_quality_value: float = BAD_QUALITY_VALUE,
    disabled_cols: List[str] = DISABLED_COLS
) -> pd.DataFrame:
    """
    Remove points on low-quality or disabled images.

    Two policies are supported:
    - 'quality': drop rows whose numeric quality equals `bad_quality_value`.
      Rows with a missing quality are kept.
    - 'disabled': drop rows where any disabled flag is true, then drop the
      flag columns. A missing flag counts as not disabled.

    Parameters
    ----------
    df : pd.DataFrame
        Survey table
    policy : str
        'quality' or 'disabled'
    quality_col : str
        Numeric quality column used by the 'quality' policy
    bad_quality_value : float
        Quality value marking an unusable image
    disabled_cols : List[str]
        Boolean flag columns used by the 'disabled' policy

    Returns
    -------
    pd.DataFrame
        Filtered copy of the table
    """
    if policy == 'quality':
        if quality_col not in df.columns:
            return df.copy()
        quality = pd.to_numeric(df[quality_col], errors='coerce')
        keep = quality.isna() | (quality != bad_quality_value)
        return df[keep].reset_index(drop=True)

    elif policy == 'disabled':
        present = [c for c in disabled_cols if c in df.columns]
        if not present:
            return df.copy()
        disabled = df[present].apply(lambda col: col.map(_as_bool)).any(axis=1)
        return df[~disabled].drop(columns=present).reset_index(drop=True)

    raise ValueError(f"Unknown image quality policy: {policy!r}")


def unpivot_classifications(
    df: pd.DataFrame,
    classification_columns: Dict[str, str] = CLASSIFICATION_COLUMNS
) -> pd.DataFrame:
    """
    Convert wide classification columns into one row per point per kind.

    Each input row becomes one row per entry of `classification_columns`,
    ordered by input row and then by mapping order. All other columns are
    copied; 'type' holds the kind (e.g. 'machine', 'human') and
    'classification' holds that column's code. Missing codes stay missing.

    Parameters
    ----------
    df : pd.DataFrame
        Survey table with one column per classification kind
    classification_columns : Dict[str, str]
        Mapping of kind -> column name

    Returns
    -------
    pd.DataFrame
        Long table with len(df) * len(classification_columns) rows
    """
    value_cols = list(classification_columns.values())
    require_columns(df, value_cols, table='survey table')

    kind_by_col = {col: kind for kind, col in classification_columns.items()}
    id_cols = [c for c in df.columns if c not in value_cols]

    wide = df.copy()
    wide['_row'] = np.arange(len(wide))

    long = wide.melt(
        id_vars=id_cols + ['_row'],
        value_vars=value_cols,
        var_name='type',
        value_name='classification'
    )
    long['type'] = long['type'].map(kind_by_col)

    # Row-major order: every kind for point 1, then point 2, ...
    kind_order = {kind: i for i, kind in enumerate(classification_columns)}
    long['_kind'] = long['type'].map(kind_order)
    long = long.sort_values(['_row', '_kind'], kind='stable')

    return long.drop(columns=['_row', '_kind']).reset_index(drop=True)


def _as_code(series: pd.Series) -> pd.Series:
    # Compare codes as stripped strings, leaving missing values missing
    return series.astype(str).str.strip().where(series.notna())


def join_labels(
    observations: pd.DataFrame,
    label_map: pd.DataFrame,
    group_col: str = LABEL_GROUP_COL,
    weight_col: Optional[str] = None,
    code_col: str = LABEL_CODE_COL
) -> pd.DataFrame:
    """
    Attach the functional group (and optional weight) to each observation.

    This is a left, many-to-one join on the classification code. Codes that
    have no label map entry keep a missing functional group; they are not
    dropped, and an UnmappedCodeWarning names them.

    Parameters
    ----------
    observations : pd.DataFrame
        Unpivoted observations with a 'classification' column
    label_map : pd.DataFrame
        Label map with `code_col`, `group_col` and optionally `weight_col`
    group_col : str
        Functional group column in the label map
    weight_col : str, optional
        Weight column in the label map
    code_col : str
        Code column in the label map

    Returns
    -------
    pd.DataFrame
        Observations with 'functional_group' (and 'weight') columns added

    Raises
    ------
    DuplicateLabelError
        If the label map lists a code more than once
    """
    require_columns(observations, ['classification'], table='observations')
    label_cols = [code_col, group_col] + ([weight_col] if weight_col else [])
    require_columns(label_map, label_cols, table='label map')

    labels = label_map[label_cols].copy()
    labels[code_col] = _as_code(labels[code_col])
    labels = labels[labels[code_col].notna()]

    duplicated = labels[code_col].duplicated(keep=False)
    if duplicated.any():
        raise DuplicateLabelError(sorted(labels.loc[duplicated, code_col].unique()))

    rename = {code_col: '_code', group_col: GROUP_COL}
    if weight_col:
        rename[weight_col] = WEIGHT_COL
    labels = labels.rename(columns=rename)

    joined = observations.copy()
    joined['_code'] = _as_code(joined['classification'])
    joined = joined.merge(labels, on='_code', how='left', validate='many_to_one')
    joined = joined.drop(columns=['_code'])

    unmapped = joined['classification'].notna() & joined[GROUP_COL].isna()
    if unmapped.any():
        codes = sorted(joined.loc[unmapped, 'classification'].astype(str).unique())
        warnings.warn(
            f"{unmapped.sum()} point(s) have classification codes with no "
            f"label map entry: {', '.join(codes)}",
            UnmappedCodeWarning
        )

    return joined


def format_transect_number(value) -> Optional[str]:
    """
    Render a transect number for use in a key ('1.0' and 1 both become '1').

    Missing numbers give None.
    """
    if pd.isna(value):
        return None
    numeric = pd.to_numeric(value, errors='coerce')
    if pd.notna(numeric) and float(numeric).is_integer():
        return str(int(numeric))
    return str(value).strip()


def add_transect_keys(
    df: pd.DataFrame,
    date_col: str = 'survey_start_date'
) -> pd.DataFrame:
    """
    Add 'transect_id' and 'transect_name' built from site, year and transect.

    The formats are '{site_id}_{YYYY}_{n}' and '{site_name} {YYYY} T{n}'.
    Rows sharing site, survey year and transect number get identical keys
    whatever their position in the file. A missing part gives a missing key.

    Parameters
    ----------
    df : pd.DataFrame
        Survey table with site_id, site_name, survey_transect_number and
        the survey date column

    Returns
    -------
    pd.DataFrame
        Copy of the table with the two key columns added
    """
    require_columns(
        df, ['site_id', 'site_name', 'survey_transect_number', date_col],
        table='survey table'
    )
    df = df.copy()

    year = pd.to_datetime(df[date_col]).dt.strftime('%Y')
    transect = df['survey_transect_number'].apply(format_transect_number)
    site_id = df['site_id'].astype(str).where(df['site_id'].notna())
    site_name = df['site_name'].astype(str).where(df['site_name'].notna())

    df['transect_id'] = site_id.str.cat([year, transect], sep='_')
    df['transect_name'] = site_name.str.cat(year, sep=' ').str.cat(transect, sep=' T')

    return df


def compute_trop_year(date) -> int:
    """
    Tropical year of a survey date: the calendar year three months later.

    Parameters
    ----------
    date : str or datetime-like
        Survey date

    Returns
    -------
    int
        e.g. 2023-11-27 -> 2024, 2023-06-01 -> 2023
    """
    shifted = pd.Timestamp(date) + pd.DateOffset(months=TROP_YEAR_SHIFT_MONTHS)
    return shifted.year


def add_temporal_fields(
    df: pd.DataFrame,
    date_col: str = 'survey_start_date'
) -> pd.DataFrame:
    """
    Add calendar 'Year' and quarter-shifted 'TropYear' columns.
    """
    require_columns(df, [date_col])
    df = df.copy()

    dates = pd.to_datetime(df[date_col])
    df['Year'] = dates.dt.year
    df['TropYear'] = (dates + pd.DateOffset(months=TROP_YEAR_SHIFT_MONTHS)).dt.year

    return df
