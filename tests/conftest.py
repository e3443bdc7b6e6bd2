"""Root-level pytest fixtures for the reef-cover test suite.

Provides small survey exports and label maps, both as DataFrames and as
CSV files on disk for workflow tests.
"""

import numpy as np
import pandas as pd
import pytest


# =============================================================================
# Table Fixtures
# =============================================================================

@pytest.fixture
def make_survey():
    """Factory fixture for point-level survey exports.

    Builds one row per point for `n_images` images of `n_points` points on a
    single transect. Per-image overrides are passed as dicts keyed by image
    index (0-based).

    Examples
    --------
    >>> def test_something(make_survey):
    ...     df = make_survey(n_images=2, machine='Algae', quality={1: 0})
    """
    def _make(
        n_images=2,
        n_points=5,
        machine='Algae',
        human='Algae',
        quality=None,
        site_id='S1',
        site_name='Davies Reef Site 1',
        date='2023-11-27',
        transect=1,
        human_by_image=None,
    ):
        quality = quality or {}
        human_by_image = human_by_image or {}
        rows = []
        for i in range(n_images):
            for j in range(1, n_points + 1):
                rows.append({
                    'site_id': site_id,
                    'site_name': site_name,
                    'site_latitude': -18.83,
                    'site_longitude': 147.63,
                    'survey_id': f'{site_id}_SV',
                    'survey_start_date': pd.Timestamp(date),
                    'survey_depth': 5.0,
                    'survey_transect_number': transect,
                    'image_id': f'{site_id}_IMG{i + 1}',
                    'point_id': f'{site_id}_IMG{i + 1}_P{j}',
                    'point_no': j,
                    'point_machine_classification': machine,
                    'point_human_classification': human_by_image.get(i, human),
                    'image_quality': quality.get(i, 80.0),
                })
        return pd.DataFrame(rows)

    return _make


@pytest.fixture
def label_map():
    """Label map: Algae -> A, ACB -> HC, with TAU weights."""
    return pd.DataFrame({
        'CODE': ['Algae', 'ACB'],
        'FUNCTIONAL GROUP': ['A', 'HC'],
        'TAU': [0.5, 1.0],
    })


@pytest.fixture
def observations():
    """Joined observations for two images on one transect, machine type.

    IMG1: 3 x A, 2 x HC. IMG2: 4 x A, 1 unmapped (missing group).
    """
    return pd.DataFrame({
        'transect_id': ['T1'] * 10,
        'image_id': ['IMG1'] * 5 + ['IMG2'] * 5,
        'type': ['machine'] * 10,
        'classification': ['Algae'] * 3 + ['ACB'] * 2 + ['Algae'] * 4 + ['XX'],
        'functional_group': ['A'] * 3 + ['HC'] * 2 + ['A'] * 4 + [np.nan],
        'weight': [0.5] * 3 + [1.0] * 2 + [0.5] * 4 + [np.nan],
    })


# =============================================================================
# File Fixtures
# =============================================================================

@pytest.fixture
def write_csv(tmp_path):
    """Write a DataFrame to a CSV under tmp_path and return the path."""
    def _write(df, name):
        path = tmp_path / name
        df.to_csv(path, index=False)
        return path

    return _write
