import numpy as np
import pandas as pd
import pytest

from reef_cover.benthic.cover_calculator import (
    tally_points,
    aggregate_transect_counts,
    add_reef_id,
    build_model_table,
    summarise_unmapped_codes,
)
from reef_cover.benthic.gap_filling import complete_context_group_grid

pytestmark = pytest.mark.unit

CONTEXT = ['transect_id', 'image_id', 'type']
TRANSECT = ['transect_id', 'type']


class TestPointTally:

    def test_counts_and_totals(self, observations):
        tally = tally_points(observations, CONTEXT)

        img1 = tally[tally['image_id'] == 'IMG1'].set_index('functional_group')
        assert img1.loc['A', 'COUNT'] == 3
        assert img1.loc['HC', 'COUNT'] == 2
        assert (img1['TOTAL'] == 5).all()

    def test_total_equals_sum_of_counts_per_context(self, observations):
        tally = tally_points(observations, CONTEXT)

        sums = tally.groupby(CONTEXT)['COUNT'].sum()
        totals = tally.groupby(CONTEXT)['TOTAL'].first()
        pd.testing.assert_series_equal(sums, totals, check_names=False)

    def test_unmapped_points_excluded(self, observations):
        tally = tally_points(observations, CONTEXT)

        assert tally['functional_group'].notna().all()
        assert tally.loc[tally['image_id'] == 'IMG2', 'TOTAL'].unique().tolist() == [4]

    def test_weighted_tally_sums_weights(self, observations):
        tally = tally_points(observations, CONTEXT, value='weight')

        img1 = tally[tally['image_id'] == 'IMG1'].set_index('functional_group')
        assert img1.loc['A', 'COUNT'] == pytest.approx(1.5)
        assert img1.loc['HC', 'COUNT'] == pytest.approx(2.0)
        assert img1['TOTAL'].iloc[0] == pytest.approx(3.5)

    def test_missing_weight_adds_nothing(self, observations):
        # ACB is mapped but one of its points has no TAU
        observations.loc[3, 'weight'] = np.nan

        tally = tally_points(observations, CONTEXT, value='weight')

        img1 = tally[tally['image_id'] == 'IMG1'].set_index('functional_group')
        assert img1.loc['HC', 'COUNT'] == pytest.approx(1.0)
        assert img1['TOTAL'].iloc[0] == pytest.approx(2.5)

    def test_unknown_value_raises(self, observations):
        with pytest.raises(ValueError, match="value"):
            tally_points(observations, CONTEXT, value='area')


class TestTransectAggregator:

    @pytest.fixture
    def image_counts(self, observations):
        tally = tally_points(observations, CONTEXT)
        return complete_context_group_grid(tally, CONTEXT)

    def test_count_is_sum_over_images(self, image_counts):
        transects = aggregate_transect_counts(image_counts, TRANSECT).set_index('functional_group')

        assert transects.loc['A', 'COUNT'] == 7
        assert transects.loc['HC', 'COUNT'] == 2
        assert (transects['TOTAL'] == 9).all()
        assert (transects['n_images'] == 2).all()

    def test_image_order_does_not_matter(self, image_counts):
        shuffled = image_counts.sample(frac=1, random_state=7)

        pd.testing.assert_frame_equal(
            aggregate_transect_counts(image_counts, TRANSECT),
            aggregate_transect_counts(shuffled, TRANSECT),
        )

    def test_missing_image_total_propagates(self, image_counts):
        image_counts = image_counts.copy()
        image_counts['TOTAL'] = image_counts['TOTAL'].astype(float)
        image_counts.loc[image_counts['image_id'] == 'IMG2', 'TOTAL'] = np.nan

        transects = aggregate_transect_counts(image_counts, TRANSECT)

        assert transects['TOTAL'].isna().all()


class TestReefId:

    @pytest.mark.parametrize("name,expected", [
        ('Davies Reef Site 3', 'Davies Reef'),
        ('Davies Reef S2', 'Davies Reef'),
        ('Davies_Reef_1', 'Davies_Reef'),
        ('Bass 2', 'Bass'),
        ('Lizard Island', 'Lizard Island'),
    ])
    def test_strip_number_scheme(self, name, expected):
        df = add_reef_id(pd.DataFrame({'site_name': [name]}))

        assert df.loc[0, 'Reef'] == expected

    def test_prefix_scheme(self):
        df = add_reef_id(pd.DataFrame({'site_name': ['DAV_S3', 'LIZ S1']}), scheme='prefix')

        assert df['Reef'].tolist() == ['DAV', 'LIZ']

    def test_custom_pattern(self):
        df = add_reef_id(
            pd.DataFrame({'site_name': ['GBR-Davies-03']}),
            pattern=r'^GBR-(?P<reef>[A-Za-z]+)'
        )

        assert df.loc[0, 'Reef'] == 'Davies'

    def test_unknown_scheme_raises(self):
        with pytest.raises(ValueError, match="scheme"):
            add_reef_id(pd.DataFrame({'site_name': ['x']}), scheme='nearest')


class TestModelTable:

    @pytest.fixture
    def transect_counts(self):
        return pd.DataFrame({
            'site_name': ['Davies Reef Site 1'] * 4,
            'survey_start_date': pd.to_datetime(['2023-11-27'] * 4),
            'transect_id': ['S1_2023_1'] * 4,
            'type': ['machine', 'machine', 'human', 'human'],
            'functional_group': ['Hard coral', 'Algae', 'Hard coral', 'Algae'],
            'COUNT': [4, 6, 5, 5],
            'TOTAL': [10, 10, 10, 10],
        })

    def test_filters_group_and_derives_fields(self, transect_counts):
        model = build_model_table(transect_counts)

        assert len(model) == 2
        assert (model['functional_group'] == 'Hard coral').all()
        assert model['Year'].tolist() == [2023, 2023]
        assert model['TropYear'].tolist() == [2024, 2024]
        assert model['Reef'].tolist() == ['Davies Reef', 'Davies Reef']
        assert model['cover'].tolist() == [0.4, 0.5]

    def test_classification_type_filter(self, transect_counts):
        model = build_model_table(transect_counts, classification_type='human')

        assert model['type'].tolist() == ['human']
        assert model['COUNT'].tolist() == [5]

    def test_missing_target_group_raises(self, transect_counts):
        with pytest.raises(ValueError, match="Soft coral"):
            build_model_table(transect_counts, target_group='Soft coral')


class TestUnmappedSummary:

    def test_counts_unmapped_codes(self, observations):
        summary = summarise_unmapped_codes(observations)

        assert summary.to_dict('records') == [
            {'classification': 'XX', 'type': 'machine', 'n_points': 1}
        ]

    def test_empty_when_everything_maps(self, observations):
        mapped = observations[observations['functional_group'].notna()]

        summary = summarise_unmapped_codes(mapped)

        assert summary.empty
        assert list(summary.columns) == ['classification', 'type', 'n_points']
