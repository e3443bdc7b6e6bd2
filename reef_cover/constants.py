"""
Constants used across the reef-cover codebase.
"""

# Survey export columns shared by every quality policy
SURVEY_COLUMNS = [
    'site_id',
    'site_name',
    'site_latitude',
    'site_longitude',
    'survey_id',
    'survey_start_date',
    'survey_depth',
    'survey_transect_number',
    'image_id',
    'point_id',
    'point_no',
    'point_machine_classification',
    'point_human_classification',
]

# Indicator columns for each image quality policy
QUALITY_COL = 'image_quality'
DISABLED_COLS = ['image_disabled']

# image_quality value marking an unusable image
BAD_QUALITY_VALUE = 0

# Classification kind -> survey column holding that kind's code
CLASSIFICATION_COLUMNS = {
    'machine': 'point_machine_classification',
    'human': 'point_human_classification',
}

# Label map columns
LABEL_CODE_COL = 'CODE'
LABEL_GROUP_COL = 'FUNCTIONAL GROUP'
LABEL_WEIGHT_COL = 'TAU'

# Normalised column names produced by the label join
GROUP_COL = 'functional_group'
WEIGHT_COL = 'weight'

# Image-level context: everything that identifies a tally except the group
IMAGE_CONTEXT_COLS = [
    'site_id',
    'site_name',
    'site_latitude',
    'site_longitude',
    'survey_id',
    'survey_start_date',
    'survey_depth',
    'survey_transect_number',
    'transect_id',
    'transect_name',
    'image_id',
    'type',
]

# Transect-level context drops the image
TRANSECT_CONTEXT_COLS = [c for c in IMAGE_CONTEXT_COLS if c != 'image_id']

# Months added to the survey date before taking the tropical year
TROP_YEAR_SHIFT_MONTHS = 3

# Functional group handed to the cover model
HARD_CORAL_GROUP = 'Hard coral'

# Site-name grouping schemes; each pattern must define a 'reef' group
SITE_GROUPING_SCHEMES = {
    # 'Davies Reef Site 3' -> 'Davies Reef', 'Davies_Reef_3' -> 'Davies_Reef'
    'strip_number': r'^(?P<reef>.*?)(?:[\s_-]+(?:site[\s_-]*|s)?\d+)?$',
    # 'DAV_S3' -> 'DAV'
    'prefix': r'^(?P<reef>[^\s_-]+)',
}

# gapFilling flag values written by the zero-fill expander
ORIGINAL = 'ORIGINAL'
FILLED = 'FILLED'
INCOMPLETE = 'INCOMPLETE'
