import ee
import os
from dotenv import load_dotenv

load_dotenv()

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
OUTPUT_DIR = os.path.join(PROJECT_DIR, 'outputs')
FIGURE_DIR = os.path.join(OUTPUT_DIR, 'figures')
LOG_PATH = os.path.join(PROJECT_DIR, 'logs', 'pipeline.log')

GEE_PROJECT_ID = os.getenv('GEE_PROJECT_ID')


def initialize():
    """Initialize Earth Engine against the GEE_PROJECT_ID cloud project."""
    try:
        ee.Initialize(project=GEE_PROJECT_ID)
        print(f"GEE initialized: {GEE_PROJECT_ID}")
    except Exception as e:
        print(f"GEE error: {e}")
        raise


# ============================================================
# STUDY AREA: Bantul, Daerah Istimewa Yogyakarta
# ============================================================

# User-supplied FeatureCollections (Code Editor imports)
ASSETS = {
    'aoi': os.getenv('AOI_ASSET'),
    'aoi_ricefield': os.getenv('AOI_RICEFIELD_ASSET'),
    'ricefield': os.getenv('RICEFIELD_ASSET'),
    'non_ricefield': os.getenv('NON_RICEFIELD_ASSET'),
}

ASSET_ENV_VARS = {
    'aoi': 'AOI_ASSET',
    'aoi_ricefield': 'AOI_RICEFIELD_ASSET',
    'ricefield': 'RICEFIELD_ASSET',
    'non_ricefield': 'NON_RICEFIELD_ASSET',
}


def missing_assets(assets=None):
    """Environment variables whose asset ID is not set."""
    assets = ASSETS if assets is None else assets
    return [ASSET_ENV_VARS[key] for key, value in assets.items() if not value]


# ============================================================
# COLLECTION AND PERIOD
# ============================================================

COLLECTION_ID = 'LANDSAT/LC09/C02/T1_L2'

MAP_YEAR = 2023
DATE_RANGE = ('2023-01-01', '2023-12-31')

# ============================================================
# LANDSAT 9 C2 L2 PREPROCESSING
# ============================================================

# QA_PIXEL bits 0-4: fill, dilated cloud, cirrus, cloud, cloud shadow
QA_PIXEL_BITMASK = int('11111', 2)

OPTICAL_BANDS = 'SR_B.'
THERMAL_BANDS = 'ST_B.*'

SCALE_FACTORS = {
    'optical': {'multiply': 0.0000275, 'add': -0.2},
    'thermal': {'multiply': 0.00341802, 'add': 149.0},
}

# ============================================================
# SAMPLING
# ============================================================

CLASS_PROPERTY = 'lc'
RANDOM_COLUMN = 'random'
SPLIT_THRESHOLD = 0.7
SPLIT_SEED = 0
SAMPLE_SCALE = 30

# ============================================================
# CLASSES (lc)
# ============================================================

CLASSES = {
    0: {'name': 'Rice field', 'color': 'green'},
    1: {'name': 'Non-rice field', 'color': 'red'},
}

EXPORT_CLASS = 0

# ============================================================
# RANDOM FOREST PARAMETERS
# ============================================================

RF_PARAMS = {
    'numberOfTrees': 100,
}

PREDICTED_PROPERTY = 'classification'

# ============================================================
# VECTORIZATION AND EXPORT
# ============================================================

VECTOR_PARAMS = {
    'scale': 30,
    'geometryType': 'polygon',
    'eightConnected': False,
    'labelProperty': 'class',
}

EXPORT_DESCRIPTION = f'Classification_Result_{MAP_YEAR}'
EXPORT_FOLDER = os.getenv('EXPORT_FOLDER', 'GEE Export')
EXPORT_FILE_FORMAT = 'SHP'

# ============================================================
# VISUALIZATION
# ============================================================

MAP_ZOOM = 11

COMPOSITE_VIS = {
    'bands': ['SR_B4', 'SR_B3', 'SR_B2'],
    'min': 0,
    'max': 0.3,
}

CLASSIFICATION_VIS = {
    'palette': [CLASSES[c]['color'] for c in sorted(CLASSES)],
    'min': 0,
    'max': 1,
}
