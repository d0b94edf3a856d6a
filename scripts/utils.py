"""
Helper functions for the Bantul rice-field classification pipeline.
Includes: Landsat 9 masking, asset loading, exports, visualization
parameters, logging.
"""

import ee
import os
import sys
import json
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import gee_config
from gee_config import (
    ASSETS, OPTICAL_BANDS, THERMAL_BANDS, SCALE_FACTORS, QA_PIXEL_BITMASK,
    COMPOSITE_VIS, CLASSIFICATION_VIS, EXPORT_FILE_FORMAT, missing_assets
)


# ============================================================
# LOGGING
# ============================================================

def log(msg):
    ts = datetime.now().strftime('%H:%M:%S')
    line = f"[{ts}] {msg}"
    print(line, flush=True)
    os.makedirs(os.path.dirname(gee_config.LOG_PATH), exist_ok=True)
    with open(gee_config.LOG_PATH, 'a') as f:
        f.write(line + '\n')


def save_json(data, filename, output_dir=None):
    output_dir = output_dir or gee_config.OUTPUT_DIR
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)
    log(f"  >> Saved: {filename}")
    return path


def safe_getinfo(ee_obj, label=""):
    try:
        return ee_obj.getInfo()
    except Exception as e:
        log(f"  WARNING ({label}): {e}")
        return None


# ============================================================
# CLOUD MASKING
# ============================================================

def mask_landsat9_qa(image):
    """
    Mask fill, dilated cloud, cirrus, cloud and cloud shadow pixels
    (QA_PIXEL bits 0-4) and radiometrically saturated pixels (QA_RADSAT).
    """
    qa_mask = image.select('QA_PIXEL').bitwiseAnd(QA_PIXEL_BITMASK).eq(0)
    saturation_mask = image.select('QA_RADSAT').eq(0)
    return image.updateMask(qa_mask).updateMask(saturation_mask)


def apply_scale_factors(image):
    """Landsat C2 L2 scale factors for the SR_B* and ST_B* bands."""
    optical = SCALE_FACTORS['optical']
    thermal = SCALE_FACTORS['thermal']
    optical_bands = image.select(OPTICAL_BANDS) \
        .multiply(optical['multiply']).add(optical['add'])
    thermal_bands = image.select(THERMAL_BANDS) \
        .multiply(thermal['multiply']).add(thermal['add'])
    return image.addBands(optical_bands, None, True) \
        .addBands(thermal_bands, None, True)


def mask_landsat9_sr(image):
    """Cloud/saturation mask plus scale factors for one Landsat 9 C2 L2 scene."""
    return mask_landsat9_qa(apply_scale_factors(image))


# ============================================================
# STUDY AREA AND TRAINING ASSETS
# ============================================================

def require_assets(assets=None):
    """Raise RuntimeError naming every unset asset variable."""
    assets = ASSETS if assets is None else assets
    missing = missing_assets(assets)
    if missing:
        raise RuntimeError(
            f"Asset IDs not configured: {', '.join(missing)} (set them in .env)"
        )
    return assets


def get_study_assets(assets=None):
    """
    Load the AOI, rice-field AOI and the two training point sets as
    ee.FeatureCollection objects.
    """
    assets = require_assets(assets)
    return {key: ee.FeatureCollection(asset_id) for key, asset_id in assets.items()}


# ============================================================
# EXPORT
# ============================================================

def export_table_to_drive(fc, description, folder, file_format=EXPORT_FILE_FORMAT):
    """Export a FeatureCollection to Google Drive."""
    task = ee.batch.Export.table.toDrive(
        collection=fc,
        description=description,
        folder=folder,
        fileFormat=file_format
    )
    task.start()
    log(f"Exporting table: {description} ({file_format} -> {folder})")
    return task


# ============================================================
# VISUALIZATION
# ============================================================

def get_composite_vis_params():
    """True-colour visualization for the scaled Landsat 9 composite."""
    return dict(COMPOSITE_VIS)


def get_classification_vis_params():
    """Visualization for the rice / non-rice classification."""
    return dict(CLASSIFICATION_VIS)


# ============================================================
# GENERAL UTILITIES
# ============================================================

def print_image_info(image, name="Image"):
    """Print basic information about a GEE image."""
    band_names = image.bandNames().getInfo()
    log(f"{name}:")
    log(f"  Bands ({len(band_names)}): {band_names}")
    return band_names


def print_collection_info(collection, name="Collection"):
    """Print the number of images in a GEE collection."""
    size = collection.size().getInfo()
    log(f"{name}: {size} images")
    return size
