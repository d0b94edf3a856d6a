"""
01_preprocessing.py
===================
Stage 1: Landsat 9 preprocessing and median composite in Google Earth Engine.

Filters the Landsat 9 Collection 2 Level 2 archive to the map year, applies
the QA/saturation mask and scale factors to every scene, reduces the
collection to a per-pixel median and clips it to the AOI.

Outputs:
- Median composite for 2023 (ee.Image, lazy)
- outputs/composite_metadata.json (scene count, band names)
"""

import ee
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from gee_config import COLLECTION_ID, DATE_RANGE, MAP_YEAR
from scripts.utils import (
    mask_landsat9_sr,
    get_study_assets,
    print_image_info,
    print_collection_info,
    save_json,
    log,
)


# ============================================================
# COLLECTION
# ============================================================

def get_landsat9_collection(start_date=DATE_RANGE[0], end_date=DATE_RANGE[1]):
    """Landsat 9 C2 L2 scenes for the date window, masked and scaled."""
    return (ee.ImageCollection(COLLECTION_ID)
            .filterDate(start_date, end_date)
            .map(mask_landsat9_sr))


# ============================================================
# COMPOSITE
# ============================================================

def create_median_composite(collection, aoi):
    """Per-pixel median of the collection, clipped to the AOI features."""
    return collection.median().clipToCollection(aoi)


def build_composite(aoi, start_date=DATE_RANGE[0], end_date=DATE_RANGE[1]):
    collection = get_landsat9_collection(start_date, end_date)
    composite = create_median_composite(collection, aoi)
    return composite, collection


# ============================================================
# MAIN
# ============================================================

def main(assets=None):
    log("=" * 60)
    log("STAGE 1: LANDSAT 9 PREPROCESSING AND COMPOSITE")
    log(f"Run date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    log("=" * 60)

    assets = assets or get_study_assets()
    start, end = DATE_RANGE
    log(f"  Collection: {COLLECTION_ID}")
    log(f"  Window: {start} to {end}")

    composite, collection = build_composite(assets['aoi'], start, end)
    n_images = print_collection_info(collection, f"  Landsat 9 {MAP_YEAR}")
    bands = print_image_info(composite, f"  Composite {MAP_YEAR}")

    metadata = {
        'collection': COLLECTION_ID,
        'map_year': MAP_YEAR,
        'start_date': start,
        'end_date': end,
        'n_images': n_images,
        'bands': bands,
    }
    save_json(metadata, 'composite_metadata.json')

    log("\nNext step: 02_training_samples.py")
    return composite, metadata


if __name__ == '__main__':
    from gee_config import initialize
    initialize()
    composite, metadata = main()
