"""
05_vector_export.py
===================
Stage 5: Vectorize the classification and export rice-field polygons.

Converts the 'classification' band to 4-connected polygons labeled by class
(reduceToVectors + countEvery), keeps class 0 (rice field) and exports the
polygons as a shapefile to Google Drive.

A downloaded export can be checked with verify_shapefile():
    python scripts/05_vector_export.py path/to/Classification_Result_2023.shp
"""

import ee
import os
import sys
import time
import geopandas as gpd

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from gee_config import (
    VECTOR_PARAMS, EXPORT_CLASS, EXPORT_DESCRIPTION, EXPORT_FOLDER,
    EXPORT_FILE_FORMAT, PREDICTED_PROPERTY
)
from scripts.utils import export_table_to_drive, log


TERMINAL_STATES = ('COMPLETED', 'FAILED', 'CANCELLED')


# ============================================================
# VECTORIZATION
# ============================================================

def classification_to_polygons(classified, geometry):
    """Polygons of contiguous pixels with the class value in 'class'."""
    return classified.select(PREDICTED_PROPERTY).reduceToVectors(
        geometry=geometry,
        reducer=ee.Reducer.countEvery(),
        **VECTOR_PARAMS
    )


def filter_class(features, class_value=EXPORT_CLASS):
    return features.filter(ee.Filter.eq(VECTOR_PARAMS['labelProperty'], class_value))


# ============================================================
# EXPORT TASK
# ============================================================

def export_class_polygons(classified, geometry, class_value=EXPORT_CLASS,
                          description=EXPORT_DESCRIPTION, folder=EXPORT_FOLDER):
    polygons = filter_class(classification_to_polygons(classified, geometry), class_value)
    return export_table_to_drive(polygons, description, folder, EXPORT_FILE_FORMAT)


def wait_for_task(task, poll_seconds=30, timeout=3600):
    """
    Poll an export task until it finishes.

    Raises:
        RuntimeError: task FAILED or CANCELLED
        TimeoutError: still running after `timeout` seconds
    """
    t0 = time.monotonic()
    while True:
        status = task.status()
        state = status.get('state')
        if state in TERMINAL_STATES:
            break
        if time.monotonic() - t0 > timeout:
            raise TimeoutError(f"Export task still {state} after {timeout}s")
        log(f"    Task {status.get('description', '')}: {state}")
        time.sleep(poll_seconds)

    if state != 'COMPLETED':
        raise RuntimeError(
            f"Export task {state}: {status.get('error_message', 'no error message')}"
        )
    log(f"    Task {status.get('description', '')}: COMPLETED")
    return status


# ============================================================
# DOWNLOADED SHAPEFILE CHECK
# ============================================================

def verify_shapefile(path, class_value=EXPORT_CLASS):
    """
    Check that a downloaded export only holds polygons of one class.

    Returns:
        number of features
    """
    gdf = gpd.read_file(path)
    label = VECTOR_PARAMS['labelProperty']
    if label not in gdf.columns:
        raise ValueError(f"{path}: missing '{label}' attribute")
    other = sorted(set(gdf[label].dropna().astype(int)) - {class_value})
    if other:
        raise ValueError(f"{path}: unexpected classes {other} (expected only {class_value})")
    bad_geom = ~gdf.geom_type.isin(['Polygon', 'MultiPolygon'])
    if bad_geom.any():
        raise ValueError(f"{path}: {int(bad_geom.sum())} non-polygon features")
    log(f"  [OK] {path}: {len(gdf)} polygons of class {class_value}")
    return len(gdf)


# ============================================================
# MAIN
# ============================================================

def main(classified, aoi_ricefield, export=True, wait=False):
    log("=" * 60)
    log("STAGE 5: VECTOR EXPORT")
    log("=" * 60)

    if not export:
        log("  Export skipped (--no-export)")
        return None

    task = export_class_polygons(classified, aoi_ricefield.geometry())
    log("  Check progress at: https://code.earthengine.google.com/tasks")
    if wait:
        wait_for_task(task)
    return task


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print("Usage: python scripts/05_vector_export.py <downloaded .shp>")
        sys.exit(2)
    verify_shapefile(sys.argv[1])
