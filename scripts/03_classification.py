"""
03_classification.py
====================
Stage 3: Random Forest classification in Google Earth Engine.

Trains a 100-tree smileRandomForest on the composite band values of the
training samples and classifies the composite pixel-wise. The result is
clipped to the rice-field AOI.

Outputs:
- Classified image (band 'classification': 0 = rice field, 1 = non-rice field)
- Feature importance and class areas (ha)
"""

import ee
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from gee_config import CLASS_PROPERTY, CLASSES, RF_PARAMS, SAMPLE_SCALE
from scripts.utils import safe_getinfo, log


# ============================================================
# RANDOM FOREST
# ============================================================

def train_random_forest(training_data, input_properties, class_property=CLASS_PROPERTY):
    """
    Train the Random Forest classifier.

    Args:
        training_data: ee.FeatureCollection with band values and labels
        input_properties: band names used as features (ee.List or list)
        class_property: label column

    Returns:
        trained ee.Classifier
    """
    classifier = ee.Classifier.smileRandomForest(**RF_PARAMS).train(
        features=training_data,
        classProperty=class_property,
        inputProperties=input_properties
    )
    return classifier


def get_feature_importance(classifier):
    """Variable importance of the trained RF model."""
    return ee.Dictionary(classifier.explain().get('importance'))


# ============================================================
# CLASSIFICATION
# ============================================================

def classify_image(composite, classifier, region):
    """Apply the classifier to every pixel and clip to the region."""
    return composite.classify(classifier).clip(region)


def compute_class_areas(classified, region, scale=SAMPLE_SCALE):
    """Mapped area per class in hectares (None where GEE fails)."""
    area_img = ee.Image.pixelArea().divide(10000)
    class_areas = {}
    for cid, info in CLASSES.items():
        result = safe_getinfo(
            area_img.updateMask(classified.eq(cid)).reduceRegion(
                reducer=ee.Reducer.sum(),
                geometry=region,
                scale=scale,
                maxPixels=1e13,
                bestEffort=True
            ),
            f"area_c{cid}"
        )
        ha = result.get('area') if result else None
        class_areas[cid] = {
            'name': info['name'],
            'area_ha': round(ha, 1) if ha is not None else None,
        }
    return class_areas


# ============================================================
# MAIN
# ============================================================

def main(composite, training, region):
    log("=" * 60)
    log("STAGE 3: RANDOM FOREST CLASSIFICATION")
    log(f"Run date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    log("=" * 60)

    log(f"  Training Random Forest (ntree={RF_PARAMS['numberOfTrees']})...")
    classifier = train_random_forest(training, composite.bandNames())

    importance = safe_getinfo(get_feature_importance(classifier), "importance")
    if importance:
        sorted_imp = sorted(importance.items(), key=lambda x: x[1], reverse=True)
        log("  Top features: " + ", ".join(f"{k}:{v:.2f}" for k, v in sorted_imp[:5]))

    log("  Classifying composite...")
    classified = classify_image(composite, classifier, region)

    log("  Area per class...")
    class_areas = compute_class_areas(classified, region.geometry())
    for cid, area in class_areas.items():
        if area['area_ha'] is None:
            log(f"    {area['name']}: N/A")
        else:
            log(f"    {area['name']}: {area['area_ha']:,.1f} ha")

    log("\nNext step: 04_accuracy_assessment.py")
    return classifier, classified, {
        'feature_importance': importance,
        'class_areas_ha': {str(k): v for k, v in class_areas.items()},
    }


if __name__ == '__main__':
    import importlib
    from gee_config import initialize
    from scripts.utils import get_study_assets
    initialize()
    assets = get_study_assets()
    preprocessing = importlib.import_module('scripts.01_preprocessing')
    sampling = importlib.import_module('scripts.02_training_samples')
    composite, _ = preprocessing.main(assets)
    training, validation, _ = sampling.main(composite, assets)
    classifier, classified, info = main(composite, training, assets['aoi_ricefield'])
