"""
02_training_samples.py
======================
Stage 2: Training and validation samples.

Merges the rice-field and non-rice-field point sets, extracts composite band
values at each point (30 m), adds a uniform random column and splits the
samples 70/30 into training and validation sets.

Outputs:
- training / validation FeatureCollections
- outputs/training_samples_stats.json
- outputs/training_samples.csv (band values per sample)
"""

import ee
import os
import sys
import pandas as pd
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import gee_config
from gee_config import (
    CLASS_PROPERTY, RANDOM_COLUMN, SPLIT_THRESHOLD, SPLIT_SEED, SAMPLE_SCALE,
    MAP_YEAR
)
from scripts.utils import get_study_assets, save_json, log


# ============================================================
# SAMPLING
# ============================================================

def merge_class_features(ricefield, non_ricefield):
    """Merge the labeled point sets of both classes."""
    return ricefield.merge(non_ricefield)


def sample_composite(composite, features, scale=SAMPLE_SCALE,
                     class_property=CLASS_PROPERTY, seed=SPLIT_SEED):
    """
    Extract composite values at the labeled points and attach a uniform
    random number per sample.
    """
    samples = composite.sampleRegions(
        collection=features,
        properties=[class_property],
        scale=scale
    )
    return samples.randomColumn(RANDOM_COLUMN, seed)


def split_train_validation(samples, threshold=SPLIT_THRESHOLD):
    """
    Split on the random column: training (random < threshold),
    validation (random >= threshold).
    """
    training = samples.filter(ee.Filter.lt(RANDOM_COLUMN, threshold))
    validation = samples.filter(ee.Filter.gte(RANDOM_COLUMN, threshold))
    return training, validation


def count_samples(fc):
    return fc.aggregate_count('.all').getInfo()


def check_split(n_total, n_training, n_validation):
    """The two subsets must be non-empty and add up to every sample."""
    if n_total == 0:
        raise ValueError("No samples extracted: check the training points and the AOI")
    if n_training == 0 or n_validation == 0:
        raise ValueError(
            f"Empty split (training={n_training}, validation={n_validation})"
        )
    if n_training + n_validation != n_total:
        raise ValueError(
            f"Split does not cover the samples: {n_training} + {n_validation} != {n_total}"
        )


# ============================================================
# LOCAL TABLE
# ============================================================

def samples_to_dataframe(fc):
    """Download sample properties (no geometries) as a DataFrame."""
    info = fc.getInfo()
    rows = [f['properties'] for f in info.get('features', [])]
    return pd.DataFrame(rows)


def save_samples_csv(training, validation, filename='training_samples.csv'):
    df_train = samples_to_dataframe(training).assign(subset='training')
    df_val = samples_to_dataframe(validation).assign(subset='validation')
    df = pd.concat([df_train, df_val], ignore_index=True)
    os.makedirs(gee_config.OUTPUT_DIR, exist_ok=True)
    path = os.path.join(gee_config.OUTPUT_DIR, filename)
    df.to_csv(path, index=False)
    log(f"  >> Saved: {filename} ({len(df)} rows)")
    return df


# ============================================================
# MAIN
# ============================================================

def main(composite, assets=None, save_csv=False):
    log("=" * 60)
    log("STAGE 2: TRAINING AND VALIDATION SAMPLES")
    log(f"Run date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    log("=" * 60)

    assets = assets or get_study_assets()
    features = merge_class_features(assets['ricefield'], assets['non_ricefield'])

    log(f"  Sampling composite at {SAMPLE_SCALE} m...")
    samples = sample_composite(composite, features)
    training, validation = split_train_validation(samples)

    n_total = count_samples(samples)
    n_train = count_samples(training)
    n_val = count_samples(validation)
    log(f"  Training Samples: {n_train}")
    log(f"  Validation Samples: {n_val}")
    check_split(n_total, n_train, n_val)

    stats = {
        'year': MAP_YEAR,
        'threshold': SPLIT_THRESHOLD,
        'seed': SPLIT_SEED,
        'n_training': n_train,
        'n_validation': n_val,
        'total': n_total,
    }
    save_json(stats, 'training_samples_stats.json')

    if save_csv:
        save_samples_csv(training, validation)

    log("\nNext step: 03_classification.py")
    return training, validation, stats


if __name__ == '__main__':
    import importlib
    from gee_config import initialize
    initialize()
    preprocessing = importlib.import_module('scripts.01_preprocessing')
    composite, _ = preprocessing.main()
    training, validation, stats = main(composite, save_csv=True)
